from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import orders, schemas
from ..auth import get_current_customer
from ..database import get_db
from ..models import User

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/me/orders", response_model=schemas.OrderListResponse)
def list_my_orders(
    current_customer: User = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    found = orders.customer_orders(db, current_customer.id)
    return {"orders": found, "count": len(found)}


@router.get("/me/stats", response_model=schemas.CustomerStats)
def my_stats(
    current_customer: User = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    return orders.customer_stats(db, current_customer.id)
