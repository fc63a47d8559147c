from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import orders, schemas
from ..auth import get_current_seller
from ..database import get_db
from ..models import User
from .order_router import to_seller_out

router = APIRouter(prefix="/seller", tags=["seller"])


@router.get("/orders", response_model=schemas.SellerOrderListResponse)
def list_my_orders(
    current_seller: User = Depends(get_current_seller),
    db: Session = Depends(get_db),
):
    views = [
        to_seller_out(orders.seller_view(o, current_seller.id))
        for o in orders.seller_orders(db, current_seller.id)
    ]
    return {"orders": views, "count": len(views)}


@router.get("/orders/{order_id}", response_model=schemas.SellerOrderOut)
def get_my_order(
    order_id: int,
    current_seller: User = Depends(get_current_seller),
    db: Session = Depends(get_db),
):
    return to_seller_out(orders.seller_order(db, order_id, current_seller))


@router.get("/stats", response_model=schemas.SellerStats)
def my_stats(
    current_seller: User = Depends(get_current_seller),
    db: Session = Depends(get_db),
):
    return orders.seller_stats(db, current_seller.id)
