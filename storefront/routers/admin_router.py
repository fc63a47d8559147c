from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .. import crud, orders
from ..auth import get_current_admin
from ..database import get_db
from ..models import AccountStatus, Role, User
from ..schemas import AdminOrderStats, UserOut

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_seller_or_404(db: Session, seller_id: int) -> User:
    user = crud.get_user(db, seller_id)
    if user is None or user.role != Role.SELLER.value:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Seller with id {seller_id} not found",
        )
    return user


@router.get("/sellers/requests", response_model=List[UserOut])
def list_seller_requests(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return crud.get_pending_sellers(db)


@router.put("/sellers/{seller_id}/approve", response_model=UserOut)
def approve_seller(
    seller_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    seller = _get_seller_or_404(db, seller_id)
    return crud.set_account_status(db, seller, AccountStatus.APPROVED)


@router.put("/sellers/{seller_id}/reject", response_model=UserOut)
def reject_seller(
    seller_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    seller = _get_seller_or_404(db, seller_id)
    return crud.set_account_status(db, seller, AccountStatus.REJECTED)


@router.get("/orders/stats", response_model=AdminOrderStats)
def order_stats(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return orders.admin_stats(db)
