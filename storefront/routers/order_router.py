from typing import Union

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import orders, schemas
from ..auth import get_current_admin, get_current_customer, get_current_user
from ..database import get_db
from ..models import Role, User

router = APIRouter(
    prefix="/orders",
    tags=["orders"]
)


def to_seller_out(view: dict) -> schemas.SellerOrderOut:
    items = [schemas.OrderItemOut.model_validate(i) for i in view["items"]]
    return schemas.SellerOrderOut(**{**view, "items": items})


@router.post("", response_model=schemas.OrderOut, status_code=status.HTTP_201_CREATED)
def create_order(
    body: schemas.OrderCreate,
    current_user: User = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    """Place an order for the current customer.

    Every line is checked against the catalog before any stock is taken; the
    stock decrements and the order insert then commit together.
    """
    return orders.place_order(
        db,
        customer=current_user,
        items=[item.model_dump() for item in body.items],
        delivery_address=body.delivery_address,
        payment_method=body.payment_method,
    )


@router.get("", response_model=Union[schemas.OrderListResponse, schemas.SellerOrderListResponse])
def list_orders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Orders visible to the caller, newest first.

    Customers get their own orders, sellers get their slice of every order
    that contains one of their products, admins get everything.
    """
    if current_user.role == Role.SELLER.value:
        views = [
            to_seller_out(orders.seller_view(o, current_user.id))
            for o in orders.seller_orders(db, current_user.id)
        ]
        return schemas.SellerOrderListResponse(orders=views, count=len(views))

    if current_user.role == Role.CUSTOMER.value:
        found = orders.customer_orders(db, current_user.id)
    else:
        found = orders.all_orders(db)
    return schemas.OrderListResponse(
        orders=[schemas.OrderOut.model_validate(o) for o in found],
        count=len(found),
    )


@router.get("/{order_id}", response_model=Union[schemas.OrderOut, schemas.SellerOrderOut])
def get_order(
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if current_user.role == Role.SELLER.value:
        return to_seller_out(orders.seller_order(db, order_id, current_user))
    return schemas.OrderOut.model_validate(orders.visible_order(db, order_id, current_user))


@router.put("/{order_id}/status", response_model=schemas.OrderOut)
def update_order_status(
    order_id: int,
    status_update: schemas.StatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return orders.change_status(
        db,
        order_id=order_id,
        actor=current_user,
        new_status=status_update.status,
        note=status_update.note,
    )


@router.post("/{order_id}/history", response_model=schemas.OrderOut)
def add_history(
    order_id: int,
    body: schemas.HistoryNote,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return orders.add_history_note(db, order_id, current_user, note=body.note, status=body.status)


@router.put("/{order_id}", response_model=schemas.OrderOut)
def update_order(
    order_id: int,
    body: schemas.OrderUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return orders.update_order(
        db,
        order_id=order_id,
        actor=current_user,
        items=[item.model_dump() for item in body.items],
        delivery_address=body.delivery_address,
    )


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    orders.delete_order(db, order_id)
    return None
