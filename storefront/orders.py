"""Order placement, status transitions and the role-scoped order views.

Placement validates every requested line before touching stock, then takes
the stock with conditional updates and inserts the order in one transaction.
A request that fails at any step leaves stock exactly as it found it.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from . import crud, messaging, permissions
from .errors import (
    EmptyOrder,
    Forbidden,
    InsufficientStock,
    InvalidStatus,
    OrderNotEditable,
    OrderNotFound,
    ProductNotFound,
)
from .models import Order, OrderItem, OrderStatus, OrderStatusHistory, Role, User

logger = structlog.get_logger(__name__)

EDITABLE_STATUSES = (OrderStatus.PENDING.value, OrderStatus.PROCESSING.value)
OPEN_STATUSES = (
    OrderStatus.PENDING.value,
    OrderStatus.PROCESSING.value,
    OrderStatus.SHIPPED.value,
)


def parse_status(value) -> OrderStatus:
    """Match a client supplied status case-insensitively against the enum."""
    if isinstance(value, OrderStatus):
        return value
    normalized = str(value or "").strip().lower()
    for candidate in OrderStatus:
        if candidate.value.lower() == normalized:
            return candidate
    raise InvalidStatus(value, [s.value for s in OrderStatus])


def actor_descriptor(actor: User) -> str:
    label = f"{actor.role}:{actor.id}"
    if getattr(actor, "name", None):
        label = f"{label} ({actor.name})"
    return label


def line_total(item) -> Decimal:
    return Decimal(str(item.price)) * item.quantity


def _orders_query(db: Session):
    return db.query(Order).options(selectinload(Order.items), selectinload(Order.history))


def get_order(db: Session, order_id: int) -> Order:
    order = _orders_query(db).filter(Order.id == order_id).first()
    if order is None:
        raise OrderNotFound(order_id)
    return order


# -----------------------------
# Placement
# -----------------------------

def place_order(
    db: Session,
    customer: User,
    items: List[Dict],
    delivery_address: str,
    payment_method: str = "cod",
) -> Order:
    """Create a Pending order for ``customer``.

    ``items`` is the client's cart: ``[{"product_id": int, "quantity": int}, ...]``.
    """
    if not items:
        raise EmptyOrder()

    products = {p.id: p for p in crud.find_products_by_ids(db, [int(i["product_id"]) for i in items])}

    total = Decimal("0")
    claimed: Dict[int, int] = {}
    order_items: List[OrderItem] = []

    for requested in items:
        product_id = int(requested["product_id"])
        quantity = int(requested["quantity"])

        product = products.get(product_id)
        if product is None:
            logger.info("Order rejected", reason="product_not_found", product_id=product_id)
            raise ProductNotFound(product_id)

        # Several lines may name the same product; they share its stock
        available = product.stock - claimed.get(product_id, 0)
        if available < quantity:
            logger.info(
                "Order rejected",
                reason="insufficient_stock",
                product_id=product_id,
                available=available,
                requested=quantity,
            )
            raise InsufficientStock(product_id, available, product.name)

        claimed[product_id] = claimed.get(product_id, 0) + quantity
        item = OrderItem(
            product_id=product.id,
            seller_id=product.seller_id,
            product_name=product.name,
            quantity=quantity,
            price=product.price,
        )
        total += line_total(item)
        order_items.append(item)

    try:
        # Lock rows in id order so concurrent carts cannot deadlock
        for product_id in sorted(claimed):
            quantity = claimed[product_id]
            if not crud.decrement_stock(db, product_id, quantity):
                available = crud.current_stock(db, product_id)
                logger.warning(
                    "Stock claimed concurrently",
                    product_id=product_id,
                    available=available,
                    requested=quantity,
                )
                raise InsufficientStock(product_id, available, products[product_id].name)

        db_order = Order(
            customer_id=customer.id,
            total_amount=total,
            status=OrderStatus.PENDING.value,
            delivery_address=delivery_address,
            payment_method=payment_method,
            items=order_items,
            history=[
                OrderStatusHistory(
                    status=OrderStatus.PENDING.value,
                    actor=actor_descriptor(customer),
                    note="Order placed",
                )
            ],
        )
        db.add(db_order)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(db_order)
    logger.info(
        "Order placed",
        order_id=db_order.id,
        customer_id=customer.id,
        total_amount=str(db_order.total_amount),
        lines=len(order_items),
    )
    messaging.emit("order.created", messaging.order_created_payload(db_order))
    return db_order


# -----------------------------
# Status transitions
# -----------------------------

def change_status(
    db: Session,
    order_id: int,
    actor: User,
    new_status,
    note: Optional[str] = None,
) -> Order:
    target = parse_status(new_status)
    order = get_order(db, order_id)

    if not permissions.can_transition(actor, order, target):
        logger.info(
            "Status change refused",
            order_id=order_id,
            actor=actor_descriptor(actor),
            current_status=order.status,
            requested_status=target.value,
        )
        raise Forbidden(_transition_refusal(actor, order))

    old_status = order.status
    descriptor = actor_descriptor(actor)
    order.status = target.value
    order.history.append(
        OrderStatusHistory(
            status=target.value,
            actor=descriptor,
            note=note or f"Status updated to {target.value} by {descriptor}",
        )
    )
    db.commit()
    db.refresh(order)

    logger.info(
        "Order status changed",
        order_id=order.id,
        old_status=old_status,
        new_status=order.status,
        actor=descriptor,
    )
    messaging.emit("order.status_changed", messaging.status_changed_payload(order, old_status, descriptor))
    return order


def _transition_refusal(actor: User, order: Order) -> str:
    if actor.role == Role.CUSTOMER.value:
        if not permissions.owns_order(actor, order):
            return "Access denied - you can only update your own orders"
        return "Customers can only cancel orders that are still Pending"
    if actor.role == Role.SELLER.value:
        if not permissions.sells_in_order(actor, order):
            return "Access denied. You do not have items in this order."
        return "Sellers can set Processing, Shipped, Delivered or Cancelled only"
    return "Access denied"


def add_history_note(
    db: Session,
    order_id: int,
    actor: User,
    note: str,
    status=None,
) -> Order:
    """Append a note to the order's history without changing its status."""
    tagged = parse_status(status).value if status else None
    order = get_order(db, order_id)

    if not permissions.can_annotate(actor, order):
        raise Forbidden("Access denied. Only sellers with items in this order or admins can add history.")

    order.history.append(
        OrderStatusHistory(status=tagged or order.status, actor=actor_descriptor(actor), note=note)
    )
    db.commit()
    db.refresh(order)
    return order


# -----------------------------
# Customer edits
# -----------------------------

def update_order(
    db: Session,
    order_id: int,
    actor: User,
    items: List[Dict],
    delivery_address: Optional[str] = None,
) -> Order:
    """Let the owning customer change the address or line quantities.

    Quantity increases are taken from stock, decreases are returned to it.
    """
    order = get_order(db, order_id)

    if not permissions.can_edit(actor, order):
        raise Forbidden("Access denied - you can only update your own orders")
    if order.status not in EDITABLE_STATUSES:
        raise OrderNotEditable(order.status)

    # Repeated products edit their first line
    lines = {}
    for item in order.items:
        lines.setdefault(item.product_id, item)

    try:
        for requested in sorted(items, key=lambda i: int(i["product_id"])):
            product_id = int(requested["product_id"])
            quantity = int(requested["quantity"])
            line = lines.get(product_id)
            if line is None:
                raise ProductNotFound(product_id)

            diff = quantity - line.quantity
            if diff > 0 and not crud.decrement_stock(db, product_id, diff):
                raise InsufficientStock(product_id, crud.current_stock(db, product_id), line.product_name)
            if diff < 0:
                crud.restock(db, product_id, -diff)
            line.quantity = quantity

        if delivery_address:
            order.delivery_address = delivery_address
        order.total_amount = sum((line_total(i) for i in order.items), Decimal("0"))
        order.history.append(
            OrderStatusHistory(status=order.status, actor=actor_descriptor(actor), note="Order updated by customer")
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(order)
    return order


def delete_order(db: Session, order_id: int) -> None:
    order = get_order(db, order_id)
    db.delete(order)
    db.commit()
    logger.info("Order deleted", order_id=order_id)


# -----------------------------
# Views
# -----------------------------

def all_orders(db: Session) -> List[Order]:
    return _orders_query(db).order_by(Order.created_at.desc(), Order.id.desc()).all()


def customer_orders(db: Session, customer_id: int) -> List[Order]:
    return (
        _orders_query(db)
        .filter(Order.customer_id == customer_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def seller_orders(db: Session, seller_id: int) -> List[Order]:
    return (
        _orders_query(db)
        .filter(Order.items.any(OrderItem.seller_id == seller_id))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def seller_view(order: Order, seller_id: int) -> dict:
    """Project an order down to one seller's lines and their sub-total."""
    own_items = [item for item in order.items if item.seller_id == seller_id]
    return {
        "id": order.id,
        "customer_id": order.customer_id,
        "status": order.status,
        "delivery_address": order.delivery_address,
        "payment_method": order.payment_method,
        "created_at": order.created_at,
        "items": own_items,
        "seller_subtotal": sum((line_total(i) for i in own_items), Decimal("0")),
    }


def seller_order(db: Session, order_id: int, seller: User) -> dict:
    order = get_order(db, order_id)
    if not permissions.sells_in_order(seller, order):
        raise Forbidden("This order does not contain any of your products")
    return seller_view(order, seller.id)


def visible_order(db: Session, order_id: int, actor: User) -> Order:
    order = get_order(db, order_id)
    if not permissions.can_view(actor, order):
        raise Forbidden("Access denied")
    return order


# -----------------------------
# Stats
# -----------------------------

def customer_stats(db: Session, customer_id: int) -> dict:
    statuses = [row[0] for row in db.query(Order.status).filter(Order.customer_id == customer_id).all()]
    return {
        "total": len(statuses),
        "open": sum(1 for s in statuses if s in OPEN_STATUSES),
        "delivered": sum(1 for s in statuses if s == OrderStatus.DELIVERED.value),
    }


def seller_stats(db: Session, seller_id: int) -> dict:
    products = crud.get_products(db, limit=None, seller_id=seller_id)
    orders = (
        db.query(func.count(Order.id))
        .filter(Order.items.any(OrderItem.seller_id == seller_id))
        .scalar()
    )
    return {
        "products": len(products),
        "in_stock": sum(1 for p in products if p.stock > 0),
        "out_of_stock": sum(1 for p in products if p.stock == 0),
        "orders": int(orders or 0),
    }


def admin_stats(db: Session) -> dict:
    rows = (
        db.query(Order.status, func.count(Order.id), func.coalesce(func.sum(Order.total_amount), 0))
        .group_by(Order.status)
        .order_by(Order.status)
        .all()
    )
    buckets = [
        {"status": status, "count": int(count), "total_amount": Decimal(str(amount))}
        for status, count, amount in rows
    ]
    return {"by_status": buckets, "total_orders": sum(b["count"] for b in buckets)}
