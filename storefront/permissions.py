"""Per-operation permission predicates for orders.

Every function takes the acting user (anything with ``id`` and ``role``)
and the order, and returns a bool. Callers decide how to report a refusal.
"""

from .models import Order, OrderStatus, Role

SELLER_SETTABLE = frozenset(
    {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    }
)


def owns_order(actor, order: Order) -> bool:
    return order.customer_id == actor.id


def sells_in_order(actor, order: Order) -> bool:
    return any(item.seller_id == actor.id for item in order.items)


def can_view(actor, order: Order) -> bool:
    if actor.role == Role.ADMIN.value:
        return True
    if actor.role == Role.SELLER.value:
        return sells_in_order(actor, order)
    if actor.role == Role.CUSTOMER.value:
        return owns_order(actor, order)
    return False


def can_transition(actor, order: Order, new_status: OrderStatus) -> bool:
    # Only the customer rule looks at the current status; no forward-only ordering is enforced.
    if actor.role == Role.ADMIN.value:
        return True
    if actor.role == Role.SELLER.value:
        return sells_in_order(actor, order) and new_status in SELLER_SETTABLE
    if actor.role == Role.CUSTOMER.value:
        return (
            owns_order(actor, order)
            and new_status == OrderStatus.CANCELLED
            and order.status == OrderStatus.PENDING.value
        )
    return False


def can_annotate(actor, order: Order) -> bool:
    if actor.role == Role.ADMIN.value:
        return True
    return actor.role == Role.SELLER.value and sells_in_order(actor, order)


def can_edit(actor, order: Order) -> bool:
    return actor.role == Role.CUSTOMER.value and owns_order(actor, order)
