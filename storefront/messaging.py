from __future__ import annotations

import datetime as dt
import json

import pika
from pika.exceptions import AMQPError
import structlog

from . import config

logger = structlog.get_logger(__name__)


def _connect() -> pika.BlockingConnection:
    params = pika.URLParameters(config.RABBITMQ_URL)
    params.heartbeat = 30
    params.blocked_connection_timeout = 30
    return pika.BlockingConnection(params)


def publish_event(routing_key: str, payload: dict) -> None:
    connection = _connect()
    try:
        ch = connection.channel()
        ch.exchange_declare(exchange=config.EVENTS_EXCHANGE, exchange_type="topic", durable=True)
        body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
        ch.basic_publish(
            exchange=config.EVENTS_EXCHANGE,
            routing_key=routing_key,
            body=body,
            properties=pika.BasicProperties(
                content_type="application/json",
                delivery_mode=2,  # persistent
            ),
        )
    finally:
        connection.close()


def emit(routing_key: str, payload: dict) -> bool:
    """Publish a committed change; a broker outage is logged, never raised.

    Returns True when the event was handed to the broker.
    """
    if not config.EVENTS_ENABLED:
        return False

    message = {
        "event": routing_key,
        "occurred_at": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
        **payload,
    }
    try:
        publish_event(routing_key, message)
    except (AMQPError, OSError) as exc:
        logger.warning("Event publish failed", routing_key=routing_key, error=str(exc))
        return False
    return True


def order_created_payload(order) -> dict:
    return {
        "order_id": order.id,
        "customer_id": order.customer_id,
        "total_amount": str(order.total_amount),
        "items": [
            {"product_id": i.product_id, "seller_id": i.seller_id, "quantity": i.quantity}
            for i in order.items
        ],
    }


def status_changed_payload(order, old_status: str, actor: str) -> dict:
    return {
        "order_id": order.id,
        "customer_id": order.customer_id,
        "old_status": old_status,
        "new_status": order.status,
        "actor": actor,
    }
