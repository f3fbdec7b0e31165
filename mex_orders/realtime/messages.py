"""
Order Tracking Wire Protocol

JSON text frames exchanged on the tracking WebSocket:

    client → server  {"type": "SUBSCRIBE_TO_ORDER", "orderId": 42}
    server → client  {"type": "SUBSCRIPTION_CONFIRMED", "orderId": 42}
    server → client  {"type": "ORDER_UPDATE", "orderId": 42, "order": {...}}
"""

import json
from enum import Enum
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, ValidationError, field_validator

from mex_orders.exceptions import MalformedMessageError
from mex_orders.schemas import OrderResponse


class MessageType(str, Enum):
    SUBSCRIBE_TO_ORDER = "SUBSCRIBE_TO_ORDER"
    SUBSCRIPTION_CONFIRMED = "SUBSCRIPTION_CONFIRMED"
    ORDER_UPDATE = "ORDER_UPDATE"


class SubscribeToOrder(BaseModel):
    """Client request to follow one order."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["SUBSCRIBE_TO_ORDER"] = "SUBSCRIBE_TO_ORDER"
    # Lax mode keeps numeric strings like "42" working
    order_id: PositiveInt = Field(..., alias="orderId")

    @field_validator("order_id", mode="before")
    @classmethod
    def reject_bool(cls, v: Any) -> Any:
        # JSON true/false would otherwise coerce to 1/0
        if isinstance(v, bool):
            raise ValueError("orderId must be an integer")
        return v


class SubscriptionConfirmed(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["SUBSCRIPTION_CONFIRMED"] = "SUBSCRIPTION_CONFIRMED"
    order_id: int = Field(..., alias="orderId")


class OrderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["ORDER_UPDATE"] = "ORDER_UPDATE"
    order_id: int = Field(..., alias="orderId")
    order: dict[str, Any]


OrderPayload = Union[OrderResponse, Mapping[str, Any]]


def parse_client_message(raw: str) -> Optional[SubscribeToOrder]:
    """
    Decode one inbound frame.

    Returns:
        The subscribe request, or None for a well-formed frame of a type
        the server does not handle

    Raises:
        MalformedMessageError: Invalid JSON, a non-object frame, or a
            subscribe request without a positive integer orderId
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"Invalid JSON: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise MalformedMessageError("Frame is not a JSON object", raw=raw)

    if data.get("type") != MessageType.SUBSCRIBE_TO_ORDER.value:
        return None

    try:
        return SubscribeToOrder.model_validate(data)
    except ValidationError as e:
        raise MalformedMessageError(
            f"Invalid orderId: {data.get('orderId')!r}", raw=raw
        ) from e


def subscription_confirmed(order_id: int) -> dict[str, Any]:
    return SubscriptionConfirmed(order_id=order_id).model_dump(mode="json", by_alias=True)


def order_update(order_id: int, order: OrderPayload) -> dict[str, Any]:
    """Build an ORDER_UPDATE frame from an order or a raw dict."""
    if isinstance(order, OrderResponse):
        payload = order.to_wire()
    else:
        payload = dict(order)
    return OrderUpdate(order_id=order_id, order=payload).model_dump(mode="json", by_alias=True)
