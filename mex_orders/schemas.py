"""
Pydantic Schemas for Request/Response Validation

JSON bodies use camelCase keys (customerName, createdAt, ...) because the
browser client and the order tracking WebSocket read them that way.
Snake_case names are accepted on input as well.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
import re


class CamelModel(BaseModel):
    """Base schema emitting camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItem(CamelModel):
    """Single cart line in an order."""
    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100, examples=["Carne Asada Burrito"])
    quantity: int = Field(..., ge=1, le=99, examples=[2])
    price: float = Field(..., ge=0, examples=[11.5])


class OrderCreate(CamelModel):
    """Request schema for placing a new order."""

    # Customer Info
    customer_name: str = Field(..., min_length=2, max_length=100, examples=["Maria Lopez"])
    customer_email: Optional[str] = Field(None, examples=["maria@example.com"])
    customer_phone: str = Field(..., min_length=10, max_length=20, examples=["555-123-4567"])

    # Address
    delivery_address: str = Field(..., max_length=255, examples=["12 Market St"])
    city: str = Field(..., max_length=50)
    zip_code: str = Field(..., max_length=10, examples=["10001"])
    delivery_instructions: Optional[str] = Field(None, max_length=500)

    # Cart
    items: List[OrderItem] = Field(..., min_length=1)
    subtotal: float = Field(..., ge=0)
    delivery_fee: float = Field(default=0.0, ge=0)
    tax: float = Field(..., ge=0)
    total: float = Field(..., ge=0)

    user_id: Optional[int] = None

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = re.sub(r"[^\d]", "", v)
        if len(cleaned) < 10:
            raise ValueError("Phone number must have at least 10 digits")
        return v

    @field_validator("customer_email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not re.match(r"^[\w\.-]+@[\w\.-]+\.\w+$", v):
            raise ValueError("Invalid email format")
        return v


class OrderStatusUpdate(BaseModel):
    """Body of PATCH /api/orders/{id}/status."""
    status: str = Field(..., min_length=1, max_length=20, examples=["ready"])


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderResponse(CamelModel):
    """A single order as seen by customers, staff and WebSocket subscribers."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: str
    delivery_address: str
    city: str
    zip_code: str
    delivery_instructions: Optional[str] = None
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    status: str
    items: List[dict[str, Any]]
    user_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderResponse]


class MessageResponse(BaseModel):
    """Plain acknowledgement."""
    message: str


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class RealtimeStats(BaseModel):
    """Live WebSocket tracking counters."""
    subscribed_connections: int
    tracked_orders: int
    subscriptions: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    order_store: str
    redis: str
    notification_service: str
    realtime: RealtimeStats
    timestamp: datetime
