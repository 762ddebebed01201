"""
Pydantic Schemas for Submissions, Filters and API Payloads

Drafts are what a submission action hands to a store's create(); the
store assigns the identifier and the initial status. Filters know how to
render themselves as backend query parameters and how to match rows in
mock mode, so both paths filter the same way.

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryPriority,
    DeliveryStatus,
    Identifier,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PersonStatus,
    Reservation,
    ReservationStatus,
    UtcDatetime,
    WireModel,
)


# =============================================================================
# DRAFTS
# =============================================================================

class OrderDraft(WireModel):
    """Submission for a new order."""
    customer_id: int
    customer_name: Optional[str] = None
    table_id: Optional[int] = None
    order_type: OrderType = OrderType.DINE_IN
    items: List[OrderItem] = Field(..., min_length=1)
    tip_amount: float = Field(default=0.0, ge=0)
    special_instructions: Optional[str] = Field(None, max_length=500)
    estimated_completion: Optional[UtcDatetime] = None

    def to_wire(self) -> dict[str, Any]:
        # The backend prices items itself, it only needs ids and quantities
        body = {
            "customerId": self.customer_id,
            "orderType": self.order_type.value,
            "items": [
                {"menuItemId": item.menu_item_id, "quantity": item.quantity}
                for item in self.items
            ],
            "tipAmount": self.tip_amount,
        }
        if self.table_id is not None:
            body["tableId"] = self.table_id
        if self.special_instructions:
            body["specialInstructions"] = self.special_instructions
        return body


class DeliveryDraft(WireModel):
    """Submission for a new delivery assignment (no person yet)."""
    order_id: Identifier
    priority: DeliveryPriority = DeliveryPriority.NORMAL
    notes: Optional[str] = Field(None, max_length=500)
    estimated_delivery_time: Optional[UtcDatetime] = None


class ReservationDraft(WireModel):
    """Submission for a new reservation."""
    customer_id: Optional[int] = None
    customer_name: str = Field(..., min_length=2, max_length=100)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    reservation_datetime: UtcDatetime = Field(alias="reservationDateTime")
    party_size: int = Field(..., ge=1, le=50)
    table_id: Optional[int] = None
    special_requests: Optional[str] = Field(None, max_length=500)

    def to_wire(self) -> dict[str, Any]:
        body = super().to_wire()
        body["numberOfGuests"] = body.pop("partySize")
        return body


# =============================================================================
# FILTERS
# =============================================================================

class OrderFilter(BaseModel):
    status: Optional[OrderStatus] = None
    customer_id: Optional[int] = None
    order_type: Optional[OrderType] = None

    def matches(self, order: Order) -> bool:
        if self.status is not None and order.status != self.status:
            return False
        if self.customer_id is not None and order.customer_id != self.customer_id:
            return False
        if self.order_type is not None and order.order_type != self.order_type:
            return False
        return True


class DeliveryFilter(BaseModel):
    """Query filters for delivery assignments."""
    status: Optional[List[DeliveryStatus]] = None
    delivery_person_id: Optional[str] = None
    priority: Optional[List[DeliveryPriority]] = None
    search: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.status:
            params["status"] = ",".join(s.value for s in self.status)
        if self.delivery_person_id:
            params["deliveryPersonId"] = self.delivery_person_id
        if self.priority:
            params["priority"] = ",".join(p.value for p in self.priority)
        if self.search:
            params["search"] = self.search
        return params

    def matches(self, delivery: DeliveryAssignment) -> bool:
        if self.status and delivery.status not in self.status:
            return False
        if self.delivery_person_id and delivery.delivery_person_id != self.delivery_person_id:
            return False
        if self.priority and delivery.priority not in self.priority:
            return False
        if self.search:
            needle = self.search.lower()
            haystack = f"{delivery.id} {delivery.order_id} {delivery.notes or ''}".lower()
            if needle not in haystack:
                return False
        return True


class ReservationFilter(BaseModel):
    """Query filters for reservations."""
    status: Optional[ReservationStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    customer_name: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.status:
            params["status"] = self.status.value
        if self.start_date:
            params["startDate"] = self.start_date.isoformat()
        if self.end_date:
            params["endDate"] = self.end_date.isoformat()
        if self.customer_name:
            params["customerName"] = self.customer_name
        return params

    def matches(self, reservation: Reservation) -> bool:
        day = reservation.reservation_datetime.date()
        if self.status and reservation.status != self.status:
            return False
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        if self.customer_name and self.customer_name.lower() not in reservation.customer_name.lower():
            return False
        return True


# =============================================================================
# ADMIN API REQUEST SCHEMAS
# =============================================================================

class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus
    notes: Optional[str] = Field(None, max_length=500)


class PersonStatusUpdate(BaseModel):
    status: PersonStatus


class AssignDeliveryRequest(BaseModel):
    delivery_person_id: Optional[str] = None
    estimated_delivery_time: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)


class ApproveReservationRequest(BaseModel):
    approver_id: int
    table_id: Optional[int] = None
    admin_notes: Optional[str] = Field(None, max_length=500)


class DenyReservationRequest(BaseModel):
    reason: str = ""
    approver_id: Optional[int] = None


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus

    @field_validator("status")
    @classmethod
    def no_review_statuses(cls, v: ReservationStatus) -> ReservationStatus:
        if v in (ReservationStatus.CONFIRMED, ReservationStatus.DENIED):
            raise ValueError("Use the approve or deny endpoints for this status")
        return v


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    code: Optional[str] = None
    recoverable: bool = False
    suggestions: List[str] = Field(default_factory=list)
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    backend_connected: bool
    data_source: str
    timestamp: datetime
