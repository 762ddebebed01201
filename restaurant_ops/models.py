"""
Domain Models

Pydantic models for the three workflow entities (Order, DeliveryAssignment,
Reservation) and the resources they are matched against (DeliveryPerson,
Table).

Wire format is the backend's camelCase JSON; Python attributes are
snake_case. Both spellings are accepted on input.

Entity invariants are checked on every construction, so a rebuilt entity
that violates them never reaches a store.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel


DEFAULT_TAX_RATE = 0.10


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_money(value: Any) -> float:
    """Round to cents, half up, the way the backend rounds BigDecimal."""
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _ensure_utc(value: datetime) -> datetime:
    # Backend timestamps without an offset are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]
Identifier = Annotated[str, BeforeValidator(lambda v: str(v) if isinstance(v, int) else v)]


class WireModel(BaseModel):
    """Base model speaking the backend's camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize for a JSON request body."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderType(str, enum.Enum):
    """How the order is served."""
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


class DeliveryStatus(str, enum.Enum):
    """Delivery assignment workflow."""
    PREPARING = "preparing"
    READY_FOR_PICKUP = "ready_for_pickup"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"


class DeliveryPriority(str, enum.Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class PersonStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(str, enum.Enum):
    BICYCLE = "bicycle"
    MOTORCYCLE = "motorcycle"
    CAR = "car"


class ReservationStatus(str, enum.Enum):
    """Reservation approval workflow."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    DENIED = "DENIED"
    CANCELLED = "CANCELLED"
    SEATED = "SEATED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Statuses that require a delivery person on the assignment
STAFFED_DELIVERY_STATUSES = frozenset({
    DeliveryStatus.ASSIGNED,
    DeliveryStatus.PICKED_UP,
    DeliveryStatus.IN_TRANSIT,
    DeliveryStatus.DELIVERED,
    DeliveryStatus.FAILED,
})


# =============================================================================
# ORDERS
# =============================================================================

class OrderItem(WireModel):
    """Single line of an order."""
    menu_item_id: int
    menu_item_name: str = ""
    quantity: int = Field(..., ge=1, le=99)
    unit_price: float = Field(..., ge=0)

    @computed_field
    @property
    def subtotal(self) -> float:
        return round_money(Decimal(str(self.unit_price)) * self.quantity)


class Order(WireModel):
    """
    A customer order.

    The monetary breakdown is derived from the items, the tax rate and the
    tip on every read. There is no stored total to drift out of sync.
    """
    id: int
    customer_id: int
    customer_name: Optional[str] = None
    table_id: Optional[int] = None
    order_type: OrderType = OrderType.DINE_IN
    status: OrderStatus = OrderStatus.PENDING
    items: list[OrderItem] = Field(default_factory=list)
    tax_rate: float = Field(default=DEFAULT_TAX_RATE, ge=0)
    tip_amount: float = Field(default=0.0, ge=0)
    special_instructions: Optional[str] = None
    created_at: UtcDatetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("createdAt", "orderTime", "created_at"),
        serialization_alias="createdAt",
    )
    estimated_completion: Optional[UtcDatetime] = None
    completed_at: Optional[UtcDatetime] = None

    @computed_field
    @property
    def subtotal(self) -> float:
        return round_money(sum(Decimal(str(item.subtotal)) for item in self.items))

    @computed_field
    @property
    def tax_amount(self) -> float:
        return round_money(Decimal(str(self.subtotal)) * Decimal(str(self.tax_rate)))

    @computed_field
    @property
    def total_amount(self) -> float:
        return round_money(
            Decimal(str(self.subtotal))
            + Decimal(str(self.tax_amount))
            + Decimal(str(self.tip_amount))
        )


# =============================================================================
# DELIVERY
# =============================================================================

class Location(WireModel):
    """Static coordinate snapshot."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class DeliveryPerson(WireModel):
    """A courier that delivery assignments can be matched against."""
    id: Identifier
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: PersonStatus = PersonStatus.OFFLINE
    vehicle_type: VehicleType = VehicleType.BICYCLE
    max_capacity: int = Field(default=1, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    total_deliveries: int = Field(default=0, ge=0)
    is_active: bool = True
    current_location: Optional[Location] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    @property
    def is_eligible(self) -> bool:
        """Available and active persons may take a new assignment."""
        return self.status == PersonStatus.AVAILABLE and self.is_active


class DeliveryAssignment(WireModel):
    """
    Delivery of one order.

    Invariants:
        - actual_delivery_time is set if and only if status is delivered
        - a delivery person is required for any status past ready_for_pickup
    """
    id: Identifier
    order_id: Identifier
    delivery_person_id: Optional[Identifier] = None
    status: DeliveryStatus = DeliveryStatus.PREPARING
    priority: DeliveryPriority = DeliveryPriority.NORMAL
    assigned_at: Optional[UtcDatetime] = None
    estimated_delivery_time: Optional[UtcDatetime] = None
    actual_delivery_time: Optional[UtcDatetime] = None
    notes: Optional[str] = None
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None

    @model_validator(mode="after")
    def check_invariants(self) -> "DeliveryAssignment":
        delivered = self.status == DeliveryStatus.DELIVERED
        if delivered != (self.actual_delivery_time is not None):
            raise ValueError(
                "actual_delivery_time must be set exactly when status is delivered"
            )
        if self.status in STAFFED_DELIVERY_STATUSES and not self.delivery_person_id:
            raise ValueError(
                f"a delivery person is required for status {self.status.value}"
            )
        return self


class DeliveryProgress(WireModel):
    """One row of a delivery's status history."""
    id: Identifier
    delivery_id: Identifier
    status: DeliveryStatus
    timestamp: UtcDatetime
    location: Optional[Location] = None
    notes: Optional[str] = None
    updated_by: str = "admin"


class DeliveryMetrics(WireModel):
    """Summary statistics over the delivery store."""
    total_deliveries: int = 0
    completed_deliveries: int = 0
    average_delivery_time: int = 0
    on_time_delivery_rate: float = 0.0
    customer_satisfaction_score: float = 0.0
    active_delivery_persons: int = 0
    pending_assignments: int = 0


# =============================================================================
# RESERVATIONS
# =============================================================================

class Table(WireModel):
    """A restaurant table reservations can be seated at."""
    id: int
    number: str
    capacity: int = Field(..., ge=1)
    location: Optional[str] = None
    is_available: bool = True

    def fits(self, party_size: int) -> bool:
        return self.is_available and self.capacity >= party_size


class Reservation(WireModel):
    """
    A table reservation request.

    Invariant: a DENIED reservation always carries a denial reason.
    """
    id: int
    customer_id: Optional[int] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    reservation_datetime: UtcDatetime = Field(alias="reservationDateTime")
    party_size: int = Field(
        ...,
        ge=1,
        validation_alias=AliasChoices("partySize", "numberOfGuests", "party_size"),
        serialization_alias="partySize",
    )
    table_id: Optional[int] = None
    status: ReservationStatus = ReservationStatus.PENDING
    special_requests: Optional[str] = None
    admin_notes: Optional[str] = None
    denial_reason: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("denialReason", "rejectionReason", "denial_reason"),
        serialization_alias="denialReason",
    )
    created_at: UtcDatetime = Field(default_factory=utcnow)
    confirmed_at: Optional[UtcDatetime] = None
    confirmed_by_user_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices(
            "confirmedByUserId", "approvedBy", "confirmed_by_user_id"
        ),
        serialization_alias="confirmedByUserId",
    )
    checked_in_at: Optional[UtcDatetime] = None

    @model_validator(mode="before")
    @classmethod
    def join_date_and_time(cls, data: Any) -> Any:
        # Some backend payloads split the slot into reservationDate + reservationTime
        if isinstance(data, dict) and "reservationDate" in data and "reservationDateTime" not in data:
            data = dict(data)
            time_part = data.pop("reservationTime", None) or "00:00"
            data["reservationDateTime"] = f"{data.pop('reservationDate')}T{time_part}"
        return data

    @model_validator(mode="after")
    def check_denial_reason(self) -> "Reservation":
        if self.status == ReservationStatus.DENIED and not (self.denial_reason or "").strip():
            raise ValueError("a DENIED reservation requires a denial reason")
        return self
