"""
Workflow Facade

Single entry point the presentation layer talks to. It owns the session:
the backend link, the in-memory stores, the matcher and the domain
services, and it keeps a small observable state per domain:

    facade.state["deliveries"].loading   # any call still in flight
    facade.state["deliveries"].error     # ErrorInfo of the last failure
    facade.state["deliveries"].data      # last loaded payload

Every call clears its domain's error first. A failure records an
ErrorInfo and is re-raised, so callers still see the exception. Errors
are only marked recoverable when they are network-origin.

Usage:
    facade = WorkflowFacade()
    await facade.start()          # one-shot backend probe
    deliveries = await facade.load_deliveries()
    await facade.close()

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from restaurant_ops.core.config import Settings, get_settings
from restaurant_ops.core.exceptions import InvalidTransitionError, ValidationError, WorkflowError
from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryMetrics,
    DeliveryPerson,
    DeliveryProgress,
    Order,
    OrderStatus,
    Reservation,
    Table,
    utcnow,
)
from restaurant_ops.schemas import (
    DeliveryDraft,
    DeliveryFilter,
    OrderDraft,
    OrderFilter,
    ReservationDraft,
    ReservationFilter,
)
from restaurant_ops.services.datasource import BackendLink, create_backend_link
from restaurant_ops.services.delivery import DeliveryService
from restaurant_ops.services.orders import OrderService
from restaurant_ops.services.reservations import ReservationService
from restaurant_ops.workflow import (
    AssignmentMatcher,
    DeliveryPersonStore,
    DeliveryStore,
    EntityKind,
    OrderStore,
    ReservationStore,
    TableStore,
    compute_order_summary,
    next_step,
)
from restaurant_ops.workflow.stores import Clock

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DOMAINS = ("orders", "deliveries", "delivery_persons", "reservations", "metrics")


@dataclass
class ErrorInfo:
    """Renderable description of the last failure in a domain."""
    message: str
    code: str
    recoverable: bool = False
    suggestions: list[str] = field(default_factory=list)

    @classmethod
    def from_exception(cls, exc: Exception) -> "ErrorInfo":
        if isinstance(exc, WorkflowError):
            return cls(
                message=exc.message,
                code=exc.code,
                recoverable=exc.recoverable,
                suggestions=list(exc.suggestions),
            )
        return cls(
            message=str(exc) or exc.__class__.__name__,
            code="unexpected_error",
            suggestions=["Please try again", "Contact support if the problem persists"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "recoverable": self.recoverable,
            "suggestions": self.suggestions,
        }


@dataclass
class DomainState:
    error: Optional[ErrorInfo] = None
    data: Any = None
    in_flight: int = 0

    @property
    def loading(self) -> bool:
        return self.in_flight > 0


def _coerce(model: type[M], value: Any) -> M:
    if isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except SchemaError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e.errors()[0]['msg']}") from e


class WorkflowFacade:
    """
    Session-scoped workflow engine.

    Args:
        settings: Configuration (defaults to get_settings())
        link: Pre-built BackendLink, e.g. one wired to a test transport
        clock: Time source shared by stores and matcher
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        link: Optional[BackendLink] = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings or get_settings()
        self.link = link or create_backend_link(self.settings)

        self.order_store = OrderStore(clock=clock, tax_rate=self.settings.tax_rate)
        self.delivery_store = DeliveryStore(clock=clock)
        self.person_store = DeliveryPersonStore(clock=clock)
        self.reservation_store = ReservationStore(clock=clock)
        self.table_store = TableStore(clock=clock)

        self.matcher = AssignmentMatcher(
            self.delivery_store,
            self.reservation_store,
            lead_minutes=self.settings.delivery_lead_minutes,
            rounding_minutes=self.settings.delivery_rounding_minutes,
            clock=clock,
        )

        self.orders = OrderService(self.link, self.order_store)
        self.delivery = DeliveryService(
            self.link, self.delivery_store, self.person_store, self.matcher
        )
        self.reservations = ReservationService(
            self.link, self.reservation_store, self.table_store, self.matcher
        )

        self.state: dict[str, DomainState] = {name: DomainState() for name in DOMAINS}

    # =========================================================================
    # SESSION
    # =========================================================================

    async def start(self) -> bool:
        """Probe the backend once. Returns the connected flag."""
        connected = await self.link.probe()
        logger.info(f"Workflow session started ({self.data_source} mode)")
        return connected

    async def close(self) -> None:
        await self.link.close()

    @property
    def connected(self) -> bool:
        return self.link.connected

    @property
    def data_source(self) -> str:
        return "live" if self.link.connected else "mock"

    async def _run(self, domain: str, call: Callable[[], Awaitable[T]], keep: bool = False) -> T:
        state = self.state[domain]
        state.in_flight += 1
        state.error = None
        try:
            result = await call()
        except Exception as e:
            state.error = ErrorInfo.from_exception(e)
            logger.error(f"{domain}: {state.error.message}")
            raise
        finally:
            state.in_flight -= 1
        if keep:
            state.data = result
        return result

    def _merge(self, domain: str, entity: Any) -> None:
        # Last response wins in the domain's loaded list
        data = self.state[domain].data
        if not isinstance(data, list):
            return
        for index, row in enumerate(data):
            if row.id == entity.id:
                data[index] = entity
                return
        data.append(entity)

    def _drop(self, domain: str, entity_id: Any) -> None:
        data = self.state[domain].data
        if isinstance(data, list):
            self.state[domain].data = [row for row in data if str(row.id) != str(entity_id)]

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def load_orders(
        self,
        status: Optional[Any] = None,
        customer_id: Optional[int] = None,
    ) -> list[Order]:
        filters = {"status": status, "customer_id": customer_id}
        return await self._run(
            "orders",
            lambda: self.orders.list_orders(_coerce(OrderFilter, filters)),
            keep=True,
        )

    async def get_order(self, order_id: Any) -> Order:
        return await self._run("orders", lambda: self.orders.get_order(order_id))

    async def create_order(self, draft: Any) -> Order:
        order = await self._run(
            "orders", lambda: self.orders.create_order(_coerce(OrderDraft, draft))
        )
        self._merge("orders", order)
        return order

    async def update_order_status(self, order_id: Any, status: Any) -> Order:
        order = await self._run("orders", lambda: self.orders.update_status(order_id, status))
        self._merge("orders", order)
        return order

    async def advance_order(self, order_id: Any) -> Order:
        """Move an order one step along its happy path."""
        async def advance() -> Order:
            order = await self.orders.get_order(order_id)
            target = next_step(EntityKind.ORDER, order.status)
            if target is None:
                raise InvalidTransitionError(
                    "order", order.status.value, "next step",
                    f"{order.status.value} has no next step",
                )
            return await self.orders.update_status(order_id, target)

        order = await self._run("orders", advance)
        self._merge("orders", order)
        return order

    async def cancel_order(self, order_id: Any) -> Order:
        return await self.update_order_status(order_id, OrderStatus.CANCELLED)

    async def delete_order(self, order_id: Any) -> None:
        await self._run("orders", lambda: self.orders.delete_order(order_id))
        self._drop("orders", order_id)

    async def order_summary(self) -> dict[str, Any]:
        async def summarize() -> dict[str, Any]:
            return compute_order_summary(await self.orders.list_orders())

        return await self._run("metrics", summarize)

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def load_delivery_persons(self) -> list[DeliveryPerson]:
        return await self._run("delivery_persons", lambda: self.delivery.list_persons(), keep=True)

    async def available_delivery_persons(self) -> list[DeliveryPerson]:
        return await self._run("delivery_persons", lambda: self.delivery.available_persons())

    async def update_delivery_person_status(self, person_id: Any, status: Any) -> DeliveryPerson:
        person = await self._run(
            "delivery_persons", lambda: self.delivery.update_person_status(person_id, status)
        )
        self._merge("delivery_persons", person)
        return person

    async def load_deliveries(self, filters: Optional[Any] = None) -> list[DeliveryAssignment]:
        return await self._run(
            "deliveries",
            lambda: self.delivery.list_deliveries(_coerce(DeliveryFilter, filters or {})),
            keep=True,
        )

    async def get_delivery(self, delivery_id: Any) -> DeliveryAssignment:
        return await self._run("deliveries", lambda: self.delivery.get_delivery(delivery_id))

    async def create_delivery(self, draft: Any) -> DeliveryAssignment:
        delivery = await self._run(
            "deliveries", lambda: self.delivery.create_delivery(_coerce(DeliveryDraft, draft))
        )
        self._merge("deliveries", delivery)
        return delivery

    async def update_delivery_status(
        self,
        delivery_id: Any,
        status: Any,
        notes: Optional[str] = None,
    ) -> DeliveryAssignment:
        delivery = await self._run(
            "deliveries", lambda: self.delivery.update_status(delivery_id, status, notes)
        )
        self._merge("deliveries", delivery)
        return delivery

    async def assign_delivery(
        self,
        delivery_id: Any,
        person_id: Optional[Any] = None,
        estimated_delivery_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> DeliveryAssignment:
        delivery = await self._run(
            "deliveries",
            lambda: self.delivery.assign(delivery_id, person_id, estimated_delivery_time, notes),
        )
        self._merge("deliveries", delivery)
        return delivery

    async def mark_delivered(self, delivery_id: Any) -> DeliveryAssignment:
        delivery = await self._run("deliveries", lambda: self.delivery.mark_delivered(delivery_id))
        self._merge("deliveries", delivery)
        return delivery

    async def delivery_progress(self, delivery_id: Any) -> list[DeliveryProgress]:
        return await self._run("deliveries", lambda: self.delivery.progress(delivery_id))

    async def delivery_metrics(self) -> DeliveryMetrics:
        return await self._run("metrics", lambda: self.delivery.metrics(), keep=True)

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    async def load_reservations(self, filters: Optional[Any] = None) -> list[Reservation]:
        return await self._run(
            "reservations",
            lambda: self.reservations.list_reservations(
                _coerce(ReservationFilter, filters or {})
            ),
            keep=True,
        )

    async def load_pending_reservations(self) -> list[Reservation]:
        return await self._run("reservations", lambda: self.reservations.list_pending(), keep=True)

    async def get_reservation(self, reservation_id: Any) -> Reservation:
        return await self._run(
            "reservations", lambda: self.reservations.get_reservation(reservation_id)
        )

    async def create_reservation(self, draft: Any) -> Reservation:
        reservation = await self._run(
            "reservations",
            lambda: self.reservations.create_reservation(_coerce(ReservationDraft, draft)),
        )
        self._merge("reservations", reservation)
        return reservation

    async def approve_reservation(
        self,
        reservation_id: Any,
        approver_id: int,
        table_id: Optional[Any] = None,
        admin_notes: Optional[str] = None,
    ) -> Reservation:
        reservation = await self._run(
            "reservations",
            lambda: self.reservations.approve(reservation_id, approver_id, table_id, admin_notes),
        )
        self._merge("reservations", reservation)
        return reservation

    async def deny_reservation(
        self,
        reservation_id: Any,
        reason: Optional[str],
        approver_id: Optional[int] = None,
    ) -> Reservation:
        reservation = await self._run(
            "reservations", lambda: self.reservations.deny(reservation_id, reason, approver_id)
        )
        self._merge("reservations", reservation)
        return reservation

    async def update_reservation_status(self, reservation_id: Any, status: Any) -> Reservation:
        reservation = await self._run(
            "reservations", lambda: self.reservations.update_status(reservation_id, status)
        )
        self._merge("reservations", reservation)
        return reservation

    async def delete_reservation(self, reservation_id: Any) -> None:
        await self._run(
            "reservations", lambda: self.reservations.delete_reservation(reservation_id)
        )
        self._drop("reservations", reservation_id)

    async def load_tables(self) -> list[Table]:
        return await self._run("reservations", lambda: self.reservations.list_tables())
