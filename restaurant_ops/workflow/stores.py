"""
In-Memory Entity Stores

Each store owns the authoritative session collection for one entity kind.
Stores are plain objects constructed at session start; nothing survives a
restart.

Every status change goes through transition(), which validates the edge
against the transition table and applies the status-entry side effects
in one synchronous step. The rebuilt entity is validated before it
replaces the stored row, so a failed transition leaves the store as it
was.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from restaurant_ops.core.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from restaurant_ops.models import (
    DEFAULT_TAX_RATE,
    DeliveryAssignment,
    DeliveryPerson,
    DeliveryProgress,
    DeliveryStatus,
    Order,
    OrderStatus,
    Reservation,
    ReservationStatus,
    Table,
    utcnow,
)
from restaurant_ops.workflow.transitions import EntityKind, check_transition, get_table

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)
T = TypeVar("T", bound=BaseModel)

Clock = Callable[[], datetime]


class ResourceStore(Generic[R]):
    """
    Keyed in-memory collection of one model type.

    Used directly for resources without a workflow (delivery persons,
    tables) and as the base of the workflow entity stores.
    """

    label: str = "resource"
    model: type[R]
    key_type: type = int

    def __init__(self, rows: Iterable[R] = (), clock: Clock = utcnow):
        self._rows: dict[Any, R] = {}
        self._sequence = 0
        self._clock = clock
        self.load(rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, entity_id: Any) -> bool:
        return self._key(entity_id) in self._rows

    def _key(self, entity_id: Any) -> Any:
        # "42" and 42 address the same row
        try:
            return self.key_type(entity_id)
        except (TypeError, ValueError):
            return entity_id

    # -------------------------------------------------------------------------
    # Seeding & caching
    # -------------------------------------------------------------------------

    def load(self, rows: Iterable[R]) -> None:
        """Replace the whole collection."""
        self._rows = {}
        self._sequence = 0
        for row in rows:
            self.put(row)

    def put(self, row: R) -> R:
        """Insert or replace a row as-is (used to cache backend responses)."""
        self._rows[row.id] = row
        self._track_id(row.id)
        return row

    def _track_id(self, entity_id: Any) -> None:
        try:
            self._sequence = max(self._sequence, int(entity_id))
        except (TypeError, ValueError):
            pass

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, entity_id: Any) -> R:
        try:
            return self._rows[self._key(entity_id)]
        except KeyError:
            raise NotFoundError(self.label, entity_id) from None

    def list(self, predicate: Optional[Callable[[R], bool]] = None) -> list[R]:
        rows = list(self._rows.values())
        if predicate is None:
            return rows
        return [row for row in rows if predicate(row)]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def update(self, entity_id: Any, **fields: Any) -> R:
        """Apply plain field edits to a row."""
        if "id" in fields:
            raise ValidationError(f"The {self.label} identifier cannot be changed")
        current = self.get(entity_id)
        if "updated_at" in self.model.model_fields:
            fields.setdefault("updated_at", self._clock())
        updated = self._build({**current.model_dump(), **fields})
        self._rows[current.id] = updated
        return updated

    def delete(self, entity_id: Any) -> R:
        """Hard-remove a row. Distinct from any CANCELLED status."""
        row = self.get(entity_id)
        del self._rows[row.id]
        logger.info(f"{self.label.capitalize()} {entity_id} deleted")
        return row

    def _build(self, data: dict[str, Any]) -> R:
        try:
            return self.model.model_validate(data)
        except SchemaError as e:
            raise ValidationError(f"Invalid {self.label}: {e.errors()[0]['msg']}") from e


class EntityStore(ResourceStore[T]):
    """
    Store for an entity kind driven by a transition table.

    Subclasses set the kind and model and may stamp fields when an entity
    enters a state by overriding _on_enter().
    """

    kind: EntityKind

    @property
    def label(self) -> str:
        return self.kind.value

    def _next_id(self) -> Any:
        return self._sequence + 1

    def _draft_fields(self, draft: Any) -> dict[str, Any]:
        if isinstance(draft, BaseModel):
            data = draft.model_dump(exclude_none=True)
        else:
            data = dict(draft)
        data.pop("id", None)
        data.pop("status", None)
        return data

    def create(self, draft: Any) -> T:
        """
        Create an entity from a submission in the kind's initial state.

        Raises:
            ValidationError: If the draft does not produce a valid entity
        """
        data = self._draft_fields(draft)
        data["id"] = self._next_id()
        data["status"] = get_table(self.kind).initial
        data.setdefault("created_at", self._clock())
        entity = self._build(data)
        self.put(entity)
        logger.info(f"{self.label.capitalize()} {entity.id} created ({entity.status.value})")
        return entity

    def update(self, entity_id: Any, **fields: Any) -> T:
        if "status" in fields:
            raise ValidationError(
                f"Use a status transition to change the {self.label} status"
            )
        return super().update(entity_id, **fields)

    def transition(self, entity_id: Any, target: Any, **side_effects: Any) -> T:
        """
        Move an entity to a new status.

        Args:
            entity_id: Identifier of the entity
            target: Target status (enum member or raw value)
            **side_effects: Extra field values written with the status change

        Returns:
            The updated entity

        Raises:
            NotFoundError: If the id is absent
            UnknownStateError: If the target is not a status of this kind
            InvalidTransitionError: If the edge is not permitted
            ValidationError: If the result violates an entity invariant
        """
        entity = self.get(entity_id)
        table = get_table(self.kind)
        target = table.coerce(target)
        current = entity.status

        check_transition(self.kind, current, target)

        if current == target:
            if current in table.terminal:
                if side_effects:
                    raise InvalidTransitionError(
                        self.label, current.value, target.value,
                        f"{current.value} is terminal",
                    )
                return entity
            if not side_effects:
                return entity

        now = self._clock()
        changes = {**self._on_enter(entity, target, side_effects, now), **side_effects}
        changes["status"] = target
        if "updated_at" in self.model.model_fields:
            changes["updated_at"] = now

        updated = self._build({**entity.model_dump(), **changes})
        self._rows[entity.id] = updated
        self._after_transition(entity, updated, now)

        logger.info(
            f"{self.label.capitalize()} {entity_id}: {current.value} → {target.value}"
        )
        return updated

    def _on_enter(
        self,
        entity: T,
        target: Any,
        side_effects: dict[str, Any],
        now: datetime,
    ) -> dict[str, Any]:
        """Fields stamped when entering target. Caller side effects win."""
        return {}

    def _after_transition(self, before: T, after: T, now: datetime) -> None:
        pass


class OrderStore(EntityStore[Order]):
    kind = EntityKind.ORDER
    model = Order

    def __init__(
        self,
        rows: Iterable[Order] = (),
        clock: Clock = utcnow,
        tax_rate: float = DEFAULT_TAX_RATE,
    ):
        self.tax_rate = tax_rate
        super().__init__(rows, clock)

    def _draft_fields(self, draft: Any) -> dict[str, Any]:
        data = super()._draft_fields(draft)
        data.setdefault("tax_rate", self.tax_rate)
        return data

    def _on_enter(self, entity, target, side_effects, now):
        if target == OrderStatus.COMPLETED:
            return {"completed_at": now}
        return {}


class DeliveryStore(EntityStore[DeliveryAssignment]):
    """
    Delivery assignments plus the progress history of each one.

    A progress row is appended for every status change made through
    this store.
    """

    kind = EntityKind.DELIVERY
    model = DeliveryAssignment
    key_type = str

    def __init__(
        self,
        rows: Iterable[DeliveryAssignment] = (),
        clock: Clock = utcnow,
        progress: Iterable[DeliveryProgress] = (),
    ):
        super().__init__(rows, clock)
        self._progress: list[DeliveryProgress] = list(progress)

    def _next_id(self) -> str:
        return str(self._sequence + 1)

    def load_progress(self, rows: Iterable[DeliveryProgress]) -> None:
        self._progress = list(rows)

    def history(self, delivery_id: Any) -> list[DeliveryProgress]:
        return [p for p in self._progress if p.delivery_id == str(delivery_id)]

    def create(self, draft: Any) -> DeliveryAssignment:
        delivery = super().create(draft)
        self._record(delivery, delivery.created_at or self._clock(), updated_by="kitchen")
        return delivery

    def _on_enter(self, entity, target, side_effects, now):
        if target == DeliveryStatus.ASSIGNED:
            return {"assigned_at": now}
        if target == DeliveryStatus.DELIVERED:
            return {"actual_delivery_time": now}
        return {}

    def _after_transition(self, before, after, now):
        self._record(after, now)

    def _record(self, delivery: DeliveryAssignment, now: datetime, updated_by: str = "admin") -> None:
        self._progress.append(DeliveryProgress(
            id=str(len(self._progress) + 1),
            delivery_id=delivery.id,
            status=delivery.status,
            timestamp=now,
            notes=delivery.notes,
            updated_by=updated_by,
        ))


class ReservationStore(EntityStore[Reservation]):
    kind = EntityKind.RESERVATION
    model = Reservation

    def _on_enter(self, entity, target, side_effects, now):
        if target == ReservationStatus.DENIED:
            reason = side_effects.get("denial_reason") or entity.denial_reason
            if not (reason or "").strip():
                raise ValidationError("A denial reason is required to deny a reservation")
        if target == ReservationStatus.CONFIRMED:
            return {"confirmed_at": now}
        if target == ReservationStatus.SEATED:
            return {"checked_in_at": now}
        return {}


class DeliveryPersonStore(ResourceStore[DeliveryPerson]):
    label = "delivery person"
    model = DeliveryPerson
    key_type = str


class TableStore(ResourceStore[Table]):
    label = "table"
    model = Table
