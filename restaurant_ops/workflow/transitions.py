"""
Status Transition Tables

One explicit table per entity kind: the ordered happy path, the initial
state, the terminal states and every permitted (from, to) edge. All
status checks in the engine go through this module.

A self-transition is always a valid no-op. Anything else into or out of
a terminal state is rejected.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from restaurant_ops.core.exceptions import InvalidTransitionError, UnknownStateError
from restaurant_ops.models import DeliveryStatus, OrderStatus, ReservationStatus


class EntityKind(str, enum.Enum):
    ORDER = "order"
    DELIVERY = "delivery"
    RESERVATION = "reservation"


@dataclass(frozen=True)
class TransitionTable:
    """Static state machine definition for one entity kind."""
    kind: EntityKind
    states: type[enum.Enum]
    happy_path: tuple[enum.Enum, ...]
    terminal: frozenset
    edges: frozenset

    @property
    def initial(self) -> enum.Enum:
        return self.happy_path[0]

    def coerce(self, state) -> enum.Enum:
        """Resolve a raw value to a member of this table's enum."""
        if isinstance(state, self.states):
            return state
        try:
            return self.states(state)
        except ValueError:
            raise UnknownStateError(self.kind.value, state) from None

    def allows(self, current, target) -> bool:
        current, target = self.coerce(current), self.coerce(target)
        if current == target:
            return True
        return (current, target) in self.edges


def _edges(*pairs) -> frozenset:
    return frozenset(pairs)


ORDER_TABLE = TransitionTable(
    kind=EntityKind.ORDER,
    states=OrderStatus,
    happy_path=(
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.COMPLETED,
    ),
    terminal=frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    edges=_edges(
        (OrderStatus.PENDING, OrderStatus.CONFIRMED),
        (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
        (OrderStatus.PREPARING, OrderStatus.READY),
        (OrderStatus.READY, OrderStatus.COMPLETED),
        # Kitchen work cannot be cancelled once started
        (OrderStatus.PENDING, OrderStatus.CANCELLED),
        (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    ),
)

DELIVERY_TABLE = TransitionTable(
    kind=EntityKind.DELIVERY,
    states=DeliveryStatus,
    happy_path=(
        DeliveryStatus.PREPARING,
        DeliveryStatus.READY_FOR_PICKUP,
        DeliveryStatus.ASSIGNED,
        DeliveryStatus.PICKED_UP,
        DeliveryStatus.IN_TRANSIT,
        DeliveryStatus.DELIVERED,
    ),
    terminal=frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.FAILED}),
    edges=_edges(
        (DeliveryStatus.PREPARING, DeliveryStatus.READY_FOR_PICKUP),
        (DeliveryStatus.PREPARING, DeliveryStatus.ASSIGNED),
        (DeliveryStatus.READY_FOR_PICKUP, DeliveryStatus.ASSIGNED),
        (DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP),
        (DeliveryStatus.PICKED_UP, DeliveryStatus.IN_TRANSIT),
        (DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED),
        (DeliveryStatus.ASSIGNED, DeliveryStatus.FAILED),
        (DeliveryStatus.PICKED_UP, DeliveryStatus.FAILED),
        (DeliveryStatus.IN_TRANSIT, DeliveryStatus.FAILED),
    ),
)

RESERVATION_TABLE = TransitionTable(
    kind=EntityKind.RESERVATION,
    states=ReservationStatus,
    happy_path=(
        ReservationStatus.PENDING,
        ReservationStatus.CONFIRMED,
        ReservationStatus.SEATED,
        ReservationStatus.COMPLETED,
    ),
    terminal=frozenset({
        ReservationStatus.DENIED,
        ReservationStatus.CANCELLED,
        ReservationStatus.COMPLETED,
        ReservationStatus.NO_SHOW,
    }),
    edges=_edges(
        (ReservationStatus.PENDING, ReservationStatus.CONFIRMED),
        (ReservationStatus.PENDING, ReservationStatus.DENIED),
        (ReservationStatus.PENDING, ReservationStatus.CANCELLED),
        (ReservationStatus.CONFIRMED, ReservationStatus.SEATED),
        (ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED),
        (ReservationStatus.CONFIRMED, ReservationStatus.NO_SHOW),
        (ReservationStatus.SEATED, ReservationStatus.COMPLETED),
    ),
)

TABLES: dict[EntityKind, TransitionTable] = {
    EntityKind.ORDER: ORDER_TABLE,
    EntityKind.DELIVERY: DELIVERY_TABLE,
    EntityKind.RESERVATION: RESERVATION_TABLE,
}


def get_table(kind) -> TransitionTable:
    return TABLES[EntityKind(kind)]


def initial_state(kind) -> enum.Enum:
    return get_table(kind).initial


def is_terminal(kind, state) -> bool:
    table = get_table(kind)
    return table.coerce(state) in table.terminal


def is_valid_transition(kind, current, target) -> bool:
    """
    Check whether an entity of the given kind may move between two states.

    Raises:
        UnknownStateError: If either state is not part of the kind's table
    """
    return get_table(kind).allows(current, target)


def check_transition(kind, current, target) -> None:
    """
    Raise unless the (current, target) edge is permitted.

    Raises:
        UnknownStateError: If either state is not part of the kind's table
        InvalidTransitionError: If the edge is not permitted
    """
    table = get_table(kind)
    current, target = table.coerce(current), table.coerce(target)
    if table.allows(current, target):
        return
    if current in table.terminal:
        reason = f"{current.value} is terminal"
    else:
        reason = "transition not allowed"
    raise InvalidTransitionError(table.kind.value, current.value, target.value, reason)


def next_step(kind, current) -> Optional[enum.Enum]:
    """
    Return the next state on the happy path, or None when there is none.

    Terminal states have no next step. A state whose forward move skips
    part of the path (preparing -> assigned) still returns the nearest
    permitted happy-path state.
    """
    table = get_table(kind)
    current = table.coerce(current)
    if current in table.terminal:
        return None
    for candidate in table.happy_path:
        if candidate != current and (current, candidate) in table.edges:
            if table.happy_path.index(candidate) > _position(table, current):
                return candidate
    return None


def _position(table: TransitionTable, state) -> int:
    if state in table.happy_path:
        return table.happy_path.index(state)
    return -1
