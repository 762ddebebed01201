"""
Assignment Matcher

Matches delivery assignments to delivery persons and reservations to
tables. The matcher only reads resource availability; every write goes
back through the owning store's transition() so the transition table
stays the single gatekeeper.

Delivery rules:
    - eligible person: status == available and is_active
    - capacity is advisory display data and is not enforced
    - estimated delivery time must be at least the lead time ahead of
      now and is stored rounded to the nearest boundary

Reservation rules:
    - approval moves PENDING -> CONFIRMED with an optional table
    - denial moves PENDING -> DENIED and needs a non-empty reason

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from restaurant_ops.core.exceptions import (
    NoEligiblePersonError,
    NotFoundError,
    PersonNotFoundError,
    ValidationError,
)
from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryPerson,
    DeliveryStatus,
    Reservation,
    ReservationStatus,
    Table,
    utcnow,
)
from restaurant_ops.workflow.stores import Clock, DeliveryStore, ReservationStore

logger = logging.getLogger(__name__)


def round_to_boundary(value: datetime, minutes: int = 5, up: bool = False) -> datetime:
    """
    Round a timestamp to a multiple of `minutes`.

    Rounds to the nearest boundary (halves go up), or always up when
    `up` is set.
    """
    step = timedelta(minutes=minutes)
    base = value.replace(second=0, microsecond=0)
    base -= timedelta(minutes=base.minute % minutes)
    remainder = value - base
    if remainder == timedelta(0):
        return base
    if up or remainder >= step / 2:
        return base + step
    return base


@dataclass
class DeliveryMatch:
    """A validated delivery person and estimated delivery time."""
    person: DeliveryPerson
    estimated_delivery_time: datetime


class AssignmentMatcher:
    """
    Selects and validates resources for assignments.

    Example:
        >>> matcher = AssignmentMatcher(delivery_store, reservation_store)
        >>> delivery = matcher.assign_delivery("2", persons, person_id="1")
        >>> delivery.status
        <DeliveryStatus.ASSIGNED: 'assigned'>
    """

    def __init__(
        self,
        deliveries: DeliveryStore,
        reservations: ReservationStore,
        lead_minutes: int = 30,
        rounding_minutes: int = 5,
        clock: Clock = utcnow,
    ):
        self.deliveries = deliveries
        self.reservations = reservations
        self.lead_time = timedelta(minutes=lead_minutes)
        self.rounding_minutes = rounding_minutes
        self._clock = clock

    # =========================================================================
    # DELIVERY
    # =========================================================================

    @staticmethod
    def eligible_persons(pool: Iterable[DeliveryPerson]) -> list[DeliveryPerson]:
        return [person for person in pool if person.is_eligible]

    def select_person(
        self,
        pool: Iterable[DeliveryPerson],
        person_id: Optional[Any] = None,
    ) -> DeliveryPerson:
        """
        Pick a delivery person from the pool.

        With a person_id the requested person is validated; without one
        the best eligible person is chosen (highest rating, then most
        completed deliveries).

        Raises:
            NoEligiblePersonError: If nobody eligible remains after filtering,
                or the requested person is not eligible
            PersonNotFoundError: If the requested person is not in the pool
        """
        pool = list(pool)
        eligible = self.eligible_persons(pool)
        if not eligible:
            raise NoEligiblePersonError("No delivery person is available")

        if person_id is None:
            return max(eligible, key=lambda p: (p.rating, p.total_deliveries))

        wanted = str(person_id)
        requested = next((p for p in pool if p.id == wanted), None)
        if requested is None:
            raise PersonNotFoundError(person_id)
        if not requested.is_eligible:
            raise NoEligiblePersonError(
                f"Delivery person {requested.name} is not available "
                f"(status={requested.status.value}, active={requested.is_active})"
            )
        return requested

    def validate_estimated_time(self, requested: Optional[datetime]) -> datetime:
        """
        Check and round an estimated delivery time.

        Raises:
            ValidationError: If the requested time is closer than the lead time
        """
        now = self._clock()
        earliest = now + self.lead_time
        if requested is None:
            return round_to_boundary(earliest, self.rounding_minutes, up=True)
        if requested.tzinfo is None:
            raise ValidationError("Estimated delivery time must include a timezone")
        if requested < earliest:
            minutes = int(self.lead_time.total_seconds() // 60)
            raise ValidationError(
                f"Estimated delivery time must be at least {minutes} minutes from now"
            )
        rounded = round_to_boundary(requested, self.rounding_minutes)
        if rounded < earliest:
            rounded = round_to_boundary(requested, self.rounding_minutes, up=True)
        return rounded

    def match_delivery(
        self,
        pool: Iterable[DeliveryPerson],
        person_id: Optional[Any] = None,
        estimated_delivery_time: Optional[datetime] = None,
    ) -> DeliveryMatch:
        """Validate a person and delivery time without touching any store."""
        person = self.select_person(pool, person_id)
        eta = self.validate_estimated_time(estimated_delivery_time)
        return DeliveryMatch(person=person, estimated_delivery_time=eta)

    def assign_delivery(
        self,
        delivery_id: Any,
        pool: Iterable[DeliveryPerson],
        person_id: Optional[Any] = None,
        estimated_delivery_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> DeliveryAssignment:
        """
        Match a person and move the delivery to assigned.

        Raises:
            NoEligiblePersonError, PersonNotFoundError: Matching failed
            ValidationError: Lead-time violation
            NotFoundError, InvalidTransitionError: From the delivery store
        """
        match = self.match_delivery(pool, person_id, estimated_delivery_time)
        side_effects: dict[str, Any] = {
            "delivery_person_id": match.person.id,
            "estimated_delivery_time": match.estimated_delivery_time,
        }
        if notes:
            side_effects["notes"] = notes

        delivery = self.deliveries.transition(
            delivery_id, DeliveryStatus.ASSIGNED, **side_effects
        )
        logger.info(
            f"Delivery {delivery.id} assigned to {match.person.name} "
            f"(eta {match.estimated_delivery_time:%H:%M})"
        )
        return delivery

    # =========================================================================
    # RESERVATIONS
    # =========================================================================

    def validate_table(
        self,
        reservation: Reservation,
        table_id: Any,
        tables: Iterable[Table],
    ) -> Table:
        """
        Raises:
            NotFoundError: If the table is not in the pool
            ValidationError: If the table is unavailable or too small
        """
        table = next((t for t in tables if t.id == int(table_id)), None)
        if table is None:
            raise NotFoundError("table", table_id)
        if not table.is_available:
            raise ValidationError(f"Table {table.number} is not available")
        if not table.fits(reservation.party_size):
            raise ValidationError(
                f"Table {table.number} seats {table.capacity}, "
                f"party size is {reservation.party_size}"
            )
        return table

    def approve_reservation(
        self,
        reservation_id: Any,
        approver_id: int,
        table_id: Optional[Any] = None,
        admin_notes: Optional[str] = None,
        tables: Optional[Iterable[Table]] = None,
    ) -> Reservation:
        """
        Confirm a pending reservation.

        The table is checked against `tables` when a pool is supplied;
        without one the id is recorded as given.
        """
        side_effects: dict[str, Any] = {"confirmed_by_user_id": approver_id}
        if table_id is not None:
            if tables is not None:
                reservation = self.reservations.get(reservation_id)
                table_id = self.validate_table(reservation, table_id, tables).id
            side_effects["table_id"] = table_id
        if admin_notes:
            side_effects["admin_notes"] = admin_notes

        reservation = self.reservations.transition(
            reservation_id, ReservationStatus.CONFIRMED, **side_effects
        )
        logger.info(f"Reservation {reservation.id} approved by user {approver_id}")
        return reservation

    def deny_reservation(
        self,
        reservation_id: Any,
        reason: Optional[str],
        approver_id: Optional[int] = None,
    ) -> Reservation:
        """
        Raises:
            ValidationError: If the reason is missing or blank
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A denial reason is required to deny a reservation")

        side_effects: dict[str, Any] = {"denial_reason": reason}
        if approver_id is not None:
            side_effects["confirmed_by_user_id"] = approver_id

        reservation = self.reservations.transition(
            reservation_id, ReservationStatus.DENIED, **side_effects
        )
        logger.info(f"Reservation {reservation.id} denied: {reason}")
        return reservation
