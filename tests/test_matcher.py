from datetime import datetime, timedelta, timezone

import pytest

from restaurant_ops.core.exceptions import (
    InvalidTransitionError,
    NoEligiblePersonError,
    NotFoundError,
    PersonNotFoundError,
    ValidationError,
)
from restaurant_ops.models import DeliveryPerson, DeliveryStatus, ReservationStatus
from restaurant_ops.schemas import DeliveryDraft
from restaurant_ops.services.datasource.mock import (
    mock_deliveries,
    mock_delivery_persons,
    mock_reservations,
    mock_tables,
)
from restaurant_ops.workflow import (
    AssignmentMatcher,
    DeliveryStore,
    ReservationStore,
    round_to_boundary,
)

from tests.conftest import FIXED_NOW, fixed_clock


@pytest.fixture
def matcher():
    return AssignmentMatcher(
        DeliveryStore(mock_deliveries(), clock=fixed_clock),
        ReservationStore(mock_reservations(), clock=fixed_clock),
        clock=fixed_clock,
    )


@pytest.fixture
def persons():
    return mock_delivery_persons()


def _at(hour, minute, second=0):
    return datetime(2024, 1, 15, hour, minute, second, tzinfo=timezone.utc)


class TestRounding:
    def test_nearest_boundary(self):
        assert round_to_boundary(_at(12, 32)) == _at(12, 30)
        assert round_to_boundary(_at(12, 33)) == _at(12, 35)
        assert round_to_boundary(_at(12, 32, 30)) == _at(12, 35)

    def test_round_up(self):
        assert round_to_boundary(_at(12, 31), up=True) == _at(12, 35)
        assert round_to_boundary(_at(12, 30), up=True) == _at(12, 30)


class TestPersonSelection:
    def test_best_eligible_person_chosen(self, matcher, persons):
        # Sarah is busy and Mike is offline, so John is the only candidate
        assert matcher.select_person(persons).id == "1"

    def test_highest_rating_wins(self, matcher):
        pool = [
            DeliveryPerson(id="a", name="A", status="available", rating=4.5, total_deliveries=300),
            DeliveryPerson(id="b", name="B", status="available", rating=4.9, total_deliveries=10),
        ]
        assert matcher.select_person(pool).id == "b"

    def test_requested_person_must_be_eligible(self, matcher, persons):
        with pytest.raises(NoEligiblePersonError):
            matcher.select_person(persons, person_id="2")

    def test_requested_person_missing(self, matcher, persons):
        with pytest.raises(PersonNotFoundError):
            matcher.select_person(persons, person_id="42")

    def test_empty_pool(self, matcher):
        offline = [DeliveryPerson(id="1", name="A", status="offline")]
        with pytest.raises(NoEligiblePersonError):
            matcher.select_person(offline)

    def test_inactive_available_person_not_eligible(self, matcher):
        pool = [DeliveryPerson(id="1", name="A", status="available", is_active=False)]
        with pytest.raises(NoEligiblePersonError):
            matcher.select_person(pool, person_id="1")


class TestEstimatedTime:
    def test_default_is_lead_time_rounded_up(self, matcher):
        assert matcher.validate_estimated_time(None) == FIXED_NOW + timedelta(minutes=30)

    def test_requested_time_rounded_to_nearest(self, matcher):
        assert matcher.validate_estimated_time(_at(12, 33)) == _at(12, 35)
        assert matcher.validate_estimated_time(_at(12, 47)) == _at(12, 45)

    def test_inside_lead_time_rejected(self, matcher):
        with pytest.raises(ValidationError):
            matcher.validate_estimated_time(_at(12, 29))

    def test_rounding_never_goes_below_lead_time(self):
        def clock():
            return _at(12, 1)

        matcher = AssignmentMatcher(
            DeliveryStore(mock_deliveries(), clock=clock),
            ReservationStore(mock_reservations(), clock=clock),
            clock=clock,
        )
        # 12:32 rounds to 12:30, which is inside the lead time
        assert matcher.validate_estimated_time(_at(12, 32)) == _at(12, 35)

        delivery = matcher.deliveries.create(DeliveryDraft(order_id="4"))
        assigned = matcher.assign_delivery(
            delivery.id, mock_delivery_persons(), estimated_delivery_time=_at(12, 32)
        )
        assert assigned.estimated_delivery_time >= _at(12, 1) + timedelta(minutes=30)

    def test_naive_time_rejected(self, matcher):
        with pytest.raises(ValidationError):
            matcher.validate_estimated_time(datetime(2024, 1, 15, 13, 0))


class TestAssignDelivery:
    def test_assign_new_delivery(self, matcher, persons):
        delivery = matcher.deliveries.create(DeliveryDraft(order_id="4"))
        assigned = matcher.assign_delivery(
            delivery.id, persons, person_id="1", estimated_delivery_time=_at(13, 2)
        )
        assert assigned.status == DeliveryStatus.ASSIGNED
        assert assigned.delivery_person_id == "1"
        assert assigned.assigned_at == FIXED_NOW
        assert assigned.estimated_delivery_time == _at(13, 0)

    def test_reassignment_updates_eta(self, matcher, persons):
        delivery = matcher.deliveries.create(DeliveryDraft(order_id="4"))
        matcher.assign_delivery(delivery.id, persons)
        again = matcher.assign_delivery(delivery.id, persons, estimated_delivery_time=_at(14, 0))
        assert again.status == DeliveryStatus.ASSIGNED
        assert again.estimated_delivery_time == _at(14, 0)

    def test_lead_time_violation_leaves_delivery_untouched(self, matcher, persons):
        delivery = matcher.deliveries.create(DeliveryDraft(order_id="4"))
        with pytest.raises(ValidationError):
            matcher.assign_delivery(delivery.id, persons, estimated_delivery_time=_at(12, 10))
        assert matcher.deliveries.get(delivery.id).status == DeliveryStatus.PREPARING

    def test_delivered_cannot_be_reassigned(self, matcher, persons):
        with pytest.raises(InvalidTransitionError):
            matcher.assign_delivery("3", persons)

    def test_unknown_delivery(self, matcher, persons):
        with pytest.raises(NotFoundError):
            matcher.assign_delivery("99", persons)


class TestReservationReview:
    def test_approve_with_table(self, matcher):
        reservation = matcher.approve_reservation(
            2, approver_id=5, table_id=2, admin_notes="Quiet corner", tables=mock_tables()
        )
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.table_id == 2
        assert reservation.confirmed_by_user_id == 5
        assert reservation.confirmed_at == FIXED_NOW
        assert reservation.admin_notes == "Quiet corner"

    def test_approve_without_table(self, matcher):
        reservation = matcher.approve_reservation(3, approver_id=5)
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.table_id is None

    def test_table_too_small(self, matcher):
        with pytest.raises(ValidationError):
            matcher.approve_reservation(3, approver_id=5, table_id=1, tables=mock_tables())
        assert matcher.reservations.get(3).status == ReservationStatus.PENDING

    def test_table_unavailable(self, matcher):
        with pytest.raises(ValidationError):
            matcher.approve_reservation(2, approver_id=5, table_id=4, tables=mock_tables())

    def test_table_missing(self, matcher):
        with pytest.raises(NotFoundError):
            matcher.approve_reservation(2, approver_id=5, table_id=42, tables=mock_tables())

    def test_deny_requires_reason(self, matcher):
        with pytest.raises(ValidationError):
            matcher.deny_reservation(2, "   ")
        assert matcher.reservations.get(2).status == ReservationStatus.PENDING

    def test_deny(self, matcher):
        reservation = matcher.deny_reservation(2, "Fully booked", approver_id=5)
        assert reservation.status == ReservationStatus.DENIED
        assert reservation.denial_reason == "Fully booked"

    def test_confirmed_reservation_cannot_be_denied(self, matcher):
        with pytest.raises(InvalidTransitionError):
            matcher.deny_reservation(1, "Changed our mind")
