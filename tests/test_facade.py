from datetime import timedelta

import anyio
import pytest

from restaurant_ops.core.exceptions import (
    InvalidTransitionError,
    NoEligiblePersonError,
    NotFoundError,
    ValidationError,
)
from restaurant_ops.facade import WorkflowFacade
from restaurant_ops.models import (
    DeliveryStatus,
    OrderStatus,
    Reservation,
    ReservationStatus,
)

from tests.conftest import FIXED_NOW, fixed_clock, make_link


@pytest.fixture
async def facade(offline_facade):
    await offline_facade.start()
    yield offline_facade
    await offline_facade.close()


# =============================================================================
# Walkthroughs
# =============================================================================

@pytest.mark.anyio
async def test_order_totals(facade):
    order = await facade.create_order({
        "customer_id": 1,
        "items": [
            {"menu_item_id": 1, "menu_item_name": "Margherita Pizza", "quantity": 2, "unit_price": 12.99},
        ],
        "tip_amount": 3.00,
    })
    assert order.subtotal == 25.98
    assert order.tax_amount == 2.60
    assert order.tip_amount == 3.00
    assert order.total_amount == 31.58
    assert order.status == OrderStatus.PENDING


@pytest.mark.anyio
async def test_new_delivery_assigned_to_person(facade):
    delivery = await facade.create_delivery({"order_id": "4"})
    assert delivery.delivery_person_id is None
    assert delivery.status == DeliveryStatus.PREPARING

    assigned = await facade.assign_delivery(delivery.id, person_id="1")
    assert assigned.status == DeliveryStatus.ASSIGNED
    assert assigned.delivery_person_id == "1"
    assert assigned.estimated_delivery_time == FIXED_NOW + timedelta(minutes=30)


@pytest.mark.anyio
async def test_skipping_to_delivered_rejected(facade):
    delivery = await facade.create_delivery({"order_id": "4"})
    with pytest.raises(InvalidTransitionError):
        await facade.update_delivery_status(delivery.id, "delivered")
    assert (await facade.get_delivery(delivery.id)).status == DeliveryStatus.PREPARING


@pytest.mark.anyio
async def test_unreachable_backend_serves_three_deliveries(facade):
    assert facade.connected is False
    deliveries = await facade.load_deliveries()
    assert [d.id for d in deliveries] == ["1", "2", "3"]
    assert all(d.order_id for d in deliveries)
    assert facade.state["deliveries"].data == deliveries


@pytest.mark.anyio
async def test_deny_needs_reason(facade):
    await facade.load_reservations()
    facade.reservation_store.put(Reservation(
        id=42,
        customer_name="Walk In",
        reservation_datetime=FIXED_NOW + timedelta(days=2),
        party_size=2,
    ))

    with pytest.raises(ValidationError):
        await facade.deny_reservation(42, "")
    assert facade.state["reservations"].error.code == "validation_error"
    assert facade.state["reservations"].error.recoverable is False

    reservation = await facade.deny_reservation(42, "fully booked")
    assert reservation.status == ReservationStatus.DENIED
    assert reservation.denial_reason == "fully booked"
    assert facade.state["reservations"].error is None


# =============================================================================
# Domain state
# =============================================================================

@pytest.mark.anyio
async def test_loading_flag_cleared_after_call(facade):
    await facade.load_orders()
    assert facade.state["orders"].loading is False
    assert len(facade.state["orders"].data) == 5


@pytest.mark.anyio
async def test_loading_stays_set_until_last_call_finishes(facade):
    started = anyio.Event()
    release = anyio.Event()

    async def slow():
        started.set()
        await release.wait()
        return "slow"

    async def quick():
        return "quick"

    async with anyio.create_task_group() as tg:
        tg.start_soon(facade._run, "orders", slow)
        await started.wait()
        await facade._run("orders", quick)
        assert facade.state["orders"].loading is True
        release.set()
    assert facade.state["orders"].loading is False


@pytest.mark.anyio
async def test_mutation_merges_into_loaded_list(facade):
    await facade.load_orders()
    await facade.update_order_status(4, "CONFIRMED")
    [order] = [o for o in facade.state["orders"].data if o.id == 4]
    assert order.status == OrderStatus.CONFIRMED


@pytest.mark.anyio
async def test_delete_removes_from_loaded_list(facade):
    await facade.load_reservations()
    await facade.delete_reservation(3)
    assert 3 not in [r.id for r in facade.state["reservations"].data]
    with pytest.raises(NotFoundError):
        await facade.get_reservation(3)


@pytest.mark.anyio
async def test_invalid_draft_recorded_as_error(facade):
    with pytest.raises(ValidationError):
        await facade.create_order({"customer_id": 1, "items": []})
    assert facade.state["orders"].error is not None


# =============================================================================
# Orders
# =============================================================================

@pytest.mark.anyio
async def test_advance_order_walks_happy_path(facade):
    statuses = [(await facade.advance_order(4)).status for _ in range(4)]
    assert statuses == [
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
        OrderStatus.COMPLETED,
    ]
    completed = await facade.get_order(4)
    assert completed.completed_at == FIXED_NOW

    with pytest.raises(InvalidTransitionError):
        await facade.advance_order(4)


@pytest.mark.anyio
async def test_cancel_after_kitchen_started_rejected(facade):
    await facade.update_order_status(5, "PREPARING")
    with pytest.raises(InvalidTransitionError):
        await facade.cancel_order(5)


@pytest.mark.anyio
async def test_load_orders_filters(facade):
    ready = await facade.load_orders(status="READY")
    assert {o.id for o in ready} == {1, 2}
    alice = await facade.load_orders(customer_id=1)
    assert {o.id for o in alice} == {1, 3}


@pytest.mark.anyio
async def test_order_summary(facade):
    summary = await facade.order_summary()
    assert summary["total_orders"] == 5
    assert summary["completed_revenue"] == 27.20


# =============================================================================
# Delivery
# =============================================================================

@pytest.mark.anyio
async def test_available_persons(facade):
    available = await facade.available_delivery_persons()
    assert [p.name for p in available] == ["John Smith"]


@pytest.mark.anyio
async def test_no_one_available(facade):
    await facade.update_delivery_person_status("1", "offline")
    delivery = await facade.create_delivery({"order_id": "4"})
    with pytest.raises(NoEligiblePersonError):
        await facade.assign_delivery(delivery.id)
    assert facade.state["deliveries"].error.code == "no_eligible_person"


@pytest.mark.anyio
async def test_mark_delivered_updates_metrics_and_progress(facade):
    before = await facade.delivery_metrics()
    assert before.completed_deliveries == 1

    delivered = await facade.mark_delivered("1")
    assert delivered.actual_delivery_time == FIXED_NOW

    after = await facade.delivery_metrics()
    assert after.completed_deliveries == 2
    # 10:30 -> 12:00 is 90 minutes, against 55 for the seeded delivery
    assert after.average_delivery_time == 72

    progress = await facade.delivery_progress("1")
    assert [p.status for p in progress][-1] == DeliveryStatus.DELIVERED
    assert len(progress) == 6


@pytest.mark.anyio
async def test_delivery_filters(facade):
    urgent = await facade.load_deliveries({"priority": ["high"]})
    assert [d.id for d in urgent] == ["2"]
    johns = await facade.load_deliveries({"delivery_person_id": "1"})
    assert [d.id for d in johns] == ["1", "3"]
    fragile = await facade.load_deliveries({"search": "fragile"})
    assert [d.id for d in fragile] == ["2"]


# =============================================================================
# Reservations
# =============================================================================

@pytest.mark.anyio
async def test_pending_reservations(facade):
    pending = await facade.load_pending_reservations()
    assert [r.id for r in pending] == [2, 3]


@pytest.mark.anyio
async def test_approve_and_seat(facade):
    reservation = await facade.approve_reservation(3, approver_id=1, table_id=3)
    assert reservation.status == ReservationStatus.CONFIRMED
    assert reservation.table_id == 3

    seated = await facade.update_reservation_status(3, "SEATED")
    assert seated.checked_in_at == FIXED_NOW


@pytest.mark.anyio
async def test_approve_at_small_table_rejected(facade):
    with pytest.raises(ValidationError):
        await facade.approve_reservation(3, approver_id=1, table_id=2)


@pytest.mark.anyio
async def test_create_reservation_pending(facade):
    reservation = await facade.create_reservation({
        "customer_name": "Nora Quinn",
        "reservation_datetime": "2024-02-01T19:30:00Z",
        "party_size": 3,
    })
    assert reservation.id == 4
    assert reservation.status == ReservationStatus.PENDING
    assert len(await facade.load_tables()) == 5


@pytest.mark.anyio
async def test_mock_mutations_do_not_outlive_session(settings, facade):
    await facade.update_order_status(4, "CANCELLED")

    fresh = WorkflowFacade(settings, link=make_link(), clock=fixed_clock)
    await fresh.start()
    assert (await fresh.get_order(4)).status == OrderStatus.PENDING
    await fresh.close()
