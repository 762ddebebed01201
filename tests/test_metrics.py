from datetime import datetime, timedelta, timezone

from restaurant_ops.models import DeliveryAssignment
from restaurant_ops.services.datasource.mock import (
    mock_deliveries,
    mock_delivery_persons,
    mock_orders,
)
from restaurant_ops.workflow import compute_delivery_metrics, compute_order_summary

T0 = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def _delivered(delivery_id, minutes, late=False):
    actual = T0 + timedelta(minutes=minutes)
    estimate = actual - timedelta(minutes=5) if late else actual + timedelta(minutes=5)
    return DeliveryAssignment(
        id=delivery_id,
        order_id=delivery_id,
        delivery_person_id="1",
        status="delivered",
        assigned_at=T0,
        estimated_delivery_time=estimate,
        actual_delivery_time=actual,
    )


def test_metrics_over_synthetic_data():
    metrics = compute_delivery_metrics(mock_deliveries(), mock_delivery_persons())
    assert metrics.total_deliveries == 3
    assert metrics.completed_deliveries == 1
    assert metrics.average_delivery_time == 55
    assert metrics.on_time_delivery_rate == 100.0
    assert metrics.active_delivery_persons == 2
    assert metrics.pending_assignments == 0
    assert metrics.customer_satisfaction_score == 4.8


def test_metrics_with_nothing_delivered():
    metrics = compute_delivery_metrics([], [])
    assert metrics.total_deliveries == 0
    assert metrics.average_delivery_time == 0
    assert metrics.on_time_delivery_rate == 0.0
    assert metrics.customer_satisfaction_score == 0.0


def test_on_time_rate_and_average():
    deliveries = [
        _delivered("1", 30),
        _delivered("2", 40, late=True),
        _delivered("3", 50),
    ]
    metrics = compute_delivery_metrics(deliveries, [])
    assert metrics.average_delivery_time == 40
    assert metrics.on_time_delivery_rate == 66.7


def test_pending_counts_queue_and_assigned():
    deliveries = [
        DeliveryAssignment(id="1", order_id="1", status="ready_for_pickup"),
        DeliveryAssignment(id="2", order_id="2", status="assigned", delivery_person_id="1"),
        DeliveryAssignment(id="3", order_id="3", status="preparing"),
    ]
    assert compute_delivery_metrics(deliveries, []).pending_assignments == 2


def test_order_summary():
    summary = compute_order_summary(mock_orders())
    assert summary["total_orders"] == 5
    assert summary["by_status"]["READY"] == 2
    assert summary["by_status"]["CANCELLED"] == 0
    assert summary["completed_revenue"] == 27.20
    assert summary["avg_order_value"] == 27.20
