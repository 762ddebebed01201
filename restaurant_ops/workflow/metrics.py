"""
Metrics Aggregator

Summary statistics derived from the stores on demand. Nothing is cached
or counted incrementally; every call recomputes from the current rows.
"""

from collections import Counter
from typing import Any, Iterable

from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryMetrics,
    DeliveryPerson,
    DeliveryStatus,
    Order,
    OrderStatus,
    PersonStatus,
    round_money,
)

PENDING_DELIVERY_STATUSES = frozenset({
    DeliveryStatus.READY_FOR_PICKUP,
    DeliveryStatus.ASSIGNED,
})
ACTIVE_PERSON_STATUSES = frozenset({PersonStatus.AVAILABLE, PersonStatus.BUSY})


def compute_delivery_metrics(
    deliveries: Iterable[DeliveryAssignment],
    persons: Iterable[DeliveryPerson],
) -> DeliveryMetrics:
    """
    Compute delivery statistics.

    Average duration is the mean of (actual - assigned) over delivered
    assignments, in whole minutes. On-time rate is the percentage of
    delivered assignments that arrived no later than their estimate.
    Both are 0 when nothing has been delivered.
    """
    deliveries = list(deliveries)
    persons = list(persons)

    delivered = [d for d in deliveries if d.status == DeliveryStatus.DELIVERED]

    durations = [
        (d.actual_delivery_time - d.assigned_at).total_seconds() / 60
        for d in delivered
        if d.assigned_at is not None
    ]
    average = round(sum(durations) / len(durations)) if durations else 0

    on_time = sum(
        1 for d in delivered
        if d.estimated_delivery_time is not None
        and d.actual_delivery_time <= d.estimated_delivery_time
    )
    on_time_rate = round(on_time / len(delivered) * 100, 1) if delivered else 0.0

    rated = [p.rating for p in persons if p.total_deliveries > 0]
    satisfaction = round(sum(rated) / len(rated), 1) if rated else 0.0

    return DeliveryMetrics(
        total_deliveries=len(deliveries),
        completed_deliveries=len(delivered),
        average_delivery_time=average,
        on_time_delivery_rate=on_time_rate,
        customer_satisfaction_score=satisfaction,
        active_delivery_persons=sum(1 for p in persons if p.status in ACTIVE_PERSON_STATUSES),
        pending_assignments=sum(1 for d in deliveries if d.status in PENDING_DELIVERY_STATUSES),
    )


def compute_order_summary(orders: Iterable[Order]) -> dict[str, Any]:
    """Counts per status and revenue from completed orders."""
    orders = list(orders)
    counts = Counter(o.status for o in orders)
    completed = [o for o in orders if o.status == OrderStatus.COMPLETED]
    revenue = round_money(sum(o.total_amount for o in completed)) if completed else 0.0

    return {
        "total_orders": len(orders),
        "by_status": {status.value: counts.get(status, 0) for status in OrderStatus},
        "completed_revenue": revenue,
        "avg_order_value": round_money(revenue / len(completed)) if completed else 0.0,
    }
