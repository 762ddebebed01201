"""
Workflow Engine

Transition tables, entity stores, the assignment matcher and the metrics
aggregator shared by orders, deliveries and reservations.
"""

from restaurant_ops.workflow.transitions import (
    EntityKind,
    TransitionTable,
    check_transition,
    get_table,
    initial_state,
    is_terminal,
    is_valid_transition,
    next_step,
)
from restaurant_ops.workflow.stores import (
    DeliveryPersonStore,
    DeliveryStore,
    EntityStore,
    OrderStore,
    ReservationStore,
    ResourceStore,
    TableStore,
)
from restaurant_ops.workflow.matcher import AssignmentMatcher, round_to_boundary
from restaurant_ops.workflow.metrics import compute_delivery_metrics, compute_order_summary

__all__ = [
    "EntityKind",
    "TransitionTable",
    "check_transition",
    "get_table",
    "initial_state",
    "is_terminal",
    "is_valid_transition",
    "next_step",
    "DeliveryPersonStore",
    "DeliveryStore",
    "EntityStore",
    "OrderStore",
    "ReservationStore",
    "ResourceStore",
    "TableStore",
    "AssignmentMatcher",
    "round_to_boundary",
    "compute_delivery_metrics",
    "compute_order_summary",
]
