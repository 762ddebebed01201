"""
                        Services Module

Domain services that route every read and write through the DataSource
Gateway. Each service talks to the live backend when the session is
connected and to the synthetic session store otherwise.

Services:
    - orders: order queue and status workflow
    - delivery: delivery persons, assignments, progress and metrics
    - reservations: reservation review and tables
    - datasource: HTTP transport, backend link and gateway
"""

from restaurant_ops.services.delivery import DeliveryService
from restaurant_ops.services.orders import OrderService
from restaurant_ops.services.reservations import ReservationService

__all__ = ["DeliveryService", "OrderService", "ReservationService"]
