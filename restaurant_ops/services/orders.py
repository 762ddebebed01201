"""
Order Service

Order reads and writes through the DataSource Gateway. Live responses
are cached into the OrderStore; in mock mode the store is the source of
truth and every status change goes through its transition table.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

from restaurant_ops.models import Order, OrderStatus
from restaurant_ops.schemas import OrderDraft, OrderFilter
from restaurant_ops.services.datasource import (
    BackendLink,
    DataSourceGateway,
    DataSourceMode,
    parse_model,
    parse_models,
)
from restaurant_ops.services.datasource.mock import mock_orders
from restaurant_ops.workflow import EntityKind, OrderStore, check_transition, get_table

logger = logging.getLogger(__name__)


class OrderService:
    """Gateway-backed access to orders."""

    def __init__(self, link: BackendLink, store: OrderStore):
        self.link = link
        self.store = store
        self.gateway: DataSourceGateway[Order] = DataSourceGateway(
            "orders", link, store, mock_orders
        )

    @property
    def _http(self):
        return self.link.transport

    def _cache(self, payload: Any) -> Order:
        return self.store.put(parse_model(Order, payload))

    # =========================================================================
    # READS
    # =========================================================================

    async def list_orders(self, filters: Optional[OrderFilter] = None) -> list[Order]:
        filters = filters or OrderFilter()

        async def live() -> list[Order]:
            if filters.status is not None:
                path = f"/api/orders/status/{filters.status.value}"
            elif filters.customer_id is not None:
                path = f"/api/orders/customer/{filters.customer_id}"
            else:
                path = "/api/orders"
            orders = parse_models(Order, await self._http.get(path))
            for order in orders:
                self.store.put(order)
            return [o for o in orders if filters.matches(o)]

        return await self.gateway.read(live, lambda: self.store.list(filters.matches))

    async def get_order(self, order_id: Any) -> Order:
        async def live() -> Order:
            return self._cache(await self._http.get(f"/api/orders/{order_id}"))

        return await self.gateway.read(live, lambda: self.store.get(order_id))

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_order(self, draft: OrderDraft) -> Order:
        async def live() -> Order:
            return self._cache(await self._http.post("/api/orders", json=draft.to_wire()))

        return await self.gateway.write(live, lambda: self.store.create(draft))

    async def update_status(self, order_id: Any, status: Any) -> Order:
        """
        Move an order to a new status.

        The edge is checked locally before anything is sent, so an invalid
        transition raises the same way in live and mock mode.
        """
        target = get_table(EntityKind.ORDER).coerce(status)

        async def live() -> Order:
            if self.gateway.mode == DataSourceMode.LIVE and order_id in self.store:
                check_transition(EntityKind.ORDER, self.store.get(order_id).status, target)
            payload = await self._http.put(
                f"/api/orders/{order_id}/status", json={"status": target.value}
            )
            return self._cache(payload)

        return await self.gateway.write(live, lambda: self.store.transition(order_id, target))

    async def cancel_order(self, order_id: Any) -> Order:
        return await self.update_status(order_id, OrderStatus.CANCELLED)

    async def delete_order(self, order_id: Any) -> None:
        async def live() -> None:
            await self._http.delete(f"/api/orders/{order_id}")
            if order_id in self.store:
                self.store.delete(order_id)

        def local() -> None:
            self.store.delete(order_id)

        await self.gateway.write(live, local)
