"""
Delivery Service

Delivery persons, delivery assignments, progress history and metrics
through the DataSource Gateway.

Assignment matching always runs locally. In live mode the person pool is
read from the backend and a failed read raises, so synthetic persons are
never sent to the backend. The matcher validates person and estimated
time before anything is written.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Any, Optional

from restaurant_ops.core.exceptions import ValidationError
from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryMetrics,
    DeliveryPerson,
    DeliveryProgress,
    DeliveryStatus,
    PersonStatus,
)
from restaurant_ops.schemas import DeliveryDraft, DeliveryFilter
from restaurant_ops.services.datasource import (
    BackendLink,
    DataSourceGateway,
    DataSourceMode,
    parse_model,
    parse_models,
)
from restaurant_ops.services.datasource.mock import (
    mock_deliveries,
    mock_delivery_persons,
    mock_delivery_progress,
)
from restaurant_ops.workflow import (
    AssignmentMatcher,
    DeliveryPersonStore,
    DeliveryStore,
    EntityKind,
    check_transition,
    compute_delivery_metrics,
    get_table,
)

logger = logging.getLogger(__name__)


class DeliveryService:
    """Gateway-backed access to the delivery domain."""

    def __init__(
        self,
        link: BackendLink,
        deliveries: DeliveryStore,
        persons: DeliveryPersonStore,
        matcher: AssignmentMatcher,
    ):
        self.link = link
        self.deliveries = deliveries
        self.persons = persons
        self.matcher = matcher
        self.gateway: DataSourceGateway[DeliveryAssignment] = DataSourceGateway(
            "deliveries", link, deliveries, self._fallback_deliveries
        )
        self.person_gateway: DataSourceGateway[DeliveryPerson] = DataSourceGateway(
            "delivery persons", link, persons, mock_delivery_persons
        )

    @property
    def _http(self):
        return self.link.transport

    def _fallback_deliveries(self) -> list[DeliveryAssignment]:
        self.deliveries.load_progress(mock_delivery_progress())
        return mock_deliveries()

    def _local_persons(self) -> list[DeliveryPerson]:
        # Delivery calls can run before the person list was ever read
        if not len(self.persons):
            self.person_gateway.seed()
        return self.persons.list()

    def _cache(self, payload: Any) -> DeliveryAssignment:
        return self.deliveries.put(parse_model(DeliveryAssignment, payload))

    # =========================================================================
    # DELIVERY PERSONS
    # =========================================================================

    async def _fetch_persons(self) -> list[DeliveryPerson]:
        persons = parse_models(DeliveryPerson, await self._http.get("/api/delivery/persons"))
        self.persons.load(persons)
        return persons

    async def list_persons(self) -> list[DeliveryPerson]:
        return await self.person_gateway.read(self._fetch_persons, self.persons.list)

    async def available_persons(self) -> list[DeliveryPerson]:
        return AssignmentMatcher.eligible_persons(await self.list_persons())

    async def update_person_status(self, person_id: Any, status: Any) -> DeliveryPerson:
        try:
            status = PersonStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown delivery person status: {status!r}") from None

        async def live() -> DeliveryPerson:
            payload = await self._http.patch(
                f"/api/delivery/persons/{person_id}/status", json={"status": status.value}
            )
            return self.persons.put(parse_model(DeliveryPerson, payload))

        return await self.person_gateway.write(
            live, lambda: self.persons.update(person_id, status=status)
        )

    # =========================================================================
    # ASSIGNMENTS
    # =========================================================================

    async def list_deliveries(
        self, filters: Optional[DeliveryFilter] = None
    ) -> list[DeliveryAssignment]:
        filters = filters or DeliveryFilter()

        async def live() -> list[DeliveryAssignment]:
            payload = await self._http.get("/api/delivery/assignments", params=filters.to_params())
            deliveries = parse_models(DeliveryAssignment, payload)
            for delivery in deliveries:
                self.deliveries.put(delivery)
            return deliveries

        return await self.gateway.read(live, lambda: self.deliveries.list(filters.matches))

    async def get_delivery(self, delivery_id: Any) -> DeliveryAssignment:
        async def live() -> DeliveryAssignment:
            return self._cache(await self._http.get(f"/api/delivery/assignments/{delivery_id}"))

        return await self.gateway.read(live, lambda: self.deliveries.get(delivery_id))

    async def create_delivery(self, draft: DeliveryDraft) -> DeliveryAssignment:
        async def live() -> DeliveryAssignment:
            return self._cache(
                await self._http.post("/api/delivery/assignments", json=draft.to_wire())
            )

        return await self.gateway.write(live, lambda: self.deliveries.create(draft))

    async def update_status(
        self,
        delivery_id: Any,
        status: Any,
        notes: Optional[str] = None,
    ) -> DeliveryAssignment:
        target = get_table(EntityKind.DELIVERY).coerce(status)

        async def live() -> DeliveryAssignment:
            if self.gateway.mode == DataSourceMode.LIVE and delivery_id in self.deliveries:
                check_transition(
                    EntityKind.DELIVERY, self.deliveries.get(delivery_id).status, target
                )
            body = {"status": target.value}
            if notes:
                body["notes"] = notes
            payload = await self._http.patch(
                f"/api/delivery/assignments/{delivery_id}/status", json=body
            )
            return self._cache(payload)

        def local() -> DeliveryAssignment:
            side_effects = {"notes": notes} if notes else {}
            return self.deliveries.transition(delivery_id, target, **side_effects)

        return await self.gateway.write(live, local)

    async def mark_delivered(self, delivery_id: Any) -> DeliveryAssignment:
        return await self.update_status(delivery_id, DeliveryStatus.DELIVERED)

    async def assign(
        self,
        delivery_id: Any,
        person_id: Optional[Any] = None,
        estimated_delivery_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> DeliveryAssignment:
        """
        Assign a delivery person.

        Raises:
            NoEligiblePersonError, PersonNotFoundError: Matching failed
            ValidationError: Estimated time violates the lead time
            InvalidTransitionError: The delivery cannot be assigned from its status
        """
        async def live() -> DeliveryAssignment:
            pool = await self._fetch_persons()
            self.person_gateway.mode = DataSourceMode.LIVE
            match = self.matcher.match_delivery(pool, person_id, estimated_delivery_time)
            if self.gateway.mode == DataSourceMode.LIVE and delivery_id in self.deliveries:
                check_transition(
                    EntityKind.DELIVERY,
                    self.deliveries.get(delivery_id).status,
                    DeliveryStatus.ASSIGNED,
                )
            body = {
                "deliveryPersonId": match.person.id,
                "estimatedDeliveryTime": match.estimated_delivery_time.isoformat(),
            }
            if notes:
                body["notes"] = notes
            payload = await self._http.post(
                f"/api/delivery/assignments/{delivery_id}/assign", json=body
            )
            return self._cache(payload)

        def local() -> DeliveryAssignment:
            return self.matcher.assign_delivery(
                delivery_id,
                self._local_persons(),
                person_id=person_id,
                estimated_delivery_time=estimated_delivery_time,
                notes=notes,
            )

        return await self.gateway.write(live, local)

    # =========================================================================
    # PROGRESS & METRICS
    # =========================================================================

    async def progress(self, delivery_id: Any) -> list[DeliveryProgress]:
        async def live() -> list[DeliveryProgress]:
            payload = await self._http.get(f"/api/delivery/assignments/{delivery_id}/progress")
            return parse_models(DeliveryProgress, payload)

        def local() -> list[DeliveryProgress]:
            self.deliveries.get(delivery_id)
            return self.deliveries.history(delivery_id)

        return await self.gateway.read(live, local)

    async def metrics(self) -> DeliveryMetrics:
        async def live() -> DeliveryMetrics:
            return parse_model(DeliveryMetrics, await self._http.get("/api/delivery/metrics"))

        def local() -> DeliveryMetrics:
            return compute_delivery_metrics(self.deliveries.list(), self._local_persons())

        return await self.gateway.read(live, local)
