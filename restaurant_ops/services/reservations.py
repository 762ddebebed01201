"""
Reservation Service

Reservation review (approve / deny), status changes and table lookup
through the DataSource Gateway. Approval and denial rules are enforced
locally by the AssignmentMatcher before anything reaches the backend.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

from restaurant_ops.core.exceptions import ValidationError
from restaurant_ops.models import Reservation, ReservationStatus, Table
from restaurant_ops.schemas import ReservationDraft, ReservationFilter
from restaurant_ops.services.datasource import (
    BackendLink,
    DataSourceGateway,
    DataSourceMode,
    parse_model,
    parse_models,
)
from restaurant_ops.services.datasource.mock import mock_reservations, mock_tables
from restaurant_ops.workflow import (
    AssignmentMatcher,
    EntityKind,
    ReservationStore,
    TableStore,
    check_transition,
    get_table,
)

logger = logging.getLogger(__name__)


class ReservationService:
    """Gateway-backed access to reservations and tables."""

    def __init__(
        self,
        link: BackendLink,
        reservations: ReservationStore,
        tables: TableStore,
        matcher: AssignmentMatcher,
    ):
        self.link = link
        self.reservations = reservations
        self.tables = tables
        self.matcher = matcher
        self.gateway: DataSourceGateway[Reservation] = DataSourceGateway(
            "reservations", link, reservations, mock_reservations
        )
        self.table_gateway: DataSourceGateway[Table] = DataSourceGateway(
            "tables", link, tables, mock_tables
        )

    @property
    def _http(self):
        return self.link.transport

    def _cache(self, payload: Any) -> Reservation:
        return self.reservations.put(parse_model(Reservation, payload))

    def _check_local(self, reservation_id: Any, target: ReservationStatus) -> None:
        if self._live_cached(reservation_id):
            current = self.reservations.get(reservation_id).status
            check_transition(EntityKind.RESERVATION, current, target)

    def _live_tables_loaded(self) -> bool:
        return self.table_gateway.mode == DataSourceMode.LIVE and len(self.tables) > 0

    def _live_cached(self, reservation_id: Any) -> bool:
        return self.gateway.mode == DataSourceMode.LIVE and reservation_id in self.reservations

    def _local_tables(self) -> list[Table]:
        if not len(self.tables):
            self.table_gateway.seed()
        return self.tables.list()

    # =========================================================================
    # READS
    # =========================================================================

    async def list_reservations(
        self, filters: Optional[ReservationFilter] = None
    ) -> list[Reservation]:
        filters = filters or ReservationFilter()

        async def live() -> list[Reservation]:
            payload = await self._http.get("/api/reservations", params=filters.to_params())
            reservations = parse_models(Reservation, payload)
            for reservation in reservations:
                self.reservations.put(reservation)
            return reservations

        return await self.gateway.read(live, lambda: self.reservations.list(filters.matches))

    async def list_pending(self) -> list[Reservation]:
        async def live() -> list[Reservation]:
            payload = await self._http.get(
                f"/api/reservations/status/{ReservationStatus.PENDING.value}"
            )
            reservations = parse_models(Reservation, payload)
            for reservation in reservations:
                self.reservations.put(reservation)
            return reservations

        def local() -> list[Reservation]:
            return self.reservations.list(lambda r: r.status == ReservationStatus.PENDING)

        return await self.gateway.read(live, local)

    async def get_reservation(self, reservation_id: Any) -> Reservation:
        async def live() -> Reservation:
            return self._cache(await self._http.get(f"/api/reservations/{reservation_id}"))

        return await self.gateway.read(live, lambda: self.reservations.get(reservation_id))

    async def list_tables(self) -> list[Table]:
        async def live() -> list[Table]:
            tables = parse_models(Table, await self._http.get("/api/tables"))
            self.tables.load(tables)
            return tables

        return await self.table_gateway.read(live, self.tables.list)

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create_reservation(self, draft: ReservationDraft) -> Reservation:
        async def live() -> Reservation:
            return self._cache(await self._http.post("/api/reservations", json=draft.to_wire()))

        return await self.gateway.write(live, lambda: self.reservations.create(draft))

    async def approve(
        self,
        reservation_id: Any,
        approver_id: int,
        table_id: Optional[Any] = None,
        admin_notes: Optional[str] = None,
    ) -> Reservation:
        """
        Confirm a pending reservation, optionally seating it at a table.

        Raises:
            NotFoundError: Unknown reservation or table
            ValidationError: Table unavailable or too small
            InvalidTransitionError: Reservation is not PENDING
        """
        async def live() -> Reservation:
            self._check_local(reservation_id, ReservationStatus.CONFIRMED)
            body: dict[str, Any] = {}
            if table_id is not None:
                seat = table_id
                # Only a table list read from the backend is trusted here;
                # otherwise the backend validates the id itself
                if self._live_tables_loaded() and self._live_cached(reservation_id):
                    seat = self.matcher.validate_table(
                        self.reservations.get(reservation_id), table_id, self.tables.list()
                    ).id
                body["tableId"] = seat
            if admin_notes:
                body["adminNotes"] = admin_notes
            payload = await self._http.post(
                f"/api/reservations/{reservation_id}/approve/{approver_id}", json=body
            )
            return self._cache(payload)

        def local() -> Reservation:
            return self.matcher.approve_reservation(
                reservation_id,
                approver_id,
                table_id=table_id,
                admin_notes=admin_notes,
                tables=self._local_tables(),
            )

        return await self.gateway.write(live, local)

    async def deny(
        self,
        reservation_id: Any,
        reason: Optional[str],
        approver_id: Optional[int] = None,
    ) -> Reservation:
        """
        Deny a pending reservation. A non-blank reason is required.

        Raises:
            ValidationError: Missing reason
            InvalidTransitionError: Reservation is not PENDING
        """
        async def live() -> Reservation:
            text = (reason or "").strip()
            if not text:
                raise ValidationError("A denial reason is required to deny a reservation")
            self._check_local(reservation_id, ReservationStatus.DENIED)
            body: dict[str, Any] = {"rejectionReason": text}
            if approver_id is not None:
                body["approverId"] = approver_id
            payload = await self._http.post(f"/api/reservations/{reservation_id}/reject", json=body)
            return self._cache(payload)

        def local() -> Reservation:
            return self.matcher.deny_reservation(reservation_id, reason, approver_id)

        return await self.gateway.write(live, local)

    async def update_status(self, reservation_id: Any, status: Any) -> Reservation:
        target = get_table(EntityKind.RESERVATION).coerce(status)

        async def live() -> Reservation:
            self._check_local(reservation_id, target)
            payload = await self._http.put(
                f"/api/reservations/{reservation_id}", json={"status": target.value}
            )
            return self._cache(payload)

        return await self.gateway.write(
            live, lambda: self.reservations.transition(reservation_id, target)
        )

    async def delete_reservation(self, reservation_id: Any) -> None:
        async def live() -> None:
            await self._http.delete(f"/api/reservations/{reservation_id}")
            if reservation_id in self.reservations:
                self.reservations.delete(reservation_id)

        def local() -> None:
            self.reservations.delete(reservation_id)

        await self.gateway.write(live, local)
