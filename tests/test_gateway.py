import json

import httpx
import pytest

from restaurant_ops.core.exceptions import (
    ApiError,
    InvalidTransitionError,
    NetworkError,
    ValidationError,
)
from restaurant_ops.facade import WorkflowFacade
from restaurant_ops.models import DeliveryStatus, OrderStatus
from restaurant_ops.services.datasource import DataSourceMode

from tests.conftest import fixed_clock, make_link

LIVE_DELIVERY = {
    "id": 77,
    "orderId": 501,
    "deliveryPersonId": 9,
    "status": "assigned",
    "priority": "urgent",
    "assignedAt": "2024-01-15T11:50:00Z",
    "estimatedDeliveryTime": "2024-01-15T12:30:00Z",
}

LIVE_ORDER = {
    "id": 501,
    "customerId": 3,
    "customerName": "Live Customer",
    "orderType": "DELIVERY",
    "status": "CONFIRMED",
    "subtotal": 20.00,
    "taxAmount": 2.00,
    "totalAmount": 22.00,
    "orderTime": "2024-01-15T11:00:00Z",
    "items": [
        {"id": 1, "menuItemId": 4, "menuItemName": "Burger", "quantity": 2, "unitPrice": 10.00},
    ],
}


class Backend:
    """Records requests and answers from a route table."""

    def __init__(self, routes=None, healthy=True):
        self.routes = routes or {}
        self.healthy = healthy
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/health":
            if not self.healthy:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"status": "UP"})
        key = (request.method, request.url.path)
        if key not in self.routes:
            return httpx.Response(404, json={"error": f"No route {key}"})
        answer = self.routes[key]
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(200, json=answer)

    def paths(self):
        return [r.url.path for r in self.requests]


def _facade(settings, backend, force_mock=False):
    link = make_link(backend, force_mock=force_mock)
    return WorkflowFacade(settings, link=link, clock=fixed_clock)


@pytest.mark.anyio
async def test_probe_failure_serves_synthetic_deliveries(settings):
    facade = _facade(settings, Backend(healthy=False))
    assert await facade.start() is False
    deliveries = await facade.load_deliveries()
    assert len(deliveries) == 3
    assert all(d.order_id for d in deliveries)
    assert facade.delivery.gateway.mode == DataSourceMode.MOCK


@pytest.mark.anyio
async def test_force_mock_skips_probe(settings):
    backend = Backend()
    facade = _facade(settings, backend, force_mock=True)
    assert await facade.start() is False
    await facade.load_orders()
    assert backend.requests == []


@pytest.mark.anyio
async def test_probe_runs_once(settings):
    backend = Backend(healthy=False)
    facade = _facade(settings, backend)
    await facade.start()
    backend.healthy = True
    assert await facade.start() is False
    assert backend.paths().count("/api/health") == 1
    assert facade.data_source == "mock"


@pytest.mark.anyio
async def test_live_read_is_cached(settings):
    backend = Backend({("GET", "/api/delivery/assignments"): [LIVE_DELIVERY]})
    facade = _facade(settings, backend)
    assert await facade.start() is True

    deliveries = await facade.load_deliveries({"status": ["assigned", "picked_up"]})
    assert [d.id for d in deliveries] == ["77"]
    assert deliveries[0].delivery_person_id == "9"
    assert facade.delivery_store.get("77").status == DeliveryStatus.ASSIGNED
    assert backend.requests[-1].url.params["status"] == "assigned,picked_up"
    assert facade.delivery.gateway.mode == DataSourceMode.LIVE


@pytest.mark.anyio
async def test_live_read_failure_falls_back(settings):
    backend = Backend({
        ("GET", "/api/delivery/assignments"): httpx.Response(500, json={"error": "boom"}),
    })
    facade = _facade(settings, backend)
    await facade.start()

    deliveries = await facade.load_deliveries()
    assert len(deliveries) == 3
    assert facade.delivery.gateway.mode == DataSourceMode.FALLBACK
    assert facade.state["deliveries"].error is None


@pytest.mark.anyio
async def test_malformed_live_payload_falls_back(settings):
    backend = Backend({("GET", "/api/orders"): {"unexpected": "shape"}})
    facade = _facade(settings, backend)
    await facade.start()
    orders = await facade.load_orders()
    assert len(orders) == 5


@pytest.mark.anyio
async def test_live_order_uses_backend_field_names(settings):
    backend = Backend({("GET", "/api/orders/501"): LIVE_ORDER})
    facade = _facade(settings, backend)
    await facade.start()

    order = await facade.get_order(501)
    assert order.status == OrderStatus.CONFIRMED
    assert order.total_amount == 22.00
    assert order.created_at.hour == 11


@pytest.mark.anyio
async def test_live_write_error_propagates(settings):
    backend = Backend({
        ("POST", "/api/orders"): httpx.Response(400, json={"error": "Menu item 99 not found"}),
    })
    facade = _facade(settings, backend)
    await facade.start()

    draft = {"customer_id": 1, "items": [{"menu_item_id": 99, "quantity": 1, "unit_price": 5}]}
    with pytest.raises(ApiError) as exc_info:
        await facade.create_order(draft)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == "Menu item 99 not found"
    assert exc_info.value.recoverable is False
    assert len(facade.order_store) == 0


@pytest.mark.anyio
async def test_live_write_sends_backend_body_and_caches(settings):
    confirmed = dict(LIVE_ORDER, status="PREPARING")
    backend = Backend({
        ("GET", "/api/orders/501"): LIVE_ORDER,
        ("PUT", "/api/orders/501/status"): confirmed,
    })
    facade = _facade(settings, backend)
    await facade.start()

    await facade.get_order(501)
    order = await facade.update_order_status(501, "PREPARING")
    assert order.status == OrderStatus.PREPARING
    assert facade.order_store.get(501).status == OrderStatus.PREPARING
    assert json.loads(backend.requests[-1].content) == {"status": "PREPARING"}


@pytest.mark.anyio
async def test_live_write_checks_cached_transition_first(settings):
    backend = Backend({("GET", "/api/orders/501"): LIVE_ORDER})
    facade = _facade(settings, backend)
    await facade.start()

    await facade.get_order(501)
    with pytest.raises(InvalidTransitionError):
        await facade.update_order_status(501, "COMPLETED")
    assert ("PUT", "/api/orders/501/status") not in [
        (r.method, r.url.path) for r in backend.requests
    ]


@pytest.mark.anyio
async def test_network_error_on_write_is_recoverable(settings):
    backend = Backend({
        ("PATCH", "/api/delivery/persons/1/status"): httpx.ConnectError("refused"),
    })
    facade = _facade(settings, backend)
    await facade.start()

    with pytest.raises(NetworkError):
        await facade.update_delivery_person_status("1", "offline")
    error = facade.state["delivery_persons"].error
    assert error.recoverable is True
    assert error.code == "network_error"
    assert "Check your internet connection" in error.suggestions


@pytest.mark.anyio
async def test_server_error_without_body(settings):
    backend = Backend({("POST", "/api/reservations/2/reject"): httpx.Response(503)})
    facade = _facade(settings, backend)
    await facade.start()

    with pytest.raises(ApiError) as exc_info:
        await facade.deny_reservation(2, "Kitchen closed")
    assert exc_info.value.message == "HTTP 503: Service Unavailable"
    assert exc_info.value.recoverable is True


@pytest.mark.anyio
async def test_live_assignment_matches_against_live_pool(settings):
    persons = [
        {"id": 9, "name": "Live Rider", "status": "available", "isActive": True, "rating": 4.2},
    ]
    assigned = dict(LIVE_DELIVERY, id=80, deliveryPersonId=9)
    backend = Backend({
        ("GET", "/api/delivery/persons"): persons,
        ("POST", "/api/delivery/assignments/80/assign"): assigned,
    })
    facade = _facade(settings, backend)
    await facade.start()

    delivery = await facade.assign_delivery("80")
    assert delivery.delivery_person_id == "9"
    body = json.loads(backend.requests[-1].content)
    assert body["deliveryPersonId"] == "9"
    assert body["estimatedDeliveryTime"] == "2024-01-15T12:30:00+00:00"


@pytest.mark.anyio
async def test_live_assignment_never_uses_synthetic_persons(settings):
    backend = Backend({
        ("GET", "/api/delivery/persons"): httpx.Response(500, json={"error": "boom"}),
        ("POST", "/api/delivery/assignments/80/assign"): dict(LIVE_DELIVERY, id=80),
    })
    facade = _facade(settings, backend)
    await facade.start()

    with pytest.raises(ApiError):
        await facade.assign_delivery("80")
    assert ("POST", "/api/delivery/assignments/80/assign") not in [
        (r.method, r.url.path) for r in backend.requests
    ]


LIVE_RESERVATION = {
    "id": 2,
    "customerName": "Live Guest",
    "reservationDateTime": "2024-01-29T18:30:00Z",
    "partySize": 4,
    "status": "PENDING",
}


@pytest.mark.anyio
async def test_live_approval_lets_backend_validate_table(settings):
    approved = dict(LIVE_RESERVATION, status="CONFIRMED", tableId=7, confirmedByUserId=5)
    backend = Backend({
        ("GET", "/api/reservations/2"): LIVE_RESERVATION,
        ("POST", "/api/reservations/2/approve/5"): approved,
    })
    facade = _facade(settings, backend)
    await facade.start()

    await facade.get_reservation(2)
    reservation = await facade.approve_reservation(2, 5, table_id=7)
    assert reservation.table_id == 7
    assert json.loads(backend.requests[-1].content) == {"tableId": 7}
    assert "/api/tables" not in backend.paths()


@pytest.mark.anyio
async def test_live_approval_checks_loaded_live_tables(settings):
    tables = [{"id": 7, "number": "T7", "capacity": 2, "isAvailable": True}]
    backend = Backend({
        ("GET", "/api/reservations/2"): LIVE_RESERVATION,
        ("GET", "/api/tables"): tables,
    })
    facade = _facade(settings, backend)
    await facade.start()

    await facade.get_reservation(2)
    await facade.load_tables()
    with pytest.raises(ValidationError):
        await facade.approve_reservation(2, 5, table_id=7)
    assert "/api/reservations/2/approve/5" not in backend.paths()
