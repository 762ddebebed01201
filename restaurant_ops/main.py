"""
FastAPI Application Entry Point

Restaurant Operations Console - admin HTTP API over the workflow facade.
Runs against the live restaurant backend when its health probe succeeds
and against the synthetic session datasets otherwise.

Endpoints:
    - GET /health: Backend connectivity and data-source mode
    - /api/orders: Order queue and status workflow
    - /api/delivery/persons, /api/delivery/assignments: Delivery dispatch
    - /api/delivery/metrics: Delivery statistics
    - /api/reservations, /api/tables: Reservation review

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from restaurant_ops.core.config import get_settings, setup_logging
from restaurant_ops.core.exceptions import (
    ApiError,
    InvalidTransitionError,
    NetworkError,
    NoEligiblePersonError,
    NotFoundError,
    PersonNotFoundError,
    UnknownStateError,
    ValidationError,
    WorkflowError,
)
from restaurant_ops.facade import WorkflowFacade
from restaurant_ops.models import (
    DeliveryAssignment,
    DeliveryMetrics,
    DeliveryPerson,
    DeliveryPriority,
    DeliveryProgress,
    DeliveryStatus,
    Order,
    OrderStatus,
    Reservation,
    ReservationStatus,
    Table,
)
from restaurant_ops.schemas import (
    ApproveReservationRequest,
    AssignDeliveryRequest,
    DeliveryDraft,
    DeliveryStatusUpdate,
    DenyReservationRequest,
    ErrorResponse,
    HealthResponse,
    OrderDraft,
    OrderStatusUpdate,
    PersonStatusUpdate,
    ReservationDraft,
    ReservationStatusUpdate,
)

logger = logging.getLogger(__name__)

# Checked in order, first match wins
ERROR_STATUS_CODES: list[tuple[type[WorkflowError], int]] = [
    (NotFoundError, 404),
    (PersonNotFoundError, 404),
    (InvalidTransitionError, 409),
    (NoEligiblePersonError, 409),
    (ValidationError, 400),
    (UnknownStateError, 400),
    (NetworkError, 503),
    (ApiError, 502),
]


def status_code_for(exc: WorkflowError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 500


# OpenAPI error payload for every mapped status
ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    status_code: {"model": ErrorResponse}
    for status_code in sorted({code for _, code in ERROR_STATUS_CODES})
}


def get_facade(request: Request) -> WorkflowFacade:
    return request.app.state.facade


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

root_router = APIRouter()


@root_router.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    settings = get_settings()
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@root_router.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Data Source Health",
)
async def health_check(facade: WorkflowFacade = Depends(get_facade)) -> HealthResponse:
    """Report whether the session is serving live or synthetic data."""
    return HealthResponse(
        status="operational" if facade.connected else "degraded",
        backend_connected=facade.connected,
        data_source=facade.data_source,
        timestamp=datetime.now(),
    )


@root_router.get("/api/state", tags=["Health"], summary="Per-domain loading and error state")
async def domain_state(facade: WorkflowFacade = Depends(get_facade)) -> dict[str, Any]:
    return {
        name: {
            "loading": state.loading,
            "error": state.error.to_dict() if state.error else None,
        }
        for name, state in facade.state.items()
    }


# =============================================================================
# ORDER ENDPOINTS
# =============================================================================

orders_router = APIRouter(prefix="/api/orders", tags=["Orders"], responses=ERROR_RESPONSES)


@orders_router.get("", response_model=List[Order])
async def list_orders(
    status: Optional[OrderStatus] = Query(None),
    customer_id: Optional[int] = Query(None),
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.load_orders(status=status, customer_id=customer_id)


@orders_router.get("/summary", summary="Order counts and completed revenue")
async def order_summary(facade: WorkflowFacade = Depends(get_facade)) -> dict[str, Any]:
    return await facade.order_summary()


@orders_router.get("/{order_id}", response_model=Order)
async def get_order(order_id: int, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.get_order(order_id)


@orders_router.post("", response_model=Order, status_code=201)
async def create_order(draft: OrderDraft, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.create_order(draft)


@orders_router.put("/{order_id}/status", response_model=Order)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.update_order_status(order_id, body.status)


@orders_router.post("/{order_id}/advance", response_model=Order)
async def advance_order(order_id: int, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.advance_order(order_id)


@orders_router.post("/{order_id}/cancel", response_model=Order)
async def cancel_order(order_id: int, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.cancel_order(order_id)


@orders_router.delete("/{order_id}", status_code=204)
async def delete_order(order_id: int, facade: WorkflowFacade = Depends(get_facade)) -> Response:
    await facade.delete_order(order_id)
    return Response(status_code=204)


# =============================================================================
# DELIVERY ENDPOINTS
# =============================================================================

delivery_router = APIRouter(
    prefix="/api/delivery", tags=["Delivery"], responses=ERROR_RESPONSES
)


@delivery_router.get("/persons", response_model=List[DeliveryPerson])
async def list_delivery_persons(
    available: bool = Query(False, description="Only persons eligible for assignment"),
    facade: WorkflowFacade = Depends(get_facade),
):
    if available:
        return await facade.available_delivery_persons()
    return await facade.load_delivery_persons()


@delivery_router.patch("/persons/{person_id}/status", response_model=DeliveryPerson)
async def update_delivery_person_status(
    person_id: str,
    body: PersonStatusUpdate,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.update_delivery_person_status(person_id, body.status)


@delivery_router.get("/assignments", response_model=List[DeliveryAssignment])
async def list_deliveries(
    status: Optional[List[DeliveryStatus]] = Query(None),
    delivery_person_id: Optional[str] = Query(None),
    priority: Optional[List[DeliveryPriority]] = Query(None),
    search: Optional[str] = Query(None),
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.load_deliveries({
        "status": status,
        "delivery_person_id": delivery_person_id,
        "priority": priority,
        "search": search,
    })


@delivery_router.post("/assignments", response_model=DeliveryAssignment, status_code=201)
async def create_delivery(draft: DeliveryDraft, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.create_delivery(draft)


@delivery_router.get("/assignments/{delivery_id}", response_model=DeliveryAssignment)
async def get_delivery(delivery_id: str, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.get_delivery(delivery_id)


@delivery_router.patch("/assignments/{delivery_id}/status", response_model=DeliveryAssignment)
async def update_delivery_status(
    delivery_id: str,
    body: DeliveryStatusUpdate,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.update_delivery_status(delivery_id, body.status, body.notes)


@delivery_router.post("/assignments/{delivery_id}/assign", response_model=DeliveryAssignment)
async def assign_delivery(
    delivery_id: str,
    body: AssignDeliveryRequest,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.assign_delivery(
        delivery_id,
        person_id=body.delivery_person_id,
        estimated_delivery_time=body.estimated_delivery_time,
        notes=body.notes,
    )


@delivery_router.post("/assignments/{delivery_id}/deliver", response_model=DeliveryAssignment)
async def mark_delivered(delivery_id: str, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.mark_delivered(delivery_id)


@delivery_router.get(
    "/assignments/{delivery_id}/progress",
    response_model=List[DeliveryProgress],
)
async def delivery_progress(delivery_id: str, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.delivery_progress(delivery_id)


@delivery_router.get("/metrics", response_model=DeliveryMetrics)
async def delivery_metrics(facade: WorkflowFacade = Depends(get_facade)):
    return await facade.delivery_metrics()


# =============================================================================
# RESERVATION ENDPOINTS
# =============================================================================

reservations_router = APIRouter(tags=["Reservations"], responses=ERROR_RESPONSES)


@reservations_router.get("/api/reservations", response_model=List[Reservation])
async def list_reservations(
    status: Optional[ReservationStatus] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    customer_name: Optional[str] = Query(None),
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.load_reservations({
        "status": status,
        "start_date": start_date,
        "end_date": end_date,
        "customer_name": customer_name,
    })


@reservations_router.get("/api/reservations/pending", response_model=List[Reservation])
async def list_pending_reservations(facade: WorkflowFacade = Depends(get_facade)):
    return await facade.load_pending_reservations()


@reservations_router.get("/api/reservations/{reservation_id}", response_model=Reservation)
async def get_reservation(reservation_id: int, facade: WorkflowFacade = Depends(get_facade)):
    return await facade.get_reservation(reservation_id)


@reservations_router.post("/api/reservations", response_model=Reservation, status_code=201)
async def create_reservation(
    draft: ReservationDraft,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.create_reservation(draft)


@reservations_router.post(
    "/api/reservations/{reservation_id}/approve",
    response_model=Reservation,
)
async def approve_reservation(
    reservation_id: int,
    body: ApproveReservationRequest,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.approve_reservation(
        reservation_id,
        body.approver_id,
        table_id=body.table_id,
        admin_notes=body.admin_notes,
    )


@reservations_router.post("/api/reservations/{reservation_id}/deny", response_model=Reservation)
async def deny_reservation(
    reservation_id: int,
    body: DenyReservationRequest,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.deny_reservation(reservation_id, body.reason, body.approver_id)


@reservations_router.put("/api/reservations/{reservation_id}/status", response_model=Reservation)
async def update_reservation_status(
    reservation_id: int,
    body: ReservationStatusUpdate,
    facade: WorkflowFacade = Depends(get_facade),
):
    return await facade.update_reservation_status(reservation_id, body.status)


@reservations_router.delete("/api/reservations/{reservation_id}", status_code=204)
async def delete_reservation(
    reservation_id: int,
    facade: WorkflowFacade = Depends(get_facade),
) -> Response:
    await facade.delete_reservation(reservation_id)
    return Response(status_code=204)


@reservations_router.get("/api/tables", response_model=List[Table])
async def list_tables(facade: WorkflowFacade = Depends(get_facade)):
    return await facade.load_tables()


# =============================================================================
# ERROR HANDLERS
# =============================================================================

async def workflow_exception_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Render workflow errors as the standard error payload."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    body = ErrorResponse(**exc.to_dict())
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")
    settings = get_settings()
    body = ErrorResponse(
        error="Internal Server Error",
        code="unexpected_error",
        detail=str(exc) if settings.debug else "An unexpected error occurred",
    )
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(facade: Optional[WorkflowFacade] = None) -> FastAPI:
    """
    Build the admin API.

    Args:
        facade: Pre-built session facade. Without one the lifespan builds
            a facade from settings and probes the backend on startup.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info(f"Starting {settings.app_name}")
        logger.info(f"   Version: {settings.app_version}")
        logger.info(f"   Environment: {settings.env_mode.value}")
        logger.info(f"   Backend: {settings.backend_base_url}")
        logger.info("=" * 60)

        if app.state.facade is None:
            app.state.facade = WorkflowFacade(settings)
        await app.state.facade.start()
        logger.info(f"Data source: {app.state.facade.data_source}")

        yield

        logger.info("Shutting down...")
        await app.state.facade.close()

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Admin console for the restaurant order, delivery and reservation "
            "workflows. Falls back to synthetic data when the backend is down."
        ),
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )
    app.state.facade = facade

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WorkflowError, workflow_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    app.include_router(root_router)
    app.include_router(orders_router)
    app.include_router(delivery_router)
    app.include_router(reservations_router)
    return app


def run() -> None:
    """Console entry point."""
    setup_logging()
    settings = get_settings()
    uvicorn.run(
        "restaurant_ops.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development and settings.debug,
    )


if __name__ == "__main__":
    run()
