"""Shared fixtures for the workflow engine tests."""
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx
import pytest

from restaurant_ops.core.config import Settings
from restaurant_ops.facade import WorkflowFacade
from restaurant_ops.services.datasource import BackendLink, HttpTransport

BACKEND_URL = "http://backend.test"

# 2024-01-15 12:00 UTC, same day as the synthetic delivery data
FIXED_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_link(
    handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    force_mock: bool = False,
) -> BackendLink:
    """BackendLink whose HTTP traffic is answered by `handler`."""
    if handler is None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BACKEND_URL)
    return BackendLink(HttpTransport(BACKEND_URL, client=client), force_mock=force_mock)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    return Settings(backend_base_url=BACKEND_URL, force_mock=False, debug=False)


@pytest.fixture
def offline_facade(settings) -> WorkflowFacade:
    """Facade whose backend refuses every connection (mock mode after start())."""
    return WorkflowFacade(settings, link=make_link(), clock=fixed_clock)
