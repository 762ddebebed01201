"""
DataSource Gateway

Every domain service reads and writes through a DataSourceGateway, which
decides per call whether to talk to the live backend or to the local
session store.

Mode selection:
    - BackendLink.probe() hits the health endpoint once per session and
      sets `connected`. It is never re-probed, so a backend that comes
      back mid-session is only picked up on the next start.
    - connected reads: call the backend and cache the answer; on any
      failure serve the synthetic dataset instead
    - connected writes: call the backend and cache the answer; failures
      propagate to the caller
    - disconnected: reads and writes go straight to the local store,
      seeded with the synthetic dataset on first use

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from restaurant_ops.core.exceptions import ValidationError, WorkflowError
from restaurant_ops.services.datasource.transport import HttpTransport
from restaurant_ops.workflow.stores import ResourceStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)
R = TypeVar("R")
M = TypeVar("M", bound=BaseModel)


class DataSourceMode:
    LIVE = "live"
    MOCK = "mock"
    FALLBACK = "fallback"


def parse_model(model: type[M], payload: Any) -> M:
    """Validate one backend payload, mapping schema errors to ValidationError."""
    try:
        return model.model_validate(payload)
    except SchemaError as e:
        raise ValidationError(
            f"Backend returned an invalid {model.__name__}: {e.errors()[0]['msg']}"
        ) from e


def parse_models(model: type[M], payload: Any) -> list[M]:
    if not isinstance(payload, list):
        raise ValidationError(f"Expected a list of {model.__name__} from the backend")
    return [parse_model(model, item) for item in payload]


class BackendLink:
    """
    Shared connection state for all gateways of a session.

    Attributes:
        transport: HTTP transport bound to the backend base URL
        connected: Result of the one-shot health probe
    """

    def __init__(
        self,
        transport: HttpTransport,
        health_path: str = "/api/health",
        force_mock: bool = False,
    ):
        self.transport = transport
        self.health_path = health_path
        self.force_mock = force_mock
        self.connected = False
        self._probed = False

    @property
    def probed(self) -> bool:
        return self._probed

    async def probe(self) -> bool:
        """
        Check backend health once. Later calls return the first result.

        Any 2xx answer counts as connected; every failure (timeout,
        refused connection, non-2xx) counts as disconnected.
        """
        if self._probed:
            return self.connected
        self._probed = True

        if self.force_mock:
            logger.info("DataSource: mock mode forced, skipping backend probe")
            return False

        try:
            await self.transport.get(self.health_path)
        except WorkflowError as e:
            logger.warning(f"DataSource: backend unavailable ({e.message}), using synthetic data")
            self.connected = False
        else:
            logger.info(f"DataSource: connected to {self.transport.base_url}")
            self.connected = True
        return self.connected

    async def close(self) -> None:
        await self.transport.close()


class DataSourceGateway(Generic[T]):
    """
    Live-or-local switch for one resource type.

    Args:
        name: Resource name used in log lines
        link: Shared BackendLink
        store: Local store holding the session copy of the resource
        fallback: Builds the synthetic dataset; called at most once

    Example:
        >>> gateway = DataSourceGateway("deliveries", link, store, mock_deliveries)
        >>> rows = await gateway.read(
        ...     live=fetch_deliveries,
        ...     local=store.list,
        ... )
    """

    def __init__(
        self,
        name: str,
        link: BackendLink,
        store: ResourceStore[T],
        fallback: Callable[[], Iterable[T]],
    ):
        self.name = name
        self.link = link
        self.store = store
        self._fallback = fallback
        self._seeded = False
        self.mode = DataSourceMode.MOCK

    @property
    def seeded(self) -> bool:
        return self._seeded

    def seed(self) -> None:
        """Load the synthetic dataset into the store (first call only)."""
        if self._seeded:
            return
        self.store.load(self._fallback())
        self._seeded = True
        logger.info(f"DataSource[{self.name}]: seeded {len(self.store)} synthetic rows")

    async def read(
        self,
        live: Callable[[], Awaitable[R]],
        local: Callable[[], R],
    ) -> R:
        """
        Read live when connected, otherwise (or on failure) from the store.

        Errors raised by `local` (e.g. NotFoundError) propagate normally.
        """
        if self.link.connected:
            try:
                result = await live()
            except WorkflowError as e:
                logger.warning(
                    f"DataSource[{self.name}]: live read failed ({e.message}), "
                    f"serving synthetic data"
                )
                self.mode = DataSourceMode.FALLBACK
                self.seed()
                return local()
            self.mode = DataSourceMode.LIVE
            return result

        self.mode = DataSourceMode.MOCK
        self.seed()
        return local()

    async def write(
        self,
        live: Callable[[], Awaitable[R]],
        local: Callable[[], R],
    ) -> R:
        """Write live when connected (errors propagate), else to the store."""
        if self.link.connected:
            return await live()
        self.seed()
        return local()
