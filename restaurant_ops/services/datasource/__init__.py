"""
DataSource Factory

Single entry point for building the session's BackendLink. The rest of
the application stays agnostic about whether the live backend or the
synthetic datasets answer a call.

Usage:
    from restaurant_ops.services.datasource import create_backend_link

    link = create_backend_link()
    await link.probe()   # once per session

Mode Switching:
    - FORCE_MOCK=true -> probe skipped, synthetic data only
    - otherwise -> live when GET {BACKEND_BASE_URL}/api/health answers 2xx

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Optional

import httpx

from restaurant_ops.core.config import Settings, get_settings
from restaurant_ops.services.datasource.gateway import (
    BackendLink,
    DataSourceGateway,
    DataSourceMode,
    parse_model,
    parse_models,
)
from restaurant_ops.services.datasource.transport import HttpTransport

logger = logging.getLogger(__name__)


def create_backend_link(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> BackendLink:
    """
    Build a BackendLink from configuration.

    Args:
        settings: Settings to use (defaults to get_settings())
        client: Pre-built httpx client, e.g. one with a MockTransport

    Returns:
        BackendLink: Unprobed link; call probe() before the first request
    """
    settings = settings or get_settings()
    transport = HttpTransport(
        settings.backend_base_url,
        timeout=settings.request_timeout,
        client=client,
    )
    logger.info(
        f"DataSource: backend {settings.backend_base_url} "
        f"(force_mock={settings.force_mock})"
    )
    return BackendLink(
        transport,
        health_path=settings.health_path,
        force_mock=settings.force_mock,
    )


__all__ = [
    "create_backend_link",
    "BackendLink",
    "DataSourceGateway",
    "DataSourceMode",
    "HttpTransport",
    "parse_model",
    "parse_models",
]
