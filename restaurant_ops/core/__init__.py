"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from restaurant_ops.core.config import (
    get_settings,
    setup_logging,
    Settings,
    EnvironmentMode,
)
from restaurant_ops.core.exceptions import (
    WorkflowError,
    ValidationError,
    InvalidTransitionError,
    UnknownStateError,
    NotFoundError,
    NoEligiblePersonError,
    PersonNotFoundError,
    NetworkError,
    ApiError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "WorkflowError",
    "ValidationError",
    "InvalidTransitionError",
    "UnknownStateError",
    "NotFoundError",
    "NoEligiblePersonError",
    "PersonNotFoundError",
    "NetworkError",
    "ApiError",
]
