"""
================================================================================
API Testing Framework
================================================================================

Framework components shared by the Taiga API suites.

Modules:
    - http_client: Authenticated transport with Allure logging
    - config_loader: YAML configuration management
    - token_manager: Taiga login and token caching
    - errors: Error taxonomy mapped from HTTP statuses
    - session: setup_client / teardown_client test context
    - data_factory: Unique test data and cleanup tracking
    - logging_setup: Loguru sink configuration

Author: Automation Team
License: MIT
================================================================================
"""

from .config_loader import ConfigLoader, ConfigurationError
from .errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    TaigaError,
    TransportError,
    ValidationError,
)
from .http_client import HttpClient
from .logging_setup import init_logger
from .token_manager import TokenManager

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "HttpClient",
    "TokenManager",
    "init_logger",
    "TaigaError",
    "TransportError",
    "AuthenticationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
]
