"""
Mente Merecedora - FastAPI Backend.

REST API for the Portal Mente Merecedora.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_service_container,
    ServiceContainer,
)
from .schemas import (
    DataResponse,
    ListResponse,
    MessageResponse,
    HealthResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_service_container",
    "ServiceContainer",
    # Schemas
    "DataResponse",
    "ListResponse",
    "MessageResponse",
    "HealthResponse",
]
