"""Core infrastructure: config, database, logging, middleware, exceptions."""

from app.core.config import Settings, get_settings
from app.core.database import Base, get_db, session_scope
from app.core.exceptions import SeedForgeError
from app.core.logging import get_logger, request_id_ctx, run_id_ctx

__all__ = [
    "Base",
    "SeedForgeError",
    "Settings",
    "get_db",
    "get_logger",
    "get_settings",
    "request_id_ctx",
    "run_id_ctx",
    "session_scope",
]
