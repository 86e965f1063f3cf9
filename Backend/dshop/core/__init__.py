"""
Core module - configuration, database and response formatting.

The request context lives in ``core.request_context`` and is imported from
there directly; it depends on the models, which depend on ``core.db``.
"""
from .config import get_settings
from .db import get_session, Base, engine, AsyncSessionLocal
from .responses import (
    Reasons,
    success_response,
    failure_response,
)

__all__ = [
    # Config
    "get_settings",
    # Database
    "get_session",
    "Base",
    "engine",
    "AsyncSessionLocal",
    # Responses
    "Reasons",
    "success_response",
    "failure_response",
]
