"""API package: provides FastAPI dependencies and route definitions for the application."""

from .dependencies import get_agent, get_current_user_id, get_db, get_settings  # noqa: F401
from .routes import auth_router, router, transactions_router  # noqa: F401
