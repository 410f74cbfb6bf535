"""FastAPI dependencies for DI (settings, DB session, services, agent, current user).

Settings and the session factory are built once per application in the lifespan hook and
kept on ``app.state``; each request gets its own session.
"""

from collections.abc import Iterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from clarity.agents.base import BaseAgent
from clarity.agents.transaction_agent import TransactionAgent
from clarity.core.errors import AuthError
from clarity.core.settings import Settings
from clarity.services.auth_service import AuthService
from clarity.services.transaction_service import TransactionService

bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    """Provide the application settings."""
    return request.app.state.settings


def get_db(request: Request) -> Iterator[Session]:
    """Provide a SQLAlchemy session for the duration of one request."""
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_agent(settings: Settings = Depends(get_settings)) -> BaseAgent:
    """Provide a TransactionAgent instance for dependency injection."""
    return TransactionAgent(settings)


def get_auth_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> AuthService:
    """Provide an AuthService bound to the request session."""
    return AuthService(db, settings)


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    """Provide a TransactionService bound to the request session."""
    return TransactionService(db)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> str:
    """Resolve the bearer token to the id of the calling user."""
    if credentials is None or not credentials.credentials:
        msg = "No token, authorization denied"
        raise AuthError(msg)
    return auth.authenticate(credentials.credentials)
