"""User registration, login and session tokens."""

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clarity.core.db import User
from clarity.core.errors import (
    AuthError,
    DuplicateEmailError,
    InternalError,
    InvalidCredentialsError,
    ValidationError,
    WeakPasswordError,
)
from clarity.core.settings import Settings
from clarity.core.utils import get_logger

BCRYPT_ROUNDS = 10
# bcrypt only reads the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72
PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = '!@#$%^&*(),.?":{}|<>'

PASSWORD_RULES = (
    (lambda p: len(p) >= PASSWORD_MIN_LENGTH, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"),
    (lambda p: re.search(r"[A-Z]", p), "Password must contain at least one uppercase letter"),
    (lambda p: re.search(r"[a-z]", p), "Password must contain at least one lowercase letter"),
    (lambda p: re.search(r"[0-9]", p), "Password must contain at least one number"),
    (lambda p: any(c in PASSWORD_SYMBOLS for c in p), "Password must contain at least one special character"),
)

logger = get_logger("clarity.auth")


def validate_password(password: str) -> list[str]:
    """Return every password rule the password fails; empty when it is acceptable."""
    return [message for check, message in PASSWORD_RULES if not check(password)]


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    hashed = bcrypt.hashpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    return bcrypt.checkpw(password.encode("utf-8")[:BCRYPT_MAX_BYTES], password_hash.encode("utf-8"))


def normalize_email(email: str) -> str:
    """Emails are matched trimmed and case-insensitively."""
    return email.strip().lower()


@dataclass
class AuthResult:
    """A user together with a freshly issued session token."""

    user: User
    token: str


class AuthService:
    """Service for registering and authenticating users."""

    def __init__(self, session: Session, settings: Settings) -> None:
        """Initialize the service with a SQLAlchemy session and the token settings."""
        self.session = session
        self.settings = settings

    def register(self, name: str | None, email: str | None, password: str | None) -> AuthResult:
        """Create a user after checking required fields, password policy and email uniqueness."""
        name = (name or "").strip()
        email = normalize_email(email or "")
        if not name or not email or not password:
            msg = "Name, email, and password are required"
            raise ValidationError(msg)
        errors = validate_password(password)
        if errors:
            raise WeakPasswordError(errors)
        if self._find_by_email(email) is not None:
            raise DuplicateEmailError
        user = User(name=name, email=email, password_hash=hash_password(password))
        try:
            self.session.add(user)
            self.session.commit()
            self.session.refresh(user)
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateEmailError from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Registration error")
            msg = "Failed to register user"
            raise InternalError(msg) from exc
        logger.info(f"Registered user {user.id}")
        return AuthResult(user=user, token=self.create_token(user.id))

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Check credentials; unknown email and wrong password fail the same way."""
        email = normalize_email(email or "")
        if not email or not password:
            msg = "Email and password are required"
            raise ValidationError(msg)
        user = self._find_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError
        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, token=self.create_token(user.id))

    def create_token(self, user_id: str) -> str:
        """Issue a signed token for the user, valid for the configured number of days."""
        now = datetime.now(UTC)
        payload = {"id": user_id, "iat": now, "exp": now + timedelta(days=self.settings.jwt_expire_days)}
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def authenticate(self, token: str) -> str:
        """Return the id of the user a token was issued to."""
        try:
            payload = jwt.decode(token, self.settings.jwt_secret, algorithms=[self.settings.jwt_algorithm])
        except JWTError as exc:
            msg = "Token is not valid"
            raise AuthError(msg) from exc
        user_id = payload.get("id")
        if not user_id or self.session.get(User, user_id) is None:
            msg = "Token is not valid"
            raise AuthError(msg)
        return user_id

    def _find_by_email(self, email: str) -> User | None:
        try:
            return self.session.execute(select(User).where(User.email == email)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("Failed to look up user")
            msg = "Failed to look up user"
            raise InternalError(msg) from exc
