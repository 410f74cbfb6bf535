"""Core package: provides settings, errors, DB models, schemas, and shared utilities."""

from .errors import ClarityError  # noqa: F401
from .models import NormalizedDraft, TransactionType  # noqa: F401
from .settings import Settings  # noqa: F401
from .utils import get_logger  # noqa: F401
