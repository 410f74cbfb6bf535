"""Process-wide Groq client handle.

The client is built on first use and reused by every request. It is rebuilt only when
the settings it was built from (API key, timeout) change.
"""

import threading

from groq import Groq

from clarity.core.errors import UpstreamUnavailableError
from clarity.core.settings import Settings
from clarity.core.utils import get_logger

logger = get_logger("clarity.agent")

_client_lock = threading.Lock()
_client: Groq | None = None
_client_config: tuple[str, float] | None = None


def get_llm_client(settings: Settings) -> Groq:
    """Return the shared Groq client, building it on first use."""
    global _client, _client_config  # noqa: PLW0603
    if not settings.groq_api_key:
        msg = "GROQ_API_KEY is missing. Add it to your .env file."
        raise UpstreamUnavailableError(msg)
    config = (settings.groq_api_key, settings.llm_timeout)
    with _client_lock:
        if _client is None or _client_config != config:
            logger.info(f"Creating Groq client (timeout={settings.llm_timeout}s)")
            # No retries: a failed call surfaces to the caller immediately.
            _client = Groq(api_key=settings.groq_api_key, timeout=settings.llm_timeout, max_retries=0)
            _client_config = config
        return _client


def reset_llm_client() -> None:
    """Drop the cached client so the next call builds a new one."""
    global _client, _client_config  # noqa: PLW0603
    with _client_lock:
        _client = None
        _client_config = None
