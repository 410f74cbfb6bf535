"""Base agent abstraction for transaction normalization agents.

This module defines the abstract base class for agents that turn free text into a
``NormalizedDraft``, so the routes can depend on the interface rather than a provider.
"""

from abc import ABC, abstractmethod

from clarity.core.models import NormalizedDraft


class BaseAgent(ABC):
    """Abstract base class for all agents."""

    @abstractmethod
    def normalize(self, free_text: str) -> NormalizedDraft:
        """Turn a free-text transaction note into a normalized draft."""
