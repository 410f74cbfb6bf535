"""Agents package: provides the LLM client handle and the transaction normalization agent."""

from .base import BaseAgent  # noqa: F401
from .transaction_agent import TransactionAgent  # noqa: F401
