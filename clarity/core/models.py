"""Pydantic models for the Clarity API.

This module defines the request and response schemas used by the routes, and the
``NormalizedDraft`` produced by the transaction agent. Request models accept loose types;
the services validate them so that the client gets the API's own error messages.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

TransactionType = Literal["income", "expense"]


class RegisterRequest(BaseModel):
    """Body of a registration request."""

    name: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    """Body of a login request."""

    email: str | None = None
    password: str | None = None


class UserOut(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str


class AuthResponse(BaseModel):
    """User and session token returned by register and login."""

    user: UserOut
    token: str


class TransactionCreate(BaseModel):
    """Body of a structured transaction creation request."""

    type: str | None = None
    amount: Any = None
    category: str | None = None
    date: str | None = None
    note: str | None = None


class TransactionUpdate(BaseModel):
    """Body of an update request; unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    type: str | None = None
    amount: Any = None
    category: str | None = None
    date: str | None = None
    note: str | None = None


class AITransactionRequest(BaseModel):
    """Body of a free-text transaction request."""

    prompt: str | None = None
    user_date: str | None = Field(default=None, alias="userDate")

    model_config = ConfigDict(populate_by_name=True)


class TransactionFilters(BaseModel):
    """Optional filters for listing transactions."""

    type: str | None = None
    category: str | None = None
    start_date: str | None = None
    end_date: str | None = None


class TransactionOut(BaseModel):
    """Public view of a transaction."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    user_id: str = Field(validation_alias=AliasChoices("user_id", "user"), serialization_alias="user")
    type: TransactionType
    amount: float
    category: str
    date: datetime
    note: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TransactionEnvelope(BaseModel):
    """Single transaction response."""

    transaction: TransactionOut


class TransactionListEnvelope(BaseModel):
    """Transaction list response."""

    transactions: list[TransactionOut]


class MessageResponse(BaseModel):
    """Plain message response."""

    message: str


class NormalizedDraft(BaseModel):
    """Transaction guessed by the language model, coerced into strict types.

    Never persisted on its own: it either becomes a transaction or is discarded.
    """

    type: TransactionType
    category: str
    amount: float
    date: date
    note: str
    original_prompt: str
    model_identifier: str


class CategoryTotal(BaseModel):
    """Total amount for one category."""

    category: str
    total: float


class CategoryBreakdown(BaseModel):
    """Top categories per transaction type."""

    income: list[CategoryTotal] = []
    expense: list[CategoryTotal] = []


class Summary(BaseModel):
    """Income, expenses and balance over a set of transactions."""

    income: float = 0.0
    expenses: float = 0.0
    balance: float = 0.0
    count: int = 0
    categories: CategoryBreakdown = CategoryBreakdown()


class SummaryEnvelope(BaseModel):
    """Summary response."""

    summary: Summary
