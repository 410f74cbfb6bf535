"""FastAPI endpoints for the Clarity API.

This module defines the routes for registration and login, transaction CRUD, AI-assisted
transaction entry, summaries and CSV export, plus health checks. It wires together the
auth service, transaction service, summary service and the transaction agent.
"""

import io

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from clarity.agents.base import BaseAgent
from clarity.api.dependencies import get_agent, get_auth_service, get_current_user_id, get_transaction_service
from clarity.core.models import (
    AITransactionRequest,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    SummaryEnvelope,
    TransactionCreate,
    TransactionEnvelope,
    TransactionFilters,
    TransactionListEnvelope,
    TransactionOut,
    TransactionUpdate,
    UserOut,
)
from clarity.core.utils import get_logger
from clarity.services.auth_service import AuthResult, AuthService
from clarity.services.dates import resolve_date
from clarity.services.summary_service import summarize, to_csv
from clarity.services.transaction_service import TransactionService

router = APIRouter()
auth_router = APIRouter(prefix="/auth", tags=["auth"])
transactions_router = APIRouter(prefix="/transactions", tags=["transactions"])
logger = get_logger("clarity.api")


def get_filters(
    type: str | None = Query(None, description="Exact transaction type: income or expense."),  # noqa: A002
    category: str | None = Query(None, description="Case-insensitive substring of the category."),
    start_date: str | None = Query(None, alias="startDate", description="Inclusive lower bound on the date."),
    end_date: str | None = Query(None, alias="endDate", description="Inclusive upper bound on the date."),
) -> TransactionFilters:
    """Collect the optional list filters from the query string."""
    return TransactionFilters(type=type, category=category, start_date=start_date, end_date=end_date)


def _auth_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(user=UserOut.model_validate(result.user), token=result.token)


@router.get("/", summary="API banner", response_model=MessageResponse)
async def root() -> dict:
    """Return a banner confirming the API is up."""
    return {"message": "Clarity API is running"}


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@auth_router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    summary="Register a new user",
    description=(
        "Create an account and return the user together with a session token.\n\n"
        "**Password policy:** at least 8 characters, one uppercase letter, one lowercase letter, "
        "one number and one special character. Every unmet rule is listed in `errors`.\n\n"
        "**Response:**\n"
        "- 201 Created: `{ 'user': {...}, 'token': '<jwt>' }`.\n"
        "- 400 Bad Request: missing fields, weak password, or email already registered."
    ),
    responses={
        400: {
            "description": "Validation failed.",
            "content": {
                "application/json": {
                    "example": {
                        "message": "Password validation failed",
                        "errors": ["Password must contain at least one special character"],
                    }
                }
            },
        },
    },
)
def register(body: RegisterRequest, auth: AuthService = Depends(get_auth_service)) -> AuthResponse:
    """Register a user and issue a token."""
    return _auth_response(auth.register(body.name, body.email, body.password))


@auth_router.post(
    "/login",
    response_model=AuthResponse,
    summary="Log in",
    description=(
        "Exchange email and password for a session token.\n\n"
        "- 200 OK: `{ 'user': {...}, 'token': '<jwt>' }`.\n"
        "- 401 Unauthorized: `Invalid credentials`, whether the email is unknown or the password is wrong."
    ),
    responses={
        401: {
            "description": "Invalid credentials.",
            "content": {"application/json": {"example": {"message": "Invalid credentials"}}},
        },
    },
)
def login(body: LoginRequest, auth: AuthService = Depends(get_auth_service)) -> AuthResponse:
    """Log a user in and issue a token."""
    return _auth_response(auth.login(body.email, body.password))


@transactions_router.get("", response_model=TransactionListEnvelope, summary="List transactions")
def list_transactions(
    filters: TransactionFilters = Depends(get_filters),
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionListEnvelope:
    """List the caller's transactions, newest first."""
    transactions = service.list(user_id, filters)
    return TransactionListEnvelope(transactions=[TransactionOut.model_validate(t) for t in transactions])


@transactions_router.get(
    "/summary",
    response_model=SummaryEnvelope,
    summary="Summarize transactions",
    description="Income, expenses, balance and top categories over the transactions matching the filters.",
)
def summarize_transactions(
    filters: TransactionFilters = Depends(get_filters),
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> SummaryEnvelope:
    """Summarize the caller's filtered transactions."""
    return SummaryEnvelope(summary=summarize(service.list(user_id, filters)))


@transactions_router.get(
    "/export",
    response_class=StreamingResponse,
    summary="Export transactions as CSV",
    responses={200: {"description": "CSV file download.", "content": {"text/csv": {}}}},
)
def export_transactions(
    filters: TransactionFilters = Depends(get_filters),
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> StreamingResponse:
    """Download the caller's filtered transactions as a CSV attachment."""
    data = to_csv(service.list(user_id, filters))
    return StreamingResponse(
        io.BytesIO(data.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@transactions_router.post("", status_code=201, response_model=TransactionEnvelope, summary="Create a transaction")
def create_transaction(
    body: TransactionCreate,
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionEnvelope:
    """Create a transaction from structured form fields."""
    transaction = service.create(user_id, body.model_dump())
    return TransactionEnvelope(transaction=TransactionOut.model_validate(transaction))


@transactions_router.post(
    "/ai",
    status_code=201,
    response_model=TransactionEnvelope,
    summary="Create a transaction from a free-text note",
    description=(
        "Send a free-text note such as `paid 1200 for groceries yesterday`. The note is classified by the "
        "language model, validated, and stored. A non-empty `userDate` overrides the date the model picked.\n\n"
        "**Response:**\n"
        "- 201 Created: `{ 'transaction': {...} }`.\n"
        "- 400 Bad Request: the note is empty.\n"
        "- 422 Unprocessable Entity: no valid amount could be determined.\n"
        "- 502 Bad Gateway: the model replied with something that is not a JSON object.\n"
        "- 503 Service Unavailable: the model is not configured.\n"
        "- Other statuses are passed through from the model provider."
    ),
    responses={
        400: {"content": {"application/json": {"example": {"message": "Say something about the transaction first."}}}},
        422: {"content": {"application/json": {"example": {"message": "AI could not determine a valid amount"}}}},
        502: {"content": {"application/json": {"example": {"message": "AI response did not contain JSON"}}}},
    },
)
def create_transaction_from_ai(
    body: AITransactionRequest,
    user_id: str = Depends(get_current_user_id),
    agent: BaseAgent = Depends(get_agent),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionEnvelope:
    """Normalize a free-text note with the agent and store it."""
    draft = agent.normalize(body.prompt or "")
    date = resolve_date(body.user_date, draft.date)
    transaction = service.create_from_draft(user_id, draft, date)
    logger.info(f"AI transaction {transaction.id} created with {draft.model_identifier}")
    return TransactionEnvelope(transaction=TransactionOut.model_validate(transaction))


@transactions_router.put("/{transaction_id}", response_model=TransactionEnvelope, summary="Update a transaction")
def update_transaction(
    transaction_id: str,
    body: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionEnvelope:
    """Update the allowed fields of one of the caller's transactions."""
    transaction = service.update(user_id, transaction_id, body.model_dump(exclude_unset=True))
    return TransactionEnvelope(transaction=TransactionOut.model_validate(transaction))


@transactions_router.delete(
    "/{transaction_id}",
    response_model=MessageResponse,
    summary="Delete a transaction",
    responses={
        404: {
            "description": "Transaction not found or owned by another user.",
            "content": {"application/json": {"example": {"message": "Transaction not found"}}},
        },
    },
)
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_current_user_id),
    service: TransactionService = Depends(get_transaction_service),
) -> dict:
    """Delete one of the caller's transactions."""
    service.delete(user_id, transaction_id)
    return {"message": "Transaction removed"}
