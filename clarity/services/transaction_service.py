"""Owner-scoped CRUD over transactions.

Every lookup filters on both the transaction id and the owning user in a single predicate,
so an id owned by someone else reads exactly like an id that does not exist.
"""

from datetime import datetime, time
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clarity.core.db import NOTE_MAX_LENGTH, TRANSACTION_TYPES, Transaction
from clarity.core.errors import InternalError, InvalidAmountError, NotFoundError, ValidationError
from clarity.core.models import NormalizedDraft, TransactionFilters
from clarity.core.utils import ISO_DAY_PATTERN, get_logger, parse_date_string, round_cents, to_number

UPDATABLE_FIELDS = ("type", "amount", "category", "date", "note")
DEFAULT_CATEGORY = "Misc"
TRANSACTION_NOT_FOUND = "Transaction not found"

logger = get_logger("clarity.transactions")


def coerce_amount(value: object) -> float:
    """Read an amount from a number or numeric string; store its absolute value in cents."""
    number = to_number(value)
    if number is None:
        msg = "Amount must be a valid number"
        raise InvalidAmountError(msg)
    amount = round_cents(abs(number))
    if amount <= 0:
        msg = "Amount must be greater than zero"
        raise InvalidAmountError(msg)
    return amount


def coerce_type(value: object) -> str:
    """Check that the transaction type is one of the known variants."""
    if value not in TRANSACTION_TYPES:
        msg = "Type must be either income or expense"
        raise ValidationError(msg)
    return value


def coerce_date(value: object) -> datetime:
    """Read a transaction date; datetimes pass through, strings are parsed."""
    if isinstance(value, datetime):
        return value
    parsed = parse_date_string(value) if isinstance(value, str) else None
    if parsed is None:
        msg = "Date must be a valid date"
        raise ValidationError(msg)
    return parsed


def clean_category(value: object) -> str:
    """Trim the category, defaulting blank labels to Misc."""
    return str(value).strip() or DEFAULT_CATEGORY


def clean_note(value: object) -> str | None:
    """Trim and cap the note; blank notes are stored as empty."""
    if value is None:
        return None
    return str(value).strip()[:NOTE_MAX_LENGTH]


def parse_filter_date(value: str | None, *, end_of_day: bool = False) -> datetime | None:
    """Parse a filter bound; a bare end date covers the whole calendar day."""
    if not value or not value.strip():
        return None
    parsed = parse_date_string(value)
    if parsed is None:
        msg = f"Invalid date filter: {value}"
        raise ValidationError(msg)
    if end_of_day and ISO_DAY_PATTERN.match(value.strip()):
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


def category_matches(category: str | None, needle: str) -> bool:
    """Case-insensitive substring match using full Unicode case folding."""
    return needle.casefold() in (category or "").casefold()


class TransactionService:
    """Service for a user's transactions backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        """Initialize the service with a SQLAlchemy session."""
        self.session = session

    def list(self, user_id: str, filters: TransactionFilters | None = None) -> list[Transaction]:
        """Return the user's transactions matching the filters, newest first."""
        filters = filters or TransactionFilters()
        start = parse_filter_date(filters.start_date)
        end = parse_filter_date(filters.end_date, end_of_day=True)
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        if start is not None:
            stmt = stmt.where(Transaction.date >= start)
        if end is not None:
            stmt = stmt.where(Transaction.date <= end)
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.created_at.desc())
        try:
            transactions = list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to load transactions for user {user_id}")
            msg = "Failed to load transactions"
            raise InternalError(msg) from exc
        # SQLite's lower() only folds ASCII, so the category needle is matched here.
        needle = (filters.category or "").strip()
        if needle:
            transactions = [t for t in transactions if category_matches(t.category, needle)]
        return transactions

    def create(self, user_id: str, fields: dict[str, Any]) -> Transaction:
        """Validate the fields and store a new transaction for the user."""
        type_ = fields.get("type")
        amount = fields.get("amount")
        category = fields.get("category")
        if not type_ or amount is None or not category:
            msg = "Type, amount, and category are required"
            raise ValidationError(msg)
        date_value = fields.get("date")
        transaction = Transaction(
            user_id=user_id,
            type=coerce_type(type_),
            amount=coerce_amount(amount),
            category=clean_category(category),
            date=coerce_date(date_value) if date_value else datetime.now(),
            note=clean_note(fields.get("note")),
        )
        self._commit(transaction, "Failed to create transaction")
        logger.info(f"Created transaction {transaction.id} for user {user_id}")
        return transaction

    def create_from_draft(self, user_id: str, draft: NormalizedDraft, date: datetime) -> Transaction:
        """Store a normalized draft under the user with an already resolved date."""
        return self.create(
            user_id,
            {
                "type": draft.type,
                "amount": draft.amount,
                "category": draft.category,
                "date": date,
                "note": draft.note,
            },
        )

    def update(self, user_id: str, transaction_id: str, fields: dict[str, Any]) -> Transaction:
        """Apply the allowed fields to one of the user's transactions."""
        updates = {key: fields[key] for key in UPDATABLE_FIELDS if key in fields}
        # A null type, amount, category or date is treated as not supplied.
        updates = {key: value for key, value in updates.items() if value is not None or key == "note"}
        if "type" in updates:
            updates["type"] = coerce_type(updates["type"])
        if "amount" in updates:
            updates["amount"] = coerce_amount(updates["amount"])
        if "category" in updates:
            updates["category"] = clean_category(updates["category"])
        if "date" in updates:
            updates["date"] = coerce_date(updates["date"])
        if "note" in updates:
            updates["note"] = clean_note(updates["note"])

        transaction = self._get_owned(user_id, transaction_id)
        for key, value in updates.items():
            setattr(transaction, key, value)
        self._commit(transaction, "Failed to update transaction")
        logger.info(f"Updated transaction {transaction_id} for user {user_id}: {sorted(updates)}")
        return transaction

    def delete(self, user_id: str, transaction_id: str) -> None:
        """Delete one of the user's transactions."""
        stmt = delete(Transaction).where(Transaction.id == transaction_id, Transaction.user_id == user_id)
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception(f"Failed to delete transaction {transaction_id}")
            msg = "Failed to delete transaction"
            raise InternalError(msg) from exc
        if result.rowcount == 0:
            raise NotFoundError(TRANSACTION_NOT_FOUND)
        logger.info(f"Deleted transaction {transaction_id} for user {user_id}")

    def _get_owned(self, user_id: str, transaction_id: str) -> Transaction:
        """Look up a transaction by id and owner in one query."""
        stmt = select(Transaction).where(Transaction.id == transaction_id, Transaction.user_id == user_id)
        try:
            transaction = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to load transaction {transaction_id}")
            msg = "Failed to update transaction"
            raise InternalError(msg) from exc
        if transaction is None:
            raise NotFoundError(TRANSACTION_NOT_FOUND)
        return transaction

    def _commit(self, transaction: Transaction, failure_message: str) -> None:
        """Add and commit a transaction, mapping DB failures to a generic error."""
        try:
            self.session.add(transaction)
            self.session.commit()
            self.session.refresh(transaction)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception(failure_message)
            raise InternalError(failure_message) from exc
