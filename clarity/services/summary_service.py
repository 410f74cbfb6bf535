"""Totals, category breakdowns and CSV export over a set of transactions."""

from collections.abc import Iterable

import pandas as pd

from clarity.core.db import Transaction
from clarity.core.models import CategoryBreakdown, CategoryTotal, Summary
from clarity.core.utils import round_cents

TOP_CATEGORIES = 6
UNCATEGORIZED = "Uncategorized"
EXPORT_COLUMNS = ["date", "type", "category", "amount", "note"]


def to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Load transactions into a DataFrame with the export columns."""
    rows = [{column: getattr(txn, column) for column in EXPORT_COLUMNS} for txn in transactions]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def _top_categories(frame: pd.DataFrame, type_: str) -> list[CategoryTotal]:
    subset = frame[frame["type"] == type_]
    if subset.empty:
        return []
    labels = subset["category"].fillna("").astype(str).str.strip().replace("", UNCATEGORIZED)
    totals = subset["amount"].groupby(labels).sum().sort_values(ascending=False).head(TOP_CATEGORIES)
    return [CategoryTotal(category=str(category), total=round_cents(total)) for category, total in totals.items()]


def summarize(transactions: Iterable[Transaction]) -> Summary:
    """Compute income, expenses, balance and the top categories per type."""
    frame = to_frame(transactions)
    if frame.empty:
        return Summary()
    income = float(frame.loc[frame["type"] == "income", "amount"].sum())
    expenses = float(frame.loc[frame["type"] == "expense", "amount"].sum())
    return Summary(
        income=round_cents(income),
        expenses=round_cents(expenses),
        balance=round_cents(income - expenses),
        count=len(frame),
        categories=CategoryBreakdown(
            income=_top_categories(frame, "income"),
            expense=_top_categories(frame, "expense"),
        ),
    )


def to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text."""
    frame = to_frame(transactions)
    if frame.empty:
        return frame.to_csv(index=False)
    frame["date"] = pd.to_datetime(frame["date"]).dt.strftime("%Y-%m-%d")
    frame["note"] = frame["note"].fillna("")
    return frame.to_csv(index=False)
