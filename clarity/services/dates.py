"""Date resolution for transactions created from free text."""

from datetime import date, datetime

from clarity.core.utils import local_midnight, parse_date_string


def resolve_date(
    user_date: str | None = None,
    ai_date: str | date | None = None,
    now: datetime | None = None,
) -> datetime:
    """Pick the final date of an AI-entered transaction.

    A non-empty date typed by the user wins over the model's suggestion. The chosen value is
    parsed (a bare ``YYYY-MM-DD`` is local midnight); when nothing usable is left, the current
    local time is returned. Never raises.
    """
    fallback = now or datetime.now()
    chosen: str | date | None = None
    if isinstance(user_date, str) and user_date.strip():
        chosen = user_date.strip()
    else:
        chosen = ai_date

    if isinstance(chosen, datetime):
        return chosen
    if isinstance(chosen, date):
        return local_midnight(chosen)
    if isinstance(chosen, str):
        return parse_date_string(chosen) or fallback
    return fallback
