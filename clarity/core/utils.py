"""Shared utility functions for the Clarity project."""

import logging
import math
import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path

import colorlog
from dateutil import parser as date_parser

ROOT_LOGGER_NAME = "clarity"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
ISO_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
CENTS = Decimal("0.01")


def setup_logging(level: str = "INFO", log_file: str | None = None) -> logging.Logger:
    """Configure the ``clarity`` logger with a colorized console handler and an optional file handler."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())
    console_handlers = [h for h in logger.handlers if type(h) is logging.StreamHandler]
    if not console_handlers:
        handler = logging.StreamHandler()
        formatter = colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    # File handler for persistent logs (not colorized)
    if log_file and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(file_handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child of the ``clarity`` logger; records propagate to its handlers."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def to_number(val: object) -> float | None:
    """Read a finite float from a number or numeric string; return None otherwise."""
    if isinstance(val, bool) or val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
    try:
        number = float(val)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number):
        return None
    return number


def round_cents(value: float) -> float:
    """Round a value half-up to two decimal places."""
    try:
        return float(Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return round(value, 2)


def local_midnight(day: date) -> datetime:
    """Return local midnight (naive) of a calendar day."""
    return datetime.combine(day, time.min)


def parse_date_string(value: str) -> datetime | None:
    """Parse a date string into a naive local datetime, or None if it cannot be read.

    A strict ``YYYY-MM-DD`` string is taken as local midnight of that day; generic
    parsers disagree on whether a bare ISO date means UTC or local midnight.
    """
    value = value.strip()
    if not value:
        return None
    if ISO_DAY_PATTERN.match(value):
        try:
            return local_midnight(date.fromisoformat(value))
        except ValueError:
            return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def truncate_for_log(text: str, limit: int = 80) -> str:
    """Shorten text for log lines."""
    return text if len(text) <= limit else text[: limit - 3] + "..."
