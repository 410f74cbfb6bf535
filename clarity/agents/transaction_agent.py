"""TransactionAgent: turns free-text transaction notes into normalized drafts using an LLM.

The agent sends one chat completion per note, extracts the JSON object from the reply and
coerces every field into strict types. Coercion substitutes safe defaults for every field
except ``amount``: an amount that is missing, non-numeric or not positive rejects the note.
"""

import json
import re
from datetime import date, datetime

import groq

from clarity.agents.base import BaseAgent
from clarity.agents.client import get_llm_client
from clarity.agents.prompts import SYSTEM_PROMPT, USER_PROMPT_LOG_LABEL, USER_PROMPT_TEMPLATE
from clarity.core.db import NOTE_MAX_LENGTH
from clarity.core.errors import (
    EmptyInputError,
    InvalidAmountError,
    MalformedResponseError,
    UpstreamError,
)
from clarity.core.models import NormalizedDraft, TransactionType
from clarity.core.settings import Settings
from clarity.core.utils import get_logger, parse_date_string, round_cents, to_number, truncate_for_log

CATEGORY_MAX_LEN = 30
DEFAULT_CATEGORY = "Misc"
CODE_FENCE_PATTERN = re.compile(r"```json|```", re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r"\s+")

logger = get_logger("clarity.agent")


def extract_json(raw_output: str | None) -> str:
    """Return the slice of the reply between the first ``{`` and the last ``}``."""
    if not raw_output:
        msg = "AI response was empty"
        raise MalformedResponseError(msg)
    without_fences = CODE_FENCE_PATTERN.sub("", raw_output).strip()
    start = without_fences.find("{")
    end = without_fences.rfind("}")
    if start == -1 or end == -1:
        msg = "AI response did not contain JSON"
        raise MalformedResponseError(msg)
    return without_fences[start : end + 1]


def normalize_type(value: object) -> TransactionType:
    """Map anything but the literal ``income`` to ``expense``."""
    return "income" if value == "income" else "expense"


def normalize_amount(value: object) -> float:
    """Return the amount rounded to cents; raise if it is not a positive number."""
    number = to_number(value)
    if number is None or number <= 0:
        msg = "AI could not determine a valid amount"
        raise InvalidAmountError(msg, status_code=422)
    amount = round_cents(abs(number))
    if amount <= 0:
        msg = "AI could not determine a valid amount"
        raise InvalidAmountError(msg, status_code=422)
    return amount


def normalize_category(value: object) -> str:
    """Trim and collapse whitespace, cap the length, and default blank labels to Misc."""
    if not value:
        return DEFAULT_CATEGORY
    category = WHITESPACE_PATTERN.sub(" ", str(value).strip())[:CATEGORY_MAX_LEN]
    return category or DEFAULT_CATEGORY


def normalize_date(value: object, today: date | None = None) -> date:
    """Read a calendar day from the model's answer, falling back to today.

    The draft only carries a calendar day, so a missing or unreadable date becomes today
    rather than the current instant; the time of day is settled later by ``resolve_date``.
    """
    fallback = today or datetime.now().date()
    if not value:
        return fallback
    parsed = parse_date_string(str(value))
    return parsed.date() if parsed else fallback


def normalize_note(value: object, fallback: str) -> str:
    """Trim and cap the note, falling back to the original input."""
    if not value:
        return fallback[:NOTE_MAX_LENGTH]
    return str(value).strip()[:NOTE_MAX_LENGTH]


class TransactionAgent(BaseAgent):
    """Agent responsible for LLM-based normalization of free-text transaction notes."""

    def __init__(self, settings: Settings, llm_client: object | None = None) -> None:
        """Initialize the agent; without an explicit client the shared Groq client is used."""
        self.settings = settings
        self.llm_client = llm_client

    def normalize(self, free_text: str) -> NormalizedDraft:
        """Ask the LLM to classify the note and coerce its answer into a draft."""
        trimmed = (free_text or "").strip()
        if not trimmed:
            msg = "Say something about the transaction first."
            raise EmptyInputError(msg)
        client = self.llm_client or get_llm_client(self.settings)
        logger.info(f"PROMPT: {USER_PROMPT_LOG_LABEL} | INPUT: {truncate_for_log(trimmed)}")
        raw_output = self._complete(client, trimmed)
        logger.info(f"OUTPUT: {truncate_for_log(raw_output or '', 300)}")
        data = self._parse_json(raw_output)
        draft = NormalizedDraft(
            type=normalize_type(data.get("type")),
            amount=normalize_amount(data.get("amount")),
            category=normalize_category(data.get("category")),
            date=normalize_date(data.get("date")),
            note=normalize_note(data.get("note"), trimmed),
            original_prompt=trimmed,
            model_identifier=self.settings.groq_model,
        )
        logger.info(f"AGENT: Normalized transaction: {draft.model_dump(exclude={'original_prompt'})}")
        return draft

    def _complete(self, client: object, text: str) -> str | None:
        """Send one chat completion request and return the reply text."""
        prompt = USER_PROMPT_TEMPLATE.format(system=SYSTEM_PROMPT, text=text)
        try:
            completion = client.chat.completions.create(
                model=self.settings.groq_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.settings.llm_temperature,
                max_completion_tokens=self.settings.llm_max_completion_tokens,
                response_format={"type": "json_object"},
            )
        except groq.APIStatusError as exc:
            msg = f"AI service returned an error ({exc.status_code})"
            logger.exception(msg)
            raise UpstreamError(msg, status_code=exc.status_code) from exc
        except groq.APITimeoutError as exc:
            msg = "AI service timed out"
            logger.exception(msg)
            raise UpstreamError(msg, status_code=504) from exc
        except groq.APIError as exc:
            msg = "AI service could not be reached"
            logger.exception(msg)
            raise UpstreamError(msg) from exc
        if not completion.choices:
            return None
        return completion.choices[0].message.content

    def _parse_json(self, raw_output: str | None) -> dict:
        """Extract and parse the JSON object from the reply."""
        payload = extract_json(raw_output)
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.warning(f"Failed to parse JSON: {exc}")
            msg = "AI response was not valid JSON"
            raise MalformedResponseError(msg) from exc
        if not isinstance(data, dict):
            msg = "AI response was not a JSON object"
            raise MalformedResponseError(msg)
        return data
