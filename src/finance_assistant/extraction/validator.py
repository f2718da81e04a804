"""
Extraction Validator

Turns the AI's free-text reply to an extraction prompt into an
ExtractedTransaction.

TWO STAGES:

STAGE 1 - LOCATE AND PARSE (may fail):
- Find the brace span: first "{" to last "}" (greedy). The model often
  wraps the JSON in prose or a code fence, so we do not parse the whole reply.
- Parse it as JSON. No span or invalid JSON raises ExtractionParseError.
  A span that parses is always an object: it starts with "{" and ends with "}".

STAGE 2 - COERCE (never fails):
- name       -> "Transação" if absent
- amount     -> leading-number parse (like JavaScript parseFloat), NaN -> 0
- date       -> today (YYYY-MM-DD) if absent
- type       -> "income" only if exactly "income", otherwise "expense"
- description, categoryName -> passed through, None if absent

IMPORTANT: An unparsable reply is an ERROR, never a guessed default
transaction. The caller must ask the user to retry.
"""

import json
import math
import re
from datetime import date
from typing import Any, Callable, Optional

from finance_assistant.models.finance import (
    UNNAMED_EXTRACTION,
    ExtractedTransaction,
    TransactionKind,
)
from finance_assistant.observability import get_logger


logger = get_logger(__name__)

_BRACE_SPAN = re.compile(r"\{[\s\S]*\}")
_LEADING_FLOAT = re.compile(
    r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?Infinity)"
)


class ExtractionParseError(Exception):
    """The AI reply does not carry a usable JSON object."""

    def __init__(self, message: str, raw_text: Optional[str] = None):
        self.raw_text = raw_text
        super().__init__(message)


def parse_float(value: Any) -> float:
    """
    Number from a JSON value, the forgiving way.

    Strings are read up to the first character that can't continue a
    number ("23.5 reais" -> 23.5). Anything unreadable or non-finite is 0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_FLOAT.match(value)
        if not match:
            return 0.0
        try:
            number = float(match.group(1).replace("Infinity", "inf"))
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


class ExtractionValidator:
    """
    Parser for extraction replies (receipt image / transaction audio).

    Not used for plain chat replies.
    """

    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today

    def locate_json(self, raw_text: str) -> dict[str, Any]:
        """
        Stage 1: find and parse the JSON object.

        Raises:
            ExtractionParseError: No brace span or invalid JSON
        """
        if not isinstance(raw_text, str):
            raise ExtractionParseError("AI reply is not text", raw_text=None)

        match = _BRACE_SPAN.search(raw_text)
        if not match:
            logger.warning("extraction_parse_failed", reason="no_json_object")
            raise ExtractionParseError(
                "Não foi possível extrair dados estruturados da resposta",
                raw_text=raw_text,
            )

        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.warning("extraction_parse_failed", reason="invalid_json", error=str(e))
            raise ExtractionParseError(
                f"A resposta contém JSON inválido: {e.msg}",
                raw_text=raw_text,
            ) from e

        return data

    def coerce(self, data: dict[str, Any]) -> ExtractedTransaction:
        """Stage 2: fill defaults. Total - never raises."""
        name = data.get("name")
        raw_date = data.get("date")
        return ExtractedTransaction(
            name=name.strip() if isinstance(name, str) and name.strip() else UNNAMED_EXTRACTION,
            amount=parse_float(data.get("amount")),
            date=(
                raw_date.strip()
                if isinstance(raw_date, str) and raw_date.strip()
                else self._today().isoformat()
            ),
            type=(
                TransactionKind.INCOME
                if data.get("type") == "income"
                else TransactionKind.EXPENSE
            ),
            description=_optional_text(data.get("description")),
            category_name=_optional_text(data.get("categoryName")),
        )

    def parse(self, raw_text: str) -> ExtractedTransaction:
        """
        Reply text -> ExtractedTransaction.

        Raises:
            ExtractionParseError: If no valid JSON object can be found
        """
        transaction = self.coerce(self.locate_json(raw_text))
        logger.info(
            "extraction_parsed",
            type=transaction.type.value,
            has_category=transaction.category_name is not None,
        )
        return transaction
