"""
Field Normalizer

Resolves transaction-like and category-like records of unknown shape into
canonical fields. Backend versions disagree on field names (camelCase vs
snake_case, nested vs flat, several synonyms for the same concept), so
every field is looked up through an ordered table of rules.

DESIGN DECISION: Priority orders are DATA, not branching.
Each field has a tuple of FieldRule entries evaluated in sequence;
the first rule that applies and yields a value wins, and every field has a
terminal default. This keeps the priority order visible, testable and easy
to extend.

CRITICAL: Every function here is TOTAL. Whatever the record looks like
(None, a list, wrong types, a pydantic model) the result is a value of the
declared type. Nothing in this module raises on bad input data.
"""

import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from pydantic import BaseModel

from finance_assistant.models.finance import (
    DATE_NOT_AVAILABLE,
    UNCATEGORIZED,
    UNNAMED_TRANSACTION,
    BalanceSummary,
    CanonicalTransaction,
    CategoryAggregate,
    CategoryKind,
    TransactionKind,
)


DEFAULT_DATE_FORMAT = "%d/%m/%Y"

NAME_KEYS = (
    "description",
    "title",
    "name",
    "label",
    "transactionName",
    "transaction_description",
    "transaction_name",
    "desc",
    "transacao",
)

SECONDARY_CATEGORY_KEYS = (
    "category",
    "categoryName",
    "category_name",
    "cat",
    "categoria",
    "transaction_category",
)

CATEGORY_ID_KEYS = ("categoryId", "category_id")
TYPE_ID_KEYS = ("typeId", "type_id")
EXPLICIT_KIND_KEYS = ("type", "kind")

# Backend category type ids
EXPENSE_TYPE_ID = "1"
INCOME_TYPE_ID = "2"
SAVINGS_TYPE_ID = "3"

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DATE_FORMATS = ("%d/%m/%Y", "%Y/%m/%d", "%d-%m-%Y")


Record = Mapping[str, Any]


class FieldRule(NamedTuple):
    """One step of a field's lookup order."""
    label: str
    applies: Callable[[Record, Sequence[Any]], bool]
    extract: Callable[[Record, Sequence[Any]], Any]


# =============================================================================
# PRIMITIVE COERCIONS
# =============================================================================

def as_record(value: Any) -> Record:
    """View anything as a read-only mapping; unknown shapes become empty."""
    if isinstance(value, Mapping):
        return value
    if isinstance(value, BaseModel):
        try:
            return value.model_dump()
        except Exception:
            return {}
    return {}


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


def coerce_text(value: Any) -> Optional[str]:
    """Non-empty trimmed string, or None."""
    value = _plain(value)
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return None


def coerce_number(value: Any) -> Optional[float]:
    """
    Finite float from a number or numeric string, or None.

    Accepts a decimal comma ("23,50", "1.234,56"). Booleans are not numbers.
    """
    value = _plain(value)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            if "," not in text:
                return None
            try:
                number = float(text.replace(".", "").replace(",", "."))
            except ValueError:
                return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _id_text(value: Any) -> Optional[str]:
    """Identifier compared as a string, so "3" matches 3."""
    value = _plain(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        text = str(value).strip()
        return text or None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return None


def _first(record: Record, keys: Sequence[str]) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def parse_date(value: Any) -> Optional[date]:
    """
    Date from a date/datetime, ISO-8601 string, common d/m/Y string or
    epoch milliseconds. Returns None when nothing sensible can be read.

    Timezone offsets are ignored: the calendar day as written wins.
    """
    value = _plain(value)
    try:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()
        if isinstance(value, str):
            text = value.strip()
            match = _ISO_DATE.match(text)
            if match:
                year, month, day = (int(part) for part in match.groups())
                return date(year, month, day)
            for fmt in _DATE_FORMATS:
                try:
                    return datetime.strptime(text, fmt).date()
                except ValueError:
                    continue
        return None
    except (ValueError, OverflowError, OSError):
        return None


# =============================================================================
# RULE BUILDERS
# =============================================================================

def _has_text(key: str) -> Callable[[Record, Sequence[Any]], bool]:
    return lambda record, _: coerce_text(record.get(key)) is not None


def _text_of(key: str) -> Callable[[Record, Sequence[Any]], Optional[str]]:
    return lambda record, _: coerce_text(record.get(key))


def _object_name(value: Any) -> Optional[str]:
    if isinstance(value, (Mapping, BaseModel)):
        return coerce_text(as_record(value).get("name"))
    return None


def _has_named_object(key: str) -> Callable[[Record, Sequence[Any]], bool]:
    return lambda record, _: _object_name(record.get(key)) is not None


def _named_object_of(key: str) -> Callable[[Record, Sequence[Any]], Optional[str]]:
    return lambda record, _: _object_name(record.get(key))


def _text_or_name_of(key: str) -> Callable[[Record, Sequence[Any]], Optional[str]]:
    return lambda record, _: (
        coerce_text(record.get(key)) or _object_name(record.get(key))
    )


def _find_category(record: Record, categories: Sequence[Any]) -> Optional[Record]:
    """First category whose id equals the record's categoryId (as strings)."""
    wanted = _id_text(_first(record, CATEGORY_ID_KEYS))
    if wanted is None:
        return None
    for category in categories or ():
        candidate = as_record(category)
        if _id_text(candidate.get("id")) == wanted:
            return candidate
    return None


def _has_category_id(record: Record, categories: Sequence[Any]) -> bool:
    return _id_text(_first(record, CATEGORY_ID_KEYS)) is not None


def _looked_up_category_name(record: Record, categories: Sequence[Any]) -> Optional[str]:
    found = _find_category(record, categories)
    return coerce_text(found.get("name")) if found is not None else None


def category_kind_of(record: Any) -> Optional[CategoryKind]:
    """Kind of a category record from its typeId or type string."""
    record = as_record(record)
    type_id = _id_text(_first(record, TYPE_ID_KEYS))
    if type_id == EXPENSE_TYPE_ID:
        return CategoryKind.EXPENSE
    if type_id == INCOME_TYPE_ID:
        return CategoryKind.INCOME
    if type_id == SAVINGS_TYPE_ID:
        return CategoryKind.SAVINGS
    label = coerce_text(_first(record, ("type", "kind")))
    if label:
        try:
            return CategoryKind(label.lower())
        except ValueError:
            return None
    return None


def _explicit_kind(record: Record) -> Optional[TransactionKind]:
    label = coerce_text(_first(record, EXPLICIT_KIND_KEYS))
    if label:
        try:
            return TransactionKind(label.lower())
        except ValueError:
            return None
    return None


def _type_id(record: Record) -> Optional[str]:
    return _id_text(_first(record, TYPE_ID_KEYS))


def _category_id(record: Record) -> Optional[str]:
    return _id_text(_first(record, CATEGORY_ID_KEYS))


def _looked_up_kind(record: Record, categories: Sequence[Any]) -> Optional[TransactionKind]:
    found = _find_category(record, categories)
    kind = category_kind_of(found) if found is not None else None
    if kind is CategoryKind.EXPENSE:
        return TransactionKind.EXPENSE
    if kind is CategoryKind.INCOME:
        return TransactionKind.INCOME
    return None


def _is_negative_amount(record: Record) -> bool:
    number = coerce_number(record.get("amount"))
    return number is not None and number < 0


# =============================================================================
# RULE TABLES
# =============================================================================

NAME_RULES: tuple[FieldRule, ...] = tuple(
    FieldRule(key, _has_text(key), _text_of(key)) for key in NAME_KEYS
)

CATEGORY_RULES: tuple[FieldRule, ...] = (
    FieldRule("category", _has_text("category"), _text_of("category")),
    FieldRule("category_name", _has_text("category_name"), _text_of("category_name")),
    FieldRule("category.name", _has_named_object("category"), _named_object_of("category")),
    FieldRule("categoryId lookup", _has_category_id, _looked_up_category_name),
) + tuple(
    FieldRule(
        f"{key} (fallback)",
        lambda record, categories, key=key: (
            _has_text(key)(record, categories) or _has_named_object(key)(record, categories)
        ),
        _text_or_name_of(key),
    )
    for key in SECONDARY_CATEGORY_KEYS
)

KIND_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        "explicit type",
        lambda record, _: _explicit_kind(record) is not None,
        lambda record, _: _explicit_kind(record),
    ),
    FieldRule(
        "expense sentinel id",
        lambda record, _: (
            _type_id(record) == EXPENSE_TYPE_ID or _category_id(record) == EXPENSE_TYPE_ID
        ),
        lambda record, _: TransactionKind.EXPENSE,
    ),
    FieldRule(
        "income type id",
        lambda record, _: _type_id(record) == INCOME_TYPE_ID,
        lambda record, _: TransactionKind.INCOME,
    ),
    FieldRule(
        "category kind",
        lambda record, categories: _find_category(record, categories) is not None,
        _looked_up_kind,
    ),
    FieldRule(
        "negative amount",
        lambda record, _: _is_negative_amount(record),
        lambda record, _: TransactionKind.EXPENSE,
    ),
    FieldRule(
        "other type id",
        lambda record, _: _type_id(record) is not None,
        lambda record, _: TransactionKind.INCOME,
    ),
)


def apply_rules(
    rules: Sequence[FieldRule],
    record: Any,
    categories: Optional[Sequence[Any]] = None,
    default: Any = None,
) -> Any:
    """Evaluate rules in order; the first non-None extraction wins."""
    record = as_record(record)
    categories = categories or ()
    for rule in rules:
        try:
            if not rule.applies(record, categories):
                continue
            value = rule.extract(record, categories)
        except Exception:
            # A rule that trips over a weird value simply doesn't match
            continue
        if value is not None:
            return value
    return default


# =============================================================================
# FIELD RESOLUTION
# =============================================================================

def resolve_name(record: Any) -> str:
    return apply_rules(NAME_RULES, record, default=UNNAMED_TRANSACTION)


def resolve_category(record: Any, categories: Optional[Sequence[Any]] = None) -> str:
    return apply_rules(CATEGORY_RULES, record, categories, default=UNCATEGORIZED)


def resolve_amount(record: Any) -> float:
    number = coerce_number(as_record(record).get("amount"))
    return abs(number) if number is not None else 0.0


def resolve_iso_date(record: Any) -> Optional[str]:
    parsed = parse_date(as_record(record).get("date"))
    return parsed.isoformat() if parsed is not None else None


def resolve_date(record: Any, date_format: str = DEFAULT_DATE_FORMAT) -> str:
    """Date formatted for display, or the "not available" sentinel."""
    parsed = parse_date(as_record(record).get("date"))
    if parsed is None:
        return DATE_NOT_AVAILABLE
    try:
        return parsed.strftime(date_format)
    except ValueError:
        return DATE_NOT_AVAILABLE


def resolve_kind(record: Any, categories: Optional[Sequence[Any]] = None) -> TransactionKind:
    """
    Direction of a transaction.

    Without a single signal the record is treated as an expense;
    income is never assumed.
    """
    return apply_rules(KIND_RULES, record, categories, default=TransactionKind.EXPENSE)


_RESOLVERS: dict[str, Callable[..., Any]] = {
    "name": lambda record, categories, date_format: resolve_name(record),
    "category": lambda record, categories, date_format: resolve_category(record, categories),
    "amount": lambda record, categories, date_format: resolve_amount(record),
    "date": lambda record, categories, date_format: resolve_date(record, date_format),
    "type": lambda record, categories, date_format: resolve_kind(record, categories),
    "kind": lambda record, categories, date_format: resolve_kind(record, categories),
}


def resolve(
    record: Any,
    field: str,
    categories: Optional[Sequence[Any]] = None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> Any:
    """
    Resolve one canonical field from a record of unknown shape.

    Args:
        record: Anything - dict, pydantic model, None...
        field: "name", "category", "amount", "date" or "type" ("kind")
        categories: Category list used to resolve categoryId references
        date_format: strftime format for the "date" field

    Raises:
        ValueError: If `field` is not a known field name. Bad *records*
            never raise.
    """
    try:
        resolver = _RESOLVERS[field]
    except KeyError:
        raise ValueError(f"Unknown field: {field!r}") from None
    return resolver(record, categories, date_format)


# =============================================================================
# WHOLE-RECORD NORMALIZATION
# =============================================================================

def normalize_transaction(
    record: Any,
    categories: Optional[Sequence[Any]] = None,
) -> CanonicalTransaction:
    """Raw transaction -> CanonicalTransaction. Idempotent on canonical input."""
    return CanonicalTransaction(
        name=resolve_name(record),
        category_name=resolve_category(record, categories),
        amount=resolve_amount(record),
        date=resolve_iso_date(record),
        kind=resolve_kind(record, categories),
    )


def normalize_category(record: Any) -> Optional[CategoryAggregate]:
    """
    Raw category -> CategoryAggregate.

    Returns None for records without a name or a recognizable kind;
    those cannot be placed in any context section.
    """
    raw = as_record(record)
    name = coerce_text(_first(raw, ("name", "title", "category_name")))
    kind = category_kind_of(raw)
    if name is None or kind is None:
        return None

    total = coerce_number(
        _first(raw, ("totalSpent", "total_spent", "totalAmount", "total_amount"))
    )
    count = coerce_number(_first(raw, ("transactionCount", "transaction_count")))
    return CategoryAggregate(
        name=name,
        kind=kind,
        total_amount=total,
        transaction_count=int(count) if count is not None and count >= 0 else None,
    )


def normalize_balance(record: Any) -> BalanceSummary:
    """Raw balance -> BalanceSummary; unreadable figures become 0."""
    raw = as_record(record)

    def figure(*keys: str) -> float:
        number = coerce_number(_first(raw, keys))
        return number if number is not None else 0.0

    return BalanceSummary(
        total=figure("total", "balance"),
        income=figure("income"),
        expenses=figure("expenses", "expense"),
        change=figure("change"),
        change_percentage=figure("changePercentage", "change_percentage"),
    )
