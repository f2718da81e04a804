"""Field normalization package."""

from finance_assistant.normalization.normalizer import (
    CATEGORY_RULES,
    DEFAULT_DATE_FORMAT,
    KIND_RULES,
    NAME_RULES,
    FieldRule,
    apply_rules,
    as_record,
    category_kind_of,
    coerce_number,
    coerce_text,
    normalize_balance,
    normalize_category,
    normalize_transaction,
    parse_date,
    resolve,
    resolve_amount,
    resolve_category,
    resolve_date,
    resolve_iso_date,
    resolve_kind,
    resolve_name,
)

__all__ = [
    "CATEGORY_RULES",
    "DEFAULT_DATE_FORMAT",
    "KIND_RULES",
    "NAME_RULES",
    "FieldRule",
    "apply_rules",
    "as_record",
    "category_kind_of",
    "coerce_number",
    "coerce_text",
    "normalize_balance",
    "normalize_category",
    "normalize_transaction",
    "parse_date",
    "resolve",
    "resolve_amount",
    "resolve_category",
    "resolve_date",
    "resolve_iso_date",
    "resolve_kind",
    "resolve_name",
]
