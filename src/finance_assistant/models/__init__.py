"""
Data Models Package

This package contains all Pydantic models used in the Finance Assistant.
Raw models describe untrusted input; canonical models are what the rest
of the system works with.
"""

from finance_assistant.models.finance import (
    DATE_NOT_AVAILABLE,
    UNCATEGORIZED,
    UNNAMED_EXTRACTION,
    UNNAMED_TRANSACTION,
    ApiResponse,
    BalanceSummary,
    CanonicalTransaction,
    CategoryAggregate,
    CategoryKind,
    ContextSection,
    ContextSource,
    ConversationMessage,
    ExtractedTransaction,
    FinancialContext,
    MessageRole,
    RawCategory,
    RawTransaction,
    TransactionKind,
)

__all__ = [
    # Placeholders
    "DATE_NOT_AVAILABLE",
    "UNCATEGORIZED",
    "UNNAMED_EXTRACTION",
    "UNNAMED_TRANSACTION",
    # Enums
    "CategoryKind",
    "ContextSection",
    "ContextSource",
    "MessageRole",
    "TransactionKind",
    # Raw models
    "ApiResponse",
    "RawCategory",
    "RawTransaction",
    # Canonical models
    "BalanceSummary",
    "CanonicalTransaction",
    "CategoryAggregate",
    "ConversationMessage",
    "ExtractedTransaction",
    "FinancialContext",
]
