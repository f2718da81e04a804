"""Conversation session package."""

from finance_assistant.session.conversation import (
    CHAT_FALLBACK,
    FINANCIAL_KEYWORDS,
    ConversationSession,
    needs_financial_data,
)

__all__ = [
    "CHAT_FALLBACK",
    "FINANCIAL_KEYWORDS",
    "ConversationSession",
    "needs_financial_data",
]
