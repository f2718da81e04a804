"""Financial context package."""

from finance_assistant.context.aggregator import ContextAggregator, format_money

__all__ = ["ContextAggregator", "format_money"]
