"""
Tests for Finance Assistant models

Test strategy:
1. Unit tests for individual components (models, normalizer, validator)
2. Integration tests for flows (with mocked external services)
3. No real API calls in tests (use mocks)
"""

import pytest
from datetime import datetime, timezone

from pydantic import ValidationError

from finance_assistant.models.finance import (
    UNCATEGORIZED,
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
    RawTransaction,
    TransactionKind,
)


class TestApiResponse:
    """Tests for the backend envelope."""

    def test_failed_sentinel(self):
        """Test the failure sentinel carries no data."""
        response = ApiResponse.failed("boom")
        assert response.success is False
        assert response.data is None
        assert response.error == "boom"
        assert not response.has_data

    def test_has_data_false_for_empty_collections(self):
        """Test an empty list or dict does not count as data."""
        assert not ApiResponse(success=True, data=[]).has_data
        assert not ApiResponse(success=True, data={}).has_data
        assert ApiResponse(success=True, data=[{"id": 1}]).has_data

    def test_has_data_false_when_unsuccessful(self):
        """Test data is ignored when success is false."""
        assert not ApiResponse(success=False, data={"total": 1}).has_data

    def test_ignores_unknown_keys(self):
        """Test extra envelope keys are dropped."""
        response = ApiResponse.model_validate({"success": True, "data": 1, "meta": {}})
        assert response.data == 1


class TestRawModels:
    """Tests for loosely-typed backend records."""

    def test_raw_transaction_keeps_unknown_keys(self):
        """Test snake_case variants survive as extra fields."""
        raw = RawTransaction.model_validate({"transaction_name": "Uber", "amount": "12"})
        assert raw.model_dump()["transaction_name"] == "Uber"
        assert raw.amount == "12"


class TestCanonicalModels:
    """Tests for canonical models."""

    def test_canonical_transaction_defaults(self):
        """Test placeholders instead of empty values."""
        transaction = CanonicalTransaction()
        assert transaction.name == UNNAMED_TRANSACTION
        assert transaction.category_name == UNCATEGORIZED
        assert transaction.amount == 0.0
        assert transaction.date is None
        assert transaction.kind == TransactionKind.EXPENSE

    def test_canonical_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValidationError):
            CanonicalTransaction(amount=-1)

    def test_canonical_transaction_rejects_empty_name(self):
        """Test empty names are rejected."""
        with pytest.raises(ValidationError):
            CanonicalTransaction(name="")

    def test_canonical_transaction_is_frozen(self):
        """Test canonical values cannot be mutated."""
        transaction = CanonicalTransaction(name="Uber")
        with pytest.raises(ValidationError):
            transaction.name = "Taxi"

    def test_balance_summary_alias(self):
        """Test changePercentage is accepted by alias and by name."""
        assert BalanceSummary(changePercentage=2.5).change_percentage == 2.5
        assert BalanceSummary(change_percentage=1.5).change_percentage == 1.5

    def test_category_aggregate_optional_totals(self):
        """Test totals are optional."""
        category = CategoryAggregate(name="Reserva", kind=CategoryKind.SAVINGS)
        assert category.total_amount is None
        assert category.transaction_count is None


class TestFinancialContext:
    """Tests for FinancialContext."""

    def test_partial_flag(self):
        """Test a context with missing sources is partial."""
        context = FinancialContext(
            text="x",
            sections=(ContextSection.BALANCE,),
            missing_sources=(ContextSource.PROFILE,),
        )
        assert context.is_partial
        assert str(context) == "x"

    def test_complete_context(self):
        """Test a context without missing sources is not partial."""
        context = FinancialContext(text="x")
        assert not context.is_partial
        assert context.generated_at.tzinfo is not None


class TestExtractedTransaction:
    """Tests for ExtractedTransaction."""

    def test_category_name_alias(self):
        """Test categoryName is accepted as an alias."""
        extracted = ExtractedTransaction.model_validate({
            "name": "Uber",
            "amount": 23.5,
            "date": "2024-03-15",
            "type": "expense",
            "categoryName": "Transporte",
        })
        assert extracted.category_name == "Transporte"
        assert extracted.type == TransactionKind.EXPENSE
        assert extracted.description is None


class TestConversationMessage:
    """Tests for ConversationMessage."""

    def test_ids_are_unique(self):
        """Test every message gets its own id."""
        first = ConversationMessage(content="oi", role=MessageRole.USER)
        second = ConversationMessage(content="oi", role=MessageRole.USER)
        assert first.id != second.id

    def test_timestamp_is_utc(self):
        """Test the default timestamp is timezone-aware."""
        message = ConversationMessage(content="oi", role=MessageRole.ASSISTANT)
        assert message.timestamp.tzinfo is not None
        assert message.timestamp <= datetime.now(timezone.utc)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
