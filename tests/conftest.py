"""
Shared test fixtures.

No real network calls: the backend is replaced by an in-memory
FinancialDataSource and HTTP clients use httpx.MockTransport.
"""

import asyncio
from typing import Any, Optional

import pytest

from finance_assistant.backend import FinancialDataSource
from finance_assistant.models.finance import ApiResponse


class FakeDataSource(FinancialDataSource):
    """
    In-memory backend.

    Each source is configured with an ApiResponse, a dict envelope, or an
    exception instance to raise. `delays` holds seconds to sleep before
    answering, per source name.
    """

    def __init__(
        self,
        balance: Any = None,
        transactions: Any = None,
        categories: Any = None,
        profile: Any = None,
        delays: Optional[dict[str, float]] = None,
    ):
        self._answers = {
            "balance": balance if balance is not None else ApiResponse.failed(),
            "transactions": transactions if transactions is not None else ApiResponse.failed(),
            "categories": categories if categories is not None else ApiResponse.failed(),
            "profile": profile if profile is not None else ApiResponse.failed(),
        }
        self._delays = delays or {}
        self.calls: list[str] = []
        self.requested_limits: list[int] = []

    async def _answer(self, name: str) -> ApiResponse:
        self.calls.append(name)
        delay = self._delays.get(name)
        if delay:
            await asyncio.sleep(delay)
        answer = self._answers[name]
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def get_balance(self) -> ApiResponse:
        return await self._answer("balance")

    async def get_recent_transactions(self, limit: int = 30) -> ApiResponse:
        self.requested_limits.append(limit)
        return await self._answer("transactions")

    async def get_categories(self) -> ApiResponse:
        return await self._answer("categories")

    async def get_profile(self) -> ApiResponse:
        return await self._answer("profile")


@pytest.fixture
def sample_categories() -> list[dict[str, Any]]:
    return [
        {"id": 1, "name": "Alimentação", "typeId": 1, "totalSpent": 450.5, "transactionCount": 12},
        {"id": 2, "name": "Salário", "typeId": 2, "totalSpent": 5000, "transactionCount": 1},
        {"id": 3, "name": "Reserva", "typeId": 3},
        {"id": 7, "name": "Transporte", "typeId": "1"},
    ]


@pytest.fixture
def sample_transactions() -> list[dict[str, Any]]:
    return [
        {
            "description": "Mercado Extra",
            "category": "Alimentação",
            "amount": -230.4,
            "date": "2024-03-15T10:00:00.000Z",
            "typeId": 1,
        },
        {
            "title": "Salário março",
            "categoryId": "2",
            "amount": 5000,
            "date": "2024-03-05",
        },
    ]


@pytest.fixture
def full_source(sample_categories, sample_transactions) -> FakeDataSource:
    return FakeDataSource(
        balance=ApiResponse(
            success=True,
            data={
                "total": 4769.6,
                "income": 5000,
                "expenses": 230.4,
                "change": 120,
                "changePercentage": 2.5,
            },
        ),
        transactions=ApiResponse(success=True, data=sample_transactions),
        categories=ApiResponse(success=True, data=sample_categories),
        profile=ApiResponse(success=True, data={"name": "Ana Souza", "email": "ana@example.com"}),
    )
