"""
Abstract Financial Data Source

DESIGN DECISION: The backend API is a collaborator, not part of this core.
We define an abstract interface for the four reads the assistant needs.
This allows us to:
1. Use an in-memory source in tests
2. Point the assistant at a different backend without touching it
3. Keep context building decoupled from HTTP details

Every read returns the backend's {success, data} envelope.
Implementations RAISE on transport or protocol failure; turning failures
into degraded output is the caller's decision (see ContextAggregator).
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_assistant.models.finance import ApiResponse


class FinancialDataSource(ABC):
    """Read-only access to a user's financial data."""

    @abstractmethod
    async def get_balance(self) -> ApiResponse:
        """
        Overall balance summary.

        Returns:
            Envelope whose data looks like
            {total, income, expenses, change, changePercentage}
        """
        pass

    @abstractmethod
    async def get_recent_transactions(self, limit: int = 30) -> ApiResponse:
        """
        Most recent transactions, newest first.

        Args:
            limit: Maximum number of transactions to return

        Returns:
            Envelope whose data is a list of transaction records
            of unspecified shape
        """
        pass

    @abstractmethod
    async def get_categories(self) -> ApiResponse:
        """
        All categories of the user.

        Returns:
            Envelope whose data is a list of
            {id, name, typeId | type, totalSpent?, transactionCount?}
        """
        pass

    @abstractmethod
    async def get_profile(self) -> ApiResponse:
        """
        Profile of the authenticated user.

        Returns:
            Envelope whose data carries at least name or email
        """
        pass


class BackendError(Exception):
    """Base exception for backend reads."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
