"""
Backend Data Package

Provides the abstract data-source interface and its HTTP implementation.
"""

from finance_assistant.backend.interface import BackendError, FinancialDataSource
from finance_assistant.backend.http_client import HttpFinancialDataSource

__all__ = [
    # Interface
    "FinancialDataSource",
    # Exceptions
    "BackendError",
    # HTTP implementation
    "HttpFinancialDataSource",
]
