"""
Tests for the HTTP financial data source.
"""

import asyncio

import httpx
import pytest

from finance_assistant.backend import BackendError, HttpFinancialDataSource
from finance_assistant.config import BackendSettings
from finance_assistant.models.finance import RawCategory, RawTransaction


def make_source(handler, auth_token="token-123"):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpFinancialDataSource(
        "https://api.example.com/api/v1/",
        auth_token=auth_token,
        http_client=http_client,
    )


class TestEndpoints:
    """Tests for the four backend reads."""

    def test_balance(self):
        """Test the balance endpoint and auth header."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": {"total": 10}})

        response = asyncio.run(make_source(handler).get_balance())
        assert response.success
        assert response.data == {"total": 10}
        assert seen[0].url.path == "/api/v1/balance/all"
        assert seen[0].headers["Authorization"] == "Bearer token-123"

    def test_recent_transactions(self):
        """Test the limit parameter and raw transaction records."""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "success": True,
                "data": [{"description": "Uber", "amount": -12, "transaction_category": "Transporte"}, 5],
            })

        response = asyncio.run(make_source(handler).get_recent_transactions(limit=7))
        assert seen[0].url.path == "/api/v1/transactions/recent"
        assert seen[0].url.params["limit"] == "7"
        assert isinstance(response.data[0], RawTransaction)
        assert response.data[0].description == "Uber"
        assert response.data[1] == 5

    def test_categories_and_profile(self):
        """Test categories become raw category records; profile is passed through."""
        def handler(request):
            if request.url.path.endswith("/categories"):
                return httpx.Response(200, json={"success": True, "data": [{"id": 1, "name": "Mercado", "typeId": 1}]})
            return httpx.Response(200, json={"success": True, "data": {"name": "Ana"}})

        source = make_source(handler, auth_token=None)
        categories = asyncio.run(source.get_categories())
        profile = asyncio.run(source.get_profile())
        assert isinstance(categories.data[0], RawCategory)
        assert profile.data == {"name": "Ana"}


class TestErrors:
    """Tests for backend failures."""

    def test_error_status(self):
        """Test a non-2xx status becomes BackendError."""
        source = make_source(lambda request: httpx.Response(401, json={"message": "unauthorized"}))
        with pytest.raises(BackendError) as exc_info:
            asyncio.run(source.get_profile())
        assert exc_info.value.status_code == 401

    def test_malformed_body(self):
        """Test a non-JSON body becomes BackendError."""
        source = make_source(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(BackendError):
            asyncio.run(source.get_balance())

    def test_transport_errors_are_retried(self):
        """Test connection errors are retried before giving up."""
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) < 2:
                raise httpx.ConnectError("refused")
            return httpx.Response(200, json={"success": True, "data": {"total": 1}})

        response = asyncio.run(make_source(handler).get_balance())
        assert response.success
        assert len(attempts) == 2

    def test_transport_failure_after_retries(self):
        """Test persistent transport errors become BackendError."""
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectError("refused")

        with pytest.raises(BackendError):
            asyncio.run(make_source(handler).get_categories())
        assert len(attempts) == 3


def test_from_settings():
    """Test the source is built from BackendSettings."""
    source = HttpFinancialDataSource.from_settings(
        BackendSettings(base_url="http://localhost:3000/api/v1", auth_token="t")
    )
    asyncio.run(source.aclose())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
