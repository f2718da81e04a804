"""
HTTP Financial Data Source

Talks to the backend REST API with httpx.

Endpoints (relative to the configured base URL):
- GET /balance/all
- GET /transactions/recent?limit=N
- GET /categories
- GET /auth/profile

Transport errors (connection refused, reset, timeouts) are retried a few
times with exponential backoff. HTTP error statuses are NOT retried: the
backend answered, and answered no.
"""

from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_assistant.backend.interface import BackendError, FinancialDataSource
from finance_assistant.config import BackendSettings, get_settings
from finance_assistant.models.finance import ApiResponse, RawCategory, RawTransaction
from finance_assistant.observability import get_logger


logger = get_logger(__name__)


class HttpFinancialDataSource(FinancialDataSource):
    """
    Backend client over HTTP.

    Owns its httpx.AsyncClient unless one is injected; use as an async
    context manager or call aclose() when done.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: Optional[str] = None,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._auth_token = auth_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[BackendSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "HttpFinancialDataSource":
        settings = settings or get_settings().backend
        return cls(
            base_url=settings.base_url,
            auth_token=settings.auth_token,
            timeout=settings.timeout_seconds,
            http_client=http_client,
        )

    async def __aenter__(self) -> "HttpFinancialDataSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def _send(self, path: str, params: Optional[dict[str, Any]] = None) -> httpx.Response:
        return await self._client.get(
            f"{self._base_url}{path}",
            params=params,
            headers=self._headers(),
        )

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> ApiResponse:
        """
        GET an endpoint and parse the {success, data} envelope.

        Raises:
            BackendError: On transport failure, non-2xx status or a body
                that is not a valid envelope
        """
        try:
            response = await self._send(path, params)
        except httpx.HTTPError as e:
            logger.warning("backend_transport_failed", path=path, error=str(e))
            raise BackendError(f"Backend request to {path} failed: {e}") from e

        if not response.is_success:
            raise BackendError(
                f"Backend returned {response.status_code} for {path}",
                status_code=response.status_code,
            )

        try:
            return ApiResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BackendError(
                f"Malformed backend response for {path}: {e}",
                status_code=response.status_code,
            ) from e

    async def get_balance(self) -> ApiResponse:
        return await self._get("/balance/all")

    async def get_recent_transactions(self, limit: int = 30) -> ApiResponse:
        envelope = await self._get("/transactions/recent", params={"limit": limit})
        if isinstance(envelope.data, list):
            envelope = envelope.model_copy(update={
                "data": [
                    RawTransaction.model_validate(item) if isinstance(item, dict) else item
                    for item in envelope.data
                ]
            })
        return envelope

    async def get_categories(self) -> ApiResponse:
        envelope = await self._get("/categories")
        if isinstance(envelope.data, list):
            envelope = envelope.model_copy(update={
                "data": [
                    RawCategory.model_validate(item) if isinstance(item, dict) else item
                    for item in envelope.data
                ]
            })
        return envelope

    async def get_profile(self) -> ApiResponse:
        return await self._get("/auth/profile")
