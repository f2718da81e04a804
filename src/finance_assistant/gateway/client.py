"""
AI Gateway Client (Gemini generateContent REST API)

DESIGN DECISION: We call the REST endpoint directly with httpx instead of
going through an SDK, because the request envelope IS the contract:
- one system instruction (persona or task prompt, optionally with the
  user's financial context)
- one content block whose parts are the inline media (when present)
  followed by a text instruction

    POST {base_url}/models/{model}:generateContent?key={api_key}

The client is constructed explicitly with its credential and base URL.
There is no module-level instance; tests inject an httpx client with a
mock transport.

ERRORS (all subclasses of GatewayClientError):
- ConfigurationError: no API key. Raised before anything touches the
  network - we never send an unauthenticated request.
- GatewayError: non-2xx response (status_code set) or transport failure
  (status_code None). Recoverable; the caller may retry or fall back.
- EmptyResponseError: 2xx, but no usable text in the reply. Distinct from
  a transport failure, also recoverable.
"""

import base64
from typing import Any, Optional, Union

import httpx

from finance_assistant.config import GeminiSettings, get_settings
from finance_assistant.gateway.prompts import (
    Modality,
    PromptRole,
    build_system_instruction,
    task_instruction,
)
from finance_assistant.observability import get_logger


logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.0-flash-001"


class GatewayClientError(Exception):
    """Base exception for AI gateway calls."""
    pass


class ConfigurationError(GatewayClientError):
    """The gateway credential is missing."""
    pass


class GatewayError(GatewayClientError):
    """The gateway could not be reached or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyResponseError(GatewayClientError):
    """The gateway answered successfully but without any usable text."""
    pass


def extract_reply_text(body: Any) -> str:
    """
    Text of the first part of the first candidate.

    Raises:
        EmptyResponseError: If the body has no candidates, no parts,
            or no non-blank text where the reply should be
    """
    candidates = body.get("candidates") if isinstance(body, dict) else None
    if not isinstance(candidates, list) or not candidates:
        raise EmptyResponseError("No response received from Gemini API")

    candidate = candidates[0] if isinstance(candidates[0], dict) else {}
    content = candidate.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        raise EmptyResponseError("Gemini API returned a candidate without content parts")

    text = parts[0].get("text")
    if not isinstance(text, str) or not text.strip():
        raise EmptyResponseError("Gemini API returned an empty text part")
    return text.strip()


class GeminiGatewayClient:
    """
    Outbound calls to the generative-AI endpoint.

    Three payload kinds: text only, text + image, text + audio.
    Every method returns the raw reply text; interpreting it
    (e.g. extracting a transaction) is the caller's job.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = (api_key or "").strip()
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[GeminiSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "GeminiGatewayClient":
        settings = settings or get_settings().gemini
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            model=settings.model_name,
            timeout=settings.timeout_seconds,
            http_client=http_client,
        )

    async def __aenter__(self) -> "GeminiGatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def endpoint(self) -> str:
        return f"{self._base_url}/models/{self._model}:generateContent"

    # =========================================================================
    # REQUEST BUILDING
    # =========================================================================

    @staticmethod
    def build_request(
        system_instruction: str,
        text: str,
        inline_data: Optional[tuple[str, str]] = None,
    ) -> dict[str, Any]:
        """
        Request envelope.

        Args:
            system_instruction: Persona/task prompt
            text: Text part, placed after the media
            inline_data: Optional (mime_type, base64_data)
        """
        parts: list[dict[str, Any]] = []
        if inline_data is not None:
            mime_type, data = inline_data
            parts.append({"inlineData": {"mimeType": mime_type, "data": data}})
        parts.append({"text": text})
        return {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"parts": parts}],
        }

    def _require_api_key(self) -> None:
        if not self._api_key:
            raise ConfigurationError(
                "Gemini API key not configured. Set GEMINI_API_KEY."
            )

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _generate(self, payload: dict[str, Any], kind: str) -> str:
        self._require_api_key()

        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": self._api_key},
                json=payload,
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.error(
                "gateway_request_failed",
                kind=kind,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise GatewayError(f"Gemini API request failed: {e}") from e

        if not response.is_success:
            logger.error(
                "gateway_request_failed",
                kind=kind,
                status_code=response.status_code,
            )
            raise GatewayError(
                f"Gemini API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise EmptyResponseError("Gemini API returned a non-JSON body") from e

        try:
            text = extract_reply_text(body)
        except EmptyResponseError:
            logger.warning("gateway_empty_response", kind=kind)
            raise

        logger.info("gateway_reply_received", kind=kind, reply_length=len(text))
        return text

    @staticmethod
    def _as_base64(data: Union[str, bytes]) -> str:
        if isinstance(data, bytes):
            return base64.b64encode(data).decode("ascii")
        return data

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def send_text(self, message: str, context: Optional[str] = None) -> str:
        """
        Chat turn without media.

        Raises:
            ConfigurationError, GatewayError, EmptyResponseError
        """
        payload = self.build_request(
            build_system_instruction(PromptRole.CHAT, Modality.TEXT, context),
            message,
        )
        return await self._generate(payload, kind="text")

    async def send_image(
        self,
        data: Union[str, bytes],
        mime_type: str,
        role: Union[PromptRole, str] = PromptRole.CHAT,
        context: Optional[str] = None,
    ) -> str:
        """
        Image (base64 string or raw bytes) with a role-specific instruction.

        Raises:
            ValueError: If role is unknown or not CHAT or RECEIPT_EXTRACTION
            ConfigurationError, GatewayError, EmptyResponseError
        """
        role = PromptRole(role)
        payload = self.build_request(
            build_system_instruction(role, Modality.IMAGE, context),
            task_instruction(role, Modality.IMAGE),
            inline_data=(mime_type, self._as_base64(data)),
        )
        return await self._generate(payload, kind=f"image:{role.value}")

    async def send_audio(
        self,
        data: Union[str, bytes],
        mime_type: str,
        role: Union[PromptRole, str] = PromptRole.CHAT,
        context: Optional[str] = None,
    ) -> str:
        """
        Audio (base64 string or raw bytes) with a role-specific instruction.

        Raises:
            ValueError: If role is unknown or not CHAT or TRANSACTION_EXTRACTION
            ConfigurationError, GatewayError, EmptyResponseError
        """
        role = PromptRole(role)
        payload = self.build_request(
            build_system_instruction(role, Modality.AUDIO, context),
            task_instruction(role, Modality.AUDIO),
            inline_data=(mime_type, self._as_base64(data)),
        )
        return await self._generate(payload, kind=f"audio:{role.value}")

    async def validate_api_key(self) -> bool:
        """True if a probe message gets a reply."""
        try:
            await self.send_text("Teste de conexão")
            return True
        except GatewayClientError:
            return False
