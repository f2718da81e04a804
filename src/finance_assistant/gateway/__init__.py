"""AI gateway package."""

from finance_assistant.gateway.client import (
    ConfigurationError,
    EmptyResponseError,
    GatewayClientError,
    GatewayError,
    GeminiGatewayClient,
    extract_reply_text,
)
from finance_assistant.gateway.prompts import (
    Modality,
    PromptRole,
    build_system_instruction,
)

__all__ = [
    # Client
    "GeminiGatewayClient",
    "extract_reply_text",
    # Prompts
    "Modality",
    "PromptRole",
    "build_system_instruction",
    # Exceptions
    "ConfigurationError",
    "EmptyResponseError",
    "GatewayClientError",
    "GatewayError",
]
