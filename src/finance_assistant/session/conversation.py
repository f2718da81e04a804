"""
Conversation Session

Holds one chat surface's state: the ordered message history and the
cached financial context.

CHAT TURN:
1. Append the user's message
2. If the message looks like it needs fresh financial data (pluggable
   predicate, keyword-based by default), rebuild the context before
   answering; otherwise reuse the cached one (which may be None)
3. Ask the gateway
4. Append the reply - or, on ANY failure, a fixed fallback message.
   A failed AI call never crashes the conversation.

EXTRACTION (receipt photo, voice note) bypasses the history entirely and
PROPAGATES typed errors: the caller has to choose between retrying and
giving up, and we never invent transaction data.

PRECONDITION: A session is used by one logical flow at a time. Concurrent
calls on the same session are not supported.
"""

import re
from pathlib import Path
from typing import Callable, Optional, Union

from finance_assistant.context import ContextAggregator
from finance_assistant.extraction import (
    ExtractionValidator,
    load_audio,
    load_image,
)
from finance_assistant.gateway import GeminiGatewayClient, PromptRole
from finance_assistant.models.finance import (
    ConversationMessage,
    ExtractedTransaction,
    FinancialContext,
    MessageRole,
)
from finance_assistant.observability import get_logger


logger = get_logger(__name__)


FINANCIAL_KEYWORDS = re.compile(
    r"\b(?:"
    r"balance|money|spend\w*|income|expense\w*|transaction\w*|financ\w*|how\s+much|have"
    r"|saldo|dinheiro|gast\w*|receita\w*|despesa\w*|transa[çc]\w*|quant\w*|tem"
    r")\b",
    re.IGNORECASE,
)

IMAGE_SENT = "Imagem enviada"
AUDIO_SENT = "Áudio enviado"

CHAT_FALLBACK = (
    'Entendi sua pergunta sobre: "{question}". No momento não consegui falar com o '
    "assistente de IA. Tente novamente em instantes; enquanto isso, posso te ajudar "
    "com dicas básicas sobre finanças pessoais."
)
IMAGE_FALLBACK = (
    "Desculpe, não consegui processar a imagem. "
    "Tente novamente ou envie uma pergunta em texto."
)
AUDIO_FALLBACK = (
    "Desculpe, não consegui processar o áudio. "
    "Tente novamente ou envie uma pergunta em texto."
)
GREETING = "Olá {first_name}! Sou seu assistente financeiro IA. Como posso ajudar você hoje?"


def needs_financial_data(text: str) -> bool:
    """Default refresh predicate: does the message mention money matters?"""
    return bool(FINANCIAL_KEYWORDS.search(text or ""))


def first_name(full_name: Optional[str]) -> str:
    if not full_name or not full_name.strip():
        return "Usuário"
    return full_name.strip().split()[0]


class ConversationSession:
    """
    State of one chat surface, discarded when the surface goes away.

    Args:
        gateway: AI gateway client
        aggregator: Builds the financial context; without one the
            assistant answers with no personal data
        validator: Parser for extraction replies
        needs_refresh: Decides whether a message requires a fresh context
        user_name: When given, the session opens with a greeting
    """

    def __init__(
        self,
        gateway: GeminiGatewayClient,
        aggregator: Optional[ContextAggregator] = None,
        validator: Optional[ExtractionValidator] = None,
        needs_refresh: Callable[[str], bool] = needs_financial_data,
        user_name: Optional[str] = None,
    ):
        self._gateway = gateway
        self._aggregator = aggregator
        self._validator = validator or ExtractionValidator()
        self._needs_refresh = needs_refresh
        self._messages: list[ConversationMessage] = []
        self._cached_context: Optional[FinancialContext] = None

        if user_name is not None:
            self._append(
                GREETING.format(first_name=first_name(user_name)),
                MessageRole.ASSISTANT,
            )

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    @property
    def cached_context(self) -> Optional[FinancialContext]:
        return self._cached_context

    def _append(self, content: str, role: MessageRole) -> ConversationMessage:
        message = ConversationMessage(content=content, role=role)
        self._messages.append(message)
        return message

    # =========================================================================
    # CONTEXT
    # =========================================================================

    async def refresh_context(self) -> Optional[FinancialContext]:
        """
        Rebuild the financial context and replace the cached one.

        Last write wins: a rebuild that gathers nothing clears the cache.
        """
        if self._aggregator is None:
            return self._cached_context
        self._cached_context = await self._aggregator.build()
        return self._cached_context

    async def _context_for(self, text: Optional[str]) -> Optional[FinancialContext]:
        """
        Context to answer with.

        text=None is a media turn: the context is only built when none is
        cached yet.
        """
        should_refresh = (
            self._cached_context is None if text is None else self._needs_refresh(text)
        )
        if should_refresh:
            try:
                await self.refresh_context()
            except Exception as e:
                logger.warning("context_refresh_failed", error=str(e))
        return self._cached_context

    @staticmethod
    def _context_text(context: Optional[FinancialContext]) -> Optional[str]:
        return context.text if context is not None else None

    # =========================================================================
    # CHAT
    # =========================================================================

    async def send_user_message(self, text: str) -> ConversationMessage:
        """
        One chat turn. Always returns the appended assistant message;
        gateway failures become the fallback message.

        Raises:
            ValueError: If the message is empty or whitespace only. Nothing
                is appended and the gateway is not called.
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Message must not be blank")

        self._append(text, MessageRole.USER)
        context = await self._context_for(text)

        try:
            reply = await self._gateway.send_text(text, self._context_text(context))
        except Exception as e:
            logger.error(
                "chat_turn_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
            reply = CHAT_FALLBACK.format(question=text)

        return self._append(reply, MessageRole.ASSISTANT)

    async def send_image(self, image_uri: Union[str, Path]) -> ConversationMessage:
        """Chat turn about a picture. Failures become a fallback message."""
        self._append(IMAGE_SENT, MessageRole.USER)
        context = await self._context_for(None)

        try:
            media = load_image(image_uri)
            reply = await self._gateway.send_image(
                media.data,
                media.mime_type,
                PromptRole.CHAT,
                self._context_text(context),
            )
        except Exception as e:
            logger.error("chat_image_failed", error_type=type(e).__name__, error=str(e))
            reply = IMAGE_FALLBACK

        return self._append(reply, MessageRole.ASSISTANT)

    async def send_audio(self, audio_uri: Union[str, Path]) -> ConversationMessage:
        """Chat turn from a voice note. Failures become a fallback message."""
        self._append(AUDIO_SENT, MessageRole.USER)
        context = await self._context_for(None)

        try:
            media = load_audio(audio_uri)
            reply = await self._gateway.send_audio(
                media.data,
                media.mime_type,
                PromptRole.CHAT,
                self._context_text(context),
            )
        except Exception as e:
            logger.error("chat_audio_failed", error_type=type(e).__name__, error=str(e))
            reply = AUDIO_FALLBACK

        return self._append(reply, MessageRole.ASSISTANT)

    # =========================================================================
    # EXTRACTION
    # =========================================================================

    async def add_from_receipt(self, image_uri: Union[str, Path]) -> ExtractedTransaction:
        """
        Extract a transaction from a receipt photo.

        The history is not touched.

        Raises:
            MediaError: The file could not be read
            ConfigurationError, GatewayError, EmptyResponseError: Gateway failure
            ExtractionParseError: The reply carried no valid JSON
        """
        media = load_image(image_uri)
        raw_text = await self._gateway.send_image(
            media.data,
            media.mime_type,
            PromptRole.RECEIPT_EXTRACTION,
        )
        return self._validator.parse(raw_text)

    async def add_from_audio(self, audio_uri: Union[str, Path]) -> ExtractedTransaction:
        """
        Extract a transaction from a spoken description.

        The history is not touched.

        Raises:
            MediaError: The file could not be read
            ConfigurationError, GatewayError, EmptyResponseError: Gateway failure
            ExtractionParseError: The reply carried no valid JSON
        """
        media = load_audio(audio_uri)
        raw_text = await self._gateway.send_audio(
            media.data,
            media.mime_type,
            PromptRole.TRANSACTION_EXTRACTION,
        )
        return self._validator.parse(raw_text)
