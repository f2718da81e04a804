"""
Tests for ConversationSession.

The gateway is a scripted fake; the backend is FakeDataSource.
"""

import asyncio

import pytest

from finance_assistant.context import ContextAggregator
from finance_assistant.extraction import ExtractionParseError, MediaError
from finance_assistant.gateway import (
    ConfigurationError,
    GatewayError,
    GeminiGatewayClient,
    PromptRole,
)
from finance_assistant.models.finance import ApiResponse, MessageRole, TransactionKind
from finance_assistant.session import ConversationSession, needs_financial_data

from conftest import FakeDataSource


class FakeGateway:
    """Records calls and answers with a fixed reply or raises a fixed error."""

    def __init__(self, reply="Resposta", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def _answer(self, call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.reply

    async def send_text(self, message, context=None):
        return await self._answer(("text", message, context))

    async def send_image(self, data, mime_type, role=PromptRole.CHAT, context=None):
        return await self._answer(("image", mime_type, role, context))

    async def send_audio(self, data, mime_type, role=PromptRole.CHAT, context=None):
        return await self._answer(("audio", mime_type, role, context))


def balance_source():
    return FakeDataSource(balance=ApiResponse(success=True, data={"total": 150}))


def make_session(gateway, source=None, **kwargs):
    aggregator = ContextAggregator(source) if source is not None else None
    return ConversationSession(gateway, aggregator, **kwargs)


class TestChatTurn:
    """Tests for text chat turns."""

    def test_financial_question_refreshes_context(self):
        """Test a money question triggers exactly one context build."""
        source = balance_source()
        gateway = FakeGateway()
        session = make_session(gateway, source)

        reply = asyncio.run(session.send_user_message("Qual é o meu saldo?"))

        assert source.calls.count("balance") == 1
        assert reply.role == MessageRole.ASSISTANT
        assert reply.content == "Resposta"
        _, _, context = gateway.calls[0]
        assert "Saldo total: R$ 150.00" in context
        assert session.cached_context is not None

    def test_small_talk_does_not_refresh(self):
        """Test a greeting reuses the (empty) cache."""
        source = balance_source()
        gateway = FakeGateway()
        session = make_session(gateway, source)

        asyncio.run(session.send_user_message("Oi, tudo bem?"))

        assert source.calls == []
        assert gateway.calls == [("text", "Oi, tudo bem?", None)]

    def test_cached_context_is_reused(self):
        """Test a later small-talk turn answers with the cached context."""
        source = balance_source()
        gateway = FakeGateway()
        session = make_session(gateway, source)

        async def conversation():
            await session.send_user_message("Quanto gastei este mês?")
            await session.send_user_message("Obrigado!")

        asyncio.run(conversation())
        assert source.calls.count("balance") == 1
        assert gateway.calls[1][2] == session.cached_context.text

    def test_financial_question_rebuilds_existing_cache(self):
        """Test a money question rebuilds even when a context is cached; small talk does not."""
        source = balance_source()
        session = make_session(FakeGateway(), source)

        async def conversation():
            await session.send_user_message("Qual é o meu saldo?")
            first = session.cached_context
            await session.send_user_message("What's my balance?")
            assert source.calls.count("balance") == 2
            assert session.cached_context is not first
            await session.send_user_message("hello")
            assert source.calls.count("balance") == 2

        asyncio.run(conversation())

    def test_explicit_refresh(self):
        """Test refresh_context rebuilds on demand."""
        source = balance_source()
        session = make_session(FakeGateway(), source)
        context = asyncio.run(session.refresh_context())
        assert context is session.cached_context
        assert source.calls.count("balance") == 1

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_message_is_rejected(self, text):
        """Test blank input adds nothing and never reaches the gateway."""
        gateway = FakeGateway()
        session = make_session(gateway)
        with pytest.raises(ValueError):
            asyncio.run(session.send_user_message(text))
        assert session.messages == ()
        assert gateway.calls == []

    def test_message_is_stripped(self):
        """Test surrounding whitespace is removed before sending."""
        gateway = FakeGateway()
        session = make_session(gateway)
        asyncio.run(session.send_user_message("  Oi  "))
        assert session.messages[0].content == "Oi"
        assert gateway.calls[0][1] == "Oi"

    def test_history_order(self):
        """Test user and assistant messages alternate."""
        session = make_session(FakeGateway())
        asyncio.run(session.send_user_message("Oi"))
        assert [m.role for m in session.messages] == [MessageRole.USER, MessageRole.ASSISTANT]
        assert session.messages[0].content == "Oi"

    def test_custom_refresh_predicate(self):
        """Test the refresh policy is pluggable."""
        source = balance_source()
        session = make_session(FakeGateway(), source, needs_refresh=lambda text: True)
        asyncio.run(session.send_user_message("Oi"))
        assert source.calls.count("balance") == 1

    def test_greeting(self):
        """Test the optional greeting uses the first name."""
        session = make_session(FakeGateway(), user_name="Ana Souza")
        assert len(session.messages) == 1
        assert session.messages[0].role == MessageRole.ASSISTANT
        assert session.messages[0].content.startswith("Olá Ana!")


class TestChatFallback:
    """A failed AI call never crashes the conversation."""

    @pytest.mark.parametrize("error", [
        GatewayError("Gemini API error: 500", status_code=500),
        ConfigurationError("no key"),
        RuntimeError("unexpected"),
    ])
    def test_gateway_failure_becomes_fallback(self, error):
        """Test the fallback message quotes the user's question."""
        session = make_session(FakeGateway(error=error))
        reply = asyncio.run(session.send_user_message("Como economizar?"))
        assert 'Entendi sua pergunta sobre: "Como economizar?"' in reply.content
        assert session.messages[-1] == reply
        assert len(session.messages) == 2

    def test_unconfigured_real_client(self):
        """Test a client without API key falls back without any request."""
        gateway = GeminiGatewayClient(api_key="")
        session = make_session(gateway)
        reply = asyncio.run(session.send_user_message("Oi"))
        assert reply.content.startswith("Entendi sua pergunta")
        asyncio.run(gateway.aclose())

    def test_image_fallback(self, tmp_path):
        """Test an unreadable image becomes the image fallback."""
        session = make_session(FakeGateway())
        reply = asyncio.run(session.send_image(tmp_path / "missing.jpg"))
        assert session.messages[0].content == "Imagem enviada"
        assert reply.content.startswith("Desculpe, não consegui processar a imagem")


class TestMediaChat:
    """Tests for image and audio chat turns."""

    def test_image_turn_builds_context_once(self, tmp_path):
        """Test a media turn builds the context only when none is cached."""
        path = tmp_path / "foto.png"
        path.write_bytes(b"img")
        source = balance_source()
        gateway = FakeGateway()
        session = make_session(gateway, source)

        async def conversation():
            await session.send_image(path)
            await session.send_image(path)

        asyncio.run(conversation())
        assert source.calls.count("balance") == 1
        kind, mime_type, role, context = gateway.calls[0]
        assert (kind, mime_type, role) == ("image", "image/png", PromptRole.CHAT)
        assert "Saldo total" in context

    def test_audio_turn(self, tmp_path):
        """Test an audio chat turn."""
        path = tmp_path / "voz.m4a"
        path.write_bytes(b"aud")
        gateway = FakeGateway(reply="Entendi o áudio")
        session = make_session(gateway)
        reply = asyncio.run(session.send_audio(path))
        assert session.messages[0].content == "Áudio enviado"
        assert reply.content == "Entendi o áudio"
        assert gateway.calls[0][:3] == ("audio", "audio/m4a", PromptRole.CHAT)


class TestExtraction:
    """Extraction bypasses the history and propagates errors."""

    def test_receipt_extraction(self, tmp_path):
        """Test a receipt reply becomes an ExtractedTransaction."""
        path = tmp_path / "recibo.jpg"
        path.write_bytes(b"img")
        gateway = FakeGateway(reply='{"name":"Uber","amount":"23.5","type":"expense"}')
        session = make_session(gateway)

        transaction = asyncio.run(session.add_from_receipt(path))

        assert transaction.name == "Uber"
        assert transaction.amount == 23.5
        assert transaction.type == TransactionKind.EXPENSE
        assert gateway.calls[0] == ("image", "image/jpeg", PromptRole.RECEIPT_EXTRACTION, None)
        assert session.messages == ()

    def test_audio_extraction(self, tmp_path):
        """Test a voice note is sent with the transaction-extraction role."""
        path = tmp_path / "voz.mp3"
        path.write_bytes(b"aud")
        gateway = FakeGateway(reply='{"name":"Salário","amount":5000,"type":"income"}')
        session = make_session(gateway)

        transaction = asyncio.run(session.add_from_audio(path))

        assert transaction.type == TransactionKind.INCOME
        assert gateway.calls[0][2] == PromptRole.TRANSACTION_EXTRACTION
        assert session.messages == ()

    def test_unparsable_reply_raises(self, tmp_path):
        """Test no default transaction is invented."""
        path = tmp_path / "recibo.jpg"
        path.write_bytes(b"img")
        session = make_session(FakeGateway(reply="Não consegui ler a nota."))
        with pytest.raises(ExtractionParseError):
            asyncio.run(session.add_from_receipt(path))
        assert session.messages == ()

    def test_gateway_error_propagates(self, tmp_path):
        """Test gateway failures reach the caller."""
        path = tmp_path / "recibo.jpg"
        path.write_bytes(b"img")
        session = make_session(FakeGateway(error=GatewayError("down", status_code=503)))
        with pytest.raises(GatewayError):
            asyncio.run(session.add_from_receipt(path))

    def test_missing_file_propagates(self, tmp_path):
        """Test unreadable media reaches the caller."""
        session = make_session(FakeGateway())
        with pytest.raises(MediaError):
            asyncio.run(session.add_from_audio(tmp_path / "missing.m4a"))


class TestKeywordPredicate:
    """Tests for the default refresh predicate."""

    @pytest.mark.parametrize("text", [
        "Qual meu saldo?",
        "Quanto gastei com mercado?",
        "Minhas despesas do mês",
        "Mostre minhas transações",
        "How much money do I have?",
        "Show my expenses",
        "Como está minha situação financeira?",
    ])
    def test_financial_messages(self, text):
        """Test money-related messages match."""
        assert needs_financial_data(text)

    @pytest.mark.parametrize("text", ["Oi!", "Bom dia", "Obrigado pela ajuda", ""])
    def test_small_talk(self, text):
        """Test greetings and thanks do not match."""
        assert not needs_financial_data(text)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
