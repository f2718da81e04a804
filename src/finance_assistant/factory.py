"""
Component wiring.

Builds a ready-to-use ConversationSession from settings. Callers own the
returned HTTP collaborators and must close them (aclose()) when the chat
surface goes away.
"""

from typing import Optional

from finance_assistant.backend import FinancialDataSource, HttpFinancialDataSource
from finance_assistant.config import Settings, get_settings
from finance_assistant.context import ContextAggregator
from finance_assistant.gateway import GeminiGatewayClient
from finance_assistant.observability import configure_logging, get_logger
from finance_assistant.session import ConversationSession


logger = get_logger(__name__)


def create_app_components(
    user_name: Optional[str] = None,
    source: Optional[FinancialDataSource] = None,
    settings: Optional[Settings] = None,
) -> tuple[ConversationSession, GeminiGatewayClient, FinancialDataSource]:
    """
    Factory function to create all application components.

    Args:
        user_name: Name used for the opening greeting (None = no greeting)
        source: Backend data source; an HTTP source is built from
                settings when omitted
        settings: Settings to use instead of the cached ones

    Returns:
        (session, gateway, source)
    """
    settings = settings or get_settings()
    assistant_settings = settings.assistant
    configure_logging(debug=assistant_settings.debug_mode)

    gateway = GeminiGatewayClient.from_settings(settings.gemini)
    if not gateway.is_configured:
        # Chat still works, every turn answers with the fallback message
        logger.warning("gateway_not_configured")

    source = source or HttpFinancialDataSource.from_settings(settings.backend)
    aggregator = ContextAggregator.from_settings(source, assistant_settings)

    session = ConversationSession(gateway, aggregator, user_name=user_name)
    return session, gateway, source
