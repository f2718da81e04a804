"""
Financial Context Aggregator

Builds the textual "financial context" handed to the assistant as part of
its system instruction.

FLOW:
1. Fetch balance, recent transactions, categories and profile IN PARALLEL
2. Each fetch is settled on its own: an exception or a missed deadline
   becomes the failure sentinel instead of aborting the batch
3. Render one section per source that produced something, in a fixed
   order: profile -> balance -> transactions -> categories by kind
4. Return None only when no source produced anything

DESIGN DECISION: All-settle, not all-or-nothing.
A partial context is still useful to the assistant; a missing one just
means it answers without personal data. The caller is told which sources
are missing through FinancialContext.missing_sources.

No caching happens here. Refresh policy belongs to the conversation.
"""

import asyncio
from collections.abc import Awaitable, Sequence
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from finance_assistant.backend import FinancialDataSource
from finance_assistant.config import AssistantSettings, get_settings
from finance_assistant.models.finance import (
    ApiResponse,
    CategoryAggregate,
    CategoryKind,
    ContextSection,
    ContextSource,
    FinancialContext,
    TransactionKind,
)
from finance_assistant.normalization import (
    DEFAULT_DATE_FORMAT,
    as_record,
    coerce_text,
    normalize_balance,
    normalize_category,
    resolve_amount,
    resolve_category,
    resolve_date,
    resolve_kind,
    resolve_name,
)
from finance_assistant.observability import get_logger


logger = get_logger(__name__)


CONTEXT_HEADER = "INFORMAÇÕES FINANCEIRAS DO USUÁRIO:"

CONTEXT_INSTRUCTIONS = (
    "INSTRUÇÕES IMPORTANTES:\n"
    "1. Ao mencionar transações, use SEMPRE o NOME exato conforme aparece na lista "
    "(entre aspas duplas)\n"
    "2. Ao mencionar categorias, use SEMPRE o NOME DA CATEGORIA exato conforme aparece na lista\n"
    "3. Use os valores, datas e tipos (Receita/Despesa) exatamente como aparecem nos dados\n"
    "4. Se alguma informação não estiver nos dados acima, diga que não tem acesso a ela "
    "em vez de inventar"
)

KIND_LABELS = {
    TransactionKind.INCOME: "Receita",
    TransactionKind.EXPENSE: "Despesa",
}

# (section, heading, label for the category total)
CATEGORY_SECTIONS = (
    (CategoryKind.EXPENSE, ContextSection.EXPENSE_CATEGORIES, "DESPESAS", "Total gasto"),
    (CategoryKind.INCOME, ContextSection.INCOME_CATEGORIES, "RECEITAS", "Total recebido"),
    (CategoryKind.SAVINGS, ContextSection.SAVINGS_CATEGORIES, "POUPANÇA", "Total poupado"),
)


def format_money(amount: float) -> str:
    return f"R$ {amount:.2f}"


def _signed(value: float) -> str:
    return "+" if value >= 0 else ""


class ContextAggregator:
    """
    Gathers the user's financial state into one FinancialContext.

    Args:
        source: Backend data source
        transactions_limit: How many recent transactions to include
        source_timeout: Optional deadline (seconds) for each source fetch;
            a source that misses it is treated as failed
        date_format: strftime format for transaction dates
        clock: Returns the generation timestamp (injectable for tests)
    """

    def __init__(
        self,
        source: FinancialDataSource,
        transactions_limit: int = 30,
        source_timeout: Optional[float] = None,
        date_format: str = DEFAULT_DATE_FORMAT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if transactions_limit < 1:
            raise ValueError("transactions_limit must be at least 1")
        self._source = source
        self._transactions_limit = transactions_limit
        self._source_timeout = source_timeout
        self._date_format = date_format
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(
        cls,
        source: FinancialDataSource,
        settings: Optional[AssistantSettings] = None,
    ) -> "ContextAggregator":
        settings = settings or get_settings().assistant
        return cls(
            source,
            transactions_limit=settings.recent_transactions_limit,
            source_timeout=settings.source_timeout_seconds,
            date_format=settings.date_display_format,
        )

    # =========================================================================
    # FETCHING
    # =========================================================================

    async def _settle(
        self,
        name: ContextSource,
        fetch: Callable[[], Awaitable[Any]],
    ) -> ApiResponse:
        """Run one source fetch; any failure resolves to the failure sentinel."""
        try:
            if self._source_timeout is not None:
                result = await asyncio.wait_for(fetch(), timeout=self._source_timeout)
            else:
                result = await fetch()
            if isinstance(result, ApiResponse):
                return result
            return ApiResponse.model_validate(result)
        except Exception as e:
            logger.warning(
                "context_source_failed",
                source=name.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            return ApiResponse.failed(str(e))

    async def fetch_all(self) -> dict[ContextSource, ApiResponse]:
        """Issue all four reads together and wait for every one to settle."""
        balance, transactions, categories, profile = await asyncio.gather(
            self._settle(ContextSource.BALANCE, self._source.get_balance),
            self._settle(
                ContextSource.TRANSACTIONS,
                lambda: self._source.get_recent_transactions(self._transactions_limit),
            ),
            self._settle(ContextSource.CATEGORIES, self._source.get_categories),
            self._settle(ContextSource.PROFILE, self._source.get_profile),
        )
        return {
            ContextSource.BALANCE: balance,
            ContextSource.TRANSACTIONS: transactions,
            ContextSource.CATEGORIES: categories,
            ContextSource.PROFILE: profile,
        }

    # =========================================================================
    # RENDERING
    # =========================================================================

    def _render_profile(self, response: ApiResponse) -> Optional[str]:
        if not response.has_data:
            return None
        profile = as_record(response.data)
        name = coerce_text(profile.get("name")) or coerce_text(profile.get("email"))
        return f"Nome: {name}" if name else None

    def _render_balance(self, response: ApiResponse) -> Optional[str]:
        if not response.has_data or not as_record(response.data):
            return None
        balance = normalize_balance(response.data)
        return "\n".join([
            f"Saldo total: {format_money(balance.total)}",
            f"Receita total: {format_money(balance.income)}",
            f"Despesas totais: {format_money(balance.expenses)}",
            (
                f"Variação: {_signed(balance.change)}{format_money(balance.change)} "
                f"({_signed(balance.change_percentage)}{balance.change_percentage:.2f}%)"
            ),
        ])

    def _render_transaction(self, index: int, record: Any, categories: Sequence[Any]) -> str:
        kind = resolve_kind(record, categories)
        return (
            f"{index}. {KIND_LABELS[kind]}"
            f" | NOME: \"{resolve_name(record)}\""
            f" | VALOR: {format_money(resolve_amount(record))}"
            f" | CATEGORIA: \"{resolve_category(record, categories)}\""
            f" | DATA: {resolve_date(record, self._date_format)}"
        )

    def _render_transactions(
        self,
        response: ApiResponse,
        categories: Sequence[Any],
    ) -> Optional[str]:
        if not response.has_data or not isinstance(response.data, list):
            return None
        recent = response.data[: self._transactions_limit]
        lines = [
            self._render_transaction(index, record, categories)
            for index, record in enumerate(recent, start=1)
        ]
        return (
            f"TRANSAÇÕES RECENTES (últimas {len(recent)}):\n"
            + "\n".join(lines)
            + "\n\nIMPORTANTE: Quando mencionar transações, use sempre o NOME exato "
            "e a CATEGORIA exata conforme listado acima."
        )

    def _render_category(self, category: CategoryAggregate, total_label: str) -> str:
        line = f"  - {category.name}"
        if category.total_amount:
            line += f" ({total_label}: {format_money(category.total_amount)})"
        if category.transaction_count:
            line += f" ({category.transaction_count} transações)"
        return line

    def _render_categories(
        self,
        response: ApiResponse,
    ) -> list[tuple[ContextSection, str]]:
        if not response.has_data or not isinstance(response.data, list):
            return []
        aggregates = [
            aggregate
            for aggregate in (normalize_category(item) for item in response.data)
            if aggregate is not None
        ]
        rendered = []
        for kind, section, heading, total_label in CATEGORY_SECTIONS:
            group = [aggregate for aggregate in aggregates if aggregate.kind is kind]
            if group:
                lines = "\n".join(self._render_category(c, total_label) for c in group)
                rendered.append((section, f"Categorias de {heading}:\n{lines}"))
        return rendered

    def render(self, responses: dict[ContextSource, ApiResponse]) -> Optional[FinancialContext]:
        """
        Turn settled responses into a FinancialContext.

        Returns None when no source produced a section.
        """
        categories_response = responses.get(ContextSource.CATEGORIES, ApiResponse.failed())
        category_records = (
            categories_response.data
            if categories_response.success and isinstance(categories_response.data, list)
            else []
        )

        sections: list[tuple[ContextSection, str]] = []
        contributed: set[ContextSource] = set()

        profile = self._render_profile(responses.get(ContextSource.PROFILE, ApiResponse.failed()))
        if profile:
            sections.append((ContextSection.PROFILE, profile))
            contributed.add(ContextSource.PROFILE)

        balance = self._render_balance(responses.get(ContextSource.BALANCE, ApiResponse.failed()))
        if balance:
            sections.append((ContextSection.BALANCE, balance))
            contributed.add(ContextSource.BALANCE)

        transactions = self._render_transactions(
            responses.get(ContextSource.TRANSACTIONS, ApiResponse.failed()),
            category_records,
        )
        if transactions:
            sections.append((ContextSection.TRANSACTIONS, transactions))
            contributed.add(ContextSource.TRANSACTIONS)

        category_sections = self._render_categories(categories_response)
        if category_sections:
            sections.extend(category_sections)
            contributed.add(ContextSource.CATEGORIES)

        if not sections:
            return None

        text = "\n".join([
            CONTEXT_HEADER,
            *(body for _, body in sections),
            "",
            CONTEXT_INSTRUCTIONS,
        ])
        return FinancialContext(
            text=text,
            generated_at=self._clock(),
            sections=tuple(section for section, _ in sections),
            missing_sources=tuple(s for s in ContextSource if s not in contributed),
        )

    async def build(self) -> Optional[FinancialContext]:
        """
        Fetch every source and render the context.

        Never raises because of a source failure. Returns None when
        nothing at all could be gathered.
        """
        responses = await self.fetch_all()
        context = self.render(responses)

        if context is None:
            logger.warning("context_unavailable")
        else:
            logger.info(
                "context_built",
                sections=[s.value for s in context.sections],
                missing_sources=[s.value for s in context.missing_sources],
            )
        return context
