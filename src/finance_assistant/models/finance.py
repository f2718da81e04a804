"""
Core Data Models for Finance Assistant

These models define the schemas for all data flowing through the system.
They come in two families:

1. RAW models (RawTransaction, RawCategory, ApiResponse) describe what the
   backend *might* send. Every field is optional and loosely typed, and
   unknown keys are kept. Nothing downstream may trust them.

2. CANONICAL models (CanonicalTransaction, CategoryAggregate,
   BalanceSummary, FinancialContext, ExtractedTransaction,
   ConversationMessage) are fully typed and always well-formed.

DESIGN DECISION: Conversion from raw to canonical happens in exactly one
place (finance_assistant.normalization). That seam is where every
uncertainty about field names and types is resolved, so the rest of the
code can assume canonical values.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# Placeholders used instead of empty strings
UNNAMED_TRANSACTION = "Sem nome"
UNCATEGORIZED = "Sem categoria"
DATE_NOT_AVAILABLE = "Data não disponível"
UNNAMED_EXTRACTION = "Transação"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a transaction. The amount itself is always >= 0."""
    INCOME = "income"
    EXPENSE = "expense"


class CategoryKind(str, Enum):
    """
    Category type.

    The backend encodes this as typeId (1=expense, 2=income, 3=savings)
    or as a `type` string.
    """
    EXPENSE = "expense"
    INCOME = "income"
    SAVINGS = "savings"


class MessageRole(str, Enum):
    """Author of a conversation message."""
    USER = "user"
    ASSISTANT = "assistant"


class ContextSource(str, Enum):
    """The four backend reads the financial context is built from."""
    PROFILE = "profile"
    BALANCE = "balance"
    TRANSACTIONS = "transactions"
    CATEGORIES = "categories"


class ContextSection(str, Enum):
    """
    Sections of the rendered financial context, in rendering order.

    The declaration order here IS the order sections appear in the text.
    """
    PROFILE = "profile"
    BALANCE = "balance"
    TRANSACTIONS = "transactions"
    EXPENSE_CATEGORIES = "expense_categories"
    INCOME_CATEGORIES = "income_categories"
    SAVINGS_CATEGORIES = "savings_categories"


# =============================================================================
# RAW MODELS - what the backend might send
# =============================================================================

class ApiResponse(BaseModel):
    """
    Envelope returned by every backend read: {success, data}.

    A fetch that failed for any reason is represented by
    ApiResponse.failed() rather than by an exception.
    """
    model_config = ConfigDict(extra="ignore")

    success: bool = False
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, error: Optional[str] = None) -> "ApiResponse":
        """The failure sentinel."""
        return cls(success=False, data=None, error=error)

    @property
    def has_data(self) -> bool:
        """Successful and carrying something worth rendering."""
        if not self.success or self.data is None:
            return False
        if isinstance(self.data, (list, tuple, dict, str)):
            return len(self.data) > 0
        return True


class RawTransaction(BaseModel):
    """
    A transaction as sent by some version of the backend.

    Only a few of the known keys are declared; any other key
    (snake_case variants, legacy names) is kept as an extra field.
    """
    model_config = ConfigDict(extra="allow")

    id: Any = None
    description: Any = None
    title: Any = None
    name: Any = None
    category: Any = None
    categoryId: Any = None
    amount: Any = None
    date: Any = None
    type: Any = None
    typeId: Any = None
    isFavorite: Any = None


class RawCategory(BaseModel):
    """A category as sent by the backend."""
    model_config = ConfigDict(extra="allow")

    id: Any = None
    name: Any = None
    typeId: Any = None
    type: Any = None
    totalSpent: Any = None
    transactionCount: Any = None


# =============================================================================
# CANONICAL MODELS
# =============================================================================

class BalanceSummary(BaseModel):
    """Overall balance figures for the user."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    total: float = 0.0
    income: float = 0.0
    expenses: float = 0.0
    change: float = 0.0
    change_percentage: float = Field(default=0.0, alias="changePercentage")


class CategoryAggregate(BaseModel):
    """A category with its optional totals."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: CategoryKind
    total_amount: Optional[float] = Field(
        default=None,
        description="Total spent/received/saved in this category"
    )
    transaction_count: Optional[int] = Field(default=None, ge=0)


class CanonicalTransaction(BaseModel):
    """
    A transaction normalized into the fixed field set.

    INVARIANTS:
    - name and category_name are never empty (placeholders instead)
    - amount is the absolute value; the sign is carried by kind
    - date is an ISO-8601 date (YYYY-MM-DD), or None when the source
      date was missing or unparsable
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(default=UNNAMED_TRANSACTION, min_length=1)
    category_name: str = Field(default=UNCATEGORIZED, min_length=1)
    amount: float = Field(default=0.0, ge=0)
    date: Optional[str] = None
    kind: TransactionKind = TransactionKind.EXPENSE


class FinancialContext(BaseModel):
    """
    Textual digest of the user's financial state for the assistant.

    Has no identity of its own - it is rebuilt on demand and replaced
    wholesale (last write wins). `missing_sources` lists the sources that
    contributed nothing; a non-empty list means the context is partial,
    which is a normal, silent condition.
    """
    model_config = ConfigDict(frozen=True)

    text: str
    generated_at: datetime = Field(default_factory=_utcnow)
    sections: tuple[ContextSection, ...] = ()
    missing_sources: tuple[ContextSource, ...] = ()

    @property
    def is_partial(self) -> bool:
        return len(self.missing_sources) > 0

    def __str__(self) -> str:
        return self.text


class ExtractedTransaction(BaseModel):
    """
    Transaction extracted by the AI from a receipt or a voice note.

    CRITICAL: This is PROPOSED data. The caller presents it to the user
    before persisting anything.

    Required fields are always populated (defaults applied during
    coercion); description and category_name stay None when absent.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1)
    amount: float
    date: str = Field(..., description="YYYY-MM-DD")
    type: TransactionKind
    description: Optional[str] = None
    category_name: Optional[str] = Field(default=None, alias="categoryName")


class ConversationMessage(BaseModel):
    """One message of a chat session. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    content: str
    role: MessageRole
    timestamp: datetime = Field(default_factory=_utcnow)
