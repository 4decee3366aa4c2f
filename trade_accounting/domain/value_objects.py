"""
Domain Layer - Value objects for trade-finance accounting.
Asientos automáticos según el Plan General de Contabilidad (PGC 2007).
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import NewType

AccountCode = NewType("AccountCode", str)

ZERO = Decimal("0")
CENT = Decimal("0.01")
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | float | str | None) -> Decimal:
    """Coerce user input to Decimal; floats go through str to avoid binary noise."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class OperationCategory(str, Enum):
    TRADE_FINANCE = "trade_finance"


class OperationType(str, Enum):
    """Tipo de operación de comercio exterior / circulante."""
    COMMERCIAL_DISCOUNT = "commercial_discount"  # Descuento comercial
    FACTORING = "factoring"
    CONFIRMING = "confirming"


class TransactionType(str, Enum):
    DISCOUNT = "discount"
    COLLECTION = "collection"
    RETURN = "return"
    ADVANCE = "advance"
    SETTLEMENT = "settlement"
    PAYMENT = "payment"


class OperationKind(str, Enum):
    """Operation names used by forms; each maps to a default TemplateKey."""
    DISCOUNT = "discount"
    FACTORING = "factoring"
    CONFIRMING = "confirming"


class EntrySide(str, Enum):
    DEBIT = "debit"    # Debe
    CREDIT = "credit"  # Haber


class AmountVariable(str, Enum):
    """Named amounts a template line may sum."""
    AMOUNT = "amount"
    INTEREST_AMOUNT = "interest_amount"
    COMMISSION_AMOUNT = "commission_amount"
    EXPENSES = "expenses"
    NET_AMOUNT = "net_amount"
    TAX_AMOUNT = "tax_amount"


class TemplateSource(str, Enum):
    CONFIG = "config"
    TEMPLATE = "template"
    FALLBACK = "fallback"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    ERROR = "error"
    MEDIUM = "medium"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Lower rank means higher precedence."""
        return _SEVERITY_RANK[self]

    @property
    def is_error(self) -> bool:
        return self.rank <= 1


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.ERROR: 1,
    Severity.MEDIUM: 2,
    Severity.WARNING: 2,
    Severity.INFO: 3,
}


class EffectType(str, Enum):
    BILL = "bill"                        # Letra de cambio
    PROMISSORY_NOTE = "promissory_note"  # Pagaré
    RECEIPT = "receipt"                  # Recibo
    CHECK = "check"                      # Cheque


class EffectStatus(str, Enum):
    PENDING = "pending"
    DISCOUNTED = "discounted"
    PAID = "paid"
    RETURNED = "returned"    # Impagado / devuelto
    PROTESTED = "protested"


class RemittanceStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    SENT = "sent"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class RemittanceFileFormat(str, Enum):
    CUADERNO_58 = "cuaderno_58"  # CSB 58
    SEPA_XML = "sepa_xml"        # ISO 20022
    NORMA_32 = "norma_32"
    CUSTOM = "custom"


class FactoringContractType(str, Enum):
    WITH_RECOURSE = "with_recourse"
    WITHOUT_RECOURSE = "without_recourse"
    REVERSE_FACTORING = "reverse_factoring"


class FactoringContractStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class AssignmentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ADVANCED = "advanced"
    COLLECTED = "collected"
    DEFAULTED = "defaulted"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class TemplateKey:
    """Tagged key shared by templates and user configuration."""
    category: OperationCategory
    operation_type: OperationType
    transaction_type: TransactionType

    @classmethod
    def of(cls, category: str, operation_type: str, transaction_type: str) -> "TemplateKey":
        return cls(
            OperationCategory(category),
            OperationType(operation_type),
            TransactionType(transaction_type),
        )

    @classmethod
    def for_kind(cls, kind: OperationKind | str) -> "TemplateKey":
        return OPERATION_KEYS[OperationKind(kind)]

    def __str__(self) -> str:
        return f"{self.category.value}/{self.operation_type.value}/{self.transaction_type.value}"


OPERATION_KEYS: dict[OperationKind, TemplateKey] = {
    OperationKind.DISCOUNT: TemplateKey(
        OperationCategory.TRADE_FINANCE,
        OperationType.COMMERCIAL_DISCOUNT,
        TransactionType.DISCOUNT,
    ),
    OperationKind.FACTORING: TemplateKey(
        OperationCategory.TRADE_FINANCE,
        OperationType.FACTORING,
        TransactionType.ADVANCE,
    ),
    OperationKind.CONFIRMING: TemplateKey(
        OperationCategory.TRADE_FINANCE,
        OperationType.CONFIRMING,
        TransactionType.PAYMENT,
    ),
}


@dataclass(frozen=True, slots=True)
class TemplateLine:
    """Line schema of an accounting template."""
    account_code: str  # literal code or placeholder, e.g. "{debit_account}"
    account_name: str
    side: EntrySide
    amount_terms: tuple[AmountVariable, ...]
    description: str = ""

    def __post_init__(self) -> None:
        if not self.amount_terms:
            raise ValueError("Template line needs at least one amount term")
        object.__setattr__(
            self, "amount_terms", tuple(AmountVariable(t) for t in self.amount_terms)
        )
        object.__setattr__(self, "side", EntrySide(self.side))


@dataclass(frozen=True, slots=True)
class OperationContext:
    """
    Value Object - Importes de la operación que alimentan el asiento.

    ``net_amount`` may be typed by the user; when it is None the derived value
    ``amount - interest - commission - expenses`` is used.
    """
    amount: Decimal | None
    interest_amount: Decimal = ZERO
    commission_amount: Decimal = ZERO
    expenses: Decimal = ZERO
    net_amount: Decimal | None = None
    currency: str = "EUR"
    counterparty_id: str | None = None
    interest_rate: Decimal | None = None
    commission_rate: Decimal | None = None
    references: dict[str, str] = field(default_factory=dict)

    @property
    def derived_net_amount(self) -> Decimal:
        return (
            (self.amount or ZERO)
            - self.interest_amount
            - self.commission_amount
            - self.expenses
        )

    @property
    def effective_net_amount(self) -> Decimal:
        if self.net_amount is None:
            return self.derived_net_amount
        return self.net_amount


@dataclass(frozen=True, slots=True)
class JournalEntryLine:
    """Partida de un asiento (línea Debe/Haber)."""
    account_code: AccountCode
    account_name: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    is_new: bool = False
    is_edited: bool = False

    @property
    def is_empty(self) -> bool:
        return self.debit == 0 and self.credit == 0


@dataclass(frozen=True, slots=True)
class BalanceResult:
    """Totales y estado de cuadre de un conjunto de partidas."""
    total_debit: Decimal
    total_credit: Decimal
    diff: Decimal
    is_balanced: bool
