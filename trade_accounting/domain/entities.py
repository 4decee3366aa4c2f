"""
Domain Entities - Trade-finance entities (descuento, factoring, confirming).
Cada transición de estado devuelve una copia nueva; las entidades no se mutan.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal

from .exceptions import (
    FactoringLimitExceeded,
    InvalidAssignmentTransition,
    InvalidEffectTransition,
    InvalidRemittanceTransition,
)
from .value_objects import (
    ZERO,
    AssignmentStatus,
    BalanceResult,
    EffectStatus,
    EffectType,
    FactoringContractStatus,
    FactoringContractType,
    JournalEntryLine,
    RemittanceFileFormat,
    RemittanceStatus,
    Severity,
    TemplateKey,
    TemplateLine,
    TemplateSource,
    round_money,
)


@dataclass(frozen=True)
class AccountingTemplate:
    """
    Entity - Plantilla contable por defecto (seed data).
    Without explicit ``lines`` it expands to the two-account form.
    """
    key: TemplateKey
    debit_account_code: str
    debit_account_name: str
    credit_account_code: str
    credit_account_name: str
    description_template: str = ""
    tax_account_code: str | None = None
    tax_rate: Decimal | None = None
    is_default: bool = True
    lines: tuple[TemplateLine, ...] = ()


@dataclass
class AccountingConfig:
    """Entity - Configuración de usuario que sustituye a la plantilla."""
    key: TemplateKey
    debit_account_code: str | None = None
    debit_account_name: str | None = None
    credit_account_code: str | None = None
    credit_account_name: str | None = None
    tax_account_code: str | None = None
    tax_rate: Decimal | None = None
    description_template: str | None = None
    auto_post: bool = False
    requires_approval: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class ResolvedTemplate:
    """Effective template after applying a user configuration."""
    template: AccountingTemplate
    source: TemplateSource
    auto_post: bool = False
    requires_approval: bool = False

    @property
    def key(self) -> TemplateKey:
        return self.template.key


@dataclass(frozen=True)
class GeneratedJournalEntry:
    """Asiento generado: partidas ordenadas más totales."""
    key: TemplateKey
    lines: tuple[JournalEntryLine, ...]
    balance: BalanceResult
    source: TemplateSource
    currency: str = "EUR"
    auto_post: bool = False
    requires_approval: bool = False

    @property
    def total_debit(self) -> Decimal:
        return self.balance.total_debit

    @property
    def total_credit(self) -> Decimal:
        return self.balance.total_credit

    @property
    def is_balanced(self) -> bool:
        return self.balance.is_balanced


EFFECT_TRANSITIONS: dict[EffectStatus, set[EffectStatus]] = {
    EffectStatus.PENDING: {EffectStatus.DISCOUNTED},
    EffectStatus.DISCOUNTED: {EffectStatus.PAID, EffectStatus.RETURNED, EffectStatus.PENDING},
    EffectStatus.RETURNED: {EffectStatus.PROTESTED},
    EffectStatus.PAID: set(),
    EffectStatus.PROTESTED: set(),
}


@dataclass
class DiscountEffect:
    """Entity - Efecto comercial (letra, pagaré, recibo, cheque)."""
    effect_type: EffectType
    drawee_id: str
    amount: Decimal
    issue_date: date
    maturity_date: date
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    drawee_name: str | None = None
    currency: str = "EUR"
    bank_iban: str | None = None
    invoice_number: str | None = None
    status: EffectStatus = EffectStatus.PENDING
    remittance_id: str | None = None

    @property
    def is_available(self) -> bool:
        return self.status == EffectStatus.PENDING and self.remittance_id is None

    def transition_to(self, target: EffectStatus) -> "DiscountEffect":
        target = EffectStatus(target)
        if target not in EFFECT_TRANSITIONS[self.status]:
            raise InvalidEffectTransition(self.status.value, target.value)
        return replace(self, status=target)


REMITTANCE_TRANSITIONS: dict[RemittanceStatus, set[RemittanceStatus]] = {
    RemittanceStatus.DRAFT: {RemittanceStatus.GENERATED},
    RemittanceStatus.GENERATED: {RemittanceStatus.SENT},
    RemittanceStatus.SENT: {RemittanceStatus.CONFIRMED, RemittanceStatus.REJECTED},
    RemittanceStatus.CONFIRMED: set(),
    RemittanceStatus.REJECTED: set(),
}


@dataclass
class DiscountRemittance:
    """
    Entity - Remesa de efectos enviada a una entidad financiera.
    total_amount siempre es la suma de los efectos incluidos.
    """
    remittance_number: str
    entity_id: str
    effect_ids: list[str]
    total_amount: Decimal
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    currency: str = "EUR"
    file_format: RemittanceFileFormat = RemittanceFileFormat.CUADERNO_58
    status: RemittanceStatus = RemittanceStatus.DRAFT
    bank_reference: str | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    generated_at: datetime | None = None
    sent_at: datetime | None = None
    version: int = 1

    @property
    def total_effects(self) -> int:
        return len(self.effect_ids)

    @property
    def is_open(self) -> bool:
        return self.status != RemittanceStatus.REJECTED

    def can_transition_to(self, target: RemittanceStatus) -> bool:
        return RemittanceStatus(target) in REMITTANCE_TRANSITIONS[self.status]

    def transition_to(
        self, target: RemittanceStatus, bank_reference: str | None = None
    ) -> "DiscountRemittance":
        target = RemittanceStatus(target)
        if not self.can_transition_to(target):
            raise InvalidRemittanceTransition(self.status.value, target.value)
        changes: dict = {"status": target, "version": self.version + 1}
        if target == RemittanceStatus.GENERATED:
            changes["generated_at"] = datetime.utcnow()
        elif target == RemittanceStatus.SENT:
            changes["sent_at"] = datetime.utcnow()
        if bank_reference:
            changes["bank_reference"] = bank_reference
        return replace(self, **changes)


@dataclass
class FactoringContract:
    """
    Entity - Contrato de factoring con una entidad financiera.
    Invariante: 0 <= available_limit <= global_limit.
    """
    contract_number: str
    financial_entity_id: str
    customer_id: str
    contract_type: FactoringContractType
    global_limit: Decimal
    advance_percentage: Decimal
    interest_rate: Decimal
    commission_rate: Decimal
    available_limit: Decimal | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: FactoringContractStatus = FactoringContractStatus.ACTIVE

    def __post_init__(self) -> None:
        if self.available_limit is None:
            self.available_limit = self.global_limit
        if not ZERO <= self.available_limit <= self.global_limit:
            raise FactoringLimitExceeded(
                f"Contract {self.contract_number}: available limit "
                f"{self.available_limit} outside [0, {self.global_limit}]"
            )

    @property
    def used_limit(self) -> Decimal:
        return self.global_limit - self.available_limit

    def consume(self, amount: Decimal) -> "FactoringContract":
        if self.status != FactoringContractStatus.ACTIVE:
            raise FactoringLimitExceeded(
                f"Contract {self.contract_number} is {self.status.value}"
            )
        if amount > self.available_limit:
            raise FactoringLimitExceeded(
                f"Contract {self.contract_number}: {amount} exceeds available "
                f"limit {self.available_limit}"
            )
        return replace(self, available_limit=self.available_limit - amount)

    def restore(self, amount: Decimal) -> "FactoringContract":
        return replace(
            self, available_limit=min(self.global_limit, self.available_limit + amount)
        )


ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, set[AssignmentStatus]] = {
    AssignmentStatus.PENDING: {AssignmentStatus.APPROVED, AssignmentStatus.REJECTED},
    AssignmentStatus.APPROVED: {AssignmentStatus.ADVANCED, AssignmentStatus.REJECTED},
    AssignmentStatus.ADVANCED: {AssignmentStatus.COLLECTED, AssignmentStatus.DEFAULTED},
    AssignmentStatus.COLLECTED: set(),
    AssignmentStatus.DEFAULTED: set(),
    AssignmentStatus.REJECTED: set(),
}


@dataclass(frozen=True)
class FactoringAssignment:
    """Entity - Cesión de una factura dentro de un contrato de factoring."""
    contract_id: str
    invoice_number: str
    debtor_id: str
    invoice_amount: Decimal
    assigned_amount: Decimal
    advance_percentage: Decimal
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: AssignmentStatus = AssignmentStatus.PENDING

    @property
    def advance_amount(self) -> Decimal:
        return round_money(self.assigned_amount * self.advance_percentage / Decimal("100"))

    def transition_to(self, target: AssignmentStatus) -> "FactoringAssignment":
        target = AssignmentStatus(target)
        if target not in ASSIGNMENT_TRANSITIONS[self.status]:
            raise InvalidAssignmentTransition(self.status.value, target.value)
        return replace(self, status=target)


@dataclass(frozen=True)
class AccountingValidation:
    """Resultado puntual de una regla del supervisor."""
    code: str
    severity: Severity
    message: str
    recommendation: str | None = None


@dataclass
class SupervisorAlert:
    """Alerta persistente del supervisor (se acumula hasta limpiarse)."""
    severity: Severity
    title: str
    message: str
    code: str = ""
    recommendation: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)
    is_read: bool = False
    is_spoken: bool = False
