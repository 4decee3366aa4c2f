"""
Infrastructure - SQLModel database models for the trade-finance tables.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _new_id() -> str:
    return str(uuid4())


def money_field(default=None, **kwargs):
    """Decimal column with two decimals."""
    return Field(default=default, max_digits=18, decimal_places=2, **kwargs)


def rate_field(default=None, **kwargs):
    return Field(default=default, max_digits=9, decimal_places=4, **kwargs)


class AccountingTemplateRow(SQLModel, table=True):
    """Plantilla contable por defecto (seed)."""

    __tablename__ = "accounting_templates"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    operation_category: str = Field(index=True)
    operation_type: str = Field(index=True)
    transaction_type: str = Field(index=True)
    debit_account_code: str
    debit_account_name: str = ""
    credit_account_code: str
    credit_account_name: str = ""
    tax_account_code: str | None = None
    tax_rate: Decimal | None = rate_field()
    description_template: str = ""
    is_default: bool = True
    lines_json: str | None = None  # JSON array of template lines
    created_at: datetime = Field(default_factory=datetime.utcnow)


class AccountingConfigRow(SQLModel, table=True):
    """Configuración de usuario: una fila por clave (categoría, tipo, transacción)."""

    __tablename__ = "accounting_config"
    __table_args__ = (
        UniqueConstraint(
            "operation_category", "operation_type", "transaction_type",
            name="uq_accounting_config_key",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    operation_category: str
    operation_type: str
    transaction_type: str
    debit_account_code: str | None = None
    debit_account_name: str | None = None
    credit_account_code: str | None = None
    credit_account_name: str | None = None
    tax_account_code: str | None = None
    tax_rate: Decimal | None = rate_field()
    description_template: str | None = None
    auto_post: bool = False
    requires_approval: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class DiscountOperation(SQLModel, table=True):
    """Operación de descuento comercial con su asiento."""

    __tablename__ = "discount_operations"

    id: str = Field(default_factory=_new_id, primary_key=True)
    operation_number: str = Field(unique=True, index=True)
    entity_id: str = Field(index=True)
    customer_id: str | None = Field(default=None, index=True)
    discount_date: date
    maturity_date: date
    days: int
    nominal_amount: Decimal = money_field()
    interest_rate: Decimal = rate_field()
    commission_rate: Decimal = rate_field()
    expenses: Decimal = money_field(Decimal("0"))
    interest_amount: Decimal = money_field()
    commission_amount: Decimal = money_field()
    net_amount: Decimal = money_field()
    effective_rate: Decimal = rate_field()
    currency: str = "EUR"
    status: str = "draft"  # draft, posted
    is_balanced: bool = False
    entry_json: str | None = None  # JSON array of journal lines
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class DiscountEffectRow(SQLModel, table=True):
    """Efecto comercial (letra, pagaré, recibo, cheque)."""

    __tablename__ = "discount_effects"

    id: str = Field(default_factory=_new_id, primary_key=True)
    effect_type: str
    drawee_id: str = Field(index=True)
    drawee_name: str | None = None
    amount: Decimal = money_field()
    currency: str = "EUR"
    issue_date: date
    maturity_date: date = Field(index=True)
    bank_iban: str | None = None
    invoice_number: str | None = None
    entity_id: str | None = Field(default=None, index=True)
    status: str = Field(default="pending", index=True)
    remittance_id: str | None = Field(
        default=None, foreign_key="discount_remittances.id", index=True
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class DiscountRemittanceRow(SQLModel, table=True):
    """Remesa de efectos."""

    __tablename__ = "discount_remittances"

    id: str = Field(default_factory=_new_id, primary_key=True)
    remittance_number: str = Field(unique=True, index=True)
    entity_id: str = Field(index=True)
    effect_ids_json: str = "[]"
    total_effects: int = 0
    total_amount: Decimal = money_field(Decimal("0"))
    currency: str = "EUR"
    file_format: str = "cuaderno_58"
    status: str = Field(default="draft", index=True)
    bank_reference: str | None = None
    remittance_date: date = Field(index=True)
    generated_at: datetime | None = None
    sent_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 1


class FactoringContractRow(SQLModel, table=True):
    """Contrato de factoring."""

    __tablename__ = "factoring_contracts"

    id: str = Field(default_factory=_new_id, primary_key=True)
    contract_number: str = Field(unique=True, index=True)
    financial_entity_id: str = Field(index=True)
    customer_id: str
    contract_type: str = "with_recourse"
    global_limit: Decimal = money_field()
    available_limit: Decimal = money_field()
    advance_percentage: Decimal = rate_field()
    interest_rate: Decimal = rate_field()
    commission_rate: Decimal = rate_field()
    status: str = "active"
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class FactoringAssignmentRow(SQLModel, table=True):
    """Cesión de factura."""

    __tablename__ = "factoring_assignments"

    id: str = Field(default_factory=_new_id, primary_key=True)
    contract_id: str = Field(foreign_key="factoring_contracts.id", index=True)
    invoice_number: str = Field(index=True)
    debtor_id: str
    invoice_amount: Decimal = money_field()
    assigned_amount: Decimal = money_field()
    advance_percentage: Decimal = rate_field()
    advance_amount: Decimal = money_field()
    status: str = Field(default="pending", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
