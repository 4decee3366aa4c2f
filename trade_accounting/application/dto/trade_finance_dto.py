"""
API DTOs - Data Transfer Objects for the trade-finance endpoints.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from trade_accounting.domain.value_objects import (
    AssignmentStatus,
    EffectStatus,
    EffectType,
    EntrySide,
    FactoringContractStatus,
    FactoringContractType,
    RemittanceFileFormat,
    RemittanceStatus,
    Severity,
    TemplateSource,
)


# Calculations

class DiscountCalculationRequestDTO(BaseModel):
    """DTO - Cálculo de descuento comercial."""
    nominal_amount: Decimal = Field(..., ge=0, description="Nominal de los efectos")
    days: int | None = Field(None, ge=0, description="Días de descuento")
    discount_date: date | None = Field(None, description="Fecha de negociación")
    maturity_date: date | None = Field(None, description="Fecha de vencimiento")
    interest_rate: Decimal = Field(..., ge=0, description="Tipo de interés anual %")
    commission_rate: Decimal = Field(Decimal("0"), ge=0, description="Comisión %")
    expenses: Decimal = Field(Decimal("0"), ge=0, description="Otros gastos")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "nominal_amount": 10000,
            "days": 90,
            "interest_rate": 5,
            "commission_rate": 0.5,
            "expenses": 10,
        }
    })


class DiscountCalculationDTO(BaseModel):
    """DTO - Resultado del cálculo de descuento."""
    days: int
    interest_amount: Decimal
    commission_amount: Decimal
    expenses: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    effective_rate: Decimal

    model_config = ConfigDict(from_attributes=True)


class FactoringCalculationRequestDTO(BaseModel):
    """DTO - Cálculo de anticipo de factoring."""
    assigned_amount: Decimal = Field(..., ge=0, description="Importe cedido")
    advance_percentage: Decimal = Field(..., ge=0, le=100, description="Porcentaje anticipado")
    days: int = Field(..., ge=0, description="Días hasta el vencimiento")
    interest_rate: Decimal = Field(..., ge=0, description="Tipo de interés anual %")
    commission_rate: Decimal = Field(Decimal("0"), ge=0, description="Comisión %")
    expenses: Decimal = Field(Decimal("0"), ge=0, description="Otros gastos")


class FactoringCalculationDTO(BaseModel):
    """DTO - Resultado del cálculo de factoring."""
    advance_amount: Decimal
    interest_amount: Decimal
    commission_amount: Decimal
    expenses: Decimal
    total_deductions: Decimal
    net_amount: Decimal
    effective_rate: Decimal

    model_config = ConfigDict(from_attributes=True)


# Journal entries

class OperationDataDTO(BaseModel):
    """DTO - Importes de la operación usados para rellenar la plantilla."""
    amount: Decimal | None = Field(None, description="Nominal / importe principal")
    interest_amount: Decimal = Field(Decimal("0"), ge=0, description="Intereses")
    commission_amount: Decimal = Field(Decimal("0"), ge=0, description="Comisiones")
    expenses: Decimal = Field(Decimal("0"), ge=0, description="Gastos")
    net_amount: Decimal | None = Field(None, description="Líquido (se calcula si se omite)")
    currency: str | None = Field(None, min_length=3, max_length=3, description="Moneda ISO 4217 (por defecto DEFAULT_CURRENCY)")
    counterparty_id: str | None = Field(None, description="Cliente o deudor")
    interest_rate: Decimal | None = Field(None, ge=0, description="Tipo de interés %")
    commission_rate: Decimal | None = Field(None, ge=0, description="Comisión %")


class JournalLineDTO(BaseModel):
    """DTO - Partida del asiento."""
    account_code: str = Field(..., description="Código de cuenta")
    account_name: str = Field("", description="Nombre de la cuenta")
    debit: Decimal = Field(Decimal("0"), ge=0, description="Debe")
    credit: Decimal = Field(Decimal("0"), ge=0, description="Haber")
    description: str = Field("", description="Concepto")
    is_new: bool = False
    is_edited: bool = False

    model_config = ConfigDict(from_attributes=True)


class GenerateEntryRequestDTO(BaseModel):
    """DTO - Generar asiento para una operación."""
    category: str = Field("trade_finance", description="Categoría de operación")
    operation_type: str = Field(..., description="commercial_discount | factoring | confirming")
    transaction_type: str = Field(..., description="discount | collection | return | advance | ...")
    operation: OperationDataDTO
    references: dict[str, str] = Field(default_factory=dict, description="Placeholders adicionales")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "operation_type": "commercial_discount",
            "transaction_type": "discount",
            "operation": {
                "amount": 10000,
                "interest_amount": 125,
                "commission_amount": 50,
                "expenses": 10,
                "counterparty_id": "CLI-001",
                "interest_rate": 5,
            },
        }
    })


class BalanceResultDTO(BaseModel):
    """DTO - Resultado de la validación Debe = Haber."""
    total_debit: Decimal
    total_credit: Decimal
    diff: Decimal
    is_balanced: bool

    model_config = ConfigDict(from_attributes=True)


class GeneratedEntryDTO(BaseModel):
    """DTO - Asiento generado."""
    category: str
    operation_type: str
    transaction_type: str
    source: TemplateSource
    currency: str
    auto_post: bool
    requires_approval: bool
    lines: list[JournalLineDTO]
    balance: BalanceResultDTO


class ValidateLinesRequestDTO(BaseModel):
    lines: list[JournalLineDTO] = Field(default_factory=list, description="Partidas a validar")


# Templates

class TemplateLineDTO(BaseModel):
    account_code: str
    account_name: str
    side: EntrySide
    amount_terms: list[str]
    description: str

    model_config = ConfigDict(from_attributes=True)


class TemplateDTO(BaseModel):
    """DTO - Plantilla contable efectiva."""
    category: str
    operation_type: str
    transaction_type: str
    source: TemplateSource | None = None
    debit_account_code: str
    debit_account_name: str
    credit_account_code: str
    credit_account_name: str
    description_template: str
    tax_account_code: str | None
    tax_rate: Decimal | None
    auto_post: bool = False
    requires_approval: bool = False
    lines: list[TemplateLineDTO] = []


class AccountingConfigDTO(BaseModel):
    """DTO - Configuración de usuario para una clave de plantilla."""
    category: str = Field("trade_finance", description="Categoría de operación")
    operation_type: str = Field(..., description="Tipo de operación")
    transaction_type: str = Field(..., description="Tipo de transacción")
    debit_account_code: str | None = Field(None, description="Cuenta Debe")
    debit_account_name: str | None = Field(None, description="Nombre cuenta Debe")
    credit_account_code: str | None = Field(None, description="Cuenta Haber")
    credit_account_name: str | None = Field(None, description="Nombre cuenta Haber")
    tax_account_code: str | None = Field(None, description="Cuenta de impuesto")
    tax_rate: Decimal | None = Field(None, ge=0, le=100, description="Tipo impositivo %")
    description_template: str | None = Field(None, description="Concepto con placeholders")
    auto_post: bool = Field(False, description="Contabilizar automáticamente")
    requires_approval: bool = Field(False, description="Requiere aprobación")


class AccountingConfigResponseDTO(AccountingConfigDTO):
    id: UUID
    updated_at: datetime


# Supervisor

class SupervisorReviewRequestDTO(BaseModel):
    """DTO - Revisión del supervisor sobre un asiento (posiblemente editado)."""
    operation_type: str | None = Field(None, description="Tipo de operación")
    operation: OperationDataDTO | None = None
    lines: list[JournalLineDTO] = Field(default_factory=list)
    auto_post: bool = False
    requires_approval: bool = False


class ValidationDTO(BaseModel):
    code: str
    severity: Severity
    message: str
    recommendation: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AlertDTO(BaseModel):
    id: str
    severity: Severity
    title: str
    message: str
    code: str
    recommendation: str | None
    timestamp: datetime
    is_read: bool
    is_spoken: bool

    model_config = ConfigDict(from_attributes=True)


class SupervisorReviewDTO(BaseModel):
    """DTO - Resultado de la revisión."""
    validations: list[ValidationDTO]
    alerts: list[AlertDTO]
    has_errors: bool
    critical_count: int
    balance: BalanceResultDTO


# Discount operations

class DiscountOperationCreateDTO(BaseModel):
    """DTO - Alta de una operación de descuento comercial."""
    entity_id: str = Field(..., min_length=1, description="Entidad financiera")
    customer_id: str | None = Field(None, description="Cliente")
    discount_date: date = Field(..., description="Fecha de negociación")
    maturity_date: date = Field(..., description="Fecha de vencimiento")
    nominal_amount: Decimal = Field(..., gt=0, description="Nominal")
    interest_rate: Decimal = Field(..., ge=0, description="Tipo de interés anual %")
    commission_rate: Decimal = Field(Decimal("0"), ge=0, description="Comisión %")
    expenses: Decimal = Field(Decimal("0"), ge=0, description="Otros gastos")
    currency: str | None = Field(None, min_length=3, max_length=3)


class DiscountOperationResponseDTO(BaseModel):
    """DTO - Operación de descuento con su asiento."""
    id: str
    operation_number: str
    entity_id: str
    customer_id: str | None
    discount_date: date
    maturity_date: date
    days: int
    nominal_amount: Decimal
    interest_amount: Decimal
    commission_amount: Decimal
    expenses: Decimal
    net_amount: Decimal
    effective_rate: Decimal
    currency: str
    status: str
    is_balanced: bool
    lines: list[JournalLineDTO] = []
    validations: list[ValidationDTO] = []


# Effects and remittances

class EffectCreateDTO(BaseModel):
    """DTO - Alta de efecto comercial."""
    effect_type: EffectType = Field(..., description="bill | promissory_note | receipt | check")
    drawee_id: str = Field(..., min_length=1, description="Librado")
    drawee_name: str | None = Field(None, description="Nombre del librado")
    amount: Decimal = Field(..., gt=0, description="Importe")
    currency: str | None = Field(None, min_length=3, max_length=3)
    issue_date: date
    maturity_date: date
    bank_iban: str | None = Field(None, description="IBAN de domiciliación")
    invoice_number: str | None = Field(None, description="Factura asociada")
    entity_id: str | None = Field(None, description="Entidad financiera prevista")


class EffectResponseDTO(BaseModel):
    id: str
    effect_type: EffectType
    drawee_id: str
    drawee_name: str | None
    amount: Decimal
    currency: str
    issue_date: date
    maturity_date: date
    bank_iban: str | None
    invoice_number: str | None
    status: EffectStatus
    remittance_id: str | None

    model_config = ConfigDict(from_attributes=True)


class EffectSettleDTO(BaseModel):
    outcome: EffectStatus = Field(..., description="paid | returned | protested")


class RemittanceCreateDTO(BaseModel):
    """DTO - Crear remesa."""
    entity_id: str = Field(..., description="Entidad financiera")
    effect_ids: list[str] = Field(..., description="Efectos incluidos")
    file_format: RemittanceFileFormat | None = Field(None, description="Formato del fichero")


class RemittanceTransitionDTO(BaseModel):
    bank_reference: str | None = Field(None, description="Referencia del banco")


class RemittanceResponseDTO(BaseModel):
    """DTO - Remesa."""
    id: str
    remittance_number: str
    entity_id: str
    effect_ids: list[str]
    total_effects: int
    total_amount: Decimal
    currency: str
    file_format: RemittanceFileFormat
    status: RemittanceStatus
    bank_reference: str | None
    created_at: datetime
    generated_at: datetime | None
    sent_at: datetime | None
    version: int

    model_config = ConfigDict(from_attributes=True)


# Factoring

class FactoringContractCreateDTO(BaseModel):
    """DTO - Contrato de factoring."""
    contract_number: str = Field(..., min_length=1)
    financial_entity_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    contract_type: FactoringContractType = FactoringContractType.WITH_RECOURSE
    global_limit: Decimal = Field(..., gt=0, description="Límite global")
    advance_percentage: Decimal = Field(..., ge=0, le=100, description="Porcentaje anticipado")
    interest_rate: Decimal = Field(..., ge=0)
    commission_rate: Decimal = Field(Decimal("0"), ge=0)


class FactoringContractResponseDTO(BaseModel):
    id: str
    contract_number: str
    financial_entity_id: str
    customer_id: str
    contract_type: FactoringContractType
    global_limit: Decimal
    available_limit: Decimal
    used_limit: Decimal
    advance_percentage: Decimal
    interest_rate: Decimal
    commission_rate: Decimal
    status: FactoringContractStatus

    model_config = ConfigDict(from_attributes=True)


class AssignmentCreateDTO(BaseModel):
    """DTO - Cesión de factura."""
    invoice_number: str = Field(..., description="Número de factura")
    debtor_id: str = Field(..., description="Deudor")
    invoice_amount: Decimal = Field(..., gt=0)
    assigned_amount: Decimal | None = Field(None, gt=0, description="Por defecto, el total")


class AssignmentResponseDTO(BaseModel):
    id: str
    contract_id: str
    invoice_number: str
    debtor_id: str
    invoice_amount: Decimal
    assigned_amount: Decimal
    advance_percentage: Decimal
    advance_amount: Decimal
    status: AssignmentStatus

    model_config = ConfigDict(from_attributes=True)


class AssignmentTransitionResponseDTO(BaseModel):
    assignment: AssignmentResponseDTO
    contract: FactoringContractResponseDTO
