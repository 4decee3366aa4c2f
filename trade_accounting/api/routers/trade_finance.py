"""
API Routers - Cálculos, plantillas, asientos y supervisor de operaciones de circulante.
"""

from fastapi import APIRouter, Depends, HTTPException

from trade_accounting.api.dependencies import (
    balance_dto,
    entry_dto,
    get_journal_generator,
    get_supervisor,
    get_template_registry,
    template_dto,
    to_entry_lines,
    to_operation_context,
)
from trade_accounting.application.dto.trade_finance_dto import (
    AccountingConfigDTO,
    AccountingConfigResponseDTO,
    AlertDTO,
    BalanceResultDTO,
    DiscountCalculationDTO,
    DiscountCalculationRequestDTO,
    FactoringCalculationDTO,
    FactoringCalculationRequestDTO,
    GenerateEntryRequestDTO,
    GeneratedEntryDTO,
    SupervisorReviewDTO,
    SupervisorReviewRequestDTO,
    TemplateDTO,
    ValidateLinesRequestDTO,
    ValidationDTO,
)
from trade_accounting.domain.calculator import (
    calculate_discount,
    calculate_factoring,
    discount_days,
)
from trade_accounting.domain.entities import AccountingConfig
from trade_accounting.domain.exceptions import InvalidOperationData
from trade_accounting.domain.journal import JournalEntryGenerator, validate_lines
from trade_accounting.domain.supervisor import AccountingSupervisor, SupervisorContext
from trade_accounting.domain.templates import TemplateRegistry
from trade_accounting.domain.value_objects import OperationType, TemplateKey

router = APIRouter(prefix="/api/v1/trade-finance", tags=["Circulante"])


@router.post("/calculations/discount", response_model=DiscountCalculationDTO)
def calculate_discount_operation(dto: DiscountCalculationRequestDTO):
    """
    Calcula un descuento comercial (año comercial de 360 días).

    Se indican los días o bien las fechas de negociación y vencimiento.
    """
    if dto.days is not None:
        days = dto.days
    elif dto.discount_date and dto.maturity_date:
        if dto.maturity_date < dto.discount_date:
            raise InvalidOperationData("Maturity date is before the discount date")
        days = discount_days(dto.discount_date, dto.maturity_date)
    else:
        raise InvalidOperationData("Provide days or both discount and maturity dates")

    result = calculate_discount(
        dto.nominal_amount, days, dto.interest_rate, dto.commission_rate, dto.expenses
    )
    return DiscountCalculationDTO(
        days=days,
        interest_amount=result.interest_amount,
        commission_amount=result.commission_amount,
        expenses=result.expenses,
        total_deductions=result.total_deductions,
        net_amount=result.net_amount,
        effective_rate=result.effective_rate,
    )


@router.post("/calculations/factoring", response_model=FactoringCalculationDTO)
def calculate_factoring_operation(dto: FactoringCalculationRequestDTO):
    """Calcula el anticipo, costes y líquido de una cesión de factoring."""
    result = calculate_factoring(
        dto.assigned_amount,
        dto.advance_percentage,
        dto.days,
        dto.interest_rate,
        dto.commission_rate,
        dto.expenses,
    )
    return FactoringCalculationDTO.model_validate(result)


@router.post("/journal-entries/generate", response_model=GeneratedEntryDTO)
def generate_journal_entry(
    dto: GenerateEntryRequestDTO,
    generator: JournalEntryGenerator = Depends(get_journal_generator),
):
    """
    Genera el asiento de una operación.

    - Configuración de usuario > plantilla por defecto > asiento estándar
    - Devuelve las partidas y los totales Debe/Haber
    """
    entry = generator.generate(
        dto.category,
        dto.operation_type,
        dto.transaction_type,
        to_operation_context(dto.operation),
        dto.references,
    )
    return entry_dto(entry)


@router.post("/journal-entries/validate", response_model=BalanceResultDTO)
def validate_journal_entry(dto: ValidateLinesRequestDTO):
    """Comprueba Debe = Haber con tolerancia de un céntimo."""
    return balance_dto(validate_lines(to_entry_lines(dto.lines)))


@router.get("/templates", response_model=list[TemplateDTO])
def list_templates(registry: TemplateRegistry = Depends(get_template_registry)):
    """Plantillas por defecto con la configuración de usuario aplicada."""
    result = []
    for template in registry.list_templates():
        resolved = registry.resolve(template.key)
        if resolved is not None:
            result.append(template_dto(resolved))
    return result


@router.get(
    "/templates/{category}/{operation_type}/{transaction_type}",
    response_model=TemplateDTO,
)
def get_template(
    category: str,
    operation_type: str,
    transaction_type: str,
    registry: TemplateRegistry = Depends(get_template_registry),
):
    resolved = registry.lookup(category, operation_type, transaction_type)
    if resolved is None:
        raise HTTPException(status_code=404, detail="No hay plantilla para esta operación")
    return template_dto(resolved)


@router.put("/templates/config", response_model=AccountingConfigResponseDTO)
def save_template_config(
    dto: AccountingConfigDTO,
    registry: TemplateRegistry = Depends(get_template_registry),
):
    """Guarda la configuración de usuario (una por clave; la última escritura prevalece)."""
    key = TemplateKey.of(dto.category, dto.operation_type, dto.transaction_type)
    saved = registry.save(AccountingConfig(
        key=key,
        debit_account_code=dto.debit_account_code,
        debit_account_name=dto.debit_account_name,
        credit_account_code=dto.credit_account_code,
        credit_account_name=dto.credit_account_name,
        tax_account_code=dto.tax_account_code,
        tax_rate=dto.tax_rate,
        description_template=dto.description_template,
        auto_post=dto.auto_post,
        requires_approval=dto.requires_approval,
    ))
    return AccountingConfigResponseDTO(
        category=saved.key.category.value,
        operation_type=saved.key.operation_type.value,
        transaction_type=saved.key.transaction_type.value,
        debit_account_code=saved.debit_account_code,
        debit_account_name=saved.debit_account_name,
        credit_account_code=saved.credit_account_code,
        credit_account_name=saved.credit_account_name,
        tax_account_code=saved.tax_account_code,
        tax_rate=saved.tax_rate,
        description_template=saved.description_template,
        auto_post=saved.auto_post,
        requires_approval=saved.requires_approval,
        id=saved.id,
        updated_at=saved.updated_at,
    )


@router.delete("/templates/config/{category}/{operation_type}/{transaction_type}")
def reset_template_config(
    category: str,
    operation_type: str,
    transaction_type: str,
    registry: TemplateRegistry = Depends(get_template_registry),
):
    """Elimina la configuración de usuario; vuelve a aplicarse la plantilla por defecto."""
    key = TemplateKey.of(category, operation_type, transaction_type)
    if not registry.reset(key):
        raise HTTPException(status_code=404, detail="No hay configuración para esta operación")
    return {"key": str(key), "reset": True}


@router.post("/supervisor/review", response_model=SupervisorReviewDTO)
def review_entry(
    dto: SupervisorReviewRequestDTO,
    supervisor: AccountingSupervisor = Depends(get_supervisor),
):
    """
    Ejecuta las reglas del supervisor sobre un asiento.

    has_errors indica si se debe bloquear la contabilización.
    """
    lines = tuple(to_entry_lines(dto.lines))
    context = SupervisorContext(
        operation=to_operation_context(dto.operation) if dto.operation else None,
        lines=lines,
        operation_type=OperationType(dto.operation_type) if dto.operation_type else None,
        auto_post=dto.auto_post,
        requires_approval=dto.requires_approval,
    )
    validations = supervisor.supervise(context)
    return SupervisorReviewDTO(
        validations=[ValidationDTO.model_validate(v) for v in validations],
        alerts=[AlertDTO.model_validate(a) for a in supervisor.sorted_alerts()],
        has_errors=supervisor.has_errors,
        critical_count=supervisor.critical_count,
        balance=balance_dto(validate_lines(lines)),
    )
