"""
API Routers - Operaciones de descuento comercial con asiento automático.
"""

import json

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from trade_accounting.api.dependencies import get_journal_generator, get_supervisor
from trade_accounting.application.dto.trade_finance_dto import (
    DiscountOperationCreateDTO,
    DiscountOperationResponseDTO,
    JournalLineDTO,
    ValidationDTO,
)
from trade_accounting.core.config import get_settings
from trade_accounting.domain.calculator import (
    build_operation_context,
    calculate_discount,
    discount_days,
)
from trade_accounting.domain.exceptions import InvalidOperationData
from trade_accounting.domain.journal import JournalEntryGenerator
from trade_accounting.domain.supervisor import AccountingSupervisor, SupervisorContext
from trade_accounting.domain.value_objects import OperationKind, TemplateKey
from trade_accounting.infrastructure.database import get_db
from trade_accounting.infrastructure.database.models import DiscountOperation

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/trade-finance", tags=["Descuento comercial"])


def _entry_json(lines: list[JournalLineDTO], validations: list[ValidationDTO]) -> str:
    return json.dumps({
        "lines": [line.model_dump(mode="json") for line in lines],
        "validations": [v.model_dump(mode="json") for v in validations],
    }, ensure_ascii=False)


def _to_response(operation: DiscountOperation) -> DiscountOperationResponseDTO:
    stored = json.loads(operation.entry_json) if operation.entry_json else {}
    return DiscountOperationResponseDTO(
        id=operation.id,
        operation_number=operation.operation_number,
        entity_id=operation.entity_id,
        customer_id=operation.customer_id,
        discount_date=operation.discount_date,
        maturity_date=operation.maturity_date,
        days=operation.days,
        nominal_amount=operation.nominal_amount,
        interest_amount=operation.interest_amount,
        commission_amount=operation.commission_amount,
        expenses=operation.expenses,
        net_amount=operation.net_amount,
        effective_rate=operation.effective_rate,
        currency=operation.currency,
        status=operation.status,
        is_balanced=operation.is_balanced,
        lines=[JournalLineDTO.model_validate(line) for line in stored.get("lines", [])],
        validations=[ValidationDTO.model_validate(v) for v in stored.get("validations", [])],
    )


@router.post(
    "/discount-operations",
    response_model=DiscountOperationResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def create_discount_operation(
    dto: DiscountOperationCreateDTO,
    db: Session = Depends(get_db),
    generator: JournalEntryGenerator = Depends(get_journal_generator),
    supervisor: AccountingSupervisor = Depends(get_supervisor),
):
    """
    Registra una operación de descuento.

    - Calcula intereses, comisión y líquido
    - Genera el asiento y lo revisa el supervisor
    - Solo se contabiliza si la plantilla lo permite y no hay errores
    """
    if dto.maturity_date < dto.discount_date:
        raise InvalidOperationData("Maturity date is before the discount date")

    # Numeración: DES-YYYYMMDD-NNNN
    date_str = dto.discount_date.strftime("%Y%m%d")
    existing = db.query(DiscountOperation).filter(
        DiscountOperation.operation_number.like(f"DES-{date_str}-%")
    ).count()
    operation_number = f"DES-{date_str}-{existing + 1:04d}"

    currency = dto.currency or get_settings().default_currency
    days = discount_days(dto.discount_date, dto.maturity_date)
    calculation = calculate_discount(
        dto.nominal_amount, days, dto.interest_rate, dto.commission_rate, dto.expenses
    )
    context = build_operation_context(
        dto.nominal_amount,
        calculation,
        currency=currency,
        counterparty_id=dto.customer_id,
        interest_rate=dto.interest_rate,
        commission_rate=dto.commission_rate,
        references={"operation_number": operation_number},
    )
    entry = generator.generate_for_key(TemplateKey.for_kind(OperationKind.DISCOUNT), context)
    validations = supervisor.supervise(SupervisorContext.from_entry(entry, context))

    posted = entry.auto_post and not supervisor.has_errors
    lines = [JournalLineDTO.model_validate(line) for line in entry.lines]
    validation_dtos = [ValidationDTO.model_validate(v) for v in validations]

    operation = DiscountOperation(
        operation_number=operation_number,
        entity_id=dto.entity_id,
        customer_id=dto.customer_id,
        discount_date=dto.discount_date,
        maturity_date=dto.maturity_date,
        days=days,
        nominal_amount=dto.nominal_amount,
        interest_rate=dto.interest_rate,
        commission_rate=dto.commission_rate,
        expenses=calculation.expenses,
        interest_amount=calculation.interest_amount,
        commission_amount=calculation.commission_amount,
        net_amount=calculation.net_amount,
        effective_rate=calculation.effective_rate,
        currency=currency,
        status="posted" if posted else "draft",
        is_balanced=entry.is_balanced,
        entry_json=_entry_json(lines, validation_dtos),
    )
    db.add(operation)
    db.commit()
    db.refresh(operation)

    logger.info(
        "discount_operation.created",
        operation_number=operation_number,
        status=operation.status,
        net_amount=str(calculation.net_amount),
        has_errors=supervisor.has_errors,
    )
    return _to_response(operation)


@router.get("/discount-operations/{operation_id}", response_model=DiscountOperationResponseDTO)
def get_discount_operation(operation_id: str, db: Session = Depends(get_db)):
    operation = db.get(DiscountOperation, operation_id)
    if not operation:
        raise HTTPException(status_code=404, detail="Operación de descuento no encontrada")
    return _to_response(operation)
