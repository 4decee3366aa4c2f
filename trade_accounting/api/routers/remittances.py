"""
API Routers - Efectos comerciales y remesas.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from trade_accounting.api.dependencies import get_remittance_builder
from trade_accounting.application.dto.trade_finance_dto import (
    EffectCreateDTO,
    EffectResponseDTO,
    EffectSettleDTO,
    RemittanceCreateDTO,
    RemittanceResponseDTO,
    RemittanceTransitionDTO,
)
from trade_accounting.core.config import get_settings
from trade_accounting.domain.entities import DiscountEffect
from trade_accounting.domain.exceptions import InvalidOperationData
from trade_accounting.domain.remittances import RemittanceBatchBuilder
from trade_accounting.domain.value_objects import RemittanceFileFormat
from trade_accounting.infrastructure.database import get_db
from trade_accounting.infrastructure.repositories import SqlRemittanceRepository

router = APIRouter(prefix="/api/v1/trade-finance", tags=["Remesas"])


@router.post("/effects", response_model=EffectResponseDTO, status_code=status.HTTP_201_CREATED)
def create_effect(dto: EffectCreateDTO, db: Session = Depends(get_db)):
    """Alta de un efecto en cartera (pendiente de remesar)."""
    if dto.maturity_date < dto.issue_date:
        raise InvalidOperationData("Maturity date is before the issue date")
    effect = DiscountEffect(
        effect_type=dto.effect_type,
        drawee_id=dto.drawee_id,
        drawee_name=dto.drawee_name,
        amount=dto.amount,
        currency=dto.currency or get_settings().default_currency,
        issue_date=dto.issue_date,
        maturity_date=dto.maturity_date,
        bank_iban=dto.bank_iban,
        invoice_number=dto.invoice_number,
    )
    saved = SqlRemittanceRepository(db).save_effect(effect, entity_id=dto.entity_id)
    return EffectResponseDTO.model_validate(saved)


@router.get("/effects/pending", response_model=list[EffectResponseDTO])
def list_pending_effects(
    entity_id: str | None = None,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    """Efectos pendientes y sin remesa, por fecha de vencimiento."""
    return [EffectResponseDTO.model_validate(e) for e in builder.pending_effects(entity_id)]


@router.post("/effects/{effect_id}/settle", response_model=EffectResponseDTO)
def settle_effect(
    effect_id: str,
    dto: EffectSettleDTO,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    """Resultado del cobro al vencimiento: pagado, devuelto o protestado."""
    return EffectResponseDTO.model_validate(builder.settle_effect(effect_id, dto.outcome))


@router.post(
    "/remittances",
    response_model=RemittanceResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def create_remittance(
    dto: RemittanceCreateDTO,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    """
    Crea una remesa en borrador.

    - Todos los efectos deben estar pendientes y sin remesa (409 en otro caso)
    - El total es la suma de los importes de los efectos
    """
    file_format = dto.file_format or RemittanceFileFormat(get_settings().default_remittance_format)
    remittance = builder.create_remittance(dto.entity_id, dto.effect_ids, file_format)
    return RemittanceResponseDTO.model_validate(remittance)


@router.get("/remittances", response_model=list[RemittanceResponseDTO])
def list_remittances(
    entity_id: str | None = None,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    return [RemittanceResponseDTO.model_validate(r) for r in builder.list_remittances(entity_id)]


@router.get("/remittances/{remittance_id}", response_model=RemittanceResponseDTO)
def get_remittance(
    remittance_id: str,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    return RemittanceResponseDTO.model_validate(builder.get(remittance_id))


@router.post("/remittances/{remittance_id}/generate", response_model=RemittanceResponseDTO)
def generate_remittance_file(
    remittance_id: str,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    return RemittanceResponseDTO.model_validate(builder.mark_generated(remittance_id))


@router.post("/remittances/{remittance_id}/send", response_model=RemittanceResponseDTO)
def send_remittance(
    remittance_id: str,
    dto: RemittanceTransitionDTO | None = None,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    bank_reference = dto.bank_reference if dto else None
    return RemittanceResponseDTO.model_validate(builder.mark_sent(remittance_id, bank_reference))


@router.post("/remittances/{remittance_id}/confirm", response_model=RemittanceResponseDTO)
def confirm_remittance(
    remittance_id: str,
    dto: RemittanceTransitionDTO | None = None,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    bank_reference = dto.bank_reference if dto else None
    return RemittanceResponseDTO.model_validate(builder.confirm(remittance_id, bank_reference))


@router.post("/remittances/{remittance_id}/reject", response_model=RemittanceResponseDTO)
def reject_remittance(
    remittance_id: str,
    builder: RemittanceBatchBuilder = Depends(get_remittance_builder),
):
    """Rechazo del banco: los efectos vuelven a cartera."""
    return RemittanceResponseDTO.model_validate(builder.reject(remittance_id))
