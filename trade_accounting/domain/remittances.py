"""
Remittance Batch Builder - Remesas de efectos para descuento/cobro.
"""

from datetime import datetime

import structlog

from .entities import DiscountEffect, DiscountRemittance
from .exceptions import (
    EffectAlreadyAssigned,
    EffectNotFound,
    InvalidOperationData,
    RemittanceNotFound,
)
from .repositories import IRemittanceRepository
from .value_objects import (
    ZERO,
    EffectStatus,
    RemittanceFileFormat,
    RemittanceStatus,
)

logger = structlog.get_logger(__name__)

# Member effects moved (from, to) when the remittance reaches each status.
# Settled effects (paid, returned, protested) are never touched.
_EFFECT_TRANSITION_ON = {
    RemittanceStatus.SENT: (EffectStatus.PENDING, EffectStatus.DISCOUNTED),
    RemittanceStatus.CONFIRMED: (EffectStatus.PENDING, EffectStatus.DISCOUNTED),
    RemittanceStatus.REJECTED: (EffectStatus.DISCOUNTED, EffectStatus.PENDING),
}

_SETTLEMENT_OUTCOMES = {EffectStatus.PAID, EffectStatus.RETURNED, EffectStatus.PROTESTED}


class RemittanceBatchBuilder:
    """
    Service - Agrupa efectos pendientes en una remesa para una entidad.

    Lifecycle: draft -> generated -> sent -> confirmed | rejected.
    A rejected remittance returns its discounted effects to pending;
    effects already settled keep their outcome.
    """

    def __init__(self, repository: IRemittanceRepository):
        self.repository = repository

    def create_remittance(
        self,
        entity_id: str,
        effect_ids: list[str],
        file_format: RemittanceFileFormat = RemittanceFileFormat.CUADERNO_58,
    ) -> DiscountRemittance:
        if not entity_id:
            raise InvalidOperationData("Seleccione una entidad financiera")
        if not effect_ids:
            raise InvalidOperationData("Seleccione al menos un efecto para la remesa")
        if len(set(effect_ids)) != len(effect_ids):
            raise InvalidOperationData("Effect ids must not repeat within a remittance")

        effects = self.repository.get_effects(effect_ids)
        found = {effect.id: effect for effect in effects}
        missing = [effect_id for effect_id in effect_ids if effect_id not in found]
        if missing:
            raise EffectNotFound(missing)

        unavailable = [effect_id for effect_id in effect_ids if not found[effect_id].is_available]
        if unavailable:
            logger.warning(
                "remittance.effects_unavailable", entity_id=entity_id, effect_ids=unavailable
            )
            raise EffectAlreadyAssigned(unavailable)

        currencies = {found[effect_id].currency for effect_id in effect_ids}
        if len(currencies) > 1:
            raise InvalidOperationData(
                f"A remittance cannot mix currencies: {', '.join(sorted(currencies))}"
            )

        today = datetime.utcnow().date()
        sequence = self.repository.next_remittance_sequence(today)
        remittance = DiscountRemittance(
            remittance_number=f"REM-{today:%Y%m%d}-{sequence:04d}",
            entity_id=entity_id,
            effect_ids=list(effect_ids),
            total_amount=sum((found[effect_id].amount for effect_id in effect_ids), ZERO),
            currency=currencies.pop(),
            file_format=RemittanceFileFormat(file_format),
        )
        # The repository re-checks availability atomically and may still raise.
        saved = self.repository.create_remittance(remittance)
        logger.info(
            "remittance.created",
            remittance_number=saved.remittance_number,
            entity_id=entity_id,
            total_effects=saved.total_effects,
            total_amount=str(saved.total_amount),
        )
        return saved

    def get(self, remittance_id: str) -> DiscountRemittance:
        remittance = self.repository.get_remittance(remittance_id)
        if remittance is None:
            raise RemittanceNotFound(remittance_id)
        return remittance

    def transition(
        self,
        remittance_id: str,
        target: RemittanceStatus,
        bank_reference: str | None = None,
    ) -> DiscountRemittance:
        remittance = self.get(remittance_id)
        updated = remittance.transition_to(target, bank_reference=bank_reference)
        target = updated.status
        saved = self.repository.save_remittance(
            updated,
            effect_transition=_EFFECT_TRANSITION_ON.get(target),
            release_effects=target == RemittanceStatus.REJECTED,
        )
        logger.info(
            "remittance.transition",
            remittance_number=saved.remittance_number,
            from_status=remittance.status.value,
            to_status=target.value,
        )
        return saved

    def mark_generated(self, remittance_id: str) -> DiscountRemittance:
        """The file itself is produced by an external formatter."""
        return self.transition(remittance_id, RemittanceStatus.GENERATED)

    def mark_sent(self, remittance_id: str, bank_reference: str | None = None) -> DiscountRemittance:
        return self.transition(remittance_id, RemittanceStatus.SENT, bank_reference)

    def confirm(self, remittance_id: str, bank_reference: str | None = None) -> DiscountRemittance:
        return self.transition(remittance_id, RemittanceStatus.CONFIRMED, bank_reference)

    def reject(self, remittance_id: str) -> DiscountRemittance:
        return self.transition(remittance_id, RemittanceStatus.REJECTED)

    def pending_effects(self, entity_id: str | None = None) -> list[DiscountEffect]:
        return self.repository.list_pending_effects(entity_id)

    def list_remittances(self, entity_id: str | None = None) -> list[DiscountRemittance]:
        return self.repository.list_remittances(entity_id)

    def settle_effect(self, effect_id: str, outcome: EffectStatus) -> DiscountEffect:
        """Registra el resultado del cobro: pagado, devuelto o protestado."""
        outcome = EffectStatus(outcome)
        if outcome not in _SETTLEMENT_OUTCOMES:
            raise InvalidOperationData(f"'{outcome.value}' is not a collection outcome")
        effects = self.repository.get_effects([effect_id])
        if not effects:
            raise EffectNotFound([effect_id])
        updated = effects[0].transition_to(outcome)
        saved = self.repository.save_effect(updated)
        logger.info("effect.settled", effect_id=effect_id, status=outcome.value)
        return saved
