"""
Unit tests - Remesas de efectos.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import make_effect
from trade_accounting.domain.exceptions import (
    EffectAlreadyAssigned,
    EffectNotFound,
    InvalidEffectTransition,
    InvalidOperationData,
    InvalidRemittanceTransition,
    RemittanceNotFound,
)
from trade_accounting.domain.value_objects import (
    EffectStatus,
    RemittanceFileFormat,
    RemittanceStatus,
)


class TestCreateRemittance:

    def test_total_is_sum_of_effects(self, builder):
        remittance = builder.create_remittance("BANCO-1", ["E1", "E2"])

        assert remittance.total_amount == Decimal("3500.50")
        assert remittance.total_effects == 2
        assert remittance.status == RemittanceStatus.DRAFT
        assert remittance.file_format == RemittanceFileFormat.CUADERNO_58

    def test_remittance_number_format(self, builder):
        first = builder.create_remittance("BANCO-1", ["E1"])
        second = builder.create_remittance("BANCO-1", ["E2"], RemittanceFileFormat.SEPA_XML)

        today = datetime.utcnow().strftime("%Y%m%d")
        assert first.remittance_number == f"REM-{today}-0001"
        assert second.remittance_number == f"REM-{today}-0002"
        assert second.file_format == RemittanceFileFormat.SEPA_XML

    def test_effects_cannot_join_two_open_remittances(self, builder):
        builder.create_remittance("BANCO-1", ["E1", "E2"])

        with pytest.raises(EffectAlreadyAssigned) as exc_info:
            builder.create_remittance("BANCO-2", ["E3", "E2"])
        assert exc_info.value.effect_ids == ["E2"]

    def test_all_offending_effects_reported(self, builder, remittance_repository):
        """Efecto pagado y efecto ya remesado: ambos en el error, nada se crea."""
        with pytest.raises(EffectAlreadyAssigned) as exc_info:
            builder.create_remittance("BANCO-1", ["E1", "E4", "E5"])

        assert exc_info.value.effect_ids == ["E4", "E5"]
        assert remittance_repository.remittances == {}
        assert remittance_repository.effects["E1"].remittance_id is None

    def test_unknown_effect(self, builder):
        with pytest.raises(EffectNotFound) as exc_info:
            builder.create_remittance("BANCO-1", ["E1", "NOPE"])
        assert exc_info.value.effect_ids == ["NOPE"]

    @pytest.mark.parametrize("entity_id,effect_ids", [
        ("", ["E1"]),
        ("BANCO-1", []),
        ("BANCO-1", ["E1", "E1"]),
    ])
    def test_invalid_selection(self, builder, entity_id, effect_ids):
        with pytest.raises(InvalidOperationData):
            builder.create_remittance(entity_id, effect_ids)

    def test_mixed_currencies_rejected(self, builder, remittance_repository):
        remittance_repository.save_effect(make_effect("USD1", "100.00", currency="USD"))
        with pytest.raises(InvalidOperationData):
            builder.create_remittance("BANCO-1", ["E1", "USD1"])

    def test_pending_effects_exclude_assigned(self, builder):
        builder.create_remittance("BANCO-1", ["E1"])
        pending = builder.pending_effects()
        assert [e.id for e in pending] == ["E2", "E3"]


class TestRemittanceLifecycle:

    @pytest.fixture
    def remittance(self, builder):
        return builder.create_remittance("BANCO-1", ["E1", "E2"])

    def test_full_lifecycle(self, builder, remittance_repository, remittance):
        generated = builder.mark_generated(remittance.id)
        assert generated.generated_at is not None

        sent = builder.mark_sent(remittance.id, bank_reference="BK-778")
        assert sent.status == RemittanceStatus.SENT
        assert sent.bank_reference == "BK-778"
        assert remittance_repository.effects["E1"].status == EffectStatus.DISCOUNTED

        confirmed = builder.confirm(remittance.id)
        assert confirmed.status == RemittanceStatus.CONFIRMED
        assert confirmed.version == remittance.version + 3

    def test_skipped_transition_rejected(self, builder, remittance):
        with pytest.raises(InvalidRemittanceTransition):
            builder.mark_sent(remittance.id)
        with pytest.raises(InvalidRemittanceTransition):
            builder.confirm(remittance.id)

    def test_rejection_releases_effects(self, builder, remittance_repository, remittance):
        builder.mark_generated(remittance.id)
        builder.mark_sent(remittance.id)
        builder.reject(remittance.id)

        effect = remittance_repository.effects["E2"]
        assert effect.status == EffectStatus.PENDING
        assert effect.remittance_id is None

        again = builder.create_remittance("BANCO-2", ["E1", "E2"])
        assert again.total_amount == Decimal("3500.50")

    def test_rejection_keeps_settled_effects(self, builder, remittance_repository, remittance):
        """Un efecto ya cobrado no vuelve a cartera al rechazar la remesa."""
        builder.mark_generated(remittance.id)
        builder.mark_sent(remittance.id)
        builder.settle_effect("E1", "paid")
        builder.reject(remittance.id)

        paid = remittance_repository.effects["E1"]
        assert paid.status == EffectStatus.PAID
        assert paid.remittance_id == remittance.id
        assert [e.id for e in builder.pending_effects()] == ["E2", "E3"]
        with pytest.raises(EffectAlreadyAssigned):
            builder.create_remittance("BANCO-2", ["E1"])

    def test_confirmation_keeps_settled_effects(self, builder, remittance_repository, remittance):
        builder.mark_generated(remittance.id)
        builder.mark_sent(remittance.id)
        builder.settle_effect("E2", "returned")
        builder.confirm(remittance.id)

        assert remittance_repository.effects["E1"].status == EffectStatus.DISCOUNTED
        assert remittance_repository.effects["E2"].status == EffectStatus.RETURNED

    def test_terminal_status(self, builder, remittance):
        builder.mark_generated(remittance.id)
        builder.mark_sent(remittance.id)
        builder.reject(remittance.id)
        with pytest.raises(InvalidRemittanceTransition):
            builder.confirm(remittance.id)

    def test_unknown_remittance(self, builder):
        with pytest.raises(RemittanceNotFound):
            builder.get("missing")


class TestEffectSettlement:

    def _discounted(self, builder):
        remittance = builder.create_remittance("BANCO-1", ["E1"])
        builder.mark_generated(remittance.id)
        builder.mark_sent(remittance.id)

    def test_paid_at_maturity(self, builder):
        self._discounted(builder)
        assert builder.settle_effect("E1", EffectStatus.PAID).status == EffectStatus.PAID

    def test_returned_then_protested(self, builder):
        self._discounted(builder)
        builder.settle_effect("E1", "returned")
        assert builder.settle_effect("E1", "protested").status == EffectStatus.PROTESTED

    def test_returned_effect_does_not_return_to_portfolio(self):
        returned = make_effect("R1", "100.00", status=EffectStatus.RETURNED)
        with pytest.raises(InvalidEffectTransition):
            returned.transition_to(EffectStatus.PENDING)

    def test_pending_effect_cannot_be_paid(self, builder):
        with pytest.raises(InvalidEffectTransition):
            builder.settle_effect("E3", EffectStatus.PAID)

    def test_outcome_must_be_collection_result(self, builder):
        with pytest.raises(InvalidOperationData):
            builder.settle_effect("E1", EffectStatus.DISCOUNTED)

    def test_unknown_effect(self, builder):
        with pytest.raises(EffectNotFound):
            builder.settle_effect("NOPE", EffectStatus.PAID)
