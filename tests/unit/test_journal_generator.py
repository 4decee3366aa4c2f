"""
Unit tests - Generación automática de asientos.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from conftest import COLLECTION_KEY, DISCOUNT_KEY, PAYMENT_KEY
from trade_accounting.domain.entities import AccountingConfig
from trade_accounting.domain.exceptions import InvalidOperationData
from trade_accounting.domain.journal import validate_lines
from trade_accounting.domain.value_objects import OperationContext, TemplateSource


def _by_account(entry):
    return {line.account_code: line for line in entry.lines}


class TestTemplateGeneration:
    """Asiento a partir de la plantilla resuelta."""

    def test_discount_entry_lines(self, generator, discount_context):
        entry = generator.generate(
            "trade_finance", "commercial_discount", "discount", discount_context
        )
        lines = _by_account(entry)

        assert entry.source == TemplateSource.TEMPLATE
        assert [line.account_code for line in entry.lines] == ["5208", "572", "6651", "6269"]
        assert lines["5208"].credit == Decimal("10000.00")
        assert lines["572"].debit == Decimal("9815.00")
        assert lines["6651"].debit == Decimal("125.00")
        assert lines["6269"].debit == Decimal("60.00")
        assert entry.total_debit == entry.total_credit == Decimal("10000.00")
        assert entry.is_balanced

    def test_references_substituted_into_descriptions(self, generator, discount_context):
        entry = generator.generate_for_key(
            DISCOUNT_KEY, discount_context, {"remittance_number": "REM-20260115-0001"}
        )
        assert entry.lines[0].description == "Remesa REM-20260115-0001"

    def test_unknown_placeholder_left_untouched(self, generator, discount_context):
        entry = generator.generate_for_key(DISCOUNT_KEY, discount_context)
        assert entry.lines[0].description == "Remesa {remittance_number}"

    def test_zero_amount_template_lines_kept(self, generator):
        """Las líneas estructurales de la plantilla se emiten aunque valgan 0."""
        context = OperationContext(amount=Decimal("5000"), interest_amount=Decimal("40"))
        entry = generator.generate_for_key(DISCOUNT_KEY, context)

        commission = _by_account(entry)["6269"]
        assert commission.is_empty
        assert len(entry.lines) == 4

    def test_two_account_template(self, generator, discount_context):
        entry = generator.generate_for_key(COLLECTION_KEY, discount_context)

        assert [(l.account_code, l.debit, l.credit) for l in entry.lines] == [
            ("5208", Decimal("10000.00"), Decimal("0")),
            ("4311", Decimal("0"), Decimal("10000.00")),
        ]
        assert entry.lines[0].description == "Vencimiento 10000.00 EUR"

    def test_config_accounts_and_tax_line(self, generator, registry, discount_context):
        """Cuenta de impuesto configurada: partida adicional y Haber por el total."""
        registry.save(AccountingConfig(
            key=COLLECTION_KEY,
            debit_account_code="5209",
            tax_account_code="472",
            tax_rate=Decimal("21"),
            auto_post=True,
        ))
        entry = generator.generate_for_key(COLLECTION_KEY, discount_context)
        lines = _by_account(entry)

        assert entry.source == TemplateSource.CONFIG
        assert entry.auto_post is True
        assert lines["5209"].debit == Decimal("10000.00")
        assert lines["472"].debit == Decimal("2100.00")
        assert lines["4311"].credit == Decimal("12100.00")
        assert entry.is_balanced

    @pytest.mark.parametrize("description", [
        "Pago {supplier.name} {amount}",
        "Pago {supplier[name]} {amount}",
        "Pago {0} {amount}",
        "Pago {amount",
    ])
    def test_malformed_config_description_kept_verbatim(
        self, generator, registry, discount_context, description
    ):
        registry.save(AccountingConfig(key=COLLECTION_KEY, description_template=description))
        entry = generator.generate_for_key(COLLECTION_KEY, discount_context)

        assert entry.lines[0].description == description
        assert entry.is_balanced

    def test_supplied_net_amount_used_as_given(self, generator, discount_context):
        """Un líquido informado a mano se respeta aunque descuadre el asiento."""
        context = replace(discount_context, net_amount=Decimal("9800.00"))
        entry = generator.generate_for_key(DISCOUNT_KEY, context)

        assert _by_account(entry)["572"].debit == Decimal("9800.00")
        assert not entry.is_balanced
        assert entry.balance.diff == Decimal("15.00")

    @pytest.mark.parametrize("amount", [None, Decimal("0"), Decimal("-10")])
    def test_missing_amount_rejected(self, generator, amount):
        with pytest.raises(InvalidOperationData):
            generator.generate_for_key(DISCOUNT_KEY, OperationContext(amount=amount))


class TestFallbackGeneration:
    """Asiento estándar cuando no hay plantilla."""

    def test_confirming_fallback(self, generator):
        entry = generator.generate_for_key(PAYMENT_KEY, OperationContext(amount=Decimal("750.40")))

        assert entry.source == TemplateSource.FALLBACK
        assert [(l.account_code, l.debit, l.credit) for l in entry.lines] == [
            ("400", Decimal("750.40"), Decimal("0")),
            ("5201", Decimal("0"), Decimal("750.40")),
        ]

    @pytest.mark.parametrize("operation_type,transaction_type", [
        ("commercial_discount", "return"),
        ("factoring", "advance"),
        ("confirming", "settlement"),
    ])
    def test_fallback_never_emits_empty_lines(self, generator, operation_type, transaction_type):
        context = OperationContext(amount=Decimal("1000"), interest_amount=Decimal("12.50"))
        entry = generator.generate("trade_finance", operation_type, transaction_type, context)

        assert entry.source == TemplateSource.FALLBACK
        assert entry.lines
        assert all(not line.is_empty for line in entry.lines)

    def test_factoring_fallback_balances(self, generator):
        context = OperationContext(
            amount=Decimal("40000.00"),
            interest_amount=Decimal("300.00"),
            commission_amount=Decimal("240.00"),
        )
        entry = generator.generate("trade_finance", "factoring", "advance", context)

        assert [line.account_code for line in entry.lines] == ["4310", "572", "6655", "6269"]
        assert entry.is_balanced

    def test_revalidating_generated_lines_is_stable(self, generator, discount_context):
        entry = generator.generate_for_key(DISCOUNT_KEY, discount_context)
        assert validate_lines(entry.lines) == entry.balance
