"""
Pytest configuration and fixtures.
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from trade_accounting.domain.entities import (
    AccountingConfig,
    AccountingTemplate,
    DiscountEffect,
    DiscountRemittance,
    FactoringContract,
    SupervisorAlert,
)
from trade_accounting.domain.exceptions import EffectAlreadyAssigned
from trade_accounting.domain.journal import JournalEntryGenerator
from trade_accounting.domain.remittances import RemittanceBatchBuilder
from trade_accounting.domain.repositories import (
    IAlertNotifier,
    IRemittanceRepository,
    ITemplateRepository,
)
from trade_accounting.domain.templates import TemplateRegistry
from trade_accounting.domain.value_objects import (
    AmountVariable as A,
    EffectStatus,
    EffectType,
    EntrySide,
    FactoringContractType,
    OperationContext,
    TemplateKey,
    TemplateLine,
)


class InMemoryTemplateRepository(ITemplateRepository):

    def __init__(self, templates: list[AccountingTemplate] | None = None):
        self.templates = {t.key: t for t in templates or []}
        self.configs: dict[TemplateKey, AccountingConfig] = {}

    def get_default_template(self, key):
        return self.templates.get(key)

    def list_templates(self):
        return list(self.templates.values())

    def get_config(self, key):
        return self.configs.get(key)

    def upsert_config(self, config):
        self.configs[config.key] = config
        return config

    def delete_config(self, key):
        return self.configs.pop(key, None) is not None


class InMemoryRemittanceRepository(IRemittanceRepository):

    def __init__(self, effects: list[DiscountEffect] | None = None):
        self.effects = {e.id: e for e in effects or []}
        self.remittances: dict[str, DiscountRemittance] = {}

    def get_effects(self, effect_ids):
        return [self.effects[i] for i in effect_ids if i in self.effects]

    def list_pending_effects(self, entity_id=None):
        pending = [e for e in self.effects.values() if e.is_available]
        return sorted(pending, key=lambda e: e.maturity_date)

    def next_remittance_sequence(self, day):
        return sum(1 for r in self.remittances.values() if r.created_at.date() == day) + 1

    def create_remittance(self, remittance):
        taken = [i for i in remittance.effect_ids if not self.effects[i].is_available]
        if taken:
            raise EffectAlreadyAssigned(taken)
        for effect_id in remittance.effect_ids:
            self.effects[effect_id] = replace(self.effects[effect_id], remittance_id=remittance.id)
        self.remittances[remittance.id] = remittance
        return remittance

    def get_remittance(self, remittance_id):
        return self.remittances.get(remittance_id)

    def list_remittances(self, entity_id=None):
        return [r for r in self.remittances.values() if entity_id in (None, r.entity_id)]

    def save_remittance(self, remittance, effect_transition=None, release_effects=False):
        self.remittances[remittance.id] = remittance
        if effect_transition is None:
            return remittance
        source, target = effect_transition
        for effect_id in remittance.effect_ids:
            effect = self.effects[effect_id]
            if effect.remittance_id != remittance.id or effect.status != source:
                continue
            effect = replace(effect, status=target)
            if release_effects:
                effect = replace(effect, remittance_id=None)
            self.effects[effect_id] = effect
        return remittance

    def save_effect(self, effect):
        self.effects[effect.id] = effect
        return effect


class RecordingNotifier(IAlertNotifier):

    def __init__(self):
        self.spoken: list[SupervisorAlert] = []
        self.cancelled = 0

    def speak(self, alert):
        self.spoken.append(alert)

    def cancel(self):
        self.cancelled += 1


DISCOUNT_KEY = TemplateKey.of("trade_finance", "commercial_discount", "discount")
COLLECTION_KEY = TemplateKey.of("trade_finance", "commercial_discount", "collection")
PAYMENT_KEY = TemplateKey.of("trade_finance", "confirming", "payment")


@pytest.fixture
def discount_template() -> AccountingTemplate:
    return AccountingTemplate(
        key=DISCOUNT_KEY,
        debit_account_code="572",
        debit_account_name="Bancos c/c",
        credit_account_code="5208",
        credit_account_name="Deudas por efectos descontados",
        description_template="Descuento {amount} {currency}",
        lines=(
            TemplateLine("5208", "Deudas por efectos descontados", EntrySide.CREDIT, (A.AMOUNT,), "Remesa {remittance_number}"),
            TemplateLine("572", "Bancos c/c", EntrySide.DEBIT, (A.NET_AMOUNT,), "Líquido"),
            TemplateLine("6651", "Intereses de descuento", EntrySide.DEBIT, (A.INTEREST_AMOUNT,), "Intereses"),
            TemplateLine("6269", "Comisiones bancarias", EntrySide.DEBIT, (A.COMMISSION_AMOUNT, A.EXPENSES), "Gastos"),
        ),
    )


@pytest.fixture
def collection_template() -> AccountingTemplate:
    return AccountingTemplate(
        key=COLLECTION_KEY,
        debit_account_code="5208",
        debit_account_name="Deudas por efectos descontados",
        credit_account_code="4311",
        credit_account_name="Efectos comerciales descontados",
        description_template="Vencimiento {amount} {currency}",
    )


@pytest.fixture
def template_repository(discount_template, collection_template) -> InMemoryTemplateRepository:
    return InMemoryTemplateRepository([discount_template, collection_template])


@pytest.fixture
def registry(template_repository) -> TemplateRegistry:
    return TemplateRegistry(template_repository)


@pytest.fixture
def generator(registry) -> JournalEntryGenerator:
    return JournalEntryGenerator(registry)


@pytest.fixture
def discount_context() -> OperationContext:
    """10.000 EUR a 90 días al 5% con 0,5% de comisión y 10 EUR de gastos."""
    return OperationContext(
        amount=Decimal("10000.00"),
        interest_amount=Decimal("125.00"),
        commission_amount=Decimal("50.00"),
        expenses=Decimal("10.00"),
        counterparty_id="CLI-001",
        interest_rate=Decimal("5"),
        commission_rate=Decimal("0.5"),
    )


def make_effect(effect_id: str, amount: str, **kwargs) -> DiscountEffect:
    return DiscountEffect(
        id=effect_id,
        effect_type=kwargs.pop("effect_type", EffectType.BILL),
        drawee_id=kwargs.pop("drawee_id", "CLI-001"),
        amount=Decimal(amount),
        issue_date=date(2026, 1, 10),
        maturity_date=kwargs.pop("maturity_date", date(2026, 4, 10)),
        **kwargs,
    )


@pytest.fixture
def effects() -> list[DiscountEffect]:
    return [
        make_effect("E1", "1000.00"),
        make_effect("E2", "2500.50", maturity_date=date(2026, 3, 1)),
        make_effect("E3", "300.25"),
        make_effect("E4", "999.99", status=EffectStatus.PAID),
        make_effect("E5", "120.00", remittance_id="R-OLD"),
    ]


@pytest.fixture
def remittance_repository(effects) -> InMemoryRemittanceRepository:
    return InMemoryRemittanceRepository(effects)


@pytest.fixture
def builder(remittance_repository) -> RemittanceBatchBuilder:
    return RemittanceBatchBuilder(remittance_repository)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def factoring_contract() -> FactoringContract:
    return FactoringContract(
        contract_number="FACT-001",
        financial_entity_id="BANCO-1",
        customer_id="EMPRESA-1",
        contract_type=FactoringContractType.WITH_RECOURSE,
        global_limit=Decimal("100000.00"),
        advance_percentage=Decimal("80"),
        interest_rate=Decimal("4.5"),
        commission_rate=Decimal("0.6"),
    )
