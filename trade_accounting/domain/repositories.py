"""
Domain ports - persistence and notification interfaces consumed by the services.
"""

from abc import ABC, abstractmethod
from datetime import date

from .entities import (
    AccountingConfig,
    AccountingTemplate,
    DiscountEffect,
    DiscountRemittance,
    SupervisorAlert,
)
from .value_objects import EffectStatus, TemplateKey


class ITemplateRepository(ABC):

    @abstractmethod
    def get_default_template(self, key: TemplateKey) -> AccountingTemplate | None:
        ...

    @abstractmethod
    def list_templates(self) -> list[AccountingTemplate]:
        ...

    @abstractmethod
    def get_config(self, key: TemplateKey) -> AccountingConfig | None:
        ...

    @abstractmethod
    def upsert_config(self, config: AccountingConfig) -> AccountingConfig:
        ...

    @abstractmethod
    def delete_config(self, key: TemplateKey) -> bool:
        ...


class IRemittanceRepository(ABC):

    @abstractmethod
    def get_effects(self, effect_ids: list[str]) -> list[DiscountEffect]:
        ...

    @abstractmethod
    def list_pending_effects(self, entity_id: str | None = None) -> list[DiscountEffect]:
        ...

    @abstractmethod
    def next_remittance_sequence(self, day: date) -> int:
        ...

    @abstractmethod
    def create_remittance(self, remittance: DiscountRemittance) -> DiscountRemittance:
        """
        Persist the remittance and claim its effects in one atomic step.

        Must raise EffectAlreadyAssigned when any effect is no longer pending
        or already linked to an open remittance; nothing is stored in that case.
        """

    @abstractmethod
    def get_remittance(self, remittance_id: str) -> DiscountRemittance | None:
        ...

    @abstractmethod
    def list_remittances(self, entity_id: str | None = None) -> list[DiscountRemittance]:
        ...

    @abstractmethod
    def save_remittance(
        self,
        remittance: DiscountRemittance,
        effect_transition: tuple[EffectStatus, EffectStatus] | None = None,
        release_effects: bool = False,
    ) -> DiscountRemittance:
        """
        Store a lifecycle change and update member effects in the same transaction.

        Only members currently in the source status of ``effect_transition`` move,
        and only those are released.
        """

    @abstractmethod
    def save_effect(self, effect: DiscountEffect) -> DiscountEffect:
        ...


class IAlertNotifier(ABC):
    """Audio/text delivery channel for supervisor alerts."""

    @abstractmethod
    def speak(self, alert: SupervisorAlert) -> None:
        ...

    @abstractmethod
    def cancel(self) -> None:
        ...
