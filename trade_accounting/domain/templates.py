"""
Template Registry - Plantillas contables y configuración de usuario.
Orden de resolución: configuración de usuario > plantilla por defecto > ninguna.
"""

from dataclasses import replace

import structlog

from .entities import AccountingConfig, AccountingTemplate, ResolvedTemplate
from .repositories import ITemplateRepository
from .value_objects import TemplateKey, TemplateSource

logger = structlog.get_logger(__name__)

_OVERRIDABLE_FIELDS = (
    "debit_account_code",
    "debit_account_name",
    "credit_account_code",
    "credit_account_name",
    "tax_account_code",
    "tax_rate",
    "description_template",
)


class TemplateRegistry:
    """Service - Resuelve la plantilla efectiva para una operación."""

    def __init__(self, repository: ITemplateRepository):
        self.repository = repository

    def lookup(
        self,
        category: str,
        operation_type: str,
        transaction_type: str,
    ) -> ResolvedTemplate | None:
        return self.resolve(TemplateKey.of(category, operation_type, transaction_type))

    def resolve(self, key: TemplateKey) -> ResolvedTemplate | None:
        config = self.repository.get_config(key)
        default = self.repository.get_default_template(key)
        if default is not None and not default.is_default:
            default = None

        if config is not None:
            template = self._apply_config(key, default, config)
            if template is not None:
                return ResolvedTemplate(
                    template=template,
                    source=TemplateSource.CONFIG,
                    auto_post=config.auto_post,
                    requires_approval=config.requires_approval,
                )
            logger.warning("template.config.incomplete", key=str(key))

        if default is not None:
            return ResolvedTemplate(template=default, source=TemplateSource.TEMPLATE)
        return None

    def _apply_config(
        self,
        key: TemplateKey,
        default: AccountingTemplate | None,
        config: AccountingConfig,
    ) -> AccountingTemplate | None:
        overrides = {
            name: getattr(config, name)
            for name in _OVERRIDABLE_FIELDS
            if getattr(config, name) is not None
        }
        if default is not None:
            return replace(default, **overrides)

        # A config without a seeded template must name both accounts.
        if not (config.debit_account_code and config.credit_account_code):
            return None
        return AccountingTemplate(
            key=key,
            debit_account_code=config.debit_account_code,
            debit_account_name=config.debit_account_name or "",
            credit_account_code=config.credit_account_code,
            credit_account_name=config.credit_account_name or "",
            description_template=config.description_template or "",
            tax_account_code=config.tax_account_code,
            tax_rate=config.tax_rate,
            is_default=False,
        )

    def save(self, config: AccountingConfig) -> AccountingConfig:
        """Upsert the single configuration row for the key (last write wins)."""
        saved = self.repository.upsert_config(config)
        logger.info(
            "template.config.saved",
            key=str(config.key),
            auto_post=config.auto_post,
            requires_approval=config.requires_approval,
        )
        return saved

    def reset(self, key: TemplateKey) -> bool:
        removed = self.repository.delete_config(key)
        if removed:
            logger.info("template.config.reset", key=str(key))
        return removed

    def is_configured(self, key: TemplateKey) -> bool:
        return self.repository.get_config(key) is not None

    def list_templates(self) -> list[AccountingTemplate]:
        return self.repository.list_templates()
