"""
API dependencies - service wiring and DTO mapping shared by the routers.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from trade_accounting.application.dto.trade_finance_dto import (
    BalanceResultDTO,
    GeneratedEntryDTO,
    JournalLineDTO,
    OperationDataDTO,
    TemplateDTO,
    TemplateLineDTO,
)
from trade_accounting.core.config import get_settings
from trade_accounting.domain.entities import GeneratedJournalEntry, ResolvedTemplate
from trade_accounting.domain.journal import JournalEntryGenerator
from trade_accounting.domain.remittances import RemittanceBatchBuilder
from trade_accounting.domain.supervisor import AccountingSupervisor
from trade_accounting.domain.templates import TemplateRegistry
from trade_accounting.domain.value_objects import (
    ZERO,
    AccountCode,
    BalanceResult,
    JournalEntryLine,
    OperationContext,
)
from trade_accounting.infrastructure.database import get_db
from trade_accounting.infrastructure.notifier import LoggingAlertNotifier
from trade_accounting.infrastructure.repositories import (
    SqlRemittanceRepository,
    SqlTemplateRepository,
)


def get_template_registry(db: Session = Depends(get_db)) -> TemplateRegistry:
    return TemplateRegistry(SqlTemplateRepository(db))


def get_journal_generator(
    registry: TemplateRegistry = Depends(get_template_registry),
) -> JournalEntryGenerator:
    return JournalEntryGenerator(registry)


def get_remittance_builder(db: Session = Depends(get_db)) -> RemittanceBatchBuilder:
    return RemittanceBatchBuilder(SqlRemittanceRepository(db))


def get_supervisor() -> AccountingSupervisor:
    """A fresh supervisor per request; alert history lives with the client."""
    return AccountingSupervisor(
        notifier=LoggingAlertNotifier(),
        audio_enabled=get_settings().supervisor_audio_enabled,
    )


def to_operation_context(dto: OperationDataDTO, references: dict[str, str] | None = None) -> OperationContext:
    return OperationContext(
        amount=dto.amount,
        interest_amount=dto.interest_amount,
        commission_amount=dto.commission_amount,
        expenses=dto.expenses,
        net_amount=dto.net_amount,
        currency=dto.currency or get_settings().default_currency,
        counterparty_id=dto.counterparty_id,
        interest_rate=dto.interest_rate,
        commission_rate=dto.commission_rate,
        references=dict(references or {}),
    )


def to_entry_lines(lines: list[JournalLineDTO]) -> list[JournalEntryLine]:
    return [
        JournalEntryLine(
            account_code=AccountCode(line.account_code),
            account_name=line.account_name,
            debit=line.debit or ZERO,
            credit=line.credit or ZERO,
            description=line.description,
            is_new=line.is_new,
            is_edited=line.is_edited,
        )
        for line in lines
    ]


def balance_dto(balance: BalanceResult) -> BalanceResultDTO:
    return BalanceResultDTO.model_validate(balance)


def entry_dto(entry: GeneratedJournalEntry) -> GeneratedEntryDTO:
    return GeneratedEntryDTO(
        category=entry.key.category.value,
        operation_type=entry.key.operation_type.value,
        transaction_type=entry.key.transaction_type.value,
        source=entry.source,
        currency=entry.currency,
        auto_post=entry.auto_post,
        requires_approval=entry.requires_approval,
        lines=[JournalLineDTO.model_validate(line) for line in entry.lines],
        balance=balance_dto(entry.balance),
    )


def template_dto(resolved: ResolvedTemplate) -> TemplateDTO:
    template = resolved.template
    return TemplateDTO(
        category=template.key.category.value,
        operation_type=template.key.operation_type.value,
        transaction_type=template.key.transaction_type.value,
        source=resolved.source,
        debit_account_code=template.debit_account_code,
        debit_account_name=template.debit_account_name,
        credit_account_code=template.credit_account_code,
        credit_account_name=template.credit_account_name,
        description_template=template.description_template,
        tax_account_code=template.tax_account_code,
        tax_rate=template.tax_rate,
        auto_post=resolved.auto_post,
        requires_approval=resolved.requires_approval,
        lines=[
            TemplateLineDTO(
                account_code=line.account_code,
                account_name=line.account_name,
                side=line.side,
                amount_terms=[term.value for term in line.amount_terms],
                description=line.description,
            )
            for line in template.lines
        ],
    )
