"""Domain layer - Pure Python trade-finance accounting logic."""

from trade_accounting.domain.calculator import (
    DiscountCalculation,
    FactoringCalculation,
    build_operation_context,
    calculate_discount,
    calculate_factoring,
    discount_days,
)
from trade_accounting.domain.entities import (
    AccountingConfig,
    AccountingTemplate,
    AccountingValidation,
    DiscountEffect,
    DiscountRemittance,
    FactoringAssignment,
    FactoringContract,
    GeneratedJournalEntry,
    ResolvedTemplate,
    SupervisorAlert,
)
from trade_accounting.domain.factoring import FactoringService
from trade_accounting.domain.journal import (
    JournalEntryGenerator,
    add_line,
    delete_line,
    edit_line,
    move_line,
    validate_lines,
)
from trade_accounting.domain.remittances import RemittanceBatchBuilder
from trade_accounting.domain.repositories import (
    IAlertNotifier,
    IRemittanceRepository,
    ITemplateRepository,
)
from trade_accounting.domain.supervisor import AccountingSupervisor, SupervisorContext
from trade_accounting.domain.templates import TemplateRegistry
from trade_accounting.domain.value_objects import (
    BalanceResult,
    JournalEntryLine,
    OperationContext,
    Severity,
    TemplateKey,
)
