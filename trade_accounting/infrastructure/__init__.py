"""Infrastructure layer."""

from trade_accounting.infrastructure.database import SessionLocal, get_db, init_db
from trade_accounting.infrastructure.database.models import (
    AccountingConfigRow,
    AccountingTemplateRow,
    DiscountEffectRow,
    DiscountOperation,
    DiscountRemittanceRow,
    FactoringAssignmentRow,
    FactoringContractRow,
)
from trade_accounting.infrastructure.notifier import LoggingAlertNotifier
from trade_accounting.infrastructure.repositories import (
    SqlFactoringRepository,
    SqlRemittanceRepository,
    SqlTemplateRepository,
)
