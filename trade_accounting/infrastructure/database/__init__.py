"""
Database initialization and session management.
"""

from collections.abc import Generator
from pathlib import Path

import structlog
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from trade_accounting.core.config import get_engine_url
from trade_accounting.domain.value_objects import AmountVariable as A
from trade_accounting.domain.value_objects import EntrySide, TemplateLine
from trade_accounting.infrastructure.database.models import (
    AccountingConfigRow,
    AccountingTemplateRow,
    DiscountEffectRow,
    DiscountOperation,
    DiscountRemittanceRow,
    FactoringAssignmentRow,
    FactoringContractRow,
)

logger = structlog.get_logger(__name__)

DATABASE_URL = get_engine_url()

if "sqlite" in DATABASE_URL:
    engine = create_engine(DATABASE_URL, echo=False, connect_args={"check_same_thread": False})
else:
    engine = create_engine(DATABASE_URL, echo=False)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency - Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Initialize database - create all tables."""
    from sqlmodel import SQLModel

    bind = bind or engine
    if bind.url.get_backend_name() == "sqlite" and bind.url.database:
        Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(bind=bind)


# Plantillas por defecto (PGC 2007). Key: (operation_type, transaction_type).
DEFAULT_TEMPLATES = [
    {
        "operation_type": "commercial_discount",
        "transaction_type": "discount",
        "debit": ("572", "Bancos c/c"),
        "credit": ("5208", "Deudas por efectos descontados"),
        "description": "Descuento de efectos {amount} {currency}",
        "lines": (
            TemplateLine("5208", "Deudas por efectos descontados", EntrySide.CREDIT, (A.AMOUNT,), "Efectos descontados {amount} {currency}"),
            TemplateLine("572", "Bancos c/c", EntrySide.DEBIT, (A.NET_AMOUNT,), "Líquido del descuento"),
            TemplateLine("6651", "Intereses de descuento", EntrySide.DEBIT, (A.INTEREST_AMOUNT,), "Intereses"),
            TemplateLine("6269", "Comisiones bancarias", EntrySide.DEBIT, (A.COMMISSION_AMOUNT, A.EXPENSES), "Gastos y comisiones"),
        ),
    },
    {
        "operation_type": "commercial_discount",
        "transaction_type": "collection",
        "debit": ("5208", "Deudas por efectos descontados"),
        "credit": ("4311", "Efectos comerciales descontados"),
        "description": "Vencimiento de efectos descontados",
    },
    {
        "operation_type": "commercial_discount",
        "transaction_type": "return",
        "debit": ("4315", "Efectos comerciales impagados"),
        "credit": ("572", "Bancos c/c"),
        "description": "Devolución de efecto impagado",
        "lines": (
            TemplateLine("4315", "Efectos comerciales impagados", EntrySide.DEBIT, (A.AMOUNT,), "Efecto impagado"),
            TemplateLine("6269", "Gastos de devolución", EntrySide.DEBIT, (A.EXPENSES,), "Gastos de devolución"),
            TemplateLine("572", "Bancos c/c", EntrySide.CREDIT, (A.AMOUNT, A.EXPENSES), "Cargo por impagado"),
        ),
    },
    {
        "operation_type": "factoring",
        "transaction_type": "advance",
        "debit": ("572", "Bancos c/c"),
        "credit": ("4310", "Efectos a cobrar - Factoring"),
        "description": "Anticipo factoring {amount} {currency}",
        "lines": (
            TemplateLine("4310", "Efectos a cobrar - Factoring", EntrySide.CREDIT, (A.AMOUNT,), "Cesión facturas"),
            TemplateLine("572", "Bancos c/c", EntrySide.DEBIT, (A.NET_AMOUNT,), "Anticipo recibido"),
            TemplateLine("6655", "Intereses de factoring", EntrySide.DEBIT, (A.INTEREST_AMOUNT,), "Coste financiero"),
            TemplateLine("6269", "Comisiones factoring", EntrySide.DEBIT, (A.COMMISSION_AMOUNT, A.EXPENSES), "Comisiones"),
        ),
    },
    {
        "operation_type": "factoring",
        "transaction_type": "settlement",
        "debit": ("5209", "Deudas por operaciones de factoring"),
        "credit": ("4310", "Efectos a cobrar - Factoring"),
        "description": "Liquidación factoring",
    },
    {
        "operation_type": "confirming",
        "transaction_type": "payment",
        "debit": ("400", "Proveedores"),
        "credit": ("5201", "Deudas por confirming"),
        "description": "Pago a proveedor por confirming",
    },
    {
        "operation_type": "confirming",
        "transaction_type": "settlement",
        "debit": ("5201", "Deudas por confirming"),
        "credit": ("572", "Bancos c/c"),
        "description": "Vencimiento confirming",
    },
]


def seed_default_templates(db: Session | None = None) -> int:
    """Seed default trade-finance templates; existing keys are left untouched."""
    from trade_accounting.infrastructure.repositories import template_lines_to_json

    own_session = db is None
    db = db or SessionLocal()
    created = 0
    try:
        for seed in DEFAULT_TEMPLATES:
            exists = db.query(AccountingTemplateRow).filter(
                AccountingTemplateRow.operation_category == "trade_finance",
                AccountingTemplateRow.operation_type == seed["operation_type"],
                AccountingTemplateRow.transaction_type == seed["transaction_type"],
            ).first()
            if exists:
                continue
            debit_code, debit_name = seed["debit"]
            credit_code, credit_name = seed["credit"]
            lines = seed.get("lines")
            db.add(AccountingTemplateRow(
                operation_category="trade_finance",
                operation_type=seed["operation_type"],
                transaction_type=seed["transaction_type"],
                debit_account_code=debit_code,
                debit_account_name=debit_name,
                credit_account_code=credit_code,
                credit_account_name=credit_name,
                description_template=seed["description"],
                is_default=True,
                lines_json=template_lines_to_json(lines) if lines else None,
            ))
            created += 1
        db.commit()
    finally:
        if own_session:
            db.close()
    logger.info("database.templates_seeded", created=created)
    return created


__all__ = [
    "AccountingConfigRow",
    "AccountingTemplateRow",
    "DiscountEffectRow",
    "DiscountOperation",
    "DiscountRemittanceRow",
    "FactoringAssignmentRow",
    "FactoringContractRow",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "seed_default_templates",
]
