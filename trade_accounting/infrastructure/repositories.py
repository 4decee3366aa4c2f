"""
Infrastructure - SQLAlchemy implementations of the domain repositories.
"""

import json
from datetime import date, datetime

import structlog
from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from trade_accounting.domain.entities import (
    AccountingConfig,
    AccountingTemplate,
    DiscountEffect,
    DiscountRemittance,
    FactoringAssignment,
    FactoringContract,
)
from trade_accounting.domain.exceptions import EffectAlreadyAssigned
from trade_accounting.domain.repositories import IRemittanceRepository, ITemplateRepository
from trade_accounting.domain.value_objects import (
    AssignmentStatus,
    EffectStatus,
    EffectType,
    FactoringContractStatus,
    FactoringContractType,
    RemittanceFileFormat,
    RemittanceStatus,
    TemplateKey,
    TemplateLine,
)
from trade_accounting.infrastructure.database.models import (
    AccountingConfigRow,
    AccountingTemplateRow,
    DiscountEffectRow,
    DiscountRemittanceRow,
    FactoringAssignmentRow,
    FactoringContractRow,
)

logger = structlog.get_logger(__name__)


def template_lines_to_json(lines) -> str:
    return json.dumps([
        {
            "account_code": line.account_code,
            "account_name": line.account_name,
            "side": line.side.value,
            "amount_terms": [term.value for term in line.amount_terms],
            "description": line.description,
        }
        for line in lines
    ], ensure_ascii=False)


def template_lines_from_json(raw: str | None) -> tuple[TemplateLine, ...]:
    if not raw:
        return ()
    return tuple(
        TemplateLine(
            account_code=item["account_code"],
            account_name=item.get("account_name", ""),
            side=item["side"],
            amount_terms=tuple(item["amount_terms"]),
            description=item.get("description", ""),
        )
        for item in json.loads(raw)
    )


def _key_filter(model, key: TemplateKey):
    return (
        model.operation_category == key.category.value,
        model.operation_type == key.operation_type.value,
        model.transaction_type == key.transaction_type.value,
    )


def _row_key(row) -> TemplateKey:
    return TemplateKey.of(row.operation_category, row.operation_type, row.transaction_type)


class SqlTemplateRepository(ITemplateRepository):

    def __init__(self, db: Session):
        self.db = db

    def get_default_template(self, key: TemplateKey) -> AccountingTemplate | None:
        row = self.db.query(AccountingTemplateRow).filter(
            *_key_filter(AccountingTemplateRow, key),
            AccountingTemplateRow.is_default.is_(True),
        ).first()
        return self._to_template(row) if row else None

    def list_templates(self) -> list[AccountingTemplate]:
        rows = self.db.query(AccountingTemplateRow).order_by(
            AccountingTemplateRow.operation_type,
            AccountingTemplateRow.transaction_type,
        ).all()
        return [self._to_template(row) for row in rows]

    def get_config(self, key: TemplateKey) -> AccountingConfig | None:
        row = self.db.query(AccountingConfigRow).filter(*_key_filter(AccountingConfigRow, key)).first()
        return self._to_config(row) if row else None

    def upsert_config(self, config: AccountingConfig) -> AccountingConfig:
        row = self.db.query(AccountingConfigRow).filter(
            *_key_filter(AccountingConfigRow, config.key)
        ).first()
        if row is None:
            row = AccountingConfigRow(
                id=config.id,
                operation_category=config.key.category.value,
                operation_type=config.key.operation_type.value,
                transaction_type=config.key.transaction_type.value,
            )
            self.db.add(row)
        row.debit_account_code = config.debit_account_code
        row.debit_account_name = config.debit_account_name
        row.credit_account_code = config.credit_account_code
        row.credit_account_name = config.credit_account_name
        row.tax_account_code = config.tax_account_code
        row.tax_rate = config.tax_rate
        row.description_template = config.description_template
        row.auto_post = config.auto_post
        row.requires_approval = config.requires_approval
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return self._to_config(row)

    def delete_config(self, key: TemplateKey) -> bool:
        try:
            deleted = self.db.query(AccountingConfigRow).filter(
                *_key_filter(AccountingConfigRow, key)
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return deleted > 0

    @staticmethod
    def _to_template(row: AccountingTemplateRow) -> AccountingTemplate:
        return AccountingTemplate(
            key=_row_key(row),
            debit_account_code=row.debit_account_code,
            debit_account_name=row.debit_account_name,
            credit_account_code=row.credit_account_code,
            credit_account_name=row.credit_account_name,
            description_template=row.description_template,
            tax_account_code=row.tax_account_code,
            tax_rate=row.tax_rate,
            is_default=row.is_default,
            lines=template_lines_from_json(row.lines_json),
        )

    @staticmethod
    def _to_config(row: AccountingConfigRow) -> AccountingConfig:
        return AccountingConfig(
            key=_row_key(row),
            debit_account_code=row.debit_account_code,
            debit_account_name=row.debit_account_name,
            credit_account_code=row.credit_account_code,
            credit_account_name=row.credit_account_name,
            tax_account_code=row.tax_account_code,
            tax_rate=row.tax_rate,
            description_template=row.description_template,
            auto_post=row.auto_post,
            requires_approval=row.requires_approval,
            id=row.id,
            updated_at=row.updated_at,
        )


def effect_from_row(row: DiscountEffectRow) -> DiscountEffect:
    return DiscountEffect(
        id=row.id,
        effect_type=EffectType(row.effect_type),
        drawee_id=row.drawee_id,
        drawee_name=row.drawee_name,
        amount=row.amount,
        currency=row.currency,
        issue_date=row.issue_date,
        maturity_date=row.maturity_date,
        bank_iban=row.bank_iban,
        invoice_number=row.invoice_number,
        status=EffectStatus(row.status),
        remittance_id=row.remittance_id,
    )


def remittance_from_row(row: DiscountRemittanceRow) -> DiscountRemittance:
    return DiscountRemittance(
        id=row.id,
        remittance_number=row.remittance_number,
        entity_id=row.entity_id,
        effect_ids=json.loads(row.effect_ids_json),
        total_amount=row.total_amount,
        currency=row.currency,
        file_format=RemittanceFileFormat(row.file_format),
        status=RemittanceStatus(row.status),
        bank_reference=row.bank_reference,
        created_at=row.created_at,
        generated_at=row.generated_at,
        sent_at=row.sent_at,
        version=row.version,
    )


class SqlRemittanceRepository(IRemittanceRepository):
    """Effects and remittances share one session; each write is one transaction."""

    def __init__(self, db: Session):
        self.db = db

    def get_effects(self, effect_ids: list[str]) -> list[DiscountEffect]:
        if not effect_ids:
            return []
        rows = self.db.query(DiscountEffectRow).filter(DiscountEffectRow.id.in_(effect_ids)).all()
        return [effect_from_row(row) for row in rows]

    def list_pending_effects(self, entity_id: str | None = None) -> list[DiscountEffect]:
        query = self.db.query(DiscountEffectRow).filter(
            DiscountEffectRow.status == EffectStatus.PENDING.value,
            DiscountEffectRow.remittance_id.is_(None),
        )
        if entity_id:
            query = query.filter(or_(
                DiscountEffectRow.entity_id == entity_id,
                DiscountEffectRow.entity_id.is_(None),
            ))
        rows = query.order_by(DiscountEffectRow.maturity_date).all()
        return [effect_from_row(row) for row in rows]

    def next_remittance_sequence(self, day: date) -> int:
        count = self.db.query(func.count(DiscountRemittanceRow.id)).filter(
            DiscountRemittanceRow.remittance_date == day
        ).scalar()
        return (count or 0) + 1

    def create_remittance(self, remittance: DiscountRemittance) -> DiscountRemittance:
        row = DiscountRemittanceRow(
            id=remittance.id,
            remittance_number=remittance.remittance_number,
            entity_id=remittance.entity_id,
            effect_ids_json=json.dumps(remittance.effect_ids),
            total_effects=remittance.total_effects,
            total_amount=remittance.total_amount,
            currency=remittance.currency,
            file_format=remittance.file_format.value,
            status=remittance.status.value,
            remittance_date=remittance.created_at.date(),
            created_at=remittance.created_at,
        )
        try:
            self.db.add(row)
            self.db.flush()
            # Claim every effect in one conditional update.
            result = self.db.execute(
                update(DiscountEffectRow)
                .where(
                    DiscountEffectRow.id.in_(remittance.effect_ids),
                    DiscountEffectRow.status == EffectStatus.PENDING.value,
                    DiscountEffectRow.remittance_id.is_(None),
                )
                .values(remittance_id=remittance.id, updated_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != len(remittance.effect_ids):
                self.db.rollback()
                taken = [
                    effect.id for effect in self.get_effects(remittance.effect_ids)
                    if not effect.is_available
                ]
                logger.warning(
                    "remittance.claim_conflict",
                    remittance_number=remittance.remittance_number,
                    effect_ids=taken,
                )
                raise EffectAlreadyAssigned(taken or remittance.effect_ids)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return remittance_from_row(row)

    def get_remittance(self, remittance_id: str) -> DiscountRemittance | None:
        row = self.db.get(DiscountRemittanceRow, remittance_id)
        return remittance_from_row(row) if row else None

    def list_remittances(self, entity_id: str | None = None) -> list[DiscountRemittance]:
        query = self.db.query(DiscountRemittanceRow)
        if entity_id:
            query = query.filter(DiscountRemittanceRow.entity_id == entity_id)
        rows = query.order_by(DiscountRemittanceRow.created_at.desc()).all()
        return [remittance_from_row(row) for row in rows]

    def save_remittance(
        self,
        remittance: DiscountRemittance,
        effect_transition: tuple[EffectStatus, EffectStatus] | None = None,
        release_effects: bool = False,
    ) -> DiscountRemittance:
        row = self.db.get(DiscountRemittanceRow, remittance.id)
        row.status = remittance.status.value
        row.bank_reference = remittance.bank_reference
        row.generated_at = remittance.generated_at
        row.sent_at = remittance.sent_at
        row.version = remittance.version
        row.updated_at = datetime.utcnow()
        try:
            if effect_transition is not None:
                source, target = effect_transition
                values: dict = {"status": target.value, "updated_at": datetime.utcnow()}
                if release_effects:
                    values["remittance_id"] = None
                self.db.execute(
                    update(DiscountEffectRow)
                    .where(
                        DiscountEffectRow.remittance_id == remittance.id,
                        DiscountEffectRow.status == source.value,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return remittance_from_row(row)

    def save_effect(self, effect: DiscountEffect, entity_id: str | None = None) -> DiscountEffect:
        row = self.db.get(DiscountEffectRow, effect.id)
        if row is None:
            row = DiscountEffectRow(id=effect.id, entity_id=entity_id)
            self.db.add(row)
        row.effect_type = effect.effect_type.value
        row.drawee_id = effect.drawee_id
        row.drawee_name = effect.drawee_name
        row.amount = effect.amount
        row.currency = effect.currency
        row.issue_date = effect.issue_date
        row.maturity_date = effect.maturity_date
        row.bank_iban = effect.bank_iban
        row.invoice_number = effect.invoice_number
        row.status = effect.status.value
        row.remittance_id = effect.remittance_id
        row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return effect_from_row(row)


class SqlFactoringRepository:
    """Contracts and assignments; the limit change and the assignment are saved together."""

    def __init__(self, db: Session):
        self.db = db

    def get_contract(self, contract_id: str) -> FactoringContract | None:
        row = self.db.get(FactoringContractRow, contract_id)
        return self._to_contract(row) if row else None

    def get_contract_by_number(self, contract_number: str) -> FactoringContract | None:
        row = self.db.query(FactoringContractRow).filter(
            FactoringContractRow.contract_number == contract_number
        ).first()
        return self._to_contract(row) if row else None

    def get_assignment(self, assignment_id: str) -> FactoringAssignment | None:
        row = self.db.get(FactoringAssignmentRow, assignment_id)
        return self._to_assignment(row) if row else None

    def list_assignments(self, contract_id: str) -> list[FactoringAssignment]:
        rows = self.db.query(FactoringAssignmentRow).filter(
            FactoringAssignmentRow.contract_id == contract_id
        ).order_by(FactoringAssignmentRow.created_at).all()
        return [self._to_assignment(row) for row in rows]

    def save(
        self,
        contract: FactoringContract | None = None,
        assignment: FactoringAssignment | None = None,
    ) -> None:
        try:
            if contract is not None:
                self._write_contract(contract)
            if assignment is not None:
                self._write_assignment(assignment)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _write_contract(self, contract: FactoringContract) -> None:
        row = self.db.get(FactoringContractRow, contract.id)
        if row is None:
            row = FactoringContractRow(id=contract.id)
            self.db.add(row)
        row.contract_number = contract.contract_number
        row.financial_entity_id = contract.financial_entity_id
        row.customer_id = contract.customer_id
        row.contract_type = contract.contract_type.value
        row.global_limit = contract.global_limit
        row.available_limit = contract.available_limit
        row.advance_percentage = contract.advance_percentage
        row.interest_rate = contract.interest_rate
        row.commission_rate = contract.commission_rate
        row.status = contract.status.value
        row.updated_at = datetime.utcnow()

    def _write_assignment(self, assignment: FactoringAssignment) -> None:
        row = self.db.get(FactoringAssignmentRow, assignment.id)
        if row is None:
            row = FactoringAssignmentRow(id=assignment.id)
            self.db.add(row)
        row.contract_id = assignment.contract_id
        row.invoice_number = assignment.invoice_number
        row.debtor_id = assignment.debtor_id
        row.invoice_amount = assignment.invoice_amount
        row.assigned_amount = assignment.assigned_amount
        row.advance_percentage = assignment.advance_percentage
        row.advance_amount = assignment.advance_amount
        row.status = assignment.status.value
        row.updated_at = datetime.utcnow()

    @staticmethod
    def _to_contract(row: FactoringContractRow) -> FactoringContract:
        return FactoringContract(
            id=row.id,
            contract_number=row.contract_number,
            financial_entity_id=row.financial_entity_id,
            customer_id=row.customer_id,
            contract_type=FactoringContractType(row.contract_type),
            global_limit=row.global_limit,
            available_limit=row.available_limit,
            advance_percentage=row.advance_percentage,
            interest_rate=row.interest_rate,
            commission_rate=row.commission_rate,
            status=FactoringContractStatus(row.status),
        )

    @staticmethod
    def _to_assignment(row: FactoringAssignmentRow) -> FactoringAssignment:
        return FactoringAssignment(
            id=row.id,
            contract_id=row.contract_id,
            invoice_number=row.invoice_number,
            debtor_id=row.debtor_id,
            invoice_amount=row.invoice_amount,
            assigned_amount=row.assigned_amount,
            advance_percentage=row.advance_percentage,
            status=AssignmentStatus(row.status),
        )
