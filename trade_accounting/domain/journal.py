"""
Journal Entry Generator and Entry Balance Validator.
Partida doble: Debe = Haber (tolerancia de un céntimo).
"""

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal

import structlog

from .entities import AccountingTemplate, GeneratedJournalEntry, ResolvedTemplate
from .exceptions import InvalidJournalLine, InvalidOperationData
from .templates import TemplateRegistry
from .value_objects import (
    BALANCE_TOLERANCE,
    ZERO,
    AccountCode,
    AmountVariable,
    BalanceResult,
    EntrySide,
    JournalEntryLine,
    OperationContext,
    OperationType,
    TemplateKey,
    TemplateLine,
    TemplateSource,
    round_money,
    to_decimal,
)

logger = structlog.get_logger(__name__)

A = AmountVariable

# Asientos por defecto cuando no hay plantilla configurada (PGC 2007).
FALLBACK_LINES: dict[OperationType, tuple[TemplateLine, ...]] = {
    OperationType.COMMERCIAL_DISCOUNT: (
        TemplateLine("5208", "Deudas por efectos descontados", EntrySide.CREDIT, (A.AMOUNT,), "Efectos descontados"),
        TemplateLine("572", "Bancos c/c", EntrySide.DEBIT, (A.NET_AMOUNT,), "Ingreso neto"),
        TemplateLine("6651", "Intereses de descuento", EntrySide.DEBIT, (A.INTEREST_AMOUNT,), "Intereses"),
        TemplateLine("6269", "Comisiones bancarias", EntrySide.DEBIT, (A.COMMISSION_AMOUNT, A.EXPENSES), "Gastos y comisiones"),
    ),
    OperationType.FACTORING: (
        TemplateLine("4310", "Efectos a cobrar - Factoring", EntrySide.CREDIT, (A.AMOUNT,), "Cesión facturas"),
        TemplateLine("572", "Bancos c/c", EntrySide.DEBIT, (A.NET_AMOUNT,), "Anticipo recibido"),
        TemplateLine("6655", "Intereses de factoring", EntrySide.DEBIT, (A.INTEREST_AMOUNT,), "Coste financiero"),
        TemplateLine("6269", "Comisiones factoring", EntrySide.DEBIT, (A.COMMISSION_AMOUNT, A.EXPENSES), "Comisiones"),
    ),
    OperationType.CONFIRMING: (
        TemplateLine("400", "Proveedores", EntrySide.DEBIT, (A.AMOUNT,), "Pago a proveedor"),
        TemplateLine("5201", "Deudas por confirming", EntrySide.CREDIT, (A.AMOUNT,), "Deuda confirming"),
    ),
}


def validate_lines(lines: Sequence[JournalEntryLine]) -> BalanceResult:
    """Totales Debe/Haber; una lista vacía está cuadrada."""
    total_debit = sum((line.debit for line in lines), ZERO)
    total_credit = sum((line.credit for line in lines), ZERO)
    diff = abs(total_debit - total_credit)
    return BalanceResult(
        total_debit=total_debit,
        total_credit=total_credit,
        diff=diff,
        is_balanced=diff < BALANCE_TOLERANCE,
    )


class _Placeholders(dict):
    """format_map mapping that leaves unknown placeholders untouched."""

    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def _substitute(text: str, values: _Placeholders) -> str:
    if not text or "{" not in text:
        return text
    try:
        return text.format_map(values)
    except (ValueError, IndexError, KeyError, AttributeError, TypeError):
        logger.warning("journal.template.malformed", text=text)
        return text


class JournalEntryGenerator:
    """
    Service - Generación automática de asientos contables.

    Uses the resolved template when one exists; otherwise falls back to the
    fixed line set of the operation type, dropping lines with no amount.
    """

    def __init__(self, registry: TemplateRegistry):
        self.registry = registry

    def generate(
        self,
        category: str,
        operation_type: str,
        transaction_type: str,
        context: OperationContext,
        references: dict[str, str] | None = None,
    ) -> GeneratedJournalEntry:
        key = TemplateKey.of(category, operation_type, transaction_type)
        return self.generate_for_key(key, context, references)

    def generate_for_key(
        self,
        key: TemplateKey,
        context: OperationContext,
        references: dict[str, str] | None = None,
    ) -> GeneratedJournalEntry:
        if context.amount is None or context.amount <= 0:
            raise InvalidOperationData("No hay datos de operación: amount must be positive")

        resolved = self.registry.resolve(key)
        if resolved is not None:
            template_lines = self._template_lines(resolved.template)
            lines = self._instantiate(template_lines, resolved, context, references)
            source = resolved.source
        else:
            lines = [
                line
                for line in self._instantiate(
                    FALLBACK_LINES[key.operation_type], None, context, references
                )
                if not line.is_empty
            ]
            source = TemplateSource.FALLBACK

        entry = GeneratedJournalEntry(
            key=key,
            lines=tuple(lines),
            balance=validate_lines(lines),
            source=source,
            currency=context.currency,
            auto_post=resolved.auto_post if resolved else False,
            requires_approval=resolved.requires_approval if resolved else False,
        )
        logger.debug(
            "journal.generated",
            key=str(key),
            source=source.value,
            lines=len(entry.lines),
            is_balanced=entry.is_balanced,
        )
        return entry

    @staticmethod
    def _template_lines(template: AccountingTemplate) -> tuple[TemplateLine, ...]:
        if template.lines:
            return template.lines

        description = template.description_template
        lines = [
            TemplateLine(
                "{debit_account}", template.debit_account_name, EntrySide.DEBIT,
                (A.AMOUNT,), description,
            )
        ]
        credit_terms: tuple[AmountVariable, ...] = (A.AMOUNT,)
        if template.tax_account_code and template.tax_rate:
            lines.append(
                TemplateLine(
                    "{tax_account}", "Impuesto", EntrySide.DEBIT, (A.TAX_AMOUNT,), description
                )
            )
            credit_terms = (A.AMOUNT, A.TAX_AMOUNT)
        lines.append(
            TemplateLine(
                "{credit_account}", template.credit_account_name, EntrySide.CREDIT,
                credit_terms, description,
            )
        )
        return tuple(lines)

    @staticmethod
    def _amounts(context: OperationContext, template: AccountingTemplate | None) -> dict[AmountVariable, Decimal]:
        amount = context.amount or ZERO
        tax_rate = template.tax_rate if template and template.tax_rate else ZERO
        return {
            A.AMOUNT: amount,
            A.INTEREST_AMOUNT: context.interest_amount,
            A.COMMISSION_AMOUNT: context.commission_amount,
            A.EXPENSES: context.expenses,
            A.NET_AMOUNT: context.effective_net_amount,
            A.TAX_AMOUNT: round_money(amount * tax_rate / Decimal("100")),
        }

    def _instantiate(
        self,
        template_lines: Sequence[TemplateLine],
        resolved: ResolvedTemplate | None,
        context: OperationContext,
        references: dict[str, str] | None,
    ) -> list[JournalEntryLine]:
        template = resolved.template if resolved else None
        amounts = self._amounts(context, template)

        values = _Placeholders(context.references)
        values.update(references or {})
        values.update({name.value: round_money(value) for name, value in amounts.items()})
        values["currency"] = context.currency
        if template is not None:
            values["debit_account"] = template.debit_account_code
            values["credit_account"] = template.credit_account_code
            values["tax_account"] = template.tax_account_code or ""

        lines = []
        for source_line in template_lines:
            value = sum((amounts[term] for term in source_line.amount_terms), ZERO)
            lines.append(
                JournalEntryLine(
                    account_code=AccountCode(_substitute(source_line.account_code, values)),
                    account_name=_substitute(source_line.account_name, values),
                    debit=value if source_line.side == EntrySide.DEBIT else ZERO,
                    credit=value if source_line.side == EntrySide.CREDIT else ZERO,
                    description=_substitute(source_line.description, values),
                )
            )
        return lines


# Edición manual de partidas. Each function returns a new list.

def _check_index(lines: Sequence[JournalEntryLine], index: int) -> None:
    if not 0 <= index < len(lines):
        raise InvalidJournalLine(f"Line index {index} out of range (0..{len(lines) - 1})")


def _check_amounts(line: JournalEntryLine) -> None:
    if not line.account_code or not line.account_code.strip():
        raise InvalidJournalLine("Debe seleccionar una cuenta: account code is required")
    if line.debit < 0 or line.credit < 0:
        raise InvalidJournalLine("Amounts cannot be negative")
    if (line.debit != 0) == (line.credit != 0):
        raise InvalidJournalLine(
            "Debe indicar un importe en Debe o Haber: exactly one of debit/credit must be nonzero"
        )


def add_line(
    lines: Sequence[JournalEntryLine],
    account_code: str,
    account_name: str = "",
    debit: Decimal | int | float | str = ZERO,
    credit: Decimal | int | float | str = ZERO,
    description: str = "",
) -> list[JournalEntryLine]:
    line = JournalEntryLine(
        account_code=AccountCode(account_code or ""),
        account_name=account_name,
        debit=to_decimal(debit),
        credit=to_decimal(credit),
        description=description,
        is_new=True,
    )
    _check_amounts(line)
    return [*lines, line]


def edit_line(
    lines: Sequence[JournalEntryLine],
    index: int,
    *,
    account_code: str | None = None,
    account_name: str | None = None,
    debit: Decimal | int | float | str | None = None,
    credit: Decimal | int | float | str | None = None,
    description: str | None = None,
) -> list[JournalEntryLine]:
    """Entering an amount on one side clears the other side."""
    _check_index(lines, index)
    line = lines[index]
    changes: dict = {"is_edited": True}

    new_debit = None if debit is None else to_decimal(debit)
    new_credit = None if credit is None else to_decimal(credit)
    if new_debit and new_credit:
        raise InvalidJournalLine("A line cannot carry both debit and credit amounts")
    if new_debit is not None:
        changes["debit"] = new_debit
        if new_debit != 0:
            changes["credit"] = ZERO
    if new_credit is not None:
        changes["credit"] = new_credit
        if new_credit != 0:
            changes["debit"] = ZERO
    if account_code is not None:
        changes["account_code"] = AccountCode(account_code)
    if account_name is not None:
        changes["account_name"] = account_name
    if description is not None:
        changes["description"] = description

    edited = replace(line, **changes)
    _check_amounts(edited)
    result = list(lines)
    result[index] = edited
    return result


def delete_line(lines: Sequence[JournalEntryLine], index: int) -> list[JournalEntryLine]:
    _check_index(lines, index)
    return [line for i, line in enumerate(lines) if i != index]


def move_line(
    lines: Sequence[JournalEntryLine], from_index: int, to_index: int
) -> list[JournalEntryLine]:
    _check_index(lines, from_index)
    _check_index(lines, to_index)
    result = list(lines)
    result.insert(to_index, result.pop(from_index))
    return result
