"""
Supervisor/Alert Engine - Agente supervisor de contabilidad.

Validations reflect only the latest run; alerts accumulate (newest first)
until they are cleared or marked as read.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

import structlog

from .entities import AccountingValidation, GeneratedJournalEntry, SupervisorAlert
from .journal import validate_lines
from .repositories import IAlertNotifier
from .value_objects import (
    BALANCE_TOLERANCE,
    BalanceResult,
    JournalEntryLine,
    OperationContext,
    OperationType,
    Severity,
)

logger = structlog.get_logger(__name__)

RATED_OPERATIONS = {OperationType.COMMERCIAL_DISCOUNT, OperationType.FACTORING}


@dataclass(frozen=True)
class SupervisorContext:
    """Snapshot under review: operation amounts plus the current lines."""
    operation: OperationContext | None
    lines: tuple[JournalEntryLine, ...] = ()
    operation_type: OperationType | None = None
    auto_post: bool = False
    requires_approval: bool = False

    @classmethod
    def from_entry(
        cls,
        entry: GeneratedJournalEntry,
        operation: OperationContext,
        lines: Sequence[JournalEntryLine] | None = None,
    ) -> "SupervisorContext":
        """Review a generated entry, optionally with manually edited lines."""
        return cls(
            operation=operation,
            lines=tuple(entry.lines if lines is None else lines),
            operation_type=entry.key.operation_type,
            auto_post=entry.auto_post,
            requires_approval=entry.requires_approval,
        )


RuleCheck = Callable[[SupervisorContext, BalanceResult], AccountingValidation | None]


@dataclass(frozen=True)
class SupervisorRule:
    code: str
    title: str
    check: RuleCheck
    alertable: bool = False


def _check_balance(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    if not ctx.lines or balance.is_balanced:
        return None
    severity = Severity.CRITICAL if ctx.auto_post else Severity.WARNING
    return AccountingValidation(
        code="UNBALANCED_ENTRY",
        severity=severity,
        message=(
            f"Asiento descuadrado: Debe {balance.total_debit:.2f} != "
            f"Haber {balance.total_credit:.2f} (diferencia {balance.diff:.2f})"
        ),
        recommendation="Revise los importes de las partidas antes de contabilizar",
    )


def _check_counterparty(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    if ctx.operation is not None and ctx.operation.counterparty_id:
        return None
    return AccountingValidation(
        code="MISSING_COUNTERPARTY",
        severity=Severity.ERROR,
        message="La operación no tiene cliente o deudor asociado",
        recommendation="Seleccione el cliente/deudor de la operación",
    )


def _check_rates(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    operation = ctx.operation
    if operation is None or operation.amount is None or operation.amount <= 0:
        return AccountingValidation(
            code="STALE_RATE",
            severity=Severity.WARNING,
            message="El nominal de la operación es cero o negativo",
            recommendation="Introduzca el importe nominal antes de calcular",
        )
    if ctx.operation_type in RATED_OPERATIONS and (
        operation.interest_rate is None or operation.interest_rate <= 0
    ):
        return AccountingValidation(
            code="STALE_RATE",
            severity=Severity.WARNING,
            message="El tipo de interés es cero o no está informado",
            recommendation="Actualice el tipo de interés pactado con la entidad",
        )
    return None


def _check_duplicate_accounts(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    debited = {line.account_code for line in ctx.lines if line.debit > 0}
    credited = {line.account_code for line in ctx.lines if line.credit > 0}
    duplicated = sorted(debited & credited)
    if not duplicated:
        return None
    return AccountingValidation(
        code="DUPLICATE_ACCOUNT",
        severity=Severity.WARNING,
        message=f"Cuentas en Debe y Haber a la vez: {', '.join(duplicated)}",
        recommendation="Compense las partidas de la misma cuenta",
    )


def _check_empty_entry(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    if ctx.lines:
        return None
    return AccountingValidation(
        code="EMPTY_ENTRY",
        severity=Severity.WARNING,
        message="No hay partidas contables generadas",
        recommendation="Genere los asientos de la operación",
    )


def _check_negative_net(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    operation = ctx.operation
    if operation is None or operation.amount is None or operation.amount <= 0:
        return None
    if operation.effective_net_amount >= 0:
        return None
    return AccountingValidation(
        code="NEGATIVE_NET_AMOUNT",
        severity=Severity.ERROR,
        message=f"Los gastos superan el nominal: líquido {operation.effective_net_amount:.2f}",
        recommendation="Revise intereses, comisiones y gastos",
    )


def _check_net_amount(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    operation = ctx.operation
    if operation is None or operation.net_amount is None or operation.amount is None:
        return None
    derived = operation.derived_net_amount
    if abs(operation.net_amount - derived) < BALANCE_TOLERANCE:
        return None
    return AccountingValidation(
        code="NET_AMOUNT_MISMATCH",
        severity=Severity.WARNING,
        message=(
            f"Líquido informado {operation.net_amount:.2f} distinto del calculado "
            f"{derived:.2f}"
        ),
        recommendation="Recalcule el líquido o ajuste intereses y comisiones",
    )


def _check_zero_lines(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    empty = [line.account_code for line in ctx.lines if line.is_empty]
    if not empty:
        return None
    return AccountingValidation(
        code="ZERO_AMOUNT_LINE",
        severity=Severity.INFO,
        message=f"Partidas sin importe: {', '.join(empty)}",
    )


def _check_approval(ctx: SupervisorContext, balance: BalanceResult) -> AccountingValidation | None:
    if not ctx.requires_approval:
        return None
    return AccountingValidation(
        code="REQUIRES_APPROVAL",
        severity=Severity.INFO,
        message="La configuración exige aprobación antes de contabilizar",
    )


DEFAULT_RULES: tuple[SupervisorRule, ...] = (
    SupervisorRule("UNBALANCED_ENTRY", "Asiento descuadrado", _check_balance, alertable=True),
    SupervisorRule("MISSING_COUNTERPARTY", "Falta cliente/deudor", _check_counterparty, alertable=True),
    SupervisorRule("STALE_RATE", "Tipo o nominal no válido", _check_rates),
    SupervisorRule("DUPLICATE_ACCOUNT", "Cuenta duplicada", _check_duplicate_accounts),
    SupervisorRule("EMPTY_ENTRY", "Asiento vacío", _check_empty_entry),
    SupervisorRule("NEGATIVE_NET_AMOUNT", "Líquido negativo", _check_negative_net, alertable=True),
    SupervisorRule("NET_AMOUNT_MISMATCH", "Líquido no cuadra", _check_net_amount),
    SupervisorRule("ZERO_AMOUNT_LINE", "Partida sin importe", _check_zero_lines),
    SupervisorRule("REQUIRES_APPROVAL", "Requiere aprobación", _check_approval),
)


def run_rules(
    context: SupervisorContext, rules: Sequence[SupervisorRule] = DEFAULT_RULES
) -> list[tuple[SupervisorRule, AccountingValidation]]:
    """Evaluate the rule battery without touching any supervisor state."""
    balance = validate_lines(context.lines)
    fired = []
    for rule in rules:
        validation = rule.check(context, balance)
        if validation is not None:
            fired.append((rule, validation))
    return fired


@dataclass
class AccountingSupervisor:
    """
    Service - Agente supervisor.

    ``has_errors`` is the gate callers use before saving or posting.
    Audio delivery is a single slot: a new delivery cancels the previous one.
    """
    notifier: IAlertNotifier | None = None
    rules: tuple[SupervisorRule, ...] = DEFAULT_RULES
    is_active: bool = True
    audio_enabled: bool = True
    alerts: list[SupervisorAlert] = field(default_factory=list)
    validations: list[AccountingValidation] = field(default_factory=list)
    is_speaking: bool = False
    last_analysis: datetime | None = None

    def supervise(self, context: SupervisorContext) -> list[AccountingValidation]:
        if not self.is_active:
            return self.validations

        fired = run_rules(context, self.rules)
        self.validations = [validation for _, validation in fired]
        self.last_analysis = datetime.utcnow()

        new_alerts = [
            SupervisorAlert(
                severity=validation.severity,
                title=rule.title,
                message=validation.message,
                code=validation.code,
                recommendation=validation.recommendation,
            )
            for rule, validation in fired
            if rule.alertable
        ]
        # Newest first; within one run keep the rule order.
        self.alerts[:0] = new_alerts

        logger.info(
            "supervisor.analysis",
            validations=len(self.validations),
            new_alerts=len(new_alerts),
            has_errors=self.has_errors,
        )

        critical = [a for a in new_alerts if a.severity == Severity.CRITICAL]
        if critical and self.audio_enabled:
            self._speak(critical[0])
        return self.validations

    def toggle_active(self) -> bool:
        self.is_active = not self.is_active
        if not self.is_active:
            self.stop_speaking()
        return self.is_active

    def set_audio_enabled(self, enabled: bool) -> None:
        self.audio_enabled = enabled
        if not enabled:
            self.stop_speaking()

    def mark_alert_as_read(self, alert_id: str) -> bool:
        for alert in self.alerts:
            if alert.id == alert_id:
                alert.is_read = True
                return True
        return False

    def mark_all_as_read(self) -> None:
        for alert in self.alerts:
            alert.is_read = True

    def clear_alerts(self) -> None:
        self.stop_speaking()
        self.alerts = []

    def repeat_last_critical_alert(self) -> SupervisorAlert | None:
        if not self.audio_enabled:
            return None
        for alert in self.alerts:
            if alert.severity == Severity.CRITICAL:
                self._speak(alert)
                return alert
        return None

    def stop_speaking(self) -> None:
        if not self.is_speaking:
            return
        if self.notifier is not None:
            self.notifier.cancel()
        self.is_speaking = False

    def speech_finished(self) -> None:
        """Callback for the notifier once a delivery completes."""
        self.is_speaking = False

    def _speak(self, alert: SupervisorAlert) -> None:
        if self.notifier is None:
            return
        self.stop_speaking()
        self.notifier.speak(alert)
        alert.is_spoken = True
        self.is_speaking = True

    @property
    def unread_count(self) -> int:
        return sum(1 for alert in self.alerts if not alert.is_read)

    @property
    def critical_count(self) -> int:
        return sum(
            1 for alert in self.alerts
            if alert.severity == Severity.CRITICAL and not alert.is_read
        )

    @property
    def has_errors(self) -> bool:
        if any(v.severity.is_error for v in self.validations):
            return True
        return any(
            alert.severity == Severity.CRITICAL and not alert.is_read
            for alert in self.alerts
        )

    def sorted_alerts(self) -> list[SupervisorAlert]:
        """Alerts by severity precedence, newest first within a severity."""
        order = {id(alert): position for position, alert in enumerate(self.alerts)}
        return sorted(self.alerts, key=lambda a: (a.severity.rank, order[id(a)]))
