"""
Alert delivery - writes supervisor alerts to the structured log.
"""

import structlog

from trade_accounting.domain.entities import SupervisorAlert
from trade_accounting.domain.repositories import IAlertNotifier

logger = structlog.get_logger(__name__)


class LoggingAlertNotifier(IAlertNotifier):
    """Server-side stand-in for speech synthesis: one log event per delivery."""

    def __init__(self):
        self.current: SupervisorAlert | None = None

    def speak(self, alert: SupervisorAlert) -> None:
        self.current = alert
        logger.warning(
            "supervisor.alert",
            alert_id=alert.id,
            severity=alert.severity.value,
            code=alert.code,
            title=alert.title,
            message=alert.message,
        )

    def cancel(self) -> None:
        if self.current is not None:
            logger.debug("supervisor.alert_cancelled", alert_id=self.current.id)
        self.current = None
