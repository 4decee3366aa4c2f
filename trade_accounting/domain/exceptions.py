"""
Domain exceptions.

All of them derive from ValueError so the API's ValueError handler reports
them as client errors unless a more specific handler is registered.
"""


class TradeFinanceError(ValueError):
    """Base class for trade-finance domain errors."""


class InvalidOperationData(TradeFinanceError):
    """Missing or non-positive operation amounts, bad rates, empty selections."""


class InvalidJournalLine(TradeFinanceError):
    """A manual line edit that would break the one-sided amount rule."""


class EffectNotFound(TradeFinanceError):
    def __init__(self, effect_ids: list[str]):
        self.effect_ids = list(effect_ids)
        super().__init__(f"Effects not found: {', '.join(self.effect_ids)}")


class EffectAlreadyAssigned(TradeFinanceError):
    """One or more effects are not pending or already belong to an open remittance."""

    def __init__(self, effect_ids: list[str]):
        self.effect_ids = list(effect_ids)
        super().__init__(
            f"Effects not available for a new remittance: {', '.join(self.effect_ids)}"
        )


class RemittanceNotFound(TradeFinanceError):
    def __init__(self, remittance_id: str):
        self.remittance_id = remittance_id
        super().__init__(f"Remittance {remittance_id} not found")


class InvalidRemittanceTransition(TradeFinanceError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Remittance cannot move from '{current}' to '{target}'")


class InvalidEffectTransition(TradeFinanceError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Effect cannot move from '{current}' to '{target}'")


class FactoringLimitExceeded(TradeFinanceError):
    pass


class InvalidAssignmentTransition(TradeFinanceError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Assignment cannot move from '{current}' to '{target}'")
