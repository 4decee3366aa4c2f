"""
Factoring - Cesión de facturas y control del límite del contrato.
"""

from decimal import Decimal

import structlog

from .entities import FactoringAssignment, FactoringContract
from .exceptions import InvalidOperationData
from .value_objects import ZERO, AssignmentStatus, to_decimal

logger = structlog.get_logger(__name__)


class FactoringService:
    """
    Service - Ciclo de vida de las cesiones.

    The available limit drops by the advance amount when an assignment is
    advanced and comes back when it is collected.
    """

    def assign(
        self,
        contract: FactoringContract,
        invoice_number: str,
        debtor_id: str,
        invoice_amount: Decimal | int | float | str,
        assigned_amount: Decimal | int | float | str | None = None,
    ) -> FactoringAssignment:
        invoice_amount = to_decimal(invoice_amount)
        assigned = invoice_amount if assigned_amount is None else to_decimal(assigned_amount)
        if not invoice_number:
            raise InvalidOperationData("Invoice number is required")
        if not debtor_id:
            raise InvalidOperationData("Seleccione el deudor de la factura")
        if invoice_amount <= 0 or assigned <= 0:
            raise InvalidOperationData("Invoice and assigned amounts must be positive")
        if assigned > invoice_amount:
            raise InvalidOperationData(
                f"Assigned amount {assigned} exceeds invoice amount {invoice_amount}"
            )
        return FactoringAssignment(
            contract_id=contract.id,
            invoice_number=invoice_number,
            debtor_id=debtor_id,
            invoice_amount=invoice_amount,
            assigned_amount=assigned,
            advance_percentage=contract.advance_percentage,
        )

    def approve(self, assignment: FactoringAssignment) -> FactoringAssignment:
        return assignment.transition_to(AssignmentStatus.APPROVED)

    def reject(self, assignment: FactoringAssignment) -> FactoringAssignment:
        return assignment.transition_to(AssignmentStatus.REJECTED)

    def cancel(self, assignment: FactoringAssignment) -> FactoringAssignment:
        """Cancelling before the advance simply rejects the assignment."""
        return self.reject(assignment)

    def advance(
        self, contract: FactoringContract, assignment: FactoringAssignment
    ) -> tuple[FactoringContract, FactoringAssignment]:
        self._check_contract(contract, assignment)
        advanced = assignment.transition_to(AssignmentStatus.ADVANCED)
        updated = contract.consume(advanced.advance_amount)
        logger.info(
            "factoring.advanced",
            contract_number=contract.contract_number,
            invoice_number=assignment.invoice_number,
            advance_amount=str(advanced.advance_amount),
            available_limit=str(updated.available_limit),
        )
        return updated, advanced

    def collect(
        self, contract: FactoringContract, assignment: FactoringAssignment
    ) -> tuple[FactoringContract, FactoringAssignment]:
        self._check_contract(contract, assignment)
        collected = assignment.transition_to(AssignmentStatus.COLLECTED)
        return contract.restore(collected.advance_amount), collected

    def default(
        self, contract: FactoringContract, assignment: FactoringAssignment
    ) -> tuple[FactoringContract, FactoringAssignment]:
        """Impago: the limit stays consumed until the risk is resolved."""
        self._check_contract(contract, assignment)
        defaulted = assignment.transition_to(AssignmentStatus.DEFAULTED)
        logger.warning(
            "factoring.defaulted",
            contract_number=contract.contract_number,
            invoice_number=assignment.invoice_number,
        )
        return contract, defaulted

    @staticmethod
    def _check_contract(contract: FactoringContract, assignment: FactoringAssignment) -> None:
        if assignment.contract_id != contract.id:
            raise InvalidOperationData(
                f"Assignment {assignment.invoice_number} does not belong to "
                f"contract {contract.contract_number}"
            )

    @staticmethod
    def outstanding(assignments: list[FactoringAssignment]) -> Decimal:
        """Importe anticipado pendiente de cobro."""
        return sum(
            (a.advance_amount for a in assignments if a.status == AssignmentStatus.ADVANCED),
            ZERO,
        )
