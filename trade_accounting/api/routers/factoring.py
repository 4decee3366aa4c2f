"""
API Routers - Contratos de factoring y cesión de facturas.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from trade_accounting.application.dto.trade_finance_dto import (
    AssignmentCreateDTO,
    AssignmentResponseDTO,
    AssignmentTransitionResponseDTO,
    FactoringContractCreateDTO,
    FactoringContractResponseDTO,
)
from trade_accounting.domain.entities import FactoringAssignment, FactoringContract
from trade_accounting.domain.factoring import FactoringService
from trade_accounting.infrastructure.database import get_db
from trade_accounting.infrastructure.repositories import SqlFactoringRepository

router = APIRouter(prefix="/api/v1/trade-finance/factoring", tags=["Factoring"])

service = FactoringService()


def _load(repo: SqlFactoringRepository, assignment_id: str) -> tuple[FactoringContract, FactoringAssignment]:
    assignment = repo.get_assignment(assignment_id)
    if not assignment:
        raise HTTPException(status_code=404, detail="Cesión no encontrada")
    contract = repo.get_contract(assignment.contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contrato de factoring no encontrado")
    return contract, assignment


def _transition_response(
    contract: FactoringContract, assignment: FactoringAssignment
) -> AssignmentTransitionResponseDTO:
    return AssignmentTransitionResponseDTO(
        assignment=AssignmentResponseDTO.model_validate(assignment),
        contract=FactoringContractResponseDTO.model_validate(contract),
    )


@router.post(
    "/contracts",
    response_model=FactoringContractResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def create_contract(dto: FactoringContractCreateDTO, db: Session = Depends(get_db)):
    """Alta de contrato; el límite disponible arranca igual al global."""
    repo = SqlFactoringRepository(db)
    if repo.get_contract_by_number(dto.contract_number):
        raise HTTPException(status_code=409, detail="Ya existe un contrato con ese número")
    contract = FactoringContract(
        contract_number=dto.contract_number,
        financial_entity_id=dto.financial_entity_id,
        customer_id=dto.customer_id,
        contract_type=dto.contract_type,
        global_limit=dto.global_limit,
        advance_percentage=dto.advance_percentage,
        interest_rate=dto.interest_rate,
        commission_rate=dto.commission_rate,
    )
    repo.save(contract=contract)
    return FactoringContractResponseDTO.model_validate(contract)


@router.get("/contracts/{contract_id}", response_model=FactoringContractResponseDTO)
def get_contract(contract_id: str, db: Session = Depends(get_db)):
    contract = SqlFactoringRepository(db).get_contract(contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contrato de factoring no encontrado")
    return FactoringContractResponseDTO.model_validate(contract)


@router.get("/contracts/{contract_id}/assignments", response_model=list[AssignmentResponseDTO])
def list_assignments(contract_id: str, db: Session = Depends(get_db)):
    return [
        AssignmentResponseDTO.model_validate(a)
        for a in SqlFactoringRepository(db).list_assignments(contract_id)
    ]


@router.post(
    "/contracts/{contract_id}/assignments",
    response_model=AssignmentResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(
    contract_id: str,
    dto: AssignmentCreateDTO,
    db: Session = Depends(get_db),
):
    repo = SqlFactoringRepository(db)
    contract = repo.get_contract(contract_id)
    if not contract:
        raise HTTPException(status_code=404, detail="Contrato de factoring no encontrado")
    assignment = service.assign(
        contract, dto.invoice_number, dto.debtor_id, dto.invoice_amount, dto.assigned_amount
    )
    repo.save(assignment=assignment)
    return AssignmentResponseDTO.model_validate(assignment)


@router.post("/assignments/{assignment_id}/approve", response_model=AssignmentTransitionResponseDTO)
def approve_assignment(assignment_id: str, db: Session = Depends(get_db)):
    repo = SqlFactoringRepository(db)
    contract, assignment = _load(repo, assignment_id)
    assignment = service.approve(assignment)
    repo.save(assignment=assignment)
    return _transition_response(contract, assignment)


@router.post("/assignments/{assignment_id}/reject", response_model=AssignmentTransitionResponseDTO)
def reject_assignment(assignment_id: str, db: Session = Depends(get_db)):
    repo = SqlFactoringRepository(db)
    contract, assignment = _load(repo, assignment_id)
    assignment = service.reject(assignment)
    repo.save(assignment=assignment)
    return _transition_response(contract, assignment)


@router.post("/assignments/{assignment_id}/advance", response_model=AssignmentTransitionResponseDTO)
def advance_assignment(assignment_id: str, db: Session = Depends(get_db)):
    """Anticipo: consume el límite disponible del contrato."""
    repo = SqlFactoringRepository(db)
    contract, assignment = _load(repo, assignment_id)
    contract, assignment = service.advance(contract, assignment)
    repo.save(contract=contract, assignment=assignment)
    return _transition_response(contract, assignment)


@router.post("/assignments/{assignment_id}/collect", response_model=AssignmentTransitionResponseDTO)
def collect_assignment(assignment_id: str, db: Session = Depends(get_db)):
    """Cobro del deudor: el límite vuelve a estar disponible."""
    repo = SqlFactoringRepository(db)
    contract, assignment = _load(repo, assignment_id)
    contract, assignment = service.collect(contract, assignment)
    repo.save(contract=contract, assignment=assignment)
    return _transition_response(contract, assignment)


@router.post("/assignments/{assignment_id}/default", response_model=AssignmentTransitionResponseDTO)
def default_assignment(assignment_id: str, db: Session = Depends(get_db)):
    repo = SqlFactoringRepository(db)
    contract, assignment = _load(repo, assignment_id)
    contract, assignment = service.default(contract, assignment)
    repo.save(contract=contract, assignment=assignment)
    return _transition_response(contract, assignment)
