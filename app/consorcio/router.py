"""
FastAPI Router for consortium simulation endpoints.
Exposes the spreadsheet engine, the construction plan and the comparison panel.
"""
from typing import Annotated, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Header, HTTPException

from app.consorcio.comparison import compare_alternatives
from app.consorcio.construction import calculate_construction_plan
from app.consorcio.engine import calculate_simulation
from app.consorcio.repository import SimulationRecord, SimulationRepository, get_repository
from app.consorcio.schemas import (
    ComparisonOutput,
    ComparisonRequest,
    ConstructionOutput,
    ConstructionRequest,
    HistoryCreateRequest,
    SimulationOutput,
    SimulationRecordResponse,
    SimulationRequest,
)
from app.core.logger import audit_log, get_logger_with_correlation

router = APIRouter(tags=["Consorcio"])


def _to_response(record: SimulationRecord) -> SimulationRecordResponse:
    return SimulationRecordResponse.model_validate(record)


@router.post("/simulate", response_model=SimulationOutput)
def simulate(
    data: SimulationRequest,
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> SimulationOutput:
    """
    **Consortium simulation (spreadsheet engine)**

    - **credit**: Credit letter value (R$)
    - **term_months**: Plan term
    - **admin_fee_rate**: Administration fee (%)
    - **offered_bid_percent / embedded_bid_percent**: Bid over the adjusted credit (%)
    - **bid_dilution_mode**: ABATER_PRAZO, LUDC or ABATER_PARCELAS

    **Returns:** installment, available credit, outstanding balance and
    the schedule after contemplation.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    logger.info(f"Starting consortium simulation: {data.model_dump(mode='json')}")

    result = calculate_simulation(data)

    audit_log(
        action="consortium_simulation",
        user="system",
        resource="simulation",
        details={
            "correlation_id": correlation_id,
            "credit": data.credit,
            "term_months": data.term_months,
            "installment_value": result.installment_value,
        }
    )

    logger.info(f"Simulation completed: remaining_installments={result.remaining_installment_count}")
    return result


@router.post("/construction", response_model=ConstructionOutput)
def simulate_construction(
    data: ConstructionRequest,
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> ConstructionOutput:
    """
    **Construction plan simulation**

    Applies the INCC to the credit every 6 or 12 months until contemplation
    and runs the spreadsheet engine over the adjusted credit.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    logger.info(f"Starting construction simulation: {data.model_dump(mode='json')}")

    try:
        result = calculate_construction_plan(data)
    except ValueError as e:
        logger.info(f"Construction simulation rejected: {str(e)}")
        raise HTTPException(status_code=422, detail=str(e))

    audit_log(
        action="construction_simulation",
        user="system",
        resource="construction",
        details={
            "correlation_id": correlation_id,
            "credit": data.credit,
            "adjusted_credit": result.adjusted_credit,
            "adjustments": len(result.adjustment_history),
        }
    )

    return result


@router.post("/compare", response_model=ComparisonOutput)
def compare(
    data: ComparisonRequest,
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> ComparisonOutput:
    """
    **Acquisition alternatives**

    Consortium versus Price Table financing, cash savings and rent-to-own,
    plus idle credit letter, CDB and savings account yardsticks.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    logger.info(f"Starting comparison: value={data.value}, term={data.term_months}")
    return compare_alternatives(data)


@router.post("/history", response_model=SimulationRecordResponse, status_code=201)
def save_history(
    data: HistoryCreateRequest,
    repository: SimulationRepository = Depends(get_repository),
    x_correlation_id: Annotated[Optional[str], Header()] = None
) -> SimulationRecordResponse:
    """Stores an input/output pair for later reloading."""
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    record = repository.add(data.kind, data.input, data.output, correlation_id)

    audit_log(
        action="simulation_saved",
        user="system",
        resource=f"simulation_id={record.id}",
        details={"correlation_id": correlation_id, "kind": data.kind.value}
    )

    logger.info(f"History entry stored: id={record.id}")
    return _to_response(record)


@router.get("/history/{record_id}", response_model=SimulationRecordResponse)
def get_history(
    record_id: int,
    repository: SimulationRepository = Depends(get_repository)
) -> SimulationRecordResponse:
    """
    Retrieves a stored simulation by ID.
    """
    record = repository.get(record_id)

    if not record:
        raise HTTPException(status_code=404, detail="Simulation not found")

    return _to_response(record)
