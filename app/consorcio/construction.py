"""
Construction plan calculator.
The credit of a real estate consortium follows the INCC until contemplation;
post-contemplation figures come from the simulation engine over the adjusted credit.
"""
from typing import Iterator, Optional, Tuple

from app.consorcio.engine import calculate_simulation
from app.consorcio.schemas import (
    AdjustmentCycle,
    ConstructionInput,
    ConstructionOutput,
    CreditAdjustment,
)


def calculate_base_installment(credit: float, term: int, admin_fee_rate: float) -> float:
    """
    Full installment before any adjustment.
    BaseInstallment = (Credit / Term) * (1 + Fee/100), deliberately unrounded.
    """
    if term <= 0:
        raise ValueError("Term must be greater than 0")
    return (credit / term) * (1 + admin_fee_rate / 100)


def iter_credit_adjustments(
    credit: float,
    incc_rate: float,
    contemplation_month: int,
    cycle: AdjustmentCycle
) -> Iterator[CreditAdjustment]:
    """Walks months 1..contemplation_month and yields every INCC adjustment event."""
    value = credit
    for month in range(1, contemplation_month + 1):
        if month % cycle.months == 0:
            value = value * (1 + incc_rate / 100)
            yield CreditAdjustment(month=month, value=value)


def calculate_adjusted_credit(
    credit: float,
    incc_rate: float,
    contemplation_month: int,
    cycle: AdjustmentCycle
) -> Tuple[float, Tuple[CreditAdjustment, ...]]:
    """Returns the credit at contemplation and the ordered adjustment history."""
    history = tuple(iter_credit_adjustments(credit, incc_rate, contemplation_month, cycle))
    final_value = history[-1].value if history else credit
    return final_value, history


def calculate_valuation(adjusted_credit: float, appreciation_percent: float) -> float:
    """Monetary appreciation of the asset over the adjusted credit (20 means 20%)."""
    return adjusted_credit * (appreciation_percent / 100)


def calculate_construction_plan(data: ConstructionInput) -> ConstructionOutput:
    """
    Runs the construction plan simulation.
    Raises ValueError when the term is not positive.
    """
    base_installment = calculate_base_installment(data.credit, data.term_months, data.admin_fee_rate)

    adjusted_credit, history = calculate_adjusted_credit(
        data.credit, data.incc_rate, data.contemplation_months, data.adjustment_cycle
    )

    # Same bid, later in time: the spreadsheet runs over the adjusted credit.
    # Without an explicit bid month the bid happens at contemplation.
    assembly_month = data.assembly_bid_month or data.contemplation_months
    adjusted_input = data.model_copy(update={
        "credit": adjusted_credit,
        "assembly_bid_month": assembly_month,
    })
    simulation = calculate_simulation(adjusted_input)
    if simulation is None:
        raise ValueError("Term must be greater than 0")

    valuation_gain: Optional[float] = None
    credit_plus_valuation: Optional[float] = None
    if data.appreciation_percent is not None:
        valuation_gain = calculate_valuation(adjusted_credit, data.appreciation_percent)
        credit_plus_valuation = adjusted_credit + valuation_gain

    return ConstructionOutput(
        base_installment=base_installment,
        adjusted_credit=adjusted_credit,
        new_installment=simulation.installment_value,
        adjustment_history=history,
        contemplation_month=data.contemplation_months,
        adjustment_cycle=data.adjustment_cycle,
        total_cost=base_installment * data.term_months,
        simulation=simulation,
        valuation_gain=valuation_gain,
        credit_plus_valuation=credit_plus_valuation,
    )
