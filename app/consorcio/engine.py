"""
Consortium simulation engine.
Reproduces the reference spreadsheet cell by cell: same evaluation order,
same rounding points (round half up) and the same zero fallbacks for failed ratios.
The engine is a pure function: no I/O, no logging, no shared state.
"""
from typing import Optional

from app.consorcio.schemas import (
    BidDilutionMode,
    InsuranceKind,
    SimulationInput,
    SimulationOutput,
)
from app.core.formatters import round_half_up, safe_divide

# Monthly insurance levies, fixed by the insurer's table
VEHICLE_LIFE_RATE = 0.000599
PROPERTY_GUARANTEE_RATE = 0.000392

# Stored precision of the spreadsheet cells
RATE_DECIMALS = 6
INSTALLMENT_PERCENT_DECIMALS = 8


def insurance_levy(kind: InsuranceKind, base: float) -> float:
    """Monthly insurance charge over `base`. At most one rider applies per simulation."""
    if kind is InsuranceKind.VEHICLE:
        return VEHICLE_LIFE_RATE * base
    if kind is InsuranceKind.PROPERTY:
        return PROPERTY_GUARANTEE_RATE * base
    return 0.0


def bid_installments_for(adjusted_credit: float, percent_decimal: float, bid_installment_value: float) -> int:
    """Converts a bid percentage into a whole number of installments (round half up)."""
    raw = safe_divide(adjusted_credit * percent_decimal, bid_installment_value)
    return int(round_half_up(raw, 0))


def discounted_installments(
    mode: BidDilutionMode,
    total_bid_installments: int,
    embedded_bid_installments: int
) -> int:
    """
    Installments the bid marks as already paid.
    REDUCE_INSTALLMENTS counts the whole bid, REDUCE_TERM only its embedded part,
    SPREAD_EVENLY (LUDC) none: its effect goes through the balance instead.
    """
    if total_bid_installments <= 0:
        return 0
    if mode is BidDilutionMode.SPREAD_EVENLY:
        return 0
    if mode is BidDilutionMode.REDUCE_TERM:
        return embedded_bid_installments
    return total_bid_installments


def calculate_simulation(data: SimulationInput) -> Optional[SimulationOutput]:
    """
    Runs the consortium simulation.
    Returns None when the term is zero (or negative): the plan cannot be simulated.
    """
    credit = data.credit
    term = data.term_months
    assembly_month = data.assembly_bid_month

    if term <= 0:
        return None

    fee_decimal = data.admin_fee_rate / 100
    offered_decimal = data.offered_bid_percent / 100
    embedded_decimal = data.embedded_bid_percent / 100

    adjusted_factor = 1 + fee_decimal
    per_month_rate = round_half_up(adjusted_factor / term, RATE_DECIMALS)
    adjusted_credit = credit * adjusted_factor

    installment_percent = round_half_up(
        per_month_rate * data.reduction_plan.factor, INSTALLMENT_PERCENT_DECIMALS
    )
    installment_value = credit * installment_percent + insurance_levy(data.insurance_kind, adjusted_credit)

    # Share of the adjusted total already paid by the installments before the assembly.
    # The credit is multiplied and divided back so a zero credit yields the zero fallback.
    assembly_discount = round_half_up(
        safe_divide(assembly_month * installment_percent * credit, credit), RATE_DECIMALS
    )
    assembly_rate = round_half_up(
        safe_divide(adjusted_factor - assembly_discount, term - assembly_month), RATE_DECIMALS
    )
    # Money value of one installment for bid conversions
    bid_installment_value = round_half_up(credit * assembly_rate, RATE_DECIMALS)

    if offered_decimal > 0:
        total_bid_installments = bid_installments_for(adjusted_credit, offered_decimal, bid_installment_value)
    else:
        total_bid_installments = data.offered_bid_installment_count
    offered_bid_value = total_bid_installments * bid_installment_value

    embedded_bid_installments = bid_installments_for(adjusted_credit, embedded_decimal, bid_installment_value)
    embedded_bid_value = embedded_bid_installments * bid_installment_value
    cash_bid_installments = total_bid_installments - embedded_bid_installments

    available_credit = credit - embedded_bid_value

    paid_by_bid = discounted_installments(
        data.bid_dilution_mode, total_bid_installments, embedded_bid_installments
    )
    if assembly_month >= 1:
        paid_at_contemplation = 1 + paid_by_bid + (assembly_month - 1)
    else:
        paid_at_contemplation = 1 + paid_by_bid
    # Negative counts flag a bid larger than the term and are reported as is
    remaining_count = term - paid_at_contemplation

    amortized_fraction = (cash_bid_installments + embedded_bid_installments) * assembly_rate + assembly_discount
    remaining_fraction = adjusted_factor - amortized_fraction
    outstanding_balance = remaining_fraction * credit

    remaining_rate = round_half_up(safe_divide(remaining_fraction, remaining_count), RATE_DECIMALS)
    remaining_installment_value = (
        remaining_rate * credit + insurance_levy(data.insurance_kind, outstanding_balance)
    )

    return SimulationOutput(
        installment_value=installment_value,
        available_credit=available_credit,
        outstanding_balance=outstanding_balance,
        remaining_installment_count=remaining_count,
        remaining_installment_value=remaining_installment_value,
        offered_bid_value=offered_bid_value,
        embedded_bid_value=embedded_bid_value,
        installment_percent_of_credit=installment_percent,
        paid_installment_count_at_contemplation=paid_at_contemplation,
    )
