"""
Acquisition alternatives shown next to the consortium simulation.
Implements the consortium summary, Price Table financing, cash savings, rent-to-own
and the investment yardsticks (idle credit letter, CDB, savings account).
"""
import math

from app.consorcio.engine import calculate_simulation
from app.consorcio.schemas import (
    BidType,
    CashPurchaseSummary,
    ComparisonOutput,
    ComparisonRequest,
    ConsortiumSummary,
    FinancingSummary,
    InvestmentGrowth,
    RentToOwnSummary,
)
from app.core.config import settings


def calculate_consortium_summary(
    value: float,
    term: int,
    admin_fee_rate: float,
    reserve_fund_rate: float,
    bid_percent: float,
    bid_type: BidType,
    embedded_share_percent: float = 0.0
) -> ConsortiumSummary:
    """
    Simplified consortium cost: fees are charged on the letter net of the embedded bid
    and the cash bid is added on top of the installments.
    """
    if not value or term <= 0:
        return ConsortiumSummary(
            monthly_installment=0.0,
            total_cost=0.0,
            admin_fee_total=0.0,
            reserve_fund_total=0.0,
            asset_value=value or 0.0,
            bid_value=0.0,
            cash_bid_value=0.0,
            embedded_bid_value=0.0,
            bid_type=bid_type,
        )

    bid_total = value * bid_percent / 100
    cash_bid = 0.0
    embedded_bid = 0.0
    letter_base = value

    if bid_total > 0:
        if bid_type is BidType.CASH:
            cash_bid = bid_total
        elif bid_type is BidType.EMBEDDED:
            embedded_bid = bid_total
            letter_base = max(value - embedded_bid, 0.0)
        else:
            embedded_share = embedded_share_percent / 100
            embedded_bid = bid_total * embedded_share
            cash_bid = bid_total * (1 - embedded_share)
            letter_base = max(value - embedded_bid, 0.0)

    admin_fee_total = letter_base * admin_fee_rate / 100
    reserve_fund_total = letter_base * reserve_fund_rate / 100
    financed_total = letter_base + admin_fee_total + reserve_fund_total

    return ConsortiumSummary(
        monthly_installment=financed_total / term,
        total_cost=financed_total + cash_bid,
        admin_fee_total=admin_fee_total,
        reserve_fund_total=reserve_fund_total,
        asset_value=value,
        bid_value=bid_total,
        cash_bid_value=cash_bid,
        embedded_bid_value=embedded_bid,
        bid_type=bid_type,
    )


def calculate_financing(
    value: float,
    term: int,
    monthly_rate_percent: float,
    down_payment_percent: float = 0.0
) -> FinancingSummary:
    """
    Price Table financing.

    Formula: PMT = PV * [(1+i)^n * i] / [(1+i)^n - 1]
    """
    if not value or term <= 0:
        return FinancingSummary(
            monthly_installment=0.0,
            total_cost=0.0,
            down_payment=0.0,
            total_interest=0.0,
            asset_value=value or 0.0,
        )

    rate = monthly_rate_percent / 100
    down_payment = value * down_payment_percent / 100
    financed = value - down_payment

    if rate == 0:
        installment = financed / term
    else:
        factor = (1 + rate) ** term
        installment = financed * (rate * factor) / (factor - 1)

    total_paid = installment * term + down_payment

    return FinancingSummary(
        monthly_installment=installment,
        total_cost=total_paid,
        down_payment=down_payment,
        total_interest=total_paid - value,
        asset_value=value,
    )


def calculate_cash_purchase(value: float, term: int, opportunity_factor: float) -> CashPurchaseSummary:
    """Saving up to buy in cash, charged with the opportunity cost of waiting."""
    if not value or term <= 0:
        return CashPurchaseSummary(
            monthly_installment=0.0,
            total_cost=0.0,
            saved=0.0,
            asset_value=value or 0.0,
            discipline_required=True,
        )

    required = value * opportunity_factor
    return CashPurchaseSummary(
        monthly_installment=required / term,
        total_cost=required,
        saved=0.0,
        asset_value=value,
        discipline_required=True,
    )


def calculate_rent_to_own(value: float, term: int, monthly_rate_percent: float) -> RentToOwnSummary:
    """Rent with purchase option: a fixed share of the asset value every month."""
    installment = value * monthly_rate_percent / 100
    return RentToOwnSummary(
        monthly_installment=installment,
        total_cost=installment * max(term, 0),
        asset_value=value,
        kind="Aluguel com opção de compra",
    )


def calculate_monthly_yield(total_cost: float, value: float, term: int) -> float:
    """Equivalent monthly rate that turns `value` into `total_cost` over `term` months."""
    if not value or term <= 0 or total_cost <= 0:
        return 0.0
    total_factor = total_cost / value
    if total_factor <= 0:
        return 0.0
    return total_factor ** (1 / term) - 1


def calculate_investment_growth(initial: float, term: int, monthly_rate_percent: float) -> InvestmentGrowth:
    """Compound growth of `initial` at a monthly rate."""
    rate = monthly_rate_percent / 100
    if not initial or term <= 0 or rate < -1:
        return InvestmentGrowth(final_value=0.0, gain=0.0, monthly_rate=rate)

    final_value = initial * (1 + rate) ** term
    return InvestmentGrowth(final_value=final_value, gain=final_value - initial, monthly_rate=rate)


def calculate_accumulation_months(installment: float, letter_value: float, embedded_bid: float = 0.0) -> int:
    """
    Months needed to save the target by setting aside the consortium installment,
    without interest. The embedded bid lowers the target.
    """
    if installment <= 0 or letter_value <= 0:
        return 0

    target = max(0.0, letter_value - max(embedded_bid, 0.0))
    if target == 0:
        return 0
    return math.ceil(target / installment)


def compare_alternatives(data: ComparisonRequest) -> ComparisonOutput:
    """Builds the full comparison panel for one asset value and term."""
    value = data.value
    term = data.term_months
    reserve_fund_rate = (
        data.reserve_fund_rate if data.reserve_fund_rate is not None else settings.RESERVE_FUND_RATE
    )

    consortium = calculate_consortium_summary(
        value,
        term,
        data.admin_fee_rate,
        reserve_fund_rate,
        data.bid_percent,
        data.bid_type,
        data.embedded_share_percent,
    )
    financing = calculate_financing(value, term, data.financing_monthly_rate, data.down_payment_percent)

    simulation = calculate_simulation(data.simulation) if data.simulation is not None else None

    # The official simulation's embedded bid wins over the simplified summary
    embedded_bid = simulation.embedded_bid_value if simulation is not None else consortium.embedded_bid_value

    letter_months = calculate_accumulation_months(consortium.monthly_installment, value)
    available_credit_months = 0
    if embedded_bid > 0:
        available_credit_months = calculate_accumulation_months(
            consortium.monthly_installment, value, embedded_bid
        )

    return ComparisonOutput(
        consortium=consortium,
        financing=financing,
        cash_purchase=calculate_cash_purchase(value, term, settings.CASH_OPPORTUNITY_FACTOR),
        rent_to_own=calculate_rent_to_own(value, term, settings.RENT_MONTHLY_RATE),
        consortium_monthly_yield=calculate_monthly_yield(consortium.total_cost, value, term),
        financing_monthly_yield=calculate_monthly_yield(financing.total_cost, value, term),
        idle_credit_letter=calculate_investment_growth(value, term, settings.CREDIT_LETTER_MONTHLY_RATE),
        cdb_investment=calculate_investment_growth(value, term, settings.CDB_MONTHLY_RATE),
        savings_investment=calculate_investment_growth(value, term, settings.SAVINGS_MONTHLY_RATE),
        accumulation_months_letter=letter_months,
        accumulation_months_available_credit=available_credit_months,
        simulation=simulation,
    )
