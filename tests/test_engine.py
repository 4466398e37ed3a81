"""
Unit tests for the consortium simulation engine.
Validates spreadsheet rounding, reduction plans, insurance riders and bid dilution.
"""
import pytest
from pydantic import ValidationError

from app.consorcio.engine import (
    PROPERTY_GUARANTEE_RATE,
    VEHICLE_LIFE_RATE,
    calculate_simulation,
    insurance_levy,
)
from app.consorcio.schemas import (
    BidDilutionMode,
    InsuranceKind,
    ReductionPlan,
    SimulationInput,
)
from app.core.formatters import round_half_up


def bid_scenario(**overrides) -> SimulationInput:
    """100k credit, 100 months, 20% fee: one installment is exactly 1.2% (R$ 1,200)."""
    fields = dict(
        credit=100000.0,
        term_months=100,
        admin_fee_rate=20.0,
        offered_bid_percent=30.0,
        embedded_bid_percent=10.0,
        bid_dilution_mode=BidDilutionMode.REDUCE_INSTALLMENTS,
    )
    fields.update(overrides)
    return SimulationInput(**fields)


@pytest.mark.parametrize("overrides", [
    {},
    {"credit": 250000.0, "admin_fee_rate": 15.0},
    {"offered_bid_percent": 50.0, "embedded_bid_percent": 25.0},
    {"insurance_kind": InsuranceKind.VEHICLE, "assembly_bid_month": 10},
])
def test_zero_term_is_not_computable(overrides):
    """A zero term returns None whatever the other fields hold."""
    data = SimulationInput(credit=100000.0, term_months=0, admin_fee_rate=18.0, **overrides)
    assert calculate_simulation(data) is None


def test_negative_term_is_not_computable():
    assert calculate_simulation(SimulationInput(credit=100000.0, term_months=-12)) is None


def test_blank_cells_read_as_zero():
    """Blank spreadsheet cells coerce to zero, so a blank term is not computable."""
    data = SimulationInput(credit="", term_months=None, admin_fee_rate="")
    assert data.credit == 0.0
    assert data.term_months == 0
    assert calculate_simulation(data) is None


def test_installment_percent_two_stage_rounding():
    """Rate is stored with 6 decimals first, then the plan factor result with 8."""
    data = SimulationInput(credit=100000.0, term_months=120, admin_fee_rate=18.0)

    result = calculate_simulation(data)

    assert result.installment_percent_of_credit == round_half_up(round_half_up(1.18 / 120, 6), 8)
    assert result.installment_percent_of_credit == 0.009833
    assert result.installment_value == pytest.approx(983.3)


def test_flex50_halves_installment():
    full = calculate_simulation(SimulationInput(credit=100000.0, term_months=120, admin_fee_rate=18.0))
    flex = calculate_simulation(SimulationInput(
        credit=100000.0, term_months=120, admin_fee_rate=18.0, reduction_plan=ReductionPlan.FLEX_50
    ))

    assert flex.installment_value == pytest.approx(full.installment_value / 2)
    assert flex.installment_percent_of_credit == pytest.approx(0.0049165)


@pytest.mark.parametrize("plan, factor", [
    (ReductionPlan.INTEGRAL, 1.0),
    (ReductionPlan.FLEX_10, 0.9),
    (ReductionPlan.FLEX_20, 0.8),
    (ReductionPlan.FLEX_30, 0.7),
    (ReductionPlan.FLEX_40, 0.6),
    (ReductionPlan.FLEX_50, 0.5),
])
def test_reduction_plan_factors(plan: ReductionPlan, factor: float):
    data = SimulationInput(credit=100000.0, term_months=100, admin_fee_rate=20.0, reduction_plan=plan)

    result = calculate_simulation(data)

    assert plan.factor == factor
    assert result.installment_value == pytest.approx(1200.0 * factor)


@pytest.mark.parametrize("kind, expected_levy", [
    (InsuranceKind.VEHICLE, VEHICLE_LIFE_RATE * 118000.0),
    (InsuranceKind.PROPERTY, PROPERTY_GUARANTEE_RATE * 118000.0),
    (InsuranceKind.NONE, 0.0),
])
def test_insurance_levied_on_adjusted_credit(kind: InsuranceKind, expected_levy: float):
    data = SimulationInput(credit=100000.0, term_months=120, admin_fee_rate=18.0, insurance_kind=kind)

    result = calculate_simulation(data)

    assert result.installment_value - 100000.0 * result.installment_percent_of_credit == pytest.approx(expected_levy)


def test_insurance_riders_are_exclusive():
    """Each kind adds exactly its own rider, before and after contemplation."""
    uninsured = calculate_simulation(bid_scenario())

    for kind, rate in [
        (InsuranceKind.VEHICLE, VEHICLE_LIFE_RATE),
        (InsuranceKind.PROPERTY, PROPERTY_GUARANTEE_RATE),
    ]:
        result = calculate_simulation(bid_scenario(insurance_kind=kind))

        assert result.installment_value - uninsured.installment_value == pytest.approx(rate * 120000.0)
        assert (
            result.remaining_installment_value - uninsured.remaining_installment_value
            == pytest.approx(rate * 84000.0)
        )

    assert insurance_levy(InsuranceKind.NONE, 120000.0) == 0.0


def test_bid_sizing():
    result = calculate_simulation(bid_scenario())

    assert result.offered_bid_value == pytest.approx(36000.0)
    assert result.embedded_bid_value == pytest.approx(12000.0)
    assert result.available_credit == pytest.approx(88000.0)
    assert result.outstanding_balance == pytest.approx(84000.0)


@pytest.mark.parametrize("mode, paid, remaining, remaining_value", [
    (BidDilutionMode.REDUCE_INSTALLMENTS, 31, 69, 1217.4),
    (BidDilutionMode.REDUCE_TERM, 11, 89, 943.8),
    (BidDilutionMode.SPREAD_EVENLY, 1, 99, 848.5),
])
def test_dilution_modes(mode: BidDilutionMode, paid: int, remaining: int, remaining_value: float):
    """
    REDUCE_INSTALLMENTS discounts the whole bid, REDUCE_TERM only the embedded part,
    LUDC nothing: the balance is the same and only the split over the term changes.
    """
    result = calculate_simulation(bid_scenario(bid_dilution_mode=mode))

    assert result.paid_installment_count_at_contemplation == paid
    assert result.remaining_installment_count == remaining
    assert result.remaining_installment_value == pytest.approx(remaining_value)
    assert result.outstanding_balance == pytest.approx(84000.0)


def test_dilution_modes_diverge():
    remaining = {
        calculate_simulation(bid_scenario(bid_dilution_mode=mode)).remaining_installment_count
        for mode in BidDilutionMode
    }
    assert len(remaining) == 3


def test_dilution_mode_ignored_without_bid():
    for mode in BidDilutionMode:
        result = calculate_simulation(bid_scenario(
            offered_bid_percent=0.0, embedded_bid_percent=0.0, bid_dilution_mode=mode
        ))
        assert result.paid_installment_count_at_contemplation == 1
        assert result.remaining_installment_count == 99
        assert result.outstanding_balance == pytest.approx(120000.0)
        assert result.remaining_installment_value == pytest.approx(1212.1)


def test_assembly_month_discounts_paid_installments():
    result = calculate_simulation(bid_scenario(assembly_bid_month=12))

    assert result.paid_installment_count_at_contemplation == 42
    assert result.remaining_installment_count == 58
    assert result.offered_bid_value == pytest.approx(36000.0)
    assert result.outstanding_balance == pytest.approx(69600.0)
    assert result.remaining_installment_value == pytest.approx(1200.0)


def test_post_contemplation_insurance_uses_outstanding_balance():
    result = calculate_simulation(bid_scenario(insurance_kind=InsuranceKind.VEHICLE))

    assert result.installment_value == pytest.approx(1200.0 + VEHICLE_LIFE_RATE * 120000.0)
    assert result.remaining_installment_value == pytest.approx(1217.4 + VEHICLE_LIFE_RATE * 84000.0)


def test_installment_count_used_without_percentage():
    result = calculate_simulation(bid_scenario(
        offered_bid_percent=0.0, embedded_bid_percent=0.0, offered_bid_installment_count=5
    ))

    assert result.offered_bid_value == pytest.approx(6000.0)
    assert result.paid_installment_count_at_contemplation == 6


def test_bid_installments_round_half_up():
    """2.5 installments become 3, never the banker's 2."""
    data = SimulationInput(credit=100000.0, term_months=100, offered_bid_percent=2.5)

    result = calculate_simulation(data)

    assert result.offered_bid_value == pytest.approx(3000.0)


@pytest.mark.parametrize("overrides", [
    {},
    {"embedded_bid_percent": 0.0},
    {"embedded_bid_percent": 17.3, "offered_bid_percent": 40.0},
    {"credit": 73250.55, "admin_fee_rate": 16.5, "term_months": 180},
    {"assembly_bid_month": 7, "insurance_kind": InsuranceKind.PROPERTY},
])
def test_available_credit_identity(overrides):
    data = bid_scenario(**overrides)

    result = calculate_simulation(data)

    assert result.available_credit == data.credit - result.embedded_bid_value
    assert result.remaining_installment_count == data.term_months - result.paid_installment_count_at_contemplation


def test_zero_remaining_installments_fall_back_to_zero():
    """A bid covering the whole term leaves no installment to divide by."""
    result = calculate_simulation(bid_scenario(
        offered_bid_percent=0.0, embedded_bid_percent=0.0, offered_bid_installment_count=99
    ))

    assert result.remaining_installment_count == 0
    assert result.remaining_installment_value == 0.0
    assert result.outstanding_balance == pytest.approx(1200.0)


def test_oversubscribed_bid_is_not_clamped():
    result = calculate_simulation(bid_scenario(
        offered_bid_percent=0.0, embedded_bid_percent=0.0, offered_bid_installment_count=120
    ))

    assert result.remaining_installment_count == -21


def test_zero_credit_degrades_to_zero():
    result = calculate_simulation(bid_scenario(credit=0.0, assembly_bid_month=5))

    assert result.installment_value == 0.0
    assert result.offered_bid_value == 0.0
    assert result.embedded_bid_value == 0.0
    assert result.available_credit == 0.0
    assert result.outstanding_balance == 0.0


def test_legacy_form_codes():
    data = SimulationInput(
        credit="R$ 100.000,00",
        term_months=100,
        reduction_plan=6,
        insurance_kind=1,
        bid_dilution_mode="2",
    )

    assert data.credit == 100000.0
    assert data.reduction_plan is ReductionPlan.FLEX_50
    assert data.insurance_kind is InsuranceKind.VEHICLE
    assert data.bid_dilution_mode is BidDilutionMode.SPREAD_EVENLY
    assert SimulationInput(bid_dilution_mode=3).bid_dilution_mode is BidDilutionMode.REDUCE_INSTALLMENTS
    assert SimulationInput(insurance_kind=3).insurance_kind is InsuranceKind.NONE


def test_values_are_immutable():
    result = calculate_simulation(bid_scenario())

    with pytest.raises(ValidationError):
        result.installment_value = 1.0

    with pytest.raises(ValidationError):
        bid_scenario().credit = 1.0


def test_non_finite_input_rejected():
    with pytest.raises(ValidationError):
        SimulationInput(credit=float("nan"), term_months=12)
