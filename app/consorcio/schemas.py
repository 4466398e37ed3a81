"""
Pydantic schemas for consortium simulations.
Input values are immutable and coerce blank cells to zero like the reference spreadsheet.
Request subclasses add the boundary validation the API enforces before invoking the engine.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.formatters import parse_currency_input, parse_percent_input


def _legacy_code(value: Any) -> Optional[int]:
    """Returns the numeric form code (1, 2, ...) used by the legacy form, if `value` is one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ReductionPlan(str, Enum):
    """Installment reduction options (plano light/flex)."""
    INTEGRAL = "INTEGRAL"
    FLEX_10 = "FLEX_10"
    FLEX_20 = "FLEX_20"
    FLEX_30 = "FLEX_30"
    FLEX_40 = "FLEX_40"
    FLEX_50 = "FLEX_50"

    @property
    def factor(self) -> float:
        return _REDUCTION_FACTORS[self]

    @classmethod
    def from_code(cls, code: int) -> "ReductionPlan":
        # Unknown codes fall back to the full installment
        return _REDUCTION_CODES.get(code, cls.INTEGRAL)


_REDUCTION_FACTORS = {
    ReductionPlan.INTEGRAL: 1.0,
    ReductionPlan.FLEX_10: 0.9,
    ReductionPlan.FLEX_20: 0.8,
    ReductionPlan.FLEX_30: 0.7,
    ReductionPlan.FLEX_40: 0.6,
    ReductionPlan.FLEX_50: 0.5,
}

_REDUCTION_CODES = {
    1: ReductionPlan.INTEGRAL,
    2: ReductionPlan.FLEX_10,
    3: ReductionPlan.FLEX_20,
    4: ReductionPlan.FLEX_30,
    5: ReductionPlan.FLEX_40,
    6: ReductionPlan.FLEX_50,
}


class InsuranceKind(str, Enum):
    """Credit life insurance rider (seguro prestamista)."""
    VEHICLE = "AUTOMOVEL"
    PROPERTY = "IMOVEL"
    NONE = "SEM_SEGURO"

    @classmethod
    def from_code(cls, code: int) -> "InsuranceKind":
        return {1: cls.VEHICLE, 2: cls.PROPERTY}.get(code, cls.NONE)


class BidDilutionMode(str, Enum):
    """How a bid affects the schedule after contemplation (diluir lance)."""
    REDUCE_TERM = "ABATER_PRAZO"
    SPREAD_EVENLY = "LUDC"
    REDUCE_INSTALLMENTS = "ABATER_PARCELAS"

    @classmethod
    def from_code(cls, code: int) -> "BidDilutionMode":
        # The legacy form treats every code other than 1 and 2 as "abater parcelas"
        return {1: cls.REDUCE_TERM, 2: cls.SPREAD_EVENLY}.get(code, cls.REDUCE_INSTALLMENTS)


class AdjustmentCycle(str, Enum):
    """INCC adjustment periodicity for construction plans."""
    ANNUAL = "ANUAL"
    SEMIANNUAL = "SEMESTRAL"

    @property
    def months(self) -> int:
        return 12 if self is AdjustmentCycle.ANNUAL else 6


class ContemplationUnit(str, Enum):
    """Unit the contemplation date is entered in."""
    MONTHS = "MESES"
    YEARS = "ANOS"

    def to_months(self, value: int) -> int:
        return value * 12 if self is ContemplationUnit.YEARS else value


class BidType(str, Enum):
    """Bid composition used by the comparison panel."""
    CASH = "LIVRE"
    EMBEDDED = "EMBUTIDO"
    BOTH = "AMBOS"


class RecordKind(str, Enum):
    """Kind of calculation stored in the simulation history."""
    SIMULATION = "SIMULACAO"
    CONSTRUCTION = "CONSTRUCAO"
    COMPARISON = "COMPARATIVO"


class SimulationInput(BaseModel):
    """
    Spreadsheet input cells for one consortium simulation.
    Blank values read as zero; range checks are left to the caller.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    credit: float = Field(0.0, description="Credit letter value (R$)")
    term_months: int = Field(0, description="Plan term in months")
    admin_fee_rate: float = Field(0.0, description="Administration fee (%)")
    reduction_plan: ReductionPlan = Field(ReductionPlan.INTEGRAL, description="Installment reduction plan")
    insurance_kind: InsuranceKind = Field(InsuranceKind.NONE, description="Credit life insurance rider")
    offered_bid_percent: float = Field(0.0, description="Offered bid (% of adjusted credit)")
    embedded_bid_percent: float = Field(0.0, description="Embedded bid (% of adjusted credit)")
    offered_bid_installment_count: int = Field(0, description="Offered bid as installments, used without a percentage")
    bid_dilution_mode: BidDilutionMode = Field(BidDilutionMode.REDUCE_TERM, description="Bid dilution policy")
    assembly_bid_month: int = Field(0, description="Assembly month of the bid (0 = not set)")

    @field_validator("credit", mode="before")
    @classmethod
    def coerce_currency(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return parse_currency_input(v)
        return v

    @field_validator("admin_fee_rate", "offered_bid_percent", "embedded_bid_percent", mode="before")
    @classmethod
    def coerce_percent(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return parse_percent_input(v, 0.0)
        return v

    @field_validator("term_months", "offered_bid_installment_count", "assembly_bid_month", mode="before")
    @classmethod
    def coerce_blank_int(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v

    @field_validator("reduction_plan", mode="before")
    @classmethod
    def coerce_reduction_code(cls, v: Any) -> Any:
        code = _legacy_code(v)
        return ReductionPlan.from_code(code) if code is not None else v

    @field_validator("insurance_kind", mode="before")
    @classmethod
    def coerce_insurance_code(cls, v: Any) -> Any:
        code = _legacy_code(v)
        return InsuranceKind.from_code(code) if code is not None else v

    @field_validator("bid_dilution_mode", mode="before")
    @classmethod
    def coerce_dilution_code(cls, v: Any) -> Any:
        code = _legacy_code(v)
        return BidDilutionMode.from_code(code) if code is not None else v


class SimulationOutput(BaseModel):
    """Snapshot of the plan at contemplation, as the spreadsheet reports it."""
    model_config = ConfigDict(frozen=True)

    installment_value: float = Field(..., description="Monthly installment incl. insurance")
    available_credit: float = Field(..., description="Credit minus embedded bid")
    outstanding_balance: float = Field(..., description="Debt left after contemplation")
    remaining_installment_count: int = Field(..., description="Installments still to pay")
    remaining_installment_value: float = Field(..., description="Installment after contemplation incl. insurance")
    offered_bid_value: float = Field(..., description="Offered bid value (R$)")
    embedded_bid_value: float = Field(..., description="Embedded bid value (R$)")
    installment_percent_of_credit: float = Field(..., description="Installment as a fraction of credit")
    paid_installment_count_at_contemplation: int = Field(..., description="Installments considered paid at contemplation")


def _check_embedded_bid(offered: float, embedded: float) -> None:
    if embedded > 0 and embedded > offered:
        raise ValueError("Embedded bid (%) must not exceed the offered bid (%)")


class SimulationRequest(SimulationInput):
    """Simulation request payload with boundary validation."""
    credit: float = Field(..., ge=0, le=100000000, description="Credit letter value (R$)")
    term_months: int = Field(..., ge=1, le=420, description="Plan term in months")
    admin_fee_rate: float = Field(..., ge=0, le=100, description="Administration fee (%)")
    offered_bid_percent: float = Field(0.0, ge=0, le=100, description="Offered bid (% of adjusted credit)")
    embedded_bid_percent: float = Field(0.0, ge=0, le=100, description="Embedded bid (% of adjusted credit)")
    offered_bid_installment_count: int = Field(0, ge=0, description="Offered bid as installments")
    assembly_bid_month: int = Field(0, ge=0, description="Assembly month of the bid (0 = not set)")

    @model_validator(mode="after")
    def validate_bids(self) -> "SimulationRequest":
        _check_embedded_bid(self.offered_bid_percent, self.embedded_bid_percent)
        return self


class CreditAdjustment(BaseModel):
    """One INCC adjustment event."""
    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1, description="Month the index was applied")
    value: float = Field(..., description="Adjusted credit after the event")


class ConstructionInput(SimulationInput):
    """Construction plan inputs: a simulation whose credit follows the INCC until contemplation."""
    incc_rate: float = Field(0.0, description="INCC per adjustment event (%)")
    adjustment_cycle: AdjustmentCycle = Field(AdjustmentCycle.ANNUAL, description="Adjustment periodicity")
    contemplation_month: int = Field(0, description="Contemplation date, in `contemplation_unit`")
    contemplation_unit: ContemplationUnit = Field(ContemplationUnit.MONTHS, description="MESES or ANOS")
    appreciation_percent: Optional[float] = Field(None, description="Expected real estate appreciation (%)")

    @field_validator("incc_rate", mode="before")
    @classmethod
    def coerce_incc(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return parse_percent_input(v, 0.0)
        return v

    @field_validator("adjustment_cycle", mode="before")
    @classmethod
    def coerce_cycle(cls, v: Any) -> Any:
        # The legacy form sends "anual" / "semestral"
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("contemplation_month", mode="before")
    @classmethod
    def coerce_contemplation(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v

    @field_validator("contemplation_unit", mode="before")
    @classmethod
    def coerce_unit(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def contemplation_months(self) -> int:
        """Contemplation date converted to plan months."""
        return self.contemplation_unit.to_months(self.contemplation_month)


class ConstructionRequest(SimulationRequest, ConstructionInput):
    """Construction plan request payload with boundary validation."""
    incc_rate: float = Field(0.0, ge=0, le=100, description="INCC per adjustment event (%)")
    contemplation_month: int = Field(..., ge=0, le=420, description="Contemplation date, in `contemplation_unit`")
    appreciation_percent: Optional[float] = Field(None, ge=-100, le=1000, description="Expected appreciation (%)")

    @model_validator(mode="after")
    def validate_contemplation(self) -> "ConstructionRequest":
        if self.contemplation_months > 420:
            raise ValueError("Contemplation cannot be later than month 420")
        return self


class ConstructionOutput(BaseModel):
    """Construction plan result."""
    model_config = ConfigDict(frozen=True)

    base_installment: float = Field(..., description="Installment before any adjustment")
    adjusted_credit: float = Field(..., description="Credit at contemplation after INCC")
    new_installment: float = Field(..., description="Installment recomputed on the adjusted credit")
    adjustment_history: Tuple[CreditAdjustment, ...] = Field(..., description="Every INCC adjustment event")
    contemplation_month: int
    adjustment_cycle: AdjustmentCycle
    total_cost: float = Field(..., description="Base installment times term")
    simulation: SimulationOutput = Field(..., description="Spreadsheet figures on the adjusted credit")
    valuation_gain: Optional[float] = Field(None, description="Appreciation over the adjusted credit")
    credit_plus_valuation: Optional[float] = Field(None, description="Adjusted credit plus appreciation")


class ComparisonRequest(BaseModel):
    """Inputs for comparing the consortium against financing, cash and rent."""
    value: float = Field(..., ge=0, description="Asset value (R$), number or pt-BR string")
    term_months: int = Field(..., ge=1, le=420, description="Term in months")
    admin_fee_rate: float = Field(0.0, ge=0, le=100, description="Consortium administration fee (%)")
    reserve_fund_rate: Optional[float] = Field(None, ge=0, le=100, description="Reserve fund (%)")
    bid_percent: float = Field(0.0, ge=0, le=100, description="Consortium bid (% of value)")
    bid_type: BidType = Field(BidType.CASH, description="Bid composition")
    embedded_share_percent: float = Field(0.0, ge=0, le=100, description="Embedded share of the bid when both (%)")
    financing_monthly_rate: float = Field(0.0, ge=0, le=15, description="Financing monthly interest (%)")
    down_payment_percent: float = Field(0.0, ge=0, le=100, description="Financing down payment (%)")
    simulation: Optional[SimulationInput] = Field(None, description="Spreadsheet simulation to attach")

    @field_validator("value", mode="before")
    @classmethod
    def parse_value(cls, v: Any) -> float:
        return parse_currency_input(v)


class ConsortiumSummary(BaseModel):
    monthly_installment: float
    total_cost: float
    admin_fee_total: float
    reserve_fund_total: float
    asset_value: float
    bid_value: float
    cash_bid_value: float
    embedded_bid_value: float
    bid_type: BidType


class FinancingSummary(BaseModel):
    monthly_installment: float
    total_cost: float
    down_payment: float
    total_interest: float
    asset_value: float


class CashPurchaseSummary(BaseModel):
    monthly_installment: float
    total_cost: float
    saved: float
    asset_value: float
    discipline_required: bool


class RentToOwnSummary(BaseModel):
    monthly_installment: float
    total_cost: float
    asset_value: float
    kind: str


class InvestmentGrowth(BaseModel):
    final_value: float
    gain: float
    monthly_rate: float


class ComparisonOutput(BaseModel):
    """Side-by-side view of every acquisition alternative."""
    consortium: ConsortiumSummary
    financing: FinancingSummary
    cash_purchase: CashPurchaseSummary
    rent_to_own: RentToOwnSummary
    consortium_monthly_yield: float
    financing_monthly_yield: float
    idle_credit_letter: InvestmentGrowth
    cdb_investment: InvestmentGrowth
    savings_investment: InvestmentGrowth
    accumulation_months_letter: int
    accumulation_months_available_credit: int
    simulation: Optional[SimulationOutput] = None


class HistoryCreateRequest(BaseModel):
    """Stores an input/output pair verbatim."""
    kind: RecordKind = Field(..., description="Calculation kind")
    input: Dict[str, Any] = Field(..., description="Input payload")
    output: Optional[Dict[str, Any]] = Field(None, description="Output payload")


class SimulationRecordResponse(BaseModel):
    """Stored simulation history entry."""
    id: int
    kind: RecordKind
    input: Dict[str, Any]
    output: Optional[Dict[str, Any]]
    correlation_id: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
