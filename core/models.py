from __future__ import annotations

import math
from datetime import datetime
from enum import IntEnum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

ProjectType = Literal["new-construction", "renovation"]
Timeline = Literal["standard", "flexible"]
FixtureCategory = Literal["electrical", "plumbing", "additional"]
CostCategory = Literal["execution", "vendor", "additional"]
RateSource = Literal["override", "suggested", "none"]
RateBasis = Literal["per_area", "per_unit", "fixed"]

FIXTURE_CATEGORIES: tuple[FixtureCategory, ...] = ("electrical", "plumbing", "additional")

# wall height assumed by the customer calculator when none is given
DEFAULT_WALL_HEIGHT = 8.0


# ---------- GEOMETRY ----------

class ProjectDimensions(BaseModel):
    # no ge=0 here: partial UI input is coerced to zero by the rules, not rejected
    length: float = 0
    width: float = 0
    height: float = DEFAULT_WALL_HEIGHT


class AreaBreakdown(BaseModel):
    floor_area: float
    wall_area: float
    ceiling_area: float
    total_area: float


class TilingCost(BaseModel):
    model_config = ConfigDict(frozen=True)

    material_cost: float = 0
    labor_cost: float = 0
    total: float = 0

    initial_tile_count: int = 0
    final_tile_count: int = 0


# ---------- CATALOG & SETTINGS ----------

def _default_electrical() -> dict[str, bool]:
    return {"led_mirror": False, "exhaust_fan": False, "water_heater": False}


def _default_plumbing() -> dict[str, bool]:
    return {"complete_plumbing": False, "fixture_installation_only": False}


def _default_additional() -> dict[str, bool]:
    return {"shower_partition": False, "vanity": False, "bathtub": False, "jacuzzi": False}


class FixtureSelection(BaseModel):
    """Independent on/off fixture flags grouped by category."""

    electrical: dict[str, bool] = Field(default_factory=_default_electrical)
    plumbing: dict[str, bool] = Field(default_factory=_default_plumbing)
    additional: dict[str, bool] = Field(default_factory=_default_additional)

    def selected(self) -> list[tuple[FixtureCategory, str]]:
        pairs: list[tuple[FixtureCategory, str]] = []
        for category in FIXTURE_CATEGORIES:
            for flag, on in getattr(self, category).items():
                if on:
                    pairs.append((category, flag))
        return pairs


class CatalogItem(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str
    name: str = Field(min_length=1)
    category: str = ""
    brand_id: Optional[str] = None

    mrp: float = Field(default=0, ge=0)
    landing_price: float = Field(default=0, ge=0)
    client_price: float = Field(default=0, ge=0)
    quotation_price: float = Field(default=0, ge=0)

    @computed_field
    @property
    def margin(self) -> float:
        from .fixtures import calculate_item_margin

        return calculate_item_margin(self.landing_price, self.quotation_price)


class Brand(BaseModel):
    id: str
    name: str


class PricingSettings(BaseModel):
    plumbing_rate_per_sqft: float = Field(ge=0)
    tile_cost_per_unit: float = Field(ge=0)
    tiling_labor_per_sqft: float = Field(ge=0)
    breakage_percentage: float = Field(ge=0)


class ServiceRate(BaseModel):
    service_id: str
    name: str = ""
    category: str = ""
    unit: str = ""
    rate: float = Field(default=0, ge=0)


class TilingRates(BaseModel):
    per_tile_cost: float = Field(default=0, ge=0)
    tile_laying_cost: float = Field(default=0, ge=0)

    @property
    def combined_rate(self) -> float:
        return self.per_tile_cost + self.tile_laying_cost


class RateResolution(BaseModel):
    service_id: str
    resolved_rate: float
    source: RateSource
    basis: RateBasis
    estimated_line_cost: float


# ---------- CUSTOMER ESTIMATE ----------

class CalculatorStep(IntEnum):
    PROJECT_TYPE = 1
    DIMENSIONS = 2
    FIXTURES = 3
    TIMELINE = 4
    BRAND = 5
    CUSTOMER_DETAILS = 6
    CALCULATED = 7


class CustomerDetails(BaseModel):
    name: str = ""
    email: str = ""
    mobile: str = ""
    location: str = ""


class CalculatorState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: CalculatorStep = CalculatorStep.PROJECT_TYPE
    project_type: ProjectType = "new-construction"
    dimensions: ProjectDimensions = Field(
        default_factory=lambda: ProjectDimensions(length=8, width=6)
    )
    fixtures: FixtureSelection = Field(default_factory=FixtureSelection)
    timeline: Timeline = "standard"
    selected_brand: str = ""
    customer_details: CustomerDetails = Field(default_factory=CustomerDetails)


class EstimateResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    fixture_cost: float
    plumbing_cost: float
    tiling_cost: TilingCost
    product_cost: float
    total: float

    @model_validator(mode="after")
    def _check_total(self) -> "EstimateResult":
        expected = self.fixture_cost + self.plumbing_cost + self.tiling_cost.total + self.product_cost
        if not math.isclose(self.total, expected, rel_tol=1e-9, abs_tol=1e-6):
            raise ValueError(f"total {self.total} does not match component sum {expected}")
        return self


class SavedEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    state: CalculatorState
    estimate: EstimateResult


class EstimateOutcome(BaseModel):
    estimate: EstimateResult
    saved: bool
    record: Optional[SavedEstimate] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


# ---------- PROJECT COSTING ----------

class ServiceDetail(BaseModel):
    quantity: float = Field(default=0, ge=0)
    area: float = Field(default=0, ge=0)
    unit: str = ""
    # admin-entered rate for this washroom only
    rate: Optional[float] = Field(default=None, ge=0)


class FixtureInstance(BaseModel):
    fixture_id: str
    quantity: int = Field(default=1, ge=0)
    unit_price: float = Field(default=0, ge=0)


class Washroom(BaseModel):
    """A washroom of a real project.

    Areas are computed from the current dimensions on every read, so editing
    length, width or height can never leave them stale.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str
    name: str = ""
    length: float = 0
    width: float = 0
    height: float = DEFAULT_WALL_HEIGHT
    ceiling_area_override: Optional[float] = Field(default=None, ge=0)
    selected_brand: Optional[str] = None

    services: dict[str, bool] = Field(default_factory=dict)
    service_details: dict[str, ServiceDetail] = Field(default_factory=dict)
    fixtures: dict[str, FixtureInstance] = Field(default_factory=dict)

    def areas(self) -> AreaBreakdown:
        from .rules import compute_areas

        return compute_areas(self.length, self.width, self.height, ceiling_area=self.ceiling_area_override)

    @computed_field
    @property
    def area(self) -> float:
        return self.areas().floor_area

    @computed_field
    @property
    def wall_area(self) -> float:
        return self.areas().wall_area

    @computed_field
    @property
    def ceiling_area(self) -> float:
        return self.areas().ceiling_area

    @computed_field
    @property
    def total_area(self) -> float:
        return self.areas().total_area

    def selected_services(self) -> list[str]:
        return [sid for sid, on in self.services.items() if on]


class CostItem(BaseModel):
    id: str
    name: str = Field(min_length=1)
    description: str = ""
    amount: float = Field(ge=0)
    category: CostCategory


class InternalPricingBreakdown(BaseModel):
    """Margin and GST on execution cost, with products passed through at cost.

    `base_price` through `total_price` cover execution services only.
    `product_base_price` carries neither margin nor GST and is added in
    `total_with_products`, the amount the washroom contributes to a quotation.
    """

    model_config = ConfigDict(frozen=True)

    execution_base_price: float
    base_price: float
    margin_percentage: float
    margin_amount: float
    price_with_margin: float
    gst_percentage: float
    gst_amount: float
    total_price: float

    product_base_price: float = 0
    total_with_products: float

    warnings: list[str] = []

    @model_validator(mode="after")
    def _check_composition(self) -> "InternalPricingBreakdown":
        checks = (
            (self.margin_amount, self.base_price * self.margin_percentage / 100),
            (self.price_with_margin, self.base_price + self.margin_amount),
            (self.gst_amount, self.price_with_margin * self.gst_percentage / 100),
            (self.total_price, self.price_with_margin + self.gst_amount),
            (self.total_with_products, self.total_price + self.product_base_price),
        )
        for actual, expected in checks:
            if not math.isclose(actual, expected, rel_tol=1e-9, abs_tol=1e-6):
                raise ValueError(f"pricing breakdown is inconsistent: {actual} != {expected}")
        return self


class ProjectPricingSummary(BaseModel):
    washroom_pricing: dict[str, InternalPricingBreakdown] = {}
    ledger_pricing: Optional[InternalPricingBreakdown] = None

    execution_base_price: float = 0
    product_base_price: float = 0
    total_base_price: float = 0
    total_margin: float = 0
    total_with_margin: float = 0
    total_gst: float = 0
    grand_total: float = 0
    average_margin: float = 0


class ServiceLine(BaseModel):
    washroom_id: str
    service_id: str
    name: str = ""
    resolution: RateResolution


class WashroomCost(BaseModel):
    execution_services: float = 0
    product_costs: float = 0
    logistics_cost: float = 0
    total_cost: float = 0

    service_lines: list[ServiceLine] = []


class ProjectCostSummary(BaseModel):
    project_id: str

    execution_services_total: float = 0
    product_costs_total: float = 0
    logistics_total: float = 0
    tiling_cost: float = 0
    combined_tiling_rate: float = 0
    total_area: float = 0

    washroom_costs: dict[str, WashroomCost] = {}

    execution_total: float = 0
    vendor_total: float = 0
    additional_total: float = 0
    original_estimate: float = 0

    internal_pricing: Optional[ProjectPricingSummary] = None
    final_quotation_amount: float = 0


# ---------- QUOTATIONS ----------

class ProjectInfo(BaseModel):
    id: str
    project_code: str
    client_name: str = ""
    client_email: str = ""
    client_mobile: str = ""
    client_location: str = ""
    address: str = ""
    project_type: str = ""
    length: float = 0
    width: float = 0


class QuotationItem(BaseModel):
    name: str
    description: str = ""
    amount: float = Field(default=0, ge=0)
    mrp: Optional[float] = Field(default=None, ge=0)
    washroom_id: Optional[str] = None


class QuotationData(BaseModel):
    items: list[QuotationItem] = []
    total_amount: float = Field(default=0, ge=0)
    terms: str = ""
    gst_rate: float = Field(default=18, ge=0)
    margins: dict[str, float] = {}
    internal_pricing: bool = False


class Quotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    quotation_number: str
    project_id: str
    html: str
    total_amount: float
    items: list[QuotationItem]
    terms: str
    created_at: datetime
    internal_pricing: Optional[ProjectPricingSummary] = None
