from __future__ import annotations

from functools import lru_cache
from typing import Optional, Union

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from core.calculator import EstimateOrchestrator
from core.config import configure_logging, get_config
from core.costing import CostLedger, ProjectCostingService
from core.errors import CatalogUnavailable, EstimatorError, PersistenceFailure, SettingsUnavailable
from core.models import (
    CalculatorState,
    CostItem,
    EstimateOutcome,
    EstimateResult,
    InternalPricingBreakdown,
    ProjectCostSummary,
    ProjectInfo,
    Quotation,
    Washroom,
)
from core.pricing import apply_margin_and_gst
from core.providers import (
    CachedSettingsProvider,
    JsonCatalogProvider,
    JsonEstimateStore,
    JsonQuotationStore,
    JsonRateCardProvider,
    JsonSettingsProvider,
    load_fixture_map,
)
from core.quotation import QuotationService

configure_logging()

app = FastAPI(title="Washroom Estimator API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- REQUEST BODIES ----------

class InternalPricingRequest(BaseModel):
    base_price: float = Field(ge=0)
    # sign is checked by the pricing rules so a negative margin gets its own error
    margin_percentage: float = 0
    gst_percentage: float = Field(default=18, ge=0)
    product_base_price: float = Field(default=0, ge=0)


class ProjectCostRequest(BaseModel):
    washrooms: list[Washroom] = []
    execution_cost_overrides: dict[str, Union[float, str, None]] = {}
    original_estimate: float = Field(default=0, ge=0)
    cost_items: list[CostItem] = []
    internal_pricing: bool = False
    margins: dict[str, float] = {}
    gst_rate: Optional[float] = Field(default=None, ge=0)


class QuotationRequest(ProjectCostRequest):
    project: ProjectInfo
    terms: str = ""


# ---------- WIRING ----------

@lru_cache
def get_settings_provider() -> CachedSettingsProvider:
    cfg = get_config()
    return CachedSettingsProvider(JsonSettingsProvider(cfg.data_dir / "settings.json"),
                                  ttl=cfg.settings_cache_ttl)


def get_catalog() -> JsonCatalogProvider:
    return JsonCatalogProvider(get_config().data_dir / "catalog.json")


def get_orchestrator(settings: CachedSettingsProvider = Depends(get_settings_provider),
                     catalog: JsonCatalogProvider = Depends(get_catalog)) -> EstimateOrchestrator:
    cfg = get_config()
    try:
        fixture_map = load_fixture_map(cfg.data_dir / "fixture_map.json")
    except EstimatorError as e:
        raise _http_error(e)
    return EstimateOrchestrator(
        settings, catalog, JsonEstimateStore(cfg.history_dir), fixture_map,
        mandatory_fixture_ids=cfg.mandatory_fixture_ids,
        tile_coverage=cfg.tile_coverage_sqft,
    )


def get_costing_service(catalog: JsonCatalogProvider = Depends(get_catalog)) -> ProjectCostingService:
    cfg = get_config()
    return ProjectCostingService(
        JsonRateCardProvider(cfg.data_dir / "rate_card.json"), catalog,
        logistics_percentage=cfg.logistics_percentage,
        default_gst_rate=cfg.gst_rate,
    )


def get_quotation_service() -> QuotationService:
    return QuotationService(JsonQuotationStore(get_config().quotations_dir))


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, (SettingsUnavailable, CatalogUnavailable)):
        return HTTPException(status_code=503, detail={"code": e.code, "message": str(e)})
    if isinstance(e, PersistenceFailure):
        return HTTPException(status_code=500, detail={"code": e.code, "message": str(e)})
    return HTTPException(status_code=500, detail=str(e))


# ---------- ENDPOINTS ----------

@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/estimate/calculate", response_model=EstimateResult)
async def calculate_estimate(
    state: CalculatorState = Body(...),
    orchestrator: EstimateOrchestrator = Depends(get_orchestrator),
) -> EstimateResult:
    try:
        return await orchestrator.calculate_estimate(state)
    except (ValueError, EstimatorError) as e:
        raise _http_error(e)


@app.post("/estimate", response_model=EstimateOutcome)
async def estimate(
    state: CalculatorState = Body(...),
    orchestrator: EstimateOrchestrator = Depends(get_orchestrator),
) -> EstimateOutcome:
    """
    Calculate and save. A failed save still returns the estimate,
    with saved=false and error_code=DATABASE_ERROR.
    """
    try:
        return await orchestrator.calculate_and_save(state)
    except (ValueError, EstimatorError) as e:
        raise _http_error(e)


@app.post("/pricing/internal", response_model=InternalPricingBreakdown)
def internal_pricing(req: InternalPricingRequest = Body(...)) -> InternalPricingBreakdown:
    try:
        return apply_margin_and_gst(req.base_price, req.margin_percentage, req.gst_percentage,
                                    product_base_price=req.product_base_price)
    except ValueError as e:
        raise _http_error(e)


async def _project_costs(project_id: str, req: ProjectCostRequest,
                         service: ProjectCostingService) -> ProjectCostSummary:
    return await service.calculate_project_costs(
        project_id,
        req.washrooms,
        req.execution_cost_overrides,
        original_estimate=req.original_estimate,
        ledger=CostLedger(req.cost_items),
        internal_pricing=req.internal_pricing,
        margins=req.margins,
        gst_rate=req.gst_rate,
    )


@app.post("/projects/{project_id}/costs", response_model=ProjectCostSummary)
async def project_costs(
    project_id: str,
    req: ProjectCostRequest = Body(...),
    service: ProjectCostingService = Depends(get_costing_service),
) -> ProjectCostSummary:
    try:
        return await _project_costs(project_id, req, service)
    except (ValueError, EstimatorError) as e:
        raise _http_error(e)


@app.post("/projects/{project_id}/quotations", response_model=Quotation)
async def create_quotation(
    project_id: str,
    req: QuotationRequest = Body(...),
    service: ProjectCostingService = Depends(get_costing_service),
    quotations: QuotationService = Depends(get_quotation_service),
) -> Quotation:
    project = req.project.model_copy(update={"id": project_id})
    try:
        summary = await _project_costs(project_id, req, service)
        gst = req.gst_rate if req.gst_rate is not None else service.default_gst_rate
        return await quotations.generate(project, summary, req.washrooms, terms=req.terms, gst_rate=gst)
    except (ValueError, EstimatorError) as e:
        raise _http_error(e)
