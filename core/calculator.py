from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable

from .errors import CatalogUnavailable, EstimatorError, PersistenceFailure, SettingsUnavailable
from .fixtures import FixtureMap, aggregate_fixture_cost, sum_client_prices
from .flow import mark_calculated, validate_for_calculation
from .models import (
    FIXTURE_CATEGORIES,
    CalculatorState,
    CatalogItem,
    EstimateOutcome,
    EstimateResult,
    PricingSettings,
    SavedEstimate,
)
from .providers import CatalogProvider, EstimateStore, SettingsProvider
from .rules import TILE_COVERAGE_SQFT, calculate_tiling_cost, compute_areas

logger = logging.getLogger(__name__)


def build_estimate(state: CalculatorState,
                   settings: PricingSettings,
                   fixtures: Iterable[CatalogItem],
                   brand_products: Iterable[CatalogItem],
                   fixture_map: FixtureMap,
                   *,
                   mandatory_fixture_ids: Iterable[str] = (),
                   tile_coverage: float = TILE_COVERAGE_SQFT) -> EstimateResult:
    """Pure estimate: fixtures + plumbing + tiling + brand products."""
    dims = state.dimensions
    areas = compute_areas(dims.length, dims.width, dims.height)

    fixture_cost = aggregate_fixture_cost(state.fixtures, fixtures, fixture_map, mandatory_fixture_ids).total
    plumbing_cost = areas.floor_area * settings.plumbing_rate_per_sqft
    tiling_cost = calculate_tiling_cost(
        areas.total_area,
        settings.tile_cost_per_unit,
        settings.tiling_labor_per_sqft,
        settings.breakage_percentage,
        tile_coverage,
    )
    product_cost = sum_client_prices(brand_products)

    return EstimateResult(
        fixture_cost=fixture_cost,
        plumbing_cost=plumbing_cost,
        tiling_cost=tiling_cost,
        product_cost=product_cost,
        total=fixture_cost + plumbing_cost + tiling_cost.total + product_cost,
    )


class EstimateOrchestrator:
    """Customer estimate: validate, fetch collaborators, calculate, persist."""

    def __init__(self,
                 settings: SettingsProvider,
                 catalog: CatalogProvider,
                 store: EstimateStore,
                 fixture_map: FixtureMap,
                 *,
                 mandatory_fixture_ids: Iterable[str] = (),
                 tile_coverage: float = TILE_COVERAGE_SQFT):
        self.settings = settings
        self.catalog = catalog
        self.store = store
        self.fixture_map = fixture_map
        self.mandatory_fixture_ids = tuple(mandatory_fixture_ids)
        self.tile_coverage = tile_coverage

    async def _fetch_settings(self) -> PricingSettings:
        try:
            return await self.settings.get_settings()
        except SettingsUnavailable:
            raise
        except Exception as e:
            logger.error("Settings fetch failed: %s", e, exc_info=True)
            raise SettingsUnavailable(f"Pricing settings unavailable: {e}") from e

    async def _fetch_fixtures(self) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        try:
            for category in FIXTURE_CATEGORIES:
                items.extend(await self.catalog.get_fixtures_by_category(category))
        except EstimatorError:
            raise
        except Exception as e:
            logger.error("Fixture catalog fetch failed: %s", e, exc_info=True)
            raise CatalogUnavailable(f"Fixture catalog unavailable: {e}") from e
        return items

    async def _fetch_brand_products(self, brand_id: str) -> list[CatalogItem]:
        try:
            return await self.catalog.get_products_by_brand_id(brand_id)
        except Exception as e:
            # brand products are catalog data: a failed read prices them at 0
            logger.warning("Could not fetch products for brand %s: %s", brand_id, e)
            return []

    async def calculate_estimate(self, state: CalculatorState) -> EstimateResult:
        validate_for_calculation(state)

        settings = await self._fetch_settings()
        fixtures = await self._fetch_fixtures()
        products = await self._fetch_brand_products(state.selected_brand)
        logger.info("Brand %s: %d products", state.selected_brand, len(products))

        result = build_estimate(
            state, settings, fixtures, products, self.fixture_map,
            mandatory_fixture_ids=self.mandatory_fixture_ids,
            tile_coverage=self.tile_coverage,
        )
        logger.info(
            "Estimate: fixtures=%.2f plumbing=%.2f tiling=%.2f products=%.2f total=%.2f",
            result.fixture_cost, result.plumbing_cost, result.tiling_cost.total,
            result.product_cost, result.total,
        )
        return result

    async def save_estimate(self, state: CalculatorState, estimate: EstimateResult) -> SavedEstimate:
        validate_for_calculation(state)
        record = SavedEstimate(
            id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc),
            state=mark_calculated(state),
            estimate=estimate,
        )
        try:
            return await self.store.save(record)
        except EstimatorError:
            raise
        except Exception as e:
            logger.error("Saving estimate failed: %s", e, exc_info=True)
            raise PersistenceFailure(f"Could not save estimate: {e}") from e

    async def calculate_and_save(self, state: CalculatorState) -> EstimateOutcome:
        estimate = await self.calculate_estimate(state)

        try:
            record = await self.save_estimate(state, estimate)
        except PersistenceFailure as e:
            logger.warning("Estimate calculated but not saved: %s", e)
            return EstimateOutcome(estimate=estimate, saved=False, error_code=e.code, message=str(e))

        return EstimateOutcome(estimate=estimate, saved=True, record=record)
