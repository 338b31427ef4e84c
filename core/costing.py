# core/costing.py
# Real-project costing: washroom services, products, cost items, final amount.

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Mapping, Optional

from .errors import CatalogUnavailable, EstimatorError, SettingsUnavailable
from .fixtures import sum_quotation_prices
from .models import (
    CostCategory,
    CostItem,
    InternalPricingBreakdown,
    ProjectCostSummary,
    ServiceLine,
    ServiceRate,
    TilingRates,
    Washroom,
    WashroomCost,
)
from .pricing import DEFAULT_GST_RATE, apply_margin_and_gst, summarize_project_pricing
from .providers import CatalogProvider, RateCardProvider
from .rates import RateResolver

logger = logging.getLogger(__name__)

TILING_SERVICE_ID = "tiling"
PROJECT_MARGIN_KEY = "project"
DEFAULT_LOGISTICS_PERCENTAGE = 7.5


class CostLedger:
    """Execution, vendor and additional cost items entered by an admin."""

    def __init__(self, items: Iterable[CostItem] = ()):
        self._items: dict[str, CostItem] = {item.id: item for item in items}

    @property
    def items(self) -> list[CostItem]:
        return list(self._items.values())

    def add(self, name: str, amount: float, category: CostCategory, description: str = "") -> CostItem:
        item = CostItem(id=uuid.uuid4().hex, name=name, description=description,
                        amount=amount, category=category)
        self._items[item.id] = item
        return item

    def remove(self, item_id: str) -> CostItem:
        if item_id not in self._items:
            raise KeyError(f"Unknown cost item '{item_id}'")
        return self._items.pop(item_id)

    def by_category(self, category: CostCategory) -> list[CostItem]:
        return [i for i in self._items.values() if i.category == category]

    def total(self, category: Optional[CostCategory] = None) -> float:
        items = self._items.values() if category is None else self.by_category(category)
        return sum(i.amount for i in items)


class ProjectCostingService:
    def __init__(self,
                 rate_cards: RateCardProvider,
                 catalog: CatalogProvider,
                 *,
                 logistics_percentage: float = DEFAULT_LOGISTICS_PERCENTAGE,
                 default_gst_rate: float = DEFAULT_GST_RATE):
        self.rate_cards = rate_cards
        self.catalog = catalog
        self.logistics_percentage = logistics_percentage
        self.default_gst_rate = default_gst_rate

    async def _rate_resolver(self) -> tuple[RateResolver, TilingRates]:
        try:
            service_rates = await self.rate_cards.get_service_rates()
            tiling_rates = await self.rate_cards.get_tiling_rates()
        except SettingsUnavailable:
            raise
        except Exception as e:
            logger.error("Rate card fetch failed: %s", e, exc_info=True)
            raise SettingsUnavailable(f"Unable to fetch rates: {e}") from e

        tiling = ServiceRate(service_id=TILING_SERVICE_ID, name="Tiling", category="tiling",
                             unit="per sqft", rate=tiling_rates.combined_rate)
        return RateResolver(service_rates, fallbacks={TILING_SERVICE_ID: tiling}), tiling_rates

    def _washroom_services(self, washroom: Washroom, resolver: RateResolver,
                           overrides: Mapping[str, Any]) -> list[ServiceLine]:
        lines: list[ServiceLine] = []
        for service_id in washroom.selected_services():
            detail = washroom.service_details.get(service_id)
            override = detail.rate if detail and detail.rate is not None else overrides.get(service_id)
            area = detail.area if detail and detail.area > 0 else washroom.area
            quantity = detail.quantity if detail and detail.quantity > 0 else 1

            resolution = resolver.resolve(
                service_id, override,
                unit=detail.unit if detail else None,
                area=area, quantity=quantity,
            )
            if resolution.source == "none":
                logger.warning("No rate for service %s in washroom %s, contributing 0", service_id, washroom.id)
            card = resolver.lookup(service_id)
            lines.append(ServiceLine(washroom_id=washroom.id, service_id=service_id,
                                     name=card.name if card else service_id, resolution=resolution))
        return lines

    async def _brand_product_total(self, brand_id: Optional[str], cache: dict[str, float]) -> float:
        if not brand_id:
            return 0.0
        if brand_id not in cache:
            try:
                products = await self.catalog.get_products_by_brand_id(brand_id)
            except EstimatorError:
                raise
            except Exception as e:
                logger.error("Product fetch for brand %s failed: %s", brand_id, e, exc_info=True)
                raise CatalogUnavailable(f"Products for brand {brand_id} unavailable: {e}") from e
            cache[brand_id] = sum_quotation_prices(products)
        return cache[brand_id]

    async def calculate_project_costs(self,
                                      project_id: str,
                                      washrooms: Iterable[Washroom],
                                      execution_cost_overrides: Optional[Mapping[str, Any]] = None,
                                      *,
                                      original_estimate: float = 0,
                                      ledger: Optional[CostLedger] = None,
                                      internal_pricing: bool = False,
                                      margins: Optional[Mapping[str, float]] = None,
                                      gst_rate: Optional[float] = None) -> ProjectCostSummary:
        overrides = execution_cost_overrides or {}
        ledger = ledger or CostLedger()
        margins = margins or {}
        gst = self.default_gst_rate if gst_rate is None else gst_rate

        resolver, tiling_rates = await self._rate_resolver()
        brand_totals: dict[str, float] = {}

        washroom_costs: dict[str, WashroomCost] = {}
        washroom_pricing: dict[str, InternalPricingBreakdown] = {}
        tiling_cost = 0.0
        total_area = 0.0

        for washroom in washrooms:
            total_area += washroom.area
            lines = self._washroom_services(washroom, resolver, overrides)
            execution = sum(l.resolution.estimated_line_cost for l in lines)
            tiling_cost += sum(l.resolution.estimated_line_cost for l in lines
                               if l.service_id == TILING_SERVICE_ID)

            brand_total = await self._brand_product_total(washroom.selected_brand, brand_totals)
            fixtures_total = sum(f.unit_price * f.quantity for f in washroom.fixtures.values())
            logistics = brand_total * self.logistics_percentage / 100.0
            products = brand_total + fixtures_total + logistics

            washroom_costs[washroom.id] = WashroomCost(
                execution_services=execution,
                product_costs=products,
                logistics_cost=logistics,
                total_cost=execution + products,
                service_lines=lines,
            )
            if internal_pricing:
                washroom_pricing[washroom.id] = apply_margin_and_gst(
                    execution, margins.get(washroom.id, 0), gst, product_base_price=products,
                )

        execution_services_total = sum(c.execution_services for c in washroom_costs.values())
        execution_total = execution_services_total + ledger.total("execution")
        vendor_total = ledger.total("vendor")
        additional_total = ledger.total("additional")

        summary = ProjectCostSummary(
            project_id=project_id,
            execution_services_total=execution_services_total,
            product_costs_total=sum(c.product_costs for c in washroom_costs.values()),
            logistics_total=sum(c.logistics_cost for c in washroom_costs.values()),
            tiling_cost=tiling_cost,
            combined_tiling_rate=tiling_rates.combined_rate,
            total_area=total_area,
            washroom_costs=washroom_costs,
            execution_total=execution_total,
            vendor_total=vendor_total,
            additional_total=additional_total,
            original_estimate=original_estimate,
        )

        if internal_pricing:
            ledger_pricing = None
            if ledger.total() > 0:
                ledger_pricing = apply_margin_and_gst(ledger.total(), margins.get(PROJECT_MARGIN_KEY, 0), gst)
            pricing = summarize_project_pricing(washroom_pricing, ledger_pricing)
            summary.internal_pricing = pricing
            summary.final_quotation_amount = pricing.grand_total
        else:
            summary.final_quotation_amount = original_estimate + execution_total + vendor_total + additional_total

        logger.info("Project %s: final quotation amount %.2f (internal pricing: %s)",
                    project_id, summary.final_quotation_amount, internal_pricing)
        return summary
