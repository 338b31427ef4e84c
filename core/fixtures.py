from __future__ import annotations

import logging
from typing import Iterable, Mapping

from pydantic import BaseModel

from .models import CatalogItem, FixtureSelection

logger = logging.getLogger(__name__)

# category -> flag -> catalog item id
FixtureMap = Mapping[str, Mapping[str, str]]


class FixtureCostBreakdown(BaseModel):
    total: float = 0
    lines: dict[str, float] = {}
    missing: list[str] = []


def calculate_item_margin(landing_price: float, quotation_price: float) -> float:
    """Margin % of quotation price over landing price, 0 when landing price is not positive."""
    if landing_price <= 0:
        return 0.0
    margin = ((quotation_price - landing_price) / landing_price) * 100
    return round(margin, 2)


def sum_client_prices(items: Iterable[CatalogItem]) -> float:
    return sum(item.client_price or 0 for item in items)


def sum_quotation_prices(items: Iterable[CatalogItem]) -> float:
    return sum(item.quotation_price or 0 for item in items)


def aggregate_fixture_cost(selection: FixtureSelection,
                           catalog_items: Iterable[CatalogItem],
                           fixture_map: FixtureMap,
                           mandatory_ids: Iterable[str] = ()) -> FixtureCostBreakdown:
    """Sum client prices of the selected fixture flags.

    Flags are matched to catalog items by id through ``fixture_map``. A flag
    without a mapping, or mapped to an id the catalog does not have, adds
    nothing. ``mandatory_ids`` are charged on every estimate when present.
    """
    by_id = {item.id: item for item in catalog_items}
    lines: dict[str, float] = {}
    missing: list[str] = []

    for category, flag in selection.selected():
        key = f"{category}.{flag}"
        item_id = fixture_map.get(category, {}).get(flag)
        item = by_id.get(item_id) if item_id else None
        if item is None:
            logger.warning("No catalog item for fixture %s (mapped id: %s), contributing 0", key, item_id)
            missing.append(key)
            continue
        lines[key] = item.client_price

    for item_id in mandatory_ids:
        item = by_id.get(item_id)
        if item is None:
            logger.warning("Mandatory catalog item %s not found", item_id)
            missing.append(item_id)
            continue
        lines[item_id] = item.client_price

    total = sum(lines.values())
    logger.debug("Fixture cost %.2f from %s", total, lines)
    return FixtureCostBreakdown(total=total, lines=lines, missing=missing)
