# core/rules.py
# Geometry and tiling rules for washroom estimates.

from __future__ import annotations

import math
from typing import Any, Optional

from .models import AreaBreakdown, TilingCost

# one 2x2 ft tile
TILE_COVERAGE_SQFT = 4.0


def coerce_dimension(value: Any) -> float:
    """Any value -> finite float >= 0. Junk, NaN and negatives become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def compute_areas(length: Any, width: Any, height: Any,
                  *, ceiling_area: Optional[float] = None) -> AreaBreakdown:
    """Floor, wall, ceiling and total area of a rectangular room (no openings deducted).

    Ceiling follows the floor footprint unless the caller overrides it, and is
    not part of the total: total = floor + wall.
    """
    l = coerce_dimension(length)
    w = coerce_dimension(width)
    h = coerce_dimension(height)

    floor_area = l * w
    wall_area = 2 * (l + w) * h
    ceiling = floor_area if ceiling_area is None else coerce_dimension(ceiling_area)

    return AreaBreakdown(
        floor_area=floor_area,
        wall_area=wall_area,
        ceiling_area=ceiling,
        total_area=floor_area + wall_area,
    )


def _ceil(x: float) -> int:
    # 75 * 1.1 is 82.50000000000001 in binary floating point
    return math.ceil(round(x, 9))


def tile_counts(total_tiling_area: float, breakage_percentage: float,
                tile_coverage: float = TILE_COVERAGE_SQFT) -> tuple[int, int]:
    """(initial, final) tile count. Rounded up twice: before and after breakage."""
    area = coerce_dimension(total_tiling_area)
    coverage = coerce_dimension(tile_coverage)
    if area == 0 or coverage == 0:
        return 0, 0

    initial = _ceil(area / coverage)
    multiplier = 1 + coerce_dimension(breakage_percentage) / 100.0
    return initial, _ceil(initial * multiplier)


def calculate_tiling_cost(total_tiling_area: float,
                          tile_cost_per_unit: float,
                          tiling_labor_per_sqft: float,
                          breakage_percentage: float,
                          tile_coverage: float = TILE_COVERAGE_SQFT) -> TilingCost:
    area = coerce_dimension(total_tiling_area)
    initial, final = tile_counts(area, breakage_percentage, tile_coverage)

    material_cost = final * tile_cost_per_unit
    # labor is charged on the raw area, breakage does not apply
    labor_cost = area * tiling_labor_per_sqft

    return TilingCost(
        material_cost=material_cost,
        labor_cost=labor_cost,
        total=material_cost + labor_cost,
        initial_tile_count=initial,
        final_tile_count=final,
    )
