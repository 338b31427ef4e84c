"""Quick runtime checks for the washroom estimator.
Run: python scripts/quickcheck.py
Exits with code 0 on success, non-zero on failure.
"""
from core.pricing import apply_margin_and_gst
from core.rules import calculate_tiling_cost, compute_areas


def approx(a, b, tol=1e-6):
    return abs(a - b) <= tol


def main():
    areas = compute_areas(8, 6, 9)
    assert approx(areas.floor_area, 48.0)
    assert approx(areas.wall_area, 252.0)
    assert approx(areas.total_area, 300.0)

    tiling = calculate_tiling_cost(300, tile_cost_per_unit=80, tiling_labor_per_sqft=85, breakage_percentage=10)
    assert tiling.initial_tile_count == 75
    assert tiling.final_tile_count == 83
    assert approx(tiling.material_cost, 6640.0)
    assert approx(tiling.labor_cost, 25500.0)

    pricing = apply_margin_and_gst(10000, 20, 18)
    assert approx(pricing.margin_amount, 2000.0)
    assert approx(pricing.gst_amount, 2160.0)
    assert approx(pricing.total_price, 14160.0)

    print("Quickcheck OK")


if __name__ == '__main__':
    main()
