# cli/app.py
# CLI = temporary UI for the customer estimate. Can be replaced by the web API without touching core.

from __future__ import annotations

import asyncio
from typing import cast

from core import flow
from core.calculator import EstimateOrchestrator
from core.config import AppConfig, configure_logging, get_config
from core.errors import CatalogUnavailable, MissingRequiredField, SettingsUnavailable
from core.models import (
    FIXTURE_CATEGORIES,
    CalculatorState,
    CustomerDetails,
    EstimateOutcome,
    ProjectDimensions,
    ProjectType,
    Timeline,
)
from core.providers import (
    JsonCatalogProvider,
    JsonEstimateStore,
    JsonSettingsProvider,
    load_fixture_map,
)
from core.rules import compute_areas


# ---------- INPUT HELPERS ----------

def ask_float(prompt: str, *, min_value: float | None = None) -> float:
    """Keeps asking until a number is entered."""
    while True:
        raw = input(prompt).strip().replace(",", ".")
        try:
            value = float(raw)
        except ValueError:
            print("❌ Enter a number (example: 12.5)")
            continue
        if min_value is not None and value < min_value:
            print(f"❌ Value must be >= {min_value}")
            continue
        return value


def ask_float_default(prompt: str, default: float, *, min_value: float | None = None) -> float:
    """Number input with a default: Enter -> default."""
    while True:
        raw = input(f"{prompt} [{default}]: ").strip()
        if raw == "":
            value = float(default)
        else:
            raw = raw.replace(",", ".")
            try:
                value = float(raw)
            except ValueError:
                print("❌ Enter a number or press Enter")
                continue

        if min_value is not None and value < min_value:
            print(f"❌ Value must be >= {min_value}")
            continue
        return value


def ask_yes_no(prompt: str) -> bool:
    while True:
        raw = input(prompt + " (y/n): ").strip().lower()
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        print("❌ Enter y or n")


def ask_choice(prompt: str, options: list[str]) -> str:
    while True:
        raw = input(f"{prompt} ({'/'.join(options)}): ").strip().lower()
        if raw in options:
            return raw
        print(f"❌ Choose one of: {', '.join(options)}")


def ask_required(prompt: str) -> str:
    while True:
        raw = input(prompt).strip()
        if raw:
            return raw
        print("❌ This field is required")


def money(x: float) -> str:
    return f"₹{x:,.2f}"


def build_orchestrator(cfg: AppConfig) -> tuple[EstimateOrchestrator, JsonCatalogProvider]:
    catalog = JsonCatalogProvider(cfg.data_dir / "catalog.json")
    orchestrator = EstimateOrchestrator(
        JsonSettingsProvider(cfg.data_dir / "settings.json"),
        catalog,
        JsonEstimateStore(cfg.history_dir),
        load_fixture_map(cfg.data_dir / "fixture_map.json"),
        mandatory_fixture_ids=cfg.mandatory_fixture_ids,
        tile_coverage=cfg.tile_coverage_sqft,
    )
    return orchestrator, catalog


# ---------- STEPS ----------

def collect_state(brands: list[tuple[str, str]]) -> CalculatorState:
    state = flow.reset()

    project_type = ask_choice("Project type", ["new-construction", "renovation"])
    state = flow.next_step(flow.set_project_type(state, cast(ProjectType, project_type)))

    length = ask_float("Length (ft): ", min_value=0)
    width = ask_float("Width (ft): ", min_value=0)
    height = ask_float_default("Wall height (ft)", 8.0, min_value=0)
    state = flow.next_step(flow.set_dimensions(state, ProjectDimensions(length=length, width=width, height=height)))

    for category in FIXTURE_CATEGORIES:
        print(f"\n{category.title()} fixtures:")
        for name in getattr(state.fixtures, category):
            label = name.replace("_", " ")
            state = flow.set_fixture(state, category, name, ask_yes_no(f"  {label}?"))
    state = flow.next_step(state)

    timeline = ask_choice("Timeline", ["standard", "flexible"])
    state = flow.next_step(flow.set_timeline(state, cast(Timeline, timeline)))

    print("\nAvailable brands:")
    for brand_id, name in brands:
        print(f" - {brand_id}: {name}")
    brand_ids = [b for b, _ in brands]
    state = flow.next_step(flow.set_brand(state, ask_choice("Choose brand id", brand_ids)))

    details = CustomerDetails(
        name=ask_required("Your name: "),
        email=ask_required("Email: "),
        mobile=ask_required("Mobile: "),
        location=ask_required("Location: "),
    )
    return flow.set_customer_details(state, details)


def print_breakdown(state: CalculatorState, outcome: EstimateOutcome) -> None:
    result = outcome.estimate
    dims = state.dimensions
    areas = compute_areas(dims.length, dims.width, dims.height)

    print("\n--- Breakdown ---")
    print(f"Project:               {state.project_type} ({state.timeline})")
    print(f"Floor area:            {areas.floor_area:,.2f} sqft")
    print(f"Tiling area:           {areas.total_area:,.2f} sqft "
          f"({result.tiling_cost.final_tile_count} tiles incl. breakage)")
    print(f"Fixtures:              {money(result.fixture_cost)}")
    print(f"Plumbing:              {money(result.plumbing_cost)}")
    print(f"Tiling material:       {money(result.tiling_cost.material_cost)}")
    print(f"Tiling labor:          {money(result.tiling_cost.labor_cost)}")
    print(f"{'Products (' + state.selected_brand + '):':<23}{money(result.product_cost)}")
    print(f"TOTAL:                 {money(result.total)}")
    print("-----------------\n")

    if outcome.saved and outcome.record:
        print(f"✅ Saved estimate {outcome.record.id}\n")
    else:
        print(f"⚠️ Estimate not saved ({outcome.error_code}): {outcome.message}\n")


# ---------- MAIN CLI FLOW ----------

async def run(cfg: AppConfig) -> None:
    try:
        orchestrator, catalog = build_orchestrator(cfg)
        brands = [(b.id, b.name) for b in await catalog.list_brands()]
    except (SettingsUnavailable, CatalogUnavailable) as e:
        print(f"❌ Data files unavailable: {e}")
        return

    state = collect_state(brands)
    try:
        outcome = await orchestrator.calculate_and_save(state)
    except MissingRequiredField as e:
        print(f"❌ {e}")
        return
    except (SettingsUnavailable, CatalogUnavailable) as e:
        print(f"❌ Pricing is unavailable right now: {e}")
        return

    print_breakdown(flow.mark_calculated(state), outcome)


def run_cli() -> None:
    print("\n=== Washroom Estimate (CLI) ===\n")
    configure_logging("WARNING")
    asyncio.run(run(get_config()))


if __name__ == "__main__":
    run_cli()
