# core/flow.py
# Customer calculator steps. Every setter returns a new state; nothing is mutated.

from __future__ import annotations

from .errors import MissingRequiredField
from .models import (
    CalculatorState,
    CalculatorStep,
    CustomerDetails,
    FixtureCategory,
    ProjectDimensions,
    ProjectType,
    Timeline,
)

FIRST_STEP = CalculatorStep.PROJECT_TYPE
LAST_STEP = CalculatorStep.CALCULATED

REQUIRED_CUSTOMER_FIELDS = ("name", "email", "mobile", "location")


def set_project_type(state: CalculatorState, project_type: ProjectType) -> CalculatorState:
    return CalculatorState.model_validate({**state.model_dump(), "project_type": project_type})


def set_dimensions(state: CalculatorState, dimensions: ProjectDimensions) -> CalculatorState:
    return state.model_copy(update={"dimensions": dimensions.model_copy()})


def set_fixture(state: CalculatorState, category: FixtureCategory, name: str, value: bool) -> CalculatorState:
    fixtures = state.fixtures.model_copy(deep=True)
    flags = getattr(fixtures, category)
    flags[name] = bool(value)
    return state.model_copy(update={"fixtures": fixtures})


def set_timeline(state: CalculatorState, timeline: Timeline) -> CalculatorState:
    return CalculatorState.model_validate({**state.model_dump(), "timeline": timeline})


def set_brand(state: CalculatorState, brand_id: str) -> CalculatorState:
    return state.model_copy(update={"selected_brand": brand_id})


def set_customer_details(state: CalculatorState, details: CustomerDetails) -> CalculatorState:
    return state.model_copy(update={"customer_details": details.model_copy()})


def go_to_step(state: CalculatorState, step: int) -> CalculatorState:
    step = min(max(int(step), FIRST_STEP), LAST_STEP)
    return state.model_copy(update={"step": CalculatorStep(step)})


def next_step(state: CalculatorState) -> CalculatorState:
    return go_to_step(state, state.step + 1)


def prev_step(state: CalculatorState) -> CalculatorState:
    return go_to_step(state, state.step - 1)


def reset() -> CalculatorState:
    return CalculatorState()


def validate_for_calculation(state: CalculatorState) -> None:
    """Raise MissingRequiredField for the first empty customer field or brand."""
    details = state.customer_details
    for field in REQUIRED_CUSTOMER_FIELDS:
        if not (getattr(details, field) or "").strip():
            raise MissingRequiredField(f"customer_details.{field}")
    if not (state.selected_brand or "").strip():
        raise MissingRequiredField("selected_brand")


def mark_calculated(state: CalculatorState) -> CalculatorState:
    return state.model_copy(update={"step": CalculatorStep.CALCULATED})
