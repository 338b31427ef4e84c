import pytest
from pydantic import ValidationError

from core.models import CalculatorState, FixtureSelection, ServiceDetail, Washroom


class TestWashroom:
    def test_areas_from_dimensions(self):
        w = Washroom(id="w1", length=8, width=6, height=9)
        assert (w.area, w.wall_area, w.ceiling_area, w.total_area) == (48, 252, 48, 300)

    def test_areas_follow_dimension_edits(self):
        w = Washroom(id="w1", length=8, width=6)
        w.length = 10
        w.height = 9
        assert w.area == 60
        assert w.wall_area == 2 * 16 * 9
        assert w.total_area == 60 + 288

    def test_ceiling_override(self):
        w = Washroom(id="w1", length=5, width=4, ceiling_area_override=30)
        assert w.ceiling_area == 30
        assert w.total_area == 20 + 144

    def test_stored_area_in_input_is_ignored(self):
        w = Washroom.model_validate({"id": "w1", "length": 5, "width": 4, "area": 999})
        assert w.area == 20
        assert w.model_dump()["area"] == 20

    def test_selected_services(self):
        w = Washroom(id="w1", services={"demolition": True, "painting": False, "tiling": True})
        assert w.selected_services() == ["demolition", "tiling"]

    def test_invalid_assignment_rejected(self):
        w = Washroom(id="w1")
        with pytest.raises(ValidationError):
            w.ceiling_area_override = -1

    def test_service_detail_rate_must_not_be_negative(self):
        with pytest.raises(ValidationError):
            ServiceDetail(rate=-5)


class TestCalculatorState:
    def test_defaults(self):
        state = CalculatorState()
        assert state.step == 1
        assert state.project_type == "new-construction"
        assert (state.dimensions.length, state.dimensions.width, state.dimensions.height) == (8, 6, 8)
        assert state.selected_brand == ""
        assert state.fixtures.selected() == []

    def test_state_is_immutable(self):
        with pytest.raises(ValidationError):
            CalculatorState().selected_brand = "jaquar"

    def test_round_trips_through_json(self, complete_state):
        restored = CalculatorState.model_validate_json(complete_state.model_dump_json())
        assert restored == complete_state


def test_fixture_selection_order_follows_categories():
    selection = FixtureSelection()
    selection.additional["vanity"] = True
    selection.electrical["exhaust_fan"] = True
    assert selection.selected() == [("electrical", "exhaust_fan"), ("additional", "vanity")]
