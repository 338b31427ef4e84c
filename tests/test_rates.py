import pytest

from core.models import ServiceRate
from core.rates import RateResolver, resolve_rate, unit_basis


@pytest.mark.parametrize("unit,basis", [
    ("per sqft", "per_area"),
    ("Rs/SFT", "per_area"),
    ("sq ft", "per_area"),
    ("Square Feet", "per_area"),
    ("per point", "per_unit"),
    ("Nos", "per_unit"),
    ("each", "per_unit"),
    ("lumpsum", "fixed"),
    ("", "fixed"),
    (None, "fixed"),
])
def test_unit_basis(unit, basis):
    assert unit_basis(unit) == basis


class TestResolveRate:
    def test_override_wins(self):
        r = resolve_rate("waterproofing", 70, 65, "per sqft", area=100)
        assert r.resolved_rate == 70
        assert r.source == "override"
        assert r.estimated_line_cost == 7000

    @pytest.mark.parametrize("override", [None, "", "   "])
    def test_empty_override_falls_back_to_suggested(self, override):
        r = resolve_rate("waterproofing", override, 65, "per sqft", area=100)
        assert r.source == "suggested"
        assert r.estimated_line_cost == 6500

    def test_zero_override_is_still_an_override(self):
        r = resolve_rate("demolition", 0, 12000, "lumpsum")
        assert r.source == "override"
        assert r.estimated_line_cost == 0

    def test_string_override_is_parsed(self):
        assert resolve_rate("demolition", "9,500", 12000, "").resolved_rate == 9500

    @pytest.mark.parametrize("override", ["nan", "inf", "-inf", float("nan"), float("inf")])
    def test_non_finite_override_is_ignored(self, override):
        r = resolve_rate("plumbing", override, 150, "per sqft", area=40)
        assert r.source == "suggested"
        assert r.estimated_line_cost == 6000

    def test_non_finite_suggested_resolves_to_zero(self):
        r = resolve_rate("plumbing", None, "nan", "per sqft", area=40)
        assert (r.resolved_rate, r.source, r.estimated_line_cost) == (0, "none", 0)

    @pytest.mark.parametrize("override", [-500, "-500", "-0.5"])
    def test_negative_override_rejected(self, override):
        with pytest.raises(ValueError, match="plumbing"):
            resolve_rate("plumbing", override, 150, "per sqft", area=40)

    def test_nothing_resolves_to_zero(self):
        r = resolve_rate("unknown", None, None, "per sqft", area=50)
        assert (r.resolved_rate, r.source, r.estimated_line_cost) == (0, "none", 0)

    def test_fixed_rate_ignores_area(self):
        assert resolve_rate("demolition", None, 12000, "lumpsum", area=500).estimated_line_cost == 12000

    def test_per_unit_uses_quantity(self):
        assert resolve_rate("points", None, 850, "per point", quantity=4).estimated_line_cost == 3400


class TestRateResolver:
    def test_resolves_from_rate_card(self, service_rates):
        resolver = RateResolver(service_rates)
        r = resolver.resolve("waterproofing", area=40)
        assert r.resolved_rate == 65
        assert r.basis == "per_area"
        assert r.estimated_line_cost == 2600

    def test_explicit_unit_overrides_card_unit(self, service_rates):
        r = RateResolver(service_rates).resolve("demolition", unit="per sqft", area=10)
        assert r.estimated_line_cost == 120000

    def test_fallback_used_when_card_has_no_entry(self, service_rates):
        tiling = ServiceRate(service_id="tiling", unit="per sqft", rate=165)
        resolver = RateResolver(service_rates, fallbacks={"tiling": tiling})
        assert resolver.resolve("tiling", area=48).estimated_line_cost == 165 * 48

    def test_unknown_service(self, service_rates):
        r = RateResolver(service_rates).resolve("painting", area=10)
        assert r.source == "none"
        assert r.estimated_line_cost == 0
