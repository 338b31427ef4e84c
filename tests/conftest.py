import pytest

from core.models import (
    Brand,
    CalculatorState,
    CatalogItem,
    CustomerDetails,
    FixtureSelection,
    PricingSettings,
    ProjectDimensions,
    ServiceRate,
    TilingRates,
)


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------

class FakeSettings:
    def __init__(self, settings=None, error=None):
        self.settings = settings
        self.error = error
        self.calls = 0

    async def get_settings(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.settings


class FakeCatalog:
    def __init__(self, fixtures=(), products=(), brands=(), product_error=None, fixture_error=None):
        self.fixtures = list(fixtures)
        self.products = list(products)
        self.brands = list(brands)
        self.product_error = product_error
        self.fixture_error = fixture_error

    async def get_fixtures_by_category(self, category):
        if self.fixture_error:
            raise self.fixture_error
        return [f for f in self.fixtures if f.category == category]

    async def get_products_by_brand_id(self, brand_id):
        if self.product_error:
            raise self.product_error
        return [p for p in self.products if p.brand_id == brand_id]

    async def list_brands(self):
        return self.brands


class FakeEstimateStore:
    def __init__(self, error=None):
        self.error = error
        self.saved = []

    async def save(self, record):
        if self.error:
            raise self.error
        self.saved.append(record)
        return record


class FakeRateCards:
    def __init__(self, services=None, tiling=None, error=None):
        self.services = services or {}
        self.tiling = tiling or TilingRates(per_tile_cost=80, tile_laying_cost=85)
        self.error = error

    async def get_service_rates(self):
        if self.error:
            raise self.error
        return self.services

    async def get_tiling_rates(self):
        if self.error:
            raise self.error
        return self.tiling


class FakeQuotationStore:
    def __init__(self, existing=0, error=None, taken=()):
        self.existing = existing
        self.error = error
        self.taken = set(taken)
        self.saved = []

    async def count_for_project(self, project_id):
        return self.existing

    async def save(self, quotation):
        if self.error:
            raise self.error
        if quotation.quotation_number in self.taken:
            raise FileExistsError(quotation.quotation_number)
        self.taken.add(quotation.quotation_number)
        self.saved.append(quotation)
        return quotation


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

@pytest.fixture
def pricing_settings():
    return PricingSettings(
        plumbing_rate_per_sqft=150,
        tile_cost_per_unit=80,
        tiling_labor_per_sqft=85,
        breakage_percentage=10,
    )


@pytest.fixture
def fixture_items():
    return [
        CatalogItem(id="fx-led-mirror", name="LED Mirror", category="electrical",
                    landing_price=5000, client_price=7500, quotation_price=6500),
        CatalogItem(id="fx-exhaust-fan", name="Exhaust Fan", category="electrical",
                    landing_price=1800, client_price=2500, quotation_price=2200),
        CatalogItem(id="fx-vanity", name="Vanity", category="additional",
                    landing_price=13000, client_price=18000, quotation_price=17000),
        CatalogItem(id="fx-bathtub", name="Bathtub", category="additional",
                    landing_price=35000, client_price=45000, quotation_price=42000),
        CatalogItem(id="fx-other-execution-charges", name="Other Execution Charges", category="additional",
                    landing_price=3000, client_price=5000, quotation_price=4500),
    ]


@pytest.fixture
def brand_products():
    return [
        CatalogItem(id="p-jq-wc", name="Wall Hung WC", brand_id="jaquar",
                    landing_price=15000, client_price=21000, quotation_price=19500),
        CatalogItem(id="p-jq-basin", name="Counter Top Basin", brand_id="jaquar",
                    landing_price=5000, client_price=7000, quotation_price=6500),
        CatalogItem(id="p-ko-wc", name="One Piece WC", brand_id="kohler",
                    landing_price=30000, client_price=42000, quotation_price=39000),
    ]


@pytest.fixture
def fixture_map():
    return {
        "electrical": {"led_mirror": "fx-led-mirror", "exhaust_fan": "fx-exhaust-fan"},
        "plumbing": {"complete_plumbing": "fx-complete-plumbing"},
        "additional": {"vanity": "fx-vanity", "bathtub": "fx-bathtub"},
    }


@pytest.fixture
def complete_state():
    fixtures = FixtureSelection()
    fixtures.electrical["led_mirror"] = True
    fixtures.additional["vanity"] = True
    return CalculatorState(
        project_type="renovation",
        dimensions=ProjectDimensions(length=8, width=6, height=9),
        fixtures=fixtures,
        timeline="standard",
        selected_brand="jaquar",
        customer_details=CustomerDetails(
            name="Asha Rao", email="asha@example.com", mobile="9800000000", location="Pune",
        ),
    )


@pytest.fixture
def service_rates():
    return {
        "demolition": ServiceRate(service_id="demolition", name="Demolition", unit="lumpsum", rate=12000),
        "waterproofing": ServiceRate(service_id="waterproofing", name="Waterproofing", unit="per sqft", rate=65),
        "electrical_points": ServiceRate(service_id="electrical_points", name="Electrical Points",
                                         unit="per point", rate=850),
    }


@pytest.fixture
def brands():
    return [Brand(id="jaquar", name="Jaquar"), Brand(id="kohler", name="Kohler")]
