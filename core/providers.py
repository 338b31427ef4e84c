# core/providers.py
# Collaborator interfaces and their JSON-file implementations.

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from .errors import CatalogUnavailable, SettingsUnavailable
from .models import (
    Brand,
    CatalogItem,
    PricingSettings,
    Quotation,
    SavedEstimate,
    ServiceRate,
    TilingRates,
)

logger = logging.getLogger(__name__)


# ---------- INTERFACES ----------

class SettingsProvider(Protocol):
    async def get_settings(self) -> PricingSettings: ...


class CatalogProvider(Protocol):
    async def get_fixtures_by_category(self, category: str) -> list[CatalogItem]: ...

    async def get_products_by_brand_id(self, brand_id: str) -> list[CatalogItem]: ...

    async def list_brands(self) -> list[Brand]: ...


class RateCardProvider(Protocol):
    async def get_service_rates(self) -> dict[str, ServiceRate]: ...

    async def get_tiling_rates(self) -> TilingRates: ...


class EstimateStore(Protocol):
    async def save(self, record: SavedEstimate) -> SavedEstimate: ...


class QuotationStore(Protocol):
    async def count_for_project(self, project_id: str) -> int: ...

    async def save(self, quotation: Quotation) -> Quotation: ...


# ---------- JSON FILES ----------

def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Missing data file at {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def _safe_name(text: str) -> str:
    return "".join(c if c.isalnum() or c in "-_" else "_" for c in text.strip().lower()) or "client"


class JsonSettingsProvider:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> PricingSettings:
        try:
            return PricingSettings.model_validate(_read_json(self.path))
        except (OSError, ValueError, ValidationError) as e:
            logger.error("Could not load pricing settings from %s: %s", self.path, e)
            raise SettingsUnavailable(f"Pricing settings unavailable: {e}") from e

    async def get_settings(self) -> PricingSettings:
        return await asyncio.to_thread(self._load)


class CachedSettingsProvider:
    """Keeps the last settings snapshot for ``ttl`` seconds. ``clear_cache()`` after edits."""

    def __init__(self, inner: SettingsProvider, ttl: float = 300.0):
        self.inner = inner
        self.ttl = ttl
        self._cached: Optional[PricingSettings] = None
        self._fetched_at = 0.0

    def clear_cache(self) -> None:
        self._cached = None
        self._fetched_at = 0.0
        logger.debug("Settings cache cleared")

    async def get_settings(self) -> PricingSettings:
        now = time.monotonic()
        if self._cached is not None and now - self._fetched_at < self.ttl:
            return self._cached
        settings = await self.inner.get_settings()
        self._cached, self._fetched_at = settings, now
        return settings


class JsonCatalogProvider:
    """Reads brands, fixtures and products from one catalog JSON file.

    Rows that fail validation are logged and skipped; an unreadable file
    raises CatalogUnavailable.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        try:
            raw = _read_json(self.path)
        except (OSError, ValueError) as e:
            logger.error("Could not read catalog %s: %s", self.path, e)
            raise CatalogUnavailable(f"Catalog unavailable: {e}") from e
        if not isinstance(raw, dict):
            raise CatalogUnavailable(f"Catalog {self.path} is not a JSON object")
        return raw

    def _items(self, key: str) -> list[CatalogItem]:
        items: list[CatalogItem] = []
        for index, rec in enumerate(self._load().get(key, [])):
            try:
                items.append(CatalogItem.model_validate(rec))
            except ValidationError as e:
                logger.warning("Skipping invalid %s row %d in %s: %s", key, index, self.path, e)
        return items

    async def get_fixtures_by_category(self, category: str) -> list[CatalogItem]:
        items = await asyncio.to_thread(self._items, "fixtures")
        return [i for i in items if i.category == category]

    async def get_products_by_brand_id(self, brand_id: str) -> list[CatalogItem]:
        items = await asyncio.to_thread(self._items, "products")
        return [i for i in items if i.brand_id == brand_id]

    async def list_brands(self) -> list[Brand]:
        raw = await asyncio.to_thread(self._load)
        brands: list[Brand] = []
        for rec in raw.get("brands", []):
            try:
                brands.append(Brand.model_validate(rec))
            except ValidationError as e:
                logger.warning("Skipping invalid brand row in %s: %s", self.path, e)
        return brands


class JsonRateCardProvider:
    def __init__(self, path: Path):
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        try:
            return _read_json(self.path)
        except (OSError, ValueError) as e:
            raise SettingsUnavailable(f"Rate card unavailable: {e}") from e

    async def get_service_rates(self) -> dict[str, ServiceRate]:
        raw = await asyncio.to_thread(self._load)
        rates = [ServiceRate.model_validate(rec) for rec in raw.get("services", [])]
        return {r.service_id: r for r in rates}

    async def get_tiling_rates(self) -> TilingRates:
        raw = await asyncio.to_thread(self._load)
        if "tiling" not in raw:
            raise SettingsUnavailable(f"No tiling rates in {self.path}")
        return TilingRates.model_validate(raw["tiling"])


class JsonEstimateStore:
    """One JSON file per saved estimate under ``history_dir``."""

    def __init__(self, history_dir: Path):
        self.history_dir = Path(history_dir)

    def _write(self, record: SavedEstimate) -> Path:
        self.history_dir.mkdir(parents=True, exist_ok=True)
        ts = record.created_at.strftime("%Y%m%dT%H%M%S")
        client = _safe_name(record.state.customer_details.name)
        path = self.history_dir / f"{ts}_{client}_{record.id[:8]}.json"
        path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        return path

    async def save(self, record: SavedEstimate) -> SavedEstimate:
        path = await asyncio.to_thread(self._write, record)
        logger.info("Saved estimate %s to %s", record.id, path)
        return record


class JsonQuotationStore:
    def __init__(self, root: Path):
        self.root = Path(root)

    def _project_dir(self, project_id: str) -> Path:
        return self.root / _safe_name(project_id)

    async def count_for_project(self, project_id: str) -> int:
        folder = self._project_dir(project_id)
        if not folder.exists():
            return 0
        return len(list(folder.glob("*.json")))

    def _write(self, quotation: Quotation) -> Path:
        folder = self._project_dir(quotation.project_id)
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / f"{quotation.quotation_number}.json"
        # "x" raises FileExistsError instead of replacing an issued quotation
        with open(path, "x", encoding="utf-8") as f:
            f.write(quotation.model_dump_json(indent=2))
        return path

    async def save(self, quotation: Quotation) -> Quotation:
        path = await asyncio.to_thread(self._write, quotation)
        logger.info("Saved quotation %s to %s", quotation.quotation_number, path)
        return quotation


def load_fixture_map(path: Path) -> dict[str, dict[str, str]]:
    """category -> flag -> catalog item id."""
    try:
        raw = _read_json(Path(path))
        return {category: {flag: str(item_id) for flag, item_id in flags.items()}
                for category, flags in raw.items()}
    except (OSError, ValueError, AttributeError) as e:
        logger.error("Fixture map %s unreadable: %s", path, e)
        raise SettingsUnavailable(f"Fixture map unavailable: {e}") from e
