# core/rates.py
# Rate resolution for execution services: override > suggested > 0.

from __future__ import annotations

import math
from typing import Any, Mapping, Optional

from .models import RateBasis, RateResolution, ServiceRate

AREA_UNIT_TOKENS = ("sqft", "sft", "sq ft", "square")
COUNT_UNIT_TOKENS = ("nos", "no.", "pcs", "piece", "each", "unit", "point")


def unit_basis(unit: Optional[str]) -> RateBasis:
    u = (unit or "").strip().lower()
    if any(token in u for token in AREA_UNIT_TOKENS):
        return "per_area"
    if any(token in u for token in COUNT_UNIT_TOKENS):
        return "per_unit"
    return "fixed"


def _as_rate(value: Any) -> Optional[float]:
    """None for missing, blank, unparseable or non-finite input, float otherwise."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if value == "":
            return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    return rate if math.isfinite(rate) else None


def resolve_rate(service_id: str,
                 override: Any,
                 suggested: Any,
                 unit: Optional[str],
                 *,
                 area: float = 0,
                 quantity: float = 1) -> RateResolution:
    rate = _as_rate(override)
    source = "override"
    if rate is not None and rate < 0:
        raise ValueError(f"Rate override for {service_id} cannot be negative (got {rate:g})")
    if rate is None:
        rate = _as_rate(suggested)
        source = "suggested"
    if rate is None:
        rate, source = 0.0, "none"

    basis = unit_basis(unit)
    if basis == "per_area":
        line_cost = rate * area
    elif basis == "per_unit":
        line_cost = rate * quantity
    else:
        line_cost = rate

    return RateResolution(
        service_id=service_id,
        resolved_rate=rate,
        source=source,
        basis=basis,
        estimated_line_cost=line_cost,
    )


class RateResolver:
    """Resolves service rates against a loaded rate card."""

    def __init__(self, rate_card: Mapping[str, ServiceRate],
                 fallbacks: Optional[Mapping[str, ServiceRate]] = None):
        self.rate_card = dict(rate_card)
        self.fallbacks = dict(fallbacks or {})

    def lookup(self, service_id: str) -> Optional[ServiceRate]:
        return self.rate_card.get(service_id) or self.fallbacks.get(service_id)

    def resolve(self, service_id: str, override: Any = None, *,
                unit: Optional[str] = None, area: float = 0, quantity: float = 1) -> RateResolution:
        card = self.lookup(service_id)
        suggested = card.rate if card else None
        if unit is None or unit == "":
            unit = card.unit if card else ""
        return resolve_rate(service_id, override, suggested, unit, area=area, quantity=quantity)
