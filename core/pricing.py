# core/pricing.py
# Internal margin and GST pricing. Never shown to clients.

from __future__ import annotations

import logging
from typing import Mapping, Optional

from .errors import InvalidMarginValue
from .models import InternalPricingBreakdown, ProjectPricingSummary

logger = logging.getLogger(__name__)

DEFAULT_GST_RATE = 18.0
HIGH_MARGIN_THRESHOLD = 100.0


def validate_margin(margin_percentage: float) -> list[str]:
    """Raise on a negative margin; return warnings for an unusually high one."""
    if margin_percentage < 0:
        raise InvalidMarginValue(margin_percentage)
    if margin_percentage > HIGH_MARGIN_THRESHOLD:
        msg = f"Margin of {margin_percentage:g}% exceeds {HIGH_MARGIN_THRESHOLD:g}%"
        logger.warning(msg)
        return [msg]
    return []


def apply_margin_and_gst(base_price: float,
                         margin_percentage: float,
                         gst_percentage: float = DEFAULT_GST_RATE,
                         *,
                         product_base_price: float = 0) -> InternalPricingBreakdown:
    """Price an execution-service base with margin then GST.

    ``product_base_price`` is brand product/fixture cost passed through at
    cost: it carries neither margin nor GST and is only added to
    ``total_with_products``.
    """
    warnings = validate_margin(margin_percentage)
    if base_price < 0:
        raise ValueError(f"Base price cannot be negative (got {base_price})")
    if product_base_price < 0:
        raise ValueError(f"Product base price cannot be negative (got {product_base_price})")
    if gst_percentage < 0:
        raise ValueError(f"GST percentage cannot be negative (got {gst_percentage})")

    margin_amount = base_price * (margin_percentage / 100.0)
    price_with_margin = base_price + margin_amount
    gst_amount = price_with_margin * (gst_percentage / 100.0)
    total_price = price_with_margin + gst_amount

    return InternalPricingBreakdown(
        execution_base_price=base_price,
        base_price=base_price,
        margin_percentage=margin_percentage,
        margin_amount=margin_amount,
        price_with_margin=price_with_margin,
        gst_percentage=gst_percentage,
        gst_amount=gst_amount,
        total_price=total_price,
        product_base_price=product_base_price,
        total_with_products=total_price + product_base_price,
        warnings=warnings,
    )


def summarize_project_pricing(washroom_pricing: Mapping[str, InternalPricingBreakdown],
                              ledger_pricing: Optional[InternalPricingBreakdown] = None) -> ProjectPricingSummary:
    parts = list(washroom_pricing.values())
    if ledger_pricing is not None:
        parts.append(ledger_pricing)

    execution_base = sum(p.execution_base_price for p in parts)
    product_base = sum(p.product_base_price for p in parts)
    total_margin = sum(p.margin_amount for p in parts)

    return ProjectPricingSummary(
        washroom_pricing=dict(washroom_pricing),
        ledger_pricing=ledger_pricing,
        execution_base_price=execution_base,
        product_base_price=product_base,
        total_base_price=execution_base + product_base,
        total_margin=total_margin,
        total_with_margin=sum(p.price_with_margin for p in parts),
        total_gst=sum(p.gst_amount for p in parts),
        grand_total=sum(p.total_with_products for p in parts),
        # margin applies to execution cost only
        average_margin=(total_margin / execution_base * 100) if execution_base > 0 else 0.0,
    )
