# core/quotation.py
# Quotation items, numbering and HTML. Read-only over a cost summary.

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from html import escape
from typing import Any, Iterable, Optional

from .errors import EstimatorError, PersistenceFailure
from .models import (
    ProjectCostSummary,
    ProjectInfo,
    Quotation,
    QuotationData,
    QuotationItem,
    Washroom,
)
from .providers import QuotationStore

logger = logging.getLogger(__name__)

DEFAULT_TERMS = (
    "1. This quotation is valid for 30 days.\n"
    "2. 50% advance required to start work.\n"
    "3. Project timeline will be finalized upon confirmation.\n"
    "4. Material specifications as per the quotation only."
)

# list price shown next to the special price
MRP_FACTOR = 1.2


def format_inr(value: Any) -> str:
    """12345678.5 -> '1,23,45,678.50' (Indian digit grouping)."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "0"
    if not math.isfinite(amount):
        return "0"

    whole, frac = f"{abs(amount):.2f}".split(".")
    head, tail = whole[:-3], whole[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)

    text = ",".join(groups + [tail])
    if frac != "00":
        text = f"{text}.{frac}"
    return f"-{text}" if amount < 0 else text


def quotation_number(project_code: str, issued_at: datetime, sequence: int) -> str:
    return f"QUO-{project_code}-{issued_at:%Y%m%d}-{sequence}"


def build_quotation_items(summary: ProjectCostSummary,
                          project: ProjectInfo,
                          washrooms: Iterable[Washroom] = ()) -> list[QuotationItem]:
    """Client-facing lines whose amounts add up to the final quotation amount."""
    pricing = summary.internal_pricing
    if pricing is not None:
        names = {w.id: w.name for w in washrooms}
        items = [
            QuotationItem(name=names.get(wid) or wid,
                          description="Execution services and products",
                          amount=p.total_with_products, washroom_id=wid)
            for wid, p in pricing.washroom_pricing.items()
        ]
        if pricing.ledger_pricing is not None:
            items.append(QuotationItem(name="Project Execution & Materials",
                                       description="Execution, materials and additional items",
                                       amount=pricing.ledger_pricing.total_with_products))
        return items

    items = [
        QuotationItem(
            name="Project Base Estimate",
            description=f"{project.project_type} for {project.length:g} x {project.width:g} sqft",
            amount=summary.original_estimate,
        )
    ]
    execution = summary.execution_total
    if execution > 0:
        items.append(QuotationItem(name="Execution & Labor",
                                   description="Project execution and labor charges", amount=execution))
    if summary.vendor_total > 0:
        items.append(QuotationItem(name="Materials",
                                   description="Materials and vendor supplies", amount=summary.vendor_total))
    if summary.additional_total > 0:
        items.append(QuotationItem(name="Additional Items",
                                   description="Additional costs and services", amount=summary.additional_total))
    return items


def build_quotation_data(summary: ProjectCostSummary,
                         project: ProjectInfo,
                         washrooms: Iterable[Washroom] = (),
                         terms: str = "",
                         gst_rate: float = 18) -> QuotationData:
    washrooms = list(washrooms)
    pricing = summary.internal_pricing
    margins = {wid: p.margin_percentage for wid, p in pricing.washroom_pricing.items()} if pricing else {}
    return QuotationData(
        items=build_quotation_items(summary, project, washrooms),
        total_amount=summary.final_quotation_amount,
        terms=terms,
        gst_rate=gst_rate,
        margins=margins,
        internal_pricing=pricing is not None,
    )


def _item_rows(items: Iterable[QuotationItem]) -> str:
    rows = []
    for item in items:
        mrp = item.mrp if item.mrp is not None else item.amount * MRP_FACTOR
        rows.append(
            "<tr>"
            f"<td>{escape(item.name)}</td>"
            f"<td>{escape(item.description)}</td>"
            f'<td style="text-align: right;">&#8377;{format_inr(mrp)}</td>'
            f'<td style="text-align: right;">&#8377;{format_inr(item.amount)}</td>'
            "</tr>"
        )
    return "\n".join(rows)


def _washroom_card(washroom: Washroom, items: list[QuotationItem]) -> str:
    total = sum(i.amount for i in items)
    return f"""
<div class="washroom-card">
  <div class="washroom-header">
    <h4>{escape(washroom.name)}</h4>
    <span>{washroom.area:.2f} sq ft</span>
  </div>
  <div class="washroom-content">
    <div><strong>Dimensions:</strong> {washroom.length:g}' &times; {washroom.width:g}' &times; {washroom.height:g}'</div>
    <div><strong>Selected Brand:</strong> {escape(washroom.selected_brand or "Not specified")}</div>
    <table class="scope-table">
      <thead><tr><th>Service</th><th>Description</th><th>MRP</th><th>Special Price</th></tr></thead>
      <tbody>
{_item_rows(items)}
      </tbody>
    </table>
    <div class="price-box">
      <div class="price-row"><span>Total MRP:</span><span>&#8377;{format_inr(total * MRP_FACTOR)}</span></div>
      <div class="price-row"><span>Discount:</span><span>20%</span></div>
      <div class="price-row total"><span>Special Price:</span><span>&#8377;{format_inr(total)}</span></div>
    </div>
  </div>
</div>"""


def render_quotation_html(project: ProjectInfo,
                          data: QuotationData,
                          washrooms: list[Washroom],
                          number: str,
                          issued_at: datetime) -> str:
    if washrooms:
        # an item without washroom_id belongs to every washroom
        scope = "\n".join(
            _washroom_card(w, [i for i in data.items if i.washroom_id in (None, w.id)])
            for w in washrooms
        )
    else:
        scope = f'<table class="scope-table"><tbody>\n{_item_rows(data.items)}\n</tbody></table>'

    total_area = sum(w.area for w in washrooms)
    terms = escape(data.terms or DEFAULT_TERMS).replace("\n", "<br>")

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Quotation {escape(number)}</title>
</head>
<body>
<div class="container">
  <div class="header">
    <h1>Quotation</h1>
    <h2>{escape(number)}</h2>
  </div>
  <div class="info-grid">
    <div>
      <h3 class="section-title">Client Details</h3>
      <div><strong>Name:</strong> {escape(project.client_name)}</div>
      <div><strong>Mobile:</strong> {escape(project.client_mobile)}</div>
      <div><strong>Email:</strong> {escape(project.client_email)}</div>
      <div><strong>Location:</strong> {escape(project.client_location)}</div>
    </div>
    <div>
      <h3 class="section-title">Project Details</h3>
      <div><strong>Project ID:</strong> {escape(project.project_code)}</div>
      <div><strong>Project Type:</strong> {escape(project.project_type)}</div>
      <div><strong>Address:</strong> {escape(project.address)}</div>
      <div><strong>Total Area:</strong> {total_area:.2f} sq ft</div>
    </div>
  </div>
  <h3 class="section-title">Scope of Work</h3>
{scope}
  <div class="total-section">
    <span>Total Project Value:</span>
    <span>&#8377;{format_inr(data.total_amount)}</span>
  </div>
  <div class="terms-section">
    <h3 class="section-title">Terms &amp; Conditions</h3>
    <div>{terms}</div>
  </div>
  <div class="footer">
    <p>This is a computer-generated quotation and doesn't require a signature.</p>
    <p>Generated on {issued_at:%d/%m/%Y %H:%M}</p>
  </div>
</div>
</body>
</html>
"""


def generate_quotation(project: ProjectInfo,
                       data: QuotationData,
                       washrooms: Iterable[Washroom] = (),
                       *,
                       sequence: int = 1,
                       issued_at: Optional[datetime] = None,
                       summary: Optional[ProjectCostSummary] = None) -> Quotation:
    """Number and render a quotation. Pure: nothing is fetched or saved."""
    issued_at = issued_at or datetime.now(timezone.utc)
    washrooms = list(washrooms)
    number = quotation_number(project.project_code, issued_at, sequence)

    return Quotation(
        quotation_number=number,
        project_id=project.id,
        html=render_quotation_html(project, data, washrooms, number, issued_at),
        total_amount=data.total_amount,
        items=data.items,
        terms=data.terms or DEFAULT_TERMS,
        created_at=issued_at,
        internal_pricing=summary.internal_pricing if summary else None,
    )


class QuotationService:
    def __init__(self, store: QuotationStore, *, max_attempts: int = 5):
        self.store = store
        self.max_attempts = max_attempts

    async def generate(self,
                       project: ProjectInfo,
                       summary: ProjectCostSummary,
                       washrooms: Iterable[Washroom] = (),
                       *,
                       terms: str = "",
                       gst_rate: float = 18,
                       issued_at: Optional[datetime] = None) -> Quotation:
        washrooms = list(washrooms)
        data = build_quotation_data(summary, project, washrooms, terms, gst_rate)
        sequence = await self.store.count_for_project(project.id) + 1
        for _ in range(self.max_attempts):
            quotation = generate_quotation(project, data, washrooms, sequence=sequence,
                                           issued_at=issued_at, summary=summary)
            try:
                saved = await self.store.save(quotation)
                break
            except FileExistsError:
                logger.warning("Quotation number %s already taken, trying next", quotation.quotation_number)
                sequence += 1
            except EstimatorError:
                raise
            except Exception as e:
                logger.error("Quotation for project %s not saved: %s", project.id, e, exc_info=True)
                raise PersistenceFailure(f"Could not save quotation: {e}") from e
        else:
            raise PersistenceFailure(
                f"Could not save quotation: no free number after {self.max_attempts} attempts"
            )

        logger.info("Quotation %s generated for %.2f", saved.quotation_number, saved.total_amount)
        return saved
