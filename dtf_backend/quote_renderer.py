"""
Rendering of quote records to printable HTML documents.

render_quote_html() is a pure function of the record (and today's date when the
record carries no date stamp). Every substituted value is HTML-escaped.
"""

import html
from datetime import date
from string import Template
from typing import Any, Dict, List, Optional

from dtf_backend.exceptions import RenderError
from dtf_backend.models import Location, QuoteRecord

COMPANY_NAME = "DTF Rush Orders"
COMPANY_TAGLINE = "Premium DTF Transfer Solutions"
COMPANY_PHONE = "(954) 404-8103"
COMPANY_EMAIL = "orders@dtfrushorders.com"

ZERO_DOLLARS = "$0.00"

LOCATION_TEMPLATE = Template(
    """
          <div class="location-item">
            <div class="location-header">
              <span class="location-number">${number}</span>
              <span>${name}</span>
            </div>
            <div class="location-specs">
              <div class="location-spec">
                <div class="location-spec-label">Width</div>
                <div class="location-spec-value">${width}&quot;</div>
              </div>
              <div class="location-spec">
                <div class="location-spec-label">Height</div>
                <div class="location-spec-value">${height}&quot;</div>
              </div>
              <div class="location-spec">
                <div class="location-spec-label">Quantity</div>
                <div class="location-spec-value">${quantity}</div>
              </div>
            </div>
          </div>"""
)

NO_LOCATIONS_HTML = """
          <div class="location-item">
            <div class="location-header">
              <span class="location-number">!</span>
              <span>No Location Data</span>
            </div>
            <div class="location-empty">Location information could not be loaded.</div>
          </div>"""

QUOTE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>DTF Quote: ${quote_name}</title>
  <style>
    @page { size: letter; margin: 0.5in; }
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body {
      font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
      font-size: 12px;
      line-height: 1.4;
      color: #333;
      background: #f5f7fb;
      padding: 24px;
    }
    .quote-container {
      max-width: 7.5in;
      margin: 24px auto;
      background: white;
      border: 1px solid #e5e7eb;
      border-radius: 10px;
      padding: 0.5in;
    }
    .quote-header {
      background: linear-gradient(135deg, #CF0F0F 0%, #8B0000 100%);
      color: white;
      padding: 1rem;
      margin-bottom: 1rem;
      border-radius: 8px;
    }
    .header-top, .header-bottom { display: flex; justify-content: space-between; align-items: center; }
    .header-bottom { font-size: 11px; opacity: 0.9; margin-top: 0.5rem; }
    .company-name { font-size: 20px; font-weight: 700; }
    .company-tagline { font-size: 11px; font-style: italic; opacity: 0.9; }
    .quote-title { font-size: 18px; font-weight: 600; text-align: right; }
    .contact-info, .quote-meta { display: flex; gap: 1rem; }
    .quote-body { display: grid; grid-template-columns: 1fr 1fr; gap: 1rem; margin-bottom: 1rem; }
    .quote-section {
      background: #f8f9fa;
      border-radius: 6px;
      padding: 0.75rem;
      border-left: 3px solid #CF0F0F;
      break-inside: avoid;
    }
    .section-title { font-size: 13px; font-weight: 700; color: #CF0F0F; margin-bottom: 0.5rem; text-transform: uppercase; }
    .data-row { display: flex; justify-content: space-between; padding: 0.3rem 0; border-bottom: 1px solid #e0e0e0; font-size: 11px; }
    .data-row:last-child { border-bottom: none; }
    .data-label { font-weight: 600; color: #666; }
    .data-value { font-weight: 700; font-family: 'Courier New', monospace; }
    .highlight-value { color: #CF0F0F; }
    .profit-value { color: #28a745; }
    .locations-section { grid-column: 1 / -1; background: #f0f8ff; border-left-color: #2196F3; }
    .locations-section .section-title { color: #2196F3; }
    .locations-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 0.5rem; }
    .location-item { background: white; padding: 0.5rem; border-radius: 4px; border: 1px solid #e0e0e0; }
    .location-header { font-weight: 700; color: #2196F3; font-size: 11px; display: flex; gap: 0.3rem; }
    .location-number { background: #2196F3; color: white; border-radius: 50%; padding: 0 5px; font-size: 8px; }
    .location-specs { display: grid; grid-template-columns: 1fr 1fr 1fr; gap: 0.3rem; font-size: 10px; }
    .location-spec { text-align: center; background: #f8f9fa; padding: 0.2rem; }
    .location-spec-label { color: #666; font-weight: 600; font-size: 8px; text-transform: uppercase; }
    .location-spec-value { font-weight: 700; }
    .location-empty { font-size: 9px; color: #666; text-align: center; padding: 0.5rem 0; }
    .pricing-summary { border: 2px solid #CF0F0F; border-radius: 8px; overflow: hidden; margin-top: 1rem; }
    .pricing-header { background: #CF0F0F; color: white; padding: 0.5rem 1rem; font-weight: 700; text-align: center; text-transform: uppercase; }
    .pricing-body { display: grid; grid-template-columns: 1fr 1fr 1fr; }
    .pricing-column { padding: 0.75rem; text-align: center; border-right: 1px solid #e0e0e0; }
    .pricing-column:last-child { border-right: none; }
    .pricing-label { font-size: 10px; color: #666; text-transform: uppercase; font-weight: 600; }
    .pricing-value { font-size: 16px; font-weight: 700; font-family: 'Courier New', monospace; }
    .quote-footer { margin-top: 1rem; padding: 0.75rem; background: #f8f9fa; border-radius: 6px; text-align: center; }
    .footer-brand { font-size: 12px; font-weight: 700; color: #CF0F0F; }
    .footer-contact { font-size: 10px; color: #666; }
    .footer-message { font-size: 9px; color: #888; font-style: italic; }
    @media print {
      body { background: white; padding: 0; -webkit-print-color-adjust: exact; print-color-adjust: exact; }
      .quote-container { border: none; padding: 0; margin: 0; }
      .quote-section, .pricing-summary { page-break-inside: avoid; }
    }
  </style>
</head>
<body>
  <div class="quote-container">
    <header class="quote-header">
      <div class="header-top">
        <div class="company-branding">
          <div class="company-name">${company_name}</div>
          <div class="company-tagline">${company_tagline}</div>
        </div>
        <div class="quote-title">${quote_name}</div>
      </div>
      <div class="header-bottom">
        <div class="contact-info">
          <span>${company_phone}</span>
          <span>${company_email}</span>
        </div>
        <div class="quote-meta">
          <span>${date_stamp}</span>
          <span>${loc_count} Locations</span>
          <span>${total_transfers} Transfers</span>
        </div>
      </div>
    </header>

    <div class="quote-body">
      <section class="quote-section locations-section">
        <h3 class="section-title">Design Locations</h3>
        <div class="locations-grid">${locations_html}
        </div>
      </section>

      <section class="quote-section">
        <h3 class="section-title">Production Costs</h3>
        <div class="data-row"><span class="data-label">Imprint Cost</span><span class="data-value">${imprint_cost}</span></div>
        <div class="data-row"><span class="data-label">Product Cost</span><span class="data-value">${product_cost_total}</span></div>
        <div class="data-row"><span class="data-label">Press Cost</span><span class="data-value">${press_cost_total}</span></div>
        <div class="data-row"><span class="data-label">Per Unit</span><span class="data-value highlight-value">${unit_cost}</span></div>
      </section>

      <section class="quote-section">
        <h3 class="section-title">Transfer Details</h3>
        <div class="data-row"><span class="data-label">Total Transfers</span><span class="data-value">${total_transfers}</span></div>
        <div class="data-row"><span class="data-label">Cost per Transfer</span><span class="data-value">${cost_per_transfer}</span></div>
        <div class="data-row"><span class="data-label">Sheet Length</span><span class="data-value">${sheet_length}</span></div>
        <div class="data-row"><span class="data-label">Sheet Quantity</span><span class="data-value">${sheet_qty}</span></div>
      </section>

      <section class="quote-section">
        <h3 class="section-title">Gang Sheet Breakdown</h3>
        <div class="data-row"><span class="data-label">Total Sheet Cost</span><span class="data-value highlight-value">${sheet_cost}</span></div>
      </section>

      <section class="quote-section">
        <h3 class="section-title">Pricing &amp; Markup</h3>
        <div class="data-row"><span class="data-label">Markup Percentage</span><span class="data-value">${markup}%</span></div>
        <div class="data-row"><span class="data-label">Retail Per Unit</span><span class="data-value">${retail_unit}</span></div>
        <div class="data-row"><span class="data-label">Total Sale Price</span><span class="data-value highlight-value">${retail_total}</span></div>
        <div class="data-row"><span class="data-label profit-value">Total Profit</span><span class="data-value profit-value">${profit_total}</span></div>
      </section>
    </div>

    <div class="pricing-summary">
      <div class="pricing-header">Quote Summary</div>
      <div class="pricing-body">
        <div class="pricing-column"><div class="pricing-label">Per Unit Price</div><div class="pricing-value">${retail_unit}</div></div>
        <div class="pricing-column"><div class="pricing-label">Quantity</div><div class="pricing-value">${total_transfers}</div></div>
        <div class="pricing-column"><div class="pricing-label">Total</div><div class="pricing-value">${retail_total}</div></div>
      </div>
    </div>

    <footer class="quote-footer">
      <div class="footer-brand">${company_name} - ${company_tagline}</div>
      <div class="footer-contact">${company_phone} &bull; ${company_email}</div>
      <div class="footer-message">Thank you for using our DTF Reseller Tool by ${company_name}! Generated on ${date_stamp}</div>
    </footer>
  </div>
</body>
</html>
"""
)


def _first(*values: Any, default: Any = "") -> Any:
    """Return the first truthy value, or ``default``."""
    for value in values:
        if value:
            return value
    return default


def _escape(value: Any) -> str:
    return html.escape(str(value))


def _check_types(record: QuoteRecord) -> None:
    if not isinstance(record.quote_name, str) or not record.quote_name:
        raise RenderError("Quote record has no quote_name", {"quote_id": record.id})
    if record.data is not None and not isinstance(record.data, dict):
        raise RenderError("Quote data must be an object", {"quote_id": record.id})
    if record.pricing is not None and not isinstance(record.pricing, dict):
        raise RenderError("Quote pricing must be an object", {"quote_id": record.id})
    if record.locations is not None:
        if not isinstance(record.locations, list) or not all(
            isinstance(loc, dict) or loc is None for loc in record.locations
        ):
            raise RenderError("Quote locations must be a list of objects", {"quote_id": record.id})


def render_locations(locations: List[Location]) -> str:
    """Render the location cards, or a placeholder card when there are none."""
    if not locations:
        return NO_LOCATIONS_HTML

    return "".join(
        LOCATION_TEMPLATE.substitute(
            number=index + 1,
            name=_escape(location.name),
            width=_escape(location.width),
            height=_escape(location.height),
            quantity=_escape(location.quantity),
        )
        for index, location in enumerate(locations)
    )


def render_quote_html(record: QuoteRecord, today: Optional[date] = None) -> str:
    """
    Render a quote as a standalone HTML document.

    Values in ``record.data`` take precedence; totals fall back to the record's
    own ``total_transfers`` and ``pricing`` fields, then to zero amounts.

    Args:
        record: Quote to render
        today: Date used when the record has no ``date_stamp`` (defaults to today)

    Returns:
        HTML document text

    Raises:
        RenderError: If the record is missing a name or has malformed fields
    """
    _check_types(record)

    data: Dict[str, Any] = record.data or {}
    pricing: Dict[str, Any] = record.pricing or {}
    locations = record.location_entries()
    date_stamp = _first(data.get("date_stamp"), default=(today or date.today()).strftime("%m/%d/%Y"))

    fields = {
        "quote_name": record.quote_name,
        "date_stamp": date_stamp,
        "loc_count": _first(data.get("loc_count"), default=len(locations)),
        "total_transfers": _first(data.get("total_transfers"), record.total_transfers, default="0"),
        "imprint_cost": _first(data.get("imprint_cost"), default=ZERO_DOLLARS),
        "product_cost_total": _first(data.get("product_cost_total"), default=ZERO_DOLLARS),
        "press_cost_total": _first(data.get("press_cost_total"), default=ZERO_DOLLARS),
        "unit_cost": _first(data.get("unit_cost"), default=ZERO_DOLLARS),
        "cost_per_transfer": _first(data.get("cost_per_transfer"), default=ZERO_DOLLARS),
        "sheet_length": _first(data.get("sheet_length"), default='0.00"'),
        "sheet_qty": _first(data.get("sheet_qty"), default="0"),
        "sheet_cost": _first(data.get("sheet_cost"), default=ZERO_DOLLARS),
        "markup": _first(data.get("markup"), default="0"),
        "retail_unit": _first(data.get("retail_unit"), pricing.get("retail_unit"), default=ZERO_DOLLARS),
        "retail_total": _first(data.get("retail_total"), pricing.get("retail_total"), default=ZERO_DOLLARS),
        "profit_total": _first(data.get("profit_total"), pricing.get("profit_total"), default=ZERO_DOLLARS),
        "company_name": COMPANY_NAME,
        "company_tagline": COMPANY_TAGLINE,
        "company_phone": COMPANY_PHONE,
        "company_email": COMPANY_EMAIL,
    }

    substitutions = {key: _escape(value) for key, value in fields.items()}
    substitutions["locations_html"] = render_locations(locations)
    return QUOTE_TEMPLATE.substitute(substitutions)
