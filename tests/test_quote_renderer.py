"""Unit tests for quote HTML rendering."""

from datetime import date

import pytest

from dtf_backend.exceptions import RenderError
from dtf_backend.models import QuoteRecord
from dtf_backend.quote_renderer import COMPANY_NAME, render_locations, render_quote_html


def make_record(**overrides) -> QuoteRecord:
    fields = {
        "id": "q1",
        "quote_name": "Order #1",
        "data": {
            "total_transfers": "24",
            "retail_unit": "$7.50",
            "retail_total": "$180.00",
            "profit_total": "$60.00",
            "markup": "50",
            "date_stamp": "01/15/2024",
        },
        "locations": [{"name": "Front", "width": 10, "height": 12, "quantity": 24}],
    }
    fields.update(overrides)
    return QuoteRecord(**fields)


class TestRenderQuoteHtml:
    def test_contains_quote_fields(self):
        html_text = render_quote_html(make_record())

        assert html_text.startswith("<!DOCTYPE html>")
        assert "DTF Quote: Order #1" in html_text
        assert "$180.00" in html_text
        assert "01/15/2024" in html_text
        assert "50%" in html_text
        assert COMPANY_NAME in html_text
        assert "1 Locations" in html_text

    def test_is_deterministic(self):
        assert render_quote_html(make_record()) == render_quote_html(make_record())

    def test_escapes_user_values(self):
        record = make_record(quote_name="<script>alert(1)</script>", locations=[{"name": "<b>Front</b>"}])

        html_text = render_quote_html(record)

        assert "<script>" not in html_text
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html_text
        assert "&lt;b&gt;Front&lt;/b&gt;" in html_text

    def test_defaults_when_data_missing(self):
        record = QuoteRecord(id="q1", quote_name="Bare")

        html_text = render_quote_html(record, today=date(2024, 2, 3))

        assert "$0.00" in html_text
        assert "02/03/2024" in html_text
        assert "No Location Data" in html_text

    def test_falls_back_to_record_totals_and_pricing(self):
        record = QuoteRecord(
            id="q1",
            quote_name="Fallback",
            total_transfers=12,
            pricing={"retail_total": "$99.00"},
        )

        html_text = render_quote_html(record, today=date(2024, 1, 1))

        assert "12 Transfers" in html_text
        assert "$99.00" in html_text

    def test_missing_name(self):
        with pytest.raises(RenderError):
            render_quote_html(QuoteRecord(id="q1"))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"data": "not a dict"},
            {"pricing": ["not", "a", "dict"]},
            {"locations": "Front"},
            {"locations": ["Front"]},
            {"quote_name": 42},
        ],
    )
    def test_malformed_fields(self, overrides):
        with pytest.raises(RenderError) as exc_info:
            render_quote_html(make_record(**overrides))
        assert exc_info.value.kind == "render_error"


class TestRenderLocations:
    def test_numbered_cards(self):
        record = make_record(locations=[{"name": "Front"}, {"w": 3, "h": 4, "qty": 2}])

        html_text = render_locations(record.location_entries())

        assert html_text.count('class="location-item"') == 2
        assert "Location 2" in html_text
        assert '<span class="location-number">2</span>' in html_text

    def test_empty(self):
        assert "No Location Data" in render_locations([])
