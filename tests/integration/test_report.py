"""
Integration tests for the Report module.

Tests cover:
- JSON report generation
- Console report generation
- Report content verification
"""

import json
from io import StringIO

import pytest
from rich.console import Console

from callbook.registry import ObjectRegistry
from callbook.report import build_report_dict, generate_json_report, print_sequence_report
from callbook.schema import FormatConfig
from callbook.sequence import CallSequence, ParsedText, parse_text


@pytest.fixture
def parsed(checkout_text: str, config: FormatConfig) -> ParsedText:
    """The sample text, parsed."""
    return parse_text(checkout_text, config)


def _render_console(records, test_inputs, **kwargs) -> str:
    """Print a report into a string."""
    buffer = StringIO()
    console = Console(file=buffer, width=120, force_terminal=False)
    print_sequence_report(records, test_inputs, console=console, **kwargs)
    return buffer.getvalue()


class TestJsonReport:
    """Tests for JSON report generation."""

    def test_structure(self, parsed: ParsedText) -> None:
        """The report has the documented top-level keys."""
        report = build_report_dict(parsed.records, parsed.test_inputs, "x.verified.txt")
        assert report["report_version"] == "1.0"
        assert report["source_path"] == "x.verified.txt"
        assert report["test_inputs"] == {"orderId": "42"}
        assert len(report["calls"]) == 4

    def test_call_entries(self, parsed: ParsedText) -> None:
        """Each call keeps its encoded values."""
        calls = build_report_dict(parsed.records, parsed.test_inputs)["calls"]
        charge = calls[1]
        assert charge["position"] == 2
        assert charge["method_name"] == "Charge"
        assert charge["icon"] == "🦜"
        assert charge["arguments"] == [
            {"name": "amount", "value": "19.99", "kind": "input"},
            {"name": "currency", "value": '"EUR"', "kind": "input"},
        ]
        assert charge["result"] == "True"
        assert calls[2]["void"] is True
        assert calls[3]["error"] == 'ValueError("archive offline")'

    def test_summary(self, parsed: ParsedText) -> None:
        """Summary counts outcomes and methods."""
        summary = build_report_dict(parsed.records, parsed.test_inputs)["summary"]
        assert summary["total_calls"] == 4
        assert summary["returning"] == 2
        assert summary["raising"] == 1
        assert summary["void"] == 1
        assert summary["missing_values"] == 0
        assert summary["methods"]["Charge"] == 1

    def test_generate_json_string(self, parsed: ParsedText) -> None:
        """The JSON string parses back and keeps glyphs readable."""
        text = generate_json_report(parsed.records, parsed.test_inputs)
        assert "🦜" in text
        assert json.loads(text)["summary"]["total_calls"] == 4

    def test_missing_values_counted(self, config: FormatConfig) -> None:
        """Placeholders are counted separately."""
        parsed = parse_text("🦜 GetTotal:\n  🔹 Returns:\n", config)
        summary = build_report_dict(parsed.records, parsed.test_inputs)["summary"]
        assert summary["missing_values"] == 1
        assert summary["returning"] == 0


class TestConsoleReport:
    """Tests for console report generation."""

    def test_lists_calls(self, parsed: ParsedText) -> None:
        """Every call and its outcome is printed."""
        output = _render_console(parsed.records, parsed.test_inputs, title="checkout")
        assert "checkout" in output
        assert "4 calls" in output
        for name in ("GetTotal", "Charge", "SendReceipt", "Archive"):
            assert name in output
        assert 'ValueError("archive offline")' in output
        assert "void" in output

    def test_test_inputs_section(self, parsed: ParsedText) -> None:
        """Test inputs are shown when present."""
        output = _render_console(parsed.records, parsed.test_inputs)
        assert "Test Inputs" in output
        assert "orderId" in output

    def test_empty_sequence(self) -> None:
        """An empty sequence says so."""
        output = _render_console([], {})
        assert "No calls recorded" in output

    def test_produced_records(self, registry: ObjectRegistry) -> None:
        """Produced records from a recording report the same way."""
        sequence = CallSequence(None, registry)
        sequence.record("Find", {"key": "k"}, result=[1, 2])
        output = _render_console(sequence.produced, sequence.test_inputs)
        assert "Find" in output
        assert "[1,2]" in output
