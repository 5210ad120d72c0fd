"""
JSON report generator for callbook.

Generates structured JSON for a parsed call sequence, for tools that want
the records without parsing glyph lines themselves.

Design Principles:
    - Encoded values stay encoded: the report never decodes anything
    - Consistent schema: same keys for every call
    - ISO timestamps: standard datetime format
"""

import json
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from callbook.schema import MISSING_VALUE, CallRecord


def generate_json_report(
    records: Sequence[CallRecord],
    test_inputs: Mapping[str, str],
    source_path: str | Path | None = None,
    indent: int = 2,
) -> str:
    """
    Generate a JSON report for a call sequence.

    Args:
        records: Calls in sequence order
        test_inputs: Encoded test inputs by name
        source_path: File the records were read from, if any
        indent: JSON indentation level (default: 2)

    Returns:
        JSON string with the full report
    """
    report = build_report_dict(records, test_inputs, source_path)
    return json.dumps(report, indent=indent, ensure_ascii=False)


def build_report_dict(
    records: Sequence[CallRecord],
    test_inputs: Mapping[str, str],
    source_path: str | Path | None = None,
) -> dict[str, Any]:
    """
    Build a report dictionary for a call sequence.

    Args:
        records: Calls in sequence order
        test_inputs: Encoded test inputs by name
        source_path: File the records were read from, if any

    Returns:
        Dictionary with the full report
    """
    return {
        "report_version": "1.0",
        "generated_at": datetime.now(UTC).isoformat(),
        "source_path": str(source_path) if source_path is not None else None,
        "test_inputs": dict(test_inputs),
        "calls": [_serialize_record(position, record) for position, record in enumerate(records, start=1)],
        "summary": _build_summary(records),
    }


def _serialize_record(position: int, record: CallRecord) -> dict[str, Any]:
    """Serialize a CallRecord to dict."""
    return {
        "position": position,
        "method_name": record.method_name,
        "icon": record.icon,
        "arguments": [
            {"name": a.name, "value": a.value, "kind": a.kind.value}
            for a in record.arguments
        ],
        "result": record.result,
        "error": record.error,
        "note": record.note,
        "void": record.is_void,
    }


def _build_summary(records: Sequence[CallRecord]) -> dict[str, Any]:
    """Build summary statistics for the report."""
    methods: dict[str, int] = {}
    for record in records:
        methods[record.method_name] = methods.get(record.method_name, 0) + 1

    return {
        "total_calls": len(records),
        "returning": sum(1 for r in records if r.result is not None and r.result != MISSING_VALUE),
        "raising": sum(1 for r in records if r.error is not None),
        "void": sum(1 for r in records if r.is_void),
        "missing_values": sum(1 for r in records if r.result == MISSING_VALUE),
        "methods": methods,
    }
