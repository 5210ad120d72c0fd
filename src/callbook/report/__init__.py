"""
Reporting module for callbook.

Renders a parsed call sequence for review.

Output formats:
    - Console: Rich table with one row per call and its outcome
    - JSON: Structured output for programmatic consumption

Example:
    from callbook.report import generate_json_report, print_sequence_report
    from callbook.schema import DEFAULT_CONFIG
    from callbook.sequence import parse_text

    parsed = parse_text(text, DEFAULT_CONFIG)
    print_sequence_report(parsed.records, parsed.test_inputs)
    json_str = generate_json_report(parsed.records, parsed.test_inputs)
"""

from callbook.report.console import print_sequence_report
from callbook.report.json import build_report_dict, generate_json_report

__all__ = [
    "print_sequence_report",
    "generate_json_report",
    "build_report_dict",
]
