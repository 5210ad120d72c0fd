"""
Sequence module for callbook.

Replays a verified call sequence for a test case and records what the test
actually did.

How it works:
    1. Parse the verified text into expected records (once)
    2. Match each incoming call by method name at a forward-only cursor
    3. Return or raise the recorded outcome
    4. Render the produced calls so they can be compared with the text

Example:
    from callbook.registry import ObjectRegistry
    from callbook.sequence import CallSequence

    registry = ObjectRegistry()
    sequence = CallSequence(text, registry)
    balance = sequence.match_next("GetBalance", {"account": "A1"}, Decimal)
    sequence.verify_all_expected_consumed()
    print(sequence.render())
"""

from callbook.sequence.engine import NO_RESULT, CallSequence
from callbook.sequence.parser import ParsedText, parse_text
from callbook.sequence.render import render_record, render_text

__all__ = [
    "NO_RESULT",
    "CallSequence",
    "ParsedText",
    "parse_text",
    "render_record",
    "render_text",
]
