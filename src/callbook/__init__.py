"""
callbook - Record and replay call sequences for characterization tests.

callbook captures the calls a piece of legacy code makes against its
dependencies as a readable text file, then replays that file as return
values the next time the test runs. It provides:
- A type-directed codec for values and object references
- An identity registry with queued, persistent and auto-substitute supply
- An ordered call sequence that fails fast on out-of-order calls

Example usage:
    from callbook import CallSequence, ObjectRegistry

    registry = ObjectRegistry()
    sequence = CallSequence(verified_text, registry)
    total = sequence.match_next("GetTotal", {"orderId": 42}, int)
"""

__version__ = "0.1.0"
__author__ = "callbook Contributors"

from callbook.codec import ExceptionCodec, ReplayedError, ValueCodec
from callbook.errors import CallbookError
from callbook.registry import ObjectRegistry
from callbook.schema import CallRecord, FormatConfig, load_config
from callbook.sequence import NO_RESULT, CallSequence

__all__ = [
    "__version__",
    "__author__",
    "NO_RESULT",
    "CallRecord",
    "CallSequence",
    "CallbookError",
    "ExceptionCodec",
    "FormatConfig",
    "ObjectRegistry",
    "ReplayedError",
    "ValueCodec",
    "load_config",
]
