"""
Parser for the verified text form.

Reads the line-oriented text into call records. Each unindented line is a
header; indented lines belong to the header above them and start with a
glyph that says what they are:

    📋 <Test Inputs>
      🔸 orderId: 42

    🦜 Charge:
      🔸 amount: 9.99
      🔹 Returns: True

The parser only checks structure. Values stay encoded text; resolving
references is left to replay.
"""

import logging
import re
from dataclasses import dataclass, field

from callbook.errors import MalformedGrammarError
from callbook.schema import (
    MISSING_VALUE,
    ArgumentKind,
    CallRecord,
    FormatConfig,
    RecordedArgument,
)

logger = logging.getLogger(__name__)

PREAMBLE_TITLE = "<Test Inputs>"
RETURNS_LABEL = "Returns:"
THROWS_LABEL = "Throws:"

_HEADER_PATTERN = re.compile(r"^(\S+) ([A-Za-z_]\w*):$")
_CONSTRUCTOR_PATTERN = re.compile(r"^(\S+) (\S+) constructor called with:$")

# Emoji presentation selector; "♦️" and "♦" are the same glyph to a reader
_VARIATION_SELECTOR = "\ufe0f"


def normalize_glyph(glyph: str) -> str:
    """Drop variation selectors so glyphs compare as a reader sees them."""
    return glyph.replace(_VARIATION_SELECTOR, "")


@dataclass
class ParsedText:
    """
    Result of parsing a verified text.

    Attributes:
        test_inputs: Encoded preamble values by parameter name
        records: Expected calls in order
    """

    test_inputs: dict[str, str] = field(default_factory=dict)
    records: list[CallRecord] = field(default_factory=list)


@dataclass
class _RecordBuilder:
    method_name: str
    icon: str
    line_number: int
    arguments: list[RecordedArgument] = field(default_factory=list)
    result: str | None = None
    error: str | None = None
    notes: list[str] = field(default_factory=list)

    def build(self) -> CallRecord:
        return CallRecord(
            method_name=self.method_name,
            icon=self.icon,
            arguments=tuple(self.arguments),
            result=self.result,
            error=self.error,
            note="\n".join(self.notes) if self.notes else None,
        )


def _split_parameter(rest: str, line: str, line_number: int) -> tuple[str, str]:
    if ": " in rest:
        name, value = rest.split(": ", 1)
        value = value.strip()
    elif rest.endswith(":"):
        name, value = rest[:-1], ""
    else:
        raise MalformedGrammarError(
            text=line,
            target_type="parameter",
            reason="expected 'name: value'",
            line_number=line_number,
        )
    name = name.strip()
    if not name:
        raise MalformedGrammarError(
            text=line,
            target_type="parameter",
            reason="parameter name is empty",
            line_number=line_number,
        )
    return name, value or MISSING_VALUE


def _labelled_value(rest: str, label: str) -> str | None:
    if not rest.startswith(label):
        return None
    return rest[len(label):].strip()


def parse_text(text: str, config: FormatConfig) -> ParsedText:
    """
    Parse verified text into test inputs and expected call records.

    Args:
        text: The verified text
        config: Glyphs used by the text

    Returns:
        ParsedText with the preamble values and records in order

    Raises:
        MalformedGrammarError: On a parameter line without ``name: value``
    """
    parsed = ParsedText()
    input_glyph = normalize_glyph(config.input_icon)
    output_glyph = normalize_glyph(config.output_icon)
    returns_glyph = normalize_glyph(config.returns_icon)
    throws_glyph = normalize_glyph(config.throws_icon)
    note_glyph = normalize_glyph(config.note_icon)

    # Section the indented lines belong to: "preamble", "constructor", "record"
    section: str | None = None
    current: _RecordBuilder | None = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            parsed.records.append(current.build())
            current = None

    # Only "\n" ends a line; quoted values may hold U+2028, \x0c and the like
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line.rstrip()
        if not line.strip():
            continue

        if not line[0].isspace():
            flush()
            stripped = line.strip()
            if stripped.partition(" ")[2].strip() == PREAMBLE_TITLE:
                section = "preamble"
                continue
            if _CONSTRUCTOR_PATTERN.match(stripped):
                section = "constructor"
                continue
            match = _HEADER_PATTERN.match(stripped)
            if match:
                current = _RecordBuilder(
                    method_name=match.group(2),
                    icon=match.group(1),
                    line_number=line_number,
                )
                section = "record"
                continue
            logger.debug("Ignoring unrecognized line %d: %s", line_number, stripped)
            section = None
            continue

        stripped = line.strip()
        glyph, _, rest = stripped.partition(" ")
        glyph = normalize_glyph(glyph)
        rest = rest.strip()

        if section == "constructor":
            continue

        if section == "preamble":
            if glyph == input_glyph:
                name, value = _split_parameter(rest, stripped, line_number)
                parsed.test_inputs[name] = value
            else:
                logger.debug("Ignoring unrecognized preamble line %d: %s", line_number, stripped)
            continue

        if current is None:
            logger.debug("Ignoring indented line %d outside a call: %s", line_number, stripped)
            continue

        returned = _labelled_value(rest, RETURNS_LABEL) if glyph == returns_glyph else None
        thrown = _labelled_value(rest, THROWS_LABEL) if glyph == throws_glyph else None

        if glyph == input_glyph or glyph == output_glyph:
            name, value = _split_parameter(rest, stripped, line_number)
            kind = ArgumentKind.INPUT if glyph == input_glyph else ArgumentKind.OUTPUT
            current.arguments.append(RecordedArgument(name=name, value=value, kind=kind))
        elif returned is not None:
            current.result = returned or MISSING_VALUE
        elif thrown is not None:
            if not thrown:
                raise MalformedGrammarError(
                    text=stripped,
                    target_type="exception",
                    reason="Throws line has no exception descriptor",
                    line_number=line_number,
                )
            current.error = thrown
        elif glyph == note_glyph:
            current.notes.append(rest)
        else:
            logger.debug("Ignoring unrecognized line %d: %s", line_number, stripped)

    flush()
    logger.debug(
        "Parsed %d records and %d test inputs",
        len(parsed.records),
        len(parsed.test_inputs),
    )
    return parsed
