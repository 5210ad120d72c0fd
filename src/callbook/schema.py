"""
Schema definitions for callbook.

This module defines the Pydantic models used throughout callbook:
- CallRecord/RecordedArgument: one call as it appears in the text form
- FormatConfig: the glyphs and formats used to read and write that text

Design Decisions:
    - Records hold encoded text, never live values; decoding happens at
      replay time against a registry
    - Models are immutable (frozen=True) so expected records cannot drift
    - Configuration is loaded from YAML like any other callbook input
"""

from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


# Placeholder written for a result the operator has not filled in yet
MISSING_VALUE = "<missing_value>"


# =============================================================================
# Enums
# =============================================================================


class ArgumentKind(str, Enum):
    """Whether a recorded argument was passed in or written back out."""

    INPUT = "input"
    OUTPUT = "output"


# =============================================================================
# Record Models
# =============================================================================


class RecordedArgument(BaseModel):
    """
    A single named argument of a recorded call.

    Attributes:
        name: Parameter name (``arg0``, ``arg1`` ... for positional calls)
        value: Encoded value text
        kind: Input or output parameter
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Parameter name")
    value: str = Field(..., description="Encoded value text")
    kind: ArgumentKind = Field(default=ArgumentKind.INPUT, description="Argument direction")


class CallRecord(BaseModel):
    """
    One call in an expected or produced sequence.

    A record with neither ``result`` nor ``error`` is a void call.

    Attributes:
        method_name: Name of the called method
        icon: Glyph shown on the header line (None uses the configured default)
        arguments: Ordered arguments, inputs first as they were logged
        result: Encoded return value
        error: Encoded exception descriptor
        note: Free-text note attached to the call
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method_name: str = Field(..., min_length=1, description="Called method name")
    icon: str | None = Field(default=None, description="Header glyph")
    arguments: tuple[RecordedArgument, ...] = Field(
        default_factory=tuple,
        description="Ordered arguments",
    )
    result: str | None = Field(default=None, description="Encoded return value")
    error: str | None = Field(default=None, description="Encoded exception descriptor")
    note: str | None = Field(default=None, description="Free-text note")

    @field_validator("method_name")
    @classmethod
    def validate_method_name(cls, v: str) -> str:
        """Method names must be identifiers so the header line parses back."""
        if not v.isidentifier():
            msg = f"Invalid method name: {v}"
            raise ValueError(msg)
        return v

    @property
    def is_void(self) -> bool:
        """Whether the call produced no value and raised nothing."""
        return self.result is None and self.error is None

    @property
    def inputs(self) -> tuple[RecordedArgument, ...]:
        """Input arguments only."""
        return tuple(a for a in self.arguments if a.kind == ArgumentKind.INPUT)

    @property
    def outputs(self) -> tuple[RecordedArgument, ...]:
        """Output arguments only."""
        return tuple(a for a in self.arguments if a.kind == ArgumentKind.OUTPUT)

    def signature(self) -> str:
        """Render as ``Name(a: 1, b: "x")`` for diagnostics."""
        args = ", ".join(f"{a.name}: {a.value}" for a in self.inputs)
        return f"{self.method_name}({args})"


# =============================================================================
# Configuration
# =============================================================================


class FormatConfig(BaseModel):
    """
    Glyphs and formats of the text form.

    Attributes:
        header_icon: Default glyph in front of a call header
        input_icon: Glyph of an input parameter line
        output_icon: Glyph of an output parameter line
        returns_icon: Glyph of the Returns line
        throws_icon: Glyph of the Throws line
        note_icon: Glyph of a free-text note line
        preamble_icon: Glyph of the <Test Inputs> header
        datetime_format: strftime format for dates and times
        indent: Leading whitespace of lines inside a record
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    header_icon: str = Field(default="🦜", min_length=1)
    input_icon: str = Field(default="🔸", min_length=1)
    output_icon: str = Field(default="♦️", min_length=1)
    returns_icon: str = Field(default="🔹", min_length=1)
    throws_icon: str = Field(default="🔻", min_length=1)
    note_icon: str = Field(default="🗒️", min_length=1)
    preamble_icon: str = Field(default="📋", min_length=1)
    datetime_format: str = Field(default="%Y-%m-%d %H:%M:%S", min_length=1)
    indent: str = Field(default="  ", min_length=1)

    @field_validator(
        "header_icon",
        "input_icon",
        "output_icon",
        "returns_icon",
        "throws_icon",
        "note_icon",
        "preamble_icon",
    )
    @classmethod
    def validate_icon(cls, v: str) -> str:
        """Glyphs are single whitespace-free tokens."""
        if any(ch.isspace() for ch in v):
            msg = f"Glyph must not contain whitespace: {v!r}"
            raise ValueError(msg)
        return v

    @field_validator("indent")
    @classmethod
    def validate_indent(cls, v: str) -> str:
        """Indentation is whitespace only."""
        if v.strip():
            msg = "indent must contain only whitespace"
            raise ValueError(msg)
        return v


DEFAULT_CONFIG = FormatConfig()


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_config(path: Path | str) -> FormatConfig:
    """
    Load a format configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated FormatConfig object

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return FormatConfig.model_validate(data or {})


def load_config_from_string(content: str) -> FormatConfig:
    """Load a format configuration from a YAML string."""
    data = yaml.safe_load(content)
    return FormatConfig.model_validate(data or {})
