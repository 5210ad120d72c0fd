"""
Exception hierarchy for callbook.

All callbook exceptions inherit from CallbookError, allowing callers to catch
every library-specific failure with a single except clause.

Exception Categories:
    - Codec errors: encoded text cannot be turned back into a value
    - Registry errors: object ids cannot be resolved or supplied
    - Sequence errors: incoming calls do not follow the expected sequence

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (method, text, ids where applicable)
    - All errors provide actionable suggestions where possible
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Codec errors: 1xxx
ERROR_TYPE_CONVERSION = 1001
ERROR_MALFORMED_GRAMMAR = 1002
ERROR_UNKNOWN_OBJECT = 1003

# Registry errors: 2xxx
ERROR_OBJECT_NOT_FOUND = 2001
ERROR_NO_REGISTRY = 2002
ERROR_DUPLICATE_OBJECT_ID = 2003
ERROR_NO_SUPPLY_CHANNEL = 2004
ERROR_SUBSTITUTE_REUSED = 2005

# Sequence errors: 3xxx
ERROR_SEQUENCE_MISMATCH = 3001
ERROR_MISSING_RETURN_VALUE = 3002
ERROR_CALLS_EXHAUSTED = 3003
ERROR_UNCONSUMED_CALLS = 3004
ERROR_MISSING_TEST_INPUT = 3005


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class CallbookError(Exception):
    """
    Base exception for all callbook errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Codec Errors
# =============================================================================


@dataclass
class CodecError(CallbookError):
    """
    Base class for value encoding/decoding errors.

    Attributes:
        text: The encoded text that failed to decode
        target_type: Name of the type the text was decoded into
    """

    text: str = ""
    target_type: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context.update({
            "text": self.text,
            "target_type": self.target_type,
        })


@dataclass
class TypeConversionError(CodecError):
    """Raised when well-formed text does not fit the requested type."""

    reason: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot convert '{self.text}' to expected type {self.target_type}"
            if self.reason:
                self.message += f": {self.reason}"
        if self.code == 0:
            self.code = ERROR_TYPE_CONVERSION
        super().__post_init__()
        self.context["reason"] = self.reason


@dataclass
class MalformedGrammarError(CodecError):
    """Raised when text breaks the grammar (imbalance, missing separators)."""

    reason: str = ""
    line_number: int | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            where = f" at line {self.line_number}" if self.line_number is not None else ""
            self.message = f"Malformed text{where}: {self.reason} in '{self.text}'"
        if self.code == 0:
            self.code = ERROR_MALFORMED_GRAMMAR
        super().__post_init__()
        self.context.update({
            "reason": self.reason,
            "line_number": self.line_number,
        })


@dataclass
class UnknownObjectError(CodecError):
    """Raised when an <unknown> placeholder is read back."""

    type_name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            shown = self.type_name or "unknown type"
            self.message = f"Encountered <unknown:{shown}> object in recorded text"
        if self.code == 0:
            self.code = ERROR_UNKNOWN_OBJECT
        if not self.suggestion:
            self.suggestion = "Register the object with the ObjectRegistry before recording"
        super().__post_init__()
        self.context["type_name"] = self.type_name


# =============================================================================
# Registry Errors
# =============================================================================


@dataclass
class RegistryError(CallbookError):
    """
    Base class for object registry errors.

    Attributes:
        object_id: The identifier involved, if any
    """

    object_id: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["object_id"] = self.object_id


@dataclass
class ObjectNotFoundError(RegistryError):
    """Raised when an object id is absent from the registry."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Object with id '{self.object_id}' not found in registry"
        if self.code == 0:
            self.code = ERROR_OBJECT_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Register or supply the object before it is replayed"
        super().__post_init__()


@dataclass
class NoRegistryError(ObjectNotFoundError):
    """Raised when an object id must be resolved but no registry was given."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Cannot resolve object id '{self.object_id}': no registry provided"
        if self.code == 0:
            self.code = ERROR_NO_REGISTRY
        if not self.suggestion:
            self.suggestion = "Pass an ObjectRegistry to the codec or call sequence"
        super().__post_init__()


@dataclass
class DuplicateObjectIdError(RegistryError):
    """Raised when an explicit id is already bound to another object."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"An object with id '{self.object_id}' is already registered"
        if self.code == 0:
            self.code = ERROR_DUPLICATE_OBJECT_ID
        super().__post_init__()


@dataclass
class NoSupplyChannelError(RegistryError):
    """Raised when an abstract capability is requested without any channel."""

    capability: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No supply channel for {self.capability} and it cannot be instantiated"
        if self.code == 0:
            self.code = ERROR_NO_SUPPLY_CHANNEL
        if not self.suggestion:
            self.suggestion = "Use supply_queued, supply_persistent or supply_auto first"
        super().__post_init__()
        self.context["capability"] = self.capability


@dataclass
class SubstituteReusedError(RegistryError):
    """Raised when an auto-substitute generator hands back a known instance."""

    capability: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Substitute generator for {self.capability} returned an already "
                f"registered instance ('{self.object_id}')"
            )
        if self.code == 0:
            self.code = ERROR_SUBSTITUTE_REUSED
        super().__post_init__()
        self.context["capability"] = self.capability


# =============================================================================
# Sequence Errors
# =============================================================================


@dataclass
class SequenceError(CallbookError):
    """
    Base class for call sequence errors.

    Attributes:
        method_name: The method being called when the error happened
        position: 1-based position in the expected sequence
        source_path: Where the expected text came from, if known
    """

    method_name: str = ""
    position: int = 0
    source_path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.source_path and self.source_path not in self.message:
            self.message += f"\nVerified file: {self.source_path}"
        self.context.update({
            "method_name": self.method_name,
            "position": self.position,
            "source_path": self.source_path,
        })


@dataclass
class SequenceMismatchError(SequenceError):
    """Raised when the called method is not the one expected at the cursor."""

    expected: str = ""
    actual: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Call sequence mismatch at position {self.position}.\n"
                f"Expected: {self.expected}\n"
                f"Actual:   {self.actual}"
            )
        if self.code == 0:
            self.code = ERROR_SEQUENCE_MISMATCH
        super().__post_init__()
        self.context.update({
            "expected": self.expected,
            "actual": self.actual,
        })


@dataclass
class MissingReturnValueError(SequenceError):
    """Raised when a value is requested but the record has none."""

    signature: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"No return value recorded for call to {self.signature or self.method_name}"
        if self.code == 0:
            self.code = ERROR_MISSING_RETURN_VALUE
        if not self.suggestion:
            self.suggestion = "Fill in the Returns line in the verified text"
        super().__post_init__()
        self.context["signature"] = self.signature


@dataclass
class CallsExhaustedError(MissingReturnValueError):
    """Raised when a value is requested after every expected call was used."""

    available: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            listing = (
                f"Available calls: {', '.join(self.available)}"
                if self.available
                else "No calls found in expected text."
            )
            self.message = (
                f"No calls remain for {self.signature or self.method_name}.\n"
                f"Current position: {self.position} of {len(self.available)} expected calls.\n"
                f"{listing}"
            )
        if self.code == 0:
            self.code = ERROR_CALLS_EXHAUSTED
        super().__post_init__()
        self.context["available"] = self.available


@dataclass
class UnconsumedCallsError(SequenceError):
    """Raised when expected calls were never made."""

    remaining: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            lines = "\n".join(f"  - {sig}" for sig in self.remaining)
            self.message = f"{len(self.remaining)} expected call(s) were never made:\n{lines}"
        if self.code == 0:
            self.code = ERROR_UNCONSUMED_CALLS
        super().__post_init__()
        self.context["remaining"] = self.remaining


@dataclass
class MissingTestInputError(SequenceError):
    """Raised when a test parameter has neither a preamble value nor a default."""

    name: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Test input '{self.name}' is missing and has no default"
        if self.code == 0:
            self.code = ERROR_MISSING_TEST_INPUT
        if not self.suggestion:
            self.suggestion = "Add the parameter to the <Test Inputs> section"
        super().__post_init__()
        self.context["name"] = self.name
