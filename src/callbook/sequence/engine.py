"""
Call sequence engine.

A CallSequence holds the calls a test is expected to make (parsed once
from verified text) and the calls it actually made. Each incoming call is
matched by method name against the record at a forward-only cursor:

    - wrong name: SequenceMismatchError, immediately
    - right name, different arguments: accepted; the difference shows up
      only when render() is compared with the verified text
    - expected record has Throws: the exception is rebuilt and raised
    - otherwise the stored result is decoded and returned

Design Principles:
    - Fail fast on order: a call out of sequence cannot return a value
    - Defer argument differences: they are the characterization output
    - Produced records are always appended before an error is raised, so
      render() shows what happened up to the failure
"""

import inspect
import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, get_type_hints

from callbook.codec.exceptions import ExceptionCodec
from callbook.codec.tokens import mask_quoted
from callbook.codec.values import ValueCodec
from callbook.errors import (
    CallbookError,
    CallsExhaustedError,
    MissingReturnValueError,
    MissingTestInputError,
    SequenceMismatchError,
    TypeConversionError,
    UnconsumedCallsError,
    UnknownObjectError,
)
from callbook.schema import (
    DEFAULT_CONFIG,
    MISSING_VALUE,
    ArgumentKind,
    CallRecord,
    FormatConfig,
    RecordedArgument,
)
from callbook.sequence.parser import parse_text
from callbook.sequence.render import render_text

if TYPE_CHECKING:
    from callbook.registry import ObjectRegistry

logger = logging.getLogger(__name__)

_UNKNOWN_TOKEN = re.compile(r"<unknown(?::([^>]*))?>")


class _NoResult:
    """Marker for record() calls that returned nothing."""

    def __repr__(self) -> str:
        return "NO_RESULT"


NO_RESULT: Any = _NoResult()


def _reject_unknown(text: str, where: str) -> None:
    match = _UNKNOWN_TOKEN.search(mask_quoted(text))
    if match:
        raise UnknownObjectError(
            text=text,
            target_type=where,
            type_name=match.group(1) or "",
        )


class CallSequence:
    """
    Expected and produced calls for one test case.

    Usage:
        registry = ObjectRegistry()
        sequence = CallSequence(verified_text, registry, source_path=path)

        total = sequence.match_next("GetTotal", {"orderId": 42}, Decimal)
        ...
        sequence.verify_all_expected_consumed()
        received = sequence.render()

    Attributes:
        config: Glyphs and formats of the text form
        codec: Value codec shared by replay and recording
        exception_codec: Codec for Throws descriptors
    """

    def __init__(
        self,
        text: str | None = None,
        registry: "ObjectRegistry | None" = None,
        *,
        source_path: str | Path | None = None,
        config: FormatConfig | None = None,
        exception_types: Iterable[type[BaseException]] = (),
    ) -> None:
        """
        Parse the expected text and start with an empty produced list.

        Args:
            text: Verified text; None or empty means no expected calls
            registry: Registry used to resolve and name object references
            source_path: Where the text came from, shown in diagnostics
            config: Format configuration (defaults apply when omitted)
            exception_types: Exception classes that Throws lines may name

        Raises:
            UnknownObjectError: If the text contains an <unknown> token
            MalformedGrammarError: If a parameter line cannot be read
        """
        self.config = config or DEFAULT_CONFIG
        self.codec = ValueCodec(self.config.datetime_format)
        self.exception_codec = ExceptionCodec(self.codec, exception_types)
        self._registry = registry
        self._source_path = str(source_path) if source_path is not None else None

        parsed = parse_text(text or "", self.config)
        for name, value in parsed.test_inputs.items():
            _reject_unknown(value, f"test input {name}")
        for record in parsed.records:
            for argument in record.arguments:
                _reject_unknown(argument.value, f"{record.method_name}.{argument.name}")
            if record.result is not None:
                _reject_unknown(record.result, f"{record.method_name} result")
            if record.error is not None:
                _reject_unknown(record.error, f"{record.method_name} error")

        self._expected: tuple[CallRecord, ...] = tuple(parsed.records)
        self._test_inputs: dict[str, str] = dict(parsed.test_inputs)
        self._produced: list[CallRecord] = []
        self._cursor = 0

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def expected(self) -> tuple[CallRecord, ...]:
        """Expected records in order."""
        return self._expected

    @property
    def produced(self) -> tuple[CallRecord, ...]:
        """Records produced so far."""
        return tuple(self._produced)

    @property
    def cursor(self) -> int:
        """Index of the next expected record."""
        return self._cursor

    @property
    def remaining(self) -> tuple[CallRecord, ...]:
        """Expected records not consumed yet."""
        return self._expected[self._cursor:]

    @property
    def test_inputs(self) -> dict[str, str]:
        """Encoded test inputs by name."""
        return dict(self._test_inputs)

    @property
    def source_path(self) -> str | None:
        """Path of the verified text, if known."""
        return self._source_path

    @property
    def registry(self) -> "ObjectRegistry | None":
        """Registry used for object references."""
        return self._registry

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    def match_next(
        self,
        method_name: str,
        arguments: Mapping[str, Any] | Sequence[Any] = (),
        return_type: Any = None,
        *,
        icon: str | None = None,
    ) -> Any:
        """
        Match an incoming call and replay its recorded outcome.

        Args:
            method_name: Name of the called method
            arguments: Actual arguments, by name or by position
            return_type: Type the caller expects back; None for a void call
            icon: Header glyph for the produced record

        Returns:
            The decoded return value, or None for a void call

        Raises:
            SequenceMismatchError: If a different method was expected here
            CallsExhaustedError: If a value is needed after the last call
            MissingReturnValueError: If the record has no result to return
            TypeConversionError: If the stored result does not fit return_type
            Exception: The recorded exception, when the record has Throws
        """
        encoded = self._encode_arguments(arguments)
        position = self._cursor + 1

        if self._cursor >= len(self._expected):
            if return_type is None:
                self._append(method_name, encoded, icon=icon)
                return None
            produced = self._append(method_name, encoded, result=MISSING_VALUE, icon=icon)
            raise CallsExhaustedError(
                method_name=method_name,
                position=position,
                source_path=self._source_path,
                signature=produced.signature(),
                available=[record.method_name for record in self._expected],
            )

        expected = self._expected[self._cursor]
        self._check_name(expected, method_name, encoded, position)
        self._cursor += 1
        logger.debug("Matched %s at position %d", method_name, position)

        icon = icon or expected.icon
        outputs = expected.outputs

        if expected.error is not None:
            self._append(method_name, encoded + outputs, error=expected.error, note=expected.note, icon=icon)
            raise self.exception_codec.decode(expected.error, self._registry)

        if return_type is None:
            self._append(method_name, encoded + outputs, note=expected.note, icon=icon)
            return None

        if expected.result is None or expected.result == MISSING_VALUE:
            produced = self._append(
                method_name,
                encoded + outputs,
                result=MISSING_VALUE,
                note=expected.note,
                icon=icon,
            )
            raise MissingReturnValueError(
                method_name=method_name,
                position=position,
                source_path=self._source_path,
                signature=produced.signature(),
            )

        try:
            value = self.codec.decode(expected.result, return_type, self._registry)
        except CallbookError as exc:
            self._append(method_name, encoded + outputs, result=expected.result, note=expected.note, icon=icon)
            if not isinstance(exc, TypeConversionError):
                raise
            message = f"Failed to parse return value for {method_name}: {exc.message}"
            if self._source_path:
                message += f"\nVerified file: {self._source_path}"
            raise TypeConversionError(
                message=message,
                text=exc.text,
                target_type=exc.target_type,
                reason=exc.reason,
                context={"method_name": method_name, "position": position},
            ) from exc

        self._append(
            method_name,
            encoded + outputs,
            result=self.codec.encode(value, self._registry),
            note=expected.note,
            icon=icon,
        )
        return value

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def record(
        self,
        method_name: str,
        arguments: Mapping[str, Any] | Sequence[Any] = (),
        *,
        result: Any = NO_RESULT,
        error: BaseException | None = None,
        outputs: Mapping[str, Any] | Sequence[Any] | None = None,
        note: str | None = None,
        icon: str | None = None,
    ) -> CallRecord:
        """
        Append a call made against a real object.

        The name is still checked against the expected record at the cursor,
        if there is one; running past the end is not an error here.

        Args:
            method_name: Name of the called method
            arguments: Actual arguments, by name or by position
            result: Returned value; leave unset for a void call
            error: Exception the call raised
            outputs: Output parameter values
            note: Free-text note
            icon: Header glyph for the produced record

        Returns:
            The produced record
        """
        if error is not None and result is not NO_RESULT:
            msg = "A call cannot both return a value and raise"
            raise ValueError(msg)

        encoded = self._encode_arguments(arguments)
        if outputs is not None:
            encoded += self._encode_arguments(outputs, ArgumentKind.OUTPUT, "out")

        if self._cursor < len(self._expected):
            expected = self._expected[self._cursor]
            self._check_name(expected, method_name, encoded, self._cursor + 1)
            self._cursor += 1
            icon = icon or expected.icon

        return self._append(
            method_name,
            encoded,
            result=None if result is NO_RESULT else self.codec.encode(result, self._registry),
            error=None if error is None else self.exception_codec.encode(error, self._registry),
            note=note,
            icon=icon,
        )

    # -------------------------------------------------------------------------
    # Output and verification
    # -------------------------------------------------------------------------

    def render(self) -> str:
        """Render the test inputs and produced calls as verified text."""
        return render_text(self._produced, self._test_inputs, self.config)

    def verify_all_expected_consumed(self) -> None:
        """
        Check that every expected call was made.

        Raises:
            UnconsumedCallsError: Listing the signatures never reached
        """
        remaining = self.remaining
        if not remaining:
            return
        raise UnconsumedCallsError(
            method_name=remaining[0].method_name,
            position=self._cursor + 1,
            source_path=self._source_path,
            remaining=[record.signature() for record in remaining],
        )

    # -------------------------------------------------------------------------
    # Test inputs
    # -------------------------------------------------------------------------

    def set_test_input(self, name: str, value: Any) -> None:
        """Encode and store a test input so it renders in the preamble."""
        self._test_inputs[name] = self.codec.encode(value, self._registry)

    def resolve_test_inputs(self, func: Callable[..., Any]) -> dict[str, Any]:
        """
        Decode preamble values for each parameter of ``func``.

        Parameters without a preamble value take their declared default,
        which is then recorded for rendering.

        Returns:
            Keyword arguments for calling ``func``

        Raises:
            MissingTestInputError: If a parameter has neither a value nor a default
        """
        hints = get_type_hints(func)
        values: dict[str, Any] = {}
        for name, param in inspect.signature(func).parameters.items():
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            if name in self._test_inputs:
                values[name] = self.codec.decode(self._test_inputs[name], hints.get(name, Any), self._registry)
            elif param.default is not inspect.Parameter.empty:
                values[name] = param.default
                self.set_test_input(name, param.default)
            else:
                raise MissingTestInputError(
                    method_name=getattr(func, "__name__", ""),
                    source_path=self._source_path,
                    name=name,
                )
        return values

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _encode_arguments(
        self,
        arguments: Mapping[str, Any] | Sequence[Any],
        kind: ArgumentKind = ArgumentKind.INPUT,
        prefix: str = "arg",
    ) -> tuple[RecordedArgument, ...]:
        if isinstance(arguments, Mapping):
            items = [(str(name), value) for name, value in arguments.items()]
        else:
            items = [(f"{prefix}{i}", value) for i, value in enumerate(arguments)]
        return tuple(
            RecordedArgument(name=name, value=self.codec.encode(value, self._registry), kind=kind)
            for name, value in items
        )

    def _check_name(
        self,
        expected: CallRecord,
        method_name: str,
        encoded: tuple[RecordedArgument, ...],
        position: int,
    ) -> None:
        if expected.method_name == method_name:
            return
        actual = CallRecord(method_name=method_name, arguments=encoded)
        raise SequenceMismatchError(
            method_name=method_name,
            position=position,
            source_path=self._source_path,
            expected=expected.signature(),
            actual=actual.signature(),
        )

    def _append(
        self,
        method_name: str,
        arguments: tuple[RecordedArgument, ...],
        *,
        result: str | None = None,
        error: str | None = None,
        note: str | None = None,
        icon: str | None = None,
    ) -> CallRecord:
        record = CallRecord(
            method_name=method_name,
            icon=icon,
            arguments=arguments,
            result=result,
            error=error,
            note=note,
        )
        self._produced.append(record)
        return record
