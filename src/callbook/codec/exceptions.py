"""
Exception descriptors.

A recorded call that raised is written as a one-line descriptor on its
``Throws:`` line, and replay rebuilds an exception from it:

    ValueError("Card declined")
    ValidationError { message: "Input invalid", error_code: "E42", errors: ["a","b"] }

The simple form is used when the exception carries nothing beyond its
message. Types are looked up among the exception types the caller declares
and Python's builtin exceptions; anything else comes back as ReplayedError.
"""

import builtins
import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from callbook.codec.tokens import split_key_value, split_top_level
from callbook.codec.values import ValueCodec, encode_string
from callbook.errors import MalformedGrammarError

if TYPE_CHECKING:
    from callbook.registry import ObjectRegistry

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z_][\w.]*"
_SIMPLE_PATTERN = re.compile(rf"^({_NAME})\((.*)\)$", re.DOTALL)
_COMPLEX_PATTERN = re.compile(rf"^({_NAME})\s*\{{(.*)\}}$", re.DOTALL)
_BARE_PATTERN = re.compile(rf"^{_NAME}$")

MESSAGE_KEY = "message"


class ReplayedError(Exception):
    """
    Stand-in raised for a recorded exception whose type is not known.

    Attributes:
        original_type: Type name written in the descriptor
        attributes: Decoded attribute values from the descriptor
    """

    def __init__(
        self,
        message: str,
        original_type: str = "",
        attributes: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.original_type = original_type
        self.attributes = dict(attributes or {})


def _message_of(exc: BaseException) -> str:
    if len(exc.args) == 1 and isinstance(exc.args[0], str):
        return exc.args[0]
    return str(exc)


def _is_meaningful(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict, set, frozenset)) and not value:
        return False
    if isinstance(value, int) and not isinstance(value, bool) and value == 0:
        return False
    return True


def _meaningful_attributes(exc: BaseException) -> dict[str, Any]:
    return {
        name: value
        for name, value in vars(exc).items()
        if not name.startswith("_") and name != MESSAGE_KEY and _is_meaningful(value)
    }


class ExceptionCodec:
    """
    Encodes exceptions to descriptors and rebuilds them for replay.

    Attributes:
        value_codec: Codec used for the message and attribute values
    """

    def __init__(
        self,
        value_codec: ValueCodec | None = None,
        exception_types: Iterable[type[BaseException]] = (),
    ) -> None:
        self.value_codec = value_codec or ValueCodec()
        self._types: dict[str, type[BaseException]] = {}
        for exc_type in exception_types:
            self.register_type(exc_type)

    def register_type(self, exc_type: type[BaseException]) -> None:
        """
        Make an exception class available to decode by its name.

        Raises:
            TypeError: If ``exc_type`` is not an exception class
        """
        if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
            msg = f"Not an exception type: {exc_type!r}"
            raise TypeError(msg)
        self._types[exc_type.__name__] = exc_type

    def encode(self, exc: BaseException, registry: "ObjectRegistry | None" = None) -> str:
        """Encode an exception as a descriptor."""
        name = type(exc).__name__
        message = encode_string(_message_of(exc))
        attributes = _meaningful_attributes(exc)
        if not attributes:
            return f"{name}({message})"

        parts = [f"{MESSAGE_KEY}: {message}"]
        parts.extend(
            f"{key}: {self.value_codec.encode(value, registry)}"
            for key, value in attributes.items()
        )
        return f"{name} {{ {', '.join(parts)} }}"

    def decode(self, text: str, registry: "ObjectRegistry | None" = None) -> BaseException:
        """
        Rebuild an exception from a descriptor.

        Args:
            text: The descriptor text
            registry: Registry for ``<id:...>`` attribute values

        Returns:
            An exception instance, ready to be raised

        Raises:
            MalformedGrammarError: If the descriptor cannot be read
        """
        text = text.strip()
        if not text:
            raise MalformedGrammarError(text=text, target_type="exception", reason="empty exception descriptor")

        match = _SIMPLE_PATTERN.match(text)
        if match:
            raw_message = match.group(2).strip()
            message = self.value_codec.decode(raw_message, str, registry) if raw_message else ""
            return self._build(match.group(1), message or "", {})

        match = _COMPLEX_PATTERN.match(text)
        if match:
            attributes = self._decode_attributes(match.group(2), registry)
            message = attributes.pop(MESSAGE_KEY, "")
            return self._build(match.group(1), "" if message is None else str(message), attributes)

        if _BARE_PATTERN.match(text):
            return self._build(text, "", {})

        raise MalformedGrammarError(text=text, target_type="exception", reason="unrecognized exception descriptor")

    def _decode_attributes(self, body: str, registry: "ObjectRegistry | None") -> dict[str, Any]:
        attributes: dict[str, Any] = {}
        for entry in split_top_level(body):
            key, raw_value = split_key_value(entry)
            target = str if key == MESSAGE_KEY else Any
            attributes[key] = self.value_codec.decode(raw_value, target, registry)
        return attributes

    def _lookup(self, name: str) -> type[BaseException] | None:
        short = name.rsplit(".", 1)[-1]
        if name in self._types:
            return self._types[name]
        if short in self._types:
            return self._types[short]
        candidate = getattr(builtins, short, None)
        if isinstance(candidate, type) and issubclass(candidate, BaseException):
            return candidate
        return None

    def _build(self, name: str, message: str, attributes: dict[str, Any]) -> BaseException:
        exc_type = self._lookup(name)
        if exc_type is None:
            logger.debug("Unknown exception type %s, replaying as ReplayedError", name)
            return ReplayedError(f"[Original: {name}] {message}", original_type=name, attributes=attributes)

        try:
            exc = exc_type(message)
        except TypeError:
            # Constructors with extra required parameters
            exc = exc_type.__new__(exc_type)
            BaseException.__init__(exc, message)

        for key, value in attributes.items():
            try:
                setattr(exc, key, value)
            except AttributeError:
                logger.debug("Cannot set %s on %s, attribute is read-only", key, name)
        return exc
