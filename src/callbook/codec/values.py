"""
Type-directed value codec.

Turns Python values into the one-line text fragments used in call records
and back. The text is not self-describing (an empty map and an empty list
differ only by their brackets, and nothing says how wide an integer was),
so decoding always takes the statically known target type.

Encoding rules:
    None               -> null
    bool               -> True / False
    int, float, Decimal-> culture-invariant decimal text
    str                -> "double quoted" with backslash escapes
    datetime, date     -> yyyy-MM-dd HH:mm:ss
    list, tuple, set   -> [e1,e2,...]
    dict               -> {k1: v1, k2: v2}
    anything else      -> <id:ID> when registered, else <unknown:TypeName>

Dates and times carry no offset: an aware datetime is written as its
wall-clock time and decodes naive, so it only round-trips after
``value.replace(tzinfo=None)``.

Example:
    codec = ValueCodec()
    text = codec.encode({"a": [1, 2]})        # '{"a": [1,2]}'
    codec.decode(text, dict[str, list[int]])  # {'a': [1, 2]}
"""

import re
import types
from collections.abc import (
    Collection,
    Iterable,
    Mapping,
    MutableMapping,
    MutableSequence,
    MutableSet,
    Sequence,
)
from collections.abc import Set as AbstractSet
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin

from callbook.codec.tokens import split_key_value, split_top_level, unwrap
from callbook.errors import (
    MalformedGrammarError,
    NoRegistryError,
    TypeConversionError,
    UnknownObjectError,
)

if TYPE_CHECKING:
    from callbook.registry import ObjectRegistry


DEFAULT_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

NULL_TOKEN = "null"

ID_PATTERN = re.compile(r"^<id:(.*)>$", re.DOTALL)
UNKNOWN_PATTERN = re.compile(r"^<unknown(?::([^>]*))?>$")

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_FLOAT_PATTERN = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")
_DATETIME_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {'"': '"', "\\": "\\", "n": "\n", "r": "\r", "t": "\t"}

# Values of these types are written structurally; everything else is a reference
_VALUE_TYPES = (
    type(None),
    bool,
    int,
    float,
    Decimal,
    str,
    date,
    list,
    tuple,
    set,
    frozenset,
    Mapping,
)

_LIST_ORIGINS = (list, MutableSequence, Sequence, Iterable, Collection)
_SET_ORIGINS = (set, MutableSet, AbstractSet)
_MAP_ORIGINS = (dict, Mapping, MutableMapping)
_BARE_CONTAINERS = _LIST_ORIGINS + _SET_ORIGINS + _MAP_ORIGINS + (tuple, frozenset)


def type_name(tp: Any) -> str:
    """Readable name of a class or typing annotation."""
    if tp is Any:
        return "Any"
    if get_origin(tp) is not None:
        return repr(tp).replace("typing.", "")
    if isinstance(tp, type):
        return tp.__name__
    return repr(tp)


def is_reference_value(value: Any) -> bool:
    """Whether ``value`` is written as an object reference rather than by value."""
    return not isinstance(value, _VALUE_TYPES)


def encode_string(value: str) -> str:
    """Quote a string, escaping quotes, backslashes and line breaks."""
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in value) + '"'


def decode_string_literal(text: str) -> str:
    """
    Read a double-quoted literal that spans all of ``text``.

    Unknown escapes are kept verbatim so hand-written backslashes survive.

    Raises:
        MalformedGrammarError: If the literal is unterminated or followed
            by more text
    """
    chars: list[str] = []
    i = 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            if i + 1 >= n:
                break
            nxt = text[i + 1]
            chars.append(_UNESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        if ch == '"':
            if i != n - 1:
                raise MalformedGrammarError(
                    text=text,
                    target_type="str",
                    reason="unexpected text after closing quote",
                )
            return "".join(chars)
        chars.append(ch)
        i += 1
    raise MalformedGrammarError(text=text, target_type="str", reason="unterminated quoted string")


def _is_instance(obj: Any, tp: Any) -> bool:
    """isinstance() that understands Any, unions and parameterized generics."""
    if tp is Any or tp is object:
        return True
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return any(_is_instance(obj, member) for member in get_args(tp))
    if origin is not None:
        tp = origin
    if not isinstance(tp, type):
        return True
    try:
        return isinstance(obj, tp)
    except TypeError:
        # Protocols without @runtime_checkable cannot be checked structurally
        return True


class ValueCodec:
    """
    Bidirectional codec between Python values and encoded text.

    The codec holds no session state; references are looked up in the
    registry passed to each call.

    Attributes:
        datetime_format: strftime/strptime format for dates and times
    """

    def __init__(self, datetime_format: str = DEFAULT_DATETIME_FORMAT) -> None:
        self.datetime_format = datetime_format

    # -------------------------------------------------------------------------
    # Encoding
    # -------------------------------------------------------------------------

    def encode(self, value: Any, registry: "ObjectRegistry | None" = None) -> str:
        """
        Encode a value as text.

        Args:
            value: The value to encode
            registry: Registry used to name object references

        Returns:
            The encoded text fragment
        """
        if value is None:
            return NULL_TOKEN
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, int):
            return str(int(value))
        if isinstance(value, float):
            return repr(float(value))
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, str):
            return encode_string(value)
        if isinstance(value, datetime):
            return value.strftime(self.datetime_format)
        if isinstance(value, date):
            return datetime.combine(value, time()).strftime(self.datetime_format)
        if isinstance(value, Mapping):
            pairs = [
                f"{self.encode(k, registry)}: {self.encode(v, registry)}"
                for k, v in value.items()
            ]
            return "{" + ", ".join(pairs) + "}"
        if isinstance(value, (set, frozenset)):
            items = sorted(self.encode(item, registry) for item in value)
            return "[" + ",".join(items) + "]"
        if isinstance(value, (list, tuple)):
            return "[" + ",".join(self.encode(item, registry) for item in value) + "]"
        return self._encode_reference(value, registry)

    def _encode_reference(self, value: Any, registry: "ObjectRegistry | None") -> str:
        object_id = registry.lookup_id(value) if registry is not None else None
        if object_id is not None:
            return f"<id:{object_id}>"
        return f"<unknown:{type(value).__name__}>"

    # -------------------------------------------------------------------------
    # Decoding
    # -------------------------------------------------------------------------

    def decode(
        self,
        text: str,
        target_type: Any,
        registry: "ObjectRegistry | None" = None,
    ) -> Any:
        """
        Decode text into a value of ``target_type``.

        Args:
            text: Encoded text fragment
            target_type: Class or typing annotation the value must fit
            registry: Registry used to resolve ``<id:...>`` references

        Returns:
            The decoded value

        Raises:
            UnknownObjectError: On ``<unknown>`` or ``<unknown:T>``
            NoRegistryError: On ``<id:X>`` without a registry
            ObjectNotFoundError: On ``<id:X>`` missing from the registry
            TypeConversionError: If the text does not fit the target type
            MalformedGrammarError: If the text breaks the grammar
        """
        text = text.strip()
        if text.lower() == NULL_TOKEN:
            return None
        if text.startswith("<"):
            resolved = self._decode_reference(text, target_type, registry)
            if resolved is not _NOT_A_REFERENCE:
                return resolved
        return self._decode_typed(text, target_type, registry)

    def _decode_reference(
        self,
        text: str,
        target_type: Any,
        registry: "ObjectRegistry | None",
    ) -> Any:
        match = UNKNOWN_PATTERN.match(text)
        if match:
            raise UnknownObjectError(
                text=text,
                target_type=type_name(target_type),
                type_name=match.group(1) or "",
            )

        match = ID_PATTERN.match(text)
        if match is None:
            return _NOT_A_REFERENCE

        object_id = match.group(1).strip()
        if not object_id:
            raise MalformedGrammarError(
                text=text,
                target_type=type_name(target_type),
                reason="object id cannot be empty",
            )
        if registry is None:
            raise NoRegistryError(object_id=object_id)

        obj = registry.resolve(object_id)
        if not _is_instance(obj, target_type):
            expected = type_name(target_type)
            raise TypeConversionError(
                text=text,
                target_type=expected,
                message=(
                    f"Resolved object '{text}' of type {type(obj).__name__} "
                    f"cannot be assigned to expected type {expected}"
                ),
            )
        return obj

    def _decode_typed(self, text: str, tp: Any, registry: "ObjectRegistry | None") -> Any:
        if tp is Any or tp is object:
            return self._decode_by_format(text, registry)

        origin = get_origin(tp)
        args = get_args(tp)
        if origin is Union or origin is types.UnionType:
            return self._decode_union(text, tp, args, registry)
        if origin is None and tp in _BARE_CONTAINERS:
            origin = tp

        if origin in _LIST_ORIGINS:
            return self._decode_items(text, tp, args[0] if args else Any, registry)
        if origin is tuple:
            return self._decode_tuple(text, tp, args, registry)
        if origin in _SET_ORIGINS:
            return set(self._decode_items(text, tp, args[0] if args else Any, registry))
        if origin is frozenset:
            return frozenset(self._decode_items(text, tp, args[0] if args else Any, registry))
        if origin in _MAP_ORIGINS:
            key_type, value_type = args if len(args) == 2 else (Any, Any)
            return self._decode_map(text, tp, key_type, value_type, registry)
        if origin is not None:
            raise TypeConversionError(text=text, target_type=type_name(tp), reason="unsupported target type")

        if tp is bool:
            return self._decode_bool(text)
        if tp is int:
            if not _INT_PATTERN.match(text):
                raise TypeConversionError(text=text, target_type="int", reason="not an integer")
            return int(text)
        if tp is float:
            try:
                return float(text)
            except ValueError:
                raise TypeConversionError(text=text, target_type="float", reason="not a number") from None
        if tp is Decimal:
            try:
                return Decimal(text)
            except InvalidOperation:
                raise TypeConversionError(text=text, target_type="Decimal", reason="not a number") from None
        if tp is str:
            return decode_string_literal(text) if text.startswith('"') else text
        if isinstance(tp, type) and issubclass(tp, datetime):
            return self._decode_datetime(text, tp)
        if isinstance(tp, type) and issubclass(tp, date):
            return self._decode_datetime(text, tp).date()
        if tp is type(None):
            raise TypeConversionError(text=text, target_type="None", reason="only null fits")
        if isinstance(tp, type):
            raise TypeConversionError(
                text=text,
                target_type=type_name(tp),
                reason="expected an object reference <id:...>",
            )
        raise TypeConversionError(text=text, target_type=type_name(tp), reason="unsupported target type")

    def _decode_bool(self, text: str) -> bool:
        lowered = text.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise TypeConversionError(text=text, target_type="bool", reason="expected True or False")

    def _decode_datetime(self, text: str, tp: type) -> datetime:
        raw = text[1:-1] if len(text) >= 2 and text[0] == text[-1] == '"' else text
        try:
            return datetime.strptime(raw, self.datetime_format)
        except ValueError:
            pass
        if tp is date:
            try:
                return datetime.strptime(raw, "%Y-%m-%d")
            except ValueError:
                pass
        raise TypeConversionError(
            text=text,
            target_type=tp.__name__,
            reason=f"Expected format: {self.datetime_format}",
        )

    def _decode_union(
        self,
        text: str,
        tp: Any,
        members: tuple[Any, ...],
        registry: "ObjectRegistry | None",
    ) -> Any:
        failures: list[str] = []
        for member in members:
            if member is type(None):
                continue
            try:
                return self.decode(text, member, registry)
            except TypeConversionError as exc:
                failures.append(exc.reason or exc.message)
        raise TypeConversionError(
            text=text,
            target_type=type_name(tp),
            reason="; ".join(failures) or "no member type fits",
        )

    def _decode_items(
        self,
        text: str,
        tp: Any,
        item_type: Any,
        registry: "ObjectRegistry | None",
    ) -> list[Any]:
        inner = unwrap(text, "[", "]")
        if inner is None:
            raise TypeConversionError(text=text, target_type=type_name(tp), reason="expected a [...] collection")
        return [self.decode(part, item_type, registry) for part in split_top_level(inner)]

    def _decode_tuple(
        self,
        text: str,
        tp: Any,
        args: tuple[Any, ...],
        registry: "ObjectRegistry | None",
    ) -> tuple[Any, ...]:
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            item_type = args[0] if args else Any
            return tuple(self._decode_items(text, tp, item_type, registry))

        inner = unwrap(text, "[", "]")
        if inner is None:
            raise TypeConversionError(text=text, target_type=type_name(tp), reason="expected a [...] collection")
        parts = split_top_level(inner)
        if len(parts) != len(args):
            raise TypeConversionError(
                text=text,
                target_type=type_name(tp),
                reason=f"expected {len(args)} elements, got {len(parts)}",
            )
        return tuple(self.decode(part, arg, registry) for part, arg in zip(parts, args))

    def _decode_map(
        self,
        text: str,
        tp: Any,
        key_type: Any,
        value_type: Any,
        registry: "ObjectRegistry | None",
    ) -> dict[Any, Any]:
        inner = unwrap(text, "{", "}")
        if inner is None:
            raise TypeConversionError(text=text, target_type=type_name(tp), reason="expected a {...} map")

        result: dict[Any, Any] = {}
        for entry in split_top_level(inner):
            raw_key, raw_value = split_key_value(entry)
            key = self.decode(raw_key, key_type, registry)
            try:
                result[key] = self.decode(raw_value, value_type, registry)
            except TypeError:
                raise TypeConversionError(
                    text=entry,
                    target_type=type_name(tp),
                    reason="map key is not hashable",
                ) from None
        return result

    def _decode_by_format(self, text: str, registry: "ObjectRegistry | None") -> Any:
        """Decode for an ``Any`` target by looking at the shape of the text."""
        if text.startswith('"'):
            return decode_string_literal(text)
        lowered = text.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        if _INT_PATTERN.match(text):
            return int(text)
        if _FLOAT_PATTERN.match(text):
            return float(text)
        if _DATETIME_PATTERN.match(text):
            try:
                return datetime.strptime(text, self.datetime_format)
            except ValueError:
                return text
        if text.startswith("["):
            return self._decode_items(text, list, Any, registry)
        if text.startswith("{"):
            return self._decode_map(text, dict, Any, Any, registry)
        return text


_NOT_A_REFERENCE = object()

_default_codec = ValueCodec()


def encode_value(value: Any, registry: "ObjectRegistry | None" = None) -> str:
    """Encode with the default codec."""
    return _default_codec.encode(value, registry)


def decode_value(
    text: str,
    target_type: Any,
    registry: "ObjectRegistry | None" = None,
) -> Any:
    """Decode with the default codec."""
    return _default_codec.decode(text, target_type, registry)
