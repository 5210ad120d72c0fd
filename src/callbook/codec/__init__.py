"""
Codec module for callbook.

Converts between live Python values and the text fragments stored in call
records. Decoding is type-directed: the caller always says which type it
expects, because the text alone cannot tell an empty list from an empty map.

Parts:
    - ValueCodec: values, collections, maps and object references
    - ExceptionCodec: exception descriptors on Throws lines
    - tokens: quote- and bracket-aware splitting shared by both

Example:
    from callbook.codec import ValueCodec

    codec = ValueCodec()
    codec.encode([1, "two", None])            # '[1,"two",null]'
    codec.decode("[1,2,3]", list[int])        # [1, 2, 3]
"""

from callbook.codec.exceptions import ExceptionCodec, ReplayedError
from callbook.codec.tokens import split_key_value, split_top_level
from callbook.codec.values import (
    DEFAULT_DATETIME_FORMAT,
    ValueCodec,
    decode_value,
    encode_string,
    encode_value,
    is_reference_value,
    type_name,
)

__all__ = [
    "DEFAULT_DATETIME_FORMAT",
    "ExceptionCodec",
    "ReplayedError",
    "ValueCodec",
    "decode_value",
    "encode_string",
    "encode_value",
    "is_reference_value",
    "split_key_value",
    "split_top_level",
    "type_name",
]
