"""
Top-level splitting of encoded collections and maps.

Encoded values nest: a map value may be a list of strings that themselves
contain commas, braces or colons. Splitting on the first separator is wrong
as soon as that happens, so every scan here tracks quote state (with
backslash escapes) and bracket, brace and angle-bracket depth, and only
splits where all of them are at rest.
"""

from callbook.errors import MalformedGrammarError

_OPENERS = {"[": "]", "{": "}", "<": ">"}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def _scan(text: str, separator: str) -> list[int]:
    """Return offsets of top-level separators, validating balance."""
    stack: list[str] = []
    in_quotes = False
    escape_next = False
    hits: list[int] = []

    for i, ch in enumerate(text):
        if escape_next:
            escape_next = False
            continue
        if in_quotes:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_quotes = False
            continue
        if ch == '"':
            in_quotes = True
        elif ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if not stack or stack[-1] != _CLOSERS[ch]:
                raise MalformedGrammarError(
                    text=text,
                    reason=f"unbalanced '{ch}' at offset {i}",
                )
            stack.pop()
        elif ch == separator and not stack:
            hits.append(i)

    if in_quotes:
        raise MalformedGrammarError(text=text, reason="unterminated quoted string")
    if stack:
        raise MalformedGrammarError(text=text, reason=f"unclosed '{stack[-1]}'")
    return hits


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """
    Split ``text`` on separators that sit outside quotes and brackets.

    Parts are stripped. Empty input yields an empty list.

    Raises:
        MalformedGrammarError: On unbalanced brackets or quotes, or an
            empty element such as ``1,,2``
    """
    if not text.strip():
        return []

    parts: list[str] = []
    start = 0
    for offset in _scan(text, separator):
        parts.append(text[start:offset].strip())
        start = offset + 1
    parts.append(text[start:].strip())

    if any(not p for p in parts):
        raise MalformedGrammarError(text=text, reason=f"empty element between '{separator}'")
    return parts


def split_key_value(entry: str) -> tuple[str, str]:
    """
    Split a map entry ``key: value``.

    The separator is the first top-level colon followed by whitespace, as
    the encoder writes it, so keys like ``2024-01-02 10:30:00`` stay whole.
    Hand-written ``key:value`` falls back to the first top-level colon.

    Raises:
        MalformedGrammarError: If the entry has no top-level colon
    """
    hits = _scan(entry, ":")
    if not hits:
        raise MalformedGrammarError(text=entry, reason="missing ':' between key and value")
    spaced = [i for i in hits if i + 1 < len(entry) and entry[i + 1].isspace()]
    offset = spaced[0] if spaced else hits[0]
    key = entry[:offset].strip()
    value = entry[offset + 1:].strip()
    if not key or not value:
        raise MalformedGrammarError(text=entry, reason="empty key or value")
    return key, value


def mask_quoted(text: str) -> str:
    """
    Blank out the contents of double-quoted literals.

    The result has the same length as ``text``, so offsets still line up.
    Used to search for tokens that only count outside string values.
    """
    out: list[str] = []
    in_quotes = False
    escape_next = False
    for ch in text:
        if escape_next:
            escape_next = False
            out.append(" ")
        elif in_quotes:
            if ch == "\\":
                escape_next = True
                out.append(" ")
            elif ch == '"':
                in_quotes = False
                out.append(ch)
            else:
                out.append(" ")
        else:
            if ch == '"':
                in_quotes = True
            out.append(ch)
    return "".join(out)


def unwrap(text: str, opener: str, closer: str) -> str | None:
    """
    Strip one pair of enclosing delimiters.

    Returns None when ``text`` does not start with ``opener`` at all, so the
    caller can tell a wrong shape from a broken one.

    Raises:
        MalformedGrammarError: If ``text`` opens but does not close
    """
    if not text.startswith(opener):
        return None
    if len(text) < 2 or not text.endswith(closer):
        raise MalformedGrammarError(text=text, reason=f"missing closing '{closer}'")
    return text[1:-1]
