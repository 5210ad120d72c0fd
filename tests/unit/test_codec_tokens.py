"""
Unit tests for top-level splitting.

Tests cover:
- Splitting nested collections and maps
- Separators inside quotes and brackets
- Grammar errors on imbalance and empty elements
- Quote masking
"""

import pytest

from callbook.codec.tokens import mask_quoted, split_key_value, split_top_level, unwrap
from callbook.errors import MalformedGrammarError


class TestSplitTopLevel:
    """Tests for split_top_level."""

    def test_simple(self) -> None:
        """Plain comma separated values."""
        assert split_top_level("1,2,3") == ["1", "2", "3"]

    def test_parts_are_stripped(self) -> None:
        """Whitespace around parts is dropped."""
        assert split_top_level(" 1 , 2 ") == ["1", "2"]

    def test_empty_input(self) -> None:
        """Empty or blank input has no parts."""
        assert split_top_level("") == []
        assert split_top_level("   ") == []

    def test_nested_brackets(self) -> None:
        """Commas inside nested collections do not split."""
        assert split_top_level("[1,2],[3,[4,5]]") == ["[1,2]", "[3,[4,5]]"]

    def test_nested_maps(self) -> None:
        """Commas inside maps do not split."""
        assert split_top_level('{"a": 1, "b": 2}, {}') == ['{"a": 1, "b": 2}', "{}"]

    def test_quoted_separators(self) -> None:
        """Commas and brackets inside strings do not split."""
        assert split_top_level('"a,b","[c","d}"') == ['"a,b"', '"[c"', '"d}"']

    def test_escaped_quote(self) -> None:
        """An escaped quote does not end the string."""
        assert split_top_level(r'"say \"hi, there\"",2') == [r'"say \"hi, there\""', "2"]

    def test_reference_tokens(self) -> None:
        """Angle brackets are tracked like other brackets."""
        assert split_top_level("<id:a,b>,<id:c>") == ["<id:a,b>", "<id:c>"]

    def test_unbalanced_closer(self) -> None:
        """A stray closer is malformed."""
        with pytest.raises(MalformedGrammarError):
            split_top_level("1],2")

    def test_unclosed_opener(self) -> None:
        """An unclosed opener is malformed."""
        with pytest.raises(MalformedGrammarError):
            split_top_level("[1,2")

    def test_mismatched_pair(self) -> None:
        """Brackets must close in order."""
        with pytest.raises(MalformedGrammarError):
            split_top_level("[1}")

    def test_unterminated_quote(self) -> None:
        """An unterminated string is malformed."""
        with pytest.raises(MalformedGrammarError):
            split_top_level('"abc,1')

    def test_empty_element(self) -> None:
        """Two separators in a row are malformed."""
        with pytest.raises(MalformedGrammarError):
            split_top_level("1,,2")


class TestSplitKeyValue:
    """Tests for split_key_value."""

    def test_simple(self) -> None:
        """Key and value around the first colon."""
        assert split_key_value('"a": 1') == ('"a"', "1")

    def test_colon_in_key_string(self) -> None:
        """Colons inside a quoted key are skipped."""
        assert split_key_value('"a:b": 1') == ('"a:b"', "1")

    def test_colon_in_value(self) -> None:
        """Only the first top-level colon splits."""
        assert split_key_value('"t": 2024-01-01 10:00:00') == ('"t"', "2024-01-01 10:00:00")

    def test_reference_key(self) -> None:
        """Colons inside reference tokens are skipped."""
        assert split_key_value("<id:k>: [1]") == ("<id:k>", "[1]")

    def test_colon_in_datetime_key(self) -> None:
        """A datetime key splits at the colon followed by a space."""
        assert split_key_value("2024-01-02 10:30:00: 1") == ("2024-01-02 10:30:00", "1")

    def test_unspaced_colon(self) -> None:
        """Hand-written entries without a space still split."""
        assert split_key_value('"a":1') == ('"a"', "1")

    def test_missing_colon(self) -> None:
        """Entries need a colon."""
        with pytest.raises(MalformedGrammarError):
            split_key_value('"a" 1')

    def test_empty_value(self) -> None:
        """Entries need both sides."""
        with pytest.raises(MalformedGrammarError):
            split_key_value('"a":')


class TestUnwrap:
    """Tests for unwrap."""

    def test_unwrap(self) -> None:
        """Strips one pair of delimiters."""
        assert unwrap("[1,2]", "[", "]") == "1,2"

    def test_wrong_shape(self) -> None:
        """Text with another opener is not an error."""
        assert unwrap("{1}", "[", "]") is None

    def test_broken_shape(self) -> None:
        """Text that opens but does not close is malformed."""
        with pytest.raises(MalformedGrammarError):
            unwrap("[1,2", "[", "]")


class TestMaskQuoted:
    """Tests for mask_quoted."""

    def test_masks_contents(self) -> None:
        """String contents become spaces, quotes stay."""
        assert mask_quoted('a "<unknown>" b') == 'a "         " b'

    def test_keeps_length(self) -> None:
        """Offsets line up with the original text."""
        text = r'["x\"y", <id:a>]'
        assert len(mask_quoted(text)) == len(text)
        assert "<id:a>" in mask_quoted(text)
