#!/usr/bin/env python3
"""Tests for lenient text and number parsing."""

from ledger.parsing import clean_optional, clean_required, parse_float, parse_int_optional


class TestCleanText:
    """Tests for clean_optional and clean_required."""

    def test_trims(self):
        """Surrounding whitespace is removed."""
        assert clean_optional("  Shell  ") == "Shell"

    def test_blank_is_none(self):
        """Blank text is None."""
        assert clean_optional("   ") is None
        assert clean_optional(None) is None

    def test_required_fallback(self):
        """Blank text gives the fallback."""
        assert clean_required("  ", "Untitled") == "Untitled"
        assert clean_required(" Oil ", "Untitled") == "Oil"


class TestParseIntOptional:
    """Tests for parse_int_optional."""

    def test_valid(self):
        assert parse_int_optional(" 58000 ") == 58000

    def test_invalid_is_none(self):
        """Non-numeric text is None."""
        assert parse_int_optional("58k") is None
        assert parse_int_optional("") is None
        assert parse_int_optional(None) is None


class TestParseFloat:
    """Tests for parse_float."""

    def test_dot_and_comma_decimals(self):
        """Comma and dot both work as decimal separators."""
        assert parse_float("12.5") == 12.5
        assert parse_float("12,5") == 12.5

    def test_invalid_is_none(self):
        """Non-numeric text is None."""
        assert parse_float("abc") is None
        assert parse_float("  ") is None
        assert parse_float(None) is None

    def test_non_finite_is_none(self):
        """nan and inf are rejected."""
        assert parse_float("nan") is None
        assert parse_float("inf") is None
        assert parse_float("-Infinity") is None
