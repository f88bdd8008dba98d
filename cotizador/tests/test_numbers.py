"""
Tests: Locale number parsing (Chilean and plain formats).

Run with:
    pytest cotizador/tests/test_numbers.py -v
"""

import pytest

from cotizador.utils.numbers import (
    NumberFormat,
    detect_number_format,
    normalize_number_text,
    parse_locale_number,
)


class TestDetectFormat:
    def test_comma_means_comma_decimal(self):
        assert detect_number_format("950,35") is NumberFormat.COMMA_DECIMAL
        assert detect_number_format("1.234,56") is NumberFormat.COMMA_DECIMAL

    def test_plain_is_dot_decimal(self):
        assert detect_number_format("950.35") is NumberFormat.DOT_DECIMAL
        assert detect_number_format("950") is NumberFormat.DOT_DECIMAL


class TestNormalize:
    def test_thousands_dots_removed(self):
        assert normalize_number_text("1.234.567,8") == "1234567.8"

    def test_spaces_removed(self):
        assert normalize_number_text(" 1.050,25 ") == "1050.25"

    def test_explicit_format_wins(self):
        assert normalize_number_text("1.234", NumberFormat.COMMA_DECIMAL) == "1234"


class TestParseLocaleNumber:
    @pytest.mark.parametrize("text,expected", [
        ("950,35", 950.35),
        ("1.050,25", 1050.25),
        ("950.35", 950.35),
        ("950", 950.0),
        ("-3,5", -3.5),
    ])
    def test_strings(self, text, expected):
        assert parse_locale_number(text) == pytest.approx(expected)

    def test_numbers_pass_through(self):
        assert parse_locale_number(950) == 950.0
        assert parse_locale_number(1.08) == 1.08

    @pytest.mark.parametrize("bad", ["", "   ", "abc", "9,5,0", None, True, [1], float("nan"), "inf"])
    def test_rejects(self, bad):
        with pytest.raises(ValueError):
            parse_locale_number(bad)
