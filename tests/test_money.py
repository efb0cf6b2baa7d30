"""Tests for BRL and percentage parsing/formatting."""

from decimal import Decimal

import pytest

from licitax.money import as_decimal, format_brl, format_percent, parse_brl, parse_percent


class TestParseBrl:
    """Tests for parse_brl."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("R$ 1.234.567,89", Decimal("1234567.89")),
            ("R$\xa045.000,00", Decimal("45000.00")),
            ("45000", Decimal("45000")),
            ("4500,5", Decimal("4500.5")),
            ("0", Decimal("0")),
            ("R$ 0,00", Decimal("0.00")),
        ],
    )
    def test_valid_amounts(self, text: str, expected: Decimal) -> None:
        """Dots group thousands and the comma marks decimals."""
        assert parse_brl(text) == expected

    @pytest.mark.parametrize("text", ["", "   ", "R$", "abc", "4500.50", "1.23", "-10", "1,2,3", None])
    def test_ambiguous_or_invalid_is_none(self, text: str) -> None:
        """Nothing that is not clearly an amount parses, and never to zero."""
        assert parse_brl(text) is None


class TestAsDecimal:
    """Tests for as_decimal."""

    def test_numbers_pass_through(self) -> None:
        """ints, floats and Decimals are accepted."""
        assert as_decimal(10) == Decimal("10")
        assert as_decimal(4500.5) == Decimal("4500.5")
        assert as_decimal(Decimal("-3")) == Decimal("-3")

    @pytest.mark.parametrize("value", [True, None, float("nan"), float("inf"), object()])
    def test_rejected_values(self, value: object) -> None:
        """bool, None and non-finite values are not amounts."""
        assert as_decimal(value) is None

    def test_strings_use_brl_rules(self) -> None:
        """Text goes through parse_brl."""
        assert as_decimal("R$ 4.500,00") == Decimal("4500.00")


class TestFormat:
    """Tests for format_brl and format_percent."""

    def test_format_brl(self) -> None:
        """Thousands with dots, two decimals with a comma."""
        assert format_brl(Decimal("1234567.891")) == "R$ 1.234.567,89"
        assert format_brl(45000) == "R$ 45.000,00"
        assert format_brl(Decimal("0.005")) == "R$ 0,01"

    def test_format_brl_negative_and_none(self) -> None:
        """Negatives get a leading minus; None renders empty."""
        assert format_brl(Decimal("-10.5")) == "-R$ 10,50"
        assert format_brl(None) == ""

    def test_format_percent(self) -> None:
        """Comma decimal mark, no trailing zeros."""
        assert format_percent(Decimal("12.50")) == "12,5%"
        assert format_percent(10) == "10%"


class TestParsePercent:
    """Tests for parse_percent."""

    @pytest.mark.parametrize(
        "value,expected",
        [("10", Decimal("10")), ("10%", Decimal("10")), ("12,5 %", Decimal("12.5")), ("7.5", Decimal("7.5")), (15, Decimal("15"))],
    )
    def test_valid(self, value: object, expected: Decimal) -> None:
        """Optional % sign, either decimal mark."""
        assert parse_percent(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "-5%", "%", None, False])
    def test_invalid(self, value: object) -> None:
        """Non-numeric input is None."""
        assert parse_percent(value) is None
