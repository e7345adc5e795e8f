"""
Tests for the amount codec.
"""

import random

import pytest

from miniamm.core.amounts import (
    format_amount,
    format_percentage,
    format_tx_hash,
    parse_amount,
    shorten_address,
)


class TestParseAmount:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1", 10**18),
            ("1.5", 15 * 10**17),
            (".5", 5 * 10**17),
            ("2.", 2 * 10**18),
            ("0.000000000000000001", 1),
            ("1,000.25", 1000 * 10**18 + 25 * 10**16),
        ],
    )
    def test_valid_inputs(self, text, expected):
        assert parse_amount(text) == expected

    @pytest.mark.parametrize("text", ["", ".", "abc", "1.2.3", "..", None])
    def test_invalid_inputs_are_zero(self, text):
        assert parse_amount(text) == 0

    def test_excess_fraction_digits_are_truncated(self):
        assert parse_amount("1.239", decimals=2) == 123

    def test_custom_decimals(self):
        assert parse_amount("12.5", decimals=6) == 12_500_000
        assert parse_amount("7", decimals=0) == 7


class TestFormatAmount:
    def test_whole_and_fractional(self):
        assert format_amount(10**18, 18) == "1"
        assert format_amount(15 * 10**17, 18) == "1.5"
        assert format_amount(0) == "0"

    def test_truncates_to_display_decimals(self):
        assert format_amount(123_456_789, 9, display_decimals=4) == "0.1234"
        assert format_amount(1, 18) == "0"

    def test_negative_values_keep_sign(self):
        assert format_amount(-15 * 10**17, 18) == "-1.5"

    def test_zero_decimals(self):
        assert format_amount(42, 0) == "42"

    def test_format_then_parse_never_exceeds_input(self):
        rng = random.Random(7)
        for _ in range(300):
            decimals = rng.choice([0, 6, 8, 18])
            value = rng.randint(0, 10**30)
            assert parse_amount(format_amount(value, decimals), decimals) <= value


class TestDisplayHelpers:
    def test_format_percentage(self):
        assert format_percentage(12.3456) == "12.35%"
        assert format_percentage(5, decimals=0) == "5%"

    def test_shorten_address(self):
        address = "0x1CE3D5B5EBD3FC147b42DCe5C64b2036D24D7aEa"
        assert shorten_address(address) == "0x1CE3...7aEa"
        assert shorten_address("0x1234") == "0x1234"

    def test_format_tx_hash(self):
        tx_hash = "0x" + "ab" * 32
        assert format_tx_hash(tx_hash) == "0xabab...abab"
