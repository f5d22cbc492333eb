"""
Unit tests for the single cell parsers.
"""

from datetime import datetime

import pytest
from netgear_cm import fields


class TestNumberParsing:
    """Test unit aware number parsing."""

    def test_parse_hz(self):
        assert fields.parse_hz("603000000 Hz") == (603000000.0, True)

    def test_parse_dbmv_negative(self):
        assert fields.parse_dbmv("-1.2 dBmV") == (-1.2, True)

    def test_parse_db(self):
        assert fields.parse_db("40.3 dB") == (40.3, True)

    def test_unit_is_optional(self):
        assert fields.parse_db("40.3") == (40.3, True)

    def test_unit_is_case_insensitive(self):
        assert fields.parse_hz("603000000 hz") == (603000000.0, True)

    def test_surrounding_whitespace(self):
        assert fields.parse_dbmv("  4.9 dBmV \n") == (4.9, True)

    def test_counter(self):
        assert fields.parse_counter("123456") == (123456.0, True)

    @pytest.mark.parametrize(
        "cell",
        ["", "   ", "N/A", "-- dBmV", "1.2.3 dB", "40.5 dBmV", "dB 40.5", "forty dB"],
    )
    def test_malformed_cells_are_zero(self, cell):
        """Malformed cells never raise; they come back as zero and not ok."""
        result = fields.parse_db(cell)

        assert result.value == 0
        assert result.ok is False

    def test_wrong_unit_is_a_mismatch(self):
        assert fields.parse_hz("5120 Ksym/sec") == (0.0, False)


class TestIntegerParsing:
    def test_integer(self):
        assert fields.parse_integer("82000200") == (82000200, True)

    @pytest.mark.parametrize("cell", ["", "3.5", "three", "1e3"])
    def test_not_an_integer(self, cell):
        assert fields.parse_integer(cell) == (0, False)


class TestUnitConversion:
    """Test conversions to the units we export."""

    def test_symbol_rate_to_sym_per_sec(self):
        assert fields.parse_symbol_rate("5120 Ksym/sec") == (5120000.0, True)

    def test_fractional_symbol_rate_is_exact(self):
        # 5.12 * 1000 in plain float arithmetic is 5120.000000000001
        assert fields.parse_symbol_rate("5.12 Ksym/sec").value == 5120.0

    def test_malformed_symbol_rate(self):
        assert fields.parse_symbol_rate("Ksym/sec") == (0.0, False)

    def test_hz_to_mhz(self):
        assert fields.hz_to_mhz(603000000) == 603.0

    def test_format_mhz(self):
        assert fields.format_mhz(603000000) == "603.00 MHz"

    def test_format_mhz_rounds(self):
        assert fields.format_mhz(30596000) == "30.60 MHz"


class TestEventTimeParsing:
    def test_event_time(self):
        assert fields.parse_event_time("2019-04-21, 16:27:07") == datetime(2019, 4, 21, 16, 27, 7)

    def test_time_not_established(self):
        assert fields.parse_event_time("Time Not Established") is None

    @pytest.mark.parametrize("raw", ["", "04/21/2019 16:27:07", "2019-04-21 16:27:07", "garbage"])
    def test_unparseable_time(self, raw):
        assert fields.parse_event_time(raw) is None
