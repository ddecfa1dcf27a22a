"""
Tests for FFmpeg time-code parsing.
"""

import pytest

from converter.execution import MalformedTimeCode, parse_timecode


class TestParseTimecode:
    """HH:MM:SS.ff → seconds."""

    def test_zero(self):
        assert parse_timecode("00:00:00.00") == 0.0

    def test_minutes_and_fraction(self):
        assert parse_timecode("00:01:30.50") == pytest.approx(90.5)

    def test_hours(self):
        assert parse_timecode("01:00:00.00") == pytest.approx(3600.0)

    def test_all_fields(self):
        assert parse_timecode("02:03:04.25") == pytest.approx(2 * 3600 + 3 * 60 + 4.25)

    def test_long_fraction(self):
        assert parse_timecode("00:00:01.123456") == pytest.approx(1.123456)

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_timecode("  00:00:10.00 ") == pytest.approx(10.0)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "garbage",
            "1:00:00.00",  # single-digit hours
            "00:00:10",  # no fraction
            "00:00:10.",  # empty fraction
            "00-00-10.00",
            "N/A",
        ],
    )
    def test_malformed_raises(self, text):
        with pytest.raises(MalformedTimeCode) as exc_info:
            parse_timecode(text)
        assert exc_info.value.text == text

    def test_non_string_raises(self):
        with pytest.raises(MalformedTimeCode):
            parse_timecode(None)

    def test_malformed_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_timecode("bad")
