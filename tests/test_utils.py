"""Tests for shared utility helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from evcharge.errors import InvalidWindowError
from evcharge.utils import connector_key, ensure_aware, intervals_overlap, parse_instant

from tests.conftest import at


class TestParseInstant:
    def test_trailing_z_is_utc(self):
        parsed = parse_instant("2025-03-18T14:00:00.000Z")
        assert parsed == at(14)
        assert parsed.utcoffset() == timedelta(0)

    def test_explicit_offset(self):
        parsed = parse_instant("2025-03-18T07:00:00-07:00")
        assert parsed == at(14)

    def test_naive_string_rejected(self):
        with pytest.raises(InvalidWindowError, match="timezone-aware"):
            parse_instant("2025-03-18T14:00:00")

    def test_garbage_rejected(self):
        with pytest.raises(InvalidWindowError, match="startTime"):
            parse_instant("tomorrow at two", "startTime")

    def test_aware_datetime_passes_through(self):
        value = at(10)
        assert parse_instant(value) is value


class TestEnsureAware:
    def test_naive_datetime_rejected(self):
        with pytest.raises(InvalidWindowError):
            ensure_aware(datetime(2025, 3, 18, 10, 0))

    def test_aware_datetime_accepted(self):
        value = datetime(2025, 3, 18, 10, 0, tzinfo=timezone.utc)
        assert ensure_aware(value) == value


class TestIntervalsOverlap:
    def test_partial_overlap(self):
        assert intervals_overlap(at(10), at(11), at(10, 30), at(11, 30))

    def test_back_to_back_does_not_overlap(self):
        assert not intervals_overlap(at(10), at(11), at(11), at(12))
        assert not intervals_overlap(at(11), at(12), at(10), at(11))

    def test_containment(self):
        assert intervals_overlap(at(9), at(13), at(10), at(11))

    def test_identical_windows(self):
        assert intervals_overlap(at(10), at(11), at(10), at(11))


class TestConnectorKey:
    def test_case_insensitive(self):
        assert connector_key("CHAdeMO") == connector_key("chademo")

    def test_whitespace_collapsed(self):
        assert connector_key("  Level   2 ") == "level 2"
