"""Tests for half-open interval overlap helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from cadence.services.overlap import overlap_duration, overlap_minutes, overlaps

pytestmark = pytest.mark.unit


class TestOverlaps:
    def test_touching_intervals_do_not_overlap(self):
        assert overlaps(10, 20, 20, 30) is False
        assert overlaps(20, 30, 10, 20) is False

    def test_one_unit_overlap(self):
        assert overlaps(10, 20, 19, 30) is True
        assert overlap_duration(10, 20, 19, 30) == 1

    def test_containment_either_way(self):
        assert overlaps(10, 40, 20, 30) is True
        assert overlaps(20, 30, 10, 40) is True

    def test_identical_intervals(self):
        assert overlaps(10, 20, 10, 20) is True
        assert overlap_duration(10, 20, 10, 20) == 10

    def test_disjoint(self):
        assert overlaps(0, 5, 10, 20) is False
        assert overlap_duration(0, 5, 10, 20) == 0


class TestOverlapMinutes:
    def test_datetime_overlap_in_minutes(self):
        base = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        minutes = overlap_minutes(
            base, base + timedelta(hours=1),
            base + timedelta(minutes=45), base + timedelta(hours=2),
        )
        assert minutes == 15

    def test_disjoint_datetimes_give_zero(self):
        base = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        assert overlap_minutes(
            base, base + timedelta(hours=1),
            base + timedelta(hours=1), base + timedelta(hours=2),
        ) == 0
