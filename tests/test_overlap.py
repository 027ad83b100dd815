"""Tests for half-open interval overlap detection."""

from dataclasses import dataclass
from datetime import datetime

from marketplace.services.overlap import find_overlap, interval_payload, overlaps


@dataclass
class Span:
    start_datetime: datetime
    end_datetime: datetime


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute)


class TestOverlaps:
    def test_partial_overlap(self):
        assert overlaps(at(9), at(11), at(10), at(12))

    def test_containment(self):
        assert overlaps(at(8), at(12), at(9), at(10))
        assert overlaps(at(9), at(10), at(8), at(12))

    def test_identical_intervals(self):
        assert overlaps(at(14), at(15), at(14), at(15))

    def test_touching_endpoints_do_not_overlap(self):
        assert not overlaps(at(9), at(10), at(10), at(11))
        assert not overlaps(at(10), at(11), at(9), at(10))

    def test_disjoint(self):
        assert not overlaps(at(8), at(9), at(11), at(12))

    def test_is_symmetric(self):
        pairs = [
            (at(8), at(10), at(9), at(11)),
            (at(8), at(9), at(9), at(10)),
            (at(8), at(9), at(12), at(13)),
        ]
        for a_start, a_end, b_start, b_end in pairs:
            assert overlaps(a_start, a_end, b_start, b_end) == overlaps(b_start, b_end, a_start, a_end)


class TestFindOverlap:
    def test_returns_first_conflict(self):
        existing = [Span(at(8), at(9)), Span(at(10), at(11)), Span(at(10, 30), at(12))]
        assert find_overlap(at(10, 15), at(10, 45), existing) is existing[1]

    def test_none_when_only_touching(self):
        existing = [Span(at(8), at(9)), Span(at(10), at(11))]
        assert find_overlap(at(9), at(10), existing) is None

    def test_empty(self):
        assert find_overlap(at(9), at(10), []) is None


def test_interval_payload_is_iso():
    assert interval_payload(Span(at(9), at(10, 30))) == {
        "start": "2030-01-07T09:00:00",
        "end": "2030-01-07T10:30:00",
    }
