"""
Interval Overlap

Half-open interval [start, end) comparisons shared by conflict detection
and slot finding. Works on any ordered values (ints, datetimes).
"""
from datetime import timedelta


def overlaps(start1, end1, start2, end2) -> bool:
    """
    True when [start1, end1) and [start2, end2) intersect.

    Touching intervals ([10, 20) and [20, 30)) do not overlap.
    """
    return (
        (start2 <= start1 < end2)
        or (start2 < end1 <= end2)
        or (start1 <= start2 and end1 >= end2)
    )


def overlap_duration(start1, end1, start2, end2):
    """Length of the intersection; zero of the matching type when disjoint"""
    latest_start = max(start1, start2)
    earliest_end = min(end1, end2)
    if earliest_end > latest_start:
        return earliest_end - latest_start
    return latest_start - latest_start


def overlap_minutes(start1, end1, start2, end2) -> int:
    """Whole minutes of overlap between two datetime intervals"""
    duration = overlap_duration(start1, end1, start2, end2)
    return int(duration // timedelta(minutes=1))
