from datetime import datetime

MINUTES_PER_HOUR = 60

class InvalidInterval(ValueError):
    """Raised when an interval ends before it starts"""

    def __init__(self, start: datetime, end: datetime):
        super().__init__(f"Interval end {end.isoformat()} is before start {start.isoformat()}")
        self.start = start
        self.end = end

def duration_minutes(start: datetime, end: datetime) -> float:
    """Minutes between two timestamps; raises InvalidInterval if end < start"""
    if end < start:
        raise InvalidInterval(start, end)
    return (end - start).total_seconds() / 60

def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval overlap test: [a_start, a_end) and [b_start, b_end)"""
    return a_start < b_end and b_start < a_end

def contains(outer_start: datetime, outer_end: datetime, inner_start: datetime, inner_end: datetime) -> bool:
    return outer_start <= inner_start and inner_end <= outer_end

def minutes_to_hours(minutes: float) -> float:
    return minutes / MINUTES_PER_HOUR
