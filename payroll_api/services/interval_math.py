# payroll_api/services/interval_math.py
"""
Time-of-day interval arithmetic.

All intervals are half-open ``[start, end)`` on a seconds timeline anchored at
the midnight that starts the work date:

  - if ``end`` is strictly earlier than ``start`` the interval spans midnight
    and ``end`` is moved 24h forward;
  - ``start == end`` is a zero-length interval (never a 24h one).

The nightly window is anchored the same way and repeated on the previous and
next day, so a 22:00-06:00 window catches both the early-morning tail of a
shift that starts after midnight and the late-evening head of one that starts
before it.
"""
from __future__ import annotations

from datetime import time
from decimal import Decimal
from typing import Optional, Tuple

from payroll_api.services.money import ZERO, ratio

DAY = 24 * 3600
_HOUR = Decimal(3600)

NIGHT_START = time(22, 0)
NIGHT_END = time(6, 0)


def _secs(t: time) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


def span(start: time, end: time) -> Tuple[int, int]:
    """Seconds offsets of ``[start, end)`` with midnight wraparound applied."""
    s, e = _secs(start), _secs(end)
    if e < s:
        e += DAY
    return s, e


def _hours(seconds: int) -> Decimal:
    if seconds <= 0:
        return ZERO
    return ratio(Decimal(seconds) / _HOUR)


def hours_between(start: time, end: time) -> Decimal:
    s, e = span(start, end)
    return _hours(e - s)


def _window(night_start: time, night_end: time) -> Optional[Tuple[int, int]]:
    ws, we = _secs(night_start), _secs(night_end)
    if ws == we:
        return None
    if we < ws:
        we += DAY
    return ws, we


def _overlap(s: int, e: int, window: Optional[Tuple[int, int]]) -> int:
    if window is None or e <= s:
        return 0
    ws, we = window
    got = 0
    for shift in (-DAY, 0, DAY):
        lo = max(s, ws + shift)
        hi = min(e, we + shift)
        if hi > lo:
            got += hi - lo
    return got


def night_overlap_hours(start: time, end: time,
                        night_start: time = NIGHT_START,
                        night_end: time = NIGHT_END) -> Decimal:
    s, e = span(start, end)
    return _hours(_overlap(s, e, _window(night_start, night_end)))


def night_overlap_split(start: time, end: time, split_after: Decimal,
                        night_start: time = NIGHT_START,
                        night_end: time = NIGHT_END) -> Tuple[Decimal, Decimal]:
    """
    Night hours before and after a point ``split_after`` hours into the interval.

    Used to tell night hours worked inside the standard day from night hours
    worked in the excess (overtime) tail of the same shift.
    """
    s, e = span(start, end)
    cut = s + min(max(int(Decimal(split_after) * _HOUR), 0), e - s)
    window = _window(night_start, night_end)
    return _hours(_overlap(s, cut, window)), _hours(_overlap(cut, e, window))


def intervals_overlap(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """True when two same-date intervals share any positive length of time."""
    a_s, a_e = span(a_start, a_end)
    b_s, b_e = span(b_start, b_end)
    if a_e <= a_s or b_e <= b_s:
        return False
    return max(a_s, b_s) < min(a_e, b_e)
