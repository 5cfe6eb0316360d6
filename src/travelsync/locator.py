from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from .config import MatchPolicy, TravelConfig
from .events import is_travel_placeholder
from .models import CalendarEvent, CalendarHandle, CalendarProvider, Direction, TimeWindow


def shift(when: datetime, delta: timedelta) -> datetime:
    """Add elapsed time, not wall-clock time, so DST changes are honoured."""
    return (when.astimezone(timezone.utc) + delta).astimezone(when.tzinfo)


def search_window(anchor: CalendarEvent, direction: Direction, radius_hours: float) -> TimeWindow:
    radius = timedelta(hours=radius_hours)
    if direction is Direction.BEFORE:
        return TimeWindow(shift(anchor.start, -radius), anchor.start)
    return TimeWindow(anchor.end, shift(anchor.end, radius))


def _owned_by_other_event(candidate: CalendarEvent, others: List[CalendarEvent]) -> bool:
    return any(candidate.start == o.end or candidate.end == o.start for o in others)


def find_adjacent_travel(
    calendar: CalendarProvider,
    handle: CalendarHandle,
    anchor: CalendarEvent,
    direction: Direction,
    travel: TravelConfig,
) -> Optional[CalendarEvent]:
    """Find the travel placeholder just before or after ``anchor``.

    STRICT matches only a placeholder sharing the anchor's boundary exactly.
    RADIUS takes the marker event nearest the anchor whose near endpoint
    (its end for BEFORE, its start for AFTER) lies inside the search window.
    The window stops at the nearest other event on that side, and placeholders
    already flush against another event belong to that event.
    Provider errors propagate to the caller.
    """
    window = search_window(anchor, direction, travel.search_radius_hours)
    candidates: List[CalendarEvent] = []
    others: List[CalendarEvent] = []
    for e in calendar.get_events(handle, window.start, window.end):
        if e.event_id == anchor.event_id or e.all_day:
            continue
        if is_travel_placeholder(e.title, travel.marker, travel.marker_mode):
            candidates.append(e)
        else:
            others.append(e)

    if travel.match_policy is MatchPolicy.STRICT:
        for e in candidates:
            if direction is Direction.BEFORE and e.end == anchor.start:
                return e
            if direction is Direction.AFTER and e.start == anchor.end:
                return e
        return None

    candidates = [e for e in candidates if not _owned_by_other_event(e, others)]
    if direction is Direction.BEFORE:
        barrier = max((o.end for o in others if o.end <= anchor.start), default=None)
        # Scan backward from the anchor: latest end first.
        in_window = [
            e for e in candidates
            if window.start < e.end <= window.end and (barrier is None or e.start >= barrier)
        ]
        in_window.sort(key=lambda e: e.end, reverse=True)
    else:
        barrier = min((o.start for o in others if o.start >= anchor.end), default=None)
        in_window = [
            e for e in candidates
            if window.contains(e.start) and (barrier is None or e.end <= barrier)
        ]
        in_window.sort(key=lambda e: e.start)
    return in_window[0] if in_window else None
