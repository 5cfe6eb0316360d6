from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

from .config import MarkerMode, TravelConfig
from .models import CalendarEvent, CalendarHandle, CalendarProvider


def is_travel_placeholder(title: str, marker: str, mode: MarkerMode) -> bool:
    """Single decision point for recognising travel placeholders by title."""
    text = (title or "").lstrip().lower()
    needle = marker.strip().lower()
    if not needle:
        return False
    if mode is MarkerMode.CONTAINS:
        return needle in text
    return text.startswith(needle)


def is_anchor(event: CalendarEvent, travel: TravelConfig) -> bool:
    if not event.location or not event.location.strip():
        return False
    if event.all_day:
        return False
    return not is_travel_placeholder(event.title, travel.marker, travel.marker_mode)


def fetch_window(
    calendar: CalendarProvider,
    handle: CalendarHandle,
    now: datetime,
    lookahead_days: int,
) -> List[CalendarEvent]:
    """Events starting in [now, now + lookahead_days), ordered by start."""
    horizon = now + timedelta(days=lookahead_days)
    events = calendar.get_events(handle, now, horizon)
    return sorted((e for e in events if now <= e.start < horizon), key=lambda e: e.start)
