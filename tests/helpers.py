from __future__ import annotations

import itertools
from datetime import datetime
from typing import Dict, List
from zoneinfo import ZoneInfo


from travelsync.config import AppConfig, CongestionConfig, TravelConfig
from travelsync.models import CalendarEvent, CalendarHandle, CalendarNotFoundError, CalendarWriteError

TZ = ZoneInfo("America/Phoenix")


class FakeCalendar:
    """In-memory calendar honouring the Google overlap semantics for reads."""

    def __init__(self, events: List[CalendarEvent] | None = None, calendar_id: str = "primary") -> None:
        self.calendar_id = calendar_id
        self.events: Dict[str, CalendarEvent] = {e.event_id: e for e in events or []}
        self.updates: List[tuple] = []
        self.created: List[CalendarEvent] = []
        self.fail_writes_for: set = set()
        self._ids = itertools.count(1)

    def resolve(self, calendar_id: str) -> CalendarHandle:
        if calendar_id != self.calendar_id:
            raise CalendarNotFoundError(calendar_id)
        return CalendarHandle(calendar_id=calendar_id, summary="Personal")

    def get_events(self, handle: CalendarHandle, start: datetime, end: datetime) -> List[CalendarEvent]:
        return sorted(
            (e for e in self.events.values() if e.start < end and e.end > start),
            key=lambda e: e.start,
        )

    def set_event_time(self, event: CalendarEvent, start: datetime, end: datetime) -> CalendarEvent:
        if event.title in self.fail_writes_for:
            raise CalendarWriteError("403 Forbidden")
        updated = CalendarEvent(
            event_id=event.event_id,
            title=event.title,
            start=start,
            end=end,
            all_day=event.all_day,
            location=event.location,
        )
        self.events[event.event_id] = updated
        self.updates.append((event.event_id, start, end))
        return updated

    def create_event(self, handle: CalendarHandle, title: str, start: datetime, end: datetime) -> CalendarEvent:
        if title in self.fail_writes_for:
            raise CalendarWriteError("403 Forbidden")
        event = CalendarEvent(event_id=f"new-{next(self._ids)}", title=title, start=start, end=end)
        self.events[event.event_id] = event
        self.created.append(event)
        return event


class StubRouting:
    def __init__(self, payload: dict | None = None, seconds: int = 1500) -> None:
        self.payload = payload
        self.seconds = seconds
        self.calls: List[tuple] = []

    def distance_matrix(self, origin, destination, departure_time, traffic_model):
        self.calls.append((origin, destination, departure_time, traffic_model))
        if self.payload is not None:
            return self.payload
        return ok_payload(self.seconds)


def ok_payload(duration: int, in_traffic: int | None = None) -> dict:
    element = {"status": "OK", "duration": {"value": duration, "text": f"{duration // 60} mins"}}
    if in_traffic is not None:
        element["duration_in_traffic"] = {"value": in_traffic, "text": f"{in_traffic // 60} mins"}
    return {"status": "OK", "rows": [{"elements": [element]}]}


def event(event_id: str, title: str, start: datetime, end: datetime, location: str | None = None, all_day: bool = False):
    return CalendarEvent(event_id=event_id, title=title, start=start, end=end, location=location, all_day=all_day)


def make_config(**travel_overrides) -> AppConfig:
    return AppConfig(
        timezone="America/Phoenix",
        calendar_id="primary",
        home_address="1 Home St, Phoenix, AZ",
        lookahead_days=7,
        maps_api_key="test-key",
        travel=TravelConfig(**travel_overrides),
        congestion=CongestionConfig(),
    )


