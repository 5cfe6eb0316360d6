from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol


class CalendarNotFoundError(RuntimeError):
    """Raised when the configured calendar cannot be resolved."""


class CalendarWriteError(RuntimeError):
    """Raised when the calendar provider rejects an update or insert."""


class Direction(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class ReferenceKind(str, Enum):
    ARRIVAL = "arrival"
    DEPARTURE = "departure"


@dataclass(frozen=True)
class CalendarEvent:
    event_id: str
    title: str
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware
    all_day: bool = False
    location: Optional[str] = None
    calendar_id: str = ""


@dataclass(frozen=True)
class CalendarHandle:
    calendar_id: str
    summary: str = ""
    time_zone: str = ""


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


class CalendarProvider(Protocol):
    def resolve(self, calendar_id: str) -> CalendarHandle: ...

    def get_events(self, handle: CalendarHandle, start: datetime, end: datetime) -> List[CalendarEvent]: ...

    def set_event_time(self, event: CalendarEvent, start: datetime, end: datetime) -> CalendarEvent: ...

    def create_event(self, handle: CalendarHandle, title: str, start: datetime, end: datetime) -> CalendarEvent: ...


class RoutingProvider(Protocol):
    def distance_matrix(
        self,
        origin: str,
        destination: str,
        departure_time: datetime,
        traffic_model: str,
    ) -> Dict[str, Any]: ...
