from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Tuple

from .config import AppConfig
from .locator import find_adjacent_travel, shift
from .models import (
    CalendarEvent,
    CalendarHandle,
    CalendarProvider,
    CalendarWriteError,
    Direction,
    ReferenceKind,
)
from .travel import EstimationError, TravelEstimate, TravelTimeEstimator

logger = logging.getLogger(__name__)


class LegStatus(str, Enum):
    UPDATED = "updated"
    CREATED = "created"
    UNCHANGED = "unchanged"
    MISSING = "missing"             # no placeholder found and creation disabled
    NOT_NEEDED = "not_needed"       # origin and destination are the same place
    WRITE_FAILED = "write_failed"


class AnchorStatus(str, Enum):
    RECONCILED = "reconciled"
    ESTIMATION_FAILED = "estimation_failed"
    WRITE_FAILED = "write_failed"
    ERROR = "error"


@dataclass(frozen=True)
class AnchorResult:
    anchor: CalendarEvent
    status: AnchorStatus
    to_leg: Optional[LegStatus] = None
    from_leg: Optional[LegStatus] = None
    error: str = ""


def travel_span(anchor: CalendarEvent, direction: Direction, minutes: int) -> Tuple[datetime, datetime]:
    duration = timedelta(minutes=minutes)
    if direction is Direction.BEFORE:
        return shift(anchor.start, -duration), anchor.start
    return anchor.end, shift(anchor.end, duration)


def placeholder_title(marker: str, anchor: CalendarEvent, direction: Direction) -> str:
    leg = "to" if direction is Direction.BEFORE else "from"
    return f"{marker} {leg} {anchor.title}"


def _describe(event: CalendarEvent) -> str:
    return f"'{event.title}' [{event.start.isoformat()} - {event.end.isoformat()}]"


class TravelReconciler:
    """Keeps the travel placeholders on either side of an anchor event in sync."""

    def __init__(self, calendar: CalendarProvider, estimator: TravelTimeEstimator, config: AppConfig) -> None:
        self._calendar = calendar
        self._estimator = estimator
        self._config = config

    def reconcile_anchor(self, handle: CalendarHandle, anchor: CalendarEvent) -> AnchorResult:
        location = (anchor.location or "").strip()
        home = self._config.home_address

        # Both estimates must succeed before either leg is touched.
        try:
            to_estimate = self._estimator.estimate(home, location, anchor.start, ReferenceKind.ARRIVAL)
            from_estimate = self._estimator.estimate(location, home, anchor.end, ReferenceKind.DEPARTURE)
        except EstimationError as e:
            logger.warning("Estimation failed for %s at %s; skipping: %s", _describe(anchor), location, e)
            return AnchorResult(anchor, AnchorStatus.ESTIMATION_FAILED, error=str(e))

        to_leg = self._reconcile_estimated(handle, anchor, Direction.BEFORE, to_estimate)
        from_leg = self._reconcile_estimated(handle, anchor, Direction.AFTER, from_estimate)

        status = AnchorStatus.RECONCILED
        if LegStatus.WRITE_FAILED in (to_leg, from_leg):
            status = AnchorStatus.WRITE_FAILED
        return AnchorResult(anchor, status, to_leg=to_leg, from_leg=from_leg)

    def _reconcile_estimated(
        self,
        handle: CalendarHandle,
        anchor: CalendarEvent,
        direction: Direction,
        estimate: Optional[TravelEstimate],
    ) -> LegStatus:
        if estimate is None:
            logger.info("No travel needed %s %s", direction.value, _describe(anchor))
            return LegStatus.NOT_NEEDED
        return self.reconcile_leg(handle, anchor, direction, estimate.minutes)

    def reconcile_leg(
        self,
        handle: CalendarHandle,
        anchor: CalendarEvent,
        direction: Direction,
        minutes: int,
    ) -> LegStatus:
        """Rewrite or create the placeholder for one leg.

        Read errors from the locator propagate; write errors are contained
        to this leg.
        """
        travel = self._config.travel
        start, end = travel_span(anchor, direction, minutes)
        existing = find_adjacent_travel(self._calendar, handle, anchor, direction, travel)

        if existing is not None:
            if existing.start == start and existing.end == end:
                logger.info("Travel %s %s already spans %d min", direction.value, _describe(anchor), minutes)
                return LegStatus.UNCHANGED
            try:
                self._calendar.set_event_time(existing, start, end)
            except CalendarWriteError as e:
                logger.error(
                    "Failed to update %s to [%s - %s]: %s", _describe(existing), start.isoformat(), end.isoformat(), e
                )
                return LegStatus.WRITE_FAILED
            logger.info(
                "Updated %s -> [%s - %s] (%d min)", _describe(existing), start.isoformat(), end.isoformat(), minutes
            )
            return LegStatus.UPDATED

        if not travel.create_missing:
            logger.info("No travel placeholder %s %s; creation disabled", direction.value, _describe(anchor))
            return LegStatus.MISSING

        title = placeholder_title(travel.marker, anchor, direction)
        try:
            self._calendar.create_event(handle, title, start, end)
        except CalendarWriteError as e:
            logger.error("Failed to create '%s' [%s - %s]: %s", title, start.isoformat(), end.isoformat(), e)
            return LegStatus.WRITE_FAILED
        logger.info("Created '%s' [%s - %s] (%d min)", title, start.isoformat(), end.isoformat(), minutes)
        return LegStatus.CREATED
