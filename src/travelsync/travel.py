from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import requests

from .config import CongestionConfig
from .congestion import multiplier_for
from .models import ReferenceKind, RoutingProvider
from .routing import describe_failure, extract_duration_seconds

logger = logging.getLogger(__name__)


class EstimationError(RuntimeError):
    """Raised when a drive-time estimate cannot be produced for a leg."""


@dataclass(frozen=True)
class TravelEstimate:
    minutes: int
    raw_seconds: int
    multiplier: float
    reference_kind: ReferenceKind


class TravelTimeEstimator:
    """Estimates one-way drive time, scaled by the congestion policy."""

    def __init__(self, routing: RoutingProvider, congestion: CongestionConfig, traffic_model: str = "best_guess") -> None:
        self._routing = routing
        self._congestion = congestion
        self._traffic_model = traffic_model

    def estimate(
        self,
        origin: str,
        destination: str,
        reference: datetime,
        reference_kind: ReferenceKind,
    ) -> Optional[TravelEstimate]:
        """Return the estimate, or None when origin and destination are the same place.

        ``reference`` must be timezone-aware in the calendar's local zone; its
        hour and weekday select the congestion multiplier.
        """
        if _normalize(origin) == _normalize(destination):
            return None

        try:
            payload = self._routing.distance_matrix(origin, destination, reference, self._traffic_model)
        except (requests.RequestException, ValueError) as e:
            raise EstimationError(f"routing request failed: {e}") from e

        try:
            seconds = extract_duration_seconds(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise EstimationError(f"malformed routing response: {e}") from e
        if seconds is None:
            raise EstimationError(describe_failure(payload))

        factor = multiplier_for(reference, self._congestion)
        minutes = max(1, math.ceil(seconds * factor / 60))
        logger.info(
            "Drive %s -> %s (%s %s): %ds x%.2f = %d min",
            origin,
            destination,
            reference_kind.value,
            reference.isoformat(),
            seconds,
            factor,
            minutes,
        )
        return TravelEstimate(minutes=minutes, raw_seconds=seconds, multiplier=factor, reference_kind=reference_kind)


def _normalize(value: str) -> str:
    return " ".join(value.strip().lower().split())
