from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"


class GoogleDistanceMatrixClient:
    """Thin client for the Distance Matrix API, driving mode only."""

    def __init__(self, api_key: str, user_agent: str = "travelsync/1.0", timeout: float = 8) -> None:
        self._api_key = api_key
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def distance_matrix(
        self,
        origin: str,
        destination: str,
        departure_time: datetime,
        traffic_model: str,
    ) -> Dict[str, Any]:
        resp = self._session.get(
            DISTANCE_MATRIX_URL,
            params={
                "origins": origin,
                "destinations": destination,
                "mode": "driving",
                "departure_time": _unix_departure(departure_time),
                "traffic_model": traffic_model,
                "key": self._api_key,
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()
        return resp.json()


def _unix_departure(when: datetime, now: Optional[datetime] = None) -> int:
    # The API rejects departure times in the past.
    now = now or datetime.now(timezone.utc)
    return int(max(when, now).timestamp())


def extract_duration_seconds(payload: Dict[str, Any]) -> Optional[int]:
    """Pull the traffic-aware duration for the single origin/destination pair.

    Returns None when the response or element is not OK, or when neither
    ``duration_in_traffic`` nor ``duration`` carries a value.
    """
    if payload.get("status") != "OK":
        return None
    rows = payload.get("rows") or []
    if not rows:
        return None
    elements = rows[0].get("elements") or []
    if not elements:
        return None
    element = elements[0]
    if element.get("status") != "OK":
        return None

    for field in ("duration_in_traffic", "duration"):
        value = (element.get(field) or {}).get("value")
        if value is not None:
            return int(value)
    return None


def describe_failure(payload: Dict[str, Any]) -> str:
    status = payload.get("status", "<missing>")
    if status != "OK":
        message = payload.get("error_message")
        return f"status={status}" + (f" ({message})" if message else "")
    try:
        element_status = payload["rows"][0]["elements"][0].get("status", "<missing>")
    except (KeyError, IndexError, TypeError, AttributeError):
        return "no route elements in response"
    if element_status != "OK":
        return f"element status={element_status}"
    return "no duration in route element"
