from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import os

import yaml


class ConfigError(RuntimeError):
    """Raised when the configuration file or environment is invalid."""


class MatchPolicy(str, Enum):
    STRICT = "strict"
    RADIUS = "radius"


class MarkerMode(str, Enum):
    PREFIX = "prefix"
    CONTAINS = "contains"


@dataclass(frozen=True)
class HourRange:
    start: int
    end: int

    def contains(self, hour: int) -> bool:
        return self.start <= hour < self.end


@dataclass(frozen=True)
class CongestionConfig:
    weekday_rush_multiplier: float = 1.5
    morning_rush: HourRange = HourRange(7, 10)
    evening_rush: HourRange = HourRange(16, 19)
    weekend_busy_multiplier: float = 1.2
    weekend_busy: HourRange = HourRange(10, 18)


@dataclass(frozen=True)
class TravelConfig:
    marker: str = "Travel"
    marker_mode: MarkerMode = MarkerMode.PREFIX
    search_radius_hours: float = 3.0
    match_policy: MatchPolicy = MatchPolicy.STRICT
    create_missing: bool = True
    traffic_model: str = "best_guess"


@dataclass(frozen=True)
class AppConfig:
    timezone: str
    calendar_id: str
    home_address: str
    lookahead_days: int
    maps_api_key: str
    travel: TravelConfig
    congestion: CongestionConfig
    google_credentials_path: str = ""
    google_token_path: str = ""


def _hour_range(data: Dict[str, Any], default: HourRange, name: str) -> HourRange:
    start = int(data.get("start", default.start))
    end = int(data.get("end", default.end))
    if not (0 <= start <= 24 and 0 <= end <= 24) or start > end:
        raise ConfigError(f"Invalid hour range for {name}: [{start}, {end})")
    return HourRange(start, end)


def _enum_value(enum_cls, raw: Any, name: str):
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid {name} {raw!r}; expected one of: {allowed}") from None


def load_config(path: str, env: Optional[Dict[str, str]] = None) -> AppConfig:
    env = os.environ if env is None else env
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")
    data: Dict[str, Any] = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    travel = data.get("travel", {}) or {}
    congestion = data.get("congestion", {}) or {}
    defaults = CongestionConfig()

    home_address = str(data.get("home_address", "") or "").strip()
    if not home_address:
        raise ConfigError("home_address is required")

    timezone = str(data.get("timezone", "America/Phoenix"))
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigError(f"Unknown timezone: {timezone!r}") from None

    credentials_path = env.get("GOOGLE_CREDENTIALS_JSON", "").strip()
    token_path = env.get("GOOGLE_TOKEN_JSON", "").strip()
    if not credentials_path or not token_path:
        raise ConfigError("GOOGLE_CREDENTIALS_JSON and GOOGLE_TOKEN_JSON must both be set")

    maps_api_key = env.get("GOOGLE_MAPS_API_KEY", "").strip()
    if not maps_api_key:
        raise ConfigError("GOOGLE_MAPS_API_KEY is not set")

    lookahead_days = int(data.get("lookahead_days", 7))
    if lookahead_days <= 0:
        raise ConfigError("lookahead_days must be positive")

    marker = str(travel.get("marker", "Travel")).strip()
    if not marker:
        raise ConfigError("travel.marker must not be empty")

    search_radius_hours = float(travel.get("search_radius_hours", 3))
    if search_radius_hours <= 0:
        raise ConfigError("travel.search_radius_hours must be positive")

    return AppConfig(
        timezone=timezone,
        calendar_id=str(data.get("calendar_id", "primary")),
        home_address=home_address,
        lookahead_days=lookahead_days,
        maps_api_key=maps_api_key,
        travel=TravelConfig(
            marker=marker,
            marker_mode=_enum_value(MarkerMode, travel.get("marker_mode", "prefix"), "travel.marker_mode"),
            search_radius_hours=search_radius_hours,
            match_policy=_enum_value(MatchPolicy, travel.get("match_policy", "strict"), "travel.match_policy"),
            create_missing=bool(travel.get("create_missing", True)),
            traffic_model=str(travel.get("traffic_model", "best_guess")),
        ),
        congestion=CongestionConfig(
            weekday_rush_multiplier=float(
                congestion.get("weekday_rush_multiplier", defaults.weekday_rush_multiplier)
            ),
            morning_rush=_hour_range(congestion.get("morning_rush", {}) or {}, defaults.morning_rush, "morning_rush"),
            evening_rush=_hour_range(congestion.get("evening_rush", {}) or {}, defaults.evening_rush, "evening_rush"),
            weekend_busy_multiplier=float(
                congestion.get("weekend_busy_multiplier", defaults.weekend_busy_multiplier)
            ),
            weekend_busy=_hour_range(congestion.get("weekend_busy", {}) or {}, defaults.weekend_busy, "weekend_busy"),
        ),
        google_credentials_path=credentials_path,
        google_token_path=token_path,
    )
