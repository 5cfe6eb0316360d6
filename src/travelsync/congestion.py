from __future__ import annotations

import logging
from datetime import datetime

from .config import CongestionConfig

logger = logging.getLogger(__name__)

SATURDAY = 5


def multiplier(hour: int, day_of_week: int, config: CongestionConfig) -> float:
    """Return the congestion factor for a local hour (0-23) and weekday (0=Monday)."""
    if not 0 <= hour <= 23:
        raise ValueError(f"hour out of range: {hour}")
    if not 0 <= day_of_week <= 6:
        raise ValueError(f"day_of_week out of range: {day_of_week}")

    if day_of_week < SATURDAY:
        if config.morning_rush.contains(hour) or config.evening_rush.contains(hour):
            logger.debug("Weekday rush at hour %d (day %d): x%.2f", hour, day_of_week, config.weekday_rush_multiplier)
            return config.weekday_rush_multiplier
    elif config.weekend_busy.contains(hour):
        logger.debug("Weekend busy at hour %d (day %d): x%.2f", hour, day_of_week, config.weekend_busy_multiplier)
        return config.weekend_busy_multiplier
    return 1.0


def multiplier_for(when: datetime, config: CongestionConfig) -> float:
    return multiplier(when.hour, when.weekday(), config)
