from __future__ import annotations

import logging
import os
import sys
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .calendar_google import GoogleCalendarProvider
from .config import AppConfig, ConfigError, load_config
from .events import fetch_window, is_anchor
from .models import CalendarNotFoundError, CalendarProvider, RoutingProvider
from .reconcile import AnchorResult, AnchorStatus, TravelReconciler
from .routing import GoogleDistanceMatrixClient
from .travel import TravelTimeEstimator

logger = logging.getLogger(__name__)

CONFIG_PATH_DEFAULT = "/opt/travelsync/config.yaml"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class RunSummary:
    fetched: int = 0
    results: List[AnchorResult] = field(default_factory=list)

    def counts(self) -> Counter:
        return Counter(r.status for r in self.results)


def run_once(
    cfg: AppConfig,
    calendar: CalendarProvider,
    routing: RoutingProvider,
    now: Optional[datetime] = None,
) -> RunSummary:
    """Reconcile every anchor event in the look-ahead horizon, one at a time.

    Raises CalendarNotFoundError when the calendar cannot be resolved; every
    other failure is contained to the anchor it happened on.
    """
    tz = ZoneInfo(cfg.timezone)
    now = now or datetime.now(tz=tz)

    handle = calendar.resolve(cfg.calendar_id)
    events = fetch_window(calendar, handle, now, cfg.lookahead_days)
    anchors = [e for e in events if is_anchor(e, cfg.travel)]
    logger.info(
        "Fetched %d events from %s; %d have a location to travel to",
        len(events),
        handle.summary or handle.calendar_id,
        len(anchors),
    )

    estimator = TravelTimeEstimator(routing, cfg.congestion, cfg.travel.traffic_model)
    reconciler = TravelReconciler(calendar, estimator, cfg)
    summary = RunSummary(fetched=len(events))

    for anchor in anchors:
        try:
            result = reconciler.reconcile_anchor(handle, anchor)
        except Exception as e:
            logger.exception(
                "Unexpected error on '%s' [%s - %s]; skipping",
                anchor.title,
                anchor.start.isoformat(),
                anchor.end.isoformat(),
            )
            result = AnchorResult(anchor, AnchorStatus.ERROR, error=str(e))
        summary.results.append(result)

    counts = summary.counts()
    logger.info(
        "Run complete: %d reconciled, %d estimation failures, %d write failures, %d errors",
        counts[AnchorStatus.RECONCILED],
        counts[AnchorStatus.ESTIMATION_FAILED],
        counts[AnchorStatus.WRITE_FAILED],
        counts[AnchorStatus.ERROR],
    )
    return summary


def main() -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    load_dotenv()
    config_path = os.environ.get("TRAVELSYNC_CONFIG", CONFIG_PATH_DEFAULT)

    try:
        cfg = load_config(config_path)
        calendar = GoogleCalendarProvider.from_files(
            cfg.google_credentials_path, cfg.google_token_path, ZoneInfo(cfg.timezone)
        )
        run_once(cfg, calendar, GoogleDistanceMatrixClient(cfg.maps_api_key))
    except (ConfigError, CalendarNotFoundError) as e:
        logger.error("Configuration error; aborting run: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
