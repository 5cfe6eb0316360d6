from datetime import datetime

import pytest

from helpers import TZ, FakeCalendar, StubRouting, event, make_config
from travelsync import main as main_module
from travelsync.config import MatchPolicy
from travelsync.main import run_once
from travelsync.models import CalendarNotFoundError
from travelsync.reconcile import AnchorStatus

NOW = datetime(2026, 2, 5, 6, 0, tzinfo=TZ)


def _at(hour: int, minute: int = 0, day: int = 5) -> datetime:
    return datetime(2026, 2, day, hour, minute, tzinfo=TZ)


def test_run_reconciles_each_anchor_and_skips_others():
    calendar = FakeCalendar([
        event("a1", "Dentist", _at(10), _at(11), location="12 Tooth Ave"),
        event("a2", "Standup", _at(12), _at(12, 15)),
        event("a3", "Offsite", _at(0, day=6), _at(0, day=7), location="HQ", all_day=True),
        event("t1", "Travel to Dentist", _at(9), _at(10)),
    ])

    summary = run_once(make_config(), calendar, StubRouting(seconds=1500), now=NOW)

    assert summary.fetched == 4
    assert [r.anchor.event_id for r in summary.results] == ["a1"]
    assert summary.counts()[AnchorStatus.RECONCILED] == 1
    assert calendar.events["t1"].start == _at(9, 35)


def test_unresolvable_calendar_aborts_before_processing():
    calendar = FakeCalendar([event("a1", "Dentist", _at(10), _at(11), location="12 Tooth Ave")], calendar_id="other")
    routing = StubRouting()

    with pytest.raises(CalendarNotFoundError):
        run_once(make_config(), calendar, routing, now=NOW)

    assert routing.calls == []


def test_unexpected_error_skips_only_that_anchor():
    class FlakyRouting(StubRouting):
        def distance_matrix(self, origin, destination, departure_time, traffic_model):
            if "Broken" in destination:
                raise KeyError("boom")
            return super().distance_matrix(origin, destination, departure_time, traffic_model)

    calendar = FakeCalendar([
        event("a1", "Broken", _at(10), _at(11), location="Broken Rd"),
        event("a2", "Lunch", _at(13), _at(14), location="Cafe"),
    ])

    summary = run_once(make_config(), calendar, FlakyRouting(seconds=600), now=NOW)

    statuses = {r.anchor.event_id: r.status for r in summary.results}
    assert statuses == {"a1": AnchorStatus.ERROR, "a2": AnchorStatus.RECONCILED}
    assert sorted(e.title for e in calendar.created) == ["Travel from Lunch", "Travel to Lunch"]


def test_run_twice_produces_identical_spans():
    calendar = FakeCalendar([event("a1", "Dentist", _at(10), _at(11), location="12 Tooth Ave")])
    routing = StubRouting(seconds=1500)

    run_once(make_config(), calendar, routing, now=NOW)
    first = {e.event_id: (e.start, e.end) for e in calendar.events.values()}
    run_once(make_config(), calendar, routing, now=NOW)

    assert {e.event_id: (e.start, e.end) for e in calendar.events.values()} == first


def test_main_exits_non_zero_on_config_error(monkeypatch, tmp_path):
    monkeypatch.setenv("TRAVELSYNC_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setattr(main_module, "load_dotenv", lambda: None)

    with pytest.raises(SystemExit) as exc:
        main_module.main()

    assert exc.value.code == 1


def test_radius_policy_keeps_each_anchor_its_own_placeholders_across_runs():
    calendar = FakeCalendar([
        event("a1", "Dentist", _at(10), _at(11), location="12 Tooth Ave"),
        event("a2", "Lunch", _at(12), _at(13), location="Cafe"),
    ])
    cfg = make_config(match_policy=MatchPolicy.RADIUS)
    routing = StubRouting(seconds=1500)

    run_once(cfg, calendar, routing, now=NOW)
    first = sorted((e.title, e.start, e.end) for e in calendar.events.values())
    run_once(cfg, calendar, routing, now=NOW)

    assert sorted((e.title, e.start, e.end) for e in calendar.events.values()) == first
    assert ("Travel from Dentist", _at(11), _at(11, 25)) in first
    assert ("Travel to Lunch", _at(11, 35), _at(12)) in first
    assert len(calendar.created) == 4
    assert calendar.updates == []


def test_read_error_while_locating_skips_only_that_anchor():
    class FlakyReadCalendar(FakeCalendar):
        reads = 0

        def get_events(self, handle, start, end):
            self.reads += 1
            if self.reads == 2:
                raise OSError("connection reset by peer")
            return super().get_events(handle, start, end)

    calendar = FlakyReadCalendar([
        event("a1", "Dentist", _at(10), _at(11), location="12 Tooth Ave"),
        event("a2", "Lunch", _at(13), _at(14), location="Cafe"),
    ])

    summary = run_once(make_config(), calendar, StubRouting(seconds=600), now=NOW)

    statuses = {r.anchor.event_id: r.status for r in summary.results}
    assert statuses == {"a1": AnchorStatus.ERROR, "a2": AnchorStatus.RECONCILED}
    assert "connection reset" in summary.results[0].error
    assert sorted(e.title for e in calendar.created) == ["Travel from Lunch", "Travel to Lunch"]
