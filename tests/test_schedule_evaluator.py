"""Tests for picking the active schedule in a zone's local time."""

from datetime import datetime, timezone

from zonecast.models import Environment, Zone
from zonecast.schedule_evaluator import (
    active_schedule, day_of_week, evaluate_all_schedules, local_now, schedule_matches,
)

from conftest import NOW, t


def test_day_of_week_counts_from_sunday():
    assert day_of_week(datetime(2026, 10, 18, 12, 0)) == 0  # Sunday
    assert day_of_week(datetime(2026, 10, 14, 12, 0)) == 3  # Wednesday
    assert day_of_week(datetime(2026, 10, 17, 12, 0)) == 6  # Saturday


def test_schedule_inside_window_is_active(session, zone, add_schedule):
    schedule = add_schedule(t("14:00"), t("15:00"))

    assert active_schedule(session, zone.id, NOW).id == schedule.id


def test_end_time_is_exclusive(session, zone, add_schedule):
    add_schedule(t("13:00"), t("14:30"))

    assert active_schedule(session, zone.id, NOW) is None


def test_start_time_is_inclusive(session, zone, add_schedule):
    schedule = add_schedule(t("14:30"), t("16:00"))

    assert active_schedule(session, zone.id, NOW).id == schedule.id


def test_open_ended_schedule_runs_until_end_of_day(session, zone, add_schedule):
    schedule = add_schedule(t("09:00"), None)

    assert active_schedule(session, zone.id, NOW).id == schedule.id
    late = datetime(2026, 10, 14, 23, 59, 59, tzinfo=timezone.utc)
    assert active_schedule(session, zone.id, late).id == schedule.id


def test_wrong_day_and_disabled_schedules_are_skipped(session, zone, add_schedule):
    add_schedule(t("14:00"), t("15:00"), days="1,2,4,5")
    add_schedule(t("14:10"), t("15:00"), enabled=False)

    assert active_schedule(session, zone.id, NOW) is None


def test_earliest_start_wins_regardless_of_insertion_order(session, zone, add_schedule):
    narrow = add_schedule(t("14:15"), t("14:45"), name="Override")
    broad = add_schedule(t("08:00"), t("18:00"), name="All day")

    assert active_schedule(session, zone.id, NOW).id == broad.id
    assert narrow.id != broad.id


def test_earliest_start_wins_when_inserted_first(session, zone, add_schedule):
    broad = add_schedule(t("08:00"), t("18:00"), name="All day")
    add_schedule(t("14:15"), t("14:45"), name="Override")

    assert active_schedule(session, zone.id, NOW).id == broad.id


def test_time_is_evaluated_in_environment_timezone(session, add_schedule):
    env = Environment(name="NYC", timezone="America/New_York", household_id="hh-2")
    zone = Zone(name="Gallery", environment=env, device_player_ids=["n1"])
    session.add(zone)
    session.commit()

    # 14:30 UTC is 10:30 EDT
    morning = add_schedule(t("10:00"), t("11:00"), zone_id=zone.id)
    add_schedule(t("14:00"), t("15:00"), zone_id=zone.id)

    assert active_schedule(session, zone.id, NOW).id == morning.id


def test_local_day_differs_from_utc_day(session, add_schedule):
    env = Environment(name="NYC", timezone="America/New_York", household_id="hh-2")
    zone = Zone(name="Gallery", environment=env, device_player_ids=["n1"])
    session.add(zone)
    session.commit()

    # Wednesday 02:00 UTC is Tuesday 22:00 in New York
    tuesday_night = add_schedule(t("21:00"), None, days="2", zone_id=zone.id)
    moment = datetime(2026, 10, 14, 2, 0, tzinfo=timezone.utc)

    assert active_schedule(session, zone.id, moment).id == tuesday_night.id


def test_zone_without_schedules_has_none(session, zone):
    assert active_schedule(session, zone.id, NOW) is None


def test_schedule_matches_truncates_to_seconds(add_schedule):
    schedule = add_schedule(t("14:00"), t("14:30"))
    just_before_end = datetime(2026, 10, 14, 14, 29, 59, 999999)

    assert schedule_matches(schedule, just_before_end)


def test_unknown_timezone_falls_back_to_utc():
    assert local_now("Not/AZone", NOW).utcoffset().total_seconds() == 0


def test_evaluate_all_schedules_covers_every_zone(session, zone, environment, add_schedule):
    other = Zone(name="Cafe", environment=environment, device_player_ids=["p3"])
    session.add(other)
    session.commit()
    schedule = add_schedule(t("14:00"), t("15:00"))

    results = evaluate_all_schedules(session, NOW)

    assert [(z.name, s.id if s else None) for z, s in results] == [("Cafe", None), ("Lobby", schedule.id)]
