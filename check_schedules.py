#!/usr/bin/env python3
"""Print every schedule and whether it should be active right now."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

try:
    from zonecast.models import get_session, Schedule, Zone, Environment
    from zonecast.schedule_evaluator import local_now, day_of_week, schedule_matches, active_schedule

    DAY_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

    print("🕐 Schedule Check")
    print("=" * 40)

    with get_session() as session:
        rows = (
            session.query(Schedule, Zone, Environment)
            .join(Zone, Schedule.zone_id == Zone.id)
            .join(Environment, Zone.environment_id == Environment.id)
            .order_by(Schedule.start_time)
            .all()
        )

        print(f"Found {len(rows)} schedules:")
        print()

        for sched, zone, env in rows:
            now = local_now(env.timezone)
            end = sched.end_time.strftime('%H:%M') if sched.end_time else 'end of day'
            days = ','.join(DAY_NAMES[d] for d in sched.days if 0 <= d <= 6)

            print(f"{'✅' if sched.enabled else '❌'} {sched.name}")
            print(f"  Zone: {zone.name} ({env.name}, TZ: {env.timezone})")
            print(f"  Days: {days}")
            print(f"  Time: {sched.start_time.strftime('%H:%M')} - {end}")
            print(f"  Playlist: {sched.playlist_name or sched.playlist_uri}")
            print(f"  Local now: {now:%a %H:%M:%S} (day={day_of_week(now)})")

            if sched.enabled and schedule_matches(sched, now):
                winner = active_schedule(session, zone.id)
                if winner is not None and winner.id == sched.id:
                    print("  🔊 SHOULD BE ACTIVE NOW")
                else:
                    print(f"  ⭕ In window, but '{winner.name}' starts earlier and wins")
            print()

except Exception as e:
    print(f"❌ ERROR: {e}")
    import traceback
    traceback.print_exc()
