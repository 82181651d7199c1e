"""
Check-in reconciler: window, geofence, arrival status, check-out hours,
fingerprint verification and fire-and-forget notifications.
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (AlreadyCheckedIn, AlreadyCheckedOut,
                                 FingerprintMismatch, FingerprintNotRegistered,
                                 NotCheckedIn, OutsideGeofence, OutsideWindow)
from app.core.security import hash_credential
from app.models.checkin import CheckIn
from app.models.notification import Notification
from app.services import reconciler
from app.services.attendance_store import read_year
from app.services.notifications import NotificationEmitter

OFFICE_LAT, OFFICE_LON = 10.8261981, 77.0608064
# ~610 km north of the office
FAR_LAT = OFFICE_LAT + 5.5


def local(hour: int, minute: int = 0) -> datetime:
    """2025-03-10 at *hour:minute* office time (+05:30), as UTC."""
    office = timezone(timedelta(hours=5, minutes=30))
    return datetime(2025, 3, 10, hour, minute, tzinfo=office).astimezone(timezone.utc)


async def _count_events(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(CheckIn.id)))


async def test_check_in_inside_geofence(db_session, make_employee, rules):
    emp = await make_employee()
    event = await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9, 5)
    )
    assert event.date == "2025-03-10"
    assert event.status == "Present"
    assert event.is_auto is False
    assert event.verified is False
    assert event.attendance_year_id is not None

    record = await read_year(db_session, emp.id, 2025)
    assert record.months[3].counters.present_days == 1
    assert record.yearly_summary.total_working_days == 1


async def test_check_in_outside_geofence_writes_nothing(db_session, make_employee, rules):
    emp = await make_employee()
    with pytest.raises(OutsideGeofence):
        await reconciler.check_in(
            db_session, emp, latitude=FAR_LAT, longitude=OFFICE_LON, rules=rules, now=local(9, 5)
        )
    assert await _count_events(db_session) == 0
    assert await read_year(db_session, emp.id, 2025) is None


@pytest.mark.parametrize("hour,minute", [(8, 59), (19, 0), (23, 30)])
async def test_check_in_outside_window(db_session, make_employee, rules, hour, minute):
    emp = await make_employee()
    with pytest.raises(OutsideWindow):
        await reconciler.check_in(
            db_session,
            emp,
            latitude=OFFICE_LAT,
            longitude=OFFICE_LON,
            rules=rules,
            now=local(hour, minute),
        )
    assert await _count_events(db_session) == 0


@pytest.mark.parametrize(
    "hour,minute,expected",
    [(9, 0, "Present"), (9, 15, "Present"), (9, 16, "Late"), (13, 0, "Late"), (13, 1, "Half-day")],
)
async def test_arrival_classification(db_session, make_employee, rules, hour, minute, expected):
    emp = await make_employee()
    event = await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(hour, minute)
    )
    assert event.status == expected


async def test_second_check_in_same_day_rejected(db_session, make_employee, rules):
    emp = await make_employee()
    await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9)
    )
    with pytest.raises(AlreadyCheckedIn):
        await reconciler.check_in(
            db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(10)
        )
    assert await _count_events(db_session) == 1


async def test_check_out_computes_hours(db_session, make_employee, rules):
    emp = await make_employee()
    await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9)
    )
    event = await reconciler.check_out(db_session, emp, rules=rules, now=local(17, 30))
    assert event.hours_worked == 8.5

    record = await read_year(db_session, emp.id, 2025)
    [stored] = record.months[3].days
    assert stored.hours_worked == pytest.approx(8.5)
    assert stored.check_out_time == local(17, 30)

    with pytest.raises(AlreadyCheckedOut):
        await reconciler.check_out(db_session, emp, rules=rules, now=local(18))


async def test_check_out_without_check_in(db_session, make_employee, rules):
    emp = await make_employee()
    with pytest.raises(NotCheckedIn):
        await reconciler.check_out(db_session, emp, rules=rules, now=local(17))


async def test_check_out_after_local_midnight_does_not_find_event(db_session, make_employee, rules):
    emp = await make_employee()
    emp_id = emp.id
    await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(18)
    )
    after_midnight = local(23, 30) + timedelta(hours=1)

    with pytest.raises(NotCheckedIn):
        await reconciler.check_out(db_session, emp, rules=rules, now=after_midnight)

    event = await reconciler.find_event(db_session, emp_id, "2025-03-10")
    assert event.check_out_time is None


async def test_today_status(db_session, make_employee, rules):
    emp = await make_employee()
    before = await reconciler.today_status(db_session, emp.id, rules=rules, now=local(9))
    assert before.checked_in is False

    await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9, 30)
    )
    after = await reconciler.today_status(db_session, emp.id, rules=rules, now=local(11))
    assert after.checked_in is True
    assert after.checked_out is False
    assert after.status == "Late"


# ── Fingerprint ─────────────────────────────────────────────────────
async def test_verify_requires_registration(db_session, make_employee, rules):
    emp = await make_employee()
    with pytest.raises(FingerprintNotRegistered):
        await reconciler.verify_fingerprint(db_session, emp, "anything-123", rules=rules, now=local(9))


async def test_verify_match_sets_flag(db_session, make_employee, rules):
    emp = await make_employee(fingerprint_hash=hash_credential("finger-blob-1"), is_registered=True)
    await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9)
    )
    event = await reconciler.verify_fingerprint(
        db_session, emp, "finger-blob-1", rules=rules, now=local(9, 1)
    )
    assert event.verified is True


async def test_verify_mismatch_changes_nothing(db_session, make_employee, rules):
    emp = await make_employee(fingerprint_hash=hash_credential("finger-blob-1"), is_registered=True)
    event = await reconciler.check_in(
        db_session, emp, latitude=OFFICE_LAT, longitude=OFFICE_LON, rules=rules, now=local(9)
    )
    with pytest.raises(FingerprintMismatch):
        await reconciler.verify_fingerprint(
            db_session, emp, "someone-else", rules=rules, now=local(9, 1)
        )
    await db_session.refresh(event)
    assert event.verified is False


async def test_verify_without_check_in(db_session, make_employee, rules):
    emp = await make_employee(fingerprint_hash=hash_credential("finger-blob-1"), is_registered=True)
    with pytest.raises(NotCheckedIn):
        await reconciler.verify_fingerprint(db_session, emp, "finger-blob-1", rules=rules, now=local(9))


# ── Notifications ───────────────────────────────────────────────────
async def test_check_in_notifies_admins(
    db_session, make_employee, rules, notifier, broadcaster, session_factory
):
    emp = await make_employee(name="Asha")
    queue = broadcaster.subscribe()
    await reconciler.check_in(
        db_session,
        emp,
        latitude=OFFICE_LAT,
        longitude=OFFICE_LON,
        rules=rules,
        now=local(9, 5),
        notifier=notifier,
    )
    event = queue.get_nowait()
    assert event["type"] == "checkin_notification"
    assert event["employee"] == "Asha"
    assert event["time"] == "09:05"

    async with session_factory() as other:
        stored = (await other.execute(select(Notification))).scalars().all()
    assert [n.recipient_type for n in stored] == ["admin"]


class _BrokenBroadcaster:
    async def publish(self, event):
        raise RuntimeError("socket gone")


def _broken_session_factory():
    raise RuntimeError("database unavailable")


async def test_notification_failure_keeps_check_in(db_session, make_employee, rules):
    emp = await make_employee()
    notifier = NotificationEmitter(_broken_session_factory, _BrokenBroadcaster())  # type: ignore[arg-type]
    event = await reconciler.check_in(
        db_session,
        emp,
        latitude=OFFICE_LAT,
        longitude=OFFICE_LON,
        rules=rules,
        now=local(9),
        notifier=notifier,
    )
    assert event.id is not None
    assert await _count_events(db_session) == 1
