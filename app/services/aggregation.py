"""
Attendance aggregation — day normalisation, month and year rollups.

Everything in this module is a pure function over immutable values: no
database access, no clock.  The write path (``attendance_store``) loads the
stored rollup, calls :func:`apply_days` and persists the result, so every
counter that reaches the database is recomputed from the day set and
re-running an aggregation on its own output changes nothing.

Shape of the data::

    YearRecord(employee_id, year)
      └── months: {month_no: MonthRecord}
            └── days: (DayRecord, ...)   # unique dates, sorted
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from enum import Enum

from app.core.clock import ensure_utc, hours_between
from app.core.exceptions import InvalidInterval, ValidationError


class DayStatus(str, Enum):
    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"
    HALF_DAY = "Half-day"
    HOLIDAY = "Holiday"
    LEAVE = "Leave"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


@dataclass(frozen=True)
class DayRecord:
    """One calendar day of attendance.

    ``date`` may arrive as a ``datetime`` or an ISO string (as stored); it is
    truncated to the calendar day during normalisation.
    """

    date: date
    status: DayStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    hours_worked: float | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Counters:
    total_working_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    late_days: int = 0
    half_days: int = 0
    leaves_taken: int = 0

    def __add__(self, other: Counters) -> Counters:
        return Counters(
            total_working_days=self.total_working_days + other.total_working_days,
            present_days=self.present_days + other.present_days,
            absent_days=self.absent_days + other.absent_days,
            late_days=self.late_days + other.late_days,
            half_days=self.half_days + other.half_days,
            leaves_taken=self.leaves_taken + other.leaves_taken,
        )

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class FlaggedDay:
    """A stored day that could not be aggregated and was left out of the counters."""

    day: DayRecord
    reason: str


@dataclass(frozen=True)
class MonthRecord:
    month: int
    days: tuple[DayRecord, ...] = ()
    counters: Counters = Counters()
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    flagged: tuple[FlaggedDay, ...] = ()


@dataclass(frozen=True)
class YearRecord:
    employee_id: int
    year: int
    months: dict[int, MonthRecord] = field(default_factory=dict)
    yearly_summary: Counters = Counters()


_STATUS_COUNTER = {
    DayStatus.PRESENT: "present_days",
    DayStatus.ABSENT: "absent_days",
    DayStatus.LATE: "late_days",
    DayStatus.HALF_DAY: "half_days",
    DayStatus.LEAVE: "leaves_taken",
}


# ── Day normaliser ──────────────────────────────────────────────────
def day_key(value: date | datetime | str) -> date:
    """Truncate a date-ish value to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Not a date: {value!r}")


def compute_day_hours(
    check_in: datetime | None,
    check_out: datetime | None,
    prior: float | None = None,
) -> float | None:
    """Hours between check-in and check-out.

    Without a check-out the prior value is kept; a check-out without a
    check-in yields ``None`` rather than a negative or undefined duration.
    """
    if check_out is None:
        return prior
    if check_in is None:
        return None
    if ensure_utc(check_out) < ensure_utc(check_in):
        raise InvalidInterval(
            f"Check-out {check_out.isoformat()} is before check-in {check_in.isoformat()}"
        )
    return hours_between(check_in, check_out)


def _coerce(day: DayRecord) -> DayRecord:
    try:
        key = day_key(day.date)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid attendance date {day.date!r}") from exc
    try:
        status = DayStatus(day.status)
    except ValueError as exc:
        raise ValidationError(f"Invalid attendance status {day.status!r}") from exc
    check_in = ensure_utc(day.check_in_time)
    check_out = ensure_utc(day.check_out_time)
    return replace(
        day,
        date=key,
        status=status,
        check_in_time=check_in,
        check_out_time=check_out,
        hours_worked=compute_day_hours(check_in, check_out, day.hours_worked),
    )


def normalize_days(days: Iterable[DayRecord]) -> list[DayRecord]:
    """Deduplicate by calendar date (later record wins) and sort by date."""
    merged: dict[date, DayRecord] = {}
    for day in days:
        coerced = _coerce(day)
        merged[coerced.date] = coerced
    return [merged[key] for key in sorted(merged)]


# ── Month aggregator ────────────────────────────────────────────────
def count_days(days: Iterable[DayRecord]) -> Counters:
    totals = dict.fromkeys(Counters.__dataclass_fields__, 0)
    for day in days:
        totals["total_working_days"] += 1
        counter = _STATUS_COUNTER.get(DayStatus(day.status))
        if counter:
            totals[counter] += 1
    return Counters(**totals)


def _check_membership(day: DayRecord, month: int, year: int | None) -> None:
    if day.date.month != month or (year is not None and day.date.year != year):
        expected = f"{year}-{month:02d}" if year is not None else f"month {month}"
        raise ValidationError(f"Day {day.date.isoformat()} does not belong to {expected}")


def _partition(
    days: Iterable[DayRecord], month: int, year: int | None
) -> tuple[list[DayRecord], list[FlaggedDay]]:
    """Split already-stored days into aggregatable ones and flagged ones."""
    kept: list[DayRecord] = []
    flagged: list[FlaggedDay] = []
    for day in days:
        try:
            coerced = _coerce(day)
            _check_membership(coerced, month, year)
        except ValidationError as exc:
            flagged.append(FlaggedDay(day=day, reason=exc.message))
            continue
        kept.append(coerced)
    return kept, flagged


def aggregate_month(
    month: int,
    new_days: Iterable[DayRecord] = (),
    existing: MonthRecord | None = None,
    *,
    year: int | None = None,
) -> MonthRecord:
    """Merge *new_days* into *existing* and recompute every counter.

    New days are validated strictly and raise :class:`ValidationError`;
    corrupt days already stored in *existing* are flagged and skipped so one
    bad row cannot block the month.
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be 1-12, got {month}")

    fresh = []
    for day in new_days:
        coerced = _coerce(day)
        _check_membership(coerced, month, year)
        fresh.append(coerced)

    if existing is None:
        kept, flagged = [], []
        approval = ApprovalStatus.PENDING
        carried: tuple[FlaggedDay, ...] = ()
    else:
        kept, flagged = _partition(existing.days, month, year)
        approval = ApprovalStatus(existing.approval_status)
        carried = existing.flagged

    days = normalize_days([*kept, *fresh])
    return MonthRecord(
        month=month,
        days=tuple(days),
        counters=count_days(days),
        approval_status=approval,
        flagged=(*carried, *flagged),
    )


def merge_months(months: Iterable[MonthRecord], *, year: int | None = None) -> dict[int, MonthRecord]:
    """Collapse records sharing a month number into one, keyed and sorted by month."""
    merged: dict[int, MonthRecord] = {}
    for record in months:
        current = merged.get(record.month)
        if current is None:
            merged[record.month] = aggregate_month(record.month, (), record, year=year)
        else:
            kept, flagged = _partition(record.days, record.month, year)
            combined = aggregate_month(record.month, kept, current, year=year)
            merged[record.month] = replace(
                combined, flagged=(*combined.flagged, *record.flagged, *flagged)
            )
    return dict(sorted(merged.items()))


# ── Year aggregator ─────────────────────────────────────────────────
def summarize_year(months: Iterable[MonthRecord]) -> Counters:
    total = Counters()
    for record in months:
        total = total + record.counters
    return total


def apply_days(record: YearRecord, days: Iterable[DayRecord] = ()) -> YearRecord:
    """Fold *days* into the year record and recompute months and summary together."""
    by_month: dict[int, list[DayRecord]] = defaultdict(list)
    for day in days:
        coerced = _coerce(day)
        if coerced.date.year != record.year:
            raise ValidationError(
                f"Day {coerced.date.isoformat()} does not belong to year {record.year}"
            )
        by_month[coerced.date.month].append(coerced)

    months = merge_months(record.months.values(), year=record.year)
    for month, new_days in by_month.items():
        months[month] = aggregate_month(month, new_days, months.get(month), year=record.year)

    months = dict(sorted(months.items()))
    return replace(record, months=months, yearly_summary=summarize_year(months.values()))


def set_approval(record: YearRecord, month: int, status: ApprovalStatus) -> YearRecord:
    """Return a copy of *record* with *month*'s approval status changed."""
    current = record.months.get(month)
    if current is None:
        raise ValidationError(f"No attendance recorded for month {month}")
    months = {**record.months, month: replace(current, approval_status=ApprovalStatus(status))}
    return replace(record, months=months)
