"""Free time slot search on a machine within a week.

Workday bounds are minutes after midnight in the shop timezone
(``settings.SCHEDULE_TIMEZONE``); ``parse_hhmm`` converts "HH:MM" settings.
Blocks are expected to carry timezone-aware datetimes, as stored in the
database.
"""

import re
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

from creamery.core.config import settings
from creamery.core.exceptions import ScheduleValidationError
from creamery.models.production import TERMINAL_BLOCK_STATUSES

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


class _TimedBlock(Protocol):
    machine_id: uuid.UUID
    start_time: datetime
    end_time: datetime
    status: str


@dataclass(frozen=True)
class TimeSlot:
    """A window of exactly the required length at the start of a free gap."""

    start_time: datetime
    end_time: datetime
    available_minutes: float


_HHMM = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """Parse "H:MM" or "HH:MM" (00:00 to 23:59) into minutes after midnight."""
    match = _HHMM.match(value) if isinstance(value, str) else None
    if match is None:
        raise ScheduleValidationError(f"Invalid time of day: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ScheduleValidationError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


def schedule_timezone() -> tzinfo:
    return ZoneInfo(settings.SCHEDULE_TIMEZONE)


def day_window(
    day: date, start_minutes: int, end_minutes: int, tz: tzinfo | None = None
) -> tuple[datetime, datetime]:
    """Return the [start, end) working window of a calendar day."""
    tz = tz or schedule_timezone()
    midnight = datetime.combine(day, time(0, 0), tzinfo=tz)
    return (
        midnight + timedelta(minutes=start_minutes),
        midnight + timedelta(minutes=end_minutes),
    )


def week_days(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(7)]


def _minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60.0


def find_slots(
    week_start: date,
    work_days: Iterable[str],
    day_start_minutes: int,
    day_end_minutes: int,
    required_minutes: float,
    existing_blocks: Sequence[_TimedBlock],
    machine_id: uuid.UUID,
    tz: tzinfo | None = None,
) -> list[TimeSlot]:
    """Find every free window on ``machine_id`` long enough for the job.

    Walks the seven days starting at ``week_start``, skipping days not listed
    in ``work_days``. Within a working day the live blocks of the machine that
    overlap the window are sorted by start time and each gap of at least
    ``required_minutes`` yields one slot anchored at the gap start. Slots are
    returned in chronological order.
    """
    if day_end_minutes <= day_start_minutes:
        raise ScheduleValidationError("Workday end must be after workday start")
    if required_minutes <= 0:
        raise ScheduleValidationError("Required minutes must be positive")

    tz = tz or schedule_timezone()
    wanted_days = set(work_days)
    required = timedelta(minutes=required_minutes)
    machine_blocks = [
        block
        for block in existing_blocks
        if block.machine_id == machine_id and block.status not in TERMINAL_BLOCK_STATUSES
    ]

    slots: list[TimeSlot] = []
    for day in week_days(week_start):
        if WEEKDAY_NAMES[day.weekday()] not in wanted_days:
            continue

        window_start, window_end = day_window(day, day_start_minutes, day_end_minutes, tz)
        day_blocks = sorted(
            (
                block
                for block in machine_blocks
                if block.start_time < window_end and block.end_time > window_start
            ),
            key=lambda block: block.start_time,
        )

        cursor = window_start
        for block in day_blocks:
            if block.start_time > cursor and block.start_time - cursor >= required:
                slots.append(
                    TimeSlot(
                        start_time=cursor,
                        end_time=cursor + required,
                        available_minutes=_minutes_between(cursor, block.start_time),
                    )
                )
            # Blocks may end before the cursor when they overlap each other
            cursor = max(cursor, block.end_time)

        if window_end - cursor >= required:
            slots.append(
                TimeSlot(
                    start_time=cursor,
                    end_time=cursor + required,
                    available_minutes=_minutes_between(cursor, window_end),
                )
            )

    return slots
