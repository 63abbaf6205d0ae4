# Date/time phrase recognition for the rule-based extractor.
# Created: 2026-10-02
#
# Every result here is built from integer calendar fields and formatted by
# hand. Nothing is converted to UTC, so "2026年2月14日 00:00" stays on the
# 14th whatever the host timezone is.

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

DEFAULT_START_HOUR = 9
DEFAULT_START_MINUTE = 0
DEFAULT_EVENT_DURATION_MINUTES = 60

# Alternatives are ordered by specificity. Callers scan matches left to
# right and keep the first one that names a real calendar day.
DATE_PATTERN = re.compile(
    r"(\d{4})[年.\-]?(\d{1,2})[月.\-]?(\d{1,2})日?"  # 1-3: YYYY年MM月DD日 / YYYY-MM-DD / YYYY.MM.DD
    r"|(?<!\d)(\d{1,2})/(\d{1,2})/(\d{1,2})(?!\d)"  # 4-6: MM/DD/YY
    r"|今天|明天|后天|下周|下个月|明年"
    r"|(?<!\d)(\d{1,3})天后"  # 7
    r"|(?<!\d)(\d{1,3})周后"  # 8
    r"|(?<!\d)(\d{1,2})年后"  # 9
)

TIME_PATTERN = re.compile(
    r"(\d{1,2})[:：](\d{2})"  # 1-2: HH:mm / HH：mm
    r"|(\d{1,2})点(?:(\d{1,2})分?)?"  # 3-4: HH点[mm分]
    r"|上午|下午|晚上|早上|中午|凌晨"
)

# 中午 ("noon") shares 18:00 with 晚上; kept as-is until product intent is clarified.
TIME_MARKERS: dict[str, str] = {
    "上午": "09:00",
    "早上": "09:00",
    "凌晨": "09:00",
    "下午": "14:00",
    "晚上": "18:00",
    "中午": "18:00",
}

_RELATIVE_DAYS = {"今天": 0, "明天": 1, "后天": 2, "下周": 7}


def _format_date(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _format_datetime(value: datetime) -> str:
    return (
        f"{_format_date(value.year, value.month, value.day)}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def _add_years(base: date, years: int) -> date:
    try:
        return base.replace(year=base.year + years)
    except ValueError:
        # Feb 29 -> Feb 28 in a non-leap target year
        return base.replace(year=base.year + years, day=28)


def parse_date(match: re.Match[str] | None, today: date) -> str | None:
    """Convert a DATE_PATTERN match into a local ``YYYY-MM-DD`` string.

    Relative phrases are resolved against *today*. Returns None when the
    match is missing or names a day that does not exist (e.g. 2月30日).
    """
    if match is None:
        return None

    text = match.group(0)

    if match.group(1):
        year, month, day = int(match.group(1)), int(match.group(2)), int(match.group(3))
    elif match.group(4):
        month, day = int(match.group(4)), int(match.group(5))
        year = 2000 + int(match.group(6))
    elif text in _RELATIVE_DAYS:
        target = today + timedelta(days=_RELATIVE_DAYS[text])
        year, month, day = target.year, target.month, target.day
    elif text == "下个月":
        if today.month == 12:
            year, month = today.year + 1, 1
        else:
            year, month = today.year, today.month + 1
        day = 1
    elif text == "明年":
        year, month, day = today.year + 1, 1, 1
    elif match.group(7):
        target = today + timedelta(days=int(match.group(7)))
        year, month, day = target.year, target.month, target.day
    elif match.group(8):
        target = today + timedelta(weeks=int(match.group(8)))
        year, month, day = target.year, target.month, target.day
    elif match.group(9):
        target = _add_years(today, int(match.group(9)))
        year, month, day = target.year, target.month, target.day
    else:
        return None

    try:
        date(year, month, day)
    except ValueError:
        return None

    return _format_date(year, month, day)


def parse_time(match: re.Match[str] | None) -> str | None:
    """Convert a TIME_PATTERN match into ``HH:MM``.

    Qualitative markers map to fixed hours (see TIME_MARKERS). Explicit
    times outside 00:00-23:59 are rejected so the default start applies.
    """
    if match is None:
        return None

    text = match.group(0)
    if text in TIME_MARKERS:
        return TIME_MARKERS[text]

    if match.group(1) is not None:
        hours, minutes = int(match.group(1)), int(match.group(2))
    elif match.group(3) is not None:
        hours = int(match.group(3))
        minutes = int(match.group(4)) if match.group(4) is not None else 0
    else:
        return None

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return None

    return f"{hours:02d}:{minutes:02d}"


def _split_time(time: str | None) -> tuple[int, int]:
    if not time:
        return DEFAULT_START_HOUR, DEFAULT_START_MINUTE
    hours, minutes = time.split(":")[:2]
    return int(hours), int(minutes)


def combine_date_time(date_str: str | None, time: str | None) -> str | None:
    """Join ``YYYY-MM-DD`` and ``HH:MM`` into ``YYYY-MM-DDTHH:MM:00``.

    Missing time defaults to 09:00.
    """
    if not date_str:
        return None

    year, month, day = (int(part) for part in date_str.split("-"))
    hours, minutes = _split_time(time)
    return f"{_format_date(year, month, day)}T{hours:02d}:{minutes:02d}:00"


def calculate_end_date(
    date_or_start: str | None,
    time: str | None = None,
    duration_minutes: int | None = None,
) -> str | None:
    """Add the event duration to a start and return the end timestamp.

    *date_or_start* may be a full ISO timestamp (``YYYY-MM-DDTHH[:MM[:SS]]``)
    or a bare ``YYYY-MM-DD`` date (combined with *time*, default 09:00).
    Day, month and year boundaries roll over on the wall-clock fields as
    written. Returns None when the start cannot be parsed.
    """
    if not date_or_start:
        return None

    if duration_minutes is None:
        duration_minutes = DEFAULT_EVENT_DURATION_MINUTES

    try:
        if "T" in date_or_start:
            start = datetime.fromisoformat(date_or_start.strip()).replace(tzinfo=None)
        else:
            year, month, day = (int(part) for part in date_or_start.split("-"))
            hours, minutes = _split_time(time)
            start = datetime(year, month, day, hours, minutes)
    except ValueError:
        return None

    return _format_datetime(start + timedelta(minutes=duration_minutes))


def parse_local_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an event timestamp into a naive local datetime.

    Offset-carrying values (e.g. ``...Z`` from an AI reply) are converted
    to the host's local wall clock. Returns None for empty or invalid input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip())
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
