"""Parsing of the textual timestamps NiFi puts in its JSON documents.

NiFi renders timestamps in a handful of shapes depending on the field
(`lastRefreshed` is a bare time of day, bulletins carry a full date, ...).
Each shape is one entry in `TIMESTAMP_PARSERS`; they are tried in order and
the first one that matches wins.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


_UTC_ALIASES = {"UTC", "GMT", "Z"}
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")

# Zone abbreviations NiFi prints on servers not running in UTC, as fixed
# offsets in minutes. IST is India Standard Time, matching the JVM's reading.
_ZONE_ABBREVIATIONS = {
    "HST": -600,
    "AKST": -540,
    "AKDT": -480,
    "PST": -480,
    "PDT": -420,
    "MST": -420,
    "MDT": -360,
    "CST": -360,
    "CDT": -300,
    "EST": -300,
    "EDT": -240,
    "WET": 0,
    "WEST": 60,
    "BST": 60,
    "CET": 60,
    "CEST": 120,
    "EET": 120,
    "EEST": 180,
    "MSK": 180,
    "IST": 330,
    "SGT": 480,
    "JST": 540,
    "KST": 540,
    "AEST": 600,
    "AEDT": 660,
    "NZST": 720,
    "NZDT": 780,
}

_TIME_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2}) (\S+)$")
_DATE_TIME_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4}) (\d{2}):(\d{2}):(\d{2}) (\S+)$")
_TIMESTAMP_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4}) (\d{2}):(\d{2}):(\d{2})\.(\d{3}) (\S+)$")
_ZONE_RE = re.compile(r"^(\S+)$")


class TimestampParseError(ValueError):
    """No known timestamp shape matched the value."""

    def __init__(self, value: str, failures: List[str]) -> None:
        super().__init__(f"Unable to parse value {value!r} ({'; '.join(failures)})")
        self.value = value
        self.failures = failures


def resolve_zone(name: str) -> Optional[tzinfo]:
    """Resolve `UTC`/`GMT`/`Z`, a common abbreviation, a numeric offset or an IANA zone name."""
    key = str(name or "").strip()
    if not key:
        return None
    if key.upper() in _UTC_ALIASES:
        return timezone.utc
    if key.upper() in _ZONE_ABBREVIATIONS:
        return timezone(timedelta(minutes=_ZONE_ABBREVIATIONS[key.upper()]), key.upper())
    m = _OFFSET_RE.match(key)
    if m:
        sign = -1 if m.group(1) == "-" else 1
        return timezone(sign * timedelta(hours=int(m.group(2)), minutes=int(m.group(3))))
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _zone_or_fail(name: str) -> tzinfo:
    tz = resolve_zone(name)
    if tz is None:
        raise ValueError(f"unknown time zone {name!r}")
    return tz


def _parse_time_of_day(text: str, now: datetime) -> Optional[datetime]:
    m = _TIME_RE.match(text)
    if not m:
        return None
    tz = _zone_or_fail(m.group(4))
    today: date = now.astimezone(tz).date()
    return datetime(
        today.year, today.month, today.day,
        int(m.group(1)), int(m.group(2)), int(m.group(3)),
        tzinfo=tz,
    )


def _parse_date_time(text: str, now: datetime) -> Optional[datetime]:
    m = _DATE_TIME_RE.match(text)
    if not m:
        return None
    tz = _zone_or_fail(m.group(7))
    return datetime(
        int(m.group(3)), int(m.group(1)), int(m.group(2)),
        int(m.group(4)), int(m.group(5)), int(m.group(6)),
        tzinfo=tz,
    )


def _parse_timestamp(text: str, now: datetime) -> Optional[datetime]:
    m = _TIMESTAMP_RE.match(text)
    if not m:
        return None
    tz = _zone_or_fail(m.group(8))
    return datetime(
        int(m.group(3)), int(m.group(1)), int(m.group(2)),
        int(m.group(4)), int(m.group(5)), int(m.group(6)),
        int(m.group(7)) * 1000,
        tzinfo=tz,
    )


def _parse_zone_only(text: str, now: datetime) -> Optional[datetime]:
    m = _ZONE_RE.match(text)
    if not m:
        return None
    tz = _zone_or_fail(m.group(1))
    return now.astimezone(tz).replace(microsecond=0)


TIMESTAMP_PARSERS: Tuple[Tuple[str, Callable[[str, datetime], Optional[datetime]]], ...] = (
    ("HH:mm:ss z", _parse_time_of_day),
    ("MM/dd/yyyy HH:mm:ss z", _parse_date_time),
    ("MM/dd/yyyy HH:mm:ss.SSS z", _parse_timestamp),
    ("z", _parse_zone_only),
)


def parse_timestamp(value: str, *, now: Optional[datetime] = None) -> datetime:
    """Parse a NiFi timestamp string into an aware datetime.

    Args:
        value: Raw timestamp text.
        now: Reference instant for shapes that omit the date (defaults to the
             current UTC time).

    Raises:
        TimestampParseError: if no shape matches.
    """
    text = str(value or "").strip()
    current = now or datetime.now(timezone.utc)

    failures: List[str] = []
    for label, parser in TIMESTAMP_PARSERS:
        try:
            parsed = parser(text, current)
        except ValueError as e:
            failures.append(f"{label}: {e}")
            continue
        if parsed is not None:
            return parsed
        failures.append(f"{label}: no match")
    raise TimestampParseError(text, failures)
