"""Five-field cron expressions for the scheduled generation run."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Years scanned before giving up; covers the leap-year cycle for Feb 29.
_SCAN_HORIZON_YEARS = 8


def _parse_field(field: str, min_value: int, max_value: int) -> frozenset[int]:
    """Parse one field: `*`, values, `a-b` ranges and `/step`, comma separated."""
    values: set[int] = set()
    for token in field.split(","):
        token = token.strip()
        if not token:
            raise ValueError(f"Empty cron field element in {field!r}")

        step = 1
        if "/" in token:
            token, step_text = token.split("/", 1)
            step = int(step_text)
            if step < 1:
                raise ValueError(f"Invalid cron step in {field!r}")

        if token == "*":
            low, high = min_value, max_value
        elif "-" in token:
            low_text, high_text = token.split("-", 1)
            low, high = int(low_text), int(high_text)
        else:
            low = int(token)
            high = max_value if step > 1 else low

        if low < min_value or high > max_value or low > high:
            raise ValueError(f"Cron field {field!r} out of range {min_value}-{max_value}")
        values.update(range(low, high + 1, step))
    return frozenset(values)


@dataclass(frozen=True, slots=True)
class CronSchedule:
    """Parsed `minute hour day-of-month month day-of-week` expression.

    Day-of-week uses 0 (or 7) for Sunday. When both day fields are
    restricted, a day matches if either matches, as in standard cron.
    """

    expression: str
    minutes: frozenset[int]
    hours: frozenset[int]
    days: frozenset[int]
    months: frozenset[int]
    weekdays: frozenset[int]
    day_restricted: bool
    weekday_restricted: bool

    @classmethod
    def parse(cls, expression: str) -> CronSchedule:
        parts = expression.split()
        if len(parts) != 5:
            raise ValueError(f"Cron expression must have 5 fields: {expression!r}")
        minute, hour, day, month, weekday = parts
        weekdays = {value % 7 for value in _parse_field(weekday, 0, 7)}
        return cls(
            expression=expression.strip(),
            minutes=_parse_field(minute, 0, 59),
            hours=_parse_field(hour, 0, 23),
            days=_parse_field(day, 1, 31),
            months=_parse_field(month, 1, 12),
            weekdays=frozenset(weekdays),
            day_restricted=day != "*",
            weekday_restricted=weekday != "*",
        )

    def _day_matches(self, moment: datetime) -> bool:
        # Python: Monday=0..Sunday=6; cron: Sunday=0..Saturday=6.
        cron_weekday = (moment.weekday() + 1) % 7
        day_ok = moment.day in self.days
        weekday_ok = cron_weekday in self.weekdays
        if self.day_restricted and self.weekday_restricted:
            return day_ok or weekday_ok
        return day_ok and weekday_ok

    def next_after(self, moment: datetime, tz: ZoneInfo | timezone | None = None) -> datetime:
        """First fire time strictly after `moment`, evaluated in `tz`.

        Returns an aware datetime in `tz` (UTC by default).
        """
        zone = tz or timezone.utc
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        # Scan wall-clock time in the schedule's zone.
        candidate = moment.astimezone(zone).replace(tzinfo=None, second=0, microsecond=0)
        candidate += timedelta(minutes=1)

        horizon = candidate.year + _SCAN_HORIZON_YEARS
        while candidate.year <= horizon:
            if candidate.month not in self.months:
                year = candidate.year + (1 if candidate.month == 12 else 0)
                month = 1 if candidate.month == 12 else candidate.month + 1
                candidate = candidate.replace(year=year, month=month, day=1, hour=0, minute=0)
                continue
            if not self._day_matches(candidate):
                candidate = (candidate + timedelta(days=1)).replace(hour=0, minute=0)
                continue
            if candidate.hour not in self.hours:
                candidate = (candidate + timedelta(hours=1)).replace(minute=0)
                continue
            if candidate.minute not in self.minutes:
                candidate += timedelta(minutes=1)
                continue
            return candidate.replace(tzinfo=zone)

        raise ValueError(f"Cron expression never fires: {self.expression!r}")


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc
