import datetime
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import InvalidTimezoneError


class MathTools:
    """Provides numeric helpers shared by the aggregation code."""

    MAX_HEATMAP_LEVEL: int = 3

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @staticmethod
    def coalesce(value: Optional[float], default: float = 0.0) -> float:
        """Return ``value`` as float, or ``default`` when it is missing."""
        if value is None:
            return default
        return float(value)

    @classmethod
    def volume(cls, sets: Iterable[tuple[int, Optional[float]]]) -> float:
        """Compute training volume as the sum of reps times weight."""
        vol = 0.0
        for reps, weight in sets:
            vol += reps * cls.coalesce(weight)
        return vol

    @classmethod
    def heatmap_level(cls, count: Optional[int]) -> int:
        """Map a daily session count onto the 0-3 heatmap scale."""
        return int(cls.clamp(int(cls.coalesce(count)), 0, cls.MAX_HEATMAP_LEVEL))


class TimeTools:
    """Timezone-aware date helpers.

    Instants are persisted as naive UTC text; everything that reaches a
    caller is converted into the caller's zone first.
    """

    STORAGE_FORMAT = "%Y-%m-%d %H:%M:%S"
    LABEL_FORMAT = "%m.%d"

    @staticmethod
    def zone(name: str) -> ZoneInfo:
        """Return the zone called ``name`` or raise ``InvalidTimezoneError``."""
        if not isinstance(name, str) or not name:
            raise InvalidTimezoneError(str(name))
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            raise InvalidTimezoneError(name)

    @staticmethod
    def utcnow() -> datetime.datetime:
        return datetime.datetime.now(datetime.timezone.utc)

    @classmethod
    def today(
        cls, zone: ZoneInfo, now: datetime.datetime | None = None
    ) -> datetime.date:
        """Return the current calendar date in ``zone``."""
        now = now or cls.utcnow()
        return now.astimezone(zone).date()

    @classmethod
    def start_of_month(
        cls, zone: ZoneInfo, now: datetime.datetime | None = None
    ) -> datetime.datetime:
        """Return midnight on the first day of the current month in ``zone``."""
        local = (now or cls.utcnow()).astimezone(zone)
        return datetime.datetime(local.year, local.month, 1, tzinfo=zone)

    @staticmethod
    def start_of_day(day: datetime.date, zone: ZoneInfo) -> datetime.datetime:
        return datetime.datetime(day.year, day.month, day.day, tzinfo=zone)

    @staticmethod
    def end_of_day(day: datetime.date, zone: ZoneInfo) -> datetime.datetime:
        return datetime.datetime(day.year, day.month, day.day, 23, 59, 59, tzinfo=zone)

    @classmethod
    def to_storage(cls, instant: datetime.datetime) -> str:
        """Serialize ``instant`` as naive UTC text; naive input is taken as UTC."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=datetime.timezone.utc)
        return instant.astimezone(datetime.timezone.utc).strftime(cls.STORAGE_FORMAT)

    @staticmethod
    def from_storage(ts: str | datetime.datetime) -> datetime.datetime:
        """Return ``ts`` as timezone-aware datetime in UTC."""
        if isinstance(ts, datetime.datetime):
            dt = ts
        else:
            dt = datetime.datetime.fromisoformat(ts)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=datetime.timezone.utc)
        return dt.astimezone(datetime.timezone.utc)

    @classmethod
    def label(cls, ts: str | datetime.datetime, zone: ZoneInfo) -> str:
        """Format a stored UTC instant as a zero-padded ``MM.dd`` label in ``zone``."""
        return cls.from_storage(ts).astimezone(zone).strftime(cls.LABEL_FORMAT)

    @classmethod
    def local_date(cls, ts: str | datetime.datetime, zone: ZoneInfo) -> datetime.date:
        """Return the calendar date of a stored UTC instant as seen in ``zone``."""
        return cls.from_storage(ts).astimezone(zone).date()
