import calendar
import datetime
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterator, Optional, Union

SECONDS_PER_DAY = 24 * 60 * 60
SECONDS_PER_HOUR = 60 * 60


@dataclass(frozen=True, order=True)
class GregorianDay:
    """
    A calendar day with no time of day attached. Whether it is meant in UTC
    or in some local timezone depends on where it came from; arithmetic and
    comparisons only make sense between days of the same kind.
    """

    year: int
    month: int
    day: int

    def __post_init__(self):
        # raises ValueError for days that do not exist
        datetime.date(self.year, self.month, self.day)

    @classmethod
    def from_date(cls, date: datetime.date) -> "GregorianDay":
        return cls(year=date.year, month=date.month, day=date.day)

    @classmethod
    def from_datetime(
        cls, date: datetime.datetime, timezone: Optional[datetime.tzinfo] = None
    ) -> "GregorianDay":
        """
        The day on which ``date`` falls when seen from ``timezone``. Naive
        datetimes are taken as they are.
        """
        if timezone is not None and date.tzinfo is not None:
            date = date.astimezone(timezone)
        return cls.from_date(date.date())

    @classmethod
    def from_iso(cls, value: str) -> "GregorianDay":
        return cls.from_date(datetime.datetime.strptime(value, "%Y-%m-%d").date())

    @property
    def date(self) -> datetime.date:
        return datetime.date(self.year, self.month, self.day)

    @property
    def day_of_week(self) -> str:
        return calendar.day_name[self.date.weekday()]

    @property
    def successor(self) -> "GregorianDay":
        return self.advanced(by=1)

    def advanced(self, by: int) -> "GregorianDay":
        return GregorianDay.from_date(self.date + datetime.timedelta(days=by))

    def start_date(self, timezone: datetime.tzinfo) -> datetime.datetime:
        """
        The instant at which this day starts in ``timezone``.
        """
        return datetime.datetime.combine(self.date, datetime.time.min, tzinfo=timezone)

    def __sub__(self, other: "GregorianDay") -> int:
        if not isinstance(other, GregorianDay):
            return NotImplemented
        return (self.date - other.date).days

    def __str__(self):
        return self.date.strftime("%Y-%m-%d")


def day_range(start: GregorianDay, end: GregorianDay) -> Iterator[GregorianDay]:
    """
    Iterates over the days from ``start`` up to, but not including, ``end``.
    """
    day = start
    while day < end:
        yield day
        day = day.successor


@total_ordering
@dataclass(frozen=True)
class LocalDay:
    gregorian_day: GregorianDay
    timezone: datetime.tzinfo

    @classmethod
    def from_datetime(cls, date: datetime.datetime, timezone: datetime.tzinfo):
        return cls(GregorianDay.from_datetime(date, timezone), timezone)

    @property
    def start_of_day(self) -> datetime.datetime:
        return self.gregorian_day.start_date(self.timezone)

    def advanced(self, by: int) -> "LocalDay":
        return LocalDay(self.gregorian_day.advanced(by=by), self.timezone)

    def days_remaining(self, until: Union[datetime.datetime, GregorianDay]) -> int:
        """
        Number of whole days between this day and the day ``until`` falls on.
        """
        if isinstance(until, datetime.datetime):
            until = GregorianDay.from_datetime(until, self.timezone)
        return until - self.gregorian_day

    def __lt__(self, other):
        if not isinstance(other, LocalDay):
            return NotImplemented
        return self.gregorian_day < other.gregorian_day


def local_timezone() -> datetime.tzinfo:
    return datetime.datetime.now().astimezone().tzinfo


class DateProvider:
    """
    Source of the current time. Everything that needs "now" or "today" asks
    one of these at the moment it needs it, since the day can roll over
    while the process is idle.
    """

    def __init__(self, timezone: Optional[datetime.tzinfo] = None):
        self._timezone = timezone

    @property
    def timezone(self) -> datetime.tzinfo:
        if self._timezone is None:
            return local_timezone()
        return self._timezone

    @property
    def current_date(self) -> datetime.datetime:
        return datetime.datetime.now(tz=self.timezone)

    def current_gregorian_day(
        self, timezone: Optional[datetime.tzinfo] = None
    ) -> GregorianDay:
        return GregorianDay.from_datetime(self.current_date, timezone or self.timezone)

    @property
    def current_local_day(self) -> LocalDay:
        return LocalDay.from_datetime(self.current_date, self.timezone)


class SimulatedDateProvider(DateProvider):
    """
    A date provider whose clock only moves when told to. Each call to
    ``next`` advances the clock by ``step_duration`` hours, which makes it
    easy to walk an isolation through day boundaries.
    """

    def __init__(
        self,
        initial_date: Union[str, datetime.datetime] = "2020-03-01 9:00",
        timezone: datetime.tzinfo = datetime.timezone.utc,
        step_duration: float = 12,
    ):
        super().__init__(timezone=timezone)
        if isinstance(initial_date, str):
            day_i = datetime.datetime(
                *[int(value) for value in initial_date.split(" ")[0].split("-")]
            )
            hour_i = 0
            if len(initial_date.split(" ")) > 1:
                hour_i = int(initial_date.split(" ")[1].split(":")[0])
            initial_date = day_i + datetime.timedelta(hours=hour_i)
        if initial_date.tzinfo is None:
            initial_date = initial_date.replace(tzinfo=timezone)
        self.initial_date = initial_date
        self.date = initial_date
        self.previous_date = initial_date
        self.delta_time = datetime.timedelta(hours=step_duration)

    @property
    def current_date(self) -> datetime.datetime:
        return self.date

    @property
    def now(self) -> float:
        """
        Days elapsed since the initial date.
        """
        difference = self.date - self.initial_date
        return difference.total_seconds() / SECONDS_PER_DAY

    def advance(self, days: float = 0, hours: float = 0) -> datetime.datetime:
        self.previous_date = self.date
        self.date += datetime.timedelta(days=days, hours=hours)
        return self.date

    def set(self, date: datetime.datetime):
        if date.tzinfo is None:
            date = date.replace(tzinfo=self.timezone)
        self.previous_date = self.date
        self.date = date

    def reset(self):
        self.date = self.initial_date
        self.previous_date = self.initial_date

    def __iter__(self):
        return self

    def __next__(self):
        self.previous_date = self.date
        self.date += self.delta_time
        return self.date
