from typing import Optional, Union
import datetime

from selfisolation.time import GregorianDay


def read_day(day: Union[str, datetime.date, GregorianDay]) -> GregorianDay:
    """
        Read a day in any of the formats it can arrive in, either an ISO
        string, a datetime.date or a GregorianDay, and translate it into a
        GregorianDay.

        Parameters
        ----------
        day:
            day to translate into GregorianDay

        Returns
        -------
            day as a GregorianDay
        """
    if isinstance(day, GregorianDay):
        return day
    if type(day) is str:
        return GregorianDay.from_iso(day)
    elif isinstance(day, datetime.datetime):
        return GregorianDay.from_datetime(day)
    elif isinstance(day, datetime.date):
        return GregorianDay.from_date(day)
    else:
        raise TypeError("day must be a string, a datetime.date or a GregorianDay")


def read_optional_day(
    day: Optional[Union[str, datetime.date, GregorianDay]]
) -> Optional[GregorianDay]:
    if day is None:
        return None
    return read_day(day)


def write_optional_day(day: Optional[GregorianDay]) -> Optional[str]:
    if day is None:
        return None
    return str(day)
