"""Single source of the current time for the engine and its stores."""

import datetime

import pytz


class Clock:
    """
    Wall clock pinned to one timezone.

    With no timezone the local naive time is used. Tests pass a MagicMock
    with the same ``now``/``today`` interface.
    """

    def __init__(self, timezone: str = None):
        self.tz = pytz.timezone(timezone) if timezone else None

    def now(self) -> datetime.datetime:
        return datetime.datetime.now(self.tz) if self.tz else datetime.datetime.now()

    def today(self) -> datetime.date:
        return self.now().date()
