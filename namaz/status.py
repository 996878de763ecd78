"""Per-day observance flags and the daily rollover rule."""

import logging

from namaz.prayer_times import PRAYER_KEYS

logger = logging.getLogger(__name__)

STATUS_KEY = "prayer-status"
RESET_KEY = "last-reset-date"


def record_key(prayer_key: str, date) -> str:
    return f"{prayer_key}-{date.isoformat()}"


class StatusStore:
    """
    Mapping of "{prayer}-{YYYY-MM-DD}" -> observed, mirrored to the store.

    Only today's keys are ever read, so flags from earlier days stay on disk
    but no longer count.
    """

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock
        self._records = {}
        self.last_reset = None

    def load(self) -> None:
        records = self.store.get(STATUS_KEY, {})
        self._records = records if isinstance(records, dict) else {}
        self.last_reset = self.store.get(RESET_KEY)

    def rollover(self) -> bool:
        """Start a new day if the reset marker is stale. Returns True when it did."""
        today = self.clock.today().isoformat()
        if self.last_reset == today:
            return False
        self.store.set(RESET_KEY, today)
        logger.info(f"Daily rollover: {self.last_reset} -> {today}")
        self.last_reset = today
        return True

    def is_observed(self, prayer_key: str) -> bool:
        return bool(self._records.get(record_key(prayer_key, self.clock.today()), False))

    def set_observed(self, prayer_key: str, observed: bool) -> None:
        records = dict(self._records)
        records[record_key(prayer_key, self.clock.today())] = bool(observed)
        self.store.set(STATUS_KEY, records)
        self._records = records

    def toggle_observed(self, prayer_key: str) -> bool:
        observed = not self.is_observed(prayer_key)
        self.set_observed(prayer_key, observed)
        return observed

    def observed_today(self) -> dict:
        return {key: self.is_observed(key) for key in PRAYER_KEYS}
