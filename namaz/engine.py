"""Composition root: owns the schedule, status store and qaza backlog."""

import datetime
import logging
import threading
from typing import Callable, List, Optional

from namaz.errors import StorageError
from namaz.prayer_times import (
    PRAYER_DEFINITIONS,
    PRAYER_KEYS,
    CalculationConfig,
    build_schedule,
    calculate_prayer_times,
    format_time,
    loading_schedule,
)
from namaz.qaza import QazaBacklog, QazaEntry
from namaz.status import StatusStore

logger = logging.getLogger(__name__)


class Engine:
    """
    Read/mutate API consumed by front ends.

    Build one per process and pass it around. ``activate`` loads persisted
    state, runs the daily rollover and computes today's schedule once.
    """

    def __init__(
        self,
        store,
        clock,
        locate: Callable[[], dict],
        calculator: Callable = calculate_prayer_times,
        config: CalculationConfig = None,
    ):
        self.clock = clock
        self.locate = locate
        self.calculator = calculator
        self.config = config or CalculationConfig()
        self.status = StatusStore(store, clock)
        self.backlog = QazaBacklog(store, clock)

        self.schedule = loading_schedule()
        self.location: Optional[dict] = None
        self.error = None
        self.loading = True
        self.ready = False
        self._activated = False
        self._thread: Optional[threading.Thread] = None

    # ──────────────────────────────────────────────────────────────────────
    # Activation
    # ──────────────────────────────────────────────────────────────────────
    def activate(self, wait: bool = True) -> None:
        if self._activated:
            raise RuntimeError("Engine already activated")
        self._activated = True

        self.status.load()
        self.backlog.load()
        self.status.rollover()
        self.backlog.expire_cooldowns(PRAYER_KEYS)

        if wait:
            self._load_schedule()
        else:
            self._thread = threading.Thread(target=self._load_schedule, daemon=True)
            self._thread.start()

    def wait_until_ready(self, timeout: float = None) -> bool:
        if self._thread is not None:
            self._thread.join(timeout)
        return self.ready

    def _load_schedule(self) -> None:
        result = build_schedule(self.locate, self.clock.today(), self.config, self.calculator)
        self.schedule = result.schedule
        self.location = result.location
        self.error = result.error
        self.loading = False
        self.ready = True

    # ──────────────────────────────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────────────────────────────
    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def prayers(self) -> List[dict]:
        """Definition, window and today's observed flag for each prayer, in order."""
        result = []
        for key in PRAYER_KEYS:
            window = self.schedule[key]
            result.append({
                "definition": PRAYER_DEFINITIONS[key],
                "start": window.start,
                "end": window.end,
                "observed": self.status.is_observed(key),
            })
        return result

    def is_observed(self, prayer_key: str) -> bool:
        self._check_key(prayer_key)
        return self.status.is_observed(prayer_key)

    def qaza_entries(self) -> List[QazaEntry]:
        return self.backlog.entries()

    def pending_qaza(self) -> List[QazaEntry]:
        return self.backlog.pending()

    def completed_qaza(self) -> List[QazaEntry]:
        return self.backlog.completed()

    def qaza_cooldown_remaining(self, prayer_key: str) -> datetime.timedelta:
        self._check_key(prayer_key)
        return self.backlog.cooldown_remaining(prayer_key)

    def can_mark_missed(self, prayer_key: str) -> bool:
        """False while the prayer's cooldown runs or once it is marked done today."""
        self._check_key(prayer_key)
        if self.status.is_observed(prayer_key):
            return False
        return not self.backlog.cooldown_remaining(prayer_key)

    # ──────────────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────────────
    def set_observed(self, prayer_key: str, observed: bool) -> None:
        self._check_key(prayer_key)
        self.status.set_observed(prayer_key, observed)

    def toggle_observed(self, prayer_key: str) -> bool:
        self._check_key(prayer_key)
        return self.status.toggle_observed(prayer_key)

    def mark_missed(self, prayer_key: str, date: datetime.date = None) -> Optional[QazaEntry]:
        self._check_key(prayer_key)
        entry = self.backlog.mark_missed(prayer_key, self._snapshot(prayer_key), date)
        if entry is not None and entry.date_missed == self.clock.today():
            # entry is already saved; the cooldown is advisory
            try:
                self.backlog.start_cooldown(prayer_key)
            except StorageError as exc:
                logger.warning(f"Could not start qaza cooldown for {prayer_key}: {exc}")
        return entry

    def complete_qaza(self, entry_id: str) -> bool:
        return self.backlog.complete(entry_id)

    def remove_qaza(self, entry_id: str) -> bool:
        return self.backlog.remove(entry_id)

    def _snapshot(self, prayer_key: str) -> dict:
        window = self.schedule[prayer_key]
        snapshot = PRAYER_DEFINITIONS[prayer_key].to_dict()
        snapshot["startTime"] = format_time(window.start)
        snapshot["endTime"] = format_time(window.end)
        return snapshot

    @staticmethod
    def _check_key(prayer_key: str) -> None:
        if prayer_key not in PRAYER_DEFINITIONS:
            raise ValueError(f"Unknown prayer: {prayer_key!r}")
