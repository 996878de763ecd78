"""Backlog of missed (qaza) prayers and the per-prayer resubmission cooldown."""

import copy
import datetime
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

QAZA_KEY = "qaza-prayers"
COOLDOWN_KEY = "qaza-disabled-{}"
COOLDOWN = datetime.timedelta(hours=24)


@dataclass
class QazaEntry:
    id: str
    prayer_key: str
    date_missed: datetime.date
    completed: bool = False
    prayer: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "prayer": self.prayer,
            "prayerKey": self.prayer_key,
            "dateMissed": self.date_missed.isoformat(),
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "QazaEntry":
        return cls(
            id=data["id"],
            prayer_key=data["prayerKey"],
            date_missed=datetime.date.fromisoformat(data["dateMissed"]),
            completed=bool(data.get("completed", False)),
            prayer=data.get("prayer") or {},
        )


def _stamp(entry_id: str) -> int:
    try:
        return int(entry_id.rsplit("-", 1)[1])
    except (IndexError, ValueError):
        return 0


class QazaBacklog:
    """
    Insertion-ordered list of QazaEntry objects, mirrored to the store.

    Mutations build the new list, persist it, then swap it in, so a failed
    write leaves the in-memory backlog as it was.
    """

    def __init__(self, store, clock):
        self.store = store
        self.clock = clock
        self._entries: List[QazaEntry] = []
        self._last_stamp = 0

    def load(self) -> None:
        entries = []
        for raw in self.store.get(QAZA_KEY, []) or []:
            try:
                entries.append(QazaEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning(f"Skipping malformed qaza entry {raw!r}: {exc}")
        self._entries = entries
        self._last_stamp = max((_stamp(e.id) for e in entries), default=0)

    def _save(self, entries: List[QazaEntry]) -> None:
        self.store.set(QAZA_KEY, [e.to_dict() for e in entries])
        self._entries = entries

    def _new_id(self, prayer_key: str) -> str:
        stamp = max(int(self.clock.now().timestamp() * 1000), self._last_stamp + 1)
        self._last_stamp = stamp
        return f"{prayer_key}-{stamp}"

    def find(self, entry_id: str) -> Optional[QazaEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def mark_missed(self, prayer_key: str, snapshot: dict, date: datetime.date = None) -> Optional[QazaEntry]:
        """
        Add a pending entry for (prayer_key, date); date defaults to today.

        Returns None without changing anything when a pending entry for the
        same prayer and date already exists.
        """
        if date is None:
            date = self.clock.today()
        for entry in self._entries:
            if entry.prayer_key == prayer_key and entry.date_missed == date and not entry.completed:
                logger.debug(f"Qaza for {prayer_key} on {date} already pending ({entry.id})")
                return None
        entry = QazaEntry(
            id=self._new_id(prayer_key),
            prayer_key=prayer_key,
            date_missed=date,
            prayer=copy.deepcopy(snapshot),
        )
        self._save(self._entries + [entry])
        logger.info(f"Added qaza {entry.id} for {prayer_key} missed on {date}")
        return entry

    def complete(self, entry_id: str) -> bool:
        entry = self.find(entry_id)
        if entry is None or entry.completed:
            logger.debug(f"Nothing to complete for qaza {entry_id}")
            return False
        updated = [
            QazaEntry(e.id, e.prayer_key, e.date_missed, True, e.prayer) if e.id == entry_id else e
            for e in self._entries
        ]
        self._save(updated)
        logger.info(f"Completed qaza {entry_id}")
        return True

    def remove(self, entry_id: str) -> bool:
        """Delete an entry whether or not it has been completed."""
        remaining = [e for e in self._entries if e.id != entry_id]
        if len(remaining) == len(self._entries):
            logger.debug(f"Nothing to remove for qaza {entry_id}")
            return False
        self._save(remaining)
        logger.info(f"Removed qaza {entry_id}")
        return True

    def entries(self) -> List[QazaEntry]:
        return list(self._entries)

    def pending(self) -> List[QazaEntry]:
        return [e for e in self._entries if not e.completed]

    def completed(self) -> List[QazaEntry]:
        return [e for e in self._entries if e.completed]

    # Cooldown: one timestamp per prayer, independent of the dedup rule above.

    def start_cooldown(self, prayer_key: str) -> None:
        self.store.set(COOLDOWN_KEY.format(prayer_key), self.clock.now().isoformat())

    def _cooldown_started(self, prayer_key: str) -> Optional[datetime.datetime]:
        raw = self.store.get(COOLDOWN_KEY.format(prayer_key))
        if not raw:
            return None
        try:
            return datetime.datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring malformed cooldown stamp for {prayer_key}: {raw!r}")
            return None

    def _elapsed(self, started: datetime.datetime) -> datetime.timedelta:
        now = self.clock.now()
        if (started.tzinfo is None) != (now.tzinfo is None):
            # stamp written under a different timezone setting
            started = started.replace(tzinfo=None)
            now = now.replace(tzinfo=None)
        return now - started

    def cooldown_remaining(self, prayer_key: str) -> datetime.timedelta:
        started = self._cooldown_started(prayer_key)
        if started is None:
            return datetime.timedelta(0)
        return max(COOLDOWN - self._elapsed(started), datetime.timedelta(0))

    def expire_cooldowns(self, prayer_keys) -> None:
        for prayer_key in prayer_keys:
            started = self._cooldown_started(prayer_key)
            if started is not None and self._elapsed(started) >= COOLDOWN:
                self.store.delete(COOLDOWN_KEY.format(prayer_key))
                logger.debug(f"Qaza cooldown for {prayer_key} expired")
