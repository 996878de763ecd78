"""Prayer definitions, adhanpy-backed prayer time calculation and the daily schedule."""

import datetime
import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, Optional
from zoneinfo import ZoneInfo

from adhanpy.PrayerTimes import PrayerTimes
from adhanpy.calculation import CalculationMethod
from adhanpy.calculation.CalculationParameters import CalculationParameters
from adhanpy.calculation.Madhab import Madhab

from namaz.errors import CalculationFailure, ScheduleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Surah:
    name: str
    arabic: str
    translation: str
    pdf_url: str


@dataclass(frozen=True)
class PrayerDefinition:
    key: str
    name: str
    arabic_name: str
    surah: Surah

    def to_dict(self) -> dict:
        return asdict(self)


PRAYER_DEFINITIONS = {
    "fajr": PrayerDefinition(
        "fajr", "Fajr", "الفجر",
        Surah("Surah Yaseen", "سورة يس", '"Heart of the Quran"', "/pdfs/surah_yaseen.pdf"),
    ),
    "dhuhr": PrayerDefinition(
        "dhuhr", "Dhuhr", "الظهر",
        Surah("Surah Fatah", "سورة الفتح", '"The Victory"', "/pdfs/surah_fatah.pdf"),
    ),
    "asr": PrayerDefinition(
        "asr", "Asr", "العصر",
        Surah("Surah Naba", "سورة النبأ", '"The Tidings"', "/pdfs/surah_naba.pdf"),
    ),
    "maghrib": PrayerDefinition(
        "maghrib", "Maghrib", "المغرب",
        Surah("Surah Waqiah", "سورة الواقعة", '"The Inevitable"', "/pdfs/surah_waqiah.pdf"),
    ),
    "isha": PrayerDefinition(
        "isha", "Isha", "العشاء",
        Surah("Surah Mulk", "سورة الملك", '"The Sovereignty"', "/pdfs/surah_mulk.pdf"),
    ),
}

PRAYER_KEYS = list(PRAYER_DEFINITIONS)

# (prayer, instant that opens it, instant that closes it); None = END_OF_DAY
WINDOW_BOUNDS = [
    ("fajr", "fajr", "sunrise"),
    ("dhuhr", "dhuhr", "asr"),
    ("asr", "asr", "maghrib"),
    ("maghrib", "maghrib", "isha"),
    ("isha", "isha", None),
]

END_OF_DAY = datetime.time(23, 59)
UNAVAILABLE = "N/A"
LOADING = "Loading..."

METHODS = {
    m.name.replace("_", "").lower(): m for m in CalculationMethod if m != CalculationMethod.NONE
}
MADHABS = {m.name.replace("_", "").lower(): m for m in Madhab}


def _lookup(table: dict, name: str, kind: str):
    try:
        return table[str(name).replace("_", "").replace(" ", "").lower()]
    except KeyError:
        raise ValueError(f"Unknown {kind}: {name!r}") from None


def resolve_method(name: str) -> CalculationMethod:
    """Map 'MuslimWorldLeague', 'MUSLIM_WORLD_LEAGUE' etc. onto adhanpy's CalculationMethod."""
    return _lookup(METHODS, name, "calculation method")


def resolve_madhab(name: str) -> Madhab:
    return _lookup(MADHABS, name, "madhab")


@dataclass
class CalculationConfig:
    method: str = "MUSLIM_WORLD_LEAGUE"
    madhab: str = "SHAFI"
    timezone: Optional[str] = None


@dataclass
class PrayerWindow:
    start: object  # datetime.time, UNAVAILABLE or LOADING
    end: object

    @property
    def available(self) -> bool:
        return isinstance(self.start, datetime.time) and isinstance(self.end, datetime.time)


@dataclass
class ScheduleResult:
    schedule: Dict[str, PrayerWindow]
    error: Optional[ScheduleError] = None
    location: Optional[dict] = field(default=None)


def calculate_prayer_times(coordinates: tuple, date: datetime.date, config: CalculationConfig) -> dict:
    """
    Calculate prayer instants for one day with adhanpy.

    Returns {fajr, sunrise, dhuhr, asr, maghrib, isha} as aware datetimes in
    config.timezone (UTC when unset).
    """
    method = resolve_method(config.method)
    madhab = resolve_madhab(config.madhab)
    tz = ZoneInfo(config.timezone or "UTC")
    day = datetime.datetime(date.year, date.month, date.day)
    params = CalculationParameters(method=method)
    params.madhab = madhab
    pt = PrayerTimes(coordinates, day, calculation_parameters=params, time_zone=tz)
    return {
        "fajr": pt.fajr,
        "sunrise": pt.sunrise,
        "dhuhr": pt.dhuhr,
        "asr": pt.asr,
        "maghrib": pt.maghrib,
        "isha": pt.isha,
    }


def _to_minute(value) -> datetime.time:
    return datetime.time(value.hour, value.minute)


def compute_schedule(
    coordinates: tuple,
    date: datetime.date,
    config: CalculationConfig,
    calculator: Callable = calculate_prayer_times,
) -> Dict[str, PrayerWindow]:
    """
    Turn calculator output into five ordered, non-overlapping windows.

    Raises CalculationFailure if the calculator fails or its times are out of order.
    """
    try:
        instants = calculator(coordinates, date, config)
        schedule = {}
        for prayer, opens, closes in WINDOW_BOUNDS:
            start = _to_minute(instants[opens])
            end = _to_minute(instants[closes]) if closes else END_OF_DAY
            schedule[prayer] = PrayerWindow(start, end)
    except Exception as exc:
        raise CalculationFailure() from exc

    previous_end = None
    for prayer, window in schedule.items():
        if window.start >= window.end or (previous_end is not None and window.start < previous_end):
            logger.warning(f"Calculated {prayer} window {window.start}-{window.end} is out of order")
            raise CalculationFailure()
        previous_end = window.end
    return schedule


def unavailable_schedule() -> Dict[str, PrayerWindow]:
    return {key: PrayerWindow(UNAVAILABLE, UNAVAILABLE) for key in PRAYER_KEYS}


def loading_schedule() -> Dict[str, PrayerWindow]:
    return {key: PrayerWindow(LOADING, LOADING) for key in PRAYER_KEYS}


def build_schedule(
    locate: Callable[[], dict],
    date: datetime.date,
    config: CalculationConfig,
    calculator: Callable = calculate_prayer_times,
) -> ScheduleResult:
    """
    Locate the user and compute today's schedule.

    Geolocation and calculation errors never escape: the result then carries
    an all-UNAVAILABLE schedule and the error.
    """
    location = None
    try:
        location = locate()
        timezone = config.timezone or location.get("timezone") or "UTC"
        resolved = CalculationConfig(method=config.method, madhab=config.madhab, timezone=timezone)
        schedule = compute_schedule((location["lat"], location["lon"]), date, resolved, calculator)
    except ScheduleError as exc:
        logger.warning(f"Falling back to unavailable prayer times ({exc.code}): {exc.message}")
        return ScheduleResult(unavailable_schedule(), exc, location)
    logger.info(f"Computed prayer times for {date.isoformat()} using {config.method}")
    return ScheduleResult(schedule, None, location)


def format_time(value) -> str:
    """Render a window bound as HH:MM; sentinels pass through."""
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M")
    return str(value)
