"""User settings stored as JSON in the app home directory."""

import json
import logging
import os

import pytz

from namaz.prayer_times import CalculationConfig, resolve_madhab, resolve_method

logger = logging.getLogger(__name__)

APP_DIR = os.environ.get("NAMAZ_HOME") or os.path.join(os.path.expanduser("~"), ".namaz")
SETTINGS_FILE = os.path.join(APP_DIR, "settings.json")
DATA_DIR = os.path.join(APP_DIR, "data")

DEFAULT_SETTINGS = {
    "calculation_method": "MUSLIM_WORLD_LEAGUE",
    "madhab": "SHAFI",
    "timezone": None,            # None = detected location's zone, then UTC
    "allow_location": True,
    "geolocation_timeout": 10,   # seconds
    "data_dir": None,            # None = DATA_DIR
}


def load_settings() -> dict:
    """
    Load settings from SETTINGS_FILE merged over DEFAULT_SETTINGS.

    Unknown keys are dropped. A missing or unreadable file yields the defaults.
    """
    settings = dict(DEFAULT_SETTINGS)
    if not os.path.isfile(SETTINGS_FILE):
        return settings
    try:
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning(f"Ignoring unreadable settings file {SETTINGS_FILE}: {exc}")
        return settings
    if not isinstance(data, dict):
        logger.warning(f"Ignoring settings file {SETTINGS_FILE}: expected a JSON object")
        return settings
    for key in DEFAULT_SETTINGS:
        if key in data:
            settings[key] = data[key]
    return settings


def save_settings(settings: dict) -> None:
    """Write settings to SETTINGS_FILE."""
    os.makedirs(os.path.dirname(SETTINGS_FILE), exist_ok=True)
    with open(SETTINGS_FILE, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)


def data_dir(settings: dict) -> str:
    return os.path.expanduser(settings.get("data_dir") or DATA_DIR)


def calculation_config(settings: dict) -> CalculationConfig:
    """Build a CalculationConfig, raising ValueError on unknown method, madhab or timezone names."""
    method = settings.get("calculation_method") or DEFAULT_SETTINGS["calculation_method"]
    madhab = settings.get("madhab") or DEFAULT_SETTINGS["madhab"]
    resolve_method(method)
    resolve_madhab(madhab)
    timezone = settings.get("timezone")
    if timezone and timezone not in pytz.all_timezones_set:
        raise ValueError(f"Unknown timezone: {timezone!r}")
    return CalculationConfig(method=method, madhab=madhab, timezone=timezone)
