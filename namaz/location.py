"""Location detection using IP geolocation and a saved manual location."""

import json
import logging
import os

import requests

from namaz.errors import GeolocationDenied, GeolocationTimeout, GeolocationUnavailable
from namaz.settings import APP_DIR

logger = logging.getLogger(__name__)

IPAPI_URL = "http://ip-api.com/json/"

CONFIG_DIR = APP_DIR
CONFIG_FILE = os.path.join(CONFIG_DIR, "location.json")

REQUIRED_KEYS = ("city", "region", "country", "lat", "lon", "timezone")


def get_location(timeout: int = 10) -> dict:
    """
    Detect current location via IP geolocation.

    Returns a dict with: city, region, country, lat, lon, timezone.
    Raises GeolocationTimeout if ip-api does not answer in time and
    GeolocationUnavailable for any other failure.
    """
    try:
        resp = requests.get(
            IPAPI_URL,
            params={"fields": "city,regionName,country,lat,lon,timezone,status,message"},
            timeout=timeout,
        )
        resp.raise_for_status()
        data = resp.json()
    except requests.Timeout as exc:
        raise GeolocationTimeout() from exc
    except (requests.RequestException, ValueError) as exc:
        raise GeolocationUnavailable() from exc

    if data.get("status") != "success":
        logger.warning(f"ip-api lookup failed: {data.get('message', 'unknown error')}")
        raise GeolocationUnavailable()
    try:
        lat = float(data["lat"])
        lon = float(data["lon"])
    except (KeyError, TypeError, ValueError) as exc:
        raise GeolocationUnavailable() from exc

    return {
        "city": data.get("city", ""),
        "region": data.get("regionName", ""),
        "country": data.get("country", ""),
        "lat": lat,
        "lon": lon,
        "timezone": data.get("timezone") or None,
    }


def locate(allow: bool = True, timeout: int = 10) -> dict:
    """
    Return the saved manual location, or detect one if detection is allowed.

    Raises GeolocationDenied when no manual location is saved and detection
    has been switched off in the settings.
    """
    manual = load_manual_location()
    if manual:
        return manual
    if not allow:
        raise GeolocationDenied()
    return get_location(timeout=timeout)


def save_manual_location(location: dict) -> None:
    """Save a manually-set location to the config file."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(location, f, indent=2)


def load_manual_location() -> dict | None:
    """Load a previously saved manual location, or return None."""
    if not os.path.isfile(CONFIG_FILE):
        return None
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning(f"Ignoring unreadable location file {CONFIG_FILE}: {exc}")
        return None
    if isinstance(data, dict) and all(k in data for k in REQUIRED_KEYS):
        return data
    return None


def clear_manual_location() -> None:
    """Remove the saved manual location config."""
    if os.path.isfile(CONFIG_FILE):
        os.remove(CONFIG_FILE)
