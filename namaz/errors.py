"""Exception types shared across the tracker."""


class NamazError(Exception):
    """Base class for all tracker errors."""


class ScheduleError(NamazError):
    """A prayer schedule could not be produced. Always recovered locally."""

    code = "schedule-error"
    default_message = "Could not compute prayer times."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class GeolocationUnavailable(ScheduleError):
    code = "no-support"
    default_message = "Could not retrieve your location. Displaying default times."


class GeolocationDenied(ScheduleError):
    code = "permission-denied"
    default_message = (
        "Could not retrieve your location. "
        "Please allow location access to get accurate prayer times."
    )


class GeolocationTimeout(ScheduleError):
    code = "timeout"
    default_message = "Timed out while retrieving your location. Displaying default times."


class CalculationFailure(ScheduleError):
    code = "calculation-failure"
    default_message = "Prayer times could not be calculated for your location."


class StorageError(NamazError):
    """Writing a record to durable storage failed."""
