"""Errors raised by the scheduling core and the services built on it."""


class SchedulingError(Exception):
    """Base class for scheduling errors."""


class InvalidRecurrenceRule(SchedulingError):
    """Malformed rule string or frequency/weekday combination."""


class InvalidTimeRange(SchedulingError):
    """An interval or date range whose end does not come after its start."""


class SeriesNotFound(SchedulingError):
    pass


class OccurrenceNotFound(SchedulingError):
    """The instant is not produced by expanding the series."""


class UnavailabilityNotFound(SchedulingError):
    pass


class BookingNotFound(SchedulingError):
    pass


class SlotConflict(SchedulingError):
    """The requested time was taken between reading slots and booking."""


class InvalidBookingTransition(SchedulingError):
    """Booking status change not allowed from the current status."""
