"""
Error taxonomy shared by the catalog, resolver and booking services
"""
from datetime import date
from typing import Optional


class ReservationError(Exception):
    """Base class for every error raised by the reservation core"""


class NotFoundError(ReservationError, LookupError):
    """A booking, passenger, route or airport lookup found nothing"""


class ValidationError(ReservationError, ValueError):
    """Malformed input, rejected before touching storage"""


class CapacityError(ReservationError):
    """A leg of the requested itinerary has no free seat"""

    def __init__(self, route_id: str, flight_date: date, message: Optional[str] = None):
        self.route_id = route_id
        self.flight_date = flight_date
        super().__init__(message or f"No seats left on route {route_id} for {flight_date.isoformat()}")


class ConflictError(ReservationError):
    """Concurrent conflict or exhausted retry budget; the whole operation may be retried"""


class UnauthorizedError(ReservationError):
    """The caller does not own the booking it tried to change"""


class StorageError(ReservationError):
    """Underlying persistence failure"""
