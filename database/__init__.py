"""Database package initialization"""
from .models import (
    Airport, Aircraft, Service, Route, Flight, Passenger, Booking,
    ItineraryLeg, Itinerary, Weekday,
    row_to_airport, row_to_aircraft, row_to_service, row_to_route,
    row_to_flight, row_to_passenger, row_to_booking
)
from .errors import (
    ReservationError, NotFoundError, ValidationError, CapacityError,
    ConflictError, UnauthorizedError, StorageError
)
from .database import DatabaseManager, get_db_manager, set_db_manager

__all__ = [
    'Airport', 'Aircraft', 'Service', 'Route', 'Flight', 'Passenger', 'Booking',
    'ItineraryLeg', 'Itinerary', 'Weekday',
    'row_to_airport', 'row_to_aircraft', 'row_to_service', 'row_to_route',
    'row_to_flight', 'row_to_passenger', 'row_to_booking',
    'ReservationError', 'NotFoundError', 'ValidationError', 'CapacityError',
    'ConflictError', 'UnauthorizedError', 'StorageError',
    'DatabaseManager', 'get_db_manager', 'set_db_manager'
]
