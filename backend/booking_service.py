"""
Booking service with concurrent seat reservation handling
Every leg's flight row is locked before its capacity check so the last seat
cannot be sold twice
"""
import logging
import time
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from database import (
    Booking, Flight, ItineraryLeg, Route, Weekday,
    CapacityError, ConflictError, NotFoundError, StorageError,
    UnauthorizedError, ValidationError,
    row_to_booking, row_to_flight, row_to_passenger, get_db_manager
)
from backend.capacity_service import CapacityOracle
from backend.catalog_service import RouteCatalog
from backend.passenger_service import PassengerService
from backend.reference_service import ReferenceGenerator

logger = logging.getLogger(__name__)

_BOOKING_WITH_PASSENGER_QUERY = """
    SELECT b.booking_id, b.passenger_id, b.total_price, b.created_at,
           p.id, p.name, p.email, p.created_at as p_created_at
    FROM bookings b
    JOIN passengers p ON b.passenger_id = p.id
"""


@contextmanager
def _storage_errors():
    """Surface driver failures as StorageError"""
    try:
        yield
    except psycopg2.Error as e:
        raise StorageError(f"Storage failure: {e}") from e


class BookingService:
    """Service for booking operations with transaction safety"""

    def __init__(self, db_manager=None, capacity_oracle: Optional[CapacityOracle] = None,
                 reference_generator: Optional[ReferenceGenerator] = None,
                 max_retries: int = 5, retry_delay: float = 0.01):
        """
        Args:
            db_manager: Database manager (defaults to the global one)
            capacity_oracle: Seat availability checker
            reference_generator: Booking reference allocator
            max_retries: Attempts made when a transaction is rolled back by a deadlock
            retry_delay: Initial backoff delay in seconds, doubled on every retry
        """
        if max_retries <= 0:
            raise ValueError("max_retries must be positive")
        self.db_manager = db_manager or get_db_manager()
        self.catalog = RouteCatalog(self.db_manager)
        self.capacity = capacity_oracle or CapacityOracle(self.db_manager)
        self.references = reference_generator or ReferenceGenerator()
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @staticmethod
    def _normalize_legs(legs) -> List[ItineraryLeg]:
        """Accept ItineraryLeg objects or (route_id, date) pairs"""
        if not legs:
            raise ValidationError("An itinerary needs at least one leg")

        normalized = []
        for leg in legs:
            if not isinstance(leg, ItineraryLeg):
                try:
                    route_id, flight_date = leg
                except (TypeError, ValueError):
                    raise ValidationError(f"Invalid itinerary leg: {leg!r}")
                leg = ItineraryLeg(route_id, flight_date)

            if not isinstance(leg.route_id, str) or len(leg.route_id) != 4:
                raise ValidationError(f"Route ID must be 4 characters long: {leg.route_id!r}")
            if isinstance(leg.flight_date, datetime):
                leg = ItineraryLeg(leg.route_id, leg.flight_date.date())
            elif not isinstance(leg.flight_date, date):
                raise ValidationError(f"Invalid date for route {leg.route_id}: {leg.flight_date!r}")
            normalized.append(leg)

        if len(set(normalized)) != len(normalized):
            raise ValidationError("The same flight appears more than once in the itinerary")
        return normalized

    @staticmethod
    def _check_itinerary(legs: List[ItineraryLeg], routes: Dict[str, Route]) -> Decimal:
        """
        Verify the legs form one connected itinerary and price it

        Returns:
            Sum of the route prices
        """
        for leg in legs:
            route = routes.get(leg.route_id)
            if route is None:
                raise NotFoundError(f"Route {leg.route_id} not found")
            weekday = Weekday.from_date(leg.flight_date)
            if not route.runs_on(weekday):
                raise ValidationError(
                    f"Route {route.route_id} departs on {route.depart_day.value}, "
                    f"not on {weekday.value} {leg.flight_date.isoformat()}"
                )

        visited = [routes[legs[0].route_id].origin]
        previous = None
        for leg in legs:
            route = routes[leg.route_id]
            if previous is not None:
                if routes[previous.route_id].destination != route.origin:
                    raise ValidationError(f"Route {route.route_id} does not depart from "
                                          f"{routes[previous.route_id].destination}")
                if leg.flight_date < previous.flight_date:
                    raise ValidationError(f"Route {route.route_id} is dated before the previous leg")
            if route.destination in visited:
                raise ValidationError(f"Itinerary revisits {route.destination}")
            visited.append(route.destination)
            previous = leg

        return sum((Decimal(str(routes[leg.route_id].price)) for leg in legs), Decimal("0"))

    def create_booking(self, legs: Iterable, passenger_name: str, passenger_email: str) -> Booking:
        """
        Book every leg of an itinerary for a passenger, or nothing at all

        Args:
            legs: ItineraryLeg objects (or (route_id, date) pairs) in travel order
            passenger_name: Passenger full name
            passenger_email: Passenger email, the passenger's identity

        Returns:
            Created booking with passenger and flights

        Raises:
            ValidationError: If passenger details or legs are malformed
            NotFoundError: If a route does not exist
            CapacityError: If any leg is full
            ConflictError: If retries on transaction conflicts are exhausted
            StorageError: On any other database failure
        """
        name, email = PassengerService.validate_details(passenger_name, passenger_email)
        legs = self._normalize_legs(list(legs))

        for attempt in range(self.max_retries):
            try:
                booking = self._create_booking_transaction(legs, name, email)
            except psycopg2.extensions.TransactionRollbackError as e:
                if attempt < self.max_retries - 1:
                    logger.debug("Booking transaction rolled back (%s), retrying", e.pgcode)
                    time.sleep(self.retry_delay * (2 ** attempt))  # Exponential backoff
                    continue
                logger.warning("Booking for %s abandoned after %d attempts", email, self.max_retries)
                raise ConflictError("Unable to complete booking due to high concurrency. Please try again.") from e
            except psycopg2.Error as e:
                raise StorageError(f"Storage failure while booking: {e}") from e

            logger.info("Booking %s created for %s: %d leg(s), total %s",
                        booking.booking_id, email, len(booking.flights), booking.total_price)
            return booking

    def _create_booking_transaction(self, legs: List[ItineraryLeg], name: str, email: str) -> Booking:
        """Internal method to perform the actual booking transaction"""
        with self.db_manager.transaction() as conn:
            with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                routes = self.catalog.get_routes([leg.route_id for leg in legs], cursor=cursor)
                total_price = self._check_itinerary(legs, routes)

                passenger = PassengerService.resolve_or_create(cursor, name, email)

                # Lock in a global order so multi-leg bookings cannot deadlock each other
                flights = {}
                for leg in sorted(legs, key=lambda l: (l.route_id, l.flight_date)):
                    flight = self.capacity.lock_flight(cursor, leg.route_id, leg.flight_date)
                    if not self.capacity.has_seat(leg.route_id, leg.flight_date, cursor=cursor):
                        raise CapacityError(leg.route_id, leg.flight_date)
                    flights[leg] = flight

                booking_id = self.references.allocate(cursor)

                cursor.execute("""
                    INSERT INTO bookings (booking_id, passenger_id, total_price)
                    VALUES (%s, %s, %s)
                    RETURNING booking_id, passenger_id, total_price, created_at
                """, (booking_id, passenger.id, total_price))
                booking = row_to_booking(cursor.fetchone())
                booking.passenger = passenger

                for leg in legs:
                    flight = flights[leg]
                    cursor.execute("""
                        INSERT INTO flight_reservations (booking_id, flight_id)
                        VALUES (%s, %s)
                    """, (booking_id, flight.id))
                    flight.route = routes[leg.route_id]
                    booking.flights.append(flight)

                return booking

    def _load_booking(self, cursor, booking_id: str, lock: bool = False) -> Booking:
        """Load a booking with its passenger and flights; NotFoundError when absent"""
        query = _BOOKING_WITH_PASSENGER_QUERY + " WHERE b.booking_id = %s"
        if lock:
            query += " FOR UPDATE OF b"
        cursor.execute(query, (booking_id,))
        row = cursor.fetchone()

        if not row:
            raise NotFoundError(f"Booking {booking_id} not found")

        booking = row_to_booking(row)
        booking.passenger = row_to_passenger({
            'id': row['id'],
            'name': row['name'],
            'email': row['email'],
            'created_at': row['p_created_at'],
        })
        booking.flights = self._load_flights(cursor, booking.booking_id)
        return booking

    def _load_flights(self, cursor, booking_id: str) -> List[Flight]:
        cursor.execute("""
            SELECT f.id, f.route_id, f.flight_date, f.created_at
            FROM flight_reservations fr
            JOIN flights f ON fr.flight_id = f.id
            WHERE fr.booking_id = %s
            ORDER BY fr.id
        """, (booking_id,))
        flights = [row_to_flight(row) for row in cursor.fetchall()]

        routes = self.catalog.get_routes([flight.route_id for flight in flights], cursor=cursor)
        for flight in flights:
            flight.route = routes.get(flight.route_id)
        return flights

    @staticmethod
    def _validate_booking_id(booking_id) -> str:
        if not isinstance(booking_id, str) or not booking_id.strip():
            raise ValidationError("Booking reference is required")
        return booking_id.strip()

    def get_booking(self, booking_id: str) -> Booking:
        """
        Get booking by reference

        Raises:
            NotFoundError: If no booking has this reference
        """
        booking_id = self._validate_booking_id(booking_id)

        with _storage_errors():
            with self.db_manager.get_cursor() as cursor:
                return self._load_booking(cursor, booking_id)

    def get_bookings_for_passenger(self, email: str) -> List[Booking]:
        """
        List every booking of the passenger registered under an email

        Raises:
            NotFoundError: If no passenger uses this email
        """
        email = PassengerService.normalize_email(email)

        with _storage_errors():
            with self.db_manager.get_cursor() as cursor:
                cursor.execute("SELECT id FROM passengers WHERE email = %s", (email,))
                passenger_row = cursor.fetchone()
                if not passenger_row:
                    raise NotFoundError(f"No passenger registered with email {email}")

                cursor.execute("""
                    SELECT booking_id
                    FROM bookings
                    WHERE passenger_id = %s
                    ORDER BY created_at, booking_id
                """, (passenger_row['id'],))
                booking_ids = [row['booking_id'] for row in cursor.fetchall()]

                return [self._load_booking(cursor, booking_id) for booking_id in booking_ids]

    @staticmethod
    def _delete(cursor, booking_id: str, passenger_id: int) -> bool:
        cursor.execute("""
            DELETE FROM bookings
            WHERE booking_id = %s AND passenger_id = %s
            RETURNING booking_id
        """, (booking_id, passenger_id))
        return cursor.fetchone() is not None

    def delete_booking(self, booking_id: str, passenger_id: int) -> bool:
        """
        Delete a booking and its flight reservations if the passenger owns it

        Returns:
            True if a booking was deleted
        """
        booking_id = self._validate_booking_id(booking_id)

        with _storage_errors():
            with self.db_manager.get_cursor() as cursor:
                deleted = self._delete(cursor, booking_id, passenger_id)

        if deleted:
            logger.info("Booking %s deleted", booking_id)
        return deleted

    def cancel_booking(self, booking_id: str, passenger_email: str) -> Booking:
        """
        Cancel a booking on behalf of the passenger who made it

        Args:
            booking_id: Booking reference
            passenger_email: Email of the requesting passenger

        Returns:
            The booking as it was before cancellation

        Raises:
            NotFoundError: If the booking does not exist
            UnauthorizedError: If the email does not own the booking
        """
        booking_id = self._validate_booking_id(booking_id)
        email = PassengerService.normalize_email(passenger_email)

        with _storage_errors():
            with self.db_manager.get_cursor() as cursor:
                booking = self._load_booking(cursor, booking_id, lock=True)

                if booking.passenger.email != email:
                    raise UnauthorizedError(f"Booking {booking_id} does not belong to {email}")

                self._delete(cursor, booking.booking_id, booking.passenger_id)

        logger.info("Booking %s cancelled by %s", booking_id, email)
        return booking
