"""
Seat capacity checks for dated flights
"""
from datetime import date

from psycopg2.extras import RealDictCursor

from database import Flight, NotFoundError, row_to_flight, get_db_manager


class CapacityOracle:
    """Answers whether a route still has a free seat on a given date"""

    def __init__(self, db_manager=None):
        self.db_manager = db_manager or get_db_manager()

    @staticmethod
    def lock_flight(cursor, route_id: str, flight_date: date) -> Flight:
        """
        Get or create the flight for a route and date, holding a row lock on it

        The lock lasts until the surrounding transaction ends, so competing
        bookings of the same flight queue behind each other.
        """
        cursor.execute("""
            INSERT INTO flights (route_id, flight_date)
            VALUES (%s, %s)
            ON CONFLICT (route_id, flight_date) DO NOTHING
        """, (route_id, flight_date))

        cursor.execute("""
            SELECT id, route_id, flight_date, created_at
            FROM flights
            WHERE route_id = %s AND flight_date = %s
            FOR UPDATE
        """, (route_id, flight_date))

        return row_to_flight(cursor.fetchone())

    @staticmethod
    def _seat_usage(cursor, route_id: str, flight_date: date):
        cursor.execute("""
            SELECT a.capacity,
                   (SELECT COUNT(*)
                    FROM flights f
                    JOIN flight_reservations fr ON fr.flight_id = f.id
                    WHERE f.route_id = r.route_id AND f.flight_date = %s) AS reserved
            FROM routes r
            JOIN services s ON r.service_id = s.id
            JOIN aircraft a ON s.aircraft_id = a.id
            WHERE r.route_id = %s
        """, (flight_date, route_id))

        row = cursor.fetchone()
        if not row:
            raise NotFoundError(f"Route {route_id} not found")
        return row['capacity'], row['reserved']

    def seats_remaining(self, route_id: str, flight_date: date, cursor=None) -> int:
        """
        Count free seats on a route for a date

        A route and date without a flight row has its full capacity free.

        Args:
            route_id: Route identifier
            flight_date: Date of travel
            cursor: Cursor of an open transaction; a fresh one is used when omitted

        Returns:
            Number of seats still available
        """
        if cursor is not None:
            capacity, reserved = self._seat_usage(cursor, route_id, flight_date)
        else:
            with self.db_manager.get_cursor(cursor_factory=RealDictCursor) as own_cursor:
                capacity, reserved = self._seat_usage(own_cursor, route_id, flight_date)
        return max(capacity - reserved, 0)

    def has_seat(self, route_id: str, flight_date: date, cursor=None) -> bool:
        """Whether at least one seat is free on a route for a date"""
        return self.seats_remaining(route_id, flight_date, cursor=cursor) > 0
