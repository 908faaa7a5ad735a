"""
Functional tests against PostgreSQL
Covers the catalog, itinerary search and the booking lifecycle
"""
from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.booking_service import BookingService
from backend.capacity_service import CapacityOracle
from backend.catalog_service import RouteCatalog, StaticRouteCatalog
from backend.itinerary_service import ItineraryService
from backend.passenger_service import PassengerService
from database import ItineraryLeg, NotFoundError, Weekday
from tests.conftest import MONDAY, TUESDAY, count_rows


class TestRouteCatalog:
    """Test read-only catalog queries"""

    def test_list_airports(self, test_network):
        airports = RouteCatalog().list_airports()
        assert [a.icao for a in airports] == ['NZGB', 'NZNE', 'NZRO', 'NZTL']
        assert airports[1].name == 'Dairy Flats'

    def test_get_airport(self, test_network):
        airport = RouteCatalog().get_airport('NZTL')
        assert airport.name == 'Lake Tekapo'
        assert airport.timezone == 'Pacific/Auckland'

        with pytest.raises(NotFoundError):
            RouteCatalog().get_airport('XXXX')

    def test_routes_from(self, test_network):
        routes = RouteCatalog().routes_from('NZNE', Weekday.MONDAY)
        assert [r.route_id for r in routes] == ['AB01', 'SOLO']
        assert routes[0].depart_day == Weekday.MONDAY
        assert routes[0].capacity == 3

    def test_routes_between(self, test_network):
        catalog = RouteCatalog()
        assert [r.route_id for r in catalog.routes_between('NZNE', 'NZRO', Weekday.MONDAY)] == ['AB01']
        assert [r.route_id for r in catalog.routes_between('NZNE', 'NZRO', Weekday.TUESDAY)] == ['TU01']
        assert catalog.routes_between('NZNE', 'NZTL', Weekday.MONDAY) == []

    def test_routes_from_excluding(self, test_network):
        catalog = RouteCatalog()
        routes = catalog.routes_from_excluding('NZNE', Weekday.MONDAY, ['NZNE', 'NZGB'])
        assert [r.route_id for r in routes] == ['AB01']
        assert len(catalog.routes_from_excluding('NZNE', Weekday.MONDAY, [])) == 2

    def test_unknown_airport_yields_no_routes(self, test_network):
        assert RouteCatalog().routes_from('XXXX', Weekday.MONDAY) == []

    def test_get_route(self, test_network):
        route = RouteCatalog().get_route('BC01')
        assert route.origin == 'NZRO'
        assert route.price == Decimal('50.00')
        assert route.service.name == 'Shuttle'
        assert route.service.aircraft.capacity == 3

        with pytest.raises(NotFoundError):
            RouteCatalog().get_route('NONE')

    def test_snapshot(self, test_network):
        snapshot = RouteCatalog().snapshot(Weekday.TUESDAY)
        assert isinstance(snapshot, StaticRouteCatalog)
        assert snapshot.airport_count() == 4
        assert [r.route_id for r in snapshot.routes_from('NZNE', Weekday.TUESDAY)] == ['TU01']


class TestItineraryService:
    """Test itinerary search by date"""

    def test_connection_on_monday(self, test_network):
        itineraries = ItineraryService().find_itineraries('NZNE', 'NZTL', MONDAY)

        assert len(itineraries) == 1
        assert itineraries[0].route_ids == ('AB01', 'BC01')
        assert itineraries[0].total_price == Decimal(150)

    def test_direct_route(self, test_network):
        itineraries = ItineraryService().find_itineraries('NZNE', 'NZRO', TUESDAY)
        assert [i.route_ids for i in itineraries] == [('TU01',)]

    def test_no_itinerary_on_tuesday(self, test_network):
        assert ItineraryService().find_itineraries('NZNE', 'NZTL', TUESDAY) == []


class TestBookingLifecycle:
    """Test booking creation, lookup and cancellation"""

    def test_create_booking(self, db_manager, test_network):
        booking = BookingService().create_booking(
            [ItineraryLeg('AB01', MONDAY), ItineraryLeg('BC01', MONDAY)],
            'Jane Smith', 'jane@example.com'
        )

        assert booking.booking_id.startswith('B')
        assert len(booking.booking_id) == 6
        assert booking.passenger.email == 'jane@example.com'
        assert [f.route_id for f in booking.flights] == ['AB01', 'BC01']
        assert all(f.flight_date == MONDAY for f in booking.flights)
        assert booking.total_price == Decimal(150)

        assert count_rows(db_manager, 'flights') == 2
        assert count_rows(db_manager, 'flight_reservations') == 2

    def test_round_trip(self, test_network):
        service = BookingService()
        created = service.create_booking([('AB01', MONDAY), ('BC01', MONDAY)], 'Jane Smith', 'jane@example.com')

        fetched = service.get_booking(created.booking_id)

        assert fetched.booking_id == created.booking_id
        assert fetched.passenger.id == created.passenger.id
        assert fetched.passenger.name == 'Jane Smith'
        assert [(f.route_id, f.flight_date) for f in fetched.flights] == [('AB01', MONDAY), ('BC01', MONDAY)]
        assert fetched.total_price == created.total_price
        assert fetched.flights[0].route.origin == 'NZNE'

    def test_price_consistency(self, db_manager, test_network):
        service = BookingService()
        service.create_booking([('AB01', MONDAY), ('BC01', MONDAY)], 'Jane Smith', 'jane@example.com')
        service.create_booking([('SOLO', MONDAY)], 'Bob Jones', 'bob@example.com')
        service.create_booking([('TU01', TUESDAY)], 'Bob Jones', 'bob@example.com')

        with db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT b.booking_id, b.total_price, SUM(r.price) AS leg_total
                FROM bookings b
                JOIN flight_reservations fr ON fr.booking_id = b.booking_id
                JOIN flights f ON fr.flight_id = f.id
                JOIN routes r ON f.route_id = r.route_id
                GROUP BY b.booking_id, b.total_price
            """)
            rows = cursor.fetchall()

        assert len(rows) == 3
        for row in rows:
            assert row['total_price'] == row['leg_total']

    def test_passenger_reused_by_email(self, db_manager, test_network):
        service = BookingService()
        first = service.create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')
        second = service.create_booking([('BC01', MONDAY)], 'Jane Smith', '  Jane@Example.COM ')

        assert first.passenger.id == second.passenger.id
        assert count_rows(db_manager, 'passengers') == 1

    def test_flight_reused_for_same_date(self, db_manager, test_network):
        service = BookingService()
        first = service.create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')
        second = service.create_booking([('AB01', MONDAY)], 'Bob Jones', 'bob@example.com')

        assert first.flights[0].id == second.flights[0].id
        assert count_rows(db_manager, 'flights') == 1

    def test_bookings_for_passenger(self, test_network):
        service = BookingService()
        first = service.create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')
        second = service.create_booking([('TU01', TUESDAY)], 'Jane Smith', 'jane@example.com')
        service.create_booking([('SOLO', MONDAY)], 'Bob Jones', 'bob@example.com')

        bookings = service.get_bookings_for_passenger('JANE@example.com')

        assert sorted(b.booking_id for b in bookings) == sorted([first.booking_id, second.booking_id])
        assert all(b.passenger.email == 'jane@example.com' for b in bookings)

    def test_passenger_lookup(self, test_network):
        booking = BookingService().create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')
        passengers = PassengerService()

        assert passengers.get_passenger_by_email('Jane@Example.com').id == booking.passenger.id
        assert passengers.get_passenger(booking.passenger.id).name == 'Jane Smith'

    def test_cancel_booking(self, db_manager, test_network):
        service = BookingService()
        booking = service.create_booking([('AB01', MONDAY), ('BC01', MONDAY)], 'Jane Smith', 'jane@example.com')

        cancelled = service.cancel_booking(booking.booking_id, 'JANE@example.com')

        assert cancelled.booking_id == booking.booking_id
        with pytest.raises(NotFoundError):
            service.get_booking(booking.booking_id)
        assert count_rows(db_manager, 'flight_reservations') == 0
        # Flights and passengers outlive the booking
        assert count_rows(db_manager, 'flights') == 2
        assert count_rows(db_manager, 'passengers') == 1

    def test_cancel_frees_seat(self, test_network):
        service = BookingService()
        oracle = CapacityOracle()
        booking = service.create_booking([('SOLO', MONDAY)], 'Jane Smith', 'jane@example.com')
        assert not oracle.has_seat('SOLO', MONDAY)

        service.cancel_booking(booking.booking_id, 'jane@example.com')

        assert oracle.has_seat('SOLO', MONDAY)

    def test_delete_booking_requires_owner(self, db_manager, test_network):
        service = BookingService()
        booking = service.create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')

        assert service.delete_booking(booking.booking_id, booking.passenger.id + 1) is False
        assert count_rows(db_manager, 'bookings') == 1

        assert service.delete_booking(booking.booking_id, booking.passenger.id) is True
        assert count_rows(db_manager, 'bookings') == 0
        assert count_rows(db_manager, 'flight_reservations') == 0


class TestCapacityOracle:
    """Test seat counting"""

    def test_unbooked_flight_has_full_capacity(self, db_manager, test_network):
        oracle = CapacityOracle()

        assert oracle.seats_remaining('AB01', MONDAY) == 3
        assert oracle.has_seat('AB01', MONDAY)
        # Asking does not create a flight row
        assert count_rows(db_manager, 'flights') == 0

    def test_counts_reservations(self, test_network):
        service = BookingService()
        service.create_booking([('AB01', MONDAY)], 'Jane Smith', 'jane@example.com')
        service.create_booking([('AB01', MONDAY)], 'Bob Jones', 'bob@example.com')

        oracle = CapacityOracle()
        assert oracle.seats_remaining('AB01', MONDAY) == 1
        # Different date, different flight
        assert oracle.seats_remaining('AB01', MONDAY.replace(day=8)) == 3

    def test_unknown_route(self, test_network):
        with pytest.raises(NotFoundError):
            CapacityOracle().has_seat('NONE', MONDAY)
