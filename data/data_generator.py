"""
Seed data loader for the route catalog
Loads the default regional network and can generate sample bookings
"""
from datetime import date, datetime, time, timedelta
import logging
import random
from faker import Faker
from typing import Dict, Iterable, List, Optional, Tuple
import sys
import os

# Add parent directory to path for imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import CapacityError, ItineraryLeg, Weekday, get_db_manager
from backend.booking_service import BookingService

logger = logging.getLogger(__name__)

# (icao, name, country, timezone)
DEFAULT_AIRPORTS = [
    ('NZNE', 'Dairy Flats', 'New Zealand', 'Pacific/Auckland'),
    ('NZRO', 'Rotorua', 'New Zealand', 'Pacific/Auckland'),
    ('NZGB', 'Great Barrier Island', 'New Zealand', 'Pacific/Auckland'),
    ('NZCI', 'Chatham Islands', 'New Zealand', 'Pacific/Chatham'),
    ('NZTL', 'Lake Tekapo', 'New Zealand', 'Pacific/Auckland'),
    ('YMHB', 'Hobart', 'Australia', 'Australia/Hobart'),
]

# (name, capacity)
DEFAULT_AIRCRAFT = [
    ('SyberJet SJ30i', 6),
    ('Cirrus SF50', 4),
    ('HondaJet Elite', 5),
]

# (name, aircraft name)
DEFAULT_SERVICES = [
    ('Tasman Express', 'SyberJet SJ30i'),
    ('Regional Shuttle', 'Cirrus SF50'),
    ('Island Hopper', 'HondaJet Elite'),
]

_WEEKDAYS = list(Weekday)

# (origin, destination, weekdays, departure, minutes airborne, price, service)
DEFAULT_SCHEDULE = [
    ('NZNE', 'YMHB', (Weekday.FRIDAY,), time(10, 0), 240, 550, 'Tasman Express'),
    ('YMHB', 'NZNE', (Weekday.SUNDAY,), time(10, 0), 240, 550, 'Tasman Express'),
    ('NZNE', 'NZRO', _WEEKDAYS[:5], time(7, 0), 45, 120, 'Regional Shuttle'),
    ('NZRO', 'NZNE', _WEEKDAYS[:5], time(12, 0), 45, 120, 'Regional Shuttle'),
    ('NZNE', 'NZGB', (Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY), time(9, 0), 30, 95, 'Island Hopper'),
    ('NZGB', 'NZNE', (Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY), time(15, 0), 30, 95, 'Island Hopper'),
    ('NZNE', 'NZCI', (Weekday.TUESDAY, Weekday.FRIDAY), time(8, 0), 150, 400, 'Island Hopper'),
    ('NZCI', 'NZNE', (Weekday.WEDNESDAY, Weekday.SATURDAY), time(8, 0), 150, 400, 'Island Hopper'),
    ('NZNE', 'NZTL', (Weekday.MONDAY, Weekday.FRIDAY), time(11, 0), 120, 310, 'Regional Shuttle'),
    ('NZTL', 'NZNE', (Weekday.TUESDAY, Weekday.SATURDAY), time(11, 0), 120, 310, 'Regional Shuttle'),
    ('NZRO', 'NZTL', (Weekday.MONDAY,), time(14, 0), 90, 210, 'Regional Shuttle'),
    ('NZGB', 'NZRO', (Weekday.WEDNESDAY,), time(16, 30), 60, 140, 'Island Hopper'),
]


def build_schedule(schedule: Iterable[tuple], id_prefix: str = 'R') -> List[tuple]:
    """
    Expand weekly schedule patterns into route tuples

    Args:
        schedule: (origin, destination, weekdays, departure, minutes, price, service) patterns
        id_prefix: Leading character of the generated 4-character route IDs

    Returns:
        (route_id, origin, destination, depart_day, depart_time, arrive_day,
        arrive_time, price, service_name) tuples
    """
    routes = []
    # Any Monday works as a reference week
    reference_monday = datetime(2024, 1, 1)

    for origin, destination, weekdays, departure, minutes, price, service in schedule:
        for weekday in weekdays:
            depart_at = datetime.combine(
                reference_monday.date() + timedelta(days=_WEEKDAYS.index(weekday)), departure
            )
            arrive_at = depart_at + timedelta(minutes=minutes)
            route_id = f"{id_prefix}{len(routes) + 1:03d}"
            routes.append((
                route_id, origin, destination,
                weekday.value, depart_at.time(),
                Weekday.from_date(arrive_at.date()).value, arrive_at.time(),
                price, service
            ))
    return routes


class DataGenerator:
    """Load reference data and generate sample bookings"""

    def __init__(self, db_manager=None, seed: Optional[int] = None):
        """
        Initialize data generator

        Args:
            db_manager: Database manager (defaults to the global one)
            seed: Random seed for reproducibility
        """
        self.db_manager = db_manager or get_db_manager()
        self.random = random.Random(seed)
        if seed is not None:
            Faker.seed(seed)

        self.faker = Faker()

    def load_catalog(self, airports: Iterable[tuple], aircraft: Iterable[tuple],
                     services: Iterable[tuple], routes: Iterable[tuple]) -> Dict[str, int]:
        """
        Insert reference data; rows that already exist are left untouched

        Args:
            airports: (icao, name, country, timezone) tuples
            aircraft: (name, capacity) tuples
            services: (name, aircraft name) tuples
            routes: tuples as produced by ``build_schedule``

        Returns:
            Mapping of service name to service ID
        """
        with self.db_manager.get_cursor() as cursor:
            for airport in airports:
                cursor.execute("""
                    INSERT INTO airports (icao, name, country, timezone)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (icao) DO NOTHING
                """, airport)

            aircraft_ids = {}
            for name, capacity in aircraft:
                aircraft_ids[name] = self._get_or_create(
                    cursor, 'aircraft',
                    "SELECT id FROM aircraft WHERE name = %s", (name,),
                    "INSERT INTO aircraft (name, capacity) VALUES (%s, %s) RETURNING id", (name, capacity)
                )

            service_ids = {}
            for name, aircraft_name in services:
                service_ids[name] = self._get_or_create(
                    cursor, 'services',
                    "SELECT id FROM services WHERE name = %s", (name,),
                    "INSERT INTO services (name, aircraft_id) VALUES (%s, %s) RETURNING id",
                    (name, aircraft_ids[aircraft_name])
                )

            route_count = 0
            for (route_id, origin, destination, depart_day, depart_time,
                 arrive_day, arrive_time, price, service_name) in routes:
                cursor.execute("""
                    INSERT INTO routes (route_id, origin, destination, depart_day, depart_time,
                                        arrive_day, arrive_time, price, service_id)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (route_id) DO NOTHING
                """, (route_id, origin, destination, depart_day, depart_time,
                      arrive_day, arrive_time, price, service_ids[service_name]))
                route_count += cursor.rowcount

        logger.info("Catalog loaded: %d new route(s), %d service(s)", route_count, len(service_ids))
        return service_ids

    @staticmethod
    def _get_or_create(cursor, table: str, select_sql: str, select_params: tuple,
                       insert_sql: str, insert_params: tuple) -> int:
        cursor.execute(select_sql, select_params)
        row = cursor.fetchone()
        if row:
            return row['id']
        cursor.execute(insert_sql, insert_params)
        logger.debug("Inserted into %s: %s", table, insert_params)
        return cursor.fetchone()['id']

    def seed_default_network(self) -> Dict[str, int]:
        """Load the default regional network"""
        return self.load_catalog(
            DEFAULT_AIRPORTS, DEFAULT_AIRCRAFT, DEFAULT_SERVICES, build_schedule(DEFAULT_SCHEDULE)
        )

    def _route_ids_by_weekday(self) -> Dict[str, List[str]]:
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("SELECT route_id, depart_day FROM routes ORDER BY route_id")
            by_day = {}
            for row in cursor.fetchall():
                by_day.setdefault(row['depart_day'], []).append(row['route_id'])
        return by_day

    def generate_sample_bookings(self, count: int = 20, start_date: Optional[date] = None,
                                 days: int = 28, booking_service: Optional[BookingService] = None
                                 ) -> Tuple[List[str], int]:
        """
        Book random single-leg flights for fake passengers

        Args:
            count: Number of booking attempts
            start_date: First travel date (defaults to tomorrow)
            days: Width of the travel window in days
            booking_service: Service used to book (defaults to one on this database)

        Returns:
            (created booking IDs, number of attempts rejected for capacity)
        """
        booking_service = booking_service or BookingService(self.db_manager)
        start_date = start_date or date.today() + timedelta(days=1)
        routes_by_day = self._route_ids_by_weekday()
        if not routes_by_day:
            raise ValueError("The route catalog is empty; seed it before generating bookings")

        booking_ids = []
        full = 0

        for _ in range(count):
            travel_date = start_date + timedelta(days=self.random.randrange(days))
            route_ids = routes_by_day.get(Weekday.from_date(travel_date).value)
            if not route_ids:
                continue

            leg = ItineraryLeg(self.random.choice(route_ids), travel_date)
            try:
                booking = booking_service.create_booking(
                    [leg], self.faker.name(), self.faker.unique.email()
                )
                booking_ids.append(booking.booking_id)
            except CapacityError as e:
                full += 1
                logger.debug("Sample booking skipped: %s", e)

        logger.info("Generated %d sample booking(s); %d attempt(s) hit full flights",
                    len(booking_ids), full)
        return booking_ids, full


def main():
    """Main function for command-line usage"""
    import argparse
    from backend.logging_config import setup_logging

    parser = argparse.ArgumentParser(description='Seed the route catalog and sample bookings')
    parser.add_argument('--bookings', type=int, default=0,
                        help='Number of sample bookings to attempt')
    parser.add_argument('--seed', type=int, help='Random seed for reproducibility')

    args = parser.parse_args()
    setup_logging()

    db_manager = get_db_manager()
    db_manager.create_tables()

    generator = DataGenerator(db_manager, seed=args.seed)
    generator.seed_default_network()
    if args.bookings:
        generator.generate_sample_bookings(count=args.bookings)


if __name__ == '__main__':
    main()
