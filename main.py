"""
Main entry point for the itinerary search and booking system
Command-line front end over the catalog, itinerary and booking services
"""
import argparse
import sys
from datetime import date

from backend.logging_config import setup_logging
from database import ItineraryLeg, ReservationError
from database.database import get_db_manager


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def _parse_leg(value: str) -> ItineraryLeg:
    route_id, sep, day = value.partition('@')
    if not sep:
        raise argparse.ArgumentTypeError(f"Invalid leg (expected ROUTE@YYYY-MM-DD): {value}")
    return ItineraryLeg(route_id, _parse_date(day))


def _print_booking(booking):
    print(f"Booking {booking.booking_id} for {booking.passenger.name} <{booking.passenger.email}>")
    for flight in booking.flights:
        route = flight.route
        print(f"  {flight.flight_date}  {route.route_id}  {route.origin} -> {route.destination}  "
              f"dep {route.depart_time:%H:%M}  arr {route.arrive_time:%H:%M}  {route.price}")
    print(f"  Total: {booking.total_price}")


def cmd_init_db(args):
    get_db_manager().create_tables()
    print("Database ready!")


def cmd_seed(args):
    from data.data_generator import DataGenerator

    generator = DataGenerator(get_db_manager(), seed=args.seed)
    generator.seed_default_network()
    if args.sample_bookings:
        booking_ids, full = generator.generate_sample_bookings(count=args.sample_bookings)
        print(f"Created {len(booking_ids)} sample bookings ({full} rejected as full)")
    print("Default network loaded")


def cmd_airports(args):
    from backend.catalog_service import RouteCatalog

    for airport in RouteCatalog().list_airports():
        print(f"{airport.icao}  {airport.name:<24} {airport.country:<14} {airport.timezone}")


def cmd_search(args):
    from backend.itinerary_service import ItineraryService

    itineraries = ItineraryService().find_itineraries(args.origin, args.destination, args.date)
    if not itineraries:
        print("No flights were found matching those filters.")
        return 1

    for number, itinerary in enumerate(itineraries, 1):
        legs = ', '.join(f"{route.route_id} {route.origin}->{route.destination} "
                         f"{route.depart_time:%H:%M}" for route in itinerary.routes)
        print(f"{number}. {legs}  (total {itinerary.total_price})")
    return 0


def cmd_book(args):
    from backend.booking_service import BookingService

    booking = BookingService().create_booking(args.leg, args.name, args.email)
    _print_booking(booking)


def cmd_show(args):
    from backend.booking_service import BookingService

    _print_booking(BookingService().get_booking(args.reference))


def cmd_bookings(args):
    from backend.booking_service import BookingService

    bookings = BookingService().get_bookings_for_passenger(args.email)
    if not bookings:
        print("No bookings.")
    for booking in bookings:
        _print_booking(booking)


def cmd_cancel(args):
    from backend.booking_service import BookingService

    booking = BookingService().cancel_booking(args.reference, args.email)
    print(f"Booking {booking.booking_id} cancelled.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Itinerary search and booking')
    parser.add_argument('--log-level', default=None, help='DEBUG, INFO, WARNING or ERROR')
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('init-db', help='Create the database schema').set_defaults(func=cmd_init_db)

    seed = subparsers.add_parser('seed', help='Load the default route network')
    seed.add_argument('--sample-bookings', type=int, default=0)
    seed.add_argument('--seed', type=int, help='Random seed for reproducibility')
    seed.set_defaults(func=cmd_seed)

    subparsers.add_parser('airports', help='List airports').set_defaults(func=cmd_airports)

    search = subparsers.add_parser('search', help='Find itineraries for a date')
    search.add_argument('origin')
    search.add_argument('destination')
    search.add_argument('date', type=_parse_date)
    search.set_defaults(func=cmd_search)

    book = subparsers.add_parser('book', help='Book an itinerary')
    book.add_argument('--name', required=True)
    book.add_argument('--email', required=True)
    book.add_argument('--leg', type=_parse_leg, action='append', required=True,
                      help='ROUTE@YYYY-MM-DD, repeated in travel order')
    book.set_defaults(func=cmd_book)

    show = subparsers.add_parser('show', help='Show a booking')
    show.add_argument('reference')
    show.set_defaults(func=cmd_show)

    bookings = subparsers.add_parser('bookings', help="List a passenger's bookings")
    bookings.add_argument('email')
    bookings.set_defaults(func=cmd_bookings)

    cancel = subparsers.add_parser('cancel', help='Cancel a booking')
    cancel.add_argument('reference')
    cancel.add_argument('email')
    cancel.set_defaults(func=cmd_cancel)

    return parser


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        return args.func(args) or 0
    except ReservationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
