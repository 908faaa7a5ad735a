"""
Database models for the itinerary search and booking system
Plain Python classes and enums (no ORM)
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional, Tuple
import enum


class Weekday(enum.Enum):
    """Weekday tag carried by every scheduled route"""
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @classmethod
    def from_date(cls, value: date) -> 'Weekday':
        """Weekday a calendar date falls on (locale independent)"""
        return list(cls)[value.weekday()]


@dataclass
class Airport:
    """Airport reference data, keyed by its 4-character ICAO code"""
    icao: Optional[str] = None
    name: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None

    def __repr__(self):
        return f"<Airport(icao='{self.icao}', name='{self.name}')>"


@dataclass
class Aircraft:
    """Aircraft type and its seat capacity"""
    id: Optional[int] = None
    name: Optional[str] = None
    capacity: Optional[int] = None

    def __repr__(self):
        return f"<Aircraft(id={self.id}, name='{self.name}', capacity={self.capacity})>"


@dataclass
class Service:
    """Named service operated with a given aircraft type"""
    id: Optional[int] = None
    name: Optional[str] = None
    aircraft_id: Optional[int] = None

    # For joined queries
    aircraft: Optional[Aircraft] = None

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', aircraft_id={self.aircraft_id})>"


@dataclass
class Route:
    """Recurring scheduled leg between two airports on one weekday"""
    route_id: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    depart_day: Optional[Weekday] = None
    depart_time: Optional[time] = None
    arrive_day: Optional[Weekday] = None
    arrive_time: Optional[time] = None
    price: Optional[Decimal] = None
    service_id: Optional[int] = None

    # For joined queries
    service: Optional[Service] = None

    @property
    def capacity(self) -> Optional[int]:
        if self.service and self.service.aircraft:
            return self.service.aircraft.capacity
        return None

    def runs_on(self, weekday: Weekday) -> bool:
        return self.depart_day == weekday

    def __repr__(self):
        day = self.depart_day.value if self.depart_day else None
        return f"<Route(id='{self.route_id}', route='{self.origin}->{self.destination}', day={day})>"


@dataclass
class Flight:
    """Concrete dated instance of a route"""
    id: Optional[int] = None
    route_id: Optional[str] = None
    flight_date: Optional[date] = None
    created_at: Optional[datetime] = None

    # For joined queries
    route: Optional[Route] = None

    def __repr__(self):
        return f"<Flight(id={self.id}, route_id='{self.route_id}', date={self.flight_date})>"


@dataclass
class Passenger:
    """Passenger identified by a unique email"""
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    def __repr__(self):
        return f"<Passenger(id={self.id}, name='{self.name}', email='{self.email}')>"


@dataclass
class Booking:
    """Booking of one passenger across one or more flights"""
    booking_id: Optional[str] = None
    passenger_id: Optional[int] = None
    total_price: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    # For joined queries
    passenger: Optional[Passenger] = None
    flights: List[Flight] = field(default_factory=list)

    def __repr__(self):
        return f"<Booking(id='{self.booking_id}', passenger_id={self.passenger_id}, total={self.total_price})>"


@dataclass(frozen=True)
class ItineraryLeg:
    """A route to be flown on a specific date"""
    route_id: str
    flight_date: date


@dataclass(frozen=True)
class Itinerary:
    """Ordered sequence of routes from an origin to a destination"""
    routes: Tuple[Route, ...]

    @property
    def origin(self) -> str:
        return self.routes[0].origin

    @property
    def destination(self) -> str:
        return self.routes[-1].destination

    @property
    def airports(self) -> List[str]:
        """Every airport touched, in travel order"""
        return [self.routes[0].origin] + [route.destination for route in self.routes]

    @property
    def route_ids(self) -> Tuple[str, ...]:
        return tuple(route.route_id for route in self.routes)

    @property
    def total_price(self) -> Decimal:
        return sum((Decimal(str(route.price)) for route in self.routes), Decimal("0"))

    def legs_for(self, flight_date: date) -> List[ItineraryLeg]:
        """Legs to book when every route is flown on the same date"""
        return [ItineraryLeg(route.route_id, flight_date) for route in self.routes]

    def __len__(self):
        return len(self.routes)

    def __repr__(self):
        return f"<Itinerary({' -> '.join(self.airports)}, total={self.total_price})>"


def row_to_airport(row) -> Airport:
    """Convert database row to Airport object"""
    if not row:
        return None
    return Airport(
        icao=row['icao'],
        name=row['name'],
        country=row['country'],
        timezone=row['timezone']
    )


def row_to_aircraft(row) -> Aircraft:
    """Convert database row to Aircraft object"""
    if not row:
        return None
    return Aircraft(
        id=row['id'],
        name=row['name'],
        capacity=row['capacity']
    )


def row_to_service(row) -> Service:
    """Convert database row to Service object"""
    if not row:
        return None
    return Service(
        id=row['id'],
        name=row['name'],
        aircraft_id=row['aircraft_id']
    )


def row_to_route(row) -> Route:
    """Convert database row to Route object"""
    if not row:
        return None
    return Route(
        route_id=row['route_id'],
        origin=row['origin'],
        destination=row['destination'],
        depart_day=Weekday(row['depart_day']) if row['depart_day'] else None,
        depart_time=row['depart_time'],
        arrive_day=Weekday(row['arrive_day']) if row['arrive_day'] else None,
        arrive_time=row['arrive_time'],
        price=row['price'],
        service_id=row['service_id']
    )


def row_to_flight(row) -> Flight:
    """Convert database row to Flight object"""
    if not row:
        return None
    return Flight(
        id=row['id'],
        route_id=row['route_id'],
        flight_date=row['flight_date'],
        created_at=row.get('created_at')
    )


def row_to_passenger(row) -> Passenger:
    """Convert database row to Passenger object"""
    if not row:
        return None
    return Passenger(
        id=row['id'],
        name=row['name'],
        email=row['email'],
        created_at=row.get('created_at')
    )


def row_to_booking(row) -> Booking:
    """Convert database row to Booking object"""
    if not row:
        return None
    return Booking(
        booking_id=row['booking_id'],
        passenger_id=row['passenger_id'],
        total_price=row['total_price'],
        created_at=row.get('created_at')
    )
