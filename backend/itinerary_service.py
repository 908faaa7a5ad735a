"""
Itinerary search service
Enumerates every simple path through the route graph for one weekday
"""
import logging
from datetime import date
from typing import List, Optional, Tuple

from database import Itinerary, Route, Weekday, ValidationError
from backend.catalog_service import BaseRouteCatalog, RouteCatalog

logger = logging.getLogger(__name__)

AIRPORT_CODE_LENGTH = 4


class ItineraryResolver:
    """Depth-first enumeration of itineraries over a route catalog"""

    def __init__(self, catalog: BaseRouteCatalog):
        self.catalog = catalog

    def resolve(self, origin: str, destination: str, weekday: Weekday) -> List[Itinerary]:
        """
        Find itineraries from origin to destination on a weekday

        Direct routes win: when at least one exists, only the one-leg
        itineraries are returned. Otherwise every path that never revisits
        an airport is enumerated.

        Args:
            origin: Departure airport code
            destination: Arrival airport code
            weekday: Day every leg must depart on

        Returns:
            Itineraries sorted by their route IDs; empty when none exists
        """
        direct = self.catalog.routes_between(origin, destination, weekday)
        if direct:
            itineraries = [Itinerary((route,)) for route in direct]
        else:
            max_depth = max(self.catalog.airport_count(), 1)
            itineraries = [
                Itinerary(path)
                for path in self._search(origin, destination, weekday, (), max_depth)
            ]

        itineraries.sort(key=lambda itinerary: itinerary.route_ids)
        logger.debug("Resolved %d itineraries %s->%s on %s",
                     len(itineraries), origin, destination, weekday.value)
        return itineraries

    def _search(self, current: str, destination: str, weekday: Weekday,
                path: Tuple[Route, ...], max_depth: int) -> List[Tuple[Route, ...]]:
        """Extend ``path`` from ``current``; ``path`` is never mutated."""
        if len(path) >= max_depth:
            logger.warning("Search depth %d reached at %s; abandoning branch", max_depth, current)
            return []

        # Origin of the whole path plus every airport reached so far
        visited = [path[0].origin] if path else [current]
        visited.extend(route.destination for route in path)

        found = []
        for route in self.catalog.routes_from_excluding(current, weekday, visited):
            extended = path + (route,)
            if route.destination == destination:
                found.append(extended)
            else:
                found.extend(self._search(route.destination, destination, weekday,
                                          extended, max_depth))
        return found


class ItineraryService:
    """Entry point for itinerary searches by calendar date"""

    def __init__(self, catalog: Optional[RouteCatalog] = None):
        self.catalog = catalog or RouteCatalog()

    @staticmethod
    def validate_airport_code(code, label: str = "Airport code") -> str:
        if not isinstance(code, str) or len(code) != AIRPORT_CODE_LENGTH:
            raise ValidationError(f"{label} must be {AIRPORT_CODE_LENGTH} characters long: {code!r}")
        return code

    def find_itineraries(self, origin: str, destination: str, travel_date: date) -> List[Itinerary]:
        """
        Find itineraries for a travel date

        Args:
            origin: Departure airport ICAO code
            destination: Arrival airport ICAO code
            travel_date: Calendar date of travel

        Returns:
            Itineraries whose every leg departs on the date's weekday

        Raises:
            ValidationError: If a code or the date is malformed, or origin equals destination
        """
        self.validate_airport_code(origin, "Origin")
        self.validate_airport_code(destination, "Destination")
        if origin == destination:
            raise ValidationError("Origin and destination must differ")
        if not isinstance(travel_date, date):
            raise ValidationError(f"Invalid travel date: {travel_date!r}")

        weekday = Weekday.from_date(travel_date)
        resolver = ItineraryResolver(self.catalog.snapshot(weekday))
        return resolver.resolve(origin, destination, weekday)
