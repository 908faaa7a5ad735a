"""
Route catalog service
Read-only queries over airports, aircraft, services and scheduled routes
"""
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from database import (
    Airport, Route, Weekday, NotFoundError,
    row_to_aircraft, row_to_airport, row_to_route, row_to_service, get_db_manager
)


# Route with its service and aircraft, columns prefixed for joined queries
_ROUTE_WITH_SERVICE_QUERY = """
    SELECT r.route_id, r.origin, r.destination, r.depart_day, r.depart_time,
           r.arrive_day, r.arrive_time, r.price, r.service_id,
           s.id as s_id, s.name as s_name, s.aircraft_id as s_aircraft_id,
           a.id as a_id, a.name as a_name, a.capacity as a_capacity
    FROM routes r
    LEFT JOIN services s ON r.service_id = s.id
    LEFT JOIN aircraft a ON s.aircraft_id = a.id
"""


def _build_route_with_service(row) -> Optional[Route]:
    """Build a Route object with service and aircraft relations from a joined row."""
    if not row:
        return None
    route = row_to_route(row)
    if row.get('s_id'):
        route.service = row_to_service({
            'id': row['s_id'],
            'name': row['s_name'],
            'aircraft_id': row['s_aircraft_id'],
        })
        if row.get('a_id'):
            route.service.aircraft = row_to_aircraft({
                'id': row['a_id'],
                'name': row['a_name'],
                'capacity': row['a_capacity'],
            })
    return route


class BaseRouteCatalog(ABC):
    """Read-only view of the route graph used by the itinerary resolver"""

    @abstractmethod
    def routes_from(self, origin: str, weekday: Weekday) -> List[Route]:
        """All routes departing ``origin`` on ``weekday``"""

    @abstractmethod
    def routes_between(self, origin: str, destination: str, weekday: Weekday) -> List[Route]:
        """Direct routes from ``origin`` to ``destination`` on ``weekday``"""

    @abstractmethod
    def routes_from_excluding(self, origin: str, weekday: Weekday,
                              excluded: Iterable[str]) -> List[Route]:
        """Routes departing ``origin`` on ``weekday`` whose destination is not in ``excluded``"""

    @abstractmethod
    def airport_count(self) -> int:
        """Number of distinct airports in the catalog"""


class StaticRouteCatalog(BaseRouteCatalog):
    """In-memory catalog over a fixed list of routes"""

    def __init__(self, routes: Iterable[Route], airports: Optional[Iterable[str]] = None):
        self._by_origin: Dict[str, List[Route]] = defaultdict(list)
        known = set(airports or ())
        for route in sorted(routes, key=lambda r: r.route_id):
            self._by_origin[route.origin].append(route)
            known.update((route.origin, route.destination))
        self._airports = frozenset(known)

    def routes_from(self, origin, weekday):
        return [route for route in self._by_origin.get(origin, ()) if route.runs_on(weekday)]

    def routes_between(self, origin, destination, weekday):
        return [route for route in self.routes_from(origin, weekday)
                if route.destination == destination]

    def routes_from_excluding(self, origin, weekday, excluded):
        excluded = set(excluded)
        return [route for route in self.routes_from(origin, weekday)
                if route.destination not in excluded]

    def airport_count(self):
        return len(self._airports)


class RouteCatalog(BaseRouteCatalog):
    """PostgreSQL-backed route catalog"""

    def __init__(self, db_manager=None):
        self.db_manager = db_manager or get_db_manager()

    def _fetch_routes(self, where: str, params: tuple) -> List[Route]:
        with self.db_manager.get_cursor() as cursor:
            cursor.execute(f"{_ROUTE_WITH_SERVICE_QUERY} WHERE {where} ORDER BY r.route_id", params)
            return [_build_route_with_service(row) for row in cursor.fetchall()]

    def routes_from(self, origin, weekday):
        return self._fetch_routes(
            "r.origin = %s AND r.depart_day = %s",
            (origin, weekday.value)
        )

    def routes_between(self, origin, destination, weekday):
        return self._fetch_routes(
            "r.origin = %s AND r.destination = %s AND r.depart_day = %s",
            (origin, destination, weekday.value)
        )

    def routes_from_excluding(self, origin, weekday, excluded):
        return self._fetch_routes(
            "r.origin = %s AND r.depart_day = %s AND r.destination <> ALL(%s::text[])",
            (origin, weekday.value, list(excluded))
        )

    def airport_count(self):
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS airport_count FROM airports")
            return cursor.fetchone()['airport_count']

    def list_airports(self) -> List[Airport]:
        """List all airports ordered by code"""
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT icao, name, country, timezone
                FROM airports
                ORDER BY icao
            """)
            return [row_to_airport(row) for row in cursor.fetchall()]

    def get_airport(self, icao: str) -> Airport:
        """Get airport by ICAO code"""
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT icao, name, country, timezone
                FROM airports
                WHERE icao = %s
            """, (icao,))
            row = cursor.fetchone()

        if not row:
            raise NotFoundError(f"Airport {icao} not found")
        return row_to_airport(row)

    def get_route(self, route_id: str) -> Route:
        """Get route by ID, with its service and aircraft"""
        routes = self._fetch_routes("r.route_id = %s", (route_id,))
        if not routes:
            raise NotFoundError(f"Route {route_id} not found")
        return routes[0]

    def get_routes(self, route_ids: Iterable[str], cursor=None) -> Dict[str, Route]:
        """
        Fetch several routes at once

        Args:
            route_ids: Route identifiers to load
            cursor: Cursor of an open transaction (optional)

        Returns:
            Mapping of route ID to route; unknown IDs are absent
        """
        query = f"{_ROUTE_WITH_SERVICE_QUERY} WHERE r.route_id = ANY(%s::text[])"
        params = (sorted(set(route_ids)),)

        if cursor is not None:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        else:
            with self.db_manager.get_cursor() as own_cursor:
                own_cursor.execute(query, params)
                rows = own_cursor.fetchall()

        routes = (_build_route_with_service(row) for row in rows)
        return {route.route_id: route for route in routes}

    def snapshot(self, weekday: Weekday) -> StaticRouteCatalog:
        """Prefetch every route of one weekday into an in-memory catalog"""
        routes = self._fetch_routes("r.depart_day = %s", (weekday.value,))
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("SELECT icao FROM airports")
            airports = [row['icao'] for row in cursor.fetchall()]
        return StaticRouteCatalog(routes, airports=airports)
