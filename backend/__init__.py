"""Service layer: route catalog, itinerary search and booking coordination"""
from .catalog_service import BaseRouteCatalog, StaticRouteCatalog, RouteCatalog
from .itinerary_service import ItineraryResolver, ItineraryService
from .capacity_service import CapacityOracle
from .reference_service import ReferenceGenerator
from .passenger_service import PassengerService
from .booking_service import BookingService

__all__ = [
    'BaseRouteCatalog', 'StaticRouteCatalog', 'RouteCatalog',
    'ItineraryResolver', 'ItineraryService',
    'CapacityOracle', 'ReferenceGenerator', 'PassengerService', 'BookingService'
]
