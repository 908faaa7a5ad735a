"""Pytest configuration and fixtures."""
import os
import sys
from datetime import date, time

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import StorageError
from database.database import DatabaseManager, set_db_manager
from data.data_generator import DataGenerator

TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL', 'postgresql://localhost/airline_reservation_test')

# 2029-01-01 falls on a Monday
MONDAY = date(2029, 1, 1)
TUESDAY = date(2029, 1, 2)

TEST_AIRPORTS = [
    ('NZNE', 'Dairy Flats', 'New Zealand', 'Pacific/Auckland'),
    ('NZRO', 'Rotorua', 'New Zealand', 'Pacific/Auckland'),
    ('NZTL', 'Lake Tekapo', 'New Zealand', 'Pacific/Auckland'),
    ('NZGB', 'Great Barrier Island', 'New Zealand', 'Pacific/Auckland'),
]

TEST_AIRCRAFT = [
    ('Cirrus SF50', 3),
    ('Solo Trainer', 1),
]

TEST_SERVICES = [
    ('Shuttle', 'Cirrus SF50'),
    ('Solo', 'Solo Trainer'),
]

# Monday: NZNE->NZRO->NZTL (no direct NZNE->NZTL), NZNE<->NZGB
TEST_ROUTES = [
    ('AB01', 'NZNE', 'NZRO', 'Monday', time(7, 0), 'Monday', time(7, 45), 100, 'Shuttle'),
    ('BC01', 'NZRO', 'NZTL', 'Monday', time(9, 0), 'Monday', time(10, 30), 50, 'Shuttle'),
    ('SOLO', 'NZNE', 'NZGB', 'Monday', time(9, 0), 'Monday', time(9, 30), 80, 'Solo'),
    ('GB01', 'NZGB', 'NZNE', 'Monday', time(15, 0), 'Monday', time(15, 30), 80, 'Shuttle'),
    ('TU01', 'NZNE', 'NZRO', 'Tuesday', time(7, 0), 'Tuesday', time(7, 45), 110, 'Shuttle'),
]


def pytest_addoption(parser):
    """Register custom CLI options for the test suite."""
    parser.addoption(
        "--performance",
        action="store_true",
        default=False,
        help="Run the performance test suite",
    )
    parser.addoption(
        "--performance-bookings",
        type=int,
        default=2000,
        help="Number of bookings to attempt for performance tests",
    )


def pytest_configure(config):
    """Declare custom markers to avoid pytest warnings."""
    config.addinivalue_line(
        "markers",
        "performance: marks performance tests that only run when --performance is supplied",
    )


def pytest_collection_modifyitems(config, items):
    """Skip performance tests unless the dedicated flag is present."""
    if config.getoption("--performance"):
        return

    skip_marker = pytest.mark.skip(
        reason="Performance tests only run when --performance flag is provided",
    )
    for item in items:
        if "performance" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture(scope='function')
def db_manager():
    """Create a test database manager with PostgreSQL test database."""
    try:
        db = DatabaseManager(database_url=TEST_DATABASE_URL)
    except StorageError as e:
        pytest.skip(f"PostgreSQL test database unavailable: {e}")

    db.drop_tables()  # Clean slate for each test
    db.create_tables()
    set_db_manager(db)
    yield db
    set_db_manager(None)
    db.drop_tables()  # Cleanup after test
    db.close_all_connections()


@pytest.fixture(scope='function')
def test_network(db_manager):
    """Load the small Monday/Tuesday test network"""
    generator = DataGenerator(db_manager, seed=7)
    generator.load_catalog(TEST_AIRPORTS, TEST_AIRCRAFT, TEST_SERVICES, TEST_ROUTES)
    return generator


def count_rows(db, table: str) -> int:
    """Count rows of a table directly in the database."""
    with db.get_cursor() as cursor:
        cursor.execute(f"SELECT COUNT(*) AS count FROM {table}")
        return cursor.fetchone()['count']
