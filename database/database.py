"""
Database connection and transaction management using raw PostgreSQL
Bookings run at READ COMMITTED and serialise on row locks taken on flight rows
"""
import logging
import os
import sys
import threading
from contextlib import contextmanager
from pathlib import Path

import psycopg2
from psycopg2 import pool, extras, sql
from psycopg2.extensions import ISOLATION_LEVEL_READ_COMMITTED
from dotenv import load_dotenv

# Support running this module directly (``python database/database.py``)
if __package__ in (None, ""):
    # Add repository root so ``import database.errors`` resolves
    current_dir = Path(__file__).resolve().parent
    repo_root = current_dir.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from database.errors import StorageError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = 'postgresql://localhost/airline_reservation'


class DatabaseManager:
    """
    Database manager with transaction support and connection pooling
    """

    def __init__(self, database_url=None, min_connections=None, max_connections=None, pool_timeout=None):
        """
        Initialize database manager

        Args:
            database_url: libpq connection URL (defaults to env variable)
            min_connections: Connections opened eagerly by the pool
            max_connections: Upper bound of concurrently borrowed connections
            pool_timeout: Seconds to wait for a free connection (defaults to env variable)
        """
        self.database_url = database_url or os.getenv('DATABASE_URL', DEFAULT_DATABASE_URL)
        self.min_connections = min_connections or int(os.getenv('DB_POOL_MIN', '2'))
        self.max_connections = max_connections or int(os.getenv('DB_POOL_MAX', '40'))
        self.pool_timeout = pool_timeout or float(os.getenv('DB_POOL_TIMEOUT', '30'))
        # Borrowers beyond max_connections wait here; the pool itself raises when exhausted
        self._available = threading.BoundedSemaphore(self.max_connections)

        try:
            self.connection_pool = pool.ThreadedConnectionPool(
                minconn=self.min_connections,
                maxconn=self.max_connections,
                dsn=self.database_url
            )
        except psycopg2.Error as e:
            raise StorageError(f"Failed to create database connection pool: {e}") from e

        logger.debug("Connection pool ready (%d-%d connections)", self.min_connections, self.max_connections)

    def get_connection(self):
        """Get a connection from the pool, waiting up to pool_timeout for a free one"""
        if not self._available.acquire(timeout=self.pool_timeout):
            raise StorageError(f"No database connection available after {self.pool_timeout}s")
        try:
            return self.connection_pool.getconn()
        except pool.PoolError as e:
            self._available.release()
            raise StorageError(f"No database connection available: {e}") from e

    def return_connection(self, conn):
        """Return a connection to the pool"""
        try:
            # Broken connections are discarded instead of recycled
            self.connection_pool.putconn(conn, close=bool(conn.closed))
        finally:
            self._available.release()

    def close_all_connections(self):
        """Close all connections in the pool"""
        if self.connection_pool and not self.connection_pool.closed:
            self.connection_pool.closeall()

    def create_tables(self):
        """Create all database tables from schema"""
        schema_file = Path(__file__).parent / 'schema.sql'

        if not schema_file.exists():
            raise FileNotFoundError(f"Schema file not found: {schema_file}")

        schema_sql = schema_file.read_text()

        with self.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute(schema_sql)

    def drop_tables(self):
        """Drop all database tables (use with caution!)"""
        with self.transaction() as conn:
            with conn.cursor() as cursor:
                cursor.execute("""
                    SELECT tablename FROM pg_tables
                    WHERE schemaname = 'public'
                """)
                tables = [row[0] for row in cursor.fetchall()]

                for table in tables:
                    cursor.execute(sql.SQL("DROP TABLE IF EXISTS {} CASCADE").format(
                        sql.Identifier(table)
                    ))

    @contextmanager
    def get_cursor(self, cursor_factory=None):
        """
        Get a cursor with automatic connection management

        Args:
            cursor_factory: Cursor factory (defaults to RealDictCursor)

        Usage:
            with db.get_cursor() as cursor:
                cursor.execute("SELECT * FROM airports")
                results = cursor.fetchall()
        """
        with self.transaction() as conn:
            cursor = conn.cursor(cursor_factory=cursor_factory or extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope with a connection

        Runs at READ COMMITTED. Commits when the block completes, rolls back
        on any exception.

        Usage:
            with db.transaction() as conn:
                with conn.cursor() as cursor:
                    cursor.execute("INSERT INTO passengers ...")
        """
        conn = self.get_connection()

        try:
            conn.set_isolation_level(ISOLATION_LEVEL_READ_COMMITTED)
            yield conn
            conn.commit()
        except Exception:
            if not conn.closed:
                conn.rollback()
            raise
        finally:
            self.return_connection(conn)


# Global database manager instance
_db_manager = None


def get_db_manager() -> DatabaseManager:
    """Get or create global database manager instance"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def set_db_manager(db_manager: DatabaseManager | None) -> None:
    """Override the global database manager instance.

    This is primarily used in test fixtures so that the service layer operates on
    the test database instead of the default production database.
    Passing ``None`` resets the singleton so the next
    ``get_db_manager`` call recreates it with default settings.
    """
    global _db_manager
    _db_manager = db_manager


def init_db():
    """Initialize database with tables"""
    db_manager = get_db_manager()
    db_manager.create_tables()
    logger.info("Database schema created")


if __name__ == "__main__":
    # Initialize database when run directly
    logging.basicConfig(level=logging.INFO)
    init_db()
