"""
Passenger lookup and registration
Passengers are keyed by email and created on their first booking
"""
from typing import Tuple

from database import Passenger, NotFoundError, ValidationError, row_to_passenger, get_db_manager


class PassengerService:
    """Service for passenger resolution"""

    def __init__(self, db_manager=None):
        self.db_manager = db_manager or get_db_manager()

    @staticmethod
    def normalize_email(email) -> str:
        """Trim and lower-case an email; emails compare case-insensitively"""
        if not isinstance(email, str) or not email.strip():
            raise ValidationError("Passenger email is required")
        email = email.strip().lower()
        if '@' not in email:
            raise ValidationError(f"Invalid passenger email: {email}")
        return email

    @staticmethod
    def validate_details(name, email) -> Tuple[str, str]:
        """
        Check passenger details before any storage access

        Returns:
            Cleaned (name, email) pair

        Raises:
            ValidationError: If the name or email is missing or malformed
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Passenger name is required")
        return name.strip(), PassengerService.normalize_email(email)

    @staticmethod
    def resolve_or_create(cursor, name: str, email: str) -> Passenger:
        """
        Get the passenger registered under an email, creating it if new

        Runs inside the caller's transaction. A concurrent insert of the
        same email makes this wait for the other transaction, then reuse its row.
        """
        cursor.execute("""
            INSERT INTO passengers (name, email)
            VALUES (%s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id, name, email, created_at
        """, (name, email))
        row = cursor.fetchone()

        if not row:
            cursor.execute("""
                SELECT id, name, email, created_at
                FROM passengers
                WHERE email = %s
            """, (email,))
            row = cursor.fetchone()

        return row_to_passenger(row)

    def get_passenger(self, passenger_id: int) -> Passenger:
        """Get passenger by ID"""
        with self.db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT id, name, email, created_at
                FROM passengers
                WHERE id = %s
            """, (passenger_id,))
            row = cursor.fetchone()

        if not row:
            raise NotFoundError(f"Passenger with ID {passenger_id} not found")
        return row_to_passenger(row)

    def get_passenger_by_email(self, email: str) -> Passenger:
        """Get passenger by email"""
        email = self.normalize_email(email)

        with self.db_manager.get_cursor() as cursor:
            cursor.execute("""
                SELECT id, name, email, created_at
                FROM passengers
                WHERE email = %s
            """, (email,))
            row = cursor.fetchone()

        if not row:
            raise NotFoundError(f"No passenger registered with email {email}")
        return row_to_passenger(row)
