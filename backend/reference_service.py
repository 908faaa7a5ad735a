"""
Booking reference allocation
"""
import logging
import random
import string
from typing import Optional

from database import ConflictError

logger = logging.getLogger(__name__)


class ReferenceGenerator:
    """Allocates short booking references that are never reused"""

    ALPHABET = string.ascii_uppercase + string.digits

    def __init__(self, prefix: str = "B", length: int = 5, max_attempts: int = 10,
                 rng: Optional[random.Random] = None):
        """
        Args:
            prefix: Fixed leading characters of every reference
            length: Number of random characters after the prefix
            max_attempts: Collisions tolerated before giving up
            rng: Random source (defaults to the OS generator)
        """
        if length <= 0 or max_attempts <= 0:
            raise ValueError("length and max_attempts must be positive")
        self.prefix = prefix
        self.length = length
        self.max_attempts = max_attempts
        self._random = rng or random.SystemRandom()

    def candidate(self) -> str:
        """Draw a reference without checking it against storage"""
        return self.prefix + ''.join(self._random.choices(self.ALPHABET, k=self.length))

    def allocate(self, cursor) -> str:
        """
        Claim a fresh reference inside the caller's transaction

        The claim and the booking insert share one transaction, so a rolled
        back booking releases its reference and a committed one keeps it
        forever, even after the booking is deleted.

        Raises:
            ConflictError: If every attempt collided with an issued reference
        """
        for attempt in range(1, self.max_attempts + 1):
            reference = self.candidate()
            cursor.execute("""
                INSERT INTO booking_references (reference)
                VALUES (%s)
                ON CONFLICT (reference) DO NOTHING
                RETURNING reference
            """, (reference,))

            if cursor.fetchone():
                return reference

            logger.debug("Booking reference %s already issued (attempt %d)", reference, attempt)

        logger.warning("Gave up allocating a booking reference after %d attempts", self.max_attempts)
        raise ConflictError(f"Could not allocate a unique booking reference after {self.max_attempts} attempts")
