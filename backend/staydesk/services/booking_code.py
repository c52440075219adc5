"""Booking code generation.

Codes look like ``BOOK-7K2Q9X`` and are what guests type into the public
check-in form, so they must be unique across all bookings.
"""

import re
import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.models.booking import Booking

CODE_PREFIX = "BOOK-"
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 10

_CODE_RE = re.compile(rf"^{CODE_PREFIX}[A-Z0-9]{{{CODE_LENGTH}}}$")


class CodeGenerationExhaustedError(Exception):
    """No free booking code was found within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate a unique booking code after {attempts} attempts")


def generate_booking_code() -> str:
    """Return a random code in the BOOK-XXXXXX format."""
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def is_valid_booking_code(code: str) -> bool:
    """Check a code has the BOOK-XXXXXX format."""
    return bool(_CODE_RE.match(code or ""))


async def booking_code_exists(db: AsyncSession, code: str) -> bool:
    result = await db.execute(select(Booking.id).where(Booking.booking_code == code))
    return result.first() is not None


async def generate_unique_booking_code(
    db: AsyncSession,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    generator=generate_booking_code,
) -> str:
    """Generate a code not yet used by any booking.

    Raises:
        CodeGenerationExhaustedError: every one of ``max_attempts`` candidates was taken
    """
    for _ in range(max_attempts):
        code = generator()
        if not await booking_code_exists(db, code):
            return code
    raise CodeGenerationExhaustedError(max_attempts)
