"""
Short Code Generator

Generates collision-free short codes.

Design Decisions:
- Base62 encoding: Uses [0-9a-zA-Z] for maximum URL compatibility
- Time-based: the current time in milliseconds, base62 encoded and cut to
  a fixed length, is tried first
- Random fallback: after a bounded number of collisions, uniformly random
  codes are drawn until one is free (62^7 ≈ 3.5e12 codes at length 7)
- Every candidate is checked against all records, active or not
"""

import logging
import random
import time
from collections.abc import Callable

from shortlink.core.setting import settings
from shortlink.services.link_store import LinkStore

logger = logging.getLogger(__name__)

BASE62_CHARS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE62_LENGTH = len(BASE62_CHARS)


def encode_base62(number: int) -> str:
    """
    Encode a non-negative number to a base62 string.

    Example:
        encode_base62(0) -> "0"
        encode_base62(61) -> "Z"
        encode_base62(62) -> "10"
    """
    if number < 0:
        raise ValueError(f"Cannot encode negative number: {number}")
    if number == 0:
        return BASE62_CHARS[0]

    digits = []
    while number > 0:
        number, remainder = divmod(number, BASE62_LENGTH)
        digits.append(BASE62_CHARS[remainder])

    return ''.join(reversed(digits))


def random_code(length: int) -> str:
    return ''.join(random.choices(BASE62_CHARS, k=length))


def current_millis() -> int:
    return time.time_ns() // 1_000_000


class ShortCodeGenerator:
    """
    Produces codes that no stored record uses yet.

    Uniqueness is checked against the store; the unique index on the code
    column remains the final guard against concurrent inserts.
    """

    def __init__(
        self,
        store: LinkStore,
        length: int = settings.SHORT_CODE_LENGTH,
        max_attempts: int = settings.SHORT_CODE_MAX_ATTEMPTS,
        clock: Callable[[], int] = current_millis,
    ):
        self.store = store
        self.length = length
        self.max_attempts = max_attempts
        self.clock = clock

    def candidate(self) -> str:
        return encode_base62(self.clock())[:self.length]

    async def generate(self) -> str:
        """
        Generate a short code not used by any record.

        Raises:
            DatabaseError: If the store cannot be queried
        """
        for _ in range(self.max_attempts):
            code = self.candidate()
            if not await self.store.code_exists(code):
                return code

        logger.warning(
            f"Time-based code collided {self.max_attempts} times, falling back to random codes"
        )
        while True:
            code = random_code(self.length)
            if not await self.store.code_exists(code):
                return code
