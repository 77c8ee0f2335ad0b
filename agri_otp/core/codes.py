"""
Numeric code generation.
"""

import random
import secrets
import string
from typing import Optional


class CodeGenerator:
    """
    Produces fixed-length digit strings.

    Each digit is drawn independently and uniformly from 0-9, so leading
    zeros occur naturally. The default source is ``secrets.SystemRandom``;
    pass a seeded ``random.Random`` only in tests.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or secrets.SystemRandom()

    def generate(self, length: int) -> str:
        """
        Generate a numeric code.

        Args:
            length: Number of digits, must be positive

        Returns:
            str: Code of exactly ``length`` digits (e.g., "042917")

        Raises:
            ValueError: If length is not a positive integer
        """
        if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
            raise ValueError(f"Code length must be a positive integer, got {length!r}")
        return ''.join(self._rng.choice(string.digits) for _ in range(length))


def generate_code(length: int = 6) -> str:
    """Generate a code with a cryptographically secure source."""
    return CodeGenerator().generate(length)
