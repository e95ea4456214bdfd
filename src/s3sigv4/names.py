"""Unique name generation for test buckets, objects and temporary files.

A NameGenerator is created and owned by whoever needs names and passed to
the code that uses it. Seeding it makes the whole sequence reproducible.
Names are meant to be unique in practice across a test run, not random in
any statistical sense.
"""

from __future__ import annotations

import os
import random
import threading
import time

# Lowercase letters and digits, 7 and 8 omitted.
NAME_ALPHABET = "abcdefghijklmnopqrstuvwxyz01234569"
BUCKET_NAME_LENGTH = 60

# Linear congruential constants from Numerical Recipes.
_LCG_MULTIPLIER = 1664525
_LCG_INCREMENT = 1013904223
_LCG_MODULUS = 2**32


def _reseed() -> int:
    return (time.time_ns() + os.getpid()) % _LCG_MODULUS


class NameGenerator:
    """Mints unique suffixes and random names.

    Attributes:
        seed: The seed the generator was created with, or None when seeded
            from the clock.
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._state = 0 if seed is None else seed % _LCG_MODULUS
        self._rng = random.Random(seed)
        self._lock = threading.Lock()

    def next_suffix(self) -> str:
        """Return a new 9-digit decimal suffix.

        A zero state (unseeded, or seeded with 0) is reseeded from the clock
        and process id first.
        """
        with self._lock:
            state = self._state
            if state == 0:
                state = _reseed()
            state = (state * _LCG_MULTIPLIER + _LCG_INCREMENT) % _LCG_MODULUS
            self._state = state
        return f"{state % 1_000_000_000:09d}"

    def random_string(self, length: int) -> str:
        """Return ``length`` characters drawn from NAME_ALPHABET."""
        with self._lock:
            return "".join(self._rng.choice(NAME_ALPHABET) for _ in range(length))

    def bucket_name(self) -> str:
        return self.random_string(BUCKET_NAME_LENGTH)

    def object_name(self, prefix: str = "object") -> str:
        return f"{prefix}-{self.next_suffix()}"
