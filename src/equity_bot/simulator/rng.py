"""Deterministic random source for reproducible simulations."""

from __future__ import annotations

import math

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MODULUS = 2**31


class SeededRandom:
    """Linear congruential generator.

    ``seed = (seed * 1103515245 + 12345) mod 2**31`` and each draw is
    ``seed / 2**31``. Integer arithmetic is exact, so any implementation of
    the same recurrence produces the same stream.
    """

    def __init__(self, seed: int) -> None:
        self.seed = int(seed) % LCG_MODULUS

    def random(self) -> float:
        self.seed = (self.seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self.seed / LCG_MODULUS

    def randrange(self, stop: int) -> int:
        return math.floor(self.random() * stop)
