"""Xorshift random number generator used by the samplers."""

from __future__ import annotations

import time

_MASK32 = 0xFFFFFFFF
_SCALE = 4.6566125e-10


class XorshiftRng:
    """32-bit xorshift generator producing non-negative 31-bit integers."""

    def __init__(self, seed: int | None = None) -> None:
        if seed is None:
            seed = int(time.time())
        self._state = seed & _MASK32

    def rand(self) -> int:
        """Return the next random integer in [0, 2**31)."""
        x = self._state
        x ^= (x << 13) & _MASK32
        x ^= x >> 17
        x ^= (x << 5) & _MASK32
        self._state = x
        return x & 0x7FFFFFFF

    def rand_double(self) -> float:
        """Return a random float in [0, 1)."""
        return self.rand() * _SCALE

    def rand_k(self, k: int) -> int:
        """Return a random integer in [0, k)."""
        return int(self.rand() * _SCALE * k)