"""
Deterministic pseudo-random source.

A string seed (normally the session date) is hashed with 32-bit FNV-1a and
drives a small linear congruential generator, so the same date always
produces the same synthetic session.
"""

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280


def fnv1a_32(text: str) -> int:
    """32-bit FNV-1a hash of a string's UTF-16 code units."""
    h = FNV_OFFSET_BASIS
    for ch in text:
        for unit in _utf16_units(ch):
            h ^= unit
            h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def _utf16_units(ch: str):
    code = ord(ch)
    if code < 0x10000:
        return (code,)
    code -= 0x10000
    return (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF))


class SeededRandom:
    """Reproducible sequence of floats in [0, 1)."""

    def __init__(self, seed: str):
        self.seed_text = seed
        self._state = fnv1a_32(seed)

    def next(self) -> float:
        self._state = (self._state * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
        return self._state / LCG_MODULUS

    def range(self, low: float, high: float) -> float:
        """Uniform value in [low, high)."""
        return low + self.next() * (high - low)

    def __repr__(self) -> str:
        return f"SeededRandom({self.seed_text!r})"
