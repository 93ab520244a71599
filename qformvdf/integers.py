"""Arbitrary-precision integer helpers with GMP-compatible semantics."""

from __future__ import annotations

import math
import random
import threading
from dataclasses import dataclass, field

_LIMB_BITS = 64
_LIMB_MASK = (1 << _LIMB_BITS) - 1
_DIGITS = "0123456789abcdef"


def parse_integer(text: str) -> int:
    """Parse an integer the way GMP does with base 0.

    A ``0x`` prefix selects hexadecimal, ``0b`` binary, a leading ``0``
    octal, and anything else decimal. A leading ``-`` negates the value.
    """
    stripped = text.strip()
    negative = stripped.startswith("-")
    body = stripped[1:] if negative else stripped
    lowered = body.lower()

    if lowered.startswith("0x"):
        base, digits = 16, lowered[2:]
    elif lowered.startswith("0b"):
        base, digits = 2, lowered[2:]
    elif lowered.startswith("0") and len(lowered) > 1:
        base, digits = 8, lowered[1:]
    else:
        base, digits = 10, lowered

    allowed = set(_DIGITS[:base])
    if not digits or any(ch not in allowed for ch in digits):
        raise ValueError(f"invalid integer literal: {text!r}")

    value = int(digits, base)
    return -value if negative else value


def to_hex_string(value: int) -> str:
    """Format as ``0x...`` in lower case, with ``-0x...`` for negatives."""
    sign = "-" if value < 0 else ""
    return f"{sign}0x{abs(value):x}"


def to_dec_string(value: int) -> str:
    """Format in decimal."""
    return str(value)


def num_bits(value: int) -> int:
    """Number of bits in ``abs(value)``; zero counts as one bit."""
    return max(1, abs(value).bit_length())


def to_limbs(value: int) -> list[int]:
    """Split ``abs(value)`` into 64-bit limbs, least significant first."""
    magnitude = abs(value)
    limbs = []
    while magnitude:
        limbs.append(magnitude & _LIMB_MASK)
        magnitude >>= _LIMB_BITS
    return limbs


def from_limbs(limbs) -> int:
    """Join 64-bit limbs, least significant first, into a non-negative integer."""
    value = 0
    for limb in reversed(list(limbs)):
        if not 0 <= limb <= _LIMB_MASK:
            raise ValueError(f"limb out of range: {limb}")
        value = (value << _LIMB_BITS) | limb
    return value


def to_bytes(value: int) -> bytes:
    """Big-endian bytes of ``abs(value)``; zero becomes a single zero byte."""
    length = (num_bits(value) + 7) // 8
    return abs(value).to_bytes(length, "big")


def from_bytes(data: bytes) -> int:
    """Read big-endian bytes as a non-negative integer."""
    return int.from_bytes(bytes(data), "big")


def floor_div(a: int, b: int) -> int:
    """Quotient rounded towards negative infinity."""
    return a // b


def mod(a: int, b: int) -> int:
    """Non-negative remainder of ``a`` modulo ``abs(b)``; the sign of ``b`` is ignored."""
    if b == 0:
        raise ZeroDivisionError("modulus is zero")
    return a % abs(b)


def integer_root(value: int, n: int) -> int:
    """Truncated integer n-th root; odd roots of negative values are allowed."""
    if n <= 0:
        raise ValueError("root degree must be positive")
    if value < 0:
        if n % 2 == 0:
            raise ValueError("even root of a negative number")
        return -integer_root(-value, n)
    if value < 2 or n == 1:
        return value

    x = 1 << -(-value.bit_length() // n)
    while True:
        y = ((n - 1) * x + value // x ** (n - 1)) // n
        if y >= x:
            return x
        x = y


@dataclass(frozen=True)
class GcdResult:
    """``a*s + b*t == gcd`` with ``gcd >= 0``."""

    gcd: int
    s: int
    t: int


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def gcd_ext(a: int, b: int) -> GcdResult:
    """Extended gcd with minimal cofactors.

    Apart from the degenerate cases, ``abs(s) < abs(b) / (2*gcd)`` and
    ``abs(t) < abs(a) / (2*gcd)``.
    """
    if b == 0:
        return GcdResult(abs(a), _sign(a), 0)

    g = math.gcd(a, b)
    b_reduced = abs(b) // g
    a_reduced = abs(a) // g

    s = pow(a_reduced, -1, b_reduced) if b_reduced > 1 else 0
    if s > b_reduced // 2:
        s -= b_reduced
    if a < 0:
        s = -s

    t = (g - a * s) // b
    return GcdResult(g, s, t)


_rand_state = threading.local()


def rand_integer(num_bits: int, seed: int | None = None) -> int:
    """Uniform random integer in ``[0, 2**num_bits)``.

    Each thread has its own generator, seeded with 0 on first use.
    Passing ``seed`` reseeds that generator first.
    """
    if num_bits < 0:
        raise ValueError("num_bits must be non-negative")

    generator = getattr(_rand_state, "generator", None)
    if generator is None:
        generator = random.Random(0)
        _rand_state.generator = generator

    if seed is not None and seed != -1:
        generator.seed(seed)

    return generator.getrandbits(num_bits)


@dataclass
class TrackMax:
    """Records the largest bit size and any negative sign seen per (line, name)."""

    data: dict[tuple[int, str], tuple[int, bool]] = field(default_factory=dict)

    def add(self, line: int, name: str, value: int, negative: bool) -> None:
        largest, seen_negative = self.data.get((line, name), (0, False))
        self.data[(line, name)] = (max(largest, value), seen_negative or bool(negative))

    def report(self, basis_bits: int) -> list[tuple[str, float, bool]]:
        """Rows of (name, largest size in multiples of ``basis_bits``, seen negative)."""
        return [
            (name, largest / basis_bits, seen_negative)
            for (_, name), (largest, seen_negative) in sorted(self.data.items())
        ]