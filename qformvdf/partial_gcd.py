"""Partial extended Euclid on unsigned pairs, stopping at a threshold."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class UnsignedGcdState:
    """Remainder pair, cofactor magnitudes and sign parity after a partial gcd.

    ``parity`` is ``1`` or ``-1`` and flips once per quotient taken.
    """

    ab: tuple[int, int]
    uv: tuple[int, int]
    parity: int


def gcd_unsigned(
    ab: tuple[int, int],
    uv: tuple[int, int],
    parity: int,
    threshold: int = 0,
) -> UnsignedGcdState:
    """Run Euclid on ``ab`` until ``ab[1] <= threshold``.

    ``uv`` starts as ``(1, 0)`` to track ``|u|`` or ``(0, 1)`` to track
    ``|v|``; each quotient ``q`` maps ``uv`` to ``(uv[1], uv[0] + q*uv[1])``.
    A threshold of zero computes the ordinary gcd.
    """
    a, b = ab
    u0, u1 = uv

    if a < 0 or b < 0:
        raise ValueError("ab must be non-negative")
    if a < b:
        raise ValueError("ab[0] must be at least ab[1]")
    if u0 < 0 or u1 < 0:
        raise ValueError("uv must be non-negative")
    if threshold < 0:
        raise ValueError("threshold must be non-negative")
    if a <= threshold:
        raise ValueError("ab[0] must exceed the threshold")

    while b > threshold:
        q, r = divmod(a, b)
        a, b = b, r
        u0, u1 = u1, u0 + q * u1
        parity = -parity

    return UnsignedGcdState((a, b), (u0, u1), parity)


@dataclass(frozen=True)
class FixedGcdResult:
    """Outcome of :func:`partial_gcd`.

    ``gcd`` and ``gcd_2`` are the final remainders (``gcd_2`` is zero for a
    full gcd). Only ``s``/``s_2`` or ``t``/``t_2`` are filled in, depending
    on which cofactor was requested; the others are zero.
    """

    gcd: int
    gcd_2: int
    s: int = 0
    t: int = 0
    s_2: int = 0
    t_2: int = 0


def _signed(magnitude: int, negative: bool) -> int:
    return -magnitude if negative else magnitude


def partial_gcd(
    a: int, b: int, threshold: int = 0, calculate_u: bool = True
) -> FixedGcdResult:
    """Partial extended gcd of signed ``a`` and non-negative ``b``.

    Computes the cofactor of ``a`` (``s``) when ``calculate_u`` is true,
    otherwise the cofactor of ``b`` (``t``), together with the cofactor for
    the second remainder.
    """
    if threshold < 0:
        raise ValueError("threshold must be non-negative")
    if b < 0:
        raise ValueError("b must be non-negative")

    a_negative = a < 0
    x, y = abs(a), b

    if x < y:
        x, y = y, x
        uv = (0, 1) if calculate_u else (1, 0)
        parity = -1
    else:
        uv = (1, 0) if calculate_u else (0, 1)
        parity = 1

    state = gcd_unsigned((x, y), uv, parity, threshold)
    gcd, gcd_2 = state.ab
    first, second = state.uv
    odd = state.parity == -1

    if calculate_u:
        return FixedGcdResult(
            gcd,
            gcd_2,
            s=_signed(first, a_negative != odd),
            s_2=_signed(second, a_negative != (not odd)),
        )
    return FixedGcdResult(
        gcd,
        gcd_2,
        t=_signed(first, a_negative != (not odd)),
        t_2=_signed(second, a_negative != odd),
    )