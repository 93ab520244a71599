"""Parameter selection and block extraction for Wesolowski proofs."""

from __future__ import annotations

import math

from .integers import to_limbs

_LOG_MEMORY = 23.25349666


def _round_half_away(value: float) -> float:
    return math.floor(value + 0.5) if value >= 0 else -math.floor(-value + 0.5)


def approximate_parameters(iterations: int) -> tuple[int, int]:
    """Choose ``(l, k)`` for a proof over ``iterations`` squarings."""
    log_t = math.log2(iterations) if iterations > 0 else -math.inf
    l = 1
    if log_t - _LOG_MEMORY > 0.000001:
        l = math.ceil(2 ** (_LOG_MEMORY - 20))

    intermediate = iterations * 0.6931471 / (2.0 * l)
    if intermediate <= 1.0:
        return l, 1
    estimate = _round_half_away(
        math.log(intermediate) - math.log(math.log(intermediate)) + 0.25
    )
    return l, int(max(estimate, 1.0))


def get_block(i: int, k: int, iterations: int, b: int) -> int:
    """The ``i``-th ``k``-bit digit, from the low end, of ``2**iterations // b``."""
    exponent = iterations - k * (i + 1)
    if exponent < 0:
        raise ValueError("block index beyond the number of iterations")
    value = (pow(2, exponent, b) << k) // b
    limbs = to_limbs(value)
    return limbs[0] if limbs else 0