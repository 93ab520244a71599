"""Partial extended Euclid with Lehmer acceleration on 64-bit heads."""

from __future__ import annotations

from .integers import num_bits

_LIMB_BITS = 64
_LIMB_MASK = (1 << _LIMB_BITS) - 1


def _head(value: int, shift: int) -> int:
    """Low limb of ``abs(value) >> shift`` read as a signed 64-bit number."""
    limb = (abs(value) >> shift) & _LIMB_MASK
    return limb - (1 << _LIMB_BITS) if limb >> (_LIMB_BITS - 1) else limb


def xgcd_partial(a: int, b: int, bound: int) -> tuple[int, int, int, int]:
    """Run Euclid on non-negative ``a`` and ``b`` until the smaller remainder is at most ``bound``.

    Returns ``(co2, co1, r2, r1)``: the final pair of remainders, with
    ``r2 + co2*b`` and ``r1 + co1*b`` both divisible by ``a``.
    """
    r2, r1 = a, b
    co2, co1 = 0, -1

    while r1 != 0 and r1 > bound:
        shift = max(num_bits(r2), num_bits(r1)) - _LIMB_BITS + 1
        shift = max(shift, 0)

        rr2 = _head(r2, shift)
        rr1 = _head(r1, shift)
        bb = _head(bound, shift)

        aa2, aa1 = 0, 1
        bb2, bb1 = 1, 0

        steps = 0
        while rr1 != 0 and rr1 > bb:
            qq = rr2 // rr1

            t1 = rr2 - qq * rr1
            t2 = aa2 - qq * aa1
            t3 = bb2 - qq * bb1

            if steps & 1:
                if t1 < -t3 or rr1 - t1 < t2 - aa1:
                    break
            elif t1 < -t2 or rr1 - t1 < t3 - bb1:
                break

            rr2, rr1 = rr1, t1
            aa2, aa1 = aa1, t2
            bb2, bb1 = bb1, t3
            steps += 1

        if steps == 0:
            q, remainder = divmod(r2, r1)
            r2, r1 = r1, remainder
            co2, co1 = co1, co2 - co1 * q
        else:
            r2, r1 = r2 * bb2 + r1 * aa2, r1 * aa1 + r2 * bb1
            co2, co1 = co2 * bb2 + co1 * aa2, co1 * aa1 + co2 * bb1

            if r1 < 0:
                co1, r1 = -co1, -r1
            if r2 < 0:
                co2, r2 = -co2, -r2

    if r2 < 0:
        co2, co1, r2 = -co2, -co1, -r2

    return co2, co1, r2, r1