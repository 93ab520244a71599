# qformvdf

Pure-Python building blocks used around verifiable delay functions:
big-integer helpers with GMP-style semantics, partial extended GCDs,
Wesolowski proof parameter helpers, SHA-256, an assembly macro expander
with a register allocator, and counters for a pair of cooperating threads.
It has no third-party runtime dependencies.

## Modules

- `qformvdf.integers`: `parse_integer` (base prefixes `0x`, `0b`, leading `0`
  for octal), `to_hex_string`, `to_dec_string`, `num_bits`, 64-bit limb
  conversion (`to_limbs`, `from_limbs`), big-endian byte conversion
  (`to_bytes`, `from_bytes`), `floor_div`, `mod` (non-negative, ignores the
  sign of the modulus), `integer_root`, the extended GCD `gcd_ext` returning a
  `GcdResult(gcd, s, t)`, per-thread seeded `rand_integer`, and `TrackMax`
  for recording the largest bit sizes seen.
- `qformvdf.xgcd`: `xgcd_partial(a, b, bound)`, a Lehmer-accelerated partial
  extended Euclid that stops once the smaller remainder is at most `bound`.
  It returns `(co2, co1, r2, r1)`.
- `qformvdf.partial_gcd`: `gcd_unsigned(ab, uv, parity, threshold)` returning
  an `UnsignedGcdState`, and `partial_gcd(a, b, threshold, calculate_u)`
  returning a `FixedGcdResult` with the final remainders and signed cofactors.
- `qformvdf.prover`: `approximate_parameters(iterations)` returns `(l, k)`,
  and `get_block(i, k, iterations, b)` returns the `i`-th `k`-bit digit of
  `2**iterations // b`.
- `qformvdf.sha256`: the incremental hasher `Sha256` (`update`, `finish`,
  `digest`, `hexdigest`, `reset`), plus `hash256`, `hash256_hex`,
  `hash256_file` and `bytes_to_hex`.
- `qformvdf.asm_macros`: `ExpandMacros` collects assembly lines and expands
  backtick-prefixed names bound in nested scopes. `RegAlloc` hands out
  `RegScalar`, `RegVector` and `RegSpill` slots. The module also provides
  `to_hex` and `format_str`.
- `qformvdf.counters`: `ThreadCounter`, `CounterPair` and `ThreadState` for
  two threads that advance and wait on each other's progress counters. It
  also has `GcdUvEntry` (a signed cofactor matrix step) and `CycleTracker`
  (timings bucketed by bit length).

## Examples

```python
from qformvdf.integers import gcd_ext
from qformvdf.partial_gcd import partial_gcd

r = gcd_ext(240, 46)
assert r.gcd == 2 and 240 * r.s + 46 * r.t == 2

p = partial_gcd(240, 46)
assert (p.gcd, p.gcd_2) == (2, 0)
```

```python
from qformvdf.sha256 import hash256_hex

assert hash256_hex(b"abc") == (
    "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
)
```

```python
from qformvdf.asm_macros import ExpandMacros, RegAlloc

macros = ExpandMacros()
regs = RegAlloc()
with macros.scope("example"):
    regs.bind_scalar(macros, "x")
    macros.append("MOV `x, 1", line=1)
print(macros.format_res_text())  # the line reads "MOV RBX, 1"
```

## What this package does not do

- It has no quadratic form type and no class group arithmetic. There is no
  form reduction, squaring, composition or discriminant generation.
- It does not compute or verify VDF outputs or proofs. `qformvdf.prover`
  only chooses parameters and extracts blocks.
- It has no command-line program and no network client or server.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```