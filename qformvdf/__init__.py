"""Big-integer helpers, partial GCDs, SHA-256, assembly macros and thread counters."""

__version__ = "0.1.0"

__all__ = [
    "integers",
    "xgcd",
    "prover",
    "partial_gcd",
    "sha256",
    "asm_macros",
    "counters",
]