"""Counters that let a pair of threads hand results to each other, plus cycle statistics."""

from __future__ import annotations

import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

DEFAULT_MAX_SPIN_COUNTER = 100_000_000
DEFAULT_NUM_BUCKETS = 64


class ThreadCounter:
    """A progress counter owned by one thread, with an error flag shared by the pair."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0
        self._error = False

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    @value.setter
    def value(self, new_value: int) -> None:
        with self._lock:
            self._value = new_value

    @property
    def error_flag(self) -> bool:
        with self._lock:
            return self._error

    @error_flag.setter
    def error_flag(self, flag: bool) -> None:
        with self._lock:
            self._error = bool(flag)

    def reset(self) -> None:
        """Set the counter back to zero and clear the error flag."""
        with self._lock:
            self._value = 0
            self._error = False


@dataclass
class CounterPair:
    """The master and slave counters of one pair of cooperating threads."""

    master: ThreadCounter = field(default_factory=ThreadCounter)
    slave: ThreadCounter = field(default_factory=ThreadCounter)


class ThreadState:
    """One thread's view of a counter pair: it advances its own counter and waits on the other."""

    def __init__(
        self,
        pair: CounterPair,
        is_slave: bool = False,
        counter_start: int = 0,
        max_spin_counter: int = DEFAULT_MAX_SPIN_COUNTER,
    ) -> None:
        self.pair = pair
        self.is_slave = is_slave
        self.counter_start = counter_start
        self.last_fence = 0
        self.max_spin_counter = max_spin_counter

    def reset(self) -> None:
        self.is_slave = False
        self.counter_start = 0
        self.last_fence = 0

    def this_counter(self) -> ThreadCounter:
        return self.pair.slave if self.is_slave else self.pair.master

    def other_counter(self) -> ThreadCounter:
        return self.pair.master if self.is_slave else self.pair.slave

    def raise_error(self) -> None:
        """Flag an error on both counters of the pair."""
        self.this_counter().error_flag = True
        self.other_counter().error_flag = True

    def v(self) -> int:
        """This thread's current counter value."""
        return self.this_counter().value

    def fence_absolute(self, target: int) -> bool:
        """Wait until the other thread's counter reaches ``target``.

        Returns False if an error was raised, either by either thread or
        because the wait spun too long.
        """
        if self.last_fence >= target:
            return True

        spins = 0
        while self.other_counter().value < target:
            if self.this_counter().error_flag or self.other_counter().error_flag:
                self.raise_error()
                break
            if spins > self.max_spin_counter:
                self.raise_error()
                break
            spins += 1
            time.sleep(0)

        ok = not self.this_counter().error_flag
        if ok:
            self.last_fence = target
        return ok

    def fence(self, delta: int) -> bool:
        return self.fence_absolute(self.counter_start + delta)

    def advance_absolute(self, target: int) -> bool:
        """Raise this thread's counter to ``target``; it can never go down.

        Returns False if an error has been raised.
        """
        current = self.v()
        if target == current:
            return True
        if target < current:
            raise ValueError(f"counter cannot decrease from {current} to {target}")

        if self.this_counter().error_flag:
            self.raise_error()

        self.this_counter().value = target
        return not self.this_counter().error_flag

    def advance(self, delta: int) -> bool:
        return self.advance_absolute(self.counter_start + delta)

    def has_error(self) -> bool:
        return self.this_counter().error_flag


@dataclass(frozen=True)
class GcdUvEntry:
    """One cofactor matrix produced by a partial gcd step.

    ``parity`` is 1 if the step was odd, else 0; ``exit_flag`` is 1 on the last entry.
    """

    u_0: int = 0
    u_1: int = 0
    v_0: int = 0
    v_1: int = 0
    parity: int = 0
    exit_flag: int = 0

    def matrix_multiply(self, in_a: int, in_b: int) -> tuple[int, int]:
        """Apply the signed matrix to ``(in_a, in_b)``, returning ``(out_a, out_b)``."""
        if self.parity == 0:
            out_a = in_a * self.u_0 - in_b * self.v_0
            out_b = in_b * self.v_1 - in_a * self.u_1
        else:
            out_a = in_b * self.v_0 - in_a * self.u_0
            out_b = in_a * self.u_1 - in_b * self.v_1
        return out_a, out_b


class _TrackHandle:
    def __init__(self) -> None:
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True


class CycleTracker:
    """Timing statistics per named section, bucketed by the bit length of each duration."""

    def __init__(self, num_buckets: int = DEFAULT_NUM_BUCKETS) -> None:
        self.num_buckets = num_buckets
        self._cycles: dict[str, list[int]] = {}
        self._calls: dict[str, list[int]] = {}

    def _slot(self, name: str) -> tuple[list[int], list[int]]:
        if name not in self._cycles:
            self._cycles[name] = [0] * self.num_buckets
            self._calls[name] = [0] * self.num_buckets
        return self._cycles[name], self._calls[name]

    @contextmanager
    def track(self, name: str) -> Iterator[_TrackHandle]:
        """Time the enclosed block; call ``abort()`` on the handle to discard the sample."""
        self._slot(name)
        handle = _TrackHandle()
        start = time.perf_counter_ns()
        try:
            yield handle
        finally:
            end = time.perf_counter_ns()
            if not handle.aborted:
                self.record(name, end - start)

    def record(self, name: str, delta: int) -> None:
        """Add one sample; zero and over-long durations are ignored."""
        cycles, calls = self._slot(name)
        if delta <= 0:
            return
        bucket = delta.bit_length()
        if bucket >= self.num_buckets:
            return
        cycles[bucket] += delta
        calls[bucket] += 1

    def report(self) -> list[tuple[str, list[tuple[int, int]]]]:
        """Per name with samples: rows of (percent of calls, average duration) per bucket."""
        result = []
        for name, calls in self._calls.items():
            total_calls = sum(calls)
            if total_calls == 0:
                continue
            cycles = self._cycles[name]
            rows = [
                (int(count / total_calls * 100), int(spent / count))
                for count, spent in zip(calls, cycles)
                if count
            ]
            result.append((name, rows))
        return result