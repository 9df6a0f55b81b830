"""MAC primitive and streaming MAC-unit stimulus recorder.

``mac`` is the atomic INT8 x INT8 -> INT32 multiply-accumulate of
``mac_unit.sv``.  Every GeMV/GeMM reference in :mod:`npuref.reference` is
a fixed-order sequence of these steps.

``MacStream`` records a clear/input/weight sequence together with the
accumulator value the RTL must show after each step, and dumps the four
lockstep files read by the MAC unit testbench::

    stream = MacStream()
    stream.add(True, 2, 3)      # clear, then 2*3      -> 6
    stream.add(False, 4, 5)     # accumulate 4*5       -> 26
    stream.write_hex("out/")    # mac_test_{input,weight,clear,expected}.hex
"""

import os
from typing import Dict

import numpy as np

__all__ = ["mac", "MacStream", "MacStreamOverflow"]

from ._constants import MAC_STREAM_CAPACITY, INPUT_WIDTH, WEIGHT_WIDTH, OUTPUT_WIDTH
from ._fixed import wrap_i32, check_i8_scalar, check_i32_scalar
from .hexio import write_hex


def mac(input: int, weight: int, acc: int = 0) -> int:
    """Single multiply-accumulate: ``acc + int32(input) * int32(weight)``.

    Args:
        input: Signed 8-bit activation.
        weight: Signed 8-bit weight.
        acc: Current signed 32-bit accumulator value.

    Returns:
        New accumulator value, wrapped to signed 32 bits.

    Raises:
        ValueError: If an operand is out of its range.
    """
    x = check_i8_scalar(input, "input")
    w = check_i8_scalar(weight, "weight")
    acc = check_i32_scalar(acc, "acc")
    return wrap_i32(acc + x * w)


class MacStreamOverflow(RuntimeError):
    """Raised when a MacStream already holds ``capacity`` operations."""


class MacStream:
    """Bounded recording of MAC-unit operations and expected accumulators.

    Each recorded op is ``(clear, input, weight, expected_acc)``.  A clear
    resets the accumulator to zero before that op's product is added, so
    ``expected_acc`` of the first op after a clear is its own product.
    """

    def __init__(self, capacity: int = MAC_STREAM_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._clears = np.zeros(capacity, dtype=np.uint8)
        self._inputs = np.zeros(capacity, dtype=np.int8)
        self._weights = np.zeros(capacity, dtype=np.int8)
        self._expected = np.zeros(capacity, dtype=np.int32)
        self._count = 0
        self._acc = 0

    def add(self, clear: bool, input: int, weight: int) -> int:
        """Record one MAC operation and return the expected accumulator.

        Raises:
            MacStreamOverflow: If the stream is full.  Nothing is recorded
                and the running accumulator is left unchanged.
            ValueError: If ``input`` or ``weight`` is outside int8 range.
        """
        if self._count >= self._capacity:
            raise MacStreamOverflow(
                f"MAC stream full ({self._capacity} ops); cannot record "
                f"clear={int(bool(clear))} input={input} weight={weight}"
            )
        acc = mac(input, weight, 0 if clear else self._acc)

        i = self._count
        self._clears[i] = 1 if clear else 0
        self._inputs[i] = input
        self._weights[i] = weight
        self._expected[i] = acc
        self._count += 1
        self._acc = acc
        return acc

    def add_group(self, pairs) -> int:
        """Record a cleared accumulation group of (input, weight) pairs.

        The first pair carries the clear; the rest accumulate onto it.
        Returns the accumulator after the last pair.
        """
        acc = self._acc
        for j, (x, w) in enumerate(pairs):
            acc = self.add(j == 0, x, w)
        return acc

    def reset(self) -> None:
        """Drop every recorded op and zero the accumulator."""
        self._count = 0
        self._acc = 0

    def __len__(self) -> int:
        return self._count

    # ── Recorded data ─────────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def acc(self) -> int:
        """Accumulator value after the most recent op."""
        return self._acc

    @property
    def clears(self) -> np.ndarray:
        return self._clears[:self._count]

    @property
    def inputs(self) -> np.ndarray:
        return self._inputs[:self._count]

    @property
    def weights(self) -> np.ndarray:
        return self._weights[:self._count]

    @property
    def expected(self) -> np.ndarray:
        return self._expected[:self._count]

    # ── Serialization ─────────────────────────────────────────────────────

    def write_hex(self, output_dir, prefix: str = "mac_test") -> Dict[str, str]:
        """Write the four lockstep stimulus/expectation files.

        Creates ``{prefix}_input.hex``, ``{prefix}_weight.hex``,
        ``{prefix}_clear.hex`` (all 2-digit) and ``{prefix}_expected.hex``
        (8-digit) in ``output_dir``.

        Returns:
            Dict mapping "input", "weight", "clear", "expected" to paths.
        """
        os.makedirs(output_dir, exist_ok=True)
        streams = {
            "input": (self.inputs, INPUT_WIDTH),
            "weight": (self.weights, WEIGHT_WIDTH),
            "clear": (self.clears, INPUT_WIDTH),
            "expected": (self.expected, OUTPUT_WIDTH),
        }
        paths = {}
        for key, (data, width) in streams.items():
            path = os.path.join(output_dir, f"{prefix}_{key}.hex")
            write_hex(path, data, width)
            paths[key] = path
        return paths
