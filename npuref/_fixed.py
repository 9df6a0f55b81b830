"""Shared fixed-point buffer utilities.

Centralizes int8/int32 coercion and range checks so every compute and
serialization entry point rejects out-of-range data the same way.
"""

import numpy as np

from ._constants import INT8_MIN, INT8_MAX, INT32_MIN, INT32_MAX


def wrap_i32(value):
    """Wrap a Python integer to signed 32-bit two's complement."""
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _as_int(value, name):
    # bool is an int subclass but never a valid operand
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise ValueError(f"{name} must be an integer, got {type(value).__name__} {value!r}")
    return int(value)


def check_i8_scalar(value, name):
    """Return ``value`` as int, raising if it is not a signed 8-bit value."""
    value = _as_int(value, name)
    if not INT8_MIN <= value <= INT8_MAX:
        raise ValueError(f"{name}={value} is outside int8 range [{INT8_MIN}, {INT8_MAX}]")
    return value


def check_i32_scalar(value, name):
    """Return ``value`` as int, raising if it is not a signed 32-bit value."""
    value = _as_int(value, name)
    if not INT32_MIN <= value <= INT32_MAX:
        raise ValueError(f"{name}={value} is outside int32 range")
    return value


def as_i8(values, name):
    """Coerce a buffer to a flat int8 array.

    Integer buffers of any dtype are accepted as long as every element fits
    in [-128, 127]; 2-D buffers are raveled in row-major order.

    Args:
        values: Array-like of integers.
        name: Buffer name used in error messages.

    Returns:
        1-D numpy int8 array (a view when ``values`` is already int8).

    Raises:
        ValueError: If the buffer is not integral or holds out-of-range values.
    """
    arr = np.asarray(values)
    if arr.dtype == np.int8:
        return arr.ravel()
    if arr.size == 0:
        return np.zeros(0, dtype=np.int8)
    if not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"{name} must hold integers, got dtype {arr.dtype}")
    if arr.min() < INT8_MIN or arr.max() > INT8_MAX:
        raise ValueError(
            f"{name} holds values outside int8 range "
            f"[{INT8_MIN}, {INT8_MAX}]: min={arr.min()}, max={arr.max()}"
        )
    return arr.astype(np.int8).ravel()


def as_i32(values, name):
    """Coerce a buffer to a flat int32 array (same rules as :func:`as_i8`)."""
    arr = np.asarray(values)
    if arr.dtype == np.int32:
        return arr.ravel()
    if arr.size == 0:
        return np.zeros(0, dtype=np.int32)
    if not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"{name} must hold integers, got dtype {arr.dtype}")
    if arr.min() < INT32_MIN or arr.max() > INT32_MAX:
        raise ValueError(f"{name} holds values outside int32 range")
    return arr.astype(np.int32).ravel()


def check_size(arr, expected, name, shape_desc):
    """Raise ValueError unless ``arr`` has exactly ``expected`` elements."""
    if arr.size != expected:
        raise ValueError(
            f"{name} size {arr.size} does not match {shape_desc} = {expected}"
        )


def check_out(out, size, name="out"):
    """Validate a caller-provided int32 output buffer and zero it in place."""
    if not isinstance(out, np.ndarray) or out.dtype != np.int32:
        raise ValueError(f"{name} must be a numpy int32 array")
    if out.size != size:
        raise ValueError(f"{name} size {out.size} does not match output size {size}")
    if not out.flags.c_contiguous:
        raise ValueError(f"{name} must be C-contiguous")
    flat = out.reshape(-1)
    flat[:] = 0
    return flat
