"""Hex text serialization for RTL ``$readmemh`` testbenches.

One value per line, upper-case, zero-padded to ``width / 4`` digits.
Signed values are written as their two's-complement bit pattern::

    -1 at width 8   ->  FF
    -1 at width 32  ->  FFFFFFFF

Usage::

    from npuref.hexio import write_hex, read_hex

    write_hex("test_ffn_output.hex", output, 32)
    values, count = read_hex("test_ffn_output.hex", len(output), 32)
"""

import re
import warnings
from typing import Optional, Tuple

import numpy as np

__all__ = ["write_hex", "read_hex"]

from ._constants import HEX_WIDTHS

_DTYPES = {8: np.int8, 32: np.int32}
_TOKEN_RE = re.compile(r"^(?:0[xX])?[0-9A-Fa-f]+$")


def _check_width(width):
    if width not in HEX_WIDTHS:
        raise ValueError(f"Unsupported hex width {width} (must be one of {HEX_WIDTHS})")


def _to_signed(value, width):
    """Reinterpret the low ``width`` bits of ``value`` as a signed integer."""
    value &= (1 << width) - 1
    if value & (1 << (width - 1)):
        value -= 1 << width
    return value


def write_hex(path, values, width: int) -> int:
    """Write integers to a hex file, one value per line.

    Values may be given either signed or as the unsigned bit pattern, so a
    width-8 file accepts anything in [-128, 255].  The whole buffer is
    validated before the file is opened.

    Args:
        path: Destination file path.
        values: Array-like of integers (any shape; raveled in C order).
        width: Word width in bits, 8 or 32.

    Returns:
        Number of values written.

    Raises:
        ValueError: If ``width`` is unsupported or a value does not fit.
        OSError: If the destination cannot be opened for writing.
    """
    _check_width(width)
    arr = np.asarray(values)
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"Hex values must be integers, got dtype {arr.dtype}")
    # Python ints: no overflow while range-checking int64/uint64 input
    ints = [int(v) for v in arr.ravel()]
    lo, hi = -(1 << (width - 1)), (1 << width) - 1
    for i, v in enumerate(ints):
        if not lo <= v <= hi:
            raise ValueError(
                f"Value {v} at index {i} does not fit in {width} bits "
                f"(allowed range [{lo}, {hi}])"
            )

    mask = (1 << width) - 1
    digits = width // 4
    text = "".join(f"{v & mask:0{digits}X}\n" for v in ints)
    with open(path, "w", encoding="ascii", newline="\n") as f:
        f.write(text)
    return len(ints)


def read_hex(path, max_count: Optional[int] = None,
             width: int = 32) -> Tuple[np.ndarray, int]:
    """Read up to ``max_count`` whitespace-delimited hex values.

    Each token is parsed as an unsigned integer, truncated to ``width``
    bits and reinterpreted as signed.  Reading stops at end of file, after
    ``max_count`` values, or at the first malformed token (a short read,
    reported with a RuntimeWarning; the caller decides if it is an error).

    Args:
        path: Source file path.
        max_count: Maximum number of values to read (None = all).
        width: Word width in bits, 8 or 32.

    Returns:
        (values, count) where values is an int8 (width 8) or int32
        (width 32) array of length count.

    Raises:
        ValueError: If ``width`` is unsupported or ``max_count`` is negative.
        OSError: If the source cannot be opened.
    """
    _check_width(width)
    if max_count is not None and max_count < 0:
        raise ValueError(f"max_count must be >= 0, got {max_count}")

    # Undecodable bytes become U+FFFD and fail the token match below
    with open(path, "r", encoding="ascii", errors="replace") as f:
        text = f.read()

    values = []
    for token in text.split():
        if max_count is not None and len(values) >= max_count:
            break
        if not _TOKEN_RE.match(token):
            warnings.warn(
                f"{path}: malformed hex token {token!r} after "
                f"{len(values)} values; stopping read",
                RuntimeWarning,
                stacklevel=2,
            )
            break
        values.append(_to_signed(int(token, 16), width))

    return np.array(values, dtype=_DTYPES[width]), len(values)
