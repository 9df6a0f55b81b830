"""Bit-exact GeMV/GeMM reference for the NPU sub-array datapath.

Two families of operations:

  - Direct (``gemv_direct``, ``gemm_direct``): the canonical untiled sums,
    used as the golden baseline.
  - Tiled (``gemv_tiled``, ``gemm_tiled``): the hardware traversal over
    SUBARRAY_ROWS x SUBARRAY_COLS (32x8) tiles.  The output is zeroed, then
    for each output-row tile every reduction tile is visited in ascending
    order and its int32 partial sum is added into the output rows.  Final
    tiles are clipped (ragged), never padded.  GeMM tiles M and K only;
    all N columns are processed for each (M-tile, K-tile) pair.

All arithmetic is int8 x int8 products accumulated into int32 with
two's-complement wrap, so tiled and direct results agree bit-for-bit.

Usage::

    from npuref.reference import gemv_tiled, gemv_direct

    y = gemv_tiled(x, w)                  # x: int8[K], w: int8[M*K] or [M, K]
    assert (y == gemv_direct(x, w)).all()
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import numpy as np

__all__ = [
    "gemv_direct", "gemm_direct", "gemv_tiled", "gemm_tiled",
    "iter_tiles", "tile_counts", "mac_schedule",
    "GemvLayer", "GemmLayer",
]

from ._constants import SUBARRAY_ROWS, SUBARRAY_COLS
from ._fixed import as_i8, as_i32, check_size, check_out

# Tile geometry aliases (rows = output dim, cols = reduction dim)
_ROW_TILE = SUBARRAY_ROWS
_COL_TILE = SUBARRAY_COLS


# ── Tile iteration ────────────────────────────────────────────────────────

def tile_counts(rows: int, cols: int) -> Tuple[int, int]:
    """Number of (row tiles, reduction tiles) needed for a rows x cols matrix."""
    return (rows + _ROW_TILE - 1) // _ROW_TILE, (cols + _COL_TILE - 1) // _COL_TILE


def iter_tiles(rows: int, cols: int) -> Iterator[Tuple[int, int, int, int]]:
    """Yield half-open tile bounds ``(r0, r1, c0, c1)`` in hardware order.

    All reduction tiles of a row tile are yielded before the next row tile.
    """
    for r0 in range(0, rows, _ROW_TILE):
        r1 = min(r0 + _ROW_TILE, rows)
        for c0 in range(0, cols, _COL_TILE):
            yield r0, r1, c0, min(c0 + _COL_TILE, cols)


def mac_schedule(rows: int, cols: int) -> Iterator[Tuple[int, int]]:
    """Yield every ``(row, col)`` MAC of a tiled GeMV in execution order."""
    for r0, r1, c0, c1 in iter_tiles(rows, cols):
        for r in range(r0, r1):
            for c in range(c0, c1):
                yield r, c


# ── Argument checking ─────────────────────────────────────────────────────

def _gemv_operands(x, weights, output_dim):
    x = as_i8(x, "input")
    w_arr = np.asarray(weights)
    k = x.size
    if output_dim is None:
        if w_arr.ndim == 2:
            output_dim = w_arr.shape[0]
        elif k == 0:
            raise ValueError("output_dim is required when the input is empty")
        else:
            output_dim = w_arr.size // k
    if output_dim < 0:
        raise ValueError(f"output_dim must be >= 0, got {output_dim}")
    if w_arr.ndim == 2 and w_arr.shape != (output_dim, k):
        raise ValueError(
            f"Weight shape {w_arr.shape} does not match "
            f"(output_dim, input_dim) = ({output_dim}, {k})"
        )
    w = as_i8(w_arr, "weights")
    check_size(w, output_dim * k, "weights", f"output_dim*input_dim ({output_dim}*{k})")
    return x, w.reshape(output_dim, k), output_dim, k


def _gemm_operands(a, b, m, k, n):
    for name, dim in (("m", m), ("k", k), ("n", n)):
        if dim < 0:
            raise ValueError(f"{name} must be >= 0, got {dim}")
    a = as_i8(a, "A")
    b = as_i8(b, "B")
    check_size(a, m * k, "A", f"m*k ({m}*{k})")
    check_size(b, k * n, "B", f"k*n ({k}*{n})")
    return a.reshape(m, k), b.reshape(k, n)


# ── Direct (golden baseline) ──────────────────────────────────────────────

def gemv_direct(x, weights, output_dim: Optional[int] = None,
                bias=None) -> np.ndarray:
    """Untiled GeMV: ``out[m] = bias[m] + sum_k weights[m*K + k] * x[k]``.

    Args:
        x: int8 input vector of length K.
        weights: int8 weights, flat row-major (M*K) or shaped (M, K).
        output_dim: M.  Inferred from ``weights`` when None.
        bias: Optional int32 vector of length M.

    Returns:
        int32 array of length M.

    Raises:
        ValueError: On a dimension mismatch or out-of-range operand.
    """
    x, w, m, _ = _gemv_operands(x, weights, output_dim)
    # Exact int64 sums; the final cast wraps like the 32-bit accumulator
    acc = w.astype(np.int64) @ x.astype(np.int64)
    if bias is not None:
        bias = as_i32(bias, "bias")
        check_size(bias, m, "bias", "output_dim")
        acc = acc + bias.astype(np.int64)
    return acc.astype(np.int32)


def gemm_direct(a, b, m: int, k: int, n: int) -> np.ndarray:
    """Untiled GeMM: ``C[m*N + n] = sum_k A[m*K + k] * B[k*N + n]``.

    Returns:
        Flat row-major int32 array of length M*N.
    """
    a, b = _gemm_operands(a, b, m, k, n)
    return (a.astype(np.int64) @ b.astype(np.int64)).astype(np.int32).ravel()


# ── Tiled (hardware order) ────────────────────────────────────────────────

def gemv_tiled(x, weights, output_dim: Optional[int] = None,
               out: Optional[np.ndarray] = None) -> np.ndarray:
    """Tiled GeMV matching the sub-array accumulation order.

    Args:
        x: int8 input vector of length K.
        weights: int8 weights, flat row-major (M*K) or shaped (M, K).
        output_dim: M.  Inferred from ``weights`` when None.
        out: Optional caller-owned int32 buffer of M elements.  It is
            zeroed and filled in place.

    Returns:
        int32 array of length M (``out`` itself when given).
    """
    x, w, m, k = _gemv_operands(x, weights, output_dim)
    result = check_out(out, m) if out is not None else np.zeros(m, dtype=np.int32)

    xi = x.astype(np.int32)
    wi = w.astype(np.int32)
    for r0, r1, c0, c1 in iter_tiles(m, k):
        # One sub-array pass: int32 partial sums carried into the output
        result[r0:r1] += wi[r0:r1, c0:c1] @ xi[c0:c1]
    return out if out is not None else result


def gemm_tiled(a, b, m: int, k: int, n: int,
               out: Optional[np.ndarray] = None) -> np.ndarray:
    """Tiled GeMM over M and K tiles (N is never tiled).

    Args:
        a: int8 A matrix, flat row-major M*K.
        b: int8 B matrix, flat row-major K*N.
        m, k, n: Matrix dimensions.
        out: Optional caller-owned int32 buffer of M*N elements.

    Returns:
        Flat row-major int32 array of length M*N (``out`` when given).
    """
    a, b = _gemm_operands(a, b, m, k, n)
    flat = check_out(out, m * n) if out is not None else np.zeros(m * n, dtype=np.int32)
    c = flat.reshape(m, n)

    ai = a.astype(np.int32)
    bi = b.astype(np.int32)
    for r0, r1, c0, c1 in iter_tiles(m, k):
        c[r0:r1, :] += ai[r0:r1, c0:c1] @ bi[c0:c1, :]
    return out if out is not None else flat


# ── Layer containers ──────────────────────────────────────────────────────

@dataclass
class GemvLayer:
    """Buffers for one GeMV: ``output = weights @ input + bias``.

    ``weights`` is row-major [output_dim][input_dim].
    """
    input_dim: int
    output_dim: int
    weights: np.ndarray
    input: np.ndarray
    output: np.ndarray
    bias: Optional[np.ndarray] = None

    @classmethod
    def zeros(cls, input_dim: int, output_dim: int) -> "GemvLayer":
        """Allocate a zero-filled layer."""
        if input_dim < 0 or output_dim < 0:
            raise ValueError(
                f"Layer dimensions must be >= 0, got ({input_dim}, {output_dim})"
            )
        return cls(
            input_dim=input_dim,
            output_dim=output_dim,
            weights=np.zeros(output_dim * input_dim, dtype=np.int8),
            input=np.zeros(input_dim, dtype=np.int8),
            output=np.zeros(output_dim, dtype=np.int32),
            bias=np.zeros(output_dim, dtype=np.int32),
        )

    def _check_dims(self):
        if self.input.size != self.input_dim:
            raise ValueError(
                f"input size {self.input.size} does not match input_dim {self.input_dim}"
            )

    def run(self) -> np.ndarray:
        """Direct GeMV with bias.  Stores and returns ``output``."""
        self._check_dims()
        self.output = gemv_direct(self.input, self.weights, self.output_dim, self.bias)
        return self.output

    def run_tiled(self) -> np.ndarray:
        """Tiled GeMV followed by the bias add (wrapped to int32)."""
        self._check_dims()
        acc = gemv_tiled(self.input, self.weights, self.output_dim)
        if self.bias is not None:
            bias = as_i32(self.bias, "bias")
            check_size(bias, self.output_dim, "bias", "output_dim")
            acc = (acc.astype(np.int64) + bias).astype(np.int32)
        self.output = acc
        return self.output


@dataclass
class GemmLayer:
    """Buffers for one GeMM: ``C[M][N] = A[M][K] @ B[K][N]``."""
    m: int
    k: int
    n: int
    a: np.ndarray
    b: np.ndarray
    c: np.ndarray

    @classmethod
    def zeros(cls, m: int, k: int, n: int) -> "GemmLayer":
        if m < 0 or k < 0 or n < 0:
            raise ValueError(f"Layer dimensions must be >= 0, got ({m}, {k}, {n})")
        return cls(
            m=m, k=k, n=n,
            a=np.zeros(m * k, dtype=np.int8),
            b=np.zeros(k * n, dtype=np.int8),
            c=np.zeros(m * n, dtype=np.int32),
        )

    def run(self) -> np.ndarray:
        self.c = gemm_direct(self.a, self.b, self.m, self.k, self.n)
        return self.c

    def run_tiled(self) -> np.ndarray:
        self.c = gemm_tiled(self.a, self.b, self.m, self.k, self.n)
        return self.c
