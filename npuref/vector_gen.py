"""Dev-time golden vector generator for the NPU RTL testbenches.

Builds every reference case, cross-checks the tiled engine against the
direct baseline (and against the closed-form result where a pattern has
one), then writes ``$readmemh`` hex files plus a ``vectors.json`` sidecar
describing dimensions, seeds, tile counts and file names.

Cases:
    mac_test_*.hex                 streaming MAC-unit stimulus + expected acc
    test_<pattern>_*.hex           32x8 sub-array GeMV patterns
    test_random<seed>_*.hex        seeded random 32x8 GeMV
    test_llm_*.hex                 Q/K/V projection of one token
    test_ffn_*.hex                 FFN up projection 64 -> 256 (tiled)
    test_large_*.hex               128 -> 256 GeMV (tiled)

Usage:
    python -m npuref.vector_gen --output-dir build/hex
    python -m npuref.vector_gen --seeds 1 42 --output-dir /tmp/vectors
"""

import argparse
import json
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ._constants import (
    SUBARRAY_ROWS, SUBARRAY_COLS, INPUT_WIDTH, WEIGHT_WIDTH, OUTPUT_WIDTH,
    PE_ARRAY_ROWS, PE_ARRAY_COLS, NUM_LARGE_ARRAYS, TOTAL_MACS,
)
from .datagen import seeded_i8_sequence, sequential_i8
from .hexio import write_hex
from .mac import MacStream
from .reference import gemv_direct, gemv_tiled, tile_counts

DEFAULT_SEEDS = (1, 42, 123, 9999)
MANIFEST_NAME = "vectors.json"

# Seed offset between a random case's input and its weights
_WEIGHT_SEED_OFFSET = 1000

_ROWS = SUBARRAY_ROWS
_COLS = SUBARRAY_COLS


@dataclass
class GemvCase:
    """One GeMV reference case and its optional closed-form expectation."""
    name: str
    input: np.ndarray
    weights: np.ndarray
    output_dim: int
    bias: Optional[np.ndarray] = None
    expected: Optional[np.ndarray] = None
    seeds: Dict[str, int] = field(default_factory=dict)
    description: str = ""

    @property
    def input_dim(self) -> int:
        return int(self.input.size)


# ── MAC unit stream ───────────────────────────────────────────────────────

def build_mac_stream(stream: Optional[MacStream] = None) -> MacStream:
    """Record the MAC-unit regression sequence.

    Groups (each starts with a clear):
      basic ops and accumulation, sign combinations, zero/identity edge
      cases, INT8 extremes, 256 x (127*127), cancelling signs, sum of
      squares 1..10, and sum 1..8.
    """
    if stream is None:
        stream = MacStream()

    stream.add_group([(2, 3), (4, 5)])            # 6, then 26
    stream.add_group([(-5, 7)])                   # -35
    stream.add_group([(-3, -4), (-5, 7)])         # 12, then -23

    for x, w in [(0, 50), (50, 0), (127, 1), (1, -128), (100, -1),
                 (127, 127), (-128, -128), (127, -128)]:
        stream.add_group([(x, w)])

    stream.add_group([(127, 127)] * 256)          # 4129024
    stream.add_group([(10, 10), (-10, 10)])       # 0
    stream.add_group([(i, i) for i in range(1, 11)])   # 385
    stream.add_group([(i, 1) for i in range(1, 9)])    # 36
    return stream


# ── GeMV cases ────────────────────────────────────────────────────────────

def _subarray_case(name, x, w, expected, bias=None, description=""):
    return GemvCase(
        name=name,
        input=np.asarray(x, dtype=np.int8),
        weights=np.asarray(w, dtype=np.int8).ravel(),
        output_dim=_ROWS,
        bias=None if bias is None else np.asarray(bias, dtype=np.int32),
        expected=np.asarray(expected, dtype=np.int32),
        description=description,
    )


def pattern_cases() -> List[GemvCase]:
    """Fixed-pattern 32x8 sub-array cases with closed-form outputs."""
    rows = np.arange(_ROWS)
    ones_x = np.ones(_COLS)
    ones_w = np.ones((_ROWS, _COLS))
    seq_x = sequential_i8(_COLS, 1)
    diag_cols = rows % _COLS
    cases = []

    w = np.zeros((_ROWS, _COLS))
    w[rows, diag_cols] = 1
    cases.append(_subarray_case(
        "identity", seq_x, w, diag_cols + 1,
        description="row r has a 1 at column r % 8; output[r] = input[r % 8]"))

    cases.append(_subarray_case(
        "allones", ones_x, ones_w, np.full(_ROWS, _COLS),
        description="all-ones input and weights; output[r] = 8"))

    w = np.repeat((rows + 1)[:, None], _COLS, axis=1)
    cases.append(_subarray_case(
        "scaled", ones_x, w, (rows + 1) * _COLS,
        description="row r weights all r+1; output[r] = (r+1) * 8"))

    alt_x = np.where(np.arange(_COLS) % 2 == 0, 1, -1)
    cases.append(_subarray_case(
        "alternating", alt_x, ones_w, np.zeros(_ROWS),
        description="input alternates +1/-1; outputs cancel to 0"))

    cases.append(_subarray_case(
        "maxval", np.full(_COLS, 127), np.full((_ROWS, _COLS), 127),
        np.full(_ROWS, 127 * 127 * _COLS),
        description="INT8_MAX everywhere; output[r] = 127*127*8"))

    cases.append(_subarray_case(
        "minval", np.full(_COLS, -128), np.full((_ROWS, _COLS), -128),
        np.full(_ROWS, 128 * 128 * _COLS),
        description="INT8_MIN everywhere; output[r] = (-128)*(-128)*8"))

    cases.append(_subarray_case(
        "mixed", np.full(_COLS, 127), np.full((_ROWS, _COLS), -128),
        np.full(_ROWS, 127 * -128 * _COLS),
        description="input INT8_MAX, weights INT8_MIN; output[r] = 127*(-128)*8"))

    w = np.zeros((_ROWS, _COLS))
    w[rows, diag_cols] = rows + 1
    cases.append(_subarray_case(
        "sparse", seq_x, w, (rows + 1) * (diag_cols + 1),
        description="one non-zero per row; output[r] = (r+1) * ((r%8)+1)"))

    cases.append(_subarray_case(
        "bias", ones_x, ones_w, _COLS + rows * 10, bias=rows * 10,
        description="all ones with bias r*10; output[r] = 8 + r*10"))

    x = np.zeros(_COLS)
    x[0] = 5
    w = np.zeros((_ROWS, _COLS))
    w[:, 0] = rows + 1
    cases.append(_subarray_case(
        "single", x, w, 5 * (rows + 1),
        description="only the first input active; output[r] = 5 * (r+1)"))

    x = np.zeros(_COLS)
    x[-1] = 7
    w = np.zeros((_ROWS, _COLS))
    w[:, -1] = rows + 1
    cases.append(_subarray_case(
        "last", x, w, 7 * (rows + 1),
        description="only the last input active; output[r] = 7 * (r+1)"))

    w = np.zeros((_ROWS, _COLS))
    w[0, :] = 10
    w[-1, :] = 20
    expected = np.zeros(_ROWS)
    expected[0] = 10 * _COLS
    expected[-1] = 20 * _COLS
    cases.append(_subarray_case(
        "firstlast", ones_x, w, expected,
        description="only the first and last rows non-zero"))

    return cases


def random_case(seed: int) -> GemvCase:
    """32x8 GeMV with input from ``seed`` and weights from ``seed + 1000``."""
    wseed = seed + _WEIGHT_SEED_OFFSET
    return GemvCase(
        name=f"random{seed}",
        input=seeded_i8_sequence(_COLS, seed),
        weights=seeded_i8_sequence(_ROWS * _COLS, wseed),
        output_dim=_ROWS,
        seeds={"input": seed, "weight": wseed},
        description=f"seeded random pattern (seed={seed})",
    )


def tiled_cases() -> List[GemvCase]:
    """Multi-tile GeMV cases exercising partial-sum carry between tiles."""
    cases = []

    k, m = 32, 32
    cases.append(GemvCase(
        name="tiledacc",
        input=np.ones(k, dtype=np.int8),
        weights=np.ones(m * k, dtype=np.int8),
        output_dim=m,
        expected=np.full(m, k, dtype=np.int32),
        description="4 reduction tiles of all ones; output[r] = 32",
    ))

    for name, k, m, xseed, wseed, desc in [
        ("ffn", 64, 256, 500, 600, "FFN up projection hidden=64 -> intermediate=256"),
        ("large", 128, 256, 700, 800, "large GeMV 128 -> 256"),
    ]:
        cases.append(GemvCase(
            name=name,
            input=seeded_i8_sequence(k, xseed),
            weights=seeded_i8_sequence(m * k, wseed),
            output_dim=m,
            seeds={"input": xseed, "weight": wseed},
            description=desc,
        ))
    return cases


def compute_case(case: GemvCase) -> np.ndarray:
    """Compute a case's reference output and verify it.

    The tiled result (plus bias) must equal the direct result, and both
    must equal ``case.expected`` when the case has one.

    Raises:
        RuntimeError: If any check fails.
    """
    direct = gemv_direct(case.input, case.weights, case.output_dim, case.bias)
    tiled = gemv_tiled(case.input, case.weights, case.output_dim)
    if case.bias is not None:
        tiled = (tiled.astype(np.int64) + case.bias).astype(np.int32)

    mismatch = np.flatnonzero(tiled != direct)
    if mismatch.size:
        i = int(mismatch[0])
        raise RuntimeError(
            f"Case {case.name!r}: tiled result does not match direct at "
            f"[{i}] (tiled={tiled[i]}, direct={direct[i]})"
        )
    if case.expected is not None and not np.array_equal(direct, case.expected):
        i = int(np.flatnonzero(direct != case.expected)[0])
        raise RuntimeError(
            f"Case {case.name!r}: output[{i}]={direct[i]} does not match "
            f"expected {case.expected[i]}"
        )
    return direct


# ── Writers ───────────────────────────────────────────────────────────────

def _save(output_dir, fname, data, width, verbose):
    path = os.path.join(output_dir, fname)
    write_hex(path, data, width)
    if verbose:
        print(f"  Saved: {path}")
    return fname


def _case_entry(name, kind, input_dim, output_dim, files, seeds=None, description=""):
    return {
        "name": name,
        "kind": kind,
        "input_dim": input_dim,
        "output_dim": output_dim,
        "tiles": list(tile_counts(output_dim, input_dim)),
        "seeds": dict(seeds or {}),
        "files": files,
        "description": description,
    }


def write_gemv_case(case: GemvCase, output_dir: str, verbose: bool = True) -> dict:
    """Compute, verify and dump one GeMV case.  Returns its manifest entry."""
    output = compute_case(case)
    prefix = f"test_{case.name}"
    files = {
        "input": _save(output_dir, f"{prefix}_input.hex", case.input, INPUT_WIDTH, verbose),
        "weight": _save(output_dir, f"{prefix}_weight.hex", case.weights, WEIGHT_WIDTH, verbose),
        "output": _save(output_dir, f"{prefix}_output.hex", output, OUTPUT_WIDTH, verbose),
    }
    return _case_entry(case.name, "gemv", case.input_dim, case.output_dim,
                       files, case.seeds, case.description)


def write_mac_stream(output_dir: str, verbose: bool = True) -> dict:
    """Dump the MAC-unit stream.  Returns its manifest entry."""
    stream = build_mac_stream()
    paths = stream.write_hex(output_dir)
    if verbose:
        print(f"  Total MAC operations: {len(stream)}")
        for path in paths.values():
            print(f"  Saved: {path}")
    entry = _case_entry("mac_stream", "mac_stream", 1, 1,
                        {key: os.path.basename(p) for key, p in paths.items()},
                        description="streaming MAC unit ops with clear")
    entry["ops"] = len(stream)
    return entry


def write_llm_projection(output_dir: str, verbose: bool = True) -> dict:
    """Q/K/V projections of one token embedding sharing a single input."""
    token = seeded_i8_sequence(_COLS, 100)
    files = {"token": _save(output_dir, "test_llm_token.hex", token, INPUT_WIDTH, verbose)}
    seeds = {"token": 100}
    outputs = {}
    for proj, wseed in (("q", 200), ("k", 300), ("v", 400)):
        case = GemvCase(
            name=f"llm_{proj}",
            input=token,
            weights=seeded_i8_sequence(_ROWS * _COLS, wseed),
            output_dim=_ROWS,
        )
        outputs[proj] = compute_case(case)
        files[f"w{proj}"] = _save(output_dir, f"test_llm_w{proj}.hex",
                                  case.weights, WEIGHT_WIDTH, verbose)
        seeds[f"w{proj}"] = wseed
    for proj, out in outputs.items():
        files[proj] = _save(output_dir, f"test_llm_{proj}.hex", out, OUTPUT_WIDTH, verbose)
    return _case_entry("llm_qkv", "gemv_multi", _COLS, _ROWS, files, seeds,
                       "Q/K/V projection of one token embedding")


def generate_suite(output_dir: str, seeds=DEFAULT_SEEDS, verbose: bool = True) -> dict:
    """Generate the full hex suite and ``vectors.json`` in ``output_dir``.

    Args:
        output_dir: Directory for the hex files (created if missing).
        seeds: Seeds for the random 32x8 cases.
        verbose: Print progress.

    Returns:
        The manifest dict that was written to ``vectors.json``.

    Raises:
        RuntimeError: If a case fails its self-check.
        OSError: If a file cannot be written.
    """
    os.makedirs(output_dir, exist_ok=True)

    sections = [
        ("MAC unit stream", lambda: [write_mac_stream(output_dir, verbose)]),
        ("GeMV sub-array patterns",
         lambda: [write_gemv_case(c, output_dir, verbose) for c in pattern_cases()]),
        ("Random GeMV",
         lambda: [write_gemv_case(random_case(s), output_dir, verbose) for s in seeds]),
        ("LLM projection", lambda: [write_llm_projection(output_dir, verbose)]),
        ("Tiled GeMV",
         lambda: [write_gemv_case(c, output_dir, verbose) for c in tiled_cases()]),
    ]

    cases = []
    for title, build in sections:
        if verbose:
            print(f"{title}...")
        cases.extend(build())

    manifest = {
        "config": {
            "input_width": INPUT_WIDTH,
            "weight_width": WEIGHT_WIDTH,
            "output_width": OUTPUT_WIDTH,
            "subarray_rows": SUBARRAY_ROWS,
            "subarray_cols": SUBARRAY_COLS,
            "pe_array": [PE_ARRAY_ROWS, PE_ARRAY_COLS],
            "num_large_arrays": NUM_LARGE_ARRAYS,
            "total_macs": TOTAL_MACS,
        },
        "cases": cases,
    }
    manifest_path = os.path.join(output_dir, MANIFEST_NAME)
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)
        f.write("\n")

    if verbose:
        print(f"  Saved: {manifest_path}")
    return manifest


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate golden hex vectors for the NPU RTL testbenches",
    )
    parser.add_argument(
        "--output-dir", type=str, default=".",
        help="Output directory (default: current directory)",
    )
    parser.add_argument(
        "--seeds", type=int, nargs="+", default=list(DEFAULT_SEEDS),
        help="Seeds for the random GeMV cases (default: 1 42 123 9999)",
    )
    parser.add_argument(
        "--quiet", action="store_true",
        help="Only report errors",
    )
    args = parser.parse_args(argv)

    if any(s < 0 for s in args.seeds):
        parser.error("seeds must be >= 0")

    try:
        manifest = generate_suite(args.output_dir, seeds=args.seeds,
                                  verbose=not args.quiet)
    except (OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Done. {len(manifest['cases'])} cases in {args.output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
