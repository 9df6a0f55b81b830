"""npuref: bit-exact golden reference model for the NPU GeMV/GeMM datapath."""

from .mac import mac, MacStream, MacStreamOverflow
from .reference import (
    gemv_direct, gemm_direct, gemv_tiled, gemm_tiled,
    iter_tiles, tile_counts, mac_schedule, GemvLayer, GemmLayer,
)
from .datagen import make_rng, random_i8, seeded_i8_sequence, sequential_i8
from .hexio import write_hex, read_hex

__all__ = ["mac", "MacStream", "MacStreamOverflow",
           "gemv_direct", "gemm_direct", "gemv_tiled", "gemm_tiled",
           "iter_tiles", "tile_counts", "mac_schedule", "GemvLayer", "GemmLayer",
           "make_rng", "random_i8", "seeded_i8_sequence", "sequential_i8",
           "write_hex", "read_hex"]
