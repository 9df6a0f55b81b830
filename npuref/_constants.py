"""Shared constants for the npuref package.

Hardware-determined values from the NPU RTL parameters.  Changing the
sub-array geometry changes the accumulation order of every tiled
operation and invalidates previously generated hex files.
"""

# Datapath widths (bits).  Inputs and weights are signed 8-bit, the MAC
# accumulator and every output are signed 32-bit.
INPUT_WIDTH = 8
WEIGHT_WIDTH = 8
OUTPUT_WIDTH = 32

INT8_MIN, INT8_MAX = -128, 127
INT32_MIN, INT32_MAX = -(1 << 31), (1 << 31) - 1

# GeMV sub-array (32x8 MAC grid).  Rows span the output vector, columns
# span the input vector; one hardware pass consumes one 32x8 tile.
SUBARRAY_ROWS = 32
SUBARRAY_COLS = 8

# Top-level compute fabric.
PE_ARRAY_ROWS = 2
PE_ARRAY_COLS = 2
NUM_LARGE_ARRAYS = 4

TOTAL_PE_UNITS = PE_ARRAY_ROWS * PE_ARRAY_COLS * NUM_LARGE_ARRAYS
MACS_PER_PE = SUBARRAY_ROWS * SUBARRAY_COLS
TOTAL_MACS = TOTAL_PE_UNITS * MACS_PER_PE

# Depth of the MAC unit testbench stimulus memory.
MAC_STREAM_CAPACITY = 512

# Hex word widths accepted by the $readmemh serializer.
HEX_WIDTHS = (INPUT_WIDTH, OUTPUT_WIDTH)
