"""Tests for the MAC primitive and the streaming MAC recorder."""

import os

import numpy as np
import pytest

from npuref.mac import mac, MacStream, MacStreamOverflow
from npuref.hexio import read_hex
from npuref.vector_gen import build_mac_stream


# ── mac() ─────────────────────────────────────────────────────────────────

class TestMacBasic:
    """Basic products and accumulation."""

    def test_positive_product(self):
        assert mac(2, 3) == 6

    def test_accumulates(self):
        assert mac(4, 5, mac(2, 3)) == 26

    def test_sign_combinations(self):
        assert mac(-5, 7) == -35
        assert mac(-3, -4) == 12
        assert mac(-5, 7, 12) == -23

    def test_zero_operands_keep_acc(self):
        assert mac(0, 50, 100) == 100
        assert mac(50, 0, 100) == 100

    def test_multiply_by_one(self):
        assert mac(127, 1) == 127
        assert mac(1, -128) == -128
        assert mac(100, -1) == -100


class TestMacBoundaries:
    """INT8 extremes and long accumulations."""

    def test_max_times_max(self):
        assert mac(127, 127, 0) == 16129

    def test_min_times_min(self):
        assert mac(-128, -128, 0) == 16384

    def test_max_times_min(self):
        assert mac(127, -128, 0) == -16256

    def test_256_max_products(self):
        acc = 0
        for _ in range(256):
            acc = mac(127, 127, acc)
        assert acc == 16129 * 256

    def test_accumulator_wraps_at_32_bits(self):
        """Overflow past INT32_MAX wraps like the RTL accumulator."""
        assert mac(1, 1, 2**31 - 1) == -(2**31)
        assert mac(-1, 1, -(2**31)) == 2**31 - 1

    def test_accepts_numpy_scalars(self):
        assert mac(np.int8(-128), np.int8(127), np.int32(5)) == 5 - 16256

    def test_out_of_range_input_raises(self):
        with pytest.raises(ValueError, match="input"):
            mac(128, 1)
        with pytest.raises(ValueError, match="weight"):
            mac(1, -129)

    def test_out_of_range_acc_raises(self):
        with pytest.raises(ValueError, match="acc"):
            mac(1, 1, 2**31)

    def test_non_integer_operands_raise(self):
        with pytest.raises(ValueError, match="input must be an integer"):
            mac(1.9, 2)
        with pytest.raises(ValueError, match="weight must be an integer"):
            mac(1, np.float32(2.0))
        with pytest.raises(ValueError, match="acc must be an integer"):
            mac(1, 1, 0.5)

    def test_bool_operand_raises(self):
        with pytest.raises(ValueError, match="input"):
            mac(True, 1)


class TestMacPatterns:
    """Accumulation patterns from the MAC unit regression."""

    def test_alternating_signs_cancel(self):
        assert mac(-10, 10, mac(10, 10)) == 0

    def test_sum_of_squares(self):
        acc = 0
        for i in range(1, 11):
            acc = mac(i, i, acc)
        assert acc == 385

    def test_arithmetic_progression(self):
        acc = 0
        for i in range(1, 9):
            acc = mac(i, 1, acc)
        assert acc == 36


# ── MacStream ─────────────────────────────────────────────────────────────

class TestMacStream:
    """Clear semantics, bounded capacity and hex output."""

    def test_clear_resets_before_product(self):
        stream = MacStream()
        stream.add(True, 2, 3)
        stream.add(False, 4, 5)
        stream.add(True, -5, 7)
        np.testing.assert_array_equal(stream.expected, [6, 26, -35])
        np.testing.assert_array_equal(stream.clears, [1, 0, 1])

    def test_groups_match_independent_sums(self):
        """Each cleared group reproduces its own direct sum."""
        rng = np.random.default_rng(7)
        groups = [rng.integers(-128, 128, size=(n, 2)) for n in (1, 5, 17, 40)]
        stream = MacStream()
        for g in groups:
            result = stream.add_group([tuple(p) for p in g])
            assert result == int(np.sum(g[:, 0].astype(np.int64) * g[:, 1]))

    def test_records_operands(self):
        stream = MacStream()
        stream.add_group([(1, -2), (3, -4)])
        np.testing.assert_array_equal(stream.inputs, [1, 3])
        np.testing.assert_array_equal(stream.weights, [-2, -4])
        assert stream.inputs.dtype == np.int8
        assert stream.expected.dtype == np.int32
        assert len(stream) == 2
        assert stream.acc == -14

    def test_overflow_raises_without_side_effects(self):
        stream = MacStream(capacity=3)
        for _ in range(3):
            stream.add(False, 1, 1)
        with pytest.raises(MacStreamOverflow, match="full"):
            stream.add(True, 5, 5)
        assert len(stream) == 3
        assert stream.acc == 3

    def test_overflow_is_runtime_error(self):
        assert issubclass(MacStreamOverflow, RuntimeError)

    def test_invalid_capacity(self):
        with pytest.raises(ValueError, match="capacity"):
            MacStream(capacity=0)

    def test_reset(self):
        stream = MacStream()
        stream.add(False, 3, 3)
        stream.reset()
        assert len(stream) == 0
        assert stream.acc == 0
        assert stream.add(False, 2, 2) == 4

    def test_invalid_operand_not_recorded(self):
        stream = MacStream()
        with pytest.raises(ValueError):
            stream.add(True, 200, 1)
        assert len(stream) == 0

    def test_write_hex_lockstep_files(self, tmp_path):
        stream = MacStream()
        stream.add(True, -1, 1)
        stream.add(False, 127, -128)
        paths = stream.write_hex(str(tmp_path))

        assert set(paths) == {"input", "weight", "clear", "expected"}
        assert (tmp_path / "mac_test_input.hex").read_text() == "FF\n7F\n"
        assert (tmp_path / "mac_test_weight.hex").read_text() == "01\n80\n"
        assert (tmp_path / "mac_test_clear.hex").read_text() == "01\n00\n"
        assert (tmp_path / "mac_test_expected.hex").read_text() == "FFFFFFFF\nFFFFC07F\n"

    def test_write_hex_custom_prefix(self, tmp_path):
        stream = MacStream()
        stream.add(True, 1, 1)
        paths = stream.write_hex(str(tmp_path / "sub"), prefix="unit")
        assert os.path.basename(paths["expected"]) == "unit_expected.hex"
        assert os.path.isfile(paths["input"])


class TestMacRegressionStream:
    """The MAC unit regression sequence used by the vector suite."""

    def test_op_count_fits_capacity(self):
        stream = build_mac_stream()
        assert len(stream) == 289
        assert len(stream) <= stream.capacity

    def test_group_results(self):
        exp = build_mac_stream().expected
        assert list(exp[:5]) == [6, 26, -35, 12, -23]
        assert list(exp[5:13]) == [0, 0, 127, -128, -100, 16129, 16384, -16256]
        assert exp[13 + 255] == 4129024
        assert exp[269 + 1] == 0
        assert exp[271 + 9] == 385
        assert exp[-1] == 36

    def test_roundtrip_through_hex(self, tmp_path):
        stream = build_mac_stream()
        paths = stream.write_hex(str(tmp_path))
        expected, n = read_hex(paths["expected"], len(stream), 32)
        assert n == len(stream)
        np.testing.assert_array_equal(expected, stream.expected)
        clears, _ = read_hex(paths["clear"], len(stream), 8)
        assert int(clears.sum()) == 15


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
