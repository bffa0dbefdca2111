"""Tests for the stack operator registry."""

from __future__ import annotations

import numpy as np
import pytest

from edgesmooth.core.types import ImageVolume
from edgesmooth.errors import (
    ArgumentCountError,
    ArgumentError,
    StackUnderflowError,
    UnknownOperatorError,
)
from edgesmooth.pipeline.operators import OPERATORS, get_operator
from edgesmooth.pipeline.stack import ImageStack


@pytest.fixture
def stack(random_rgb):
    return ImageStack().push(random_rgb)


class TestRegistry:
    def test_known_operators(self):
        assert {"wls", "load", "save", "noise", "dup", "pop"} <= set(OPERATORS)

    def test_unknown_operator(self):
        with pytest.raises(UnknownOperatorError, match="-blur"):
            get_operator("blur")

    def test_usage_and_help(self):
        for op in OPERATORS.values():
            assert op.usage.startswith(f"-{op.name}")
            assert op.help


class TestWlsOperator:
    """Argument validation and stack effect of -wls."""

    @pytest.mark.parametrize("args", [[], ["1.2"], ["1.2", "0.25", "3"]])
    def test_wrong_argument_count(self, stack, args):
        with pytest.raises(ArgumentCountError, match="-wls takes 2 arguments"):
            get_operator("wls")(args, stack)
        assert len(stack) == 1

    def test_bad_literal(self, stack):
        with pytest.raises(ArgumentError, match="could not parse"):
            get_operator("wls")(["abc", "0.25"], stack)

    def test_empty_stack(self):
        with pytest.raises(StackUnderflowError):
            get_operator("wls")(["1.2", "0.25"], ImageStack())

    def test_replaces_top(self, stack, random_rgb):
        out = get_operator("wls")(["1.2", "0.25"], stack)
        assert len(out) == 1
        assert out.top.shape == random_rgb.shape
        assert out.top is not random_rgb
        # Original stack still holds the unfiltered image
        assert stack.top is random_rgb

    def test_only_top_is_filtered(self, random_rgb, random_gray):
        stack = ImageStack().push(random_gray).push(random_rgb)
        out = get_operator("wls")(["1.2", "0.25"], stack)
        assert len(out) == 2
        assert out.peek(1) is random_gray


class TestSimpleOperators:
    def test_dup(self, stack):
        out = get_operator("dup")([], stack)
        assert len(out) == 2
        assert out.top is not out.peek(1)
        np.testing.assert_array_equal(out.top.data, out.peek(1).data)

    def test_pop(self, stack):
        assert len(get_operator("pop")([], stack)) == 0

    def test_pop_rejects_arguments(self, stack):
        with pytest.raises(ArgumentCountError, match="-pop takes 0 arguments, got 1"):
            get_operator("pop")(["1"], stack)

    def test_noise_is_seeded(self, stack):
        a = get_operator("noise")(["-0.1", "0.1", "7"], stack)
        b = get_operator("noise")(["-0.1", "0.1", "7"], stack)
        np.testing.assert_array_equal(a.top.data, b.top.data)
        diff = a.top.data - stack.top.data
        assert np.abs(diff).max() <= 0.1 + 1e-6
        assert np.any(diff != 0)

    def test_noise_argument_range(self, stack):
        with pytest.raises(ArgumentCountError, match="2 to 3 arguments"):
            get_operator("noise")(["0.1"], stack)

    def test_noise_bad_seed(self, stack):
        with pytest.raises(ArgumentError, match="integer"):
            get_operator("noise")(["0", "1", "x"], stack)

    def test_noise_negative_seed(self, stack):
        with pytest.raises(ArgumentError, match="non-negative"):
            get_operator("noise")(["0", "1", "-3"], stack)


class TestFileOperators:
    def test_load_pushes(self, sample_npy):
        out = get_operator("load")([str(sample_npy)], ImageStack())
        assert len(out) == 1
        assert out.top.shape == (1, 14, 18, 3)

    def test_save_keeps_stack(self, stack, tmp_image_dir, random_rgb):
        path = tmp_image_dir / "out.npy"
        out = get_operator("save")([str(path)], stack)
        assert out is stack
        np.testing.assert_array_equal(np.load(path), random_rgb.data)

    def test_save_gray_png_16_bit(self, random_gray, tmp_image_dir):
        path = tmp_image_dir / "out.png"
        get_operator("save")([str(path), "16"], ImageStack().push(random_gray))
        assert path.exists()

    def test_save_rejects_bit_depth(self, stack, tmp_image_dir):
        with pytest.raises(ArgumentError, match="8 or 16"):
            get_operator("save")([str(tmp_image_dir / "out.png"), "12"], stack)

    def test_save_empty_stack(self, tmp_image_dir):
        with pytest.raises(StackUnderflowError):
            get_operator("save")([str(tmp_image_dir / "out.png")], ImageStack())

    def test_load_missing_file(self, tmp_image_dir):
        with pytest.raises(FileNotFoundError):
            get_operator("load")([str(tmp_image_dir / "missing.png")], ImageStack())
