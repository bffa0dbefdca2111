"""Tests for the immutable image stack."""

from __future__ import annotations

import pytest

from edgesmooth.core.types import ImageVolume
from edgesmooth.errors import PipelineError, StackUnderflowError
from edgesmooth.pipeline.stack import ImageStack


@pytest.fixture
def images():
    return [ImageVolume.full(2, 2, 1, 1, float(i)) for i in range(3)]


class TestImageStack:
    def test_empty(self):
        stack = ImageStack()
        assert len(stack) == 0
        assert stack.is_empty

    def test_push_puts_image_on_top(self, images):
        stack = ImageStack().push(images[0]).push(images[1])
        assert len(stack) == 2
        assert stack.top is images[1]
        assert stack.peek(1) is images[0]

    def test_operations_do_not_mutate(self, images):
        base = ImageStack().push(images[0])
        pushed = base.push(images[1])
        popped = pushed.pop()
        assert len(base) == 1
        assert len(pushed) == 2
        assert popped.top is images[0]

    def test_replace_top(self, images):
        stack = ImageStack().push(images[0]).push(images[1])
        replaced = stack.replace_top(images[2])
        assert len(replaced) == 2
        assert replaced.top is images[2]
        assert replaced.peek(1) is images[0]
        assert stack.top is images[1]

    def test_pop_empty_raises(self):
        with pytest.raises(StackUnderflowError):
            ImageStack().pop()

    def test_top_of_empty_raises(self):
        with pytest.raises(StackUnderflowError):
            ImageStack().top

    def test_require_message(self, images):
        stack = ImageStack().push(images[0])
        with pytest.raises(StackUnderflowError, match="-wls needs 2 image"):
            stack.require(2, "-wls")
        stack.require(1, "-wls")

    def test_underflow_is_pipeline_error(self):
        with pytest.raises(PipelineError):
            ImageStack().pop()

    def test_frozen(self, images):
        stack = ImageStack()
        with pytest.raises(AttributeError):
            stack.images = (images[0],)
