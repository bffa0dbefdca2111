"""Immutable image stack threaded through operator programs.

Every operation returns a new ImageStack; the receiver is never modified,
so a failed operator leaves the caller's stack exactly as it was. The top
of the stack is index 0.
"""

from __future__ import annotations

from dataclasses import dataclass

from edgesmooth.core.types import ImageVolume
from edgesmooth.errors import StackUnderflowError


@dataclass(frozen=True)
class ImageStack:
    """Ordered, immutable collection of image volumes (top first)."""
    images: tuple[ImageVolume, ...] = ()

    def __len__(self) -> int:
        return len(self.images)

    @property
    def is_empty(self) -> bool:
        return not self.images

    def require(self, count: int, operator: str = "operator") -> None:
        """Raise StackUnderflowError unless at least count images are present."""
        if len(self.images) < count:
            raise StackUnderflowError(
                f"{operator} needs {count} image(s) on the stack, found {len(self.images)}"
            )

    def peek(self, index: int = 0) -> ImageVolume:
        self.require(index + 1, "peek")
        return self.images[index]

    @property
    def top(self) -> ImageVolume:
        return self.peek(0)

    def push(self, image: ImageVolume) -> ImageStack:
        return ImageStack((image,) + self.images)

    def pop(self) -> ImageStack:
        self.require(1, "pop")
        return ImageStack(self.images[1:])

    def replace_top(self, image: ImageVolume) -> ImageStack:
        """Pop the top image and push a replacement."""
        return self.pop().push(image)
