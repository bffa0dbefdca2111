"""Stack operators available to EdgeSmooth programs.

Each operator receives its string arguments and the current ImageStack and
returns a new stack. Argument counts and numeric literals are validated
before the stack is touched.

Operators:
    load PATH              - push an image from disk
    save PATH [BITS]       - write the top image (stack unchanged)
    wls ALPHA LAMBDA       - replace the top image with its WLS-filtered version
    noise LOW HIGH [SEED]  - add uniform noise to the top image
    dup                    - push a copy of the top image
    pop                    - discard the top image
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from edgesmooth.config import CLI_WLS_TOLERANCE, DEFAULT_BIT_DEPTH
from edgesmooth.core.calculus import add_uniform_noise
from edgesmooth.core.types import ProgressCallback
from edgesmooth.core.wls import wls_filter
from edgesmooth.errors import ArgumentCountError, ArgumentError, UnknownOperatorError
from edgesmooth.io.image import load_image, save_image
from edgesmooth.pipeline.stack import ImageStack

logger = logging.getLogger(__name__)

OperatorFunc = Callable[[list[str], ImageStack, Optional[ProgressCallback]], ImageStack]


@dataclass(frozen=True)
class Operator:
    """A named stack operator with a fixed argument-count range."""
    name: str
    usage: str
    help: str
    min_args: int
    max_args: int
    func: OperatorFunc

    def check_arg_count(self, args: list[str]) -> None:
        n = len(args)
        if self.min_args <= n <= self.max_args:
            return
        if self.min_args == self.max_args:
            expected = f"{self.min_args} argument{'s' if self.min_args != 1 else ''}"
        else:
            expected = f"{self.min_args} to {self.max_args} arguments"
        raise ArgumentCountError(f"-{self.name} takes {expected}, got {n}")

    def __call__(
        self,
        args: list[str],
        stack: ImageStack,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ImageStack:
        self.check_arg_count(args)
        return self.func(args, stack, progress_callback)


OPERATORS: dict[str, Operator] = {}


def register(name: str, usage: str, help: str, min_args: int, max_args: Optional[int] = None):
    """Decorator adding an operator function to the registry."""
    def decorator(func: OperatorFunc) -> OperatorFunc:
        OPERATORS[name] = Operator(
            name=name,
            usage=usage,
            help=help,
            min_args=min_args,
            max_args=min_args if max_args is None else max_args,
            func=func,
        )
        return func
    return decorator


def get_operator(name: str) -> Operator:
    try:
        return OPERATORS[name]
    except KeyError:
        raise UnknownOperatorError(
            f"Unknown operator -{name}. Available: "
            f"{', '.join('-' + n for n in sorted(OPERATORS))}"
        ) from None


def read_float(arg: str, operator: str) -> float:
    try:
        return float(arg)
    except ValueError:
        raise ArgumentError(f"-{operator}: could not parse {arg!r} as a number") from None


def read_int(arg: str, operator: str) -> int:
    try:
        return int(arg)
    except ValueError:
        raise ArgumentError(f"-{operator}: could not parse {arg!r} as an integer") from None


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------

@register(
    "wls", "-wls ALPHA LAMBDA",
    "Filter the top image with the weighted least squares filter described in "
    "'Edge-Preserving Decompositions for Multi-Scale Tone and Detail Manipulation' "
    "(Farbman et al.). ALPHA controls the sensitivity to edges, LAMBDA the amount "
    "of smoothing. Example: -load in.png -wls 1.2 0.25 -save blurry.png",
    2,
)
def wls_op(args, stack, progress_callback=None):
    alpha = read_float(args[0], "wls")
    lambda_ = read_float(args[1], "wls")
    stack.require(1, "-wls")
    result = wls_filter(
        stack.top, alpha, lambda_,
        tolerance=CLI_WLS_TOLERANCE,
        progress_callback=progress_callback,
    )
    return stack.replace_top(result)


@register("load", "-load PATH", "Load an image file and push it onto the stack.", 1)
def load_op(args, stack, progress_callback=None):
    return stack.push(load_image(args[0]))


@register(
    "save", "-save PATH [BITS]",
    "Save the top image. BITS is 8 or 16 for raster formats (default 8).",
    1, 2,
)
def save_op(args, stack, progress_callback=None):
    bit_depth = read_int(args[1], "save") if len(args) > 1 else DEFAULT_BIT_DEPTH
    if bit_depth not in (8, 16):
        raise ArgumentError(f"-save: bit depth must be 8 or 16, got {bit_depth}")
    stack.require(1, "-save")
    save_image(stack.top, args[0], bit_depth=bit_depth)
    return stack


@register(
    "noise", "-noise LOW HIGH [SEED]",
    "Add independent uniform noise in [LOW, HIGH) to every sample of the top image.",
    2, 3,
)
def noise_op(args, stack, progress_callback=None):
    low = read_float(args[0], "noise")
    high = read_float(args[1], "noise")
    seed = read_int(args[2], "noise") if len(args) > 2 else None
    if seed is not None and seed < 0:
        raise ArgumentError(f"-noise: seed must be non-negative, got {seed}")
    stack.require(1, "-noise")
    return stack.replace_top(add_uniform_noise(stack.top, low, high, seed=seed))


@register("dup", "-dup", "Push a copy of the top image.", 0)
def dup_op(args, stack, progress_callback=None):
    stack.require(1, "-dup")
    return stack.push(stack.top.copy())


@register("pop", "-pop", "Discard the top image.", 0)
def pop_op(args, stack, progress_callback=None):
    return stack.pop()
