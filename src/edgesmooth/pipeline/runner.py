"""Program parsing and execution for stack-based pipelines.

A program is a flat token list in which every token of the form "-name"
starts a new operator and the following tokens are its arguments:

    -load in.png -noise -0.2 0.2 -wls 1.2 0.25 -save out.png

Negative numbers such as "-0.2" are arguments, not operators.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from edgesmooth.core.types import ProgressCallback
from edgesmooth.errors import PipelineError
from edgesmooth.pipeline.operators import get_operator
from edgesmooth.pipeline.stack import ImageStack

logger = logging.getLogger(__name__)

_OPERATOR_TOKEN = re.compile(r"^-{1,2}([A-Za-z][\w-]*)$")


@dataclass
class Command:
    """One operator invocation within a program."""
    name: str
    args: list[str] = field(default_factory=list)


def parse_program(tokens: Sequence[str]) -> list[Command]:
    """Split a token list into commands.

    Raises:
        PipelineError: If arguments appear before the first operator.
    """
    commands: list[Command] = []
    for token in tokens:
        match = _OPERATOR_TOKEN.match(token)
        if match:
            commands.append(Command(match.group(1).lower()))
        elif not commands:
            raise PipelineError(f"Argument {token!r} appears before any operator")
        else:
            commands[-1].args.append(token)
    return commands


def run_program(
    commands: Sequence[Command],
    stack: Optional[ImageStack] = None,
    progress_callback: Optional[ProgressCallback] = None,
) -> ImageStack:
    """Run commands in order and return the final stack.

    Every operator is looked up before anything runs, so a typo fails the
    program without side effects. The input stack is never modified.
    """
    if stack is None:
        stack = ImageStack()

    operators = [get_operator(cmd.name) for cmd in commands]

    for i, (cmd, op) in enumerate(zip(commands, operators)):
        logger.info("[%d/%d] -%s %s", i + 1, len(commands), cmd.name, " ".join(cmd.args))
        stack = op(cmd.args, stack, progress_callback)
        logger.debug("Stack depth after -%s: %d", cmd.name, len(stack))

    return stack
