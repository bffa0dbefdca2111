"""EdgeSmooth CLI application.

Commands:
    wls       - Filter one image file with the WLS edge-preserving filter
    run       - Run a stack program, e.g. -load in.png -wls 1.2 0.25 -save out.png
    operators - List the operators available to stack programs
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn
from rich.table import Table

from edgesmooth import __version__
from edgesmooth.config import (
    DEFAULT_BIT_DEPTH,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_SOLVER_METHOD,
    DEFAULT_TOLERANCE,
    SOLVER_METHODS,
)
from edgesmooth.core.types import WLSConfig
from edgesmooth.errors import EdgeSmoothError

app = typer.Typer(
    name="edgesmooth",
    help="Edge-preserving weighted least squares smoothing.",
    no_args_is_help=True,
)
console = Console()

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)


def version_callback(value: bool):
    if value:
        console.print(f"EdgeSmooth v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", "-V", help="Show version and exit.",
        callback=version_callback, is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    if verbose:
        logging.getLogger("edgesmooth").setLevel(logging.DEBUG)


_STAGE_WEIGHTS = {
    "weights": 10,
    "solving": 90,
}


def _build_progress_callback(progress: Progress, task_id: int):
    """Create weighted stage-progress callback for filter runs."""

    stage_order = list(_STAGE_WEIGHTS.keys())

    def on_progress(stage: str, fraction: float, message: str):
        base = sum(
            _STAGE_WEIGHTS[s]
            for s in stage_order
            if stage in _STAGE_WEIGHTS and stage_order.index(s) < stage_order.index(stage)
        )
        weight = _STAGE_WEIGHTS.get(stage, 0)
        pct = base + weight * fraction
        progress.update(
            task_id,
            completed=pct,
            description=f"{stage}: {message}" if message else stage,
        )

    return on_progress


def _progress_bar() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
    )


@app.command()
def wls(
    input: Path = typer.Argument(..., help="Input image path."),
    alpha: float = typer.Argument(..., help="Sensitivity to edges."),
    lambda_: float = typer.Argument(..., metavar="LAMBDA", help="Amount of smoothing."),
    output: Path = typer.Option("smoothed.png", "-o", "--output", help="Output image path."),
    tolerance: float = typer.Option(
        DEFAULT_TOLERANCE, "--tolerance", min=0.0, help="Solver convergence tolerance.",
    ),
    max_iter: int = typer.Option(
        DEFAULT_MAX_ITERATIONS, "--max-iter", min=1, help="Solver iteration cap per plane.",
    ),
    method: str = typer.Option(
        DEFAULT_SOLVER_METHOD, "--method", help="Solver: pcg (iterative) or direct (sparse LU).",
    ),
    bits: int = typer.Option(DEFAULT_BIT_DEPTH, "--bits", help="Output bit depth (8 or 16)."),
    parallel: bool = typer.Option(False, "--parallel", help="Solve channels in parallel threads."),
):
    """Filter an image with the WLS edge-preserving filter."""
    if bits not in (8, 16):
        raise typer.BadParameter("--bits must be 8 or 16.")
    method = method.strip().lower()
    if method not in SOLVER_METHODS:
        raise typer.BadParameter(f"--method must be one of: {', '.join(sorted(SOLVER_METHODS))}.")

    from edgesmooth.core.wls import apply_wls
    from edgesmooth.io.image import load_image, save_image

    config = WLSConfig(
        alpha=alpha,
        lambda_=lambda_,
        tolerance=tolerance,
        max_iterations=max_iter,
        method=method,
        parallel=parallel,
    )

    console.print("\n[bold]EdgeSmooth WLS Filter[/bold]")
    console.print(f"  Input:     {input}")
    console.print(f"  Alpha:     {alpha:g}")
    console.print(f"  Lambda:    {lambda_:g}")
    console.print(f"  Solver:    {method}, tolerance {tolerance:g} (max {max_iter} iterations)")
    console.print()

    with _progress_bar() as progress:
        task = progress.add_task("Filtering...", total=100)
        on_progress = _build_progress_callback(progress, task)

        try:
            image = load_image(input)
            result = apply_wls(image, config, progress_callback=on_progress)
            saved = save_image(result, output, bit_depth=bits)
            progress.update(task, completed=100, description="Complete")
        except (EdgeSmoothError, OSError) as e:
            console.print(f"\n[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    console.print(f"\n[green]Output:[/green] {saved}\n")


@app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def run(ctx: typer.Context):
    """Run a stack program: -load in.png -wls 1.2 0.25 -save out.png"""
    from edgesmooth.pipeline.runner import parse_program, run_program

    tokens = list(ctx.args)
    if not tokens:
        console.print("[red]Error:[/red] empty program. See `edgesmooth operators`.")
        raise typer.Exit(code=1)

    with _progress_bar() as progress:
        task = progress.add_task("Running...", total=100)
        on_progress = _build_progress_callback(progress, task)

        try:
            commands = parse_program(tokens)
            stack = run_program(commands, progress_callback=on_progress)
            progress.update(task, completed=100, description="Complete")
        except (EdgeSmoothError, OSError) as e:
            console.print(f"\n[red]Error:[/red] {e}")
            raise typer.Exit(code=1)

    console.print(f"[dim]{len(commands)} operator(s), {len(stack)} image(s) left on the stack[/dim]")


@app.command()
def operators():
    """List the operators available to stack programs."""
    from edgesmooth.pipeline.operators import OPERATORS

    table = Table(title="Stack Operators")
    table.add_column("Usage", style="cyan")
    table.add_column("Description")

    for name in sorted(OPERATORS):
        op = OPERATORS[name]
        table.add_row(op.usage, op.help)

    console.print(table)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
