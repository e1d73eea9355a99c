"""CubeLUT CLI application.

Commands:
    info        - Show title, domain and size of a .cube file
    convert     - Load and re-save a .cube file (normalizes line endings)
    lookup      - Sample a 3D LUT at one color
    identity    - Write an identity 3D LUT
    resize      - Resample a 3D LUT to a different grid size
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cubelut import __version__
from cubelut.config import DEFAULT_TITLE, MAX_3D_SIZE, MIN_LUT_SIZE
from cubelut.core.types import TableDim
from cubelut.errors import CubeLutError

app = typer.Typer(
    name="cubelut",
    help="Read, write and sample .cube color lookup tables.",
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
        console.print(f"CubeLUT v{__version__}")
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
        logging.getLogger("cubelut").setLevel(logging.DEBUG)


def _load(path: Path):
    from cubelut.io.cube import LutDocument

    try:
        return LutDocument.from_cube_file(path)
    except (FileNotFoundError, CubeLutError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def info(
    lut_file: Path = typer.Argument(..., help="LUT file (.cube)."),
):
    """Show the header of a .cube file."""
    doc = _load(lut_file)

    table = Table(title=str(lut_file), show_header=True, header_style="bold")
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Title", doc.title or "[dim](none)[/dim]")
    table.add_row("Type", doc.dim.value)
    if doc.dim == TableDim.THREE_D:
        table.add_row("Size", f"{doc.size}^3 = {doc.size ** 3:,} entries")
    else:
        table.add_row("Size", f"{doc.size:,} entries")
    table.add_row("Domain min", " ".join(f"{v:g}" for v in doc.domain_min))
    table.add_row("Domain max", " ".join(f"{v:g}" for v in doc.domain_max))

    array = doc.table.array
    table.add_row("Value range", f"{float(array.min()):.6g} .. {float(array.max()):.6g}")
    console.print(table)


@app.command()
def convert(
    lut_file: Path = typer.Argument(..., help="Input LUT file (.cube)."),
    output: Path = typer.Option(..., "-o", "--output", help="Output LUT path."),
    title: Optional[str] = typer.Option(None, "--title", help="Replace the LUT title."),
    precision: Optional[int] = typer.Option(
        None, "-p", "--precision", min=0, max=12,
        help="Fixed decimal places (default: shortest exact form).",
    ),
):
    """Load a .cube file and write it back out."""
    doc = _load(lut_file)
    if title is not None:
        doc.title = title
    try:
        doc.to_cube_file(output, precision=precision)
    except CubeLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Saved:[/green] {output}")


@app.command()
def lookup(
    lut_file: Path = typer.Argument(..., help="3D LUT file (.cube)."),
    r: float = typer.Argument(..., help="Red, in the LUT's domain."),
    g: float = typer.Argument(..., help="Green, in the LUT's domain."),
    b: float = typer.Argument(..., help="Blue, in the LUT's domain."),
):
    """Sample a 3D LUT at one color with trilinear interpolation."""
    from cubelut.core.sampler import LutSampler

    doc = _load(lut_file)
    try:
        result = LutSampler(doc).lookup(r, g, b)
    except CubeLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"{result.r:.6f} {result.g:.6f} {result.b:.6f}")


@app.command()
def identity(
    output: Path = typer.Option("identity.cube", "-o", "--output", help="Output LUT path."),
    size: int = typer.Option(
        33, "-s", "--size", min=MIN_LUT_SIZE, max=MAX_3D_SIZE, help="LUT grid size.",
    ),
    title: str = typer.Option(DEFAULT_TITLE, "--title", help="LUT title."),
):
    """Write an identity 3D LUT."""
    from cubelut.core.table import identity_table
    from cubelut.io.cube import LutDocument

    try:
        doc = LutDocument.from_table(identity_table(size), title=title)
        doc.to_cube_file(output)
    except CubeLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Saved:[/green] {output} ({size}^3)")


@app.command()
def resize(
    lut_file: Path = typer.Argument(..., help="3D LUT file (.cube)."),
    output: Path = typer.Option(..., "-o", "--output", help="Output LUT path."),
    size: int = typer.Option(
        ..., "-s", "--size", min=MIN_LUT_SIZE, max=MAX_3D_SIZE, help="Target grid size.",
    ),
):
    """Resample a 3D LUT to a different grid size."""
    from cubelut.core.resample import resample_document
    from cubelut.core.table import Table3D

    doc = _load(lut_file)
    if not isinstance(doc.table, Table3D):
        console.print("[red]Error:[/red] Only 3D LUTs can be resized.")
        raise typer.Exit(code=1)

    console.print(f"  Resampling: {doc.size}^3 -> {size}^3")
    try:
        resample_document(doc, size).to_cube_file(output)
    except CubeLutError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]Saved:[/green] {output} ({size}^3)")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
