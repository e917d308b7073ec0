"""
STL to G-code slicing pipeline and command-line interface.

    slicer slice model.stl -o model.gcode --config settings.yaml
    slicer info model.stl
    slicer inspect model.gcode
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from errors import SlicerError
from gcode_generator import GCodeFile, Point, generate_gcode
from gcode_parser import parse_gcode
from geometry_ops import Layer, bounding_box, generate_contours, surface_area, transform_triangles
from log_config import configure_logging
from settings import ModelTransform, SlicerSettings, load_settings
from stl_parser import parse_binary_stl, read_binary_stl

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

console = Console()


@dataclass
class SliceResult:
    paths: list[Point]
    gcode: GCodeFile
    layers: list[Layer] = field(default_factory=list)


def slice_mesh(triangles, transform, settings, name="output.gcode"):
    """Transform, slice and emit G-code for decoded triangles."""
    placed = transform_triangles(triangles, transform)
    layers = generate_contours(placed, settings.layer_height)
    gcode, paths = generate_gcode(layers, settings, name=name)
    logger.info(
        "Slicing complete: %d layers, %d path points, %.1f s, %.2f mm filament",
        len(layers), len(paths), gcode.total_time, gcode.total_filament,
    )
    return SliceResult(paths=paths, gcode=gcode, layers=layers)


def slice_stl_buffer(buffer, transform, settings, name="output.gcode"):
    return slice_mesh(parse_binary_stl(buffer), transform, settings, name=name)


def _format_duration(seconds: float) -> str:
    minutes, seconds = divmod(int(round(seconds)), 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m {seconds:02d}s"


def _format_point(point) -> str:
    return "(" + ", ".join(f"{c:.3f}" for c in point) + ")"


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default="WARNING", show_default=True, help="Minimum log level")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def main(log_level: str, json_logs: bool) -> None:
    """Slice binary STL meshes into G-code toolpaths."""
    configure_logging(level=log_level, json_output=json_logs)


@main.command("slice")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="G-code output file")
@click.option("--config", "-c", "config_path", type=click.Path(path_type=Path), help="YAML settings file")
@click.option("--layer-height", type=float, help="Override layer height (mm)")
@click.option("--scale", type=float, help="Override uniform scale")
@click.option("--offset", type=(float, float, float), help="Override translation X Y Z (mm)")
@click.option("--points", "points_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Write the visualization path as JSON")
def slice_command(
    input_path: Path,
    output: Optional[Path],
    config_path: Optional[Path],
    layer_height: Optional[float],
    scale: Optional[float],
    offset: Optional[tuple[float, float, float]],
    points_path: Optional[Path],
) -> None:
    """Slice an STL file and write G-code."""
    output = output or input_path.with_suffix(".gcode")
    try:
        if config_path:
            settings, transform = load_settings(config_path)
        else:
            settings, transform = SlicerSettings(), ModelTransform()

        if layer_height is not None:
            settings = SlicerSettings(**{**settings.model_dump(), "layer_height": layer_height})
        overrides = {}
        if scale is not None:
            overrides["scale"] = scale
        if offset is not None:
            overrides.update(zip(("x", "y", "z"), offset))
        if overrides:
            transform = ModelTransform(**{**transform.model_dump(), **overrides})

        triangles = read_binary_stl(input_path)
        result = slice_mesh(triangles, transform, settings, name=output.name)
        output.write_text(result.gcode.text)
        if points_path:
            points_path.write_text(json.dumps([p._asdict() for p in result.paths]))
    except (SlicerError, OSError, ValueError) as e:
        console.print(f"[red]✗[/red] Slicing failed: {e}")
        raise SystemExit(1)

    table = Table(title=f"Sliced {input_path.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Triangles", str(len(triangles)))
    table.add_row("Layers", str(len(result.layers)))
    table.add_row("G-code lines", str(len(result.gcode.lines)))
    table.add_row("Print time", _format_duration(result.gcode.total_time))
    table.add_row("Filament", f"{result.gcode.total_filament:.2f} mm")
    console.print(table)
    console.print(f"[green]✓[/green] Wrote {output}")


@main.command("info")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def info_command(input_path: Path) -> None:
    """Show mesh statistics for an STL file."""
    try:
        triangles = read_binary_stl(input_path)
    except OSError as e:
        console.print(f"[red]✗[/red] Failed to read mesh: {e}")
        raise SystemExit(1)

    table = Table(title=f"Mesh: {input_path.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Triangles", str(len(triangles)))
    if triangles:
        low, high = bounding_box(triangles)
        table.add_row("Bounding box min", _format_point(low))
        table.add_row("Bounding box max", _format_point(high))
        table.add_row("Surface area", f"{surface_area(triangles):.2f} mm²")
    console.print(table)


@main.command("inspect")
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect_command(input_path: Path) -> None:
    """Summarize the moves in a G-code file."""
    try:
        parsed = parse_gcode(input_path.read_text())
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]✗[/red] Failed to read G-code: {e}")
        raise SystemExit(1)

    travel = sum(1 for p in parsed.points if p.is_travel)
    table = Table(title=f"G-code: {input_path.name}")
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    table.add_row("Moves", str(len(parsed.points)))
    table.add_row("Travel moves", str(travel))
    table.add_row("Print time", _format_duration(parsed.total_time))
    table.add_row("Filament", f"{parsed.total_filament:.2f} mm")
    table.add_row("Bounds min", _format_point(parsed.bounding_box[0]))
    table.add_row("Bounds max", _format_point(parsed.bounding_box[1]))
    console.print(table)


if __name__ == "__main__":
    main()
