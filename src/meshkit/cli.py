"""
Command-line interface for MeshKit.

Provides commands for inspecting mesh files, extruding polylines, convex
decomposition and submesh merging.
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from meshkit import __version__
from meshkit.core.config import MeshKitSettings, load_settings
from meshkit.core.exceptions import InvalidInputError, MeshKitError
from meshkit.core.geometry import MeshLoader
from meshkit.core.logging import configure_logging
from meshkit.core.mesh import Mesh
from meshkit.geometry.extrusion import extrude_polyline
from meshkit.registry import MeshRegistry

console = Console()


def parse_polygon(text: str) -> list[tuple[float, float]]:
    """
    Parse ``"x,y x,y ..."`` into a list of points.

    Raises:
        InvalidInputError: If a point is not a pair of numbers
    """
    points = []
    for token in text.split():
        parts = token.split(",")
        if len(parts) != 2:
            raise InvalidInputError(f"Expected 'x,y' but got {token!r}")
        try:
            points.append((float(parts[0]), float(parts[1])))
        except ValueError as e:
            raise InvalidInputError(f"Invalid coordinate in {token!r}") from e
    return points


def _format_vector(values) -> str:
    return "(" + ", ".join(f"{v:.4g}" for v in values) + ")"


def _load(registry: MeshRegistry, file_path: Path) -> Mesh:
    mesh = MeshLoader.load(file_path)
    registry.add_mesh(mesh)
    return mesh


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML settings file",
)
@click.option("--log-level", default=None, help="Override the configured log level")
@click.option("--json-logs", is_flag=True, default=False, help="Emit JSON log lines")
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Optional[Path],
    log_level: Optional[str],
    json_logs: bool,
) -> None:
    """MeshKit - triangle mesh registry and geometry tools."""
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config_path)
    except MeshKitError as e:
        console.print(f"[red]✗[/red] Failed to load settings: {e}")
        raise SystemExit(1)

    configure_logging(
        level=log_level or settings.logging.level,
        json_output=json_logs or settings.logging.json_output,
        log_file=settings.logging.log_file,
    )
    ctx.obj["settings"] = settings
    ctx.obj["registry"] = MeshRegistry(settings)


# =============================================================================
# Inspection
# =============================================================================


@main.command("info")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def info(ctx: click.Context, file: Path) -> None:
    """Show the submeshes of a mesh file."""
    try:
        mesh = _load(ctx.obj["registry"], file)

        table = Table(title=f"Mesh: {file.name}")
        table.add_column("Submesh", style="cyan")
        table.add_column("Vertices", justify="right")
        table.add_column("Indices", justify="right")
        table.add_column("Texcoord Sets", justify="right")
        table.add_column("Min")
        table.add_column("Max")

        for submesh in mesh:
            table.add_row(
                submesh.name or "-",
                str(submesh.vertex_count),
                str(submesh.index_count),
                str(submesh.texcoord_set_count),
                _format_vector(submesh.min),
                _format_vector(submesh.max),
            )

        console.print(table)
        console.print(
            f"  {mesh.submesh_count} submesh(es), {mesh.vertex_count} vertices, "
            f"bounds {_format_vector(mesh.min)} - {_format_vector(mesh.max)}"
        )

    except MeshKitError as e:
        console.print(f"[red]✗[/red] Failed to read mesh: {e}")
        raise SystemExit(1)


# =============================================================================
# Geometry Commands
# =============================================================================


@main.command("extrude")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--height", type=float, required=True, help="Extrusion height")
@click.option(
    "--polygon",
    "-p",
    "polygons",
    multiple=True,
    required=True,
    help='Sub-path as "x,y x,y ..."; repeat for holes and extra outlines',
)
@click.option("--name", "-n", default=None, help="Mesh name (defaults to the output stem)")
@click.pass_context
def extrude(
    ctx: click.Context,
    output: Path,
    height: float,
    polygons: tuple[str, ...],
    name: Optional[str],
) -> None:
    """Extrude 2D polygons along +Z and save the solid."""
    settings: MeshKitSettings = ctx.obj["settings"]
    try:
        path = [parse_polygon(p) for p in polygons]
        mesh = extrude_polyline(
            path,
            height,
            name=name or output.stem,
            tolerance=settings.extrusion.tolerance,
        )
        ctx.obj["registry"].add_mesh(mesh)
        MeshLoader.save(mesh, output)
        console.print(
            f"[green]✓[/green] Extruded {len(path)} sub-path(s) to {output} "
            f"({mesh.vertex_count} vertices, {mesh.index_count // 3} triangles)"
        )
    except MeshKitError as e:
        console.print(f"[red]✗[/red] Failed to extrude: {e}")
        raise SystemExit(1)


@main.command("decompose")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--max-hulls", type=int, default=None, help="Maximum number of convex hulls")
@click.option("--resolution", type=int, default=None, help="Voxel resolution")
@click.option(
    "--format",
    "file_format",
    type=click.Choice(["stl", "obj", "ply"]),
    default="stl",
    help="Output file format",
)
@click.pass_context
def decompose(
    ctx: click.Context,
    file: Path,
    output_dir: Path,
    max_hulls: Optional[int],
    resolution: Optional[int],
    file_format: str,
) -> None:
    """Write one convex hull file per piece of an approximate convex decomposition."""
    registry: MeshRegistry = ctx.obj["registry"]
    try:
        mesh = _load(registry, file)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = 0
        for submesh in mesh:
            hulls = registry.convex_decomposition(submesh, max_hulls, resolution)
            for hull in hulls:
                target = output_dir / f"{file.stem}_{written}.{file_format}"
                MeshLoader.save(Mesh(name=hull.name, submeshes=[hull]), target)
                written += 1

        if written == 0:
            console.print("[yellow]⚠[/yellow] Input has no volume; no hulls written")
            return
        console.print(f"[green]✓[/green] Wrote {written} convex hull(s) to {output_dir}")
    except MeshKitError as e:
        console.print(f"[red]✗[/red] Failed to decompose: {e}")
        raise SystemExit(1)


@main.command("merge")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def merge(ctx: click.Context, file: Path, output: Path) -> None:
    """Merge every submesh of a mesh file into one and save it."""
    registry: MeshRegistry = ctx.obj["registry"]
    try:
        mesh = _load(registry, file)
        merged = registry.merge_submeshes(mesh)
        MeshLoader.save(merged, output)
        console.print(
            f"[green]✓[/green] Merged {mesh.submesh_count} submesh(es) into "
            f"'{merged.name}' at {output}"
        )
    except MeshKitError as e:
        console.print(f"[red]✗[/red] Failed to merge: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
