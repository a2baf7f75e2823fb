"""CLI entrypoint for docmap."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import EngineConfig, find_config, load_config
from .models import LayoutAlgorithm

ALGORITHMS = [a.value for a in LayoutAlgorithm]


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _root_for(snapshot: Path, root: Path | None) -> Path:
    """Graph identity root: --root, else the directory holding the snapshot."""
    return (root or snapshot.parent).resolve()


@click.group()
@click.version_option(__version__, prog_name="docmap")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to docmap.toml (defaults to the nearest one above the working directory)",
)
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug)")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: int) -> None:
    """docmap - Layout and incremental-update engine for document graphs.

    Lay out, diff and watch JSON graph snapshots produced by a document scanner.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)

    if config_path is None:
        config_path = find_config(Path.cwd())

    config = EngineConfig()
    if config_path is not None:
        try:
            config = load_config(config_path)
        except ValueError as e:
            raise click.ClickException(str(e)) from e
        logging.getLogger(__name__).info("Using config %s", config_path)

    ctx.obj["config"] = config


snapshot_argument = click.argument(
    "snapshot",
    type=click.Path(exists=True, file_okay=True, dir_okay=False, path_type=Path),
)


@cli.command()
@snapshot_argument
@click.option(
    "--algorithm",
    "-a",
    type=click.Choice(ALGORITHMS),
    default=None,
    help="Layout algorithm (defaults to layout.algorithm from the config)",
)
@click.option("--focus", type=str, default=None, help="Document path to centre mind map/radial layouts on")
@click.option("--depth", type=int, default=None, help="Only lay out nodes within this many hops of the focus")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["json", "md", "rich"]),
    default="json",
    show_default=True,
)
@click.option(
    "--out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write output to a file instead of stdout",
)
@click.pass_context
def layout(
    ctx: click.Context,
    snapshot: Path,
    algorithm: str | None,
    focus: str | None,
    depth: int | None,
    fmt: str,
    out: Path | None,
) -> None:
    """Compute a fresh layout for a snapshot.

    Examples:

        docmap layout graph.json

        docmap layout graph.json -a hierarchical --format md

        docmap layout graph.json -a radial --focus notes/index.md --depth 2
    """
    from .commands.layout_cmd import run_layout

    if depth is not None and depth < 1:
        raise click.BadParameter("must be at least 1", param_hint="--depth")

    try:
        exit_code = run_layout(
            snapshot,
            config=ctx.obj["config"],
            algorithm=algorithm,
            focus=focus,
            depth=depth,
            fmt=fmt,
            out=out,
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument("previous", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("new", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Document root identifying the graph (defaults to the directory of NEW)",
)
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Position store file to read and update",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def diff(
    ctx: click.Context,
    previous: Path,
    new: Path,
    root: Path | None,
    state_path: Path | None,
    output_json: bool,
) -> None:
    """Replay a rebuild from PREVIOUS to NEW and show added/removed nodes."""
    from .commands.layout_cmd import run_diff

    try:
        exit_code = run_diff(
            previous,
            new,
            config=ctx.obj["config"],
            root=_root_for(new, root),
            state_path=state_path,
            fmt="json" if output_json else "rich",
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@snapshot_argument
@click.argument("query")
@click.option("--json", "output_json", is_flag=True, help="Output matches as JSON")
def search(snapshot: Path, query: str, output_json: bool) -> None:
    """List nodes of SNAPSHOT whose title, path, description, domain or URLs contain QUERY."""
    from .commands.layout_cmd import run_search

    try:
        exit_code = run_search(snapshot, query, fmt="json" if output_json else "rich")
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.argument("snapshot", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Document root identifying the graph (defaults to the directory of SNAPSHOT)",
)
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Position store file (defaults to <root>/.docmap/positions.json)",
)
@click.option("--focus", type=str, default=None, help="Document path to pre-select after the first layout")
@click.pass_context
def watch(
    ctx: click.Context,
    snapshot: Path,
    root: Path | None,
    state_path: Path | None,
    focus: str | None,
) -> None:
    """Rebuild the graph whenever SNAPSHOT changes.

    Runs until interrupted (Ctrl+C). Added and removed nodes are animated
    in and out, and positions are kept between runs.
    """
    from .commands.layout_cmd import default_state_path
    from .commands.watch_cmd import run_watch

    graph_root = _root_for(snapshot, root)
    try:
        exit_code = run_watch(
            snapshot.resolve(),
            config=ctx.obj["config"],
            root=graph_root,
            state_path=state_path or default_state_path(graph_root),
            focus=focus,
        )
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.group()
def positions() -> None:
    """Inspect or forget cached node positions."""
    pass


state_argument = click.argument("state", type=click.Path(dir_okay=False, path_type=Path))


@positions.command("show")
@state_argument
@click.option("--root", type=click.Path(file_okay=False, path_type=Path), default=None, help="Only this graph")
@click.option("--json", "output_json", is_flag=True, help="Output positions as JSON")
def positions_show(state: Path, root: Path | None, output_json: bool) -> None:
    """Show cached positions stored in STATE."""
    from .commands.positions_cmd import run_positions_show

    try:
        exit_code = run_positions_show(state, root=root, fmt="json" if output_json else "rich")
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@positions.command("forget")
@state_argument
@click.option("--root", type=click.Path(file_okay=False, path_type=Path), default=None, help="Graph to forget")
@click.option("--all", "forget_all", is_flag=True, help="Forget every graph")
def positions_forget(state: Path, root: Path | None, forget_all: bool) -> None:
    """Forget cached positions so the next load lays the graph out afresh."""
    from .commands.positions_cmd import run_positions_forget

    try:
        exit_code = run_positions_forget(state, root=root, forget_all=forget_all)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
