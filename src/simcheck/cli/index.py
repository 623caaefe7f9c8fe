"""simcheck index command - index a source tree and report what was found."""

import json
from collections import Counter
from pathlib import Path

import click
from rich.table import Table

from simcheck.config.loader import load_config
from simcheck.core.errors import SimCheckError
from simcheck.core.progress import get_console, pluralize, spinner, status
from simcheck.index.ops import IndexCoordinator
from simcheck.index.snapshot import RepositoryIndex


def _make_kind_table(counts: Counter[str]) -> Table:
    table = Table(show_header=False, box=None, padding=(0, 1), pad_edge=False)
    table.add_column("kind", style="cyan", width=12)
    table.add_column("count", style="white", justify="right", width=6)
    for kind, count in sorted(counts.items(), key=lambda x: (-x[1], x[0])):
        table.add_row(kind, str(count))
    return table


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--commit", default="HEAD", show_default=True, help="Commit label for the snapshot")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def index_command(path: Path, commit: str, as_json: bool) -> None:
    """Index the supported source files under PATH.

    Prints how many definitions were extracted and which files could
    not be parsed. Nothing is written to disk.
    """
    from simcheck.cli.utils import collect_sources, find_repo_root

    repo_root = find_repo_root(path)
    try:
        config = load_config(repo_root)
    except SimCheckError as e:
        raise click.ClickException(str(e)) from e

    contents = collect_sources(path.resolve(), config.similarity_search)
    index = RepositoryIndex()
    coordinator = IndexCoordinator(index, config)
    if as_json:
        stats = coordinator.index_commit(commit, contents)
    else:
        with spinner(f"Indexing {pluralize(len(contents), 'file')}"):
            stats = coordinator.index_commit(commit, contents)

    snapshot = index.snapshot(commit)
    kinds: Counter[str] = Counter()
    for entry in snapshot.files.values():
        kinds.update(d.kind.value for d in entry.definitions)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "commit": stats.commit_sha,
                    "files_indexed": stats.files_indexed,
                    "definitions": stats.definitions,
                    "by_kind": dict(sorted(kinds.items())),
                    "parse_errors": [
                        {"path": e.path, "reason": e.reason} for e in stats.parse_errors
                    ],
                    "skipped": [{"path": s.path, "reason": s.reason} for s in stats.skipped],
                    "duration_seconds": round(stats.duration_seconds, 3),
                }
            )
        )
        return

    console = get_console()
    status(
        f"Indexed {pluralize(stats.files_indexed, 'file')}, "
        f"{pluralize(stats.definitions, 'definition')} "
        f"in {stats.duration_seconds:.2f}s",
        style="success",
    )
    if kinds:
        console.print(_make_kind_table(kinds))
    for error in stats.parse_errors:
        status(f"{error.path}: {error.reason}", style="warning")
    if stats.skipped:
        status(f"Skipped {pluralize(len(stats.skipped), 'file')}", style="info")
