"""simcheck review command - review a diff against a source tree."""

import json
from pathlib import Path

import click
from rich.table import Table

from simcheck.config.loader import load_config
from simcheck.core.errors import SimCheckError
from simcheck.core.progress import get_console, pluralize, spinner, status
from simcheck.index.ops import IndexCoordinator
from simcheck.index.snapshot import RepositoryIndex
from simcheck.review.diff import parse_unified_diff
from simcheck.review.models import PullRequestEvent, ReviewResult
from simcheck.review.pipeline import SimilarityReviewer

_BASE = "base"
_HEAD = "head"

_SEVERITY_STYLES = {
    "critical": "bold red",
    "high": "red",
    "medium": "yellow",
    "low": "dim",
}


def _make_records_table(result: ReviewResult) -> Table:
    table = Table(show_lines=True, pad_edge=False)
    table.add_column("Location", style="cyan", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Issue / Fix / Impact")
    table.add_column("Conf.", justify="right")
    for record in result.records:
        start, end = record.line_range
        lines = str(start) if start == end else f"{start}-{end}"
        table.add_row(
            f"{record.file}:{lines}",
            f"[{_SEVERITY_STYLES[record.severity.value]}]{record.kind.value}[/]",
            f"{record.issue}\n[green]{record.fix}[/green]\n[dim]{record.impact}[/dim]",
            f"{record.confidence:.2f}",
        )
    return table


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option(
    "--diff",
    "diff_file",
    required=True,
    type=click.File("r"),
    help="Unified diff of the change ('-' for stdin)",
)
@click.option(
    "--base-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Source tree before the change (default: PATH)",
)
@click.option("--pr-id", default="local", show_default=True, help="Pull request identifier")
@click.option("--min-confidence", type=click.FloatRange(0.0, 1.0), default=None)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def review_command(
    path: Path,
    diff_file: click.utils.LazyFile,
    base_dir: Path | None,
    pr_id: str,
    min_confidence: float | None,
    as_json: bool,
) -> None:
    """Review the calls a diff adds or changes.

    PATH holds the source tree after the change. The base index is built
    from --base-dir, or from PATH itself when no base tree is given; the
    diff selects which lines are reviewed either way.
    """
    from simcheck.cli.utils import collect_sources, find_repo_root, read_changed

    head_root = path.resolve()
    try:
        config = load_config(find_repo_root(path))
    except SimCheckError as e:
        raise click.ClickException(str(e)) from e
    if min_confidence is not None:
        config.similarity_search.min_confidence = min_confidence

    diff_text = diff_file.read()
    try:
        diff = parse_unified_diff(diff_text)
    except SimCheckError as e:
        raise click.ClickException(str(e)) from e

    index = RepositoryIndex()
    coordinator = IndexCoordinator(index, config)
    base_root = base_dir.resolve() if base_dir is not None else head_root
    base_contents = collect_sources(base_root, config.similarity_search)
    event = PullRequestEvent(
        pr_id=pr_id,
        base_commit=_BASE,
        head_commit=_HEAD,
        diff=diff_text,
        file_contents=read_changed(head_root, [f.path for f in diff.files if not f.is_deleted]),
    )
    reviewer = SimilarityReviewer(index, config, coordinator=coordinator)

    try:
        if as_json:
            coordinator.index_commit(_BASE, base_contents)
            result = reviewer.review(event)
        else:
            with spinner(f"Indexing {pluralize(len(base_contents), 'file')}"):
                coordinator.index_commit(_BASE, base_contents)
            with spinner(f"Reviewing {pluralize(len(diff.files), 'changed file')}"):
                result = reviewer.review(event)
    except SimCheckError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    meta = result.metadata
    if not result.records:
        status(
            f"No contract mismatches in {pluralize(meta.call_sites, 'changed call')}",
            style="success",
        )
    else:
        get_console().print(_make_records_table(result))
        status(
            f"{pluralize(len(result.records), 'finding')} in "
            f"{pluralize(meta.call_sites, 'changed call')}",
            style="warning",
        )
    for error in meta.parse_errors:
        status(f"{error.path}: {error.reason}", style="warning")
