"""plreview CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from plreview import __version__
from plreview.config import ConfigError, ReviewConfig, load_config

logger = logging.getLogger(__name__)


def _configure_logging(*, verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_config_or_exit(path: Path | None) -> ReviewConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="plreview")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """plreview - PL/SQL review comments for pull requests."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    _configure_logging(verbose=verbose, quiet=quiet)


_CONFIG_OPTION = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to plreview.yml (default: ./plreview.yml).",
)


@main.command()
@click.argument("commit_sha", required=False, default="")
@click.argument("file_path", required=False, default=None)
@click.argument("owner", required=False, default="")
@click.argument("repo", required=False, default="")
@click.argument("pull_number", required=False, default=0, type=int)
@_CONFIG_OPTION
@click.option(
    "--issues-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Where to write the issue file (default from config: comments.json).",
)
@click.option("--no-publish", is_flag=True, help="Write the issue file but do not post comments.")
def review(
    *,
    commit_sha: str,
    file_path: str | None,
    owner: str,
    repo: str,
    pull_number: int,
    config_path: Path | None,
    issues_file: Path | None,
    no_publish: bool,
) -> None:
    """Review FILE_PATH at COMMIT_SHA and comment on pull request PULL_NUMBER.

    Issues are written to the issue file, read back, and posted one by one
    when a token is available.
    """
    from plreview.analyzer import AnalysisError, analyze_file
    from plreview.issues import write_issue_file
    from plreview.publisher import (
        PublishError,
        PublishTarget,
        publish_issue_file,
        resolve_token,
    )

    config = _load_config_or_exit(config_path)
    source = file_path or config.fallback_path

    try:
        result = analyze_file(Path(source), commit_id=commit_sha, config=config, display_path=source)
    except AnalysisError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    output_path = issues_file or Path(config.issues_file)
    written = write_issue_file(result.issues, output_path)
    click.echo(f"Comments have been written to {output_path} ({written} issue(s))")

    if no_publish:
        return

    target = PublishTarget(owner=owner, repo=repo, pull_number=pull_number)
    try:
        report = publish_issue_file(
            output_path,
            target,
            resolve_token(config.token_env),
            api_url=config.api_url,
            timeout=config.timeout,
        )
    except PublishError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if report.skipped:
        click.echo(f"Publishing skipped: {report.reason}")
    else:
        click.echo(f"Published {report.succeeded}/{report.attempted} comment(s)")


@main.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(path_type=Path))
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option("--strict", is_flag=True, default=False, help="Exit 1 if issues found.")
@_CONFIG_OPTION
def check(
    *,
    files: tuple[Path, ...],
    fmt: str | None,
    strict: bool,
    config_path: Path | None,
) -> None:
    """Analyse FILES locally and print the issues."""
    from plreview.analyzer import AnalysisError, analyze_file
    from plreview.analyzer import format_json as _format_json
    from plreview.analyzer import format_porcelain as _format_porcelain
    from plreview.analyzer import format_rich as _format_rich

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    config = _load_config_or_exit(config_path)
    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }

    found = 0
    for path in files:
        try:
            result = analyze_file(path, config=config)
        except AnalysisError as exc:
            click.echo(f"Error: {exc}", err=True)
            sys.exit(1)
        found += len(result.issues)
        output = formatters[fmt](result)
        if output:
            click.echo(output)

    if strict and found:
        sys.exit(1)


@main.command()
@click.argument("issues_file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("owner")
@click.argument("repo")
@click.argument("pull_number", type=int)
@_CONFIG_OPTION
def publish(
    *,
    issues_file: Path,
    owner: str,
    repo: str,
    pull_number: int,
    config_path: Path | None,
) -> None:
    """Post the comments of an existing ISSUES_FILE to a pull request."""
    from plreview.publisher import (
        PublishError,
        PublishTarget,
        publish_issue_file,
        resolve_token,
    )

    config = _load_config_or_exit(config_path)
    if not issues_file.is_file():
        click.echo(f"Error: issue file not found: {issues_file}", err=True)
        sys.exit(1)

    target = PublishTarget(owner=owner, repo=repo, pull_number=pull_number)
    try:
        report = publish_issue_file(
            issues_file,
            target,
            resolve_token(config.token_env),
            api_url=config.api_url,
            timeout=config.timeout,
        )
    except PublishError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if report.skipped:
        click.echo(f"Publishing skipped: {report.reason}")
    else:
        click.echo(f"Published {report.succeeded}/{report.attempted} comment(s)")
