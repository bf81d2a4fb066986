"""
Codesearch CLI

Command-line interface for running and inspecting code searches.

Usage::

    codesearch search "ext:go parseConfig" --user alice   # run the backend
    codesearch render results.txt --user alice -f html     # parse canned output
    codesearch serve --port 3000                           # start the web app
"""

import logging

import click

from codesearch.core.config import CodeSearchConfig
from codesearch.core.protocol import parse_results
from codesearch.core.render import ResultRenderer
from codesearch.exceptions import CodeSearchError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: CodeSearchConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


def _emit(results, fmt: str, username: str, config: CodeSearchConfig,
          elapsed: float | None = None) -> None:
    renderer = ResultRenderer(branch=config.default_branch)
    if fmt == "json":
        click.echo(renderer.format_json(results))
    elif fmt == "html":
        click.echo(renderer.render(results, username))
    else:
        click.echo(renderer.format_console(results, elapsed_time=elapsed))


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="codesearch")
@click.option("--work-dir", type=click.Path(file_okay=False), default=None,
              envvar="CODESEARCH_WORK_DIR",
              help="Application work directory holding scripts/searchcode.")
@click.option("--repo-root", type=click.Path(file_okay=False), default=None,
              envvar="CODESEARCH_REPO_ROOT",
              help="Directory containing one namespace directory per user.")
@click.pass_context
def cli(ctx: click.Context, work_dir: str | None, repo_root: str | None):
    """Codesearch — search a user's repositories through the search backend."""
    config = CodeSearchConfig.from_env()
    if work_dir:
        config.work_dir = work_dir
    if repo_root:
        config.repo_root_path = repo_root
    ctx.obj = config


# ---------------------------------------------------------------------------
# codesearch search
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("query")
@click.option("-u", "--user", "username", required=True,
              help="Acting user; their namespace is searched.")
@click.option("--ext", default="", help="Extension filter when QUERY has no ext: directive.")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "html"]),
              default="console", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_obj
def search(config: CodeSearchConfig, query: str, username: str, ext: str,
           fmt: str, verbose: bool):
    """Search USER's repositories for QUERY (supports ext:<extension>)."""
    _configure_logging(config, verbose)

    from codesearch.client import CodeSearch

    client = CodeSearch(config=config)
    try:
        outcome = client.search(query, username=username, ext=ext)
    except CodeSearchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if not outcome.query.keyword:
        click.echo("Error: nothing to search for once directives are removed.", err=True)
        raise SystemExit(1)
    _emit(outcome.results, fmt, username, config, elapsed=outcome.elapsed_seconds)


# ---------------------------------------------------------------------------
# codesearch render
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("source", type=click.File("rb"), default="-")
@click.option("-u", "--user", "username", required=True,
              help="Acting user for link paths.")
@click.option("-f", "--format", "fmt",
              type=click.Choice(["console", "json", "html"]),
              default="html", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_obj
def render(config: CodeSearchConfig, source, username: str, fmt: str, verbose: bool):
    """Parse raw backend output from SOURCE (default: stdin) and render it.

    Useful for checking a backend's output without running a search.
    """
    _configure_logging(config, verbose)
    results = parse_results(source.read())
    _emit(results, fmt, username, config)


# ---------------------------------------------------------------------------
# codesearch serve
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind address (default: $CODESEARCH_HOST or 127.0.0.1).")
@click.option("--port", type=int, default=None, help="Port (default: $CODESEARCH_PORT or 3000).")
@click.option("-v", "--verbose", is_flag=True)
@click.pass_obj
def serve(config: CodeSearchConfig, host: str | None, port: int | None, verbose: bool):
    """Serve the explore-code page over HTTP."""
    _configure_logging(config, verbose)
    try:
        config.validate()
    except CodeSearchError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    import uvicorn

    from codesearch.web.app import create_app

    app = create_app(config=config)
    uvicorn.run(
        app,
        host=host or config.host,
        port=port or config.port,
        log_level="debug" if verbose else config.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main() -> None:
    cli(prog_name="codesearch")


if __name__ == "__main__":
    main()
