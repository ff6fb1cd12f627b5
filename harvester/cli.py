"""Command-line entry point.

Usage:
    branch-harvest TOKEN OWNER REPO WORKFLOW_NAME ARTIFACT_NAME [OPTIONS]
"""

import asyncio
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from harvester import __version__
from harvester.config import HarvestConfig
from harvester.errors import ConfigurationError, HarvesterError
from harvester.github.client import GitHubClient
from harvester.harvest.coordinator import HarvestCoordinator
from harvester.models import HarvestReport, HarvestStatus

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="branch-harvest",
    help="Download the latest workflow artifact for every branch of a GitHub repository.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

STATUS_STYLES = {
    HarvestStatus.SUCCEEDED: "green",
    HarvestStatus.FAILED: "red",
    HarvestStatus.SKIPPED: "yellow",
}


def configure_logging(verbose: bool = False) -> None:
    """Send status lines to stderr through rich; DEBUG with --verbose."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    logging.getLogger("harvester").setLevel(level)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"branch-harvest {__version__}")
        raise typer.Exit()


def build_config(
    config_path: Optional[str],
    output_dir: Optional[str],
    api_url: Optional[str],
    per_page: Optional[int],
    timeout: Optional[float],
    defer_extraction: bool,
) -> HarvestConfig:
    """Layer command-line overrides on top of file and environment configuration.

    Raises:
        ConfigurationError: If the resulting configuration is invalid
    """
    config = HarvestConfig.load(config_path)
    if output_dir is not None:
        config.output_dir = output_dir
    if api_url is not None:
        config.api_url = api_url
    if per_page is not None:
        config.per_page = per_page
    if timeout is not None:
        config.timeout = timeout
    if defer_extraction:
        config.await_extraction = False

    problems = config.validate()
    if problems:
        raise ConfigurationError("Invalid configuration", problems)
    return config


async def harvest_repository(
    token: str,
    owner: str,
    repo: str,
    workflow_name: str,
    artifact_name: str,
    config: HarvestConfig,
) -> HarvestReport:
    """Build the GitHub client from *token* and run one harvest."""
    async with GitHubClient(
        token,
        api_url=config.api_url,
        per_page=config.per_page,
        timeout=config.timeout,
    ) as client:
        coordinator = HarvestCoordinator(
            client,
            output_dir=config.output_path,
            manifest_name=config.manifest_name,
            await_extraction=config.await_extraction,
        )
        return await coordinator.run(owner, repo, workflow_name, artifact_name)


def _print_summary(report: HarvestReport) -> None:
    table = Table(title=f"{report.owner}/{report.repo} :: {report.workflow_name} / {report.artifact_name}")
    table.add_column("Branch", style="cyan")
    table.add_column("Run")
    table.add_column("Status")
    table.add_column("Detail")

    for result in report.results:
        style = STATUS_STYLES.get(result.status, "white")
        detail = result.error or (str(result.extract_dir) if result.extract_dir else "")
        table.add_row(
            result.branch,
            str(result.run.id) if result.run else "-",
            f"[{style}]{result.status.value}[/{style}]",
            detail,
        )

    console.print(table)
    console.print(
        f"{report.success_count} harvested, {report.failure_count} failed, "
        f"{report.skipped_count} skipped"
    )
    if report.manifest_path:
        console.print(f"Manifest: {report.manifest_path}")


@app.command()
def harvest(
    token: str = typer.Argument(..., help="GitHub access token"),
    owner: str = typer.Argument(..., help="Repository owner"),
    repo: str = typer.Argument(..., help="Repository name"),
    workflow_name: str = typer.Argument(..., help="Workflow name to match exactly"),
    artifact_name: str = typer.Argument(..., help="Artifact name to download"),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Output directory (default: artifacts)"
    ),
    config_path: Optional[str] = typer.Option(None, "--config", "-c", help="YAML config file"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="GitHub API base URL"),
    per_page: Optional[int] = typer.Option(None, "--per-page", help="Runs/artifacts per request (1-100)"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="HTTP timeout in seconds"),
    defer_extraction: bool = typer.Option(
        False,
        "--defer-extraction",
        help="Report a branch once its archive is written; extract in the background",
    ),
    fail_on_branch_error: bool = typer.Option(
        False, "--fail-on-branch-error", help="Exit 1 if any branch harvest failed"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Harvest ARTIFACT_NAME from the latest WORKFLOW_NAME run on every branch."""
    configure_logging(verbose)

    try:
        for label, value in (
            ("TOKEN", token),
            ("OWNER", owner),
            ("REPO", repo),
            ("WORKFLOW_NAME", workflow_name),
            ("ARTIFACT_NAME", artifact_name),
        ):
            if not value.strip():
                raise ConfigurationError(f"{label} must not be empty")
        config = build_config(config_path, output_dir, api_url, per_page, timeout, defer_extraction)
    except ConfigurationError as e:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    logger.debug(f"Effective configuration: {config.to_dict()}")

    try:
        report = asyncio.run(
            harvest_repository(token, owner, repo, workflow_name, artifact_name, config)
        )
    except (HarvesterError, OSError) as e:
        logger.error(f"Error fetching artifacts: {e}")
        raise typer.Exit(1)

    if json_output:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        _print_summary(report)

    if fail_on_branch_error and report.failure_count:
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
