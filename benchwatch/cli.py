"""Command line entry point: ``benchwatch OWNER/NAME``."""

from __future__ import annotations

import logging
from pathlib import Path

import click
import uvicorn

from benchwatch.api.main import create_app
from benchwatch.config import load_settings
from benchwatch.errors import PipelineError
from benchwatch.log import configure_logging
from benchwatch.models.scm import RepositoryRef
from benchwatch.pipeline.engine import Engine
from benchwatch.pipeline.orchestrator import BenchmarkPipeline
from benchwatch.providers.container.docker import DockerEngine
from benchwatch.providers.notify.slack import SlackPoster
from benchwatch.providers.scm.github import GitHubProvider

logger = logging.getLogger(__name__)

PATH = click.Path(path_type=Path, dir_okay=False)


def _parse_repo(ctx: click.Context, param: click.Parameter, value: str) -> RepositoryRef:
    try:
        return RepositoryRef.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


@click.command(help="Monitor a GitHub repository and benchmark its default branch.")
@click.argument("repo", metavar="OWNER/NAME", callback=_parse_repo)
@click.option("-o", "--output", "output_file", type=PATH, help="Output file where benchmark result should be stored.")
@click.option(
    "-s",
    "--slack",
    "slack_path",
    type=PATH,
    help="File containing the Slack endpoint URI to use for result notifications.",
)
@click.option("--docker-cpu", type=int, help="CPU/core that should run the benchmarks.")
@click.option(
    "--docker-numa-node",
    type=int,
    help="NUMA node to use for memory and tmpfs storage (should match CPU core if enabled, see `lscpu`).",
)
@click.option("--docker-shm-size", type=int, help="Size of tmpfs volume to be mounted in /dev/shm (in GB).  [default: 4]")
@click.option("--config", "config_path", type=PATH, help="YAML settings file.")
@click.option("--github-token", envvar=["GITHUB_PAT", "GITHUB_TOKEN"], help="GitHub API token.")
@click.option("--webhook-secret", envvar="BENCHWATCH_WEBHOOK_SECRET", help="Secret used to sign GitHub webhooks.")
@click.option("--poll-interval", "poll_interval_s", type=float, help="Seconds between head commit checks.")
@click.option("--host", help="Address for the web server to bind.")
@click.option("--port", type=int, help="Port for the web server.")
@click.option("--once", is_flag=True, help="Evaluate the pipeline once and exit, without the web server.")
@click.option("-v", "--verbose", "verbosity", count=True, help="Increase log verbosity.")
def main(
    repo: RepositoryRef,
    config_path: Path | None,
    once: bool,
    verbosity: int,
    **overrides: object,
) -> None:
    configure_logging(verbosity)
    try:
        settings = load_settings(
            repo,
            config_path,
            output_file=overrides["output_file"],
            slack_path=overrides["slack_path"],
            docker_cpu=overrides["docker_cpu"],
            docker_numa_node=overrides["docker_numa_node"],
            docker_shm_size=overrides["docker_shm_size"],
            github_token=overrides["github_token"],
            webhook_secret=overrides["webhook_secret"],
            poll_interval_s=overrides["poll_interval_s"],
            host=overrides["host"],
            port=overrides["port"],
        )
    except PipelineError as exc:
        raise click.ClickException(str(exc)) from exc

    pipeline = BenchmarkPipeline(
        settings,
        scm=GitHubProvider(token=settings.github_token),
        engine=DockerEngine(),
        poster=SlackPoster(),
    )
    engine = Engine(pipeline, poll_interval_s=settings.poll_interval_s)

    if once:
        try:
            outcome = pipeline.evaluate()
        except PipelineError as exc:
            raise click.ClickException(str(exc)) from exc
        click.echo(f"{outcome.commit.sha} {outcome.result_path or ''}".rstrip())
        return

    engine.start()
    try:
        uvicorn.run(
            create_app(engine, webhook_secret=settings.webhook_secret),
            host=settings.host,
            port=settings.port,
            log_level=logging.getLevelName(logging.getLogger().level).lower(),
        )
    finally:
        engine.stop(timeout_s=5)


if __name__ == "__main__":
    main()
