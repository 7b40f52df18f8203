"""Click CLI group: run, migrate and serve commands."""

from __future__ import annotations

import asyncio
import sys

import click

from codeagent.config import get_settings, validate_settings_for_env
from codeagent.db.migrations.runner import run_migrations
from codeagent.logging import configure_logging


@click.group()
def cli() -> None:
    """codeagent CLI."""


@cli.command()
def migrate() -> None:
    """Apply pending database migrations."""
    applied = run_migrations()
    if applied:
        click.echo("applied: " + ", ".join(applied))
    else:
        click.echo("database is up to date")


@cli.command()
@click.argument("value")
@click.option(
    "--run-id",
    default=None,
    help="Reuse a run id to resume an interrupted run; completed steps are replayed.",
)
@click.option("--max-iter", type=int, default=None, help="Override AGENT_MAX_ITERATIONS.")
def run(value: str, run_id: str | None, max_iter: int | None) -> None:
    """Run the coding agent on VALUE in the foreground and print the result."""
    from codeagent.db.connection import get_conn
    from codeagent.events.models import CodeAgentEvent, CodeAgentEventData
    from codeagent.ids import new_run_id
    from codeagent.orchestrator.workflow import run_code_agent
    from codeagent.providers.factory import build_provider
    from codeagent.sandbox.factory import build_sandbox_backend
    from codeagent.tasks.code_agent import get_step_executor

    settings = get_settings()
    try:
        validate_settings_for_env(settings)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(settings.log_level, app_env=settings.app_env)
    run_migrations()

    event = CodeAgentEvent(id=run_id or new_run_id(), data=CodeAgentEventData(value=value))
    click.echo(f"run id: {event.id}", err=True)
    result = asyncio.run(
        run_code_agent(
            event,
            executor=get_step_executor(),
            provider=build_provider(settings),
            backend=build_sandbox_backend(settings),
            settings=settings,
            max_iter=max_iter,
            trace_events=get_conn,
        )
    )
    click.echo(result.model_dump_json(indent=2))
    if result.is_error:
        sys.exit(1)


@cli.command()
@click.option("--host", default=None, help="Bind host (default: BIND_HOST).")
@click.option("--port", type=int, default=None, help="Bind port (default: BIND_PORT).")
def serve(host: str | None, port: int | None) -> None:
    """Serve the HTTP trigger API."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "codeagent.main:app",
        host=host or settings.bind_host,
        port=port or settings.bind_port,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
