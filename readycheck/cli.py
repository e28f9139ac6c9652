"""CLI entry point for readycheck."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

import click
import typer
import yaml
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax

from readycheck.config import ReadycheckConfig, RetryPolicy, VerifierConfig, load_config
from readycheck.config.loader import DEFAULT_CONFIG_TEMPLATE
from readycheck.retry import wait_until_healthy
from readycheck.setup import ServiceInstaller, SetupError
from readycheck.verifier import (
    CheckMode,
    Outcome,
    check_health,
    render_json,
    render_text,
)

app = typer.Typer(
    name="readycheck",
    help="Readiness checks and server setup for the PDF conversion service.",
)

config_app = typer.Typer(help="Manage readycheck configuration.")
app.add_typer(config_app, name="config")

err_console = Console(stderr=True)

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Global state
_config: ReadycheckConfig | None = None


def _get_config() -> ReadycheckConfig:
    if _config is None:
        return load_config()
    return _config


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=_LOG_LEVELS[level],
        format="%(message)s",
        datefmt="[%Y-%m-%d %H:%M:%S]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to readycheck.yaml")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(Outcome.CONFIGURATION_ERROR.exit_code)
    _configure_logging("debug" if verbose else _config.log_level)


def _verifier_config(
    base: VerifierConfig,
    url: str | None,
    user: str | None,
    password: str | None,
    timeout: float | None,
) -> VerifierConfig:
    overrides = {
        "base_url": url,
        "username": user,
        "password": password,
        "timeout": timeout,
    }
    update = {k: v for k, v in overrides.items() if v is not None}
    return VerifierConfig(**{**base.model_dump(), **update})


@app.command()
def check(
    json_output: Annotated[
        bool, typer.Option("--json", help="Print a machine-readable JSON status")
    ] = False,
    full: Annotated[
        bool, typer.Option("--full", help="Also run a conversion roundtrip")
    ] = False,
    url: Annotated[
        str | None, typer.Option("--url", help="Service base URL incl. port")
    ] = None,
    user: Annotated[str | None, typer.Option("--user", help="Basic-auth user")] = None,
    password: Annotated[
        str | None, typer.Option("--password", help="Basic-auth password")
    ] = None,
    timeout: Annotated[
        float | None, typer.Option("--timeout", help="Status probe timeout (s)")
    ] = None,
) -> None:
    """Check whether the conversion service is ready.

    Exit codes: 0 healthy, 1 degraded or roundtrip failed, 2 unreachable,
    3 configuration error.
    """
    if json_output and full:
        err_console.print("[red]Error:[/red] --json and --full cannot be combined")
        raise typer.Exit(Outcome.CONFIGURATION_ERROR.exit_code)

    cfg = _get_config()
    try:
        verifier_cfg = _verifier_config(cfg.verifier, url, user, password, timeout)
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(Outcome.CONFIGURATION_ERROR.exit_code)

    mode = CheckMode.FULL if full else CheckMode.JSON if json_output else CheckMode.BASIC
    result = check_health(verifier_cfg, mode)

    if mode is CheckMode.JSON:
        typer.echo(render_json(result))
        if result.outcome is Outcome.CONFIGURATION_ERROR:
            err_console.print(f"[red]Error:[/red] {result.message}")
    else:
        render_text(result)
    raise typer.Exit(result.exit_code)


@app.command()
def wait(
    attempts: Annotated[
        int | None, typer.Option("--attempts", help="Maximum number of probes")
    ] = None,
    delay: Annotated[
        int | None, typer.Option("--delay", help="Seconds between probes")
    ] = None,
) -> None:
    """Poll the service until it is healthy or attempts run out."""
    cfg = _get_config()
    try:
        policy = RetryPolicy(
            max_attempts=attempts if attempts is not None else cfg.retry.max_attempts,
            delay_seconds=delay if delay is not None else cfg.retry.delay_seconds,
        )
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(Outcome.CONFIGURATION_ERROR.exit_code)

    outcome = wait_until_healthy(
        lambda: check_health(cfg.verifier, CheckMode.BASIC), policy
    )
    if outcome.succeeded:
        rprint(f"[green]✓ Service is healthy[/green] (attempt {outcome.attempts}/{policy.max_attempts})")
        return

    last = outcome.last_result
    rprint(
        f"[red]✗ Service did not become healthy[/red] after {outcome.attempts} attempt(s)"
        + (f": {last.message}" if last else "")
    )
    if last is not None and last.outcome is Outcome.CONFIGURATION_ERROR:
        raise typer.Exit(Outcome.CONFIGURATION_ERROR.exit_code)
    raise typer.Exit(1)


@app.command()
def setup(
    skip_docker_install: Annotated[
        bool,
        typer.Option("--skip-docker-install", help="Fail instead of installing Docker"),
    ] = False,
) -> None:
    """Install and start the service, then register it with systemd."""
    cfg = _get_config()
    installer = ServiceInstaller(cfg)
    try:
        report = installer.run(install_docker=not skip_docker_install)
    except SetupError as e:
        rprint(f"[red]Error:[/red] {e}")
        if e.hint:
            rprint(f"[dim]{e.hint}[/dim]")
        raise typer.Exit(1)

    rprint(Panel(
        f"[dim]Install Directory:[/dim]  {cfg.setup.install_dir}\n"
        f"[dim]Systemd Unit:[/dim]       {report.unit_path}\n"
        f"[dim]Service URL:[/dim]        {cfg.verifier.base_url}\n"
        f"[dim]Health Attempts:[/dim]    {report.health_attempts}\n\n"
        f"[dim]Status:[/dim]   sudo systemctl status {cfg.setup.service_name}\n"
        f"[dim]Logs:[/dim]     docker compose logs -f  (in {cfg.setup.install_dir})\n"
        f"[dim]Check:[/dim]    readycheck check --full",
        title="Setup Complete",
        border_style="green",
    ))


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    data = cfg.model_dump(mode="json")
    if data["verifier"].get("password"):
        data["verifier"]["password"] = "********"
    rprint(Syntax(yaml.dump(data, default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default readycheck.yaml in current directory."""
    target = Path("readycheck.yaml")
    if target.exists() and not force:
        rprint("[yellow]readycheck.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


def run() -> None:
    """Console entry point.

    Usage errors such as unknown flags exit with the configuration-error
    code, keeping exit 2 for an unreachable service.
    """
    try:
        code = app(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(Outcome.CONFIGURATION_ERROR.exit_code)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.exceptions.Abort:
        err_console.print("Aborted!")
        sys.exit(1)
    sys.exit(code if isinstance(code, int) else 0)


if __name__ == "__main__":
    run()
