"""
Main entry point for HostPilot.

This module provides the command-line interface over the orchestrator:
plugin discovery and auto-loading, batch module runs, and configuration
checks.
"""

import asyncio
import json
import sys
from dataclasses import asdict
from typing import Any, List, Optional

import typer

from .application.orchestrator import Orchestrator
from .core.exceptions import ConfigurationError
from .core.interfaces.contracts import default_contracts
from .infrastructure.config.loader import ConfigLoader
from .infrastructure.config.models import ApplicationConfig
from .infrastructure.logging.setup import LoggingManager

# Create CLI application
cli = typer.Typer(
    name="hostpilot",
    help="Host-local automation runner: plugin lifecycle management and parallel module execution"
)


def _load(config_file: Optional[str], log_level: Optional[str], debug: bool) -> ApplicationConfig:
    try:
        config = ConfigLoader().load_config(config_file)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e.message}", err=True)
        raise typer.Exit(code=1)

    if log_level:
        config.logging.level = log_level.upper()
    if debug:
        config.debug = True
        config.logging.level = "DEBUG"
    return config


def _build(config: ApplicationConfig) -> Orchestrator:
    logging_manager = LoggingManager(asdict(config.logging))
    logging_manager.start()
    return Orchestrator(config, logging_manager=logging_manager)


def _emit(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, default=str))


@cli.command()
def discover(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    paths: Optional[List[str]] = typer.Option(
        None, "--path", "-p", help="Plugin directory (repeatable, defaults to config)"
    ),
    include_disabled: bool = typer.Option(
        False, "--include-disabled", help="Include plugins marked disabled"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print registry entries as JSON"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
) -> None:
    """Discover plugins and show their validation and security status."""
    orchestrator = _build(_load(config_file, log_level, False))
    orchestrator.discover(paths or None, include_disabled=include_disabled)

    entries = orchestrator.registry.entries()
    if as_json:
        _emit([entry.to_dict() for entry in entries])
        return

    if not entries:
        typer.echo("No plugins found")
        return
    for entry in entries:
        state = "valid" if entry.validation.is_valid else "invalid"
        quarantine = " QUARANTINED" if entry.security.should_quarantine else ""
        typer.echo(
            f"{entry.name} {entry.descriptor.version} [{entry.descriptor.interface_name}] "
            f"{state}, risk {entry.security.risk_level.value}{quarantine}")


@cli.command()
def autoload(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    sandbox: bool = typer.Option(
        False, "--sandbox", help="Load plugins with the restricted importer"
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level"
    ),
) -> None:
    """Discover plugins, load every eligible one, then unload them."""
    config = _load(config_file, log_level, False)
    if sandbox:
        config.plugins.sandbox_enabled = True
    orchestrator = _build(config)

    async def run() -> int:
        orchestrator.discover()
        try:
            return await orchestrator.auto_load()
        finally:
            await orchestrator.stop_application()

    loaded = asyncio.run(run())
    typer.echo(f"Loaded {loaded} plugins")


@cli.command()
def run(
    modules: List[str] = typer.Argument(..., help="Module names to run"),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-n", help="Maximum concurrent modules (1-10)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Ask modules not to change anything"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Global timeout in seconds"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the aggregated summary as JSON"
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug mode"
    ),
) -> None:
    """Run modules concurrently and print the aggregated summary."""
    orchestrator = _build(_load(config_file, None, debug))

    summary = orchestrator.run_batch(
        modules, max_concurrency=concurrency, dry_run=dry_run, timeout=timeout)
    aggregated = orchestrator.merge(summary)

    if as_json:
        _emit(aggregated.model_dump())
    else:
        typer.echo(
            f"Session {aggregated.session_id}: {aggregated.successful_modules}/"
            f"{aggregated.total_modules} succeeded ({aggregated.success_rate:.1f}%) "
            f"in {aggregated.total_duration_seconds:.2f}s")
        for error in aggregated.errors:
            typer.echo(f"  {error.module}: {error.error}")
        if summary.skipped_modules:
            typer.echo(f"Skipped unknown modules: {', '.join(summary.skipped_modules)}")

    if aggregated.failed_modules:
        sys.exit(1)


@cli.command()
def contracts() -> None:
    """List the interface contracts plugins can declare."""
    for contract in default_contracts.list_contracts():
        typer.echo(f"{contract.name}: requires {', '.join(sorted(contract.required_methods))}")
        if contract.optional_methods:
            typer.echo(f"  optional: {', '.join(sorted(contract.optional_methods))}")


@cli.command()
def validate_config(
    config_file: str = typer.Argument(...,
                                      help="Configuration file to validate")
) -> None:
    """Validate a configuration file."""

    config_loader = ConfigLoader()

    try:
        config = config_loader.load_config(config_file)
        typer.echo(f"Configuration file {config_file} is valid")
        typer.echo(f"Application: {config.name} v{config.version}")
        typer.echo(f"Plugin directories: {', '.join(config.plugins.plugin_directories)}")
    except ConfigurationError as e:
        typer.echo(f"Configuration validation failed: {e.message}", err=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
