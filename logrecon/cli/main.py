"""logrecon command-line interface.

Commands:
    logrecon version                 Print version and exit.
    logrecon config [--json]         Show the effective configuration.
    logrecon default-index           Print the default logstore index document.
    logrecon validate FILE           Parse a desired-state spec and print it normalised.

Configuration is read from ``LOGRECON_*`` environment variables.
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path

import click
from pydantic import ValidationError

from logrecon import __version__
from logrecon.config import load_config
from logrecon.models.spec import DesiredConfigSpec
from logrecon.observability.logging import setup_logging
from logrecon.reconcile.config_reconciler import build_collection_config
from logrecon.reconcile.index import default_index
from logrecon.reconcile.provisioner import (
    AUDIT_PRODUCT_CODE,
    clamp_shard_count,
    effective_ttl_days,
    is_audit_logstore,
)

# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="warning",
    show_default=True,
    help="Log level for messages written to stderr.",
)
def cli(log_level: str) -> None:
    """logrecon - log collection config reconciler."""
    setup_logging(log_level.lower(), json_output=False)


# ---------------------------------------------------------------------------
# logrecon version
# ---------------------------------------------------------------------------


@cli.command("version")
def cmd_version() -> None:
    """Print the logrecon version and exit."""
    click.echo(f"logrecon {__version__}")


# ---------------------------------------------------------------------------
# logrecon config
# ---------------------------------------------------------------------------


@cli.command("config")
@click.option("--json", "output_json", is_flag=True, default=False, help="Print raw JSON.")
def cmd_config(output_json: bool) -> None:
    """Show the effective configuration built from the environment."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    data = dataclasses.asdict(config)
    if output_json:
        click.echo(json.dumps(data, indent=2, sort_keys=True))
        return

    click.echo(click.style("Effective configuration", bold=True))
    for key, value in sorted(data.items()):
        if isinstance(value, dict):
            for sub_key, sub_value in sorted(value.items()):
                click.echo(f"  {key}.{sub_key}: {sub_value!r}")
        else:
            click.echo(f"  {key}: {value!r}")


# ---------------------------------------------------------------------------
# logrecon default-index
# ---------------------------------------------------------------------------


@cli.command("default-index")
def cmd_default_index() -> None:
    """Print the index document attached to newly created logstores."""
    click.echo(json.dumps(default_index(), indent=2))


# ---------------------------------------------------------------------------
# logrecon validate
# ---------------------------------------------------------------------------


@cli.command("validate")
@click.argument("spec_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", default=None, help="Project to bind the output to (defaults to the configured one).")
def cmd_validate(spec_file: Path, project: str | None) -> None:
    """Validate a JSON desired-state spec and print what would be applied."""
    try:
        raw = json.loads(spec_file.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise click.ClickException(f"{spec_file}: invalid JSON: {exc}") from exc

    try:
        spec = DesiredConfigSpec.model_validate(raw)
    except ValidationError as exc:
        raise click.ClickException(f"{spec_file}: invalid spec:\n{exc}") from exc

    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    target_project = project or spec.resolve_project(config.default_project)
    collection = build_collection_config(spec, target_project)
    summary = {
        "project": target_project,
        "logstore": spec.logstore,
        "shard_count": clamp_shard_count(spec.shard_count),
        "ttl_days": effective_ttl_days(spec.life_cycle_days),
        "managed_product": spec.product_code or (AUDIT_PRODUCT_CODE if is_audit_logstore(spec.logstore) else ""),
        "machine_group": spec.target_machine_group(config.default_machine_group),
        "simple_config_mode": spec.simple_config_mode,
        "config": dataclasses.asdict(collection),
    }
    click.echo(json.dumps(summary, indent=2, sort_keys=True))
