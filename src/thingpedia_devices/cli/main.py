"""
Typer application for inspecting, querying and testing device adapters.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from ..core import DeviceRegistry, DeviceStatus, ExecutionContext, RegistryLoadError
from ..devices.base import DeviceError
from ..devices.sportradar import SportradarNBAClient, sync_team_reference
from ..services.harness import DeviceTestHarness
from .devices import build_device, load_suite, read_state_file, render_json

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Thingpedia device adapters.\n\n"
        "Command groups:\n"
        "- devices: list the catalogue, run queries/actions and replay test suites.\n"
        "- nba: maintenance commands for the Sportradar NBA channel."
    ),
)
devices_app = typer.Typer(help="Inspect device manifests, invoke device functions and run test suites.")
app.add_typer(devices_app, name="devices")
nba_app = typer.Typer(help="Sportradar NBA maintenance commands.")
app.add_typer(nba_app, name="nba")


def _load_registry(catalog_file: Optional[Path]) -> DeviceRegistry:
    if catalog_file:
        return DeviceRegistry.from_yaml(catalog_file)
    return DeviceRegistry.load_default()


def _parse_status(status: Optional[str]) -> Optional[DeviceStatus]:
    if status is None:
        return None
    try:
        return DeviceStatus(status.lower())
    except ValueError:
        raise typer.BadParameter(f"Unknown status '{status}'. Expected one of: {', '.join(item.value for item in DeviceStatus)}.") from None


def _parse_input(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"--input must be a JSON object: {exc}") from exc
    if not isinstance(payload, dict):
        raise typer.BadParameter("--input must be a JSON object.")
    return payload


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    catalog_file: Optional[Path] = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Override the device catalogue YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    credentials_dir: Optional[Path] = typer.Option(
        None,
        "--credentials-dir",
        help="Directory holding <kind>.cred.json files.",
        file_okay=False,
    ),
    locale: Optional[str] = typer.Option(None, "--locale", help="Caller locale, e.g. en-US."),
    timezone: Optional[str] = typer.Option(None, "--timezone", help="Caller timezone, e.g. America/New_York."),
) -> None:
    """
    Configure the registry and execution context shared by sub-commands.
    """

    try:
        registry = _load_registry(catalog_file)
    except RegistryLoadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    context = ExecutionContext.build_default(locale=locale, timezone=timezone, credentials_dir=credentials_dir)
    state = ctx.ensure_object(dict)
    state["registry"] = registry
    state["context"] = context


def _require_registry(ctx: typer.Context) -> DeviceRegistry:
    registry = ctx.ensure_object(dict).get("registry")
    if not isinstance(registry, DeviceRegistry):
        raise typer.Exit(code=2)
    return registry


def _require_context(ctx: typer.Context) -> ExecutionContext:
    context = ctx.ensure_object(dict).get("context")
    if not isinstance(context, ExecutionContext):
        raise typer.Exit(code=2)
    return context


@devices_app.command("list")
def devices_list(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", "-s", help="Filter by lifecycle status."),
) -> None:
    """List catalogued devices."""

    registry = _require_registry(ctx)
    entries = registry.list(status=_parse_status(status))
    if not entries:
        typer.echo("No devices match the requested filters.")
        raise typer.Exit(code=0)

    header = f"{'Kind':<20} {'Config':<10} {'Status':<10} Name"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        typer.echo(f"{entry.kind:<20} {entry.config_module.value:<10} {entry.status.value:<10} {entry.name}")


@devices_app.command("describe")
def devices_describe(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Device kind, e.g. us.sportradar."),
    output_json: bool = typer.Option(False, "--json", help="Emit the manifest as JSON."),
) -> None:
    """Show the manifest of one device."""

    registry = _require_registry(ctx)
    manifest = registry.get(kind)
    if manifest is None:
        typer.echo(f"Device '{kind}' is not registered.", err=True)
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(manifest.to_json())
        return

    typer.echo(f"Kind: {manifest.kind}")
    typer.echo(f"Name: {manifest.name}")
    typer.echo(f"Description: {manifest.description}")
    typer.echo(f"Config: {manifest.config_module.value}")
    typer.echo(f"Status: {manifest.status.value}")
    typer.echo(f"Module: {manifest.module}")
    for label, names in (("Queries", manifest.queries), ("Actions", manifest.actions), ("Monitors", manifest.monitors)):
        if names:
            typer.echo(f"{label}: {', '.join(names)}")
    if manifest.references:
        typer.echo(f"References: {', '.join(manifest.references)}")


def _invoke(ctx: typer.Context, kind: str, function: str, raw_input: Optional[str], state_file: Optional[Path], *, is_action: bool) -> None:
    registry = _require_registry(ctx)
    context = _require_context(ctx)
    if registry.get(kind) is None:
        typer.echo(f"Device '{kind}' is not registered.", err=True)
        raise typer.Exit(code=1)

    params = _parse_input(raw_input)
    try:
        state = read_state_file(state_file) if state_file else None
        device = build_device(kind, registry, context, state)
        result = device.invoke_action(function, params) if is_action else device.invoke_query(function, params)
    except (DeviceError, RegistryLoadError) as exc:
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if is_action and result is None:
        typer.echo("OK")
        return
    typer.echo(render_json(result))


@devices_app.command("query")
def devices_query(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Device kind."),
    function: str = typer.Argument(..., help="Query name, e.g. get_team."),
    raw_input: Optional[str] = typer.Option(None, "--input", "-i", help="Query parameters as a JSON object."),
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="JSON file with the device state.", exists=True, dir_okay=False),
) -> None:
    """Run a query and print its output records as JSON."""

    _invoke(ctx, kind, function, raw_input, state_file, is_action=False)


@devices_app.command("action")
def devices_action(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Device kind."),
    function: str = typer.Argument(..., help="Action name, e.g. start."),
    raw_input: Optional[str] = typer.Option(None, "--input", "-i", help="Action parameters as a JSON object."),
    state_file: Optional[Path] = typer.Option(None, "--state-file", help="JSON file with the device state.", exists=True, dir_okay=False),
) -> None:
    """Run an action."""

    _invoke(ctx, kind, function, raw_input, state_file, is_action=True)


@devices_app.command("test")
def devices_test(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Device kind to test."),
    suite: str = typer.Option(..., "--suite", help="Test suite as package.module:ATTRIBUTE."),
) -> None:
    """Replay a declarative test suite against a device."""

    registry = _require_registry(ctx)
    context = _require_context(ctx)
    harness = DeviceTestHarness(registry=registry, credentials_dir=context.credentials_dir, platform=context.platform)

    try:
        report = harness.run(kind, load_suite(suite))
    except (DeviceError, RegistryLoadError, KeyError, ImportError) as exc:
        typer.echo(f"Failed to run tests for {kind}: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if report.skipped_reason:
        typer.echo(f"FAILED: skipped tests for {kind}: {report.skipped_reason}")
        raise typer.Exit(code=1)
    for outcome in report.outcomes:
        marker = "ok" if outcome.success else "FAILED"
        suffix = f": {outcome.message}" if outcome.message else ""
        typer.echo(f"{outcome.index:>3} {marker:<6} {outcome.description}{suffix}")
    failures = len(report.failures)
    typer.echo(f"Completed tests for {kind}: {len(report.outcomes)} case(s), {failures} failed.")
    if report.failed:
        raise typer.Exit(code=1)


@nba_app.command("sync-teams")
def nba_sync_teams(
    ctx: typer.Context,
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the team reference JSON.", dir_okay=False),
) -> None:
    """Rebuild the NBA team reference from Sportradar's league hierarchy."""

    context = _require_context(ctx)
    settings = context.secrets.sportradar
    if not settings.api_key:
        typer.echo("Sportradar API key missing. Set [sportradar].api_key or SPORTRADAR_API_KEY.", err=True)
        raise typer.Exit(code=1)

    client = SportradarNBAClient(
        settings.api_key,
        access_level=settings.access_level,
        language=settings.language,
        timeout=context.secrets.http.timeout,
        max_attempts=context.secrets.http.max_attempts,
    )
    try:
        count = sync_team_reference(client, output)
    except DeviceError as exc:
        typer.echo(f"{type(exc).__name__}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Wrote {count} teams to {output}")
