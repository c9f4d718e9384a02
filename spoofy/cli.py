"""spoofy CLI."""

import functools
import logging
import sys
from collections.abc import Callable
from typing import Any

import click
import orjson
import rich_click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .core.application import Application
from .core.duid import Duid, DuidInfo, DuidType
from .core.engine import render_identifier
from .core.errors import SpoofyError
from .core.paramtypes import ConfigFileType, DuidHexType, DuidTypeType, InterfaceType, MacAddressType
from .models.identity import HistoryEntry, IdentifierKind, MutationResult, RestoreOutcome


# Configure rich-click
rich_click.rich_click.USE_RICH_MARKUP = True
rich_click.rich_click.SHOW_ARGUMENTS = True
rich_click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
rich_click.rich_click.USE_MARKDOWN = False
rich_click.rich_click.STYLE_ERRORS_SUGGESTION = "dim italic"
rich_click.rich_click.MAX_WIDTH = 100


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("spoofy")
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True))
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def _emit_json(data: Any) -> None:
    click.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode())


def _fail(app: Application, error: SpoofyError) -> None:
    if app.json_output:
        _emit_json(error.to_dict())
    else:
        app.console.print(f"[red]✗ {error.message}[/red]", highlight=False)
        if error.suggestions:
            app.console.print("\n[yellow]Suggestions:[/yellow]")
            for i, suggestion in enumerate(error.suggestions, start=1):
                app.console.print(f"  {i}. {suggestion}", highlight=False)
    sys.exit(1)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Render spoofy errors (or JSON) and exit 1."""

    @functools.wraps(func)
    def wrapper(obj: dict, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(obj, *args, **kwargs)
        except SpoofyError as e:
            _fail(obj["app"], e)

    return wrapper


def _privileged(app: Application) -> None:
    app.backend.require_privileges()


def _resolve(app: Application, device: str) -> str:
    """Accept a port name ("Wi-Fi") wherever a device name is expected."""

    return app.mac.find(device).device


def _result_dict(result: MutationResult) -> dict[str, Any]:
    return {
        "success": True,
        "target": str(result.target),
        "value": render_identifier(result.target.kind, result.value),
        "verify_reads": result.verify_reads,
        "write_error": result.write_error,
    }


def _duid_dict(duid: Duid) -> dict[str, Any]:
    return duid.info().model_dump(mode="json", exclude_none=True)


def _print_duid(app: Application, info: DuidInfo | None, title: str = "DUID") -> None:
    if info is None:
        app.console.print(f"[yellow]No {title} set[/yellow]")
        return
    info.display(app.console, title=title)


def _print_history(app: Application, entries: list[HistoryEntry]) -> None:
    if app.json_output:
        _emit_json([e.model_dump(mode="json") for e in entries])
        return
    if not entries:
        app.console.print("[yellow]No history entries.[/yellow]")
        return

    table = Table(title="History", show_header=True)
    for column in ("Time", "Device", "Operation", "Old", "New"):
        table.add_column(column, style="cyan" if column == "Device" else None)
    for entry in entries:
        table.add_row(
            entry.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            entry.device,
            entry.operation,
            entry.old or "-",
            entry.new or "-",
        )
    app.console.print(table)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "config_path",
    envvar="SPOOFY_CONFIG",
    type=ConfigFileType(),
    help="Path to config YAML (default: ~/.config/spoofy/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Show backend commands and mutation steps.")
@click.option("--json", "json_output", is_flag=True, help="Print machine-readable JSON.")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool, json_output: bool):
    """Spoof MAC addresses and DHCPv6 DUIDs."""

    app = Application.current()
    if config_path is not None:
        app.configure(config_path)
    app.json_output = json_output
    _setup_logging(verbose)

    ctx.obj = {"app": app}


# ---------- MAC commands ----------


@cli.command("list")
@click.option("--wifi", "wifi_only", is_flag=True, help="Only show Wi-Fi interfaces.")
@click.pass_obj
@handle_errors
def list_interfaces(obj, wifi_only: bool):
    """List network interfaces and their MAC addresses."""

    app: Application = obj["app"]
    interfaces = app.mac.interfaces(wifi_only=wifi_only)

    if app.json_output:
        _emit_json([{**i.model_dump(), "spoofed": i.is_spoofed} for i in interfaces])
        return
    if not interfaces:
        app.console.print("[yellow]No interfaces found.[/yellow]")
        return

    table = Table(title="Interfaces", show_header=True)
    table.add_column("Device", style="cyan")
    table.add_column("Port")
    table.add_column("Hardware address")
    table.add_column("Current address", style="green")
    table.add_column("Status")
    for info in interfaces:
        current = info.current_address or "-"
        if info.is_spoofed:
            current = f"[yellow]{current} (spoofed)[/yellow]"
        table.add_row(info.device, info.port or "", info.address or "-", current, info.status or "")
    app.console.print(table)


@cli.command("set")
@click.argument("mac", type=MacAddressType())
@click.argument("devices", nargs=-1, required=True, type=InterfaceType())
@click.pass_obj
@handle_errors
def set_mac(obj, mac: str, devices: tuple[str, ...]):
    """Set the MAC address of one or more devices."""

    app: Application = obj["app"]
    _privileged(app)

    results = [app.mac.set(_resolve(app, device), mac) for device in devices]
    if app.json_output:
        _emit_json([_result_dict(r) for r in results])
        return
    for result in results:
        app.console.print(f"[green]✓ Set MAC address of {result.target.interface} to {mac}[/green]")


@cli.command()
@click.option("--local", "local_admin", is_flag=True, help="Set the locally administered bit (default from config).")
@click.argument("devices", nargs=-1, required=True, type=InterfaceType())
@click.pass_obj
@handle_errors
def randomize(obj, local_admin: bool, devices: tuple[str, ...]):
    """Set a random MAC address on one or more devices."""

    app: Application = obj["app"]
    _privileged(app)

    results = [app.mac.randomize(_resolve(app, device), local_admin=local_admin or None) for device in devices]
    if app.json_output:
        _emit_json([_result_dict(r) for r in results])
        return
    for result in results:
        mac = render_identifier(IdentifierKind.MAC, result.value)
        app.console.print(f"[green]✓ Set MAC address of {result.target.interface} to {mac}[/green]")


@cli.command()
@click.argument("devices", nargs=-1, required=True, type=InterfaceType())
@click.pass_obj
@handle_errors
def reset(obj, devices: tuple[str, ...]):
    """Reset devices to their hardware MAC address."""

    app: Application = obj["app"]
    _privileged(app)

    results = [app.mac.reset(_resolve(app, device)) for device in devices]
    if app.json_output:
        _emit_json([_result_dict(r) for r in results])
        return
    for result in results:
        mac = render_identifier(IdentifierKind.MAC, result.value)
        app.console.print(f"[green]✓ Reset {result.target.interface} to {mac}[/green]")


@cli.command()
@click.argument("device", type=InterfaceType())
@click.pass_obj
@handle_errors
def restore(obj, device: str):
    """Restore the MAC address a device had before the first change."""

    app: Application = obj["app"]
    _privileged(app)

    device = _resolve(app, device)
    outcome = app.mac.restore(device)
    if app.json_output:
        _emit_json({"success": True, "device": device, "outcome": outcome.value})
    elif outcome is RestoreOutcome.ALREADY_ORIGINAL:
        app.console.print(f"[blue]ℹ {device} already uses its original MAC address[/blue]")
    else:
        app.console.print(f"[green]✓ Restored the original MAC address of {device}[/green]")


@cli.command()
@click.argument("mac")
@click.pass_obj
@handle_errors
def normalize(obj, mac: str):
    """Print a MAC address in canonical form."""

    app: Application = obj["app"]
    normalized = app.mac.normalize(mac)
    if app.json_output:
        _emit_json({"success": True, "mac": normalized})
    else:
        click.echo(normalized)


@cli.command()
@click.argument("device", required=False)
@click.pass_obj
@handle_errors
def history(obj, device: str | None):
    """Show MAC address change history."""

    app: Application = obj["app"]
    _print_history(app, app.history.entries(IdentifierKind.MAC, device))


@cli.command()
@click.pass_obj
def version(obj):
    """Show the spoofy version."""

    app: Application = obj["app"]
    if app.json_output:
        _emit_json({"version": __version__})
    else:
        click.echo(__version__)


# ---------- DUID commands ----------


@cli.group()
def duid():
    """Manage the DHCPv6 DUID."""


@duid.command("list")
@click.argument("interface", required=False, type=InterfaceType())
@click.pass_obj
@handle_errors
def duid_list(obj, interface: str | None):
    """Show the current DUID and whether the original is stored."""

    app: Application = obj["app"]
    current = app.duid.show(interface)
    status = app.duid.status(interface)

    if app.json_output:
        _emit_json(
            {
                "duid": _duid_dict(current) if current else None,
                "originalStored": status.original is not None,
                "originalPath": str(status.original_path),
                "isSpoofed": status.spoofed,
                "original": status.original,
            }
        )
        return

    _print_duid(app, current.info() if current else None, "Current DUID")
    status.display(app.console, title="Original DUID Status")
    if status.original is None:
        app.console.print("[dim]No original DUID stored yet (will be saved on first spoof)[/dim]")


@duid.command("show")
@click.argument("interface", required=False, type=InterfaceType())
@click.pass_context
def duid_show(ctx: click.Context, interface: str | None):
    """Alias for ``duid list``."""

    ctx.invoke(duid_list, interface=interface)


@duid.command("generate")
@click.option("--type", "duid_type", type=DuidTypeType(), default=None, help="DUID type: LLT, EN, LL or UUID.")
@click.option("--mac", type=MacAddressType(), default=None, help="Link-layer address for LLT and LL.")
@click.pass_obj
@handle_errors
def duid_generate(obj, duid_type: DuidType | None, mac: str | None):
    """Generate a DUID without applying it."""

    app: Application = obj["app"]
    generated = app.duid.generate(duid_type, mac)
    if app.json_output:
        _emit_json({"success": True, "duid": str(generated), "parsed": _duid_dict(generated)})
        return
    click.echo(str(generated))


@duid.command("randomize")
@click.argument("interface", required=False, type=InterfaceType())
@click.option("--type", "duid_type", type=DuidTypeType(), default=None, help="DUID type: LLT, EN, LL or UUID.")
@click.pass_obj
@handle_errors
def duid_randomize(obj, interface: str | None, duid_type: DuidType | None):
    """Set a random DUID."""

    app: Application = obj["app"]
    _privileged(app)

    new = app.duid.randomize(duid_type, interface)
    _report_duid_change(app, new, interface)


@duid.command("set")
@click.argument("value", metavar="DUID", type=DuidHexType())
@click.argument("interface", required=False, type=InterfaceType())
@click.pass_obj
@handle_errors
def duid_set(obj, value: Duid, interface: str | None):
    """Set a specific DUID, e.g. 00:03:00:01:aa:bb:cc:dd:ee:ff."""

    app: Application = obj["app"]
    _privileged(app)

    app.duid.set(value, interface)
    _report_duid_change(app, value, interface)


@duid.command("sync")
@click.argument("interface", type=InterfaceType())
@click.option("--type", "duid_type", type=DuidTypeType(), default=None, help="DUID type: LLT or LL.")
@click.pass_obj
@handle_errors
def duid_sync(obj, interface: str, duid_type: DuidType | None):
    """Regenerate the DUID from the current MAC address of INTERFACE."""

    app: Application = obj["app"]
    _privileged(app)

    interface = _resolve(app, interface)
    new = app.duid.sync(interface, duid_type)
    _report_duid_change(app, new, interface)


def _report_duid_change(app: Application, value: Duid, interface: str | None) -> None:
    if app.json_output:
        _emit_json({"success": True, "duid": str(value), "interface": interface, "parsed": _duid_dict(value)})
        return
    app.console.print("[green]✓ DUID changed successfully![/green]")
    _print_duid(app, value.info())
    app.console.print("[blue]ℹ[/blue] You may need to renew your DHCPv6 lease for the change to take effect.")
    app.console.print("[blue]ℹ[/blue] The original DUID can be restored with: spoofy duid restore")


@duid.command("restore")
@click.argument("interface", required=False, type=InterfaceType())
@click.pass_obj
@handle_errors
def duid_restore(obj, interface: str | None):
    """Restore the DUID captured before the first change."""

    app: Application = obj["app"]
    _privileged(app)

    outcome = app.duid.restore(interface)
    if app.json_output:
        _emit_json({"success": True, "outcome": outcome.value})
    elif outcome is RestoreOutcome.ALREADY_ORIGINAL:
        app.console.print("[blue]ℹ[/blue] The original DUID is already in use")
    else:
        app.console.print("[green]✓ Original DUID restored[/green]")


@duid.command("reset")
@click.argument("interface", required=False, type=InterfaceType())
@click.pass_obj
@handle_errors
def duid_reset(obj, interface: str | None):
    """Delete the DUID so the system generates a new one."""

    app: Application = obj["app"]
    _privileged(app)

    app.duid.reset(interface)
    if app.json_output:
        _emit_json({"success": True, "message": "DUID reset successfully", "interface": interface})
        return
    app.console.print("[green]✓ DUID reset successfully![/green]")
    app.console.print("[blue]ℹ[/blue] The system will generate a new DUID on the next DHCPv6 request.")


@duid.command("history")
@click.argument("device", required=False)
@click.pass_obj
@handle_errors
def duid_history(obj, device: str | None):
    """Show DUID change history."""

    app: Application = obj["app"]
    _print_history(app, app.history.entries(IdentifierKind.DUID, device))


@duid.group("original")
def duid_original():
    """Inspect or clear the stored original DUID."""


@duid_original.command("show")
@click.pass_obj
@handle_errors
def original_show(obj):
    """Show the stored original DUID."""

    app: Application = obj["app"]
    raw = app.duid.original()
    path = app.duid.original_path()

    if app.json_output:
        _emit_json(
            {
                "original": render_identifier(IdentifierKind.DUID, raw),
                "path": str(path),
                "parsed": _duid_dict(Duid.from_bytes(raw)) if raw else None,
            }
        )
        return
    if raw is None:
        app.console.print("[blue]ℹ[/blue] No original DUID stored yet.")
        app.console.print("[blue]ℹ[/blue] It is saved automatically before the first DUID change.")
        return
    _print_duid(app, Duid.from_bytes(raw).info(), "Original DUID (stored)")
    app.console.print(f"Storage location: {path}")


@duid_original.command("path")
@click.pass_obj
def original_path(obj):
    """Print where the original DUID is stored."""

    app: Application = obj["app"]
    path = app.duid.original_path()
    if app.json_output:
        _emit_json({"path": str(path)})
    else:
        click.echo(str(path))


@duid_original.command("clear")
@click.option("--force", is_flag=True, help="Confirm deletion of the stored original.")
@click.pass_obj
@handle_errors
def original_clear(obj, force: bool):
    """Delete the stored original DUID."""

    app: Application = obj["app"]
    _privileged(app)

    if not app.duid.original_path().exists():
        if app.json_output:
            _emit_json({"success": True, "message": "No original DUID stored"})
        else:
            app.console.print("[blue]ℹ[/blue] No original DUID stored.")
        return

    if not force:
        if app.json_output:
            _emit_json({"success": False, "error": "--force flag required"})
        else:
            app.console.print("[yellow]⚠ This deletes the stored original DUID.[/yellow]")
            app.console.print("[yellow]⚠ You will not be able to restore it afterwards.[/yellow]")
            app.console.print("[blue]ℹ[/blue] To confirm, run: spoofy duid original clear --force")
        sys.exit(1)

    app.duid.clear_original()
    if app.json_output:
        _emit_json({"success": True, "message": "Original DUID storage cleared"})
    else:
        app.console.print("[green]✓ Original DUID storage cleared.[/green]")
