"""
Command-line interface for DSPC virtual machines.

Thin operator surface over the Provider: every command resolves the
configuration, performs one reconciler operation and prints the result.
"""

import logging
import sys
from typing import Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from .errors import DspcError
from .models import VirtualMachineModel
from .provider import Provider
from .transport import RequestContext

app = typer.Typer(
    name="dspc-vm",
    help="DSPC Virtual Machine Management CLI",
    add_completion=False,
)
console = Console()

logger = structlog.get_logger()


def configure_logging(json_logs: bool = False, verbose: bool = False) -> None:
    """Configure structured logging on stderr."""
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.WARNING),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def _provider(ctx: typer.Context) -> Provider:
    options = ctx.obj or {}
    try:
        provider = Provider.configure(
            endpoint=options.get("endpoint"),
            api_key=options.get("api_key"),
            timeout=options.get("timeout"),
        )
    except DspcError as e:
        console.print(f"❌ Provider configuration error: {e}")
        raise typer.Exit(1)
    ctx.call_on_close(provider.close)
    return provider


def _context(ctx: typer.Context) -> RequestContext:
    return RequestContext(timeout=(ctx.obj or {}).get("deadline"))


def _print_vms(vms: list[VirtualMachineModel], title: str) -> None:
    table = Table(title=title)
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("State", style="green")
    for vm in vms:
        table.add_row(vm.id or "", vm.name, vm.state.value)
    console.print(table)


@app.callback()
def main(
    ctx: typer.Context,
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="DSPC API endpoint (default: DSPC_ENDPOINT)"
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="DSPC API key (default: DSPC_API_KEY)"
    ),
    timeout: Optional[int] = typer.Option(
        None, "--timeout", "-t", help="Request timeout in seconds (default: DSPC_TIMEOUT or 30)"
    ),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Overall deadline in seconds for the command"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    """Manage virtual machines through the DSPC VM Deployer API."""
    configure_logging(json_logs=json_logs, verbose=verbose)
    ctx.obj = {"endpoint": endpoint, "api_key": api_key, "timeout": timeout, "deadline": deadline}


@app.command("list")
def list_vms(ctx: typer.Context) -> None:
    """List all virtual machines."""
    provider = _provider(ctx)
    try:
        vms = provider.list_vms(_context(ctx))
    except DspcError as e:
        console.print(f"❌ Error listing VMs: {e}")
        raise typer.Exit(1)

    if not vms:
        console.print("No virtual machines found")
        return
    _print_vms(vms, f"Virtual Machines ({len(vms)})")


@app.command("get")
def get_vm(ctx: typer.Context, name: str = typer.Argument(..., help="VM name")) -> None:
    """Show a single virtual machine."""
    provider = _provider(ctx)
    try:
        vm = provider.read(name, _context(ctx))
    except DspcError as e:
        console.print(f"❌ Error reading VM: {e}")
        raise typer.Exit(1)
    _print_vms([vm], f"VM Details: {vm.name}")


@app.command("create")
def create_vm(ctx: typer.Context, name: str = typer.Argument(..., help="VM name")) -> None:
    """Create a virtual machine."""
    provider = _provider(ctx)
    try:
        created = provider.create(name, _context(ctx))
    except DspcError as e:
        console.print(f"❌ Error creating VM: {e}")
        raise typer.Exit(1)
    console.print(f"✅ Created VM {created}")


@app.command("delete")
def delete_vm(ctx: typer.Context, name: str = typer.Argument(..., help="VM name")) -> None:
    """Delete a virtual machine."""
    provider = _provider(ctx)
    try:
        provider.delete(name, _context(ctx))
    except DspcError as e:
        console.print(f"❌ Error deleting VM: {e}")
        raise typer.Exit(1)
    console.print(f"🗑️  Deleted VM {name}")


@app.command("import")
def import_vm(ctx: typer.Context, name: str = typer.Argument(..., help="Existing VM name")) -> None:
    """Check that an existing VM can be imported and print its record."""
    provider = _provider(ctx)
    try:
        vm = provider.import_by_name(name, _context(ctx))
    except DspcError as e:
        console.print(f"❌ Error importing VM: {e}")
        raise typer.Exit(1)
    _print_vms([vm], f"Imported VM: {vm.name}")


if __name__ == "__main__":
    app()
