"""Rich rendering of snapshots, usage and system info for the CLI."""

from typing import Any

from rich.console import Console
from rich.table import Table

from nodescope.formatting import format_bytes, format_duration
from nodescope.models import Snapshot, SystemInfoRecord, UsageRecord

# Global console for UI functions
_console = Console()
_err_console = Console(stderr=True)

# (record key, column label) per resource class
COLUMNS: dict[str, list[tuple[str, str]]] = {
    "processes": [
        ("pid", "PID"),
        ("name_or_initial_call", "Name or initial call"),
        ("memory", "Memory"),
        ("reductions", "Reductions"),
        ("message_queue_len", "MsgQ"),
        ("current_function", "Current function"),
    ],
    "ports": [
        ("port", "Port"),
        ("driver", "Driver"),
        ("name", "Name"),
        ("input", "Input"),
        ("output", "Output"),
        ("os_pid", "OS pid"),
    ],
    "tables": [
        ("name", "Name"),
        ("id", "Id"),
        ("type", "Type"),
        ("size", "Size"),
        ("memory", "Memory"),
        ("owner", "Owner"),
        ("protection", "Protection"),
    ],
    "sockets": [
        ("port", "Port"),
        ("module", "Module"),
        ("local_address", "Local address"),
        ("foreign_address", "Foreign address"),
        ("state", "State"),
        ("type", "Type"),
        ("send_oct", "Sent"),
        ("recv_oct", "Received"),
    ],
}

DEFAULT_SORT: dict[str, str] = {
    "processes": "memory",
    "ports": "input",
    "tables": "memory",
    "sockets": "send_oct",
}

_BYTE_FIELDS = {"memory", "send_oct", "recv_oct", "input", "output"}


def format_cell(key: str, value: Any) -> str:
    """Render one record field for display."""
    if value is None:
        return "-"
    if key in _BYTE_FIELDS and isinstance(value, int):
        return format_bytes(value).strip()
    return str(value)


def render_snapshot(kind: str, snapshot: Snapshot):
    table = Table(caption=f"{len(snapshot.records)} of {snapshot.total}")

    for key, label in COLUMNS[kind]:
        table.add_column(label, no_wrap=key != "name_or_initial_call")

    for record in snapshot.records:
        table.add_row(*(format_cell(key, record.get(key)) for key, _ in COLUMNS[kind]))

    _console.print(table)


def render_usage(usage: UsageRecord):
    table = Table(show_header=False)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    table.add_row("Uptime", format_duration(usage.uptime))
    table.add_row("Processes", str(usage.processes))
    table.add_row("Ports", str(usage.ports))
    table.add_row("Atoms", str(usage.atoms))
    table.add_row("Run queue (total / cpu)", f"{usage.total_run_queue} / {usage.cpu_run_queue}")
    table.add_row("IO (in / out)", f"{format_bytes(usage.io[0]).strip()} / {format_bytes(usage.io[1]).strip()}")

    memory = usage.memory
    for label, value in [
        ("Memory total", memory.total),
        ("  process", memory.process),
        ("  atom", memory.atom),
        ("  binary", memory.binary),
        ("  code", memory.code),
        ("  ets", memory.ets),
        ("  other", memory.other),
    ]:
        table.add_row(label, format_bytes(value).strip())

    _console.print(table)


def render_system_info(info: SystemInfoRecord):
    table = Table(show_header=False)
    table.add_column("Field", style="magenta", no_wrap=True)
    table.add_column("Value")

    for key, value in info.system_info.items():
        table.add_row(key, value)
    for key, value in info.system_limits.items():
        table.add_row(f"{key} limit", "unlimited" if value is None else str(value))

    _console.print(table)
    render_usage(info.system_usage)


def print_error(message: str, prefix: str = "❌"):
    """Print an error message to stderr."""
    _err_console.print(f"[red]{prefix}[/red] {message}")
