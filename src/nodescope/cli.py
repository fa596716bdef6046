"""Command line interface for nodescope."""

import logging
from typing import Optional

import typer

from nodescope.app import DashboardApp
from nodescope.config import Settings
from nodescope.dispatch import TransportFailure
from nodescope.models import SortDirection
from nodescope.system_info import SystemInfo, local_system_info
from nodescope.ui import (
    DEFAULT_SORT,
    print_error,
    render_snapshot,
    render_system_info,
    render_usage,
)

app = typer.Typer(help="Inspect processes, ports, tables and sockets of a node.")


def _connect(node: Optional[str]) -> tuple[SystemInfo, str, Settings]:
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level)
    system_info, local_node = local_system_info(
        node=node or settings.node, timeout=settings.timeout
    )
    return system_info, local_node, settings


def _check(result):
    if isinstance(result, TransportFailure):
        print_error(f"{result.operation} on {result.node} failed: {result.reason}")
        raise typer.Exit(code=1)
    return result


def _snapshot(kind, node, search, sort, ascending, limit):
    system_info, local_node, settings = _connect(node)
    fetch = getattr(system_info, f"fetch_{kind}")
    sort_dir = SortDirection.ASC if ascending else SortDirection.DESC
    result = fetch(
        local_node,
        search,
        sort or DEFAULT_SORT[kind],
        sort_dir,
        settings.limit if limit is None else limit,
    )
    render_snapshot(kind, _check(result))


NodeOption = typer.Option(None, "--node", "-n", help="Node to inspect.")
SearchOption = typer.Option(None, "--search", "-s", help="Case-insensitive search term.")
SortOption = typer.Option(None, "--sort", help="Field to sort by.")
DirectionOption = typer.Option(False, "--asc/--desc", help="Sort direction.")
LimitOption = typer.Option(None, "--limit", "-l", min=0, help="Maximum rows to show.")


@app.command(help="List processes.")
def processes(
    node: Optional[str] = NodeOption,
    search: Optional[str] = SearchOption,
    sort: Optional[str] = SortOption,
    ascending: bool = DirectionOption,
    limit: Optional[int] = LimitOption,
):
    _snapshot("processes", node, search, sort, ascending, limit)


@app.command(help="List ports that are not network sockets.")
def ports(
    node: Optional[str] = NodeOption,
    search: Optional[str] = SearchOption,
    sort: Optional[str] = SortOption,
    ascending: bool = DirectionOption,
    limit: Optional[int] = LimitOption,
):
    _snapshot("ports", node, search, sort, ascending, limit)


@app.command(help="List in-memory tables.")
def tables(
    node: Optional[str] = NodeOption,
    search: Optional[str] = SearchOption,
    sort: Optional[str] = SortOption,
    ascending: bool = DirectionOption,
    limit: Optional[int] = LimitOption,
):
    _snapshot("tables", node, search, sort, ascending, limit)


@app.command(help="List network sockets.")
def sockets(
    node: Optional[str] = NodeOption,
    search: Optional[str] = SearchOption,
    sort: Optional[str] = SortOption,
    ascending: bool = DirectionOption,
    limit: Optional[int] = LimitOption,
):
    _snapshot("sockets", node, search, sort, ascending, limit)


@app.command(help="Show system usage counters.")
def usage(node: Optional[str] = NodeOption):
    system_info, local_node, _ = _connect(node)
    render_usage(_check(system_info.fetch_system_usage(local_node)))


@app.command(help="Show system information, limits and usage.")
def info(node: Optional[str] = NodeOption):
    system_info, local_node, _ = _connect(node)
    render_system_info(_check(system_info.fetch_system_info(local_node)))


@app.command(help="Open the live dashboard.")
def top(node: Optional[str] = NodeOption):
    system_info, local_node, settings = _connect(node)
    DashboardApp(system_info, local_node, settings).run()


def main() -> None:
    """Entry point for the nodescope command."""
    app()


if __name__ == "__main__":
    main()
