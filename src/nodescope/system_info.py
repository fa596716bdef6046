"""Caller-side entry points: every fetch executes on the owning node."""

import logging
from collections.abc import Iterable
from typing import Any

from nodescope.dispatch import LocalTransport, Transport, TransportError, TransportFailure
from nodescope.host import HostRuntime, TableRegistry
from nodescope.inspector import Inspector
from nodescope.models import (
    ResourceHandle,
    Snapshot,
    SortDirection,
    SystemInfoRecord,
    UsageRecord,
)

logger = logging.getLogger(__name__)

Lookup = dict[str, Any] | None | TransportFailure


class SystemInfo:
    """
    Fetches snapshots, details and usage from remote nodes.

    Snapshot, info and usage calls take the target node explicitly; single
    resource lookups go to the node that owns the handle. Failures of the
    transport come back as TransportFailure and are never retried.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    # ===== Snapshots =====

    def fetch_processes(
        self,
        node: str,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot | TransportFailure:
        return self._snapshot(node, "processes", search, sort_by, sort_dir, limit)

    def fetch_ports(
        self,
        node: str,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot | TransportFailure:
        return self._snapshot(node, "ports", search, sort_by, sort_dir, limit)

    def fetch_tables(
        self,
        node: str,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot | TransportFailure:
        return self._snapshot(node, "tables", search, sort_by, sort_dir, limit)

    def fetch_sockets(
        self,
        node: str,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot | TransportFailure:
        return self._snapshot(node, "sockets", search, sort_by, sort_dir, limit)

    # ===== Details =====

    def fetch_process_info(self, pid: ResourceHandle, keys: Iterable[str]) -> Lookup:
        return self._call(pid.node, "process_info", pid, list(keys))

    def fetch_port_info(self, port: ResourceHandle, keys: Iterable[str]) -> Lookup:
        return self._call(port.node, "port_info", port, list(keys))

    def fetch_table_info(self, node: str, ref: ResourceHandle) -> Lookup:
        return self._call(node, "table_info", ref)

    def fetch_socket_info(self, port: ResourceHandle, keys: Iterable[str]) -> Lookup:
        return self._call(port.node, "socket_info", port, list(keys))

    # ===== System =====

    def fetch_system_info(self, node: str) -> SystemInfoRecord | TransportFailure:
        return self._call(node, "info")

    def fetch_system_usage(self, node: str) -> UsageRecord | TransportFailure:
        return self._call(node, "usage")

    def _snapshot(
        self,
        node: str,
        operation: str,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot | TransportFailure:
        search = search.lower() if search else None
        return self._call(node, operation, search, sort_by, sort_dir, limit)

    def _call(self, node: str, operation: str, *args: Any) -> Any:
        try:
            return self._transport.call(node, operation, args)
        except TransportError as exc:
            logger.warning("Call %s on %s failed: %s", operation, node, exc.reason)
            return TransportFailure(node=node, operation=operation, reason=exc.reason)


def local_system_info(
    node: str | None = None,
    timeout: float | None = None,
    tables: TableRegistry | None = None,
) -> tuple[SystemInfo, str]:
    """
    Build a facade wired to an inspector of the current host.

    Returns:
        The facade and the name of the local node.
    """
    runtime = HostRuntime(node=node, tables=tables)
    transport = LocalTransport({runtime.node: Inspector(runtime)}, timeout=timeout)
    return SystemInfo(transport), runtime.node
