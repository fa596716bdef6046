"""Node-side callbacks: snapshot collection, detail lookups and usage.

An Inspector runs on the node that owns the resources. It is stateless
apart from the runtime it reads from, so one instance can serve any number
of concurrent callers.
"""

import logging
from collections.abc import Callable, Iterable
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from nodescope.models import (
    MemoryUsage,
    ResourceHandle,
    Snapshot,
    SortDirection,
    SystemInfoRecord,
    UsageRecord,
)
from nodescope.normalize import (
    normalize_port,
    normalize_process,
    normalize_socket,
    normalize_table,
)
from nodescope.query import matches, sort_records
from nodescope.runtime import Runtime

logger = logging.getLogger(__name__)

Normalizer = Callable[[Runtime, ResourceHandle], "dict[str, Any] | None"]


def _package_version() -> str:
    try:
        return version("nodescope")
    except PackageNotFoundError:
        return "None"


class Inspector:
    """Collects snapshots and details from a single runtime."""

    def __init__(self, runtime: Runtime) -> None:
        self._runtime = runtime

    @property
    def node(self) -> str:
        return self._runtime.node

    # ===== Snapshots =====

    def processes(
        self,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot:
        """
        Snapshot of the node's processes.

        Without a search term the total comes from the runtime's live
        process counter instead of the enumeration, so it may differ from
        the number of records actually collected.
        """
        records = self._collect(
            "process", self._runtime.process_handles, normalize_process, search
        )
        total = len(records) if search else self._runtime.process_count()
        return self._page(records, total, sort_by, sort_dir, limit)

    def ports(
        self,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot:
        """Snapshot of the node's non-socket ports."""
        records = self._collect("port", self._runtime.port_handles, normalize_port, search)
        return self._page(records, len(records), sort_by, sort_dir, limit, numeric=True)

    def tables(
        self,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot:
        """Snapshot of the node's tables."""
        records = self._collect("table", self._runtime.table_handles, normalize_table, search)
        return self._page(records, len(records), sort_by, sort_dir, limit)

    def sockets(
        self,
        search: str | None,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
    ) -> Snapshot:
        """Snapshot of the node's network sockets."""
        records = self._collect(
            "socket", self._runtime.port_handles, normalize_socket, search
        )
        return self._page(records, len(records), sort_by, sort_dir, limit)

    def _collect(
        self,
        kind: str,
        handles: Callable[[], Iterable[ResourceHandle]],
        normalize: Normalizer,
        search: str | None,
    ) -> list[dict[str, Any]]:
        records = []
        with self._runtime.scan():
            for handle in handles():
                record = normalize(self._runtime, handle)
                if record is None:
                    # Torn down between enumeration and lookup, or filtered by class
                    continue
                if matches(kind, record, search):
                    records.append(record)
        return records

    def _page(
        self,
        records: list[dict[str, Any]],
        total: int,
        sort_by: str,
        sort_dir: SortDirection | str,
        limit: int,
        numeric: bool = False,
    ) -> Snapshot:
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        if records and sort_by not in records[0]:
            raise ValueError(
                f"Invalid sort key {sort_by!r}, expected one of: {', '.join(records[0])}"
            )
        ordered = sort_records(records, sort_by, sort_dir, numeric=numeric)
        return Snapshot(records=ordered[:limit], total=total)

    # ===== Details =====

    def process_info(self, handle: ResourceHandle, keys: Iterable[str]) -> dict[str, Any] | None:
        if handle.kind != "process":
            return None
        return self._runtime.process_info(handle, list(keys))

    def port_info(self, handle: ResourceHandle, keys: Iterable[str]) -> dict[str, Any] | None:
        if handle.kind != "port":
            return None
        with self._runtime.scan():
            info = self._runtime.port_info(handle)
        if info is None:
            return None
        return _take(info, keys)

    def table_info(self, handle: ResourceHandle) -> dict[str, Any] | None:
        if handle.kind != "table":
            return None
        return self._runtime.table_info(handle)

    def socket_info(self, handle: ResourceHandle, keys: Iterable[str]) -> dict[str, Any] | None:
        """Socket record filtered to keys, or None if the port is not a readable socket."""
        # Sockets are ports
        if handle.kind != "port":
            return None
        with self._runtime.scan():
            info = normalize_socket(self._runtime, handle)
        if info is None:
            return None
        return _take(info, keys)

    # ===== System =====

    def usage(self) -> UsageRecord:
        """
        Read all system counters.

        Each counter is read on its own; there is no atomic view across
        them, see MemoryUsage.
        """
        counts = self._runtime.counts()
        total_run_queue, cpu_run_queue = self._runtime.run_queues()
        return UsageRecord(
            atoms=counts["atoms"],
            ports=counts["ports"],
            processes=counts["processes"],
            io=self._runtime.io_totals(),
            uptime=self._runtime.uptime(),
            memory=MemoryUsage.from_counters(self._runtime.memory()),
            total_run_queue=total_run_queue,
            cpu_run_queue=cpu_run_queue,
        )

    def info(self) -> SystemInfoRecord:
        system_info = dict(self._runtime.describe())
        system_info["inspector_version"] = _package_version()
        return SystemInfoRecord(
            system_info=system_info,
            system_limits=dict(self._runtime.limits()),
            system_usage=self.usage(),
        )


def _take(info: dict[str, Any], keys: Iterable[str]) -> dict[str, Any]:
    """Keep only the requested keys, in the record's own order."""
    wanted = set(keys)
    if not wanted:
        return dict(info)
    return {key: value for key, value in info.items() if key in wanted}
