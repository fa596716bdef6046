"""Data sources a node exposes to the inspector."""

from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Any, Protocol

from nodescope.models import ResourceHandle

# Driver names of ports backed by a network socket
SOCKET_DRIVERS = frozenset({"tcp_inet", "udp_inet", "sctp_inet"})

PROCESS_KEYS = (
    "registered_name",
    "initial_call",
    "memory",
    "reductions",
    "message_queue_len",
    "current_function",
)


class Runtime(Protocol):
    """
    Enumeration primitives and counters of one node.

    Lookups return None once a resource is gone. Socket reads raise
    OSError (errno.ENOTCONN for unconnected sockets) when they fail.
    Nothing here may block indefinitely or mutate the inspected resources.
    """

    node: str

    def scan(self) -> AbstractContextManager[None]:
        """Serve the reads made inside the block from one consistent view."""
        ...

    # Processes
    def process_handles(self) -> Iterable[ResourceHandle]: ...

    def process_info(
        self, handle: ResourceHandle, keys: Iterable[str]
    ) -> dict[str, Any] | None: ...

    def process_count(self) -> int: ...

    # Ports and sockets
    def port_handles(self) -> Iterable[ResourceHandle]: ...

    def port_info(self, handle: ResourceHandle) -> dict[str, Any] | None: ...

    def socket_stats(self, handle: ResourceHandle) -> dict[str, int | None]: ...

    def socket_status(self, handle: ResourceHandle) -> frozenset[str]: ...

    def socket_type(self, handle: ResourceHandle) -> str: ...

    def socket_module(self, handle: ResourceHandle) -> str | None: ...

    def sockname(self, handle: ResourceHandle) -> Any: ...

    def peername(self, handle: ResourceHandle) -> Any: ...

    # Tables
    def table_handles(self) -> Iterable[ResourceHandle]: ...

    def table_info(self, handle: ResourceHandle) -> dict[str, Any] | None: ...

    # Counters
    def memory(self) -> dict[str, int]: ...

    def counts(self) -> dict[str, int]: ...

    def limits(self) -> dict[str, int | None]: ...

    def io_totals(self) -> tuple[int, int]: ...

    def uptime(self) -> int: ...

    def run_queues(self) -> tuple[int, int]: ...

    def describe(self) -> dict[str, str]: ...
