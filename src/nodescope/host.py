"""psutil-backed runtime for the host the inspector is running on.

The node is one process on the current machine (by default the running
Python process): processes are the machine's OS processes, ports are the
descriptors the node process holds open, and tables are mappings the
application registered in a TableRegistry.
"""

import errno
import itertools
import logging
import os
import platform
import socket
import sys
import threading
import time
import weakref
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import Any

import psutil

from nodescope.models import ResourceHandle

logger = logging.getLogger(__name__)

# Errors meaning the process vanished or cannot be looked at
_GONE = (psutil.NoSuchProcess, psutil.ZombieProcess)

_SOCKET_TYPES = {
    socket.SOCK_STREAM: "stream",
    socket.SOCK_DGRAM: "dgram",
    socket.SOCK_SEQPACKET: "seqpacket",
}

_DRIVERS = {
    socket.SOCK_STREAM: "tcp_inet",
    socket.SOCK_DGRAM: "udp_inet",
    socket.SOCK_SEQPACKET: "sctp_inet",
}

_FLAGS_BY_STATUS = {
    psutil.CONN_LISTEN: frozenset({"bound", "listen", "listening", "open"}),
    psutil.CONN_ESTABLISHED: frozenset({"bound", "connected", "open"}),
    psutil.CONN_SYN_SENT: frozenset({"bound", "connecting", "open"}),
    psutil.CONN_CLOSE: frozenset(),
}


def _initial_call(proc: psutil.Process) -> tuple[str, str, int] | None:
    cmdline = proc.cmdline()
    if not cmdline:
        return None
    return (os.path.basename(cmdline[0]), "main", len(cmdline) - 1)


def _reductions(proc: psutil.Process) -> int:
    times = proc.cpu_times()
    # Clock ticks of CPU time spent by the process
    return int((times.user + times.system) * 100)


_PROCESS_READERS: dict[str, Callable[[psutil.Process], Any]] = {
    "registered_name": lambda proc: proc.name(),
    "initial_call": _initial_call,
    "memory": lambda proc: proc.memory_info().rss,
    "reductions": _reductions,
    "message_queue_len": lambda proc: proc.num_threads(),
    "current_function": lambda proc: proc.status(),
    "username": lambda proc: proc.username(),
    "cmdline": lambda proc: " ".join(proc.cmdline()),
    "nice": lambda proc: proc.nice(),
    "parent": lambda proc: proc.ppid(),
}


class TableRegistry:
    """
    Named in-memory tables the host application wants to expose.

    Tables are held by weak reference, so a registered mapping disappears
    from the registry once the application drops it. Plain `dict` cannot be
    weakly referenced; register a subclass (or any weak-referenceable
    mapping such as `collections.OrderedDict`).
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._tables: dict[int, tuple[weakref.ref, str, str, int | None]] = {}

    def register(
        self,
        name: str,
        table: Any,
        protection: str = "public",
        owner: int | None = None,
    ) -> int:
        """
        Register a table and return its id.

        Args:
            name: Display name of the table.
            table: A weak-referenceable mapping.
            protection: Free-form access label shown in table info.
            owner: Pid of the owning process. Defaults to the current one.
        """
        with self._lock:
            ident = next(self._ids)
            self._tables[ident] = (
                weakref.ref(table, self._forget(ident)),
                name,
                protection,
                owner if owner is not None else os.getpid(),
            )
        return ident

    def unregister(self, ident: int) -> None:
        with self._lock:
            self._tables.pop(ident, None)

    def _forget(self, ident: int) -> Callable[[weakref.ref], None]:
        def callback(_ref: weakref.ref) -> None:
            self.unregister(ident)

        return callback

    def ids(self) -> list[int]:
        with self._lock:
            return list(self._tables)

    def info(self, ident: int) -> dict[str, Any] | None:
        with self._lock:
            entry = self._tables.get(ident)
        if entry is None:
            return None
        ref, name, protection, owner = entry
        table = ref()
        if table is None:
            return None
        return {
            "id": ident,
            "name": name,
            "size": len(table),
            "memory": sys.getsizeof(table),
            "type": type(table).__name__,
            "owner": owner,
            "protection": protection,
        }

    def memory(self) -> int:
        """Total size in bytes of all live registered tables."""
        total = 0
        for ident in self.ids():
            info = self.info(ident)
            if info is not None:
                total += info["memory"]
        return total


class HostRuntime:
    """Runtime implementation for the local host, backed by psutil."""

    def __init__(
        self,
        node: str | None = None,
        pid: int | None = None,
        tables: TableRegistry | None = None,
    ) -> None:
        """
        Initialize the HostRuntime.

        Args:
            node: Name this node answers to. Defaults to the host name.
            pid: Process whose descriptors are the node's ports. Defaults to
                the current process.
            tables: Registry of tables to expose. A new empty one by default.
        """
        self.node = node or socket.gethostname()
        self.tables = tables if tables is not None else TableRegistry()
        self._process = psutil.Process(pid if pid is not None else os.getpid())
        self._scan = threading.local()

    @property
    def pid(self) -> int:
        return self._process.pid

    def _handle(self, kind: str, ident: int) -> ResourceHandle:
        return ResourceHandle(node=self.node, kind=kind, ident=ident)

    # ===== Processes =====

    def process_handles(self) -> list[ResourceHandle]:
        return [self._handle("process", proc.pid) for proc in psutil.process_iter()]

    def process_info(
        self, handle: ResourceHandle, keys: Iterable[str]
    ) -> dict[str, Any] | None:
        try:
            proc = psutil.Process(handle.ident)
            with proc.oneshot():
                info = {}
                for key in keys:
                    reader = _PROCESS_READERS.get(key)
                    if reader is None:
                        continue
                    try:
                        info[key] = reader(proc)
                    except psutil.AccessDenied:
                        info[key] = None
                return info
        except _GONE:
            logger.debug("Process %s is gone", handle.ident)
            return None

    def process_count(self) -> int:
        return len(psutil.pids())

    # ===== Ports =====

    @contextmanager
    def scan(self) -> Iterator[None]:
        """Read the descriptor table once and serve every port read in the block from it."""
        if getattr(self._scan, "descriptors", None) is not None:
            yield
            return
        self._scan.descriptors = self._read_descriptors()
        try:
            yield
        finally:
            self._scan.descriptors = None

    def _descriptors(self) -> dict[int, tuple[str, Any]]:
        cached = getattr(self._scan, "descriptors", None)
        if cached is not None:
            return cached
        return self._read_descriptors()

    def _read_descriptors(self) -> dict[int, tuple[str, Any]]:
        """Map descriptor numbers to ('file', popenfile) or ('conn', pconn)."""
        entries: dict[int, tuple[str, Any]] = {}
        try:
            for opened in self._process.open_files():
                if opened.fd >= 0:
                    entries[opened.fd] = ("file", opened)
            for conn in self._process.net_connections(kind="all"):
                if conn.fd >= 0:
                    entries[conn.fd] = ("conn", conn)
        except (psutil.AccessDenied, psutil.NoSuchProcess) as exc:
            logger.debug("Cannot list descriptors: %s", exc)
        return entries

    def _connection(self, handle: ResourceHandle):
        entry = self._descriptors().get(handle.ident)
        if entry is None or entry[0] != "conn":
            raise OSError(errno.EBADF, "Not an open socket", str(handle))
        return entry[1]

    def port_handles(self) -> list[ResourceHandle]:
        return [self._handle("port", fd) for fd in sorted(self._descriptors())]

    def port_info(self, handle: ResourceHandle) -> dict[str, Any] | None:
        entry = self._descriptors().get(handle.ident)
        if entry is None:
            return None

        kind, item = entry
        owner = self._handle("process", self._process.pid)
        if kind == "file":
            position = getattr(item, "position", None)
            writing = getattr(item, "mode", "r") != "r"
            return {
                "id": handle.ident,
                "driver": "efile",
                "name": item.path,
                "connected": owner,
                "os_pid": None,
                "input": None if writing else position,
                "output": position if writing else None,
            }

        driver = _DRIVERS.get(item.type, "inet")
        if item.family == socket.AF_UNIX:
            name = item.laddr or item.raddr or driver
        else:
            name = driver
        return {
            "id": handle.ident,
            "driver": driver,
            "name": name,
            "connected": owner,
            "os_pid": None,
            "input": None,
            "output": None,
        }

    # ===== Sockets =====

    def socket_stats(self, handle: ResourceHandle) -> dict[str, int | None]:
        self._connection(handle)
        # The host does not expose per-connection byte counters
        return {"send_oct": None, "recv_oct": None}

    def socket_status(self, handle: ResourceHandle) -> frozenset[str]:
        conn = self._connection(handle)
        if conn.status in _FLAGS_BY_STATUS:
            return _FLAGS_BY_STATUS[conn.status]
        if conn.status == psutil.CONN_NONE:
            # Connectionless sockets
            if conn.raddr:
                return frozenset({"bound", "connected", "open"})
            if conn.laddr:
                return frozenset({"bound", "open"})
            return frozenset({"open"})
        return frozenset({"bound", "open", conn.status.lower()})

    def socket_type(self, handle: ResourceHandle) -> str:
        conn = self._connection(handle)
        return _SOCKET_TYPES.get(conn.type, str(conn.type))

    def socket_module(self, handle: ResourceHandle) -> str | None:
        try:
            conn = self._connection(handle)
        except OSError:
            return None
        return getattr(conn.family, "name", None)

    def sockname(self, handle: ResourceHandle) -> Any:
        conn = self._connection(handle)
        if not conn.laddr:
            raise OSError(errno.EINVAL, "Socket is not bound")
        return conn.laddr

    def peername(self, handle: ResourceHandle) -> Any:
        conn = self._connection(handle)
        if not conn.raddr:
            raise OSError(errno.ENOTCONN, "Socket is not connected")
        return conn.raddr

    # ===== Tables =====

    def table_handles(self) -> list[ResourceHandle]:
        return [self._handle("table", ident) for ident in self.tables.ids()]

    def table_info(self, handle: ResourceHandle) -> dict[str, Any] | None:
        return self.tables.info(handle.ident)

    # ===== Counters =====

    def memory(self) -> dict[str, int]:
        """
        Memory breakdown of the node process.

        Resident memory is split into private memory (less the registered
        tables), shared memory (counted as code), and table memory. There
        is no per-category accounting for atoms or binaries on the host.
        """
        mem = self._process.memory_info()
        shared = getattr(mem, "shared", 0)
        ets = self.tables.memory()
        return {
            "total": mem.rss,
            "processes": max(mem.rss - shared - ets, 0),
            "atom": 0,
            "binary": 0,
            "code": shared,
            "ets": ets,
        }

    def counts(self) -> dict[str, int]:
        if hasattr(self._process, "num_fds"):
            ports = self._process.num_fds()
        else:
            ports = self._process.num_handles()
        return {
            "atoms": len(sys.modules),
            "ports": ports,
            "processes": len(psutil.pids()),
        }

    def limits(self) -> dict[str, int | None]:
        return {
            "atoms": None,
            "ports": self._rlimit("RLIMIT_NOFILE"),
            "processes": self._rlimit("RLIMIT_NPROC"),
        }

    def _rlimit(self, name: str) -> int | None:
        resource = getattr(psutil, name, None)
        if resource is None or not hasattr(self._process, "rlimit"):
            return None
        soft, _hard = self._process.rlimit(resource)
        return None if soft == psutil.RLIM_INFINITY else soft

    def io_totals(self) -> tuple[int, int]:
        counters = psutil.net_io_counters()
        if counters is None:
            return (0, 0)
        return (counters.bytes_recv, counters.bytes_sent)

    def uptime(self) -> int:
        return int((time.time() - self._process.create_time()) * 1000)

    def run_queues(self) -> tuple[int, int]:
        total = round(psutil.getloadavg()[0])
        return (total, min(total, psutil.cpu_count() or 1))

    def describe(self) -> dict[str, str]:
        return {
            "banner": sys.version.replace("\n", " "),
            "python_version": platform.python_version(),
            "psutil_version": psutil.__version__,
            "system_architecture": f"{platform.machine()}-{platform.system().lower()}",
        }
