"""Shared fixtures: a deterministic in-memory runtime."""

import errno
from contextlib import contextmanager
from typing import Any

import pytest

from nodescope.dispatch import LocalTransport
from nodescope.inspector import Inspector
from nodescope.models import ResourceHandle
from nodescope.system_info import SystemInfo

NODE = "node-a"


class FakeRuntime:
    """Runtime serving fixed data, with handles that can vanish on lookup."""

    def __init__(self, node: str = NODE) -> None:
        self.node = node
        self.processes: dict[int, dict[str, Any]] = {}
        self.ports: dict[int, dict[str, Any]] = {}
        self.sockets: dict[int, dict[str, Any]] = {}
        self.tables: dict[int, dict[str, Any]] = {}
        self.live_process_count: int | None = None
        self.scans = 0
        # Handles listed by enumeration but gone by the time they are read
        self.vanished: set[tuple[str, Any]] = set()
        self.memory_counters = {
            "total": 1000,
            "processes": 300,
            "atom": 50,
            "binary": 120,
            "code": 200,
            "ets": 80,
        }

    def handle(self, kind: str, ident: Any) -> ResourceHandle:
        return ResourceHandle(node=self.node, kind=kind, ident=ident)

    @contextmanager
    def scan(self):
        self.scans += 1
        yield

    def _gone(self, handle: ResourceHandle) -> bool:
        return (handle.kind, handle.ident) in self.vanished

    def process_handles(self):
        return [self.handle("process", pid) for pid in self.processes]

    def process_info(self, handle, keys):
        if self._gone(handle) or handle.ident not in self.processes:
            return None
        info = self.processes[handle.ident]
        return {key: info[key] for key in keys if key in info}

    def process_count(self):
        if self.live_process_count is not None:
            return self.live_process_count
        return len(self.processes)

    def port_handles(self):
        return [self.handle("port", ident) for ident in self.ports]

    def port_info(self, handle):
        if self._gone(handle) or handle.ident not in self.ports:
            return None
        return dict(self.ports[handle.ident])

    def _socket(self, handle):
        if self._gone(handle) or handle.ident not in self.sockets:
            raise OSError(errno.EBADF, "Bad file descriptor")
        return self.sockets[handle.ident]

    def _read(self, handle, key):
        value = self._socket(handle)[key]
        if isinstance(value, OSError):
            raise value
        return value

    def socket_stats(self, handle):
        return self._read(handle, "stats")

    def socket_status(self, handle):
        return self._read(handle, "status")

    def socket_type(self, handle):
        return self._read(handle, "type")

    def socket_module(self, handle):
        return self._socket(handle).get("module")

    def sockname(self, handle):
        return self._read(handle, "sockname")

    def peername(self, handle):
        return self._read(handle, "peername")

    def table_handles(self):
        return [self.handle("table", ident) for ident in self.tables]

    def table_info(self, handle):
        if self._gone(handle) or handle.ident not in self.tables:
            return None
        return dict(self.tables[handle.ident])

    def memory(self):
        return dict(self.memory_counters)

    def counts(self):
        return {"atoms": 9000, "ports": len(self.ports), "processes": self.process_count()}

    def limits(self):
        return {"atoms": 1048576, "ports": 65536, "processes": None}

    def io_totals(self):
        return (4096, 2048)

    def uptime(self):
        return 90061000

    def run_queues(self):
        return (3, 2)

    def describe(self):
        return {
            "banner": "FakeRuntime 1.0",
            "python_version": "3.12.0",
            "psutil_version": "0",
            "system_architecture": "test-arch",
        }

    def add_process(self, pid, name=None, initial_call=("app.worker", "loop", 1), **info):
        self.processes[pid] = {
            "registered_name": name,
            "initial_call": initial_call,
            "memory": info.get("memory", 1000),
            "reductions": info.get("reductions", 0),
            "message_queue_len": info.get("message_queue_len", 0),
            "current_function": info.get("current_function", ("gen_server", "loop", 3)),
        }

    def add_port(self, ident, driver="efile", **info):
        self.ports[ident] = {
            "id": ident,
            "driver": driver,
            "name": info.get("name", driver),
            "connected": info.get("connected"),
            "os_pid": info.get("os_pid"),
            "input": info.get("input", 0),
            "output": info.get("output", 0),
        }

    def add_socket(
        self,
        ident,
        sockname=("0.0.0.0", 4000),
        peername=None,
        status=frozenset({"bound", "listen", "listening", "open"}),
        driver="tcp_inet",
        **info,
    ):
        self.add_port(ident, driver=driver)
        self.sockets[ident] = {
            "stats": info.get("stats", {"send_oct": 0, "recv_oct": 0}),
            "status": status,
            "type": info.get("type", "stream"),
            "module": info.get("module", "inet_tcp"),
            "sockname": sockname,
            "peername": peername
            if peername is not None
            else OSError(errno.ENOTCONN, "Socket is not connected"),
        }

    def add_table(self, ident, name, size=0, memory=0, **info):
        self.tables[ident] = {
            "id": ident,
            "name": name,
            "size": size,
            "memory": memory,
            "type": info.get("type", "set"),
            "owner": info.get("owner"),
            "protection": info.get("protection", "public"),
        }


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def inspector(runtime: FakeRuntime) -> Inspector:
    return Inspector(runtime)


@pytest.fixture
def system_info(inspector: Inspector) -> SystemInfo:
    return SystemInfo(LocalTransport({NODE: inspector}))
