"""Turn raw runtime attribute sets into uniform records.

Every function returns None when the resource disappeared (or, for
sockets, when any of the chained reads failed) so callers can drop it.
"""

import logging
from typing import Any

from nodescope.formatting import format_address, format_call, format_socket_state
from nodescope.models import ResourceHandle
from nodescope.runtime import PROCESS_KEYS, SOCKET_DRIVERS, Runtime

logger = logging.getLogger(__name__)

# Fallback label when the runtime cannot tell which module owns a socket
DEFAULT_SOCKET_MODULE = "socket"


def normalize_process(runtime: Runtime, handle: ResourceHandle) -> dict[str, Any] | None:
    info = runtime.process_info(handle, PROCESS_KEYS)
    if info is None:
        return None

    name = info.get("registered_name")
    name_or_initial_call = str(name) if name else format_call(info.get("initial_call"))

    return {
        "pid": handle,
        "name_or_initial_call": name_or_initial_call,
        "memory": info.get("memory"),
        "reductions": info.get("reductions"),
        "message_queue_len": info.get("message_queue_len"),
        "current_function": info.get("current_function"),
    }


def normalize_port(runtime: Runtime, handle: ResourceHandle) -> dict[str, Any] | None:
    info = runtime.port_info(handle)
    if info is None or info.get("driver") in SOCKET_DRIVERS:
        return None
    return {"port": handle, **info}


def normalize_table(runtime: Runtime, handle: ResourceHandle) -> dict[str, Any] | None:
    info = runtime.table_info(handle)
    if info is None:
        return None
    rest = {key: value for key, value in info.items() if key != "name"}
    return {"name": str(info.get("name")), **rest}


def normalize_socket(runtime: Runtime, handle: ResourceHandle) -> dict[str, Any] | None:
    """
    Combine port info with socket reads into one record.

    A socket record is all or nothing: if the port is gone, is not a
    socket, or any of the stats/status/type reads fail, None is returned.
    """
    info = runtime.port_info(handle)
    if info is None or info.get("driver") not in SOCKET_DRIVERS:
        return None

    try:
        stats = runtime.socket_stats(handle)
        state = runtime.socket_status(handle)
        socket_type = runtime.socket_type(handle)
    except OSError as exc:
        logger.debug("Dropping socket %r: %s", handle, exc)
        return None

    module = runtime.socket_module(handle) or DEFAULT_SOCKET_MODULE

    return {
        "port": handle,
        "module": module,
        "local_address": _read_address(runtime.sockname, handle),
        "foreign_address": _read_address(runtime.peername, handle),
        "state": format_socket_state(state),
        "type": socket_type,
        **info,
        "send_oct": stats.get("send_oct"),
        "recv_oct": stats.get("recv_oct"),
    }


def _read_address(reader, handle: ResourceHandle) -> str:
    try:
        address = reader(handle)
    except OSError as exc:
        return format_address(exc)
    return format_address(address)
