"""Formatting helpers shared by the normalizer and the front ends."""

import errno
import ipaddress
from collections.abc import Iterable
from typing import Any

_LOOPBACKS = (ipaddress.ip_address("127.0.0.1"), ipaddress.ip_address("::1"))

# (sorted flag prefix, label), checked in order
_STATE_PREFIXES: list[tuple[tuple[str, ...], str]] = [
    (("accepting",), "ACCEPTING"),
    (("bound", "busy", "connected"), "BUSY"),
    (("bound", "connected"), "CONNECTED"),
    (("bound", "listen", "listening"), "LISTENING"),
    (("bound", "listen"), "LISTEN"),
    (("bound", "connecting"), "CONNECTING"),
]

_STATE_EXACT: dict[tuple[str, ...], str] = {
    ("bound", "open"): "BOUND",
    ("connected", "open"): "CONNECTED",
    ("open",): "IDLE",
    (): "CLOSED",
}


def format_call(initial_call: tuple[str, str, int] | None) -> str:
    """Format a `(module, function, arity)` descriptor as `module.function/arity`."""
    if not initial_call:
        return "undefined"
    module, function, arity = initial_call
    return f"{module}.{function}/{arity}"


def format_address(address: Any) -> str:
    """
    Format a socket address the way `netstat`-style tools print it.

    Args:
        address: An `(ip, port)` pair, a unix-domain path string, or the
            `OSError` raised while reading the address.
    """
    if isinstance(address, OSError):
        return "*:*" if address.errno == errno.ENOTCONN else " "

    if isinstance(address, (str, bytes)):
        path = address.decode(errors="replace") if isinstance(address, bytes) else address
        return f"local:{path}"

    ip, port = address[0], address[1]
    ip = ipaddress.ip_address(ip)
    if ip.is_unspecified:
        return f"*:{port}"
    if ip in _LOOPBACKS:
        return f"localhost:{port}"
    return f"{ip}:{port}"


def format_socket_state(flags: Iterable[str]) -> str:
    """Collapse a set of socket status flags into a single state label."""
    ordered = tuple(sorted(flags))

    for prefix, label in _STATE_PREFIXES:
        if ordered[: len(prefix)] == prefix:
            return label

    if ordered in _STATE_EXACT:
        return _STATE_EXACT[ordered]

    # Unrecognized combination, show it as is
    return str(list(ordered))


def format_bytes(size: int | None) -> str:
    """Format bytes as human-readable string."""
    if size is None:
        return "-"
    for unit in ["B", "K", "M", "G", "T"]:
        if abs(size) < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{size:5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def format_duration(milliseconds: int) -> str:
    """Format an uptime in milliseconds as `[N days, ]HH:MM:SS`."""
    uptime = milliseconds // 1000
    days = uptime // 86400
    hours = (uptime % 86400) // 3600
    minutes = (uptime % 3600) // 60
    seconds = uptime % 60
    if days > 0:
        return f"{days} days, {hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
