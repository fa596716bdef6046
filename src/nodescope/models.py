"""Data models for nodescope."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SortDirection(Enum):
    """Sort directions accepted by the snapshot collectors."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def coerce(cls, value: "SortDirection | str") -> "SortDirection":
        """Accept either a member or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Invalid sort direction: {value!r}") from None


@dataclass(slots=True, frozen=True)
class ResourceHandle:
    """Weak, node-scoped reference to a process, port or table.

    Sockets are ports whose driver is a network driver. The handle never
    keeps the resource alive; the owning node decides whether it is still
    valid at the time of each call.
    """

    node: str
    kind: str  # 'process', 'port' or 'table'
    ident: int | str

    def __str__(self) -> str:
        return f"<{self.ident}>"


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Sorted, truncated page of records plus the total match count."""

    records: list[dict[str, Any]]
    total: int

    def __iter__(self):
        # Allows `records, total = snapshot`
        yield self.records
        yield self.total


@dataclass(slots=True, frozen=True)
class MemoryUsage:
    """Memory breakdown in bytes.

    Categories are read independently, so under concurrent allocation
    `other` may be transiently inconsistent with `total`, even negative.
    """

    total: int
    process: int
    atom: int
    binary: int
    code: int
    ets: int
    other: int

    @classmethod
    def from_counters(cls, counters: dict[str, int]) -> "MemoryUsage":
        """Build the breakdown from raw runtime counters."""
        total = counters["total"]
        process = counters["processes"]
        atom = counters["atom"]
        binary = counters["binary"]
        code = counters["code"]
        ets = counters["ets"]
        return cls(
            total=total,
            process=process,
            atom=atom,
            binary=binary,
            code=code,
            ets=ets,
            other=total - process - atom - binary - code - ets,
        )


@dataclass(slots=True, frozen=True)
class UsageRecord:
    """System-wide counters read at call time."""

    atoms: int
    ports: int
    processes: int
    io: tuple[int, int]  # (input bytes, output bytes)
    uptime: int  # Milliseconds
    memory: MemoryUsage
    total_run_queue: int
    cpu_run_queue: int


@dataclass(slots=True, frozen=True)
class SystemInfoRecord:
    """Descriptive node information combined with one usage read."""

    system_info: dict[str, str]
    system_limits: dict[str, int | None]
    system_usage: UsageRecord = field(repr=False)
