"""Search filtering and sorting of normalized records."""

from numbers import Number
from typing import Any

from nodescope.models import ResourceHandle, SortDirection

# Fields a search term is matched against, per resource class
MATCH_FIELDS: dict[str, tuple[str, ...]] = {
    "process": ("pid", "name_or_initial_call"),
    "port": ("port", "driver"),
    "table": ("name",),
    "socket": ("local_address", "foreign_address"),
}


def matches(kind: str, record: dict[str, Any], search: str | None) -> bool:
    """Check whether any match field of the record contains the search term."""
    if not search:
        return True
    term = search.lower()
    return any(
        term in str(record.get(field, "")).lower() for field in MATCH_FIELDS[kind]
    )


def _plain(value: Any) -> Any:
    # Handles sort by their identifier
    return value.ident if isinstance(value, ResourceHandle) else value


def _rank(value: Any) -> tuple[int, Any]:
    """Total-order key: numbers first by value, then everything else as text."""
    value = _plain(value)
    if isinstance(value, Number) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def sort_records(
    records: list[dict[str, Any]],
    key: str,
    direction: SortDirection | str,
    numeric: bool = False,
) -> list[dict[str, Any]]:
    """
    Stable sort of records by one field.

    Args:
        records: Normalized records, in enumeration order.
        key: Field to sort by. Must be present in every record.
        direction: Ascending or descending. Ties keep enumeration order
            in both directions.
        numeric: Treat non-integer values as 0 instead of ranking them.
    """
    direction = SortDirection.coerce(direction)

    if numeric:

        def sort_key(record: dict[str, Any]) -> Any:
            value = _plain(record[key])
            return value if isinstance(value, int) and not isinstance(value, bool) else 0

    else:

        def sort_key(record: dict[str, Any]) -> Any:
            return _rank(record[key])

    return sorted(records, key=sort_key, reverse=direction is SortDirection.DESC)
