"""nodescope - Live Textual dashboard."""

from queue import Empty, Queue
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Input, Static

from nodescope.config import Settings
from nodescope.dispatch import TransportFailure
from nodescope.formatting import format_bytes, format_duration
from nodescope.models import Snapshot, SortDirection, UsageRecord
from nodescope.monitor import Refresher
from nodescope.system_info import SystemInfo
from nodescope.ui import COLUMNS, DEFAULT_SORT, format_cell

VIEWS = list(COLUMNS)


class HeaderStats(Static):
    """Header widget showing usage counters of the node."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        min-height: 5;
        padding: 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._usage: UsageRecord | None = None

    def update_usage(self, usage: UsageRecord) -> None:
        """Update the statistics from a usage record."""
        self._usage = usage
        self.update(self._get_usage_info())

    def _get_usage_info(self) -> str:
        """Get usage info display."""
        usage = self._usage
        if usage is None:
            return "Loading usage info..."

        memory = usage.memory
        return (
            f"Processes: {usage.processes}  Ports: {usage.ports}  Atoms: {usage.atoms}  "
            f"Run queue: {usage.total_run_queue}/{usage.cpu_run_queue}\n"
            f"Memory: {format_bytes(memory.total).strip()} "
            f"(process {format_bytes(memory.process).strip()}, "
            f"code {format_bytes(memory.code).strip()}, "
            f"ets {format_bytes(memory.ets).strip()}, "
            f"other {format_bytes(memory.other).strip()})\n"
            f"IO: in {format_bytes(usage.io[0]).strip()} / out {format_bytes(usage.io[1]).strip()}  "
            f"Uptime: {format_duration(usage.uptime)}"
        )


class ResourceTable(Container):
    """Container for the table of the selected resource class."""

    DEFAULT_CSS = """
    ResourceTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ResourceTable."""
        super().__init__(*args, **kwargs)
        self._kind: str = VIEWS[0]
        self._sort_key: str = DEFAULT_SORT[self._kind]
        self._sort_dir: SortDirection = SortDirection.DESC
        self._search: str | None = None
        self._row_count: int = 0

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def sort_key(self) -> str:
        return self._sort_key

    @property
    def sort_dir(self) -> SortDirection:
        return self._sort_dir

    @property
    def search(self) -> str | None:
        return self._search

    @search.setter
    def search(self, value: str | None) -> None:
        self._search = value or None

    @property
    def row_count(self) -> int:
        return self._row_count

    def cycle_view(self) -> str:
        """Switch to the next resource class and return it."""
        self._kind = VIEWS[(VIEWS.index(self._kind) + 1) % len(VIEWS)]
        self._sort_key = DEFAULT_SORT[self._kind]
        self._sort_dir = SortDirection.DESC
        self._reset_columns()
        return self._kind

    def cycle_sort(self) -> str:
        """Cycle to the next sort key and return it."""
        keys = [key for key, _ in COLUMNS[self._kind]]
        self._sort_key = keys[(keys.index(self._sort_key) + 1) % len(keys)]
        return self._sort_key

    def toggle_direction(self) -> SortDirection:
        self._sort_dir = (
            SortDirection.ASC if self._sort_dir is SortDirection.DESC else SortDirection.DESC
        )
        return self._sort_dir

    def compose(self) -> ComposeResult:
        """Compose the resource table."""
        yield DataTable(id="resource-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#resource-table", DataTable)
        table.cursor_type = "row"
        self._reset_columns()

    def _reset_columns(self) -> None:
        table = self.query_one("#resource-table", DataTable)
        table.clear(columns=True)
        for key, label in COLUMNS[self._kind]:
            table.add_column(label, key=key)
        self._row_count = 0

    def update_snapshot(self, kind: str, snapshot: Snapshot) -> None:
        """Replace the table rows with a new snapshot of `kind`."""
        if kind != self._kind:
            # Stale result from before the view changed
            return

        table = self.query_one("#resource-table", DataTable)
        table.clear()
        for record in snapshot.records:
            table.add_row(*(format_cell(key, record.get(key)) for key, _ in COLUMNS[kind]))
        self._row_count = len(snapshot.records)
        self.border_title = f"{kind} ({self._row_count} of {snapshot.total})"


class DashboardApp(App):
    """Main nodescope dashboard."""

    TITLE = "nodescope"
    SUB_TITLE = "Runtime Resource Inspector"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
        height: auto;
        min-height: 5;
    }

    #search {
        dock: bottom;
        display: none;
    }

    #search.visible {
        display: block;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("v", "cycle_view", "View"),
        ("f6", "sort", "Sort"),
        ("r", "reverse", "Reverse"),
        ("slash", "search", "Search"),
    ]

    def __init__(self, system_info: SystemInfo, node: str, settings: Settings) -> None:
        """Initialize the DashboardApp."""
        super().__init__()
        self._system_info = system_info
        self._node = node
        self._limit = settings.limit
        self.sub_title = node
        self._usage_queue: Queue[Any] = Queue()
        self._snapshot_queue: Queue[Any] = Queue()
        # (kind, search, sort key, direction) read by the refresher thread
        self._view: tuple[str, str | None, str, SortDirection] = (
            VIEWS[0],
            None,
            DEFAULT_SORT[VIEWS[0]],
            SortDirection.DESC,
        )
        self._usage_refresher = Refresher(
            lambda: self._system_info.fetch_system_usage(self._node),
            self._usage_queue,
            poll_rate=settings.poll_rate,
            name="UsageRefresher",
        )
        self._snapshot_refresher = Refresher(
            self._fetch_snapshot,
            self._snapshot_queue,
            poll_rate=settings.poll_rate,
            name="SnapshotRefresher",
        )

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        yield ResourceTable()
        yield Input(placeholder="Search...", id="search")
        yield Footer()

    def on_mount(self) -> None:
        """Start the refreshers when the app is mounted."""
        self._usage_refresher.start()
        self._snapshot_refresher.start()
        # Set up a timer to poll the queues for updates
        self.set_interval(0.5, self._check_for_updates)

    def _fetch_snapshot(self) -> tuple[str, Any]:
        kind, search, sort_key, sort_dir = self._view
        fetch = getattr(self._system_info, f"fetch_{kind}")
        return kind, fetch(self._node, search, sort_key, sort_dir, self._limit)

    def _sync_view(self) -> None:
        table = self.query_one(ResourceTable)
        self._view = (table.kind, table.search, table.sort_key, table.sort_dir)

    @staticmethod
    def _latest(queue: Queue) -> Any:
        """Drain the queue and return the most recent item, if any."""
        item = None
        while True:
            try:
                item = queue.get_nowait()
            except Empty:
                return item

    def _check_for_updates(self) -> None:
        """Check the queues for results and refresh the UI."""
        usage = self._latest(self._usage_queue)
        if isinstance(usage, TransportFailure):
            self.notify(f"Usage: {usage.reason}", severity="error")
        elif usage is not None:
            self.query_one("#header-stats", HeaderStats).update_usage(usage)

        latest = self._latest(self._snapshot_queue)
        if latest is None:
            return
        kind, snapshot = latest
        if isinstance(snapshot, TransportFailure):
            self.notify(f"{kind}: {snapshot.reason}", severity="error")
        else:
            self.query_one(ResourceTable).update_snapshot(kind, snapshot)

    def action_cycle_view(self) -> None:
        """Switch to the next resource class."""
        kind = self.query_one(ResourceTable).cycle_view()
        self._sync_view()
        self.notify(f"View: {kind}")

    def action_sort(self) -> None:
        """Cycle through sort keys of the current view."""
        sort_key = self.query_one(ResourceTable).cycle_sort()
        self._sync_view()
        self.notify(f"Sort: {sort_key}")

    def action_reverse(self) -> None:
        sort_dir = self.query_one(ResourceTable).toggle_direction()
        self._sync_view()
        self.notify(f"Direction: {sort_dir.value}")

    def action_search(self) -> None:
        """Show the search box."""
        search = self.query_one("#search", Input)
        search.add_class("visible")
        search.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Apply the search term and hide the search box."""
        self.query_one(ResourceTable).search = event.value.strip()
        self._sync_view()
        event.input.remove_class("visible")
        self.query_one("#resource-table", DataTable).focus()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._usage_refresher.stop()
        self._snapshot_refresher.stop()
        self.exit()
