"""Textual-based UI for docktop."""

from __future__ import annotations

from typing import Optional

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Static
from rich.markup import escape as rich_escape

from .controller import Dashboard
from .model import (
    ContainerRecord, DashboardView, DetailView, FilterMode, ImageRecord,
    NetworkRecord, ResourceKind, ResourceRecord, VolumeRecord,
)

KIND_TABS = [
    ("1", ResourceKind.CONTAINERS),
    ("2", ResourceKind.IMAGES),
    ("3", ResourceKind.NETWORKS),
    ("4", ResourceKind.VOLUMES),
]

HINTS = (
    "<Ent> details | <T> all/running | <R> start/restart | <S> stop | "
    "<X> kill | <Del/D> remove | <F> force remove | <1-4> kind | <Q> back/quit"
)


def format_header(kind: ResourceKind) -> str:
    if kind is ResourceKind.CONTAINERS:
        return "NAME                     STATUS     PORTS                  IMAGE"
    if kind is ResourceKind.IMAGES:
        return "NAME                          SIZE       CREATED          STATUS"
    if kind is ResourceKind.NETWORKS:
        return "NAME                 DRIVER     SCOPE      SUBNET"
    return "NAME                           DRIVER     MOUNTPOINT"


def format_row(record: ResourceRecord) -> str:
    if isinstance(record, ContainerRecord):
        ports = ", ".join(str(p) for p in record.ports) or "-"
        return f"{record.name[:24]:24} {record.status[:10]:10} {ports[:22]:22} {record.image[:30]}"
    if isinstance(record, ImageRecord):
        return f"{record.name[:29]:29} {record.size_mb:8.1f}MB {record.created[:16]:16} {record.status}"
    if isinstance(record, NetworkRecord):
        return f"{record.name[:20]:20} {record.driver[:10]:10} {record.status[:10]:10} {record.subnet}"
    if isinstance(record, VolumeRecord):
        return f"{record.name[:30]:30} {record.driver[:10]:10} {record.mountpoint}"
    return ""


def summary_fields(record: ResourceRecord) -> list[tuple[str, str]]:
    """Short field list for the side panel of the list view."""
    fields = [("ID", record.id), ("Name", record.name), ("Status", record.status), ("Created", record.created)]
    if isinstance(record, ContainerRecord):
        fields.append(("Image", record.image))
        fields.append(("Ports", ", ".join(str(p) for p in record.ports) or "-"))
    elif isinstance(record, ImageRecord):
        fields.append(("Tags", ", ".join(record.tags) or "-"))
        fields.append(("Size", f"{record.size_mb:.1f}MB"))
    elif isinstance(record, NetworkRecord):
        fields.append(("Driver", record.driver))
        fields.append(("Subnet", record.subnet))
    elif isinstance(record, VolumeRecord):
        fields.append(("Driver", record.driver))
        fields.append(("Mountpoint", record.mountpoint))
    return fields


def render_tabs(view: DashboardView) -> str:
    parts = []
    for key, kind in KIND_TABS:
        label = f"{key} {kind.value.upper()}"
        parts.append(f"[reverse] {label} [/reverse]" if kind is view.kind else f" {label} ")
    return " ".join(parts)


def visible_window(cursor: Optional[int], offset: int, height: int, total: int) -> int:
    """Scroll offset that keeps the cursor inside a window of `height` rows."""
    if cursor is None or total == 0:
        return 0
    if cursor < offset:
        return cursor
    if cursor >= offset + height:
        return cursor - height + 1
    return min(offset, max(0, total - height))


def render_list(view: DashboardView, offset: int = 0, height: Optional[int] = None) -> str:
    records = view.records
    height = height if height is not None else max(1, len(records))
    lines = [rich_escape(format_header(view.kind)), ""]
    for idx, record in enumerate(records[offset:offset + height], start=offset):
        marker = ">" if idx == view.cursor else " "
        busy = "*" if record.id in view.pending else " "
        line = rich_escape(f"{marker}{busy} {format_row(record)}")
        lines.append(f"[reverse]{line}[/reverse]" if idx == view.cursor else line)
    if not records:
        if view.filter_mode is FilterMode.RUNNING_ONLY and view.kind is ResourceKind.CONTAINERS:
            lines.append("(no running containers, press T to show all)")
        else:
            lines.append(f"(no {view.kind.value})")
    return "\n".join(lines)


def render_info(view: DashboardView) -> str:
    if isinstance(view.view, DetailView):
        record = view.detail
        if record is None:
            return "Loading..."
        fields = list(record.details.items()) or summary_fields(record)
        title = f"{record.kind.singular.upper()} {record.name}"
        if record.id in view.pending:
            title += "  (command in progress)"
        body = []
        for label, value in fields:
            lines = str(value).split("\n")
            body.append(f"[b]{rich_escape(label)}:[/b] {rich_escape(lines[0])}")
            body.extend(f"    {rich_escape(extra)}" for extra in lines[1:])
        return "\n".join([f"[b]{rich_escape(title)}[/b]", ""] + body)

    if view.cursor is None or view.cursor >= len(view.records):
        return "No selection"
    record = view.records[view.cursor]
    return "\n".join(f"{rich_escape(label)}: {rich_escape(value)}" for label, value in summary_fields(record))


def render_status(view: DashboardView) -> str:
    filter_part = "RUNNING ONLY" if view.filter_mode is FilterMode.RUNNING_ONLY else "ALL"
    pending_part = f"{len(view.pending)} pending" if view.pending else ""
    return "  ".join(p for p in (filter_part, pending_part, view.message) if p)


class DocktopApp(App[None]):
    TITLE = "docktop"
    SUB_TITLE = "Docker dashboard"

    CSS = """
    Screen {
      layout: vertical;
    }

    #tabs {
      height: 1;
      padding: 0 1;
      background: $surface;
      color: $text;
    }

    #main {
      height: 1fr;
    }

    #list {
      width: 60%;
      height: 1fr;
      border: round $accent;
      padding: 0 1;
      overflow: auto;
    }

    #info {
      width: 40%;
      height: 1fr;
      border: round $accent;
      padding: 0 1;
      overflow: auto;
    }

    Screen.narrow #list {
      width: 100%;
    }

    Screen.narrow #info {
      display: none;
    }

    Screen.detail #list {
      display: none;
    }

    Screen.detail #info {
      display: block;
      width: 100%;
    }

    #status {
      height: 1;
      padding: 0 1;
      background: $panel;
      color: $text;
    }

    #hints {
      height: 1;
      padding: 0 1;
      color: $text-muted;
    }
    """

    def __init__(self, dashboard: Dashboard) -> None:
        super().__init__()
        self.dashboard = dashboard
        self.scroll_offset = 0
        self._rendered_version = -1

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="tabs")
        yield Vertical(
            Horizontal(
                Static("", id="list"),
                Static("", id="info"),
                id="top",
            ),
            id="main",
        )
        yield Static("", id="status", markup=False)
        yield Static(HINTS, id="hints", markup=False)

    def on_mount(self) -> None:
        self._apply_responsive_layout()
        self.dashboard.start()
        self.run_worker(
            self.dashboard.run_results(self._on_change),
            group="results",
            exclusive=True,
        )
        self._render()

    def on_resize(self, event: events.Resize) -> None:
        self._apply_responsive_layout()
        self._render()

    def _apply_responsive_layout(self) -> None:
        self.screen.set_class(self.size.width < 100, "narrow")

    def _on_change(self) -> None:
        # Results that did not touch the store need no redraw
        if self.dashboard.store.version != self._rendered_version:
            self._render()

    def _render(self) -> None:
        view = self.dashboard.view()
        self.screen.set_class(isinstance(view.view, DetailView), "detail")

        list_widget = self.query_one("#list", Static)
        height = max(1, list_widget.size.height - 4)
        self.scroll_offset = visible_window(view.cursor, self.scroll_offset, height, len(view.records))

        self.query_one("#tabs", Static).update(render_tabs(view))
        list_widget.update(render_list(view, self.scroll_offset, height))
        self.query_one("#info", Static).update(render_info(view))
        self.query_one("#status", Static).update(render_status(view))
        self._rendered_version = view.version

    async def on_key(self, event: events.Key) -> None:
        event.stop()
        if not self.dashboard.handle_key(event.key):
            await self.action_quit()
            return
        self._render()

    async def action_quit(self) -> None:
        self.dashboard.shutdown()
        self.exit()


def run(dashboard: Dashboard) -> None:
    app = DocktopApp(dashboard)
    app.run()
