"""MIDI input selection screen."""
from typing import List, TYPE_CHECKING

from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Label, ListItem, ListView

from components.header_widget import HeaderWidget
from errors import MIDIConnectionError

if TYPE_CHECKING:
    from midi.connection import MIDIConnection

# Seconds between checks that the connected input is still present.
SOURCE_CHECK_INTERVAL = 2.0


class ConnectionMode(Screen):
    """Lists MIDI inputs; selecting one connects it to the piano."""

    BINDINGS = [
        Binding("r", "rescan", "Rescan Devices", show=True),
        Binding("space", "select_source", "Select", show=True),
        Binding("escape", "quit_app", "Quit", show=True),
    ]

    CSS = """
    ConnectionMode {
        align: center middle;
        background: #1a0b2e;
    }

    #connection-container {
        width: 70;
        height: auto;
        border: thick #b388ff;
        background: #2d1b4e;
        padding: 1 2;
    }

    #source-list {
        width: 100%;
        height: 12;
        border: solid #b388ff;
        margin: 1 0;
    }

    #hint {
        width: 100%;
        content-align: center middle;
        color: #d1c4e9;
    }

    #instructions {
        width: 100%;
        content-align: center middle;
        color: #888888;
        text-style: italic;
        margin-top: 1;
    }
    """

    def __init__(self, connection: 'MIDIConnection'):
        super().__init__()
        self.connection = connection
        self.sources: List[str] = []
        self._shown_status = ""

    def compose(self):
        """Compose the connection screen layout."""
        yield Header()
        with Vertical(id="connection-container"):
            yield HeaderWidget("TOY PIANO", self.connection.status_message, id="banner")
            yield ListView(id="source-list")
            yield Label("Plug in your MIDI keyboard, rescan, and select it.", id="hint")
            yield Label("↑↓: Navigate | Enter/Space: Select | R: Rescan | Esc: Quit",
                        id="instructions")
        yield Footer()

    def on_mount(self):
        """Called when screen is mounted."""
        self.refresh_source_list(self.connection.sources)
        # Input callbacks run on driver threads; poll the status from here.
        self.set_interval(0.25, self._refresh_status)
        self.set_interval(SOURCE_CHECK_INTERVAL, self._check_source)

    def refresh_source_list(self, sources: List[str]):
        """Rebuild the list, marking the connected source."""
        list_view = self.query_one("#source-list", ListView)
        list_view.clear()
        self.sources = list(sources)

        if not self.sources:
            error = getattr(self.connection.backend, "last_error", None)
            list_view.append(ListItem(Label(f"❌ {error}" if error else "No MIDI ports found")))
        else:
            active = self.connection.state.source if self.connection.is_connected() else None
            for source in self.sources:
                mark = "☑" if source == active else "☐"
                list_view.append(ListItem(Label(f"{mark} {source}")))
            list_view.index = 0
        self._refresh_status()

    def _refresh_status(self):
        status = self.connection.status_message
        if status == self._shown_status:
            return
        self._shown_status = status
        self.query_one("#banner", HeaderWidget).update_status(status)
        if self.connection.is_connected():
            self.app.sub_title = f"🎹 Device: {self.connection.state.source}"
        else:
            self.app.sub_title = "⚠ No MIDI device connected"

    def _check_source(self):
        source = self.connection.state.source
        if not self.connection.check_source():
            self.app.notify(f"✗ {source} disconnected", severity="error")
            self.refresh_source_list(self.connection.list_sources())

    def action_rescan(self):
        """Re-enumerate MIDI inputs."""
        self.refresh_source_list(self.connection.rescan())

    def action_select_source(self):
        """Connect the highlighted source."""
        index = self.query_one("#source-list", ListView).index
        if index is not None and 0 <= index < len(self.sources):
            self._connect(self.sources[index])

    def on_list_view_selected(self, event: ListView.Selected):
        event.stop()
        self.action_select_source()

    def _connect(self, source: str):
        try:
            self.connection.select(source)
            self.app.notify(f"✓ Connected: {source}")
        except MIDIConnectionError as e:
            self.app.notify(f"✗ {e.reason}", severity="error")
        self.refresh_source_list(self.sources)

    def action_quit_app(self):
        self.app.exit()
