"""Boxed title with a status line underneath."""
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.css.query import NoMatches
from textual.widgets import Static


class HeaderWidget(Vertical):
    """Displays the boxed application title and a one-line status."""

    DEFAULT_CSS = """
    HeaderWidget {
        width: 100%;
        height: auto;
        align: center top;
        margin-bottom: 1;
    }

    .header-boxed {
        width: auto;
        height: auto;
        text-align: center;
        color: #b388ff;
    }

    #header-status {
        width: 100%;
        text-align: center;
        content-align: center middle;
    }
    """

    def __init__(self, title: str, status: str = "", **kwargs):
        super().__init__(**kwargs)
        self.title_text = title
        self.status_text = status

    def compose(self) -> ComposeResult:
        with Center():
            yield Static(self._create_boxed_title(self.title_text), classes="header-boxed")
        with Center():
            yield Static(self._format_status(self.status_text), id="header-status")

    def _create_boxed_title(self, title: str, width: int = 40) -> str:
        """Create a boxed title ASCII art."""
        title_padded = f" {title} "
        inner_width = max(width - 2, len(title_padded))
        padding = inner_width - len(title_padded)
        left_pad = padding // 2
        right_pad = padding - left_pad

        top = f"╔{'═' * inner_width}╗"
        mid = f"║{' ' * left_pad}{title_padded}{' ' * right_pad}║"
        bottom = f"╚{'═' * inner_width}╝"
        return f"{top}\n{mid}\n{bottom}"

    def _format_status(self, status: str) -> str:
        return f"[italic #888888]{status}[/]" if status else ""

    def update_status(self, status: str):
        """Replace the status line. Ignored before the widget is composed."""
        self.status_text = status
        try:
            self.query_one("#header-status", Static).update(self._format_status(status))
        except NoMatches:
            pass
