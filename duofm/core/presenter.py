"""
Presentation-layer interface consumed by the dispatcher.

Front ends subclass ``Presenter`` and override what they can show; the base
implementation ignores every call so headless use needs no stubs.
"""
from ..constants import NOTIFY_SHORT_MS


class Presenter:
    """Sink for everything the engine wants displayed."""

    def render(self, pane):
        """Redraw one pane."""

    def notify(self, message, duration_ms=NOTIFY_SHORT_MS, prefix=''):
        """Show a transient message."""

    def show_progress(self, label):
        """Open a progress indicator titled ``label``."""

    def update_progress(self, percent):
        """Move the progress indicator to ``percent`` (0..100)."""

    def hide_progress(self):
        """Close the progress indicator."""

    def show_search_overlay(self, results, selected_index):
        """Show search matches with one highlighted."""

    def hide_search_overlay(self):
        """Close the search overlay."""

    def show_preview(self, pane_index, image_path):
        """Display a generated preview image for a pane."""

    def visible_rows(self):
        """Number of list rows a pane can show."""
        return 20
