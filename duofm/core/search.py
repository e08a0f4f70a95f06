"""Incremental name search over the active pane."""

from .sequencer import BACKSPACE


class SearchSession:
    """Query text plus the matching entries of one pane."""

    def __init__(self, entries):
        self._entries = list(entries)
        self.query = ''
        self.selected = 0
        self.results = list(self._entries)

    def _refilter(self):
        needle = self.query.casefold()
        self.results = [e for e in self._entries if needle in e.name.casefold()]
        self.selected = 0

    def feed(self, event):
        """Apply one pass-through key; return True when the query changed."""
        if event.ctrl or event.alt:
            return False
        if event.key == BACKSPACE:
            if not self.query:
                return False
            self.query = self.query[:-1]
        elif len(event.key) == 1 and event.key.isprintable():
            self.query += event.key
        else:
            return False
        self._refilter()
        return True

    def navigate(self, delta):
        if not self.results:
            self.selected = 0
            return
        self.selected = max(0, min(self.selected + delta, len(self.results) - 1))

    def current(self):
        if 0 <= self.selected < len(self.results):
            return self.results[self.selected]
        return None
