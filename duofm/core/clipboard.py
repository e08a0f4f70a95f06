"""
Clipboard sink for duofm.
"""
from __future__ import annotations

import logging

import pyperclip

LOGGER = logging.getLogger(__name__)


class ClipboardSink:
    """Write-only clipboard collaborator backed by pyperclip."""

    def write_text(self, text: str) -> bool:
        """Hand text to the system clipboard; False when no backend is usable."""
        try:
            pyperclip.copy(text or "")
        except pyperclip.PyperclipException:
            LOGGER.warning("system clipboard unavailable", exc_info=True)
            return False
        return True
