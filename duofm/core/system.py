"""
Operating-system collaborators: default-app opener and external text editor.
"""
from __future__ import annotations

import contextlib
import logging
import os
import shlex
import shutil
import subprocess
import sys
import tempfile

from .errors import EditorProcessError

LOGGER = logging.getLogger(__name__)


def _opener_command():
    if sys.platform == 'darwin':
        return shutil.which('open')
    return shutil.which('xdg-open')


class DefaultAppOpener:
    """Hand a file to the desktop's default application."""

    def open(self, path: str) -> bool:
        if sys.platform == 'win32':
            try:
                os.startfile(path)  # type: ignore[attr-defined]
            except OSError:
                LOGGER.warning('startfile failed for %s', path, exc_info=True)
                return False
            return True

        exe = _opener_command()
        if not exe:
            LOGGER.warning('No default-app opener available for %s', path)
            return False
        try:
            subprocess.Popen(
                [exe, path],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError:
            LOGGER.warning('Could not launch %s for %s', exe, path, exc_info=True)
            return False
        return True


def resolve_editor_command(configured: str = '') -> list[str]:
    """Return the editor argv: config value, then $VISUAL, $EDITOR, ``vi``."""
    for candidate in (configured, os.environ.get('VISUAL', ''), os.environ.get('EDITOR', '')):
        if candidate and candidate.strip():
            return shlex.split(candidate)
    return ['vi']


class TextEditor:
    """Round-trip a text buffer through an external editor process.

    ``suspend`` is an optional context-manager factory used to hand the
    terminal over to the editor (the curses front end passes one).
    """

    def __init__(self, command: str = '', suspend=None):
        self.command = command
        self._suspend = suspend or contextlib.nullcontext

    def edit(self, seed_text: str) -> str:
        argv = resolve_editor_command(self.command)
        fd, path = tempfile.mkstemp(prefix='duofm-', suffix='.txt')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as stream:
                stream.write(seed_text)
            try:
                with self._suspend():
                    completed = subprocess.run(argv + [path], check=False)
            except OSError as exc:
                raise EditorProcessError(f'Cannot start editor {argv[0]}: {exc.strerror or exc}') from exc
            if completed.returncode != 0:
                raise EditorProcessError(f'Editor exited with status {completed.returncode}')
            with open(path, encoding='utf-8') as stream:
                return stream.read()
        finally:
            with contextlib.suppress(OSError):
                os.remove(path)
