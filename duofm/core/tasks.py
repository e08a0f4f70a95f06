"""
Cancellable background tasks.

A ``BackgroundTask`` runs a worker callable on its own thread. The worker
receives a ``CancelToken`` and an ``emit`` function for progress events; the
control thread drains those events with ``drain()`` and reads the terminal
``TaskOutcome`` once ``done`` is set. Nothing here touches pane state.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable

from .errors import DuoFMError, OperationCancelled

LOGGER = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag polled by workers."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelled('operation cancelled')


@dataclass(frozen=True)
class Completed:
    value: Any = None


@dataclass(frozen=True)
class Cancelled:
    value: Any = None


@dataclass(frozen=True)
class Failed:
    kind: str
    message: str


TaskOutcome = Completed | Cancelled | Failed


class BackgroundTask:
    """Run ``worker(token, emit)`` on a thread and collect its outcome."""

    def __init__(self, worker: Callable[[CancelToken, Callable[[Any], None]], Any], *, name='duofm-task'):
        self._worker = worker
        self.name = name
        self.token = CancelToken()
        self.outcome: TaskOutcome | None = None
        self._events: Queue = Queue()
        self._done = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self):
        self.token.cancel()

    def emit(self, event):
        self._events.put(event)

    def run(self):
        """Execute the worker on the calling thread."""
        try:
            value = self._worker(self.token, self.emit)
        except OperationCancelled:
            self.outcome = Cancelled()
        except DuoFMError as exc:
            self.outcome = Failed(exc.kind, str(exc))
        except Exception as exc:  # pragma: no cover - unexpected worker crash
            LOGGER.exception('Background task %s crashed', self.name)
            self.outcome = Failed(type(exc).__name__, str(exc))
        else:
            if self.token.cancelled:
                self.outcome = Cancelled(value)
            else:
                self.outcome = Completed(value)
        finally:
            self._done.set()
        LOGGER.debug('Task %s finished: %r', self.name, self.outcome)
        return self.outcome

    def start(self):
        thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread = thread
        thread.start()
        return self

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)
        return self._done.is_set()

    def drain(self):
        """Return all progress events queued so far, in emission order."""
        events = []
        while True:
            try:
                events.append(self._events.get_nowait())
            except Empty:
                return events
