"""
Error kinds raised by the duofm engine.

Low-level helpers raise these; panes and the dispatcher turn them into
``ActionResult(ActionType.ERROR, ...)`` values that end up as notifications.
"""


class DuoFMError(Exception):
    """Base class for recoverable engine errors."""

    kind = 'Error'

    def __init__(self, message='', path=None):
        super().__init__(message)
        self.path = path


class PathUnreadable(DuoFMError):
    kind = 'PathUnreadable'


class DestinationCollision(DuoFMError):
    kind = 'DestinationCollision'


class TransferIOError(DuoFMError):
    kind = 'TransferIOError'


class OperationCancelled(DuoFMError):
    """Raised inside a background worker when its cancel token fires."""

    kind = 'Cancelled'


class ProbeError(DuoFMError):
    kind = 'ProbeError'


class ExtractError(DuoFMError):
    kind = 'ExtractError'


class ComposeError(DuoFMError):
    kind = 'ComposeError'


class EditorProcessError(DuoFMError):
    kind = 'EditorProcessError'


class NameConflictOnCreate(DuoFMError):
    kind = 'NameConflictOnCreate'
