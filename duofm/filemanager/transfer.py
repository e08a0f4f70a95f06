"""
Transfer engine: copy, move and delete for one entry or a marked batch.

Jobs run inside a ``BackgroundTask``. The worker emits ``TransferProgress``,
``ItemSkipped`` and ``ItemFailed`` events; its return value is a
``TransferReport``. Progress for directories is blended from the children:
``done / total * 100 + child_progress / total``, clamped to [0, 100] and
never allowed to go backwards.
"""
import logging
import os
import shutil
from dataclasses import dataclass, field
from enum import Enum

from ..constants import DEFAULT_CHUNK_SIZE
from ..core.errors import DestinationCollision, OperationCancelled, TransferIOError
from ..core.tasks import BackgroundTask

LOGGER = logging.getLogger(__name__)

ALREADY_EXISTS = 'AlreadyExists'


class TransferKind(str, Enum):
    COPY = 'copy'
    MOVE = 'move'
    DELETE = 'delete'


@dataclass
class TransferJob:
    """Parameters and counters of one transfer."""

    kind: TransferKind
    sources: tuple
    destination_dir: str = None
    bytes_total: int = 0
    bytes_done: int = 0
    cancelled: bool = False

    @property
    def label(self):
        verb = {
            TransferKind.COPY: 'Copying',
            TransferKind.MOVE: 'Moving',
            TransferKind.DELETE: 'Deleting',
        }[self.kind]
        if len(self.sources) == 1:
            return f'{verb} {os.path.basename(self.sources[0][0])}'
        return f'{verb} {len(self.sources)} items'


@dataclass(frozen=True)
class TransferProgress:
    percent: float


@dataclass(frozen=True)
class ItemSkipped:
    name: str
    reason: str = ALREADY_EXISTS


@dataclass(frozen=True)
class ItemFailed:
    name: str
    kind: str
    message: str


@dataclass
class TransferReport:
    kind: TransferKind
    succeeded: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    cancelled: bool = False

    def summary(self):
        verb = {
            TransferKind.COPY: 'Copied',
            TransferKind.MOVE: 'Moved',
            TransferKind.DELETE: 'Deleted',
        }[self.kind]
        parts = [f'{verb} {len(self.succeeded)}']
        if self.skipped:
            parts.append(f'skipped {len(self.skipped)}')
        if self.failed:
            parts.append(f'failed {len(self.failed)}')
        if self.cancelled:
            parts.append('cancelled')
        return ', '.join(parts)


class ProgressEmitter:
    """Clamp progress to [0, 100] and drop values that would go backwards."""

    def __init__(self, emit):
        self._emit = emit
        self.last = 0.0

    def __call__(self, percent):
        percent = max(0.0, min(100.0, float(percent)))
        if percent <= self.last:
            return
        self.last = percent
        self._emit(TransferProgress(percent))


class ProgressNode:
    """Progress of one level (a batch or a directory) with ``total`` children."""

    def __init__(self, total, report):
        self.total = max(1, total)
        self.done = 0
        self._report = report

    def child(self, sub_percent):
        self._report(self.done / self.total * 100 + sub_percent / self.total)

    def item_done(self):
        self.done += 1
        self._report(self.done / self.total * 100)


def estimate_bytes(path):
    """Sum file sizes under ``path`` (recursively for directories)."""
    try:
        if os.path.islink(path):
            return 0
        if not os.path.isdir(path):
            return os.path.getsize(path)
    except OSError:
        return 0
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            full = os.path.join(root, name)
            try:
                if not os.path.islink(full):
                    total += os.path.getsize(full)
            except OSError:
                continue
    return total


def copy_file_chunked(src, dst, token, on_chunk, chunk_size=DEFAULT_CHUNK_SIZE):
    """Stream ``src`` into a new file ``dst``.

    ``on_chunk(nbytes, copied, total)`` runs after every chunk. Cancellation
    is checked before each chunk; a cancelled copy raises
    ``OperationCancelled`` and leaves the partial ``dst`` for the caller to
    discard.
    """
    total = os.path.getsize(src)
    copied = 0
    with open(src, 'rb') as fin, open(dst, 'xb') as fout:
        while True:
            token.raise_if_cancelled()
            chunk = fin.read(chunk_size)
            if not chunk:
                break
            fout.write(chunk)
            copied += len(chunk)
            on_chunk(len(chunk), copied, total)
    shutil.copystat(src, dst)
    return copied


def _discard(path):
    """Remove partial output created for an interrupted item."""
    try:
        if os.path.islink(path) or os.path.isfile(path):
            os.remove(path)
        elif os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
    except OSError:
        LOGGER.warning('Could not discard partial output %s', path, exc_info=True)


def remove_path(path):
    """Delete a file, symlink or directory tree."""
    if os.path.islink(path) or not os.path.isdir(path):
        os.remove(path)
    else:
        shutil.rmtree(path)


class TransferEngine:
    """Executes transfer jobs as background tasks, one at a time."""

    def __init__(self, chunk_size=DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size
        self.current = None

    @property
    def busy(self):
        return self.current is not None and not self.current.done

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def build_job(self, kind, selection, destination_dir=None):
        kind = TransferKind(kind)
        sources = tuple((entry.full_path, entry.is_dir) for entry in selection)
        if kind != TransferKind.DELETE and not destination_dir:
            raise ValueError(f'{kind.value} needs a destination directory')
        return TransferJob(kind, sources, destination_dir)

    def copy(self, selection, destination_dir):
        return self.submit(self.build_job(TransferKind.COPY, selection, destination_dir))

    def move(self, selection, destination_dir):
        return self.submit(self.build_job(TransferKind.MOVE, selection, destination_dir))

    def delete(self, selection):
        return self.submit(self.build_job(TransferKind.DELETE, selection))

    def submit(self, job):
        """Start ``job`` on a worker thread and return its task."""
        if self.busy:
            raise TransferIOError('Another transfer is already running.')
        task = BackgroundTask(lambda token, emit: self.run(job, token, emit), name='duofm-transfer')
        task.job = job
        self.current = task
        LOGGER.debug('Starting %s of %d item(s)', job.kind.value, len(job.sources))
        return task.start()

    def cancel(self):
        if self.busy:
            self.current.cancel()
            return True
        return False

    # ------------------------------------------------------------------
    # Worker body
    # ------------------------------------------------------------------

    def run(self, job, token, emit):
        """Execute ``job`` on the calling thread and return a TransferReport."""
        report = TransferReport(job.kind)
        if job.kind != TransferKind.DELETE:
            job.bytes_total = sum(estimate_bytes(path) for path, _ in job.sources)
        progress = ProgressEmitter(emit)
        batch = ProgressNode(len(job.sources), progress)
        for source, is_dir in job.sources:
            name = os.path.basename(source.rstrip(os.sep)) or source
            if token.cancelled:
                report.cancelled = True
                break
            try:
                if job.kind == TransferKind.DELETE:
                    remove_path(source)
                else:
                    self._transfer_item(job, source, is_dir, token, batch.child)
            except DestinationCollision:
                LOGGER.debug('Skipping %s: destination exists', name)
                report.skipped.append((name, ALREADY_EXISTS))
                emit(ItemSkipped(name))
            except OperationCancelled:
                report.cancelled = True
                break
            except (OSError, TransferIOError) as exc:
                message = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
                LOGGER.warning('%s failed for %s: %s', job.kind.value, source, message)
                report.failed.append((name, message))
                emit(ItemFailed(name, TransferIOError.kind, message))
            else:
                report.succeeded.append(name)
            batch.item_done()
        job.cancelled = report.cancelled
        return report

    def _transfer_item(self, job, source, is_dir, token, report_progress):
        name = os.path.basename(source.rstrip(os.sep))
        target = os.path.join(job.destination_dir, name)
        if os.path.lexists(target):
            raise DestinationCollision(f'{name} already exists', target)
        if is_dir:
            real_source = os.path.realpath(source)
            real_target = os.path.realpath(target)
            if real_target.startswith(real_source + os.sep):
                raise TransferIOError(f'Cannot copy {name} into itself', target)

        def on_chunk(nbytes, _copied, _total):
            job.bytes_done += nbytes

        try:
            self._copy_node(source, target, token, report_progress, on_chunk)
        except OperationCancelled:
            _discard(target)
            raise
        except OSError:
            _discard(target)
            raise

        if job.kind == TransferKind.MOVE:
            # Only after the copy of this item is complete.
            try:
                remove_path(source)
            except OSError as exc:
                raise TransferIOError(
                    f'Copied {name} but could not remove source: {exc.strerror or exc}',
                    source,
                ) from exc

    def _copy_node(self, source, target, token, report_progress, on_chunk):
        if os.path.islink(source):
            os.symlink(os.readlink(source), target)
            report_progress(100)
            return
        if not os.path.isdir(source):
            def chunk_progress(nbytes, copied, total):
                on_chunk(nbytes, copied, total)
                report_progress(copied / total * 100 if total else 100)

            copy_file_chunked(source, target, token, chunk_progress, self.chunk_size)
            report_progress(100)
            return

        os.mkdir(target)
        with os.scandir(source) as it:
            children = sorted(it, key=lambda d: d.name)
        node = ProgressNode(len(children), report_progress)
        for child in children:
            token.raise_if_cancelled()
            self._copy_node(child.path, os.path.join(target, child.name), token, node.child, on_chunk)
            node.item_done()
        shutil.copystat(source, target)
        report_progress(100)
