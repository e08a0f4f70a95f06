"""
Content-addressed contact-sheet cache for video previews.

Cache entries are keyed by the SHA-256 of the source's absolute path (path
identity, not file content) and are never evicted here. A miss starts a
``PreviewGeneration`` on a background task; each pane has at most one in
flight, and a new request cancels the previous one.
"""
import hashlib
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass

from ..constants import DEFAULT_THUMBNAIL_FRAMES, THUMBNAIL_SUFFIX, VIDEO_EXTENSIONS
from ..core.errors import ComposeError, ExtractError
from ..core.tasks import BackgroundTask

LOGGER = logging.getLogger(__name__)


def cache_key(source_path):
    """Return the hex digest identifying ``source_path``."""
    absolute = os.path.abspath(source_path)
    return hashlib.sha256(absolute.encode('utf-8', 'surrogateescape')).hexdigest()


def sample_timestamps(duration, count):
    """Return ``count`` evenly spaced timestamps strictly inside ``duration``."""
    if count <= 0 or duration <= 0:
        return []
    step = duration / count
    return [step * (i + 0.5) for i in range(count)]


class ThumbnailCache:
    """Maps source paths to generated images under ``cache_dir``."""

    def __init__(self, cache_dir):
        self.cache_dir = os.path.abspath(os.path.expanduser(str(cache_dir)))

    def path_for(self, source_path):
        return os.path.join(self.cache_dir, cache_key(source_path) + THUMBNAIL_SUFFIX)

    def lookup(self, source_path):
        """Return the cached image path when it exists on disk."""
        path = self.path_for(source_path)
        return path if os.path.isfile(path) else None


@dataclass(frozen=True)
class NotSupported:
    source_path: str


@dataclass(frozen=True)
class Ready:
    source_path: str
    image_path: str
    cached: bool = False


@dataclass(frozen=True)
class Pending:
    source_path: str
    generation: 'PreviewGeneration'


@dataclass(frozen=True)
class PreviewFinished:
    """A generation that ended since the last ``poll()``."""

    pane_index: int
    source_path: str
    outcome: object


class PreviewGeneration:
    """One in-flight contact sheet synthesis."""

    def __init__(self, pane_index, source_path, cache_path, task):
        self.pane_index = pane_index
        self.source_path = source_path
        self.cache_path = cache_path
        self.task = task
        self.work_dir = None

    @property
    def cancelled(self):
        return self.task.token.cancelled

    def cancel(self):
        self.task.cancel()


class ThumbnailPipeline:
    """Serve cached previews or generate them in the background."""

    def __init__(self, cache, prober, extractor, composer, *, frames=DEFAULT_THUMBNAIL_FRAMES,
                 extensions=VIDEO_EXTENSIONS):
        self.cache = cache
        self.prober = prober
        self.extractor = extractor
        self.composer = composer
        self.frames = frames
        self.extensions = frozenset(ext.lower() for ext in extensions)
        self._active = {}

    def is_supported(self, path):
        return os.path.splitext(str(path))[1].lower() in self.extensions

    def active(self, pane_index):
        return self._active.get(pane_index)

    def request(self, pane_index, source_path, *, start=True):
        """Resolve a preview for ``source_path`` shown in pane ``pane_index``."""
        source_path = os.path.abspath(source_path)
        # Any new request supersedes the pane's running generation.
        self.cancel(pane_index)
        if not self.is_supported(source_path):
            return NotSupported(source_path)
        cached = self.cache.lookup(source_path)
        if cached:
            LOGGER.debug('Thumbnail cache hit for %s', source_path)
            return Ready(source_path, cached, cached=True)

        cache_path = self.cache.path_for(source_path)
        generation = PreviewGeneration(pane_index, source_path, cache_path, None)
        generation.task = BackgroundTask(
            lambda token, _emit: self.generate(generation, token),
            name=f'duofm-thumb-{pane_index}',
        )
        self._active[pane_index] = generation
        if start:
            generation.task.start()
        return Pending(source_path, generation)

    def cancel(self, pane_index):
        """Cancel and forget the generation running for ``pane_index``."""
        previous = self._active.pop(pane_index, None)
        if previous is not None and not previous.task.done:
            LOGGER.debug('Cancelling preview of %s', previous.source_path)
            previous.cancel()
        return previous

    def cancel_all(self):
        for pane_index in list(self._active):
            self.cancel(pane_index)

    def shutdown(self):
        """Cancel every generation and wait until each removed its work dir."""
        generations = list(self._active.values())
        self.cancel_all()
        for generation in generations:
            generation.task.join()

    def poll(self):
        """Return ``PreviewFinished`` records for generations that completed."""
        finished = []
        for pane_index, generation in list(self._active.items()):
            if not generation.task.done:
                continue
            del self._active[pane_index]
            finished.append(PreviewFinished(pane_index, generation.source_path, generation.task.outcome))
        return finished

    def generate(self, generation, token):
        """Build the contact sheet for ``generation``; runs on the worker thread."""
        try:
            os.makedirs(self.cache.cache_dir, exist_ok=True)
            # Work dir lives next to the cache so the final rename stays atomic.
            work_dir = tempfile.mkdtemp(prefix='.work-', dir=self.cache.cache_dir)
        except OSError as exc:
            raise ComposeError(f'Thumbnail cache unavailable: {exc}', self.cache.cache_dir) from exc
        generation.work_dir = work_dir
        try:
            duration = self.prober.probe_duration(generation.source_path)
            stills = []
            for index, seconds in enumerate(sample_timestamps(duration, self.frames)):
                token.raise_if_cancelled()
                still = os.path.join(work_dir, f'frame_{index:03d}.jpg')
                if not self.extractor.extract_frame(generation.source_path, seconds, still):
                    raise ExtractError(
                        f'Frame extraction failed at {seconds:.1f}s for '
                        f'{os.path.basename(generation.source_path)}',
                        generation.source_path,
                    )
                stills.append(still)
            token.raise_if_cancelled()
            sheet = os.path.join(work_dir, 'sheet' + THUMBNAIL_SUFFIX)
            try:
                composed = self.composer.compose_grid(stills, sheet)
            except OSError as exc:
                raise ComposeError(f'Contact sheet failed: {exc}', generation.source_path) from exc
            if not composed:
                raise ComposeError(
                    f'Contact sheet failed for {os.path.basename(generation.source_path)}',
                    generation.source_path,
                )
            token.raise_if_cancelled()
            try:
                os.replace(sheet, generation.cache_path)
            except OSError as exc:
                raise ComposeError(f'Cannot store contact sheet: {exc}', generation.cache_path) from exc
            return generation.cache_path
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)


def build_pipeline(config):
    """Create the ffmpeg-backed pipeline described by an ``AppConfig``."""
    from .media import FrameExtractor, GridComposer, MediaProber

    return ThumbnailPipeline(
        ThumbnailCache(config.cache_dir),
        MediaProber(),
        FrameExtractor(width=config.frame_width),
        GridComposer(columns=config.thumbnail_columns),
        frames=config.thumbnail_frames,
    )
