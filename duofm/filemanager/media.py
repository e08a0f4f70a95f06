"""
ffprobe/ffmpeg collaborators used by the thumbnail pipeline.
"""
import logging
import math
import os
import shutil
import subprocess

from ..constants import DEFAULT_FRAME_WIDTH, DEFAULT_THUMBNAIL_COLUMNS
from ..core.errors import ProbeError

LOGGER = logging.getLogger(__name__)

PROBE_TIMEOUT = 10.0
FFMPEG_TIMEOUT = 30.0


def _run(cmd, timeout):
    return subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=timeout,
        check=False,
    )


class MediaProber:
    """Read media duration with ffprobe."""

    def __init__(self, binary='ffprobe'):
        self.binary = binary

    def probe_duration(self, path):
        exe = shutil.which(self.binary)
        if not exe:
            raise ProbeError(f'{self.binary} not found', path)
        cmd = [
            exe,
            '-v', 'error',
            '-show_entries', 'format=duration',
            '-of', 'default=noprint_wrappers=1:nokey=1',
            path,
        ]
        try:
            completed = _run(cmd, PROBE_TIMEOUT)
        except (OSError, subprocess.SubprocessError) as exc:
            raise ProbeError(f'ffprobe failed: {exc}', path) from exc
        if completed.returncode != 0:
            raise ProbeError(f'Not a readable media file: {os.path.basename(path)}', path)
        try:
            duration = float(completed.stdout.strip().splitlines()[0])
        except (IndexError, ValueError) as exc:
            raise ProbeError(f'No duration for {os.path.basename(path)}', path) from exc
        if not math.isfinite(duration) or duration <= 0:
            raise ProbeError(f'No duration for {os.path.basename(path)}', path)
        return duration


class FrameExtractor:
    """Grab one scaled still frame with ffmpeg."""

    def __init__(self, binary='ffmpeg', width=DEFAULT_FRAME_WIDTH):
        self.binary = binary
        self.width = width

    def extract_frame(self, path, seconds, output_path):
        exe = shutil.which(self.binary)
        if not exe:
            return False
        cmd = [
            exe,
            '-nostdin', '-loglevel', 'error', '-y',
            '-ss', f'{max(0.0, seconds):.3f}',
            '-i', path,
            '-frames:v', '1',
            '-vf', f'scale={self.width}:-2',
            output_path,
        ]
        try:
            completed = _run(cmd, FFMPEG_TIMEOUT)
        except (OSError, subprocess.SubprocessError):
            LOGGER.warning('ffmpeg frame extraction crashed for %s', path, exc_info=True)
            return False
        if completed.returncode != 0:
            LOGGER.warning('ffmpeg frame extraction failed for %s: %s', path, completed.stderr.strip())
            return False
        return os.path.exists(output_path)


def _concat_line(path):
    return "file '" + path.replace("'", "'\\''") + "'"


class GridComposer:
    """Tile still frames into one contact sheet with ffmpeg's tile filter."""

    def __init__(self, binary='ffmpeg', columns=DEFAULT_THUMBNAIL_COLUMNS):
        self.binary = binary
        self.columns = columns

    def compose_grid(self, input_paths, output_path):
        exe = shutil.which(self.binary)
        if not exe or not input_paths:
            return False
        columns = max(1, min(self.columns, len(input_paths)))
        rows = math.ceil(len(input_paths) / columns)
        list_path = os.path.join(os.path.dirname(output_path), 'frames.ffconcat')
        with open(list_path, 'w', encoding='utf-8') as stream:
            stream.write('ffconcat version 1.0\n')
            for path in input_paths:
                stream.write(_concat_line(os.path.abspath(path)) + '\n')
        cmd = [
            exe,
            '-nostdin', '-loglevel', 'error', '-y',
            '-f', 'concat', '-safe', '0',
            '-i', list_path,
            '-vf', f'tile={columns}x{rows}',
            '-frames:v', '1',
            output_path,
        ]
        try:
            completed = _run(cmd, FFMPEG_TIMEOUT)
        except (OSError, subprocess.SubprocessError):
            LOGGER.warning('ffmpeg tile crashed for %s', output_path, exc_info=True)
            return False
        if completed.returncode != 0:
            LOGGER.warning('ffmpeg tile failed: %s', completed.stderr.strip())
            return False
        return os.path.exists(output_path)
