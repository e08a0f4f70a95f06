"""Constants and defaults for duofm."""

VIDEO_EXTENSIONS = {
    ".mp4",
    ".mkv",
    ".webm",
    ".avi",
    ".mov",
    ".m4v",
    ".mpg",
    ".mpeg",
    ".wmv",
}

# Transfer streaming.
DEFAULT_CHUNK_SIZE = 1024 * 1024

# Contact sheet layout.
DEFAULT_THUMBNAIL_FRAMES = 9
DEFAULT_THUMBNAIL_COLUMNS = 3
DEFAULT_FRAME_WIDTH = 320
THUMBNAIL_SUFFIX = ".jpg"

# Input sequencer.
SORT_MODE_TIMEOUT = 2.0

# Notification durations (milliseconds).
NOTIFY_SHORT_MS = 2000
NOTIFY_LONG_MS = 4000

# Pane indices.
LEFT_PANE = 0
RIGHT_PANE = 1
