from .core import Entry, SortMode, format_size, read_directory, sort_entries
from .pane import Pane, PanePair
from .thumbnails import ThumbnailCache, ThumbnailPipeline
from .transfer import TransferEngine, TransferJob, TransferKind

__all__ = [
    'Entry', 'SortMode', 'format_size', 'read_directory', 'sort_entries',
    'Pane', 'PanePair', 'ThumbnailCache', 'ThumbnailPipeline',
    'TransferEngine', 'TransferJob', 'TransferKind',
]
