from .duplicates import DuplicateMovieService, detect_duplicates, recommend_for_deletion
from .favorites import FavoritesSynchronizer, SnapshotError, read_snapshot, write_snapshot
from .progress import ProgressEvent, queue_progress
from .resolution import ResolutionFilterService, ResolutionPreset, classify

__all__ = [
    "DuplicateMovieService",
    "FavoritesSynchronizer",
    "ProgressEvent",
    "ResolutionFilterService",
    "ResolutionPreset",
    "SnapshotError",
    "classify",
    "detect_duplicates",
    "queue_progress",
    "read_snapshot",
    "recommend_for_deletion",
    "write_snapshot",
]
