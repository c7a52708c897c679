"""File tailing: reverse reads, incremental reads, and debounced change detection.

Public API: ChangeDetector, WatchedFile, last_n_lines, new_lines, watch_file
Internal: change_detector, incremental, reverse_reader, state, watcher
"""

from tailcast.tail.change_detector import ChangeDetector
from tailcast.tail.incremental import new_lines
from tailcast.tail.reverse_reader import last_n_lines
from tailcast.tail.state import WatchedFile
from tailcast.tail.watcher import watch_file

__all__ = [
    "ChangeDetector",
    "WatchedFile",
    "last_n_lines",
    "new_lines",
    "watch_file",
]
