"""
Plays domain module.

Debounced play counting driven by stream requests, and listening history.
"""

from .debounce import PlayDebouncer
from .history import PlayHistoryEntry, PlayTracker
