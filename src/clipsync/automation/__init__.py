"""Automation services for re-syncing when the clippings file changes."""

from clipsync.automation.watcher import CLIPPINGS_FILENAME, ClippingsFileWatcher, DebouncedClippingsHandler

__all__ = [
    "CLIPPINGS_FILENAME",
    "ClippingsFileWatcher",
    "DebouncedClippingsHandler",
]
