"""
file_watcher.py — File system watcher for Dart sources using watchdog.
Detects .dart file changes and hands them to the regeneration callback.
"""

import os
import threading
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

DEBOUNCE_SECONDS = 0.5

SKIP_SUFFIXES = (".g.dart", ".freezed.dart")
SKIP_DIRS = ("build", ".dart_tool")


def is_watched_file(path: str) -> bool:
    """Hand-written .dart sources only; generated files and build output are skipped."""
    if not path.endswith(".dart") or path.endswith(SKIP_SUFFIXES):
        return False
    parts = os.path.normpath(path).split(os.sep)
    return not any(p in SKIP_DIRS for p in parts[:-1])


class DartFileWatcher:
    def __init__(self, on_change_callback, debounce: float = DEBOUNCE_SECONDS):
        self.observer = None
        self.on_change = on_change_callback
        self.watched_path = None
        self.debounce = debounce
        self._debounce_timers = {}
        self._lock = threading.Lock()

    def start(self, path: str):
        self.stop()
        if not os.path.isdir(path):
            return False

        self.watched_path = path
        handler = _DartHandler(self._debounced_change)
        self.observer = Observer()
        self.observer.schedule(handler, path, recursive=True)
        self.observer.start()
        return True

    def stop(self):
        with self._lock:
            for timer in self._debounce_timers.values():
                timer.cancel()
            self._debounce_timers.clear()
        if self.observer:
            self.observer.stop()
            self.observer.join(timeout=2)
            self.observer = None

    def _debounced_change(self, file_path: str, event_type: str):
        """Debounce rapid file changes (e.g. editor saves multiple events)."""
        with self._lock:
            if file_path in self._debounce_timers:
                self._debounce_timers[file_path].cancel()

            t = threading.Timer(
                self.debounce,
                self._fire_change,
                args=(file_path, event_type)
            )
            self._debounce_timers[file_path] = t
            t.start()

    def _fire_change(self, file_path: str, event_type: str):
        with self._lock:
            self._debounce_timers.pop(file_path, None)
        try:
            self.on_change(file_path, event_type)
        except Exception as e:
            print(f"[watch] Failed to handle {event_type} of {file_path}: {e}")

    @property
    def is_running(self):
        return self.observer is not None and self.observer.is_alive()


class _DartHandler(FileSystemEventHandler):
    def __init__(self, callback):
        self.callback = callback

    def _handle(self, path, event_type):
        if is_watched_file(path):
            self.callback(path, event_type)

    def on_modified(self, event):
        if not event.is_directory:
            self._handle(event.src_path, "modified")

    def on_created(self, event):
        if not event.is_directory:
            self._handle(event.src_path, "created")

    def on_deleted(self, event):
        if not event.is_directory:
            self._handle(event.src_path, "deleted")

    def on_moved(self, event):
        if not event.is_directory:
            self._handle(event.dest_path, "renamed")
