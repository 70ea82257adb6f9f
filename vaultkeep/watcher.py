"""
File system watcher feeding vault events to the dispatcher.

This module provides:
- Watchdog-based monitoring of the vault root
- Debounced created/modified events (editor save cycles)
- Immediate, ordered renamed/deleted events
- Vault-relative paths, hidden files and folders skipped
"""

import threading
import time
from collections import deque
from pathlib import Path
from typing import Callable

from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
)
from watchdog.observers import Observer

from .events import EventKind, VaultEvent


class PendingEvent:
    """Tracks a pending event for debouncing."""

    def __init__(self, event_kind: EventKind, path: str, timestamp: float):
        self.event_kind = event_kind
        self.path = path
        self.timestamp = timestamp


class VaultEventHandler(FileSystemEventHandler):
    """
    Turns watchdog callbacks into VaultEvents.

    Key behaviors:
    - Debounces rapid creations and modifications
    - Passes renames and deletions on in arrival order
    - A pending creation is never downgraded to a modification
    - Directory events are skipped; file events cover their contents
    """

    DEBOUNCE_SECONDS = 0.5

    def __init__(self, vault_path: Path, on_event: Callable[[VaultEvent], None]):
        super().__init__()
        self.vault_path = vault_path.resolve()
        self.on_event = on_event

        self.pending: dict[str, PendingEvent] = {}
        self.ready: deque[VaultEvent] = deque()
        self._lock = threading.Lock()

    def _relative(self, path: str | bytes) -> str | None:
        """Vault-relative posix path, or None if outside or hidden."""
        if isinstance(path, bytes):
            path = path.decode()
        try:
            rel = Path(path).resolve().relative_to(self.vault_path)
        except ValueError:
            return None
        if not rel.parts or any(part.startswith(".") for part in rel.parts):
            return None
        return rel.as_posix()

    def flush_pending(self, force: bool = False) -> int:
        """Emit ready events, then pending ones past the debounce window."""
        now = time.time()
        with self._lock:
            to_emit = list(self.ready)
            self.ready.clear()
            for path, pending in list(self.pending.items()):
                if force or now - pending.timestamp >= self.DEBOUNCE_SECONDS:
                    to_emit.append(VaultEvent(pending.event_kind, path))
                    del self.pending[path]

        for event in to_emit:
            self.on_event(event)
        return len(to_emit)

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory:
            return
        path = self._relative(event.src_path)
        if path is None:
            return
        with self._lock:
            self.pending[path] = PendingEvent(EventKind.CREATED, path, time.time())

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory:
            return
        path = self._relative(event.src_path)
        if path is None:
            return
        with self._lock:
            # Don't override pending creation with modification
            if path in self.pending and self.pending[path].event_kind == EventKind.CREATED:
                self.pending[path].timestamp = time.time()
                return
            self.pending[path] = PendingEvent(EventKind.MODIFIED, path, time.time())

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if event.is_directory:
            return
        path = self._relative(event.src_path)
        if path is None:
            return
        with self._lock:
            pending = self.pending.pop(path, None)
            if pending is not None and pending.event_kind == EventKind.CREATED:
                # File created then deleted before flush - no event
                return
            self.ready.append(VaultEvent(EventKind.DELETED, path))

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return
        src = self._relative(event.src_path)
        dest = self._relative(event.dest_path)

        with self._lock:
            if src and dest:
                pending = self.pending.pop(src, None)
                self.ready.append(VaultEvent(EventKind.RENAMED, dest, rename_from=src))
                if pending is not None:
                    self.pending[dest] = PendingEvent(pending.event_kind, dest, pending.timestamp)
            elif src:
                # Moved out of the vault - treat as delete
                self.pending.pop(src, None)
                self.ready.append(VaultEvent(EventKind.DELETED, src))
            elif dest:
                # Moved into the vault - treat as create
                self.pending[dest] = PendingEvent(EventKind.CREATED, dest, time.time())


def watch_vault(
    vault_path: Path,
    on_event: Callable[[VaultEvent], None],
    recursive: bool = True,
) -> tuple[Observer, VaultEventHandler]:
    """
    Start watching a vault for file system events.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = VaultEventHandler(vault_path=vault_path, on_event=on_event)

    observer = Observer()
    observer.schedule(handler, str(vault_path), recursive=recursive)
    observer.start()

    return observer, handler


def run_watch_loop(
    vault_path: Path,
    on_event: Callable[[VaultEvent], None],
    on_tick: Callable[[], None] | None = None,
    interval: float = 0.25,
) -> None:
    """
    Run the watch loop until interrupted.

    Pending events are flushed to `on_event` every `interval` seconds,
    after which `on_tick` runs on this thread.
    """
    observer, handler = watch_vault(vault_path=vault_path, on_event=on_event)

    try:
        while True:
            time.sleep(interval)
            handler.flush_pending()
            if on_tick is not None:
                on_tick()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
