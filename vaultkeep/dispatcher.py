"""Single-threaded dispatch of vault events to the engine."""

from __future__ import annotations

import logging
import time
from collections import deque

from .errors import VaultkeepError
from .events import EventKind, VaultEvent
from .models import DocumentKind
from .vault.loader import Vault

logger = logging.getLogger(__name__)

# How long an expected echo of our own file operation stays expected
ECHO_WINDOW_SECONDS = 10.0

_ECHO_KINDS = {
    "created": EventKind.CREATED,
    "modified": EventKind.MODIFIED,
    "deleted": EventKind.DELETED,
}


class EventDispatcher:
    """FIFO queue of vault events, drained one at a time.

    File operations the engine performs itself come back from the watcher as
    events too. They are recorded as they happen and swallowed when they
    arrive, so only changes made outside the engine start cascades.
    """

    def __init__(self, vault: Vault):
        self.vault = vault
        self.queue: deque[VaultEvent] = deque()
        self._expected: dict[tuple[str, str, str | None], float] = {}
        vault.tree.subscribe(self._record_echo)

    def _record_echo(self, op: str, path: str, dest: str | None) -> None:
        now = time.monotonic()
        if op == "moved" and dest is not None:
            event = VaultEvent(EventKind.RENAMED, dest, rename_from=path)
        elif op == "copied" and dest is not None:
            event = VaultEvent(EventKind.CREATED, dest)
        elif op in _ECHO_KINDS:
            event = VaultEvent(_ECHO_KINDS[op], path)
        else:
            return  # folder events never reach the queue
        self._expected[event.key] = now

    def _is_echo(self, event: VaultEvent) -> bool:
        now = time.monotonic()
        for key, at in list(self._expected.items()):
            if now - at > ECHO_WINDOW_SECONDS:
                del self._expected[key]
        if event.key in self._expected:
            del self._expected[event.key]
            return True
        # a write right after creation may surface as a modification
        if event.kind == EventKind.MODIFIED:
            created = (EventKind.CREATED.value, event.path, None)
            if created in self._expected:
                del self._expected[created]
                return True
        return False

    def post(self, event: VaultEvent) -> None:
        self.queue.append(event)

    def drain(self) -> list[VaultEvent]:
        """Handle every queued event in order. Returns the events handled, echoes excluded."""
        handled: list[VaultEvent] = []
        while self.queue:
            event = self.queue.popleft()
            if self._is_echo(event):
                logger.debug("Ignoring echo of own change: %s %s", event.kind.value, event.path)
                continue
            self.vault.tree.invalidate()
            try:
                self.dispatch(event)
            except (VaultkeepError, OSError) as e:
                logger.error("Failed to handle %s of %s: %s", event.kind.value, event.path, e)
            handled.append(event)
        return handled

    def dispatch(self, event: VaultEvent) -> None:
        vault = self.vault
        settings = vault.settings

        if event.kind == EventKind.RENAMED and event.rename_from:
            logger.info("Renamed %s -> %s", event.rename_from, event.path)
            ctx = vault.handler.handle_rename(event.rename_from, event.path)
            if ctx is not None:
                for error in ctx.errors:
                    logger.warning("%s", error)

        elif event.kind == EventKind.DELETED:
            logger.info("Deleted %s", event.path)
            snapshot = vault.index.links_of(event.path)
            vault.index.remove(event.path)
            vault.handler.handle_delete(event.path, snapshot)

        elif event.kind == EventKind.CREATED:
            vault.index.refresh(event.path)
            vault.index.reresolve(set())

        elif event.kind == EventKind.MODIFIED:
            vault.index.refresh(event.path)
            if (
                settings.auto_collect_attachments
                and DocumentKind.for_path(event.path) is DocumentKind.NOTE
                and not settings.is_path_ignored(event.path)
            ):
                result = vault.collector.collect_for_note(event.path)
                if result.moved:
                    logger.info("Collected %d attachments of %s", len(result.moved), event.path)
