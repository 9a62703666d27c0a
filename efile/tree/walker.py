"""
Tree Walker

Walks a directory tree for a transform run.

Traversal:
    - Depth-first, pre-order, entries sorted by name
    - Directories are handled on the walking thread: the directory visitor
      renames the directory and returns its new path, and only that new
      path is descended into
    - Files are dispatched to a thread pool
    - run() returns only after every dispatched file has finished

Failures never stop siblings. Each one is recorded in a shared
ErrorReport, keyed by path. A directory whose visitor fails is still
walked under its current name; a directory that cannot be listed ends the
walk of that subtree only.
"""

import logging
import os
import stat
import threading
from concurrent.futures import CancelledError, Executor, Future
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Optional

from ..errors import StatError, TransformError, TransformIOError, UnsupportedEntryError
from ..integration.event_logger import EventLogger


logger = logging.getLogger(__name__)


# ============================================================================
# Entries
# ============================================================================

class EntryKind(Enum):
    """What a filesystem entry is, as far as transforms care."""
    LEAF = "file"
    CONTAINER = "directory"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> 'EntryKind':
        if stat.S_ISREG(mode):
            return cls.LEAF
        if stat.S_ISDIR(mode):
            return cls.CONTAINER
        return cls.OTHER


@dataclass(frozen=True)
class Entry:
    """A file or directory discovered during a walk. Symlinks are never followed."""
    path: str
    kind: EntryKind

    @property
    def name(self) -> str:
        return os.path.basename(self.path)

    @property
    def parent(self) -> str:
        return os.path.dirname(self.path)

    @property
    def is_container(self) -> bool:
        return self.kind is EntryKind.CONTAINER

    @classmethod
    def stat(cls, path: str) -> 'Entry':
        """
        Inspect a path without following symlinks.

        Raises:
            StatError: If the path does not exist or is inaccessible
        """
        try:
            st = os.lstat(path)
        except OSError as exc:
            raise StatError(f"failed to get file info: {exc.strerror}", path) from exc
        return cls(path, EntryKind.from_mode(st.st_mode))

    @classmethod
    def from_dir_entry(cls, dir_entry: os.DirEntry) -> 'Entry':
        """Build an entry from os.scandir() output."""
        try:
            mode = dir_entry.stat(follow_symlinks=False).st_mode
        except OSError as exc:
            raise StatError(f"failed to get file info: {exc.strerror}", dir_entry.path) from exc
        return cls(dir_entry.path, EntryKind.from_mode(mode))


# ============================================================================
# Error Report
# ============================================================================

@dataclass(frozen=True)
class EntryError:
    """One failed path and why."""
    path: str
    error: Exception

    def __str__(self) -> str:
        message = getattr(self.error, 'message', None) or str(self.error)
        return f"{self.path}: {type(self.error).__name__}: {message}"


class ErrorReport:
    """
    Unordered, append-only collection of per-path failures.

    Safe for concurrent add() from worker threads. Read it after the run
    has joined all of its workers.
    """

    def __init__(self):
        self._errors: List[EntryError] = []
        self._lock = threading.Lock()

    def add(self, path: str, error: Exception) -> None:
        with self._lock:
            self._errors.append(EntryError(str(path), error))

    @property
    def errors(self) -> List[EntryError]:
        with self._lock:
            return list(self._errors)

    @property
    def ok(self) -> bool:
        """True if nothing failed."""
        return len(self) == 0

    def first(self) -> Optional[EntryError]:
        errors = self.errors
        return errors[0] if errors else None

    def paths(self) -> List[str]:
        return [e.path for e in self.errors]

    def summary(self) -> str:
        count = len(self)
        if count == 0:
            return "All done no error"
        return f"{count} error{'s' if count != 1 else ''}"

    def __len__(self) -> int:
        with self._lock:
            return len(self._errors)

    def __iter__(self) -> Iterator[EntryError]:
        return iter(self.errors)


# ============================================================================
# Walker
# ============================================================================

LeafVisitor = Callable[[Entry], None]
ContainerVisitor = Callable[[Entry], str]


class TreeWalker:
    """
    Walks one top-level path, dispatching files to a shared pool.

    Example:
        >>> walker = TreeWalker(pool, report, events, visit_leaf, visit_container)
        >>> walker.run("docs")
    """

    def __init__(self, executor: Executor, report: ErrorReport,
                 events: EventLogger,
                 visit_leaf: LeafVisitor,
                 visit_container: ContainerVisitor,
                 fail_fast: bool = False):
        """
        Args:
            executor: Pool for file tasks. It must not be the pool running
                this walker, or file tasks could wait behind their walker.
            report: Shared error collection
            events: Event logger for failures and skips
            visit_leaf: Transforms one file
            visit_container: Transforms one directory and returns the path
                to descend into
            fail_fast: Stop dispatching once any error is recorded
        """
        self._executor = executor
        self._report = report
        self._events = events
        self._visit_leaf = visit_leaf
        self._visit_container = visit_container
        self._fail_fast = fail_fast
        self._futures: List[Future] = []

    def record(self, path: str, error: Exception) -> None:
        """Record a failure for path."""
        if isinstance(error, TransformError) and error.path is None:
            error.path = path
        self._report.add(path, error)
        self._events.log_failure(path, error)

    def _stopped(self) -> bool:
        return self._fail_fast and not self._report.ok

    def _guarded(self, visit: Callable[[Entry], Optional[str]],
                 entry: Entry) -> Optional[str]:
        """Dispatch boundary: run a visitor, record instead of raise."""
        if self._stopped():
            return None
        try:
            return visit(entry)
        except TransformError as exc:
            self.record(entry.path, exc)
        except OSError as exc:
            self.record(entry.path, TransformIOError(str(exc), entry.path))
        except Exception as exc:
            self.record_unexpected(entry.path, exc)
        return None

    def record_unexpected(self, path: str, exc: Exception) -> None:
        """Record an exception outside the TransformError taxonomy."""
        logger.exception("unexpected failure on %s", path)
        error = TransformError(f"unexpected {type(exc).__name__}: {exc}", path)
        error.__cause__ = exc
        self.record(path, error)

    def run(self, path: str) -> None:
        """
        Transform a top-level path and, if it is a directory, its subtree.

        Returns after all dispatched work has finished.
        """
        try:
            entry = Entry.stat(path)
        except StatError as exc:
            self.record(path, exc)
            return

        try:
            self._dispatch(entry, inline=True)
        except Exception as exc:
            self.record_unexpected(path, exc)
        finally:
            self.join()

    def join(self) -> None:
        """Wait for every dispatched file task."""
        futures, self._futures = self._futures, []
        for future in futures:
            try:
                future.result()
            except CancelledError:
                pass

    def _dispatch(self, entry: Entry, inline: bool = False) -> None:
        if self._stopped():
            return

        if entry.kind is EntryKind.OTHER:
            self._report.add(entry.path, UnsupportedEntryError(
                "not a regular file or directory", entry.path))
            self._events.log_unsupported(entry.path)
            return

        if entry.kind is EntryKind.LEAF:
            if inline:
                self._guarded(self._visit_leaf, entry)
            else:
                self._futures.append(
                    self._executor.submit(self._guarded, self._visit_leaf, entry))
            return

        new_path = self._guarded(self._visit_container, entry)
        if new_path is None:
            if self._stopped() or not os.path.isdir(entry.path):
                return
            new_path = entry.path
        self._walk_dir(new_path)

    def _walk_dir(self, directory: str) -> None:
        logger.debug("walking %s", directory)
        try:
            with os.scandir(directory) as it:
                dir_entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            self.record(directory, StatError(f"failed to read directory: {exc.strerror}", directory))
            return

        for dir_entry in dir_entries:
            if self._stopped():
                self._cancel_pending()
                return
            try:
                entry = Entry.from_dir_entry(dir_entry)
            except StatError as exc:
                self.record(dir_entry.path, exc)
                continue
            self._dispatch(entry)

    def _cancel_pending(self) -> None:
        for future in self._futures:
            future.cancel()
