"""
Transform Orchestrator

Ties top-level paths to the name and content transforms and runs them.

Per entry, in this order:

    Encrypt file:  skip if name already transformed
                   -> compute encrypted name (no commit)
                   -> seal content in place
                   -> rename
    Decrypt file:  skip if name not transformed
                   -> decrypt name (no commit; a wrong key fails here,
                      before any byte on disk changes)
                   -> open content in place
                   -> rename
    Directory:     rename -> walk the renamed path

If a file's rename fails after its content was committed, the content
transform is reversed, so name and content never disagree.

A directory whose name is skipped, or fails to transform, is still
walked, so running the same command again after a partial failure
finishes the job. On decrypt a suffixed name that is not base64url of a
sealed name is skipped like a plain one, matching encrypt, which skips it
for carrying the suffix. ".", ".." and a bare root are walked but never
renamed.

Each top-level path runs as its own unit of work; all units share one
pool for file tasks and one ErrorReport. Top-level paths must not be
nested inside each other.
"""

import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from enum import Enum
from typing import Iterable, Optional, Union

from ..config import TransformConfig
from ..core_crypto.aead import AEADCodec
from ..core_crypto.names import NameCodec, NameState, name_state
from ..errors import DecodeError, MalformedInputError, RenameError, TransformError
from ..files.file_crypto import ContentTransformer
from ..integration.event_logger import EventLogger
from .walker import Entry, ErrorReport, TreeWalker


logger = logging.getLogger(__name__)

# Directory names that cannot be renamed (".", "..", a bare root)
UNNAMED = ("", ".", "..")

# Longest single path segment on common filesystems
NAME_MAX = 255


class Mode(Enum):
    """Direction of a run."""
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"


def trim_path(path: Union[str, os.PathLike]) -> str:
    """Strip trailing separators, keeping a bare root intact."""
    path = os.fspath(path)
    trimmed = path.rstrip('/\\')
    return trimmed or path[:1]


class Orchestrator:
    """
    Runs encrypt/decrypt over files and directory trees.

    The key, codec and config are read-only and shared by all worker
    threads.

    Example:
        >>> orchestrator = Orchestrator(b"secret")
        >>> report = orchestrator.encrypt(["docs", "notes.txt"])
        >>> report.ok
        True
    """

    def __init__(self, key: Union[bytes, str],
                 config: Optional[TransformConfig] = None,
                 events: Optional[EventLogger] = None):
        """
        Initialize with a key.

        Args:
            key: Raw user key (normalized internally)
            config: Run options (default: TransformConfig())
            events: Event logger (default: one honoring config.quiet)
        """
        self._config = config or TransformConfig()
        self._codec = AEADCodec(key)
        self._names = NameCodec(self._codec)
        self._contents = ContentTransformer(self._codec)
        self._events = events or EventLogger(quiet=self._config.quiet)

    @property
    def config(self) -> TransformConfig:
        return self._config

    @property
    def events(self) -> EventLogger:
        return self._events

    # ========================================================================
    # Public API
    # ========================================================================

    def encrypt(self, paths: Iterable[Union[str, os.PathLike]]) -> ErrorReport:
        """Encrypt paths in batch mode."""
        return self.run(paths, Mode.ENCRYPT)

    def decrypt(self, paths: Iterable[Union[str, os.PathLike]]) -> ErrorReport:
        """Decrypt paths in batch mode."""
        return self.run(paths, Mode.DECRYPT)

    def run(self, paths: Iterable[Union[str, os.PathLike]], mode: Mode,
            fail_fast: Optional[bool] = None) -> ErrorReport:
        """
        Transform every path concurrently and wait for all of them.

        Failures are collected, never raised.

        Args:
            paths: Files and directories, not nested in each other
            mode: Encrypt or decrypt
            fail_fast: Override config.fail_fast for this run

        Returns:
            ErrorReport with one entry per failed path
        """
        paths = [trim_path(p) for p in paths]
        report = ErrorReport()
        if fail_fast is None:
            fail_fast = self._config.fail_fast
        if not paths:
            return report

        logger.debug("%s %d path(s) with %d worker(s)", mode.value, len(paths),
                     self._config.max_workers)

        unit_workers = min(len(paths), self._config.max_workers)
        with ThreadPoolExecutor(max_workers=self._config.max_workers,
                                thread_name_prefix='efile-file') as file_pool:
            with ThreadPoolExecutor(max_workers=unit_workers,
                                    thread_name_prefix='efile-path') as unit_pool:
                futures = [
                    unit_pool.submit(self._process_path, path, mode, file_pool, report, fail_fast)
                    for path in paths
                ]
                for future in futures:
                    future.result()

        return report

    def transform_one(self, path: Union[str, os.PathLike], mode: Mode) -> None:
        """
        Single-path mode: stop at the first error and raise it.

        Raises:
            TransformError: The first failure recorded
        """
        report = self.run([path], mode, fail_fast=True)
        first = report.first()
        if first is not None:
            raise first.error

    def _process_path(self, path: str, mode: Mode, file_pool: Executor,
                      report: ErrorReport, fail_fast: bool) -> None:
        encrypt = mode is Mode.ENCRYPT
        walker = TreeWalker(
            file_pool, report, self._events,
            visit_leaf=self._encrypt_leaf if encrypt else self._decrypt_leaf,
            visit_container=self._encrypt_container if encrypt else self._decrypt_container,
            fail_fast=fail_fast,
        )
        walker.run(path)

    # ========================================================================
    # Files
    # ========================================================================

    def _encrypt_leaf(self, entry: Entry) -> None:
        new_name = None
        if self._config.names:
            if name_state(entry.name) is NameState.TRANSFORMED:
                self._events.log_skip(entry.path, encrypt=True)
                return
            new_name = self._names.encrypt_name(entry.name, is_container=False)
            self._check_target(entry, new_name)

        if self._config.contents:
            info = self._contents.encrypt_file(entry.path)
            self._events.log_content(entry.path, True, **info)

        if new_name is not None:
            self._rename_leaf(entry, new_name, encrypt=True)

    def _decrypt_leaf(self, entry: Entry) -> None:
        new_name = None
        if self._config.names:
            new_name = self._plain_name(entry)
            if new_name is None:
                return
            self._check_target(entry, new_name)

        if self._config.contents:
            info = self._contents.decrypt_file(entry.path)
            self._events.log_content(entry.path, False, **info)

        if new_name is not None:
            self._rename_leaf(entry, new_name, encrypt=False)

    def _rename_leaf(self, entry: Entry, new_name: str, encrypt: bool) -> None:
        """Rename a file whose content is already committed, undoing the content on failure."""
        try:
            self._rename(entry, new_name, encrypt)
        except RenameError:
            if self._config.contents:
                self._undo_content(entry, encrypt)
            raise

    def _undo_content(self, entry: Entry, encrypt: bool) -> None:
        undo = self._contents.decrypt_file if encrypt else self._contents.encrypt_file
        try:
            undo(entry.path)
        except TransformError as exc:
            logger.warning("could not restore content of %s: %s", entry.path, exc)
        else:
            logger.debug("restored content of %s after failed rename", entry.path)

    # ========================================================================
    # Directories
    # ========================================================================

    def _encrypt_container(self, entry: Entry) -> str:
        if not self._config.names or entry.name in UNNAMED:
            return entry.path
        if name_state(entry.name) is NameState.TRANSFORMED:
            self._events.log_skip(entry.path, encrypt=True)
            return entry.path

        new_name = self._names.encrypt_name(entry.name, is_container=True)
        self._check_target(entry, new_name)
        return self._rename(entry, new_name, encrypt=True)

    def _decrypt_container(self, entry: Entry) -> str:
        if not self._config.names or entry.name in UNNAMED:
            return entry.path

        new_name = self._plain_name(entry)
        if new_name is None:
            return entry.path
        self._check_target(entry, new_name)
        return self._rename(entry, new_name, encrypt=False)

    def _plain_name(self, entry: Entry) -> Optional[str]:
        """
        Decrypted name of entry, or None if it is not an encrypted name.

        A suffixed name that is not base64url, or too short to hold a
        sealed name, was never produced by encrypt_name and is skipped
        like any plain name.

        Raises:
            AuthenticationError: Wrong key or tampered name
        """
        if name_state(entry.name) is NameState.TRANSFORMED:
            try:
                return self._names.decrypt_name(entry.name)
            except (DecodeError, MalformedInputError) as exc:
                logger.debug("treating %s as plain: %s", entry.path, exc)
        self._events.log_skip(entry.path, encrypt=False)
        return None

    # ========================================================================
    # Commit
    # ========================================================================

    def _check_target(self, entry: Entry, new_name: str) -> None:
        """Reject a rename before anything on disk changes."""
        if len(os.fsencode(new_name)) > NAME_MAX:
            raise RenameError(
                f"new name is {len(os.fsencode(new_name))} bytes, limit is {NAME_MAX}",
                entry.path)
        target = os.path.join(entry.parent, new_name)
        if os.path.lexists(target):
            raise RenameError(f"target already exists: {target}", entry.path)

    def _rename(self, entry: Entry, new_name: str, encrypt: bool) -> str:
        new_path = os.path.join(entry.parent, new_name)
        if os.path.lexists(new_path):
            raise RenameError(f"target already exists: {new_path}", entry.path)
        try:
            os.rename(entry.path, new_path)
        except OSError as exc:
            raise RenameError(f"failed to rename: {exc.strerror}", entry.path) from exc

        self._events.log_rename(entry.path, new_path, encrypt, entry.is_container)
        return new_path


def encrypt_paths(paths: Iterable[Union[str, os.PathLike]], key: Union[bytes, str],
                  config: Optional[TransformConfig] = None) -> ErrorReport:
    """Convenience function: encrypt paths in batch mode."""
    return Orchestrator(key, config).encrypt(paths)


def decrypt_paths(paths: Iterable[Union[str, os.PathLike]], key: Union[bytes, str],
                  config: Optional[TransformConfig] = None) -> ErrorReport:
    """Convenience function: decrypt paths in batch mode."""
    return Orchestrator(key, config).decrypt(paths)
