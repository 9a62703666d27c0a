"""
Error taxonomy for efile.

Every failure that can happen while transforming one entry is a
TransformError subclass, so the walker can catch them at the dispatch
boundary and record them without stopping sibling entries.
"""

from typing import Optional


class TransformError(Exception):
    """Base class for all per-entry transform failures."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class StatError(TransformError):
    """Path does not exist or cannot be inspected."""
    pass


class TransformIOError(TransformError):
    """Read, write or remove failure."""
    pass


class RandomSourceError(TransformError):
    """The operating system random source is unavailable."""
    pass


class CipherInitError(TransformError):
    """The cipher rejected the key."""
    pass


class AuthenticationError(TransformError):
    """Tag verification failed: wrong key or corrupted data."""
    pass


class DecodeError(TransformError):
    """An encrypted name is not valid base64url or not a legal name."""
    pass


class MalformedInputError(TransformError):
    """Input the cipher cannot take: shorter than a nonce, or too large to seal."""
    pass


class RenameError(TransformError):
    """Commit-phase failure. The original entry is left intact."""
    pass


class UnsupportedEntryError(TransformError):
    """Entry is neither a regular file nor a directory."""
    pass
