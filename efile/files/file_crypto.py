"""
File Content Encryption Module

Encrypts and decrypts whole files in place with AES-GCM.

File Format:
    [nonce (12 bytes) | ciphertext | tag (16 bytes)]

Commit protocol:
    1. Read the whole file into memory
    2. Seal/open it
    3. Write the result to a temporary file in the same directory
    4. fsync, then os.replace() the temporary file over the target

The target is never observed half-written. If anything fails before the
replace, the temporary file is removed and the original is untouched.
"""

import logging
import os
import stat
import tempfile
from typing import Union

from ..core_crypto.aead import AEADCodec
from ..errors import RenameError, StatError, TransformError, TransformIOError


logger = logging.getLogger(__name__)

# Constants
TEMP_PREFIX = ".efile-"
TEMP_SUFFIX = ".tmp"


def read_file(path: str) -> bytes:
    """
    Read a whole file.

    Raises:
        StatError: If the file does not exist
        TransformIOError: On any other read failure
    """
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError as exc:
        raise StatError(f"file not found: {exc.strerror}", path) from exc
    except OSError as exc:
        raise TransformIOError(f"failed to read file: {exc}", path) from exc


def atomic_write(path: str, data: bytes) -> None:
    """
    Replace the contents of path with data atomically.

    Args:
        path: Target file (may or may not exist)
        data: New contents

    Raises:
        TransformIOError: If the temporary file cannot be written
        RenameError: If the final replace fails
    """
    directory = os.path.dirname(os.path.abspath(path))

    try:
        fd, tmp_path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=directory)
    except OSError as exc:
        raise TransformIOError(f"failed to create temporary file: {exc}", path) from exc

    try:
        try:
            with os.fdopen(fd, 'wb') as tmp:
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            # mkstemp creates 0600; keep the target's permissions
            if os.path.exists(path):
                os.chmod(tmp_path, stat.S_IMODE(os.stat(path).st_mode))
        except OSError as exc:
            raise TransformIOError(f"failed to write temporary file: {exc}", path) from exc

        try:
            os.replace(tmp_path, path)
        except OSError as exc:
            raise RenameError(f"failed to commit file: {exc}", path) from exc
    except BaseException:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise


class ContentTransformer:
    """
    Whole-file content encryption with an atomic commit.

    Example:
        >>> transformer = ContentTransformer(AEADCodec(b"secret"))
        >>> transformer.encrypt_file("notes.txt")
        >>> transformer.decrypt_file("notes.txt")
    """

    def __init__(self, codec: AEADCodec):
        """
        Initialize with a shared codec.

        Args:
            codec: AEAD codec bound to the run's key
        """
        self._codec = codec

    def encrypt_file(self, path: str) -> dict:
        """
        Encrypt a file in place.

        Returns:
            Dict with input/output sizes
        """
        plaintext = read_file(path)
        try:
            sealed = self._codec.seal(plaintext)
        except TransformError as exc:
            exc.path = exc.path or path
            raise
        atomic_write(path, sealed)
        logger.debug("sealed content of %s (%d -> %d bytes)", path, len(plaintext), len(sealed))

        return {
            'input_size': len(plaintext),
            'output_size': len(sealed),
        }

    def decrypt_file(self, path: str) -> dict:
        """
        Decrypt a file in place.

        Raises:
            AuthenticationError: Wrong key or corrupted content
            MalformedInputError: File shorter than a nonce

        Returns:
            Dict with input/output sizes
        """
        sealed = read_file(path)
        try:
            plaintext = self._codec.open(sealed)
        except TransformError as exc:
            exc.path = exc.path or path
            raise
        atomic_write(path, plaintext)
        logger.debug("opened content of %s (%d -> %d bytes)", path, len(sealed), len(plaintext))

        return {
            'input_size': len(sealed),
            'output_size': len(plaintext),
        }


def encrypt_file(path: str, key: Union[bytes, str]) -> dict:
    """Convenience function for in-place file encryption."""
    return ContentTransformer(AEADCodec(key)).encrypt_file(path)


def decrypt_file(path: str, key: Union[bytes, str]) -> dict:
    """Convenience function for in-place file decryption."""
    return ContentTransformer(AEADCodec(key)).decrypt_file(path)
