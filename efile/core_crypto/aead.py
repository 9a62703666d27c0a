"""
AEAD Codec

Seals and opens opaque byte blobs with AES-GCM.

Blob Format:
    [nonce (12 bytes) | ciphertext | tag (16 bytes)]

There is no header, magic or version byte. The opener knows the nonce
length, which is all it needs to split the blob.

Security features:
- Fresh random nonce for every seal
- Authenticated encryption: wrong key and tampered data both fail
  verification and cannot be told apart
"""

import secrets
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .keys import normalize_key
from ..errors import (
    AuthenticationError, CipherInitError, MalformedInputError, RandomSourceError
)


# Constants
NONCE_SIZE = 12             # 96 bits for GCM
TAG_SIZE = 16               # 128 bits for GCM tag


def generate_nonce() -> bytes:
    """
    Generate a random nonce for AES-GCM.

    Raises:
        RandomSourceError: If the OS random source fails
    """
    try:
        return secrets.token_bytes(NONCE_SIZE)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceError(f"secure random source unavailable: {exc}") from exc


class AEADCodec:
    """
    AES-GCM seal/open over whole byte strings.

    The codec holds no mutable state, so a single instance is shared by
    every worker thread of a run.

    Example:
        >>> codec = AEADCodec(b"secret")
        >>> blob = codec.seal(b"hello")
        >>> codec.open(blob)
        b'hello'
    """

    def __init__(self, key: Union[bytes, str], normalize: bool = True):
        """
        Initialize with a key.

        Args:
            key: Raw user key
            normalize: Pass the key through normalize_key first. Only
                disable to use an already-sized key.

        Raises:
            CipherInitError: If the key size is invalid for AES
        """
        if normalize:
            key = normalize_key(key)
        try:
            self._aesgcm = AESGCM(key)
        except (ValueError, TypeError) as exc:
            raise CipherInitError(f"invalid cipher key: {exc}") from exc
        self._key_size = len(key)

    @property
    def key_size(self) -> int:
        """Size of the AES key in bytes."""
        return self._key_size

    def seal(self, plaintext: bytes) -> bytes:
        """
        Encrypt and authenticate plaintext.

        Returns:
            nonce || ciphertext || tag

        Raises:
            MalformedInputError: If plaintext exceeds the AES-GCM size limit
        """
        nonce = generate_nonce()
        try:
            return nonce + self._aesgcm.encrypt(nonce, plaintext, None)
        except (OverflowError, ValueError) as exc:
            raise MalformedInputError(
                f"cannot seal {len(plaintext)} bytes: {exc}") from exc

    def open(self, blob: bytes) -> bytes:
        """
        Verify and decrypt a sealed blob.

        Raises:
            MalformedInputError: If the blob is shorter than a nonce
            AuthenticationError: If the tag does not verify
        """
        if len(blob) < NONCE_SIZE:
            raise MalformedInputError(
                f"sealed data too short ({len(blob)} bytes, need at least {NONCE_SIZE})"
            )

        nonce, ciphertext = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            return self._aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag as exc:
            raise AuthenticationError(
                "authentication failed - wrong key or corrupted data"
            ) from exc
        except (OverflowError, ValueError) as exc:
            raise MalformedInputError(
                f"cannot open {len(blob)} bytes: {exc}") from exc


def seal(key: Union[bytes, str], plaintext: bytes) -> bytes:
    """Convenience function: normalize key and seal."""
    return AEADCodec(key).seal(plaintext)


def open_blob(key: Union[bytes, str], blob: bytes) -> bytes:
    """Convenience function: normalize key and open."""
    return AEADCodec(key).open(blob)
