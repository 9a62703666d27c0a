"""
Name Codec

Encrypts single path segments so the result is still a legal file name:

    base64url(nonce || ciphertext || tag) + suffix

The suffix is ".enc" for files and "-enc" for directories. It is the only
signal that a name has been transformed; nothing else is stored. A plain
name that happens to end in one of the suffixes is therefore treated as
already encrypted and skipped. name_state() is the one place that makes
this call.
"""

import base64
import binascii
import os
from enum import Enum
from typing import Optional

from .aead import AEADCodec
from ..errors import DecodeError


# Constants
FILE_SUFFIX = ".enc"
DIR_SUFFIX = "-enc"
SUFFIXES = (FILE_SUFFIX, DIR_SUFFIX)

_FORBIDDEN_NAMES = ("", ".", "..")


class NameState(Enum):
    """Transformation state of a name, derived from its suffix."""
    PLAIN = "plain"
    TRANSFORMED = "transformed"


def name_state(name: str) -> NameState:
    """Classify a name by its suffix marker."""
    if name.endswith(SUFFIXES):
        return NameState.TRANSFORMED
    return NameState.PLAIN


def strip_suffix(name: str) -> str:
    """Remove the transform suffix from a transformed name."""
    for suffix in SUFFIXES:
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return name


def suffix_for(is_container: bool) -> str:
    """Suffix marking an encrypted directory or file."""
    return DIR_SUFFIX if is_container else FILE_SUFFIX


class NameCodec:
    """
    Reversible encryption of file and directory names.

    Names are sealed as platform-native bytes (os.fsencode), so names that
    are not valid UTF-8 on POSIX survive a round trip.
    """

    def __init__(self, codec: AEADCodec):
        self._codec = codec

    def encode(self, name: str) -> str:
        """
        Encrypt a name to base64url text (no suffix).

        Args:
            name: Plain path segment

        Returns:
            URL-safe base64 text, '=' padding kept
        """
        blob = self._codec.seal(os.fsencode(name))
        return base64.urlsafe_b64encode(blob).decode('ascii')

    def decode(self, text: str) -> str:
        """
        Decrypt base64url text (no suffix) back to a name.

        Raises:
            DecodeError: Malformed base64url or illegal decrypted name
            AuthenticationError: Wrong key or tampered name
            MalformedInputError: Decoded blob shorter than a nonce
        """
        try:
            blob = base64.b64decode(text.encode('ascii'), altchars=b'-_', validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise DecodeError(f"invalid base64url name {text!r}: {exc}") from exc

        name = os.fsdecode(self._codec.open(blob))

        # Authenticated, but still never allow a name to escape its directory
        if name in _FORBIDDEN_NAMES or '/' in name or '\x00' in name or os.sep in name:
            raise DecodeError(f"decrypted name {name!r} is not a legal path segment")
        return name

    def encrypt_name(self, name: str, is_container: bool) -> Optional[str]:
        """
        Full encrypted name with suffix.

        Returns:
            The new name, or None if the name is already transformed
        """
        if name_state(name) is NameState.TRANSFORMED:
            return None
        return self.encode(name) + suffix_for(is_container)

    def decrypt_name(self, name: str) -> Optional[str]:
        """
        Original name of a transformed entry.

        Returns:
            The plain name, or None if the name is not transformed
        """
        if name_state(name) is NameState.PLAIN:
            return None
        return self.decode(strip_suffix(name))
