"""
Key Normalization

Coerces a user key of arbitrary length into a size AES accepts:
- shorter than 16 bytes: zero-padded to 16
- longer than 32 bytes: truncated to 32
- 16, 24 or 32 bytes: used as-is
- anything in between: zero-padded to the next AES key size

This is NOT a key derivation function. Keys that only differ by trailing
zero bytes within one size bucket normalize to the same AES key.
"""

from typing import Union


# Constants
MIN_KEY_SIZE = 16           # AES-128
MAX_KEY_SIZE = 32           # AES-256
AES_KEY_SIZES = (16, 24, 32)


def normalize_key(key: Union[bytes, bytearray, str]) -> bytes:
    """
    Normalize a raw key to a valid AES key length.

    Args:
        key: Raw key bytes, or a string (encoded as UTF-8)

    Returns:
        16, 24 or 32 bytes
    """
    if isinstance(key, str):
        key = key.encode('utf-8')
    key = bytes(key)

    if len(key) > MAX_KEY_SIZE:
        return key[:MAX_KEY_SIZE]

    size = next(s for s in AES_KEY_SIZES if len(key) <= s)
    return key.ljust(size, b'\x00')
