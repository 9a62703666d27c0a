# Core Cryptography Module
"""
Core cryptographic building blocks:
- Key normalization - keys.py
- AES-GCM seal/open of byte blobs - aead.py
- File/directory name encryption with suffix markers - names.py
"""

from .keys import normalize_key
from .aead import AEADCodec, seal, open_blob, NONCE_SIZE, TAG_SIZE
from .names import (
    NameCodec,
    NameState,
    name_state,
    strip_suffix,
    suffix_for,
    FILE_SUFFIX,
    DIR_SUFFIX,
)

__all__ = [
    'normalize_key',
    'AEADCodec',
    'seal',
    'open_blob',
    'NONCE_SIZE',
    'TAG_SIZE',
    'NameCodec',
    'NameState',
    'name_state',
    'strip_suffix',
    'suffix_for',
    'FILE_SUFFIX',
    'DIR_SUFFIX',
]
