"""
efile - reversible encryption of file trees.

Encrypts file contents and file/directory names under one key with
AES-GCM, and restores them with the same key.
"""

__version__ = "0.2.0"

from .config import TransformConfig
from .tree import Mode, Orchestrator, ErrorReport, encrypt_paths, decrypt_paths

__all__ = [
    '__version__',
    'TransformConfig',
    'Mode',
    'Orchestrator',
    'ErrorReport',
    'encrypt_paths',
    'decrypt_paths',
]
