# Tree Transform Module
"""
Directory tree traversal and the encrypt/decrypt orchestration:
- Entry discovery, error collection, concurrent walk - walker.py
- Per-entry transform order and batch runs - orchestrator.py
"""

from .walker import Entry, EntryKind, EntryError, ErrorReport, TreeWalker
from .orchestrator import (
    Mode,
    Orchestrator,
    encrypt_paths,
    decrypt_paths,
    trim_path,
)

__all__ = [
    'Entry',
    'EntryKind',
    'EntryError',
    'ErrorReport',
    'TreeWalker',
    'Mode',
    'Orchestrator',
    'encrypt_paths',
    'decrypt_paths',
    'trim_path',
]
