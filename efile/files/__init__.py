# File Encryption Module
"""
Whole-file content encryption:
- AES-GCM over the entire file (no chunking)
- nonce || ciphertext on disk, no header
- Temporary file + os.replace() commit
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues when running module directly."""
    from . import file_crypto
    return getattr(file_crypto, name)

__all__ = [
    'ContentTransformer',
    'atomic_write',
    'read_file',
    'encrypt_file',
    'decrypt_file',
]
