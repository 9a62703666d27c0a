"""
Unit tests for File Encryption module.

Tests:
- In-place content encryption/decryption
- Atomic commit and temporary file cleanup
- Wrong key and malformed file handling
"""

import os
import stat
import sys
import tempfile

import pytest

from efile.core_crypto.aead import AEADCodec, NONCE_SIZE, TAG_SIZE
from efile.errors import (
    AuthenticationError, MalformedInputError, RenameError, StatError
)
from efile.files import file_crypto
from efile.files.file_crypto import (
    ContentTransformer, atomic_write, read_file, encrypt_file, decrypt_file
)


def write_bytes(path, data):
    with open(path, "wb") as f:
        f.write(data)


def read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


class TestContentTransformer:
    """Tests for ContentTransformer."""

    def test_encrypt_decrypt_file(self):
        """File encryption/decryption roundtrip in place."""
        transformer = ContentTransformer(AEADCodec(b"test_key"))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "input.txt")
            test_data = b"Hello, File Encryption!" * 100
            write_bytes(path, test_data)

            info = transformer.encrypt_file(path)
            encrypted = read_bytes(path)
            assert encrypted != test_data
            assert len(encrypted) == len(test_data) + NONCE_SIZE + TAG_SIZE
            assert info == {'input_size': len(test_data), 'output_size': len(encrypted)}

            info = transformer.decrypt_file(path)
            assert read_bytes(path) == test_data
            assert info['output_size'] == len(test_data)

    def test_file_is_nonce_plus_ciphertext(self):
        """On-disk format is exactly nonce || sealed bytes."""
        codec = AEADCodec(b"test_key")
        transformer = ContentTransformer(codec)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "data.bin")
            write_bytes(path, b"raw bytes")
            transformer.encrypt_file(path)
            assert codec.open(read_bytes(path)) == b"raw bytes"

    def test_empty_file(self):
        """Empty files round-trip."""
        transformer = ContentTransformer(AEADCodec(b"k"))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "empty")
            write_bytes(path, b"")
            transformer.encrypt_file(path)
            assert len(read_bytes(path)) == NONCE_SIZE + TAG_SIZE
            transformer.decrypt_file(path)
            assert read_bytes(path) == b""

    def test_binary_content(self):
        """Arbitrary binary content round-trips."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "random.bin")
            data = os.urandom(100_000)
            write_bytes(path, data)

            encrypt_file(path, "password")
            decrypt_file(path, "password")
            assert read_bytes(path) == data

    def test_wrong_key_leaves_file_untouched(self):
        """Wrong key fails and the encrypted file is unchanged."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "secret.txt")
            write_bytes(path, b"top secret")
            encrypt_file(path, b"right_key")
            encrypted = read_bytes(path)

            with pytest.raises(AuthenticationError) as exc_info:
                decrypt_file(path, b"wrong_key")
            assert exc_info.value.path == path
            assert read_bytes(path) == encrypted

    def test_truncated_file_malformed(self):
        """Files shorter than a nonce cannot be decrypted."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "short")
            write_bytes(path, b"tiny")
            with pytest.raises(MalformedInputError):
                decrypt_file(path, b"key")
            assert read_bytes(path) == b"tiny"

    def test_missing_file(self):
        """Missing file raises StatError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(StatError):
                encrypt_file(os.path.join(tmpdir, "nope"), b"key")


class TestAtomicWrite:
    """Tests for the temporary file + replace commit."""

    def test_replaces_content(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"old")
            atomic_write(path, b"new")
            assert read_bytes(path) == b"new"

    def test_no_temp_files_left(self):
        """Only the target remains after a commit."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"old")
            atomic_write(path, b"new")
            assert os.listdir(tmpdir) == ["f"]

    def test_creates_missing_target(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "new_file")
            atomic_write(path, b"data")
            assert read_bytes(path) == b"data"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_preserves_permissions(self):
        """The committed file keeps the original permission bits."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"old")
            os.chmod(path, 0o640)
            atomic_write(path, b"new")
            assert stat.S_IMODE(os.stat(path).st_mode) == 0o640

    def test_failed_replace_keeps_original(self, monkeypatch):
        """If the final rename fails the original is intact and no temp file remains."""
        def broken_replace(src, dst):
            raise OSError("disk on fire")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"original")

            monkeypatch.setattr(file_crypto.os, "replace", broken_replace)
            with pytest.raises(RenameError):
                atomic_write(path, b"replacement")
            monkeypatch.undo()

            assert read_bytes(path) == b"original"
            assert os.listdir(tmpdir) == ["f"]

    def test_failed_write_keeps_original(self, monkeypatch):
        """If writing the temporary file fails nothing changes."""
        def broken_fsync(fd):
            raise OSError("no space left")

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"original")

            monkeypatch.setattr(file_crypto.os, "fsync", broken_fsync)
            with pytest.raises(file_crypto.TransformIOError):
                atomic_write(path, b"replacement")
            monkeypatch.undo()

            assert read_bytes(path) == b"original"
            assert os.listdir(tmpdir) == ["f"]

    def test_read_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "f")
            write_bytes(path, b"abc")
            assert read_file(path) == b"abc"
