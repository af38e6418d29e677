#!/usr/bin/env python3
"""
Test the whole-file buffers and binary detection in filebuffer.py.
"""

import logging
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add parent directory to path to import filebuffer module
sys.path.insert(0, str(Path(__file__).parent.parent))
import filebuffer  # pylint: disable=wrong-import-position

# Disable logging for tests
filebuffer.logger.setLevel(logging.CRITICAL)


class TestBinaryBuffer(unittest.TestCase):
    def setUp(self) -> None:
        # Create a temporary directory
        self.test_dir = tempfile.mkdtemp()
        self.test_file = os.path.join(self.test_dir, "test.txt")

    def tearDown(self) -> None:
        # Clean up the temporary directory
        shutil.rmtree(self.test_dir)

    def test_write_then_read(self) -> None:
        """Bytes come back exactly, line endings included."""
        data = b"\t a\r\n\n\r b\rc"
        filebuffer.write_bytes(self.test_file, data)
        self.assertEqual(filebuffer.read_bytes(self.test_file), data)

    def test_overwrite(self) -> None:
        filebuffer.write_bytes(self.test_file, b"first version\n")
        filebuffer.write_bytes(self.test_file, b"second\n")
        self.assertEqual(filebuffer.read_bytes(self.test_file), b"second\n")

    def test_read_missing_file(self) -> None:
        with self.assertRaises(OSError):
            filebuffer.read_bytes(os.path.join(self.test_dir, "missing.txt"))

    def test_write_missing_directory(self) -> None:
        with self.assertRaises(OSError):
            filebuffer.write_bytes(os.path.join(self.test_dir, "no", "x.txt"), b"x")


class TestTextBuffer(unittest.TestCase):
    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.test_file = os.path.join(self.test_dir, "test.txt")

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir)

    def test_write_lines(self) -> None:
        filebuffer.write_lines(self.test_file, ["Line 0", "\tLine 1"])
        with open(self.test_file, "rb") as f:
            self.assertEqual(f.read(), b"Line 0\n\tLine 1\n")

    def test_read_lines_strips_terminators(self) -> None:
        with open(self.test_file, "wb") as f:
            f.write(b"dos\r\nunix\nnul\0tail\n\n\n")
        self.assertEqual(
            filebuffer.read_lines(self.test_file), ["dos", "unix", "nul"]
        )

    def test_read_lines_keeps_inner_blank_lines(self) -> None:
        with open(self.test_file, "wb") as f:
            f.write(b"a\n\nb\n")
        self.assertEqual(filebuffer.read_lines(self.test_file), ["a", "", "b"])

    def test_read_lines_keeps_unterminated_last_line(self) -> None:
        with open(self.test_file, "wb") as f:
            f.write(b"a\nlast")
        self.assertEqual(filebuffer.read_lines(self.test_file), ["a", "last"])

    def test_read_lines_empty_file(self) -> None:
        with open(self.test_file, "wb"):
            pass
        self.assertEqual(filebuffer.read_lines(self.test_file), [])


class TestBinaryDetection(unittest.TestCase):
    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir)

    def _write(self, name: str, data: bytes) -> str:
        path = os.path.join(self.test_dir, name)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def test_text_file(self) -> None:
        path = self._write("text.txt", b"\t  Sub 1\r\n H\ti\n\r")
        self.assertFalse(filebuffer.is_binary_file(path))

    def test_empty_file(self) -> None:
        self.assertFalse(filebuffer.is_binary_file(self._write("empty.txt", b"")))

    def test_nul_bytes(self) -> None:
        path = self._write("binary.bin", b"\x00\x01\x02\x03\xff\xfe\xfd\xfc")
        self.assertTrue(filebuffer.is_binary_file(path))

    def test_text_with_nul(self) -> None:
        """A NUL inside otherwise plain text does not make the file binary."""
        path = self._write("nul.txt", b"\tA\r\n\tB\x00\r\n")
        self.assertFalse(filebuffer.is_binary_file(path))

    def test_magic_numbers(self) -> None:
        """Test binary file detection by magic numbers."""
        magic_files = [
            ("png.txt", b"\x89PNG\r\n\x1a\n"),
            ("gif.txt", b"GIF89a"),
            ("jpg.txt", b"\xff\xd8\xff"),
            ("pdf.txt", b"%PDF-1.4"),
            ("zip.txt", b"PK\x03\x04"),
        ]
        for filename, data in magic_files:
            path = self._write(filename, data)
            self.assertTrue(filebuffer.is_binary_file(path), filename)

    def test_control_characters(self) -> None:
        path = self._write("control.txt", bytes(range(1, 7)) * 10)
        self.assertTrue(filebuffer.is_binary_file(path))

    def test_os_error(self) -> None:
        """Binary detection assumes binary when the file cannot be inspected."""
        with patch("os.path.getsize", side_effect=OSError("Size error")):
            self.assertTrue(filebuffer.is_binary_file("whatever.txt"))


class TestReplaceFile(unittest.TestCase):
    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.test_file = os.path.join(self.test_dir, "test.txt")
        with open(self.test_file, "wb") as f:
            f.write(b"test\r\ncontent\r\n")

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir)

    def test_replace(self) -> None:
        filebuffer.replace_file(self.test_file, b"test\ncontent\n")
        self.assertEqual(filebuffer.read_bytes(self.test_file), b"test\ncontent\n")
        self.assertEqual(os.listdir(self.test_dir), ["test.txt"])

    def test_existing_bak_file_untouched(self) -> None:
        """A .bak file that already sits next to the file is not reused."""
        user_backup = self.test_file + ".bak"
        with open(user_backup, "wb") as f:
            f.write(b"my own backup\n")

        filebuffer.replace_file(self.test_file, b"test\ncontent\n")

        self.assertEqual(filebuffer.read_bytes(user_backup), b"my own backup\n")
        self.assertEqual(
            sorted(os.listdir(self.test_dir)), ["test.txt", "test.txt.bak"]
        )

    def test_write_error_restores_original(self) -> None:
        with patch("filebuffer.write_bytes", side_effect=OSError("Write error")):
            with self.assertRaises(OSError) as ctx:
                filebuffer.replace_file(self.test_file, b"new")
        self.assertEqual(str(ctx.exception), "Write error")
        self.assertEqual(filebuffer.read_bytes(self.test_file), b"test\r\ncontent\r\n")
        self.assertEqual(os.listdir(self.test_dir), ["test.txt"])

    def test_restore_error_keeps_backup(self) -> None:
        """When the restore fails too, the write error is raised and the copy kept."""
        real_copy2 = shutil.copy2
        calls: list = []

        def copy_then_fail(src: str, dst: str) -> None:
            calls.append((src, dst))
            if len(calls) > 1:
                raise OSError("Restore error")
            real_copy2(src, dst)

        with patch("filebuffer.write_bytes", side_effect=OSError("Write error")):
            with patch("shutil.copy2", side_effect=copy_then_fail):
                with self.assertRaises(OSError) as ctx:
                    filebuffer.replace_file(self.test_file, b"new")
        self.assertEqual(str(ctx.exception), "Write error")

        backups = [name for name in os.listdir(self.test_dir) if name != "test.txt"]
        self.assertEqual(len(backups), 1)
        self.assertTrue(backups[0].endswith(".bak"))
        with open(os.path.join(self.test_dir, backups[0]), "rb") as f:
            self.assertEqual(f.read(), b"test\r\ncontent\r\n")

    def test_backup_error(self) -> None:
        """Nothing is written when the backup cannot be taken."""
        with patch("shutil.copy2", side_effect=OSError("Backup error")):
            with self.assertRaises(OSError):
                filebuffer.replace_file(self.test_file, b"new")
        self.assertEqual(filebuffer.read_bytes(self.test_file), b"test\r\ncontent\r\n")
        self.assertEqual(os.listdir(self.test_dir), ["test.txt"])


if __name__ == "__main__":
    unittest.main()
