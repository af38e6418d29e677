"""
Whole-file buffers for tfc.

Files are loaded completely into memory, either as raw bytes or as a list of
text lines, and written back in a single pass.
"""

import logging
import os
import shutil
import tempfile
from typing import Iterable, List

logger = logging.getLogger("tfc")

LINE_CUT_CHARS = ("\r", "\n", "\0")


def read_bytes(file_path: str) -> bytes:
    """Load the whole file as bytes. OSError propagates to the caller."""
    with open(file_path, "rb") as f:
        data: bytes = f.read()
    logger.debug("Read %d bytes from %s", len(data), file_path)
    return data


def write_bytes(file_path: str, data: bytes) -> None:
    """Create or overwrite file_path with data."""
    with open(file_path, "wb") as f:
        f.write(data)
    logger.debug("Wrote %d bytes to %s", len(data), file_path)


def read_lines(file_path: str) -> List[str]:
    """
    Load a text file as a list of lines.

    Each line is cut at its first CR, LF or NUL character, so the stored
    lines never carry a terminator. Empty lines at the end of the file are
    dropped.
    """
    with open(file_path, "r", newline="", encoding="utf-8") as f:
        content: str = f.read()

    lines: List[str] = []
    for raw in content.split("\n"):
        cut = len(raw)
        for ch in LINE_CUT_CHARS:
            pos = raw.find(ch)
            if pos != -1:
                cut = min(cut, pos)
        lines.append(raw[:cut])

    while lines and not lines[-1]:
        lines.pop()
    return lines


def write_lines(file_path: str, lines: Iterable[str]) -> None:
    """Write each line followed by a single LF."""
    with open(file_path, "w", newline="", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


def is_binary_file(file_path: str) -> bool:
    """
    Check if a file is binary by examining its first chunk.
    Uses well known magic numbers and the share of non-text bytes. A stray
    NUL is not enough, text files may use it as a line boundary.
    """
    try:
        if os.path.getsize(file_path) == 0:
            return False

        with open(file_path, "rb") as f:
            chunk: bytes = f.read(8192)

        if not chunk:
            return False

        if chunk.startswith(
            (b"\x89PNG", b"GIF8", b"\xff\xd8\xff", b"%PDF", b"PK\x03\x04")
        ):
            return True

        text_characters: bytearray = bytearray(
            {7, 8, 9, 10, 12, 13, 27} | set(range(0x20, 0x100)) - {0x7F}
        )
        non_text: bytes = chunk.translate(None, bytes(text_characters))
        return float(len(non_text)) / len(chunk) > 0.2
    except OSError as e:
        logger.error("Error checking if file is binary %s: %s", file_path, str(e))
        return True  # Assume binary on error


def replace_file(file_path: str, data: bytes) -> None:
    """
    Rewrite file_path in place.

    The current content is first copied to a uniquely named .bak file in the
    same directory. If the write fails the copy is put back and the write
    error is re-raised; if that restore fails too, the .bak file is left
    behind for the user.
    """
    fd, temp_backup = tempfile.mkstemp(
        dir=os.path.dirname(os.path.abspath(file_path)),
        prefix=os.path.basename(file_path) + ".",
        suffix=".bak",
    )
    os.close(fd)
    try:
        shutil.copy2(file_path, temp_backup)
    except OSError:
        os.remove(temp_backup)
        raise

    try:
        write_bytes(file_path, data)
    except OSError as write_err:
        try:
            shutil.copy2(temp_backup, file_path)
            logger.info(
                "Restored original file from backup after write error: %s",
                file_path,
            )
        except OSError as restore_err:
            logger.error(
                "Failed to restore %s, original content kept in %s: %s",
                file_path,
                temp_backup,
                str(restore_err),
            )
            raise write_err
        os.remove(temp_backup)
        raise

    os.remove(temp_backup)
