"""Read the last N lines of a file by walking it backward in fixed-size chunks.

Only the tail of the file is read: the loop stops as soon as enough complete
lines have been collected, so the cost is proportional to the size of the
requested lines rather than to the size of the file.

Dependencies: (stdlib only)
Wired in: engine.py → TailEngine.catch_up()
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_CHUNK_SIZE = 1024
_NEWLINE = b"\n"


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def last_n_lines(path: Path, n: int, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Return the last *n* lines of *path* in file order.

    A trailing newline terminates the last line rather than starting an empty
    one, and an unterminated last line is returned as-is. Blank lines are kept.
    Splitting happens on raw bytes so a multi-byte character straddling a
    chunk edge decodes correctly.

    Raises ``OSError`` if the file cannot be opened or read; the handle is
    closed on every path.
    """
    if chunk_size <= 0:
        msg = f"chunk_size must be positive, got {chunk_size}"
        raise ValueError(msg)

    with path.open("rb") as fh:
        size = os.fstat(fh.fileno()).st_size
        if n <= 0 or size == 0:
            return []

        position = size
        leftover = b""
        lines: list[bytes] = []
        at_end = True

        while position > 0:
            start = max(0, position - chunk_size)
            fh.seek(start)
            chunk = fh.read(position - start)
            position = start

            parts = (chunk + leftover).split(_NEWLINE)
            # parts[0] may continue in the chunk before this one
            leftover = parts[0]
            complete = parts[1:]
            if at_end:
                # the fragment after the file's final newline is not a line
                if complete and complete[-1] == b"":
                    complete.pop()
                at_end = False
            lines[:0] = complete

            if len(lines) >= n:
                break
        else:
            # start of file reached: what remains is the first line
            lines.insert(0, leftover)

    return [_decode(raw) for raw in lines[-n:]]
