"""Read the complete lines appended to a file after a known offset."""

from __future__ import annotations

from pathlib import Path

_NEWLINE = b"\n"


def new_lines(path: Path, from_offset: int) -> tuple[list[str], int]:
    """Return the non-blank complete lines after *from_offset* and the offset to resume from.

    An unterminated final line is not returned; the resume offset stops just
    after the last newline so that line is read again once it is terminated.
    The resume offset is never smaller than *from_offset*.

    Raises ``OSError`` if the file is missing or unreadable.
    """
    if from_offset < 0:
        msg = f"from_offset must be non-negative, got {from_offset}"
        raise ValueError(msg)

    with path.open("rb") as fh:
        fh.seek(from_offset)
        data = fh.read()

    last_newline = data.rfind(_NEWLINE)
    if last_newline < 0:
        return [], from_offset

    lines: list[str] = []
    for raw in data[:last_newline].split(_NEWLINE):
        line = raw.decode("utf-8", errors="replace")
        if line.strip():
            lines.append(line)
    return lines, from_offset + last_newline + 1
