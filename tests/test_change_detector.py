"""Tests for tail/change_detector.py: debouncing and delta extraction."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import patch

import pytest

from tailcast.tail.change_detector import ChangeDetector
from tailcast.tail.state import WatchedFile


def _append(path: Path, data: bytes) -> None:
    with path.open("ab") as fh:
        fh.write(data)


def _watched(path: Path) -> WatchedFile:
    watched = WatchedFile(path=path.resolve())
    watched.refresh()
    return watched


class _Recorder:
    def __init__(self) -> None:
        self.batches: list[list[str]] = []

    async def __call__(self, lines: list[str]) -> None:
        self.batches.append(lines)


def _detector(path: Path, *, debounce: float = 0.02) -> tuple[ChangeDetector, _Recorder]:
    recorder = _Recorder()
    return ChangeDetector(_watched(path), recorder, debounce=debounce), recorder


# -- debouncing --------------------------------------------------------------


def test_burst_of_notifications_runs_one_check(log_file: Path) -> None:
    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file)
        _append(log_file, b"line1\nline2\n")
        for _ in range(10):
            detector.notify()
            await asyncio.sleep(0.001)
        await detector.wait_idle()
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert detector.checks == 1
    assert recorder.batches == [["line1", "line2"]]


def test_notifications_in_separate_windows_run_separate_checks(log_file: Path) -> None:
    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file)
        _append(log_file, b"first\n")
        detector.notify()
        await detector.wait_idle()
        _append(log_file, b"second\n")
        detector.notify()
        await detector.wait_idle()
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert detector.checks == 2
    assert recorder.batches == [["first"], ["second"]]


def test_aclose_cancels_pending_timer(log_file: Path) -> None:
    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file, debounce=0.5)
        _append(log_file, b"never\n")
        detector.notify()
        await detector.aclose()
        await asyncio.sleep(0.6)
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert detector.checks == 0
    assert recorder.batches == []


def test_negative_debounce_rejected(log_file: Path) -> None:
    with pytest.raises(ValueError, match="debounce"):
        ChangeDetector(_watched(log_file), _Recorder(), debounce=-1)


# -- size checks -------------------------------------------------------------


def test_metadata_only_change_is_noop(log_file: Path) -> None:
    _append(log_file, b"existing\n")

    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file)
        log_file.touch()
        detector.notify()
        await detector.wait_idle()
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert detector.checks == 1
    assert recorder.batches == []
    assert detector.watched.last_known_offset == len(b"existing\n")


def test_starts_from_existing_end(log_file: Path) -> None:
    _append(log_file, b"before start\n")

    async def scenario() -> list[str]:
        detector, _ = _detector(log_file)
        _append(log_file, b"after start\n")
        return await detector.check()

    assert asyncio.run(scenario()) == ["after start"]


def test_blank_only_growth_advances_offset_without_callback(log_file: Path) -> None:
    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file)
        _append(log_file, b"\n  \n")
        await detector.check()
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert recorder.batches == []
    assert detector.watched.last_known_offset == log_file.stat().st_size


def test_shrink_does_not_reset_offset(log_file: Path) -> None:
    _append(log_file, b"x" * 99 + b"\n")

    async def scenario() -> tuple[ChangeDetector, _Recorder]:
        detector, recorder = _detector(log_file)
        log_file.write_bytes(b"")
        _append(log_file, b"rotated 1\n")
        await detector.check()
        _append(log_file, b"rotated 2\n")
        await detector.check()
        return detector, recorder

    detector, recorder = asyncio.run(scenario())
    assert log_file.stat().st_size < 100
    assert recorder.batches == []
    assert detector.watched.last_known_offset == 100


def test_missing_file_is_not_fatal_and_retried(tmp_path: Path) -> None:
    path = tmp_path / "later.txt"

    async def scenario() -> tuple[ChangeDetector, _Recorder, bool]:
        detector, recorder = _detector(path)
        await detector.check()
        was_accessible = detector.watched.accessible
        _append(path, b"created\n")
        await detector.check()
        return detector, recorder, was_accessible

    detector, recorder, was_accessible = asyncio.run(scenario())
    assert was_accessible is False
    assert detector.watched.accessible is True
    assert recorder.batches == [["created"]]


def test_read_failure_keeps_offset_for_retry(log_file: Path) -> None:
    async def scenario() -> tuple[ChangeDetector, _Recorder, int]:
        detector, recorder = _detector(log_file)
        _append(log_file, b"retry me\n")
        with patch(
            "tailcast.tail.change_detector.new_lines",
            side_effect=PermissionError("locked"),
        ):
            await detector.check()
        offset_after_failure = detector.watched.last_known_offset
        await detector.check()
        return detector, recorder, offset_after_failure

    detector, recorder, offset_after_failure = asyncio.run(scenario())
    assert offset_after_failure == 0
    assert recorder.batches == [["retry me"]]


def test_unterminated_line_emitted_once_terminated(log_file: Path) -> None:
    async def scenario() -> _Recorder:
        detector, recorder = _detector(log_file)
        _append(log_file, b"half")
        await detector.check()
        _append(log_file, b" done\n")
        await detector.check()
        return recorder

    assert asyncio.run(scenario()).batches == [["half done"]]


def test_callback_error_is_logged_not_raised(log_file: Path, caplog: pytest.LogCaptureFixture) -> None:
    async def failing(lines: list[str]) -> None:
        raise RuntimeError("boom")

    async def scenario() -> ChangeDetector:
        detector = ChangeDetector(_watched(log_file), failing, debounce=0.01)
        _append(log_file, b"x\n")
        detector.notify()
        await detector.wait_idle()
        return detector

    detector = asyncio.run(scenario())
    assert detector.checks == 1
    assert "Tail check" in caplog.text


# -- watched file state ------------------------------------------------------


def test_refresh_starts_at_end_of_file(log_file: Path) -> None:
    log_file.write_bytes(b"old\nlines\n")
    watched = _watched(log_file)
    assert watched.last_known_offset == 10
    assert watched.accessible is True


def test_refresh_missing_file_starts_at_zero(tmp_path: Path) -> None:
    watched = WatchedFile(path=tmp_path / "absent.txt", last_known_offset=7, accessible=True)
    watched.refresh()
    assert watched.last_known_offset == 0
    assert watched.accessible is False
