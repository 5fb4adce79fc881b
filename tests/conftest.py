from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable, List

import pytest


def pattern_bytes(size: int) -> bytes:
    """Deterministic, non-repeating-per-chunk test payload."""
    block = bytes(range(256))
    return (block * (size // 256 + 1))[:size]


def wait_until(pred: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.005)
    return bool(pred())


class Recorder:
    """Collects progress/completion callbacks from a copy (thread-safe)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.progress: List[float] = []
        self.results: list = []
        self.threads: List[int] = []
        self.completed = threading.Event()

    def on_progress(self, pct: float, *_rest) -> None:
        with self._lock:
            self.progress.append(pct)
            self.threads.append(threading.get_ident())

    def on_complete(self, *args) -> None:
        # Task passes (result,), controller passes (handle, result).
        with self._lock:
            self.results.append(args[-1])
        self.completed.set()


@pytest.fixture
def make_source(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str, size: int) -> Path:
        p = tmp_path / name
        p.write_bytes(pattern_bytes(size))
        return p

    return _make


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
