from __future__ import annotations

"""Copy orchestration.

`CopyController` turns a `CopySpec` into a running `CopyTask` on its own
thread and relays the task's callbacks through a `dispatch` function, which
is how the GUI gets them onto its own thread. The returned `TaskHandle` is
the only way back to a running copy: cancel/pause/resume/step go through it.
"""

import itertools
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .constants import CHUNK_SIZE, ENV_CHUNK_SIZE, GUI_SETTINGS_FILE, MAX_OVERWRITE_RETRIES
from .copier import (
    ConfirmCallback,
    CopyResult,
    CopySpec,
    CopyState,
    CopyTask,
    ErrorCallback,
)
from .util import env_int


_LOG = logging.getLogger("copyfiles_tool.controller")

Dispatch = Callable[[Callable[[], None]], None]


def _call_inline(fn: Callable[[], None]) -> None:
    fn()


@dataclass(eq=False)
class TaskHandle:
    """Opaque reference to one in-flight copy."""

    task_id: int
    spec: CopySpec
    task: CopyTask
    tag: Any = None
    thread: Optional[threading.Thread] = field(default=None, repr=False)

    @property
    def state(self) -> CopyState:
        return self.task.state

    @property
    def result(self) -> Optional[CopyResult]:
        return self.task.result

    def done(self) -> bool:
        return self.task.state.is_terminal

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread. Returns True if it has finished."""
        if self.thread is None:
            return self.done()
        self.thread.join(timeout)
        return not self.thread.is_alive()


class CopyController:
    def __init__(
        self,
        *,
        dispatch: Optional[Dispatch] = None,
        confirm_overwrite: Optional[ConfirmCallback] = None,
        report_error: Optional[ErrorCallback] = None,
        chunk_size: int = CHUNK_SIZE,
        max_overwrite_retries: int = MAX_OVERWRITE_RETRIES,
    ) -> None:
        self._dispatch: Dispatch = dispatch or _call_inline
        self._confirm_overwrite = confirm_overwrite
        self._report_error = report_error
        self._chunk_size = int(chunk_size)
        self._max_overwrite_retries = int(max_overwrite_retries)
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._active: Dict[int, TaskHandle] = {}

    def start_copy(
        self,
        spec: CopySpec,
        on_progress: Optional[Callable[[float, TaskHandle], None]] = None,
        on_complete: Optional[Callable[[TaskHandle, CopyResult], None]] = None,
        *,
        tag: Any = None,
    ) -> TaskHandle:
        """Launch one copy on a background thread and return its handle."""
        handle_box: List[TaskHandle] = []

        def _progress(pct: float) -> None:
            if on_progress is not None:
                h = handle_box[0]
                self._dispatch(lambda: on_progress(pct, h))

        def _complete(result: CopyResult) -> None:
            h = handle_box[0]
            with self._lock:
                self._active.pop(h.task_id, None)
            if on_complete is not None:
                self._dispatch(lambda: on_complete(h, result))

        task = CopyTask(
            spec,
            _progress,
            _complete,
            chunk_size=self._chunk_size,
            confirm_overwrite=self._confirm_overwrite,
            report_error=self._report_error,
            max_overwrite_retries=self._max_overwrite_retries,
        )
        handle = TaskHandle(task_id=next(self._ids), spec=spec, task=task, tag=tag)
        handle_box.append(handle)

        t = threading.Thread(target=task.run, name=f"copy-{handle.task_id}", daemon=True)
        handle.thread = t
        with self._lock:
            self._active[handle.task_id] = handle
        _LOG.info("[copy] Launching #%d: %s -> %s", handle.task_id, spec.source_path, spec.destination_path)
        t.start()
        return handle

    def cancel(self, handle: TaskHandle) -> None:
        if handle.done():
            return
        _LOG.info("[copy] Cancel requested for #%d", handle.task_id)
        handle.task.request_cancel()

    def pause(self, handle: TaskHandle) -> None:
        if handle.done():
            return
        _LOG.info("[copy] Pause requested for #%d", handle.task_id)
        handle.task.pause()

    def resume(self, handle: TaskHandle) -> None:
        if handle.done():
            return
        _LOG.info("[copy] Resume requested for #%d", handle.task_id)
        handle.task.resume()

    def step(self, handle: TaskHandle) -> None:
        if not handle.done():
            handle.task.step()

    def active_handles(self) -> List[TaskHandle]:
        with self._lock:
            return list(self._active.values())

    def wait_all(self, timeout: Optional[float] = None) -> bool:
        """Join every active copy within one overall timeout.

        Returns True if all finished in time.
        """
        deadline = None if timeout is None else time.monotonic() + float(timeout)
        ok = True
        for h in self.active_handles():
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            ok = h.join(remaining) and ok
        return ok


# -------- GUI settings (portable JSON next to the package) --------

def _settings_path() -> Path:
    return Path(__file__).resolve().parent / GUI_SETTINGS_FILE


def load_settings() -> dict:
    p = _settings_path()
    if not p.exists():
        return {}
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        _LOG.warning("Ignoring unreadable settings file: %s", p)
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict) -> None:
    p = _settings_path()
    try:
        p.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
    except OSError as e:
        # best-effort only
        _LOG.warning("Could not save settings to %s: %s", p, e)


def resolve_chunk_size(settings: Optional[dict] = None) -> int:
    """Chunk size from env var, then settings, then the 1 MiB default."""
    env_val = env_int(ENV_CHUNK_SIZE)
    if env_val is not None and env_val > 0:
        return env_val
    try:
        val = int((settings or {}).get("chunk_size") or 0)
    except (TypeError, ValueError):
        val = 0
    return val if val > 0 else CHUNK_SIZE
