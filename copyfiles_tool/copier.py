from __future__ import annotations

"""Single-file copy engine.

A `CopyTask` streams one source file into a freshly created destination in
fixed-size chunks. Between chunks it observes a cancel flag and a pause gate
that another thread may flip at any time. Every run ends in exactly one
completion callback carrying a `CopyResult`.

Nothing in here knows about Qt; callbacks are invoked on the worker thread
and it is up to the caller to marshal them somewhere else.
"""

import enum
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from .constants import CHUNK_SIZE, MAX_OVERWRITE_RETRIES


_LOG = logging.getLogger("copyfiles_tool.copier")

ProgressCallback = Callable[[float], None]
CompleteCallback = Callable[["CopyResult"], None]
ConfirmCallback = Callable[[str], bool]
ErrorCallback = Callable[[str], None]


class CopyError(Exception):
    pass


class PathCollisionError(CopyError):
    """Raised when the destination already exists (create-new, never overwrite)."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Destination already exists: {path}")
        self.path = str(path)


class CancelledDuringIOError(CopyError):
    """An I/O failure that surfaced after cancellation had been requested."""

    pass


class CopyState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CopyState.COMPLETED, CopyState.CANCELLED, CopyState.FAILED)


@dataclass(frozen=True)
class CopySpec:
    source_path: str
    destination_path: str

    def __post_init__(self) -> None:
        if not str(self.source_path or "").strip():
            raise ValueError("Source path is empty.")
        if not str(self.destination_path or "").strip():
            raise ValueError("Destination path is empty.")


@dataclass(frozen=True)
class CopyResult:
    state: CopyState
    bytes_transferred: int = 0
    total_bytes: int = 0
    error: Optional[str] = None
    # "path_collision" | "cancelled_during_io" | "unclassified"
    error_kind: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is CopyState.COMPLETED


class CancelToken:
    """Thread-safe cancellation flag.

    Written by the controller, read by the worker between chunks.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def cancelled(self) -> bool:
        return self._event.is_set()


class PauseGate:
    """Open = run, closed = suspend.

    Waiters block in `wait()` while the gate is closed. `open()` releases all
    of them, `step()` releases exactly one pass, and `interrupt()` wakes them
    so they can re-check an abort condition (cancellation) without opening.
    """

    def __init__(self, is_open: bool = True) -> None:
        self._cond = threading.Condition()
        self._open = bool(is_open)
        self._steps = 0

    def is_open(self) -> bool:
        with self._cond:
            return self._open

    def open(self) -> None:
        with self._cond:
            self._open = True
            self._steps = 0
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._open = False
            self._steps = 0

    def step(self, count: int = 1) -> None:
        """Release `count` passes through a closed gate; no-op while open."""
        with self._cond:
            if self._open:
                return
            self._steps += max(0, int(count))
            self._cond.notify_all()

    def interrupt(self) -> None:
        with self._cond:
            self._cond.notify_all()

    def wait(self, abort: Optional[Callable[[], bool]] = None) -> bool:
        """Block until the gate lets us through.

        Returns False if `abort()` became true while waiting.
        """
        with self._cond:
            while not self._open:
                if self._steps > 0:
                    self._steps -= 1
                    return True
                if abort is not None and abort():
                    return False
                self._cond.wait()
            return True


def _source_length(f: BinaryIO) -> int:
    try:
        return int(os.fstat(f.fileno()).st_size)
    except (OSError, ValueError):
        return 0


class CopyTask:
    """One copy operation: Idle -> Running -> Completed | Cancelled | Failed."""

    def __init__(
        self,
        spec: CopySpec,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        *,
        chunk_size: int = CHUNK_SIZE,
        confirm_overwrite: Optional[ConfirmCallback] = None,
        report_error: Optional[ErrorCallback] = None,
        max_overwrite_retries: int = MAX_OVERWRITE_RETRIES,
        cancel_token: Optional[CancelToken] = None,
        pause_gate: Optional[PauseGate] = None,
    ) -> None:
        if int(chunk_size) <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size!r}")
        self.spec = spec
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._chunk_size = int(chunk_size)
        self._confirm_overwrite = confirm_overwrite
        self._report_error = report_error
        self._max_overwrite_retries = max(0, int(max_overwrite_retries))
        self._cancel = cancel_token if cancel_token is not None else CancelToken()
        self._gate = pause_gate if pause_gate is not None else PauseGate()

        self._state_lock = threading.Lock()
        self._state = CopyState.IDLE
        self._result: Optional[CopyResult] = None
        self._bytes_transferred = 0
        self._total_bytes = 0
        self._last_percentage = -1.0
        self._created_output = False

    # ------------------------------------------------------------------
    # Control signals (safe to call from any thread)
    # ------------------------------------------------------------------

    def request_cancel(self) -> None:
        if self.state.is_terminal:
            return
        self._cancel.cancel()
        # A paused task must wake up to notice the cancellation.
        self._gate.interrupt()

    def pause(self) -> None:
        if not self.state.is_terminal:
            self._gate.close()

    def resume(self) -> None:
        self._gate.open()

    def step(self) -> None:
        """Let exactly one more chunk through while paused."""
        self._gate.step(1)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> CopyState:
        with self._state_lock:
            return self._state

    @property
    def result(self) -> Optional[CopyResult]:
        with self._state_lock:
            return self._result

    @property
    def bytes_transferred(self) -> int:
        return self._bytes_transferred

    @property
    def total_bytes(self) -> int:
        return self._total_bytes

    @property
    def cancel_requested(self) -> bool:
        return self._cancel.cancelled()

    @property
    def paused(self) -> bool:
        return not self._gate.is_open()

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def run(self) -> CopyResult:
        with self._state_lock:
            if self._state is not CopyState.IDLE:
                raise RuntimeError(f"CopyTask already {self._state.value}; tasks cannot be restarted")
            self._state = CopyState.RUNNING

        _LOG.info("[copy] Start: %s -> %s", self.spec.source_path, self.spec.destination_path)
        result = self._run_with_recovery()

        with self._state_lock:
            self._state = result.state
            self._result = result
        _LOG.info(
            "[copy] %s: %s (%d/%d bytes)%s",
            result.state.value.capitalize(),
            self.spec.destination_path,
            result.bytes_transferred,
            result.total_bytes,
            f" error={result.error}" if result.error else "",
        )

        if self._on_complete is not None:
            try:
                self._on_complete(result)
            except Exception:
                _LOG.exception("[copy] Completion callback raised")
        return result

    def _run_with_recovery(self) -> CopyResult:
        overwrite_attempts = 0
        while True:
            try:
                state = self._copy_once()
            except PathCollisionError as e:
                # Unlike a plain cancel, the colliding file predates this run and is kept.
                if self._cancel.cancelled():
                    self._discard_output()
                    return self._result_for(CopyState.CANCELLED, e, "cancelled_during_io")
                _LOG.warning("[copy] %s", e)
                replace = overwrite_attempts < self._max_overwrite_retries and self._ask_overwrite(e)
                if self._cancel.cancelled():
                    # Cancelled while the prompt was open.
                    return self._result_for(CopyState.CANCELLED, e, "cancelled_during_io")
                if replace:
                    overwrite_attempts += 1
                    try:
                        Path(self.spec.destination_path).unlink()
                    except FileNotFoundError:
                        pass
                    except OSError as ue:
                        return self._fail(ue, "unclassified")
                    _LOG.info("[copy] Overwrite confirmed; retrying (%d/%d)", overwrite_attempts, self._max_overwrite_retries)
                    continue
                return self._result_for(CopyState.FAILED, e, "path_collision")
            except OSError as e:
                if self._cancel.cancelled():
                    self._discard_output()
                    wrapped = CancelledDuringIOError(f"{e} Copying was cancelled.")
                    return self._result_for(CopyState.CANCELLED, wrapped, "cancelled_during_io")
                return self._fail(e, "unclassified")
            except Exception as e:
                return self._fail(e, "unclassified")

            if state is CopyState.CANCELLED:
                self._discard_output()
            return self._result_for(state)

    def _copy_once(self) -> CopyState:
        self._created_output = False
        self._bytes_transferred = 0
        self._last_percentage = -1.0
        if self._cancel.cancelled():
            return CopyState.CANCELLED

        with open(self.spec.source_path, "rb") as src:
            self._total_bytes = _source_length(src)
            try:
                dst = open(self.spec.destination_path, "xb")
            except FileExistsError:
                raise PathCollisionError(self.spec.destination_path) from None
            self._created_output = True
            with dst:
                return self._pump(src, dst)

    def _pump(self, src: BinaryIO, dst: BinaryIO) -> CopyState:
        while True:
            buf = src.read(self._chunk_size)
            if not buf:
                if self._last_percentage < 100.0:
                    # Empty or unknown-length source: close out at 100%.
                    self._emit_progress(100.0)
                return CopyState.COMPLETED
            dst.write(buf)
            self._bytes_transferred += len(buf)
            self._emit_progress(self._percentage())
            _LOG.debug("[copy] chunk: %d/%d bytes", self._bytes_transferred, self._total_bytes)

            if self._cancel.cancelled():
                return CopyState.CANCELLED
            if not self._gate.wait(abort=self._cancel.cancelled):
                return CopyState.CANCELLED
            if self._cancel.cancelled():
                return CopyState.CANCELLED

    def _percentage(self) -> float:
        if self._total_bytes <= 0:
            return 0.0
        pct = self._bytes_transferred * 100.0 / self._total_bytes
        return min(100.0, max(0.0, pct))

    def _emit_progress(self, pct: float) -> None:
        pct = max(pct, self._last_percentage, 0.0)
        self._last_percentage = pct
        if self._on_progress is not None:
            self._on_progress(pct)

    def _ask_overwrite(self, err: PathCollisionError) -> bool:
        if self._confirm_overwrite is None:
            return False
        try:
            return bool(self._confirm_overwrite(f"{err} Replace?"))
        except Exception:
            _LOG.exception("[copy] Overwrite confirmation failed")
            return False

    def _fail(self, err: BaseException, kind: str) -> CopyResult:
        _LOG.error("[copy] Failed: %s: %s", self.spec.destination_path, err)
        self._discard_output()
        if self._report_error is not None:
            try:
                self._report_error(str(err) or type(err).__name__)
            except Exception:
                _LOG.exception("[copy] Error reporter raised")
        return self._result_for(CopyState.FAILED, err, kind)

    def _discard_output(self) -> None:
        # Only remove what this run created; a pre-existing file is never ours.
        if not self._created_output:
            return
        try:
            Path(self.spec.destination_path).unlink()
            _LOG.info("[copy] Removed partial output: %s", self.spec.destination_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            _LOG.warning("[copy] Could not remove partial output %s: %s", self.spec.destination_path, e)
        self._created_output = False

    def _result_for(self, state: CopyState, err: Optional[BaseException] = None, kind: Optional[str] = None) -> CopyResult:
        return CopyResult(
            state=state,
            bytes_transferred=int(self._bytes_transferred),
            total_bytes=int(self._total_bytes),
            error=(str(err) or type(err).__name__) if err is not None else None,
            error_kind=kind if err is not None else None,
        )
