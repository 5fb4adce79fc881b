from __future__ import annotations

import threading
import time
from pathlib import Path

from copyfiles_tool.copier import CancelToken, CopySpec, CopyState, CopyTask, PauseGate
from tests.conftest import Recorder, wait_until


def _waiter(gate: PauseGate, out: list, abort=None) -> threading.Thread:
    t = threading.Thread(target=lambda: out.append(gate.wait(abort)), daemon=True)
    t.start()
    return t


def test_open_gate_does_not_block() -> None:
    gate = PauseGate()
    assert gate.is_open()
    assert gate.wait() is True


def test_closed_gate_blocks_until_opened() -> None:
    gate = PauseGate()
    gate.close()
    out: list = []
    t = _waiter(gate, out)
    time.sleep(0.05)
    assert out == []
    gate.open()
    t.join(2)
    assert out == [True]


def test_open_releases_every_waiter() -> None:
    gate = PauseGate(is_open=False)
    out: list = []
    threads = [_waiter(gate, out) for _ in range(3)]
    time.sleep(0.05)
    gate.open()
    for t in threads:
        t.join(2)
    assert out == [True, True, True]


def test_step_releases_exactly_one_pass() -> None:
    gate = PauseGate(is_open=False)
    out: list = []
    first = _waiter(gate, out)
    second = _waiter(gate, out)
    time.sleep(0.05)
    gate.step()
    assert wait_until(lambda: len(out) == 1)
    time.sleep(0.05)
    assert len(out) == 1
    gate.open()
    first.join(2)
    second.join(2)
    assert out == [True, True]


def test_interrupt_wakes_waiter_with_abort() -> None:
    gate = PauseGate(is_open=False)
    token = CancelToken()
    out: list = []
    t = _waiter(gate, out, abort=token.cancelled)
    time.sleep(0.05)
    token.cancel()
    gate.interrupt()
    t.join(2)
    assert out == [False]
    assert not gate.is_open()


def test_step_on_open_gate_is_ignored() -> None:
    gate = PauseGate()
    gate.step(3)
    gate.close()
    out: list = []
    t = _waiter(gate, out)
    time.sleep(0.05)
    assert out == []
    gate.open()
    t.join(2)
    assert out == [True]


def test_close_discards_pending_steps() -> None:
    gate = PauseGate(is_open=False)
    gate.step(2)
    gate.close()
    out: list = []
    t = _waiter(gate, out)
    time.sleep(0.05)
    assert out == []
    gate.open()
    t.join(2)
    assert out == [True]


def _paused_after_first_chunk(tmp_path: Path, make_source, rec: Recorder, size: int = 4096):
    src = make_source("src.bin", size)
    dst = tmp_path / "dst.bin"
    first_seen = threading.Event()
    box: list = []

    def on_progress(pct: float) -> None:
        if not rec.progress:
            box[0].pause()
            first_seen.set()
        rec.on_progress(pct)

    task = CopyTask(CopySpec(str(src), str(dst)), on_progress, rec.on_complete, chunk_size=1024)
    box.append(task)
    worker = threading.Thread(target=task.run, daemon=True)
    worker.start()
    assert first_seen.wait(5)
    return task, worker, src, dst


def test_pause_holds_transfer_until_resume(tmp_path: Path, make_source, recorder: Recorder) -> None:
    task, worker, src, dst = _paused_after_first_chunk(tmp_path, make_source, recorder)

    time.sleep(0.1)
    assert task.paused
    assert task.state is CopyState.RUNNING
    assert task.bytes_transferred == 1024

    task.resume()
    worker.join(5)
    assert task.state is CopyState.COMPLETED
    assert recorder.progress == [25.0, 50.0, 75.0, 100.0]
    assert dst.read_bytes() == src.read_bytes()


def test_step_advances_exactly_one_chunk(tmp_path: Path, make_source, recorder: Recorder) -> None:
    task, worker, _src, _dst = _paused_after_first_chunk(tmp_path, make_source, recorder)

    task.step()
    assert wait_until(lambda: task.bytes_transferred == 2048)
    time.sleep(0.1)
    assert task.bytes_transferred == 2048
    assert task.state is CopyState.RUNNING

    task.resume()
    worker.join(5)
    assert task.state is CopyState.COMPLETED


def test_cancel_while_paused_cleans_up(tmp_path: Path, make_source, recorder: Recorder) -> None:
    task, worker, _src, dst = _paused_after_first_chunk(tmp_path, make_source, recorder)

    time.sleep(0.05)
    assert dst.exists()
    task.request_cancel()
    worker.join(5)

    assert not worker.is_alive()
    assert task.state is CopyState.CANCELLED
    assert recorder.progress == [25.0]
    assert len(recorder.results) == 1
    assert not dst.exists()


def test_steps_granted_while_running_do_not_outlast_pause(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 8 * 1024)
    dst = tmp_path / "dst.bin"
    first_seen = threading.Event()
    box: list = []

    def on_progress(pct: float) -> None:
        if not recorder.progress:
            box[0].pause()
            first_seen.set()
        recorder.on_progress(pct)

    task = CopyTask(CopySpec(str(src), str(dst)), on_progress, recorder.on_complete, chunk_size=1024)
    box.append(task)
    for _ in range(3):
        task.step()
    worker = threading.Thread(target=task.run, daemon=True)
    worker.start()
    assert first_seen.wait(5)

    time.sleep(0.1)
    assert task.bytes_transferred == 1024
    assert task.state is CopyState.RUNNING
    assert recorder.progress == [12.5]

    task.resume()
    worker.join(5)
    assert task.state is CopyState.COMPLETED
    assert dst.read_bytes() == src.read_bytes()
