from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

import copyfiles_tool.controller as ctl
from copyfiles_tool.constants import CHUNK_SIZE, ENV_CHUNK_SIZE
from copyfiles_tool.controller import CopyController, TaskHandle
from copyfiles_tool.copier import CopySpec, CopyState
from tests.conftest import Recorder, wait_until


def test_start_copy_runs_off_the_calling_thread(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 4096)
    dst = tmp_path / "dst.bin"
    c = CopyController(chunk_size=1024)

    h = c.start_copy(CopySpec(str(src), str(dst)), recorder.on_progress, recorder.on_complete)

    assert isinstance(h, TaskHandle)
    assert recorder.completed.wait(5)
    assert h.join(5)
    assert h.done()
    assert h.state is CopyState.COMPLETED
    assert recorder.results == [h.result]
    assert recorder.progress == [25.0, 50.0, 75.0, 100.0]
    assert threading.get_ident() not in recorder.threads
    assert c.active_handles() == []
    assert dst.read_bytes() == src.read_bytes()


def test_callbacks_receive_handle_and_go_through_dispatch(tmp_path: Path, make_source) -> None:
    src = make_source("src.bin", 2048)
    dispatched: list = []
    seen: list = []
    done = threading.Event()

    def dispatch(fn) -> None:
        dispatched.append(fn)
        fn()

    def on_progress(pct: float, h: TaskHandle) -> None:
        seen.append(("progress", pct, h))

    def on_complete(h: TaskHandle, result) -> None:
        seen.append(("complete", result.state, h))
        done.set()

    c = CopyController(dispatch=dispatch, chunk_size=1024)
    h = c.start_copy(CopySpec(str(src), str(tmp_path / "dst.bin")), on_progress, on_complete, tag="panel-1")
    assert done.wait(5)

    assert h.tag == "panel-1"
    assert len(dispatched) == 3
    assert [s[0] for s in seen] == ["progress", "progress", "complete"]
    assert all(s[2] is h for s in seen)
    assert seen[-1][1] is CopyState.COMPLETED


def test_pause_and_resume_through_controller(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 4096)
    dst = tmp_path / "dst.bin"
    c = CopyController(chunk_size=1024)
    paused = threading.Event()

    def on_progress(pct: float, h: TaskHandle) -> None:
        if not paused.is_set():
            c.pause(h)
            paused.set()
        recorder.on_progress(pct)

    h = c.start_copy(CopySpec(str(src), str(dst)), on_progress, recorder.on_complete)
    assert paused.wait(5)
    time.sleep(0.1)
    assert h.task.bytes_transferred == 1024
    assert not h.done()
    assert c.active_handles() == [h]

    c.resume(h)
    assert recorder.completed.wait(5)
    assert h.state is CopyState.COMPLETED
    assert recorder.progress == [25.0, 50.0, 75.0, 100.0]


def test_cancel_while_paused_is_idempotent(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 4096)
    dst = tmp_path / "dst.bin"
    c = CopyController(chunk_size=1024)
    paused = threading.Event()

    def on_progress(pct: float, h: TaskHandle) -> None:
        c.pause(h)
        paused.set()
        recorder.on_progress(pct)

    h = c.start_copy(CopySpec(str(src), str(dst)), on_progress, recorder.on_complete)
    assert paused.wait(5)
    c.cancel(h)
    c.cancel(h)
    assert recorder.completed.wait(5)
    assert h.join(5)

    assert h.state is CopyState.CANCELLED
    assert len(recorder.results) == 1
    assert not dst.exists()

    # Terminal: further signals are ignored.
    c.cancel(h)
    c.pause(h)
    c.resume(h)
    assert h.state is CopyState.CANCELLED


def test_step_through_controller(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 3072)
    c = CopyController(chunk_size=1024)
    first = threading.Event()

    def on_progress(pct: float, h: TaskHandle) -> None:
        if not first.is_set():
            c.pause(h)
            first.set()
        recorder.on_progress(pct)

    h = c.start_copy(CopySpec(str(src), str(tmp_path / "dst.bin")), on_progress, recorder.on_complete)
    assert first.wait(5)
    c.step(h)
    assert wait_until(lambda: h.task.bytes_transferred == 2048)
    c.resume(h)
    assert recorder.completed.wait(5)
    assert h.state is CopyState.COMPLETED


def test_concurrent_copies_are_independent(tmp_path: Path, make_source) -> None:
    c = CopyController(chunk_size=512)
    recs = [Recorder(), Recorder()]
    handles = []
    for i, rec in enumerate(recs):
        src = make_source(f"src{i}.bin", 2048 * (i + 1))
        handles.append(c.start_copy(CopySpec(str(src), str(tmp_path / f"dst{i}.bin")), rec.on_progress, rec.on_complete))

    assert c.wait_all(timeout=5)
    assert handles[0].task_id != handles[1].task_id
    for i, rec in enumerate(recs):
        assert rec.completed.wait(5)
        assert rec.progress[-1] == 100.0
        assert (tmp_path / f"dst{i}.bin").read_bytes() == (tmp_path / f"src{i}.bin").read_bytes()


def test_overwrite_prompt_and_error_reporter_are_wired(tmp_path: Path, make_source, recorder: Recorder) -> None:
    src = make_source("src.bin", 100)
    dst = tmp_path / "dst.bin"
    dst.write_bytes(b"keep")
    questions: list = []
    errors: list = []
    c = CopyController(confirm_overwrite=lambda q: questions.append(q) or False, report_error=errors.append)

    h = c.start_copy(CopySpec(str(src), str(dst)), None, recorder.on_complete)
    assert recorder.completed.wait(5)

    assert h.state is CopyState.FAILED
    assert h.result is not None and h.result.error_kind == "path_collision"
    assert len(questions) == 1
    assert errors == []
    assert dst.read_bytes() == b"keep"


def test_wait_all_timeout_is_shared_across_handles(tmp_path: Path, make_source) -> None:
    c = CopyController(chunk_size=1024)
    seen: list = []
    handles = []

    def on_progress(pct: float, h: TaskHandle) -> None:
        if h.task_id not in seen:
            c.pause(h)
            seen.append(h.task_id)

    for i in range(3):
        src = make_source(f"src{i}.bin", 4096)
        handles.append(c.start_copy(CopySpec(str(src), str(tmp_path / f"dst{i}.bin")), on_progress))
    assert wait_until(lambda: len(seen) == 3)

    t0 = time.monotonic()
    assert c.wait_all(timeout=0.3) is False
    assert time.monotonic() - t0 < 0.8

    for h in handles:
        c.cancel(h)
    assert c.wait_all(timeout=5)
    assert all(h.state is CopyState.CANCELLED for h in handles)


def test_settings_roundtrip(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "settings.json"
    monkeypatch.setattr(ctl, "_settings_path", lambda: p)

    assert ctl.load_settings() == {}
    ctl.save_settings({"last_source_dir": "/x", "chunk_size": 4096})
    assert ctl.load_settings() == {"last_source_dir": "/x", "chunk_size": 4096}

    p.write_text("{not json", encoding="utf-8")
    assert ctl.load_settings() == {}


def test_resolve_chunk_size(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_CHUNK_SIZE, raising=False)
    assert ctl.resolve_chunk_size() == CHUNK_SIZE
    assert ctl.resolve_chunk_size({"chunk_size": 4096}) == 4096
    assert ctl.resolve_chunk_size({"chunk_size": -1}) == CHUNK_SIZE
    assert ctl.resolve_chunk_size({"chunk_size": "junk"}) == CHUNK_SIZE

    monkeypatch.setenv(ENV_CHUNK_SIZE, "2048")
    assert ctl.resolve_chunk_size({"chunk_size": 4096}) == 2048
    monkeypatch.setenv(ENV_CHUNK_SIZE, "0")
    assert ctl.resolve_chunk_size({"chunk_size": 4096}) == 4096
