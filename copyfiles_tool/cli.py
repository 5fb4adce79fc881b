from __future__ import annotations

import argparse
import sys
import threading
from typing import Optional

from .controller import CopyController, TaskHandle, load_settings, resolve_chunk_size
from .copier import CopyResult, CopySpec, CopyState
from .util import dumps_pretty, fmt_bytes


EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def _cmd_gui(_args: argparse.Namespace) -> int:
    """Launch the GUI (PySide6 / Qt)."""
    try:
        from .app_logging import init_app_logging
        init_app_logging(component="gui")
    except Exception:
        pass
    from .qt_app import run_qt_gui

    try:
        rv = run_qt_gui()
    except BaseException as e:
        import logging
        import traceback
        # Make sure nothing (including SystemExit) disappears silently.
        tb = traceback.format_exc()
        logging.getLogger("copyfiles_tool").error("[gui] Uncaught error during Qt launch:\n%s", tb)
        print("[gui] Uncaught error during Qt launch (see logs):")
        print(tb)
        if isinstance(e, KeyboardInterrupt):
            raise
        return 2
    try:
        return int(rv)
    except (TypeError, ValueError):
        print("[gui] Qt returned no exit code (likely exited before showing a window).")
        return 2


def _cmd_qt_diag(_args: argparse.Namespace) -> int:
    """Check whether Qt/PySide6 can create a QApplication on this machine."""
    print("[qt-diag] starting")
    print(f"[qt-diag] python={sys.version}")
    try:
        import PySide6  # type: ignore
        print(f"[qt-diag] PySide6={getattr(PySide6, '__version__', 'unknown')}")
        from PySide6.QtCore import QTimer
        from PySide6.QtWidgets import QApplication, QWidget
    except Exception as e:
        print(f"[qt-diag] PySide6 import failed: {e}")
        return 2

    try:
        app = QApplication.instance() or QApplication([])
        w = QWidget()
        w.setWindowTitle("CopyFiles Qt diag")
        w.resize(200, 80)
        w.show()
        app.processEvents()
        print(f"[qt-diag] widget visible={bool(w.isVisible())}")
        QTimer.singleShot(200, app.quit)
        rc = int(app.exec())
        print(f"[qt-diag] event loop exited rc={rc}")
        return 0
    except Exception as e:
        print(f"[qt-diag] failed during QApplication/show/exec: {e}")
        return 2


def _stdin_confirm(question: str) -> bool:
    try:
        ans = input(f"\n{question} [y/N] ")
    except EOFError:
        return False
    return ans.strip().lower() in {"y", "yes"}


def _stderr_report(message: str) -> None:
    print(f"\n[copy] ERROR: {message}", file=sys.stderr)


def _cmd_copy(args: argparse.Namespace) -> int:
    try:
        spec = CopySpec(str(args.source), str(args.destination))
    except ValueError as e:
        print(f"[copy] {e}", file=sys.stderr)
        return 2
    if args.chunk_size < 0:
        print("[copy] --chunk-size must be positive", file=sys.stderr)
        return 2

    if args.overwrite is None:
        confirm = _stdin_confirm
    else:
        decision = bool(args.overwrite)
        confirm = lambda _q: decision  # noqa: E731

    chunk_size = int(args.chunk_size) if args.chunk_size else resolve_chunk_size(load_settings())
    quiet = bool(args.json)

    controller = CopyController(
        confirm_overwrite=confirm,
        report_error=None if quiet else _stderr_report,
        chunk_size=chunk_size,
    )

    finished = threading.Event()
    outcome: dict = {}

    def _on_progress(pct: float, h: TaskHandle) -> None:
        if not quiet:
            sys.stdout.write(f"\r[copy] {pct:6.2f}%  {fmt_bytes(h.task.bytes_transferred)}")
            sys.stdout.flush()

    def _on_complete(_h: TaskHandle, result: CopyResult) -> None:
        outcome["result"] = result
        finished.set()

    handle = controller.start_copy(spec, _on_progress, _on_complete)
    try:
        while not finished.wait(0.2):
            pass
    except KeyboardInterrupt:
        controller.cancel(handle)
        finished.wait()
    handle.join()

    result: Optional[CopyResult] = outcome.get("result")
    if result is None:
        return EXIT_FAILED
    if quiet:
        print(dumps_pretty(result))
    else:
        print()
        if result.state is CopyState.COMPLETED:
            print(f"[copy] Done: {spec.destination_path} ({fmt_bytes(result.bytes_transferred)})")
        elif result.state is CopyState.CANCELLED:
            print("[copy] Copying was cancelled.")
        elif result.error_kind == "path_collision":
            print(f"[copy] {result.error}")
    if result.state is CopyState.COMPLETED:
        return EXIT_OK
    if result.state is CopyState.CANCELLED:
        return EXIT_CANCELLED
    return EXIT_FAILED


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="copyfiles_tool", description="CopyFiles (pausable, cancellable single-file copy).")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_copy = sub.add_parser("copy", help="Copy one file to a new destination (never overwrites without asking).")
    p_copy.add_argument("source", help="File to copy.")
    p_copy.add_argument("destination", help="Destination file path (must not exist unless overwrite is confirmed).")
    p_copy.add_argument("--chunk-size", type=int, default=0, help="Bytes per read/write cycle (default: 1 MiB or COPYFILES_CHUNK_SIZE).")
    ow = p_copy.add_mutually_exclusive_group()
    ow.add_argument("--overwrite", dest="overwrite", action="store_const", const=True, default=None, help="Replace an existing destination without asking.")
    ow.add_argument("--no-overwrite", dest="overwrite", action="store_const", const=False, help="Fail if the destination exists.")
    p_copy.add_argument("--json", action="store_true", help="Emit the copy result as JSON.")
    p_copy.set_defaults(func=_cmd_copy)

    p_gui = sub.add_parser("gui", help="Launch the GUI (PySide6/Qt).")
    p_gui.set_defaults(func=_cmd_gui)

    p_qt_diag = sub.add_parser("qt-diag", help="Diagnose Qt/PySide6 startup.")
    p_qt_diag.set_defaults(func=_cmd_qt_diag)

    args = p.parse_args(argv)
    rv = args.func(args)
    if rv is None:
        return 0
    try:
        return int(rv)
    except (TypeError, ValueError):
        return 1
