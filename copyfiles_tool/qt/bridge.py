from __future__ import annotations

"""Thread-affinity helpers between copy workers and the Qt GUI thread.

Copy tasks call back from their own threads. Widgets may only be touched on
the GUI thread, so everything is funnelled through QObjects that live there:

- `UiDispatcher.post(fn)` queues `fn` to run on the dispatcher's thread.
- `PromptBridge.confirm(question)` asks the user on the GUI thread and blocks
  only the calling worker until an answer is available.
"""

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot


_LOG = logging.getLogger("copyfiles_tool.gui")


class UiDispatcher(QObject):
    _posted = Signal(object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._posted.connect(self._run, Qt.QueuedConnection)

    def post(self, fn: Callable[[], None]) -> None:
        self._posted.emit(fn)

    @Slot(object)
    def _run(self, fn) -> None:
        try:
            fn()
        except Exception:
            _LOG.exception("[gui] Posted callback raised")


class PromptBridge(QObject):
    _ask = Signal(str, object)  # question, answer box
    _report = Signal(str)

    def __init__(
        self,
        parent=None,
        *,
        ask_fn: Optional[Callable[[str], bool]] = None,
        report_fn: Optional[Callable[[str], None]] = None,
    ) -> None:
        super().__init__(parent)
        self._dialog_parent = parent
        self._ask_fn = ask_fn or self._ask_with_dialog
        self._report_fn = report_fn or self._report_with_dialog
        self._ask.connect(self._on_ask, Qt.BlockingQueuedConnection)
        self._report.connect(self._on_report, Qt.QueuedConnection)

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question on the GUI thread (callable from any thread)."""
        if QThread.currentThread() == self.thread():
            return bool(self._ask_fn(question))
        box: dict = {}
        self._ask.emit(str(question), box)
        return bool(box.get("answer", False))

    def report(self, message: str) -> None:
        """Show an error without blocking the caller."""
        self._report.emit(str(message or "Unknown error"))

    @Slot(str, object)
    def _on_ask(self, question: str, box) -> None:
        try:
            box["answer"] = bool(self._ask_fn(question))
        except Exception:
            _LOG.exception("[gui] Overwrite prompt failed")
            box["answer"] = False

    @Slot(str)
    def _on_report(self, message: str) -> None:
        try:
            self._report_fn(message)
        except Exception:
            _LOG.exception("[gui] Error dialog failed")

    def _ask_with_dialog(self, question: str) -> bool:
        from PySide6.QtWidgets import QMessageBox

        res = QMessageBox.question(
            self._dialog_parent,
            "Replace?",
            question,
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No,
        )
        return res == QMessageBox.Yes

    def _report_with_dialog(self, message: str) -> None:
        from .ui_helpers import open_logs_folder, show_critical_with_logs

        show_critical_with_logs(self._dialog_parent, open_logs_folder, "Error occurred!", message)
