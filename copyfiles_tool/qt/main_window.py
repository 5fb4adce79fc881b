# ruff: noqa
from __future__ import annotations

"""Qt MainWindow (internal).

This module is imported lazily from `copyfiles_tool.qt_app.run_qt_gui()`.
"""

import logging

from PySide6.QtWidgets import (
    QGridLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from .. import __version__ as APP_VERSION
from ..controller import CopyController, load_settings, resolve_chunk_size, save_settings
from .bridge import PromptBridge, UiDispatcher
from .ui_copy import start_copy
from .ui_helpers import browse_destination, browse_source


_LOG = logging.getLogger("copyfiles_tool.gui")

_BASE_WIDTH = 640
_BASE_HEIGHT = 130


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle(f"CopyFiles {APP_VERSION}")
        self._settings = load_settings()

        self._dispatcher = UiDispatcher(self)
        self._prompts = PromptBridge(self)
        self.controller = CopyController(
            dispatch=self._dispatcher.post,
            confirm_overwrite=self._prompts.confirm,
            report_error=self._prompts.report,
            chunk_size=resolve_chunk_size(self._settings),
        )

        self._create_widgets()
        self._connect_signals()
        self._update_copy_enabled()
        self.setMinimumHeight(_BASE_HEIGHT)
        self.resize(_BASE_WIDTH, _BASE_HEIGHT)

    def _create_widgets(self) -> None:
        central = QWidget()
        outer = QVBoxLayout(central)

        form = QGridLayout()
        self.from_edit = QLineEdit()
        self.from_edit.setPlaceholderText("File to copy")
        self.to_edit = QLineEdit()
        self.to_edit.setPlaceholderText("Destination file")
        self.btn_from = QPushButton("Browse…")
        self.btn_to = QPushButton("Browse…")
        form.addWidget(QLabel("From:"), 0, 0)
        form.addWidget(self.from_edit, 0, 1)
        form.addWidget(self.btn_from, 0, 2)
        form.addWidget(QLabel("To:"), 1, 0)
        form.addWidget(self.to_edit, 1, 1)
        form.addWidget(self.btn_to, 1, 2)
        outer.addLayout(form)

        self.btn_copy = QPushButton("Copy")
        outer.addWidget(self.btn_copy)

        # One CopyPanel per in-flight copy, newest at the bottom.
        self.panels_layout = QVBoxLayout()
        self.panels_layout.setSpacing(0)
        outer.addLayout(self.panels_layout)
        outer.addStretch(1)

        self.setCentralWidget(central)
        self.statusBar()

    def _connect_signals(self) -> None:
        self.btn_from.clicked.connect(lambda: browse_source(self))
        self.btn_to.clicked.connect(lambda: browse_destination(self))
        self.btn_copy.clicked.connect(lambda: start_copy(self))
        self.from_edit.textChanged.connect(self._update_copy_enabled)
        self.to_edit.textChanged.connect(self._update_copy_enabled)

    def _update_copy_enabled(self, *_args) -> None:
        ready = bool(self.from_edit.text().strip()) and bool(self.to_edit.text().strip())
        self.btn_copy.setEnabled(ready)

    def closeEvent(self, event) -> None:
        active = self.controller.active_handles()
        if active:
            _LOG.info("[gui] Closing with %d active copy(ies); cancelling", len(active))
            for h in active:
                self.controller.cancel(h)
            # Give workers a moment to remove their partial output.
            self.controller.wait_all(timeout=2.0)
        save_settings(self._settings)
        super().closeEvent(event)
