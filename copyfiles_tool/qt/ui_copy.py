# ruff: noqa
from __future__ import annotations

"""Copy flow for the main window (internal).

These functions operate on the MainWindow instance (passed as `mw`). The
copy runs on a controller thread; progress and completion arrive here already
posted onto the GUI thread by the window's dispatcher.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PySide6.QtWidgets import QMessageBox

from ..constants import PANEL_HEIGHT
from ..controller import TaskHandle
from ..copier import CopyResult, CopySpec, CopyState
from .copy_panel import CopyPanel
from .ui_helpers import show_status_message, show_warning_with_logs, open_logs_folder

if TYPE_CHECKING:
    from .main_window import MainWindow


_LOG = logging.getLogger("copyfiles_tool.gui")


def start_copy(mw: "MainWindow") -> None:
    """Launch a copy for the current From/To fields and add its panel."""
    self = mw
    src = self.from_edit.text().strip()
    dst = self.to_edit.text().strip()
    try:
        spec = CopySpec(src, dst)
    except ValueError as e:
        show_warning_with_logs(self, open_logs_folder, 'Copy', str(e))
        return

    self.from_edit.clear()
    self.to_edit.clear()

    panel = CopyPanel(Path(src).name)
    panel.pause_btn.clicked.connect(lambda: toggle_pause(self, panel))
    panel.cancel_btn.clicked.connect(lambda: request_cancel(self, panel))
    self.panels_layout.addWidget(panel)
    self.resize(self.width(), self.height() + PANEL_HEIGHT)

    panel.handle = self.controller.start_copy(
        spec,
        lambda pct, h: on_progress(self, pct, h),
        lambda h, res: on_complete(self, h, res),
        tag=panel,
    )
    _LOG.info("[gui] Copy #%d queued: %s -> %s", panel.handle.task_id, src, dst)


def toggle_pause(mw: "MainWindow", panel: CopyPanel) -> None:
    h = panel.handle
    if h is None or h.done():
        return
    if h.task.paused:
        mw.controller.resume(h)
        panel.set_paused(False)
    else:
        mw.controller.pause(h)
        panel.set_paused(True)


def request_cancel(mw: "MainWindow", panel: CopyPanel) -> None:
    h = panel.handle
    if h is None or h.done():
        return
    panel.set_cancelling()
    mw.controller.cancel(h)


def on_progress(mw: "MainWindow", percentage: float, handle: TaskHandle) -> None:
    panel = handle.tag
    if isinstance(panel, CopyPanel):
        panel.set_progress(percentage)


def on_complete(mw: "MainWindow", handle: TaskHandle, result: CopyResult) -> None:
    self = mw
    panel = handle.tag
    if isinstance(panel, CopyPanel):
        self.panels_layout.removeWidget(panel)
        panel.deleteLater()
        self.resize(self.width(), max(self.minimumHeight(), self.height() - PANEL_HEIGHT))

    name = Path(handle.spec.source_path).name
    if result.state is CopyState.COMPLETED:
        show_status_message(self, f"Copy complete: {name}")
    elif result.state is CopyState.CANCELLED:
        show_status_message(self, f"Copy cancelled: {name}")
        QMessageBox.information(self, 'Cancel', f'{name}: Copying was cancelled!')
    elif result.error_kind == "path_collision":
        show_status_message(self, f"Not copied (destination exists): {name}")
    else:
        # The error dialog itself was raised by the prompt bridge.
        show_status_message(self, f"Copy failed: {name}")
