# ruff: noqa
from __future__ import annotations

"""One row per in-flight copy: file name, progress bar, Pause/Resume, Cancel."""

from typing import Optional

from PySide6.QtWidgets import QGridLayout, QLabel, QProgressBar, QPushButton, QWidget

from ..constants import NAME_COLUMN_WIDTH, PANEL_HEIGHT

# Progress bar resolution: tenths of a percent.
_BAR_MAX = 1000


class CopyPanel(QWidget):
    def __init__(self, file_name: str, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.handle = None  # TaskHandle, set once the copy is launched

        self.setFixedHeight(PANEL_HEIGHT)
        grid = QGridLayout(self)
        grid.setContentsMargins(5, 0, 5, 0)
        grid.setColumnMinimumWidth(0, NAME_COLUMN_WIDTH)
        grid.setColumnStretch(0, 1)

        self.name_lbl = QLabel(str(file_name or ''))
        grid.addWidget(self.name_lbl, 0, 0)

        self.progress_bar = QProgressBar()
        self.progress_bar.setRange(0, _BAR_MAX)
        self.progress_bar.setFormat("%p%")
        grid.addWidget(self.progress_bar, 1, 0)

        self.pause_btn = QPushButton("Pause")
        grid.addWidget(self.pause_btn, 1, 1)

        self.cancel_btn = QPushButton("Cancel")
        grid.addWidget(self.cancel_btn, 1, 2)

    def set_progress(self, percentage: float) -> None:
        pct = min(100.0, max(0.0, float(percentage)))
        self.progress_bar.setValue(int(round(pct * _BAR_MAX / 100.0)))

    def set_paused(self, paused: bool) -> None:
        self.pause_btn.setText("Resume" if paused else "Pause")
        self.pause_btn.setEnabled(True)

    def set_cancelling(self) -> None:
        self.pause_btn.setEnabled(False)
        self.cancel_btn.setEnabled(False)
        self.cancel_btn.setText("Cancelling…")
