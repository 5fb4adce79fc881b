# ruff: noqa
from __future__ import annotations

"""Qt small helper utilities (internal).

Imported lazily via `MainWindow`.
"""

from pathlib import Path


def open_logs_folder() -> None:
    """Open the logs folder in the OS file explorer (best-effort)."""
    try:
        from PySide6.QtCore import QUrl
        from PySide6.QtGui import QDesktopServices
    except Exception:
        return

    try:
        from ..app_logging import current_logs_dir

        p = current_logs_dir()
        if p is None:
            return
        pth = Path(p)
        pth.mkdir(parents=True, exist_ok=True)
        QDesktopServices.openUrl(QUrl.fromLocalFile(str(pth)))
    except Exception:
        # Best-effort only.
        pass


def show_msg_with_logs(
    parent,
    open_logs_cb,
    title: str,
    text: str,
    *,
    icon: str = 'critical',
    tip: str | None = None,
) -> None:
    # Show a message box with an 'Open logs folder' button.
    from PySide6.QtWidgets import QMessageBox

    msg = str(text or '').strip() or 'Unknown error'
    if tip:
        msg = msg + "\n\n" + str(tip).strip()

    dlg = QMessageBox(parent)
    if str(icon or '').lower().strip() == 'warning':
        dlg.setIcon(QMessageBox.Warning)
    else:
        dlg.setIcon(QMessageBox.Critical)
    dlg.setWindowTitle(str(title or 'Message'))
    dlg.setText(msg)

    btn_logs = dlg.addButton('Open logs folder', QMessageBox.ActionRole)
    dlg.addButton(QMessageBox.Ok)
    dlg.exec()

    if dlg.clickedButton() == btn_logs:
        try:
            open_logs_cb()
        except Exception:
            pass


def show_critical_with_logs(parent, open_logs_cb, title: str, text: str, *, tip: str | None = None) -> None:
    show_msg_with_logs(parent, open_logs_cb, title, text, icon='critical', tip=tip)


def show_warning_with_logs(parent, open_logs_cb, title: str, text: str, *, tip: str | None = None) -> None:
    show_msg_with_logs(parent, open_logs_cb, title, text, icon='warning', tip=tip)


def _start_dir(text: str, fallback: str) -> str:
    cur = str(text or '').strip()
    if cur:
        parent = Path(cur).expanduser().parent
        if parent.is_dir():
            return str(parent)
    return str(fallback or '')


def browse_source(win) -> None:
    from PySide6.QtWidgets import QFileDialog

    self = win
    start = _start_dir(self.from_edit.text(), self._settings.get('last_source_dir', ''))
    f, _ = QFileDialog.getOpenFileName(self, 'Select file to copy', start, filter='All Files (*)')
    if f:
        self.from_edit.setText(str(f))
        self._settings['last_source_dir'] = str(Path(f).parent)


def browse_destination(win) -> None:
    from PySide6.QtWidgets import QFileDialog

    self = win
    start = _start_dir(self.to_edit.text(), self._settings.get('last_destination_dir', ''))
    src_name = Path(self.from_edit.text().strip()).name if self.from_edit.text().strip() else ''
    if src_name:
        start = str(Path(start) / src_name) if start else src_name
    # Collisions are handled by the copy itself (Replace? prompt), not by the dialog.
    f, _ = QFileDialog.getSaveFileName(
        self,
        'Copy to…',
        start,
        filter='All Files (*)',
        options=QFileDialog.DontConfirmOverwrite,
    )
    if f:
        self.to_edit.setText(str(f))
        self._settings['last_destination_dir'] = str(Path(f).parent)


def show_status_message(win: object, msg: str, timeout_ms: int = 6000) -> None:
    """Best-effort transient status bar message."""
    try:
        sb = win.statusBar() if hasattr(win, 'statusBar') else None
        if sb is not None:
            sb.showMessage(str(msg or '').strip(), int(timeout_ms))
    except Exception:
        pass
