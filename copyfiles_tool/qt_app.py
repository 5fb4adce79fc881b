from __future__ import annotations

"""PySide6 (Qt) GUI entry point.

Imported lazily from the CLI subcommand `gui` so the copy engine and CLI work
without PySide6 installed.
"""

import logging
import sys


_FILELOG = logging.getLogger("copyfiles_tool.gui")


_MISSING_QT_MSG = """Qt GUI could not be launched.

This usually means PySide6 (Qt) is missing or broken in this Python environment.

Try reinstalling:
  pip install --upgrade --force-reinstall pyside6

Then launch the GUI with:
  python -m copyfiles_tool gui
"""


def run_qt_gui() -> int:
    """Launch the Qt GUI and return the event loop's exit code."""
    try:
        from PySide6.QtWidgets import QApplication
    except Exception as e:
        print(_MISSING_QT_MSG + "\nDetails:\n  " + str(e).strip() + "\n")
        return 2

    from .qt.main_window import MainWindow

    app = QApplication.instance() or QApplication(sys.argv)
    win = MainWindow()
    win.show()
    _FILELOG.info("[gui] Main window shown")
    return int(app.exec())
