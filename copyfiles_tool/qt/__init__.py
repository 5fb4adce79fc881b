"""PySide6 front end. Imported lazily from `copyfiles_tool.qt_app`."""
