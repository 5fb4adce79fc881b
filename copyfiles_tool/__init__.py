"""CopyFiles: pausable, cancellable single-file copy with a PySide6 front end."""

__version__ = "1.2.0"
