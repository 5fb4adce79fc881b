from __future__ import annotations

# ---------------------------------------------------------------------------
# Shared constants
# ---------------------------------------------------------------------------

# App folders
LOGS_DIRNAME = "logs"

# ---------------------------------------------------------------------------
# Copy engine defaults
# ---------------------------------------------------------------------------

CHUNK_SIZE = 1024 * 1024  # 1 MiB per read/write cycle

# Automatic retries after the user confirmed an overwrite.
MAX_OVERWRITE_RETRIES = 1

# ---------------------------------------------------------------------------
# Configuration (env vars / settings)
# ---------------------------------------------------------------------------

ENV_LOG_LEVEL = "COPYFILES_LOG_LEVEL"
ENV_LOG_TO_CONSOLE = "COPYFILES_LOG_TO_CONSOLE"
ENV_CHUNK_SIZE = "COPYFILES_CHUNK_SIZE"

GUI_SETTINGS_FILE = "copyfiles_gui_settings.json"

# ---------------------------------------------------------------------------
# GUI
# ---------------------------------------------------------------------------

PANEL_HEIGHT = 60
NAME_COLUMN_WIDTH = 320
