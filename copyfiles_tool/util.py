from __future__ import annotations

import enum
import json
import os
from dataclasses import fields, is_dataclass
from pathlib import Path
from typing import Any


def to_jsonable(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        out = {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        # Expose read-only properties callers commonly check.
        if hasattr(obj, "ok"):
            out["ok"] = bool(getattr(obj, "ok"))
        return out
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    return obj


def dumps_pretty(obj: Any) -> str:
    return json.dumps(to_jsonable(obj), indent=2, sort_keys=True, ensure_ascii=False)


def env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int | None = None) -> int | None:
    val = os.environ.get(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val.strip())
    except ValueError:
        return default


def fmt_bytes(n: int) -> str:
    """Human-readable byte count (binary units)."""
    try:
        size = float(max(0, int(n)))
    except (TypeError, ValueError):
        size = 0.0
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024.0 or unit == "GiB":
            if unit == "B":
                return f"{int(size)} B"
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} GiB"


def find_app_root(start: Path | None = None) -> Path:
    """Best-effort app root finder.

    Prefers a folder that contains run_gui.py or README.md (portable checkout),
    otherwise falls back to the current working directory.
    """
    try:
        cur = (start or Path(__file__).resolve().parent)
        cur = cur if isinstance(cur, Path) else Path(str(cur))
        for _ in range(8):
            if (cur / "run_gui.py").is_file() or (cur / "README.md").is_file():
                return cur
            if cur.parent == cur:
                break
            cur = cur.parent
    except Exception:
        pass
    try:
        return Path.cwd()
    except Exception:
        return Path(__file__).resolve().parent
