"""Persistent config loader/saver for duofm."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - exercised on Python <3.11
    import tomli as tomllib  # type: ignore[no-redef]

from ..constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_FRAME_WIDTH,
    DEFAULT_THUMBNAIL_COLUMNS,
    DEFAULT_THUMBNAIL_FRAMES,
)

SORT_NAMES = ("name", "modtime", "size", "extension")


def default_quick_jumps() -> dict[str, str]:
    """Return built-in quick-jump targets keyed by the key pressed after ``d``."""
    home = os.path.expanduser("~")
    return {
        "1": home,
        "d": os.path.join(home, "Downloads"),
        "e": os.path.join(home, "Desktop"),
        "t": "/tmp",
    }


def default_config_path() -> Path:
    """Return default config path (~/.config/duofm/config.toml)."""
    return Path.home() / ".config" / "duofm" / "config.toml"


def default_cache_dir() -> Path:
    """Return default thumbnail cache directory (~/.cache/duofm/thumbnails)."""
    return Path.home() / ".cache" / "duofm" / "thumbnails"


@dataclass(frozen=True)
class AppConfig:
    """Persistent user-facing configuration."""

    show_hidden: bool = False
    sort: str = "name"
    show_details: bool = False
    quick_jumps: dict[str, str] = field(default_factory=default_quick_jumps)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    cache_dir: str = field(default_factory=lambda: str(default_cache_dir()))
    thumbnail_frames: int = DEFAULT_THUMBNAIL_FRAMES
    thumbnail_columns: int = DEFAULT_THUMBNAIL_COLUMNS
    frame_width: int = DEFAULT_FRAME_WIDTH
    editor: str = ""


def _coerce_bool(value, default=False):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lower = value.strip().lower()
        if lower in ("1", "true", "yes", "on"):
            return True
        if lower in ("0", "false", "no", "off"):
            return False
    return default


def _coerce_positive_int(value, default):
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _section(raw: dict, name: str) -> dict:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _normalize_quick_jumps(table: dict) -> dict[str, str]:
    jumps = default_quick_jumps()
    for key, target in table.items():
        key = str(key)
        if len(key) != 1 or not isinstance(target, str) or not target.strip():
            continue
        jumps[key] = os.path.abspath(os.path.expanduser(target.strip()))
    return jumps


def _normalize_config(raw: dict) -> AppConfig:
    ui = _section(raw, "ui")
    transfer = _section(raw, "transfer")
    thumbs = _section(raw, "thumbnails")
    editor = _section(raw, "editor")

    sort = str(ui.get("sort", "name")).strip().lower()
    if sort not in SORT_NAMES:
        sort = "name"

    cache_dir = thumbs.get("cache_dir")
    if isinstance(cache_dir, str) and cache_dir.strip():
        cache_dir = os.path.abspath(os.path.expanduser(cache_dir.strip()))
    else:
        cache_dir = str(default_cache_dir())

    return AppConfig(
        show_hidden=_coerce_bool(ui.get("show_hidden"), default=False),
        sort=sort,
        show_details=_coerce_bool(ui.get("show_details"), default=False),
        quick_jumps=_normalize_quick_jumps(_section(raw, "quick_jump")),
        chunk_size=_coerce_positive_int(transfer.get("chunk_size"), DEFAULT_CHUNK_SIZE),
        cache_dir=cache_dir,
        thumbnail_frames=_coerce_positive_int(thumbs.get("frames"), DEFAULT_THUMBNAIL_FRAMES),
        thumbnail_columns=_coerce_positive_int(thumbs.get("columns"), DEFAULT_THUMBNAIL_COLUMNS),
        frame_width=_coerce_positive_int(thumbs.get("frame_width"), DEFAULT_FRAME_WIDTH),
        editor=str(editor.get("command", "") or "").strip(),
    )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from TOML file; return defaults when missing/invalid."""
    cfg_path = Path(path) if path is not None else default_config_path()
    try:
        text = cfg_path.read_text(encoding="utf-8")
    except OSError:
        return AppConfig()
    try:
        raw = tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return AppConfig()
    return _normalize_config(raw)


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def serialize_config(config: AppConfig) -> str:
    """Serialize AppConfig as TOML text."""
    lines = [
        "# duofm user configuration",
        "[ui]",
        f"show_hidden = {'true' if config.show_hidden else 'false'}",
        f"sort = {_quote(config.sort)}",
        f"show_details = {'true' if config.show_details else 'false'}",
        "",
        "[quick_jump]",
    ]
    for key in sorted(config.quick_jumps):
        lines.append(f"{_quote(key)} = {_quote(config.quick_jumps[key])}")
    lines += [
        "",
        "[transfer]",
        f"chunk_size = {config.chunk_size}",
        "",
        "[thumbnails]",
        f"cache_dir = {_quote(config.cache_dir)}",
        f"frames = {config.thumbnail_frames}",
        f"columns = {config.thumbnail_columns}",
        f"frame_width = {config.frame_width}",
        "",
        "[editor]",
        f"command = {_quote(config.editor)}",
    ]
    return "\n".join(lines) + "\n"


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    """Persist config and return written path."""
    cfg_path = Path(path) if path is not None else default_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    cfg_path.write_text(serialize_config(config), encoding="utf-8", newline="\n")
    return cfg_path
