"""
Store location and settings.

Settings come from `<store>/rulestore.toml` when present, then from
environment variables, which win:

    [backup]
    directory = "/var/backups/rulestore"   # RULESTORE_BACKUP_DIR
    keep = false                           # keep backup files after restore

    [logging]
    level = "WARNING"                      # RULESTORE_LOG_LEVEL
"""

from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

STORE_DIRNAME = ".rulestore"
CONFIG_FILENAME = "rulestore.toml"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

DEFAULT_CONFIG = """\
[backup]
# directory = "/path/to/backups"
keep = false

[logging]
level = "WARNING"
"""


def default_backup_dir() -> Path:
    return Path(tempfile.gettempdir()) / "rulestore-backups"


@dataclass(frozen=True)
class Settings:
    store_root: Path
    backup_dir: Path
    keep_backups: bool = False
    log_level: str = "WARNING"


def auto_detect_store(start: Path) -> Path | None:
    """Find a `.rulestore` directory by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if p.is_dir() and p.name == STORE_DIRNAME:
            return p
        candidate = p / STORE_DIRNAME
        if candidate.is_dir():
            return candidate
    return None


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def load_settings(store_root: Path, environ: Mapping[str, str] | None = None) -> Settings:
    """
    Resolve settings for the store at `store_root`.

    Raises ValueError on an unreadable config file or an unknown log level.
    """
    env = os.environ if environ is None else environ
    data: dict[str, Any] = {}
    config_path = store_root / CONFIG_FILENAME
    if config_path.exists():
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"{config_path}: {e}") from e

    backup = _coerce_dict(data.get("backup"))
    logging_section = _coerce_dict(data.get("logging"))

    backup_dir_raw = env.get("RULESTORE_BACKUP_DIR") or backup.get("directory")
    if backup_dir_raw:
        backup_dir = Path(str(backup_dir_raw)).expanduser()
        if not backup_dir.is_absolute():
            backup_dir = store_root / backup_dir
    else:
        backup_dir = default_backup_dir()

    log_level = str(env.get("RULESTORE_LOG_LEVEL") or logging_section.get("level", "WARNING")).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"log level must be one of {', '.join(LOG_LEVELS)} (got {log_level!r})")

    return Settings(
        store_root=store_root,
        backup_dir=backup_dir,
        keep_backups=bool(backup.get("keep", False)),
        log_level=log_level,
    )


def init_store(path: Path) -> Path:
    """Create a store directory with a default config; existing files are kept."""
    path.mkdir(parents=True, exist_ok=True)
    config_path = path / CONFIG_FILENAME
    if not config_path.exists():
        config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    return path
