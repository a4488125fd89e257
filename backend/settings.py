"""
Runtime settings, read from a YAML file, then overridden by environment.

  NETSIM_CONFIG      path of the settings file (default: config/settings.yml)
  NETSIM_DB_PATH     SQLite file holding the saved topology
  NETSIM_LOG_LEVEL   logging level name
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel

from storage import DEFAULT_STORAGE_KEY
from telemetry import DEFAULT_RECENT_LOGS

project_dir = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = project_dir / "config" / "settings.yml"


class Settings(BaseModel):
    db_path: Path = Path("data/netsim.db")
    storage_key: str = DEFAULT_STORAGE_KEY
    recent_log_limit: int = DEFAULT_RECENT_LOGS
    log_retention: Optional[int] = None   # None keeps every log
    log_level: str = "INFO"
    preset_path: Optional[Path] = None    # topology loaded when nothing is saved

    def resolve(self, path: Path) -> Path:
        """Relative paths are taken from the project root."""
        return path if path.is_absolute() else project_dir / path


def load_settings(config_path: str | Path | None = None) -> Settings:
    path = Path(config_path or os.environ.get("NETSIM_CONFIG", DEFAULT_CONFIG_PATH))
    raw: dict = {}
    if path.exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    if os.environ.get("NETSIM_DB_PATH"):
        raw["db_path"] = os.environ["NETSIM_DB_PATH"]
    if os.environ.get("NETSIM_LOG_LEVEL"):
        raw["log_level"] = os.environ["NETSIM_LOG_LEVEL"]

    return Settings.model_validate(raw)
