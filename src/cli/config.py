"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Optional

import yaml

from .config_models import BoardConfig

# Overrides the config file search when set
CONFIG_ENV_VAR = "BOARD_CONFIG"


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    locations = [
        Path.cwd() / "board.yaml",
        Path.home() / ".board" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> BoardConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    if not isinstance(base_config, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(base_config).__name__}")

    try:
        return BoardConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def get_paths(config: BoardConfig, db_override: Optional[Path] = None) -> dict:
    """Get expanded paths from config."""
    db = Path(db_override).expanduser() if db_override else config.paths.db
    return {"db": db}


def write_default_config(path: Path, db: Optional[Path] = None) -> Path:
    """Write a starter config file. Existing files are left untouched."""
    path = Path(path).expanduser()
    if path.exists():
        return path
    data = BoardConfig().to_dict()
    if db is not None:
        data["paths"]["db"] = str(db)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return path
