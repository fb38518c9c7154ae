"""Configuration management for qop."""

import json
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from . import CONFIG_FILE, QOP_DIR
from .errors import QopError

AnchorPolicy = Literal["truncate", "strict"]


class QopConfig(BaseModel):
    """Configuration for qop."""

    version: int = 1
    # Root-relative path prefixes never snapshotted, on top of .qopfile manifests
    ignore: list[str] = Field(default=[".git"])
    anchor_policy: AnchorPolicy = "truncate"


def get_qop_dir(project_root: Path) -> Path:
    """Get the .qop directory path."""
    return project_root / QOP_DIR


def get_config_path(project_root: Path) -> Path:
    """Get the config file path."""
    return get_qop_dir(project_root) / CONFIG_FILE


def load_config(project_root: Path) -> QopConfig:
    """Load configuration from the project's config file.

    Falls back to defaults if file doesn't exist.
    Environment variables can override config values.
    """
    config_path = get_config_path(project_root)

    try:
        if config_path.exists():
            with open(config_path) as f:
                data = json.load(f)
            config = QopConfig.model_validate(data)
        else:
            config = QopConfig()

        return _apply_env_overrides(config)
    except (json.JSONDecodeError, ValidationError) as err:
        raise QopError(f"Invalid configuration in {config_path}: {err}") from err


def save_config(config: QopConfig, project_root: Path) -> None:
    """Save configuration to the project's config file."""
    config_path = get_config_path(project_root)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        json.dump(config.model_dump(), f, indent=2)


def _apply_env_overrides(config: QopConfig) -> QopConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    # QOP_ANCHOR_POLICY
    if policy := os.environ.get("QOP_ANCHOR_POLICY"):
        data["anchor_policy"] = policy

    return QopConfig.model_validate(data)
