"""Snapshot index file management for qop."""

import json
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from . import INDEX_FILE, QOP_DIR
from .errors import IndexFormatError


class IndexEntry(BaseModel):
    """Metadata recorded for one checkpoint."""

    instant: datetime


class Index(BaseModel):
    """Mapping of tracked file paths to the SHA256 of their snapshot content."""

    latest: str | None = None  # Reserved for multi-checkpoint history
    entries: dict[str, IndexEntry] = Field(default_factory=dict)
    files: dict[str, str] = Field(default_factory=dict)


def get_index_path(project_root: Path) -> Path:
    """Get the index file path."""
    return project_root / QOP_DIR / INDEX_FILE


def load_index(project_root: Path) -> Index | None:
    """Load the index from the project's index file.

    Returns None if file doesn't exist.
    """
    index_path = get_index_path(project_root)

    if not index_path.exists():
        return None

    try:
        with open(index_path) as f:
            data = json.load(f)
        return Index.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as err:
        raise IndexFormatError(f"Malformed index {index_path}: {err}") from err


def save_index(index: Index, project_root: Path) -> None:
    """Save the index to the project's index file, keys sorted."""
    index_path = get_index_path(project_root)
    index_path.parent.mkdir(parents=True, exist_ok=True)

    with open(index_path, "w") as f:
        json.dump(index.model_dump(mode="json"), f, indent=2, sort_keys=True)
        f.write("\n")
