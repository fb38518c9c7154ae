"""Per-directory ignore manifests and their composition down the tree."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ValidationError

from . import IGNORE_FILE
from .errors import IgnoreManifestError

_log = logging.getLogger(__name__)


class QopFile(BaseModel):
    """Contents of a .qopfile ignore manifest."""

    ignore: list[str] = []


def load_ignore_manifest(directory: Path) -> list[str]:
    """Read the ignore patterns declared by ``directory``'s manifest.

    The manifest is TOML, e.g. ``ignore = ["build", "notes/drafts"]``.
    A missing manifest yields an empty list. A manifest that is not valid
    TOML, or does not match the expected shape, raises IgnoreManifestError.
    """
    manifest_path = directory / IGNORE_FILE

    try:
        with open(manifest_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return []
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as err:
        raise IgnoreManifestError(manifest_path, err) from err

    try:
        return QopFile.model_validate(data).ignore
    except ValidationError as err:
        raise IgnoreManifestError(manifest_path, err) from err


def _pattern_parts(base: PurePosixPath, pattern: str) -> tuple[str, ...]:
    """Resolve ``pattern`` against ``base`` into root-relative path components."""
    return (base / PurePosixPath(pattern.strip())).parts


@dataclass(frozen=True)
class IgnoreScope:
    """The stack of exclusion lists in force for one directory.

    Each level holds the patterns of one ancestor manifest, already resolved
    to root-relative components. Scopes are immutable: entering a directory
    returns a new scope and leaves the parent's untouched.
    """

    levels: tuple[tuple[tuple[str, ...], ...], ...] = ()

    @classmethod
    def root(cls, patterns: list[str]) -> IgnoreScope:
        """Create a scope holding root-relative built-in patterns."""
        base = PurePosixPath()
        resolved = tuple(_pattern_parts(base, p) for p in patterns if p.strip())
        return cls(levels=(resolved,))

    def enter(self, directory: Path, relative: PurePosixPath) -> IgnoreScope:
        """Return the scope for ``directory`` (root-relative path ``relative``)."""
        patterns = load_ignore_manifest(directory)
        if not patterns:
            return self

        resolved = tuple(
            _pattern_parts(relative, p) for p in patterns if p.strip()
        )
        _log.debug("Ignore manifest in %s adds %d pattern(s)", relative, len(resolved))
        return IgnoreScope(levels=self.levels + (resolved,))

    def excludes(self, relative: PurePosixPath) -> bool:
        """Check whether any pattern in scope is a component prefix of ``relative``."""
        parts = relative.parts
        for level in self.levels:
            for pattern in level:
                if pattern and parts[: len(pattern)] == pattern:
                    return True
        return False
