"""Snapshot store: a mirror of the tracked tree plus the index of its hashes."""

from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from . import QOP_DIR, STORE_DIR
from .config import QopConfig, get_qop_dir, load_config
from .errors import NotInitializedError
from .ignore import IgnoreScope
from .index import Index, load_index, save_index

_log = logging.getLogger(__name__)


@dataclass
class SnapshotStats:
    """Statistics from taking a snapshot."""

    files_hashed: int = 0
    directories_processed: int = 0
    entries_ignored: int = 0
    entries_skipped: int = 0  # Sockets, FIFOs, dangling links


def compute_hash(data: bytes) -> str:
    """Compute the hex SHA256 of ``data``."""
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(filepath: Path) -> str:
    """Compute SHA256 hash of file contents."""
    h = hashlib.sha256()
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


class Store:
    """Owner of the on-disk store directory and index file.

    Every write into ``.qop/store`` and ``.qop/index.json`` goes through this
    object, so callers never touch the layout directly.
    """

    def __init__(self, project_root: Path, config: QopConfig | None = None):
        self.project_root = project_root
        self.config = config or load_config(project_root)
        self.qop_dir = get_qop_dir(project_root)
        self.store_dir = self.qop_dir / STORE_DIR
        self.last_stats: SnapshotStats | None = None

    def stored_path(self, path: str) -> Path:
        """Location in the store of the copy of tracked ``path``."""
        return self.store_dir / PurePosixPath(path)

    def read_stored(self, path: str) -> bytes:
        """Read the snapshot copy of tracked ``path``."""
        return self.stored_path(path).read_bytes()

    def write_stored(self, path: str, data: bytes) -> None:
        """Write ``data`` as the snapshot copy of tracked ``path``."""
        target = self.stored_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def clear(self) -> None:
        """Discard the whole store directory."""
        if self.store_dir.exists():
            shutil.rmtree(self.store_dir)

    def load_index(self) -> Index:
        """Load the index, failing if no snapshot was ever taken."""
        index = load_index(self.project_root)
        if index is None:
            raise NotInitializedError(
                f"No snapshot index in {self.qop_dir}. Run 'qop init' first."
            )
        return index

    def save_index(self, index: Index) -> None:
        """Persist ``index`` as the current snapshot index."""
        save_index(index, self.project_root)

    def snapshot(self) -> Index:
        """
        Replace the store with a fresh copy of every tracked file.

        The previous store is removed before the walk starts, so a failure
        part way through leaves an incomplete store and the old index.

        Returns:
            The new Index, also written to the index file
        """
        self.clear()
        self.store_dir.mkdir(parents=True, exist_ok=True)

        stats = SnapshotStats()
        scope = IgnoreScope.root([QOP_DIR, *self.config.ignore])
        files: dict[str, str] = {}
        self._walk(self.project_root, PurePosixPath(), scope, files, stats)

        index = Index(files=files)
        self.save_index(index)
        self.last_stats = stats

        _log.info(
            "Snapshot of %s: %d file(s) in %d director(ies), %d ignored",
            self.project_root,
            stats.files_hashed,
            stats.directories_processed,
            stats.entries_ignored,
        )
        return index

    def changed_files(self, index: Index) -> list[str]:
        """Tracked paths whose working-tree hash differs from the index."""
        changed = []
        for path, stored_hash in sorted(index.files.items()):
            current = compute_file_hash(self.project_root / PurePosixPath(path))
            if current != stored_hash:
                changed.append(path)
        return changed

    def _walk(
        self,
        directory: Path,
        relative: PurePosixPath,
        scope: IgnoreScope,
        files: dict[str, str],
        stats: SnapshotStats,
    ) -> None:
        """Recursively mirror ``directory`` into the store."""
        stats.directories_processed += 1
        scope = scope.enter(directory, relative)

        for child in sorted(directory.iterdir()):
            child_relative = relative / child.name
            if scope.excludes(child_relative):
                _log.debug("Ignoring %s", child_relative)
                stats.entries_ignored += 1
                continue

            if child.is_dir() and not child.is_symlink():
                self.stored_path(str(child_relative)).mkdir(parents=True, exist_ok=True)
                self._walk(child, child_relative, scope, files, stats)
            elif child.is_file():
                data = child.read_bytes()
                key = child_relative.as_posix()
                files[key] = compute_hash(data)
                self.write_stored(key, data)
                stats.files_hashed += 1
            else:
                _log.debug("Skipping non-regular entry %s", child_relative)
                stats.entries_skipped += 1

