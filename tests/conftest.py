"""Shared test fixtures for qop."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from qop.config import QopConfig, save_config
from qop.store import Store


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create ``files`` (relative path -> content) under ``root``."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_bytes(content.encode("utf-8"))
    return root


@pytest.fixture
def make_tree():
    """Factory writing a dict of files under a root directory."""
    return write_tree


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """
    A small working tree.

    Structure:
        project/
        ├── a.txt
        ├── docs/
        │   └── guide.md
        └── src/
            ├── main.py
            └── util/
                └── helpers.py
    """
    root = tmp_path / "project"
    root.mkdir()
    return write_tree(
        root,
        {
            "a.txt": "one\ntwo\nthree\n",
            "docs/guide.md": "# Guide\n\nRead me.\n",
            "src/main.py": "import util\n\nprint('hi')\n",
            "src/util/helpers.py": "def helper():\n    return 1\n",
        },
    )


@pytest.fixture
def store(project: Path) -> Store:
    """A Store for ``project`` with default config saved, not yet snapshotted."""
    config = QopConfig()
    save_config(config, project)
    return Store(project, config)


@pytest.fixture
def snapshotted(store: Store) -> Store:
    """A Store whose project has been snapshotted once."""
    store.snapshot()
    return store
