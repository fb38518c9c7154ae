"""Compare the working tree with the snapshot and encode the changes as a patch."""

import difflib
import logging
from pathlib import PurePosixPath

from .index import Index
from .lines import decode_text, split_lines
from .patch import Action, Patch, Section
from .store import Store, compute_hash

_log = logging.getLogger(__name__)


def diff_text(old: str, new: str) -> list[Section]:
    """
    Encode the line changes turning ``old`` into ``new``.

    Each insert, delete or replace opcode becomes one section anchored at
    the opcode's first line in ``new``.
    """
    old_lines = split_lines(old)
    new_lines = split_lines(new)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    sections = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        action = Action(
            anchor=j1,
            remove=tuple(old_lines[i1:i2]),
            insert=tuple(new_lines[j1:j2]),
        )
        sections.append(action.encode())
    return sections


def diff_tree(store: Store, index: Index | None = None, reverse: bool = False) -> Patch:
    """
    Build a patch from the snapshot to the working tree.

    Args:
        store: Store holding the snapshot copies
        index: Snapshot index (loaded from the store when omitted)
        reverse: Produce the patch from the working tree back to the snapshot

    Returns:
        Patch with an entry for every tracked file whose content changed
    """
    if index is None:
        index = store.load_index()

    patch = Patch()
    for path, stored_hash in sorted(index.files.items()):
        working = (store.project_root / PurePosixPath(path)).read_bytes()
        if compute_hash(working) == stored_hash:
            continue

        stored_text = decode_text(path, store.read_stored(path))
        working_text = decode_text(path, working)
        if reverse:
            sections = diff_text(working_text, stored_text)
        else:
            sections = diff_text(stored_text, working_text)

        if sections:
            patch.add(path, sections)
            _log.debug("%s: %d section(s)", path, len(sections))
        else:
            _log.debug("%s: changed bytes but no line changes", path)

    _log.info("Diff covers %d of %d tracked file(s)", len(patch.files), len(index.files))
    return patch
