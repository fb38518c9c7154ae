"""Patch format, application and reversal."""

from __future__ import annotations

import json
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import TextIO

from pydantic import BaseModel, ValidationError

from . import STDIN_SENTINEL
from .config import AnchorPolicy
from .errors import AnchorOutOfRangeError, PatchFormatError, PatchMismatchError
from .lines import decode_text, join_lines, split_lines

_log = logging.getLogger(__name__)

REMOVE_PREFIX = "-"
INSERT_PREFIX = "+"
CONTEXT_PREFIX = " "

_ANCHOR_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Action:
    """One decoded edit: at ``anchor`` drop ``remove`` and emit ``insert``."""

    anchor: int
    remove: tuple[str, ...] = ()
    insert: tuple[str, ...] = ()

    def encode(self) -> Section:
        """Encode this action as a patch section."""
        payload = [REMOVE_PREFIX + line for line in self.remove]
        payload += [INSERT_PREFIX + line for line in self.insert]
        return Section(anchor=self.anchor, payload="\n".join(payload))

    def inverted(self, anchor: int) -> Action:
        """The action undoing this one, anchored at ``anchor``."""
        return Action(anchor=anchor, remove=self.insert, insert=self.remove)


@dataclass(frozen=True)
class Section:
    """A serialized edit: line anchor plus ``-``/``+`` prefixed payload."""

    anchor: int
    payload: str

    def decode(self) -> Action:
        """Split the payload into removed and inserted lines."""
        remove: list[str] = []
        insert: list[str] = []
        if self.payload:
            for line in self.payload.split("\n"):
                prefix, body = line[:1], line[1:]
                if prefix == REMOVE_PREFIX:
                    remove.append(body)
                elif prefix == INSERT_PREFIX:
                    insert.append(body)
                elif prefix == CONTEXT_PREFIX:
                    continue
                else:
                    raise PatchFormatError(
                        f"Section at line {self.anchor} has an unprefixed line: {line!r}"
                    )
        return Action(anchor=self.anchor, remove=tuple(remove), insert=tuple(insert))


class PatchDocument(BaseModel):
    """Shape of a serialized patch: path -> anchor text -> payload."""

    files: dict[str, dict[str, str]] = {}


def parse_anchor(path: str, key: str) -> int:
    """Parse a section key into a line anchor."""
    if not _ANCHOR_RE.fullmatch(key):
        raise PatchFormatError(f"{path}: section anchor {key!r} is not a line number")
    return int(key)


@dataclass
class Patch:
    """Sections to apply, per tracked file, each list sorted by anchor."""

    files: dict[str, list[Section]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """Check whether no file has any section to apply."""
        return not any(self.files.values())

    def add(self, path: str, sections: list[Section]) -> None:
        """Record the sections for ``path``, keeping them in anchor order."""
        self.files[path] = sorted(sections, key=lambda s: s.anchor)

    def to_document(self) -> dict[str, dict[str, dict[str, str]]]:
        """Build the serializable mapping, anchors in numeric order."""
        return {
            "files": {
                path: {
                    str(section.anchor): section.payload
                    for section in sorted(self.files[path], key=lambda s: s.anchor)
                }
                for path in sorted(self.files)
            }
        }

    def to_json(self) -> str:
        """Serialize to the patch text format."""
        # No sort_keys: it would order anchors "10" before "2"
        return json.dumps(self.to_document(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_json(cls, text: str) -> Patch:
        """Parse the patch text format."""
        try:
            document = PatchDocument.model_validate(json.loads(text))
        except json.JSONDecodeError as err:
            raise PatchFormatError(f"Patch is not valid JSON: {err}") from err
        except ValidationError as err:
            raise PatchFormatError(f"Patch has an unexpected shape: {err}") from err

        patch = cls()
        for path, sections in document.files.items():
            patch.add(
                path,
                [
                    Section(anchor=parse_anchor(path, key), payload=payload)
                    for key, payload in sections.items()
                ],
            )
        return patch


def read_patch(source: str, stdin: TextIO | None = None) -> Patch:
    """Load a patch from a file path, or from standard input for ``-``."""
    if source == STDIN_SENTINEL:
        text = (stdin or sys.stdin).read()
    else:
        with open(source, encoding="utf-8") as f:
            text = f.read()
    return Patch.from_json(text)


def decode_actions(sections: list[Section]) -> list[Action]:
    """Decode sections into actions sorted by anchor."""
    return sorted((s.decode() for s in sections), key=lambda a: a.anchor)


def apply_actions(
    path: str,
    text: str,
    actions: list[Action],
    policy: AnchorPolicy = "truncate",
) -> str:
    """
    Rebuild file content by applying ``actions`` to ``text``.

    Anchors count lines of the content being produced. Unchanged lines are
    copied from ``text`` until the output reaches an anchor, then the
    action's removed lines are skipped and its inserted lines emitted.

    Args:
        path: Tracked path, used in messages only
        text: Current file content
        actions: Decoded sections for this file
        policy: "truncate" stops at an anchor beyond the content, "strict" raises

    Returns:
        The patched content, ending in a newline if ``text`` did or was empty
    """
    original = split_lines(text)
    # An empty file has no last line to inspect; new content gets a newline
    trailing_newline = text.endswith("\n") or not text
    output: list[str] = []
    cursor = 0  # next unread line of original
    position = 0  # lines produced so far, in new-content numbering

    ordered = sorted(actions, key=lambda a: a.anchor)
    for done, action in enumerate(ordered):
        while position < action.anchor:
            if cursor >= len(original):
                if policy == "strict":
                    raise AnchorOutOfRangeError(path, action.anchor, len(original))
                dropped = [a.anchor for a in ordered[done:]]
                _log.warning(
                    "%s: anchor %d is past the end of the file; dropping sections at %s",
                    path,
                    action.anchor,
                    dropped,
                )
                return join_lines(output, trailing_newline)
            output.append(original[cursor])
            cursor += 1
            position += 1

        if policy == "strict":
            found = original[cursor : cursor + len(action.remove)]
            if found != list(action.remove):
                raise PatchMismatchError(path, action.anchor, list(action.remove), found)

        cursor += len(action.remove)
        output.extend(action.insert)
        position = action.anchor + len(action.insert)

    output.extend(original[cursor:])
    return join_lines(output, trailing_newline)


def resolve_target(project_root: Path, path: str) -> Path:
    """Map a tracked path onto the working tree, refusing to leave it."""
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts:
        raise PatchFormatError(f"Patch path {path!r} escapes the working tree")
    return project_root / relative


def apply_patch(
    patch: Patch,
    project_root: Path,
    policy: AnchorPolicy = "truncate",
) -> list[str]:
    """
    Apply ``patch`` to the working tree at ``project_root`` in place.

    Files are rewritten one after another; a failure leaves files already
    processed rewritten and the rest untouched.

    Returns:
        The tracked paths that were rewritten
    """
    written = []
    for path in sorted(patch.files):
        sections = patch.files[path]
        if not sections:
            continue

        target = resolve_target(project_root, path)
        actions = decode_actions(sections)
        text = decode_text(path, target.read_bytes())
        result = apply_actions(path, text, actions, policy)
        target.write_bytes(result.encode("utf-8"))

        _log.debug("Applied %d section(s) to %s", len(actions), path)
        written.append(path)

    _log.info("Patched %d file(s)", len(written))
    return written


def reverse_patch(patch: Patch) -> Patch:
    """
    Build the patch that undoes ``patch``.

    Anchors live in the coordinates of the content a patch produces, so
    each inverted section is re-anchored at its start in the old content:
    the anchor minus the net lines added by the sections before it.
    """
    reversed_patch = Patch()
    for path, sections in patch.files.items():
        offset = 0
        inverted = []
        for action in decode_actions(sections):
            inverted.append(action.inverted(action.anchor - offset).encode())
            offset += len(action.insert) - len(action.remove)
        reversed_patch.add(path, inverted)
    return reversed_patch
