"""Exception types raised by qop operations."""


class QopError(Exception):
    """Base class for all qop failures."""


class NotInitializedError(QopError):
    """The project has no .qop directory or index."""


class IgnoreManifestError(QopError):
    """A per-directory ignore manifest could not be parsed."""

    def __init__(self, manifest_path, reason):
        self.manifest_path = manifest_path
        super().__init__(f"Malformed ignore manifest {manifest_path}: {reason}")


class IndexFormatError(QopError):
    """The snapshot index file is malformed."""


class PatchFormatError(QopError):
    """A patch document or one of its sections is malformed."""


class ContentDecodeError(QopError):
    """File content is not valid UTF-8 text and cannot be diffed."""

    def __init__(self, path, reason):
        self.path = path
        super().__init__(f"Cannot decode {path} as UTF-8 text: {reason}")


class AnchorOutOfRangeError(QopError):
    """A section anchor lies beyond the content being patched (strict mode)."""

    def __init__(self, path, anchor, available):
        self.path = path
        self.anchor = anchor
        self.available = available
        super().__init__(
            f"{path}: section anchor {anchor} is beyond the end of the file "
            f"({available} lines)"
        )


class PatchMismatchError(QopError):
    """Lines a section removes do not match the file being patched (strict mode)."""

    def __init__(self, path, anchor, expected, found):
        self.path = path
        self.anchor = anchor
        self.expected = expected
        self.found = found
        super().__init__(
            f"{path}: section at line {anchor} expected to remove {expected!r}, "
            f"found {found!r}"
        )
