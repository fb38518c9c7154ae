"""Line splitting and text decoding shared by the diff and patch engines."""

from .errors import ContentDecodeError


def decode_text(path: str, data: bytes) -> str:
    """Decode file content as UTF-8, raising ContentDecodeError otherwise."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise ContentDecodeError(path, err) from err


def split_lines(text: str) -> list[str]:
    """Split ``text`` on newlines.

    A single trailing newline ends the last line instead of starting an
    empty one. Carriage returns are kept as part of the line.
    """
    if not text:
        return []
    if text.endswith("\n"):
        text = text[:-1]
    return text.split("\n")


def join_lines(lines: list[str], trailing_newline: bool) -> str:
    """Inverse of split_lines for a file with or without a final newline."""
    text = "\n".join(lines)
    if trailing_newline and lines:
        text += "\n"
    return text
