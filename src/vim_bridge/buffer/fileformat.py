"""Line ending conventions: detection and splitting."""

from __future__ import annotations

from typing import Iterable, List, Literal, Mapping, Optional, Sequence, TypeGuard

FileFormat = Literal["unix", "dos", "mac"]

FILE_FORMAT_DELIMITERS: Mapping[str, str] = {
    "unix": "\n",
    "dos": "\r\n",
    "mac": "\r",
}


class UnsupportedFileFormatError(ValueError):
    """Raised when no usable file format can be determined for a buffer."""

    def __init__(self, message: str, *, fileformat: object = None) -> None:
        super().__init__(message)
        self.fileformat = fileformat


def is_file_format(value: object) -> TypeGuard[FileFormat]:
    return isinstance(value, str) and value in FILE_FORMAT_DELIMITERS


def parse_file_formats(value: str | Sequence[str]) -> List[FileFormat]:
    """Turn ``'unix,dos'`` (or a list) into known file formats, in order."""

    names = value.split(",") if isinstance(value, str) else value
    return [name for name in (n.strip() for n in names) if is_file_format(name)]


def prefer_dos(fileformats: Iterable[FileFormat]) -> List[FileFormat]:
    """Move ``dos`` ahead of ``unix`` so ``\\r\\n`` is not taken for ``\\n``."""

    ordered = list(fileformats)
    if "dos" in ordered and "unix" in ordered:
        if ordered.index("dos") > ordered.index("unix"):
            ordered.remove("dos")
            ordered.insert(ordered.index("unix"), "dos")
    return ordered


def find_file_format(
    text: str, fileformats: Iterable[str]
) -> Optional[FileFormat]:
    """Return the first candidate whose delimiter occurs in ``text``."""

    for fileformat in fileformats:
        if is_file_format(fileformat) and FILE_FORMAT_DELIMITERS[fileformat] in text:
            return fileformat
    return None


def split_text(text: str, fileformat: FileFormat) -> List[str]:
    """Split ``text`` into buffer lines.

    A single trailing delimiter terminates the last line rather than opening
    a new empty one, so ``"a\\nb\\n"`` and ``"a\\nb"`` both give ``["a", "b"]``.
    """

    if not is_file_format(fileformat):
        raise UnsupportedFileFormatError(
            f"Unknown file format '{fileformat}'", fileformat=fileformat
        )
    delimiter = FILE_FORMAT_DELIMITERS[fileformat]
    lines = text.split(delimiter)
    if len(lines) > 1 and text.endswith(delimiter):
        lines.pop()
    return lines


__all__ = [
    "FILE_FORMAT_DELIMITERS",
    "FileFormat",
    "UnsupportedFileFormatError",
    "find_file_format",
    "is_file_format",
    "parse_file_formats",
    "prefer_dos",
    "split_text",
]
