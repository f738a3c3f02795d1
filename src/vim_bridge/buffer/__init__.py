"""Reading, decoding and mutating host editor buffers."""

from .buffer import DecodeResult, append, decode, open, reload, replace
from .concrete import concrete, snapshot
from .context import ensure, modifiable, switched, with_modifiable
from .fileencoding import decode_with, try_decode
from .fileformat import (
    FILE_FORMAT_DELIMITERS,
    FileFormat,
    UnsupportedFileFormatError,
    find_file_format,
    is_file_format,
    split_text,
)
from .session import (
    ConcreteSnapshot,
    OpenResult,
    SessionState,
    ensure_prerequisites,
    get_session_state,
)

__all__ = [
    "ConcreteSnapshot",
    "DecodeResult",
    "FILE_FORMAT_DELIMITERS",
    "FileFormat",
    "OpenResult",
    "SessionState",
    "UnsupportedFileFormatError",
    "append",
    "concrete",
    "decode",
    "decode_with",
    "ensure",
    "ensure_prerequisites",
    "find_file_format",
    "get_session_state",
    "is_file_format",
    "modifiable",
    "open",
    "reload",
    "replace",
    "snapshot",
    "split_text",
    "switched",
    "try_decode",
    "with_modifiable",
]
