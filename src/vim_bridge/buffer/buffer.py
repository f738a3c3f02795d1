"""Buffer operations: open, reload, append, replace and decode.

Each mutating operation delegates to a routine defined for the current
session (see ``vim_bridge.buffer.session``), so the guard flags it relaxes
are put back even when a host call fails part way through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from vim_bridge.host import Host, buffer_option, global_option
from vim_bridge.runtime import telemetry

from .context import ensure
from .fileencoding import decode_with, try_decode
from .fileformat import (
    FileFormat,
    UnsupportedFileFormatError,
    find_file_format,
    is_file_format,
    parse_file_formats,
    prefer_dos,
    split_text,
)
from .session import OpenResult, ensure_session


@dataclass(slots=True)
class DecodeResult:
    content: List[str]
    fileformat: FileFormat
    fileencoding: str


async def open(
    host: Host,
    bufname: str,
    *,
    bang: bool = False,
    mods: str = "",
    cmdarg: str = "",
    opener: str = "edit",
) -> OpenResult:
    """Open ``bufname`` in the current window, like ``:{mods} {opener} {cmdarg}``.

    ``opener`` may be ``split``, ``vsplit``, ``tabedit`` or any other command
    taking a file name. The window id, buffer number, window number and tab
    page number of the result are returned.
    """

    state = await ensure_session(host)
    with telemetry.span(
        "buffer::open",
        component="buffer",
        metadata={"bufname": bufname, "opener": opener},
    ):
        return await host.call(state.open_routine, bang, mods, opener, cmdarg, bufname)


async def reload(host: Host, bufnr: int) -> None:
    """Reload the content of ``bufnr``.

    A hidden buffer is reloaded the next time it is entered; the request is
    armed at most once per buffer and fires at most once.
    """

    state = await ensure_session(host)
    with telemetry.span(
        "buffer::reload", component="buffer", metadata={"bufnr": bufnr}
    ):
        await host.call(state.reload_routine, bufnr)


async def append(
    host: Host,
    bufnr: int,
    lines: Sequence[str],
    *,
    lnum: Optional[int] = None,
) -> None:
    """Append ``lines`` below ``lnum`` (default: the cursor line of ``bufnr``).

    ``modifiable`` is relaxed for the insertion and ``modified`` keeps the
    value it had before the call.
    """

    state = await ensure_session(host)
    with telemetry.span(
        "buffer::append", component="buffer", metadata={"bufnr": bufnr}
    ):
        if lnum is None:
            lnum = await ensure(host, bufnr, lambda: host.call("line", "."))
        await host.call(state.append_routine, bufnr, lnum, list(lines))


async def replace(
    host: Host,
    bufnr: int,
    lines: Sequence[str],
    *,
    fileformat: Optional[str] = None,
    fileencoding: Optional[str] = None,
) -> None:
    """Replace the whole content of ``bufnr`` with ``lines``."""

    state = await ensure_session(host)
    with telemetry.span(
        "buffer::replace",
        component="buffer",
        metadata={"bufnr": bufnr, "lines": len(lines)},
    ):
        await host.call(
            state.replace_routine, bufnr, list(lines), fileformat, fileencoding
        )


async def decode(
    host: Host,
    bufnr: int,
    data: bytes,
    *,
    fileformat: Optional[str] = None,
    fileencoding: Optional[str] = None,
) -> DecodeResult:
    """Decode raw ``data`` into lines suitable for ``replace`` on ``bufnr``.

    Without overrides the encoding is the first of ``fileencodings`` that
    decodes cleanly and the format is detected from ``fileformats``, falling
    back to the buffer's own ``fileformat``.
    """

    with telemetry.span(
        "buffer::decode", component="buffer", metadata={"bufnr": bufnr}
    ) as handle:
        current, fileformats, fileencodings = await host.batch(
            buffer_option(bufnr, "fileformat"),
            global_option("fileformats"),
            global_option("fileencodings"),
        )
        if fileencoding:
            enc, text = fileencoding, decode_with(data, fileencoding)
        else:
            enc, text = try_decode(data, str(fileencodings).split(","))

        if is_file_format(fileformat):
            ff: Optional[str] = fileformat
        else:
            candidates = prefer_dos(parse_file_formats(str(fileformats)))
            ff = find_file_format(text, candidates) or current
        if not is_file_format(ff):
            raise UnsupportedFileFormatError(
                f"Cannot determine a file format for buffer {bufnr}", fileformat=ff
            )

        handle.add_metadata("fileformat", ff)
        handle.add_metadata("fileencoding", enc)
        return DecodeResult(
            content=split_text(text, ff),
            fileformat=ff,
            fileencoding=enc,
        )


__all__ = ["DecodeResult", "append", "decode", "open", "reload", "replace"]
