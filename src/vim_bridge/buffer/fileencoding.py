"""Decoding raw buffer bytes under Vim's ``fileencodings`` rules."""

from __future__ import annotations

import codecs
import locale
from typing import Mapping, Optional, Sequence, Tuple

from vim_bridge.runtime import telemetry

# Vim encoding names whose Python codec differs (or does not exist by name).
VIM_CODEC_ALIASES: Mapping[str, str] = {
    "utf8": "utf-8",
    "latin1": "latin-1",
    "ucs-2": "utf-16-be",
    "ucs-2le": "utf-16-le",
    "utf-16": "utf-16-be",
    "utf-16le": "utf-16-le",
    "ucs-4": "utf-32-be",
    "ucs-4le": "utf-32-le",
    "utf-32": "utf-32-be",
    "utf-32le": "utf-32-le",
    "sjis": "shift_jis",
    "euc-jp": "euc_jp",
    "cp932": "cp932",
    "ansi": "cp1252",
}

# Longest BOMs first: the UTF-32LE mark starts with the UTF-16LE one.
_BOMS: Tuple[Tuple[bytes, str, str], ...] = (
    (codecs.BOM_UTF8, "utf-8", "utf-8-sig"),
    (codecs.BOM_UTF32_LE, "ucs-4le", "utf-32"),
    (codecs.BOM_UTF32_BE, "ucs-4", "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16le", "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16", "utf-16"),
)

FALLBACK_ENCODING = "utf-8"


def python_codec(fileencoding: str) -> Optional[str]:
    """Map a Vim encoding name to an available Python codec, if any."""

    name = fileencoding.strip().lower()
    if name == "default":
        name = locale.getpreferredencoding(False)
    name = VIM_CODEC_ALIASES.get(name, name)
    try:
        return codecs.lookup(name).name
    except LookupError:
        return None


def _decode_bom(data: bytes) -> Optional[Tuple[str, str]]:
    for bom, vim_name, codec in _BOMS:
        if data.startswith(bom):
            try:
                return vim_name, data.decode(codec)
            except UnicodeDecodeError:
                return None
    return None


def _decode_strict(data: bytes, fileencoding: str) -> Optional[str]:
    codec = python_codec(fileencoding)
    if codec is None:
        return None
    try:
        return data.decode(codec)
    except UnicodeDecodeError:
        return None


def decode_with(data: bytes, fileencoding: str) -> str:
    """Decode ``data`` with an explicit encoding, replacing invalid input."""

    codec = python_codec(fileencoding)
    if codec is None:
        raise LookupError(f"Unknown encoding '{fileencoding}'")
    return data.decode(codec, errors="replace")


def try_decode(data: bytes, fileencodings: Sequence[str]) -> Tuple[str, str]:
    """Return ``(fileencoding, text)`` for the first candidate that fits.

    ``ucs-bom`` only matches data that starts with a byte order mark and
    reports the encoding the mark announces. When nothing decodes cleanly the
    last candidate Python knows is used lossily; ``utf-8`` when none is known.
    """

    candidates = [enc.strip() for enc in fileencodings if enc.strip()]
    for fileencoding in candidates:
        if fileencoding.lower() == "ucs-bom":
            found = _decode_bom(data)
            if found is not None:
                return found
            continue
        text = _decode_strict(data, fileencoding)
        if text is not None:
            return fileencoding, text

    fallback = next(
        (
            enc
            for enc in reversed(candidates)
            if enc.lower() != "ucs-bom" and python_codec(enc) is not None
        ),
        FALLBACK_ENCODING,
    )
    telemetry.record_event(
        "buffer.decode.lossy",
        level="warning",
        data={"candidates": candidates, "fileencoding": fallback},
    )
    return fallback, decode_with(data, fallback)


__all__ = [
    "FALLBACK_ENCODING",
    "VIM_CODEC_ALIASES",
    "decode_with",
    "python_codec",
    "try_decode",
]
