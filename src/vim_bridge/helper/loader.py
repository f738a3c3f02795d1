"""Source Vim scripts from local paths or remote URLs, once per process.

The set of loaded scripts lives for the whole Python process: it starts
empty, grows on each successful load and is consulted before every load.
Plugins run in their own processes, so scripts should still carry the
usual ``g:loaded_xxx`` guard.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import sys
from pathlib import Path
from typing import Set
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from vim_bridge.host import Host
from vim_bridge.runtime import telemetry

FETCH_TIMEOUT = 30.0

_LOADED: Set[str] = set()


class LoadError(RuntimeError):
    """Raised when a remote script cannot be fetched."""

    def __init__(self, message: str, *, url: str, status: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


def _normalize(url: str | os.PathLike[str]) -> str:
    text = os.fspath(url)
    if urlparse(text).scheme in {"file", "http", "https"}:
        return text
    return Path(text).expanduser().resolve().as_uri()


def cache_dir() -> Path:
    override = telemetry.env("CACHE_DIR")
    if override:
        return Path(override)
    if sys.platform == "win32":
        root = os.environ.get("LOCALAPPDATA")
        if not root:
            raise RuntimeError("`LOCALAPPDATA` environment variable is not defined.")
        return Path(root) / "vim_bridge" / "load"
    root = os.environ.get("HOME")
    if not root:
        raise RuntimeError("`HOME` environment variable is not defined.")
    return Path(root) / ".cache" / "vim_bridge" / "load"


def local_filename(url: str) -> str:
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return f"{digest}-{os.path.basename(urlparse(url).path)}"


def _download(url: str, path: Path) -> None:
    response = requests.get(url, timeout=FETCH_TIMEOUT)
    try:
        if response.status_code != 200:
            raise LoadError(
                f"Failed to fetch '{url}'", url=url, status=response.status_code
            )
        # Only the owner may read cached scripts.
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o700)
        with os.fdopen(fd, "wb") as fh:
            fh.write(response.content)
    finally:
        response.close()


async def _ensure_local_file(url: str) -> Path:
    parsed = urlparse(url)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))

    directory = cache_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / local_filename(url)
    if not path.exists():
        await asyncio.to_thread(_download, url, path)
    return path


async def load(host: Host, url: str | os.PathLike[str], *, force: bool = False) -> bool:
    """Source the script at ``url`` unless it was loaded already.

    Returns ``True`` when the script was sourced and ``False`` when it was
    skipped. ``force`` sources it again regardless.
    """

    key = _normalize(url)
    if not force and key in _LOADED:
        return False

    with telemetry.span("helper::load", component="helper", metadata={"url": key}):
        script_path = await _ensure_local_file(key)
        await host.cmd(
            "execute printf('source %s', fnameescape(scriptPath))",
            scriptPath=str(script_path),
        )
    _LOADED.add(key)
    telemetry.record_event("helper.load", data={"url": key, "forced": force})
    return True


__all__ = ["LoadError", "cache_dir", "load", "local_filename"]
