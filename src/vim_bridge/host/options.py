"""Option accessors layered over ``Host.call``."""

from __future__ import annotations

from typing import Any

from .protocol import Call, Host


def buffer_option(bufnr: int, name: str) -> Call:
    """Batchable ``getbufvar`` call for ``&name`` of ``bufnr``."""

    return ("getbufvar", bufnr, f"&{name}")


def set_buffer_option_call(bufnr: int, name: str, value: Any) -> Call:
    return ("setbufvar", bufnr, f"&{name}", value)


def global_option(name: str) -> Call:
    return ("eval", f"&g:{name}")


async def get_buffer_option(host: Host, bufnr: int, name: str) -> Any:
    return await host.call(*buffer_option(bufnr, name))


async def set_buffer_option(host: Host, bufnr: int, name: str, value: Any) -> None:
    await host.call(*set_buffer_option_call(bufnr, name, value))


async def get_global_option(host: Host, name: str) -> Any:
    return await host.call(*global_option(name))


__all__ = [
    "buffer_option",
    "get_buffer_option",
    "get_global_option",
    "global_option",
    "set_buffer_option",
    "set_buffer_option_call",
]
