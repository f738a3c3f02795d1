"""Scoped execution helpers: run code under a buffer, or under a writable one.

Both helpers come in two shapes. The async context managers (``switched``,
``modifiable``) are what the rest of the package uses; ``ensure`` and
``with_modifiable`` wrap them for callers that prefer passing a callable.
Every state change made on entry is reverted on exit, whether the body
returns, raises or is cancelled at a host-call boundary. A failing revert
is not swallowed: its exception propagates with the body's exception (if
any) chained as context.
"""

from __future__ import annotations

import inspect
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar, Union

from vim_bridge.host import (
    Host,
    buffer_option,
    set_buffer_option,
    set_buffer_option_call,
)
from vim_bridge.runtime import telemetry

T = TypeVar("T")

Action = Callable[[], Union[T, Awaitable[T]]]


async def _run(action: Action[T]) -> T:
    result = action()
    if inspect.isawaitable(result):
        return await result
    return result


@asynccontextmanager
async def switched(host: Host, bufnr: int) -> AsyncIterator[None]:
    """Make ``bufnr`` the current buffer for the duration of the block."""

    bufnr_cur, winid_cur, winid_next = await host.batch(
        ("bufnr",),
        ("win_getid",),
        ("bufwinid", bufnr),
    )
    if bufnr_cur == bufnr:
        yield
        return

    if winid_next == -1:
        telemetry.record_event(
            "buffer.switch", level="debug", data={"bufnr": bufnr, "via": "buffer"}
        )
        await host.cmd(f"keepjumps keepalt {bufnr}buffer")
        try:
            yield
        finally:
            await host.cmd(f"keepjumps keepalt {bufnr_cur}buffer")
    else:
        telemetry.record_event(
            "buffer.switch", level="debug", data={"bufnr": bufnr, "via": "window"}
        )
        await host.call("win_gotoid", winid_next)
        try:
            yield
        finally:
            await host.call("win_gotoid", winid_cur)


@asynccontextmanager
async def modifiable(host: Host, bufnr: int) -> AsyncIterator[None]:
    """Force ``modifiable`` on ``bufnr``; restore both guard flags afterwards.

    The flags are captured per entry, so nested blocks each put back exactly
    what they found.
    """

    modified, was_modifiable = await host.batch(
        buffer_option(bufnr, "modified"),
        buffer_option(bufnr, "modifiable"),
    )
    await set_buffer_option(host, bufnr, "modifiable", 1)
    try:
        yield
    finally:
        await host.batch(
            set_buffer_option_call(bufnr, "modified", modified),
            set_buffer_option_call(bufnr, "modifiable", was_modifiable),
        )


async def ensure(host: Host, bufnr: int, action: Action[T]) -> T:
    """Run ``action`` while ``bufnr`` is the current buffer.

    Mostly useful for things that can only be done from inside a buffer,
    such as buffer-local mappings; prefer ``setbufvar`` and friends.
    """

    async with switched(host, bufnr):
        return await _run(action)


async def with_modifiable(host: Host, bufnr: int, action: Action[T]) -> T:
    async with modifiable(host, bufnr):
        return await _run(action)


__all__ = ["Action", "ensure", "modifiable", "switched", "with_modifiable"]
