"""Per-session routines backing the buffer operations.

The first buffer operation of a session defines a small set of routines on
the host. Their names carry a suffix unique to the session so that several
plugins using this package inside the same editor never collide. The
suffix is memoized in ``Host.context``; later operations reuse it without
touching the host.

When the host reports that the session stopped (``User VimBridgeStopped``
or ``User VimBridgeClosed``), the teardown routine clears every hook group
the session created, undefines its routines and drops cached snapshots.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from vim_bridge.host import Hook, Host, buffer_option, set_buffer_option
from vim_bridge.runtime import telemetry

from .context import modifiable

CACHE_KEY = "vim_bridge/buffer/session@1"
PENDING_KEY = "vim_bridge/buffer/session@1:pending"
STOP_EVENTS = ("VimBridgeStopped", "VimBridgeClosed")

ROUTINE_PREFIX = "VimBridgeBuffer"
GROUP_PREFIX = "vim_bridge_buffer"


@dataclass(slots=True)
class ConcreteSnapshot:
    """Content and filetype captured from a buffer on store."""

    filetype: str
    content: List[str]


@dataclass(slots=True)
class OpenResult:
    winid: int
    bufnr: int
    winnr: int
    tabpagenr: int


@dataclass(slots=True)
class SessionState:
    """Everything a session owns on the host side."""

    suffix: str
    snapshots: Dict[int, ConcreteSnapshot] = field(default_factory=dict)
    hook_groups: Set[str] = field(default_factory=set)
    routines: Set[str] = field(default_factory=set)

    def routine(self, name: str) -> str:
        return f"{ROUTINE_PREFIX}{name}_{self.suffix}"

    def group(self, name: str = "", bufnr: Optional[int] = None) -> str:
        parts = (GROUP_PREFIX, name, self.suffix, bufnr)
        return "_".join(str(part) for part in parts if part not in ("", None))

    @property
    def open_routine(self) -> str:
        return self.routine("Open")

    @property
    def reload_routine(self) -> str:
        return self.routine("Reload")

    @property
    def append_routine(self) -> str:
        return self.routine("Append")

    @property
    def replace_routine(self) -> str:
        return self.routine("Replace")

    @property
    def store_routine(self) -> str:
        return self.routine("ConcreteStore")

    @property
    def restore_routine(self) -> str:
        return self.routine("ConcreteRestore")

    @property
    def teardown_routine(self) -> str:
        return self.routine("Teardown")


class BufferRoutines:
    """Host-side behaviour of the buffer operations for one session."""

    def __init__(self, host: Host, state: SessionState) -> None:
        self.host = host
        self.state = state

    async def open(
        self, bang: bool, mods: str, opener: str, cmdarg: str, bufname: str
    ) -> OpenResult:
        command = " ".join(
            part
            for part in (mods, f"{opener}{'!' if bang else ''}", cmdarg, "`=bufname`")
            if part
        )
        await self.host.cmd(command, bufname=bufname)
        winid, bufnr, winnr, tabpagenr = await self.host.batch(
            ("win_getid",),
            ("bufnr",),
            ("winnr",),
            ("tabpagenr",),
        )
        return OpenResult(winid=winid, bufnr=bufnr, winnr=winnr, tabpagenr=tabpagenr)

    async def reload(self, bufnr: int) -> None:
        host = self.host
        bufnr_cur, winid_saved, winid = await host.batch(
            ("bufnr",), ("win_getid",), ("bufwinid", bufnr)
        )
        if bufnr_cur == bufnr:
            # Disarm a pending deferred reload so it cannot fire again.
            group = self.state.group("reload", bufnr)
            if group in self.state.hook_groups:
                await host.augroup(group, ())
                self.state.hook_groups.discard(group)
            await host.cmd("edit")
            return

        if winid == -1:
            group = self.state.group("reload", bufnr)
            await host.augroup(
                group,
                (
                    Hook(
                        event="BufEnter",
                        pattern=f"<buffer={bufnr}>",
                        routine=self.state.reload_routine,
                        args=(bufnr,),
                        once=True,
                        nested=True,
                    ),
                ),
            )
            self.state.hook_groups.add(group)
            telemetry.record_event("buffer.reload.deferred", data={"bufnr": bufnr})
            return

        await host.call("win_gotoid", winid)
        try:
            await host.cmd("edit")
        finally:
            await host.call("win_gotoid", winid_saved)

    async def append(self, bufnr: int, lnum: int, lines: Sequence[str]) -> None:
        async with modifiable(self.host, bufnr):
            await self.host.call("appendbufline", bufnr, lnum, list(lines))

    async def replace(
        self,
        bufnr: int,
        lines: Sequence[str],
        fileformat: Optional[str],
        fileencoding: Optional[str],
    ) -> None:
        host = self.host
        async with modifiable(host, bufnr):
            if fileformat is not None:
                await set_buffer_option(host, bufnr, "fileformat", fileformat)
            if fileencoding is not None:
                await set_buffer_option(host, bufnr, "fileencoding", fileencoding)
            await host.call("setbufline", bufnr, 1, list(lines))
            await host.call("deletebufline", bufnr, len(lines) + 1, "$")

    async def concrete_store(self, bufnr: int) -> None:
        filetype, content = await self.host.batch(
            buffer_option(bufnr, "filetype"),
            ("getbufline", bufnr, 1, "$"),
        )
        self.state.snapshots[bufnr] = ConcreteSnapshot(
            filetype=filetype, content=list(content)
        )

    async def concrete_restore(self, bufnr: int) -> None:
        snapshot = self.state.snapshots.get(bufnr)
        if snapshot is None:
            telemetry.record_event(
                "buffer.concrete.missing", level="debug", data={"bufnr": bufnr}
            )
            return
        await self.replace(bufnr, snapshot.content, None, None)
        await set_buffer_option(self.host, bufnr, "filetype", snapshot.filetype)

    async def teardown(self) -> None:
        state = self.state
        state.snapshots.clear()
        for group in sorted(state.hook_groups):
            await self.host.augroup(group, ())
        state.hook_groups.clear()
        for name in sorted(state.routines):
            await self.host.undefine(name)
        state.routines.clear()
        if self.host.context.get(CACHE_KEY) is state:
            del self.host.context[CACHE_KEY]
        telemetry.record_event("buffer.session.teardown", data={"suffix": state.suffix})


def _routine_table(state: SessionState, routines: BufferRoutines) -> Dict[str, Any]:
    return {
        state.open_routine: routines.open,
        state.reload_routine: routines.reload,
        state.append_routine: routines.append,
        state.replace_routine: routines.replace,
        state.store_routine: routines.concrete_store,
        state.restore_routine: routines.concrete_restore,
        state.teardown_routine: routines.teardown,
    }


def get_session_state(host: Host) -> Optional[SessionState]:
    state = host.context.get(CACHE_KEY)
    return state if isinstance(state, SessionState) else None


async def _define_session(host: Host) -> SessionState:
    state = SessionState(suffix=uuid.uuid4().hex)
    with telemetry.span(
        "buffer::session",
        component="buffer",
        metadata={"suffix": state.suffix},
    ):
        try:
            routines = BufferRoutines(host, state)
            for name, routine in _routine_table(state, routines).items():
                await host.define(name, routine)
                state.routines.add(name)

            group = state.group()
            await host.augroup(
                group,
                tuple(
                    Hook(
                        event="User",
                        pattern=pattern,
                        routine=state.teardown_routine,
                        once=True,
                    )
                    for pattern in STOP_EVENTS
                ),
            )
            state.hook_groups.add(group)
            host.context[CACHE_KEY] = state
        except BaseException:
            # Leave nothing half-defined behind; the next call starts over.
            for name in sorted(state.routines):
                await host.undefine(name)
            raise
        finally:
            host.context.pop(PENDING_KEY, None)

    telemetry.record_event("buffer.session.ready", data={"suffix": state.suffix})
    return state


async def ensure_session(host: Host) -> SessionState:
    """Define this session's routines on first use and return its state.

    Concurrent first calls share one setup task, so a host only ever sees
    one suffix per session.
    """

    state = get_session_state(host)
    if state is not None:
        return state

    pending = host.context.get(PENDING_KEY)
    if pending is None:
        pending = asyncio.ensure_future(_define_session(host))
        host.context[PENDING_KEY] = pending
    return await asyncio.shield(pending)


async def ensure_prerequisites(host: Host) -> str:
    """Return the session suffix, defining the routines if needed."""

    return (await ensure_session(host)).suffix


__all__ = [
    "BufferRoutines",
    "ConcreteSnapshot",
    "OpenResult",
    "SessionState",
    "ensure_prerequisites",
    "ensure_session",
    "get_session_state",
]
