from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, MutableMapping, Optional, Sequence, Set

import pytest

from vim_bridge.host import Call, Hook, HostError, Routine

_BUFFER_CMD = re.compile(r"^keepjumps keepalt (\d+)buffer$")


@dataclass
class FakeBuffer:
    bufnr: int
    name: str = ""
    lines: List[str] = field(default_factory=lambda: [""])
    cursor: int = 1
    disk: Optional[List[str]] = None
    options: Dict[str, Any] = field(
        default_factory=lambda: {
            "modified": 0,
            "modifiable": 1,
            "filetype": "",
            "fileformat": "unix",
            "fileencoding": "",
            "buftype": "",
        }
    )


class FakeHost:
    """In-memory stand-in for a Vim instance reached over RPC."""

    def __init__(self) -> None:
        self.context: MutableMapping[str, Any] = {}
        self.buffers: Dict[int, FakeBuffer] = {1: FakeBuffer(bufnr=1)}
        self.windows: Dict[int, int] = {1000: 1}
        self.current_winid = 1000
        self.global_options: Dict[str, Any] = {
            "fileformats": "unix,dos",
            "fileencodings": "ucs-bom,utf-8,default,latin1",
        }
        self.routines: Dict[str, Routine] = {}
        self.groups: Dict[str, List[Hook]] = {}
        self.calls: List[tuple[Any, ...]] = []
        self.commands: List[str] = []
        self.fail_on: Set[str] = set()
        self.honor_once = True

    # -- test setup -------------------------------------------------------
    def add_buffer(
        self, bufnr: int, lines: Sequence[str] = ("",), **options: Any
    ) -> FakeBuffer:
        buf = FakeBuffer(bufnr=bufnr, lines=list(lines))
        buf.options.update(options)
        self.buffers[bufnr] = buf
        return buf

    def add_window(self, winid: int, bufnr: int) -> None:
        self.windows[winid] = bufnr

    @property
    def current_bufnr(self) -> int:
        return self.windows[self.current_winid]

    def lines(self, bufnr: int) -> List[str]:
        return list(self.buffers[bufnr].lines)

    def option(self, bufnr: int, name: str) -> Any:
        return self.buffers[bufnr].options[name]

    async def fire(self, event: str, pattern: str) -> None:
        for group, hooks in list(self.groups.items()):
            for hook in list(hooks):
                if hook.event != event or hook.pattern != pattern:
                    continue
                if hook.once and self.honor_once and group in self.groups:
                    self.groups[group] = [h for h in self.groups[group] if h is not hook]
                await self.call(hook.routine, *hook.args)

    async def fire_buffer(self, event: str, bufnr: int) -> None:
        await self.fire(event, f"<buffer={bufnr}>")

    def has_hooks(self, bufnr: int) -> bool:
        pattern = f"<buffer={bufnr}>"
        return any(h.pattern == pattern for hooks in self.groups.values() for h in hooks)

    # -- Host protocol ----------------------------------------------------
    async def call(self, fn: str, *args: Any) -> Any:
        self.calls.append((fn, *args))
        if fn in self.fail_on:
            raise HostError(f"{fn} failed", fn=fn)
        if fn in self.routines:
            return await self.routines[fn](*args)
        handler = getattr(self, f"_fn_{fn}", None)
        if handler is None:
            raise HostError(f"Unknown function: {fn}", fn=fn)
        return await handler(*args)

    async def cmd(self, command: str, **ctx: Any) -> None:
        self.commands.append(command)
        if "cmd" in self.fail_on:
            raise HostError(f"{command} failed", fn="cmd")
        matched = _BUFFER_CMD.match(command)
        if matched:
            await self._enter(self.current_winid, int(matched.group(1)))
        elif command == "edit":
            await self._edit(self.current_bufnr)
        elif "`=bufname`" in command:
            await self._open(command, ctx["bufname"])
        elif command.startswith("execute printf('source"):
            self.context.setdefault("sourced", []).append(ctx["scriptPath"])
        else:
            raise HostError(f"Unsupported command: {command}", fn="cmd")

    async def batch(self, *calls: Call) -> list[Any]:
        return [await self.call(*call) for call in calls]

    async def define(self, name: str, routine: Routine) -> None:
        self.routines[name] = routine

    async def undefine(self, name: str) -> None:
        self.routines.pop(name, None)

    async def augroup(self, group: str, hooks: Sequence[Hook]) -> None:
        if hooks:
            self.groups[group] = list(hooks)
        else:
            self.groups.pop(group, None)

    # -- editor behaviour -------------------------------------------------
    async def _enter(self, winid: int, bufnr: int) -> None:
        self.current_winid = winid
        self.windows[winid] = bufnr
        await self.fire_buffer("BufEnter", bufnr)

    async def _edit(self, bufnr: int) -> None:
        buf = self.buffers[bufnr]
        pattern = f"<buffer={bufnr}>"
        hooks = [h for group in self.groups.values() for h in group]
        if any(h.event == "BufReadCmd" and h.pattern == pattern for h in hooks):
            await self.fire("BufReadCmd", pattern)
            return
        buf.lines = list(buf.disk) if buf.disk is not None else [""]
        buf.options["modified"] = 0

    async def _open(self, command: str, bufname: str) -> None:
        existing = next((b for b in self.buffers.values() if b.name == bufname), None)
        if existing is None:
            existing = self.add_buffer(max(self.buffers) + 1)
            existing.name = bufname
        winid = self.current_winid
        if "split" in command:
            winid = max(self.windows) + 1
        await self._enter(winid, existing.bufnr)

    def _require_modifiable(self, bufnr: int) -> FakeBuffer:
        buf = self.buffers[bufnr]
        if not buf.options["modifiable"]:
            raise HostError("E21: Cannot make changes, 'modifiable' is off")
        return buf

    async def _fn_bufnr(self, *args: Any) -> int:
        return self.current_bufnr

    async def _fn_win_getid(self) -> int:
        return self.current_winid

    async def _fn_winnr(self) -> int:
        return sorted(self.windows).index(self.current_winid) + 1

    async def _fn_tabpagenr(self) -> int:
        return 1

    async def _fn_bufwinid(self, bufnr: int) -> int:
        return next((w for w, b in sorted(self.windows.items()) if b == bufnr), -1)

    async def _fn_win_gotoid(self, winid: int) -> int:
        if winid not in self.windows:
            return 0
        await self._enter(winid, self.windows[winid])
        return 1

    async def _fn_line(self, expr: str) -> int:
        return self.buffers[self.current_bufnr].cursor

    async def _fn_eval(self, expr: str) -> Any:
        return self.global_options[expr.removeprefix("&g:")]

    async def _fn_getbufvar(self, bufnr: int, name: str) -> Any:
        return self.buffers[bufnr].options[name.removeprefix("&")]

    async def _fn_setbufvar(self, bufnr: int, name: str, value: Any) -> None:
        self.buffers[bufnr].options[name.removeprefix("&")] = value

    async def _fn_getbufline(self, bufnr: int, start: int, end: str) -> List[str]:
        return list(self.buffers[bufnr].lines[start - 1 :])

    async def _fn_appendbufline(self, bufnr: int, lnum: int, lines: List[str]) -> int:
        buf = self._require_modifiable(bufnr)
        buf.lines[lnum:lnum] = list(lines)
        buf.options["modified"] = 1
        return 0

    async def _fn_setbufline(self, bufnr: int, lnum: int, lines: List[str]) -> int:
        buf = self._require_modifiable(bufnr)
        start = lnum - 1
        buf.lines[start : start + len(lines)] = list(lines)
        if not buf.lines:
            buf.lines = [""]
        buf.options["modified"] = 1
        return 0

    async def _fn_deletebufline(self, bufnr: int, first: int, last: str) -> int:
        buf = self._require_modifiable(bufnr)
        if first <= len(buf.lines):
            del buf.lines[first - 1 :]
            buf.options["modified"] = 1
        if not buf.lines:
            buf.lines = [""]
        return 0


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def other_host() -> FakeHost:
    return FakeHost()


class SlowDefineHost(FakeHost):
    """Yields to the event loop on every routine definition."""

    def __init__(self, *, fail_at: Optional[int] = None) -> None:
        super().__init__()
        self.fail_at = fail_at
        self.defined = 0

    async def define(self, name: str, routine: Routine) -> None:
        await asyncio.sleep(0)
        self.defined += 1
        if self.fail_at is not None and self.defined == self.fail_at:
            raise HostError("define rejected", fn="define")
        await super().define(name, routine)


@pytest.fixture
def make_slow_host():
    return SlowDefineHost
