"""Adapter boundary types describing the host editor a session talks to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, MutableMapping, Protocol, Sequence, Tuple

# ``(fn, *args)`` as accepted by ``Host.batch``.
Call = Tuple[Any, ...]

Routine = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class Hook:
    """One autocommand entry of a hook group.

    When ``event`` fires for a buffer matching ``pattern`` the host invokes
    the routine named ``routine`` with ``args``.
    """

    event: str
    pattern: str
    routine: str
    args: Tuple[Any, ...] = ()
    once: bool = False
    nested: bool = False


class Host(Protocol):
    """Everything the buffer layer needs from a host editor connection.

    Calls over a single host are serialized by the transport; implementations
    must not interleave ``batch`` members with foreign calls.
    """

    context: MutableMapping[str, Any]
    """Per-session scratch storage, alive as long as the session."""

    async def call(self, fn: str, *args: Any) -> Any:
        """Invoke a builtin function or a routine registered with ``define``."""
        ...

    async def cmd(self, command: str, **ctx: Any) -> None:
        """Execute an Ex command with ``ctx`` exposed as local variables."""
        ...

    async def batch(self, *calls: Call) -> list[Any]:
        """Apply ``calls`` without foreign interleaving; results in order."""
        ...

    async def define(self, name: str, routine: Routine) -> None:
        """Register ``routine`` so ``call(name, ...)`` and hooks can reach it."""
        ...

    async def undefine(self, name: str) -> None:
        """Remove a routine registered with ``define``."""
        ...

    async def augroup(self, group: str, hooks: Sequence[Hook]) -> None:
        """Redefine ``group``; prior entries are cleared, ``()`` only clears."""
        ...


class HostError(RuntimeError):
    """Raised by host implementations when a call is rejected."""

    def __init__(self, message: str, *, fn: str | None = None) -> None:
        super().__init__(message)
        self.fn = fn


__all__ = ["Call", "Hook", "Host", "HostError", "Routine"]
