"""Keep the content of file-less buffers across ``:edit``.

Vim throws away the content of a ``buftype=nofile`` buffer when it is
reloaded. ``concrete`` snapshots such a buffer and answers the reload
(``BufReadCmd``) by writing the snapshot back; a write (``BufWriteCmd``)
refreshes the snapshot instead of touching the disk.
"""

from __future__ import annotations

from vim_bridge.host import Hook, Host
from vim_bridge.runtime import telemetry

from .session import ConcreteSnapshot, ensure_session, get_session_state


async def concrete(host: Host, bufnr: int) -> None:
    """Protect the current content of ``bufnr`` against reloads."""

    state = await ensure_session(host)
    with telemetry.span(
        "buffer::concrete", component="buffer", metadata={"bufnr": bufnr}
    ):
        pattern = f"<buffer={bufnr}>"
        group = state.group("concrete", bufnr)
        await host.augroup(
            group,
            (
                Hook(
                    event="BufWriteCmd",
                    pattern=pattern,
                    routine=state.store_routine,
                    args=(bufnr,),
                ),
                Hook(
                    event="BufReadCmd",
                    pattern=pattern,
                    routine=state.restore_routine,
                    args=(bufnr,),
                    nested=True,
                ),
            ),
        )
        state.hook_groups.add(group)
        await host.call(state.store_routine, bufnr)


def snapshot(host: Host, bufnr: int) -> ConcreteSnapshot | None:
    """Return the snapshot currently held for ``bufnr``, if any."""

    state = get_session_state(host)
    if state is None:
        return None
    return state.snapshots.get(bufnr)


__all__ = ["concrete", "snapshot"]
