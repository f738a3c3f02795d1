"""Host editor collaborator interfaces."""

from .options import (
    buffer_option,
    get_buffer_option,
    get_global_option,
    global_option,
    set_buffer_option,
    set_buffer_option_call,
)
from .protocol import Call, Hook, Host, HostError, Routine

__all__ = [
    "Call",
    "Hook",
    "Host",
    "HostError",
    "Routine",
    "buffer_option",
    "get_buffer_option",
    "get_global_option",
    "global_option",
    "set_buffer_option",
    "set_buffer_option_call",
]
