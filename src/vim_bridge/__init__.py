"""Buffer content synchronization for plugins driving Vim/Neovim."""

__all__ = [
    "buffer",
    "helper",
    "host",
    "runtime",
]

__version__ = "0.1.0"
