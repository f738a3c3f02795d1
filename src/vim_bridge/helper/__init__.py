"""Session helpers that are not tied to a particular buffer."""

from .loader import LoadError, load

__all__ = ["LoadError", "load"]
