"""Output adapters for displays and other consumers."""

from frogchorus.adapters.base import Adapter, DictAdapter, CallbackAdapter

__all__ = [
    "Adapter",
    "DictAdapter",
    "CallbackAdapter",
]
