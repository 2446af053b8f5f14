"""Component modules and their public exports."""

from . import catalog, config, execution, history

__all__ = [
    "catalog",
    "config",
    "execution",
    "history",
]
