"""Platform backends."""

from .base import Backend
from .factory import make_backend


__all__ = [
    "Backend",
    "make_backend",
]
