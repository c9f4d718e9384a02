"""spoofy core: codecs, mutation engine, errors and controller base."""

from .controller import BaseController
from .errors import SpoofyError
from .model import DisplayModel


__all__ = [
    "BaseController",
    "DisplayModel",
    "SpoofyError",
]
