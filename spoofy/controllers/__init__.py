"""spoofy controllers."""

from .duid import DuidController, DuidStatus
from .identity import IdentityController
from .mac import MacController


__all__ = [
    "DuidController",
    "DuidStatus",
    "IdentityController",
    "MacController",
]
