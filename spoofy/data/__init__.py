"""Files spoofy keeps between runs: original identifiers and the change history."""

from .history import HistoryLog
from .originals import OriginalStore, decode_original, encode_original


__all__ = [
    "HistoryLog",
    "OriginalStore",
    "decode_original",
    "encode_original",
]
