"""JSON change log of identifier mutations, newest first."""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

import orjson
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..models.identity import HistoryEntry, IdentifierKind


logger = logging.getLogger(__name__)

_ENTRIES = TypeAdapter(list[HistoryEntry])


class HistoryLog:
    def __init__(self, path: str | Path, limit: int = 100) -> None:
        self.path = Path(path).expanduser()
        self.limit = limit

    def _load(self) -> list[HistoryEntry]:
        try:
            return _ENTRIES.validate_python(orjson.loads(self.path.read_bytes()))
        except FileNotFoundError:
            return []
        except (OSError, orjson.JSONDecodeError, PydanticValidationError) as e:
            logger.warning("Ignoring unreadable history file %s: %s", self.path, e)
            return []

    def _save(self, entries: list[HistoryEntry]) -> None:
        data = orjson.dumps(_ENTRIES.dump_python(entries, mode="json"), option=orjson.OPT_INDENT_2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_bytes(data)
        except OSError as e:
            logger.warning("Could not write history file %s: %s", self.path, e)

    def add(
        self,
        kind: IdentifierKind,
        device: str,
        old: str | None,
        new: str | None,
        operation: str,
    ) -> HistoryEntry:
        """Record a change. Failures to persist are logged, never raised."""

        entry = HistoryEntry(
            timestamp=datetime.now(UTC),
            kind=kind,
            device=device,
            old=old,
            new=new,
            operation=operation,
            platform=sys.platform,
        )
        entries = [entry, *self._load()][: self.limit]
        self._save(entries)
        return entry

    def entries(self, kind: IdentifierKind | None = None, device: str | None = None) -> list[HistoryEntry]:
        return [
            entry
            for entry in self._load()
            if (kind is None or entry.kind == kind) and (device is None or entry.device == device)
        ]

    def last(self, kind: IdentifierKind, device: str) -> HistoryEntry | None:
        return next(iter(self.entries(kind, device)), None)
