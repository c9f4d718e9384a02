"""Persistent record of the identifier a host had before spoofy first changed it."""

import logging
from collections.abc import Callable
from pathlib import Path

from ..core.duid import format_duid, hex_to_duid
from ..core.errors import ParseError, PermissionDeniedError, SpoofyError
from ..core.mac import bytes_to_mac, mac_to_bytes
from ..models.identity import IdentifierKind


logger = logging.getLogger(__name__)


def encode_original(kind: IdentifierKind, value: bytes) -> str:
    if kind is IdentifierKind.MAC:
        return bytes_to_mac(value)
    return format_duid(value)


def decode_original(kind: IdentifierKind, text: str, path: Path | None = None) -> bytes:
    text = text.strip()
    where = f" in {path}" if path else ""
    try:
        if kind is IdentifierKind.MAC:
            return mac_to_bytes(text)
        return bytes(hex_to_duid(text))
    except SpoofyError as e:
        raise ParseError(
            f"Stored original {kind.value.upper()}{where} is unreadable: {text!r}",
            [f"Remove {path or 'the stored original'} so the current value is captured again"],
        ) from e


class OriginalStore:
    """At-most-once storage of the original identifier per kind and interface.

    ``path_for`` maps a kind and interface (``None`` for the system DUID) to its
    file, normally the backend's ``original_path``. Files hold the canonical
    text form followed by a newline.
    """

    def __init__(self, path_for: Callable[[IdentifierKind, str | None], Path]) -> None:
        self._path_for = path_for

    def get_original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path:
        return Path(self._path_for(kind, interface))

    def has_original(self, kind: IdentifierKind, interface: str | None = None) -> bool:
        return self.get_original_path(kind, interface).is_file()

    def get_original(self, kind: IdentifierKind, interface: str | None = None) -> bytes | None:
        path = self.get_original_path(kind, interface)
        try:
            text = path.read_text(encoding="ascii")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise ParseError(f"Stored original {kind.value.upper()} in {path} is not text") from e
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Cannot read {path}: {e.strerror}",
                ["Run the command as root (sudo)"],
            ) from e
        return decode_original(kind, text, path)

    def save_original(self, kind: IdentifierKind, value: bytes, interface: str | None = None) -> bool:
        """Persist ``value`` unless an original is already stored.

        Returns ``True`` if this call created the record.
        """

        path = self.get_original_path(kind, interface)
        content = encode_original(kind, value) + "\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x" fails if another capture got there first
            with open(path, "x", encoding="ascii") as f:
                f.write(content)
        except FileExistsError:
            return False
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Cannot write {path}: {e.strerror}",
                ["Run the command as root (sudo)"],
            ) from e

        logger.debug("Captured original %s in %s", kind.value, path)
        return True

    def clear_original(self, kind: IdentifierKind, interface: str | None = None) -> bool:
        path = self.get_original_path(kind, interface)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except PermissionError as e:
            raise PermissionDeniedError(
                f"Cannot remove {path}: {e.strerror}",
                ["Run the command as root (sudo)"],
            ) from e
        return True
