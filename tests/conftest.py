import logging
from pathlib import Path

import pytest
from rich.console import Console

from spoofy.core.application import Application
from spoofy.core.engine import MutationEngine
from spoofy.core.errors import IdentifierNotFoundError, PermissionDeniedError
from spoofy.core.mac import mac_to_bytes, normalize_mac
from spoofy.models.config import Settings
from spoofy.models.identity import IdentifierKind, InterfaceInfo, MutationTarget
from spoofy.providers.base import original_filename


class FakeBackend:
    """In-memory backend with scriptable failures."""

    name = "fake"

    def __init__(self, state_dir: Path, mac_first_octets: tuple[int, ...] | None = None) -> None:
        self.state_dir = state_dir
        self.mac_first_octets = mac_first_octets

        self.values: dict[tuple[IdentifierKind, str | None], bytes] = {}
        self.hardware: dict[str, bytes] = {}

        self.writes: list[tuple[MutationTarget, bytes]] = []
        self.deletes: list[MutationTarget] = []
        self.reads = 0
        self.read_failures: dict[int, Exception] = {}
        """Raised by the Nth read, keyed by read number."""
        self.after_writes: list[MutationTarget] = []

        self.write_error: Exception | None = None
        """Raised by the next write, once."""

        self.write_takes_effect = True
        self.stale_reads = 0
        """Reads after a write that still report the previous value."""

        self.after_write_error: Exception | None = None
        self.privileged = True
        self._previous: tuple[tuple[IdentifierKind, str | None], bytes | None] | None = None

    def add_interface(self, device: str, mac: str, hardware: str | None = None) -> None:
        self.values[(IdentifierKind.MAC, device)] = mac_to_bytes(mac)
        self.hardware[device] = mac_to_bytes(hardware or mac)

    def _key(self, target: MutationTarget) -> tuple[IdentifierKind, str | None]:
        return (target.kind, target.interface if target.kind is IdentifierKind.MAC else None)

    def read_identifier(self, target: MutationTarget, *, timeout: float) -> bytes | None:
        self.reads += 1
        if self.reads in self.read_failures:
            raise self.read_failures[self.reads]
        key = self._key(target)
        if target.kind is IdentifierKind.MAC and key not in self.values:
            raise IdentifierNotFoundError(f'Could not find device "{target.interface}"')
        if self.stale_reads and self._previous and self._previous[0] == key:
            self.stale_reads -= 1
            return self._previous[1]
        return self.values.get(key)

    def write_identifier(self, target: MutationTarget, value: bytes, *, timeout: float) -> None:
        self.writes.append((target, bytes(value)))
        key = self._key(target)
        error, self.write_error = self.write_error, None
        if self.write_takes_effect:
            self._previous = (key, self.values.get(key))
            self.values[key] = bytes(value)
        if error is not None:
            raise error

    def delete_identifier(self, target: MutationTarget, *, timeout: float) -> None:
        self.deletes.append(target)
        self.values.pop(self._key(target), None)

    def hardware_address(self, interface: str, *, timeout: float) -> bytes | None:
        return self.hardware.get(interface)

    def list_interfaces(self, *, timeout: float) -> list[InterfaceInfo]:
        return [
            InterfaceInfo(
                device=device,
                port=device,
                address=normalize_mac(self.hardware[device].hex()) if device in self.hardware else None,
                current_address=normalize_mac(value.hex()),
            )
            for (kind, device), value in self.values.items()
            if kind is IdentifierKind.MAC
        ]

    def original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path:
        return self.state_dir / original_filename(kind, interface)

    def require_privileges(self) -> None:
        if not self.privileged:
            raise PermissionDeniedError("This command requires root privileges")

    def after_write(self, target: MutationTarget, *, timeout: float) -> None:
        self.after_writes.append(target)
        if self.after_write_error is not None:
            raise self.after_write_error


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def backend(tmp_path: Path) -> FakeBackend:
    fake = FakeBackend(tmp_path / "state")
    fake.add_interface("eth0", "00:11:22:33:44:55")
    return fake


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(state_dir=tmp_path / "state", history_file=tmp_path / "history.json", timeout=5)


@pytest.fixture
def engine(backend: FakeBackend, sleeps: list[float]) -> MutationEngine:
    return MutationEngine(backend, max_attempts=3, base_delay=0.5, timeout=5, sleep=sleeps.append)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # the CLI installs its own handler and stops propagation
    logger = logging.getLogger("spoofy")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def app(settings: Settings, backend: FakeBackend, engine: MutationEngine):
    application = Application(settings=settings, backend=backend, console=Console(record=True, width=120))
    application.engine = engine
    Application._instance = application
    yield application
    Application.reset()
