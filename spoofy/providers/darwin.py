"""macOS backend: ifconfig/networksetup for MAC addresses, dhcpclient's DUID file."""

import logging
import re
from pathlib import Path

from ..core.errors import BackendError, IdentifierNotFoundError, SpoofyError
from ..core.mac import bytes_to_mac, mac_to_bytes, normalize_mac
from ..models.identity import IdentifierKind, InterfaceInfo, MutationTarget
from .base import need, original_filename, require_root, run, write_atomic


logger = logging.getLogger(__name__)

_ETHER_RE = re.compile(r"\bether\s+([0-9a-f]{1,2}(?::[0-9a-f]{1,2}){5})", re.IGNORECASE)
_PORT_FIELD_RE = re.compile(r"^(Hardware Port|Device|Ethernet Address):\s*(.+)$", re.MULTILINE)
_ADDRESS_RE = re.compile(r"([0-9a-f]{1,2}(?::[0-9a-f]{1,2}){5})", re.IGNORECASE)

DHCPCLIENT_DUID = Path("/var/db/dhcpclient/DUID")
DEFAULT_STATE_DIR = Path("/var/db/spoofy")


class DarwinBackend:
    """macOS backend.

    Wi-Fi addresses can only be changed in the short window after the radio is
    powered on and before it joins a network, so Wi-Fi ports are power-cycled
    right before the change instead of being brought down.
    """

    name = "darwin"
    mac_first_octets: tuple[int, ...] | None = None

    def __init__(self, state_dir: str | Path | None = None, duid_path: str | Path | None = None) -> None:
        self.state_dir = Path(state_dir) if state_dir else None
        self.duid_path = Path(duid_path) if duid_path else DHCPCLIENT_DUID

    def _hardware_ports(self, timeout: float) -> list[tuple[str, str, str | None]]:
        """(port, device, address) triples from ``networksetup -listallhardwareports``."""

        need("networksetup")
        output = run(["networksetup", "-listallhardwareports"], timeout=timeout).stdout

        ports = []
        current: dict[str, str] = {}
        for field, value in _PORT_FIELD_RE.findall(output):
            if field == "Hardware Port" and current:
                ports.append(current)
                current = {}
            current[field] = value.strip()
        if current:
            ports.append(current)

        result = []
        for port in ports:
            if "Device" not in port:
                continue
            found = _ADDRESS_RE.search(port.get("Ethernet Address", ""))
            result.append((port.get("Hardware Port", port["Device"]), port["Device"], found and found.group(1)))
        return result

    def _port_name(self, device: str, timeout: float) -> str | None:
        for port, dev, _ in self._hardware_ports(timeout):
            if dev == device:
                return port
        return None

    def _read_mac(self, device: str, timeout: float) -> bytes | None:
        need("ifconfig")
        result = run(["ifconfig", device], timeout=timeout, check=False)
        if result.returncode != 0:
            raise IdentifierNotFoundError(
                f'Could not find device "{device}"',
                ["List available devices using: spoofy list"],
            )
        found = _ETHER_RE.search(result.stdout)
        return mac_to_bytes(found.group(1)) if found else None

    def _write_mac(self, device: str, value: bytes, timeout: float) -> None:
        need("ifconfig")
        mac = bytes_to_mac(value)
        error: SpoofyError | None = None

        if (self._port_name(device, timeout) or "").lower() == "wi-fi":
            try:
                run(["networksetup", "-setairportpower", device, "off"], timeout=timeout)
                run(["networksetup", "-setairportpower", device, "on"], timeout=timeout)
                run(["ifconfig", device, "ether", mac], timeout=timeout)
            except SpoofyError as e:
                error = e

            try:
                run(["networksetup", "-detectnewhardware"], timeout=timeout)
            except SpoofyError as e:
                logger.debug("networksetup -detectnewhardware failed: %s", e)
        else:
            try:
                run(["ifconfig", device, "down"], timeout=timeout)
                run(["ifconfig", device, "ether", mac], timeout=timeout)
            except SpoofyError as e:
                error = e

            try:
                run(["ifconfig", device, "up"], timeout=timeout)
            except SpoofyError as e:
                error = error or e

        if error is not None:
            error.suggestions.extend(
                [
                    "On macOS, you may need to disconnect from WiFi networks first",
                    "Some network adapters may not support MAC address changes (hardware limitation)",
                ]
            )
            raise error

    # ---------- Backend contract ----------

    def read_identifier(self, target: MutationTarget, *, timeout: float) -> bytes | None:
        if target.kind is IdentifierKind.MAC:
            return self._read_mac(self._device(target), timeout)
        if not self.duid_path.exists():
            return None
        return self.duid_path.read_bytes() or None

    def write_identifier(self, target: MutationTarget, value: bytes, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            self._write_mac(self._device(target), value, timeout)
        else:
            write_atomic(self.duid_path, value)

    def delete_identifier(self, target: MutationTarget, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            raise BackendError("MAC addresses cannot be deleted, reset them to the hardware address instead")
        self.duid_path.unlink(missing_ok=True)

    def hardware_address(self, interface: str, *, timeout: float) -> bytes | None:
        need("networksetup")
        output = run(["networksetup", "-getmacaddress", interface], timeout=timeout).stdout
        found = _ADDRESS_RE.search(output)
        return mac_to_bytes(found.group(1)) if found else None

    def list_interfaces(self, *, timeout: float) -> list[InterfaceInfo]:
        interfaces = []
        for port, device, address in self._hardware_ports(timeout):
            try:
                current = self._read_mac(device, timeout) if address else None
            except IdentifierNotFoundError:
                current = None
            interfaces.append(
                InterfaceInfo(
                    device=device,
                    port=port,
                    address=normalize_mac(address) if address else None,
                    current_address=bytes_to_mac(current) if current else None,
                )
            )
        return interfaces

    def original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path:
        if self.state_dir is not None:
            return self.state_dir / original_filename(kind, interface)
        if kind is IdentifierKind.DUID:
            return self.duid_path.with_name(f"{self.duid_path.name}.original")
        return DEFAULT_STATE_DIR / original_filename(kind, interface)

    def require_privileges(self) -> None:
        require_root()

    def after_write(self, target: MutationTarget, *, timeout: float) -> None:
        return None

    def _device(self, target: MutationTarget) -> str:
        if not target.interface:
            raise BackendError("An interface name is required to change a MAC address")
        return target.interface
