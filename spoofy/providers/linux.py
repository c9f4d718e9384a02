"""Linux backend: iproute2 for MAC addresses, a systemd-networkd drop-in for the DUID."""

import configparser
import logging
import re
import time
from pathlib import Path

from ..core.duid import Duid, format_duid
from ..core.errors import BackendError, IdentifierNotFoundError, ParseError, SpoofyError
from ..core.mac import ZERO_MAC, bytes_to_mac, mac_to_bytes, normalize_mac
from ..models.config import ReconnectMode
from ..models.identity import IdentifierKind, InterfaceInfo, MutationTarget
from . import networkmanager
from .base import need, original_filename, require_root, run, write_atomic


logger = logging.getLogger(__name__)

_LINK_RE = re.compile(
    r"^\d+:\s+(?P<device>[^:@\s]+)(?:@\S+)?:\s+<(?P<flags>[^>]*)>.*?link/ether\s+(?P<mac>[0-9a-f:]{17})"
    r"(?:.*?permaddr\s+(?P<perm>[0-9a-f:]{17}))?",
    re.IGNORECASE,
)
_ETHTOOL_RE = re.compile(r"Permanent address:\s*([0-9a-f:]{17})", re.IGNORECASE)

_IPROUTE_SUGGESTIONS = [
    "Install iproute2: sudo apt-get install iproute2 (Debian/Ubuntu) or sudo yum install iproute (RHEL/CentOS)"
]

DEFAULT_STATE_DIR = Path("/var/lib/spoofy")
NETWORKD_DROPIN = Path("/etc/systemd/networkd.conf.d/spoofy-duid.conf")


class LinuxBackend:
    """Linux backend.

    The DUID is applied through systemd-networkd's ``DUIDType=``/``DUIDRawData=``
    settings; the DHCPv6 client picks it up when systemd-networkd restarts.
    """

    name = "linux"
    mac_first_octets: tuple[int, ...] | None = None

    def __init__(
        self,
        state_dir: str | Path | None = None,
        dropin_path: str | Path | None = None,
        reconnect: ReconnectMode = "off",
    ) -> None:
        self.state_dir = Path(state_dir) if state_dir else DEFAULT_STATE_DIR
        self.dropin_path = Path(dropin_path) if dropin_path else NETWORKD_DROPIN
        self.reconnect = reconnect

    # ---------- MAC helpers ----------

    def _link_line(self, device: str, timeout: float) -> str:
        need("ip", _IPROUTE_SUGGESTIONS)
        result = run(["ip", "-o", "link", "show", "dev", device], timeout=timeout, check=False)
        if result.returncode != 0:
            raise IdentifierNotFoundError(
                f'Could not find device "{device}"',
                ["List available devices using: spoofy list"],
            )
        return result.stdout.strip()

    def _read_mac(self, device: str, timeout: float) -> bytes | None:
        match = _LINK_RE.match(self._link_line(device, timeout))
        return mac_to_bytes(match.group("mac")) if match else None

    def _write_mac(self, device: str, value: bytes, timeout: float) -> None:
        need("ip", _IPROUTE_SUGGESTIONS)
        mac = bytes_to_mac(value)
        error: SpoofyError | None = None

        try:
            run(["ip", "link", "set", "dev", device, "down"], timeout=timeout)
        except SpoofyError as e:
            error = e

        if error is None:
            try:
                run(["ip", "link", "set", "dev", device, "address", mac], timeout=timeout)
            except SpoofyError as e:
                error = e

        try:
            run(["ip", "link", "set", "dev", device, "up"], timeout=timeout)
        except SpoofyError as e:
            error = error or e

        if error is not None:
            error.suggestions.extend(
                [
                    "Check if the interface is currently in use",
                    "Some network adapters may not support MAC address changes",
                ]
            )
            raise error

    # ---------- DUID helpers ----------

    def _read_duid(self) -> bytes | None:
        if not self.dropin_path.exists():
            return None

        parser = configparser.ConfigParser(strict=False, interpolation=None)
        parser.optionxform = str  # type: ignore[assignment,method-assign]
        try:
            parser.read(self.dropin_path, encoding="utf-8")
        except (configparser.Error, UnicodeDecodeError) as e:
            raise ParseError(
                f"Unrecognized DUID configuration in {self.dropin_path}",
                [f"Remove {self.dropin_path} or reset the DUID with: spoofy duid reset"],
            ) from e

        if not parser.has_section("DHCPv6"):
            return None
        section = parser["DHCPv6"]
        duid_type = section.get("DUIDType", "").strip()
        raw_data = section.get("DUIDRawData", "").strip()
        if not duid_type.isdigit() or not raw_data:
            raise ParseError(f"Unrecognized DUID configuration in {self.dropin_path}")

        try:
            body = bytes.fromhex(raw_data.replace(":", ""))
        except ValueError as e:
            raise ParseError(f"Invalid DUIDRawData in {self.dropin_path}: {raw_data}") from e
        return bytes(Duid.from_bytes(int(duid_type).to_bytes(2, "big") + body))

    def _write_duid(self, value: bytes) -> None:
        content = (
            "# Managed by spoofy\n"
            "[DHCPv6]\n"
            f"DUIDType={int.from_bytes(value[:2], 'big')}\n"
            f"DUIDRawData={format_duid(value[2:])}\n"
        )
        write_atomic(self.dropin_path, content.encode("utf-8"))

    # ---------- Backend contract ----------

    def read_identifier(self, target: MutationTarget, *, timeout: float) -> bytes | None:
        if target.kind is IdentifierKind.MAC:
            return self._read_mac(self._device(target), timeout)
        return self._read_duid()

    def write_identifier(self, target: MutationTarget, value: bytes, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            self._write_mac(self._device(target), value, timeout)
        else:
            self._write_duid(value)

    def delete_identifier(self, target: MutationTarget, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            raise BackendError("MAC addresses cannot be deleted, reset them to the hardware address instead")
        self.dropin_path.unlink(missing_ok=True)

    def hardware_address(self, interface: str, *, timeout: float) -> bytes | None:
        match = _LINK_RE.match(self._link_line(interface, timeout))
        if match and match.group("perm"):
            return mac_to_bytes(match.group("perm"))

        try:
            output = run(["ethtool", "-P", interface], timeout=timeout).stdout
        except SpoofyError as e:
            logger.debug("ethtool -P %s failed: %s", interface, e)
            output = ""

        if found := _ETHTOOL_RE.search(output):
            address = found.group(1).upper()
            return mac_to_bytes(address) if address != ZERO_MAC else None

        # ip only reports permaddr once the address was changed
        return mac_to_bytes(match.group("mac")) if match else None

    def list_interfaces(self, *, timeout: float) -> list[InterfaceInfo]:
        need("ip", _IPROUTE_SUGGESTIONS)
        output = run(["ip", "-o", "link", "show"], timeout=timeout).stdout

        interfaces = []
        for line in output.splitlines():
            match = _LINK_RE.match(line)
            if not match:
                continue
            current = normalize_mac(match.group("mac"))
            permanent = normalize_mac(match.group("perm")) if match.group("perm") else current
            interfaces.append(
                InterfaceInfo(
                    device=match.group("device"),
                    port=match.group("device"),
                    address=permanent,
                    current_address=current,
                    status="up" if "UP" in match.group("flags").split(",") else "down",
                )
            )
        return interfaces

    def original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path:
        return self.state_dir / original_filename(kind, interface)

    def require_privileges(self) -> None:
        require_root()

    def after_write(self, target: MutationTarget, *, timeout: float) -> None:
        if target.kind is not IdentifierKind.MAC or self.reconnect == "off":
            return

        device = self._device(target)
        if self.reconnect == "networking":
            networkmanager.toggle_networking(False, timeout)
            time.sleep(1)
            networkmanager.toggle_networking(True, timeout)
        elif networkmanager.device_status(device, timeout).managed:
            networkmanager.reconnect_device(device, timeout)

    def _device(self, target: MutationTarget) -> str:
        if not target.interface:
            raise BackendError("An interface name is required to change a MAC address")
        return target.interface
