"""MAC address operations."""

import re

from ..core.errors import IdentifierNotFoundError
from ..core.mac import ensure_valid_mac, mac_to_bytes, normalize_mac, randomize_mac
from ..models.identity import IdentifierKind, InterfaceInfo, MutationResult
from .identity import IdentityController


_WIRELESS_RE = re.compile(r"wi-?fi|airport|wireless|\bwl|802\.11", re.IGNORECASE)


class MacController(IdentityController):
    """Controller for MAC address changes."""

    kind = IdentifierKind.MAC

    def interfaces(self, wifi_only: bool = False) -> list[InterfaceInfo]:
        interfaces = self.backend.list_interfaces(timeout=self.timeout)
        if wifi_only:
            interfaces = [i for i in interfaces if _WIRELESS_RE.search(f"{i.port or ''} {i.device}")]
        return interfaces

    def find(self, device: str) -> InterfaceInfo:
        """Look up an interface by device or port name (case-insensitive)."""

        wanted = device.lower()
        for info in self.interfaces():
            if wanted in (info.device.lower(), (info.port or "").lower()):
                return info
        raise IdentifierNotFoundError(
            f'Could not find device "{device}"',
            ["List available devices using: spoofy list"],
        )

    def normalize(self, value: str) -> str:
        return normalize_mac(value)

    def set(self, device: str, mac: str) -> MutationResult:
        """Change ``device`` to ``mac``, capturing its original address first."""

        address = ensure_valid_mac(mac)
        return self._apply(self.target(device), mac_to_bytes(address), "set")

    def randomize(self, device: str, local_admin: bool | None = None) -> MutationResult:
        if local_admin is None:
            local_admin = self.settings.local_admin

        address = randomize_mac(local_admin, first_octets=self.backend.mac_first_octets)
        return self._apply(self.target(device), mac_to_bytes(address), "randomize")

    def reset(self, device: str) -> MutationResult:
        """Write the permanent hardware address back. Leaves the stored original alone."""

        hardware = self.backend.hardware_address(device, timeout=self.timeout)
        if hardware is None:
            raise IdentifierNotFoundError(
                f'Could not determine the hardware address of "{device}"',
                [
                    "Use 'spoofy restore' to go back to the address captured before the first change",
                    "Or set the address explicitly with 'spoofy set'",
                ],
            )
        return self._apply(self.target(device), hardware, "reset", capture=False)
