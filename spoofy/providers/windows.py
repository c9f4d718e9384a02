"""Windows backend: PowerShell NetAdapter cmdlets and the Tcpip6 registry key."""

import os
from pathlib import Path

import orjson

from ..core.errors import BackendError, IdentifierNotFoundError, PermissionDeniedError, SpoofyError
from ..core.mac import WINDOWS_FIRST_OCTETS, bytes_to_mac, mac_to_bytes, normalize_mac
from ..models.identity import IdentifierKind, InterfaceInfo, MutationTarget
from .base import need, original_filename, run


TCPIP6_PARAMETERS = r"HKLM:\SYSTEM\CurrentControlSet\Services\Tcpip6\Parameters"
DUID_VALUE_NAME = "Dhcpv6DUID"

_POWERSHELL_SUGGESTIONS = ["Ensure PowerShell is installed and available in PATH"]


def quote_ps(value: str) -> str:
    """Quote a value as a single-quoted PowerShell string literal."""

    return "'" + value.replace("'", "''") + "'"


class WindowsBackend:
    """Windows backend.

    Adapters only reliably accept spoofed addresses whose first octet is one of
    ``D2``, ``D6``, ``DA`` or ``DE``.
    """

    name = "windows"
    mac_first_octets: tuple[int, ...] | None = WINDOWS_FIRST_OCTETS

    def __init__(self, state_dir: str | Path | None = None) -> None:
        program_data = os.environ.get("PROGRAMDATA", r"C:\ProgramData")
        self.state_dir = Path(state_dir) if state_dir else Path(program_data) / "spoofy"

    def _ps(self, script: str, timeout: float, check: bool = True) -> str:
        need("powershell", _POWERSHELL_SUGGESTIONS)
        return run(
            ["powershell", "-NoProfile", "-NonInteractive", "-Command", f"$ErrorActionPreference = 'Stop'; {script}"],
            timeout=timeout,
            check=check,
        ).stdout.strip()

    def _adapter_property(self, device: str, prop: str, timeout: float) -> str:
        need("powershell", _POWERSHELL_SUGGESTIONS)
        result = run(
            [
                "powershell",
                "-NoProfile",
                "-NonInteractive",
                "-Command",
                f"(Get-NetAdapter -Name {quote_ps(device)} -ErrorAction Stop).{prop}",
            ],
            timeout=timeout,
            check=False,
        )
        if result.returncode != 0:
            raise IdentifierNotFoundError(
                f'Could not find adapter "{device}"',
                [
                    "List available adapters using: spoofy list",
                    "Ensure the adapter name is correct (case-sensitive)",
                    "Check if the adapter is enabled",
                ],
            )
        return result.stdout.strip()

    def _write_mac(self, device: str, value: bytes, timeout: float) -> None:
        bare = bytes_to_mac(value).replace(":", "")
        try:
            self._ps(
                f"Set-NetAdapter -Name {quote_ps(device)} -MacAddress {quote_ps(bare)} -Confirm:$false",
                timeout,
            )
            return
        except PermissionDeniedError:
            raise
        except SpoofyError:
            pass

        # Drivers without Set-NetAdapter support still honour the NetworkAddress keyword
        try:
            self._ps(
                f"Set-NetAdapterAdvancedProperty -Name {quote_ps(device)} -RegistryKeyword 'NetworkAddress' "
                f"-RegistryValue {quote_ps(bare)}; "
                f"Restart-NetAdapter -Name {quote_ps(device)} -Confirm:$false",
                timeout,
            )
        except SpoofyError as e:
            e.suggestions.extend(
                [
                    "Right-click PowerShell/CMD and select 'Run as Administrator'",
                    "Some network adapters may not support MAC address changes (hardware limitation)",
                    "Try disabling and re-enabling the adapter manually",
                ]
            )
            raise

    def _read_duid(self, timeout: float) -> bytes | None:
        output = self._ps(
            f"$v = (Get-ItemProperty -Path {quote_ps(TCPIP6_PARAMETERS)} -Name {DUID_VALUE_NAME} "
            f"-ErrorAction SilentlyContinue).{DUID_VALUE_NAME}; "
            "if ($v) { [BitConverter]::ToString($v) }",
            timeout,
        )
        if not output:
            return None
        return bytes.fromhex(output.replace("-", ""))

    def _write_duid(self, value: bytes, timeout: float) -> None:
        byte_list = ",".join(f"0x{b:02x}" for b in value)
        self._ps(
            f"New-ItemProperty -Path {quote_ps(TCPIP6_PARAMETERS)} -Name {DUID_VALUE_NAME} "
            f"-PropertyType Binary -Value ([byte[]]({byte_list})) -Force | Out-Null",
            timeout,
        )

    # ---------- Backend contract ----------

    def read_identifier(self, target: MutationTarget, *, timeout: float) -> bytes | None:
        if target.kind is IdentifierKind.MAC:
            address = self._adapter_property(self._device(target), "MacAddress", timeout)
            return mac_to_bytes(address) if address else None
        return self._read_duid(timeout)

    def write_identifier(self, target: MutationTarget, value: bytes, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            self._write_mac(self._device(target), value, timeout)
        else:
            self._write_duid(value, timeout)

    def delete_identifier(self, target: MutationTarget, *, timeout: float) -> None:
        if target.kind is IdentifierKind.MAC:
            raise BackendError("MAC addresses cannot be deleted, reset them to the hardware address instead")
        self._ps(
            f"Remove-ItemProperty -Path {quote_ps(TCPIP6_PARAMETERS)} -Name {DUID_VALUE_NAME} "
            "-ErrorAction SilentlyContinue",
            timeout,
        )

    def hardware_address(self, interface: str, *, timeout: float) -> bytes | None:
        address = self._adapter_property(interface, "PermanentAddress", timeout)
        return mac_to_bytes(address) if address else None

    def list_interfaces(self, *, timeout: float) -> list[InterfaceInfo]:
        output = self._ps(
            "Get-NetAdapter | Select-Object Name, InterfaceDescription, MacAddress, PermanentAddress, Status "
            "| ConvertTo-Json -Compress",
            timeout,
        )
        if not output:
            return []

        adapters = orjson.loads(output)
        if isinstance(adapters, dict):
            adapters = [adapters]

        interfaces = []
        for adapter in adapters:
            if not adapter or not adapter.get("Name"):
                continue
            current = normalize_mac(adapter["MacAddress"]) if adapter.get("MacAddress") else None
            permanent = normalize_mac(adapter["PermanentAddress"]) if adapter.get("PermanentAddress") else current
            interfaces.append(
                InterfaceInfo(
                    device=adapter["Name"],
                    port=adapter.get("InterfaceDescription") or adapter["Name"],
                    address=permanent,
                    current_address=current,
                    status=adapter.get("Status"),
                )
            )
        return interfaces

    def original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path:
        return self.state_dir / original_filename(kind, interface)

    def require_privileges(self) -> None:
        output = self._ps(
            "([Security.Principal.WindowsPrincipal][Security.Principal.WindowsIdentity]::GetCurrent())"
            ".IsInRole([Security.Principal.WindowsBuiltInRole]::Administrator)",
            timeout=15,
        )
        if output.lower() != "true":
            raise PermissionDeniedError(
                "Must run as Administrator to change network settings",
                ["Right-click Command Prompt or PowerShell and select 'Run as Administrator'"],
            )

    def after_write(self, target: MutationTarget, *, timeout: float) -> None:
        return None

    def _device(self, target: MutationTarget) -> str:
        if not target.interface:
            raise BackendError("An adapter name is required to change a MAC address")
        return target.interface
