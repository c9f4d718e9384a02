"""DHCPv6 DUID operations."""

from pathlib import Path

from pydantic import Field

from ..core.duid import Duid, DuidType, generate_duid, hex_to_duid
from ..core.engine import render_identifier
from ..core.errors import BackendError, ValidationError
from ..core.mac import bytes_to_mac
from ..core.model import DisplayModel
from ..models.identity import IdentifierKind, MutationResult
from .identity import IdentityController


class DuidStatus(DisplayModel):
    """Current DUID together with the stored original."""

    current: str | None = Field(default=None, title="Current DUID")
    original: str | None = Field(default=None, title="Original DUID")
    original_path: Path = Field(title="Original stored at")
    spoofed: bool = Field(default=False, title="Spoofed")


class DuidController(IdentityController):
    """Controller for the system DUID.

    ``interface`` arguments only label the change; operating systems keep a
    single DUID per host.
    """

    kind = IdentifierKind.DUID

    def _variant(self, variant: DuidType | str | int | None) -> DuidType:
        return DuidType.from_name(variant if variant is not None else self.settings.default_duid_type)

    def show(self, interface: str | None = None) -> Duid | None:
        raw = self.current(interface)
        return Duid.from_bytes(raw) if raw is not None else None

    def status(self, interface: str | None = None) -> DuidStatus:
        current = self.current(interface)
        original = self.original(interface)
        return DuidStatus(
            current=render_identifier(self.kind, current),
            original=render_identifier(self.kind, original),
            original_path=self.original_path(interface),
            spoofed=current is not None and original is not None and current != original,
        )

    def generate(self, variant: DuidType | str | int | None = None, mac: str | None = None) -> Duid:
        """Build a DUID without applying it."""

        settings = self.settings
        return generate_duid(
            self._variant(variant),
            mac,
            enterprise_number=settings.enterprise_number,
            identifier_length=settings.en_identifier_length,
        )

    def set(self, duid: Duid | str | bytes, interface: str | None = None) -> MutationResult:
        match duid:
            case Duid():
                value = duid
            case str():
                value = hex_to_duid(duid)
            case _:
                value = Duid.from_bytes(duid)
        return self._apply(self.target(interface), bytes(value), "set")

    def randomize(self, variant: DuidType | str | int | None = None, interface: str | None = None) -> Duid:
        duid = self.generate(variant)
        self._apply(self.target(interface), bytes(duid), "randomize")
        return duid

    def sync(self, interface: str, variant: DuidType | str | int | None = None) -> Duid:
        """Regenerate the DUID from the current (possibly spoofed) MAC of ``interface``."""

        duid_type = self._variant(variant)
        if not duid_type.embeds_link_layer:
            raise ValidationError(
                f"{duid_type.label} does not contain a link-layer address and cannot follow a MAC address",
                ["Use --type LL or --type LLT"],
            )

        mac_target = self.app.mac.target(interface)
        mac = self.app.engine.read(mac_target)
        if mac is None:
            raise BackendError(
                f'Could not read the MAC address of "{interface}"',
                ["List available devices using: spoofy list"],
            )

        duid = self.generate(duid_type, bytes_to_mac(mac))
        self._apply(self.target(interface), bytes(duid), "sync")
        return duid

    def reset(self, interface: str | None = None) -> None:
        """Delete the DUID so the DHCPv6 client generates a fresh one."""

        target = self.target(interface)
        old = self._read_current(target)
        self.backend.delete_identifier(target, timeout=self.timeout)
        self.app.history.add(self.kind, interface or "system", render_identifier(self.kind, old), None, "reset")
