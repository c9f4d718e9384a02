"""MAC address parsing, validation and generation utilities."""

import random
import re
from typing import NamedTuple

from .errors import ValidationError


MAC_VENDOR_PREFIXES: tuple[tuple[int, int, int], ...] = (
    (0x00, 0x05, 0x69),  # VMware
    (0x00, 0x50, 0x56),  # VMware
    (0x00, 0x0C, 0x29),  # VMware
    (0x00, 0x16, 0x3E),  # Xen
    (0x00, 0x03, 0xFF),  # Microsoft Hyper-V, Virtual Server, Virtual PC
    (0x00, 0x1C, 0x42),  # Parallels
    (0x00, 0x0F, 0x4B),  # Virtual Iron 4
    (0x08, 0x00, 0x27),  # Sun VirtualBox
)
"""OUI prefixes of virtualization vendors, unlikely to collide with real hardware."""

WINDOWS_FIRST_OCTETS: tuple[int, ...] = (0xD2, 0xD6, 0xDA, 0xDE)
"""First octets accepted by Windows adapters for a spoofed address."""

ZERO_MAC = "00:00:00:00:00:00"
BROADCAST_MAC = "FF:FF:FF:FF:FF:FF"

_SEPARATED_RE = re.compile(r"^[0-9A-F]{1,2}(?:[:-][0-9A-F]{1,2}){5}$", re.IGNORECASE)
_BARE_RE = re.compile(r"^[0-9A-F]{12}$", re.IGNORECASE)
_CISCO_RE = re.compile(r"^([0-9A-F]{1,4})\.([0-9A-F]{1,4})\.([0-9A-F]{1,4})$", re.IGNORECASE)

_FORMAT_SUGGESTIONS = (
    "Use colons (:) or dashes (-) as separators",
    "Each byte must be a valid hexadecimal value (00-FF)",
    "Example: 00:11:22:33:44:55",
)


class MacValidation(NamedTuple):
    valid: bool
    normalized: str | None
    error: str | None


def _chunk(value: str, size: int) -> list[str]:
    return [value[i : i + size] for i in range(0, len(value), size)]


def normalize_mac(value: str) -> str:
    """Return the canonical ``AA:BB:CC:DD:EE:FF`` form of a MAC address.

    Accepts colon or dash separated bytes (``0:1c:42:0:0:1`` is zero-filled),
    bare hex (``001122334455``) and Cisco notation (``0123.4567.89ab``).
    """

    if not isinstance(value, str) or not value.strip():
        raise ValidationError("MAC address must be a non-empty string", _FORMAT_SUGGESTIONS)

    mac = value.strip()

    if match := _CISCO_RE.match(mac):
        digits = "".join(group.zfill(4) for group in match.groups())
        return ":".join(_chunk(digits, 2)).upper()

    if _SEPARATED_RE.match(mac):
        groups = re.split(r"[:-]", mac)
        return ":".join(group.zfill(2) for group in groups).upper()

    if _BARE_RE.match(mac):
        return ":".join(_chunk(mac, 2)).upper()

    raise ValidationError(
        f'"{value}" is not a valid MAC address. Expected format: XX:XX:XX:XX:XX:XX or XX-XX-XX-XX-XX-XX',
        _FORMAT_SUGGESTIONS,
    )


def validate_mac(value: str) -> MacValidation:
    """Normalize ``value`` and reject the all-zero and broadcast addresses."""

    try:
        normalized = normalize_mac(value)
    except ValidationError as e:
        return MacValidation(valid=False, normalized=None, error=e.message)

    if normalized in (ZERO_MAC, BROADCAST_MAC):
        return MacValidation(valid=False, normalized=normalized, error="Cannot be all zeros or broadcast address")

    return MacValidation(valid=True, normalized=normalized, error=None)


def ensure_valid_mac(value: str) -> str:
    """Return the canonical form of a usable MAC address or raise ``ValidationError``."""

    normalized = normalize_mac(value)
    if normalized in (ZERO_MAC, BROADCAST_MAC):
        raise ValidationError(
            f'"{normalized}" is not a valid MAC address (cannot be all zeros or broadcast address)',
            ["Generate a random MAC address using: spoofy randomize"],
        )
    return normalized


def mac_to_bytes(value: str) -> bytes:
    return bytes.fromhex(normalize_mac(value).replace(":", ""))


def bytes_to_mac(value: bytes) -> str:
    if len(value) != 6:
        raise ValidationError(f"MAC address must be 6 bytes, got {len(value)}")
    return ":".join(f"{b:02x}" for b in value).upper()


def is_locally_administered(value: str) -> bool:
    return bool(mac_to_bytes(value)[0] & 0x02)


def randomize_mac(
    local_admin: bool = False,
    *,
    first_octets: tuple[int, ...] | None = None,
    rng: random.Random | None = None,
) -> str:
    """Generate a random unicast MAC address behind a virtualization vendor prefix.

    ``first_octets`` replaces the vendor's first byte (Windows adapters only
    accept a few values there). ``local_admin`` sets the locally administered
    bit after the prefix is chosen.
    """

    rng = rng or random.Random()
    vendor = rng.choice(MAC_VENDOR_PREFIXES)

    mac_bytes = bytearray(vendor)
    if first_octets:
        mac_bytes[0] = rng.choice(first_octets)

    mac_bytes.append(rng.randint(0x00, 0x7F))
    mac_bytes.append(rng.randint(0x00, 0xFF))
    mac_bytes.append(rng.randint(0x00, 0xFF))

    if local_admin:
        mac_bytes[0] |= 0x02  # Set locally administered bit

    return bytes_to_mac(bytes(mac_bytes))
