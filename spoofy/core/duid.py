"""DHCPv6 Unique Identifier (DUID) codec.

Byte layouts (RFC 8415, section 11), all integers big-endian::

    DUID-LLT   type=1 | hw type (2) | time (4) | link-layer address
    DUID-EN    type=2 | enterprise number (4) | identifier
    DUID-LL    type=3 | hw type (2) | link-layer address
    DUID-UUID  type=4 | uuid (16)

The LLT time is seconds since 2000-01-01T00:00:00Z, modulo 2**32.
"""

import random
import re
import struct
import uuid
from datetime import UTC, datetime, timedelta
from enum import IntEnum
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from .errors import ParseError, ValidationError
from .mac import bytes_to_mac, ensure_valid_mac, mac_to_bytes, randomize_mac
from .model import DisplayModel


DUID_EPOCH = datetime(2000, 1, 1, tzinfo=UTC)

HW_TYPE_ETHERNET = 1
ETHERNET_ADDR_LEN = 6

DEFAULT_ENTERPRISE_NUMBER = 43793
"""Enterprise number systemd uses for its own DUID-EN values."""

MAX_DUID_LEN = 130
"""Type code plus at most 128 octets of payload."""

_HEADER = struct.Struct("!H")
_LLT_FIELDS = struct.Struct("!HI")
_LL_FIELDS = struct.Struct("!H")
_EN_FIELDS = struct.Struct("!I")

_DUID_HEX_RE = re.compile(r"^[0-9a-f]{2}(?::[0-9a-f]{2})+$", re.IGNORECASE)


class DuidType(IntEnum):
    LLT = 1
    EN = 2
    LL = 3
    UUID = 4

    @property
    def label(self) -> str:
        return f"DUID-{self.name}"

    @property
    def embeds_link_layer(self) -> bool:
        return self in (DuidType.LLT, DuidType.LL)

    @classmethod
    def from_name(cls, value: "str | int | DuidType") -> "DuidType":
        """Accept ``LLT``, ``duid-llt``, ``1`` or an existing member."""

        if isinstance(value, DuidType):
            return value
        text = str(value).strip().upper().removeprefix("DUID-")
        if text.isdigit():
            try:
                return cls(int(text))
            except ValueError:
                pass
        elif text in cls.__members__:
            return cls[text]
        raise ValidationError(
            f"Unknown DUID type: {value}",
            ["Valid types: LLT (1), EN (2), LL (3), UUID (4)"],
        )


class Duid(BaseModel):
    """Validated DUID bytes."""

    model_config = ConfigDict(frozen=True)

    raw: bytes

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        parse_duid(data)
        return cls(raw=bytes(data))

    @property
    def type(self) -> DuidType:
        return DuidType(_HEADER.unpack_from(self.raw)[0])

    def info(self) -> "DuidInfo":
        return parse_duid(self.raw)

    def __bytes__(self) -> bytes:
        return self.raw

    def __str__(self) -> str:
        return format_duid(self)


class DuidInfo(DisplayModel):
    """Decoded view of a DUID."""

    raw: str = Field(title="Raw")
    """Colon separated lowercase hex."""

    type: DuidType = Field(title="Type code")
    type_name: str = Field(title="Type")

    hw_type: int | None = Field(default=None, title="Hardware type")
    lladdr: str | None = Field(default=None, title="Link-layer address")

    time: int | None = Field(default=None, title="Time (seconds since 2000)")
    time_date: datetime | None = Field(default=None, title="Timestamp")

    enterprise_number: int | None = Field(default=None, title="Enterprise number")
    identifier: str | None = Field(default=None, title="Identifier")

    uuid: str | None = Field(default=None, title="UUID")


def _hex(data: bytes, *, uppercase: bool = False) -> str:
    text = data.hex(":")
    return text.upper() if uppercase else text


def _format_lladdr(hw_type: int, lladdr: bytes) -> str:
    if hw_type == HW_TYPE_ETHERNET:
        return bytes_to_mac(lladdr)
    return _hex(lladdr, uppercase=True)


def _check_lladdr(hw_type: int, lladdr: bytes, label: str) -> None:
    if hw_type == HW_TYPE_ETHERNET and len(lladdr) != ETHERNET_ADDR_LEN:
        raise ParseError(
            f"{label} with Ethernet hardware type needs a {ETHERNET_ADDR_LEN}-byte link-layer address, "
            f"got {len(lladdr)} byte(s)"
        )
    if not lladdr:
        raise ParseError(f"{label} is missing its link-layer address")


def parse_duid(data: bytes) -> DuidInfo:
    """Decode DUID bytes, rejecting anything whose length does not match its type."""

    data = bytes(data)
    if len(data) < _HEADER.size:
        raise ParseError(f"DUID too short: {len(data)} byte(s)")
    if len(data) > MAX_DUID_LEN:
        raise ParseError(f"DUID too long: {len(data)} bytes (maximum {MAX_DUID_LEN})")

    (code,) = _HEADER.unpack_from(data)
    try:
        duid_type = DuidType(code)
    except ValueError:
        raise ParseError(f"Unknown DUID type code: {code}") from None

    body = data[_HEADER.size :]
    info = {"raw": _hex(data), "type": duid_type, "type_name": duid_type.label}

    match duid_type:
        case DuidType.LLT:
            if len(body) < _LLT_FIELDS.size:
                raise ParseError(f"Truncated DUID-LLT: {len(data)} byte(s)")
            hw_type, seconds = _LLT_FIELDS.unpack_from(body)
            lladdr = body[_LLT_FIELDS.size :]
            _check_lladdr(hw_type, lladdr, "DUID-LLT")
            info |= {
                "hw_type": hw_type,
                "lladdr": _format_lladdr(hw_type, lladdr),
                "time": seconds,
                "time_date": DUID_EPOCH + timedelta(seconds=seconds),
            }
        case DuidType.LL:
            if len(body) < _LL_FIELDS.size:
                raise ParseError(f"Truncated DUID-LL: {len(data)} byte(s)")
            (hw_type,) = _LL_FIELDS.unpack_from(body)
            lladdr = body[_LL_FIELDS.size :]
            _check_lladdr(hw_type, lladdr, "DUID-LL")
            info |= {"hw_type": hw_type, "lladdr": _format_lladdr(hw_type, lladdr)}
        case DuidType.EN:
            if len(body) <= _EN_FIELDS.size:
                raise ParseError(f"Truncated DUID-EN: {len(data)} byte(s)")
            (enterprise_number,) = _EN_FIELDS.unpack_from(body)
            info |= {
                "enterprise_number": enterprise_number,
                "identifier": _hex(body[_EN_FIELDS.size :]),
            }
        case DuidType.UUID:
            if len(body) != 16:
                raise ParseError(f"DUID-UUID needs exactly 16 bytes after the type code, got {len(body)}")
            info["uuid"] = str(uuid.UUID(bytes=body))

    return DuidInfo(**info)


def build_llt(lladdr: bytes, seconds: int, hw_type: int = HW_TYPE_ETHERNET) -> Duid:
    return Duid.from_bytes(_HEADER.pack(DuidType.LLT) + _LLT_FIELDS.pack(hw_type, seconds % 2**32) + lladdr)


def build_ll(lladdr: bytes, hw_type: int = HW_TYPE_ETHERNET) -> Duid:
    return Duid.from_bytes(_HEADER.pack(DuidType.LL) + _LL_FIELDS.pack(hw_type) + lladdr)


def build_en(enterprise_number: int, identifier: bytes) -> Duid:
    return Duid.from_bytes(_HEADER.pack(DuidType.EN) + _EN_FIELDS.pack(enterprise_number) + identifier)


def build_uuid(value: uuid.UUID) -> Duid:
    return Duid.from_bytes(_HEADER.pack(DuidType.UUID) + value.bytes)


def duid_seconds(now: datetime | None = None) -> int:
    """Whole seconds elapsed since the DUID epoch."""

    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return int((now - DUID_EPOCH).total_seconds()) % 2**32


def generate_duid(
    variant: "DuidType | str | int",
    mac: str | None = None,
    *,
    now: datetime | None = None,
    enterprise_number: int = DEFAULT_ENTERPRISE_NUMBER,
    identifier_length: int = 8,
    rng: random.Random | None = None,
) -> Duid:
    """Generate a DUID of the given type.

    LLT and LL embed ``mac`` (or a fresh random address). EN uses a random
    identifier of ``identifier_length`` bytes. UUID is a random RFC 4122
    version 4 UUID.
    """

    duid_type = DuidType.from_name(variant)

    match duid_type:
        case DuidType.LLT | DuidType.LL:
            address = ensure_valid_mac(mac) if mac else randomize_mac(rng=rng)
            if duid_type is DuidType.LLT:
                return build_llt(mac_to_bytes(address), duid_seconds(now))
            return build_ll(mac_to_bytes(address))
        case DuidType.EN:
            rng = rng or random.SystemRandom()
            return build_en(enterprise_number, rng.randbytes(identifier_length))
        case DuidType.UUID:
            return build_uuid(uuid.uuid4())


def format_duid(duid: Duid | bytes, *, uppercase: bool = False) -> str:
    """Render a DUID as colon separated hex, the form ``hex_to_duid`` accepts."""

    return _hex(bytes(duid), uppercase=uppercase)


def hex_to_duid(text: str) -> Duid:
    """Parse colon separated hex byte pairs (``00:03:00:01:...``) into a DUID."""

    value = text.strip() if isinstance(text, str) else ""
    if not _DUID_HEX_RE.match(value):
        raise ParseError(
            f'"{text}" is not a valid DUID. Expected colon separated hex bytes',
            ["Example: 00:03:00:01:aa:bb:cc:dd:ee:ff"],
        )
    return Duid.from_bytes(bytes.fromhex(value.replace(":", "")))
