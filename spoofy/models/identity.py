"""Identifier, target and result models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from ..core.model import DisplayModel
from .common import InterfaceName


class IdentifierKind(StrEnum):
    MAC = "mac"
    DUID = "duid"


class MutationTarget(BaseModel):
    """Where an identifier is applied. Carries no mutable state."""

    model_config = ConfigDict(frozen=True)

    interface: InterfaceName | None = None
    """Interface or adapter name. ``None`` addresses the system-wide DUID."""

    kind: IdentifierKind
    """Identifier type."""

    def __str__(self) -> str:
        return f"{self.kind.value}@{self.interface or 'system'}"


class MutationState(StrEnum):
    WRITING = "writing"
    VERIFYING = "verifying"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


class MutationResult(BaseModel):
    """Outcome of a successful mutation. Failures are raised instead."""

    target: MutationTarget
    """Target that was changed."""

    value: bytes
    """Identifier now in effect."""

    state: MutationState = MutationState.SUCCESS
    """Terminal state."""

    verify_reads: int = 0
    """Number of read-backs performed."""

    write_error: str | None = None
    """Error the backend reported although the change took effect."""


class RestoreOutcome(StrEnum):
    RESTORED = "restored"
    ALREADY_ORIGINAL = "already_original"


class InterfaceInfo(DisplayModel):
    """A network interface as reported by a backend."""

    device: str = Field(title="Device")
    """Kernel or adapter name (en0, eth0, Ethernet)."""

    port: str | None = Field(default=None, title="Port")
    """Human readable port name (Wi-Fi, Thunderbolt Ethernet)."""

    address: str | None = Field(default=None, title="Hardware address")
    """Permanent hardware MAC address."""

    current_address: str | None = Field(default=None, title="Current address")
    """MAC address currently in effect."""

    status: str | None = Field(default=None, title="Status")
    """Adapter status, where the platform reports one."""

    @property
    def is_spoofed(self) -> bool:
        return bool(self.address and self.current_address and self.address != self.current_address)


class HistoryEntry(BaseModel):
    """One recorded identifier change."""

    timestamp: datetime
    kind: IdentifierKind
    device: str
    old: str | None = None
    new: str | None = None
    operation: str
    platform: str
