"""Backend capability contract and subprocess helpers shared by platform backends."""

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Protocol

from ..core.errors import BackendError, BackendTimeoutError, PermissionDeniedError, PlatformError
from ..models.identity import IdentifierKind, InterfaceInfo, MutationTarget


logger = logging.getLogger(__name__)

_PERMISSION_RE = re.compile(
    r"operation not permitted|permission denied|access is denied|not privileged|requires elevation",
    re.IGNORECASE,
)
_UNSAFE_FILENAME_RE = re.compile(r"[^\w.-]")


class Backend(Protocol):
    """Platform capabilities consumed by the mutation engine and controllers."""

    name: str

    mac_first_octets: tuple[int, ...] | None
    """First octets randomized MAC addresses must use, if the platform restricts them."""

    def read_identifier(self, target: MutationTarget, *, timeout: float) -> bytes | None: ...
    def write_identifier(self, target: MutationTarget, value: bytes, *, timeout: float) -> None: ...
    def delete_identifier(self, target: MutationTarget, *, timeout: float) -> None: ...
    def hardware_address(self, interface: str, *, timeout: float) -> bytes | None: ...
    def list_interfaces(self, *, timeout: float) -> list[InterfaceInfo]: ...
    def original_path(self, kind: IdentifierKind, interface: str | None = None) -> Path: ...
    def require_privileges(self) -> None: ...
    def after_write(self, target: MutationTarget, *, timeout: float) -> None: ...


def original_filename(kind: IdentifierKind, interface: str | None = None) -> str:
    """``duid.original`` for the system DUID, ``mac-<interface>.original`` per interface."""

    if interface is None:
        return f"{kind.value}.original"
    return f"{kind.value}-{_UNSAFE_FILENAME_RE.sub('_', interface)}.original"


def need(bin_name: str, suggestions: list[str] | None = None) -> str:
    p = shutil.which(bin_name)
    if not p:
        raise PlatformError(f"Required binary not found in PATH: {bin_name}", suggestions or [])
    return p


def run(cmd: list[str], *, timeout: float, check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run a command, translating failures into spoofy errors."""

    logger.debug("$ %s", " ".join(cmd))
    try:
        result = subprocess.run(  # noqa: S603
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise PlatformError(f"Required binary not found in PATH: {cmd[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise BackendTimeoutError(
            f"Command timed out after {timeout:g}s: {' '.join(cmd)[:50]}",
            ["Check if the interface is busy", "Try again"],
        ) from e

    if check and result.returncode != 0:
        output = (result.stderr or result.stdout).strip()
        if _PERMISSION_RE.search(output):
            raise PermissionDeniedError(
                f"Insufficient privileges to run {cmd[0]}: {output}",
                ["Run the command as root (sudo) or as Administrator"],
            )
        raise BackendError(f"{cmd[0]} failed with exit code {result.returncode}: {output}")
    return result


def require_root() -> None:
    """Raise unless running as root on POSIX systems."""

    if hasattr(os, "geteuid") and os.geteuid() != 0:
        raise PermissionDeniedError(
            "This command requires root privileges",
            ["Use sudo: sudo spoofy <command>"],
        )


def write_atomic(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Replace ``path`` with ``data`` without leaving a partial file behind."""

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        tmp.write_bytes(data)
        tmp.chmod(mode)
        tmp.replace(path)
    except PermissionError as e:
        raise PermissionDeniedError(
            f"Cannot write {path}: {e.strerror}",
            ["Run the command as root (sudo)"],
        ) from e
