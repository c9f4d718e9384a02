"""Apply-verify-retry protocol for identifier mutations.

A mutation moves through ``WRITING -> VERIFYING -> {SUCCESS, RETRYING, FAILED}``.
The read-back decides the outcome: some backends report an error although the
change took effect, others take a moment before the new value is visible.
"""

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..models.identity import IdentifierKind, MutationResult, MutationState, MutationTarget
from .duid import format_duid
from .errors import BackendError, BackendTimeoutError, IdentifierNotFoundError, SpoofyError, VerificationError
from .mac import bytes_to_mac


if TYPE_CHECKING:
    from ..providers.base import Backend


logger = logging.getLogger(__name__)

Comparator = Callable[[bytes, bytes | None], bool]


def _same_mac(desired: bytes, actual: bytes | None) -> bool:
    return actual is not None and len(actual) == 6 and bytes_to_mac(actual) == bytes_to_mac(desired)


def _same_bytes(desired: bytes, actual: bytes | None) -> bool:
    return actual is not None and bytes(actual) == bytes(desired)


COMPARATORS: dict[IdentifierKind, Comparator] = {
    IdentifierKind.MAC: _same_mac,
    IdentifierKind.DUID: _same_bytes,
}


def render_identifier(kind: IdentifierKind, value: bytes | None) -> str | None:
    """Textual interchange form of an identifier."""

    if value is None:
        return None
    if kind is IdentifierKind.MAC and len(value) == 6:
        return bytes_to_mac(value)
    return format_duid(value)


def _suggestions_for(target: MutationTarget) -> list[str]:
    if target.kind is IdentifierKind.MAC:
        return [
            "Ensure you have root/administrator privileges",
            "Check if the interface is currently in use",
            "Some network adapters may not support MAC address changes (hardware limitation)",
        ]
    return [
        "Ensure you have root/administrator privileges",
        "Restart the DHCPv6 client so it picks up the new DUID",
    ]


class MutationEngine:
    """Write an identifier through a backend and confirm it by reading it back."""

    def __init__(
        self,
        backend: "Backend",
        *,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.backend = backend
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.timeout = timeout
        self._sleep = sleep

    def matches(self, target: MutationTarget, desired: bytes, actual: bytes | None) -> bool:
        return COMPARATORS[target.kind](desired, actual)

    def _transition(self, target: MutationTarget, state: MutationState, detail: str = "") -> None:
        logger.debug("%s: %s%s", target, state.value, f" ({detail})" if detail else "")

    def read(self, target: MutationTarget) -> bytes | None:
        """Read the live value of ``target`` within the engine's timeout."""

        try:
            return self.backend.read_identifier(target, timeout=self.timeout)
        except TimeoutError as e:
            raise BackendTimeoutError(
                f"Reading {target} timed out after {self.timeout:g}s",
                ["Check if the interface is busy", "Try again"],
            ) from e

    def _read(self, target: MutationTarget) -> bytes | None:
        try:
            return self.read(target)
        except IdentifierNotFoundError:
            return None

    def _write(self, target: MutationTarget, desired: bytes) -> SpoofyError | None:
        try:
            self.backend.write_identifier(target, desired, timeout=self.timeout)
        except BackendTimeoutError:
            raise
        except TimeoutError as e:
            raise BackendTimeoutError(
                f"Writing {target} timed out after {self.timeout:g}s",
                ["Check if the interface is busy", "Try again"],
            ) from e
        except SpoofyError as e:
            return e
        except OSError as e:
            error = BackendError(f"Unable to change {target}: {e}", _suggestions_for(target))
            error.__cause__ = e
            return error
        return None

    def apply(self, target: MutationTarget, desired: bytes, *, verify: bool = True) -> MutationResult:
        """Run one mutation to a terminal state. ``FAILED`` is raised as a ``SpoofyError``."""

        desired = bytes(desired)

        self._transition(target, MutationState.WRITING, render_identifier(target.kind, desired) or "")
        write_error = self._write(target, desired)

        if not verify:
            if write_error is not None:
                self._transition(target, MutationState.FAILED, write_error.message)
                raise write_error
            self._transition(target, MutationState.SUCCESS, "unverified")
            return self._succeed(target, desired, reads=0, write_error=None)

        self._transition(target, MutationState.VERIFYING)
        actual = self._read(target)
        reads = 1

        if self.matches(target, desired, actual):
            if write_error is not None:
                logger.debug("%s: change took effect despite write error: %s", target, write_error.message)
            return self._succeed(target, desired, reads=reads, write_error=write_error)

        if write_error is not None:
            self._transition(target, MutationState.FAILED, write_error.message)
            raise write_error

        for attempt in range(self.max_attempts):
            delay = self.base_delay * 2**attempt
            self._transition(target, MutationState.RETRYING, f"attempt {attempt + 1}, waiting {delay:g}s")
            self._sleep(delay)
            actual = self._read(target)
            reads += 1
            if self.matches(target, desired, actual):
                return self._succeed(target, desired, reads=reads, write_error=None)

        self._transition(target, MutationState.FAILED, "verification mismatch")
        raise VerificationError(
            render_identifier(target.kind, desired) or "",
            render_identifier(target.kind, actual),
            [
                "The change may not have taken effect",
                "Try running the command again",
                "Some adapters require a restart to apply identifier changes",
            ],
        )

    def _succeed(
        self,
        target: MutationTarget,
        desired: bytes,
        *,
        reads: int,
        write_error: SpoofyError | None,
    ) -> MutationResult:
        self._transition(target, MutationState.SUCCESS)

        try:
            self.backend.after_write(target, timeout=self.timeout)
        except (SpoofyError, OSError) as e:
            logger.warning("%s changed, but the follow-up step failed: %s", target, e)

        return MutationResult(
            target=target,
            value=desired,
            state=MutationState.SUCCESS,
            verify_reads=reads,
            write_error=write_error.message if write_error else None,
        )
