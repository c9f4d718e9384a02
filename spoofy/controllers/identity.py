"""Shared mutation flow for MAC and DUID controllers."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

from ..core.controller import BaseController
from ..core.engine import render_identifier
from ..core.errors import IdentifierNotFoundError, ValidationError
from ..models.identity import IdentifierKind, MutationResult, MutationTarget, RestoreOutcome


if TYPE_CHECKING:
    from ..core.application import Application


logger = logging.getLogger(__name__)


class IdentityController(BaseController["Application"]):
    """Capture, apply, restore and record changes of one identifier kind."""

    kind: ClassVar[IdentifierKind]

    def target(self, interface: str | None = None) -> MutationTarget:
        return MutationTarget(interface=interface, kind=self.kind)

    def _store_key(self, target: MutationTarget) -> str | None:
        return target.interface if self.kind is IdentifierKind.MAC else None

    def current(self, interface: str | None = None) -> bytes | None:
        """Identifier currently in effect, ``None`` if there is none."""

        return self.app.engine.read(self.target(interface))

    def _read_current(self, target: MutationTarget) -> bytes | None:
        try:
            return self.app.engine.read(target)
        except IdentifierNotFoundError:
            if target.kind is IdentifierKind.MAC:
                raise
            return None

    def capture(self, target: MutationTarget, current: bytes | None) -> bool:
        """Persist ``current`` as the original unless one is already stored."""

        store = self.app.store
        key = self._store_key(target)
        if store.has_original(self.kind, key):
            return False
        if current is None:
            logger.warning("%s has no current value, nothing captured as original", target)
            return False
        return store.save_original(self.kind, current, key)

    def _apply(
        self,
        target: MutationTarget,
        desired: bytes,
        operation: str,
        *,
        capture: bool = True,
        verify: bool = True,
    ) -> MutationResult:
        old = self._read_current(target)
        if capture:
            self.capture(target, old)

        result = self.app.engine.apply(target, desired, verify=verify)

        self.app.history.add(
            self.kind,
            target.interface or "system",
            render_identifier(self.kind, old),
            render_identifier(self.kind, result.value),
            operation,
        )
        return result

    # ---------- Originals ----------

    def original(self, interface: str | None = None) -> bytes | None:
        return self.app.store.get_original(self.kind, self._store_key(self.target(interface)))

    def original_path(self, interface: str | None = None) -> Path:
        return self.app.store.get_original_path(self.kind, self._store_key(self.target(interface)))

    def clear_original(self, interface: str | None = None) -> bool:
        return self.app.store.clear_original(self.kind, self._store_key(self.target(interface)))

    def restore(self, interface: str | None = None, *, verify: bool = True) -> RestoreOutcome:
        """Write the stored original back. A no-op when it is already in effect."""

        target = self.target(interface)
        original = self.original(interface)
        if original is None:
            raise ValidationError(
                f"No original {self.kind.value.upper()} stored for {target.interface or 'this system'}",
                [
                    "An original is captured automatically before the first change made by spoofy",
                    f"Stored originals live in {self.original_path(interface).parent}",
                ],
            )

        current = self._read_current(target)
        if self.app.engine.matches(target, original, current):
            return RestoreOutcome.ALREADY_ORIGINAL

        self._apply(target, original, "restore", capture=False, verify=verify)
        return RestoreOutcome.RESTORED
