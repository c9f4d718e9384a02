"""Application singleton with dependency injection for controllers."""

from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from rich.console import Console

from ..controllers.duid import DuidController
from ..controllers.mac import MacController
from ..data import HistoryLog, OriginalStore
from ..models.config import Settings, load_settings
from ..providers.factory import make_backend
from .engine import MutationEngine


if TYPE_CHECKING:
    from ..providers.base import Backend


class Application:
    """Main application."""

    _instance: Self | None = None

    def __init__(
        self,
        settings: Settings | None = None,
        backend: "Backend | None" = None,
        console: Console | None = None,
    ) -> None:
        self._console = console or Console()
        self._settings = settings
        self._backend = backend
        self._controllers: dict[str, Any] = {}

        self._store: OriginalStore | None = None
        self._history: HistoryLog | None = None
        self._engine: MutationEngine | None = None

        self.json_output: bool = False

    @classmethod
    def current(cls) -> Self:
        """Get current application instance."""

        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance."""

        cls._instance = None

    def configure(self, config_path: str | Path | None = None) -> Settings:
        """Load settings from ``config_path`` (or the user config) and drop derived state."""

        self._settings = load_settings(config_path)
        self._store = self._history = self._engine = None
        return self._settings

    @property
    def console(self) -> "Console":
        """Get rich console for displaying messages."""

        return self._console

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = load_settings()
        return self._settings

    @property
    def backend(self) -> "Backend":
        """Get the platform backend, created on first use."""

        if self._backend is None:
            kwargs: dict[str, Any] = {"state_dir": self.settings.state_dir}
            if self.settings.reconnect != "off":
                kwargs["reconnect"] = self.settings.reconnect
            self._backend = make_backend(**kwargs)
        return self._backend

    @property
    def store(self) -> OriginalStore:
        if self._store is None:
            self._store = OriginalStore(self.backend.original_path)
        return self._store

    @property
    def history(self) -> HistoryLog:
        if self._history is None:
            self._history = HistoryLog(self.settings.history_file, self.settings.history_limit)
        return self._history

    @property
    def engine(self) -> MutationEngine:
        if self._engine is None:
            settings = self.settings
            self._engine = MutationEngine(
                self.backend,
                max_attempts=settings.max_attempts,
                base_delay=settings.base_delay,
                timeout=settings.timeout,
            )
        return self._engine

    @engine.setter
    def engine(self, value: MutationEngine) -> None:
        self._engine = value

    @property
    def mac(self) -> MacController:
        """Get MAC address controller."""

        if "mac" not in self._controllers:
            self._controllers["mac"] = MacController(self)
        return self._controllers["mac"]

    @property
    def duid(self) -> DuidController:
        """Get DUID controller."""

        if "duid" not in self._controllers:
            self._controllers["duid"] = DuidController(self)
        return self._controllers["duid"]
