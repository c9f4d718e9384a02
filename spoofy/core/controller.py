"""Base controller class for identifier operations."""

from typing import TYPE_CHECKING, Generic, TypeVar


if TYPE_CHECKING:
    from ..models.config import Settings
    from ..providers.base import Backend
    from .application import Application


AppT = TypeVar("AppT", bound="Application")


class BaseController(Generic[AppT]):  # noqa: UP046
    """Base class for controllers.

    Backend and settings are looked up through the application on every access,
    so a reconfigured application is picked up by existing controllers.
    """

    def __init__(self, app: AppT) -> None:
        self._app = app

    @property
    def app(self) -> AppT:
        return self._app

    @property
    def backend(self) -> "Backend":
        return self._app.backend

    @property
    def settings(self) -> "Settings":
        return self._app.settings

    @property
    def timeout(self) -> float:
        """Per-call backend timeout, in seconds."""

        return self._app.settings.timeout
