import sys
from typing import Literal

from ..core.errors import PlatformError
from .base import Backend
from .darwin import DarwinBackend
from .linux import LinuxBackend
from .windows import WindowsBackend


BackendName = Literal["linux", "darwin", "windows"]

_PLATFORMS: dict[str, BackendName] = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
}


def make_backend(name: BackendName | None = None, **kwargs) -> Backend:
    """Create the backend for ``name``, or for the running platform."""

    if name is None:
        name = _PLATFORMS.get(sys.platform)

    match name:
        case "linux":
            return LinuxBackend(**kwargs)
        case "darwin":
            return DarwinBackend(state_dir=kwargs.get("state_dir"))
        case "windows":
            return WindowsBackend(state_dir=kwargs.get("state_dir"))
        case _:
            raise PlatformError(
                f"Unsupported platform: {sys.platform}. Supported platforms: darwin (macOS), linux, win32 (Windows)"
            )
