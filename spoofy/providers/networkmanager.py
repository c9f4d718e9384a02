"""NetworkManager detection and reconnection helpers (Linux)."""

import logging
import time

from pydantic import BaseModel

from ..core.errors import BackendError, SpoofyError
from .base import run


logger = logging.getLogger(__name__)


class NMStatus(BaseModel):
    present: bool = False
    running: bool = False
    method: str = "unknown"


class NMDeviceStatus(BaseModel):
    present: bool = False
    running: bool = False
    managed: bool = False
    state: str = "unknown"
    raw: str | None = None


def detect(timeout: float = 5.0) -> NMStatus:
    """Detect whether NetworkManager is installed and running."""

    try:
        output = run(["nmcli", "-t", "-f", "RUNNING", "general"], timeout=timeout).stdout.strip().lower()
        return NMStatus(present=True, running=output in ("yes", "running"), method="nmcli")
    except SpoofyError:
        pass

    try:
        result = run(["systemctl", "is-active", "NetworkManager"], timeout=timeout, check=False)
    except SpoofyError:
        return NMStatus()

    state = result.stdout.strip()
    if state == "active":
        return NMStatus(present=True, running=True, method="systemctl")
    # is-active prints "inactive"/"failed" for installed units and "unknown" otherwise
    if state in ("inactive", "failed", "activating", "deactivating"):
        return NMStatus(present=True, running=False, method="systemctl")
    return NMStatus()


def parse_device_status(output: str, iface: str) -> NMDeviceStatus:
    """Find ``iface`` in ``nmcli -t -f DEVICE,STATE,MANAGED device status`` output."""

    for line in output.splitlines():
        parts = line.strip().split(":")
        if len(parts) >= 3 and parts[0] == iface:
            return NMDeviceStatus(
                present=True,
                running=True,
                managed=parts[2].lower() == "yes",
                state=parts[1],
                raw=line.strip(),
            )
    return NMDeviceStatus(present=True, running=True)


def device_status(iface: str, timeout: float = 10.0) -> NMDeviceStatus:
    status = detect()
    if not status.present or not status.running:
        return NMDeviceStatus(present=status.present, running=status.running)

    try:
        output = run(["nmcli", "-t", "-f", "DEVICE,STATE,MANAGED", "device", "status"], timeout=timeout).stdout
    except SpoofyError as e:
        logger.debug("nmcli device status failed: %s", e)
        return NMDeviceStatus(present=True, running=True)
    return parse_device_status(output, iface)


def _require_running() -> None:
    status = detect()
    if not status.present or not status.running:
        raise BackendError("NetworkManager is not running")


def disconnect_device(iface: str, timeout: float = 20.0) -> None:
    _require_running()
    run(["nmcli", "device", "disconnect", iface], timeout=timeout)


def reconnect_device(iface: str, timeout: float = 20.0) -> None:
    """Disconnect and reconnect ``iface`` so NetworkManager picks up its new address."""

    disconnect_device(iface, timeout)
    time.sleep(0.5)
    run(["nmcli", "device", "connect", iface], timeout=timeout)


def toggle_networking(enable: bool, timeout: float = 20.0) -> None:
    _require_running()
    run(["nmcli", "networking", "on" if enable else "off"], timeout=timeout)
