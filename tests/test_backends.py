import subprocess
from pathlib import Path

import pytest

from spoofy.core.errors import BackendError, BackendTimeoutError, ParseError, PermissionDeniedError, PlatformError
from spoofy.core.mac import WINDOWS_FIRST_OCTETS, mac_to_bytes
from spoofy.models.identity import IdentifierKind, MutationTarget
from spoofy.providers import base, darwin, linux, windows
from spoofy.providers.factory import make_backend


DUID = MutationTarget(kind=IdentifierKind.DUID)
DUID_LL = bytes.fromhex("00030001aabbccddeeff")

IP_LINK = (
    "1: lo: <LOOPBACK,UP,LOWER_UP> mtu 65536 qdisc noqueue state UNKNOWN mode DEFAULT group default qlen 1000"
    "\\    link/loopback 00:00:00:00:00:00 brd 00:00:00:00:00:00\n"
    "2: eth0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc fq_codel state UP mode DEFAULT group default qlen 1000"
    "\\    link/ether 02:00:00:00:00:01 brd ff:ff:ff:ff:ff:ff permaddr 52:54:00:12:34:56\n"
    "3: wlan0: <BROADCAST,MULTICAST> mtu 1500 qdisc noop state DOWN mode DORMANT group default qlen 1000"
    "\\    link/ether 3c:22:fb:aa:bb:cc brd ff:ff:ff:ff:ff:ff\n"
)

HARDWARE_PORTS = """
Hardware Port: Wi-Fi
Device: en0
Ethernet Address: 3c:22:fb:aa:bb:cc

Hardware Port: Thunderbolt Bridge
Device: bridge0
Ethernet Address: N/A

VLAN Configurations
===================
"""


def completed(cmd: list[str], stdout: str = "", returncode: int = 0, stderr: str = ""):
    return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)


# ---------- shared helpers ----------


def test_run_maps_missing_binary(monkeypatch: pytest.MonkeyPatch):
    def missing(*args, **kwargs):
        raise FileNotFoundError("ip")

    monkeypatch.setattr(base.subprocess, "run", missing)
    with pytest.raises(PlatformError):
        base.run(["ip", "link"], timeout=1)


def test_run_maps_timeout(monkeypatch: pytest.MonkeyPatch):
    def slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(base.subprocess, "run", slow)
    with pytest.raises(BackendTimeoutError):
        base.run(["ip", "link"], timeout=1)


@pytest.mark.parametrize(
    ("stderr", "error"),
    [
        ("RTNETLINK answers: Operation not permitted", PermissionDeniedError),
        ("Access is denied.", PermissionDeniedError),
        ("Cannot find device \"eth9\"", BackendError),
    ],
)
def test_run_classifies_failures(monkeypatch: pytest.MonkeyPatch, stderr: str, error: type):
    monkeypatch.setattr(base.subprocess, "run", lambda cmd, **kwargs: completed(cmd, returncode=2, stderr=stderr))

    with pytest.raises(error):
        base.run(["ip", "link"], timeout=1)


def test_run_without_check_returns_failure(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(base.subprocess, "run", lambda cmd, **kwargs: completed(cmd, returncode=1))

    assert base.run(["ip", "link"], timeout=1, check=False).returncode == 1


def test_original_filename():
    assert base.original_filename(IdentifierKind.DUID) == "duid.original"
    assert base.original_filename(IdentifierKind.MAC, "Ethernet 2") == "mac-Ethernet_2.original"


def test_write_atomic(tmp_path: Path):
    path = tmp_path / "nested" / "DUID"
    base.write_atomic(path, b"\x00\x03")

    assert path.read_bytes() == b"\x00\x03"
    assert list(path.parent.iterdir()) == [path]


# ---------- factory ----------


@pytest.mark.parametrize(("platform", "cls"), [("linux", linux.LinuxBackend), ("darwin", darwin.DarwinBackend), ("win32", windows.WindowsBackend)])
def test_make_backend_by_platform(monkeypatch: pytest.MonkeyPatch, platform: str, cls: type):
    monkeypatch.setattr("spoofy.providers.factory.sys.platform", platform)

    assert isinstance(make_backend(), cls)


def test_make_backend_unsupported(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr("spoofy.providers.factory.sys.platform", "sunos5")

    with pytest.raises(PlatformError):
        make_backend()


# ---------- Linux ----------


@pytest.fixture
def linux_backend(tmp_path: Path) -> linux.LinuxBackend:
    return linux.LinuxBackend(state_dir=tmp_path / "state", dropin_path=tmp_path / "spoofy-duid.conf")


def test_linux_duid_dropin_round_trip(linux_backend: linux.LinuxBackend):
    assert linux_backend.read_identifier(DUID, timeout=1) is None

    linux_backend.write_identifier(DUID, DUID_LL, timeout=1)

    content = linux_backend.dropin_path.read_text()
    assert "[DHCPv6]" in content
    assert "DUIDType=3" in content
    assert "DUIDRawData=00:01:aa:bb:cc:dd:ee:ff" in content
    assert linux_backend.read_identifier(DUID, timeout=1) == DUID_LL

    linux_backend.delete_identifier(DUID, timeout=1)
    assert linux_backend.read_identifier(DUID, timeout=1) is None


@pytest.mark.parametrize(
    "content",
    [
        "[DHCPv6]\nDUIDType=vendor\nDUIDRawData=zz\n",
        "[DHCPv6]\nDUIDType=3\nDUIDRawData=zz\n",
        "DUIDType=3\n",
        "[DHCPv6\nDUIDType=3\n",
    ],
)
def test_linux_dropin_garbage(linux_backend: linux.LinuxBackend, content: str):
    linux_backend.dropin_path.write_text(content)

    with pytest.raises(ParseError):
        linux_backend.read_identifier(DUID, timeout=1)


def test_linux_list_interfaces(monkeypatch: pytest.MonkeyPatch, linux_backend: linux.LinuxBackend):
    monkeypatch.setattr(linux, "need", lambda *args: "/usr/sbin/ip")
    monkeypatch.setattr(linux, "run", lambda cmd, **kwargs: completed(cmd, IP_LINK))

    interfaces = {i.device: i for i in linux_backend.list_interfaces(timeout=1)}

    assert set(interfaces) == {"eth0", "wlan0"}
    assert interfaces["eth0"].address == "52:54:00:12:34:56"
    assert interfaces["eth0"].current_address == "02:00:00:00:00:01"
    assert interfaces["eth0"].status == "up"
    assert interfaces["eth0"].is_spoofed
    assert interfaces["wlan0"].status == "down"
    assert not interfaces["wlan0"].is_spoofed


def test_linux_hardware_address_prefers_permaddr(monkeypatch: pytest.MonkeyPatch, linux_backend: linux.LinuxBackend):
    line = IP_LINK.splitlines()[1]
    monkeypatch.setattr(linux, "need", lambda *args: "/usr/sbin/ip")
    monkeypatch.setattr(linux, "run", lambda cmd, **kwargs: completed(cmd, line))

    assert linux_backend.hardware_address("eth0", timeout=1) == mac_to_bytes("52:54:00:12:34:56")


def test_linux_write_mac_commands(monkeypatch: pytest.MonkeyPatch, linux_backend: linux.LinuxBackend):
    calls = []
    monkeypatch.setattr(linux, "need", lambda *args: "/usr/sbin/ip")
    monkeypatch.setattr(linux, "run", lambda cmd, **kwargs: calls.append(cmd) or completed(cmd))

    target = MutationTarget(interface="eth0", kind=IdentifierKind.MAC)
    linux_backend.write_identifier(target, mac_to_bytes("02:00:00:00:00:01"), timeout=1)

    assert calls == [
        ["ip", "link", "set", "dev", "eth0", "down"],
        ["ip", "link", "set", "dev", "eth0", "address", "02:00:00:00:00:01"],
        ["ip", "link", "set", "dev", "eth0", "up"],
    ]


def test_linux_write_mac_brings_interface_back_up(monkeypatch: pytest.MonkeyPatch, linux_backend: linux.LinuxBackend):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        if "address" in cmd:
            raise PermissionDeniedError("Operation not permitted")
        return completed(cmd)

    monkeypatch.setattr(linux, "need", lambda *args: "/usr/sbin/ip")
    monkeypatch.setattr(linux, "run", fake_run)

    target = MutationTarget(interface="eth0", kind=IdentifierKind.MAC)
    with pytest.raises(PermissionDeniedError) as exc_info:
        linux_backend.write_identifier(target, mac_to_bytes("02:00:00:00:00:01"), timeout=1)

    assert calls[-1][-1] == "up"
    assert exc_info.value.suggestions


def test_linux_original_paths(linux_backend: linux.LinuxBackend, tmp_path: Path):
    assert linux_backend.original_path(IdentifierKind.DUID) == tmp_path / "state" / "duid.original"
    assert linux_backend.original_path(IdentifierKind.MAC, "eth0") == tmp_path / "state" / "mac-eth0.original"


# ---------- macOS ----------


def test_darwin_hardware_ports(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(darwin, "need", lambda *args: "/usr/sbin/networksetup")
    monkeypatch.setattr(darwin, "run", lambda cmd, **kwargs: completed(cmd, HARDWARE_PORTS))

    ports = darwin.DarwinBackend()._hardware_ports(timeout=1)

    assert ports == [("Wi-Fi", "en0", "3c:22:fb:aa:bb:cc"), ("Thunderbolt Bridge", "bridge0", None)]


def test_darwin_duid_file(tmp_path: Path):
    backend = darwin.DarwinBackend(duid_path=tmp_path / "DUID")

    backend.write_identifier(DUID, DUID_LL, timeout=1)
    assert (tmp_path / "DUID").read_bytes() == DUID_LL
    assert backend.read_identifier(DUID, timeout=1) == DUID_LL
    assert backend.original_path(IdentifierKind.DUID) == tmp_path / "DUID.original"

    backend.delete_identifier(DUID, timeout=1)
    assert backend.read_identifier(DUID, timeout=1) is None


# ---------- Windows ----------


def test_quote_ps():
    assert windows.quote_ps("Wi-Fi") == "'Wi-Fi'"
    assert windows.quote_ps("it's") == "'it''s'"


def test_windows_list_interfaces(monkeypatch: pytest.MonkeyPatch):
    output = (
        '[{"Name":"Ethernet","InterfaceDescription":"Intel(R) Ethernet","MacAddress":"DA-11-22-33-44-55",'
        '"PermanentAddress":"001122334455","Status":"Up"},'
        '{"Name":"Wi-Fi","InterfaceDescription":"Wireless","MacAddress":"3C-22-FB-AA-BB-CC",'
        '"PermanentAddress":null,"Status":"Disconnected"}]'
    )
    monkeypatch.setattr(windows, "need", lambda *args: "powershell")
    monkeypatch.setattr(windows, "run", lambda cmd, **kwargs: completed(cmd, output))

    interfaces = windows.WindowsBackend(state_dir="C:/state").list_interfaces(timeout=1)

    assert [i.device for i in interfaces] == ["Ethernet", "Wi-Fi"]
    assert interfaces[0].address == "00:11:22:33:44:55"
    assert interfaces[0].current_address == "DA:11:22:33:44:55"
    assert interfaces[0].is_spoofed
    assert interfaces[1].address == "3C:22:FB:AA:BB:CC"


def test_windows_duid_registry_commands(monkeypatch: pytest.MonkeyPatch):
    scripts = []

    def fake_run(cmd, **kwargs):
        scripts.append(cmd[-1])
        return completed(cmd, "00-03-00-01-AA-BB-CC-DD-EE-FF\n")

    monkeypatch.setattr(windows, "need", lambda *args: "powershell")
    monkeypatch.setattr(windows, "run", fake_run)
    backend = windows.WindowsBackend()

    assert backend.read_identifier(DUID, timeout=1) == DUID_LL

    backend.write_identifier(DUID, DUID_LL, timeout=1)
    assert "-PropertyType Binary" in scripts[-1]
    assert "[byte[]](0x00,0x03,0x00,0x01,0xaa,0xbb,0xcc,0xdd,0xee,0xff)" in scripts[-1]
    assert windows.DUID_VALUE_NAME in scripts[-1]


def test_windows_restricts_first_octets():
    assert windows.WindowsBackend.mac_first_octets == WINDOWS_FIRST_OCTETS
