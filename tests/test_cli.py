import orjson
import pytest
from click.testing import CliRunner

from spoofy import __version__
from spoofy.cli import cli
from spoofy.core.application import Application
from spoofy.core.mac import mac_to_bytes
from spoofy.models.identity import IdentifierKind

from .conftest import FakeBackend


DUID_LL = "00:03:00:01:aa:bb:cc:dd:ee:ff"


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def invoke_json(runner: CliRunner, *args: str, exit_code: int = 0):
    result = runner.invoke(cli, ["--json", *args])
    assert result.exit_code == exit_code, result.output
    return orjson.loads(result.stdout)


def test_version(runner: CliRunner, app: Application):
    result = runner.invoke(cli, ["version"])

    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_normalize(runner: CliRunner, app: Application):
    result = runner.invoke(cli, ["normalize", "aabb.ccdd.eeff"])

    assert result.exit_code == 0
    assert result.output.strip() == "AA:BB:CC:DD:EE:FF"


def test_normalize_invalid_json(runner: CliRunner, app: Application):
    data = invoke_json(runner, "normalize", "not-a-mac", exit_code=1)

    assert data["success"] is False
    assert data["code"] == "VALIDATION_ERROR"
    assert data["suggestions"]


def test_list_json(runner: CliRunner, app: Application):
    (info,) = invoke_json(runner, "list")

    assert info["device"] == "eth0"
    assert info["current_address"] == "00:11:22:33:44:55"
    assert info["spoofed"] is False


def test_set_and_restore(runner: CliRunner, app: Application, backend: FakeBackend):
    (result,) = invoke_json(runner, "set", "02-00-00-00-00-01", "eth0")

    assert result["success"] is True
    assert result["value"] == "02:00:00:00:00:01"
    assert backend.values[(IdentifierKind.MAC, "eth0")] == mac_to_bytes("02:00:00:00:00:01")

    assert invoke_json(runner, "restore", "eth0")["outcome"] == "restored"
    assert backend.values[(IdentifierKind.MAC, "eth0")] == mac_to_bytes("00:11:22:33:44:55")

    assert invoke_json(runner, "restore", "eth0")["outcome"] == "already_original"


def test_set_rejects_invalid_mac(runner: CliRunner, app: Application, backend: FakeBackend):
    result = runner.invoke(cli, ["set", "zz:zz", "eth0"])

    assert result.exit_code == 2
    assert backend.writes == []


def test_randomize_multiple_devices(runner: CliRunner, app: Application, backend: FakeBackend):
    backend.add_interface("eth1", "00:11:22:33:44:66")

    results = invoke_json(runner, "randomize", "--local", "eth0", "eth1")

    assert [r["target"] for r in results] == ["mac@eth0", "mac@eth1"]
    for r in results:
        assert int(r["value"][:2], 16) & 0b11 == 0b10


def test_unprivileged_user(runner: CliRunner, app: Application, backend: FakeBackend):
    backend.privileged = False

    result = runner.invoke(cli, ["set", "02:00:00:00:00:01", "eth0"])

    assert result.exit_code == 1
    assert "requires root privileges" in app.console.export_text()
    assert backend.writes == []


def test_history(runner: CliRunner, app: Application):
    invoke_json(runner, "set", "02:00:00:00:00:01", "eth0")

    (entry,) = invoke_json(runner, "history", "eth0")

    assert entry["new"] == "02:00:00:00:00:01"
    assert invoke_json(runner, "duid", "history") == []


def test_duid_generate(runner: CliRunner, app: Application):
    data = invoke_json(runner, "duid", "generate", "--type", "LL", "--mac", "aa:bb:cc:dd:ee:ff")

    assert data["duid"] == DUID_LL
    assert data["parsed"]["lladdr"] == "AA:BB:CC:DD:EE:FF"


def test_duid_generate_rejects_unknown_type(runner: CliRunner, app: Application):
    result = runner.invoke(cli, ["duid", "generate", "--type", "XYZ"])

    assert result.exit_code == 2


def test_duid_set_and_original(runner: CliRunner, app: Application, backend: FakeBackend):
    original = bytes.fromhex("00030001001122334455")
    backend.values[(IdentifierKind.DUID, None)] = original

    data = invoke_json(runner, "duid", "set", DUID_LL, "eth0")

    assert data["duid"] == DUID_LL
    assert data["interface"] == "eth0"

    shown = invoke_json(runner, "duid", "original", "show")
    assert bytes.fromhex(shown["original"].replace(":", "")) == original

    listed = invoke_json(runner, "duid", "list")
    assert listed["originalStored"] is True
    assert listed["isSpoofed"] is True

    assert invoke_json(runner, "duid", "restore")["outcome"] == "restored"
    assert backend.values[(IdentifierKind.DUID, None)] == original


def test_duid_set_rejects_malformed_hex(runner: CliRunner, app: Application):
    result = runner.invoke(cli, ["duid", "set", "00:03:00:01:aa"])

    assert result.exit_code == 2


def test_duid_sync(runner: CliRunner, app: Application, backend: FakeBackend):
    data = invoke_json(runner, "duid", "sync", "eth0")

    assert data["duid"] == "00:03:00:01:00:11:22:33:44:55"
    assert backend.values[(IdentifierKind.DUID, None)] == bytes.fromhex("00030001001122334455")


def test_duid_sync_resolves_device_name(runner: CliRunner, app: Application, backend: FakeBackend):
    data = invoke_json(runner, "duid", "sync", "ETH0")

    assert data["duid"] == "00:03:00:01:00:11:22:33:44:55"
    assert backend.values[(IdentifierKind.DUID, None)] == bytes.fromhex("00030001001122334455")


def test_duid_sync_unknown_device(runner: CliRunner, app: Application, backend: FakeBackend):
    data = invoke_json(runner, "duid", "sync", "eth9", exit_code=1)

    assert 'Could not find device "eth9"' in data["error"]
    assert backend.writes == []


def test_duid_restore_without_original(runner: CliRunner, app: Application):
    data = invoke_json(runner, "duid", "restore", exit_code=1)

    assert data["code"] == "VALIDATION_ERROR"


def test_duid_original_clear_requires_force(runner: CliRunner, app: Application, backend: FakeBackend):
    backend.values[(IdentifierKind.DUID, None)] = bytes.fromhex("00030001aabbccddeeff")
    invoke_json(runner, "duid", "randomize")
    path = app.duid.original_path()
    assert path.exists()

    result = runner.invoke(cli, ["duid", "original", "clear"])
    assert result.exit_code == 1
    assert path.exists()

    assert invoke_json(runner, "duid", "original", "clear", "--force")["success"] is True
    assert not path.exists()


def test_duid_original_path(runner: CliRunner, app: Application, backend: FakeBackend):
    result = runner.invoke(cli, ["duid", "original", "path"])

    assert result.exit_code == 0
    assert result.output.strip() == str(backend.state_dir / "duid.original")


def test_duid_reset(runner: CliRunner, app: Application, backend: FakeBackend):
    backend.values[(IdentifierKind.DUID, None)] = bytes.fromhex("00030001aabbccddeeff")

    assert invoke_json(runner, "duid", "reset")["success"] is True
    assert (IdentifierKind.DUID, None) not in backend.values


def test_device_lookup_is_case_insensitive(runner: CliRunner, app: Application, backend: FakeBackend):
    (result,) = invoke_json(runner, "set", "02:00:00:00:00:01", "ETH0")

    assert result["target"] == "mac@eth0"


def test_set_unknown_device(runner: CliRunner, app: Application, backend: FakeBackend):
    data = invoke_json(runner, "set", "02:00:00:00:00:01", "eth9", exit_code=1)

    assert 'Could not find device "eth9"' in data["error"]
    assert backend.writes == []


def test_missing_config_file(runner: CliRunner, app: Application, tmp_path):
    result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "version"])

    assert result.exit_code == 2
    assert "Config file does not exist" in result.output


def test_missing_config_file_from_environment(runner: CliRunner, app: Application, tmp_path):
    result = runner.invoke(cli, ["version"], env={"SPOOFY_CONFIG": str(tmp_path / "missing.yaml")})

    assert result.exit_code == 2
    assert "Config file does not exist" in result.output
