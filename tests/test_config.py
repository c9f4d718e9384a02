from pathlib import Path

import pytest

from spoofy.models.config import Settings, load_settings


def test_defaults():
    settings = Settings()

    assert settings.max_attempts == 3
    assert settings.base_delay == 0.5
    assert settings.timeout == 30.0
    assert settings.enterprise_number == 43793
    assert settings.default_duid_type == "LL"
    assert settings.reconnect == "off"
    assert settings.history_file == Path.home() / ".spoofy_history.json"


def test_load_from_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("max_attempts: 5\ndefault_duid_type: llt\nstate_dir: ~/spoofy-state\nreconnect: device\n")

    settings = load_settings(path)

    assert settings.max_attempts == 5
    assert settings.default_duid_type == "LLT"
    assert settings.state_dir == Path.home() / "spoofy-state"
    assert settings.reconnect == "device"


def test_empty_file_gives_defaults(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    assert load_settings(path) == Settings()


@pytest.mark.parametrize("content", ["max_attempts: 0\n", "timeout: 0\n", "default_duid_type: XYZ\n", "reconnect: always\n"])
def test_invalid_config_exits(tmp_path: Path, content: str):
    path = tmp_path / "config.yaml"
    path.write_text(content)

    with pytest.raises(SystemExit) as exc_info:
        load_settings(path)

    assert "[Config Validation Error]" in str(exc_info.value)


def test_missing_config_exits(tmp_path: Path):
    with pytest.raises(SystemExit) as exc_info:
        load_settings(tmp_path / "missing.yaml")

    assert "[Config Validation Error]" in str(exc_info.value)


@pytest.mark.parametrize("content", ["- max_attempts\n- timeout\n", "just a string\n", "max_attempts: [\n"])
def test_config_must_be_a_mapping(tmp_path: Path, content: str):
    path = tmp_path / "config.yaml"
    path.write_text(content)

    with pytest.raises(SystemExit) as exc_info:
        load_settings(path)

    assert "[Config Validation Error]" in str(exc_info.value)
