import pytest
from docktop.config import ConfigManager, default_config_path


def write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


def test_defaults_without_file(tmp_path):
    cm = ConfigManager(tmp_path / "missing.yaml")
    assert cm.get_refresh_interval() == 2.0
    assert cm.get_command_timeout() == 30.0
    assert cm.get_refresh_timeout() == 5.0
    assert cm.get_base_url() is None
    assert cm.get_log_level() == "INFO"
    assert cm.get_custom_log_path() is None
    # Loading never creates the file
    assert not (tmp_path / "missing.yaml").exists()


def test_user_values_override_defaults(tmp_path):
    cm = ConfigManager(write(tmp_path, """
engine:
  base_url: unix:///run/user/1000/docker.sock
  refresh_interval: 5
logging:
  level: debug
  file_path: /tmp/docktop-test.log
"""))
    assert cm.get_base_url() == "unix:///run/user/1000/docker.sock"
    assert cm.get_refresh_interval() == 5.0
    assert isinstance(cm.get_refresh_interval(), float)
    assert cm.get_command_timeout() == 30.0
    assert cm.get_log_level() == "DEBUG"
    assert cm.get_custom_log_path() == "/tmp/docktop-test.log"


def test_unknown_keys_are_ignored(tmp_path):
    cm = ConfigManager(write(tmp_path, "engine:\n  colour: red\n  refresh_interval: 3\n"))
    assert cm.get_refresh_interval() == 3.0
    assert "colour" not in cm.as_dict()["engine"]


@pytest.mark.parametrize("text", [
    "engine: [unclosed",
    "- just\n- a list\n",
    "engine:\n  refresh_interval: soon\n",
    "engine:\n  refresh_interval: 0\n",
])
def test_invalid_file_falls_back_to_defaults(tmp_path, text):
    cm = ConfigManager(write(tmp_path, text))
    assert cm.get_refresh_interval() == 2.0


def test_config_path_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCKTOP_CONFIG", str(tmp_path / "custom.yaml"))
    assert default_config_path() == tmp_path / "custom.yaml"

    monkeypatch.delenv("DOCKTOP_CONFIG")
    assert default_config_path().parts[-3:] == (".config", "docktop", "config.yaml")
