import json

import pytest

from queuestat.config import load_user_config
from queuestat.errors import ConfigError


def test_missing_default_file_is_empty(tmp_path, monkeypatch):
    monkeypatch.setattr("queuestat.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.json")
    assert load_user_config() == {}


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError):
        load_user_config(tmp_path / "absent.json", required=True)


def test_values_are_coerced(tmp_path, caplog):
    path = tmp_path / "queuestat.json"
    path.write_text(
        json.dumps(
            {
                "port": "22201",
                "remote": True,
                "percentiles": [50, 99.9],
                "interface": "bond0",
                "colour": "blue",
            }
        )
    )

    with caplog.at_level("WARNING"):
        defaults = load_user_config(path)

    assert defaults == {"port": 22201, "remote": True, "percentiles": "50,99.9", "interface": "bond0"}
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "content",
    ["not json", "[1, 2]", '{"remote": "yes"}', '{"jobs": "many"}', '{"count": true}'],
)
def test_invalid_config(tmp_path, content):
    path = tmp_path / "queuestat.json"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_user_config(path)
