import os

import pytest
import yaml

from factoryflow import config


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("FACTORYFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("PORT", raising=False)
    return tmp_path


def test_load_config_without_file_is_empty(data_dir):
    assert config.get_app_data_directory() == str(data_dir)
    assert config.load_config() == {}


def test_save_and_load_round_trip(data_dir):
    config.save_config({"server": {"port": 5050}, "database_path": "fábrica.db"})
    assert config.load_config() == {"server": {"port": 5050}, "database_path": "fábrica.db"}
    assert os.path.exists(data_dir / "config.yaml")


def test_server_defaults():
    assert config.get_server_settings({}) == {"host": "0.0.0.0", "port": 4000}


def test_server_settings_from_file():
    settings = config.get_server_settings({"server": {"host": "127.0.0.1", "port": 5050}})
    assert settings == {"host": "127.0.0.1", "port": 5050}


def test_port_env_overrides_file(monkeypatch):
    monkeypatch.setenv("PORT", "8081")
    assert config.get_server_settings({"server": {"port": 5050}})["port"] == 8081


def test_database_path(data_dir, tmp_path):
    assert config.get_database_path({}) == os.path.join(str(data_dir), "factoryflow.db")
    custom = tmp_path / "other" / "prod.db"
    assert config.get_database_path({"database_path": str(custom)}) == str(custom)


def test_backend_settings_defaults():
    settings = config.get_backend_settings({})
    assert settings["type"] == "local"
    assert settings["timeout"] == config.DEFAULT_TIMEOUT


def test_backend_settings_remote():
    settings = config.get_backend_settings(
        {"backend": {"type": "remote", "url": "http://fab:4000", "email": "a@b.c", "password": "x", "timeout": 3}}
    )
    assert settings == {"type": "remote", "url": "http://fab:4000", "email": "a@b.c", "password": "x", "timeout": 3.0}


def test_backend_type_is_checked():
    with pytest.raises(ValueError):
        config.get_backend_settings({"backend": {"type": "mysql"}})


def test_secret_key_is_generated_once(data_dir):
    key = config.get_secret_key()
    assert len(key) == 64
    assert config.get_secret_key() == key
    with open(data_dir / "config.yaml", encoding="utf-8") as f:
        assert yaml.safe_load(f)["secret_key"] == key


def test_secret_key_keeps_other_settings():
    config.save_config({"server": {"port": 5050}})
    config.get_secret_key()
    assert config.load_config()["server"] == {"port": 5050}
