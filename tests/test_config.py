"""
Tests for Server Configuration
"""

import pytest

from chat_server.config import Settings
from chat_server.content_filter import DEFAULT_BANNED_WORDS
from chat_server.persistence import JsonFileBackend, MemoryBackend, SqliteBackend
from chat_server.store import create_backend


def test_defaults():
    settings = Settings.from_env({})
    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.storage_backend == "json"
    assert settings.auto_create_on_send is False
    assert settings.admin_secret == ""
    assert settings.admin_enabled is False
    assert settings.banned_words == DEFAULT_BANNED_WORDS
    assert settings.store_workers == 8
    assert settings.log_level == "INFO"


def test_reads_environment():
    settings = Settings.from_env(
        {
            "CHAT_HOST": "127.0.0.1",
            "CHAT_PORT": "9000",
            "STORAGE_BACKEND": "SQLite",
            "DATABASE_PATH": "/tmp/x.db",
            "AUTO_CREATE_ON_SEND": "yes",
            "ADMIN_SECRET": "s3cret",
            "BANNED_WORDS": "foo, bar ,,",
            "STORE_WORKERS": "2",
            "LOG_LEVEL": "debug",
        }
    )
    assert settings.host == "127.0.0.1"
    assert settings.port == 9000
    assert settings.storage_backend == "sqlite"
    assert settings.database_path == "/tmp/x.db"
    assert settings.auto_create_on_send is True
    assert settings.admin_enabled is True
    assert settings.banned_words == ("foo", "bar")
    assert settings.store_workers == 2
    assert settings.log_level == "DEBUG"


def test_empty_banned_words_disables_filter():
    assert Settings.from_env({"BANNED_WORDS": ""}).banned_words == ()


@pytest.mark.parametrize(
    "env",
    [
        {"CHAT_PORT": "http"},
        {"CHAT_PORT": "70000"},
        {"STORAGE_BACKEND": "redis"},
        {"AUTO_CREATE_ON_SEND": "maybe"},
        {"STORE_WORKERS": "0"},
    ],
)
def test_invalid_values_raise(env):
    with pytest.raises(ValueError):
        Settings.from_env(env)


def test_create_backend(tmp_path):
    assert isinstance(create_backend(Settings(storage_backend="memory")), MemoryBackend)

    json_backend = create_backend(
        Settings(storage_backend="json", data_file=str(tmp_path / "rooms.json"))
    )
    assert isinstance(json_backend, JsonFileBackend)
    assert json_backend.path == tmp_path / "rooms.json"

    sqlite_backend = create_backend(
        Settings(storage_backend="sqlite", database_path=str(tmp_path / "chat.db"))
    )
    assert isinstance(sqlite_backend, SqliteBackend)
