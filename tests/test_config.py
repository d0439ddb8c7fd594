import importlib
import os

import pytest

from chatrelay.core import config


@pytest.fixture(autouse=True)
def restore_settings():
    # Autouse: set up before monkeypatch, so this teardown runs after the env is restored
    yield
    importlib.reload(config)


def test_settings_defaults_without_env(monkeypatch):
    for name in ("PORT", "DEFAULT_ROOM", "PRUNE_EMPTY_ROOMS", "MAX_UPLOAD_BYTES", "UPLOAD_URL_PREFIX"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: False)

    s = importlib.reload(config).settings

    assert s.PORT == 3000
    assert s.DEFAULT_ROOM == "general"
    assert s.PRUNE_EMPTY_ROOMS is True
    assert s.MAX_UPLOAD_BYTES == 50 * 1024 * 1024
    assert s.UPLOAD_URL_PREFIX == "/uploads"


def test_port_and_flags_from_env(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("PRUNE_EMPTY_ROOMS", "false")
    monkeypatch.setenv("UPLOAD_URL_PREFIX", "/media/")

    s = importlib.reload(config).settings

    assert s.PORT == 8080
    assert s.PRUNE_EMPTY_ROOMS is False
    assert s.UPLOAD_URL_PREFIX == "/media"


def test_env_overrides_do_not_leak_between_tests():
    # Runs after the override test above; settings must reflect the real env again
    assert config.settings.PORT == int(os.getenv("PORT", "3000"))
    assert config.settings.UPLOAD_URL_PREFIX == os.getenv("UPLOAD_URL_PREFIX", "/uploads").rstrip("/")
