from __future__ import annotations

import pytest

from redmodel import config
from redmodel.config import Settings


def test_settings_defaults(clean_settings: Settings) -> None:
    assert clean_settings.redis_url is None
    assert clean_settings.redis_nodes == ["127.0.0.1:6379"]
    assert clean_settings.redis_db == 0
    assert clean_settings.redis_key_root == "redmodel"
    assert clean_settings.view_cache_size == 0
    assert clean_settings.view_repopulate_concurrency > 0
    assert clean_settings.redis_connect_attempts > 0


def test_settings_read_environment(clean_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_KEY_ROOT", "shop")
    monkeypatch.setenv("REDIS_NODES", '["a:1","b:2"]')
    monkeypatch.setenv("VIEW_CACHE_SIZE", "25")

    settings = config.get_settings()

    assert settings.redis_key_root == "shop"
    assert settings.redis_nodes == ["a:1", "b:2"]
    assert settings.view_cache_size == 25
    assert config.get_settings() is settings


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("10.0.0.1:6379", ["10.0.0.1:6379"]),
        ("a:1, b:2", ["a:1", "b:2"]),
        ('["a:1"]', ["a:1"]),
    ],
)
def test_settings_accept_plain_node_strings(
    clean_settings: Settings, monkeypatch: pytest.MonkeyPatch, raw: str, expected: list
) -> None:
    monkeypatch.setenv("REDIS_NODES", raw)

    assert Settings(_env_file=None).redis_nodes == expected
