from __future__ import annotations

import pytest
from typer.testing import CliRunner

from redmodel import main as cli
from redmodel.config import Settings
from redmodel.utils.codec import to_hash

from tests.fakes import FakeRedis

runner = CliRunner()


@pytest.fixture
def fake_store(monkeypatch: pytest.MonkeyPatch, clean_settings: Settings) -> FakeRedis:
    store = FakeRedis()

    async def _connect(settings=None) -> FakeRedis:
        return store

    monkeypatch.setattr(cli, "connect_client", _connect)
    monkeypatch.setattr(cli, "configure_logging", lambda **_: None)
    return store


def test_info_prints_effective_settings(clean_settings: Settings) -> None:
    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    assert "REDIS=127.0.0.1:6379" in result.stdout
    assert "root=redmodel" in result.stdout


def test_ping_reports_pong(fake_store: FakeRedis) -> None:
    result = runner.invoke(cli.app, ["ping"])

    assert result.exit_code == 0
    assert "PONG" in result.stdout
    assert fake_store.closed


def test_show_prints_record_fields(fake_store: FakeRedis) -> None:
    fake_store.hashes["redmodel:food:a1"] = to_hash({"name": "apple", "calories": 90})

    result = runner.invoke(cli.app, ["show", "food", "a1"])

    assert result.exit_code == 0
    assert "apple" in result.stdout
    assert "number" in result.stdout


def test_show_missing_record_exits_nonzero(fake_store: FakeRedis) -> None:
    result = runner.invoke(cli.app, ["show", "food", "nope"])

    assert result.exit_code == 1


def test_view_count(fake_store: FakeRedis) -> None:
    fake_store.zsets["redmodel:views:fruit"] = {'{"id":"a1","name":"food"}': 90.0}

    result = runner.invoke(cli.app, ["view-count", "fruit"])

    assert result.exit_code == 0
    assert result.stdout.strip() == "1"
