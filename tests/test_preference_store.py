"""Tests for the Redis-backed conversation preferences."""

from __future__ import annotations

from unittest.mock import MagicMock

import fakeredis
import pytest
import redis

import preference_store


@pytest.fixture(autouse=True)
def _reset_preference_client(monkeypatch):
    preference_store.reset_preference_client()
    monkeypatch.delenv("REDIS_URL", raising=False)
    yield
    preference_store.reset_preference_client()


@pytest.fixture
def fake(monkeypatch):
    client = fakeredis.FakeRedis(decode_responses=True)
    monkeypatch.setenv("REDIS_URL", "redis://fake-host:6379/0")
    monkeypatch.setattr(preference_store, "_get_client", lambda: client)
    return client


def test_without_redis_nothing_is_persisted():
    assert preference_store.set_prefer_historical_proof_channel("5511") is False
    assert preference_store.get_prefer_historical_proof_channel("5511") is False


def test_set_and_get_preference(fake):
    assert preference_store.set_prefer_historical_proof_channel("5511") is True
    assert preference_store.get_prefer_historical_proof_channel("5511") is True
    assert preference_store.get_prefer_historical_proof_channel("outro") is False

    key = preference_store._make_key("5511")
    assert key.startswith(f"{preference_store.PREFERENCE_NAMESPACE}:")
    assert "5511" not in key
    assert fake.hget(key, preference_store.HISTORICAL_PROOF_FIELD) == "1"
    assert fake.ttl(key) == -1


def test_preference_can_be_cleared(fake):
    preference_store.set_prefer_historical_proof_channel("5511")
    preference_store.set_prefer_historical_proof_channel("5511", False)
    assert preference_store.get_prefer_historical_proof_channel("5511") is False


def test_preference_ttl_from_env(fake, monkeypatch):
    monkeypatch.setenv("PREFERENCE_TTL_SECONDS", "3600")
    preference_store.set_prefer_historical_proof_channel("5511")
    assert 0 < fake.ttl(preference_store._make_key("5511")) <= 3600


def test_empty_chat_id_is_ignored(fake):
    assert preference_store.set_prefer_historical_proof_channel("") is False


def test_transient_errors_are_retried(monkeypatch):
    client = MagicMock()
    client.hset.side_effect = [redis.ConnectionError("boom"), 1]
    monkeypatch.setattr(preference_store, "_get_client", lambda: client)

    assert preference_store.set_prefer_historical_proof_channel("5511") is True
    assert client.hset.call_count == 2


def test_persistent_errors_are_reported_not_raised(monkeypatch, capsys):
    client = MagicMock()
    client.hset.side_effect = redis.ConnectionError("fora do ar")
    monkeypatch.setattr(preference_store, "_get_client", lambda: client)

    assert preference_store.set_prefer_historical_proof_channel("5511") is False
    assert client.hset.call_count == 3
    assert "[PREF]" in capsys.readouterr().out


def test_sink_delegates_to_module_function(mocker):
    spy = mocker.patch.object(preference_store, "set_prefer_historical_proof_channel", return_value=True)
    assert preference_store.RedisPreferenceSink().set_prefer_historical_proof_channel("5511") is True
    spy.assert_called_once_with("5511", True)


def test_get_client_builds_from_url(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    client = preference_store._get_client()
    assert isinstance(client, redis.Redis)
    assert preference_store._get_client() is client
