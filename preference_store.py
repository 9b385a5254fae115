"""Preferências por conversa guardadas no Redis (canal de provas sociais históricas)."""

from __future__ import annotations

import hashlib
import os
import threading
from typing import Optional

import redis
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from settings import _env_int, _log_debug


_LOCK = threading.Lock()
_REDIS_CLIENT: Optional["redis.Redis"] = None

PREFERENCE_NAMESPACE = "smartzap:pref"
HISTORICAL_PROOF_FIELD = "prefer_historical_proof_channel"


def _get_client() -> Optional["redis.Redis"]:
    """Return a cached Redis client if REDIS_URL is configured."""
    url = os.getenv("REDIS_URL")
    if not url:
        return None

    global _REDIS_CLIENT
    if _REDIS_CLIENT is not None:
        return _REDIS_CLIENT

    with _LOCK:
        if _REDIS_CLIENT is None:
            try:
                _REDIS_CLIENT = redis.Redis.from_url(url, decode_responses=True)
            except ValueError as exc:
                print(f"[PREF] REDIS_URL inválida: {exc}", flush=True)
                _REDIS_CLIENT = None
        return _REDIS_CLIENT


def _preference_ttl() -> int:
    return _env_int("PREFERENCE_TTL_SECONDS", 0, 0)


def _make_key(chat_id: str) -> str:
    digest = hashlib.sha256(str(chat_id).encode("utf-8")).hexdigest()
    return f"{PREFERENCE_NAMESPACE}:{digest}"


@retry(
    retry=retry_if_exception_type(redis.RedisError),
    wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _write_flag(client: "redis.Redis", key: str, field: str, value: bool, ttl: int) -> None:
    client.hset(key, field, "1" if value else "0")
    if ttl > 0:
        client.expire(key, ttl)


def set_prefer_historical_proof_channel(chat_id: str, value: bool = True) -> bool:
    """
    Grava a preferência da conversa pelo canal de provas históricas.

    Nunca levanta exceção: sem Redis configurado, ou após esgotar as
    tentativas, apenas registra o problema e devolve ``False``.
    """
    if not chat_id:
        return False
    client = _get_client()
    if client is None:
        _log_debug(f"[PREF] Redis indisponível; preferência de {chat_id} não persistida.")
        return False

    try:
        _write_flag(client, _make_key(chat_id), HISTORICAL_PROOF_FIELD, bool(value), _preference_ttl())
    except redis.RedisError as exc:
        print(f"[PREF] Falha ao salvar preferência de canal ({chat_id}): {exc}", flush=True)
        return False
    return True


def get_prefer_historical_proof_channel(chat_id: str) -> bool:
    """``True`` somente se a preferência foi gravada como verdadeira."""
    client = _get_client()
    if client is None or not chat_id:
        return False
    try:
        raw = client.hget(_make_key(chat_id), HISTORICAL_PROOF_FIELD)
    except redis.RedisError as exc:
        print(f"[PREF] Falha ao ler preferência de canal ({chat_id}): {exc}", flush=True)
        return False
    return raw == "1"


class RedisPreferenceSink:
    """Adaptador injetado no motor de recuperação para registrar preferências."""

    def set_prefer_historical_proof_channel(self, chat_id: str, value: bool = True) -> bool:
        return set_prefer_historical_proof_channel(chat_id, value)


def reset_preference_client() -> None:
    """Used in tests to drop the memoised Redis client."""
    global _REDIS_CLIENT
    with _LOCK:
        _REDIS_CLIENT = None


__all__ = [
    "HISTORICAL_PROOF_FIELD",
    "PREFERENCE_NAMESPACE",
    "RedisPreferenceSink",
    "get_prefer_historical_proof_channel",
    "reset_preference_client",
    "set_prefer_historical_proof_channel",
]
