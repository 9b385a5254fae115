# settings.py
# Leitura das variáveis de ambiente do motor de recuperação. Valores inválidos
# caem no padrão e números são limitados ao intervalo aceito.

from __future__ import annotations

import os


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = os.getenv(name, str(default))
    try:
        v = int(str(raw).strip())
    except Exception:
        v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


def _env_float(name: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    raw = os.getenv(name)
    try:
        v = float(str(raw).strip()) if raw is not None else default
    except Exception:
        v = default
    if min_val is not None and v < min_val:
        v = min_val
    if max_val is not None and v > max_val:
        v = max_val
    return v


def _env_str(name: str, default: str = "") -> str:
    val = os.getenv(name)
    return val.strip() if val is not None else default


# ==== Recuperação ====
TOP_K = _env_int("RAG_TOP_K", 3, 1, 20)
SIMILARITY_THRESHOLD = _env_float("RAG_SIMILARITY_THRESHOLD", 0.03, 0.0, 1.0)
CONTEXT_MAX_LENGTH = _env_int("RAG_CONTEXT_MAX_LENGTH", 1500, 100, 20000)
QUERY_WEIGHT = _env_int("RAG_QUERY_WEIGHT", 10, 1, 100)
EXPANSION_WEIGHT = _env_int("RAG_EXPANSION_WEIGHT", 1, 0, 100)

# ==== Logs / telemetria ====
DEBUG_LOG = _env_bool("DEBUG_LOG", True)
TELEMETRY_ENABLED = _env_bool("TELEMETRY_ENABLED", False)
LOG_DIR = _env_str("LOG_DIR", "./logs")


def _log_debug(msg: str):
    if DEBUG_LOG:
        print(f"[DEBUG] {msg}", flush=True)
