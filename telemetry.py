# telemetry.py
# Registro das recuperações em JSON Lines (um evento por consulta), ligado por
# TELEMETRY_ENABLED. Serve para auditar quais regras de tópico decidiram cada
# resposta e quais blocos foram entregues ao LLM.
import json
import os
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone

# Logger único; refeito apenas se o arquivo de destino mudar.
_telemetry_logger = None
_telemetry_path = None

def _get_logger(log_dir: str, filename: str) -> logging.Logger | None:
    """
    Retorna o logger 'rag_telemetry' gravando em `log_dir/filename`.

    Rotação a cada 10MB com 5 backups. Se o diretório não puder ser criado,
    avisa no console e devolve None (a consulta segue normalmente).
    """
    global _telemetry_logger, _telemetry_path
    target = os.path.abspath(os.path.join(log_dir, filename))
    if _telemetry_logger is not None and _telemetry_path == target:
        return _telemetry_logger

    reset_telemetry_logger()
    try:
        os.makedirs(log_dir, exist_ok=True)
        handler = RotatingFileHandler(target, maxBytes=10*1024*1024, backupCount=5, encoding='utf-8')
    except OSError as e:
        print(f"CRITICAL: Telemetria de recuperação indisponível em {target}: {e}", flush=True)
        return None

    handler.setFormatter(logging.Formatter('%(message)s'))
    retrieval_logger = logging.getLogger('rag_telemetry')
    retrieval_logger.setLevel(logging.INFO)
    retrieval_logger.addHandler(handler)
    retrieval_logger.propagate = False

    _telemetry_logger, _telemetry_path = retrieval_logger, target
    return retrieval_logger

def reset_telemetry_logger():
    """Fecha e remove os handlers atuais (troca de diretório e testes)."""
    global _telemetry_logger, _telemetry_path
    if _telemetry_logger is not None:
        for handler in list(_telemetry_logger.handlers):
            handler.close()
            _telemetry_logger.removeHandler(handler)
    _telemetry_logger = None
    _telemetry_path = None

def retrieval_event(query: str, stage, outcome, results, timing_ms: float) -> dict:
    """Payload de uma recuperação: regra que encerrou a cascata, reordenações e fontes."""
    return {
        "event": "retrieval",
        "query": query,
        "stage": stage,
        "short_circuit": outcome.short_circuit_name,
        "reorders": list(outcome.applied),
        "results": [r.as_dict() for r in results],
        "timing_ms": round(timing_ms, 3),
    }

def log_event(log_dir: str, payload: dict, filename: str = "retrieval.log"):
    """
    Acrescenta `ts_iso` (UTC) ao payload e grava uma linha JSON.
    Payload não serializável só gera aviso no console.
    """
    retrieval_logger = _get_logger(log_dir, filename)
    if retrieval_logger is None:
        return

    event = {**payload, "ts_iso": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")}
    try:
        line = json.dumps(event, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        print(f"WARN: Evento de telemetria não serializável ({payload.get('event', '?')}): {e}", flush=True)
        return
    retrieval_logger.info(line)
