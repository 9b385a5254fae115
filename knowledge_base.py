# -*- coding: utf-8 -*-
"""
Carregamento e validação da base de conhecimento.

A base é uma lista de blocos ``{"source": ..., "content": ...}``. Cada bloco
passa pelo mesmo reparo de mojibake usado no restante do projeto (via
``Document`` do LangChain) e é validado antes de qualquer indexação: uma base
vazia, malformada ou com fontes repetidas é erro de configuração.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping

import yaml
from langchain_core.documents import Document

from text_normalizer import normalize_documents

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_KNOWLEDGE_BASE_PATH = PROJECT_ROOT / "data" / "knowledge_base.json"


class KnowledgeBaseError(ValueError):
    """Base de conhecimento ou ontologia ausente, vazia ou malformada."""


@dataclass(frozen=True)
class KnowledgeDocument:
    source: str
    content: str


def _knowledge_base_path() -> Path:
    raw = os.getenv("KNOWLEDGE_BASE_PATH")
    return Path(raw.strip()) if raw and raw.strip() else DEFAULT_KNOWLEDGE_BASE_PATH


def _read_entries(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() in {".yml", ".yaml"}:
                return yaml.safe_load(handle)
            return json.load(handle)
    except FileNotFoundError as exc:
        raise KnowledgeBaseError(f"Base de conhecimento não encontrada: {path}") from exc
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise KnowledgeBaseError(f"Base de conhecimento ilegível em {path}: {exc}") from exc


def _to_document(entry: Any, position: int) -> Document:
    if isinstance(entry, KnowledgeDocument):
        return Document(page_content=entry.content, metadata={"source": entry.source})
    if not isinstance(entry, Mapping):
        raise KnowledgeBaseError(f"Bloco #{position} não é um objeto {{source, content}}.")
    source = entry.get("source")
    content = entry.get("content")
    if not isinstance(source, str) or not source.strip():
        raise KnowledgeBaseError(f"Bloco #{position} sem 'source' válido.")
    if not isinstance(content, str):
        raise KnowledgeBaseError(f"Bloco '{source}' sem 'content' textual.")
    return Document(page_content=content, metadata={"source": source.strip()})


def build_documents(entries: Iterable[Any] | None) -> List[KnowledgeDocument]:
    """
    Valida e normaliza os blocos recebidos.

    Aceita dicionários ``{source, content}`` ou ``KnowledgeDocument``. Levanta
    ``KnowledgeBaseError`` para lista vazia, bloco malformado ou fonte repetida.
    """
    if entries is None or isinstance(entries, (str, bytes, Mapping)):
        raise KnowledgeBaseError("A base de conhecimento deve ser uma lista de blocos.")

    docs = [_to_document(entry, idx) for idx, entry in enumerate(entries)]
    if not docs:
        raise KnowledgeBaseError("A base de conhecimento está vazia.")

    seen: set[str] = set()
    result: List[KnowledgeDocument] = []
    for doc in normalize_documents(docs):
        source = doc.metadata["source"]
        if source in seen:
            raise KnowledgeBaseError(f"Fonte duplicada na base de conhecimento: '{source}'.")
        seen.add(source)
        result.append(KnowledgeDocument(source=source, content=doc.page_content))
    return result


def load_knowledge_base(path: str | Path | None = None) -> List[KnowledgeDocument]:
    """Lê a base de ``path`` (ou ``KNOWLEDGE_BASE_PATH``) em JSON ou YAML."""
    target = Path(path) if path is not None else _knowledge_base_path()
    entries = _read_entries(target)
    if isinstance(entries, Mapping) and "chunks" in entries:
        entries = entries["chunks"]
    docs = build_documents(entries)
    print(f"[KB] {len(docs)} blocos carregados de {target}", flush=True)
    return docs


__all__ = [
    "DEFAULT_KNOWLEDGE_BASE_PATH",
    "KnowledgeBaseError",
    "KnowledgeDocument",
    "build_documents",
    "load_knowledge_base",
]
