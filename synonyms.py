"""Mapa de sinônimos (YAML) e expansão de consultas com pesos."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple

import yaml

from knowledge_base import KnowledgeBaseError, PROJECT_ROOT
from text_normalizer import fold_text, prepare_term

DEFAULT_SYNONYMS_PATH = PROJECT_ROOT / "config" / "ontology" / "synonyms.yml"

QUERY_TERM_WEIGHT = 10
EXPANSION_TERM_WEIGHT = 1

SynonymMap = Dict[str, Tuple[str, ...]]


@dataclass(frozen=True)
class SynonymGroup:
    """Grupo de sinônimos com as formas cruas e as formas preparadas para o vocabulário."""

    name: str
    raw_forms: Tuple[str, ...]
    terms: Tuple[str, ...]

    @property
    def term_set(self) -> FrozenSet[str]:
        return frozenset(self.terms)


@dataclass(frozen=True)
class ExpandedQuery:
    original: Tuple[str, ...]
    expanded: Tuple[str, ...]

    def weights(
        self,
        query_weight: int = QUERY_TERM_WEIGHT,
        expansion_weight: int = EXPANSION_TERM_WEIGHT,
    ) -> Dict[str, int]:
        originals = set(self.original)
        return {
            term: (query_weight if term in originals else expansion_weight)
            for term in self.expanded
        }


def _dedupe(items: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for item in items:
        if item and item not in seen:
            seen[item] = None
    return tuple(seen)


def build_synonym_groups(raw_map: Mapping[str, Iterable[str]]) -> Tuple[SynonymGroup, ...]:
    """Prepara cada grupo: formas cruas dobradas e formas com radical, sem repetição."""
    groups = []
    for name, forms in raw_map.items():
        if not isinstance(forms, (list, tuple)):
            raise KnowledgeBaseError(f"Grupo de sinônimos '{name}' deve ser uma lista.")
        raw = _dedupe(fold_text(str(form)).strip() for form in forms)
        terms = _dedupe(prepare_term(form) for form in raw)
        groups.append(SynonymGroup(name=str(name), raw_forms=raw, terms=terms))
    return tuple(groups)


def load_synonyms(path: str | Path | None = None) -> Tuple[SynonymGroup, ...]:
    """
    Carrega os grupos de sinônimos de ``path`` (padrão: ``SYNONYMS_YAML``).

    O arquivo é obrigatório: sem ele a expansão de consultas muda o ranking
    silenciosamente, então a ausência é tratada como erro de configuração.
    """
    target = Path(path or os.getenv("SYNONYMS_YAML") or DEFAULT_SYNONYMS_PATH)
    try:
        with open(target, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise KnowledgeBaseError(f"Arquivo de sinônimos não encontrado: {target}") from exc
    except yaml.YAMLError as exc:
        raise KnowledgeBaseError(f"YAML de sinônimos inválido ({target}): {exc}") from exc

    raw_map = data.get("synonyms") if isinstance(data, Mapping) else None
    if not isinstance(raw_map, Mapping):
        raise KnowledgeBaseError(f"Chave 'synonyms' ausente em {target}")
    groups = build_synonym_groups(raw_map)
    print(f"[DICT] {len(groups)} grupos de sinônimos carregados de {target}", flush=True)
    return groups


def synonym_map(groups: Iterable[SynonymGroup]) -> SynonymMap:
    return {group.name: group.terms for group in groups}


def vocabulary_terms(groups: Iterable[SynonymGroup]) -> Tuple[str, ...]:
    """Todas as formas preparadas, na ordem dos grupos, para compor o vocabulário."""
    return _dedupe(term for group in groups for term in group.terms)


def expand_query(stems: Iterable[str], groups: Iterable[SynonymGroup]) -> ExpandedQuery:
    """
    Expande os radicais da consulta com todos os grupos em que aparecem.

    A relação é simétrica: qualquer membro de um grupo puxa o grupo inteiro.
    """
    original = _dedupe(stems)
    expanded: Dict[str, None] = dict.fromkeys(original)
    for group in groups:
        members = group.term_set
        if any(word in members for word in original):
            for term in group.terms:
                expanded.setdefault(term, None)
    return ExpandedQuery(original=original, expanded=tuple(expanded))


__all__ = [
    "EXPANSION_TERM_WEIGHT",
    "ExpandedQuery",
    "QUERY_TERM_WEIGHT",
    "SynonymGroup",
    "SynonymMap",
    "build_synonym_groups",
    "expand_query",
    "load_synonyms",
    "synonym_map",
    "vocabulary_terms",
]
