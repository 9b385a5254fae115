# -*- coding: utf-8 -*-
"""
Registro de regras de tópico (boosts) carregado de ``config/ontology/topic_rules.yml``.

Cada regra combina um predicado sobre a consulta normalizada (substring sobre
texto sem acentos) com um predicado sobre a fonte do bloco. A ordem do arquivo
é a ordem de precedência da cascata.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import yaml

from knowledge_base import KnowledgeBaseError, PROJECT_ROOT
from stage_filter import has_price_access
from synonyms import SynonymGroup
from text_normalizer import fold_text

DEFAULT_TOPIC_RULES_PATH = PROJECT_ROOT / "config" / "ontology" / "topic_rules.yml"


class RuleMode(str, Enum):
    SHORT_CIRCUIT = "short_circuit"
    REORDER = "reorder"
    MORE_SOCIAL_PROOF = "more_social_proof"


@dataclass(frozen=True)
class TopicRule:
    name: str
    mode: RuleMode
    query_terms: Tuple[str, ...]
    doc_sources: FrozenSet[str] = frozenset()
    doc_prefixes: Tuple[str, ...] = ()
    exclusion_terms: Tuple[str, ...] = ()
    requires_price_access: bool = False
    context_floor: Optional[int] = None
    min_similarity: Optional[float] = None
    history_terms: Tuple[str, ...] = ()

    def query_match(self, folded_query: str) -> bool:
        """``folded_query`` já deve estar em minúsculas e sem acentos (``fold_text``)."""
        if not folded_query:
            return False
        if any(term in folded_query for term in self.exclusion_terms):
            return False
        return any(term in folded_query for term in self.query_terms)

    def document_match(self, source: str) -> bool:
        return source in self.doc_sources or source.startswith(self.doc_prefixes)

    def applies_to_stage(self, stage: Optional[str]) -> bool:
        return not self.requires_price_access or has_price_access(stage)

    def history_match(self, folded_message: str) -> bool:
        return any(term in folded_message for term in self.history_terms)


class TopicRegistry:
    """Coleção ordenada e imutável de ``TopicRule``."""

    def __init__(self, rules: Sequence[TopicRule]):
        self._rules: Tuple[TopicRule, ...] = tuple(rules)
        self._by_name: Dict[str, TopicRule] = {rule.name: rule for rule in self._rules}

    def __iter__(self) -> Iterator[TopicRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def get(self, name: str) -> Optional[TopicRule]:
        return self._by_name.get(name)

    @property
    def names(self) -> List[str]:
        return [rule.name for rule in self._rules]

    def matching(self, folded_query: str) -> List[TopicRule]:
        return [rule for rule in self._rules if rule.query_match(folded_query)]

    def more_social_proof_rule(self) -> Optional[TopicRule]:
        for rule in self._rules:
            if rule.mode is RuleMode.MORE_SOCIAL_PROOF:
                return rule
        return None


def _fold_terms(values: Any, field_name: str, rule_name: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if not isinstance(values, (list, tuple)):
        raise KnowledgeBaseError(f"Regra '{rule_name}': '{field_name}' deve ser uma lista.")
    seen: Dict[str, None] = {}
    for value in values:
        folded = fold_text(str(value)).strip()
        if folded:
            seen.setdefault(folded, None)
    return tuple(seen)


def _optional_number(raw: Mapping[str, Any], key: str, cast, rule_name: str):
    value = raw.get(key)
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise KnowledgeBaseError(f"Regra '{rule_name}': '{key}' inválido ({value!r}).") from exc


def build_topic_registry(
    raw_rules: Iterable[Mapping[str, Any]],
    synonym_groups: Iterable[SynonymGroup] = (),
) -> TopicRegistry:
    """
    Converte a lista crua do YAML em um ``TopicRegistry`` validado.

    Resolve ``query_from_synonyms`` (formas cruas de um grupo de sinônimos),
    ``also_matches`` (indicadores de outra regra somados aos próprios) e
    ``excluded_by`` (indicadores de outra regra que anulam esta). Todos os
    indicadores são dobrados (minúsculas, sem acento) na carga.
    """
    groups = {group.name: group for group in synonym_groups}
    raw_list = list(raw_rules)

    own_terms: Dict[str, Tuple[str, ...]] = {}
    for position, raw in enumerate(raw_list):
        if not isinstance(raw, Mapping) or not str(raw.get("name") or "").strip():
            raise KnowledgeBaseError(f"Regra #{position} sem 'name'.")
        name = str(raw["name"]).strip()
        if name in own_terms:
            raise KnowledgeBaseError(f"Regra duplicada: '{name}'.")
        terms = _fold_terms(raw.get("query_terms"), "query_terms", name)
        group_name = raw.get("query_from_synonyms")
        if group_name:
            group = groups.get(str(group_name))
            if group is None:
                raise KnowledgeBaseError(f"Regra '{name}': grupo de sinônimos '{group_name}' inexistente.")
            terms = terms + tuple(t for t in group.raw_forms if t not in terms)
        own_terms[name] = terms

    def _terms_of(names: Any, field_name: str, rule_name: str) -> Tuple[str, ...]:
        collected: Dict[str, None] = {}
        for other in _fold_terms(names, field_name, rule_name):
            if other not in own_terms:
                raise KnowledgeBaseError(f"Regra '{rule_name}': '{field_name}' cita regra inexistente '{other}'.")
            collected.update(dict.fromkeys(own_terms[other]))
        return tuple(collected)

    rules: List[TopicRule] = []
    for raw in raw_list:
        name = str(raw["name"]).strip()
        try:
            mode = RuleMode(str(raw.get("mode") or "").strip())
        except ValueError as exc:
            raise KnowledgeBaseError(f"Regra '{name}': modo inválido {raw.get('mode')!r}.") from exc

        query_terms = own_terms[name]
        extra = _terms_of(raw.get("also_matches"), "also_matches", name)
        query_terms = query_terms + tuple(t for t in extra if t not in query_terms)
        if not query_terms:
            raise KnowledgeBaseError(f"Regra '{name}' sem indicadores de consulta.")

        doc_sources = frozenset(str(s).strip() for s in raw.get("doc_sources") or [] if str(s).strip())
        doc_prefixes = tuple(str(p).strip() for p in raw.get("doc_prefixes") or [] if str(p).strip())
        if not doc_sources and not doc_prefixes:
            raise KnowledgeBaseError(f"Regra '{name}' sem fontes ('doc_sources' ou 'doc_prefixes').")

        history_terms = _fold_terms(raw.get("history_terms"), "history_terms", name)
        if mode is RuleMode.MORE_SOCIAL_PROOF and (not history_terms or len(doc_sources) != 1):
            raise KnowledgeBaseError(
                f"Regra '{name}': 'more_social_proof' exige 'history_terms' e exatamente uma fonte."
            )

        rules.append(
            TopicRule(
                name=name,
                mode=mode,
                query_terms=query_terms,
                doc_sources=doc_sources,
                doc_prefixes=doc_prefixes,
                exclusion_terms=_terms_of(raw.get("excluded_by"), "excluded_by", name),
                requires_price_access=bool(raw.get("requires_price_access", False)),
                context_floor=_optional_number(raw, "context_floor", int, name),
                min_similarity=_optional_number(raw, "min_similarity", float, name),
                history_terms=history_terms,
            )
        )
    return TopicRegistry(rules)


def load_topic_rules(
    path: str | Path | None = None,
    synonym_groups: Iterable[SynonymGroup] = (),
) -> TopicRegistry:
    """Carrega o registro de ``path`` (padrão: ``TOPIC_RULES_YAML``)."""
    target = Path(path or os.getenv("TOPIC_RULES_YAML") or DEFAULT_TOPIC_RULES_PATH)
    try:
        with open(target, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as exc:
        raise KnowledgeBaseError(f"Arquivo de regras de tópico não encontrado: {target}") from exc
    except yaml.YAMLError as exc:
        raise KnowledgeBaseError(f"YAML de regras de tópico inválido ({target}): {exc}") from exc

    raw_rules = data.get("rules") if isinstance(data, Mapping) else None
    if not isinstance(raw_rules, list) or not raw_rules:
        raise KnowledgeBaseError(f"Lista 'rules' ausente ou vazia em {target}")
    registry = build_topic_registry(raw_rules, synonym_groups)
    print(f"[DICT] {len(registry)} regras de tópico carregadas de {target}", flush=True)
    return registry


__all__ = [
    "DEFAULT_TOPIC_RULES_PATH",
    "RuleMode",
    "TopicRegistry",
    "TopicRule",
    "build_topic_registry",
    "load_topic_rules",
]
