"""
Cascata de boosts por tópico aplicada sobre a lista ranqueada por similaridade.

As regras são avaliadas na ordem do registro. Uma regra ``short_circuit`` que
casa encerra a cascata; uma regra ``reorder`` apenas reordena e deixa as
próximas regras agirem sobre a lista já reordenada. A regra
``more_social_proof`` depende do histórico da conversa.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from settings import _log_debug
from stage_filter import OFFER_ELIGIBLE_STAGES
from topic_rules import RuleMode, TopicRegistry, TopicRule
from vector_space import RankedResult


@dataclass
class CascadeOutcome:
    results: List[RankedResult]
    short_circuit: Optional[TopicRule] = None
    applied: List[str] = field(default_factory=list)

    @property
    def short_circuit_name(self) -> Optional[str]:
        return self.short_circuit.name if self.short_circuit else None


def partition(results: Sequence[RankedResult], rule: TopicRule) -> List[RankedResult]:
    """Blocos da regra primeiro, depois o restante; cada metade mantém a ordem original."""
    matching = [item for item in results if rule.document_match(item.source)]
    others = [item for item in results if not rule.document_match(item.source)]
    return matching + others


def _apply_more_social_proof(
    working: List[RankedResult],
    rule: TopicRule,
    stage: Optional[str],
    has_prior_request: Callable[[], bool],
    on_prefer_channel: Callable[[], None],
    outcome: CascadeOutcome,
) -> List[RankedResult]:
    targets = [item for item in working if rule.document_match(item.source)]
    if not targets:
        _log_debug(f"[RAG] '{rule.name}' casou, mas o bloco de redes sociais não está na lista.")
        return working

    others = [item for item in working if not rule.document_match(item.source)]
    if not has_prior_request():
        _log_debug(f"[RAG] '{rule.name}': primeiro pedido de provas; bloco de redes sociais retido.")
        outcome.applied.append(f"{rule.name}:withheld")
        return others

    if stage in OFFER_ELIGIBLE_STAGES:
        _log_debug(f"[RAG] '{rule.name}' em {stage}: somente o bloco de redes sociais.")
        outcome.applied.append(f"{rule.name}:only")
        on_prefer_channel()
        return targets

    _log_debug(f"[RAG] '{rule.name}' em {stage}: bloco de redes sociais priorizado.")
    outcome.applied.append(f"{rule.name}:first")
    return targets + others


def apply_topic_boosts(
    ranked: Sequence[RankedResult],
    folded_query: str,
    stage: Optional[str],
    registry: TopicRegistry,
    has_prior_request: Callable[[], bool] = lambda: False,
    on_prefer_channel: Callable[[], None] = lambda: None,
) -> CascadeOutcome:
    """
    Percorre o registro e devolve a lista final (ainda sem limiar/top-K).

    ``has_prior_request`` só é chamado quando a regra de mais provas sociais
    precisa decidir; ``on_prefer_channel`` dispara o registro da preferência
    pelo canal de provas históricas.
    """
    outcome = CascadeOutcome(results=list(ranked))
    for rule in registry:
        if not rule.applies_to_stage(stage) or not rule.query_match(folded_query):
            continue

        if rule.mode is RuleMode.MORE_SOCIAL_PROOF:
            outcome.results = _apply_more_social_proof(
                outcome.results, rule, stage, has_prior_request, on_prefer_channel, outcome
            )
            continue

        outcome.results = partition(outcome.results, rule)
        if rule.mode is RuleMode.SHORT_CIRCUIT:
            _log_debug(f"[RAG] Regra '{rule.name}' encerrou a cascata.")
            outcome.short_circuit = rule
            return outcome
        outcome.applied.append(rule.name)
    return outcome


__all__ = ["CascadeOutcome", "apply_topic_boosts", "partition"]
