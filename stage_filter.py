# stage_filter.py
# Guarda de estágio do funil: blocos com valores de preço só ficam visíveis
# nas etapas de oferta e fechamento. O filtro roda ANTES do ranking, então
# nenhuma regra de tópico consegue trazer esses blocos de volta.

from __future__ import annotations

from typing import Iterable, List, Optional, TypeVar

from vector_space import RankedResult, VectorizedDocument

# Etapas do funil de vendas, na ordem em que a conversa costuma percorrê-las.
FUNNEL_STAGES = (
    "NAME_CAPTURE_VALIDATION",
    "GREETING_NEW",
    "PROBLEM_EXPLORATION_INITIAL",
    "PROBLEM_EXPLORATION_DIFFICULTY",
    "PROBLEM_IMPACT",
    "SOLUTION_PRESENTATION",
    "SOCIAL_PROOF_DELIVERY",
    "PLAN_OFFER",
    "CLOSE_DEAL",
    "POST_PURCHASE_FOLLOWUP",
    "UPSELL_OFFER",
    "UPSELL_CLOSE",
    "DOWNSELL_OFFER",
    "DOWNSELL_CLOSE",
    "GENERAL_SUPPORT",
    "CHECKOUT",
    "PAYMENT_CONFIRMATION",
)

# Etapas em que a oferta (e o preço) já foi apresentada.
OFFER_ELIGIBLE_STAGES = frozenset({
    "PLAN_OFFER",
    "CLOSE_DEAL",
    "POST_PURCHASE_FOLLOWUP",
    "CHECKOUT",
    "PAYMENT_CONFIRMATION",
})

# Blocos com valores exatos ou argumentação de preço: removidos fora da oferta.
STRICT_PRICE_SOURCES = frozenset({"investimento_completo", "objecao_preco_alto"})

# Blocos que só mencionam preço de passagem; continuam disponíveis.
PARTIAL_PRICE_SOURCES = frozenset({"faq_garantia_satisfacao"})

T = TypeVar("T", VectorizedDocument, RankedResult)


def has_price_access(stage: Optional[str]) -> bool:
    """Sem estágio definido ou em etapa de oferta, o preço pode aparecer."""
    return not stage or stage in OFFER_ELIGIBLE_STAGES


def is_strict_price_source(source: str) -> bool:
    return source in STRICT_PRICE_SOURCES


def filter_by_stage(entries: Iterable[T], stage: Optional[str]) -> List[T]:
    items = list(entries)
    if has_price_access(stage):
        return items
    return [item for item in items if not is_strict_price_source(item.source)]


__all__ = [
    "FUNNEL_STAGES",
    "OFFER_ELIGIBLE_STAGES",
    "PARTIAL_PRICE_SOURCES",
    "STRICT_PRICE_SOURCES",
    "filter_by_stage",
    "has_price_access",
    "is_strict_price_source",
]
