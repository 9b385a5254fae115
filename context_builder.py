"""Montagem do bloco de contexto entregue ao LLM."""

from __future__ import annotations

from typing import Iterable, Sequence

from topic_rules import TopicRegistry
from vector_space import RankedResult

DEFAULT_CONTEXT_MAX_LENGTH = 1500
BLOCK_SEPARATOR = "\n\n---\n\n"
TRUNCATION_SUFFIX = "..."


def format_block(result: RankedResult) -> str:
    return f"Source: {result.source}\nContent: {result.content}"


def effective_budget(folded_query: str, max_length: int, registry: TopicRegistry) -> int:
    """Maior valor entre o orçamento pedido e o piso de cada tópico que casa com a consulta."""
    floors = [
        rule.context_floor
        for rule in registry
        if rule.context_floor is not None and rule.query_match(folded_query)
    ]
    return max([max_length, *floors])


def assemble_context(results: Sequence[RankedResult] | Iterable[RankedResult], max_length: int) -> str:
    """
    Junta os blocos com ``---`` e corta no orçamento de caracteres.

    O corte é por caractere e pode cair no meio de um bloco; nesse caso o texto
    termina com ``...``.
    """
    context = BLOCK_SEPARATOR.join(format_block(result) for result in results)
    if len(context) > max_length:
        return context[:max_length] + TRUNCATION_SUFFIX
    return context


__all__ = [
    "BLOCK_SEPARATOR",
    "DEFAULT_CONTEXT_MAX_LENGTH",
    "TRUNCATION_SUFFIX",
    "assemble_context",
    "effective_budget",
    "format_block",
]
