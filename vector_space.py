"""
Espaço vetorial bag-of-words: vocabulário, vetores de documentos e ranking por cosseno.

Um ``BowIndex`` é imutável depois de construído. A reconstrução sempre gera um
novo índice completo (vocabulário + vetores), o que mantém todos os vetores com
a mesma dimensão do vocabulário publicado junto com eles.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from knowledge_base import KnowledgeDocument
from text_normalizer import tokenize

Vector = Tuple[float, ...]


@dataclass(frozen=True)
class VectorizedDocument:
    document: KnowledgeDocument
    vector: Vector
    norm: float

    @property
    def source(self) -> str:
        return self.document.source


@dataclass(frozen=True)
class RankedResult:
    document: KnowledgeDocument
    similarity: float

    @property
    def source(self) -> str:
        return self.document.source

    @property
    def content(self) -> str:
        return self.document.content

    def as_dict(self) -> Dict[str, object]:
        return {"source": self.source, "similarity": round(self.similarity, 6)}


@dataclass(frozen=True)
class BowIndex:
    vocabulary: Tuple[str, ...]
    entries: Tuple[VectorizedDocument, ...]
    term_index: Mapping[str, int] = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.vocabulary)

    def __len__(self) -> int:
        return len(self.entries)


def build_vocabulary(token_lists: Iterable[Sequence[str]], extra_terms: Iterable[str] = ()) -> Tuple[str, ...]:
    """Termos únicos na ordem da primeira ocorrência: documentos primeiro, depois sinônimos."""
    seen: Dict[str, None] = {}
    for tokens in token_lists:
        for token in tokens:
            seen.setdefault(token, None)
    for term in extra_terms:
        if term:
            seen.setdefault(term, None)
    return tuple(seen)


def vectorize(
    terms: Iterable[str],
    term_index: Mapping[str, int],
    size: int,
    weights: Optional[Mapping[str, float]] = None,
) -> Vector:
    """Soma ``weights[term]`` (padrão 1) por ocorrência; termos fora do vocabulário são ignorados."""
    vector = [0.0] * size
    weights = weights or {}
    for term in terms:
        idx = term_index.get(term)
        if idx is not None:
            vector[idx] += weights.get(term, 1)
    return tuple(vector)


def vector_norm(vector: Sequence[float]) -> float:
    return math.sqrt(sum(v * v for v in vector))


def cosine_similarity(
    a: Sequence[float],
    b: Sequence[float],
    norm_a: Optional[float] = None,
    norm_b: Optional[float] = None,
) -> float:
    """Cosseno entre dois vetores; 0.0 para norma zero ou dimensões diferentes."""
    if len(a) != len(b):
        print(
            f"[WARN] Vetores com dimensões diferentes ({len(a)} != {len(b)}); "
            "índice inconsistente, similaridade zerada.",
            flush=True,
        )
        return 0.0
    norm_a = vector_norm(a) if norm_a is None else norm_a
    norm_b = vector_norm(b) if norm_b is None else norm_b
    if norm_a == 0 or norm_b == 0:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b) if x and y)
    return dot / (norm_a * norm_b)


def build_index(documents: Sequence[KnowledgeDocument], extra_terms: Iterable[str] = ()) -> BowIndex:
    """Tokeniza cada documento uma única vez e gera vocabulário + vetores de peso 1."""
    token_lists = [tokenize(doc.content) for doc in documents]
    vocabulary = build_vocabulary(token_lists, extra_terms)
    term_index = {term: idx for idx, term in enumerate(vocabulary)}
    size = len(vocabulary)

    entries = []
    for doc, tokens in zip(documents, token_lists):
        vector = vectorize(tokens, term_index, size)
        entries.append(VectorizedDocument(document=doc, vector=vector, norm=vector_norm(vector)))
    return BowIndex(vocabulary=vocabulary, entries=tuple(entries), term_index=term_index)


def rank(query_vector: Sequence[float], entries: Iterable[VectorizedDocument]) -> List[RankedResult]:
    """Similaridade de cada entrada com a consulta, em ordem decrescente (estável nos empates)."""
    query_norm = vector_norm(query_vector)
    scored = [
        RankedResult(
            document=entry.document,
            similarity=cosine_similarity(query_vector, entry.vector, query_norm, entry.norm),
        )
        for entry in entries
    ]
    scored.sort(key=lambda item: item.similarity, reverse=True)
    return scored


__all__ = [
    "BowIndex",
    "RankedResult",
    "VectorizedDocument",
    "build_index",
    "build_vocabulary",
    "cosine_similarity",
    "rank",
    "vector_norm",
    "vectorize",
]
