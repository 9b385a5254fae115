# intelligent_rag.py
# Motor de recuperação do SmartZap: dada a mensagem do lead, o estágio do funil
# e o histórico, devolve os blocos da base de conhecimento mais relevantes
# (ou o contexto já montado para o prompt do LLM).
#
# Fluxo por consulta:
#   tokenização -> expansão por sinônimos (pesos 10x/1x) -> filtro de estágio
#   -> ranking por cosseno -> cascata de boosts por tópico -> limiar + top-K.

from __future__ import annotations

import asyncio
import inspect
import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Iterable, List, Optional, Sequence

import settings
from context_builder import assemble_context, effective_budget
from conversation_history import ChatTurn, HistoryLike, latest_chat_id, resolve_history
from knowledge_base import KnowledgeDocument, build_documents, load_knowledge_base
from preference_store import RedisPreferenceSink
from settings import _log_debug
from stage_filter import filter_by_stage
from synonyms import ExpandedQuery, SynonymGroup, expand_query, load_synonyms, vocabulary_terms
from telemetry import log_event, retrieval_event
from text_normalizer import fold_text, tokenize
from topic_boosts import CascadeOutcome, apply_topic_boosts
from topic_rules import TopicRegistry, TopicRule, load_topic_rules
from vector_space import BowIndex, RankedResult, VectorizedDocument, build_index, rank, vectorize

_EXECUTOR_LOCK = threading.Lock()
_PREFERENCE_EXECUTOR: Optional[ThreadPoolExecutor] = None


def _preference_executor() -> ThreadPoolExecutor:
    global _PREFERENCE_EXECUTOR
    with _EXECUTOR_LOCK:
        if _PREFERENCE_EXECUTOR is None:
            _PREFERENCE_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="rag-pref")
        return _PREFERENCE_EXECUTOR


class _HistoryProbe:
    """Resolve o histórico uma única vez por consulta, e só se alguma regra precisar."""

    def __init__(self, history: HistoryLike, chat_id: Optional[str], rule: Optional[TopicRule]):
        self._history = history
        self._chat_id = chat_id
        self._rule = rule
        self._turns: Optional[List[ChatTurn]] = None

    def turns(self) -> List[ChatTurn]:
        if self._turns is None:
            try:
                self._turns = resolve_history(self._history)
            except Exception as exc:
                print(f"[RAG] Falha ao consultar histórico; seguindo sem ele: {exc}", flush=True)
                self._turns = []
        return self._turns

    def has_prior_request(self) -> bool:
        if self._rule is None:
            return False
        for turn in self.turns():
            if turn.is_user and self._rule.history_match(fold_text(turn.content)):
                _log_debug(f"[RAG] Pedido anterior de provas no histórico: '{turn.content[:50]}'")
                return True
        return False

    def chat_id(self) -> Optional[str]:
        return self._chat_id or latest_chat_id(self.turns())


class IntelligentRAG:
    """
    Recuperação bag-of-words com expansão por sinônimos e boosts por tópico.

    O índice (vocabulário + vetores) é imutável; ``reinitialize`` constrói um
    índice novo e troca a referência de uma vez, de modo que consultas em
    andamento sempre enxergam um índice consistente. Base vazia ou malformada
    levanta ``KnowledgeBaseError`` na construção.

    Args:
        documents: blocos ``{source, content}``; ``None`` lê ``KNOWLEDGE_BASE_PATH``.
        synonym_groups: grupos já carregados; ``None`` lê ``SYNONYMS_YAML``.
        registry: regras de tópico; ``None`` lê ``TOPIC_RULES_YAML``.
        preference_sink: objeto com ``set_prefer_historical_proof_channel(chat_id, value)``.
        executor: onde a gravação de preferência roda (padrão: pool interno).
    """

    def __init__(
        self,
        documents: Optional[Iterable[Any]] = None,
        *,
        synonym_groups: Optional[Iterable[SynonymGroup]] = None,
        registry: Optional[TopicRegistry] = None,
        preference_sink: Any = None,
        executor: Optional[Executor] = None,
    ):
        self._synonym_groups = tuple(synonym_groups) if synonym_groups is not None else load_synonyms()
        self._registry = registry if registry is not None else load_topic_rules(synonym_groups=self._synonym_groups)
        self._preference_sink = preference_sink
        self._executor = executor
        self._build_lock = threading.Lock()
        self._index: BowIndex = self._build(documents)

    # ---------- índice ----------
    def _build(self, documents: Optional[Iterable[Any]]) -> BowIndex:
        docs = load_knowledge_base() if documents is None else build_documents(documents)
        index = build_index(docs, vocabulary_terms(self._synonym_groups))
        print(f"[RAG] Vocabulário BoW com {index.size} termos; {len(index)} blocos indexados.", flush=True)
        return index

    def reinitialize(self, documents: Optional[Iterable[Any]] = None) -> None:
        """Reconstrói o índice; em caso de erro o índice anterior continua em uso."""
        with self._build_lock:
            print("[RAG] Reinicializando com conhecimento atualizado...", flush=True)
            self._index = self._build(documents)

    @property
    def index(self) -> BowIndex:
        return self._index

    @property
    def vocabulary(self) -> Sequence[str]:
        return self._index.vocabulary

    @property
    def vectorized_documents(self) -> Sequence[VectorizedDocument]:
        return self._index.entries

    @property
    def documents(self) -> List[KnowledgeDocument]:
        return [entry.document for entry in self._index.entries]

    @property
    def registry(self) -> TopicRegistry:
        return self._registry

    # ---------- consulta ----------
    def expand(self, query: str) -> ExpandedQuery:
        return expand_query(tokenize(query), self._synonym_groups)

    def vectorize_query(self, query: str, index: Optional[BowIndex] = None):
        index = self._index if index is None else index
        expanded = self.expand(query)
        weights = expanded.weights(settings.QUERY_WEIGHT, settings.EXPANSION_WEIGHT)
        return vectorize(expanded.expanded, index.term_index, index.size, weights)

    def detect_topics(self, query: str) -> List[str]:
        """Nomes das regras cujos indicadores aparecem na consulta (ordem do registro)."""
        return [rule.name for rule in self._registry.matching(fold_text(query))]

    def rank(self, query: str, stage: Optional[str] = None) -> List[RankedResult]:
        """Ranking puro por cosseno após o filtro de estágio, sem boosts nem limiar."""
        index = self._index
        return rank(self.vectorize_query(query, index), filter_by_stage(index.entries, stage))

    def get_relevant_chunks(
        self,
        query: str,
        stage: Optional[str] = None,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
        history: HistoryLike = None,
        chat_id: Optional[str] = None,
    ) -> List[RankedResult]:
        """
        Blocos mais relevantes para ``query`` no estágio ``stage``.

        Retorna no máximo ``top_k`` resultados com similaridade estritamente
        maior que ``threshold``. Nunca levanta exceção por falta de resultado.
        """
        started = time.perf_counter()
        top_k = settings.TOP_K if top_k is None else top_k
        threshold = settings.SIMILARITY_THRESHOLD if threshold is None else threshold
        if not query or not query.strip():
            return []

        ranked = self.rank(query, stage)
        probe = _HistoryProbe(history, chat_id, self._registry.more_social_proof_rule())
        outcome = apply_topic_boosts(
            ranked,
            fold_text(query),
            stage,
            self._registry,
            has_prior_request=probe.has_prior_request,
            on_prefer_channel=lambda: self._notify_preference(probe.chat_id()),
        )

        cutoff = threshold
        if outcome.short_circuit is not None and outcome.short_circuit.min_similarity is not None:
            cutoff = outcome.short_circuit.min_similarity
        results = [item for item in outcome.results if item.similarity > cutoff][: max(top_k, 0)]

        via = f" via '{outcome.short_circuit_name}'" if outcome.short_circuit else ""
        print(f"[RAG] {len(results)} blocos relevantes (estágio: {stage}){via}", flush=True)
        _log_debug(f"[RAG] reordenações={outcome.applied} fontes={[r.as_dict() for r in results]}")
        self._record(query, stage, outcome, results, started)
        return results

    def get_relevant_context(
        self,
        query: str,
        max_length: Optional[int] = None,
        stage: Optional[str] = None,
        history: HistoryLike = None,
        chat_id: Optional[str] = None,
    ) -> str:
        """
        Contexto textual para o prompt: blocos ``Source/Content`` separados por
        ``---``, limitados ao orçamento efetivo (o maior entre ``max_length`` e o
        piso de cada tópico detectado). String vazia quando nada é relevante.
        """
        budget = effective_budget(
            fold_text(query or ""),
            settings.CONTEXT_MAX_LENGTH if max_length is None else max_length,
            self._registry,
        )
        results = self.get_relevant_chunks(query, stage, history=history, chat_id=chat_id)
        if not results:
            return ""
        return assemble_context(results, budget)

    # ---------- efeitos colaterais ----------
    def _notify_preference(self, chat_id: Optional[str]) -> None:
        if self._preference_sink is None:
            _log_debug("[PREF] Nenhum destino de preferências configurado.")
            return
        if not chat_id:
            _log_debug("[PREF] chat_id ausente; preferência de canal não registrada.")
            return
        executor = self._executor or _preference_executor()
        executor.submit(self._write_preference, chat_id)

    def _write_preference(self, chat_id: str) -> None:
        try:
            result = self._preference_sink.set_prefer_historical_proof_channel(chat_id, True)
            if inspect.iscoroutine(result):
                asyncio.run(result)
        except Exception as exc:
            print(f"[PREF] Erro ao salvar preferência de canal ({chat_id}): {exc}", flush=True)

    def _record(self, query: str, stage: Optional[str], outcome: CascadeOutcome, results, started: float) -> None:
        if not settings.TELEMETRY_ENABLED:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        log_event(settings.LOG_DIR, retrieval_event(query, stage, outcome, results, elapsed_ms))


_ENGINE_LOCK = threading.Lock()
_ENGINE: Optional[IntelligentRAG] = None


def get_engine() -> IntelligentRAG:
    """Instância compartilhada, com preferências persistidas no Redis."""
    global _ENGINE
    if _ENGINE is not None:
        return _ENGINE
    with _ENGINE_LOCK:
        if _ENGINE is None:
            _ENGINE = IntelligentRAG(preference_sink=RedisPreferenceSink())
        return _ENGINE


__all__ = ["IntelligentRAG", "get_engine"]
