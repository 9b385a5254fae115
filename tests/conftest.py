from __future__ import annotations

import pytest

from intelligent_rag import IntelligentRAG
from knowledge_base import DEFAULT_KNOWLEDGE_BASE_PATH, load_knowledge_base
from synonyms import DEFAULT_SYNONYMS_PATH, build_synonym_groups, load_synonyms
from topic_rules import DEFAULT_TOPIC_RULES_PATH, build_topic_registry, load_topic_rules


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("KNOWLEDGE_BASE_PATH", "SYNONYMS_YAML", "TOPIC_RULES_YAML", "REDIS_URL", "PREFERENCE_TTL_SECONDS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def real_groups():
    return load_synonyms(DEFAULT_SYNONYMS_PATH)


@pytest.fixture(scope="session")
def real_registry(real_groups):
    return load_topic_rules(DEFAULT_TOPIC_RULES_PATH, synonym_groups=real_groups)


@pytest.fixture(scope="session")
def real_documents():
    return load_knowledge_base(DEFAULT_KNOWLEDGE_BASE_PATH)


@pytest.fixture(scope="session")
def real_engine(real_documents, real_groups, real_registry):
    return IntelligentRAG(real_documents, synonym_groups=real_groups, registry=real_registry)


class InlineExecutor:
    """Executa a tarefa na hora, para os testes não dependerem de threads."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, **kwargs):
        self.submitted.append(args)
        fn(*args, **kwargs)


class FakeSink:
    def __init__(self):
        self.calls = []

    def set_prefer_historical_proof_channel(self, chat_id, value=True):
        self.calls.append((chat_id, value))
        return True


SMALL_CORPUS = [
    {"source": "faq_garantia_satisfacao", "content": "Garantia de sete dias com reembolso integral do valor pago."},
    {"source": "investimento_completo", "content": "Investimento no curso: valor de R$1.997 ou doze parcelas no cartao."},
    {"source": "faq_formato_curso", "content": "Aulas gravadas em video na plataforma online."},
    {"source": "provas_sociais_depoimentos_video", "content": "Depoimentos em video de alunos aprovados."},
    {
        "source": "provas_sociais_mais_provas_redes_sociais",
        "content": "Mais depoimentos de alunos nas redes sociais do professor.",
    },
]

SMALL_SYNONYMS = {"pagamento": ["preço", "valor", "tubarão", "investimento"]}

SMALL_RULES = [
    {
        "name": "provas_sociais",
        "mode": "reorder",
        "query_terms": ["depoimento"],
        "doc_sources": ["provas_sociais_depoimentos_video"],
    },
    {
        "name": "mais_provas_sociais",
        "mode": "more_social_proof",
        "also_matches": ["provas_sociais"],
        "query_terms": ["mais"],
        "doc_sources": ["provas_sociais_mais_provas_redes_sociais"],
        "history_terms": ["mais depoimentos"],
    },
]


@pytest.fixture
def small_groups():
    return build_synonym_groups(SMALL_SYNONYMS)


@pytest.fixture
def small_registry(small_groups):
    return build_topic_registry(SMALL_RULES, small_groups)


@pytest.fixture
def make_engine(small_groups, small_registry):
    def _factory(documents=None, **kwargs):
        kwargs.setdefault("synonym_groups", small_groups)
        kwargs.setdefault("registry", small_registry)
        return IntelligentRAG(SMALL_CORPUS if documents is None else documents, **kwargs)

    return _factory
