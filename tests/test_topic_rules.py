import pytest

from knowledge_base import KnowledgeBaseError
from synonyms import build_synonym_groups
from text_normalizer import fold_text
from topic_rules import RuleMode, build_topic_registry, load_topic_rules


def _rule(**overrides):
    raw = {"name": "r", "mode": "reorder", "query_terms": ["x"], "doc_sources": ["s"]}
    raw.update(overrides)
    return raw


def test_real_registry_order_and_modes(real_registry):
    names = real_registry.names
    assert len(real_registry) == 27
    assert names[:3] == ["objecao", "preco_especifico", "suporte"]
    assert names[-1] == "holding"
    assert names.index("bonus") < names.index("iajur")
    assert names.index("provas_sociais") < names.index("mais_provas_sociais")
    assert real_registry.get("mais_provas_sociais").mode is RuleMode.MORE_SOCIAL_PROOF
    assert real_registry.more_social_proof_rule().name == "mais_provas_sociais"


def test_real_registry_price_rules_are_gated(real_registry):
    assert real_registry.get("preco_especifico").requires_price_access is True
    assert real_registry.get("preco").requires_price_access is True
    assert real_registry.get("professor").requires_price_access is False


def test_bonus_is_excluded_by_workload_questions(real_registry):
    bonus = real_registry.get("bonus")
    assert bonus.query_match(fold_text("Quais são os bônus?"))
    assert not bonus.query_match(fold_text("Qual a carga horária do bônus?"))


def test_rules_built_from_synonym_groups(real_registry):
    iajur = real_registry.get("iajur")
    assert "ia jur" in iajur.query_terms
    assert iajur.query_match("como funciona a ia juridica?")


def test_more_social_proof_inherits_social_proof_terms(real_registry):
    rule = real_registry.get("mais_provas_sociais")
    assert rule.query_match(fold_text("tem depoimentos?"))
    assert rule.history_match(fold_text("Quero ver mais provas"))
    assert rule.doc_sources == frozenset({"provas_sociais_mais_provas_redes_sociais"})


def test_real_registry_matching_in_order(real_registry):
    matched = [r.name for r in real_registry.matching(fold_text("quero mais provas"))]
    assert matched == ["provas_sociais", "mais_provas_sociais"]


def test_query_terms_are_folded():
    registry = build_topic_registry([_rule(query_terms=["Preço"])])
    assert registry.get("r").query_terms == ("preco",)
    assert registry.get("r").query_match("qual o preco")
    assert not registry.get("r").query_match("")


def test_document_match_by_source_or_prefix():
    registry = build_topic_registry([_rule(doc_sources=["faq_x"], doc_prefixes=["resposta_objecao_"])])
    rule = registry.get("r")
    assert rule.document_match("faq_x")
    assert rule.document_match("resposta_objecao_preco_caro")
    assert not rule.document_match("faq_y")


def test_applies_to_stage_respects_price_access():
    rule = build_topic_registry([_rule(requires_price_access=True)]).get("r")
    assert rule.applies_to_stage(None)
    assert rule.applies_to_stage("CLOSE_DEAL")
    assert not rule.applies_to_stage("GREETING_NEW")


def test_context_floor_and_min_similarity_are_parsed():
    rule = build_topic_registry([_rule(context_floor="2500", min_similarity=0.1)]).get("r")
    assert rule.context_floor == 2500
    assert rule.min_similarity == pytest.approx(0.1)


@pytest.mark.parametrize(
    "rules",
    [
        [_rule(mode="boost")],
        [{"mode": "reorder", "query_terms": ["x"], "doc_sources": ["s"]}],
        [_rule(), _rule()],
        [_rule(doc_sources=[])],
        [_rule(query_terms=[])],
        [_rule(query_terms="x")],
        [_rule(also_matches=["inexistente"])],
        [_rule(excluded_by=["inexistente"])],
        [_rule(query_from_synonyms="inexistente")],
        [_rule(mode="more_social_proof")],
        [_rule(context_floor="muito")],
    ],
)
def test_invalid_rules_raise(rules):
    with pytest.raises(KnowledgeBaseError):
        build_topic_registry(rules)


def test_query_from_synonyms_uses_raw_forms():
    groups = build_synonym_groups({"maria": ["Maria", "assistentes virtuais"]})
    rule = build_topic_registry([_rule(query_terms=None, query_from_synonyms="maria")], groups).get("r")
    assert rule.query_terms == ("maria", "assistentes virtuais")


def test_load_topic_rules_missing_file(tmp_path):
    with pytest.raises(KnowledgeBaseError):
        load_topic_rules(tmp_path / "nada.yml")


def test_load_topic_rules_rejects_empty_list(tmp_path):
    path = tmp_path / "rules.yml"
    path.write_text("rules: []\n", encoding="utf-8")
    with pytest.raises(KnowledgeBaseError):
        load_topic_rules(path)
