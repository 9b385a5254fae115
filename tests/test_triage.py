import pytest

from triage import is_knowledge_query, run_triage


@pytest.mark.parametrize("message", ["", "   ", "?", None])
def test_empty_messages_are_skipped(message):
    assert run_triage(message) == {"action": "skip", "reason": "empty"}


@pytest.mark.parametrize("message", ["oi", "Olá!", "Bom dia", "boa noite!!", "Oi, tudo bem?"])
def test_greetings_are_skipped(message):
    assert run_triage(message) == {"action": "skip", "reason": "greeting"}


@pytest.mark.parametrize("message", ["Qual o preço?", "quero mais provas", "kkk"])
def test_other_messages_are_retrieved(message):
    assert run_triage(message) == {"action": "retrieve"}


@pytest.mark.parametrize(
    "message",
    ["Qual o preço?", "Quem é o professor?", "Tem bônus?", "É para mim que sou iniciante?", "vale a pena?"],
)
def test_knowledge_queries(message):
    assert is_knowledge_query(message) is True


@pytest.mark.parametrize("message", ["kkk", "obrigado", ""])
def test_non_knowledge_queries(message):
    assert is_knowledge_query(message) is False
