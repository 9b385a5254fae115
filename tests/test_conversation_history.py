import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from conversation_history import ASSISTANT_ROLE, USER_ROLE, ChatTurn, coerce_history, latest_chat_id, resolve_history


def test_coerce_history_from_dicts_with_aliases():
    turns = coerce_history(
        [
            {"role": "user", "content": "oi", "timestamp": 1},
            {"role": "AI", "content": "olá!"},
            {"role": "human", "content": "quero mais provas", "chatId": "5511"},
            {"role": "user", "content": None},
        ]
    )
    assert [t.role for t in turns] == [USER_ROLE, ASSISTANT_ROLE, USER_ROLE]
    assert turns[0].timestamp == 1
    assert turns[2].chat_id == "5511"
    assert turns[2].is_user


def test_coerce_history_from_langchain_messages():
    turns = coerce_history(
        [
            HumanMessage(content="tem mais depoimentos?", additional_kwargs={"chat_id": 42}),
            AIMessage(content="Claro!"),
            SystemMessage(content="instruções"),
        ]
    )
    assert turns[0] == ChatTurn(role=USER_ROLE, content="tem mais depoimentos?", chat_id="42")
    assert turns[1].role == ASSISTANT_ROLE
    assert turns[2].role == "system"
    assert not turns[2].is_user


def test_coerce_history_ignores_garbage():
    assert coerce_history(None) == []
    assert coerce_history("texto") == []
    assert coerce_history([1, object()]) == []


def test_resolve_history_invokes_callables():
    assert resolve_history(lambda: [{"role": "user", "content": "oi"}])[0].content == "oi"
    assert resolve_history(lambda: None) == []


def test_resolve_history_propagates_lookup_errors():
    def broken():
        raise RuntimeError("banco fora do ar")

    with pytest.raises(RuntimeError):
        resolve_history(broken)


def test_latest_chat_id_prefers_newest_turn():
    turns = [ChatTurn(USER_ROLE, "a", chat_id="antigo"), ChatTurn(USER_ROLE, "b", chat_id="novo"), ChatTurn(USER_ROLE, "c")]
    assert latest_chat_id(turns) == "novo"
    assert latest_chat_id([]) is None
