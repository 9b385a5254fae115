"""Adaptação do histórico de conversa recebido pelo motor de recuperação."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"

_ROLE_ALIASES = {
    "user": USER_ROLE,
    "human": USER_ROLE,
    "assistant": ASSISTANT_ROLE,
    "ai": ASSISTANT_ROLE,
    "bot": ASSISTANT_ROLE,
}


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str
    timestamp: Optional[Any] = None
    chat_id: Optional[str] = None

    @property
    def is_user(self) -> bool:
        return self.role == USER_ROLE


HistoryLike = Union[Sequence[Any], Callable[[], Optional[Sequence[Any]]], None]


def _from_message(message: BaseMessage) -> Optional[ChatTurn]:
    if not isinstance(message.content, str):
        return None
    if isinstance(message, HumanMessage):
        role = USER_ROLE
    elif isinstance(message, AIMessage):
        role = ASSISTANT_ROLE
    else:
        role = _ROLE_ALIASES.get(message.type, message.type)
    extra = message.additional_kwargs or {}
    chat_id = extra.get("chat_id") or extra.get("chatId")
    return ChatTurn(role=role, content=message.content, chat_id=str(chat_id) if chat_id else None)


def _from_mapping(entry: Mapping[str, Any]) -> Optional[ChatTurn]:
    content = entry.get("content")
    if not isinstance(content, str):
        return None
    role = _ROLE_ALIASES.get(str(entry.get("role") or "").strip().lower(), str(entry.get("role") or ""))
    chat_id = entry.get("chat_id") or entry.get("chatId")
    return ChatTurn(
        role=role,
        content=content,
        timestamp=entry.get("timestamp"),
        chat_id=str(chat_id) if chat_id else None,
    )


def coerce_history(raw: Iterable[Any] | None) -> List[ChatTurn]:
    """
    Converte o histórico bruto em ``ChatTurn`` na ordem recebida (mais antigo primeiro).

    Aceita dicionários (``role``/``content``/``timestamp``/``chat_id`` ou
    ``chatId``), ``ChatTurn`` e mensagens do LangChain. Entradas sem conteúdo
    textual são descartadas.
    """
    if not raw or isinstance(raw, (str, bytes)):
        return []
    turns: List[ChatTurn] = []
    for entry in raw:
        if isinstance(entry, ChatTurn):
            turn: Optional[ChatTurn] = entry
        elif isinstance(entry, BaseMessage):
            turn = _from_message(entry)
        elif isinstance(entry, Mapping):
            turn = _from_mapping(entry)
        else:
            turn = None
        if turn is not None:
            turns.append(turn)
    return turns


def resolve_history(history: HistoryLike) -> List[ChatTurn]:
    """Materializa o histórico; se for um callable, ele é invocado aqui (pode levantar)."""
    if callable(history):
        history = history()
    return coerce_history(history)


def latest_chat_id(turns: Sequence[ChatTurn]) -> Optional[str]:
    """``chat_id`` do turno mais recente que o informa."""
    for turn in reversed(turns):
        if turn.chat_id:
            return turn.chat_id
    return None


__all__ = [
    "ASSISTANT_ROLE",
    "ChatTurn",
    "HistoryLike",
    "USER_ROLE",
    "coerce_history",
    "latest_chat_id",
    "resolve_history",
]
