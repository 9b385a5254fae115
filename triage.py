# triage.py
# Triagem rápida da mensagem do lead antes da recuperação. Saudações soltas e
# mensagens vazias não precisam consultar a base de conhecimento; perguntas
# sobre o curso (preço, acesso, professor, bônus...) sim.

from __future__ import annotations

import re
from typing import Dict

from text_normalizer import fold_text

_PUNCTUATION_RE = re.compile(r"[.,?!;:]")

# Saudações e testes que, sozinhos, não constituem pergunta.
_GENERIC = {
    "oi", "ola", "hello", "hi", "teste", "ping", "opa", "eai", "e ai",
    "bom dia", "boa tarde", "boa noite", "tudo bem", "como vai", "oi tudo bem",
}

# Indicadores de que a mensagem pede informação da base de conhecimento.
# Comparados sem acento, como a mensagem.
KNOWLEDGE_INDICATORS = tuple(dict.fromkeys(fold_text(term) for term in (
    "quanto", "preço", "valor", "custo", "tempo", "acesso", "módulo", "conteúdo",
    "certificado", "professor", "como funciona", "o que ensina", "inclui",
    "bônus", "material", "suporte", "dúvida", "prazo", "duração", "planos",
    "plano", "opções", "investimento", "pagamento", "parcelado", "vista",
    "carga", "horas", "horária", "carga horária",
    # prazo de acesso e ansiedade com o tempo
    "conseguir assistir", "medo de não conseguir", "dar tempo", "tempo suficiente",
    "vitalício", "permanente", "expira", "extensão", "30 dias", "mais tempo",
    "preocupado", "ansioso", "nervoso", "inseguro", "receio",
    # professor
    "quem", "ministra", "responsável", "instrutor", "jaylton", "lopes",
    "nome do professor", "experiência", "formação", "credenciais", "magistratura",
    # bônus e materiais
    "extras", "grátis", "vem junto", "ferramentas", "modelos", "templates",
    "combo", "networking", "comunidade", "facebook", "prospecção",
    # modalidade
    "online", "presencial", "gravado", "ao vivo", "formato", "plataforma",
    "horário", "flexível", "quando quiser", "onde assisto",
    # resultados
    "quanto ganho", "faturamento", "honorários", "vale a pena", "retorno",
    "casos de sucesso", "resultados", "multiplicar", "aumentar ganhos",
    # área de atuação
    "família", "sucessões", "inventário", "testamento", "divórcio", "herança",
    "trabalha com", "especialidade", "atua em", "sobre o que",
    # nível de experiência
    "iniciante", "experiente", "básico", "avançado", "é para mim",
    "serve para", "recém-formado", "sem experiência", "primeira vez",
)))


def is_knowledge_query(message: str) -> bool:
    """True se a mensagem contém algum indicador de pergunta sobre o curso."""
    folded = fold_text(message or "")
    return any(indicator in folded for indicator in KNOWLEDGE_INDICATORS)


def run_triage(message: str) -> Dict[str, str]:
    """
    Decide se a mensagem deve seguir para a recuperação.

    Returns:
        ``{"action": "retrieve"}`` ou ``{"action": "skip", "reason": ...}``,
        com ``reason`` igual a ``"empty"`` (mensagem vazia ou de um caractere)
        ou ``"greeting"`` (saudação sem pergunta).
    """
    q = " ".join(_PUNCTUATION_RE.sub(" ", fold_text(message or "")).split())

    if not q or len(q) < 2:
        return {"action": "skip", "reason": "empty"}

    if q in _GENERIC:
        return {"action": "skip", "reason": "greeting"}

    return {"action": "retrieve"}
