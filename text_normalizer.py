"""Normalização de texto: reparo de mojibake e tokenização bag-of-words em PT-BR."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, List, TYPE_CHECKING

from ftfy import fix_text

if TYPE_CHECKING:  # pragma: no cover - only for static typing
    from langchain_core.documents import Document


# Artefatos de encoding que aparecem no corpus exportado (bytes UTF-8 lidos
# como Latin-1, resíduos de CP-1252) e que o ftfy não desfaz sozinho.
_CHAR_TRANSLATION = str.maketrans({
    "§": "ç",
    "£": "ã",
    "¡": "á",
    "©": "é",
    "³": "ó",
    "µ": "õ",
    "¢": "â",
    "\u00a0": " ",
    "\u00ad": None,
})

_INTERNAL_FEMININE_A = re.compile(r"(?<=\w)ª(?=\w)")

# Pontuação substituída por espaço antes da separação em tokens.
_PUNCTUATION_RE = re.compile(r"[.,?!;:]")
_COMBINING_RE = re.compile("[\u0300-\u036f]")

# Palavras vazias em português. Guardadas já sem acento porque a comparação
# acontece depois da remoção de diacríticos.
STOP_WORDS = frozenset({
    "a", "o", "e", "de", "do", "da", "em", "um", "uma", "para", "com", "nao",
    "os", "as", "sao", "ser", "tem", "mas", "foi", "ao", "seu", "sua", "ou",
    "que", "se", "isso", "me", "sobre", "como", "onde", "qual", "este", "esta",
    "nos", "no", "nas", "na",
})

MIN_TOKEN_LENGTH = 3


def normalize_text(text: str) -> str:
    """Corrige mojibake e caracteres de controle, devolvendo texto em NFC."""

    if not text:
        return ""

    cleaned = fix_text(text, normalization="NFC")
    cleaned = cleaned.translate(_CHAR_TRANSLATION)
    cleaned = _INTERNAL_FEMININE_A.sub("ê", cleaned)
    return unicodedata.normalize("NFC", cleaned)


def normalize_documents(docs: Iterable["Document"] | None) -> list["Document"]:
    """Apply ``normalize_text`` to every document in-place."""

    if not docs:
        return []

    normalised: list["Document"] = []
    for doc in docs:
        if doc is None:
            continue
        original = getattr(doc, "page_content", "") or ""
        fixed = normalize_text(original)
        if fixed != original:
            doc.page_content = fixed
        normalised.append(doc)
    return normalised


def fold_text(text: str) -> str:
    """Minúsculas e sem acentos (NFD + remoção de U+0300..U+036F)."""
    if not text:
        return ""
    return _COMBINING_RE.sub("", unicodedata.normalize("NFD", text.lower()))


def stem(word: str) -> str:
    """
    Remove plurais do português de forma heurística.

    A primeira regra que casar vence:
    ``-oes``/``-aes`` -> ``-ao``; ``-ais``/``-eis``/``-ois`` trocam o ``s`` final por ``l``;
    ``-res``/``-zes`` perdem as duas últimas letras; ``-ns`` -> ``-m``;
    qualquer outro ``-s`` final é descartado. Palavras com menos de 4
    caracteres ou que não terminam em ``s`` passam intactas. É uma aproximação
    ("reais" vira "reail"), suficiente para casar singular e plural.
    """
    if len(word) < 4 or not word.endswith("s"):
        return word
    if word.endswith("oes") or word.endswith("aes"):
        return word[:-3] + "ao"
    if word.endswith(("ais", "eis", "ois")):
        return word[:-1] + "l"
    if word.endswith(("res", "zes")):
        return word[:-2]
    if word.endswith("ns"):
        return word[:-2] + "m"
    return word[:-1]


def tokenize(text: str) -> List[str]:
    """
    Converte texto livre na lista de radicais usada pelo modelo bag-of-words.

    Ordem do pipeline: minúsculas, pontuação ``.,?!;:`` vira espaço, remoção de
    acentos, separação por espaços, descarte de tokens curtos (<= 2) e de
    palavras vazias, e por fim ``stem``.
    """
    if not text:
        return []
    folded = fold_text(_PUNCTUATION_RE.sub(" ", text.lower()))
    return [
        stem(token)
        for token in folded.split()
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS
    ]


def prepare_term(term: str) -> str:
    """Forma canônica de um termo de dicionário: dobrado; radical só para palavra única."""
    folded = fold_text(str(term)).strip()
    if not folded or " " in folded:
        return folded
    return stem(folded)
