from langchain_core.documents import Document

from text_normalizer import fold_text, normalize_documents, normalize_text, prepare_term, stem, tokenize


def test_normalize_text_fixes_mojibake_sequences():
    assert normalize_text("Computa§£o") == "Computação"
    assert normalize_text("Andr©a Carla") == "Andréa Carla"
    assert normalize_text("Hist³rico do curso") == "Histórico do curso"
    assert normalize_text("Inªs e gªnero") == "Inês e gênero"


def test_normalize_text_preserves_ordinals_and_professional_titles():
    assert normalize_text("Profª. Dra. Nome") == "Profª. Dra. Nome"
    assert normalize_text("nº 123") == "nº 123"


def test_normalize_text_handles_empty_input():
    assert normalize_text("") == ""
    assert normalize_text(None) == ""


def test_normalize_documents_updates_page_content_in_place():
    docs = [Document(page_content="Jo£o e Concei§£o", metadata={"source": "dummy"})]
    normalized = normalize_documents(docs)
    assert normalized[0].page_content == "João e Conceição"
    # o objeto original também foi atualizado
    assert docs[0].page_content == "João e Conceição"


def test_fold_text_lowercases_and_strips_accents():
    assert fold_text("Ação É Pública") == "acao e publica"
    assert fold_text("") == ""


def test_stem_portuguese_plurals():
    assert stem("opcoes") == "opcao"
    assert stem("paes") == "pao"
    # aproximação: só a última letra vira "l"
    assert stem("reais") == "reail"
    assert stem("papeis") == "papeil"
    assert stem("sociais") == "sociail"
    assert stem("professores") == "professor"
    assert stem("vezes") == "vez"
    assert stem("bens") == "bem"
    assert stem("cursos") == "curso"


def test_stem_keeps_short_and_singular_words():
    assert stem("mes") == "mes"
    assert stem("curso") == "curso"
    assert stem("") == ""


def test_tokenize_pipeline():
    assert tokenize("Quanto custa o curso?") == ["quanto", "custa", "curso"]
    assert tokenize("Os módulos são ótimos!") == ["modulo", "otimo"]


def test_tokenize_drops_short_tokens_and_stop_words():
    assert tokenize("ia é top") == ["top"]
    assert tokenize("como isso para que") == []
    assert tokenize("") == []


def test_tokenize_splits_on_punctuation():
    assert tokenize("garantia;reembolso,valor") == ["garantia", "reembolso", "valor"]


def test_prepare_term_stems_single_words_only():
    assert prepare_term("Cartões") == "cartao"
    assert prepare_term("Formas de Pagamento") == "formas de pagamento"
    assert prepare_term("  ") == ""
