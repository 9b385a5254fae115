#!/usr/bin/env python3
# tools/query_rag.py
# Consulta o motor de recuperação pela linha de comando e mostra cada etapa:
# triagem, tópicos detectados, blocos ranqueados e o contexto final.
import argparse
import json
import os
import sys

from dotenv import load_dotenv

# Adiciona o diretório raiz ao path para permitir importações de outros módulos
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Carrega o .env antes de importar o motor (settings lê o ambiente na importação)
load_dotenv()

from intelligent_rag import IntelligentRAG  # noqa: E402
from knowledge_base import KnowledgeBaseError  # noqa: E402
from stage_filter import FUNNEL_STAGES  # noqa: E402
from triage import is_knowledge_query, run_triage  # noqa: E402


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Consulta manual ao IntelligentRAG do SmartZap.")
    parser.add_argument("query", help="Mensagem do lead")
    parser.add_argument("--stage", choices=FUNNEL_STAGES, default=None, help="Etapa atual do funil")
    parser.add_argument("--top-k", type=int, default=None, help="Máximo de blocos retornados")
    parser.add_argument("--threshold", type=float, default=None, help="Similaridade mínima (exclusiva)")
    parser.add_argument("--max-length", type=int, default=None, help="Orçamento de caracteres do contexto")
    parser.add_argument("--history", default=None, help="Arquivo JSON com o histórico [{role, content}, ...]")
    parser.add_argument("--chat-id", default=None, help="Identificador da conversa")
    parser.add_argument("--json", action="store_true", help="Saída em JSON")
    return parser.parse_args(argv)


def _load_history(path):
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        engine = IntelligentRAG()
    except KnowledgeBaseError as e:
        print(f"[ERRO] Falha ao carregar a base de conhecimento: {e}")
        return 1

    history = _load_history(args.history)
    triage = run_triage(args.query)
    chunks = engine.get_relevant_chunks(
        args.query,
        stage=args.stage,
        top_k=args.top_k,
        threshold=args.threshold,
        history=history,
        chat_id=args.chat_id,
    )
    context = engine.get_relevant_context(
        args.query, max_length=args.max_length, stage=args.stage, history=history, chat_id=args.chat_id
    )

    report = {
        "query": args.query,
        "stage": args.stage,
        "triage": triage,
        "knowledge_query": is_knowledge_query(args.query),
        "topics": engine.detect_topics(args.query),
        "chunks": [c.as_dict() for c in chunks],
        "context": context,
    }

    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
        return 0

    print("--- Consulta ao IntelligentRAG ---")
    print(f"Mensagem: {args.query!r} | Etapa: {args.stage}")
    print(f"Triagem: {triage} | Pergunta de conhecimento: {report['knowledge_query']}")
    print(f"Tópicos detectados: {', '.join(report['topics']) or '(nenhum)'}")
    print("-" * 20)
    if not chunks:
        print("[AVISO] Nenhum bloco acima do limiar.")
    for pos, chunk in enumerate(chunks, 1):
        print(f"{pos}. {chunk.source} (similaridade {chunk.similarity:.4f})")
    print("-" * 20)
    print(context or "(contexto vazio)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
