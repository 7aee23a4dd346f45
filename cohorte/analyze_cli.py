#!/usr/bin/env python3
# =============================================================
# analyze_cli.py
# -------------------------------------------------------------
# AI INSTRUCTION:
# Command-line front end for one analysis pass:
# - read a script from --in (or stdin with "-")
# - load personas from a YAML list (--personas), default persona otherwise
# - run the pipeline with the configured model client
# - print a per-persona summary
# - with --document-id, map annotations to threads in --db (sqlite)
# Exit 2 on input error, 1 on unexpected failure.
# =============================================================

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

import yaml

from cohorte.settings import settings, setup_logging
from cohorte.generate import FeedbackRequester, Persona, build_model_client
from cohorte.pipeline import FeedbackPipeline, InputError
from cohorte.threads import InMemoryCommentStore, SqliteCommentStore

logger = logging.getLogger("analyze_cli")


def load_personas(path: str) -> List[Persona]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if not isinstance(data, list):
        raise InputError(f"personas file must hold a list: {path}")
    out: List[Persona] = []
    for i, p in enumerate(data, start=1):
        if not isinstance(p, dict):
            raise InputError(f"persona #{i} is not a mapping")
        name = p.get("name") or f"{p.get('first_name', '')} {p.get('last_name', '')}".strip()
        out.append(
            Persona(
                name=name or f"Persona {i}",
                city=p.get("city"),
                mini_description=p.get("mini_description"),
                biography=p.get("biography") or p.get("bio"),
                id=p.get("id"),
            )
        )
    return out


def _parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Simulate persona feedback on a script.")
    p.add_argument("--in", dest="in_path", required=True, help="script file, or - for stdin")
    p.add_argument("--personas", help="YAML list of personas")
    p.add_argument("--document-id", help="map annotations to threads of this document")
    p.add_argument("--db", default=settings.COMMENT_DB_PATH, help="sqlite comment store (default: in-memory)")
    p.add_argument("--log-level", default=settings.LOG_LEVEL, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level)

    try:
        text = sys.stdin.read() if args.in_path == "-" else Path(args.in_path).read_text(encoding="utf-8")
        personas = load_personas(args.personas) if args.personas else []

        pipeline = FeedbackPipeline(
            requester=FeedbackRequester(model_client=build_model_client(settings)),
            max_personas=settings.MAX_PERSONAS,
            max_text_chars=settings.MAX_TEXT_CHARS,
        )
        if args.document_id:
            store = SqliteCommentStore(args.db) if args.db else InMemoryCommentStore()
            result = asyncio.run(pipeline.analyze_document(args.document_id, text, personas, store))
        else:
            result = pipeline.analyze_sync(text, personas)
    except (InputError, OSError, yaml.YAMLError) as e:
        print(f"!! input error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.error("analysis failed: %s", e, exc_info=True)
        print(f"!! analysis failed: {e}", file=sys.stderr)
        return 1

    print(f"== analyze == lines={len(result.lines)} personas={len(result.analyses)}")
    for a in result.analyses:
        mark = "liked" if a.overall.liked else "not liked"
        print(f">> {a.persona_name} ({mark}): {a.overall.comment or 'no specific feedback'}")
        for ann in a.annotations:
            reaction = f" [{ann.reaction.value}]" if ann.reaction else ""
            print(f"   L{ann.line:<4} {ann.category.value:<10} {ann.severity.value:<6} {ann.comment}{reaction}")
    if result.threads:
        print(f"== threads == {len(result.threads)} written for {args.document_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
