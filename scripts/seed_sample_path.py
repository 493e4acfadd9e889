#!/usr/bin/env python3
"""
Seed a learning path and its question banks into the progress store.

Run: python scripts/seed_sample_path.py
     python scripts/seed_sample_path.py --file my_path.json --creator 1
     python scripts/seed_sample_path.py --dry-run

The file holds {"path": {...}, "quizzes": [...]}; the bundled sample_path.json
is used by default. Uses DATABASE_URL from the environment / .env.
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

DEFAULT_FILE = Path(__file__).resolve().parent / "sample_path.json"


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a learning path and its question banks.")
    parser.add_argument("--file", "-f", type=Path, default=DEFAULT_FILE, help="Path definition JSON (default: bundled sample)")
    parser.add_argument("--creator", default="1", help="Creator user id stored on the path (default 1)")
    parser.add_argument("--dry-run", action="store_true", help="Validate only; write nothing")
    args = parser.parse_args()

    from pydantic import ValidationError as PydanticValidationError

    from pathway.config import SessionLocal, create_db
    from pathway.bootstrap import build_engine
    from pathway.schemas.quiz_schemas import QuestionBank
    from pathway.services.content_service import parse_path
    from pathway.utils.errors import ProgressError
    from infra.store.sql_store import SqlDocumentStore

    payload = json.loads(args.file.read_text(encoding="utf-8"))
    definition = {**payload["path"], "creator_id": args.creator}
    try:
        path = parse_path(definition)
    except ProgressError as e:
        print(f"Invalid path definition: {e.message}", file=sys.stderr)
        for err in e.details.get("errors", []):
            print(f"  {'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1
    try:
        banks = [QuestionBank.model_validate(q) for q in payload.get("quizzes", [])]
    except PydanticValidationError as e:
        print(f"Invalid question bank: {e}", file=sys.stderr)
        return 1

    missing = sorted({m.quiz_ref.quiz_id for m in path.milestones if m.quiz_ref} - {b.id for b in banks})
    if missing:
        print(f"Milestone quizzes without a question bank: {', '.join(missing)}", file=sys.stderr)
        return 1

    print(f"Path {path.id}: {len(path.milestones)} milestones, {len(path.all_video_ids())} videos, {len(banks)} quizzes")
    for m in path.milestones:
        quiz = f" quiz={m.quiz_ref.quiz_id} (pass {m.quiz_ref.passing_score:g})" if m.quiz_ref else ""
        print(f"  {m.order}. {m.id} videos={m.video_ids()}{quiz}")
    if args.dry_run:
        return 0

    create_db()
    db = SessionLocal()
    try:
        engine = build_engine(SqlDocumentStore(db))
        engine.content.save_path(path)
        for bank in banks:
            engine.content.save_quiz(bank)
    finally:
        db.close()
    print("Seeded.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
