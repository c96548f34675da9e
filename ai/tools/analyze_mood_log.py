#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Validate a mood_entries export (JSON Lines) and run the trend analysis on it.

One record per line, the same columns as the ``mood_entries`` table:
  {"id": "e1", "created_at": "2025-10-20T22:15:00Z", "mood_score": 4,
   "emotion_tags": ["tired", "anxious"], "notes": "long day at work"}

Usage:
  python ai/tools/analyze_mood_log.py --src export.jsonl
  python ai/tools/analyze_mood_log.py --src export.jsonl --validate-only
"""
import argparse
import asyncio
import json
import os
import sys
from collections import Counter

from mood_engine.errors import InvalidInputError
from mood_engine.models import MoodEntry
from mood_engine.pipeline import perform_trend_analysis


def validate_lines(lines):
    """-> (entries, summary dict)"""
    entries = []
    problems = Counter()
    n = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        n += 1
        try:
            row = json.loads(line)
        except ValueError:
            problems["bad_json"] += 1
            print("[bad json]", line[:120], "...", file=sys.stderr)
            continue
        try:
            entries.append(MoodEntry.from_record(row))
        except InvalidInputError as exc:
            problems["invalid_record"] += 1
            print("[invalid]", exc, file=sys.stderr)
    summary = {
        "records": n,
        "valid": len(entries),
        "bad_json": problems["bad_json"],
        "invalid_records": problems["invalid_record"],
    }
    return entries, summary


def main(argv=None):
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("--src", required=True, help="JSON Lines export of mood entries")
    ap.add_argument("--validate-only", action="store_true", help="print the validation summary only")
    args = ap.parse_args(argv)

    if not os.path.exists(args.src):
        raise SystemExit(f"not found: {args.src}")

    with open(args.src, "r", encoding="utf-8") as f:
        entries, summary = validate_lines(f)

    if args.validate_only:
        print(json.dumps(summary, ensure_ascii=False, indent=2))
        return 0 if summary["valid"] == summary["records"] else 1

    analysis = asyncio.run(perform_trend_analysis(entries))
    print(json.dumps({"validation": summary, "analysis": analysis.to_dict()}, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
