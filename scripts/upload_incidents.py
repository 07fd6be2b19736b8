# scripts/upload_incidents.py
"""
Bulk-upload incident reports from a JSON file through the same submit()
path the API uses, so every record is validated and stored as pending.

Usage:
  python scripts/upload_incidents.py --file incidents.json [--dry-run]

Each record: {"user_id", "type", "title", "description", "location"}
(or "coordinates": {"lat", "lng"} instead of "location").
"""
import argparse
import json
import os
import sys
import time

from pydantic import ValidationError as PydanticValidationError

from safetywatch.errors import SafetyWatchError
from safetywatch.models.incident import IncidentIn
from safetywatch.models.user import ActingUser
from safetywatch.services import incidents


def load_records(path: str) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("JSON root must be a list of incident objects.")
    return data


def upload(records: list, *, dry_run: bool = False, sleep: float = 0.0) -> dict:
    total = len(records)
    ok = 0
    skipped = 0
    for i, rec in enumerate(records, 1):
        user_id = str(rec.get("user_id") or "").strip()
        if not user_id:
            print(f"[{i}/{total}] SKIP (missing user_id): {rec}")
            skipped += 1
            continue

        report = {k: rec.get(k) for k in ("type", "title", "description", "location", "coordinates") if k in rec}
        if dry_run:
            # same validation submit() applies, without the write
            try:
                IncidentIn.model_validate(report)
            except PydanticValidationError as e:
                print(f"[{i}/{total}] SKIP (validation_error: {e.error_count()} problem(s)): {rec}")
                skipped += 1
                continue
            print(f"[{i}/{total}] DRY-RUN submit({report}) as {user_id}")
            ok += 1
            continue

        try:
            incident = incidents.submit(report, ActingUser(id=user_id))
        except SafetyWatchError as e:
            print(f"[{i}/{total}] SKIP ({e.code}: {e}): {rec}")
            skipped += 1
            continue

        ok += 1
        print(f"[{i}/{total}] stored {incident.id}")
        if sleep > 0:
            time.sleep(sleep)

    return {"ok": ok, "skipped": skipped, "total": total}


def main():
    parser = argparse.ArgumentParser(description="Upload incident reports JSON to DynamoDB.")
    parser.add_argument("--file", "-f", default="incidents.json",
                        help="Path to JSON file (list of incident objects).")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print what would be submitted, but do not write to DynamoDB.")
    parser.add_argument("--sleep", type=float, default=0.0,
                        help="Optional delay (seconds) between writes to be gentle.")
    args = parser.parse_args()

    path = os.path.abspath(args.file)
    if not os.path.exists(path):
        print(f"Error: file not found: {path}")
        sys.exit(1)

    try:
        records = load_records(path)
    except (json.JSONDecodeError, ValueError) as e:
        print(f"Error reading {path}: {e}")
        sys.exit(1)

    out = upload(records, dry_run=args.dry_run, sleep=args.sleep)
    print(f"\nDone. Success: {out['ok']}  Skipped: {out['skipped']}  Total read: {out['total']}")


if __name__ == "__main__":
    main()
