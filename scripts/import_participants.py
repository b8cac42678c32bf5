"""Load paid participants from a CSV or JSON export into the local database.

Usage:
    python scripts/import_participants.py participants.csv
    python scripts/import_participants.py participants.json

JSON input is either {"headers": [...], "rows": [[...], ...]} or a list of
objects (headers taken from the first object's keys).
"""
import argparse
import asyncio
import csv
import json
import sys
from pathlib import Path

sys.path.insert(0, ".")

from entrypass.database import async_session_maker, close_db, init_db
from entrypass.kernel.store import ParticipantStore, build_participant_rows


def read_table(path: Path):
    if path.suffix.lower() == ".json":
        payload = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            return payload["headers"], payload["rows"]
        headers = list(payload[0].keys()) if payload else []
        return headers, [[item.get(h, "") for h in headers] for item in payload]

    with path.open(newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        headers = next(reader, [])
        return headers, list(reader)


async def run(path: Path) -> int:
    headers, rows = read_table(path)
    payload = build_participant_rows(headers, rows)
    await init_db()
    try:
        async with async_session_maker() as session:
            count = await ParticipantStore(session).upsert_participants(payload)
    finally:
        await close_db()
    return count


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", type=Path, help="CSV or JSON file")
    args = parser.parse_args()

    if not args.path.exists():
        print(f"File not found: {args.path}")
        sys.exit(1)

    count = asyncio.run(run(args.path))
    print(f"Imported {count} participant(s)")


if __name__ == "__main__":
    main()
