#!/usr/bin/env python3
"""
legacy_export.py - Build a migration payload from a saved browser localStorage dump.

Usage examples:
  python scripts/legacy_export.py dump.json
  python scripts/legacy_export.py dump.json --out payload.json
  python scripts/legacy_export.py dump.json --secret my-key --pretty

The dump is a JSON object of localStorage key -> stored string, as copied from
the browser's developer tools. Both the old plain keys (chores, choreAppUsers,
userStats, ...) and choreApp_-prefixed envelope entries are understood.

Flags:
  --out PATH
    Write the payload to PATH instead of stdout.
  --secret KEY
    Key used when the prefixed entries were written obfuscated.
  --pretty
    Indent the JSON output.
"""
import argparse
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT_DIR / "backend"))

from dailybag.core.storage import DEFAULT_KEY, StorageManager  # noqa: E402

logger = logging.getLogger("dailybag.legacy_export")

PAYLOAD_KEYS = {
    "Chores": "chores",
    "Users": "choreAppUsers",
    "UserStats": "userStats",
    "LevelPersistence": "levelPersistence",
    "PointDeductions": "pointDeductions",
    "RedemptionRequests": "redemptionRequests",
}
LIST_FIELDS = {"Chores", "Users", "RedemptionRequests"}


def BuildPayload(storage: StorageManager) -> dict:
    payload = {}
    for field, legacy_key in PAYLOAD_KEYS.items():
        value = storage.GetItem(legacy_key)
        if field in LIST_FIELDS:
            payload[field] = value if isinstance(value, list) else []
        else:
            payload[field] = value if isinstance(value, dict) else None
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Convert a localStorage dump into a migration payload.")
    parser.add_argument("dump", help="Path to the localStorage JSON dump")
    parser.add_argument("--out", help="Write the payload to this path")
    parser.add_argument("--secret", default=DEFAULT_KEY, help="Key for obfuscated entries")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    try:
        entries = json.loads(Path(args.dump).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("could not read dump %s: %s", args.dump, exc)
        return 1
    if not isinstance(entries, dict):
        logger.error("dump must be a JSON object of key -> value")
        return 1

    storage = StorageManager(secret=args.secret, set_limit=0, get_limit=0)
    imported = storage.Load(entries)
    expired = storage.Cleanup()
    payload = BuildPayload(storage)
    logger.info(
        "imported=%s expired=%s chores=%s users=%s",
        imported,
        expired,
        len(payload["Chores"]),
        len(payload["Users"]),
    )

    output = json.dumps(payload, indent=2 if args.pretty else None, ensure_ascii=False)
    if args.out:
        Path(args.out).write_text(output + "\n", encoding="utf-8")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
