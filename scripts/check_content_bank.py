#!/usr/bin/env python3
"""Fail when a locale content bank cannot serve every sign."""

from pathlib import Path
import json
import sys

from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from horoscope_engine.content_catalog import parse_document  # noqa: E402
from horoscope_engine.signs import ZodiacSign  # noqa: E402

CONTENT_FILE_NAME = "zodiac.json"


def check_document(path: Path) -> list[str]:
    try:
        bank = parse_document(path.read_text(encoding="utf-8"), path.parent.name)
    except UnicodeDecodeError:
        return ["non-utf8 file"]
    except (json.JSONDecodeError, ValidationError) as exc:
        return [f"unparsable document: {str(exc).splitlines()[0]}"]

    problems: list[str] = []
    for sign in ZodiacSign:
        if bank.sign(sign) is None:
            problems.append(f"{sign.value}: missing sign entry")
            continue
        daily = bank.daily_templates(sign)
        if not daily:
            problems.append(f"{sign.value}: no daily templates")
        for template in daily:
            try:
                ZodiacSign(template.compatibility.strip().lower())
            except ValueError:
                problems.append(f"{sign.value}/{template.id}: unknown compatibility sign {template.compatibility!r}")
        ids = [t.id for t in daily] + [t.id for t in bank.weekly_templates(sign)]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            problems.append(f"{sign.value}: duplicate template ids {duplicates}")
    return problems


def collect_targets(argv: list[str]) -> list[Path]:
    if argv:
        return [Path(arg).resolve() for arg in argv]
    return [ROOT / "horoscope_engine" / "content"]


def main(argv: list[str] | None = None) -> int:
    failed: list[tuple[Path, str]] = []
    checked = 0
    for target in collect_targets(sys.argv[1:] if argv is None else argv):
        paths = sorted(target.rglob(CONTENT_FILE_NAME)) if target.is_dir() else [target]
        for path in paths:
            checked += 1
            failed.extend((path, problem) for problem in check_document(path))

    if failed:
        print("Detected content bank problems:")
        for path, problem in failed:
            rel = path.relative_to(ROOT) if str(path).startswith(str(ROOT)) else path
            print(f"- {rel}: {problem}")
        return 1

    print(f"Checked {checked} content document(s); no problems detected.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
