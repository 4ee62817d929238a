from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from spreadsheet import cell_text

WHITESPACE_RE = re.compile(r"\s+")
BASE_HEADERS = ["username", "email", "auth", "firstname", "lastname"]
AUTH_METHOD = "email"
FIRSTNAME = "Etudiant"


@dataclass(frozen=True)
class AccountEntry:
    anonymat: str
    email: str


def split_line(line: str) -> list[str]:
    for sep in ("\t", ";", ","):
        if sep in line:
            return line.split(sep)
    return WHITESPACE_RE.split(line)


def make_entry(anonymat: Any, email: Any) -> AccountEntry | None:
    a = cell_text(anonymat).strip()
    e = cell_text(email).strip()
    if not a or not e or "@" not in e:
        return None
    return AccountEntry(a, e)


def parse_manual_input(text: str) -> tuple[list[AccountEntry], int]:
    entries: list[AccountEntry] = []
    skipped = 0
    for line in (text or "").strip().split("\n"):
        if not line.strip():
            continue
        parts = split_line(line)
        entry = make_entry(parts[0], parts[1]) if len(parts) >= 2 else None
        if entry is None:
            skipped += 1
        else:
            entries.append(entry)
    return entries, skipped


def entries_from_array(rows: list[list[Any]]) -> tuple[list[AccountEntry], int]:
    entries: list[AccountEntry] = []
    skipped = 0
    for row in rows:
        entry = make_entry(row[0], row[1]) if len(row) >= 2 else None
        if entry is None:
            skipped += 1
        else:
            entries.append(entry)
    return entries, skipped


def csv_field(value: str) -> str:
    if "," in value or '"' in value or "\n" in value:
        return '"' + value.replace('"', '""') + '"'
    return value


def build_csv(entries: list[AccountEntry], cohort_id: str = "") -> str:
    cohort_id = (cohort_id or "").strip()
    headers = BASE_HEADERS + (["cohort1"] if cohort_id else [])
    out = ",".join(headers) + "\n"
    for e in entries:
        values = [e.anonymat, e.email, AUTH_METHOD, FIRSTNAME, e.anonymat]
        if cohort_id:
            values.append(cohort_id)
        out += ",".join(csv_field(v) for v in values) + "\n"
    return out
