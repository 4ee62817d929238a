from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from errors import FormatError
from models import IdentifierRecord
from runlog import SessionLog
from spreadsheet import read_table, write_rows

EXTENSION_RE = re.compile(r"\.[^/.]+$")
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")

BUCKET_17 = "17"
BUCKET_9 = "9"
BUCKET_LABELS = {BUCKET_17: "numeros 1 et 7", BUCKET_9: "numeros 9"}
OUTPUT_HEADERS = ["Numéro Anonymat", "Licence"]
OUTPUT_SHEET = "Licences"


@dataclass(frozen=True)
class Duplicate:
    numero: int
    licences: tuple[str, str]
    bucket: str


@dataclass
class PartitionResult:
    bucket_17: list[IdentifierRecord] = field(default_factory=list)
    bucket_9: list[IdentifierRecord] = field(default_factory=list)
    duplicates: list[Duplicate] = field(default_factory=list)
    totals: dict[str, int] = field(default_factory=dict)
    counts: dict[str, dict[str, int]] = field(default_factory=lambda: {BUCKET_17: {}, BUCKET_9: {}})

    @property
    def total(self) -> int:
        return len(self.bucket_17) + len(self.bucket_9)


def licence_from_filename(filename: str) -> str:
    return EXTENSION_RE.sub("", filename or "").upper()


def find_client_column(header: list[str]) -> str | None:
    for key in header:
        low = key.lower()
        if "client" in low and "nom" not in low:
            return key
    return None


def parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else None
    m = LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else None


def extract_numbers(rows: list[dict[str, Any]], column: str) -> list[int]:
    numeros: dict[int, None] = {}
    for row in rows:
        value = row.get(column)
        if value is None or value == "":
            continue
        num = parse_int(value)
        if num is not None:
            numeros[num] = None
    return list(numeros)


def classify(numero: int) -> str | None:
    first = str(numero)[0]
    if first in ("1", "7"):
        return BUCKET_17
    if first == "9":
        return BUCKET_9
    return None


def find_duplicates(records: list[IdentifierRecord], bucket: str) -> list[Duplicate]:
    seen: dict[int, str] = {}
    out: list[Duplicate] = []
    for rec in records:
        if rec.numero in seen:
            out.append(Duplicate(rec.numero, (seen[rec.numero], rec.licence), bucket))
        else:
            seen[rec.numero] = rec.licence
    return out


def sort_key(rec: IdentifierRecord) -> tuple[str, int]:
    return rec.licence, rec.numero


def partition_files(files: list[tuple[str, bytes]], log: SessionLog | None = None) -> PartitionResult:
    log = log if log is not None else SessionLog()
    result = PartitionResult()
    log.info(f"{len(files)} file(s) to process")

    for filename, data in files:
        licence = licence_from_filename(filename)
        log.info(f"Processing {filename} (licence {licence})")
        try:
            header, rows = read_table(data)
        except FormatError as e:
            log.error(f"{filename}: {e}")
            continue

        column = find_client_column(header)
        if column is None:
            log.warning(f"'Client' column not found in {filename}")
            continue

        numeros = extract_numbers(rows, column)
        log.success(f"{len(numeros)} anonymat number(s) found in {filename}")

        c17 = c9 = 0
        for numero in numeros:
            bucket = classify(numero)
            if bucket == BUCKET_17:
                result.bucket_17.append(IdentifierRecord(numero, licence))
                c17 += 1
            elif bucket == BUCKET_9:
                result.bucket_9.append(IdentifierRecord(numero, licence))
                c9 += 1

        result.totals[licence] = len(numeros)
        result.counts[BUCKET_17][licence] = c17
        result.counts[BUCKET_9][licence] = c9
        log.info(f"{licence}: {c17} starting with 1 or 7, {c9} starting with 9")

    for bucket, records in ((BUCKET_17, result.bucket_17), (BUCKET_9, result.bucket_9)):
        dups = find_duplicates(records, bucket)
        if dups:
            log.warning(f"Duplicates in category {BUCKET_LABELS[bucket]}:")
            for d in dups:
                log.warning(f"Number {d.numero}: {', '.join(d.licences)}")
        result.duplicates.extend(dups)
    if not result.duplicates:
        log.success("No duplicate detected")

    result.bucket_17.sort(key=sort_key)
    result.bucket_9.sort(key=sort_key)
    return result


def bucket_workbook(records: list[IdentifierRecord]) -> bytes:
    return write_rows(OUTPUT_HEADERS, ((r.numero, r.licence) for r in records), OUTPUT_SHEET)
