from __future__ import annotations

from typing import Any

from errors import ResolutionError, ValidationError
from models import TabularQuestion
from spreadsheet import cell_text, read_table

REQUIRED_COLUMNS = ["SNO", "Questions", "Type", "option 1", "Correct Answer", "Points"]
EXPECTED_FORMAT = "SNO, Questions, Type, Required, option 1-5, Correct Answer, Commentaires, Points"
OPTION_COLUMNS = [f"option {i}" for i in range(1, 6)]
PREVIEW_LIMIT = 5


def missing_columns(header: list[str]) -> list[str]:
    present = set(header)
    return [c for c in REQUIRED_COLUMNS if c not in present]


def row_options(row: dict[str, Any]) -> list[str]:
    out = []
    for col in OPTION_COLUMNS:
        t = cell_text(row.get(col)).strip()
        if t:
            out.append(t)
    return out


def resolve_correct_answers(correct_answer_text: str, options: list[str]) -> list[str]:
    """Map a free-text "Correct Answer" cell onto the option list.

    Each comma-separated part is tried as an exact match, then a
    case-insensitive match, then a substring match in either direction
    (first option wins). Parts that match nothing are dropped. An empty
    part, left by a trailing or doubled comma, substring-matches the first
    option. The result follows option order and holds each option at most once.
    """
    if not correct_answer_text or not correct_answer_text.strip():
        return []

    matched: set[str] = set()
    for part in (p.strip() for p in correct_answer_text.split(",")):
        hit = next((o for o in options if o == part), None)
        if hit is None:
            low = part.lower()
            hit = next((o for o in options if o.lower() == low), None)
        if hit is None:
            hit = next((o for o in options if part in o or o in part), None)
        if hit is not None:
            matched.add(hit)
    return [o for o in dict.fromkeys(options) if o in matched]


def row_points(row: dict[str, Any]) -> Any:
    return row.get("Points") or 1


def is_single_choice(row: dict[str, Any]) -> bool:
    return cell_text(row.get("Type") or "CHECKBOX").upper() == "RADIO"


def row_to_question(row: dict[str, Any], number: int) -> TabularQuestion:
    options = row_options(row)
    if not options:
        raise ResolutionError("no option found")

    correct = resolve_correct_answers(cell_text(row.get("Correct Answer")), options)
    if not correct:
        raise ResolutionError("no correct answer could be matched to an option")

    return TabularQuestion(
        number=number,
        text=cell_text(row.get("Questions")),
        options=options,
        correct=correct,
        single=is_single_choice(row),
        points=row_points(row),
        feedback=cell_text(row.get("Commentaires")),
    )


def preview_rows(rows: list[dict[str, Any]], limit: int = PREVIEW_LIMIT) -> list[dict[str, Any]]:
    out = []
    for row in rows[:limit]:
        out.append(
            {
                "sno": cell_text(row.get("SNO")),
                "question": cell_text(row.get("Questions")),
                "type": cell_text(row.get("Type")),
                "options": len(row_options(row)),
                "correct_answer": cell_text(row.get("Correct Answer")),
                "points": cell_text(row_points(row)),
            }
        )
    return out


def load_question_rows(data: bytes) -> list[dict[str, Any]]:
    header, rows = read_table(data)
    if not rows:
        raise ValidationError("The file is empty or badly formatted.")
    missing = missing_columns(header)
    if missing:
        raise ValidationError(f"Missing columns: {', '.join(missing)}")
    return rows
