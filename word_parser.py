from __future__ import annotations

import io
import re
import zipfile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table
from docx.text.paragraph import Paragraph

from errors import FormatError
from models import LETTERS, Answer, CorrectionEntry, Question

WORD_FILE_RE = re.compile(r"\.(docx|doc)$", re.IGNORECASE)
CORRECTION_HEADING = "correction"
QCM_MARKER_RE = re.compile(r"^QCM\s*(\d+)\s*[-–:]\s*([A-E]+)", re.IGNORECASE)
WINDOW = 1 + len(LETTERS)


def is_word_file(filename: str) -> bool:
    return bool(WORD_FILE_RE.search(filename or ""))


def iter_block_items(doc: Document):
    body = doc.element.body
    for child in body.iterchildren():
        if child.tag.endswith("}p"):
            yield Paragraph(child, doc)
        elif child.tag.endswith("}tbl"):
            yield Table(child, doc)


def extract_docx_lines(data: bytes) -> list[str]:
    try:
        doc = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise FormatError(f"Not a readable .docx document: {e}") from e

    lines: list[str] = []
    for block in iter_block_items(doc):
        if isinstance(block, Paragraph):
            lines.append(block.text)
        else:
            # A merged cell is returned once per grid slot it spans.
            seen = set()
            for row in block.rows:
                for cell in row.cells:
                    if cell._tc in seen:
                        continue
                    seen.add(cell._tc)
                    lines.extend(p.text for p in cell.paragraphs)
    return lines


def extract_docx_text(data: bytes) -> str:
    return "\n".join(extract_docx_lines(data))


def split_qcm_and_corrections(text: str) -> tuple[str, str | None]:
    lines = (text or "").split("\n")
    for i, line in enumerate(lines):
        if line.strip().lower() == CORRECTION_HEADING:
            return "\n".join(lines[:i]), "\n".join(lines[i + 1:])
    return text or "", None


def parse_questions(text: str) -> list[Question]:
    lines = [ln.strip() for ln in (text or "").split("\n")]
    lines = [ln for ln in lines if ln]

    questions: list[Question] = []
    i = 0
    while i + WINDOW <= len(lines):
        title = lines[i]
        answers = [Answer(text=lines[i + 1 + k], letter=letter) for k, letter in enumerate(LETTERS)]
        questions.append(Question(id=len(questions) + 1, title=title, answers=answers))
        i += WINDOW
    return questions


def parse_corrections(text: str | None) -> list[CorrectionEntry]:
    entries: list[CorrectionEntry] = []
    if not text:
        return entries

    current: tuple[int, tuple[str, ...]] | None = None
    feedback: list[str] = []

    def flush():
        if current is not None:
            entries.append(CorrectionEntry(current[0], current[1], "\n".join(feedback).strip()))

    for line in text.split("\n"):
        t = line.strip()
        if not t:
            continue
        m = QCM_MARKER_RE.match(t)
        if m:
            flush()
            current = (int(m.group(1)), tuple(m.group(2).upper()))
            feedback = []
        elif current is not None:
            feedback.append(t)
    flush()
    return entries


def apply_corrections(questions: list[Question], corrections: list[CorrectionEntry]) -> int:
    # Pairing is positional: the n-th entry corrects the n-th question whatever its QCM number says.
    paired = min(len(questions), len(corrections))
    for q, corr in zip(questions, corrections):
        for a in q.answers:
            a.is_correct = a.letter in corr.correct_letters
        if corr.feedback:
            q.general_feedback = corr.feedback
    return paired


def correction_mismatches(corrections: list[CorrectionEntry]) -> list[tuple[int, int]]:
    return [(pos, c.qcm_number) for pos, c in enumerate(corrections, start=1) if c.qcm_number != pos]


def parse_word_text(text: str) -> tuple[list[Question], list[CorrectionEntry]]:
    qcm_text, corrections_text = split_qcm_and_corrections(text)
    corrections = parse_corrections(corrections_text)
    questions = parse_questions(qcm_text)
    if corrections:
        apply_corrections(questions, corrections)
    return questions, corrections
