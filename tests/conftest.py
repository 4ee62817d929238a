from __future__ import annotations

import io

import pytest
from docx import Document
from openpyxl import Workbook

QUESTION_HEADER = ["SNO", "Questions", "Type", "option 1", "option 2", "option 3", "option 4", "option 5", "Correct Answer", "Commentaires", "Points"]


def xlsx_bytes(rows: list[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    for r in rows:
        ws.append(r)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def docx_bytes(paragraphs: list[str], table: list[list[str]] | None = None, merges: list[tuple] | None = None) -> bytes:
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    if table:
        t = doc.add_table(rows=len(table), cols=len(table[0]))
        for i, row in enumerate(table):
            for j, value in enumerate(row):
                t.cell(i, j).text = value
        for (r1, c1), (r2, c2), text in merges or []:
            t.cell(r1, c1).merge(t.cell(r2, c2)).text = text
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_xlsx():
    return xlsx_bytes


@pytest.fixture
def make_docx():
    return docx_bytes


@pytest.fixture
def question_sheet():
    return xlsx_bytes(
        [
            QUESTION_HEADER,
            [1, "Capital of France?", "RADIO", "Paris", "Lyon", "Nice", None, None, "paris", "It's Paris", 2],
            [2, "Pick the primes", "CHECKBOX", "2", "4", "5", "9", None, "2, 5", None, None],
            [3, "Unanswerable", "CHECKBOX", "Red", "Blue", None, None, None, "Green", None, 1],
        ]
    )


SIX_LINE_QCM = "\n".join(
    [
        "What is 2 + 2?",
        "3",
        "4",
        "5",
        "four",
        "22",
    ]
)
