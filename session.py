from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from errors import AttachmentError, FormatError, TransportError, ValidationError
from excel_questions import EXPECTED_FORMAT, load_question_rows, preview_rows
from models import NO_IMAGE, CorrectionEntry, Image, Question
from moodle_api import ImportResult, import_questions
from moodle_xml import generate_tabular_xml, generate_word_xml
from runlog import SessionLog
from settings import DEFAULT_CATEGORY
from word_parser import correction_mismatches, extract_docx_text, is_word_file, parse_word_text

SOURCE_TABULAR = "tabular"
SOURCE_WORD = "word"

SLOT_TITLE = "title"
SLOT_FEEDBACK = "feedback"
SLOT_ANSWER = "answer"
SLOTS = (SLOT_TITLE, SLOT_FEEDBACK, SLOT_ANSWER)


@dataclass
class ConverterSession:
    """Everything loaded for one conversion run.

    Exactly one input path fills it: a spreadsheet (``rows``) or a Word
    document (``questions`` + ``corrections``). Loading again replaces the
    previous content instead of merging into it. Rendering code reads the
    fields after each call; nothing here pushes to the UI.
    """

    source: str | None = None
    filename: str = ""
    rows: list[dict[str, Any]] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    corrections: list[CorrectionEntry] = field(default_factory=list)
    log: SessionLog = field(default_factory=SessionLog)

    @property
    def loaded(self) -> bool:
        if self.source == SOURCE_TABULAR:
            return bool(self.rows)
        if self.source == SOURCE_WORD:
            return bool(self.questions)
        return False

    @property
    def question_count(self) -> int:
        return len(self.rows) if self.source == SOURCE_TABULAR else len(self.questions)

    def _reset(self) -> None:
        self.source = None
        self.filename = ""
        self.rows = []
        self.questions = []
        self.corrections = []

    def clear(self) -> None:
        self._reset()
        self.log.clear()
        self.log.info("Everything has been cleared")

    # ---------------------------------------------------
    # Loading
    # ---------------------------------------------------
    def load_spreadsheet(self, data: bytes, filename: str) -> bool:
        self.log.clear()
        self.log.info(f"Loading file: {filename}")
        try:
            rows = load_question_rows(data)
        except FormatError as e:
            self.log.error(f"Loading failed: {e}")
            return False
        except ValidationError as e:
            self.log.error(str(e))
            self.log.warning(f"Expected format: {EXPECTED_FORMAT}")
            return False

        self._reset()
        self.source = SOURCE_TABULAR
        self.filename = filename
        self.rows = rows
        self.log.success(f"{len(rows)} question(s) loaded")
        return True

    def load_word_document(self, data: bytes, filename: str) -> bool:
        self.log.clear()
        if not is_word_file(filename):
            self.log.error("Only .docx and .doc files are accepted")
            return False
        self.log.info(f"Loading {filename}...")
        try:
            text = extract_docx_text(data)
        except FormatError as e:
            self.log.error(str(e))
            return False
        return self.load_word_text(text, filename)

    def load_word_text(self, text: str, filename: str = "") -> bool:
        questions, corrections = parse_word_text(text)

        self._reset()
        self.source = SOURCE_WORD
        self.filename = filename
        self.questions = questions
        self.corrections = corrections

        if corrections:
            self.log.success(f"{len(corrections)} correction(s) detected")
            for pos, number in correction_mismatches(corrections):
                self.log.info(f"Correction QCM{number} is applied to question {pos} (corrections pair by position)")
        if not questions:
            self.log.warning("No question found (expected a title followed by 5 answers)")
            return False
        self.log.success(f"{len(questions)} question(s) extracted")
        return True

    def preview(self) -> list[Any]:
        if self.source == SOURCE_TABULAR:
            return preview_rows(self.rows)
        return list(self.questions)

    # ---------------------------------------------------
    # Editing (Word path)
    # ---------------------------------------------------
    def _question(self, q_idx: int) -> Question:
        if self.source != SOURCE_WORD:
            raise ValidationError("Only questions loaded from a Word document can be edited.")
        if not 0 <= q_idx < len(self.questions):
            raise ValidationError(f"No question at position {q_idx + 1}.")
        return self.questions[q_idx]

    def toggle_answer(self, q_idx: int, a_idx: int, is_correct: bool) -> None:
        self._question(q_idx).answers[a_idx].is_correct = bool(is_correct)

    def update_feedback(self, q_idx: int, feedback: str) -> None:
        self._question(q_idx).general_feedback = feedback

    def _set_slot(self, q_idx: int, slot: str, image, answer_index: int | None) -> None:
        q = self._question(q_idx)
        if slot == SLOT_TITLE:
            q.title_image = image
        elif slot == SLOT_FEEDBACK:
            q.feedback_image = image
        elif slot == SLOT_ANSWER:
            if answer_index is None or not 0 <= answer_index < len(q.answers):
                raise ValidationError(f"Question {q_idx + 1} has no answer at position {answer_index}.")
            q.answers[answer_index].image = image
        else:
            raise ValidationError(f"Unknown image slot '{slot}' (expected one of {', '.join(SLOTS)}).")

    def attach_image(self, q_idx: int, slot: str, data: bytes, name: str, mime_type: str, answer_index: int | None = None) -> bool:
        try:
            image = Image.validated(data, name, mime_type)
        except AttachmentError as e:
            self.log.error(f"Image refused: {e}")
            return False
        self._set_slot(q_idx, slot, image, answer_index)
        self.log.success(f'Image "{name}" added')
        return True

    def detach_image(self, q_idx: int, slot: str, answer_index: int | None = None) -> None:
        self._set_slot(q_idx, slot, NO_IMAGE, answer_index)

    # ---------------------------------------------------
    # Output
    # ---------------------------------------------------
    def generate_xml(self, category_name: str = "") -> str | None:
        if not self.loaded:
            self.log.error("No question loaded")
            return None

        # Only the spreadsheet path trims the category name.
        if self.source == SOURCE_TABULAR:
            category_name = (category_name or "").strip() or DEFAULT_CATEGORY
            xml = generate_tabular_xml(self.rows, category_name, self.log)
            self.log.success(f"XML generated: {len(self.rows)} question(s)")
            return xml

        category_name = category_name or DEFAULT_CATEGORY
        try:
            xml = generate_word_xml(self.questions, category_name)
        except ValidationError as e:
            self.log.error(str(e))
            return None
        self.log.success(f"XML generated: {len(self.questions)} question(s)")
        return xml

    def push_to_moodle(self, moodle_url: str, token: str, category_id: int | None, category_name: str = "") -> ImportResult | None:
        if not category_id:
            self.log.error("Please select a question bank")
            return None
        xml = self.generate_xml(category_name)
        if xml is None:
            return None

        self.log.info("Sending to Moodle...")
        try:
            result = import_questions(moodle_url, token, int(category_id), xml)
        except TransportError as e:
            self.log.error(f"Import failed: {e}")
            return None

        if result.success:
            self.log.success(f"Import succeeded: {result.imported} question(s) imported")
            if result.message:
                self.log.success(result.message)
        else:
            self.log.error(f"Import failed: {result.message}")
        for err in result.errors:
            self.log.warning(err)
        return result
