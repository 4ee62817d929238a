from __future__ import annotations

from typing import Any

from errors import ResolutionError, ValidationError
from excel_questions import row_to_question
from models import Attachment, Image, Question, TabularQuestion
from runlog import SessionLog
from spreadsheet import cell_text, js_number

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
CATEGORY_ROOT = "$course$/top/"

# The two generators escape apostrophes differently; both shapes are what the importer already receives.
APOS_ENTITY = "&apos;"
APOS_NUMERIC = "&#039;"

CORRECT_FEEDBACK = "Votre reponse est correcte."
PARTIAL_FEEDBACK = "Votre reponse est partiellement correcte."
INCORRECT_FEEDBACK = "Votre reponse est incorrecte."


def escape_xml(text: Any, apos: str = APOS_ENTITY) -> str:
    if not text:
        return ""
    return (
        cell_text(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", apos)
    )


def category_block(category_name: str, apos: str = APOS_ENTITY) -> str:
    xml = '  <question type="category">\n'
    xml += "    <category>\n"
    xml += f"      <text>{CATEGORY_ROOT}{escape_xml(category_name, apos)}</text>\n"
    xml += "    </category>\n"
    xml += "  </question>\n"
    return xml


# ---------------------------------------------------
# Spreadsheet path
# ---------------------------------------------------
def tabular_question_xml(q: TabularQuestion) -> str:
    xml = '  <question type="multichoice">\n'
    xml += "    <name>\n"
    xml += f"      <text>Question {q.number}</text>\n"
    xml += "    </name>\n"
    xml += '    <questiontext format="html">\n'
    xml += f"      <text><![CDATA[{escape_xml(q.text)}]]></text>\n"
    xml += "    </questiontext>\n"
    xml += '    <generalfeedback format="html">\n'
    xml += f"      <text><![CDATA[{escape_xml(q.feedback)}]]></text>\n"
    xml += "    </generalfeedback>\n"
    xml += f"    <defaultgrade>{cell_text(q.points)}</defaultgrade>\n"
    xml += "    <penalty>0.3333333</penalty>\n"
    xml += "    <hidden>0</hidden>\n"
    xml += f"    <single>{'true' if q.single else 'false'}</single>\n"
    xml += "    <shuffleanswers>true</shuffleanswers>\n"
    xml += "    <answernumbering>abc</answernumbering>\n"
    xml += '    <correctfeedback format="html">\n'
    xml += f"      <text>{CORRECT_FEEDBACK}</text>\n"
    xml += "    </correctfeedback>\n"
    xml += '    <partiallycorrectfeedback format="html">\n'
    xml += f"      <text>{PARTIAL_FEEDBACK}</text>\n"
    xml += "    </partiallycorrectfeedback>\n"
    xml += '    <incorrectfeedback format="html">\n'
    xml += f"      <text>{INCORRECT_FEEDBACK}</text>\n"
    xml += "    </incorrectfeedback>\n"

    for option in q.options:
        fraction = "100" if q.is_correct(option) else "0"
        xml += f'    <answer fraction="{fraction}" format="html">\n'
        xml += f"      <text><![CDATA[{escape_xml(option)}]]></text>\n"
        xml += '      <feedback format="html">\n'
        xml += "        <text></text>\n"
        xml += "      </feedback>\n"
        xml += "    </answer>\n"

    xml += "  </question>\n\n"
    return xml


def generate_tabular_xml(rows: list[dict[str, Any]], category_name: str, log: SessionLog | None = None) -> str:
    xml = XML_HEADER
    xml += "<quiz>\n\n"
    xml += category_block(category_name)
    xml += "\n"

    for number, row in enumerate(rows, start=1):
        try:
            xml += tabular_question_xml(row_to_question(row, number))
        except ResolutionError as e:
            if log is not None:
                log.warning(f"Question {number} skipped: {e}")

    xml += "</quiz>"
    return xml


# ---------------------------------------------------
# Word path
# ---------------------------------------------------
def text_with_image(text: str, image: Attachment) -> tuple[str, str | None]:
    html = escape_xml(text or "", APOS_NUMERIC)
    if not isinstance(image, Image):
        return html, None

    name = image.safe_name
    html += f'<br><img src="@@PLUGINFILE@@/{name}" alt="" role="presentation" class="img-responsive">'
    file_el = f'      <file name="{name}" path="/" encoding="base64">{image.base64_payload()}</file>\n'
    return html, file_el


def answer_fractions(q: Question) -> list[str]:
    n_correct = sum(1 for a in q.answers if a.is_correct)
    share = (100 / n_correct) if n_correct else 0
    return [js_number(share) if a.is_correct else "0" for a in q.answers]


def validate_word_questions(questions: list[Question]) -> None:
    if not questions:
        raise ValidationError("No question to convert.")
    for idx, q in enumerate(questions, start=1):
        if not q.has_correct_answer():
            raise ValidationError(f"Question {idx} has no correct answer.")


def word_question_xml(q: Question, number: int) -> str:
    xml = '  <question type="multichoice">\n'
    xml += "    <name>\n"
    xml += f"      <text><![CDATA[Question {number}]]></text>\n"
    xml += "    </name>\n"

    html, file_el = text_with_image(q.title, q.title_image)
    xml += '    <questiontext format="html">\n'
    xml += f"      <text><![CDATA[{html}]]></text>\n"
    if file_el:
        xml += file_el
    xml += "    </questiontext>\n"

    html, file_el = text_with_image(q.general_feedback, q.feedback_image)
    xml += '    <generalfeedback format="html">\n'
    xml += f"      <text><![CDATA[{html}]]></text>\n"
    if file_el:
        xml += file_el
    xml += "    </generalfeedback>\n"

    xml += "    <defaultgrade>1.0000000</defaultgrade>\n"
    xml += "    <penalty>0.3333333</penalty>\n"
    xml += "    <hidden>0</hidden>\n"
    xml += "    <single>false</single>\n"
    xml += "    <shuffleanswers>true</shuffleanswers>\n"
    xml += "    <answernumbering>abc</answernumbering>\n"

    for answer, fraction in zip(q.answers, answer_fractions(q)):
        html, file_el = text_with_image(answer.text, answer.image)
        xml += f'    <answer fraction="{fraction}" format="html">\n'
        xml += f"      <text><![CDATA[{html}]]></text>\n"
        if file_el:
            xml += file_el
        xml += '      <feedback format="html">\n'
        xml += "        <text></text>\n"
        xml += "      </feedback>\n"
        xml += "    </answer>\n"

    xml += "  </question>\n"
    return xml


def generate_word_xml(questions: list[Question], category_name: str) -> str:
    validate_word_questions(questions)

    xml = XML_HEADER
    xml += "<quiz>\n"
    xml += category_block(category_name, APOS_NUMERIC)
    for number, q in enumerate(questions, start=1):
        xml += word_question_xml(q, number)
    xml += "</quiz>"
    return xml
