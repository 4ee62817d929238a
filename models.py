from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from typing import Union

from errors import AttachmentError
from settings import MAX_IMAGE_BYTES

UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9._-]")
UNDERSCORE_RUN_RE = re.compile(r"__+")

LETTERS = ("A", "B", "C", "D", "E")


def sanitize_file_name(name: str) -> str:
    return UNDERSCORE_RUN_RE.sub("_", UNSAFE_NAME_RE.sub("_", name or ""))


@dataclass(frozen=True)
class NoImage:
    pass


NO_IMAGE = NoImage()


@dataclass(frozen=True)
class Image:
    data: bytes
    name: str
    mime_type: str

    @property
    def safe_name(self) -> str:
        return sanitize_file_name(self.name)

    def base64_payload(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @classmethod
    def validated(cls, data: bytes, name: str, mime_type: str) -> Image:
        if not (mime_type or "").startswith("image/"):
            raise AttachmentError(f"'{name}' is not an image ({mime_type or 'unknown type'}).")
        if len(data) > MAX_IMAGE_BYTES:
            raise AttachmentError(f"'{name}' is larger than {MAX_IMAGE_BYTES // (1024 * 1024)} MB.")
        return cls(data=bytes(data), name=name, mime_type=mime_type)


Attachment = Union[NoImage, Image]


@dataclass
class Answer:
    text: str
    letter: str
    is_correct: bool = False
    image: Attachment = NO_IMAGE


@dataclass
class Question:
    id: int
    title: str
    answers: list[Answer] = field(default_factory=list)
    general_feedback: str = ""
    title_image: Attachment = NO_IMAGE
    feedback_image: Attachment = NO_IMAGE

    def has_correct_answer(self) -> bool:
        return any(a.is_correct for a in self.answers)

    def correct_letters(self) -> list[str]:
        return [a.letter for a in self.answers if a.is_correct]


@dataclass(frozen=True)
class CorrectionEntry:
    qcm_number: int
    correct_letters: tuple[str, ...]
    feedback: str = ""


@dataclass
class TabularQuestion:
    """One spreadsheet row resolved against its options, ready to serialize."""

    number: int
    text: str
    options: list[str]
    correct: list[str]
    single: bool = False
    points: object = 1
    feedback: str = ""

    def is_correct(self, option: str) -> bool:
        return option in self.correct


@dataclass(frozen=True)
class IdentifierRecord:
    numero: int
    licence: str
