from __future__ import annotations

import pytest

from errors import AttachmentError, ValidationError
from models import NO_IMAGE, Answer, Image, NoImage, Question, sanitize_file_name
from settings import MAX_IMAGE_BYTES


@pytest.mark.parametrize(
    "name, expected",
    [
        ("photo.png", "photo.png"),
        ("my photo (1).png", "my_photo_1_.png"),
        ("été à Paris.jpg", "_t_Paris.jpg"),
        ("a  b.gif", "a_b.gif"),
        ("", ""),
    ],
)
def test_sanitize_file_name(name, expected):
    assert sanitize_file_name(name) == expected


def test_attachment_error_is_a_validation_error():
    assert issubclass(AttachmentError, ValidationError)


def test_validated_refuses_non_images():
    with pytest.raises(AttachmentError, match="not an image"):
        Image.validated(b"%PDF", "doc.pdf", "application/pdf")


def test_validated_refuses_oversized_images():
    with pytest.raises(AttachmentError, match="larger than 5 MB"):
        Image.validated(b"\0" * (MAX_IMAGE_BYTES + 1), "big.png", "image/png")


def test_validated_accepts_exact_limit():
    img = Image.validated(bytearray(MAX_IMAGE_BYTES), "edge.png", "image/png")
    assert isinstance(img.data, bytes)
    assert len(img.data) == MAX_IMAGE_BYTES


def test_no_image_sentinel():
    a = Answer(text="x", letter="A")
    assert a.image is NO_IMAGE
    assert isinstance(a.image, NoImage)
    assert not isinstance(a.image, Image)


def test_question_correct_letters():
    q = Question(
        id=1,
        title="t",
        answers=[Answer("a", "A", True), Answer("b", "B"), Answer("c", "C", True)],
    )
    assert q.has_correct_answer()
    assert q.correct_letters() == ["A", "C"]
    assert not Question(id=2, title="t").has_correct_answer()
