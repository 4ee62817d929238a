from __future__ import annotations

import base64

import pytest
import requests

import moodle_api
from errors import TransportError
from moodle_api import (
    category_label,
    course_label,
    import_questions,
    list_courses,
    list_question_categories,
    moodle_call,
    rest_url,
    site_info,
)


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture
def fake_post(monkeypatch):
    calls = []
    responses = []

    def post(url, data=None, timeout=None):
        calls.append({"url": url, "data": data, "timeout": timeout})
        resp = responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    monkeypatch.setattr(moodle_api.requests, "post", post)
    return calls, responses


def test_rest_url_strips_trailing_slash():
    assert rest_url("https://moodle.example.org/ ") == "https://moodle.example.org/webservice/rest/server.php"


def test_moodle_call_posts_form_fields(fake_post):
    calls, responses = fake_post
    responses.append(FakeResponse(body={"sitename": "Test"}))

    assert site_info("https://m.example.org", "tok") == {"sitename": "Test"}
    assert calls[0]["url"] == "https://m.example.org/webservice/rest/server.php"
    assert calls[0]["data"] == {
        "wstoken": "tok",
        "wsfunction": "core_webservice_get_site_info",
        "moodlewsrestformat": "json",
    }
    assert calls[0]["timeout"] == 60


def test_moodle_call_requires_url_and_token(fake_post):
    calls, _ = fake_post
    with pytest.raises(TransportError, match="required"):
        moodle_call("", "tok", "x")
    with pytest.raises(TransportError):
        moodle_call("https://m.example.org", "  ", "x")
    assert calls == []


def test_moodle_exception_body_becomes_transport_error(fake_post):
    _, responses = fake_post
    responses.append(FakeResponse(body={"exception": "moodle_exception", "errorcode": "invalidtoken", "message": "Invalid token"}))
    with pytest.raises(TransportError, match="Invalid token"):
        list_courses("https://m.example.org", "bad")


def test_non_200_is_reported(fake_post):
    _, responses = fake_post
    responses.append(FakeResponse(status_code=500, text="boom"))
    with pytest.raises(TransportError, match="500"):
        list_courses("https://m.example.org", "tok")


def test_non_json_is_reported(fake_post):
    _, responses = fake_post
    responses.append(FakeResponse(body=ValueError("no json")))
    with pytest.raises(TransportError, match="non-JSON"):
        list_courses("https://m.example.org", "tok")


def test_network_failure_is_wrapped(fake_post):
    _, responses = fake_post
    responses.append(requests.ConnectionError("refused"))
    with pytest.raises(TransportError, match="refused"):
        list_courses("https://m.example.org", "tok")


def test_list_question_categories_sends_course_id(fake_post):
    calls, responses = fake_post
    responses.append(FakeResponse(body=[{"id": 4, "name": "Default", "questioncount": 12}]))
    cats = list_question_categories("https://m.example.org", "tok", "7")
    assert calls[0]["data"]["courseid"] == 7
    assert calls[0]["data"]["wsfunction"] == "local_questionimporter_get_question_categories"
    assert category_label(cats[0]) == "Default (12 questions)"


def test_import_questions_sends_base64_xml(fake_post):
    calls, responses = fake_post
    responses.append(FakeResponse(body={"success": True, "message": "ok", "imported": 3, "errors": ["Q2 warning"]}))
    result = import_questions("https://m.example.org", "tok", 9, "<quiz>é</quiz>")

    sent = calls[0]["data"]
    assert sent["categoryid"] == 9
    assert base64.b64decode(sent["xmlcontent"]).decode("utf-8") == "<quiz>é</quiz>"
    assert (result.success, result.imported, result.errors) == (True, 3, ["Q2 warning"])


def test_import_questions_rejects_unexpected_body(fake_post):
    _, responses = fake_post
    responses.append(FakeResponse(body=[]))
    with pytest.raises(TransportError):
        import_questions("https://m.example.org", "tok", 9, "<quiz/>")


def test_course_label():
    assert course_label({"shortname": "MATH1", "fullname": "Algebra"}) == "MATH1 - Algebra"
