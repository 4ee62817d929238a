from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any

import requests

from errors import TransportError
from settings import HTTP_TIMEOUT_S

REST_PATH = "/webservice/rest/server.php"

WS_SITE_INFO = "core_webservice_get_site_info"
WS_GET_COURSES = "local_questionimporter_get_courses"
WS_GET_CATEGORIES = "local_questionimporter_get_question_categories"
WS_IMPORT_QUESTIONS = "local_questionimporter_import_questions"


@dataclass
class ImportResult:
    success: bool
    message: str
    imported: int = 0
    errors: list[str] = field(default_factory=list)


def rest_url(moodle_url: str) -> str:
    return f"{(moodle_url or '').strip().rstrip('/')}{REST_PATH}"


def moodle_call(moodle_url: str, token: str, wsfunction: str, params: dict[str, Any] | None = None, timeout: int = HTTP_TIMEOUT_S) -> Any:
    if not (moodle_url or "").strip() or not (token or "").strip():
        raise TransportError("Moodle URL and token are required.")

    data = {"wstoken": token, "wsfunction": wsfunction, "moodlewsrestformat": "json"}
    data.update(params or {})
    try:
        r = requests.post(rest_url(moodle_url), data=data, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"Moodle request failed: {e}") from e
    if r.status_code != 200:
        raise TransportError(f"Moodle error {r.status_code}: {r.text[:600]}")
    try:
        body = r.json()
    except ValueError as e:
        raise TransportError(f"Moodle returned a non-JSON response: {e}") from e
    if isinstance(body, dict) and ("exception" in body or "errorcode" in body):
        raise TransportError(body.get("message") or body.get("errorcode") or "Moodle returned an exception.")
    return body


def site_info(moodle_url: str, token: str) -> dict:
    return moodle_call(moodle_url, token, WS_SITE_INFO)


def list_courses(moodle_url: str, token: str) -> list[dict]:
    return moodle_call(moodle_url, token, WS_GET_COURSES) or []


def list_question_categories(moodle_url: str, token: str, course_id: int) -> list[dict]:
    return moodle_call(moodle_url, token, WS_GET_CATEGORIES, {"courseid": int(course_id)}) or []


def import_questions(moodle_url: str, token: str, category_id: int, xml: str) -> ImportResult:
    encoded = base64.b64encode(xml.encode("utf-8")).decode("ascii")
    body = moodle_call(moodle_url, token, WS_IMPORT_QUESTIONS, {"categoryid": int(category_id), "xmlcontent": encoded})
    if not isinstance(body, dict):
        raise TransportError("Moodle returned an unexpected import response.")
    return ImportResult(
        success=bool(body.get("success")),
        message=str(body.get("message") or ""),
        imported=int(body.get("imported") or 0),
        errors=[str(e) for e in (body.get("errors") or [])],
    )


def course_label(course: dict) -> str:
    return f"{course.get('shortname', '')} - {course.get('fullname', '')}"


def category_label(category: dict) -> str:
    return f"{category.get('name', '')} ({category.get('questioncount', 0)} questions)"
