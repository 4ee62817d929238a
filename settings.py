from __future__ import annotations

import os
import tomllib

import pytz

DEFAULT_CATEGORY = "Questions"
DEFAULT_XML_FILENAME = "moodle_questions.xml"
DEFAULT_CSV_FILENAME = "moodle_import.csv"
DEFAULT_BUCKET_17_FILENAME = "licences_1_7.xlsx"
DEFAULT_BUCKET_9_FILENAME = "licences_9.xlsx"

MAX_IMAGE_BYTES = 5 * 1024 * 1024
HTTP_TIMEOUT_S = 60
DEFAULT_TZ_NAME = "Europe/Paris"

SECRET_KEYS = ["MOODLE_URL", "MOODLE_TOKEN", "TZ_NAME"]


def safe_load_secrets_toml(base_dir: str | None = None) -> dict[str, str]:
    try:
        base_dir = base_dir or os.path.dirname(os.path.abspath(__file__))
        secrets_path = os.path.join(base_dir, ".streamlit", "secrets.toml")
        if not os.path.exists(secrets_path):
            return {}
        with open(secrets_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    out: dict[str, str] = {}
    for k in SECRET_KEYS:
        v = data.get(k)
        if isinstance(v, str):
            out[k] = v
    return out


_LOCAL_SECRETS = safe_load_secrets_toml()


def get_setting(key: str, default: str = "") -> str:
    return os.getenv(key, "") or _LOCAL_SECRETS.get(key, default)


def local_tz():
    name = get_setting("TZ_NAME", DEFAULT_TZ_NAME)
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return pytz.timezone(DEFAULT_TZ_NAME)
