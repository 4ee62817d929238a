from __future__ import annotations

import settings


def test_secrets_file_is_read(tmp_path):
    (tmp_path / ".streamlit").mkdir()
    (tmp_path / ".streamlit" / "secrets.toml").write_text('MOODLE_URL = "https://m.example.org"\nOTHER = "x"\nTZ_NAME = 3\n')
    assert settings.safe_load_secrets_toml(str(tmp_path)) == {"MOODLE_URL": "https://m.example.org"}


def test_broken_or_missing_secrets_give_empty_dict(tmp_path):
    assert settings.safe_load_secrets_toml(str(tmp_path)) == {}
    (tmp_path / ".streamlit").mkdir()
    (tmp_path / ".streamlit" / "secrets.toml").write_text("not = [valid")
    assert settings.safe_load_secrets_toml(str(tmp_path)) == {}


def test_environment_wins(monkeypatch):
    monkeypatch.setenv("MOODLE_TOKEN", "from-env")
    assert settings.get_setting("MOODLE_TOKEN") == "from-env"


def test_unknown_timezone_falls_back(monkeypatch):
    monkeypatch.setenv("TZ_NAME", "Mars/Olympus")
    assert settings.local_tz().zone == settings.DEFAULT_TZ_NAME
