from __future__ import annotations

import re

from runlog import SessionLog


def test_levels_and_lines():
    log = SessionLog()
    log.info("start")
    log.warning("careful")
    log.log("odd", "verbose")

    assert log.messages() == ["start", "careful", "odd"]
    assert log.messages("info") == ["start", "odd"]
    lines = log.lines()
    assert re.fullmatch(r"\d\d:\d\d:\d\d \[WARN\] careful", lines[1])
    assert lines[0].endswith("[INFO] start")


def test_clear():
    log = SessionLog()
    log.error("x")
    log.clear()
    assert log.entries == []


def test_timestamps_use_configured_zone(monkeypatch):
    monkeypatch.setenv("TZ_NAME", "Asia/Tokyo")
    log = SessionLog()
    log.info("tick")
    assert log.entries[0].at.utcoffset().total_seconds() == 9 * 3600
