from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from settings import local_tz

PREFIXES = {
    "info": "[INFO]",
    "success": "[OK]",
    "warning": "[WARN]",
    "error": "[ERR]",
}


@dataclass
class LogLine:
    level: str
    message: str
    at: datetime


@dataclass
class SessionLog:
    entries: list[LogLine] = field(default_factory=list)

    def log(self, message: str, level: str = "info") -> None:
        if level not in PREFIXES:
            level = "info"
        self.entries.append(LogLine(level, message, datetime.now(local_tz())))

    def info(self, message: str) -> None:
        self.log(message, "info")

    def success(self, message: str) -> None:
        self.log(message, "success")

    def warning(self, message: str) -> None:
        self.log(message, "warning")

    def error(self, message: str) -> None:
        self.log(message, "error")

    def clear(self) -> None:
        self.entries.clear()

    def messages(self, level: str | None = None) -> list[str]:
        return [e.message for e in self.entries if level is None or e.level == level]

    def lines(self) -> list[str]:
        return [f"{e.at.strftime('%H:%M:%S')} {PREFIXES[e.level]} {e.message}" for e in self.entries]
