"""Entries of the in-character chat log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

__all__ = ["ChatLogPiece"]


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ChatLogPiece:
    """One logged message, timestamped in UTC."""

    name: str = "UNKNOWN"
    showname: str = "UNKNOWN"
    message: str = "UNKNOWN"
    action: str = ""
    color: int = 0
    selfname: bool = False
    datetime: datetime = field(default_factory=_now_utc)

    def __post_init__(self) -> None:
        self.datetime = self.datetime.astimezone(timezone.utc)

    @property
    def datetime_text(self) -> str:
        return self.datetime.strftime("%Y-%m-%d %H:%M:%S")

    def full(self) -> str:
        """The entry as a single log line."""
        text = f"[{self.datetime_text}] {self.showname}"
        if self.showname != self.name:
            text += f" ({self.name})"
        if self.action:
            text += f" {self.action}"
        return f"{text}: {self.message}"