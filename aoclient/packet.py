"""Wire packets of the courtroom protocol: building, escaping and parsing."""

from __future__ import annotations

from dataclasses import dataclass, field

__all__ = ["AOPacket", "PacketAssembler", "parse_packet", "split_packets"]

_ESCAPES = (
    ("#", "<num>"),
    ("%", "<percent>"),
    ("$", "<dollar>"),
    ("&", "<and>"),
)


def _escape_field(text: str) -> str:
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def _unescape_field(text: str) -> str:
    for raw, escaped in reversed(_ESCAPES):
        text = text.replace(escaped, raw)
    return text


@dataclass
class AOPacket:
    """A packet: a header followed by any number of string fields."""

    header: str
    contents: list[str] = field(default_factory=list)

    def to_string(self, encoded: bool = False) -> str:
        """Render the packet as it is sent on the wire."""
        contents = self.escape(self.contents) if encoded else self.contents
        return "#".join([self.header, *contents]) + "#%"

    def net_encode(self) -> None:
        """Escape the protocol's reserved characters in every field."""
        self.contents = self.escape(self.contents)

    def net_decode(self) -> None:
        """Undo the escaping of reserved characters in every field."""
        self.contents = self.unescape(self.contents)

    @staticmethod
    def escape(contents: list[str]) -> list[str]:
        return [_escape_field(item) for item in contents]

    @staticmethod
    def unescape(contents: list[str]) -> list[str]:
        return [_unescape_field(item) for item in contents]

    def __str__(self) -> str:
        return self.to_string()


def parse_packet(text: str) -> AOPacket:
    """Parse one packet body (without the trailing '%')."""
    body = text[:-1] if text.endswith("#") else text
    header, *contents = body.split("#")
    return AOPacket(header, contents)


def split_packets(data: str) -> list[AOPacket]:
    """Split a stream chunk on '%' and parse every non-empty packet."""
    return [parse_packet(part) for part in data.split("%") if part]


class PacketAssembler:
    """Collects partial chunks until a chunk ends on a packet boundary."""

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, data: str) -> list[AOPacket]:
        """Add received data; return the packets completed by it."""
        if not data.endswith("%"):
            self._pending += data
            return []
        data = self._pending + data
        self._pending = ""
        return split_packets(data)