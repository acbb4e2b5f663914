"""Evidence items and the INI inventory files they are saved in."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

__all__ = ["Evidence", "evidence_changed", "load_inventory", "save_inventory"]

log = logging.getLogger(__name__)

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t", '"': '\\"'}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "t": "\t", '"': '"'}
_NEEDS_QUOTES = set(";,=#")


@dataclass
class Evidence:
    """A piece of evidence: its name, description and image file."""

    name: str = "<name>"
    description: str = "<description>"
    image: str = "empty.png"


def evidence_changed(a: Evidence, b: Evidence) -> bool:
    """True when the two pieces of evidence differ in any field."""
    return a.name != b.name or a.image != b.image or a.description != b.description


def _encode_value(value: str) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    if (
        any(ch in _NEEDS_QUOTES for ch in value)
        or value != value.strip()
        or '"' in value
    ):
        return f'"{escaped}"'
    return escaped


def _decode_value(raw: str) -> str:
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        text = text[1:-1]
    chars = iter(text)
    out = []
    for ch in chars:
        if ch == "\\":
            following = next(chars, "")
            out.append(_UNESCAPES.get(following, following))
        else:
            out.append(ch)
    return "".join(out)


def _read_sections(path: Path) -> dict[str, dict[str, str]]:
    sections: dict[str, dict[str, str]] = {}
    current: dict[str, str] | None = None
    with path.open(encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip()
            if not line or line[0] == ";":
                continue
            if line.startswith("[") and line.endswith("]"):
                current = sections.setdefault(line[1:-1].strip(), {})
                continue
            if current is None or "=" not in line:
                continue
            key, _, value = line.partition("=")
            current[key.strip()] = _decode_value(value)
    return sections


def load_inventory(path: str | os.PathLike) -> list[Evidence]:
    """Read evidence from an inventory file; empty if the file is missing."""
    file_path = Path(path)
    if not file_path.is_file():
        log.warning("Trying to load a non-existent evidence save file: %s", path)
        return []
    items = []
    for group, values in _read_sections(file_path).items():
        if group == "General":
            continue
        items.append(
            Evidence(
                name=values.get("name", "<name>"),
                description=values.get("description", "<description>"),
                image=values.get("image", "empty.png"),
            )
        )
    return items


def save_inventory(path: str | os.PathLike, items: list[Evidence]) -> None:
    """Write evidence to an inventory file, replacing what it held."""
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    lines = []
    for index, item in enumerate(items):
        if lines:
            lines.append("")
        lines.append(f"[{index}]")
        lines.append(f"name={_encode_value(item.name)}")
        lines.append(f"description={_encode_value(item.description)}")
        lines.append(f"image={_encode_value(item.image)}")
    text = "\n".join(lines) + ("\n" if lines else "")
    file_path.write_text(text, encoding="utf-8")