"""Migration of old flat effects.ini files to the grouped layout."""

from __future__ import annotations

import configparser
import logging
import os
import re

__all__ = ["migrate_effects"]

log = logging.getLogger(__name__)

_PROPERTIES = ("sound", "scaling", "stretch", "ignore_offset", "under_chatbox")
_REPLACEMENTS = {"under_chatbox": ("layer", "character")}
_PROPERTY_KEY = re.compile(r"(\w+)_(%s)$" % "|".join(_PROPERTIES))


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _read_top_level(path: str | os.PathLike) -> dict[str, str]:
    """Keys outside any section, or in the General section."""
    values: dict[str, str] = {}
    section = None
    with open(path, encoding="utf-8") as handle:
        for raw in handle:
            line = raw.strip()
            if not line or line[0] in ";#":
                continue
            if line.startswith("[") and line.endswith("]"):
                section = line[1:-1].strip()
                continue
            if section not in (None, "General") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            values[key.strip()] = _unquote(value.strip())
    return values


def migrate_effects(path: str | os.PathLike) -> None:
    """Rewrite an old effects.ini at ``path`` in the version 2 format."""
    log.debug("Migrating effects from file: %s", path)
    old = _read_top_level(path)

    out = configparser.ConfigParser(interpolation=None)
    out.optionxform = str
    out["version"] = {"major": "2"}

    effect_names = [key for key in sorted(old) if not _PROPERTY_KEY.search(key)]

    for index, name in enumerate(effect_names):
        group: dict[str, str] = {
            "name": name,
            "sound": old.get(name, ""),
            "cull": "true",
            "layer": "character",
        }
        if name == "realization":
            group["stretch"] = "true"
            group["layer"] = "chat"
        for prop in _PROPERTIES:
            prop_key = f"{name}_{prop}"
            if prop_key in old:
                key, value = _REPLACEMENTS.get(prop, (prop, old[prop_key]))
                group[key] = value
        out[str(index)] = group

    with open(path, "w", encoding="utf-8") as handle:
        out.write(handle, space_around_delimiters=False)