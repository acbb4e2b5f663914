"""Identification of the machine the client runs on."""

from __future__ import annotations

import sys
from pathlib import Path

__all__ = ["get_hdid"]

_FALLBACK_HDID = "gxsps32sa9fnwic92mfbs2"
_MACHINE_ID_PATHS = ("/etc/machine-id", "/var/lib/dbus/machine-id")


def _read_machine_id_file() -> str:
    for candidate in _MACHINE_ID_PATHS:
        try:
            text = Path(candidate).read_text(encoding="ascii", errors="ignore").strip()
        except OSError:
            continue
        if text:
            return text
    return ""


def _read_windows_machine_guid() -> str:
    try:
        import winreg
    except ImportError:
        return ""
    try:
        with winreg.OpenKey(
            winreg.HKEY_LOCAL_MACHINE, r"SOFTWARE\Microsoft\Cryptography"
        ) as key:
            value, _ = winreg.QueryValueEx(key, "MachineGuid")
    except OSError:
        return ""
    return str(value).strip()


def get_hdid() -> str:
    """A stable identifier for this machine, or a fixed fallback."""
    if sys.platform.startswith("win"):
        machine_id = _read_windows_machine_guid()
    else:
        machine_id = _read_machine_id_file()
    return machine_id or _FALLBACK_HDID