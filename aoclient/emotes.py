"""Emote selection: labels, preview names and the pre-animation toggle."""

from __future__ import annotations

import enum

__all__ = ["EmoteMod", "EmoteSelector", "emote_label", "preview_emote_name"]


class EmoteMod(enum.IntEnum):
    """How an emote is played: with or without its pre-animation and zoom."""

    IDLE = 0
    PREANIM = 1
    ZOOM = 5
    PREANIM_ZOOM = 6


_PREANIM_MODS = frozenset({EmoteMod.PREANIM, EmoteMod.PREANIM_ZOOM})


def emote_label(index: int, comment: str) -> str:
    """The text shown for the emote at zero-based ``index``."""
    return f"{index + 1}: {comment}"


def preview_emote_name(pre: str, emote: str, pre_checked: bool) -> str:
    """The animation a preview plays: the pre-animation or the talking one."""
    if pre_checked and pre and pre != "-":
        return pre
    return "(b)" + emote


class EmoteSelector:
    """Tracks the selected emote and whether its pre-animation is enabled."""

    def __init__(self, sticky_preanim: bool = False) -> None:
        self.sticky_preanim = sticky_preanim
        self.current_emote = 0
        self.pre_checked = False

    def select(self, emote_id: int, emote_mod: int) -> bool:
        """Select an emote; return whether the pre-animation is now enabled.

        Selecting the emote that is already selected toggles the
        pre-animation. Otherwise, unless pre-animation choice is sticky, it
        follows the emote's own mode.
        """
        if emote_id < 0:
            raise ValueError("emote_id must not be negative")
        previous = self.current_emote
        self.current_emote = emote_id
        if previous == emote_id:
            self.pre_checked = not self.pre_checked
        elif not self.sticky_preanim:
            self.pre_checked = emote_mod in _PREANIM_MODS
        return self.pre_checked

    def preview_name(self, pre: str, emote: str) -> str:
        """The animation a preview of the selected emote plays."""
        return preview_emote_name(pre, emote, self.pre_checked)