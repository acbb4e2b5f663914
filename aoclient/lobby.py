"""The lobby: browsing public and favourite servers before connecting."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from aoclient.masterserver import DocumentType, ServerInfo

__all__ = [
    "Lobby",
    "ServerSource",
    "loading_progress",
    "is_demo_server",
    "DEMO_SERVER_IP",
    "DEMO_SERVER_PORT",
]

log = logging.getLogger(__name__)

DEMO_SERVER_IP = "127.0.0.1"
DEMO_SERVER_PORT = 99999

OFFLINE_TEXT = "Offline"
MOTD_FALLBACK = "Couldn't get the message of the day."


class ServerSource(Protocol):
    """What the lobby needs from the master server."""

    def get_server_list(self) -> list[ServerInfo]: ...

    def request_document(self, document_type: DocumentType) -> str: ...


def loading_progress(
    loaded_chars: int,
    generated_chars: int,
    loaded_music: int,
    loaded_evidence: int,
    char_count: int,
    evidence_count: int,
    music_count: int,
) -> int:
    """Percentage shown while joining a server.

    Characters count twice: once when loaded and once when their button is
    generated.
    """
    total = char_count * 2 + evidence_count + music_count
    if total <= 0:
        raise ValueError("nothing to load")
    done = loaded_chars + generated_chars + loaded_music + loaded_evidence
    return int(done / total * 100)


def is_demo_server(server: ServerInfo) -> bool:
    """True for the placeholder entry that stands for local demo playback."""
    return server.port == DEMO_SERVER_PORT and server.ip == DEMO_SERVER_IP


class Lobby:
    """Server list state: which list is shown, the selection and its details."""

    def __init__(self, client: ServerSource, favorites: Iterable[ServerInfo] = ()) -> None:
        self.client = client
        self.favorites: list[ServerInfo] = list(favorites)
        self.servers: list[ServerInfo] = []
        self.public_servers_selected = True
        self.last_index = -1
        self.description = ""
        self.player_count = OFFLINE_TEXT
        self.connect_enabled = False

    @property
    def shown(self) -> list[ServerInfo]:
        """The list currently on display."""
        return self.servers if self.public_servers_selected else self.favorites

    @property
    def entries(self) -> list[tuple[int, str]]:
        """Rows of the server list: index and name."""
        return [(index, server.name) for index, server in enumerate(self.shown)]

    def _reset_selection(self) -> None:
        self.last_index = -1
        self.player_count = OFFLINE_TEXT
        self.description = ""
        self.connect_enabled = False

    def show_public(self) -> list[ServerInfo]:
        """Switch to the public server list."""
        self._reset_selection()
        self.public_servers_selected = True
        return self.shown

    def show_favorites(self) -> list[ServerInfo]:
        """Switch to the favourite server list."""
        self._reset_selection()
        self.public_servers_selected = False
        return self.shown

    def refresh(self) -> list[ServerInfo]:
        """Fetch the public list anew when it is shown; return what is shown."""
        if self.public_servers_selected:
            self.servers = list(self.client.get_server_list())
        return self.shown

    def motd(self) -> str:
        """The master server's message of the day, or a fallback notice."""
        document = self.client.request_document(DocumentType.MOTD)
        return document or MOTD_FALLBACK

    def version_text(self, current_version: str) -> str:
        """The version label, marked when the master server knows a newer one."""
        latest = self.client.request_document(DocumentType.CLIENT_VERSION)
        if latest and latest != current_version:
            return f"Version: {current_version} (!)"
        return f"Version: {current_version}"

    def select_server(self, index: int) -> ServerInfo | None:
        """Select a row; return the server to connect to, if any.

        Clicking the public server that is already selected does nothing.
        The demo entry is returned as is; see ``is_demo_server``.
        """
        if index == self.last_index and self.public_servers_selected:
            return None
        self.last_index = index
        if index < 0:
            return None
        shown = self.shown
        if index >= len(shown):
            return None
        server = shown[index]
        self.description = server.desc
        self.player_count = OFFLINE_TEXT
        self.connect_enabled = False
        return server

    def search(self, text: str) -> list[int]:
        """Indices of the rows whose name contains ``text``, ignoring case."""
        if not text:
            return list(range(len(self.shown)))
        needle = text.casefold()
        return [
            index
            for index, server in enumerate(self.shown)
            if needle in server.name.casefold()
        ]

    def add_favorite(self, index: int) -> bool:
        """Add a public server to the favourites; return whether it was added."""
        if not self.public_servers_selected or index < 0:
            return False
        if index >= len(self.servers):
            raise IndexError(f"no server at index {index}")
        self.favorites.append(self.servers[index])
        return True

    def remove_favorite(self, index: int) -> bool:
        """Remove a favourite; the first entry (the demo server) stays."""
        if self.public_servers_selected or index <= 0:
            return False
        if index >= len(self.favorites):
            raise IndexError(f"no favourite at index {index}")
        del self.favorites[index]
        return True

    def player_count_text(self, players_online: int, max_players: int) -> str:
        """Set and return the player count label."""
        self.player_count = f"Online: {players_online}/{max_players}"
        self.connect_enabled = True
        return self.player_count