import pytest

from aoclient.lobby import (
    DEMO_SERVER_IP,
    DEMO_SERVER_PORT,
    MOTD_FALLBACK,
    OFFLINE_TEXT,
    Lobby,
    is_demo_server,
    loading_progress,
)
from aoclient.masterserver import DocumentType, ServerInfo


class FakeClient:
    def __init__(self, servers, documents=None):
        self.servers = servers
        self.documents = documents or {}
        self.calls = 0

    def get_server_list(self):
        self.calls += 1
        return list(self.servers)

    def request_document(self, document_type):
        return self.documents.get(document_type, "")


def _servers():
    return [
        ServerInfo(ip="10.0.0.1", port=27016, name="Alpha Court", desc="first"),
        ServerInfo(ip="10.0.0.2", port=27017, name="Beta Room", desc="second"),
        ServerInfo(ip="10.0.0.3", port=27018, name="gamma court", desc="third"),
    ]


def _demo():
    return ServerInfo(ip=DEMO_SERVER_IP, port=DEMO_SERVER_PORT, name="Demo", desc="demo")


@pytest.fixture
def lobby():
    lob = Lobby(FakeClient(_servers()), [_demo()])
    lob.refresh()
    return lob


def test_loading_progress_bounds():
    assert loading_progress(0, 0, 0, 0, 5, 3, 2) == 0
    assert loading_progress(5, 5, 2, 3, 5, 3, 2) == 100


def test_loading_progress_chars_count_twice():
    half = loading_progress(4, 0, 0, 0, 4, 0, 0)
    full = loading_progress(4, 4, 0, 0, 4, 0, 0)
    assert full == 2 * half


def test_loading_progress_empty_raises():
    with pytest.raises(ValueError):
        loading_progress(0, 0, 0, 0, 0, 0, 0)


def test_refresh_fetches_public_list(lobby):
    assert [s.name for s in lobby.shown] == [s.name for s in _servers()]
    assert lobby.entries[1] == (1, "Beta Room")


def test_refresh_on_favorites_does_not_fetch(lobby):
    lobby.show_favorites()
    calls = lobby.client.calls
    assert lobby.refresh() == [_demo()]
    assert lobby.client.calls == calls


def test_select_server_sets_description(lobby):
    server = lobby.select_server(1)
    assert server == _servers()[1]
    assert lobby.description == "second"
    assert lobby.player_count == OFFLINE_TEXT
    assert lobby.connect_enabled is False


def test_select_same_public_server_twice(lobby):
    assert lobby.select_server(0) is not None
    assert lobby.select_server(0) is None


def test_select_out_of_range(lobby):
    assert lobby.select_server(-1) is None
    assert lobby.select_server(len(_servers())) is None


def test_select_demo_favorite(lobby):
    lobby.show_favorites()
    server = lobby.select_server(0)
    assert is_demo_server(server)
    assert lobby.select_server(0) == server


def test_is_demo_server_false_for_regular():
    assert not is_demo_server(_servers()[0])


def test_search(lobby):
    assert lobby.search("") == [0, 1, 2]
    assert lobby.search("COURT") == [0, 2]
    assert lobby.search("nothing here") == []


def test_add_favorite(lobby):
    assert lobby.add_favorite(2) is True
    assert lobby.favorites[-1] == _servers()[2]
    assert lobby.add_favorite(-1) is False
    with pytest.raises(IndexError):
        lobby.add_favorite(10)


def test_add_favorite_only_from_public(lobby):
    lobby.show_favorites()
    assert lobby.add_favorite(0) is False
    assert lobby.favorites == [_demo()]


def test_remove_favorite_keeps_demo(lobby):
    lobby.add_favorite(0)
    lobby.show_favorites()
    assert lobby.remove_favorite(0) is False
    assert lobby.remove_favorite(1) is True
    assert lobby.favorites == [_demo()]
    with pytest.raises(IndexError):
        lobby.remove_favorite(1)


def test_remove_favorite_ignored_on_public(lobby):
    lobby.add_favorite(0)
    assert lobby.remove_favorite(1) is False
    assert len(lobby.favorites) == 2


def test_player_count_text(lobby):
    assert lobby.player_count_text(3, 10) == "Online: 3/10"
    assert lobby.player_count == "Online: 3/10"
    assert lobby.connect_enabled is True


def test_switch_resets_selection(lobby):
    lobby.select_server(1)
    lobby.player_count_text(1, 2)
    lobby.show_favorites()
    assert lobby.last_index == -1
    assert lobby.description == ""
    assert lobby.player_count == OFFLINE_TEXT
    assert lobby.connect_enabled is False


def test_motd_and_fallback():
    client = FakeClient([], {DocumentType.MOTD: "<b>hello</b>"})
    assert Lobby(client).motd() == "<b>hello</b>"
    assert Lobby(FakeClient([])).motd() == MOTD_FALLBACK


def test_version_text():
    client = FakeClient([], {DocumentType.CLIENT_VERSION: "2.11.0"})
    assert Lobby(client).version_text("2.10.0") == "Version: 2.10.0 (!)"
    assert Lobby(client).version_text("2.11.0") == "Version: 2.11.0"
    assert Lobby(FakeClient([])).version_text("2.10.0") == "Version: 2.10.0"