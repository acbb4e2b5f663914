import asyncio

import pytest

from aoclient.demo import (
    DemoServer,
    DemoSession,
    load_demo,
    needs_wait_repair,
    repair_demo_file,
    repair_wait_desync,
)
from aoclient.packet import AOPacket

END = (
    "CT#DEMO#Reached the end of the demo file. Send /play or > in OOC to restart, "
    "or /load to open a new file.#1#%"
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms / 1000


def ct(message):
    return AOPacket("CT", ["me", message])


def make_session(packets, **kwargs):
    clock = FakeClock()
    skipped = []
    session = DemoSession(packets, clock=clock, on_skip_timers=skipped.append, **kwargs)
    return session, clock, skipped


def test_load_demo_joins_multiline_packets(tmp_path):
    path = tmp_path / "a.demo"
    path.write_text("SC#a#b#%\nMS#line1\nline2#%\nwait#100#%\n", encoding="utf-8")
    assert load_demo(path) == ["SC#a#b#%", "MS#line1\nline2#%", "wait#100#%"]


def test_load_demo_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_demo(tmp_path / "missing.demo")


def test_repair_wait_desync_moves_waits_back():
    packets = ["SC#x#%", "MS#1#%", "wait#10#%", "MS#2#%", "wait#20#%"]
    repaired = repair_wait_desync(packets)
    assert repaired == ["SC#x#%", "wait#10#%", "MS#1#%", "wait#20#%", "MS#2#%"]
    assert sorted(repaired) == sorted(packets)


def test_needs_wait_repair_detection():
    assert needs_wait_repair(["SC#x#%", "MS#1#%", "wait#10#%"])
    assert not needs_wait_repair(["SC#x#%", "wait#10#%", "MS#1#%"])
    assert not needs_wait_repair([])


def test_repair_demo_file_writes_backup(tmp_path):
    path = tmp_path / "old.demo"
    original = "SC#x#%\nMS#1#%\nwait#10#%"
    path.write_text(original, encoding="utf-8")
    packets = repair_demo_file(path)
    assert packets == repair_wait_desync(["SC#x#%", "MS#1#%", "wait#10#%"])
    assert (tmp_path / "old.demo.backup").read_text(encoding="utf-8") == original
    assert load_demo(path) == packets


def test_handshake_responses():
    session, _, _ = make_session(["SC#a#b#%", "MS#x#%"])
    assert session.handle_packet(AOPacket("HI", ["hdid"])) == ["ID#0#DEMOINTERNAL#0#%"]
    reply = session.handle_packet(AOPacket("ID", []))
    assert reply[0] == "PN#0#1#%"
    assert reply[1].startswith("FL#noencryption#yellowtext#")
    assert reply[1].endswith("expanded_desk_mods#%")
    assert session.handle_packet(AOPacket("RM", [])) == ["SM#%"]
    assert session.handle_packet(AOPacket("RD", [])) == ["DONE#%"]


def test_character_list_comes_from_sc_packet():
    session, _, _ = make_session(["SC#a#b#%", "MS#x#%"])
    assert session.handle_packet(AOPacket("RC", [])) == ["SC#a#b#%"]
    assert session.handle_packet(AOPacket("askchaa", [])) == ["SI#2#0#1#%"]
    assert list(session.demo_data) == ["MS#x#%"]


def test_missing_sc_packet_uses_empty_list():
    session, _, _ = make_session(["MS#x#%"])
    assert session.handle_packet(AOPacket("RC", [])) == ["SC#%"]
    assert session.num_chars == 0


def test_character_chosen_announces_demo():
    session, _, _ = make_session(["MS#x#%"])
    reply = session.handle_packet(AOPacket("CC", ["0", "-1", "hdid"]))
    assert reply == [
        "PV#0#CID#-1#%",
        "CT#DEMO#Demo file loaded. Send /play or > in OOC to begin playback.#1#%",
    ]


def test_playback_stops_at_wait_and_continues_on_timeout():
    session, _, _ = make_session(["MS#a#%", "wait#100#%", "MS#b#%"])
    assert session.playback() == ["MS#a#%"]
    assert session.timer_active
    assert session.timer_remaining == 100
    assert session.timeout() == ["MS#b#%", END]
    assert session.timer_interval == 0
    assert not session.timer_active


def test_max_wait_clips_duration_and_skips_timers():
    session, _, skipped = make_session(["MS#a#%", "wait#100#%", "MS#b#%"])
    reply = session.handle_packet(ct("/max_wait 50"))
    assert reply == ["CT#DEMO#Setting max_wait to 50 milliseconds.#1#%"]
    session.playback()
    assert session.timer_remaining == 50
    assert skipped == [100 - 50]


def test_max_wait_rejects_non_integer_and_reports_current():
    session, _, _ = make_session(["MS#a#%"])
    assert session.handle_packet(ct("/max_wait abc")) == ["CT#DEMO#Not a valid integer!#1#%"]
    assert session.handle_packet(ct("/max_wait")) == [
        "CT#DEMO#Current max_wait is -1 milliseconds.#1#%"
    ]
    session.handle_packet(ct("/max_wait -7"))
    assert session.max_wait == -1


def test_pause_and_resume_keep_remaining_time():
    session, clock, _ = make_session(["MS#a#%", "wait#100#%", "MS#b#%"])
    session.playback()
    clock.advance(40)
    assert session.handle_packet(ct("/pause")) == ["CT#DEMO#Pausing playback.#1#%"]
    assert not session.timer_active
    remaining = session.timer_interval
    assert remaining == 100 - 40
    assert session.handle_packet(ct("/play")) == ["CT#DEMO#Resuming playback.#1#%"]
    assert session.timer_remaining == remaining


def test_manual_skip_reports_remaining_time():
    packets = ["MS#a#%", "wait#100#%", "MS#b#%", "wait#200#%", "MS#c#%"]
    session, clock, skipped = make_session(packets)
    session.playback()
    clock.advance(30)
    assert session.handle_packet(ct(">")) == ["MS#b#%"]
    assert skipped == [100 - 30]
    assert session.timer_remaining == 200


def test_debug_mode_toggle_and_validation():
    session, _, _ = make_session(["MS#a#%", "wait#100#%", "MS#b#%"])
    assert session.handle_packet(ct("/debug 1")) == ["CT#DEMO#Setting debug mode to 1#1#%"]
    assert session.playback()[-2:] == ["TI#4#2#%", "TI#4#0#100#%"]
    reply = session.handle_packet(ct("/debug 0"))
    assert reply[1:] == ["TI#4#1#0#%", "TI#4#3#0#%"]
    assert session.handle_packet(ct("/debug 5")) == ["CT#DEMO#Valid values are 1 or 0!#1#%"]


def test_reload_resets_state_and_reloads_file(tmp_path):
    path = tmp_path / "r.demo"
    path.write_text("MS#a#%\nwait#100#%\nMS#b#%", encoding="utf-8")
    session, _, _ = make_session(load_demo(path), path=path)
    session.playback()
    reply = session.handle_packet(ct("/reload"))
    assert reply[0].startswith("CT#DEMO#Current demo file reloaded.")
    assert "LE##%" in reply
    assert reply[-1] == "BN#default#wit#%"
    assert list(session.demo_data) == load_demo(path)
    assert not session.timer_active


def test_help_lists_commands():
    session, _, _ = make_session([])
    assert session.handle_packet(ct("/help")) == [
        "CT#DEMO#Available commands:\nload, reload, play, pause, max_wait, debug, help#1#%"
    ]


@pytest.mark.asyncio
async def test_server_greets_and_answers(tmp_path):
    path = tmp_path / "s.demo"
    path.write_text("SC#a#%\nMS#x#%", encoding="utf-8")
    server = DemoServer(path)
    port = await server.start()
    assert server.port == port
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    greeting = "decryptor#NOENCRYPT#%"
    assert (await asyncio.wait_for(reader.readexactly(len(greeting)), 5)).decode() == greeting
    writer.write(b"HI#hdid#%")
    await writer.drain()
    reply = "ID#0#DEMOINTERNAL#0#%"
    assert (await asyncio.wait_for(reader.readexactly(len(reply)), 5)).decode() == reply
    writer.close()
    await server.stop()
    assert not server.started