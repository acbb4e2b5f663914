"""Local playback server for recorded demo files."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import time
from collections import deque
from collections.abc import Callable, Iterable

from aoclient.packet import AOPacket, parse_packet, split_packets

__all__ = [
    "DemoSession",
    "DemoServer",
    "load_demo",
    "repair_wait_desync",
    "needs_wait_repair",
    "repair_demo_file",
]

log = logging.getLogger(__name__)

FEATURES = (
    "noencryption", "yellowtext", "prezoom", "flipping", "customobjections",
    "fastloading", "deskmod", "evidence", "cccc_ic_support", "arup",
    "casing_alerts", "modcall_reason", "looping_sfx", "additive", "effects",
    "y_offset", "expanded_desk_mods",
)

MSG_LOADED = "Demo file loaded. Send /play or > in OOC to begin playback."
MSG_RESUMING = "Resuming playback."
MSG_PAUSING = "Pausing playback."
MSG_NOT_INTEGER = "Not a valid integer!"
MSG_RELOADED = "Current demo file reloaded. Send /play or > in OOC to begin playback."
MSG_MIN_WAIT = "min_wait is deprecated. Use the client Settings for minimum wait instead!"
MSG_DEBUG_VALUES = "Valid values are 1 or 0!"
MSG_DEBUG_HELP = (
    "Set debug mode using /debug 1 to enable, and /debug 0 to disable, which "
    "will use the fifth timer (TI#4) to show the remaining time until next demo line."
)
MSG_HELP = "Available commands:\nload, reload, play, pause, max_wait, debug, help"
MSG_END = (
    "Reached the end of the demo file. Send /play or > in OOC to restart, "
    "or /load to open a new file."
)

_INT = re.compile(r"[+-]?\d+")


def _to_int(text: str) -> int | None:
    text = text.strip()
    return int(text) if _INT.fullmatch(text) else None


def _ooc(message: str) -> str:
    return f"CT#DEMO#{message}#1#%"


def load_demo(path: str | os.PathLike) -> list[str]:
    """Read a demo file into packets; a packet may span several lines."""
    packets: list[str] = []
    with open(path, encoding="utf-8", newline="") as handle:
        lines = iter(handle.read().splitlines())
    for line in lines:
        while not line.endswith("%"):
            following = next(lines, None)
            if following is None:
                break
            line += "\n" + following
        packets.append(line)
    return packets


def needs_wait_repair(packets: list[str]) -> bool:
    """True for a demo recorded with the old wait desync problem."""
    return bool(packets) and packets[0].startswith("SC#") and packets[-1].startswith("wait#")


def repair_wait_desync(packets: Iterable[str]) -> list[str]:
    """Move every wait packet one place back, undoing the old desync."""
    repaired: list[str] = []
    for packet in packets:
        if not packet.startswith("SC#") and packet.startswith("wait#"):
            repaired.insert(max(1, len(repaired) - 1), packet)
            continue
        repaired.append(packet)
    return repaired


def repair_demo_file(path: str | os.PathLike) -> list[str]:
    """Back up a broken demo file and rewrite it repaired; return its packets."""
    packets = load_demo(path)
    if not needs_wait_repair(packets):
        return packets
    log.info("Making a backup of the broken demo...")
    shutil.copyfile(path, f"{os.fspath(path)}.backup")
    repaired = repair_wait_desync(packets)
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write("\n".join(repaired))
    return load_demo(path)


class _Timer:
    """A single-shot timer measured against an injectable clock."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self.interval = 0
        self._deadline: float | None = None

    @property
    def active(self) -> bool:
        return self._deadline is not None

    @property
    def remaining(self) -> int:
        if self._deadline is None:
            return -1
        return max(0, round((self._deadline - self._clock()) * 1000))

    def start(self, interval: int | None = None) -> None:
        if interval is not None:
            self.interval = interval
        self._deadline = self._clock() + self.interval / 1000

    def stop(self) -> None:
        self._deadline = None


class DemoSession:
    """The playback state for one client: answers its packets and replays the demo."""

    def __init__(
        self,
        packets: Iterable[str] = (),
        path: str | os.PathLike | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        on_skip_timers: Callable[[int], None] | None = None,
    ) -> None:
        self.demo_data: deque[str] = deque(packets)
        self.path = path
        self.max_wait = -1
        self.elapsed_time = 0
        self.debug_mode = False
        self.on_skip_timers = on_skip_timers
        self._timer = _Timer(clock)
        self._output: list[str] = []

        if self.demo_data and self.demo_data[0].startswith("SC#"):
            self.sc_packet = self.demo_data.popleft()
            body = self.sc_packet[:-1] if self.sc_packet.endswith("%") else self.sc_packet
            self.num_chars = len(parse_packet(body).contents)
        else:
            self.sc_packet = "SC#%"
            self.num_chars = 0

    @classmethod
    def from_file(cls, path: str | os.PathLike, **kwargs) -> DemoSession:
        return cls(load_demo(path), path, **kwargs)

    @property
    def timer_active(self) -> bool:
        return self._timer.active

    @property
    def timer_remaining(self) -> int:
        """Milliseconds until the next step, or -1 when the timer is idle."""
        return self._timer.remaining

    @property
    def timer_interval(self) -> int:
        return self._timer.interval

    def _emit(self, text: str) -> None:
        self._output.append(text)

    def _drain(self) -> list[str]:
        output, self._output = self._output, []
        return output

    def _skip(self, milliseconds: int) -> None:
        if self.on_skip_timers is not None:
            self.on_skip_timers(milliseconds)

    def load(self, path: str | os.PathLike) -> bool:
        """Replace the queued packets with those of another demo file."""
        try:
            packets = load_demo(path)
        except OSError as exc:
            log.warning("Could not open demo file %s: %s", path, exc)
            return False
        self.demo_data = deque(packets)
        self.path = path
        return True

    def handle_packet(self, packet: AOPacket) -> list[str]:
        """Answer a packet from the client; return the wire text to send back."""
        header = packet.header
        contents = AOPacket.unescape(packet.contents)

        if header == "HI":
            self._emit("ID#0#DEMOINTERNAL#0#%")
        elif header == "ID":
            self._emit("PN#0#1#%")
            self._emit("FL#" + "#".join(FEATURES) + "#%")
        elif header == "askchaa":
            self._emit(f"SI#{self.num_chars}#0#1#%")
        elif header == "RC":
            self._emit(self.sc_packet)
        elif header == "RM":
            self._emit("SM#%")
        elif header == "RD":
            self._emit("DONE#%")
        elif header == "CC":
            self._emit("PV#0#CID#-1#%")
            self._emit(_ooc(MSG_LOADED))
        elif header == "CT" and len(contents) > 1:
            self._command(contents[1])
        return self._drain()

    def _command(self, text: str) -> None:
        args = text.split(" ")
        if text.startswith("/load"):
            if len(args) > 1 and args[1] and self.load(" ".join(args[1:])):
                self._emit(_ooc(MSG_LOADED))
                self._reset_state()
        elif text.startswith("/play") or text == ">":
            if self._timer.interval != 0 and not self._timer.active:
                self._timer.start()
                self._emit(_ooc(MSG_RESUMING))
            else:
                if not self.demo_data and self.path:
                    self.load(self.path)
                self._playback()
        elif text.startswith("/pause") or text == "|":
            time_left = self._timer.remaining
            self._timer.stop()
            self._timer.interval = max(0, time_left)
            self._emit(_ooc(MSG_PAUSING))
        elif text.startswith("/max_wait"):
            if len(args) > 1:
                value = _to_int(args[1])
                if value is None:
                    self._emit(_ooc(MSG_NOT_INTEGER))
                    return
                self.max_wait = -1 if value < 0 else value
                self._emit(_ooc(f"Setting max_wait to {self.max_wait} milliseconds."))
            else:
                self._emit(_ooc(f"Current max_wait is {self.max_wait} milliseconds."))
        elif text.startswith("/reload"):
            if self.path:
                self.load(self.path)
            self._emit(_ooc(MSG_RELOADED))
            self._reset_state()
        elif text.startswith("/min_wait"):
            self._emit(_ooc(MSG_MIN_WAIT))
        elif text.startswith("/debug"):
            if len(args) > 1:
                toggle = _to_int(args[1])
                if toggle in (0, 1):
                    self.debug_mode = toggle == 1
                    self._emit(_ooc(f"Setting debug mode to {toggle}"))
                    if not self.debug_mode:
                        self._emit("TI#4#1#0#%")
                        self._emit("TI#4#3#0#%")
                else:
                    self._emit(_ooc(MSG_DEBUG_VALUES))
            else:
                self._emit(_ooc(MSG_DEBUG_HELP))
        elif text.startswith("/help"):
            self._emit(_ooc(MSG_HELP))

    def _reset_state(self) -> None:
        self._emit("LE##%")
        for timer_id in range(5):
            self._emit(f"TI#{timer_id}#1#0#%")
            self._emit(f"TI#{timer_id}#3#0#%")
        self._emit("BN#default#wit#%")
        self._timer.stop()

    def playback(self) -> list[str]:
        """Send packets up to the next wait and start the timer for it."""
        self._playback()
        return self._drain()

    def timeout(self) -> list[str]:
        """Called when the wait timer runs out: continue playback."""
        self._timer.stop()
        return self.playback()

    def _playback(self) -> None:
        if not self.demo_data:
            return
        current = self.demo_data.popleft()
        if current.startswith("MS#"):
            self.elapsed_time = 0
        while not current.startswith("wait#"):
            self._emit(current)
            if not self.demo_data:
                break
            current = self.demo_data.popleft()

        if not self.demo_data:
            self._emit(_ooc(MSG_END))
            self._timer.interval = 0
            return

        fields = (current[:-1] if current.endswith("#") else current).split("#")[1:]
        duration = (_to_int(fields[0]) or 0) if fields else 0

        if self.max_wait != -1 and duration + self.elapsed_time > self.max_wait:
            previous = duration
            duration = max(0, self.max_wait - self.elapsed_time)
            log.debug("Max_wait of %s reached. Forcing duration to %s ms", self.max_wait, duration)
            self._skip(previous - duration)
        elif self._timer.remaining > 0:
            self._skip(self._timer.remaining)

        self.elapsed_time += duration
        self._timer.start(duration)
        if self.debug_mode:
            self._emit("TI#4#2#%")
            self._emit(f"TI#4#0#{duration}#%")


class DemoServer:
    """A local TCP server that plays a demo file to a single client."""

    def __init__(
        self,
        demo_path: str | os.PathLike,
        host: str = "127.0.0.1",
        on_skip_timers: Callable[[int], None] | None = None,
    ) -> None:
        self.demo_path = demo_path
        self.host = host
        self.on_skip_timers = on_skip_timers
        self.port: int | None = None
        self._server: asyncio.base_events.Server | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._session: DemoSession | None = None
        self._timer_handle: asyncio.TimerHandle | None = None

    @property
    def started(self) -> bool:
        return self._server is not None

    async def start(self) -> int:
        """Listen on a free local port and return it."""
        if self._server is not None:
            return self.port
        self._server = await asyncio.start_server(self._handle_client, self.host, 0)
        self.port = self._server.sockets[0].getsockname()[1]
        log.info("Demo server started at port %s", self.port)
        return self.port

    async def stop(self) -> None:
        """Stop listening and drop the connected client."""
        self._cancel_timer()
        if self._writer is not None:
            self._writer.close()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def _send(self, messages: list[str]) -> None:
        if self._writer is not None and messages:
            self._writer.write("".join(messages).encode("utf-8"))

    def _cancel_timer(self) -> None:
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None

    def _reschedule(self) -> None:
        self._cancel_timer()
        session = self._session
        if session is not None and session.timer_active:
            loop = asyncio.get_running_loop()
            self._timer_handle = loop.call_later(
                session.timer_remaining / 1000, self._on_timeout
            )

    def _on_timeout(self) -> None:
        self._timer_handle = None
        if self._session is None:
            return
        self._send(self._session.timeout())
        self._reschedule()

    @staticmethod
    async def _close(writer: asyncio.StreamWriter) -> None:
        writer.close()
        try:
            await writer.wait_closed()
        except (ConnectionError, OSError):
            pass

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        if self._writer is not None:
            log.warning("Multiple connections to demo server disallowed.")
            await self._close(writer)
            return
        try:
            packets = load_demo(self.demo_path)
        except OSError as exc:
            log.warning("Could not load demo %s: %s", self.demo_path, exc)
            packets = []
        if not packets:
            await self._close(writer)
            return

        self._session = DemoSession(
            packets, self.demo_path, on_skip_timers=self.on_skip_timers
        )
        self._writer = writer
        self._send(["decryptor#NOENCRYPT#%"])
        try:
            while True:
                data = await reader.read(65536)
                if not data:
                    break
                for packet in split_packets(data.decode("utf-8", errors="replace")):
                    self._send(self._session.handle_packet(packet))
                    self._reschedule()
                await writer.drain()
        except ConnectionError:
            pass
        finally:
            self._cancel_timer()
            self._writer = None
            self._session = None
            await self._close(writer)