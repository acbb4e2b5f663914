# aoclient

The non-graphical core of a client for a networked courtroom role-playing
game. It handles the `#`/`%` text protocol, the master server's server list
and documents, the character select and emote grids, evidence inventories
saved as INI files, a local demo playback server, and the lobby's server
list and favourites.

Only the standard library is needed.

## Modules

| Module | What it holds |
| --- | --- |
| `aoclient.packet` | `AOPacket`, `parse_packet`, `split_packets` and `PacketAssembler` for framing and escaping protocol messages |
| `aoclient.masterserver` | `MasterServerClient`, `ServerInfo`, `SocketType`, `DocumentType` and `parse_server_list` |
| `aoclient.chatlog` | `ChatLogPiece`, one timestamped line of the in-character log |
| `aoclient.effects` | `migrate_effects`, which rewrites an old flat `effects.ini` into the version 2 layout |
| `aoclient.hardware` | `get_hdid`, a machine identifier with a fixed fallback |
| `aoclient.paging` | `grid_layout`, `GridLayout`, `page_info`, `PageInfo`, `Character`, `filter_characters` and `group_by_category` |
| `aoclient.emotes` | `EmoteSelector`, `EmoteMod`, `emote_label` and `preview_emote_name` |
| `aoclient.evidence` | `Evidence`, `evidence_changed`, `load_inventory` and `save_inventory` |
| `aoclient.demo` | `load_demo`, `needs_wait_repair`, `repair_wait_desync`, `repair_demo_file`, `DemoSession` and `DemoServer` |
| `aoclient.lobby` | `Lobby`, `loading_progress` and `is_demo_server` |

## Reading protocol traffic

Messages look like `HEADER#field#field#%`. Data from a socket can arrive in
pieces, so feed it to a `PacketAssembler`. It keeps incomplete data and
returns the packets completed by each chunk:

```python
from aoclient.packet import PacketAssembler

assembler = PacketAssembler()
assembler.feed("ID#0#DEMO")            # incomplete, kept for later
for packet in assembler.feed("#0#%"):
    print(packet.header, packet.contents)   # ID ['0', 'DEMO', '0']
```

`split_packets` handles a buffer that is already complete, and
`parse_packet` handles a single packet's text. `AOPacket.to_string(encoded=True)`
escapes `#`, `%`, `$` and `&` as `<num>`, `<percent>`, `<dollar>` and `<and>`;
`net_encode` and `net_decode` do the same in place.

## Asking the master server

```python
from aoclient.masterserver import DocumentType, MasterServerClient

client = MasterServerClient("http://localhost:8000", "aoclient/2.10.0", "en")
servers = client.get_server_list()
motd = client.request_document(DocumentType.MOTD)
client.send_heartbeat(opt_out=False)
```

The base URL must use `http` or `https`, or `ValueError` is raised. Servers
with no usable port are left out of the list; where an entry has a WebSocket
port, that port is used and `socket_type` is `SocketType.WEBSOCKETS`.
`request_document` returns an empty string when the document cannot be
fetched. `parse_server_list` raises `ValueError` on text that is not JSON.

## Paging character and emote buttons

```python
from aoclient.paging import grid_layout, page_info

layout = grid_layout(500, 300, 60, 60, 4, 4)
info = page_info(total=42, per_page=layout.per_page, current_page=0)
positions = layout.positions(info.items_on_page)
```

`filter_characters` returns the indices of characters that match a
case-insensitive search, optionally hiding taken ones. `group_by_category`
groups character indices by a category you look up per name.

`EmoteSelector.select(emote_id, emote_mod)` tracks the selected emote and
whether its pre-animation is on: picking the same emote again toggles it,
otherwise it follows the emote's mode unless `sticky_preanim` is set.

## Private evidence

```python
from aoclient.evidence import Evidence, load_inventory, save_inventory

items = [Evidence(name="Knife", description="Found at the scene", image="knife.png")]
save_inventory("inventories/case1.ini", items)
assert load_inventory("inventories/case1.ini") == items
```

`save_inventory` creates missing parent directories. `load_inventory`
returns an empty list for a file that does not exist.

## Replaying demos

`load_demo` reads a `.demo` file into a list of packets, joining a packet
that runs over several lines. `needs_wait_repair` spots files recorded with
misplaced `wait#` lines, `repair_wait_desync` fixes such a list, and
`repair_demo_file` backs the file up to `<name>.backup` and rewrites it.

`DemoSession` answers a client's packets with `handle_packet` and replays
the demo with `playback`; it understands the OOC commands `/load <path>`,
`/reload`, `/play` (or `>`), `/pause` (or `|`), `/max_wait`, `/min_wait`,
`/debug` and `/help`. `DemoServer` wraps it in an asyncio TCP server:

```python
import asyncio
from aoclient.demo import DemoServer

async def main():
    server = DemoServer("logs/session.demo")
    port = await server.start()   # a free port on 127.0.0.1
    ...
    await server.stop()

asyncio.run(main())
```

Only one client is served at a time.

## The lobby

`Lobby(client, favorites)` takes anything with `get_server_list()` and
`request_document()` (such as `MasterServerClient`). It switches between the
public list and the favourites with `show_public` and `show_favorites`,
fetches the public list with `refresh`, and returns the chosen server from
`select_server`. `search`, `add_favorite`, `remove_favorite` (the first
favourite, the demo entry, is kept), `motd`, `version_text` and
`player_count_text` cover the rest. `is_demo_server` tells whether a
selected entry stands for local demo playback; `loading_progress` gives the
join progress as a percentage.

## What it does not do

- There is no graphical interface and no command to run; this is a library.
- It does not connect to game servers. `Lobby.select_server` returns the
  server to connect to, and keeping the TCP or WebSocket connection open is
  up to you; `PacketAssembler` and `AOPacket` handle what goes over it.
- It plays no sound and draws no animations.
- It has no object holding the global and private evidence lists together;
  keep your own lists and save the private one with `save_inventory`.