"""Client for the master server: server list, heartbeat and documents."""

from __future__ import annotations

import enum
import json
import locale
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass

__all__ = [
    "SocketType",
    "ServerInfo",
    "DocumentType",
    "MasterServerClient",
    "parse_server_list",
]

log = logging.getLogger(__name__)

_TIMEOUT = 10
_NO_DESCRIPTION = "No description provided."


class SocketType(enum.Enum):
    TCP = "tcp"
    WEBSOCKETS = "ws"


class DocumentType(enum.Enum):
    PRIVACY_POLICY = "/privacy"
    MOTD = "/motd"
    CLIENT_VERSION = "/version"


@dataclass
class ServerInfo:
    ip: str = ""
    port: int = 0
    name: str = ""
    desc: str = ""
    socket_type: SocketType = SocketType.TCP


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_int(value) -> int:
    if _is_number(value) and float(value).is_integer():
        return int(value)
    return 0


def _to_str(value, default: str = "") -> str:
    return value if isinstance(value, str) else default


def parse_server_list(payload: str | bytes) -> list[ServerInfo]:
    """Parse the master server's JSON list; entries without a port are dropped."""
    try:
        data = json.loads(payload)
    except (ValueError, TypeError) as exc:
        raise ValueError("invalid JSON response from master server") from exc
    if not isinstance(data, list):
        return []

    servers = []
    for entry in data:
        if not isinstance(entry, dict):
            continue
        server = ServerInfo(
            ip=_to_str(entry.get("ip")),
            name=_to_str(entry.get("name")),
            desc=_to_str(entry.get("description"), _NO_DESCRIPTION),
        )
        if _is_number(entry.get("ws_port")):
            server.socket_type = SocketType.WEBSOCKETS
            server.port = _to_int(entry["ws_port"])
        else:
            server.socket_type = SocketType.TCP
            server.port = _to_int(entry.get("port"))
        if server.port != 0:
            servers.append(server)
    return servers


class MasterServerClient:
    """HTTP access to the master server."""

    def __init__(self, base_url: str, user_agent: str, language: str = "") -> None:
        if not urllib.parse.urlsplit(base_url).scheme.startswith("http"):
            raise ValueError(f"master server URL must use http(s): {base_url!r}")
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        if not language or not language.strip():
            language = locale.getlocale()[0] or "en_US"
        self.language = language

    def _request(self, endpoint: str, **kwargs) -> urllib.request.Request:
        request = urllib.request.Request(self.base_url + endpoint, **kwargs)
        request.add_header("User-Agent", self.user_agent)
        return request

    def get_server_list(self) -> list[ServerInfo]:
        """Fetch and parse the public server list."""
        with urllib.request.urlopen(self._request("/servers"), timeout=_TIMEOUT) as reply:
            body = reply.read()
        log.debug("Got response from %s/servers", self.base_url)
        return parse_server_list(body)

    def send_heartbeat(self, opt_out: bool) -> bool:
        """Report that this client is playing; returns whether it was sent."""
        if opt_out:
            return False
        request = self._request("/playing", data=b"", method="POST")
        with urllib.request.urlopen(request, timeout=_TIMEOUT) as reply:
            reply.read()
        return True

    def request_document(self, document_type: DocumentType) -> str:
        """Fetch a text document; an empty string when it is unavailable."""
        endpoint = document_type.value
        request = self._request(endpoint)
        request.add_header("Accept-Language", self.language)
        log.debug("Getting %s, Accept-Language: %s", endpoint, self.language)
        try:
            with urllib.request.urlopen(request, timeout=_TIMEOUT) as reply:
                status = reply.status
                content = reply.read().decode("utf-8", errors="replace")
        except (urllib.error.URLError, OSError) as exc:
            log.debug("Failed to get %s (%s)", endpoint, exc)
            return ""
        if not content or status != 200:
            log.debug("Failed to get %s (http status %s)", endpoint, status)
            return ""
        return content