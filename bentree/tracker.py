import asyncio
import logging

from http import HTTPStatus
from functools import cached_property
from typing import Optional, Union
from urllib.parse import urlparse, urlencode

import aiohttp

from bentree.peer import Peer
from bentree.torrent import Torrent
from bentree.client_info import ClientInfo
from bentree.bencode import decode, BencodeDecodeError
from bentree.value import Dict, Integer, List, Text, Value
from bentree.utils import parse_ipv4_peer_string, parse_ipv6_peer_string


__all__ = (
    "AnnounceResponse",
    "AnnounceInfoError",
    "HTTPTracker",
    "TrackerConnectionError",
    "TrackerFailureError",
)

logger = logging.getLogger(__name__)


class AnnounceInfoError(ValueError):
    pass


class TrackerFailureError(AnnounceInfoError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Tracker failure: {reason}")
        self.reason = reason


class TrackerConnectionError(Exception):
    ...


class AnnounceResponse:
    """Typed view over a decoded tracker announce response."""

    def __init__(self, payload: Value) -> None:
        if not isinstance(payload, Dict):
            raise AnnounceInfoError("Announce response is not a dict")
        self._payload = payload

    @classmethod
    def from_bytes(cls, raw_payload: bytes) -> "AnnounceResponse":
        try:
            return cls(decode(raw_payload))
        except BencodeDecodeError as err:
            raise AnnounceInfoError(f"Invalid announce response: {err}") \
                from err

    @property
    def failure_reason(self) -> Optional[str]:
        return self._optional_str("failure reason")

    @property
    def warning_message(self) -> Optional[str]:
        return self._optional_str("warning message")

    @property
    def interval(self) -> int:
        return self._required_int("interval")

    @property
    def min_interval(self) -> Optional[int]:
        value = self._payload.get("min interval")
        if isinstance(value, Integer):
            return value.value
        return None

    @property
    def complete(self) -> int:
        return self._required_int("complete")

    @property
    def incomplete(self) -> int:
        return self._required_int("incomplete")

    @property
    def tracker_id(self) -> Optional[str]:
        return self._optional_str("tracker id")

    @cached_property
    def peers(self) -> list[Peer]:
        return self._peers + self._peers6

    @property
    def _peers(self) -> list[Peer]:
        if "peers" not in self._payload:
            self._raise_on_failure()
            return []
        raw_peers = self._payload["peers"]
        if isinstance(raw_peers, List):
            return [self._peer_from_dict(raw_peer) for raw_peer in raw_peers]
        if isinstance(raw_peers, Text):
            return self._parse_compact(parse_ipv4_peer_string, raw_peers)
        raise AnnounceInfoError("Key 'peers' holds Integer or Dict")

    @property
    def _peers6(self) -> list[Peer]:
        raw_peers = self._payload.get("peers6")
        if not isinstance(raw_peers, Text):
            return []
        return self._parse_compact(parse_ipv6_peer_string, raw_peers)

    @staticmethod
    def _parse_compact(parser, raw_peers: Text) -> list[Peer]:
        try:
            return parser(raw_peers.value.data)
        except ValueError as err:
            raise AnnounceInfoError(str(err)) from err

    @staticmethod
    def _peer_from_dict(raw_peer: Value) -> Peer:
        if not isinstance(raw_peer, Dict):
            raise AnnounceInfoError("Peer entry is not a dict")
        ip = raw_peer.get("ip")
        port = raw_peer.get("port")
        if not isinstance(ip, Text) or not isinstance(port, Integer):
            raise AnnounceInfoError("Peer entry needs 'ip' and 'port'")
        peer_id = raw_peer.get("peer id")
        return Peer(
            ip.value.display(),
            port.value,
            peer_id.value.data if isinstance(peer_id, Text) else None
        )

    def _optional_str(self, key: str) -> Optional[str]:
        value = self._payload.get(key)
        if isinstance(value, Text):
            return value.value.display()
        return None

    def _required_int(self, key: str) -> int:
        value = self._payload.get(key)
        if isinstance(value, Integer):
            return value.value
        self._raise_on_failure()
        if value is None:
            raise AnnounceInfoError(f"Missing key '{key}'")
        raise AnnounceInfoError(
            f"Key '{key}' holds {type(value).__name__}, expected Integer")

    def _raise_on_failure(self) -> None:
        reason = self.failure_reason
        if reason is not None:
            raise TrackerFailureError(reason)


class HTTPTracker:
    REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=10)

    def __init__(
        self,
        announce: str,
        torrent: Torrent,
        client_info: ClientInfo
    ) -> None:
        if not self.is_compatible(announce):
            raise ValueError(f"Invalid announce: {announce}")
        self._announce = announce
        self._torrent = torrent
        self._client_info = client_info
        self._http_session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def is_compatible(cls, announce: str) -> bool:
        return urlparse(announce).scheme in ("http", "https")

    async def __aenter__(self) -> "HTTPTracker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def ask(self) -> AnnounceResponse:
        logger.debug("Announcing to %s", self._announce)
        try:
            async with self._session.get(
                self._request_url,
                timeout=self.REQUEST_TIMEOUT
            ) as http_resp:
                if http_resp.status != HTTPStatus.OK:
                    raise TrackerConnectionError(
                        f"Invalid response from tracker: {http_resp.status}")
                raw_payload = await http_resp.read()
        except (asyncio.TimeoutError, aiohttp.ClientError) as err:
            raise TrackerConnectionError("Can't connect to tracker") from err
        logger.debug("Got %d bytes from %s", len(raw_payload), self._announce)
        return AnnounceResponse.from_bytes(raw_payload)

    async def close(self) -> None:
        if self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    @property
    def _session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    @property
    def _request_url(self) -> str:
        params: dict[str, Union[bytes, int, str]] = {
            "info_hash": self._torrent.info_hash,
            "peer_id": self._client_info.peer_id,
            "port": self._client_info.port,
            "uploaded": 0,
            "downloaded": 0,
            "left": self._torrent.size,
            "compact": self._client_info.compact,
            "no_peer_id": self._client_info.no_peer_id,
            "event": "started",
        }
        # Private trackers carry a passkey in the announce query already.
        separator = "&" if urlparse(self._announce).query else "?"
        return f"{self._announce}{separator}{urlencode(params)}"
