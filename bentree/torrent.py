import hashlib

from itertools import chain
from dataclasses import dataclass
from functools import cached_property
from operator import attrgetter
from typing import Optional, Type, TypeVar, Union

from bentree import bencode
from bentree.utils import is_url
from bentree.value import Dict, Integer, List, Text, Value


__all__ = (
    "Torrent",
    "TorrentInfo",
    "FileItem",
    "MetaInfoError",
)

PIECE_HASH_LENGTH = 20

V = TypeVar("V", Text, Integer, List, Dict)


class MetaInfoError(ValueError):
    pass


def _require(raw: Dict, key: str, variant: Type[V]) -> V:
    if key not in raw:
        raise MetaInfoError(f"Missing key '{key}'")
    value = raw[key]
    if not isinstance(value, variant):
        raise MetaInfoError(
            f"Key '{key}' holds {type(value).__name__}, "
            f"expected {variant.__name__}")
    return value


def _optional_str(raw: Dict, key: str) -> Optional[str]:
    value = raw.get(key)
    if isinstance(value, Text):
        return value.value.display()
    return None


def _text(value: Text) -> str:
    return value.value.display()


@dataclass(frozen=True)
class FileItem:
    path: list[str]
    length: int
    md5sum: Optional[str] = None

    @classmethod
    def from_value(cls, raw: Value) -> "FileItem":
        if not isinstance(raw, Dict):
            raise MetaInfoError("File entry is not a dict")
        path = []
        for part in _require(raw, "path", List):
            if not isinstance(part, Text):
                raise MetaInfoError(
                    f"Path part holds {type(part).__name__}, expected Text")
            path.append(_text(part))
        if not path:
            raise MetaInfoError("File entry has an empty path")
        return cls(path, _require(raw, "length", Integer).value,
                   _optional_str(raw, "md5sum"))


class TorrentInfo:
    def __init__(self, raw_info: Dict) -> None:
        self._raw_info = raw_info

    @property
    def raw(self) -> Dict:
        return self._raw_info

    @cached_property
    def piece_length(self) -> int:
        return _require(self._raw_info, "piece length", Integer).value

    @cached_property
    def pieces(self) -> list[bytes]:
        raw_pieces = _require(self._raw_info, "pieces", Text).value.data
        if len(raw_pieces) % PIECE_HASH_LENGTH:
            raise MetaInfoError(
                f"Pieces length {len(raw_pieces)} is not a multiple "
                f"of {PIECE_HASH_LENGTH}")
        return [
            raw_pieces[offset: offset + PIECE_HASH_LENGTH]
            for offset in range(0, len(raw_pieces), PIECE_HASH_LENGTH)
        ]

    @cached_property
    def name(self) -> str:
        return _text(_require(self._raw_info, "name", Text))

    @cached_property
    def private(self) -> bool:
        return self._raw_info.get("private") == Integer(1)

    @cached_property
    def length(self) -> int:
        return _require(self._raw_info, "length", Integer).value

    @cached_property
    def md5sum(self) -> Optional[str]:
        return _optional_str(self._raw_info, "md5sum")

    @cached_property
    def files(self) -> list[FileItem]:
        return [FileItem.from_value(file_info)
                for file_info in _require(self._raw_info, "files", List)]

    @cached_property
    def is_multifile(self) -> bool:
        return "files" in self._raw_info


class Torrent:
    """Typed view over a decoded metainfo (.torrent) document."""

    def __init__(self, data: Value) -> None:
        if not isinstance(data, Dict):
            raise MetaInfoError("Metainfo document is not a dict")
        self._data = data

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray]) -> "Torrent":
        return cls(bencode.decode(data))

    @classmethod
    def from_file(cls, path: str) -> "Torrent":
        return cls(bencode.decode_file(path))

    @cached_property
    def info(self) -> TorrentInfo:
        return TorrentInfo(_require(self._data, "info", Dict))

    @cached_property
    def announce(self) -> str:
        return _text(_require(self._data, "announce", Text))

    @cached_property
    def announce_list(self) -> list[list[str]]:
        tiers = self._data.get("announce-list")
        if not isinstance(tiers, List):
            return []
        return [
            list(filter(is_url, map(_text, filter(
                lambda url: isinstance(url, Text), tier))))
            for tier in tiers
            if isinstance(tier, List)
        ]

    @cached_property
    def creation_date(self) -> Optional[int]:
        value = self._data.get("creation date")
        if isinstance(value, Integer):
            return value.value
        return None

    @cached_property
    def comment(self) -> Optional[str]:
        return _optional_str(self._data, "comment")

    @cached_property
    def created_by(self) -> Optional[str]:
        return _optional_str(self._data, "created by")

    @cached_property
    def encoding(self) -> Optional[str]:
        return _optional_str(self._data, "encoding")

    @cached_property
    def info_hash(self) -> bytes:
        return hashlib.sha1(bencode.encode(self.info.raw)).digest()

    @cached_property
    def size(self) -> int:
        if self.info.is_multifile:
            return sum(map(attrgetter("length"), self.info.files))
        return self.info.length

    @cached_property
    def announce_urls(self) -> list[str]:
        if "announce-list" in self._data:
            urls = list(chain(*self.announce_list))
            if urls:
                return urls
        return [self.announce]
