from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Union

from bentree.byte_string import ByteString, BytesLike


__all__ = (
    "Text",
    "Integer",
    "List",
    "Dict",
    "Value",
    "MAX_INTEGER",
    "to_value",
    "format_value",
)


MAX_INTEGER = 2 ** 64 - 1

KeyLike = Union[ByteString, str, BytesLike]


def _as_key(key: KeyLike) -> ByteString:
    if isinstance(key, ByteString):
        return key
    return ByteString(key)


@dataclass(frozen=True)
class Text:
    value: ByteString

    def __post_init__(self) -> None:
        if not isinstance(self.value, ByteString):
            object.__setattr__(self, "value", ByteString(self.value))

    def __bytes__(self) -> bytes:
        return self.value.data


@dataclass(frozen=True)
class Integer:
    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(
                f"Integer expects int, got {type(self.value).__name__}")
        if not 0 <= self.value <= MAX_INTEGER:
            raise ValueError(
                f"Integer out of unsigned 64-bit range: {self.value}")

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True)
class List:
    items: tuple["Value", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator["Value"]:
        return iter(self.items)

    def __getitem__(self, idx: int) -> "Value":
        return self.items[idx]


@dataclass(frozen=True, eq=False)
class Dict:
    """Ordered bencode dictionary.

    Key order is the order of first insertion and takes part in equality,
    so two dicts holding the same pairs in a different order are different
    documents.
    """

    entries: Mapping[ByteString, "Value"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "entries",
            MappingProxyType({_as_key(key): value
                              for key, value in self.entries.items()}))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dict):
            return NotImplemented
        return list(self.entries.items()) == list(other.entries.items())

    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ByteString]:
        return iter(self.entries)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (ByteString, str, bytes, bytearray, memoryview)):
            return False
        return _as_key(key) in self.entries

    def __getitem__(self, key: KeyLike) -> "Value":
        return self.entries[_as_key(key)]

    def get(self, key: KeyLike,
            default: Optional["Value"] = None) -> Optional["Value"]:
        return self.entries.get(_as_key(key), default)

    def keys(self):
        return self.entries.keys()

    def values(self):
        return self.entries.values()

    def items(self):
        return self.entries.items()


Value = Union[Text, Integer, List, Dict]


def to_value(obj: object) -> Value:
    """Build a value tree from plain Python objects.

    ``str`` is stored as its UTF-8 bytes. Values are passed through as is.
    """
    if isinstance(obj, (Text, Integer, List, Dict)):
        return obj
    if isinstance(obj, ByteString):
        return Text(obj)
    if isinstance(obj, (str, bytes, bytearray, memoryview)):
        return Text(ByteString(obj))
    if isinstance(obj, int) and not isinstance(obj, bool):
        return Integer(obj)
    if isinstance(obj, (list, tuple)):
        return List(tuple(map(to_value, obj)))
    if isinstance(obj, dict):
        return Dict({_as_key(key): to_value(value)
                     for key, value in obj.items()})
    raise TypeError(
        f"Object of type {type(obj).__name__} has no bencode value")


def _format_scalar(value: Value) -> str:
    if isinstance(value, Integer):
        return str(value.value)
    return value.value.display()


def format_value(value: Value, indent: int = 0) -> str:
    lines = []
    # Pending work: a finished line (str) or a (value, indent) pair.
    stack: list = [(value, indent)]
    while stack:
        entry = stack.pop()
        if isinstance(entry, str):
            lines.append(entry)
            continue
        item, level = entry
        pad = "  " * level
        if isinstance(item, (Integer, Text)):
            lines.append(f"{pad}{_format_scalar(item)}")
        elif isinstance(item, List):
            if not item.items:
                lines.append(f"{pad}[]")
                continue
            lines.append(f"{pad}[")
            stack.append(f"{pad}]")
            stack.extend((child, level + 1) for child in reversed(item.items))
        else:
            lines.append(f"{pad}{{")
            stack.append(f"{pad}}}")
            for key, child in reversed(list(item.items())):
                if isinstance(child, (Integer, Text)):
                    stack.append(
                        f"{pad}  {key.display()}: {_format_scalar(child)}")
                else:
                    stack.append((child, level + 2))
                    stack.append(f"{pad}  {key.display()}:")
    return "\n".join(lines)
