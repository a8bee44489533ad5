from functools import total_ordering
from typing import Union


BytesLike = Union[bytes, bytearray, memoryview]


@total_ordering
class ByteString:
    """Immutable raw byte sequence used for bencode strings and dict keys.

    Bencode strings are not guaranteed to be text (``pieces`` holds
    concatenated SHA-1 digests), so nothing here decodes implicitly.
    Equality, hashing and ordering all work on the raw bytes.
    """

    __slots__ = ("_data",)

    def __init__(self, data: Union[str, BytesLike] = b"") -> None:
        if isinstance(data, str):
            self._data = data.encode("utf-8")
        elif isinstance(data, (bytes, bytearray, memoryview)):
            self._data = bytes(data)
        else:
            raise TypeError(
                f"ByteString expects str or bytes-like, "
                f"got {type(data).__name__}")

    @property
    def data(self) -> bytes:
        return self._data

    def display(self) -> str:
        try:
            return self._data.decode("utf-8")
        except UnicodeDecodeError:
            return f"<binary: {len(self._data)} bytes>"

    def __bytes__(self) -> bytes:
        return self._data

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ByteString):
            return NotImplemented
        return self._data == other._data

    def __lt__(self, other: "ByteString") -> bool:
        if not isinstance(other, ByteString):
            return NotImplemented
        return self._data < other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __str__(self) -> str:
        return self.display()

    def __repr__(self) -> str:
        return f"ByteString({self._data!r})"
