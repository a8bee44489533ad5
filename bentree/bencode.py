import logging
import sys

from typing import Optional, Union

from bentree.byte_string import ByteString
from bentree.value import Dict, Integer, List, Text, Value, MAX_INTEGER


__all__ = (
    "decode",
    "decode_file",
    "encode",
    "BencodeDecoder",
    "BencodeEncoder",
    "BencodeDecodeError",
    "BencodeEncodeError",
    "UnexpectedByteError",
    "InvalidLengthError",
    "InvalidIntegerError",
    "TruncatedError",
    "NonStringKeyError",
    "DepthLimitError",
    "TrailingDataError",
    "BencodeIOError",
    "DEFAULT_MAX_DEPTH",
    "max_supported_depth",
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 256

# Each container level costs two interpreter frames (_decode plus
# _decode_list or _decode_dict); the headroom covers the caller.
_FRAMES_PER_LEVEL = 2
_STACK_HEADROOM = 200

_DIGITS = b"0123456789"
_MAX_INTEGER_DIGITS = len(str(MAX_INTEGER))


class BencodeDecodeError(ValueError):
    def __init__(self, message: str, position: Optional[int] = None) -> None:
        if position is not None:
            message = f"{message} on position {position}"
        super().__init__(message)
        self.position = position


class UnexpectedByteError(BencodeDecodeError):
    pass


class InvalidLengthError(BencodeDecodeError):
    pass


class InvalidIntegerError(BencodeDecodeError):
    pass


class TruncatedError(BencodeDecodeError):
    pass


class NonStringKeyError(BencodeDecodeError):
    pass


class DepthLimitError(BencodeDecodeError):
    pass


class TrailingDataError(BencodeDecodeError):
    pass


class BencodeIOError(BencodeDecodeError):
    pass


def decode(
    data: Union[bytes, bytearray, memoryview],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    strict: bool = False
) -> Value:
    """Decode exactly one value from ``data``.

    Bytes following the first complete value are ignored unless ``strict``
    is set, so concatenated documents can be walked with
    :attr:`BencodeDecoder.position`.
    """
    decoder = BencodeDecoder(data, max_depth=max_depth)
    value = decoder.decode()
    if strict and decoder.position != len(decoder):
        raise TrailingDataError(
            f"{len(decoder) - decoder.position} trailing bytes",
            decoder.position)
    return value


def decode_file(path: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Value:
    try:
        with open(path, "rb") as fin:
            file_data = fin.read()
    except OSError as err:
        raise BencodeIOError(f"Can't read {path}: {err}") from err
    logger.debug("Read %d bytes from %s", len(file_data), path)
    return decode(file_data, max_depth=max_depth)


def max_supported_depth() -> int:
    """Largest ``max_depth`` the current recursion limit can honour."""
    return max(
        (sys.getrecursionlimit() - _STACK_HEADROOM) // _FRAMES_PER_LEVEL, 0)


def _parse_unsigned(digits: bytes) -> Optional[int]:
    # Leading zeros are legal, so they are stripped before the size check
    # that keeps int() away from huge digit runs.
    significant = digits.lstrip(b"0") or b"0"
    if len(significant) > _MAX_INTEGER_DIGITS:
        return None
    number = int(significant)
    if number > MAX_INTEGER:
        return None
    return number


class BencodeDecoder:
    """Recursive descent over a byte buffer.

    Every production raises a :class:`BencodeDecodeError` subclass on bad
    input, the first failure aborts the whole decode. Nesting is counted and
    capped at ``max_depth`` containers so hostile input can't exhaust the
    interpreter stack; a ``max_depth`` above :func:`max_supported_depth`
    is refused with ``ValueError``.
    """

    def __init__(
        self,
        data: Union[bytes, bytearray, memoryview],
        max_depth: int = DEFAULT_MAX_DEPTH
    ) -> None:
        if not 0 <= max_depth <= max_supported_depth():
            raise ValueError(
                f"max_depth must be between 0 and {max_supported_depth()}, "
                f"got {max_depth}")
        self._data = bytes(data)
        self._cur_pos = 0
        self._max_depth = max_depth

    def __len__(self) -> int:
        return len(self._data)

    @property
    def position(self) -> int:
        return self._cur_pos

    def decode(self) -> Value:
        return self._decode(0)

    def _decode(self, depth: int) -> Value:
        if self._cur_ch == b"i":
            return self._decode_int()
        elif self._cur_ch == b"l":
            return self._decode_list(depth + 1)
        elif self._cur_ch == b"d":
            return self._decode_dict(depth + 1)
        elif self._cur_ch.isdigit():
            return self._decode_string()
        elif not self._cur_ch:
            raise TruncatedError("Unexpected end of input", self._cur_pos)
        else:
            raise UnexpectedByteError(
                f"Invalid character {self._cur_ch!r}", self._cur_pos)

    @property
    def _cur_ch(self) -> bytes:
        return self._data[self._cur_pos: self._cur_pos + 1]

    def _read_digits(self, terminator: bytes) -> bytes:
        begin = self._cur_pos
        while self._cur_ch and self._cur_ch in _DIGITS:
            self._cur_pos += 1
        if not self._cur_ch:
            raise TruncatedError(
                f"Input ended before {terminator!r}", self._cur_pos)
        if self._cur_ch != terminator:
            raise self._digits_error(terminator)(
                f"Invalid character {self._cur_ch!r}", self._cur_pos)
        digits = self._data[begin: self._cur_pos]
        self._cur_pos += 1
        return digits

    @staticmethod
    def _digits_error(terminator: bytes) -> type[BencodeDecodeError]:
        if terminator == b":":
            return InvalidLengthError
        return InvalidIntegerError

    def _decode_int(self) -> Integer:
        begin = self._cur_pos
        self._cur_pos += 1
        digits = self._read_digits(b"e")
        if not digits:
            raise InvalidIntegerError("Empty integer", begin)
        number = _parse_unsigned(digits)
        if number is None:
            raise InvalidIntegerError("Integer out of range", begin)
        return Integer(number)

    def _decode_string(self) -> Text:
        begin = self._cur_pos
        length = _parse_unsigned(self._read_digits(b":"))
        if length is None:
            raise InvalidLengthError("String length out of range", begin)
        payload_begin = self._cur_pos
        payload_end = payload_begin + length
        if payload_end > len(self._data):
            raise TruncatedError(
                f"String declares {length} bytes, "
                f"{len(self._data) - payload_begin} available", begin)
        self._cur_pos = payload_end
        return Text(ByteString(self._data[payload_begin:payload_end]))

    def _check_depth(self, depth: int) -> None:
        if depth > self._max_depth:
            raise DepthLimitError(
                f"Nesting deeper than {self._max_depth}", self._cur_pos)

    def _decode_list(self, depth: int) -> List:
        self._check_depth(depth)
        blist = []
        self._cur_pos += 1
        while self._cur_ch != b"e":
            if not self._cur_ch:
                raise TruncatedError("List is not closed", self._cur_pos)
            blist.append(self._decode(depth))
        self._cur_pos += 1
        return List(tuple(blist))

    def _decode_dict(self, depth: int) -> Dict:
        self._check_depth(depth)
        # A repeated key keeps the slot of its first occurrence and takes
        # the value of its last one (plain dict assignment).
        bdict: dict[ByteString, Value] = {}
        self._cur_pos += 1
        while self._cur_ch != b"e":
            if not self._cur_ch:
                raise TruncatedError("Dict is not closed", self._cur_pos)
            if not self._cur_ch.isdigit():
                raise NonStringKeyError(
                    f"Dict key starts with {self._cur_ch!r}", self._cur_pos)
            key = self._decode_string().value
            bdict[key] = self._decode(depth)
        self._cur_pos += 1
        return Dict(bdict)


class BencodeEncodeError(TypeError):
    pass


def encode(value: Value) -> bytes:
    return BencodeEncoder(value).encode()


_END = object()


class BencodeEncoder:
    def __init__(self, data: Value) -> None:
        self._data = data

    def _encode(self, data: Value, out: bytearray) -> None:
        # Explicit stack: in-memory trees are not bounded by max_depth.
        stack: list = [data]
        while stack:
            item = stack.pop()
            if item is _END:
                out += b"e"
            elif isinstance(item, Dict):
                out += b"d"
                stack.append(_END)
                for key, value in reversed(list(item.items())):
                    stack.append(value)
                    stack.append(Text(key))
            elif isinstance(item, List):
                out += b"l"
                stack.append(_END)
                stack.extend(reversed(item.items))
            elif isinstance(item, Text):
                self._encode_string(item.value, out)
            elif isinstance(item, Integer):
                out += b"i" + str(item.value).encode("ascii") + b"e"
            else:
                err_msg = (
                    f"Object of type {type(item).__name__} "
                    f"is not Bencode serializable"
                )
                raise BencodeEncodeError(err_msg)

    @staticmethod
    def _encode_string(data: ByteString, out: bytearray) -> None:
        out += str(len(data)).encode("ascii") + b":" + data.data

    def encode(self) -> bytes:
        out = bytearray()
        self._encode(self._data, out)
        return bytes(out)
