"""
Canonical CBOR encoder/decoder for ledger data.

Only the subset the ledger uses is supported: unsigned and negative integers, byte and
text strings, arrays, maps, tags and the simple values true/false/null.

Encoding is canonical (shortest-form heads, definite lengths, map keys sorted
length-first then bytewise), so encoding the same structure always yields the same
bytes. The decoder is lenient on input and also accepts indefinite-length items, since
wallets are free to produce them.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any

from adacore.constants import CBOR_SET_TAG, MAX_UINT64

MAJOR_UINT = 0
MAJOR_NEGINT = 1
MAJOR_BYTES = 2
MAJOR_TEXT = 3
MAJOR_ARRAY = 4
MAJOR_MAP = 5
MAJOR_TAG = 6
MAJOR_SIMPLE = 7

SIMPLE_FALSE = 20
SIMPLE_TRUE = 21
SIMPLE_NULL = 22

BREAK = 0xFF
INDEFINITE = 31

# Maximum nesting depth accepted by the decoder
DEFAULT_MAX_DEPTH = 64


class CBORDecodeError(ValueError):
    """Raised when bytes are not valid (supported) CBOR."""

    pass


class CBOREncodeError(ValueError):
    """Raised when a value cannot be represented."""

    pass


@dataclass(frozen=True)
class CBORTag:
    """A tagged data item."""

    tag: int
    value: Any


def encode_head(major: int, argument: int) -> bytes:
    """Encode a major type and its argument in shortest form."""
    if argument < 0:
        raise CBOREncodeError(f"Negative argument: {argument}")
    if argument < 24:
        return bytes([(major << 5) | argument])
    elif argument <= 0xFF:
        return bytes([(major << 5) | 24, argument])
    elif argument <= 0xFFFF:
        return bytes([(major << 5) | 25]) + struct.pack(">H", argument)
    elif argument <= 0xFFFFFFFF:
        return bytes([(major << 5) | 26]) + struct.pack(">I", argument)
    elif argument <= MAX_UINT64:
        return bytes([(major << 5) | 27]) + struct.pack(">Q", argument)
    raise CBOREncodeError(f"Integer out of range: {argument}")


def dumps(obj: Any) -> bytes:
    """Encode a Python value as canonical CBOR."""
    # bool must be checked before int
    if obj is False:
        return bytes([(MAJOR_SIMPLE << 5) | SIMPLE_FALSE])
    if obj is True:
        return bytes([(MAJOR_SIMPLE << 5) | SIMPLE_TRUE])
    if obj is None:
        return bytes([(MAJOR_SIMPLE << 5) | SIMPLE_NULL])

    if isinstance(obj, int):
        if obj >= 0:
            return encode_head(MAJOR_UINT, obj)
        return encode_head(MAJOR_NEGINT, -1 - obj)

    if isinstance(obj, (bytes, bytearray, memoryview)):
        raw = bytes(obj)
        return encode_head(MAJOR_BYTES, len(raw)) + raw

    if isinstance(obj, str):
        raw = obj.encode("utf-8")
        return encode_head(MAJOR_TEXT, len(raw)) + raw

    if isinstance(obj, (list, tuple)):
        result = encode_head(MAJOR_ARRAY, len(obj))
        for item in obj:
            result += dumps(item)
        return result

    if isinstance(obj, dict):
        entries = [(dumps(key), dumps(value)) for key, value in obj.items()]
        entries.sort(key=lambda entry: (len(entry[0]), entry[0]))
        result = encode_head(MAJOR_MAP, len(entries))
        for key_bytes, value_bytes in entries:
            result += key_bytes + value_bytes
        return result

    if isinstance(obj, CBORTag):
        return encode_head(MAJOR_TAG, obj.tag) + dumps(obj.value)

    raise CBOREncodeError(f"Cannot encode value of type {type(obj).__name__}")


class _Decoder:
    def __init__(self, data: bytes, max_depth: int = DEFAULT_MAX_DEPTH):
        self.data = data
        self.offset = 0
        self.max_depth = max_depth

    def _read(self, length: int) -> bytes:
        end = self.offset + length
        if end > len(self.data):
            raise CBORDecodeError("Unexpected end of data")
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def _at_break(self) -> bool:
        if self.offset >= len(self.data):
            raise CBORDecodeError("Unexpected end of data (missing break)")
        if self.data[self.offset] == BREAK:
            self.offset += 1
            return True
        return False

    def _read_head(self) -> tuple[int, int, int | None]:
        """Read an initial byte and argument. Returns (major, info, argument)."""
        initial = self._read(1)[0]
        major = initial >> 5
        info = initial & 0x1F

        if info < 24:
            return major, info, info
        if info == 24:
            return major, info, self._read(1)[0]
        if info == 25:
            return major, info, struct.unpack(">H", self._read(2))[0]
        if info == 26:
            return major, info, struct.unpack(">I", self._read(4))[0]
        if info == 27:
            return major, info, struct.unpack(">Q", self._read(8))[0]
        if info == INDEFINITE:
            return major, info, None
        raise CBORDecodeError(f"Reserved additional info value: {info}")

    def decode(self, depth: int = 0) -> Any:
        if depth > self.max_depth:
            raise CBORDecodeError(f"CBOR nesting depth exceeds maximum of {self.max_depth}")

        major, info, argument = self._read_head()

        if major == MAJOR_UINT:
            if argument is None:
                raise CBORDecodeError("Indefinite length integer")
            return argument

        if major == MAJOR_NEGINT:
            if argument is None:
                raise CBORDecodeError("Indefinite length integer")
            return -1 - argument

        if major in (MAJOR_BYTES, MAJOR_TEXT):
            if argument is None:
                raw = b""
                while not self._at_break():
                    chunk_major, _, chunk_len = self._read_head()
                    if chunk_major != major or chunk_len is None:
                        raise CBORDecodeError("Invalid chunk in indefinite length string")
                    raw += self._read(chunk_len)
            else:
                raw = self._read(argument)
            if major == MAJOR_BYTES:
                return raw
            try:
                return raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise CBORDecodeError(f"Invalid UTF-8 in text string: {e}") from e

        if major == MAJOR_ARRAY:
            items = []
            if argument is None:
                while not self._at_break():
                    items.append(self.decode(depth + 1))
            else:
                for _ in range(argument):
                    items.append(self.decode(depth + 1))
            return items

        if major == MAJOR_MAP:
            result: dict[Any, Any] = {}
            count = 0
            while True:
                if argument is None:
                    if self._at_break():
                        break
                elif count >= argument:
                    break
                key = self.decode(depth + 1)
                value = self.decode(depth + 1)
                try:
                    result[key] = value
                except TypeError as e:
                    raise CBORDecodeError(f"Unsupported map key type: {type(key).__name__}") from e
                count += 1
            return result

        if major == MAJOR_TAG:
            if argument is None:
                raise CBORDecodeError("Indefinite length tag")
            return CBORTag(argument, self.decode(depth + 1))

        # Major type 7: only false/true/null are meaningful in ledger data
        if info == SIMPLE_FALSE:
            return False
        if info == SIMPLE_TRUE:
            return True
        if info == SIMPLE_NULL:
            return None
        if info == INDEFINITE:
            raise CBORDecodeError("Unexpected break")
        raise CBORDecodeError(f"Unsupported simple/float value (info {info})")

    def finish(self) -> None:
        if self.offset != len(self.data):
            raise CBORDecodeError(f"Trailing data: {len(self.data) - self.offset} bytes")


def loads(data: bytes, max_depth: int = DEFAULT_MAX_DEPTH) -> Any:
    """Decode a single CBOR data item occupying all of ``data``."""
    decoder = _Decoder(bytes(data), max_depth=max_depth)
    result = decoder.decode()
    decoder.finish()
    return result


def split_array(data: bytes) -> list[bytes]:
    """
    Return the raw encoded bytes of each item of a top-level array.

    Used where the exact bytes of an element matter, e.g. hashing the transaction body
    as a counterparty encoded it rather than as we would re-encode it.
    """
    decoder = _Decoder(bytes(data))
    major, _, argument = decoder._read_head()
    if major != MAJOR_ARRAY:
        raise CBORDecodeError("Expected a CBOR array")

    items: list[bytes] = []
    while True:
        if argument is None:
            if decoder._at_break():
                break
        elif len(items) >= argument:
            break
        start = decoder.offset
        decoder.decode(1)
        items.append(decoder.data[start : decoder.offset])

    decoder.finish()
    return items


def unwrap_set(value: Any) -> list[Any]:
    """Return the elements of a ledger set, which may be tagged 258."""
    if isinstance(value, CBORTag):
        if value.tag != CBOR_SET_TAG:
            raise CBORDecodeError(f"Unexpected tag {value.tag} where a set was expected")
        value = value.value
    if not isinstance(value, list):
        raise CBORDecodeError("Expected an array")
    return value
