"""MessagePack extension objects: the extension interface, a raw extension
type, a registry of user extensions, and extension encoding and decoding."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .errors import MsgpError, ShortBytesError, bad_prefix
from .reader import Reader
from .spec import (
    CONSTSIZE,
    MEXT8,
    MEXT16,
    MEXT32,
    MFIXEXT1,
    MFIXEXT2,
    MFIXEXT4,
    MFIXEXT8,
    MFIXEXT16,
    Type,
    get_bytespec,
)

COMPLEX64_EXTENSION = 3
COMPLEX128_EXTENSION = 4
TIME_EXTENSION = 5

_RESERVED = frozenset({COMPLEX64_EXTENSION, COMPLEX128_EXTENSION, TIME_EXTENSION})

_FIXED_BY_LENGTH = {
    1: MFIXEXT1,
    2: MFIXEXT2,
    4: MFIXEXT4,
    8: MFIXEXT8,
    16: MFIXEXT16,
}
_FIXED_BY_LEAD = {lead: length for length, lead in _FIXED_BY_LENGTH.items()}
_VARIABLE_WIDTHS = {MEXT8: 1, MEXT16: 2, MEXT32: 4}

_MAX_UINT8 = 0xFF
_MAX_UINT16 = 0xFFFF


def _int8(b: int) -> int:
    return b - 256 if b > 127 else b


class Extension:
    """A value that defines its own binary encoding inside an extension."""

    def extension_type(self) -> int:
        """The signed 8-bit type number of the extension."""
        raise NotImplementedError

    def __len__(self) -> int:
        """Length of the encoded body."""
        raise NotImplementedError

    def marshal_binary(self) -> bytes:
        """Return the encoded body, ``len(self)`` bytes long."""
        raise NotImplementedError

    def unmarshal_binary(self, data: bytes) -> None:
        """Load the value from an encoded body."""
        raise NotImplementedError


@dataclass
class RawExtension(Extension):
    """An extension whose body is kept as raw bytes."""

    ext_type: int = 0
    data: bytes = b""

    def extension_type(self) -> int:
        return self.ext_type

    def __len__(self) -> int:
        return len(self.data)

    def marshal_binary(self) -> bytes:
        return bytes(self.data)

    def unmarshal_binary(self, data: bytes) -> None:
        self.data = bytes(data)


class ExtensionTypeError(MsgpError):
    """The extension type on the wire differs from the one expected."""

    def __init__(self, got: int = 0, want: int = 0) -> None:
        super().__init__()
        self.got = got
        self.want = want

    def __str__(self) -> str:
        return (
            f"msgp: error decoding extension: wanted type {self.want}; "
            f"got type {self.got}"
        )

    def resumable(self) -> bool:
        return True


_registry: dict[int, Callable[[], Extension]] = {}


def register_extension(typ: int, factory: Callable[[], Extension]) -> None:
    """Register a factory of empty extension values for type ``typ``.

    Types 3, 4 and 5 are reserved; registering a type twice is an error.
    """
    if typ in _RESERVED:
        raise ValueError(f"msgp: forbidden extension type: {typ}")
    if typ in _registry:
        raise ValueError(
            f"msgp: RegisterExtension() called with typ {typ} more than once"
        )
    _registry[typ] = factory


def registered_extension(typ: int) -> Callable[[], Extension] | None:
    """Return the factory registered for ``typ``, if any."""
    return _registry.get(typ)


def _header(length: int, typ: int) -> bytes:
    type_byte = typ & 0xFF
    if length == 0:
        return bytes((MEXT8, 0, type_byte))
    fixed = _FIXED_BY_LENGTH.get(length)
    if fixed is not None:
        return bytes((fixed, type_byte))
    if length < _MAX_UINT8:
        return bytes((MEXT8, length, type_byte))
    if length < _MAX_UINT16:
        return bytes((MEXT16,)) + length.to_bytes(2, "big") + bytes((type_byte,))
    return bytes((MEXT32,)) + length.to_bytes(4, "big") + bytes((type_byte,))


def append_extension(b: bytes, ext: Extension) -> bytes:
    """Return ``b`` followed by ``ext`` encoded as a MessagePack extension."""
    length = len(ext)
    out = bytes(b) + _header(length, ext.extension_type())
    if length == 0:
        return out
    body = bytes(ext.marshal_binary())[:length].ljust(length, b"\x00")
    return out + body


def read_extension_bytes(b: bytes, ext: Extension) -> bytes:
    """Decode an extension from ``b`` into ``ext``; return the bytes after it."""
    if len(b) < 3:
        raise ShortBytesError()
    lead = b[0]
    fixed = _FIXED_BY_LEAD.get(lead)
    if fixed is not None:
        typ, size, off = _int8(b[1]), fixed, 2
    elif lead == MEXT8:
        size, typ, off = b[1], _int8(b[2]), 3
        if size == 0:
            ext.unmarshal_binary(b"")
            return bytes(b[3:])
    elif lead == MEXT16:
        if len(b) < 4:
            raise ShortBytesError()
        size, typ, off = int.from_bytes(b[1:3], "big"), _int8(b[3]), 4
    elif lead == MEXT32:
        if len(b) < 6:
            raise ShortBytesError()
        size, typ, off = int.from_bytes(b[1:5], "big"), _int8(b[5]), 6
    else:
        raise bad_prefix(Type.EXTENSION, lead)

    if typ != ext.extension_type():
        raise ExtensionTypeError(typ, ext.extension_type())
    if len(b) - off < size:
        raise ShortBytesError()
    end = off + size
    ext.unmarshal_binary(bytes(b[off:end]))
    return bytes(b[end:])


def peek_extension(b: bytes) -> int:
    """Return the extension type of the extension at the start of ``b``."""
    if not b:
        raise ShortBytesError()
    spec = get_bytespec(b[0])
    if spec.typ is not Type.EXTENSION:
        raise bad_prefix(Type.EXTENSION, b[0])
    if len(b) < spec.size:
        raise ShortBytesError()
    if spec.extra == CONSTSIZE:
        return _int8(b[1])
    return _int8(b[spec.size - 1])


def peek_extension_type(reader: Reader) -> int:
    """Return the type of the next extension in ``reader`` without consuming it."""
    p = reader.peek(2)
    spec = get_bytespec(p[0])
    if spec.typ is not Type.EXTENSION:
        raise bad_prefix(Type.EXTENSION, p[0])
    if spec.extra == CONSTSIZE:
        return _int8(p[1])
    p = reader.peek(spec.size)
    return _int8(p[spec.size - 1])


def read_extension(reader: Reader, ext: Extension) -> None:
    """Read the next object from ``reader`` as an extension into ``ext``."""
    p = reader.peek(2)
    lead = p[0]
    fixed = _FIXED_BY_LEAD.get(lead)
    if fixed is not None:
        typ = _int8(p[1])
        if typ != ext.extension_type():
            raise ExtensionTypeError(typ, ext.extension_type())
        total = 2 + fixed
        p = reader.peek(total)
        ext.unmarshal_binary(p[2:])
        reader.next(total)
        return

    width = _VARIABLE_WIDTHS.get(lead)
    if width is None:
        raise bad_prefix(Type.EXTENSION, lead)
    off = 2 + width
    p = reader.peek(off)
    typ = _int8(p[off - 1])
    if typ != ext.extension_type():
        raise ExtensionTypeError(typ, ext.extension_type())
    size = int.from_bytes(p[1 : 1 + width], "big")
    p = reader.peek(off + size)
    ext.unmarshal_binary(p[off:])
    reader.next(off + size)