"""Buffered, streaming MessagePack decoder."""

from __future__ import annotations

import struct
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Callable

from .errors import (
    ArrayError,
    FatalError,
    IntOverflow,
    InvalidPrefixError,
    MsgpError,
    ShortBytesError,
    TypeMismatchError,
    UintBelowZero,
    UintOverflow,
    bad_prefix,
)
from .spec import (
    ARRAY16V,
    ARRAY32V,
    CONSTSIZE,
    EXTRA8,
    EXTRA16,
    EXTRA32,
    MAP16V,
    MAP32V,
    MARRAY16,
    MARRAY32,
    MBIN8,
    MBIN16,
    MBIN32,
    MEXT8,
    MFALSE,
    MFIXEXT8,
    MFIXEXT16,
    MFLOAT32,
    MFLOAT64,
    MINT8,
    MINT16,
    MINT32,
    MINT64,
    MMAP16,
    MMAP32,
    MNIL,
    MSTR8,
    MSTR16,
    MSTR32,
    MTRUE,
    MUINT8,
    MUINT16,
    MUINT32,
    MUINT64,
    SMALLINT,
    Type,
    get_bytespec,
    get_type,
    is_fixarray,
    is_fixint,
    is_fixmap,
    is_fixstr,
    is_nfixint,
)

DEFAULT_BUFFER_SIZE = 4096
_MIN_BUFFER_SIZE = 16

_COMPLEX64_EXTENSION = 3
_COMPLEX128_EXTENSION = 4
_TIME_EXTENSION = 5

_INT64_MAX = (1 << 63) - 1

_STR_WIDTHS = {MSTR8: 1, MSTR16: 2, MSTR32: 4}
_BIN_WIDTHS = {MBIN8: 1, MBIN16: 2, MBIN32: 4}
_MAP_WIDTHS = {MMAP16: 2, MMAP32: 4}
_ARRAY_WIDTHS = {MARRAY16: 2, MARRAY32: 4}

_INT_FORMATS = {
    MINT8: ">b",
    MINT16: ">h",
    MINT32: ">i",
    MINT64: ">q",
    MUINT8: ">B",
    MUINT16: ">H",
    MUINT32: ">I",
    MUINT64: ">Q",
}
_SIGNED_LEADS = frozenset({MINT8, MINT16, MINT32, MINT64})


def _int8(b: int) -> int:
    return b - 256 if b > 127 else b


def _ext_error(got: int, want: int) -> MsgpError:
    from .extension import ExtensionTypeError

    return ExtensionTypeError(got, want)


class Reader:
    """Reads MessagePack values from a buffered binary stream."""

    def __init__(self, stream: BinaryIO, size: int = DEFAULT_BUFFER_SIZE) -> None:
        self._stream = stream
        self._size = max(size, _MIN_BUFFER_SIZE)
        self._buf = bytearray()
        self._pos = 0

    # ---- buffering -------------------------------------------------------

    def _fill(self, n: int) -> int:
        """Try to have ``n`` bytes buffered; return how many are buffered."""
        read = getattr(self._stream, "read1", self._stream.read)
        while len(self._buf) - self._pos < n:
            want = max(self._size, n - (len(self._buf) - self._pos))
            chunk = read(want)
            if not chunk:
                break
            if self._pos:
                del self._buf[: self._pos]
                self._pos = 0
            self._buf += chunk
        return len(self._buf) - self._pos

    def _peek_partial(self, n: int) -> bytes:
        self._fill(n)
        return bytes(self._buf[self._pos : self._pos + n])

    def reset(self, stream: BinaryIO) -> None:
        """Discard buffered data and read from ``stream`` from now on."""
        self._stream = stream
        self._buf = bytearray()
        self._pos = 0

    def buffered(self) -> int:
        """Number of bytes currently held in the read buffer."""
        return len(self._buf) - self._pos

    def buffer_size(self) -> int:
        """Capacity of the read buffer."""
        return self._size

    def peek(self, n: int) -> bytes:
        """Return the next ``n`` bytes without consuming them."""
        if self._fill(n) < n:
            raise EOFError("EOF")
        return bytes(self._buf[self._pos : self._pos + n])

    def next(self, n: int) -> bytes:
        """Consume and return exactly the next ``n`` bytes."""
        if self._fill(n) < n:
            raise EOFError("unexpected EOF")
        out = bytes(self._buf[self._pos : self._pos + n])
        self._pos += n
        return out

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes; returns ``b""`` at end of stream."""
        if self.buffered() == 0:
            self._fill(1)
        take = min(n, self.buffered())
        out = bytes(self._buf[self._pos : self._pos + take])
        self._pos += take
        return out

    def read_full(self, n: int) -> bytes:
        """Read exactly ``n`` bytes."""
        return self.next(n)

    # ---- inspection ------------------------------------------------------

    def _peek_extension_type(self) -> int:
        p = self.peek(2)
        spec = get_bytespec(p[0])
        if spec.typ is not Type.EXTENSION:
            raise bad_prefix(Type.EXTENSION, p[0])
        if spec.extra == CONSTSIZE:
            return _int8(p[1])
        p = self.peek(spec.size)
        return _int8(p[spec.size - 1])

    def next_type(self) -> Type:
        """Return the type of the next object without consuming it."""
        lead = self.peek(1)[0]
        t = get_type(lead)
        if t is Type.INVALID:
            raise InvalidPrefixError(lead)
        if t is Type.EXTENSION:
            ext = self._peek_extension_type()
            if ext == _COMPLEX64_EXTENSION:
                return Type.COMPLEX64
            if ext == _COMPLEX128_EXTENSION:
                return Type.COMPLEX128
            if ext == _TIME_EXTENSION:
                return Type.TIME
        return t

    def is_nil(self) -> bool:
        """Whether the next byte is a nil."""
        p = self._peek_partial(1)
        return bool(p) and p[0] == MNIL

    def _next_size(self) -> tuple[int, int]:
        """Return (bytes of the next object, number of child objects)."""
        lead = self.peek(1)[0]
        spec = get_bytespec(lead)
        if spec.size == 0:
            raise InvalidPrefixError(lead)
        if spec.extra >= 0:
            return spec.size, spec.extra
        p = self.peek(spec.size)
        mode = spec.extra
        if mode == EXTRA8:
            return spec.size + p[1], 0
        if mode == EXTRA16:
            return spec.size + int.from_bytes(p[1:3], "big"), 0
        if mode == EXTRA32:
            return spec.size + int.from_bytes(p[1:5], "big"), 0
        if mode == MAP16V:
            return spec.size, 2 * int.from_bytes(p[1:3], "big")
        if mode == MAP32V:
            return spec.size, 2 * int.from_bytes(p[1:5], "big")
        if mode == ARRAY16V:
            return spec.size, int.from_bytes(p[1:3], "big")
        if mode == ARRAY32V:
            return spec.size, int.from_bytes(p[1:5], "big")
        raise FatalError()

    def skip(self) -> None:
        """Skip the next object, including every element of a map or array."""
        size, objects = self._next_size()
        self.next(size)
        for _ in range(objects):
            self.skip()

    def copy_next(self, dst: Any) -> int:
        """Copy the next object, undecoded, to ``dst``; return bytes written."""
        size, objects = self._next_size()
        written = 0
        try:
            if size <= self._size:
                written += self._write(dst, self.next(size))
            else:
                remaining = size
                while remaining:
                    chunk = self.next(min(remaining, self._size))
                    written += self._write(dst, chunk)
                    remaining -= len(chunk)
        except EOFError:
            raise ShortBytesError() from None
        if written < size:
            raise OSError("short write")
        for _ in range(objects):
            written += self.copy_next(dst)
        return written

    @staticmethod
    def _write(dst: Any, data: bytes) -> int:
        n = dst.write(data)
        return len(data) if n is None else n

    # ---- headers ---------------------------------------------------------

    def _read_length(
        self,
        want: Type,
        is_fix: Callable[[int], bool] | None,
        fix_mask: int,
        widths: dict[int, int],
    ) -> int:
        lead = self.peek(1)[0]
        if is_fix is not None and is_fix(lead):
            self.next(1)
            return lead & fix_mask
        width = widths.get(lead)
        if width is None:
            raise bad_prefix(want, lead)
        return int.from_bytes(self.next(1 + width)[1:], "big")

    def read_map_header(self) -> int:
        """Read a map header and return the number of key/value pairs."""
        return self._read_length(Type.MAP, is_fixmap, 0x0F, _MAP_WIDTHS)

    def read_array_header(self) -> int:
        """Read an array header and return the number of elements."""
        return self._read_length(Type.ARRAY, is_fixarray, 0x0F, _ARRAY_WIDTHS)

    def read_string_header(self) -> int:
        """Read a 'str' header; the caller handles the following bytes."""
        return self._read_length(Type.STR, is_fixstr, 0x1F, _STR_WIDTHS)

    def read_bytes_header(self) -> int:
        """Read a 'bin' header; the caller handles the following bytes."""
        return self._read_length(Type.BIN, None, 0, _BIN_WIDTHS)

    def read_map_key(self) -> bytes:
        """Read a map key encoded as either 'str' or 'bin'."""
        try:
            return self.read_string_as_bytes()
        except TypeMismatchError as err:
            if err.encoded is Type.BIN:
                return self.read_bytes()
            raise

    # ---- scalars ---------------------------------------------------------

    def read_nil(self) -> None:
        """Consume a nil."""
        lead = self.peek(1)[0]
        if lead != MNIL:
            raise bad_prefix(Type.NIL, lead)
        self.next(1)

    def read_float64(self) -> float:
        """Read a float64; a float32 on the wire is widened."""
        p = self._peek_partial(9)
        if not p:
            raise EOFError("EOF")
        if p[0] == MFLOAT32:
            return self.read_float32()
        p = self.peek(9)
        if p[0] != MFLOAT64:
            raise bad_prefix(Type.FLOAT64, p[0])
        (value,) = struct.unpack(">d", p[1:9])
        self.next(9)
        return value

    def read_float32(self) -> float:
        """Read a float32."""
        p = self.peek(5)
        if p[0] != MFLOAT32:
            raise bad_prefix(Type.FLOAT32, p[0])
        (value,) = struct.unpack(">f", p[1:5])
        self.next(5)
        return value

    def read_bool(self) -> bool:
        """Read a bool."""
        lead = self.peek(1)[0]
        if lead not in (MTRUE, MFALSE):
            raise bad_prefix(Type.BOOL, lead)
        self.next(1)
        return lead == MTRUE

    def _read_sized_int(self, lead: int) -> int:
        fmt = _INT_FORMATS[lead]
        size = struct.calcsize(fmt)
        (value,) = struct.unpack(fmt, self.next(1 + size)[1:])
        return value

    def read_int64(self) -> int:
        """Read a signed integer of any wire width."""
        lead = self.peek(1)[0]
        if is_fixint(lead):
            self.next(1)
            return lead
        if is_nfixint(lead):
            self.next(1)
            return lead - 256
        if lead not in _INT_FORMATS:
            raise bad_prefix(Type.INT, lead)
        value = self._read_sized_int(lead)
        if lead == MUINT64 and value > _INT64_MAX:
            raise UintOverflow(value, 64)
        return value

    @staticmethod
    def _narrow_int(value: int, bits: int) -> int:
        limit = 1 << (bits - 1)
        if not -limit <= value < limit:
            raise IntOverflow(value, bits)
        return value

    def read_int32(self) -> int:
        """Read a signed integer that must fit in 32 bits."""
        return self._narrow_int(self.read_int64(), 32)

    def read_int16(self) -> int:
        """Read a signed integer that must fit in 16 bits."""
        return self._narrow_int(self.read_int64(), 16)

    def read_int8(self) -> int:
        """Read a signed integer that must fit in 8 bits."""
        return self._narrow_int(self.read_int64(), 8)

    def read_int(self) -> int:
        """Read a signed integer of the platform word size."""
        return self.read_int32() if SMALLINT else self.read_int64()

    def read_uint64(self) -> int:
        """Read a non-negative integer of any wire width."""
        lead = self.peek(1)[0]
        if is_fixint(lead):
            self.next(1)
            return lead
        if lead in _INT_FORMATS:
            value = self._read_sized_int(lead)
            if lead in _SIGNED_LEADS and value < 0:
                raise UintBelowZero(value)
            return value
        if is_nfixint(lead):
            raise UintBelowZero(lead - 256)
        raise bad_prefix(Type.UINT, lead)

    @staticmethod
    def _narrow_uint(value: int, bits: int) -> int:
        if value >= 1 << bits:
            raise UintOverflow(value, bits)
        return value

    def read_uint32(self) -> int:
        """Read an unsigned integer that must fit in 32 bits."""
        return self._narrow_uint(self.read_uint64(), 32)

    def read_uint16(self) -> int:
        """Read an unsigned integer that must fit in 16 bits."""
        return self._narrow_uint(self.read_uint64(), 16)

    def read_uint8(self) -> int:
        """Read an unsigned integer that must fit in 8 bits."""
        return self._narrow_uint(self.read_uint64(), 8)

    def read_uint(self) -> int:
        """Read an unsigned integer of the platform word size."""
        return self.read_uint32() if SMALLINT else self.read_uint64()

    def read_byte(self) -> int:
        """Read an unsigned integer that must fit in a byte."""
        return self._narrow_uint(self.read_uint64(), 8)

    # ---- bytes and strings -----------------------------------------------

    def read_bytes(self) -> bytes:
        """Read a 'bin' object."""
        return self.read_full(self.read_bytes_header())

    def read_exact_bytes(self, size: int) -> bytes:
        """Read a 'bin' object that must be exactly ``size`` bytes long."""
        lead = self.peek(1)[0]
        width = _BIN_WIDTHS.get(lead)
        if width is None:
            raise bad_prefix(Type.BIN, lead)
        p = self.peek(1 + width)
        length = int.from_bytes(p[1:], "big")
        if length != size:
            raise ArrayError(wanted=size, got=length)
        self.next(1 + width)
        return self.read_full(length)

    def read_string_as_bytes(self) -> bytes:
        """Read a 'str' object and return its raw bytes."""
        return self.read_full(self.read_string_header())

    def read_string(self) -> str:
        """Read a 'str' object; bytes that are not UTF-8 are kept as surrogates."""
        length = self.read_string_header()
        if length == 0:
            return ""
        return self.read_full(length).decode("utf-8", errors="surrogateescape")

    # ---- built-in extensions ---------------------------------------------

    def read_complex64(self) -> complex:
        """Read a complex number made of two float32 parts."""
        p = self.peek(10)
        if p[0] != MFIXEXT8:
            raise bad_prefix(Type.COMPLEX64, p[0])
        if _int8(p[1]) != _COMPLEX64_EXTENSION:
            raise _ext_error(_int8(p[1]), _COMPLEX64_EXTENSION)
        real, imag = struct.unpack(">ff", p[2:10])
        self.next(10)
        return complex(real, imag)

    def read_complex128(self) -> complex:
        """Read a complex number made of two float64 parts."""
        p = self.peek(18)
        if p[0] != MFIXEXT16:
            raise bad_prefix(Type.COMPLEX128, p[0])
        if _int8(p[1]) != _COMPLEX128_EXTENSION:
            raise _ext_error(_int8(p[1]), _COMPLEX128_EXTENSION)
        real, imag = struct.unpack(">dd", p[2:18])
        self.next(18)
        return complex(real, imag)

    def read_time(self) -> datetime:
        """Read a timestamp; the result is in the local time zone."""
        p = self.peek(15)
        if p[0] != MEXT8 or p[1] != 12:
            raise bad_prefix(Type.TIME, p[0])
        if _int8(p[2]) != _TIME_EXTENSION:
            raise _ext_error(_int8(p[2]), _TIME_EXTENSION)
        sec, nsec = struct.unpack(">qi", p[3:15])
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        moment = epoch + timedelta(seconds=sec, microseconds=nsec // 1000)
        self.next(15)
        return moment.astimezone()


def decode(stream: BinaryIO, decodable: Any) -> Any:
    """Decode one value from ``stream`` with ``decodable.decode_msg``."""
    return decodable.decode_msg(Reader(stream))