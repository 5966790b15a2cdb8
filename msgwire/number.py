"""A MessagePack number that may be an int64, uint64, float32 or float64."""

from __future__ import annotations

import io
import math
import struct
from dataclasses import dataclass
from decimal import Decimal

from .errors import ShortBytesError, TypeMismatchError
from .reader import Reader
from .spec import MFLOAT32, MFLOAT64, MINT8, MINT16, MINT32, MINT64, MUINT8, MUINT16, MUINT32, MUINT64, Type, get_bytespec, get_type

FLOAT32_SIZE = 5
FLOAT64_SIZE = 9
INT64_SIZE = 9
UINT64_SIZE = 9

_MASK64 = (1 << 64) - 1


def _format_float(f: float) -> str:
    """Shortest decimal form of ``f`` without an exponent."""
    if math.isnan(f):
        return "NaN"
    if math.isinf(f):
        return "+Inf" if f > 0 else "-Inf"
    return format(Decimal(repr(f)).normalize(), "f")


def _append_int64(i: int) -> bytes:
    if i >= 0:
        if i <= 0x7F:
            return bytes((i,))
        if i <= 0x7FFF:
            return bytes((MINT16,)) + struct.pack(">h", i)
        if i <= 0x7FFFFFFF:
            return bytes((MINT32,)) + struct.pack(">i", i)
        return bytes((MINT64,)) + struct.pack(">q", i)
    if i >= -32:
        return bytes((i & 0xFF,))
    if i >= -0x80:
        return bytes((MINT8,)) + struct.pack(">b", i)
    if i >= -0x8000:
        return bytes((MINT16,)) + struct.pack(">h", i)
    if i >= -0x80000000:
        return bytes((MINT32,)) + struct.pack(">i", i)
    return bytes((MINT64,)) + struct.pack(">q", i)


def _append_uint64(u: int) -> bytes:
    if u <= 0x7F:
        return bytes((u,))
    if u <= 0xFF:
        return bytes((MUINT8, u))
    if u <= 0xFFFF:
        return bytes((MUINT16,)) + struct.pack(">H", u)
    if u <= 0xFFFFFFFF:
        return bytes((MUINT32,)) + struct.pack(">I", u)
    return bytes((MUINT64,)) + struct.pack(">Q", u)


def _signed64(bits: int) -> int:
    return bits - (1 << 64) if bits >> 63 else bits


@dataclass(frozen=True)
class Number:
    """A tagged number; equality compares both the kind and the raw bits.

    The zero value is the integer 0, which is always stored with the
    ``INVALID`` kind so that every integer zero compares equal.
    """

    bits: int = 0
    kind: Type = Type.INVALID

    @classmethod
    def from_int(cls, i: int) -> "Number":
        """A number holding a signed 64-bit integer."""
        if i == 0:
            return cls()
        return cls(i & _MASK64, Type.INT)

    @classmethod
    def from_uint(cls, u: int) -> "Number":
        """A number holding an unsigned 64-bit integer."""
        return cls(u & _MASK64, Type.UINT)

    @classmethod
    def from_float32(cls, f: float) -> "Number":
        """A number holding a float32."""
        (bits,) = struct.unpack(">I", struct.pack(">f", f))
        return cls(bits, Type.FLOAT32)

    @classmethod
    def from_float64(cls, f: float) -> "Number":
        """A number holding a float64."""
        (bits,) = struct.unpack(">Q", struct.pack(">d", f))
        return cls(bits, Type.FLOAT64)

    def as_int(self) -> tuple[int, bool]:
        """The bits as an int64, and whether the number is an integer."""
        return _signed64(self.bits), self.kind in (Type.INT, Type.INVALID)

    def as_uint(self) -> tuple[int, bool]:
        """The bits as a uint64, and whether the number is unsigned."""
        return self.bits, self.kind is Type.UINT

    def as_float(self) -> tuple[float, bool]:
        """The value as a float, and whether the number is a float."""
        if self.kind is Type.FLOAT32:
            (f,) = struct.unpack(">f", struct.pack(">I", self.bits & 0xFFFFFFFF))
            return f, True
        if self.kind is Type.FLOAT64:
            (f,) = struct.unpack(">d", struct.pack(">Q", self.bits))
            return f, True
        return 0.0, False

    def type(self) -> Type:
        """One of ``FLOAT64``, ``FLOAT32``, ``UINT`` or ``INT``."""
        return Type.INT if self.kind is Type.INVALID else self.kind

    @classmethod
    def _read(cls, typ: Type, reader: Reader) -> "Number":
        if typ is Type.FLOAT32:
            return cls.from_float32(reader.read_float32())
        if typ is Type.FLOAT64:
            return cls.from_float64(reader.read_float64())
        if typ is Type.INT:
            return cls.from_int(reader.read_int64())
        if typ is Type.UINT:
            return cls.from_uint(reader.read_uint64())
        raise TypeMismatchError(method=Type.INT, encoded=typ)

    @classmethod
    def decode_msg(cls, reader: Reader) -> "Number":
        """Read a number of any numeric wire type from ``reader``."""
        return cls._read(reader.next_type(), reader)

    @classmethod
    def unmarshal_msg(cls, b: bytes) -> tuple["Number", bytes]:
        """Decode a number from ``b``; return it and the bytes after it."""
        typ = get_type(b[0]) if b else Type.INVALID
        if typ not in (Type.INT, Type.UINT, Type.FLOAT32, Type.FLOAT64):
            raise TypeMismatchError(method=Type.INT, encoded=typ)
        size = get_bytespec(b[0]).size
        if len(b) < size:
            raise ShortBytesError()
        number = cls._read(typ, Reader(io.BytesIO(bytes(b[:size]))))
        return number, bytes(b[size:])

    def marshal_msg(self, b: bytes = b"") -> bytes:
        """Return ``b`` followed by the encoded number."""
        if self.kind is Type.INT:
            body = _append_int64(_signed64(self.bits))
        elif self.kind is Type.UINT:
            body = _append_uint64(self.bits)
        elif self.kind is Type.FLOAT64:
            body = bytes((MFLOAT64,)) + self.bits.to_bytes(8, "big")
        elif self.kind is Type.FLOAT32:
            body = bytes((MFLOAT32,)) + (self.bits & 0xFFFFFFFF).to_bytes(4, "big")
        else:
            body = _append_int64(0)
        return bytes(b) + body

    def msgsize(self) -> int:
        """Upper bound of the encoded size."""
        return {
            Type.FLOAT32: FLOAT32_SIZE,
            Type.FLOAT64: FLOAT64_SIZE,
            Type.INT: INT64_SIZE,
            Type.UINT: UINT64_SIZE,
        }.get(self.kind, 1)

    def to_json(self) -> bytes:
        """The number as a JSON literal."""
        return str(self).encode("ascii")

    def __str__(self) -> str:
        if self.kind is Type.INVALID:
            return "0"
        if self.kind in (Type.FLOAT32, Type.FLOAT64):
            return _format_float(self.as_float()[0])
        if self.kind is Type.INT:
            return str(self.as_int()[0])
        return str(self.bits)