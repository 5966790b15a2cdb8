"""MessagePack wire prefixes, value types and per-prefix size information."""

from __future__ import annotations

import enum
from dataclasses import dataclass

# Integer reads and writes always use the full 64-bit width.
SMALLINT = False


class Type(enum.Enum):
    """A MessagePack wire type, including the built-in extension pseudo-types."""

    INVALID = 0
    STR = 1
    BIN = 2
    MAP = 3
    ARRAY = 4
    FLOAT64 = 5
    FLOAT32 = 6
    BOOL = 7
    INT = 8
    UINT = 9
    NIL = 10
    EXTENSION = 11
    COMPLEX64 = 12
    COMPLEX128 = 13
    TIME = 14

    def __str__(self) -> str:
        return _TYPE_NAMES.get(self, "<invalid>")


_TYPE_NAMES = {
    Type.STR: "str",
    Type.BIN: "bin",
    Type.MAP: "map",
    Type.ARRAY: "array",
    Type.FLOAT64: "float64",
    Type.FLOAT32: "float32",
    Type.BOOL: "bool",
    Type.UINT: "uint",
    Type.INT: "int",
    Type.EXTENSION: "ext",
    Type.NIL: "nil",
}

# Prefix bytes.
MFIXMAP = 0x80
MFIXARRAY = 0x90
MFIXSTR = 0xA0
MNIL = 0xC0
MFALSE = 0xC2
MTRUE = 0xC3
MBIN8 = 0xC4
MBIN16 = 0xC5
MBIN32 = 0xC6
MEXT8 = 0xC7
MEXT16 = 0xC8
MEXT32 = 0xC9
MFLOAT32 = 0xCA
MFLOAT64 = 0xCB
MUINT8 = 0xCC
MUINT16 = 0xCD
MUINT32 = 0xCE
MUINT64 = 0xCF
MINT8 = 0xD0
MINT16 = 0xD1
MINT32 = 0xD2
MINT64 = 0xD3
MFIXEXT1 = 0xD4
MFIXEXT2 = 0xD5
MFIXEXT4 = 0xD6
MFIXEXT8 = 0xD7
MFIXEXT16 = 0xD8
MSTR8 = 0xD9
MSTR16 = 0xDA
MSTR32 = 0xDB
MARRAY16 = 0xDC
MARRAY32 = 0xDD
MMAP16 = 0xDE
MMAP32 = 0xDF
MNFIXINT = 0xE0

# Values of Bytespec.extra. Non-negative values give the number of
# objects that follow the prefix; negative values say how to find the
# length of the object from the bytes after the lead byte.
CONSTSIZE = 0
EXTRA8 = -1
EXTRA16 = -2
EXTRA32 = -3
MAP16V = -4
MAP32V = -5
ARRAY16V = -6
ARRAY32V = -7


@dataclass(frozen=True)
class Bytespec:
    """Size information for one lead byte.

    ``size`` is the size of the prefix (or of the whole object when it has a
    constant size); it is zero for an unrecognised prefix.
    """

    size: int
    extra: int
    typ: Type


def _build_specs() -> tuple[Bytespec, ...]:
    invalid = Bytespec(0, CONSTSIZE, Type.INVALID)
    specs = [invalid] * 256
    fixint = Bytespec(1, CONSTSIZE, Type.INT)
    for lead in range(0x80):
        specs[lead] = fixint
    for lead in range(MNFIXINT, 0x100):
        specs[lead] = fixint
    for count in range(16):
        specs[MFIXMAP + count] = Bytespec(1, 2 * count, Type.MAP)
        specs[MFIXARRAY + count] = Bytespec(1, count, Type.ARRAY)
    for length in range(32):
        specs[MFIXSTR + length] = Bytespec(1 + length, CONSTSIZE, Type.STR)

    fixed = {
        MNIL: (1, CONSTSIZE, Type.NIL),
        MFALSE: (1, CONSTSIZE, Type.BOOL),
        MTRUE: (1, CONSTSIZE, Type.BOOL),
        MBIN8: (2, EXTRA8, Type.BIN),
        MBIN16: (3, EXTRA16, Type.BIN),
        MBIN32: (5, EXTRA32, Type.BIN),
        MEXT8: (3, EXTRA8, Type.EXTENSION),
        MEXT16: (4, EXTRA16, Type.EXTENSION),
        MEXT32: (6, EXTRA32, Type.EXTENSION),
        MFLOAT32: (5, CONSTSIZE, Type.FLOAT32),
        MFLOAT64: (9, CONSTSIZE, Type.FLOAT64),
        MUINT8: (2, CONSTSIZE, Type.UINT),
        MUINT16: (3, CONSTSIZE, Type.UINT),
        MUINT32: (5, CONSTSIZE, Type.UINT),
        MUINT64: (9, CONSTSIZE, Type.UINT),
        MINT8: (2, CONSTSIZE, Type.INT),
        MINT16: (3, CONSTSIZE, Type.INT),
        MINT32: (5, CONSTSIZE, Type.INT),
        MINT64: (9, CONSTSIZE, Type.INT),
        MFIXEXT1: (3, CONSTSIZE, Type.EXTENSION),
        MFIXEXT2: (4, CONSTSIZE, Type.EXTENSION),
        MFIXEXT4: (6, CONSTSIZE, Type.EXTENSION),
        MFIXEXT8: (10, CONSTSIZE, Type.EXTENSION),
        MFIXEXT16: (18, CONSTSIZE, Type.EXTENSION),
        MSTR8: (2, EXTRA8, Type.STR),
        MSTR16: (3, EXTRA16, Type.STR),
        MSTR32: (5, EXTRA32, Type.STR),
        MARRAY16: (3, ARRAY16V, Type.ARRAY),
        MARRAY32: (5, ARRAY32V, Type.ARRAY),
        MMAP16: (3, MAP16V, Type.MAP),
        MMAP32: (5, MAP32V, Type.MAP),
    }
    for lead, (size, extra, typ) in fixed.items():
        specs[lead] = Bytespec(size, extra, typ)
    return tuple(specs)


_SPECS = _build_specs()


def get_bytespec(lead: int) -> Bytespec:
    """Return the size information for a lead byte."""
    return _SPECS[lead & 0xFF]


def get_type(lead: int) -> Type:
    """Return the wire type announced by a lead byte."""
    return _SPECS[lead & 0xFF].typ


def is_fixint(lead: int) -> bool:
    """Whether the byte is a positive fixint."""
    return lead & 0x80 == 0


def is_nfixint(lead: int) -> bool:
    """Whether the byte is a negative fixint."""
    return lead & 0xE0 == MNFIXINT


def is_fixstr(lead: int) -> bool:
    """Whether the byte is a fixstr prefix."""
    return lead & 0xE0 == MFIXSTR


def is_fixmap(lead: int) -> bool:
    """Whether the byte is a fixmap prefix."""
    return lead & 0xF0 == MFIXMAP


def is_fixarray(lead: int) -> bool:
    """Whether the byte is a fixarray prefix."""
    return lead & 0xF0 == MFIXARRAY