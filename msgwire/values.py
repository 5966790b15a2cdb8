"""Decoding of arbitrary MessagePack values into plain Python objects."""

from __future__ import annotations

from typing import Any, Callable

from .errors import FatalError
from .extension import (
    Extension,
    RawExtension,
    peek_extension_type,
    read_extension,
    registered_extension,
)
from .reader import Reader
from .spec import Type

_SCALAR_READERS: dict[Type, Callable[[Reader], Any]] = {
    Type.BOOL: Reader.read_bool,
    Type.INT: Reader.read_int64,
    Type.UINT: Reader.read_uint64,
    Type.BIN: Reader.read_bytes,
    Type.STR: Reader.read_string,
    Type.COMPLEX64: Reader.read_complex64,
    Type.COMPLEX128: Reader.read_complex128,
    Type.TIME: Reader.read_time,
    Type.NIL: Reader.read_nil,
    Type.FLOAT32: Reader.read_float32,
    Type.FLOAT64: Reader.read_float64,
}


def _read_extension_value(reader: Reader) -> Extension:
    typ = peek_extension_type(reader)
    factory = registered_extension(typ)
    ext = factory() if factory is not None else RawExtension(typ)
    read_extension(reader, ext)
    return ext


def read_intf(reader: Reader) -> Any:
    """Read the next object as a plain Python value.

    Arrays become lists and maps become ``dict[str, Any]``. Signed and
    unsigned integers become ``int``, 'bin' becomes ``bytes``, nil becomes
    ``None``. Extensions with a registered factory are decoded into a value
    made by that factory; other extensions become :class:`RawExtension`.
    """
    t = reader.next_type()
    scalar = _SCALAR_READERS.get(t)
    if scalar is not None:
        return scalar(reader)
    if t is Type.MAP:
        return read_map_str_intf(reader)
    if t is Type.ARRAY:
        count = reader.read_array_header()
        return [read_intf(reader) for _ in range(count)]
    if t is Type.EXTENSION:
        return _read_extension_value(reader)
    raise FatalError()


def read_map_str_intf(reader: Reader) -> dict[str, Any]:
    """Read a map whose keys are strings into a new dictionary."""
    count = reader.read_map_header()
    out: dict[str, Any] = {}
    for _ in range(count):
        key = reader.read_string()
        out[key] = read_intf(reader)
    return out