"""Translation of MessagePack into JSON, from streams and from byte strings."""

from __future__ import annotations

import base64
import dataclasses
import io
import json
import struct
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, BinaryIO, Callable

from .errors import ShortBytesError, TypeMismatchError, bad_prefix
from .extension import (
    Extension,
    RawExtension,
    peek_extension_type,
    read_extension,
    registered_extension,
)
from .reader import Reader
from .spec import MBIN8, MBIN16, MBIN32, MSTR8, MSTR16, MSTR32, Type, is_fixstr

_FLUSH_AT = 4096
_HEX = "0123456789abcdef"
_STR_LEADS = frozenset({MSTR8, MSTR16, MSTR32})
_BIN_LEADS = frozenset({MBIN8, MBIN16, MBIN32})


def quote_json(s: bytes | str) -> bytes:
    """Quote raw string bytes as a JSON string.

    Control characters, ``<``, ``>``, ``&``, U+2028 and U+2029 are escaped,
    and every byte that is not part of valid UTF-8 becomes ``\\ufffd``.
    """
    data = s.encode("utf-8", errors="surrogateescape") if isinstance(s, str) else bytes(s)
    text = data.decode("utf-8", errors="surrogateescape")
    parts = ['"']
    for ch in text:
        code = ord(ch)
        if code < 0x80:
            if code >= 0x20 and ch not in '\\"<>&':
                parts.append(ch)
            elif ch in '\\"':
                parts.append("\\" + ch)
            elif ch == "\n":
                parts.append("\\n")
            elif ch == "\r":
                parts.append("\\r")
            elif ch == "\t":
                parts.append("\\t")
            else:
                parts.append("\\u00" + _HEX[code >> 4] + _HEX[code & 0xF])
        elif 0xDC80 <= code <= 0xDCFF:
            parts.append("\\ufffd")
        elif code in (0x2028, 0x2029):
            parts.append("\\u202" + _HEX[code & 0xF])
        else:
            parts.append(ch)
    parts.append('"')
    return "".join(parts).encode("utf-8")


def format_time_json(t: datetime) -> bytes:
    """Format a moment as a quoted RFC 3339 timestamp with trimmed fraction.

    A naive datetime is taken to be in local time.
    """
    if t.tzinfo is None:
        t = t.astimezone()
    out = t.strftime("%Y-%m-%dT%H:%M:%S")
    if t.microsecond:
        out += f".{t.microsecond:06d}".rstrip("0")
    offset = t.utcoffset()
    seconds = int(offset.total_seconds()) if offset is not None else 0
    if seconds == 0:
        out += "Z"
    else:
        sign = "+" if seconds > 0 else "-"
        seconds = abs(seconds)
        out += f"{sign}{seconds // 3600:02d}:{seconds % 3600 // 60:02d}"
    return f'"{out}"'.encode("ascii")


def _float32_roundtrips(text: str, f: float) -> bool:
    try:
        (back,) = struct.unpack(">f", struct.pack(">f", float(text)))
    except OverflowError:
        return False
    return back == f


def _format_float(f: float, bits: int) -> str:
    """Shortest decimal form of ``f`` at the given width, without exponent."""
    if f != f:
        return "NaN"
    if f in (float("inf"), float("-inf")):
        return "+Inf" if f > 0 else "-Inf"
    text = repr(f)
    if bits == 32:
        for precision in range(1, 10):
            candidate = f"{f:.{precision}g}"
            if _float32_roundtrips(candidate, f):
                text = candidate
                break
    return format(Decimal(text).normalize(), "f")


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"cannot encode {type(value).__qualname__} as JSON")


def _extension_json(ext: Extension) -> bytes:
    to_json = getattr(ext, "to_json", None)
    if callable(to_json):
        out = to_json()
        return out.encode("utf-8") if isinstance(out, str) else bytes(out)
    if dataclasses.is_dataclass(ext):
        fields = dataclasses.asdict(ext)
    else:
        fields = {k: v for k, v in vars(ext).items() if not k.startswith("_")}
    return json.dumps(fields, default=_json_default, separators=(",", ":")).encode("utf-8")


class _Sink:
    """Collects output, counts it and passes it on to a binary or text stream."""

    def __init__(self, dst: Any) -> None:
        self._dst = dst
        self._text = isinstance(dst, io.TextIOBase)
        self._buf = bytearray()
        self.count = 0

    def write(self, data: bytes) -> None:
        self._buf += data
        self.count += len(data)
        if len(self._buf) >= _FLUSH_AT:
            self.flush()

    def flush(self) -> None:
        if not self._buf:
            return
        data = bytes(self._buf)
        self._buf.clear()
        self._dst.write(data.decode("utf-8") if self._text else data)


class _Converter:
    """Writes MessagePack values from a reader as JSON.

    ``streaming`` selects the conventions of stream translation: map keys
    may be 'str' or 'bin' and are quoted as-is, and unknown extensions are
    written with a ``"type:"`` key. Otherwise 'bin' keys are written as
    base64 and unknown extensions use a ``"type"`` key.
    """

    def __init__(self, reader: Reader, sink: _Sink, streaming: bool) -> None:
        self._reader = reader
        self._sink = sink
        self._streaming = streaming
        self._handlers: dict[Type, Callable[[], None]] = {
            Type.STR: self._string,
            Type.BIN: self._bin,
            Type.MAP: self._map,
            Type.ARRAY: self._array,
            Type.FLOAT64: self._float64,
            Type.FLOAT32: self._float32,
            Type.BOOL: self._bool,
            Type.INT: self._int,
            Type.UINT: self._uint,
            Type.NIL: self._nil,
            Type.EXTENSION: self._extension,
            Type.COMPLEX64: self._extension,
            Type.COMPLEX128: self._extension,
            Type.TIME: self._time,
        }

    def value(self) -> None:
        self._handlers[self._reader.next_type()]()

    def _write(self, data: bytes) -> None:
        self._sink.write(data)

    def _map(self) -> None:
        count = self._reader.read_map_header()
        self._write(b"{")
        for i in range(count):
            if i:
                self._write(b",")
            self._map_key()
            self._write(b":")
            self.value()
        self._write(b"}")

    def _map_key(self) -> None:
        if self._streaming:
            self._write(quote_json(self._stream_map_key()))
            return
        try:
            key = self._reader.read_string_as_bytes()
        except TypeMismatchError as err:
            if err.encoded is Type.BIN:
                self._bin()
                return
            raise
        self._write(quote_json(key))

    def _stream_map_key(self) -> bytes:
        reader = self._reader
        lead = reader.peek(1)[0]
        if is_fixstr(lead) or lead in _STR_LEADS:
            length = reader.read_string_header()
        elif lead in _BIN_LEADS:
            length = reader.read_bytes_header()
        else:
            raise bad_prefix(Type.STR, lead)
        if length == 0:
            raise ShortBytesError()
        return reader.read_full(length)

    def _array(self) -> None:
        count = self._reader.read_array_header()
        self._write(b"[")
        for i in range(count):
            if i:
                self._write(b",")
            self.value()
        self._write(b"]")

    def _string(self) -> None:
        self._write(quote_json(self._reader.read_string_as_bytes()))

    def _bin(self) -> None:
        data = self._reader.read_bytes()
        self._write(b'"' + base64.b64encode(data) + b'"')

    def _nil(self) -> None:
        self._reader.read_nil()
        self._write(b"null")

    def _bool(self) -> None:
        self._write(b"true" if self._reader.read_bool() else b"false")

    def _int(self) -> None:
        self._write(str(self._reader.read_int64()).encode("ascii"))

    def _uint(self) -> None:
        self._write(str(self._reader.read_uint64()).encode("ascii"))

    def _float32(self) -> None:
        self._write(_format_float(self._reader.read_float32(), 32).encode("ascii"))

    def _float64(self) -> None:
        self._write(_format_float(self._reader.read_float64(), 64).encode("ascii"))

    def _time(self) -> None:
        self._write(format_time_json(self._reader.read_time()))

    def _extension(self) -> None:
        reader = self._reader
        typ = peek_extension_type(reader)
        factory = registered_extension(typ)
        if factory is not None:
            ext = factory()
            read_extension(reader, ext)
            self._write(_extension_json(ext))
            return
        raw = RawExtension(typ)
        read_extension(reader, raw)
        key = b'{"type:"' if self._streaming else b'{"type":'
        self._write(key + str(raw.ext_type).encode("ascii"))
        self._write(b',"data":"' + base64.b64encode(raw.data) + b'"}')


def write_to_json(reader: Reader, dst: Any) -> int:
    """Translate every value left in ``reader`` into JSON written to ``dst``.

    Stops cleanly at the end of the stream; returns the number of bytes
    written. ``dst`` may be a binary or a text stream.
    """
    sink = _Sink(dst)
    converter = _Converter(reader, sink, streaming=True)
    try:
        while True:
            try:
                reader.peek(1)
            except EOFError:
                break
            converter.value()
    finally:
        sink.flush()
    return sink.count


def copy_to_json(dst: Any, src: BinaryIO) -> int:
    """Read MessagePack from ``src`` until its end and write it to ``dst`` as JSON."""
    return write_to_json(Reader(src), dst)


def unmarshal_as_json(dst: Any, msg: bytes) -> bytes:
    """Write the MessagePack values in ``msg`` to ``dst`` as JSON.

    Returns the bytes that were not translated, which is empty on success.
    Raises :class:`ShortBytesError` when ``msg`` ends inside a value.
    """
    data = bytes(msg)
    stream = io.BytesIO(data)
    reader = Reader(stream)
    sink = _Sink(dst)
    converter = _Converter(reader, sink, streaming=False)

    def consumed() -> int:
        return stream.tell() - reader.buffered()

    try:
        while consumed() < len(data):
            converter.value()
    except EOFError:
        raise ShortBytesError() from None
    finally:
        sink.flush()
    return data[consumed():]


__all__ = [
    "copy_to_json",
    "format_time_json",
    "quote_json",
    "unmarshal_as_json",
    "write_to_json",
]

_ = timezone  # timestamps may carry any tzinfo