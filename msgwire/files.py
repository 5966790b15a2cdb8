"""Reading and writing whole MessagePack files, through memory maps where
the file has a descriptor."""

from __future__ import annotations

import io
import mmap
import os
from typing import Any, BinaryIO, Protocol, runtime_checkable

from .reader import Reader


@runtime_checkable
class Unmarshaler(Protocol):
    """A value that can decode itself from MessagePack bytes."""

    def unmarshal_msg(self, b: bytes) -> Any:
        """Decode from ``b`` and return what follows the decoded object."""


@runtime_checkable
class MarshalSizer(Protocol):
    """A value that can encode itself and bound its encoded size."""

    def marshal_msg(self, b: bytes) -> bytes:
        """Return ``b`` followed by the encoded value."""

    def msgsize(self) -> int:
        """An upper bound of the encoded size."""


def _fileno(file: Any) -> int | None:
    try:
        return file.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def _flush(file: Any) -> None:
    flush = getattr(file, "flush", None)
    if flush is not None:
        flush()


def read_file(dst: Unmarshaler, file: BinaryIO) -> Any:
    """Decode ``dst`` from the whole contents of ``file``.

    A file with a descriptor is read through a read-only memory map, from
    its start; ``dst`` must not keep references into the mapped data. Other
    streams are decoded from their current position, with ``decode_msg``
    when ``dst`` has one. Returns what the decoding method returned.
    """
    fd = _fileno(file)
    if fd is None:
        decode = getattr(dst, "decode_msg", None)
        if decode is not None:
            return decode(Reader(file))
        return dst.unmarshal_msg(file.read())

    _flush(file)
    size = os.fstat(fd).st_size
    if size == 0:
        return dst.unmarshal_msg(b"")
    with mmap.mmap(fd, size, access=mmap.ACCESS_READ) as data:
        return dst.unmarshal_msg(data)


def write_file(src: MarshalSizer, file: BinaryIO) -> None:
    """Replace the contents of ``file`` with the encoding of ``src``.

    For a file with a descriptor the encoded size must not exceed
    ``src.msgsize()``; the file is cut to the encoded length. Other streams
    receive the encoding at their current position.
    """
    size = src.msgsize()
    encoded = bytes(src.marshal_msg(b""))
    fd = _fileno(file)
    if fd is None:
        file.write(encoded)
        return

    if len(encoded) > size:
        raise ValueError(
            f"msgp: encoded size {len(encoded)} exceeds Msgsize() {size}"
        )
    _flush(file)
    os.ftruncate(fd, len(encoded))
    if not encoded:
        return
    with mmap.mmap(fd, len(encoded), access=mmap.ACCESS_WRITE) as data:
        data[:] = encoded
        data.flush()
    if isinstance(file, io.BufferedIOBase) or hasattr(file, "seek"):
        file.seek(file.tell())