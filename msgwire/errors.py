"""Errors raised while encoding and decoding MessagePack."""

from __future__ import annotations

import copy
from typing import Any, Iterable

from .spec import Type, get_type


class MsgpError(Exception):
    """Base class of every error that originates from this package."""

    def resumable(self) -> bool:
        """Whether the stream can still be read after this error."""
        return False


def _add_ctx(ctx: str, add: str) -> str:
    return f"{add}/{ctx}" if ctx else add


class ContextError(MsgpError):
    """An error that can carry the location in the value where it occurred."""

    def __init__(self, ctx: str = "") -> None:
        super().__init__()
        self.ctx = ctx

    def _describe(self) -> str:
        return "msgp: error"

    def __str__(self) -> str:
        out = self._describe()
        if self.ctx:
            out += " at " + self.ctx
        return out

    def with_context(self, ctx: str) -> "ContextError":
        """Return a copy of this error with ``ctx`` prepended to its context."""
        clone = copy.copy(self)
        clone.ctx = _add_ctx(self.ctx, ctx)
        return clone


class ShortBytesError(MsgpError):
    """The data ended before the object being decoded was complete."""

    def __str__(self) -> str:
        return "msgp: too few bytes left to read object"


class FatalError(ContextError):
    """Raised only when code that should be unreachable is reached."""

    def _describe(self) -> str:
        return "msgp: fatal decoding error (unreachable code)"


class WrappedError(MsgpError):
    """An arbitrary error enriched with the location where it occurred."""

    def __init__(self, cause: BaseException, ctx: str = "") -> None:
        super().__init__()
        self.cause = cause
        self.ctx = ctx
        self.__cause__ = cause

    def __str__(self) -> str:
        if self.ctx:
            return f"{self.cause} at {self.ctx}"
        return str(self.cause)

    def resumable(self) -> bool:
        if isinstance(self.cause, MsgpError):
            return self.cause.resumable()
        return False


class ArrayError(ContextError):
    """A fixed-size array was encoded with the wrong number of elements."""

    def __init__(self, wanted: int = 0, got: int = 0, ctx: str = "") -> None:
        super().__init__(ctx)
        self.wanted = wanted
        self.got = got

    def _describe(self) -> str:
        return f"msgp: wanted array of size {self.wanted}; got {self.got}"

    def resumable(self) -> bool:
        return True


class IntOverflow(ContextError):
    """A signed integer does not fit in the requested width."""

    def __init__(self, value: int = 0, failed_bitsize: int = 0, ctx: str = "") -> None:
        super().__init__(ctx)
        self.value = value
        self.failed_bitsize = failed_bitsize

    def _describe(self) -> str:
        return f"msgp: {self.value} overflows int{self.failed_bitsize}"

    def resumable(self) -> bool:
        return True


class UintOverflow(ContextError):
    """An unsigned integer does not fit in the requested width."""

    def __init__(self, value: int = 0, failed_bitsize: int = 0, ctx: str = "") -> None:
        super().__init__(ctx)
        self.value = value
        self.failed_bitsize = failed_bitsize

    def _describe(self) -> str:
        return f"msgp: {self.value} overflows uint{self.failed_bitsize}"

    def resumable(self) -> bool:
        return True


class UintBelowZero(ContextError):
    """A negative integer was read where an unsigned one was wanted."""

    def __init__(self, value: int = 0, ctx: str = "") -> None:
        super().__init__(ctx)
        self.value = value

    def _describe(self) -> str:
        return f"msgp: attempted to cast int {self.value} to unsigned"

    def resumable(self) -> bool:
        return True

    def with_context(self, ctx: str) -> "UintBelowZero":
        clone = copy.copy(self)
        clone.ctx = ctx
        return clone


class TypeMismatchError(ContextError):
    """A decoding method does not suit the type that is encoded."""

    def __init__(
        self,
        method: Type = Type.INVALID,
        encoded: Type = Type.INVALID,
        ctx: str = "",
    ) -> None:
        super().__init__(ctx)
        self.method = method
        self.encoded = encoded

    def _describe(self) -> str:
        return (
            f"msgp: attempted to decode type {quote_str(str(self.encoded))}"
            f" with method for {quote_str(str(self.method))}"
        )

    def resumable(self) -> bool:
        return True


class InvalidPrefixError(MsgpError):
    """A lead byte that the MessagePack standard does not define."""

    def __init__(self, lead: int = 0) -> None:
        super().__init__()
        self.lead = lead

    def __str__(self) -> str:
        return f"msgp: unrecognized type prefix 0x{self.lead:x}"


class UnsupportedTypeError(ContextError):
    """A value of a type that cannot be encoded was supplied."""

    def __init__(self, t: Any = None, ctx: str = "") -> None:
        super().__init__(ctx)
        self.t = t

    def _describe(self) -> str:
        name = self.t.__qualname__ if isinstance(self.t, type) else str(self.t)
        return f"msgp: type {quote_str(name)} not supported"

    def resumable(self) -> bool:
        return True


def cause(err: BaseException) -> BaseException:
    """Return the error underneath a context wrapper, or ``err`` itself."""
    if isinstance(err, WrappedError) and err.cause is not None:
        return err.cause
    return err


def resumable(err: BaseException) -> bool:
    """Whether reading may continue after ``err``."""
    if isinstance(err, MsgpError):
        return err.resumable()
    return False


def wrap_error(err: BaseException, *args: Any) -> BaseException:
    """Return a new error that records where in the value ``err`` happened.

    Short-data errors are returned unchanged.
    """
    if isinstance(err, ShortBytesError):
        return err
    if isinstance(err, ContextError):
        return err.with_context(ctx_string(args))
    return WrappedError(err, ctx_string(args))


def bad_prefix(want: Type, lead: int) -> MsgpError:
    """Build the error for an unexpected lead byte."""
    t = get_type(lead)
    if t is Type.INVALID:
        return InvalidPrefixError(lead)
    return TypeMismatchError(method=want, encoded=t)


def ctx_string(ctx: Iterable[Any]) -> str:
    """Join context parts into one slash-separated string."""
    return "/".join(str(part) for part in ctx)


_SIMPLE_ESCAPES = {
    ord("\\"): "\\\\",
    ord('"'): '\\"',
    0x07: "\\a",
    0x08: "\\b",
    0x0C: "\\f",
    0x0A: "\\n",
    0x0D: "\\r",
    0x09: "\\t",
    0x0B: "\\v",
}


def simple_quote_str(s: str | bytes) -> str:
    """Quote a string byte by byte, escaping every non-ASCII byte as ``\\x``."""
    data = s.encode("utf-8") if isinstance(s, str) else bytes(s)
    parts = ['"']
    for b in data:
        escaped = _SIMPLE_ESCAPES.get(b)
        if escaped is not None:
            parts.append(escaped)
        elif 0x20 <= b <= 0x7E:
            parts.append(chr(b))
        else:
            parts.append(f"\\x{b:02x}")
    parts.append('"')
    return "".join(parts)


def quote_str(s: str) -> str:
    """Quote a string, keeping printable characters and escaping the rest."""
    parts = ['"']
    for ch in s:
        code = ord(ch)
        escaped = _SIMPLE_ESCAPES.get(code)
        if escaped is not None:
            parts.append(escaped)
        elif code < 0x20 or code == 0x7F:
            parts.append(f"\\x{code:02x}")
        elif ch.isprintable():
            parts.append(ch)
        elif code < 0x10000:
            parts.append(f"\\u{code:04x}")
        else:
            parts.append(f"\\U{code:08x}")
    parts.append('"')
    return "".join(parts)