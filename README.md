# msgwire

Low-level MessagePack tools: a buffered stream reader for the MessagePack
wire format, extension types, a tagged `Number` value, whole-file helpers
and a converter from MessagePack to JSON. It has no dependencies outside
the standard library.

## Installation

```
pip install msgwire
```

## Reading values from a stream

`msgwire.reader.Reader` wraps any binary stream and decodes one value at a
time:

```python
import io
from msgwire.reader import Reader

data = bytes([0x82, 0xA1, 0x69, 0x01, 0xA1, 0x73, 0xA1, 0x32])
rd = Reader(io.BytesIO(data), 4096)

size = rd.read_map_header()          # 2
for _ in range(size):
    key = rd.read_string()
    if key == "i":
        print(key, rd.read_int32())  # i 1
    else:
        print(key, rd.read_string()) # s 2
```

Besides the typed readers (`read_int64`, `read_uint16`, `read_float32`,
`read_bool`, `read_bytes`, `read_string`, `read_complex64`,
`read_complex128`, `read_time`, ...):

- `next_type()` returns the `msgwire.spec.Type` of the next object without
  consuming it;
- `is_nil()` tells whether the next object is nil;
- `skip()` steps over a whole object, maps and arrays included;
- `copy_next(dst)` copies the raw bytes of the next object to a writable
  stream and returns how many bytes were written;
- `peek(n)`, `next(n)`, `read(n)` and `read_full(n)` give access to the
  underlying bytes.

`read_time()` returns a time-zone-aware `datetime` in the local zone.
`read_string()` keeps bytes that are not valid UTF-8 as surrogate escapes.
Reading past the end of the stream raises `EOFError`.

`msgwire.reader.decode(stream, decodable)` calls `decodable.decode_msg`
with a new `Reader` over `stream`.

To decode an arbitrary object into plain Python values use
`msgwire.values.read_intf(reader)`: maps become `dict` (with `str` keys),
arrays `list`, integers `int`, `bin` becomes `bytes`, nil `None`, and
timestamps `datetime`. `read_map_str_intf(reader)` reads one map.

## Errors

All decoding errors derive from `msgwire.errors.MsgpError`. Each one knows
whether it is resumable, meaning the stream is still intact and decoding can
go on:

```python
from msgwire.errors import MsgpError, wrap_error, cause, resumable

try:
    rd.read_int8()
except MsgpError as err:
    err = wrap_error(err, "Example", "field")
    print(err, resumable(err), cause(err))
```

`wrap_error` adds a slash-separated location such as `at Example/field` to
the message; errors that are not from this package are wrapped in a
`WrappedError`, which `cause` unwraps. `ShortBytesError` is returned
unchanged.

Short input raises `ShortBytesError`; wrong types raise
`TypeMismatchError`; unknown prefixes raise `InvalidPrefixError`; integers
that do not fit raise `IntOverflow`, `UintOverflow` or `UintBelowZero`; a
fixed-size `bin` of the wrong length raises `ArrayError`.

## Extensions

```python
from msgwire.extension import RawExtension, append_extension, read_extension_bytes

ext = RawExtension(ext_type=10, data=b"payload")
encoded = append_extension(b"", ext)

out = RawExtension(ext_type=10)
rest = read_extension_bytes(encoded, out)
assert out.data == b"payload" and rest == b""
```

`read_extension(reader, ext)` and `peek_extension_type(reader)` do the same
on a `Reader`; `peek_extension(b)` on bytes. A mismatching type number raises
`ExtensionTypeError`.

Subclass `Extension` and call `register_extension(typ, factory)` to have
your own type built by `read_intf` and by the JSON converter. Types 3, 4
and 5 are reserved for complex64, complex128 and timestamps; registering
one of them, or a type twice, raises `ValueError`.

## Numbers

`msgwire.number.Number` holds an int, uint, float32 or float64 and decodes
from any MessagePack numeric encoding:

```python
from msgwire.number import Number

n = Number.from_uint(40000)
encoded = n.marshal_msg(b"")
again, rest = Number.unmarshal_msg(encoded)
print(again, again.type())   # 40000 uint
```

`Number.decode_msg(reader)` reads one from a `Reader`. Two numbers are equal
only when both kind and value match.

## Files

`msgwire.files.read_file(dst, file)` decodes a whole file with
`dst.unmarshal_msg`, through a read-only memory map when the file has a
descriptor. `write_file(src, file)` replaces the file's contents with
`src.marshal_msg(b"")`; for a real file the encoding must not be longer than
`src.msgsize()`, or `ValueError` is raised. The `Unmarshaler` and
`MarshalSizer` protocols describe what these functions expect.

## Converting to JSON

```python
import io
from msgwire.jsonconv import copy_to_json, unmarshal_as_json

out = io.StringIO()
copy_to_json(out, io.BytesIO(data))     # reads until end of stream
print(out.getvalue())                   # {"i":1,"s":"2"}

out = io.StringIO()
rest = unmarshal_as_json(out, data)     # from an in-memory buffer; rest == b""
```

`write_to_json(reader, dst)` converts everything left in a `Reader`. The
destination may be a text or a binary stream.

Binary data is written as base64 strings, timestamps as RFC 3339 strings
(`format_time_json`), and unknown extensions as objects holding their type
and base64 data. Strings are escaped by `quote_json`: `<`, `>`, `&`,
control characters, U+2028 and U+2029 are escaped, and invalid UTF-8
becomes `\ufffd`.

## What the package does not do

There is no general MessagePack encoder: apart from `append_extension` and
`Number.marshal_msg`, the package only reads. There is no code generator
for classes and no command-line tool.

## Running the tests

```
pip install -e .[test]
pytest
```