import pytest

from msgwire import spec
from msgwire.errors import (
    ArrayError,
    ContextError,
    FatalError,
    IntOverflow,
    InvalidPrefixError,
    ShortBytesError,
    TypeMismatchError,
    UintBelowZero,
    UintOverflow,
    UnsupportedTypeError,
    WrappedError,
    bad_prefix,
    cause,
    ctx_string,
    quote_str,
    resumable,
    simple_quote_str,
    wrap_error,
)
from msgwire.spec import Type


def test_wrap_vanilla_error_with_no_additional_context():
    err = ValueError("test")
    w = wrap_error(err)
    assert w is not err
    assert str(w) == str(err)
    assert isinstance(w, WrappedError)
    assert not w.resumable()


def test_wrap_vanilla_error_with_additional_context():
    err = ValueError("test")
    w = wrap_error(err, "foo", "bar")
    assert w is not err
    assert str(w) != str(err)
    assert not w.resumable()
    assert str(w).startswith(str(err))
    assert str(w)[len(str(err)):] == " at foo/bar"


def test_wrap_resumable_error():
    w = wrap_error(ArrayError())
    assert w.resumable()
    assert resumable(w)


def test_wrap_multiple():
    err = TypeMismatchError()
    w = wrap_error(wrap_error(err, "b"), "a")
    expected = 'msgp: attempted to decode type "<invalid>" with method for "<invalid>" at a/b'
    assert str(w) == expected


@pytest.mark.parametrize(
    "err", [ValueError("test"), ArrayError(), UnsupportedTypeError()]
)
def test_cause(err):
    cerr = wrap_error(err, "test")
    assert cerr is not err
    assert cause(err) is err


def test_cause_of_wrapped_error():
    err = ValueError("test")
    assert cause(wrap_error(err, "test")) is err


def test_cause_short_byte():
    err = ShortBytesError()
    cerr = wrap_error(err, "test")
    assert cerr is err
    assert cause(err) is err


@pytest.mark.parametrize("err", [ValueError("test"), EOFError()])
def test_unwrap_wrapped(err):
    cerr = wrap_error(err, "test")
    assert cerr is not err
    assert cerr.__cause__ is err
    with pytest.raises(WrappedError) as info:
        raise cerr
    assert info.value.__cause__ is err


@pytest.mark.parametrize("err", [ArrayError(), UnsupportedTypeError()])
def test_unwrap_context_only(err):
    cerr = wrap_error(err, "test")
    assert cerr is not err
    assert cerr.__cause__ is None
    assert type(cerr) is type(err)
    assert cerr.ctx == "test"
    assert err.ctx == ""


@pytest.mark.parametrize(
    "given, expected",
    [
        ("", '""'),
        ("abc", '"abc"'),
        ('"', '"\\""'),
        ("'", '"\'"'),
        ("on🔥!", '"on\\xf0\\x9f\\x94\\xa5!"'),
        ("line\r\nbr", '"line\\r\\nbr"'),
        ("\x00", '"\\x00"'),
        (b"not\x80valid", '"not\\x80valid"'),
    ],
)
def test_simple_quote_str(given, expected):
    assert simple_quote_str(given) == expected


def test_quote_str_escapes_quotes_and_controls():
    assert quote_str('a"b') == '"a\\"b"'
    assert quote_str("x\ny") == '"x\\ny"'
    assert quote_str("\x01") == '"\\x01"'
    assert quote_str("on🔥!") == '"on🔥!"'


def test_ctx_string_joins_with_slash():
    assert ctx_string(["a", 1, "b"]) == "a/1/b"
    assert ctx_string([]) == ""


def test_array_error_message():
    err = ArrayError(wanted=3, got=2)
    assert str(err) == "msgp: wanted array of size 3; got 2"
    assert err.resumable()


def test_overflow_messages():
    assert str(IntOverflow(value=300, failed_bitsize=8)) == "msgp: 300 overflows int8"
    assert str(UintOverflow(value=70000, failed_bitsize=16)) == "msgp: 70000 overflows uint16"
    assert IntOverflow().resumable()
    assert UintOverflow().resumable()


def test_uint_below_zero_replaces_context():
    err = UintBelowZero(value=-1, ctx="first")
    wrapped = wrap_error(err, "second")
    assert str(wrapped) == "msgp: attempted to cast int -1 to unsigned at second"
    assert wrapped.resumable()


def test_context_accumulates_on_array_error():
    err = wrap_error(wrap_error(ArrayError(wanted=1, got=2), "inner"), "outer")
    assert str(err) == "msgp: wanted array of size 1; got 2 at outer/inner"


def test_fatal_error_not_resumable():
    err = wrap_error(FatalError(), "x")
    assert str(err) == "msgp: fatal decoding error (unreachable code) at x"
    assert not resumable(err)
    assert isinstance(err, ContextError)


def test_invalid_prefix_error():
    err = InvalidPrefixError(0xC1)
    assert str(err) == "msgp: unrecognized type prefix 0xc1"
    assert not err.resumable()
    wrapped = wrap_error(err, "k")
    assert isinstance(wrapped, WrappedError)
    assert wrapped.cause is err
    assert str(wrapped) == "msgp: unrecognized type prefix 0xc1 at k"


def test_bad_prefix_type_mismatch():
    err = bad_prefix(Type.INT, spec.MNIL)
    assert isinstance(err, TypeMismatchError)
    assert err.encoded is Type.NIL
    assert err.method is Type.INT
    assert str(err) == 'msgp: attempted to decode type "nil" with method for "int"'


def test_bad_prefix_unknown_lead():
    err = bad_prefix(Type.STR, 0xC1)
    assert isinstance(err, InvalidPrefixError)
    assert err.lead == 0xC1


def test_unsupported_type_message():
    err = UnsupportedTypeError(set)
    assert str(err) == 'msgp: type "set" not supported'
    assert err.resumable()


def test_short_bytes_message():
    err = ShortBytesError()
    assert str(err) == "msgp: too few bytes left to read object"
    assert not resumable(err)


def test_resumable_of_foreign_error():
    assert resumable(ValueError("x")) is False
    assert resumable(TypeMismatchError()) is True