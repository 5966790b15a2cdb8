import io
import math

import pytest

from msgwire.errors import ShortBytesError, TypeMismatchError
from msgwire.number import Number
from msgwire.reader import Reader
from msgwire.spec import Type


def test_zero_value():
    n = Number()
    assert n.type() is Type.INT
    assert str(n) == "0"
    assert n == Number.from_int(0)
    assert n.as_int() == (0, True)


def test_int():
    n = Number.from_int(248)
    assert n.as_int() == (248, True)
    assert n.type() is Type.INT
    assert str(n) == "248"


def test_float64():
    n = Number.from_float64(3.141)
    f, ok = n.as_float()
    assert ok and f == 3.141
    assert n.type() is Type.FLOAT64
    assert str(n) == "3.141"


def test_uint():
    n = Number.from_uint(40000)
    assert n.as_uint() == (40000, True)
    assert n.type() is Type.UINT
    assert str(n) == "40000"


def test_cross_kind_accessors_report_false():
    assert Number.from_uint(5).as_int()[1] is False
    assert Number.from_int(5).as_uint()[1] is False
    assert Number.from_int(5).as_float() == (0.0, False)


def test_negative_int_string():
    assert str(Number.from_int(-29081)) == "-29081"
    assert Number.from_int(-29081).as_int() == (-29081, True)


NUMS = [
    Number.from_float64(3.14159),
    Number.from_int(-29081),
    Number.from_uint(90821983),
    Number.from_float32(3.141),
]


def test_unmarshal_and_decode_agree_and_round_trip():
    dat = b"".join(n.marshal_msg() for n in NUMS)
    reader = Reader(io.BytesIO(dat))
    rest = dat
    unmarshaled = []
    for _ in NUMS:
        m, rest = Number.unmarshal_msg(rest)
        d = Number.decode_msg(reader)
        assert m == d
        unmarshaled.append(m)
    assert rest == b""
    assert unmarshaled == NUMS
    odat = b""
    for m in unmarshaled:
        odat = m.marshal_msg(odat)
    assert odat == dat


@pytest.mark.parametrize(
    "number, encoded",
    [
        (Number(), b"\x00"),
        (Number.from_int(5), b"\x05"),
        (Number.from_int(-1), b"\xff"),
        (Number.from_int(-29081), b"\xd1\x8e\x67"),
        (Number.from_uint(200), b"\xcc\xc8"),
        (Number.from_float64(1.0), b"\xcb\x3f\xf0" + b"\x00" * 6),
        (Number.from_float32(1.0), b"\xca\x3f\x80\x00\x00"),
    ],
)
def test_marshal_encoding(number, encoded):
    assert number.marshal_msg() == encoded
    assert len(encoded) <= number.msgsize()


def test_marshal_appends():
    assert Number.from_int(1).marshal_msg(b"ab") == b"ab\x01"


def test_msgsize():
    assert Number().msgsize() == 1
    assert Number.from_float32(1.0).msgsize() == 5
    assert Number.from_float64(1.0).msgsize() == 9
    assert Number.from_int(-7).msgsize() == 9
    assert Number.from_uint(7).msgsize() == 9


def test_float32_and_float64_differ():
    assert Number.from_float32(1.0) != Number.from_float64(1.0)


def test_unmarshal_wrong_type():
    with pytest.raises(TypeMismatchError) as info:
        Number.unmarshal_msg(b"\xc0")
    assert info.value.method is Type.INT
    assert info.value.encoded is Type.NIL


def test_unmarshal_empty():
    with pytest.raises(TypeMismatchError) as info:
        Number.unmarshal_msg(b"")
    assert info.value.encoded is Type.INVALID


def test_unmarshal_short():
    with pytest.raises(ShortBytesError):
        Number.unmarshal_msg(b"\xcb\x00")


def test_decode_wrong_type():
    with pytest.raises(TypeMismatchError):
        Number.decode_msg(Reader(io.BytesIO(b"\xa1a")))


def test_unmarshal_keeps_rest():
    n, rest = Number.unmarshal_msg(b"\xcc\xc8xyz")
    assert n == Number.from_uint(200)
    assert rest == b"xyz"


@pytest.mark.parametrize(
    "number, text",
    [
        (Number.from_float64(0.5), b"0.5"),
        (Number.from_float64(1e21), b"1000000000000000000000"),
        (Number.from_float64(100.0), b"100"),
        (Number.from_float64(-0.0), b"-0"),
        (Number.from_float64(math.inf), b"+Inf"),
        (Number.from_int(-12), b"-12"),
        (Number.from_uint(18446744073709551615), b"18446744073709551615"),
        (Number(), b"0"),
    ],
)
def test_to_json(number, text):
    assert number.to_json() == text


def test_float32_widening():
    f, ok = Number.from_float32(0.5).as_float()
    assert ok and f == 0.5