import pytest

from dc_stream import ByteStream


def test_seek_is_absolute():
    s = ByteStream(b'\x01\x02\x03\x04')
    s.read(3)
    s.seek(1)
    assert s.tell() == 1
    assert s.read_u8() == 2
    s.seek(4)
    assert s.at_end()


def test_seek_out_of_bounds():
    s = ByteStream(b'\x01\x02')
    with pytest.raises(EOFError):
        s.seek(3)
    with pytest.raises(EOFError):
        s.seek(-1)
    assert s.tell() == 0


def test_short_reads():
    s = ByteStream(b'\x01\x02\x03')
    assert s.read_u16le() == 0x0201
    with pytest.raises(EOFError):
        s.read_u16le()
    assert s.read_upto(4) == b'\x03'
    assert s.remaining() == 0
