#!/usr/bin/env python3
"""
Dark Colony byte stream

Little-endian cursor over an in-memory file. Every Dark Colony reader walks
its file through one of these; a read past the end raises EOFError so the
readers can stop at the last complete record.
"""

import struct


class ByteStream:
    def __init__(self, data: bytes, pos: int = 0):
        self.data = data
        self.pos = pos

    def seek(self, offset: int):
        if offset < 0 or offset > len(self.data):
            raise EOFError("Seek out of bounds")
        self.pos = offset

    def tell(self) -> int:
        return self.pos

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def at_end(self) -> bool:
        return self.pos >= len(self.data)

    def read(self, n: int) -> bytes:
        if self.pos + n > len(self.data):
            raise EOFError("Read out of bounds")
        b = self.data[self.pos:self.pos + n]
        self.pos += n
        return b

    def read_upto(self, n: int) -> bytes:
        """Read at most n bytes; never raises, may return fewer."""
        b = self.data[self.pos:self.pos + n]
        self.pos += len(b)
        return b

    def read_u8(self) -> int:
        return self.read(1)[0]

    def read_u16le(self) -> int:
        return struct.unpack('<H', self.read(2))[0]

    def read_s16le(self) -> int:
        return struct.unpack('<h', self.read(2))[0]

    def read_u32le(self) -> int:
        return struct.unpack('<I', self.read(4))[0]

    def read_cstring(self, size: int) -> str:
        """Read a fixed-size NUL-padded ASCII field."""
        raw = self.read(size)
        end = raw.find(b'\x00')
        if end != -1:
            raw = raw[:end]
        return raw.decode('ascii', errors='replace').strip()
