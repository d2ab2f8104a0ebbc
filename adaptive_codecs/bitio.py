# adaptive_codecs/bitio.py
# FIFO bit stream used by every codec. Bits are appended at the tail and
# consumed from the head; fixed-width fields are written MSB first.

from typing import Iterable, Optional

from bitarray import bitarray
from bitarray.util import ba2int, int2ba


class BitStream:
    def __init__(self, bits: Optional[Iterable[int]] = None):
        self._bits = bitarray(endian="big")
        self._pos = 0
        if bits is not None:
            self._bits.extend(int(b) & 1 for b in bits)

    # ---------- Writing ----------
    def write_bit(self, bit: int):
        self._bits.append(1 if bit else 0)

    def write_code(self, code: Iterable[int]):
        self._bits.extend(1 if b else 0 for b in code)

    def write_bits(self, value: int, width: int):
        if width <= 0:
            raise ValueError(f"field width must be positive, got {width}")
        if value < 0 or value >> width:
            raise ValueError(f"{value} does not fit in {width} bits")
        self._bits.extend(int2ba(value, length=width, endian="big"))

    # ---------- Reading ----------
    def read_bit(self) -> Optional[int]:
        if self._pos >= len(self._bits):
            return None
        bit = self._bits[self._pos]
        self._pos += 1
        return bit

    def read_bits(self, width: int) -> Optional[int]:
        """Consume a ``width``-bit field, or return None (consuming nothing)
        when fewer than ``width`` bits are left."""
        if width <= 0:
            raise ValueError(f"field width must be positive, got {width}")
        end = self._pos + width
        if end > len(self._bits):
            return None
        value = ba2int(self._bits[self._pos:end], signed=False)
        self._pos = end
        return value

    def is_empty(self) -> bool:
        return self._pos >= len(self._bits)

    def __len__(self):
        return len(self._bits) - self._pos

    def __iter__(self):
        return iter(self._bits[self._pos:].tolist())

    def __eq__(self, other):
        if not isinstance(other, BitStream):
            return NotImplemented
        return self._bits[self._pos:] == other._bits[other._pos:]

    def __repr__(self):
        return f"BitStream('{self.to01()}')"

    # ---------- Conversions ----------
    def copy(self) -> "BitStream":
        clone = BitStream()
        clone._bits = self._bits[self._pos:]
        return clone

    def to01(self) -> str:
        return self._bits[self._pos:].to01()

    def tobytes(self) -> bytes:
        # trailing byte is zero-padded
        return self._bits[self._pos:].tobytes()

    @classmethod
    def frombytes(cls, data: bytes, nbits: Optional[int] = None) -> "BitStream":
        stream = cls()
        stream._bits.frombytes(bytes(data))
        if nbits is not None:
            if nbits < 0 or nbits > len(stream._bits):
                raise ValueError(f"cannot take {nbits} bits from {len(data)} bytes")
            del stream._bits[nbits:]
        return stream

    def pack(self) -> bytes:
        """Bytes prefixed with the number of padding bits in the last byte."""
        padding = -len(self) % 8
        return bytes([padding]) + self.tobytes()

    @classmethod
    def unpack(cls, blob: bytes) -> "BitStream":
        if not blob:
            return cls()
        padding = blob[0]
        if padding > 7 or (padding and len(blob) == 1):
            raise ValueError(f"malformed packed stream: padding={padding}")
        return cls.frombytes(blob[1:], (len(blob) - 1) * 8 - padding)
