# adaptive_codecs/arithmetic.py
# Static-model arithmetic coder with a bit-oriented integer range coder.
# The model is a table of integer symbol counts shared by both sides.

import bisect
import collections
from typing import Dict, Iterable, List, Tuple

from adaptive_codecs.bitio import BitStream
from adaptive_codecs.errors import SymbolRangeError


class _Interval:
    """Current coding interval ``[low, high]`` on ``precision`` bits."""

    def __init__(self, precision: int):
        self.mask = (1 << precision) - 1
        self.half = 1 << (precision - 1)
        self.quarter = 1 << (precision - 2)
        self.low = 0
        self.high = self.mask

    def narrow(self, low_count: int, high_count: int, total: int):
        span = self.high - self.low + 1
        self.high = self.low + span * high_count // total - 1
        self.low += span * low_count // total

    def shift(self, offset: int):
        """Drop ``offset`` from both ends and double the interval."""
        self.low = ((self.low - offset) << 1) & self.mask
        self.high = (((self.high - offset) << 1) & self.mask) | 1

    def straddles_middle(self) -> bool:
        return self.quarter <= self.low and self.high < 3 * self.quarter


class RangeEncoder(_Interval):
    def __init__(self, stream: BitStream, precision: int = 32):
        super().__init__(precision)
        self.stream = stream
        self.pending = 0

    def _emit(self, bit: int):
        self.stream.write_bit(bit)
        self.stream.write_code([1 - bit] * self.pending)
        self.pending = 0

    def encode_symbol(self, low_count: int, high_count: int, total: int):
        self.narrow(low_count, high_count, total)
        while True:
            if self.high < self.half:
                self._emit(0)
                self.shift(0)
            elif self.low >= self.half:
                self._emit(1)
                self.shift(self.half)
            elif self.straddles_middle():
                self.pending += 1
                self.shift(self.quarter)
            else:
                return

    def finish(self) -> BitStream:
        # one more bit (plus pending) pins the final interval
        self.pending += 1
        self._emit(0 if self.low < self.quarter else 1)
        return self.stream


class RangeDecoder(_Interval):
    def __init__(self, stream: BitStream, precision: int = 32):
        super().__init__(precision)
        self.stream = stream
        self.code = 0
        for _ in range(precision):
            self.code = (self.code << 1) | self._next_bit()

    def _next_bit(self) -> int:
        # past the end the stream reads as zeros
        bit = self.stream.read_bit()
        return 0 if bit is None else bit

    def get_target(self, total: int) -> int:
        span = self.high - self.low + 1
        return ((self.code - self.low + 1) * total - 1) // span

    def remove_symbol(self, low_count: int, high_count: int, total: int):
        self.narrow(low_count, high_count, total)
        while True:
            if self.high < self.half:
                offset = 0
            elif self.low >= self.half:
                offset = self.half
            elif self.straddles_middle():
                offset = self.quarter
            else:
                return
            self.shift(offset)
            self.code = (((self.code - offset) << 1) & self.mask) | self._next_bit()


def build_cum_freqs(counts: Dict[int, int]) -> Tuple[List[int], List[int]]:
    symbols = [s for s in sorted(counts) if counts[s] > 0]
    cum_freqs = [0]
    for s in symbols:
        cum_freqs.append(cum_freqs[-1] + counts[s])
    return symbols, cum_freqs


class ArithmeticCodec:
    name = "Arithmetic"

    def __init__(self, freqs: Dict[int, int], precision: int = 32):
        if precision < 4:
            raise ValueError(f"precision must be at least 4 bits, got {precision}")
        self.precision = precision
        self.symbols, self.cum_freqs = build_cum_freqs(freqs)
        if not self.symbols:
            raise ValueError("frequency table is empty")
        self.total = self.cum_freqs[-1]
        if self.total > (1 << (precision - 2)):
            raise ValueError(
                f"total count {self.total} exceeds a quarter of the {precision}-bit range")
        self._index = {s: i for i, s in enumerate(self.symbols)}

    @classmethod
    def from_data(cls, data: Iterable[int], precision: int = 32) -> "ArithmeticCodec":
        return cls(collections.Counter(data), precision)

    def encode(self, symbols: Iterable[int]) -> BitStream:
        enc = RangeEncoder(BitStream(), precision=self.precision)
        for s in symbols:
            idx = self._index.get(s)
            if idx is None:
                raise SymbolRangeError(f"symbol {s!r} is not in the model")
            enc.encode_symbol(self.cum_freqs[idx], self.cum_freqs[idx + 1], self.total)
        return enc.finish()

    def decode(self, stream: BitStream, length: int) -> list:
        dec = RangeDecoder(stream, precision=self.precision)
        out = []
        while len(out) < length:
            target = dec.get_target(self.total)
            idx = bisect.bisect_right(self.cum_freqs, target) - 1
            dec.remove_symbol(self.cum_freqs[idx], self.cum_freqs[idx + 1], self.total)
            out.append(self.symbols[idx])
        return out
