# adaptive_codecs/lz77.py
# Windowed LZ77 matcher: turns bytes into literals and back references.

from collections import namedtuple
from typing import Iterable, List, Union

from adaptive_codecs.errors import CodecError

DEFAULT_WINDOW_SIZE = 4096
DEFAULT_LOOK_AHEAD_SIZE = 18
DEFAULT_MIN_MATCH_SIZE = 3

Literal = namedtuple("Literal", ["value"])
BackRef = namedtuple("BackRef", ["length", "distance"])

Token = Union[Literal, BackRef]


class LZ77:
    name = "LZ77"

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE,
                 look_ahead_size: int = DEFAULT_LOOK_AHEAD_SIZE,
                 min_match_size: int = DEFAULT_MIN_MATCH_SIZE):
        if window_size <= 0 or look_ahead_size <= 0:
            raise ValueError("window and look-ahead sizes must be positive")
        if min_match_size < 1:
            raise ValueError(f"min_match_size must be at least 1, got {min_match_size}")
        self.window_size = window_size
        self.look_ahead_size = look_ahead_size
        self.min_match_size = min_match_size

    def longest_match(self, data: bytes, pos: int):
        """Best ``(length, distance)`` for ``data[pos:]``.

        Matches may run past ``pos`` into the look-ahead; equal lengths
        prefer the closest start.
        """
        limit = min(self.look_ahead_size, len(data) - pos)
        best_len, best_dist = 0, 0
        for start in range(max(0, pos - self.window_size), pos):
            length = 0
            while length < limit and data[start + length] == data[pos + length]:
                length += 1
            if length >= best_len and length > 0:
                best_len, best_dist = length, pos - start
        return best_len, best_dist

    def encode(self, data: bytes) -> List[Token]:
        data = bytes(data)
        tokens = []
        pos = 0
        while pos < len(data):
            length, distance = self.longest_match(data, pos)
            if length >= self.min_match_size:
                tokens.append(BackRef(length, distance))
                pos += length
            else:
                tokens.append(Literal(data[pos]))
                pos += 1
        return tokens

    def decode(self, tokens: Iterable[Token]) -> bytes:
        out = bytearray()
        for token in tokens:
            if isinstance(token, Literal):
                out.append(token.value)
                continue
            if token.distance <= 0 or token.distance > len(out):
                raise CodecError(
                    f"back reference distance {token.distance} outside {len(out)} bytes of output")
            # byte by byte so overlapping copies repeat themselves
            start = len(out) - token.distance
            for i in range(token.length):
                out.append(out[start + i])
        return bytes(out)
