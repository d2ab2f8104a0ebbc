# adaptive_codecs/huffman.py
# Static (two-pass) Huffman coder. The codec keeps the tree it built while
# encoding and decodes against it; no table is written into the stream.

from collections import Counter
from heapq import heapify, heappop, heappush
from typing import Dict, Iterable, List, Optional

from adaptive_codecs.bitio import BitStream
from adaptive_codecs.errors import CodecError, TruncatedStreamError


class _Node:
    """Huffman tree node; leaves carry a symbol, branches two children."""
    __slots__ = ("freq", "symbol", "left", "right")

    def __init__(self, freq: int, symbol=None, left: "Optional[_Node]" = None,
                 right: "Optional[_Node]" = None):
        self.freq, self.symbol, self.left, self.right = freq, symbol, left, right

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None


class HuffmanCodec:
    name = "Huffman"

    def __init__(self):
        self.root: Optional[_Node] = None
        self.codes: Dict[object, List[int]] = {}

    # Tree generation: always merge the two lightest nodes.
    # The insertion counter keeps ties deterministic.
    @staticmethod
    def build_tree(freq: Dict[object, int]) -> _Node:
        heap = [(f, i, _Node(f, s)) for i, (s, f) in enumerate(sorted(freq.items()))]
        heapify(heap)
        order = len(heap)
        while len(heap) > 1:
            f1, _, n1 = heappop(heap)
            f2, _, n2 = heappop(heap)
            heappush(heap, (f1 + f2, order, _Node(f1 + f2, None, n1, n2)))
            order += 1
        return heap[0][2]

    def _build_code_map(self, node: _Node, prefix: List[int]):
        if node.is_leaf():
            # a lone symbol still needs one bit
            self.codes[node.symbol] = prefix or [0]
            return
        self._build_code_map(node.left, prefix + [0])
        self._build_code_map(node.right, prefix + [1])

    def encode(self, data: Iterable) -> BitStream:
        data = list(data)
        stream = BitStream()
        self.codes = {}
        if not data:
            self.root = None
            return stream
        self.root = self.build_tree(Counter(data))
        self._build_code_map(self.root, [])
        for symbol in data:
            stream.write_code(self.codes[symbol])
        return stream

    def code_lengths(self) -> Dict[object, int]:
        return {s: len(c) for s, c in self.codes.items()}

    def decode(self, stream: BitStream) -> list:
        if self.root is None:
            if stream.is_empty():
                return []
            raise CodecError("no Huffman tree: encode something first")
        out = []
        root = self.root
        if root.is_leaf():
            while not stream.is_empty():
                if stream.read_bit() != 0:
                    raise CodecError("invalid code for single-symbol tree")
                out.append(root.symbol)
            return out

        node = root
        while not stream.is_empty():
            node = node.right if stream.read_bit() else node.left
            if node.is_leaf():
                out.append(node.symbol)
                node = root
        if node is not root:
            raise TruncatedStreamError(f"stream ended mid-code after {len(out)} symbols", out)
        return out
