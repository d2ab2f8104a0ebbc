# adaptive_codecs/adaptive_huffman.py
# Adaptive Huffman (FGK Algorithm) - one-pass coder with a self-balancing tree

import enum
import logging
from typing import Callable, Dict, Iterable, List, Optional

from sortedcontainers import SortedList

from adaptive_codecs.bitio import BitStream
from adaptive_codecs.errors import (
    CorruptStreamError,
    InvariantViolation,
    SymbolRangeError,
    TruncatedStreamError,
)

logger = logging.getLogger(__name__)

BYTE_SYMBOL_WIDTH = 8     # raw NYT payload width for byte streams
TEXT_SYMBOL_WIDTH = 32    # raw NYT payload width for unicode code points
PROGRESS_EVERY = 100000   # log progress every N symbols


class Role(enum.Enum):
    INTERNAL = "internal"
    LEAF = "leaf"
    NYT = "nyt"


class Node:
    __slots__ = ("role", "symbol", "weight", "number", "parent", "left", "right")

    def __init__(self, role, number, symbol=None, weight=0):
        self.role = role
        self.symbol = symbol
        self.weight = weight
        self.number = number
        self.parent = None
        self.left = None
        self.right = None

    def is_leaf(self):
        return self.role is not Role.INTERNAL

    def __repr__(self):
        return (f"Node({self.role.value}, symbol={self.symbol!r}, "
                f"weight={self.weight}, number={self.number})")


class NodeStore:
    """Arena owning every node of one tree. Nodes are addressed by integer
    handles (their index) and are never freed individually."""

    def __init__(self):
        self._nodes: List[Node] = []

    def allocate(self, role: Role, number: int, symbol=None) -> int:
        self._nodes.append(Node(role, number, symbol=symbol))
        return len(self._nodes) - 1

    def __getitem__(self, handle: int) -> Node:
        if handle is None or not 0 <= handle < len(self._nodes):
            raise InvariantViolation(f"unknown node handle {handle!r}")
        return self._nodes[handle]

    def __len__(self):
        return len(self._nodes)

    def __iter__(self):
        return iter(range(len(self._nodes)))

    # ---------- Field access ----------
    def weight(self, handle: int) -> int:
        return self[handle].weight

    def set_weight(self, handle: int, weight: int):
        node = self[handle]
        if weight < node.weight:
            raise InvariantViolation(
                f"weight of node {handle} would drop from {node.weight} to {weight}")
        node.weight = weight

    def parent(self, handle: int) -> Optional[int]:
        return self[handle].parent

    def set_parent(self, handle: int, parent: Optional[int]):
        self[handle].parent = parent

    def children(self, handle: int):
        node = self[handle]
        return node.left, node.right

    def set_children(self, handle: int, left: Optional[int], right: Optional[int]):
        node = self[handle]
        node.left, node.right = left, right

    def is_leaf(self, handle: int) -> bool:
        return self[handle].is_leaf()

    def is_right_child(self, handle: int) -> bool:
        parent = self[handle].parent
        return parent is not None and self[parent].right == handle

    def replace_child(self, parent: int, old: int, new: int):
        node = self[parent]
        if node.left == old:
            node.left = new
        elif node.right == old:
            node.right = new
        else:
            raise InvariantViolation(f"node {old} is not a child of {parent}")

    def descendants(self, handle: int) -> set:
        found, stack = set(), [handle]
        while stack:
            left, right = self.children(stack.pop())
            for child in (left, right):
                if child is not None:
                    found.add(child)
                    stack.append(child)
        return found

    # ---------- Structure ----------
    def exchange(self, a: int, b: int):
        """Swap the tree positions of ``a`` and ``b``.

        Each node keeps its own subtree, weight and number; only the parent
        links (and the parents' matching child slots) change.
        """
        if a == b:
            raise InvariantViolation(f"cannot exchange node {a} with itself")
        node_a, node_b = self[a], self[b]
        pa, pb = node_a.parent, node_b.parent
        if pa == b or pb == a:
            raise InvariantViolation(f"cannot exchange node {a} with its parent/child {b}")

        if pa is not None and pa == pb:
            parent = self[pa]
            parent.left, parent.right = parent.right, parent.left
            return

        if pa is not None:
            self.replace_child(pa, a, b)
        if pb is not None:
            self.replace_child(pb, b, a)
        node_a.parent, node_b.parent = pb, pa


class WeightIndex:
    """Weight class -> members ordered by node number.

    Each class is a ``SortedList`` of ``(number, handle)`` pairs, so the
    class leader (largest number) sits at the tail and insert, removal and
    the tail lookups stay logarithmic in the class size.
    """

    def __init__(self):
        self._classes: Dict[int, SortedList] = {}
        self._keys: Dict[int, tuple] = {}

    def insert(self, handle: int, weight: int, number: int):
        if handle in self._keys:
            raise InvariantViolation(f"node {handle} is already indexed")
        members = self._classes.get(weight)
        if members is None:
            members = self._classes[weight] = SortedList()
        members.add((number, handle))
        self._keys[handle] = (weight, number)

    def remove(self, handle: int):
        try:
            weight, number = self._keys.pop(handle)
        except KeyError:
            raise InvariantViolation(f"node {handle} is not indexed") from None
        members = self._classes[weight]
        try:
            members.remove((number, handle))
        except ValueError:
            raise InvariantViolation(
                f"node {handle} missing from weight class {weight}") from None
        if not members:
            del self._classes[weight]

    def last(self, weight: int, offset: int = 0) -> int:
        """Member of class ``weight`` with the largest number; ``offset=1``
        gives the second-to-last member, and so on."""
        members = self._classes.get(weight, ())
        if offset >= len(members):
            raise InvariantViolation(
                f"weight class {weight} has {len(members)} member(s), wanted #{offset + 1} from the end")
        return members[-1 - offset][1]

    def members(self, weight: int) -> List[int]:
        return [handle for _, handle in self._classes.get(weight, ())]

    def key(self, handle: int):
        return self._keys.get(handle)

    def weights(self) -> List[int]:
        return sorted(self._classes)

    def __len__(self):
        return len(self._keys)


class AdaptiveHuffmanTree:
    """Tree state shared by one encoding or decoding session."""

    def __init__(self, symbol_width: int = BYTE_SYMBOL_WIDTH):
        if symbol_width <= 0:
            raise ValueError(f"symbol_width must be positive, got {symbol_width}")
        self.symbol_width = symbol_width
        self.store = NodeStore()
        self.index = WeightIndex()
        self.symbols: Dict[int, int] = {}
        # every distinct symbol costs two numbers, the root gets the largest
        self.nyt = self.store.allocate(Role.NYT, 2 * (1 << symbol_width))
        self.root = self.nyt

    # ---------- Queries ----------
    def leaf(self, symbol) -> Optional[int]:
        return self.symbols.get(symbol)

    def weight_of(self, symbol) -> int:
        handle = self.symbols.get(symbol)
        return 0 if handle is None else self.store.weight(handle)

    def node_count(self) -> int:
        return len(self.store)

    def code_for(self, handle: int) -> List[int]:
        """Root-to-leaf path of ``handle``: 1 for a right child, 0 for left."""
        code = []
        while self.store.parent(handle) is not None:
            code.append(1 if self.store.is_right_child(handle) else 0)
            handle = self.store.parent(handle)
        code.reverse()
        return code

    def escape_code(self) -> List[int]:
        return self.code_for(self.nyt)

    # ---------- Growth ----------
    def add_symbol(self, symbol) -> int:
        """Split the NYT leaf into an internal node whose children are the
        NYT (moved one level down) and a new leaf for ``symbol``.

        The internal node takes over the NYT's position and number. Returns
        the new leaf; both new nodes start at weight 0.
        """
        if symbol in self.symbols:
            raise InvariantViolation(f"symbol {symbol!r} is already in the tree")
        store = self.store
        nyt = store[self.nyt]
        number = nyt.number
        parent = nyt.parent

        internal = store.allocate(Role.INTERNAL, number)
        leaf = store.allocate(Role.LEAF, number - 1, symbol=symbol)

        store.set_parent(internal, parent)
        if parent is None:
            self.root = internal
        else:
            store.replace_child(parent, self.nyt, internal)
        store.set_children(internal, self.nyt, leaf)
        store.set_parent(leaf, internal)
        nyt.parent = internal
        nyt.number = number - 2

        self.symbols[symbol] = leaf
        self.index.insert(internal, 0, number)
        self.index.insert(leaf, 0, number - 1)
        logger.debug("new symbol %r -> leaf %d", symbol, leaf)
        return leaf

    # ---------- Rebalancing ----------
    def _leader(self, handle: int) -> Optional[int]:
        """Node to exchange with before ``handle`` is incremented, if any."""
        weight = self.store.weight(handle)
        last = self.index.last(weight)
        if last == handle:
            return None
        if last == self.store.parent(handle):
            last = self.index.last(weight, 1)
            if last == handle:
                return None
        return last

    def _swap(self, a: int, b: int):
        store, index = self.store, self.index
        store.exchange(a, b)
        # numbers name positions, so they follow the exchange
        weight_a, weight_b = store.weight(a), store.weight(b)
        index.remove(a)
        index.remove(b)
        store[a].number, store[b].number = store[b].number, store[a].number
        index.insert(a, weight_a, store[a].number)
        index.insert(b, weight_b, store[b].number)

    def update(self, handle: int):
        """Increment ``handle`` and every ancestor, keeping each node at the
        tail of its weight class before it moves up one class."""
        store = self.store
        node = handle
        while node is not None:
            leader = self._leader(node)
            if leader is not None:
                self._swap(node, leader)

            weight = store.weight(node) + 1
            self.index.remove(node)
            self.index.insert(node, weight, store[node].number)
            store.set_weight(node, weight)

            parent = store.parent(node)
            if parent is None:
                self.root = node
            node = parent

    # ---------- Diagnostics ----------
    def live_nodes(self) -> List[int]:
        """Handles reachable from the root."""
        return [self.root] + sorted(self.store.descendants(self.root))

    def check_invariants(self):
        """Raise InvariantViolation unless the sibling property holds."""
        store = self.store
        nodes = self.live_nodes()
        expected = 2 * len(self.symbols) + 1
        if len(nodes) != expected:
            raise InvariantViolation(f"tree has {len(nodes)} nodes, expected {expected}")
        if store.parent(self.root) is not None:
            raise InvariantViolation("root has a parent")
        nyt = store[self.nyt]
        if nyt.role is not Role.NYT or nyt.weight != 0 or not nyt.is_leaf():
            raise InvariantViolation("NYT sentinel is damaged")

        for handle in nodes:
            node = store[handle]
            if node.role is Role.INTERNAL:
                left, right = node.left, node.right
                if left is None or right is None:
                    raise InvariantViolation(f"internal node {handle} is missing a child")
                if store.parent(left) != handle or store.parent(right) != handle:
                    raise InvariantViolation(f"children of {handle} point elsewhere")
                if node.weight != store.weight(left) + store.weight(right):
                    raise InvariantViolation(f"weight of {handle} is not the sum of its children")
            if handle != self.nyt and self.index.key(handle) != (node.weight, node.number):
                raise InvariantViolation(f"weight index is stale for node {handle}")

        ordered = sorted(nodes, key=lambda h: store[h].number)
        for lower, upper in zip(ordered, ordered[1:]):
            if store.weight(lower) > store.weight(upper):
                raise InvariantViolation(
                    f"node {lower} outweighs higher-numbered node {upper}")
        for i in range(0, len(ordered) - 1, 2):
            if store.parent(ordered[i]) != store.parent(ordered[i + 1]):
                raise InvariantViolation(
                    f"nodes {ordered[i]} and {ordered[i + 1]} are adjacent but not siblings")
        if ordered[-1] != self.root:
            raise InvariantViolation("root does not hold the largest number")


def _check_symbol(symbol, width):
    if not isinstance(symbol, int) or not 0 <= symbol < (1 << width):
        raise SymbolRangeError(f"symbol {symbol!r} does not fit in {width} bits")


# ---------- Compression ----------
class AdaptiveHuffmanEncoder:
    def __init__(self, symbol_width: int = BYTE_SYMBOL_WIDTH,
                 trace: Optional[Callable[[AdaptiveHuffmanTree], None]] = None):
        self.tree = AdaptiveHuffmanTree(symbol_width)
        self.trace = trace

    def encode_symbol(self, symbol: int, stream: BitStream):
        tree = self.tree
        _check_symbol(symbol, tree.symbol_width)
        leaf = tree.leaf(symbol)
        if leaf is None:
            stream.write_code(tree.escape_code())
            stream.write_bits(symbol, tree.symbol_width)
            leaf = tree.add_symbol(symbol)
        else:
            stream.write_code(tree.code_for(leaf))
        tree.update(leaf)
        if self.trace is not None:
            self.trace(tree)

    def encode(self, symbols: Iterable[int], stream: Optional[BitStream] = None) -> BitStream:
        if stream is None:
            stream = BitStream()
        for i, symbol in enumerate(symbols):
            self.encode_symbol(symbol, stream)
            if i % PROGRESS_EVERY == 0 and i > 0:
                logger.debug("encoded %d symbols", i)
        return stream


# ---------- Decompression ----------
class AdaptiveHuffmanDecoder:
    def __init__(self, symbol_width: int = BYTE_SYMBOL_WIDTH,
                 trace: Optional[Callable[[AdaptiveHuffmanTree], None]] = None):
        self.tree = AdaptiveHuffmanTree(symbol_width)
        self.trace = trace

    def decode(self, stream: BitStream) -> list:
        tree = self.tree
        store = tree.store
        output = []
        node = tree.root
        while not stream.is_empty():
            if not store.is_leaf(node):
                left, right = store.children(node)
                node = right if stream.read_bit() else left

            if store.is_leaf(node):
                if node == tree.nyt:
                    symbol = stream.read_bits(tree.symbol_width)
                    if symbol is None:
                        raise TruncatedStreamError(
                            f"stream ended inside a {tree.symbol_width}-bit raw symbol "
                            f"after {len(output)} symbols", output)
                    if tree.leaf(symbol) is not None:
                        raise CorruptStreamError(
                            f"escape to symbol {symbol!r}, which is already in the tree, "
                            f"after {len(output)} symbols", output)
                    node = tree.add_symbol(symbol)
                else:
                    symbol = store[node].symbol
                output.append(symbol)
                tree.update(node)
                if self.trace is not None:
                    self.trace(tree)
                if len(output) % PROGRESS_EVERY == 0:
                    logger.debug("decoded %d symbols", len(output))
                node = tree.root

        if node != tree.root:
            raise TruncatedStreamError(
                f"stream ended mid-code after {len(output)} symbols", output)
        return output


def encode(symbols: Iterable[int], symbol_width: int = BYTE_SYMBOL_WIDTH) -> BitStream:
    return AdaptiveHuffmanEncoder(symbol_width).encode(symbols)


def decode(stream: BitStream, symbol_width: int = BYTE_SYMBOL_WIDTH) -> list:
    return AdaptiveHuffmanDecoder(symbol_width).decode(stream)


def encode_text(text: str) -> BitStream:
    return encode((ord(c) for c in text), TEXT_SYMBOL_WIDTH)


def decode_text(stream: BitStream) -> str:
    return "".join(chr(c) for c in decode(stream, TEXT_SYMBOL_WIDTH))


class AdaptiveHuffman:
    """Byte-oriented front end; every call works on a fresh tree."""

    name = "Adaptive Huffman"

    def __init__(self, symbol_width: int = BYTE_SYMBOL_WIDTH):
        self.symbol_width = symbol_width

    def compress_bytes(self, data: bytes) -> bytes:
        return encode(data, self.symbol_width).pack()

    def decompress_bytes(self, blob: bytes) -> bytes:
        return bytes(decode(BitStream.unpack(blob), self.symbol_width))
