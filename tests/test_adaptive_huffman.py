import random

import pytest

from adaptive_codecs.adaptive_huffman import (
    TEXT_SYMBOL_WIDTH,
    AdaptiveHuffman,
    AdaptiveHuffmanDecoder,
    AdaptiveHuffmanEncoder,
    AdaptiveHuffmanTree,
    Role,
    decode,
    decode_text,
    encode,
    encode_text,
)
from adaptive_codecs.bitio import BitStream
from adaptive_codecs.errors import (
    CorruptStreamError,
    InvariantViolation,
    SymbolRangeError,
    TruncatedStreamError,
)
from adaptive_codecs.graphviz import to_dot


def _symbols(text):
    return [ord(c) for c in text]


@pytest.mark.parametrize("text", [
    "",
    "a",
    "aaaaaaaaaa",
    "aardvss",
    "abababab",
    "hello world",
    "mississippi river",
    "the quick brown fox jumps over the lazy dog" * 3,
])
def test_round_trip(text):
    assert decode(encode(_symbols(text))) == _symbols(text)


def test_round_trip_random_bytes():
    rng = random.Random(1234)
    data = bytes(rng.choice(b"abcdefgh\x00\xff") for _ in range(2000))
    assert decode(encode(data)) == list(data)


def test_round_trip_every_byte_value():
    data = bytes(range(256)) * 2
    assert decode(encode(data)) == list(data)


def test_text_helpers_use_code_points():
    text = "naïve ☃ snowman ☃"
    stream = encode_text(text)
    assert decode_text(stream) == text


def test_wide_symbols():
    symbols = [70000, 5, 70000, 1 << 20]
    assert decode(encode(symbols, 21), 21) == symbols


def test_encoding_is_deterministic():
    data = _symbols("determinism is the whole point")
    assert encode(data).to01() == encode(data).to01()


def test_first_symbol_is_raw_and_repeat_is_one_bit():
    assert encode([97]).to01() == "01100001"
    assert encode([97, 97]).to01() == "011000011"
    # escape to the NYT (left child) then the raw symbol
    assert encode([97, 97, 98]).to01() == "011000011" + "0" + "01100010"


def test_single_symbol_tree_shape():
    encoder = AdaptiveHuffmanEncoder()
    stream = encoder.encode([97])
    tree = encoder.tree
    assert decode(stream) == [97]
    assert tree.node_count() == 3
    root = tree.store[tree.root]
    assert root.role is Role.INTERNAL
    assert root.weight == 1
    assert root.left == tree.nyt
    assert tree.store[root.right].symbol == 97
    tree.check_invariants()


def test_repeated_symbol_gets_shorter_code():
    lengths = [len(encode([97] * n)) for n in range(4)]
    first = lengths[1] - lengths[0]
    third = lengths[3] - lengths[2]
    assert third < first
    assert third == 1


def test_aardvss():
    text = _symbols("aardvss")
    stream = encode(text)
    assert len(decode(stream.copy())) == 7
    assert decode(stream) == text


def test_alternating_symbols_end_with_equal_weights():
    data = _symbols("abababab")
    encoder = AdaptiveHuffmanEncoder()
    stream = encoder.encode(data)
    decoder = AdaptiveHuffmanDecoder()
    assert decoder.decode(stream) == data
    for tree in (encoder.tree, decoder.tree):
        assert tree.weight_of(ord("a")) == tree.weight_of(ord("b")) == 4
        tree.check_invariants()
    assert to_dot(encoder.tree) == to_dot(decoder.tree)


def test_sibling_property_after_every_symbol():
    rng = random.Random(7)
    data = [rng.choice(b"aaaabbbccde") for _ in range(400)] + list(b"abbaa")
    checked = []

    def check(tree):
        tree.check_invariants()
        checked.append(tree.node_count())

    stream = AdaptiveHuffmanEncoder(trace=check).encode(data)
    assert len(checked) == len(data)
    assert AdaptiveHuffmanDecoder(trace=check).decode(stream) == data
    assert len(checked) == 2 * len(data)


def test_growth_law():
    encoder = AdaptiveHuffmanEncoder()
    stream = BitStream()
    seen = set()
    for symbol in _symbols("growth law holds for any repeats"):
        encoder.encode_symbol(symbol, stream)
        seen.add(symbol)
        assert encoder.tree.node_count() == 2 * len(seen) + 1
        assert len(encoder.tree.live_nodes()) == 2 * len(seen) + 1


def test_encoder_and_decoder_trees_match_after_each_symbol():
    data = _symbols("abracadabra alakazam")
    enc_dumps, dec_dumps = [], []
    stream = AdaptiveHuffmanEncoder(trace=lambda t: enc_dumps.append(to_dot(t))).encode(data)
    AdaptiveHuffmanDecoder(trace=lambda t: dec_dumps.append(to_dot(t))).decode(stream)
    assert enc_dumps == dec_dumps


def test_fresh_tree_is_a_lone_nyt():
    tree = AdaptiveHuffmanTree()
    assert tree.root == tree.nyt
    assert tree.escape_code() == []
    assert tree.node_count() == 1
    tree.check_invariants()


def test_add_symbol_twice_is_an_invariant_violation():
    tree = AdaptiveHuffmanTree()
    tree.update(tree.add_symbol(1))
    with pytest.raises(InvariantViolation):
        tree.add_symbol(1)


def test_symbol_out_of_range():
    with pytest.raises(SymbolRangeError):
        encode([256])
    with pytest.raises(SymbolRangeError):
        encode([-1])
    with pytest.raises(SymbolRangeError):
        encode(["a"])


def test_truncated_raw_symbol_keeps_partial_output():
    stream = encode(_symbols("hello"))
    bits = stream.to01()[:-1]
    with pytest.raises(TruncatedStreamError) as excinfo:
        decode(BitStream(int(b) for b in bits))
    assert excinfo.value.decoded == _symbols("hell")


def test_truncated_mid_code():
    # a -> raw, b -> escape "0" + raw, b -> "01"
    bits = encode(_symbols("abb")).to01()
    assert len(bits) == 19
    assert decode(BitStream(int(b) for b in bits[:17])) == _symbols("ab")
    with pytest.raises(TruncatedStreamError) as excinfo:
        decode(BitStream(int(b) for b in bits[:18]))
    assert excinfo.value.decoded == _symbols("ab")


def test_truncated_after_escape():
    bits = encode(_symbols("aab")).to01()
    with pytest.raises(TruncatedStreamError) as excinfo:
        decode(BitStream(int(b) for b in bits[:10]))
    assert excinfo.value.decoded == _symbols("aa")


def test_byte_front_end():
    coder = AdaptiveHuffman()
    data = b"adaptive huffman coding adapts as it goes" * 4
    blob = coder.compress_bytes(data)
    assert len(blob) < len(data)
    assert coder.decompress_bytes(blob) == data
    # every call starts from a fresh tree
    assert coder.compress_bytes(data) == blob
    assert coder.decompress_bytes(coder.compress_bytes(b"")) == b""


def test_text_width_constant():
    assert TEXT_SYMBOL_WIDTH == 32
    assert len(encode_text("x")) == 32


def test_escape_to_known_symbol_is_corrupt():
    # "a" raw, then the escape code "0" and "a" raw again
    bits = "01100001" + "0" + "01100001"
    with pytest.raises(CorruptStreamError) as excinfo:
        decode(BitStream(int(b) for b in bits))
    assert excinfo.value.decoded == _symbols("a")


def test_many_distinct_code_points():
    text = "".join(chr(c) for c in range(0x4E00, 0x4E00 + 3000)) * 2
    assert decode_text(encode_text(text)) == text
