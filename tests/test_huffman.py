import pytest

from adaptive_codecs.bitio import BitStream
from adaptive_codecs.errors import CodecError, TruncatedStreamError
from adaptive_codecs.huffman import HuffmanCodec


def test_hello_world():
    codec = HuffmanCodec()
    stream = codec.encode("hello world")
    assert "".join(codec.decode(stream)) == "hello world"


def test_frequent_symbols_get_short_codes():
    codec = HuffmanCodec()
    codec.encode(b"aaaaaaaabbbc")
    lengths = codec.code_lengths()
    assert lengths[ord("a")] == 1
    assert lengths[ord("b")] == lengths[ord("c")] == 2


def test_single_symbol_input():
    codec = HuffmanCodec()
    stream = codec.encode(b"zzzz")
    assert len(stream) == 4
    assert codec.decode(stream) == list(b"zzzz")


def test_empty_input():
    codec = HuffmanCodec()
    assert codec.encode(b"").is_empty()
    assert codec.decode(codec.encode(b"")) == []


def test_decode_without_tree():
    with pytest.raises(CodecError):
        HuffmanCodec().decode(BitStream([1]))


def test_dropping_a_one_bit_code_stays_aligned():
    codec = HuffmanCodec()
    bits = codec.encode(b"abcabcaaaa").to01()
    assert codec.decode(BitStream(int(b) for b in bits[:-1])) == list(b"abcabcaaa")


def test_truncated_code():
    codec = HuffmanCodec()
    # equal counts: 'c' gets one bit, 'a' and 'b' two
    bits = codec.encode(b"abcabcbca").to01()
    with pytest.raises(TruncatedStreamError) as excinfo:
        codec.decode(BitStream(int(b) for b in bits[:-1]))
    assert excinfo.value.decoded == list(b"abcabcbc")
