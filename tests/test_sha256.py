import hashlib

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from qformvdf.sha256 import (
    Sha256,
    bytes_to_hex,
    hash256,
    hash256_file,
    hash256_hex,
)


def test_empty_message_known_digest():
    assert hash256_hex(b"") == (
        "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    )


def test_abc_known_digest():
    assert hash256_hex("abc") == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


@pytest.mark.parametrize("length", [0, 1, 54, 55, 56, 57, 63, 64, 65, 119, 120, 128, 1000])
def test_padding_boundaries_match_hashlib(length):
    data = bytes((i * 31 + 7) % 256 for i in range(length))
    assert hash256(data) == hashlib.sha256(data).digest()


@settings(max_examples=50)
@given(st.binary(max_size=300))
def test_matches_hashlib(data):
    assert hash256(data) == hashlib.sha256(data).digest()


@settings(max_examples=50)
@given(st.binary(max_size=300), st.integers(min_value=0, max_value=300))
def test_split_updates_equal_one_shot(data, cut):
    cut = min(cut, len(data))
    hasher = Sha256()
    hasher.update(data[:cut])
    hasher.update(data[cut:])
    assert hasher.digest() == hash256(data)


def test_digest_length():
    assert len(hash256(b"some message")) == 32


def test_hexdigest_matches_digest():
    hasher = Sha256(b"hello world")
    assert hasher.hexdigest() == hasher.digest().hex()


def test_str_input_is_utf8():
    assert hash256("héllo") == hashlib.sha256("héllo".encode("utf-8")).digest()


def test_iterable_of_ints_input():
    assert hash256([1, 2, 3, 250]) == hashlib.sha256(bytes([1, 2, 3, 250])).digest()


def test_update_after_finish_raises():
    hasher = Sha256(b"data")
    hasher.finish()
    with pytest.raises(ValueError):
        hasher.update(b"more")


def test_finish_is_idempotent():
    hasher = Sha256(b"data")
    first = hasher.finish().digest()
    assert hasher.finish().digest() == first


def test_reset_starts_over():
    hasher = Sha256(b"something else")
    hasher.digest()
    hasher.reset()
    hasher.update(b"abc")
    assert hasher.digest() == hashlib.sha256(b"abc").digest()


def test_bytes_to_hex_matches_bytes_hex():
    data = bytes(range(256))
    assert bytes_to_hex(data) == data.hex()


def test_bytes_to_hex_pads_small_values():
    result = bytes_to_hex(b"\x00\x0a")
    assert len(result) == 4 and result.startswith("00")


def test_hash256_file(tmp_path):
    data = bytes(i % 251 for i in range(3000))
    path = tmp_path / "payload.bin"
    path.write_bytes(data)
    assert hash256_file(path) == hashlib.sha256(data).digest()


def test_hash256_file_empty(tmp_path):
    path = tmp_path / "empty.bin"
    path.write_bytes(b"")
    assert hash256_file(path) == hash256(b"")


def test_hash256_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        hash256_file(tmp_path / "missing.bin")