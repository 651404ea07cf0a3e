import pytest

from slslog.producer.adjusthash import (
    adjust_hash,
    adjust_hash_old,
    bit_count,
    fill_zero,
    md5_to_bin,
    to_md5,
)


@pytest.mark.parametrize(
    "shard_hash, buckets, expected",
    [
        ("127.0.0.1", 1, "00000000000000000000000000000000"),
        ("192.168.0.2", 1, "00000000000000000000000000000000"),
        ("127.0.0.1", 2, "80000000000000000000000000000000"),
        ("192.168.0.2", 2, "00000000000000000000000000000000"),
        ("127.0.0.1", 4, "c0000000000000000000000000000000"),
        ("192.168.0.2", 4, "40000000000000000000000000000000"),
        ("127.0.0.1", 8, "e0000000000000000000000000000000"),
        ("192.168.0.2", 8, "60000000000000000000000000000000"),
        ("127.0.0.1", 16, "f0000000000000000000000000000000"),
        ("192.168.0.2", 16, "60000000000000000000000000000000"),
        ("127.0.0.1", 32, "f0000000000000000000000000000000"),
        ("192.168.0.2", 32, "68000000000000000000000000000000"),
        ("127.0.0.1", 64, "f4000000000000000000000000000000"),
        ("192.168.0.2", 64, "6c000000000000000000000000000000"),
        ("127.0.0.1", 128, "f4000000000000000000000000000000"),
        ("192.168.0.2", 128, "6e000000000000000000000000000000"),
        ("127.0.0.1", 256, "f5000000000000000000000000000000"),
        ("192.168.0.2", 256, "6f000000000000000000000000000000"),
    ],
)
def test_adjust_hash(shard_hash, buckets, expected):
    assert adjust_hash(shard_hash, buckets) == expected


def test_adjust_hash_without_buckets_is_all_zero():
    assert adjust_hash("127.0.0.1", 0) == "0" * 32


@pytest.mark.parametrize(
    "buckets, expected",
    [(1, 0), (2, 1), (4, 2), (8, 3), (16, 4), (32, 5), (64, 6), (128, 7), (256, 8)],
)
def test_bit_count(buckets, expected):
    assert bit_count(buckets) == expected


@pytest.mark.parametrize("buckets", [7, 10, 0, -10])
def test_bit_count_rejects_non_powers(buckets):
    with pytest.raises(ValueError):
        bit_count(buckets)


def test_to_md5_of_empty_string():
    assert to_md5("") == "d41d8cd98f00b204e9800998ecf8427e"


def test_md5_to_bin():
    assert md5_to_bin("ff00") == "1111111100000000"
    assert len(md5_to_bin(to_md5("abc"))) == 128


def test_fill_zero():
    assert fill_zero("ab", 5) == "ab000"
    assert fill_zero("abcdef", 3) == "abcdef"


def test_adjust_hash_old_shape():
    value = adjust_hash_old("127.0.0.1", 64)
    assert len(value) == 32
    assert adjust_hash_old("127.0.0.1", 1) == "0" * 32


def test_adjust_hash_old_rejects_bad_buckets():
    with pytest.raises(ValueError):
        adjust_hash_old("127.0.0.1", 3)