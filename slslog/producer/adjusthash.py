"""Shard-hash adjustment so that keys spread evenly over a number of buckets."""

from __future__ import annotations

import hashlib
from itertools import islice

_ZERO32 = "0" * 32
_HEX_DIGITS = "0123456789abcdef"
_PARSE_MAX = 511  # largest value a 10-bit signed parse accepts


def _bit_value(value: int, bits: int) -> int:
    """Keep only as many high bits of a nibble as the bucket count needs."""
    if bits >= 16:
        return value
    if bits >= 8:
        return value & 0xE
    if bits >= 4:
        return value & 0xC
    if bits >= 2:
        return value & 0x8
    return 0


def _nibbles(data: bytes):
    for byte in data:
        yield byte >> 4
        yield byte & 0xF


def adjust_hash(shard_hash: str, buckets: int) -> str:
    """Map ``shard_hash`` to a 32-digit hex key that selects one of ``buckets`` ranges."""
    digest = hashlib.md5(shard_hash.encode("utf-8")).digest()
    digits = []
    for nibble in islice(_nibbles(digest), len(digest)):
        if buckets <= 0:
            break
        digits.append(_HEX_DIGITS[_bit_value(nibble, buckets)])
        buckets >>= 4
    return "".join(digits) + _ZERO32[: 32 - len(digits)]


def adjust_hash_old(shard_hash: str, buckets: int) -> str:
    """Earlier form of :func:`adjust_hash` built from the binary digest."""
    bits = md5_to_bin(to_md5(shard_hash))
    width = bit_count(buckets)
    prefix = fill_zero(bits[:width], 8)
    base = min(int(prefix, 2), _PARSE_MAX)
    return fill_zero(format(base, "x"), 32)


def bit_count(buckets: int) -> int:
    """Return log2 of ``buckets``; raise ValueError unless it is a positive power of two."""
    binary = format(buckets, "b")
    if buckets <= 0 or "1" in binary[1:]:
        raise ValueError(
            f"buckets must be a power of 2, got {buckets},and The parameter buckets must be "
            "greater than or equal to 1 and less than or equal to 256."
        )
    return binary.count("0")


def to_md5(name: str) -> str:
    """Hex MD5 digest of ``name``."""
    return hashlib.md5(name.encode("utf-8")).hexdigest()


def md5_to_bin(md5_hex: str) -> str:
    """Render a hex string as binary, eight digits per byte.

    Decoding stops at the first byte that is not valid hex.
    """
    decoded = bytearray()
    for start in range(0, len(md5_hex) - 1, 2):
        try:
            decoded.append(int(md5_hex[start:start + 2], 16))
        except ValueError:
            break
    return "".join(f"{byte:08b}" for byte in decoded)


def fill_zero(x: str, n: int) -> str:
    """Pad ``x`` on the right with zeros up to ``n`` characters."""
    return x + "0" * max(n - len(x), 0)