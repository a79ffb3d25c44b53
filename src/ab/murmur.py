"""MurmurHash3, x86 32-bit variant.

Pure Python so the hash stays bit-identical to every other client that
buckets with the same protocol, regardless of platform or C extensions.
"""

_C1 = 0xCC9E2D51
_C2 = 0x1B873593
_MASK = 0xFFFFFFFF


def _rotl32(x: int, r: int) -> int:
    return ((x << r) | (x >> (32 - r))) & _MASK


def _fmix32(h: int) -> int:
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _MASK
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _MASK
    h ^= h >> 16
    return h


def murmur3_32(data: bytes, seed: int = 0) -> int:
    """Return the unsigned 32-bit MurmurHash3 of ``data``."""
    length = len(data)
    h1 = seed & _MASK
    block_end = length - (length % 4)

    for i in range(0, block_end, 4):
        k1 = int.from_bytes(data[i:i + 4], "little")
        k1 = (k1 * _C1) & _MASK
        k1 = _rotl32(k1, 15)
        k1 = (k1 * _C2) & _MASK

        h1 ^= k1
        h1 = _rotl32(h1, 13)
        h1 = (h1 * 5 + 0xE6546B64) & _MASK

    tail = data[block_end:]
    if tail:
        k1 = int.from_bytes(tail, "little")
        k1 = (k1 * _C1) & _MASK
        k1 = _rotl32(k1, 15)
        k1 = (k1 * _C2) & _MASK
        h1 ^= k1

    h1 ^= length
    return _fmix32(h1)
