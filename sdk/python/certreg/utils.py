from __future__ import annotations

import base64
from typing import Iterable

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

WORD_SIZE = 32
UINT256_MODULUS = 1 << 256


def utf8_encode(s: str) -> bytes:
    return s.encode("utf-8")


def uint_be(n: int, size: int) -> bytes:
    """Unsigned big-endian integer in exactly `size` bytes; out of range raises."""
    if not 0 <= n < 1 << (8 * size):
        raise ValueError(f"uint_be: {n} does not fit in {size} bytes")
    return int(n).to_bytes(size, byteorder="big", signed=False)


def uint256_word(n: int) -> bytes:
    """
    One 32-byte big-endian ABI word.

    Values outside [0, 2**256) wrap modulo 2**256, so negatives come out
    as two's complement, matching EVM arithmetic.
    """
    return (int(n) % UINT256_MODULUS).to_bytes(WORD_SIZE, byteorder="big", signed=False)


def pad_right(data: bytes) -> bytes:
    """Zero-pad to the next multiple of the word size (no-op when aligned)."""
    remainder = len(data) % WORD_SIZE
    if remainder == 0:
        return data
    return data + b"\x00" * (WORD_SIZE - remainder)


def concat_bytes(parts: Iterable[bytes]) -> bytes:
    return b"".join(parts)


def from_hex(h: str) -> bytes:
    if h[:2] in ("0x", "0X"):
        h = h[2:]
    if len(h) % 2 != 0:
        raise ValueError("from_hex: hex string must have even length")
    return bytes.fromhex(h)


def b64url_encode(data: bytes) -> str:
    """
    Base64url encoding (RFC 4648 section 5) with no padding.
    """
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    pad = (-len(s)) % 4
    return base64.urlsafe_b64decode((s + ("=" * pad)).encode("ascii"))


def base58_encode(data: bytes) -> str:
    value = int.from_bytes(data, byteorder="big")
    chars: list[str] = []
    while value:
        value, rem = divmod(value, 58)
        chars.append(BASE58_ALPHABET[rem])

    # each leading zero byte is written as a literal "1"
    leading = len(data) - len(data.lstrip(b"\x00"))
    return "1" * leading + "".join(reversed(chars))


def base58_decode(s: str) -> bytes:
    value = 0
    for ch in s:
        digit = BASE58_ALPHABET.find(ch)
        if digit < 0:
            raise ValueError(f"Invalid base58 character: {ch}")
        value = value * 58 + digit

    leading = len(s) - len(s.lstrip("1"))
    body = value.to_bytes((value.bit_length() + 7) // 8, byteorder="big") if value else b""
    return b"\x00" * leading + body
