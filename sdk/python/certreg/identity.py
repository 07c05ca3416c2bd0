"""
Certificate identity derivation.

An identity is the Keccak-256 digest of the contract-ABI encoding of the
typed tuple (string, string, string, uint256, uint256):

    head   five 32-byte words: three byte offsets to the string tails,
           then issue_date and expiration_date
    tail   per string: a 32-byte length word, then the UTF-8 bytes
           zero-padded to a word boundary

Any independent verifier that ABI-encodes the same tuple and hashes it
with Keccak-256 arrives at the same 32 bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, astuple
from typing import Tuple

from eth_hash.auto import keccak

from .errors import CertificateValidationError, InvalidIdentity
from .utils import (
    WORD_SIZE,
    UINT256_MODULUS,
    utf8_encode,
    uint256_word,
    pad_right,
    concat_bytes,
    from_hex,
)

IDENTITY_SIZE = 32
DEFAULT_MAX_FIELD_LENGTH = 256

TEXT_FIELDS = ("first_name", "last_name", "organization_name")
TIMESTAMP_FIELDS = ("issue_date", "expiration_date")


@dataclass(frozen=True)
class CertificateFields:
    first_name: str
    last_name: str
    organization_name: str
    issue_date: int
    expiration_date: int

    def as_tuple(self) -> Tuple[str, str, str, int, int]:
        return astuple(self)

    def encode(self) -> bytes:
        return encode_certificate_fields(*self.as_tuple())

    def identity(self) -> bytes:
        return derive_identity(*self.as_tuple())


# ─────────────────────────────────────────────
# Canonical encoding
# ─────────────────────────────────────────────

def _string_tail(value: str) -> bytes:
    raw = utf8_encode(value)
    return concat_bytes([uint256_word(len(raw)), pad_right(raw)])


def encode_certificate_fields(
    first_name: str,
    last_name: str,
    organization_name: str,
    issue_date: int,
    expiration_date: int,
) -> bytes:
    tails = [_string_tail(s) for s in (first_name, last_name, organization_name)]

    head: list[bytes] = []
    offset = 5 * WORD_SIZE
    for tail in tails:
        head.append(uint256_word(offset))
        offset += len(tail)
    head.append(uint256_word(issue_date))
    head.append(uint256_word(expiration_date))

    return concat_bytes(head + tails)


def derive_identity(
    first_name: str,
    last_name: str,
    organization_name: str,
    issue_date: int,
    expiration_date: int,
) -> bytes:
    """
    Returns the 32-byte identity of a certificate.

    Pure and total: timestamps outside the uint256 range are not rejected
    here, they wrap like EVM words. Use validate_fields() first.
    """
    encoded = encode_certificate_fields(
        first_name,
        last_name,
        organization_name,
        issue_date,
        expiration_date,
    )
    return keccak(encoded)


# ─────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────

def _check_text(name: str, value: object, max_length: int) -> None:
    if not isinstance(value, str):
        raise CertificateValidationError(name, f"expected str, got {type(value).__name__}")
    if not value.strip():
        raise CertificateValidationError(name, "must not be empty")
    if len(utf8_encode(value)) > max_length:
        raise CertificateValidationError(name, f"longer than {max_length} bytes")


def validate_timestamp(name: str, value: object) -> None:
    # bool is an int subclass; True is not a timestamp
    if isinstance(value, bool) or not isinstance(value, int):
        raise CertificateValidationError(name, f"expected int seconds, got {type(value).__name__}")
    if value < 0:
        raise CertificateValidationError(name, "must not be negative")
    if value >= UINT256_MODULUS:
        raise CertificateValidationError(name, "exceeds uint256")


def validate_fields(
    first_name: str,
    last_name: str,
    organization_name: str,
    issue_date: int,
    expiration_date: int,
    max_field_length: int = DEFAULT_MAX_FIELD_LENGTH,
) -> CertificateFields:
    values = (first_name, last_name, organization_name, issue_date, expiration_date)
    for name, value in zip(TEXT_FIELDS, values[:3]):
        _check_text(name, value, max_field_length)
    for name, value in zip(TIMESTAMP_FIELDS, values[3:]):
        validate_timestamp(name, value)
    return CertificateFields(*values)


# ─────────────────────────────────────────────
# Boundary rendering
# ─────────────────────────────────────────────

def identity_hex(identity: bytes) -> str:
    return f"0x{identity.hex()}"


def parse_identity(value: bytes | str) -> bytes:
    """
    Accepts 32 raw bytes or 64 hex digits (optionally 0x-prefixed).
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        try:
            raw = from_hex(value.strip())
        except ValueError as e:
            raise InvalidIdentity(f"Invalid identity hex: {value!r}") from e
    else:
        raise InvalidIdentity(f"Unsupported identity type: {type(value).__name__}")

    if len(raw) != IDENTITY_SIZE:
        raise InvalidIdentity(f"Identity must be {IDENTITY_SIZE} bytes, got {len(raw)}")
    return raw
