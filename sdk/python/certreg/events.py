"""
Registry notifications and their sealing by the registry authority.

A CertificateCreated is emitted for every successful creation. External
indexers that need to trust the notification stream receive sealed
envelopes: the event's RFC 8785 canonical JSON is hashed with SHA-256 and
the hash is signed with the authority's Ed25519 key. The authority is
named by a did:key identifier, so a verifier needs nothing but the
envelope itself.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import rfc8785
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .identity import CertificateFields, identity_hex
from .utils import (
    utf8_encode,
    uint_be,
    concat_bytes,
    from_hex,
    b64url_encode,
    b64url_decode,
    base58_encode,
    base58_decode,
)

logger = structlog.get_logger("certreg.events")

EVENT_VERSION = "1"
DOMAIN_TAG_EVENT = "CERTREG-EVENT/v1"
NULL_SEPARATOR = b"\x00"
ED25519_MULTICODEC = bytes([0xED, 0x01])
DID_KEY_PREFIX = "did:key:z"


@dataclass(frozen=True)
class CertificateCreated:
    identity: bytes
    expiration_date: int
    created_at: int
    # None for records registered directly by identity
    fields: Optional[CertificateFields] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": "certificate.created",
            "identity": identity_hex(self.identity),
            "expiration_date": self.expiration_date,
            "created_at": self.created_at,
        }
        if self.fields is not None:
            data.update(
                first_name=self.fields.first_name,
                last_name=self.fields.last_name,
                organization_name=self.fields.organization_name,
                issue_date=self.fields.issue_date,
            )
        return data


# ─────────────────────────────────────────────
# Authority key & identifier
# ─────────────────────────────────────────────

def generate_authority_key() -> Tuple[bytes, bytes]:
    """
    Returns (private_key_seed_32_bytes, public_key_32_bytes)
    """
    private_key = Ed25519PrivateKey.generate()
    seed = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return seed, _public_bytes(private_key)


def _public_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def authority_id(public_key: bytes) -> str:
    if len(public_key) != 32:
        raise ValueError("Public key must be 32 bytes")
    return DID_KEY_PREFIX + base58_encode(ED25519_MULTICODEC + public_key)


def public_key_from_authority_id(did: str) -> bytes:
    if not isinstance(did, str) or not did.startswith(DID_KEY_PREFIX):
        raise ValueError("Invalid DID format")

    decoded = base58_decode(did[len(DID_KEY_PREFIX):])
    if decoded[:2] != ED25519_MULTICODEC:
        raise ValueError("Invalid multicodec prefix")

    public_key = decoded[2:]
    if len(public_key) != 32:
        raise ValueError(f"Invalid public key length in DID:key: {len(public_key)}")
    return public_key


# ─────────────────────────────────────────────
# Canonical form & signing input
# ─────────────────────────────────────────────

def canonicalize_event(event_dict: Dict[str, Any]) -> bytes:
    canonical = rfc8785.dumps(event_dict)
    if isinstance(canonical, bytes):
        return canonical
    return utf8_encode(canonical)


def event_digest(event_dict: Dict[str, Any]) -> bytes:
    return hashlib.sha256(canonicalize_event(event_dict)).digest()


def build_event_signing_input(digest: bytes, created_at: int) -> bytes:
    return concat_bytes([
        utf8_encode(DOMAIN_TAG_EVENT),
        NULL_SEPARATOR,
        digest,
        uint_be(created_at, 8),
    ])


class EventSigner:
    def __init__(self, private_key_seed: bytes):
        self._key = Ed25519PrivateKey.from_private_bytes(private_key_seed)
        self.public_key = _public_bytes(self._key)
        self.authority_id = authority_id(self.public_key)

    def seal(self, event: CertificateCreated) -> Dict[str, Any]:
        event_dict = event.to_dict()
        digest = event_digest(event_dict)
        signature = self._key.sign(build_event_signing_input(digest, event.created_at))
        return {
            "version": EVENT_VERSION,
            "authority_id": self.authority_id,
            "event": event_dict,
            "event_hash": f"sha256:{digest.hex()}",
            "signature": b64url_encode(signature),
        }


def verify_sealed_event(envelope: Dict[str, Any], expected_authority: Optional[str] = None) -> bool:
    """
    True only if the envelope is well formed, its hash matches the event
    and the signature verifies under the embedded authority id (and that
    id equals expected_authority, when given).
    """
    try:
        if envelope.get("version") != EVENT_VERSION:
            return False

        did = envelope["authority_id"]
        if expected_authority is not None and did != expected_authority:
            return False

        event_dict = envelope["event"]
        digest = event_digest(event_dict)
        claimed = envelope["event_hash"]
        if not claimed.startswith("sha256:") or from_hex(claimed[7:]) != digest:
            return False

        signing_input = build_event_signing_input(digest, int(event_dict["created_at"]))
        public = Ed25519PublicKey.from_public_bytes(public_key_from_authority_id(did))
        public.verify(b64url_decode(envelope["signature"]), signing_input)
        return True
    except Exception as e:
        logger.debug("sealed_event_rejected", error=str(e))
        return False


class AuditTrail:
    """
    Registry listener that seals every creation notification, in order.
    """

    def __init__(self, signer: EventSigner):
        self.signer = signer
        self.entries: List[Dict[str, Any]] = []

    def __call__(self, event: CertificateCreated) -> None:
        envelope = self.signer.seal(event)
        self.entries.append(envelope)
        logger.debug("event_sealed", identity=envelope["event"]["identity"])
