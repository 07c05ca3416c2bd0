"""
certreg: a single-authority certificate registry.

Identities are Keccak-256 digests of the ABI-encoded certificate fields;
records can be verified and suspended by identity or by credentials.
"""

from .errors import (
    RegistryError,
    DuplicateCertificate,
    CertificateNotFound,
    CertificateValidationError,
    InvalidIdentity,
)
from .identity import (
    CertificateFields,
    encode_certificate_fields,
    derive_identity,
    validate_fields,
    identity_hex,
    parse_identity,
)
from .events import (
    CertificateCreated,
    EventSigner,
    AuditTrail,
    generate_authority_key,
    authority_id,
    public_key_from_authority_id,
    verify_sealed_event,
)
from .registry import (
    CertificateStatus,
    CertificateRecord,
    CertificateRegistry,
)
from .credentials import CredentialRegistry
from .config import RegistrySettings, load_settings

__all__ = [
    "RegistryError",
    "DuplicateCertificate",
    "CertificateNotFound",
    "CertificateValidationError",
    "InvalidIdentity",
    "CertificateFields",
    "encode_certificate_fields",
    "derive_identity",
    "validate_fields",
    "identity_hex",
    "parse_identity",
    "CertificateCreated",
    "EventSigner",
    "AuditTrail",
    "generate_authority_key",
    "authority_id",
    "public_key_from_authority_id",
    "verify_sealed_event",
    "CertificateStatus",
    "CertificateRecord",
    "CertificateRegistry",
    "CredentialRegistry",
    "RegistrySettings",
    "load_settings",
]
