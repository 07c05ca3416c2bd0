from __future__ import annotations


class RegistryError(Exception):
    """Base class for every error raised by the certificate registry."""


class DuplicateCertificate(RegistryError):
    def __init__(self, identity: bytes) -> None:
        self.identity = identity
        super().__init__(f"Certificate already registered: 0x{identity.hex()}")


class CertificateNotFound(RegistryError):
    def __init__(self, identity: bytes) -> None:
        self.identity = identity
        super().__init__(f"Certificate not found: 0x{identity.hex()}")


class CertificateValidationError(RegistryError, ValueError):
    """Malformed certificate fields, rejected before identity derivation."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidIdentity(RegistryError, ValueError):
    pass
