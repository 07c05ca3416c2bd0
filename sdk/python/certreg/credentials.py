"""
Credential-addressed access to a CertificateRegistry.

Every operation re-derives the identity from the five certificate fields
and delegates to the hash-addressed operation, so for any fields f:

    verify_by_credentials(*f) == verify_by_hash(derive_identity(*f))
"""

from __future__ import annotations

from typing import List, Optional

from .events import CertificateCreated
from .identity import derive_identity, validate_fields
from .registry import CertificateRegistry


class CredentialRegistry:
    def __init__(self, registry: CertificateRegistry):
        self.registry = registry

    def create_certificate(
        self,
        first_name: str,
        last_name: str,
        organization_name: str,
        issue_date: int,
        expiration_date: int,
        effects: Optional[List[CertificateCreated]] = None,
    ) -> bytes:
        return self.registry.create(
            first_name,
            last_name,
            organization_name,
            issue_date,
            expiration_date,
            effects=effects,
        )

    def verify_by_credentials(
        self,
        first_name: str,
        last_name: str,
        organization_name: str,
        issue_date: int,
        expiration_date: int,
        now: Optional[int] = None,
    ) -> bool:
        texts = (first_name, last_name, organization_name)
        stamps = (issue_date, expiration_date)
        if not all(isinstance(t, str) for t in texts) or not all(isinstance(t, int) for t in stamps):
            return False
        # unvalidated: must agree with verify_by_hash(derive_identity(...))
        identity = derive_identity(*texts, *stamps)
        return self.registry.verify(identity, now=now)

    def suspend_by_credentials(
        self,
        first_name: str,
        last_name: str,
        organization_name: str,
        issue_date: int,
        expiration_date: int,
    ) -> bytes:
        fields = validate_fields(
            first_name,
            last_name,
            organization_name,
            issue_date,
            expiration_date,
            max_field_length=self.registry.max_field_length,
        )
        identity = fields.identity()
        self.registry.suspend(identity)
        return identity

    def verify_by_hash(self, identity: bytes | str, now: Optional[int] = None) -> bool:
        return self.registry.verify(identity, now=now)

    def suspend_by_hash(self, identity: bytes | str) -> None:
        self.registry.suspend(identity)
