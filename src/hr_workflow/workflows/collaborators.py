"""External collaborators consulted by guards and side effects."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

from hr_workflow.roles import ActorDirectory

logger = logging.getLogger(__name__)


class DocumentChecker(Protocol):
    """Decides whether an onboarding record's documents are complete."""

    def is_complete(self, documents: Mapping[str, Any]) -> bool:
        ...


class IdentityVerifier(Protocol):
    """Confirms the invited employee passed identity verification (e.g. OTP)."""

    def is_verified(self, employee_id: UUID) -> bool:
        ...


class CredentialStore(Protocol):
    """Receives the account credential chosen at the end of onboarding."""

    def set_credential(self, employee_id: UUID, secret: str) -> None:
        ...


REQUIRED_EMPLOYMENT_FIELDS = ("job_title", "department", "employment_type", "joining_date")
REQUIRED_ADDRESS_FIELDS = ("line1", "city", "country")


def _filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


class RequiredDocumentsChecker:
    """Government ID, at least one address, and the employment fields."""

    def missing(self, documents: Mapping[str, Any]) -> list[str]:
        missing: list[str] = []

        government_id = documents.get("government_id") or {}
        if not (_filled(government_id.get("type")) and _filled(government_id.get("number"))):
            missing.append("government_id")

        addresses = documents.get("addresses") or []
        if not any(
            all(_filled(address.get(f)) for f in REQUIRED_ADDRESS_FIELDS)
            for address in addresses
            if isinstance(address, Mapping)
        ):
            missing.append("addresses")

        employment = documents.get("employment") or {}
        missing.extend(
            f"employment.{f}" for f in REQUIRED_EMPLOYMENT_FIELDS if not _filled(employment.get(f))
        )
        return missing

    def is_complete(self, documents: Mapping[str, Any]) -> bool:
        return not self.missing(documents)


class VerifiedIdentityRegistry:
    """Employees whose identity the authentication layer has confirmed.

    The OTP check lives outside the engine and calls ``confirm`` once it
    succeeds. Anyone not confirmed here is refused, whatever a request claims.
    """

    def __init__(self) -> None:
        self._verified: set[UUID] = set()

    def confirm(self, employee_id: UUID) -> None:
        logger.info("Identity confirmed for employee %s", employee_id)
        self._verified.add(employee_id)

    def revoke(self, employee_id: UUID) -> None:
        self._verified.discard(employee_id)

    def is_verified(self, employee_id: UUID) -> bool:
        return employee_id in self._verified


class LoggingCredentialStore:
    """Placeholder store: records that a credential was set, never the secret."""

    def set_credential(self, employee_id: UUID, secret: str) -> None:
        logger.info("Credential set for employee %s", employee_id)


@dataclass
class WorkflowCollaborators:
    """Bundle of collaborators handed to every transition."""

    document_checker: DocumentChecker = field(default_factory=RequiredDocumentsChecker)
    identity_verifier: IdentityVerifier = field(default_factory=VerifiedIdentityRegistry)
    credential_store: CredentialStore = field(default_factory=LoggingCredentialStore)
    actor_directory: ActorDirectory | None = None
