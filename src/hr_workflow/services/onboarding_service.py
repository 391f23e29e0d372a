"""Onboarding service - invitation, document capture and review."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_workflow.errors import Forbidden, GuardFailed, NotFound, WorkflowResult
from hr_workflow.models import AuditEntry, OnboardingRecord
from hr_workflow.roles import Actor
from hr_workflow.services.audit_service import AuditService
from hr_workflow.services.orchestrator import EntityRef, UnitOfWork, WorkflowOrchestrator
from hr_workflow.workflows import EntityType, OnboardingStatus
from hr_workflow.workflows.onboarding import merge_documents


class OnboardingService:
    """Operations on onboarding records.

    Operations:
    - invite: HR/ADMIN creates the record in INVITED
    - update_documents: employee fills document slots while PENDING
    - transition: any edge of the onboarding machine
    - get / history: owner or HR/ADMIN
    - list_records: HR/ADMIN review queue, filtered by status
    """

    def __init__(self, orchestrator: WorkflowOrchestrator):
        self.orchestrator = orchestrator

    async def invite(
        self,
        actor: Actor,
        employee_id: UUID,
        personal_email: str | None = None,
    ) -> WorkflowResult[OnboardingRecord]:
        ttl = timedelta(days=self.orchestrator.settings.invitation_ttl_days)

        async def _invite(uow: UnitOfWork) -> OnboardingRecord:
            actor.require("onboarding:invite", "Only HR or Admin users may invite employees")
            if await uow.session.get(OnboardingRecord, employee_id) is not None:
                raise GuardFailed(f"Employee {employee_id} has already been invited")
            record = OnboardingRecord(
                employee_id=employee_id,
                status=OnboardingStatus.INVITED.value,
                personal_email=personal_email,
                submitted_documents={},
                invited_by=actor.id,
                invited_at=uow.now,
                expires_at=uow.now + ttl,
            )
            uow.session.add(record)
            uow.record(
                "invited",
                EntityType.ONBOARDING,
                employee_id,
                record,
                actor,
                from_state=None,
                to_state=record.status,
            )
            return record

        return await self.orchestrator.run(_invite, description=f"invite {employee_id}")

    async def update_documents(
        self,
        actor: Actor,
        employee_id: UUID,
        documents: Mapping[str, Any],
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[OnboardingRecord]:
        """Merge document slots into a PENDING record (owner only)."""

        async def _update(uow: UnitOfWork) -> OnboardingRecord:
            record: OnboardingRecord = await self.orchestrator.load(
                uow.session, EntityType.ONBOARDING, employee_id, expected_version
            )
            if not actor.owns(record.employee_id):
                raise Forbidden("Only the employee being onboarded may edit their documents")
            if record.status != OnboardingStatus.PENDING.value:
                raise GuardFailed(f"Documents cannot be changed while onboarding is {record.status}")
            record.submitted_documents = merge_documents(record.submitted_documents, documents)
            record.updated_at = uow.now
            return record

        return await self.orchestrator.run(_update, description=f"update documents {employee_id}")

    async def transition(
        self,
        actor: Actor,
        employee_id: UUID,
        to: str,
        payload: Mapping[str, Any] | None = None,
        *,
        expected_version: int | None = None,
    ) -> WorkflowResult[OnboardingRecord]:
        return await self.orchestrator.apply_transition(
            EntityRef(EntityType.ONBOARDING, employee_id),
            to,
            actor,
            payload,
            expected_version=expected_version,
        )

    async def get(self, actor: Actor, employee_id: UUID) -> WorkflowResult[OnboardingRecord]:
        async def _get(session: AsyncSession) -> OnboardingRecord:
            record = await session.get(OnboardingRecord, employee_id)
            if record is None or not _can_view(actor, record.employee_id):
                raise NotFound(f"Onboarding {employee_id} not found")
            return record

        return await self.orchestrator.read(_get)

    async def history(self, actor: Actor, employee_id: UUID) -> WorkflowResult[list[AuditEntry]]:
        """Audit trail of one onboarding record, oldest first."""

        async def _history(session: AsyncSession) -> list[AuditEntry]:
            if not _can_view(actor, employee_id):
                raise NotFound(f"Onboarding {employee_id} not found")
            return await AuditService(session).history(EntityType.ONBOARDING.value, employee_id)

        return await self.orchestrator.read(_history)

    async def list_records(
        self, actor: Actor, status: str | None = None
    ) -> WorkflowResult[list[OnboardingRecord]]:
        """Records awaiting attention, longest-waiting submission first."""
        if not actor.can("onboarding:view:any"):
            return WorkflowResult.failure(
                Forbidden("Only HR or Admin users may list onboarding records")
            )
        status = getattr(status, "value", status)

        async def _list(session: AsyncSession) -> list[OnboardingRecord]:
            query = select(OnboardingRecord)
            if status is not None:
                query = query.where(OnboardingRecord.status == status)
            query = query.order_by(
                OnboardingRecord.submitted_at.asc().nulls_last(),
                OnboardingRecord.invited_at.asc(),
            )
            result = await session.execute(query)
            return list(result.scalars().all())

        return await self.orchestrator.read(_list)


def _can_view(actor: Actor, employee_id: UUID) -> bool:
    return actor.owns(employee_id) or actor.can("onboarding:view:any")
