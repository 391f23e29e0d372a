"""Onboarding workflow tests: invitation through completion."""

from __future__ import annotations

import asyncio

import pytest

from hr_workflow.errors import ErrorKind

pytestmark = pytest.mark.asyncio


async def _invited(onboarding_service, hr, employee):
    result = await onboarding_service.invite(hr, employee.id, "new.hire@example.com")
    assert result.ok, result.error
    return result.entity


def _verify_identity(onboarding_service, employee):
    onboarding_service.orchestrator.collaborators.identity_verifier.confirm(employee.id)


async def _accepted(onboarding_service, employee):
    _verify_identity(onboarding_service, employee)
    result = await onboarding_service.transition(employee, employee.id, "PENDING")
    assert result.ok, result.error
    return result.entity


async def _submitted(onboarding_service, hr, employee, documents):
    await _invited(onboarding_service, hr, employee)
    await _accepted(onboarding_service, employee)
    result = await onboarding_service.transition(
        employee, employee.id, "SUBMITTED", {"documents": documents}
    )
    assert result.ok, result.error
    return result.entity


class TestInvite:
    """HR/ADMIN create onboarding records."""

    async def test_invite_creates_invited_record(self, onboarding_service, hr, employee, clock):
        record = await _invited(onboarding_service, hr, employee)

        assert record.status == "INVITED"
        assert record.invited_by == hr.id
        assert record.invited_at == clock.now
        assert (record.expires_at - record.invited_at).days == 7
        assert record.reviewer_id is None
        assert record.version == 1

    async def test_employee_cannot_invite(self, onboarding_service, employee, other_employee):
        result = await onboarding_service.invite(employee, other_employee.id)

        assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_second_invitation_rejected(self, onboarding_service, hr, admin, employee):
        await _invited(onboarding_service, hr, employee)

        result = await onboarding_service.invite(admin, employee.id)

        assert result.error.kind is ErrorKind.GUARD_FAILED

    async def test_get_unknown_record(self, onboarding_service, hr, employee):
        result = await onboarding_service.get(hr, employee.id)

        assert result.error.kind is ErrorKind.NOT_FOUND


class TestAcceptInvitation:
    async def test_identity_verification_required(self, onboarding_service, hr, employee):
        await _invited(onboarding_service, hr, employee)

        result = await onboarding_service.transition(employee, employee.id, "PENDING")

        assert result.error.kind is ErrorKind.GUARD_FAILED
        assert (await onboarding_service.get(hr, employee.id)).entity.status == "INVITED"

    async def test_payload_cannot_vouch_for_identity(self, onboarding_service, hr, employee):
        await _invited(onboarding_service, hr, employee)

        result = await onboarding_service.transition(
            employee, employee.id, "PENDING", {"identity_verified": True}
        )

        assert result.error.kind is ErrorKind.GUARD_FAILED
        assert result.error.message == "Identity verification has not succeeded"

    async def test_expired_invitation(self, onboarding_service, hr, employee, clock):
        await _invited(onboarding_service, hr, employee)
        _verify_identity(onboarding_service, employee)
        clock.advance(days=8)

        result = await onboarding_service.transition(employee, employee.id, "PENDING")

        assert result.error.kind is ErrorKind.GUARD_FAILED
        assert "expired" in result.error.message

    async def test_only_the_invitee_accepts(self, onboarding_service, hr, employee, other_employee):
        await _invited(onboarding_service, hr, employee)
        _verify_identity(onboarding_service, employee)

        for actor in (other_employee, hr):
            result = await onboarding_service.transition(actor, employee.id, "PENDING")
            assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_accept_records_verification(self, onboarding_service, hr, employee, clock):
        await _invited(onboarding_service, hr, employee)

        record = await _accepted(onboarding_service, employee)

        assert record.status == "PENDING"
        assert record.verified_at == clock.now


class TestDocuments:
    async def test_incomplete_documents_block_submission(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _invited(onboarding_service, hr, employee)
        await _accepted(onboarding_service, employee)
        partial = {"government_id": complete_documents["government_id"]}

        result = await onboarding_service.transition(
            employee, employee.id, "SUBMITTED", {"documents": partial}
        )

        assert result.error.kind is ErrorKind.GUARD_FAILED
        record = (await onboarding_service.get(employee, employee.id)).entity
        assert record.status == "PENDING"
        assert record.submitted_documents == {}

    async def test_documents_merge_across_updates(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _invited(onboarding_service, hr, employee)
        await _accepted(onboarding_service, employee)

        first = await onboarding_service.update_documents(
            employee, employee.id, {"government_id": complete_documents["government_id"]}
        )
        assert first.ok
        second = await onboarding_service.update_documents(
            employee,
            employee.id,
            {
                "addresses": complete_documents["addresses"],
                "employment": complete_documents["employment"],
            },
        )
        assert set(second.entity.submitted_documents) == {"government_id", "addresses", "employment"}

        result = await onboarding_service.transition(employee, employee.id, "SUBMITTED")
        assert result.ok, result.error

    async def test_documents_locked_outside_pending(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        result = await onboarding_service.update_documents(employee, employee.id, {"x": 1})

        assert result.error.kind is ErrorKind.GUARD_FAILED

    async def test_only_owner_edits_documents(self, onboarding_service, hr, employee):
        await _invited(onboarding_service, hr, employee)
        await _accepted(onboarding_service, employee)

        result = await onboarding_service.update_documents(hr, employee.id, {"x": 1})

        assert result.error.kind is ErrorKind.FORBIDDEN


class TestReview:
    async def test_rejection_requires_comment(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        result = await onboarding_service.transition(hr, employee.id, "REJECTED", {"comments": " "})

        assert result.error.kind is ErrorKind.GUARD_FAILED

    async def test_employee_cannot_review(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        result = await onboarding_service.transition(employee, employee.id, "APPROVED")

        assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_approval_sets_reviewer(
        self, onboarding_service, admin, hr, employee, complete_documents, clock
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        result = await onboarding_service.transition(admin, employee.id, "APPROVED")

        assert result.entity.status == "APPROVED"
        assert result.entity.reviewer_id == admin.id
        assert result.entity.reviewed_at == clock.now
        assert result.entity.review_comments is None

    async def test_stale_second_review(
        self, onboarding_service, hr, admin, employee, complete_documents
    ):
        record = await _submitted(onboarding_service, hr, employee, complete_documents)
        seen_version = record.version

        first = await onboarding_service.transition(
            hr, employee.id, "APPROVED", expected_version=seen_version
        )
        second = await onboarding_service.transition(
            admin,
            employee.id,
            "REJECTED",
            {"comments": "missing ID"},
            expected_version=seen_version,
        )

        assert first.ok
        assert second.error.kind is ErrorKind.STALE_STATE
        assert second.error.kind.retryable is True
        current = (await onboarding_service.get(hr, employee.id)).entity
        assert current.status == "APPROVED"
        assert current.reviewer_id == hr.id

    async def test_review_after_decision_is_stale_without_version(
        self, onboarding_service, hr, admin, employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        first = await onboarding_service.transition(hr, employee.id, "APPROVED")
        again = await onboarding_service.transition(admin, employee.id, "APPROVED")
        reject = await onboarding_service.transition(
            admin, employee.id, "REJECTED", {"comments": "missing ID"}
        )

        assert first.ok
        assert again.error.kind is ErrorKind.STALE_STATE
        assert reject.error.kind is ErrorKind.STALE_STATE
        current = (await onboarding_service.get(hr, employee.id)).entity
        assert (current.status, current.reviewer_id, current.version) == ("APPROVED", hr.id, 4)

    async def test_employee_gets_forbidden_not_stale(
        self, onboarding_service, hr, employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)
        await onboarding_service.transition(hr, employee.id, "APPROVED")

        result = await onboarding_service.transition(employee, employee.id, "APPROVED")

        assert result.error.kind is ErrorKind.FORBIDDEN

    async def test_concurrent_reviews_exactly_one_wins(
        self, onboarding_service, hr, admin, employee, complete_documents
    ):
        record = await _submitted(onboarding_service, hr, employee, complete_documents)

        results = await asyncio.gather(
            onboarding_service.transition(
                hr, employee.id, "APPROVED", expected_version=record.version
            ),
            onboarding_service.transition(
                admin,
                employee.id,
                "REJECTED",
                {"comments": "missing ID"},
                expected_version=record.version,
            ),
        )

        winners = [r for r in results if r.ok]
        losers = [r for r in results if not r.ok]
        assert len(winners) == 1
        assert losers[0].error.kind is ErrorKind.STALE_STATE

        current = (await onboarding_service.get(hr, employee.id)).entity
        assert current.status == winners[0].entity.status
        assert current.reviewer_id == winners[0].entity.reviewer_id

        history = (await onboarding_service.history(hr, employee.id)).entity
        assert [e.to_state for e in history].count(current.status) == 1


class TestFullScenario:
    async def test_rejection_resubmission_completion(
        self, onboarding_service, hr, employee, complete_documents, credential_store
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)

        rejected = await onboarding_service.transition(
            hr, employee.id, "REJECTED", {"comments": "missing ID"}
        )
        assert rejected.entity.status == "REJECTED"
        assert rejected.entity.review_comments == "missing ID"

        reopened = await onboarding_service.transition(employee, employee.id, "PENDING")
        assert reopened.entity.status == "PENDING"
        assert reopened.entity.reviewer_id is None
        # prior documents are kept for the resubmission
        assert reopened.entity.submitted_documents == complete_documents

        resubmitted = await onboarding_service.transition(employee, employee.id, "SUBMITTED")
        assert resubmitted.entity.status == "SUBMITTED"

        approved = await onboarding_service.transition(hr, employee.id, "APPROVED")
        assert approved.entity.status == "APPROVED"
        assert approved.entity.reviewer_id == hr.id

        weak = await onboarding_service.transition(
            employee, employee.id, "COMPLETED", {"password": "short"}
        )
        assert weak.error.kind is ErrorKind.GUARD_FAILED
        assert credential_store.secrets == {}

        completed = await onboarding_service.transition(
            employee, employee.id, "COMPLETED", {"password": "correct-horse-battery"}
        )
        assert completed.entity.status == "COMPLETED"
        assert completed.entity.completed_at is not None
        assert credential_store.secrets == {employee.id: "correct-horse-battery"}

        for target in ("PENDING", "SUBMITTED", "INVITED"):
            result = await onboarding_service.transition(employee, employee.id, target)
            assert result.error.kind is ErrorKind.INVALID_TRANSITION
        for target in ("APPROVED", "REJECTED"):
            result = await onboarding_service.transition(hr, employee.id, target)
            assert result.error.kind is ErrorKind.STALE_STATE

        history = (await onboarding_service.history(hr, employee.id)).entity
        assert [(e.from_state, e.to_state) for e in history] == [
            (None, "INVITED"),
            ("INVITED", "PENDING"),
            ("PENDING", "SUBMITTED"),
            ("SUBMITTED", "REJECTED"),
            ("REJECTED", "PENDING"),
            ("PENDING", "SUBMITTED"),
            ("SUBMITTED", "APPROVED"),
            ("APPROVED", "COMPLETED"),
        ]
        assert history[3].actor_id == hr.id
        assert history[3].note == "missing ID"

    async def test_history_is_private(self, onboarding_service, hr, employee, other_employee):
        await _invited(onboarding_service, hr, employee)

        assert (await onboarding_service.history(employee, employee.id)).ok
        result = await onboarding_service.history(other_employee, employee.id)
        assert result.error.kind is ErrorKind.NOT_FOUND

    async def test_concurrent_completion_hands_over_one_credential(
        self, onboarding_service, hr, employee, complete_documents, credential_store
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)
        await onboarding_service.transition(hr, employee.id, "APPROVED")

        results = await asyncio.gather(
            onboarding_service.transition(
                employee, employee.id, "COMPLETED", {"password": "first-password"}
            ),
            onboarding_service.transition(
                employee, employee.id, "COMPLETED", {"password": "second-password"}
            ),
        )

        winners = [r for r in results if r.ok]
        assert len(winners) == 1
        winning_password = "first-password" if results[0].ok else "second-password"
        assert credential_store.secrets == {employee.id: winning_password}


class TestReviewQueue:
    async def test_submitted_records_for_hr(
        self, onboarding_service, hr, employee, other_employee, complete_documents
    ):
        await _submitted(onboarding_service, hr, employee, complete_documents)
        await _invited(onboarding_service, hr, other_employee)

        queue = await onboarding_service.list_records(hr, status="SUBMITTED")
        everyone = await onboarding_service.list_records(hr)

        assert [r.employee_id for r in queue.entity] == [employee.id]
        assert {r.employee_id for r in everyone.entity} == {employee.id, other_employee.id}

    async def test_oldest_submission_first(
        self, onboarding_service, hr, employee, other_employee, complete_documents, clock
    ):
        await _submitted(onboarding_service, hr, other_employee, complete_documents)
        clock.advance(hours=1)
        await _submitted(onboarding_service, hr, employee, complete_documents)

        queue = (await onboarding_service.list_records(hr, status="SUBMITTED")).entity

        assert [r.employee_id for r in queue] == [other_employee.id, employee.id]

    async def test_employees_cannot_list(self, onboarding_service, employee):
        result = await onboarding_service.list_records(employee)

        assert result.error.kind is ErrorKind.FORBIDDEN
