"""Tests for ApprovalRepository and the single-pending invariant."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recruitguard.database.approval_repository import ApprovalRepository
from recruitguard.database.database import Base
from recruitguard.governance.errors import AlreadyDecided, DuplicatePendingRequest, NotFound
from recruitguard.models.approval import ApprovalDecision, ApprovalStatus
from recruitguard.models.resource import Resource, ResourceType, RiskLevel


@pytest.fixture
def approval_repository(db_session, clock):
    return ApprovalRepository(db_session, clock)


def file_request(repository, resource_id="job-1", requested_by="recruiter-carol", risk_level=RiskLevel.HIGH):
    return repository.create(ResourceType.JOB, resource_id, requested_by, "Duplicate posting", risk_level)


class TestCreateApproval:
    """Filing approvals."""

    def test_create_pending_approval(self, approval_repository):
        approval = file_request(approval_repository, risk_level=RiskLevel.HIGH)

        assert approval.status == "pending"
        assert approval.is_pending
        assert approval.requires_mfa is False
        assert approval.correlation_id
        assert approval.decided_by is None

    def test_critical_risk_requires_mfa(self, approval_repository):
        approval = file_request(approval_repository, risk_level=RiskLevel.CRITICAL)
        assert approval.requires_mfa is True

    def test_metadata_round_trips(self, approval_repository):
        approval = approval_repository.create(
            ResourceType.CANDIDATE, "cand-1", "recruiter-carol", "GDPR erasure", RiskLevel.MEDIUM,
            metadata={"ticket": "PRIV-7"},
        )
        assert approval_repository.get(approval.id).metadata == {"ticket": "PRIV-7"}

    def test_request_for_resource_keeps_display_name(self, approval_repository, recruiter_actor):
        resource = Resource(resource_type=ResourceType.FEEDBACK, resource_id="fb-9", display_name="Panel notes")

        approval = approval_repository.request(resource, recruiter_actor, "Wrong candidate", RiskLevel.MEDIUM,
                                               metadata={"ticket": "PRIV-8"})

        assert approval.requested_by == recruiter_actor.id
        assert approval.resource_type == "feedback"
        assert approval.metadata == {"ticket": "PRIV-8", "resource_name": "Panel notes"}

    def test_second_pending_for_same_resource_is_rejected(self, approval_repository):
        file_request(approval_repository)

        with pytest.raises(DuplicatePendingRequest):
            file_request(approval_repository, requested_by="admin-bob")

        assert len(approval_repository.list(ApprovalStatus.PENDING)) == 1

    def test_pending_for_other_resource_is_allowed(self, approval_repository):
        file_request(approval_repository, resource_id="job-1")
        file_request(approval_repository, resource_id="job-2")

        assert len(approval_repository.list(ApprovalStatus.PENDING)) == 2

    def test_new_request_allowed_after_decision(self, approval_repository):
        first = file_request(approval_repository)
        approval_repository.decide(first.id, ApprovalDecision.REJECTED, "admin-alice", "Still hiring")

        second = file_request(approval_repository)
        assert second.id != first.id
        assert approval_repository.pending_for(ResourceType.JOB, "job-1").id == second.id

    def test_racing_sessions_leave_exactly_one_pending(self, tmp_path):
        """Both sessions pass the read check; the store rejects the second insert."""
        engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
        from recruitguard.database import models  # noqa: F401
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        session_a, session_b = Session(), Session()
        try:
            repo_a, repo_b = ApprovalRepository(session_a), ApprovalRepository(session_b)
            assert repo_a.pending_for(ResourceType.JOB, "job-1") is None
            assert repo_b.pending_for(ResourceType.JOB, "job-1") is None

            file_request(repo_a)
            with pytest.raises(DuplicatePendingRequest):
                file_request(repo_b, requested_by="admin-bob")

            assert len(repo_a.list(ApprovalStatus.PENDING)) == 1
        finally:
            session_a.close()
            session_b.close()
            engine.dispose()


class TestDecideApproval:
    """Pending -> approved | rejected, exactly once."""

    def test_approve(self, approval_repository):
        approval = file_request(approval_repository, risk_level=RiskLevel.CRITICAL)

        decided = approval_repository.decide(approval.id, ApprovalDecision.APPROVED, "admin-alice", mfa_verified=True)
        assert decided.status == "approved"
        assert decided.decided_by == "admin-alice"
        assert decided.decided_at is not None
        assert decided.mfa_verified is True

    def test_reject_records_reason(self, approval_repository):
        approval = file_request(approval_repository)

        decided = approval_repository.decide(approval.id, ApprovalDecision.REJECTED, "admin-alice", "Still hiring")
        assert decided.status == "rejected"
        assert decided.rejection_reason == "Still hiring"

    def test_second_decision_is_rejected(self, approval_repository):
        approval = file_request(approval_repository)
        approval_repository.decide(approval.id, ApprovalDecision.APPROVED, "admin-alice")

        with pytest.raises(AlreadyDecided):
            approval_repository.decide(approval.id, ApprovalDecision.REJECTED, "admin-bob", "Changed my mind")

        assert approval_repository.get(approval.id).status == "approved"
        assert approval_repository.get(approval.id).decided_by == "admin-alice"

    def test_decide_unknown_approval(self, approval_repository):
        with pytest.raises(NotFound):
            approval_repository.decide("missing", ApprovalDecision.APPROVED, "admin-alice")

    def test_list_filters_by_status(self, approval_repository):
        kept = file_request(approval_repository, resource_id="job-1")
        decided = file_request(approval_repository, resource_id="job-2")
        approval_repository.decide(decided.id, ApprovalDecision.APPROVED, "admin-alice")

        assert [a.id for a in approval_repository.list(ApprovalStatus.PENDING)] == [kept.id]
        assert [a.id for a in approval_repository.list(ApprovalStatus.APPROVED)] == [decided.id]
        assert len(approval_repository.list()) == 2
