"""Tests for the closed audit action taxonomy and its payload contracts."""

import pytest
from pydantic import ValidationError

from recruitguard.models.audit_event import (
    AUDIT_PAYLOAD_CONTRACTS,
    AuditAction,
    AuditEvent,
    AuditResource,
    HARD_DELETE_ACTIONS,
    RESTORE_ACTIONS,
    SOFT_DELETE_ACTIONS,
)
from recruitguard.models.resource import ResourceType

ACTOR = {"id": "admin-alice", "type": "user", "display_name": "Alice Admin", "auth_method": "jwt"}


class TestAuditActionTaxonomy:
    """Every action has exactly one payload contract."""

    def test_every_action_has_a_contract(self):
        assert set(AUDIT_PAYLOAD_CONTRACTS) == set(AuditAction)

    def test_every_resource_type_has_delete_and_restore_actions(self):
        for resource_type in ResourceType:
            assert resource_type.value in SOFT_DELETE_ACTIONS
            assert resource_type.value in HARD_DELETE_ACTIONS
            assert resource_type.value in RESTORE_ACTIONS


class TestAuditEventPayloads:
    """Payloads are validated against the contract of their action."""

    def test_valid_soft_delete_payload_gets_defaults(self):
        event = AuditEvent(
            action=AuditAction.JOB_SOFT_DELETE,
            actor=ACTOR,
            resource=AuditResource(type="job", id="job-1"),
            payload={
                "resource_name": "Backend Engineer",
                "deletion_reason": "Position filled",
                "risk_level": "high",
                "snapshot_id": "snap-1",
                "pre_snapshot": {"id": "job-1", "title": "Backend Engineer"},
            },
            correlation_id="corr-1",
        )

        assert event.action == "JOB_SOFT_DELETE"
        assert event.payload["deletion_type"] == "SOFT"
        assert event.payload["recoverable"] is True
        assert event.payload["deactivated_share_links"] == 0

    def test_missing_required_field_is_rejected(self):
        with pytest.raises(ValidationError):
            AuditEvent(
                action=AuditAction.CANDIDATE_HARD_DELETE,
                actor=ACTOR,
                resource=AuditResource(type="candidate", id="cand-1"),
                payload={"resource_name": "Dana", "deletion_reason": "GDPR request"},
                correlation_id="corr-2",
            )

    def test_unknown_action_is_rejected(self):
        with pytest.raises(ValidationError):
            AuditEvent(
                action="CANDIDATE_ARCHIVED",
                actor=ACTOR,
                resource=AuditResource(type="candidate", id="cand-1"),
                payload={},
                correlation_id="corr-3",
            )

    def test_extra_payload_keys_are_kept(self):
        event = AuditEvent(
            action=AuditAction.DELETE_APPROVAL_REJECTED,
            actor=ACTOR,
            resource=AuditResource(type="job", id="job-1", path="/approvals/appr-1"),
            payload={
                "approval_id": "appr-1",
                "resource_type": "job",
                "resource_id": "job-1",
                "rejected_by": "Alice Admin",
                "rejection_reason": "Still hiring",
                "ticket": "HR-42",
            },
            correlation_id="corr-4",
        )

        assert event.payload["ticket"] == "HR-42"

    def test_erasure_complete_payload(self):
        event = AuditEvent(
            action=AuditAction.GDPR_ERASURE_COMPLETE,
            actor=ACTOR,
            resource=AuditResource(type="candidate", id="cand-1"),
            payload={
                "erasure_reason": "Data subject request",
                "legal_basis": "GDPR Art. 17",
                "snapshot_id": "snap-9",
                "erased_fields": ["full_name", "email"],
            },
            correlation_id="corr-5",
        )

        assert event.payload["recoverable"] is False
        assert event.payload["redacted_records"] == 0

        with pytest.raises(ValidationError):
            AuditEvent(
                action=AuditAction.GDPR_ERASURE_COMPLETE,
                actor=ACTOR,
                resource=AuditResource(type="candidate", id="cand-1"),
                payload={"erasure_reason": "Data subject request", "legal_basis": "GDPR Art. 17"},
                correlation_id="corr-6",
            )
