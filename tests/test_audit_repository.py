"""Tests for the hash-chained audit log."""

import json
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import text

from recruitguard.database.audit_repository import AuditRepository, compute_event_hash
from recruitguard.governance.errors import AuditWriteError
from recruitguard.models.audit_event import AuditAction, AuditClient, AuditEvent, AuditResource
from recruitguard.models.constants import AUDIT_GENESIS_HASH
from recruitguard.models.resource import ResourceType

ACTOR = {"id": "recruiter-carol", "type": "user", "display_name": "Carol Recruiter", "auth_method": "jwt"}


def denied_event(resource_id: str = "job-1", correlation_id: str = "corr-1", resource_type: str = "job") -> AuditEvent:
    return AuditEvent(
        action=AuditAction.DELETE_ATTEMPT_DENIED,
        actor=ACTOR,
        resource=AuditResource(type=resource_type, id=resource_id),
        payload={
            "resource_name": "Backend Engineer",
            "attempted_by": "Carol Recruiter",
            "attempted_operation": "soft_delete",
            "denial_reason": "Non-admin user attempted deletion",
        },
        client=AuditClient(user_agent="pytest", ip="10.0.0.7"),
        correlation_id=correlation_id,
    )


class SequenceClock:
    """Returns the given datetimes in order."""

    def __init__(self, *values):
        self.values = list(values)

    def __call__(self):
        return self.values.pop(0)


@pytest.fixture
def audit_repository(db_session, clock):
    return AuditRepository(db_session, clock)


class TestAuditChain:
    """Sequence numbers and hash links."""

    def test_first_event_links_to_genesis(self, audit_repository):
        event = audit_repository.record(denied_event())

        assert event.sequence == 1
        assert event.prev_hash == AUDIT_GENESIS_HASH
        assert len(event.event_hash) == 64
        assert event.id is not None
        assert event.timestamp is not None

    def test_events_chain_to_their_predecessor(self, audit_repository):
        first = audit_repository.record(denied_event(correlation_id="a"))
        second = audit_repository.record(denied_event(correlation_id="b"))
        third = audit_repository.record(denied_event(correlation_id="c"))

        assert [first.sequence, second.sequence, third.sequence] == [1, 2, 3]
        assert second.prev_hash == first.event_hash
        assert third.prev_hash == second.event_hash

    def test_stored_hash_matches_recomputation(self, audit_repository):
        event = audit_repository.record(denied_event())

        expected = compute_event_hash(
            event.prev_hash,
            event.sequence,
            event.timestamp,
            event.action,
            event.actor,
            event.resource.model_dump(mode="json"),
            event.payload,
            event.client.model_dump(mode="json"),
            event.correlation_id,
        )
        assert event.event_hash == expected

    def test_verify_chain_on_empty_log(self, audit_repository):
        verification = audit_repository.verify_chain()

        assert verification.valid is True
        assert verification.checked == 0

    def test_verify_chain_after_appends(self, audit_repository):
        for i in range(5):
            audit_repository.record(denied_event(correlation_id=f"corr-{i}"))

        verification = audit_repository.verify_chain()
        assert verification.valid is True
        assert verification.checked == 5

    def test_verify_chain_detects_edited_payload(self, audit_repository, db_session):
        for i in range(3):
            audit_repository.record(denied_event(correlation_id=f"corr-{i}"))

        tampered = {
            "resource_name": "Backend Engineer",
            "attempted_by": "Someone Else",
            "attempted_operation": "soft_delete",
            "denial_reason": "Non-admin user attempted deletion",
            "security_violation": True,
        }
        db_session.execute(
            text("UPDATE audit_events SET payload = :payload WHERE sequence = 2"),
            {"payload": json.dumps(tampered)},
        )
        db_session.commit()

        verification = audit_repository.verify_chain()
        assert verification.valid is False
        assert verification.first_broken_sequence == 2
        assert verification.checked == 1

    def test_verify_chain_detects_removed_event(self, audit_repository, db_session):
        for i in range(3):
            audit_repository.record(denied_event(correlation_id=f"corr-{i}"))

        db_session.execute(text("DELETE FROM audit_events WHERE sequence = 2"))
        db_session.commit()

        verification = audit_repository.verify_chain()
        assert verification.valid is False
        assert verification.first_broken_sequence == 3


class TestAuditTimestamps:
    """Server-assigned timestamps never go backwards."""

    def test_timestamp_is_server_assigned(self, db_session):
        stamp = datetime(2026, 5, 1, 12, 0, 0)
        repository = AuditRepository(db_session, SequenceClock(stamp))

        event = repository.record(denied_event())
        assert event.timestamp == stamp

    def test_clock_going_backwards_is_clamped(self, db_session):
        later = datetime(2026, 5, 1, 12, 0, 0)
        earlier = later - timedelta(minutes=5)
        repository = AuditRepository(db_session, SequenceClock(later, earlier))

        first = repository.record(denied_event(correlation_id="a"))
        second = repository.record(denied_event(correlation_id="b"))

        assert second.timestamp >= first.timestamp
        assert repository.verify_chain().valid is True

    def test_aware_timestamps_are_stored_as_utc(self, db_session):
        aware = datetime(2026, 5, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        repository = AuditRepository(db_session, SequenceClock(aware))

        event = repository.record(denied_event())
        assert event.timestamp == datetime(2026, 5, 1, 12, 0, 0)


class TestAuditQueries:
    """Reading the log back."""

    def test_query_filters_by_resource_and_orders_oldest_first(self, audit_repository):
        audit_repository.record(denied_event(resource_id="job-1", correlation_id="first"))
        audit_repository.record(denied_event(resource_id="job-2", correlation_id="other"))
        audit_repository.record(denied_event(resource_id="job-1", correlation_id="second"))

        events = audit_repository.query(ResourceType.JOB, "job-1")
        assert [e.correlation_id for e in events] == ["first", "second"]

    def test_query_does_not_mix_resource_types(self, audit_repository):
        audit_repository.record(denied_event(resource_id="shared-id", resource_type="job"))
        audit_repository.record(denied_event(resource_id="shared-id", resource_type="candidate"))

        assert len(audit_repository.query(ResourceType.CANDIDATE, "shared-id")) == 1

    def test_query_paging(self, audit_repository):
        for i in range(5):
            audit_repository.record(denied_event(correlation_id=f"corr-{i}"))

        page = audit_repository.query(ResourceType.JOB, "job-1", limit=2, offset=2)
        assert [e.correlation_id for e in page] == ["corr-2", "corr-3"]

    def test_by_correlation(self, audit_repository):
        audit_repository.record(denied_event(resource_id="job-1", correlation_id="op-1"))
        audit_repository.record(denied_event(resource_id="job-2", correlation_id="op-2"))
        audit_repository.record(denied_event(resource_id="job-3", correlation_id="op-1"))

        events = audit_repository.by_correlation("op-1")
        assert [e.resource.id for e in events] == ["job-1", "job-3"]


class TestAuditFailures:
    """Audit write failures."""

    def test_try_record_reports_failure_without_raising(self, audit_repository, monkeypatch, caplog):
        def fail(event):
            raise AuditWriteError("disk full")

        monkeypatch.setattr(audit_repository, "record", fail)
        with caplog.at_level("ERROR"):
            assert audit_repository.try_record(denied_event()) is False
        assert "disk full" in caplog.text

    def test_try_record_returns_true_on_success(self, audit_repository):
        assert audit_repository.try_record(denied_event()) is True
        assert audit_repository.verify_chain().checked == 1
