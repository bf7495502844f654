"""Tests for deletion risk assessment."""

import pytest
from datetime import datetime
from unittest.mock import MagicMock

from recruitguard.database.resource_repository import ResourceRepository
from recruitguard.governance.risk import RiskAssessor, UNASSESSED_REASON, classify_dependents
from recruitguard.models.resource import ResourceType, RiskLevel, risk_at_least


class TestClassifyDependents:
    """Dependent counts map onto the three risk levels."""

    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, RiskLevel.MEDIUM),
            (1, RiskLevel.HIGH),
            (10, RiskLevel.HIGH),
            (11, RiskLevel.CRITICAL),
            (250, RiskLevel.CRITICAL),
        ],
    )
    def test_thresholds(self, count, expected):
        assert classify_dependents(count) == expected

    def test_risk_ordering(self):
        assert risk_at_least(RiskLevel.CRITICAL, RiskLevel.HIGH)
        assert risk_at_least(RiskLevel.HIGH, RiskLevel.HIGH)
        assert not risk_at_least(RiskLevel.MEDIUM, RiskLevel.HIGH)


class TestRiskAssessor:
    """Risk assessment against real rows."""

    def test_job_without_candidates_is_medium(self, db_session, job_factory):
        job = job_factory()
        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.JOB, job.id)

        assert assessment.risk_level == RiskLevel.MEDIUM
        assert assessment.reason == "Low-risk deletion"
        assert assessment.dependent_count == 0
        assert assessment.assessed is True

    def test_job_with_pipeline_is_high(self, db_session, job_with_pipeline):
        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.JOB, job_with_pipeline.id)

        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.reason == "Resource has active dependencies"
        assert assessment.dependent_count == 3

    def test_job_with_many_candidates_is_critical(self, db_session, busy_job):
        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.JOB, busy_job.id)

        assert assessment.risk_level == RiskLevel.CRITICAL
        assert assessment.reason == "Resource has many active dependencies (>10)"
        assert assessment.dependent_count == 12

    def test_soft_deleted_dependents_do_not_count(self, db_session, job_factory, candidate_factory):
        job = job_factory()
        candidate_factory(job_id=job.id)
        gone = candidate_factory(job_id=job.id)
        ResourceRepository(db_session).soft_delete(
            ResourceType.CANDIDATE, gone.id, "admin-alice", "Duplicate profile", datetime.utcnow()
        )

        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.JOB, job.id)
        assert assessment.dependent_count == 1

    def test_candidate_risk_counts_feedback(self, db_session, candidate_factory):
        candidate = candidate_factory(feedbacks=2)
        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.CANDIDATE, candidate.id)

        assert assessment.risk_level == RiskLevel.HIGH
        assert assessment.dependent_count == 2

    def test_feedback_has_no_dependents(self, db_session, candidate_factory, feedback_factory):
        feedback = feedback_factory(candidate_factory().id)
        assessment = RiskAssessor(ResourceRepository(db_session)).assess(ResourceType.FEEDBACK, feedback.id)

        assert assessment.risk_level == RiskLevel.MEDIUM

    def test_query_failure_falls_back_to_medium(self, caplog):
        resources = MagicMock()
        resources.count_active_dependents.side_effect = RuntimeError("database is locked")

        with caplog.at_level("WARNING"):
            assessment = RiskAssessor(resources).assess(ResourceType.JOB, "job-1")

        assert assessment.risk_level == RiskLevel.MEDIUM
        assert assessment.reason == UNASSESSED_REASON
        assert assessment.assessed is False
        assert "database is locked" in caplog.text
