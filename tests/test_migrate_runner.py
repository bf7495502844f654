"""Tests for the deploy-time migration runner's schema checks."""

from recruitguard.database import migrate_runner


def test_required_checks_cover_governance_schema():
    checks = migrate_runner._required_schema_checks()

    for table in ("audit_events", "pre_delete_snapshots", "deletion_approvals", "jobs", "candidates", "feedbacks"):
        assert ("table", table) in checks
    assert ("column:jobs", "deleted_by") in checks
    assert ("column:feedbacks", "deletion_type") in checks
    assert ("index", "uq_deletion_approvals_pending") in checks
    for column in ("phone", "linkedin_url", "resume_url", "erased_at"):
        assert ("column:candidates", column) in checks


def test_missing_requirements_reports_each_gap(monkeypatch):
    monkeypatch.setattr(migrate_runner, "_table_exists", lambda conn, t: t != "deletion_approvals")
    monkeypatch.setattr(migrate_runner, "_column_exists", lambda conn, t, c: not (t == "jobs" and c == "deleted_reason"))
    monkeypatch.setattr(migrate_runner, "_index_exists", lambda conn, i: False)

    missing = migrate_runner._missing_requirements(conn=None)

    assert missing == [
        "missing column: jobs.deleted_reason",
        "missing table: deletion_approvals",
        "missing index: uq_deletion_approvals_pending",
    ]


def test_already_applied_detection():
    assert migrate_runner._looks_like_already_applied(RuntimeError('relation "users" already exists'))
    assert not migrate_runner._looks_like_already_applied(RuntimeError("connection refused"))
