"""Pytest fixtures and configuration for recruitguard tests."""

import os

# Point the module-level engine at an in-memory database before anything imports it.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("DELETION_APPROVAL_THRESHOLD", None)
os.environ.pop("DELETION_ALLOW_SELF_APPROVAL", None)

import pytest
import uuid
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from recruitguard.database.database import Base
from recruitguard.database.models import CandidateDB, FeedbackDB, JobDB, ShareLinkDB, UserDB
from recruitguard.database.user_repository import UserRepository
from recruitguard.governance.orchestrator import DeletionOrchestrator
from recruitguard.governance.policy import DeletionPolicy
from recruitguard.models.actor import Actor
from recruitguard.models.user import User, UserRole


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

ADMIN_ID = "admin-alice"
SECOND_ADMIN_ID = "admin-bob"
RECRUITER_ID = "recruiter-carol"


class TickingClock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test, with
    two admins and one recruiter already present.
    """
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Register every table, then create them
    from recruitguard.database import models  # noqa: F401
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    users = UserRepository(session)
    now = datetime.utcnow()
    for user_id, email, name, role in (
        (ADMIN_ID, "alice@example.com", "Alice Admin", UserRole.ADMIN),
        (SECOND_ADMIN_ID, "bob@example.com", "Bob Admin", UserRole.ADMIN),
        (RECRUITER_ID, "carol@example.com", "Carol Recruiter", UserRole.RECRUITER),
    ):
        users.create_or_update(User(id=user_id, email=email, name=name, role=role, created_at=now, updated_at=now))

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def policy():
    """Default policy: admins soft-delete directly, no self-approval."""
    return DeletionPolicy()


@pytest.fixture
def orchestrator(db_session: Session, policy, clock):
    return DeletionOrchestrator(db_session, policy=policy, clock=clock)


@pytest.fixture
def admin_actor(db_session: Session) -> Actor:
    return db_session.get(UserDB, ADMIN_ID).to_pydantic().to_actor()


@pytest.fixture
def second_admin_actor(db_session: Session) -> Actor:
    return db_session.get(UserDB, SECOND_ADMIN_ID).to_pydantic().to_actor()


@pytest.fixture
def recruiter_actor(db_session: Session) -> Actor:
    return db_session.get(UserDB, RECRUITER_ID).to_pydantic().to_actor()


@pytest.fixture
def anonymous_actor() -> Actor:
    return Actor.anonymous()


def make_job(db: Session, title: str = "Backend Engineer", share_links: int = 0) -> JobDB:
    job = JobDB(id=str(uuid.uuid4()), title=title, company="Acme")
    db.add(job)
    db.flush()
    for i in range(share_links):
        db.add(ShareLinkDB(job_id=job.id, link_type="client_view" if i % 2 else "share"))
    db.commit()
    return job


def make_candidate(db: Session, job_id: str = None, full_name: str = "Dana Candidate", feedbacks: int = 0) -> CandidateDB:
    candidate = CandidateDB(id=str(uuid.uuid4()), job_id=job_id, full_name=full_name, email="dana@example.com")
    db.add(candidate)
    db.flush()
    for i in range(feedbacks):
        db.add(FeedbackDB(candidate_id=candidate.id, author_id=ADMIN_ID, rating=3, content=f"Interview note {i}"))
    db.commit()
    return candidate


def make_feedback(db: Session, candidate_id: str, content: str = "Strong systems design") -> FeedbackDB:
    feedback = FeedbackDB(id=str(uuid.uuid4()), candidate_id=candidate_id, author_id=ADMIN_ID, rating=4, content=content)
    db.add(feedback)
    db.commit()
    return feedback


@pytest.fixture
def job_with_pipeline(db_session: Session) -> JobDB:
    """Job with three active candidates and two share links (high risk)."""
    job = make_job(db_session, share_links=2)
    for i in range(3):
        make_candidate(db_session, job_id=job.id, full_name=f"Candidate {i}")
    return job


@pytest.fixture
def busy_job(db_session: Session) -> JobDB:
    """Job with twelve active candidates (critical risk)."""
    job = make_job(db_session, title="Staff Engineer")
    for i in range(12):
        make_candidate(db_session, job_id=job.id, full_name=f"Applicant {i}")
    return job


@pytest.fixture
def lone_candidate(db_session: Session) -> CandidateDB:
    """Talent-pool candidate with no feedback (medium risk)."""
    return make_candidate(db_session, full_name="Erin Pool")


@pytest.fixture
def client_factory(db_session: Session):
    """Build FastAPI test clients acting as a given actor."""
    from recruitguard.api.app import app
    from recruitguard.database.database import get_db
    from recruitguard.auth.dependencies import get_current_actor

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    def build(actor: Actor) -> TestClient:
        # Overrides are app-wide: the most recently built client sets the actor.
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_current_actor] = lambda: actor
        return TestClient(app)

    yield build

    app.dependency_overrides.clear()


@pytest.fixture
def test_client(client_factory, admin_actor):
    """Test client authenticated as an admin."""
    return client_factory(admin_actor)


@pytest.fixture
def job_factory(db_session: Session):
    return lambda **kwargs: make_job(db_session, **kwargs)


@pytest.fixture
def candidate_factory(db_session: Session):
    return lambda **kwargs: make_candidate(db_session, **kwargs)


@pytest.fixture
def feedback_factory(db_session: Session):
    return lambda candidate_id, **kwargs: make_feedback(db_session, candidate_id, **kwargs)
