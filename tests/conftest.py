"""
Pytest configuration and fixtures for Co-Parent Scheduler tests.

Provides database session fixtures, a two-parent family and a notifier that
records what it was asked to send.
"""

import os

# Settings are cached on first import; point them at an in-memory database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

import uuid
from typing import Generator, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.database import configure_sqlite
from src.models.base import Base
from src.models.family import Family, FamilyMember, PARENT_A, PARENT_B
from src.services.notifications import NotificationMessage, Notifier


class RecordingNotifier(Notifier):
    """Notifier that keeps every (recipients, message) pair it receives."""

    def __init__(self):
        self.sent: list[tuple[list[str], NotificationMessage]] = []

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        self.sent.append((list(recipient_ids), message))

    def of_type(self, notification_type: str) -> list[tuple[list[str], NotificationMessage]]:
        return [(r, m) for r, m in self.sent if m.type == notification_type]


@pytest.fixture(scope="function")
def db_engine():
    """
    In-memory SQLite engine shared across threads.

    StaticPool keeps the single connection alive, so the TestClient's worker
    threads see the same database as the test.
    """
    engine = configure_sqlite(create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create a clean database session for each test.

    Yields:
        Session: SQLAlchemy session for database operations
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def family_factory(db_session: Session):
    """
    Build a persisted family with two parent members.

    Returns:
        Callable returning (family, parent_a, parent_b)
    """

    def _create(
        plan: str = "pro",
        active: bool = True,
        roles: tuple[Optional[str], Optional[str]] = (PARENT_A, PARENT_B),
        parent_a_name: Optional[str] = None,
        parent_b_name: Optional[str] = None,
    ) -> tuple[Family, FamilyMember, FamilyMember]:
        first_id, second_id = uuid.uuid4(), uuid.uuid4()
        family = Family(
            id=uuid.uuid4(),
            member_ids=[str(first_id), str(second_id)],
            plan=plan,
            active=active,
            parent_a_name=parent_a_name,
            parent_b_name=parent_b_name,
        )
        db_session.add(family)
        db_session.flush()

        first = FamilyMember(
            id=first_id,
            name="Ana Popescu",
            email=f"ana-{first_id.hex[:8]}@example.com",
            parent_role=roles[0],
            family_id=family.id,
        )
        second = FamilyMember(
            id=second_id,
            name="Mihai Popescu",
            email=f"mihai-{second_id.hex[:8]}@example.com",
            parent_role=roles[1],
            family_id=family.id,
        )
        db_session.add_all([first, second])
        db_session.commit()
        return family, first, second

    return _create


@pytest.fixture
def family_setup(family_factory):
    """A pro-plan family: (family, parent_a, parent_b)."""
    return family_factory()


@pytest.fixture
def family(family_setup) -> Family:
    return family_setup[0]


@pytest.fixture
def parent_a(family_setup) -> FamilyMember:
    return family_setup[1]


@pytest.fixture
def parent_b(family_setup) -> FamilyMember:
    return family_setup[2]


@pytest.fixture
def outsider(db_session: Session) -> FamilyMember:
    """A member of a different family."""
    other = Family(id=uuid.uuid4(), member_ids=[], plan="pro")
    db_session.add(other)
    db_session.flush()

    member = FamilyMember(
        id=uuid.uuid4(),
        name="Stranger",
        email="stranger@example.com",
        parent_role=PARENT_A,
        family_id=other.id,
    )
    other.member_ids = [str(member.id)]
    db_session.add(member)
    db_session.commit()
    return member
