"""
Pytest configuration and fixtures for backend tests.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Set test environment variables before importing config
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("AUTOMATED_MODERATION_AUTO_HIDE_ENABLED", None)
os.environ.pop("AUTOMATED_MODERATION_AUTO_HIDE_ACTOR_ID", None)

from models.schemas import AutomatedModerationConfig  # noqa: E402
from repositories.content_repository import CONTENT_MODELS  # noqa: E402
from repositories.database import Base  # noqa: E402
import repositories.db_models as db_models  # noqa: E402

# Test database engine (in-memory SQLite)
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh in-memory database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_session):
    """Alias for db_session."""
    return db_session


def _create_user(db_session, username: str) -> db_models.User:
    user = db_models.User(username=username, is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def test_user(db_session) -> db_models.User:
    """Create a content author."""
    return _create_user(db_session, "testuser")


@pytest.fixture
def other_user(db_session) -> db_models.User:
    """Create a second content author."""
    return _create_user(db_session, "otheruser")


@pytest.fixture
def system_user(db_session) -> db_models.User:
    """Create the system account recorded as actor of automated hides."""
    return _create_user(db_session, "moderation-bot")


@pytest.fixture
def make_content(db_session):
    """
    Factory for content on any surface.

    Base content gets title/description/content; comments and reviews put
    `content` into their single text field.
    """

    def _make(
        content_type: db_models.ContentType,
        author: db_models.User,
        title: str = "Untitled",
        description: Optional[str] = None,
        content: Optional[str] = None,
        status: db_models.ContentPublishStatus = db_models.ContentPublishStatus.PUBLISHED,
        moderation_status: db_models.ContentModerationStatus = (
            db_models.ContentModerationStatus.VISIBLE
        ),
        created_at: Optional[datetime] = None,
    ):
        model = CONTENT_MODELS[content_type]
        fields = {
            "moderation_status": moderation_status,
            "created_at": created_at or datetime.now(timezone.utc),
        }
        if content_type in db_models.BASE_CONTENT_TYPES:
            fields.update(
                creator_id=author.id,
                title=title,
                description=description,
                content=content,
                status=status,
            )
        elif content_type == db_models.ContentType.COMMENT:
            fields.update(
                user_id=author.id,
                target_type="article",
                target_id=1,
                content=content or "",
            )
        else:
            fields.update(
                user_id=author.id,
                target_type="book",
                target_id=1,
                rating=4,
                review=content,
            )

        item = model(**fields)
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item

    return _make


@pytest.fixture
def disabled_config() -> AutomatedModerationConfig:
    """Default configuration: auto-hide off."""
    return AutomatedModerationConfig()


@pytest.fixture
def enabled_config(system_user) -> AutomatedModerationConfig:
    """Auto-hide on, acting as the system user."""
    return AutomatedModerationConfig(
        auto_hide_enabled=True,
        auto_hide_actor_id=system_user.id,
    )


SPAM_TEXT = " ".join(["buy-crypto-now"] * 50) + " " + " ".join(
    ["https://bit.ly/xyz"] * 5
)
CLEAN_TEXT = "Thanks for sharing this, very helpful."


@pytest.fixture
def spam_text() -> str:
    """Repetitive text with five identical shortener links."""
    return SPAM_TEXT


@pytest.fixture
def clean_text() -> str:
    return CLEAN_TEXT
