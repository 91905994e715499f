"""
Tests for ContentRepository.
"""

import pytest

from models.exceptions import InvalidContentTypeException
from models.schemas import SnapshotPublishStatus
from repositories.content_repository import ContentRepository
from repositories.db_models import (
    ContentModerationStatus,
    ContentPublishStatus,
    ContentType,
)


class TestGetSnapshot:
    """Tests for ContentRepository.get_snapshot"""

    def test_base_content_joins_text_fields(self, db_session, test_user, make_content):
        """Title, description and body are joined with newlines, skipping blanks."""
        article = make_content(
            ContentType.ARTICLE,
            test_user,
            title="Title",
            description="",
            content="Body text",
        )

        snapshot = ContentRepository(db_session).get_snapshot(
            ContentType.ARTICLE, article.id
        )

        assert snapshot is not None
        assert snapshot.text == "Title\nBody text"
        assert snapshot.actor_user_id == test_user.id
        assert snapshot.owner_user_id == test_user.id
        assert snapshot.publish_status == SnapshotPublishStatus.PUBLISHED
        assert snapshot.moderation_status == ContentModerationStatus.VISIBLE

    def test_publish_status_is_reported(self, db_session, test_user, make_content):
        video = make_content(
            ContentType.VIDEO, test_user, status=ContentPublishStatus.DRAFT
        )

        snapshot = ContentRepository(db_session).get_snapshot("video", video.id)

        assert snapshot.content_type == ContentType.VIDEO
        assert snapshot.publish_status == SnapshotPublishStatus.DRAFT

    def test_comment_snapshot(self, db_session, test_user, make_content):
        comment = make_content(ContentType.COMMENT, test_user, content="Great read")

        snapshot = ContentRepository(db_session).get_snapshot(
            ContentType.COMMENT, comment.id
        )

        assert snapshot.text == "Great read"
        assert snapshot.actor_user_id == test_user.id
        assert snapshot.publish_status == SnapshotPublishStatus.PUBLISHED_IMPLICIT

    def test_review_snapshot_without_text(self, db_session, test_user, make_content):
        """A rating without a written review has empty text."""
        rating = make_content(
            ContentType.REVIEW,
            test_user,
            moderation_status=ContentModerationStatus.HIDDEN,
        )

        snapshot = ContentRepository(db_session).get_snapshot(
            ContentType.REVIEW, rating.id
        )

        assert snapshot.text == ""
        assert snapshot.moderation_status == ContentModerationStatus.HIDDEN

    def test_missing_target_returns_none(self, db_session):
        assert ContentRepository(db_session).get_snapshot(ContentType.BOOK, 999) is None

    def test_invalid_type_raises(self, db_session):
        with pytest.raises(InvalidContentTypeException):
            ContentRepository(db_session).get_snapshot("newsletter", 1)
