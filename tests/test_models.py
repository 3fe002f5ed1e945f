import dataclasses
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from gatorfeed.models import (
    Feed,
    FeedFollow,
    FeedFollowDetails,
    FeedSummary,
    FollowedFeed,
    Post,
    PostWithFeed,
    User,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_feed_last_fetched_defaults_to_none():
    feed = Feed(uuid4(), NOW, NOW, "blog", "https://example.com/rss", uuid4())
    assert feed.last_fetched_at is None


def test_user_equality_by_value():
    user_id = uuid4()
    assert User(user_id, NOW, NOW, "ann") == User(user_id, NOW, NOW, "ann")
    assert User(user_id, NOW, NOW, "ann") != User(user_id, NOW, NOW, "bob")


def test_records_are_immutable():
    user = User(uuid4(), NOW, NOW, "ann")
    with pytest.raises(dataclasses.FrozenInstanceError):
        user.name = "bob"
    assert user.name == "ann"


def test_replace_keeps_other_fields():
    feed = Feed(uuid4(), NOW, NOW, "blog", "https://example.com/rss", uuid4())
    fetched = dataclasses.replace(feed, last_fetched_at=NOW)
    assert fetched.last_fetched_at == NOW
    assert dataclasses.replace(fetched, last_fetched_at=None) == feed


def test_feed_follow_details_follow():
    ids = [uuid4() for _ in range(3)]
    details = FeedFollowDetails(ids[0], NOW, NOW, ids[1], ids[2], "ann", "blog")
    assert details.follow == FeedFollow(ids[0], NOW, NOW, ids[1], ids[2])


def test_post_with_feed_post():
    post_id, feed_id = uuid4(), uuid4()
    row = PostWithFeed(post_id, NOW, NOW, "Hello", "https://example.com/1", None, NOW, feed_id, "blog")
    assert row.post == Post(post_id, NOW, NOW, "Hello", "https://example.com/1", None, NOW, feed_id)
    assert row.feed_name == "blog"


def test_summary_rows_hold_values():
    user_id = uuid4()
    summary = FeedSummary("blog", "https://example.com/rss", user_id, "ann")
    assert dataclasses.astuple(summary) == ("blog", "https://example.com/rss", user_id, "ann")
    assert dataclasses.asdict(FollowedFeed("blog", "ann")) == {"feed_name": "blog", "creator_name": "ann"}