"""Storage of users, feeds, follows and posts in an SQLite database."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator
from uuid import UUID

from gatorfeed.models import (
    Feed,
    FeedFollowDetails,
    FeedSummary,
    FollowedFeed,
    Post,
    PostWithFeed,
    User,
)


class DatabaseError(Exception):
    """A query failed."""


class NotFoundError(DatabaseError):
    """A query that returns one row found none."""


class DuplicateError(DatabaseError):
    """An insert broke a uniqueness constraint."""


_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS feeds (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    name TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    last_fetched_at TEXT
);
CREATE TABLE IF NOT EXISTS feed_follows (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE,
    UNIQUE (user_id, feed_id)
);
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    title TEXT NOT NULL,
    url TEXT NOT NULL UNIQUE,
    description TEXT,
    published_at TEXT,
    feed_id TEXT NOT NULL REFERENCES feeds (id) ON DELETE CASCADE
);
"""

_USER_COLUMNS = "id, created_at, updated_at, name"
_FEED_COLUMNS = "id, created_at, updated_at, name, url, user_id, last_fetched_at"
_POST_COLUMNS = "id, created_at, updated_at, title, url, description, published_at, feed_id"


def _encode_time(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="microseconds")


def _decode_time(value: str | None) -> datetime | None:
    return None if value is None else datetime.fromisoformat(value)


def _user(row: tuple) -> User:
    return User(UUID(row[0]), _decode_time(row[1]), _decode_time(row[2]), row[3])


def _feed(row: tuple) -> Feed:
    return Feed(
        UUID(row[0]),
        _decode_time(row[1]),
        _decode_time(row[2]),
        row[3],
        row[4],
        UUID(row[5]),
        _decode_time(row[6]),
    )


def _post_fields(row: tuple) -> tuple:
    return (
        UUID(row[0]),
        _decode_time(row[1]),
        _decode_time(row[2]),
        row[3],
        row[4],
        row[5],
        _decode_time(row[6]),
        UUID(row[7]),
    )


class Queries:
    """Typed queries over an open SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.isolation_level = None
        self._conn = connection
        self._in_transaction = False
        with self._errors():
            self._conn.execute("PRAGMA foreign_keys = ON")

    def __enter__(self) -> Queries:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.IntegrityError as err:
            if "UNIQUE constraint failed" in str(err):
                raise DuplicateError(
                    f"duplicate key value violates unique constraint: {err}"
                ) from err
            raise DatabaseError(str(err)) from err
        except sqlite3.Error as err:
            raise DatabaseError(str(err)) from err

    def _one(self, sql: str, params: tuple = ()) -> tuple:
        with self._errors():
            row = self._conn.execute(sql, params).fetchone()
        if row is None:
            raise NotFoundError("no rows in result set")
        return row

    def _many(self, sql: str, params: tuple = ()) -> list[tuple]:
        with self._errors():
            return self._conn.execute(sql, params).fetchall()

    def _exec(self, sql: str, params: tuple = ()) -> None:
        with self._errors():
            self._conn.execute(sql, params)

    def create_schema(self) -> None:
        """Create the tables if they do not exist yet."""
        with self._errors():
            self._conn.executescript(_SCHEMA)

    @contextmanager
    def transaction(self) -> Iterator[Queries]:
        """Run the enclosed queries atomically; roll back on any exception."""
        if self._in_transaction:
            yield self
            return
        self._exec("BEGIN")
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._in_transaction = False
            self._exec("ROLLBACK")
            raise
        self._in_transaction = False
        self._exec("COMMIT")

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    # users

    def create_user(self, id: UUID, created_at: datetime, updated_at: datetime, name: str) -> User:
        self._exec(
            "INSERT INTO users (id, created_at, updated_at, name) VALUES (?, ?, ?, ?)",
            (str(id), _encode_time(created_at), _encode_time(updated_at), name),
        )
        return _user(self._one(f"SELECT {_USER_COLUMNS} FROM users WHERE id = ?", (str(id),)))

    def delete_users(self) -> None:
        self._exec("DELETE FROM users")

    def get_user(self, name: str) -> User:
        return _user(self._one(f"SELECT {_USER_COLUMNS} FROM users WHERE name = ?", (name,)))

    def get_users(self) -> list[User]:
        return [_user(row) for row in self._many(f"SELECT {_USER_COLUMNS} FROM users")]

    # feeds

    def create_feed(
        self,
        id: UUID,
        created_at: datetime,
        updated_at: datetime,
        name: str,
        url: str,
        user_id: UUID,
    ) -> Feed:
        self._exec(
            "INSERT INTO feeds (id, created_at, updated_at, name, url, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(id),
                _encode_time(created_at),
                _encode_time(updated_at),
                name,
                url,
                str(user_id),
            ),
        )
        return _feed(self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(id),)))

    def get_feed(self, url: str) -> Feed:
        return _feed(self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE url = ?", (url,)))

    def get_feeds(self) -> list[FeedSummary]:
        rows = self._many(
            "SELECT feeds.name, feeds.url, feeds.user_id, users.name "
            "FROM feeds JOIN users ON feeds.user_id = users.id"
        )
        return [FeedSummary(row[0], row[1], UUID(row[2]), row[3]) for row in rows]

    def get_next_feed_to_fetch(self) -> Feed:
        return _feed(
            self._one(
                f"SELECT {_FEED_COLUMNS} FROM feeds "
                "ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC LIMIT 1"
            )
        )

    def mark_feed_fetched(self, feed_id: UUID) -> Feed:
        now = _encode_time(datetime.now(timezone.utc))
        self._exec(
            "UPDATE feeds SET last_fetched_at = ?, updated_at = ? WHERE id = ?",
            (now, now, str(feed_id)),
        )
        return _feed(self._one(f"SELECT {_FEED_COLUMNS} FROM feeds WHERE id = ?", (str(feed_id),)))

    # feed follows

    def create_feed_follow(
        self,
        id: UUID,
        created_at: datetime,
        updated_at: datetime,
        user_id: UUID,
        feed_id: UUID,
    ) -> FeedFollowDetails:
        self._exec(
            "INSERT INTO feed_follows (id, created_at, updated_at, user_id, feed_id) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                str(id),
                _encode_time(created_at),
                _encode_time(updated_at),
                str(user_id),
                str(feed_id),
            ),
        )
        row = self._one(
            "SELECT ff.id, ff.created_at, ff.updated_at, ff.user_id, ff.feed_id, "
            "u.name, f.name FROM feed_follows ff "
            "JOIN users u ON ff.user_id = u.id "
            "JOIN feeds f ON ff.feed_id = f.id WHERE ff.id = ?",
            (str(id),),
        )
        return FeedFollowDetails(
            UUID(row[0]),
            _decode_time(row[1]),
            _decode_time(row[2]),
            UUID(row[3]),
            UUID(row[4]),
            row[5],
            row[6],
        )

    def get_feed_follows_for_user(self, user_id: UUID) -> list[FollowedFeed]:
        rows = self._many(
            "SELECT feeds.name, users.name FROM feed_follows "
            "JOIN feeds ON feed_follows.feed_id = feeds.id "
            "JOIN users ON feeds.user_id = users.id "
            "WHERE feed_follows.user_id = ?",
            (str(user_id),),
        )
        return [FollowedFeed(row[0], row[1]) for row in rows]

    def unfollow(self, user_id: UUID, feed_id: UUID) -> None:
        self._exec(
            "DELETE FROM feed_follows WHERE user_id = ? AND feed_id = ?",
            (str(user_id), str(feed_id)),
        )

    # posts

    def create_post(
        self,
        id: UUID,
        created_at: datetime,
        updated_at: datetime,
        title: str,
        url: str,
        description: str | None,
        published_at: datetime | None,
        feed_id: UUID,
    ) -> Post:
        self._exec(
            f"INSERT INTO posts ({_POST_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                str(id),
                _encode_time(created_at),
                _encode_time(updated_at),
                title,
                url,
                description,
                _encode_time(published_at),
                str(feed_id),
            ),
        )
        row = self._one(f"SELECT {_POST_COLUMNS} FROM posts WHERE id = ?", (str(id),))
        return Post(*_post_fields(row))

    def get_posts_for_user(self, user_id: UUID, limit: int) -> list[PostWithFeed]:
        """Posts of feeds the user follows, newest first, undated ones leading."""
        if limit < 0:
            raise DatabaseError("LIMIT must not be negative")
        columns = ", ".join(f"posts.{name.strip()}" for name in _POST_COLUMNS.split(","))
        rows = self._many(
            f"SELECT {columns}, feeds.name FROM posts "
            "JOIN feed_follows ON feed_follows.feed_id = posts.feed_id "
            "JOIN feeds ON posts.feed_id = feeds.id "
            "WHERE feed_follows.user_id = ? "
            "ORDER BY posts.published_at IS NULL DESC, posts.published_at DESC "
            "LIMIT ?",
            (str(user_id), limit),
        )
        return [PostWithFeed(*_post_fields(row), row[8]) for row in rows]


def connect(url: str) -> Queries:
    """Open the database at ``url`` and make sure its tables exist.

    Accepts a file path, ``:memory:``, ``sqlite://`` for an in-memory
    database, or ``sqlite:///<path>``.
    """
    if url in (":memory:", "sqlite://", "sqlite:///:memory:"):
        target = ":memory:"
    elif url.startswith("sqlite:///"):
        target = url[len("sqlite:///"):]
    elif "://" in url:
        scheme = url.split("://", 1)[0]
        raise DatabaseError(f"unsupported database scheme: {scheme}")
    elif not url:
        raise DatabaseError("no database URL given")
    else:
        target = url
    try:
        connection = sqlite3.connect(target)
    except sqlite3.Error as err:
        raise DatabaseError(str(err)) from err
    queries = Queries(connection)
    queries.create_schema()
    return queries