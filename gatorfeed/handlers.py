"""Handlers for every command the program understands."""

from __future__ import annotations

import http.client
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from fractions import Fraction
from typing import Callable
from uuid import uuid4

from gatorfeed.commands import Command, CommandError
from gatorfeed.config import Config
from gatorfeed.database import DatabaseError, DuplicateError, Queries
from gatorfeed.models import Feed, User
from gatorfeed.rss import RSSFeed, fetch_feed

logger = logging.getLogger(__name__)

DEFAULT_BROWSE_LIMIT = 2


@dataclass
class State:
    """Everything a handler needs: the database, the configuration and I/O hooks."""

    db: Queries
    config: Config
    fetch: Callable[[str], RSSFeed] = fetch_feed
    sleep: Callable[[float], None] = time.sleep


_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_UNIT_PATTERN = "ns|us|µs|μs|ms|s|m|h"
_NUMBER_PATTERN = r"\d+\.?\d*|\.\d+"
_DURATION = re.compile(rf"[-+]?(?:(?:{_NUMBER_PATTERN})(?:{_UNIT_PATTERN}))+")
_COMPONENT = re.compile(rf"({_NUMBER_PATTERN})({_UNIT_PATTERN})")
_MAX_NANOSECONDS = 2**63 - 1


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"1.5s"`` or ``"-300ms"``."""
    invalid = ValueError(f'time: invalid duration "{text}"')
    if text in ("0", "+0", "-0"):
        return timedelta(0)
    if not _DURATION.fullmatch(text):
        raise invalid
    negative = text.startswith("-")
    body = text.lstrip("+-")
    total = sum(
        (Fraction(Decimal(number)) * _UNITS[unit] for number, unit in _COMPONENT.findall(body)),
        Fraction(0),
    )
    nanoseconds = int(total)
    if nanoseconds > _MAX_NANOSECONDS:
        raise invalid
    if negative:
        nanoseconds = -nanoseconds
    return timedelta(microseconds=int(Fraction(nanoseconds, 1000)))


def _fraction_digits(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    width = len(str(unit)) - 1
    return f"{whole}.{rest:0{width}d}".rstrip("0")


def _format_duration(duration: timedelta) -> str:
    nanoseconds = ((duration.days * 86400 + duration.seconds) * 1_000_000 + duration.microseconds) * 1000
    sign = "-" if nanoseconds < 0 else ""
    value = abs(nanoseconds)
    if value == 0:
        return "0s"
    if value < 1_000:
        return f"{sign}{value}ns"
    if value < 1_000_000:
        return f"{sign}{_fraction_digits(value, 1_000)}µs"
    if value < 1_000_000_000:
        return f"{sign}{_fraction_digits(value, 1_000_000)}ms"
    seconds, rest = divmod(value, 1_000_000_000)
    minutes, seconds = divmod(seconds, 60)
    seconds_text = _fraction_digits(seconds * 1_000_000_000 + rest, 1_000_000_000) + "s"
    if not minutes:
        return sign + seconds_text
    hours, minutes = divmod(minutes, 60)
    text = f"{minutes}m{seconds_text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


_RFC1123Z = re.compile(r"[A-Za-z]{3}, \d{2} [A-Za-z]{3} \d{4} \d{2}:\d{2}:\d{2} [+-]\d{4}")


def parse_pub_date(text: str) -> datetime | None:
    """Parse an RFC 1123 date with a numeric zone; return None if it does not fit."""
    if not _RFC1123Z.fullmatch(text):
        return None
    try:
        return datetime.strptime(text, "%a, %d %b %Y %H:%M:%S %z")
    except ValueError:
        return None


def middleware_logged_in(
    handler: Callable[[State, Command, User], None],
) -> Callable[[State, Command], None]:
    """Wrap ``handler`` so that it receives the user currently logged in."""

    def wrapper(state: State, command: Command) -> None:
        user = state.db.get_user(state.config.current_user_name)
        handler(state, command, user)

    return wrapper


def _now() -> datetime:
    return datetime.now().astimezone()


def _set_current_user(state: State, name: str) -> None:
    try:
        state.config.set_user(name)
    except OSError as err:
        raise CommandError(f"couldn't set current user: {err}") from err


def handle_login(state: State, command: Command) -> None:
    """Make a registered user the current one."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <name>")
    name = command.args[0]
    try:
        state.db.get_user(name)
    except DatabaseError as err:
        raise CommandError(f"User not registered: {err}") from err
    _set_current_user(state, name)
    print("User switched successfully!")


def handle_register(state: State, command: Command) -> None:
    """Register a new user and make it the current one."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <name>")
    name = command.args[0]
    now = _now()
    try:
        user = state.db.create_user(uuid4(), now, now, name)
    except DatabaseError as err:
        raise CommandError(f"Failed to create user: {err}") from err
    _set_current_user(state, name)
    print(f"User created Successfully: {user}")


def handle_users(state: State, command: Command) -> None:
    """List every user, marking the current one."""
    try:
        users = state.db.get_users()
    except DatabaseError as err:
        raise CommandError(f"Failed to retrieve users: {err}") from err
    for user in users:
        if user.name == state.config.current_user_name:
            print(f"* {user.name} (current)")
        else:
            print(f"* {user.name}")


def handle_agg(state: State, command: Command) -> None:
    """Scrape the stalest feed now and then once every interval, forever."""
    if not 1 <= len(command.args) <= 2:
        raise CommandError(f"usage: {command.name} <time_between_reqs>")
    try:
        interval = parse_duration(command.args[0])
    except ValueError as err:
        raise CommandError(f"invalid duration: {err}") from err

    logger.info("Collecting feeds every %s...", _format_duration(interval))
    seconds = interval.total_seconds()
    if seconds <= 0:
        raise CommandError("non-positive interval for ticker")

    deadline = time.monotonic()
    while True:
        scrape_feeds(state)
        deadline += seconds
        now = time.monotonic()
        if deadline < now:
            deadline = now
        state.sleep(deadline - now)


def scrape_feeds(state: State) -> None:
    """Scrape the feed that was fetched least recently."""
    try:
        feed = state.db.get_next_feed_to_fetch()
    except DatabaseError as err:
        logger.info("Couldn't get next feeds to fetch %s", err)
        return
    logger.info("Found a feed to fetch!")
    scrape_feed(state.db, feed, state.fetch)


def scrape_feed(
    db: Queries,
    feed: Feed,
    fetch: Callable[[str], RSSFeed] = fetch_feed,
) -> None:
    """Mark ``feed`` fetched, download it and store its new posts."""
    try:
        db.mark_feed_fetched(feed.id)
    except DatabaseError as err:
        logger.info("Couldn't mark feed %s fetched: %s", feed.name, err)
        return

    try:
        feed_data = fetch(feed.url)
    except (OSError, ValueError, http.client.HTTPException) as err:
        logger.info("Couldn't collect feed %s: %s", feed.name, err)
        return

    items = feed_data.channel.items
    for item in items:
        now = datetime.now(timezone.utc)
        try:
            db.create_post(
                uuid4(),
                now,
                now,
                item.title,
                item.link,
                item.description,
                parse_pub_date(item.pub_date),
                feed.id,
            )
        except DuplicateError:
            continue
        except DatabaseError as err:
            logger.info("Couldn't create post: %s", err)
    logger.info("Feed %s collected, %d posts found", feed.name, len(items))


def handle_add_feed(state: State, command: Command, user: User) -> None:
    """Add a feed and make its creator follow it."""
    if len(command.args) != 2:
        raise CommandError(f"usage: {command.name} <name> <url>")
    name, url = command.args
    now = _now()
    try:
        feed = state.db.create_feed(uuid4(), now, now, name, url, user.id)
    except DatabaseError as err:
        raise CommandError(f"Failed to add feed to database: {err}") from err

    now = _now()
    try:
        state.db.create_feed_follow(uuid4(), now, now, user.id, feed.id)
    except DatabaseError as err:
        raise CommandError(f"Could not create feed_follow: {err}") from err
    print(f"Feed added to Database: {feed}")


def handle_feeds(state: State, command: Command) -> None:
    """Print every feed with the name of the user who added it."""
    try:
        feeds = state.db.get_feeds()
    except DatabaseError as err:
        raise CommandError(f"Failed to get feeds from database: {err}") from err
    print(feeds, end="")


def handle_follow(state: State, command: Command, user: User) -> None:
    """Follow the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <url>")
    try:
        feed = state.db.get_feed(command.args[0])
    except DatabaseError as err:
        raise CommandError(f"Could not retrieve feed: {err}") from err
    now = _now()
    try:
        state.db.create_feed_follow(uuid4(), now, now, user.id, feed.id)
    except DatabaseError as err:
        raise CommandError(f"Could not create feed_follow: {err}") from err
    print(f"{state.config.current_user_name} is now following {feed.name}", end="")


def handle_following(state: State, command: Command, user: User) -> None:
    """List the names of the feeds the user follows."""
    if command.args:
        raise CommandError(f"usage: {command.name}")
    try:
        followed = state.db.get_feed_follows_for_user(user.id)
    except DatabaseError as err:
        raise CommandError(f"Failed to get followed feeds: {err}") from err
    for entry in followed:
        print(f"- {entry.feed_name}")


def handle_unfollow(state: State, command: Command, user: User) -> None:
    """Stop following the feed with the given URL."""
    if len(command.args) != 1:
        raise CommandError(f"usage: {command.name} <url>")
    try:
        feed = state.db.get_feed(command.args[0])
    except DatabaseError as err:
        raise CommandError(f"Error retrieving feed: {err}") from err
    try:
        state.db.unfollow(user.id, feed.id)
    except DatabaseError as err:
        raise CommandError(f"Could not unfollow: {err}") from err


_INTEGER = re.compile(r"[+-]?\d+")


def _parse_int(text: str) -> int:
    if not _INTEGER.fullmatch(text):
        raise ValueError(f'strconv.Atoi: parsing "{text}": invalid syntax')
    value = int(text)
    if not -(2**63) <= value < 2**63:
        raise ValueError(f'strconv.Atoi: parsing "{text}": value out of range')
    return value


def _as_int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def handle_browse(state: State, command: Command, user: User) -> None:
    """Print the newest posts of the feeds the user follows."""
    limit = DEFAULT_BROWSE_LIMIT
    if command.args:
        try:
            number = _parse_int(command.args[0])
        except ValueError as err:
            raise CommandError(f"invalid number: {err}") from err
        if number != 0:
            limit = _as_int32(number)
    try:
        posts = state.db.get_posts_for_user(user.id, limit)
    except DatabaseError as err:
        raise CommandError(f"Error retrieving posts: {err}") from err
    for post in posts:
        print(post, end="")


def handle_reset(state: State, command: Command) -> None:
    """Remove every user, and with them their feeds, follows and posts."""
    try:
        state.db.delete_users()
    except DatabaseError as err:
        raise CommandError(f"Failed to remove users: {err}") from err