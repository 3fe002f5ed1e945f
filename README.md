# gatorfeed

`gatorfeed` is a small command-line RSS aggregator. It keeps registered
users, the feeds they have added, which feeds each user follows, and the
posts collected from those feeds in a local SQLite database.

## Installation

```
pip install .
```

This installs the `gatorfeed` command. Nothing beyond the standard library
is needed.

## Configuration

Settings are read from `.gatorconfig.json` in your home directory. The file
must exist before the first run; create it by hand:

```json
{"db_url": "/home/me/gator.db", "current_user_name": ""}
```

`db_url` may be:

- a file path, such as `/home/me/gator.db`;
- `sqlite:///<path>`;
- `:memory:` or `sqlite://` for a throwaway in-memory database.

The tables are created on first use. Any other `scheme://` URL is refused
with `unsupported database scheme`, and an empty `db_url` with
`no database URL given`.

`current_user_name` is rewritten by `register` and `login`; the file is then
saved as one line of JSON.

## Usage

```
gatorfeed <command> [args...]
```

| Command | Arguments | What it does |
|---------|-----------|--------------|
| `register` | `<name>` | Create a user and make it the current user |
| `login` | `<name>` | Switch to a user that is already registered |
| `users` | | List all users, marking the current one with `(current)` |
| `reset` | | Delete every user, and with them their feeds, follows and posts |
| `addfeed` | `<name> <url>` | Add a feed and follow it as the current user |
| `feeds` | | Print every feed with the name of the user who added it |
| `follow` | `<url>` | Follow a feed that has already been added |
| `following` | | List the names of the feeds the current user follows |
| `unfollow` | `<url>` | Stop following a feed |
| `agg` | `<time_between_reqs>` | Fetch feeds forever, one per interval |
| `browse` | `[limit]` | Show the newest posts from followed feeds (default 2) |

`addfeed`, `follow`, `following`, `unfollow` and `browse` act for the
current user, so run `register` or `login` first. On any failure the
message is written to standard error and the exit status is 1.

### Example session

```
gatorfeed register alice
gatorfeed addfeed "Example News" https://example.com/rss.xml
gatorfeed following
gatorfeed agg 1m
gatorfeed browse 10
```

### Aggregating

`agg` takes durations such as `30s`, `1m`, `1h30m`, `1.5s` or `500ms`
(units `ns`, `us`/`µs`, `ms`, `s`, `m`, `h`). The interval must be positive.
It scrapes once straight away and then once per interval until stopped
with Ctrl+C. Each scrape takes the feed fetched least recently (feeds never
fetched come first), marks it fetched, downloads it with the user agent
`gator`, and stores each item as a post. Titles and descriptions are
HTML-unescaped. A `pubDate` in RFC 1123 form with a numeric zone
(`Mon, 02 Jan 2006 15:04:05 -0700`) is kept as the publication time;
other dates are dropped. Items whose link is already stored are skipped.
Progress is logged to standard error.

### Browsing

`browse` takes an optional whole-number limit; `0` or no argument means 2,
and a negative limit is an error. Posts without a publication date come
first, then the rest newest first. `feeds` and `browse` print the records
in Python's own representation.

## Using it as a library

- `gatorfeed.config`: `read_config`, `config_file_path` and `Config`, with
  `set_user` and `write`.
- `gatorfeed.rss`: `parse_feed` for RSS documents and `fetch_feed` for
  downloading them, returning `RSSFeed`, `RSSChannel` and `RSSItem`.
- `gatorfeed.models`: the records `User`, `Feed`, `FeedFollow`, `Post`,
  `FeedFollowDetails`, `FeedSummary`, `FollowedFeed` and `PostWithFeed`.
- `gatorfeed.database`: `connect` returns a `Queries` object (usable as a
  context manager, with a `transaction()` context manager) offering
  `create_user`, `get_user`, `get_users`, `delete_users`, `create_feed`,
  `get_feed`, `get_feeds`, `get_next_feed_to_fetch`, `mark_feed_fetched`,
  `create_feed_follow`, `get_feed_follows_for_user`, `unfollow`,
  `create_post` and `get_posts_for_user`. Failures raise `DatabaseError`,
  or its subclasses `NotFoundError` and `DuplicateError`.
- `gatorfeed.commands`: `Command`, `CommandRegistry`, `CommandError` and
  `CommandNotFoundError`.
- `gatorfeed.handlers`: `State`, the `handle_*` functions,
  `middleware_logged_in`, `scrape_feeds`, `scrape_feed`, `parse_duration`
  and `parse_pub_date`.
- `gatorfeed.cli`: `build_registry` and `main`.

## What it does not do

- It stores data in SQLite only; server databases such as PostgreSQL are
  not supported.
- It does not create the configuration file; write it yourself first.
- It reads RSS `<channel>`/`<item>` documents only, not Atom feeds.

## Running the tests

```
pip install ".[test]"
pytest
```