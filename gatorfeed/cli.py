"""Command-line entry point."""

from __future__ import annotations

import logging
import sys

from gatorfeed.commands import Command, CommandError, CommandRegistry
from gatorfeed.config import read_config
from gatorfeed.database import DatabaseError, connect
from gatorfeed.handlers import (
    State,
    handle_add_feed,
    handle_agg,
    handle_browse,
    handle_feeds,
    handle_follow,
    handle_following,
    handle_login,
    handle_register,
    handle_reset,
    handle_unfollow,
    handle_users,
    middleware_logged_in,
)


def build_registry() -> CommandRegistry:
    """Return a registry holding every command."""
    registry = CommandRegistry()
    registry.register("login", handle_login)
    registry.register("register", handle_register)
    registry.register("reset", handle_reset)
    registry.register("users", handle_users)
    registry.register("agg", handle_agg)
    registry.register("addfeed", middleware_logged_in(handle_add_feed))
    registry.register("feeds", handle_feeds)
    registry.register("follow", middleware_logged_in(handle_follow))
    registry.register("following", middleware_logged_in(handle_following))
    registry.register("unfollow", middleware_logged_in(handle_unfollow))
    registry.register("browse", middleware_logged_in(handle_browse))
    return registry


def _fatal(message: str) -> int:
    print(message, file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Run the command named by the first argument; return the exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    try:
        config = read_config()
    except (OSError, ValueError) as err:
        return _fatal(f"error reading config: {err}")

    try:
        db = connect(config.db_url)
    except DatabaseError as err:
        return _fatal(f"Failed to establish database connection: {err}")

    with db:
        registry = build_registry()
        if not args:
            return _fatal("Usage: cli <command> [args...]")
        state = State(db=db, config=config)
        try:
            registry.run(state, Command(args[0], args[1:]))
        except (CommandError, DatabaseError) as err:
            return _fatal(str(err))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())