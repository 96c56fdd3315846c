"""Command parser for CLI input."""

import shlex

from cli.constants import DEFAULT_FEED_LIMIT
from cli.models import CommandRequest, FeedCommand, UploadCommand, WhoamiCommand


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Feed/Whoami)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "feed":
        return _parse_feed(tokens[1:])
    elif command_name == "whoami":
        return _parse_whoami(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [path ...]' command."""
    if not args:
        raise ParseError("upload requires at least one file")

    return UploadCommand(paths=tuple(args))


def _parse_feed(args: list[str]) -> FeedCommand:
    """Parse 'feed [limit]' command."""
    if len(args) > 1:
        raise ParseError("feed takes at most one argument: [limit]")
    if not args:
        return FeedCommand(limit=DEFAULT_FEED_LIMIT)

    try:
        limit = int(args[0])
    except ValueError:
        raise ParseError(f"feed limit must be a number, got '{args[0]}'")
    if limit <= 0:
        raise ParseError("feed limit must be positive")

    return FeedCommand(limit=limit)


def _parse_whoami(args: list[str]) -> WhoamiCommand:
    """Parse 'whoami' command."""
    if args:
        raise ParseError("whoami takes no arguments")

    return WhoamiCommand()
