"""Command request data types for CLI."""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class UploadCommand:
    """Simulate uploading local files."""

    paths: tuple[str, ...]
    command: Literal["upload"] = "upload"


@dataclass(frozen=True)
class FeedCommand:
    """Show the newest feed entries."""

    limit: int
    command: Literal["feed"] = "feed"


@dataclass(frozen=True)
class WhoamiCommand:
    """Show the session identity."""

    command: Literal["whoami"] = "whoami"


CommandRequest = UploadCommand | FeedCommand | WhoamiCommand
