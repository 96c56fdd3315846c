"""Configuration settings for the LiveDrop store server."""

import os
from typing import Dict

from common.constants import ANONYMOUS_IDENTITY_PREFIX


DATABASE_PATH = os.environ.get("LIVEDROP_DATABASE_PATH", "/app/data/livedrop.db")

SERVER_HOST = os.environ.get("LIVEDROP_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("LIVEDROP_PORT", "8000"))

ANONYMOUS_PREFIX = os.environ.get("LIVEDROP_ANONYMOUS_PREFIX", ANONYMOUS_IDENTITY_PREFIX)


def parse_provisioned_tokens(raw: str) -> Dict[str, str]:
    """
    Parse "token=identity,token2=identity2" into a mapping.

    Entries without '=' or with an empty side are ignored.
    """
    tokens = {}
    for entry in raw.split(","):
        token, sep, identity = entry.strip().partition("=")
        if sep and token.strip() and identity.strip():
            tokens[token.strip()] = identity.strip()
    return tokens


PROVISIONED_TOKENS = parse_provisioned_tokens(os.environ.get("LIVEDROP_PROVISIONED_TOKENS", ""))
