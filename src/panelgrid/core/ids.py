"""Identifier utilities for tabs and panel groups

IDs are opaque strings of the form ``<prefix>-<epoch ms>-<random base36>``:
- tab-<ms>-<rand>          - a tab
- panel-group-<ms>-<rand>  - a panel group (one grid leaf)
- editor-group-<ms>-<rand> - a group in the editor grid variant
"""

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
_RANDOM_LENGTH = 9

TAB_PREFIX = "tab"
GROUP_PREFIX = "panel-group"
EDITOR_GROUP_PREFIX = "editor-group"


def _random_suffix(length: int = _RANDOM_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def make_id(prefix: str) -> str:
    """Create a unique ID with the given prefix.

    Args:
        prefix: ID namespace, e.g. "tab" or "panel-group"

    Returns:
        ID like "tab-1718000000000-k3j9x0a2b"
    """
    return f"{prefix}-{int(time.time() * 1000)}-{_random_suffix()}"


def generate_tab_id() -> str:
    """Create a new tab ID."""
    return make_id(TAB_PREFIX)


def generate_group_id(editor: bool = False) -> str:
    """Create a new panel group ID.

    Args:
        editor: Use the editor-group namespace

    Returns:
        ID like "panel-group-1718000000000-k3j9x0a2b"
    """
    return make_id(EDITOR_GROUP_PREFIX if editor else GROUP_PREFIX)


def short_id(value: str, length: int = 8) -> str:
    """Shorten an ID for logs by keeping the random tail."""
    if not value:
        return "unknown"
    return value.rsplit("-", 1)[-1][:length]
