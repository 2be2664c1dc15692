"""Relative path consolidation for manifest paths."""

import re

_SELF_SEGMENT = re.compile(r"(?:^|(?<=/))\./")
_PARENT_PAIR = re.compile(r"(?:^|(?<=/))(?!\.\./)[^/]+/\.\./")


def normalize(path: str) -> str:
    """Remove `./` segments and collapse `name/../` pairs.

    Leading `../` segments with nothing left to consolidate are kept, as is a
    trailing slash.
    """
    while True:
        consolidated = _PARENT_PAIR.sub("", _SELF_SEGMENT.sub("", path))
        if consolidated == path:
            return path
        path = consolidated


def split_path(path: str) -> tuple[str, str]:
    """Split into (directory with trailing slash, basename)."""
    head, sep, tail = path.rstrip("/").rpartition("/")
    return head + sep, tail


def escapes_root(path: str) -> bool:
    return path == ".." or path.startswith("../")
