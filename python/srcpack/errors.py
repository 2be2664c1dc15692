"""Error types and non-fatal issue records."""

import enum
import typing


class SrcpackError(Exception):
    """Base class for fatal srcpack errors."""


class ConfigError(SrcpackError):
    """Raised when srcpack.yaml cannot be parsed or validated."""


class PackIOError(SrcpackError):
    """Raised when reading a manifest or writing the staging tree fails."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class PathEscapeError(SrcpackError):
    """Raised when a destination escapes the prefix root under the error policy."""

    def __init__(self, path: str) -> None:
        super().__init__(f"destination escapes the prefix root: {path}")
        self.path = path


class IssueKind(enum.StrEnum):
    MISSING_FILE = "missing-file"
    EMPTY_GLOB = "empty-glob"
    PATH_ESCAPE = "path-escape"
    MALFORMED_MANIFEST = "malformed-manifest"
    EXCLUDED = "excluded"


class Issue(typing.NamedTuple):
    """A recoverable condition recorded during resolution or copying."""

    kind: IssueKind
    path: str
    message: str
