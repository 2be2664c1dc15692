"""srcpack workspace configuration (srcpack.yaml)."""

import pathlib

import pathspec
import platformdirs
import pydantic
import yaml

from srcpack.errors import ConfigError
from srcpack.manifest import DEFAULT_READ_LIMIT, CommentStyle
from srcpack.materializer import EscapePolicy

CONFIG_NAME = "srcpack.yaml"
STATE_DIR = pathlib.Path(platformdirs.user_cache_dir("srcpack"))

# VCS metadata is never part of a package
DEFAULT_EXCLUDE = [".git"]


class WorkspaceNotFoundError(Exception):
    """Raised when no srcpack.yaml is found."""


class PackConfig(pydantic.BaseModel):
    """Settings for a packaging run."""

    model_config = pydantic.ConfigDict(extra="forbid")

    entry: str | None = None
    chdir: pathlib.Path | None = None
    prefix: str = ""
    staging: pathlib.Path = pydantic.Field(default_factory=lambda: STATE_DIR / "staging")
    recurse: bool = True
    escape: EscapePolicy = EscapePolicy.WARN
    exclude: list[str] = pydantic.Field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    read_limit: int = pydantic.Field(default=DEFAULT_READ_LIMIT, gt=0)
    comment_styles: dict[str, CommentStyle] = pydantic.Field(default_factory=dict)
    fix_permissions: bool = False
    unprefix: str | None = None

    @pydantic.field_validator("comment_styles")
    @classmethod
    def _dotted_extensions(cls, styles: dict[str, CommentStyle]) -> dict[str, CommentStyle]:
        return {
            (ext if ext.startswith(".") else f".{ext}").lower(): style
            for ext, style in styles.items()
        }

    @property
    def exclude_spec(self) -> pathspec.PathSpec:
        return pathspec.PathSpec.from_lines("gitwildmatch", self.exclude)

    @property
    def source_root(self) -> pathlib.Path:
        """Directory relative manifest paths resolve against."""
        return (self.chdir or pathlib.Path.cwd()).expanduser().resolve()

    def relative_to(self, base: pathlib.Path) -> "PackConfig":
        """Anchor relative chdir/staging paths at `base`."""
        updates: dict[str, pathlib.Path] = {}
        if self.chdir is not None and not self.chdir.expanduser().is_absolute():
            updates["chdir"] = base / self.chdir
        if "staging" in self.model_fields_set and not self.staging.expanduser().is_absolute():
            updates["staging"] = base / self.staging
        return self.model_copy(update=updates)


def find_workspace(start: pathlib.Path | None = None) -> pathlib.Path:
    """Find workspace root by searching upward for srcpack.yaml."""
    current = (start or pathlib.Path.cwd()).resolve()

    while current != current.parent:
        if (current / CONFIG_NAME).is_file():
            return current
        current = current.parent

    # Check root
    if (current / CONFIG_NAME).is_file():
        return current

    raise WorkspaceNotFoundError(f"No {CONFIG_NAME} found in {start or 'cwd'} or parents")


def load_config(path: pathlib.Path) -> PackConfig:
    """Load srcpack.yaml; `path` may be the file or its directory."""
    if path.is_dir():
        path = path / CONFIG_NAME
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")

    try:
        config = PackConfig.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Invalid {path.name}: {exc}") from exc
    return config.relative_to(path.parent.resolve())


def discover_config(start: pathlib.Path | None = None) -> PackConfig:
    """Load the nearest srcpack.yaml, or defaults when there is none."""
    try:
        workspace = find_workspace(start)
    except WorkspaceNotFoundError:
        return PackConfig()
    return load_config(workspace)


def save_config(config: PackConfig, path: pathlib.Path) -> None:
    data = config.model_dump(mode="json", exclude_defaults=True)
    path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
