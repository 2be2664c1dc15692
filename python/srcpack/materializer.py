"""Copy a resolved file graph into the staging tree."""

import enum
import pathlib
import shutil
import typing

import pathspec

from srcpack.builder import FileGraph
from srcpack.errors import Issue, IssueKind, PackIOError, PathEscapeError
from srcpack.log import get_logger
from srcpack.paths import escapes_root, split_path

logger = get_logger("materializer")


class EscapePolicy(enum.StrEnum):
    """What to do with destinations that leave the prefix root."""

    WARN = "warn"
    SKIP = "skip"
    ERROR = "error"


class StagedFile(typing.NamedTuple):
    origin: str
    source: str
    dest: str


class MaterializeResult(typing.NamedTuple):
    copied: int
    issues: list[Issue]
    staged: list[StagedFile]


def resolve_destination(graph: FileGraph, src: str, dest: str) -> str:
    """Apply the override chain to one edge.

    A file that renames or excludes itself wins over whatever destination
    another file assigned it; otherwise a remap declared by the file living at
    `dest` applies. A plain self-listing (`pack: x` inside `x`) redefines
    nothing. The chain is followed until it settles.
    """
    seen = {src}
    current = dest
    remap = graph.self_remap(src)
    if remap is not None and remap != src:
        current = remap
    while current and current not in seen:
        seen.add(current)
        remap = graph.self_remap(current)
        if remap is None or remap == current or remap in seen:
            break
        current = remap
    return current


def target_path(source: str, dest: str) -> str:
    """Destination with a trailing-slash directory target completed."""
    if dest.endswith("/"):
        return dest + split_path(source)[1]
    return dest


def resolved_edges(graph: FileGraph) -> list[StagedFile]:
    """Return every edge with its override chain applied, in graph order."""
    return [
        StagedFile(origin, src, resolve_destination(graph, src, dest))
        for origin, src, dest in graph.iter_edges()
    ]


def plan(graph: FileGraph) -> list[StagedFile]:
    """Distinct edges that would be copied: no exclusions, no duplicates."""
    handled: set[tuple[str, str]] = set()
    planned: list[StagedFile] = []
    for staged in resolved_edges(graph):
        if staged.dest == "" or (staged.source, staged.dest) in handled:
            continue
        handled.add((staged.source, staged.dest))
        planned.append(staged)
    return planned


class Materializer:
    """Copies planned files below `staging_root/prefix`."""

    def __init__(
        self,
        staging_root: pathlib.Path,
        prefix: str = "",
        *,
        source_root: pathlib.Path | None = None,
        escape: EscapePolicy = EscapePolicy.WARN,
        exclude: pathspec.PathSpec | None = None,
    ) -> None:
        self.staging_root = staging_root
        self.prefix = prefix.strip("/")
        self.source_root = source_root or pathlib.Path.cwd()
        self.escape = EscapePolicy(escape)
        self.exclude = exclude

    @property
    def target_root(self) -> pathlib.Path:
        return self.staging_root / self.prefix if self.prefix else self.staging_root

    def materialize(self, graph: FileGraph) -> MaterializeResult:
        issues: list[Issue] = []
        staged: list[StagedFile] = []
        for entry in plan(graph):
            dest = target_path(entry.source, entry.dest)

            if escapes_root(dest):
                if self.escape is EscapePolicy.ERROR:
                    raise PathEscapeError(dest)
                if self.escape is EscapePolicy.SKIP:
                    logger.warning("Not writing %s outside the prefix root", dest)
                    continue
                logger.debug("Writing %s outside the prefix root", dest)

            source = self.source_root / entry.source
            if not source.exists():
                message = f"'{entry.source}' still missing, eh?"
                logger.info(message)
                issues.append(Issue(IssueKind.MISSING_FILE, entry.source, message))
                continue

            self._copy(source, self.target_root / dest)
            staged.append(StagedFile(entry.origin, entry.source, dest))

        logger.info("Staged %d file(s) under %s", len(staged), self.target_root)
        return MaterializeResult(len(staged), issues, staged)

    def _copy(self, source: pathlib.Path, target: pathlib.Path) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if source.is_dir():
                shutil.copytree(
                    source,
                    target,
                    ignore=self._ignore,
                    copy_function=shutil.copy,
                    dirs_exist_ok=True,
                )
            else:
                shutil.copy(source, target)
        except OSError as exc:
            raise PackIOError(str(source), exc.strerror or str(exc)) from exc

    def _ignore(self, directory: str, names: list[str]) -> set[str]:
        if self.exclude is None:
            return set()
        base = pathlib.Path(directory)
        return {
            name
            for name in names
            if self.exclude.match_file(f"{name}/" if (base / name).is_dir() else name)
        }


def materialize(
    graph: FileGraph,
    staging_root: pathlib.Path,
    prefix: str = "",
    **options: typing.Any,
) -> MaterializeResult:
    """Copy every resolved edge of `graph` under `staging_root/prefix`."""
    return Materializer(staging_root, prefix, **options).materialize(graph)
