"""File graph builder for srcpack.

Starting from the entry file, every file named in a `pack:` directive is
visited in turn, and each origin records the (source -> destination) pairs its
own directives contribute.
"""

import collections.abc
import glob
import itertools
import pathlib
import re
import typing

import pathspec
import pydantic

from srcpack import manifest as _manifest
from srcpack.errors import Issue, IssueKind
from srcpack.log import get_logger
from srcpack.paths import escapes_root, normalize, split_path

logger = get_logger("builder")

# Edges seeded by the run itself rather than by any file's directives.
ROOT_ORIGIN = ""

_GLOB_CHARS = re.compile(r"[\[{*?]")
_UNESCAPED_EQUALS = re.compile(r"(?<!\\)=")
_ESCAPE = re.compile(r"\\(.)")
_BRACES = re.compile(r"\{([^{}]*)\}")


class Directive(typing.NamedTuple):
    """One `src[=dest]` token of a pack: field."""

    source: str
    destination: str | None

    @classmethod
    def parse(cls, token: str) -> "Directive":
        parts = _UNESCAPED_EQUALS.split(token, maxsplit=1)
        source = _unescape(parts[0])
        destination = _unescape(parts[1]) if len(parts) == 2 else None
        return cls(source, destination)

    @property
    def is_glob(self) -> bool:
        return bool(_GLOB_CHARS.search(self.source))


class FileGraph(pydantic.BaseModel):
    """Resolution state of one packaging run."""

    entry: str
    visited: set[str] = pydantic.Field(default_factory=set)
    edges: dict[str, dict[str, str]] = pydantic.Field(default_factory=dict)
    issues: list[Issue] = pydantic.Field(default_factory=list)

    @classmethod
    def seeded(cls, entry: str) -> "FileGraph":
        return cls(entry=entry, edges={ROOT_ORIGIN: {entry: entry}})

    def iter_edges(self) -> collections.abc.Iterator[tuple[str, str, str]]:
        """Yield (origin, source, destination) in discovery order."""
        for origin, pack in self.edges.items():
            for src, dest in pack.items():
                yield origin, src, dest

    def self_remap(self, path: str) -> str | None:
        """Destination a file assigned to itself, if it declared one."""
        return self.edges.get(path, {}).get(path)


class GraphBuilder:
    """Builds the file graph from an entry file and its pack: references."""

    def __init__(
        self,
        root: pathlib.Path,
        *,
        recurse: bool = True,
        exclude: pathspec.PathSpec | None = None,
        read_limit: int = _manifest.DEFAULT_READ_LIMIT,
        styles: collections.abc.Mapping[str, _manifest.CommentStyle] | None = None,
    ) -> None:
        self.root = root
        self.recurse = recurse
        self.exclude = exclude
        self.read_limit = read_limit
        self.styles = styles

    def build(self, entry: str) -> FileGraph:
        """Resolve every file reachable from `entry`."""
        entry = normalize(entry)
        graph = FileGraph.seeded(entry)
        pending = [entry]
        while pending:
            origin = pending.pop()
            # children are pushed reversed so they pop in directive order
            pending.extend(reversed(self._visit(graph, origin)))
        logger.debug("resolved graph: %s", graph.edges)
        return graph

    def _visit(self, graph: FileGraph, origin: str) -> list[str]:
        if origin in graph.visited:
            return []
        graph.visited.add(origin)

        path = self.root / origin
        if not path.exists():
            self._issue(graph, IssueKind.MISSING_FILE, origin, f"Skipping non-existent {origin} file")
            return []
        if path.is_dir():
            graph.edges[origin] = {}
            return []

        record = _manifest.extract(path, read_limit=self.read_limit, styles=self.styles)
        for line in record.skipped_lines:
            self._issue(graph, IssueKind.MALFORMED_MANIFEST, origin, f"Ignoring unparseable manifest line {line!r}")

        directory, _ = split_path(origin)
        pack = graph.edges[origin] = {}
        children: list[str] = []
        for token in record.pack_list:
            directive = Directive.parse(token)
            for src in self._expand(graph, origin, directory, directive, token):
                dest = self._destination(directory, src, directive.destination)
                if escapes_root(dest):
                    self._issue(graph, IssueKind.PATH_ESCAPE, origin, f"Referencing above ../ the basedir from {origin}")
                pack[src] = dest
                if self.recurse:
                    children.append(src)
        return children

    def _expand(
        self,
        graph: FileGraph,
        origin: str,
        directory: str,
        directive: Directive,
        token: str,
    ) -> list[str]:
        if not directive.is_glob:
            return [normalize(directory + directive.source)]

        matches = sorted(
            {
                normalize(match)
                for pattern in expand_braces(directory + directive.source)
                for match in glob.glob(pattern, root_dir=self.root)
            }
        )
        if not matches:
            self._issue(graph, IssueKind.EMPTY_GLOB, origin, f"Nothing matched for {token!r} in {origin!r}")
            return []
        if self.exclude is not None:
            kept = [m for m in matches if not self.exclude.match_file(m)]
            if not kept:
                self._issue(graph, IssueKind.EXCLUDED, origin, f"All matches for {token!r} in {origin!r} are excluded")
            return kept
        return matches

    @staticmethod
    def _destination(directory: str, src: str, destination: str | None) -> str:
        if destination is None:
            return src
        if destination == "":
            return ""
        return normalize(directory + destination)

    @staticmethod
    def _issue(graph: FileGraph, kind: IssueKind, path: str, message: str) -> None:
        logger.warning(message)
        graph.issues.append(Issue(kind, path, message))


def build_graph(
    entry: str,
    root: pathlib.Path | None = None,
    **options: typing.Any,
) -> FileGraph:
    """Build the file graph for `entry`, resolving paths against `root`."""
    return GraphBuilder(root or pathlib.Path.cwd(), **options).build(entry)


def expand_braces(pattern: str) -> list[str]:
    """Expand `{a,b}` alternatives, which the glob module does not support."""
    match = _BRACES.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    options = match.group(1).split(",")
    return list(
        itertools.chain.from_iterable(
            expand_braces(f"{head}{option}{tail}") for option in options
        )
    )


def _unescape(value: str) -> str:
    return _ESCAPE.sub(r"\1", value)
