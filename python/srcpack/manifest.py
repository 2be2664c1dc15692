"""Manifest extraction from leading comment blocks."""

import collections.abc
import pathlib
import re

import pydantic
from rich.tree import Tree

from srcpack.errors import PackIOError
from srcpack.log import console

DEFAULT_READ_LIMIT = 1 << 13

_FIELD_LINE = re.compile(r"^([\w-]+):[ \t]*(.*)$")
_PACK_SEPARATOR = re.compile(r"(?<!\\)[,\s]+(?![^{}]*\})")
_EXTENSION = re.compile(r"\.\w+$")


class CommentStyle(pydantic.BaseModel):
    """Comment conventions of one file type."""

    model_config = pydantic.ConfigDict(extra="forbid", frozen=True)

    line: tuple[str, ...] = ()
    block: tuple[tuple[str, str], ...] = ()


_HASH = CommentStyle(line=("#",))
_C_FAMILY = CommentStyle(line=("//",), block=(("/*", "*/"),))
_DASHES = CommentStyle(line=("--",))

DEFAULT_STYLE = CommentStyle(line=("#",), block=(("/*", "*/"),))

DEFAULT_STYLES: dict[str, CommentStyle] = {
    **dict.fromkeys(
        [".sh", ".bash", ".zsh", ".rb", ".pl", ".pm", ".tcl", ".r", ".yaml", ".yml",
         ".toml", ".conf", ".cfg", ".txt", ".mk", ".cmake"],
        _HASH,
    ),
    ".py": CommentStyle(line=("#",), block=(('"""', '"""'), ("'''", "'''"))),
    **dict.fromkeys(
        [".c", ".h", ".cc", ".cpp", ".hpp", ".java", ".js", ".mjs", ".ts", ".go",
         ".rs", ".cs", ".swift", ".kt", ".scala", ".css", ".scss"],
        _C_FAMILY,
    ),
    ".php": CommentStyle(line=("#", "//"), block=(("/*", "*/"),)),
    ".lua": CommentStyle(line=("--",), block=(("--[[", "]]"),)),
    ".sql": _DASHES,
    ".hs": _DASHES,
    ".ini": CommentStyle(line=(";", "#")),
    ".el": CommentStyle(line=(";",)),
    ".lisp": CommentStyle(line=(";",)),
    **dict.fromkeys(
        [".html", ".htm", ".xml", ".svg", ".md"],
        CommentStyle(block=(("<!--", "-->"),)),
    ),
}


class ManifestRecord(pydantic.BaseModel):
    """Parsed manifest of one file."""

    model_config = pydantic.ConfigDict(frozen=True)

    id: str | None = None
    version: str | None = None
    epoch: str | None = None
    architecture: str | None = None
    description: str | None = None
    url: str | None = None
    homepage: str | None = None
    category: str | None = None
    priority: str | None = None
    license: str | None = None
    author: str | None = None
    pack: str = ""
    depends: str | None = None
    title: str | None = None
    type: str | None = None
    state: str | None = None

    extra: dict[str, str] = pydantic.Field(default_factory=dict)
    pack_list: tuple[str, ...] = ()
    comment: str = ""
    skipped_lines: tuple[str, ...] = ()

    @classmethod
    def from_fields(
        cls,
        fields: collections.abc.Mapping[str, str],
        *,
        comment: str = "",
        skipped_lines: collections.abc.Sequence[str] = (),
    ) -> "ManifestRecord":
        known = {k: v for k, v in fields.items() if k in _KNOWN_KEYS}
        extra = {k: v for k, v in fields.items() if k not in _KNOWN_KEYS}
        return cls(
            **known,
            extra=extra,
            pack_list=split_pack(fields.get("pack", "")),
            comment=comment,
            skipped_lines=tuple(skipped_lines),
        )

    @property
    def fields(self) -> dict[str, str]:
        """All parsed key/value fields, known and extra."""
        known = {
            key: value
            for key in _KNOWN_KEYS
            if (value := getattr(self, key)) is not None
        }
        return {**known, **self.extra}


_KNOWN_KEYS = frozenset(
    name
    for name in ManifestRecord.model_fields
    if name not in {"extra", "pack_list", "comment", "skipped_lines"}
)


def split_pack(value: str) -> tuple[str, ...]:
    """Split a pack: value on unescaped commas and whitespace outside `{...}`."""
    return tuple(token for token in _PACK_SEPARATOR.split(value) if token)


def style_for(
    path: str | pathlib.Path,
    styles: collections.abc.Mapping[str, CommentStyle] | None = None,
) -> CommentStyle:
    suffix = pathlib.PurePosixPath(str(path)).suffix.lower()
    if styles and suffix in styles:
        return styles[suffix]
    return DEFAULT_STYLES.get(suffix, DEFAULT_STYLE)


def extract(
    path: str | pathlib.Path,
    *,
    read_limit: int = DEFAULT_READ_LIMIT,
    styles: collections.abc.Mapping[str, CommentStyle] | None = None,
) -> ManifestRecord:
    """Parse the manifest fields from the leading comment block of a file.

    Files without a comment block, and binary files, yield a record with an
    empty pack list.
    """
    path = pathlib.Path(path)
    try:
        with path.open("rb") as fh:
            raw = fh.read(read_limit)
    except OSError as exc:
        raise PackIOError(str(path), exc.strerror or str(exc)) from exc

    if b"\0" in raw:
        return ManifestRecord()

    text = raw.decode("utf-8", errors="replace")
    block = find_comment_block(text, style_for(path, styles))
    if block is None:
        return ManifestRecord()

    return parse_block(block, default_id=_default_id(path.name))


def parse_block(lines: collections.abc.Sequence[str], *, default_id: str) -> ManifestRecord:
    """Parse stripped comment lines into a record."""
    lines = list(lines)
    while lines and not lines[0]:
        lines.pop(0)

    try:
        split_at = lines.index("")
    except ValueError:
        head, tail = lines, []
    else:
        head, tail = lines[:split_at], lines[split_at + 1 :]

    fields: dict[str, str] = {}
    skipped: list[str] = []
    key: str | None = None
    for line in head:
        match = _FIELD_LINE.match(line)
        if match:
            key = match.group(1).lower()
            fields[key] = match.group(2)
        elif key is not None:
            fields[key] = f"{fields[key]}\n{line}"
        else:
            skipped.append(line)

    fields.setdefault("id", default_id)
    comment = "\n".join(tail).strip("\n")
    return ManifestRecord.from_fields(fields, comment=comment, skipped_lines=skipped)


def find_comment_block(text: str, style: CommentStyle) -> list[str] | None:
    """Return the stripped lines of the first comment block, if any."""
    lines = text.splitlines()
    for index, line in enumerate(lines):
        stripped = line.lstrip()
        leader = _line_leader(stripped, style)
        if leader is not None:
            return _collect_line_comments(lines[index:], style)
        for opener, closer in style.block:
            start = line.find(opener)
            if start >= 0:
                return _collect_block(lines[index:], start + len(opener), closer)
    return None


def _line_leader(stripped: str, style: CommentStyle) -> str | None:
    if stripped.startswith("#!"):
        return None
    for leader in style.line:
        if stripped.startswith(leader):
            # a block opener sharing the leader (e.g. `--[[`) is not a line comment
            if any(stripped.startswith(op) for op, _ in style.block):
                return None
            return leader
    return None


def _collect_line_comments(lines: list[str], style: CommentStyle) -> list[str]:
    block: list[str] = []
    for line in lines:
        stripped = line.lstrip()
        leader = _line_leader(stripped, style)
        if leader is None:
            break
        body = stripped
        while body.startswith(leader):
            body = body[len(leader) :]
        block.append(body.strip())
    return block


def _collect_block(lines: list[str], offset: int, closer: str) -> list[str]:
    block: list[str] = []
    for number, line in enumerate(lines):
        body = line[offset:] if number == 0 else line
        end = body.find(closer)
        if end >= 0:
            body = body[:end]
        block.append(body.strip().lstrip("*").strip())
        if end >= 0:
            break
    return block


def _default_id(name: str) -> str:
    return _EXTENSION.sub("", name) or name


def print_tree(
    root: str,
    sources: collections.abc.Mapping[str, collections.abc.Mapping[str, str]],
    merged: collections.abc.Mapping[str, str],
) -> None:
    """Render per-origin directives and the merged destination tree."""
    source_tree = Tree(f"[bold blue]{root}[/] [dim](origins)[/]")
    for origin, pack in sources.items():
        branch = source_tree.add(f"[bold yellow]{origin or '(entry)'}[/]")
        for src, dest in pack.items():
            target = dest if dest else "[red]excluded[/]"
            branch.add(f"{src} [dim]→ {target}[/]")
    console.print(source_tree)
    console.print()

    merged_tree = Tree(f"[bold blue]{root}[/] [dim](staged)[/]")
    _render_entries(merged_tree, merged)
    console.print(merged_tree)


def _render_entries(root_node: Tree, entries: collections.abc.Mapping[str, str]) -> None:
    nodes: dict[str, Tree] = {"": root_node}

    def _ensure_parent(path: str) -> Tree:
        if path in nodes:
            return nodes[path]
        parent, _, name = path.rpartition("/")
        node = _ensure_parent(parent).add(f"[bold cyan]{name}/[/]")
        nodes[path] = node
        return node

    for dest in sorted(entries):
        parent, _, name = dest.rpartition("/")
        nodes[dest] = _ensure_parent(parent).add(f"{name} [dim]← {entries[dest]}[/]")
