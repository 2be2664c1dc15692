"""srcpack run pipeline: metadata, graph resolution, staging."""

import pathlib
import shutil
import typing

from srcpack import filters
from srcpack.builder import FileGraph, GraphBuilder
from srcpack.errors import Issue, PackIOError
from srcpack.log import get_logger
from srcpack.manifest import ManifestRecord, extract
from srcpack.materializer import Materializer, StagedFile
from srcpack.metadata import PackageAttributes, apply_metadata
from srcpack.workspace import PackConfig

logger = get_logger("core")


class PackResult(typing.NamedTuple):
    attributes: PackageAttributes
    graph: FileGraph
    copied: int
    issues: list[Issue]
    staged: list[StagedFile]
    target_root: pathlib.Path


def read_metadata(entry: str, config: PackConfig | None = None) -> ManifestRecord:
    """Parse the entry file's manifest."""
    config = config or PackConfig()
    return extract(
        config.source_root / entry,
        read_limit=config.read_limit,
        styles=config.comment_styles,
    )


def resolve(entry: str, config: PackConfig | None = None) -> FileGraph:
    """Build the file graph for `entry` without touching the staging tree."""
    config = config or PackConfig()
    builder = GraphBuilder(
        config.source_root,
        recurse=config.recurse,
        exclude=config.exclude_spec,
        read_limit=config.read_limit,
        styles=config.comment_styles,
    )
    return builder.build(entry)


def pack(
    entry: str,
    config: PackConfig | None = None,
    attributes: PackageAttributes | None = None,
    *,
    clean: bool = False,
) -> PackResult:
    """Resolve `entry` and stage every referenced file.

    Explicitly set `attributes` are kept; the rest are filled from the entry
    file's manifest.
    """
    config = config or PackConfig()
    attributes = attributes or PackageAttributes()

    root = config.source_root
    if (root / entry).is_file():
        attributes = apply_metadata(attributes, read_metadata(entry, config))

    graph = resolve(entry, config)

    staging = config.staging.expanduser()
    if clean and staging.exists():
        logger.debug("Removing previous staging tree %s", staging)
        try:
            shutil.rmtree(staging)
        except OSError as exc:
            raise PackIOError(str(staging), exc.strerror or str(exc)) from exc

    materializer = Materializer(
        staging,
        config.prefix,
        source_root=root,
        escape=config.escape,
        exclude=config.exclude_spec,
    )
    result = materializer.materialize(graph)

    if config.unprefix:
        filters.unprefix(staging, config.unprefix)
    if config.fix_permissions and staging.exists():
        filters.fix_permissions(staging)

    return PackResult(
        attributes=attributes,
        graph=graph,
        copied=result.copied,
        issues=[*graph.issues, *result.issues],
        staged=result.staged,
        target_root=materializer.target_root,
    )
