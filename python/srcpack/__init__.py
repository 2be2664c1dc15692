"""srcpack - stage a package tree from pack: directives in source comments."""

from srcpack.builder import Directive, FileGraph, GraphBuilder, build_graph
from srcpack.core import PackResult, pack, read_metadata, resolve
from srcpack.errors import (
    ConfigError,
    Issue,
    IssueKind,
    PackIOError,
    PathEscapeError,
    SrcpackError,
)
from srcpack.manifest import ManifestRecord, extract
from srcpack.materializer import EscapePolicy, Materializer, materialize
from srcpack.metadata import PackageAttributes, apply_metadata
from srcpack.paths import normalize
from srcpack.workspace import PackConfig, load_config

__version__ = "0.7.0"

__all__ = [
    "ConfigError",
    "Directive",
    "EscapePolicy",
    "FileGraph",
    "GraphBuilder",
    "Issue",
    "IssueKind",
    "ManifestRecord",
    "Materializer",
    "PackConfig",
    "PackIOError",
    "PackResult",
    "PackageAttributes",
    "PathEscapeError",
    "SrcpackError",
    "apply_metadata",
    "build_graph",
    "extract",
    "load_config",
    "materialize",
    "normalize",
    "pack",
    "read_metadata",
    "resolve",
]
