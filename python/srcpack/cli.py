import argparse
import pathlib
import sys

import yaml

import srcpack
from srcpack.core import pack, read_metadata, resolve
from srcpack.errors import SrcpackError
from srcpack.lockfile import LOCK_NAME, Lock, LockNotFoundError
from srcpack.log import configure_logging, get_logger
from srcpack.manifest import print_tree
from srcpack.materializer import EscapePolicy, plan, target_path
from srcpack.metadata import PackageAttributes
from srcpack.paths import normalize
from srcpack.workspace import PackConfig, discover_config, load_config

logger = get_logger("cli")

_ATTRIBUTE_FLAGS = (
    "name",
    "version",
    "epoch",
    "architecture",
    "description",
    "url",
    "category",
    "priority",
    "license",
    "vendor",
    "maintainer",
)


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("entry", nargs="?", help="Entry file (defaults to `entry` in srcpack.yaml)")
    parser.add_argument("-C", "--chdir", type=pathlib.Path, help="Resolve manifest paths under this directory")
    parser.add_argument("--config", type=pathlib.Path, help="Path to srcpack.yaml")
    parser.add_argument(
        "--only",
        action="store_true",
        help="Only apply the entry file's pack: directives, do not recurse",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="srcpack",
        description="Stage package files from pack: directives in source comments.",
    )
    parser.add_argument("--version", action="version", version=f"srcpack {srcpack.__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Enable debug logging")
    parser.add_argument("--log-file", type=pathlib.Path, help="Also write log records to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Resolve the entry file and fill the staging tree")
    _add_common_options(build)
    build.add_argument("--staging", type=pathlib.Path, help="Staging root directory")
    build.add_argument("--prefix", help="Installation prefix below the staging root")
    build.add_argument(
        "--escape",
        choices=[policy.value for policy in EscapePolicy],
        help="Handling of destinations above the prefix root",
    )
    build.add_argument("--clean", action="store_true", help="Remove the staging root first")
    for flag in _ATTRIBUTE_FLAGS:
        build.add_argument(f"--{flag}", dest=f"attr_{flag}", help=f"Package {flag} (overrides the manifest)")

    tree = subparsers.add_parser("tree", help="Show the resolved source -> destination mapping")
    _add_common_options(tree)

    lock = subparsers.add_parser("lock", help=f"Write the resolved mapping to {LOCK_NAME}")
    _add_common_options(lock)
    lock.add_argument("-o", "--output", type=pathlib.Path, help=f"Lock file path (default: ./{LOCK_NAME})")

    meta = subparsers.add_parser("meta", help="Print the entry file's manifest fields")
    _add_common_options(meta)

    return parser


def _load_config(args: argparse.Namespace) -> PackConfig:
    config = load_config(args.config) if args.config else discover_config()
    updates: dict[str, object] = {}
    if args.chdir is not None:
        updates["chdir"] = args.chdir
    if args.only:
        updates["recurse"] = False
    if getattr(args, "staging", None) is not None:
        updates["staging"] = args.staging
    if getattr(args, "prefix", None) is not None:
        updates["prefix"] = args.prefix
    if getattr(args, "escape", None) is not None:
        updates["escape"] = EscapePolicy(args.escape)
    return config.model_copy(update=updates)


def _attributes(args: argparse.Namespace) -> PackageAttributes:
    given = {
        flag: value
        for flag in _ATTRIBUTE_FLAGS
        if (value := getattr(args, f"attr_{flag}", None)) is not None
    }
    return PackageAttributes(**given)


def _check_lock(path: pathlib.Path, entry: str, root: pathlib.Path) -> None:
    try:
        lock = Lock.load(path)
    except LockNotFoundError:
        return
    if lock.entry == normalize(entry) and not lock.is_current(root):
        logger.warning("%s is stale: %s changed since it was generated", path, entry)


def _run(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    config = _load_config(args)
    entry = args.entry or config.entry
    if not entry:
        parser.error("no entry file given and none configured in srcpack.yaml")

    if args.command == "build":
        _check_lock(pathlib.Path(LOCK_NAME), entry, config.source_root)
        result = pack(entry, config, _attributes(args), clean=args.clean)
        attrs = result.attributes.model_dump(exclude={"meta"}, exclude_none=True)
        print(yaml.safe_dump(attrs, sort_keys=False), end="")
        print(f"Staged {result.copied} file(s) under {result.target_root}")
        if result.issues:
            print(f"{len(result.issues)} warning(s)")
    elif args.command == "tree":
        graph = resolve(entry, config)
        merged = {target_path(s.source, s.dest): s.source for s in plan(graph)}
        print_tree(str(config.source_root), graph.edges, merged)
    elif args.command == "lock":
        graph = resolve(entry, config)
        lock = Lock.compile(graph, config.source_root, srcpack_version=srcpack.__version__)
        output = args.output or pathlib.Path(LOCK_NAME)
        lock.save(output)
        print(f"Generated {output} with {len(lock.mappings)} mappings")
    elif args.command == "meta":
        record = read_metadata(entry, config)
        print(yaml.safe_dump(record.fields, sort_keys=False), end="")
        if record.comment:
            print()
            print(record.comment)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        _run(parser, args)
    except SrcpackError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
