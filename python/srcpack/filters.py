"""Post-staging filters applied to the staging tree."""

import pathlib
import shutil
import stat
import tempfile

from srcpack.errors import PackIOError
from srcpack.log import get_logger

logger = get_logger("filters")

_MAX_MODE = 0o7755


def fix_permissions(root: pathlib.Path) -> int:
    """Clamp every staged path to at most rwxr-xr-x; returns paths changed."""
    changed = 0
    for path in root.rglob("*"):
        if path.is_symlink():
            continue
        mode = stat.S_IMODE(path.stat().st_mode)
        clamped = mode & _MAX_MODE
        if clamped != mode:
            path.chmod(clamped)
            changed += 1
    return changed


def unprefix(root: pathlib.Path, subdir: str) -> bool:
    """Make the contents of `root/subdir` the whole staging tree.

    Returns False, leaving the tree untouched, when `subdir` does not exist.
    """
    source = root / subdir.strip("/")
    if not source.is_dir():
        logger.error("Prefix directory doesn't exist in staging path: %s", subdir)
        return False

    try:
        with tempfile.TemporaryDirectory(dir=root.parent, prefix="srcpack-staging-") as keep:
            keep_path = pathlib.Path(keep)
            for item in source.iterdir():
                shutil.move(str(item), str(keep_path / item.name))
            logger.debug("Exchanging staging path %s with %s", root, subdir)
            for item in root.iterdir():
                if item.is_dir() and not item.is_symlink():
                    shutil.rmtree(item)
                else:
                    item.unlink()
            for item in keep_path.iterdir():
                shutil.move(str(item), str(root / item.name))
    except OSError as exc:
        raise PackIOError(str(root), exc.strerror or str(exc)) from exc
    return True
