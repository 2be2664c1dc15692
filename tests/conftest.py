import collections.abc
import logging
import pathlib

import pytest

FIXTURES = pathlib.Path(__file__).parent / "fixtures"


class Tree:
    """Writes small source trees below a root directory."""

    def __init__(self, root: pathlib.Path) -> None:
        self.root = root

    def write(self, rel: str, text: str = "") -> pathlib.Path:
        path = self.root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path


@pytest.fixture
def tree(tmp_path: pathlib.Path) -> Tree:
    src = tmp_path / "src"
    src.mkdir()
    return Tree(src)


@pytest.fixture
def fixtures() -> pathlib.Path:
    return FIXTURES


@pytest.fixture(autouse=True)
def _reset_srcpack_logger() -> collections.abc.Iterator[None]:
    # configure_logging() detaches the logger from the root; undo it between tests
    yield
    logger = logging.getLogger("srcpack")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
