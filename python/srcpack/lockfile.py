"""srcpack lockfile (srcpack.lock).

A machine-oriented snapshot of one resolved run: the final source ->
destination pairs after override chains, exclusions and de-duplication.
"""

import hashlib
import pathlib
import time
import typing

import pydantic
import yaml

from srcpack.builder import ROOT_ORIGIN, FileGraph
from srcpack.materializer import plan, target_path

LOCK_NAME = "srcpack.lock"


class LockNotFoundError(Exception):
    """Raised when no lock file (srcpack.lock) is found."""


class LockMapping(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="forbid")

    origin: str | None
    source: str
    dest: str


class LockMeta(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="forbid")

    generated_at: int
    srcpack_version: str | None = None


class Lock(pydantic.BaseModel):
    """Compiled srcpack lockfile."""

    model_config = pydantic.ConfigDict(extra="forbid")

    apiVersion: typing.Literal["srcpack/lock/v1"] = "srcpack/lock/v1"
    meta: LockMeta
    entry: str
    entry_sha256: str | None = None
    mappings: list[LockMapping] = pydantic.Field(default_factory=list)

    @classmethod
    def compile(
        cls,
        graph: FileGraph,
        root: pathlib.Path,
        *,
        srcpack_version: str | None = None,
    ) -> "Lock":
        entry_sha256 = None
        entry_file = root / graph.entry
        if entry_file.is_file():
            entry_sha256 = hashlib.sha256(entry_file.read_bytes()).hexdigest()

        return cls(
            meta=LockMeta(
                generated_at=int(time.time()),
                srcpack_version=srcpack_version,
            ),
            entry=graph.entry,
            entry_sha256=entry_sha256,
            mappings=[
                LockMapping(
                    origin=None if staged.origin == ROOT_ORIGIN else staged.origin,
                    source=staged.source,
                    dest=target_path(staged.source, staged.dest),
                )
                for staged in plan(graph)
            ],
        )

    def save(self, path: pathlib.Path) -> None:
        data = self.model_dump(mode="json")
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")

    @classmethod
    def load(cls, path: pathlib.Path) -> "Lock":
        if not path.exists():
            raise LockNotFoundError(f"No {LOCK_NAME} found at {path}")
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return cls.model_validate(data)

    def is_current(self, root: pathlib.Path) -> bool:
        """Check the entry file still hashes to the recorded digest."""
        entry_file = root / self.entry
        if not entry_file.is_file():
            return False
        return hashlib.sha256(entry_file.read_bytes()).hexdigest() == self.entry_sha256
