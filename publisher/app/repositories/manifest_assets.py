"""Base manifests copied into every cluster's management path."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import PurePosixPath
from typing import Protocol

MANIFESTS_PACKAGE = "publisher.app.manifests"
_SKIPPED_NAMES: frozenset[str] = frozenset({"__init__.py", "__pycache__"})


class ManifestSource(Protocol):
    def items(self) -> Iterator[tuple[PurePosixPath, bytes]]:
        """Yield (relative path, content) pairs in a stable order."""
        ...


class PackagedManifestSource:
    """Reads the chart shipped inside the package as read-only resources."""

    def __init__(self, package: str = MANIFESTS_PACKAGE) -> None:
        self._package = package

    def items(self) -> Iterator[tuple[PurePosixPath, bytes]]:
        yield from _walk(files(self._package), PurePosixPath())


class InMemoryManifestSource:
    def __init__(self, contents: Mapping[str, bytes]) -> None:
        self._contents = {PurePosixPath(path): data for path, data in contents.items()}

    def items(self) -> Iterator[tuple[PurePosixPath, bytes]]:
        for path in sorted(self._contents):
            yield path, self._contents[path]


def _walk(node: Traversable, prefix: PurePosixPath) -> Iterator[tuple[PurePosixPath, bytes]]:
    for child in sorted(node.iterdir(), key=lambda entry: entry.name):
        if child.name in _SKIPPED_NAMES:
            continue
        relative = prefix / child.name
        if child.is_dir():
            yield from _walk(child, relative)
        else:
            yield relative, child.read_bytes()
