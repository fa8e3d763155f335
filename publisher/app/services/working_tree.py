"""Assembles a cluster's publication inside a fresh clone of the target repository.

The files are computed as a plan first (relative path to content) and
validated before anything is written, so a bad bundle or name never leaves a
partially written tree behind.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from publisher.app.repositories.manifest_assets import ManifestSource
from publisher.app.services.bundle_collector import InlineBundle
from publisher.app.services.errors import (
    CloneFailedError,
    InvalidLayoutError,
    MissingPayloadError,
    WorkingTreeWriteError,
)
from publisher.app.services.git_transport import GitAuth, GitCommandError, GitTransport
from publisher.app.services.templates import BundleAppSettings, render_bundle_application

LOGGER = logging.getLogger("cluster_publisher.working_tree")

WORK_DIR_PREFIX = "cluster-publisher-"

PublicationPlan = dict[PurePosixPath, bytes]


@dataclass(frozen=True)
class PublicationLayout:
    base_path: str
    cluster_name: str

    @property
    def cluster_root(self) -> PurePosixPath:
        return PurePosixPath(self.base_path) / self.cluster_name

    @property
    def mgmt_path(self) -> PurePosixPath:
        return self.cluster_root / "mgmt"

    @property
    def workload_path(self) -> PurePosixPath:
        return self.cluster_root / "workload"


def validate_layout(layout: PublicationLayout, *, operation: str) -> None:
    """Reject a base path or cluster name that would leave the repository tree."""
    base_path = PurePosixPath(layout.base_path)
    if not layout.base_path or base_path.is_absolute() or ".." in base_path.parts:
        raise InvalidLayoutError(f"invalid base path: {layout.base_path!r}", operation=operation)
    if not _is_plain_name(layout.cluster_name):
        raise InvalidLayoutError(
            f"invalid cluster name: {layout.cluster_name!r}", operation=operation
        )


def plan_publication(
    layout: PublicationLayout,
    *,
    repo_url: str,
    manifests: ManifestSource,
    bundles: Sequence[InlineBundle],
) -> PublicationPlan:
    validate_layout(layout, operation="write_tree")
    for bundle in bundles:
        _validate_name(bundle.name, what="bundle name")
        if not bundle.payload:
            raise MissingPayloadError(bundle.name, operation="write_tree")

    plan: PublicationPlan = {}
    for relative_path, content in manifests.items():
        _validate_relative(relative_path, what="manifest path")
        plan[layout.mgmt_path / relative_path] = content
    base_paths = frozenset(plan)

    # A bundle listed twice rewrites the same two files.
    for bundle in bundles:
        file_name = f"{bundle.name}.yaml"
        plan[layout.workload_path / bundle.name / file_name] = bundle.payload

        app_path = layout.mgmt_path / "templates" / file_name
        if app_path in base_paths:
            raise WorkingTreeWriteError(
                f"application for bundle {bundle.name} would overwrite {app_path}"
            )
        app = BundleAppSettings(
            cluster_name=layout.cluster_name,
            bundle_name=bundle.name,
            workload_path=str(layout.workload_path),
            repo_url=repo_url,
        )
        plan[app_path] = render_bundle_application(app).encode("utf-8")
    return plan


def write_publication(root: Path, plan: Mapping[PurePosixPath, bytes]) -> None:
    for relative_path in sorted(plan):
        destination = root.joinpath(*relative_path.parts)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            destination.write_bytes(plan[relative_path])
        except OSError as exc:
            raise WorkingTreeWriteError(f"failed to write {relative_path}: {exc}") from exc
        LOGGER.debug("wrote file destination=%s", relative_path)


class WorkingTreeBuilder:
    def __init__(
        self,
        *,
        transport: GitTransport,
        manifests: ManifestSource,
        work_dir: Path | None = None,
    ) -> None:
        self._transport = transport
        self._manifests = manifests
        self._work_dir = work_dir

    def clone(self, repo_url: str, branch: str, auth: GitAuth | None) -> Path:
        """Clone ``branch`` into a new temporary directory and return its path."""
        try:
            if self._work_dir is not None:
                self._work_dir.mkdir(parents=True, exist_ok=True)
            tree_dir = Path(tempfile.mkdtemp(prefix=WORK_DIR_PREFIX, dir=self._work_dir))
        except OSError as exc:
            raise CloneFailedError(f"failed to create working directory: {exc}") from exc

        try:
            self._transport.clone(repo_url, branch, tree_dir, auth)
        except GitCommandError as exc:
            shutil.rmtree(tree_dir, ignore_errors=True)
            raise CloneFailedError(f"failed to clone repository {repo_url}: {exc.stderr}") from exc
        return tree_dir

    def populate(
        self,
        tree_dir: Path,
        layout: PublicationLayout,
        *,
        repo_url: str,
        bundles: Sequence[InlineBundle],
    ) -> PublicationPlan:
        plan = plan_publication(
            layout,
            repo_url=repo_url,
            manifests=self._manifests,
            bundles=bundles,
        )
        write_publication(tree_dir, plan)
        LOGGER.info(
            "populated working tree cluster=%s files=%s bundles=%s",
            layout.cluster_name,
            len(plan),
            len(bundles),
        )
        return plan


def _is_plain_name(name: str) -> bool:
    return bool(name) and name not in {".", ".."} and "/" not in name and "\\" not in name


def _validate_name(name: str, *, what: str) -> None:
    if not _is_plain_name(name):
        raise WorkingTreeWriteError(f"invalid {what}: {name!r}")


def _validate_relative(path: PurePosixPath, *, what: str) -> None:
    if path.is_absolute() or ".." in path.parts:
        raise WorkingTreeWriteError(f"invalid {what}: {path}")
