from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from structlog.contextvars import bound_contextvars

from publisher.app.services.bundle_collector import BundleCollector
from publisher.app.services.credential_resolver import CredentialResolver
from publisher.app.services.errors import PublishError
from publisher.app.services.git_publish import ChangeCommitter, Publisher
from publisher.app.services.git_transport import GitAuth
from publisher.app.services.working_tree import (
    PublicationLayout,
    WorkingTreeBuilder,
    validate_layout,
)
from publisher.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("cluster_publisher.deploy")


@dataclass(frozen=True)
class DeployRequest:
    cluster_name: str
    repo_url: str
    branch: str
    base_path: str
    profile_name: str = ""


@dataclass(frozen=True)
class DeployResult:
    cluster_name: str
    committed: bool
    pushed: bool
    commit_sha: str | None
    bundles: tuple[str, ...] = field(default_factory=tuple)


class DeployService:
    """Publishes one cluster's configuration: resolve, collect, build, commit, push."""

    def __init__(
        self,
        *,
        credential_resolver: CredentialResolver,
        bundle_collector: BundleCollector,
        tree_builder: WorkingTreeBuilder,
        committer: ChangeCommitter,
        publisher: Publisher,
        keep_work_dir: bool = False,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._credential_resolver = credential_resolver
        self._bundle_collector = bundle_collector
        self._tree_builder = tree_builder
        self._committer = committer
        self._publisher = publisher
        self._keep_work_dir = keep_work_dir
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def deploy(self, request: DeployRequest) -> DeployResult:
        with (
            bound_contextvars(cluster_name=request.cluster_name),
            self._telemetry.span(
                "deploy",
                cluster_name=request.cluster_name,
                repo_url=request.repo_url,
                branch=request.branch,
                profile_name=request.profile_name,
            ) as span,
        ):
            try:
                result = self._run(request)
            except PublishError as exc:
                LOGGER.error(
                    "deploy failed cluster=%s operation=%s error=%s",
                    request.cluster_name,
                    exc.operation,
                    exc,
                )
                raise
            span.set(committed=result.committed, pushed=result.pushed, bundles=result.bundles)
            return result

    def _run(self, request: DeployRequest) -> DeployResult:
        layout = PublicationLayout(base_path=request.base_path, cluster_name=request.cluster_name)
        validate_layout(layout, operation="write_tree")
        credential = self._credential_resolver.resolve(request.repo_url)
        auth = GitAuth(username=credential.username, password=credential.password)
        bundles = self._bundle_collector.collect(request.profile_name)

        tree_dir = self._tree_builder.clone(request.repo_url, request.branch, auth)
        try:
            self._tree_builder.populate(
                tree_dir, layout, repo_url=request.repo_url, bundles=bundles
            )
            committed = self._committer.commit_changes(tree_dir)
            pushed = self._publisher.publish(
                tree_dir, branch=request.branch, auth=auth, changed=committed
            )
            commit_sha = self._committer.head_sha(tree_dir) if committed else None
        finally:
            self._discard(tree_dir)

        return DeployResult(
            cluster_name=request.cluster_name,
            committed=committed,
            pushed=pushed,
            commit_sha=commit_sha,
            bundles=tuple(bundle.name for bundle in bundles),
        )

    def _discard(self, tree_dir: Path) -> None:
        if self._keep_work_dir:
            LOGGER.info("keeping working tree path=%s", tree_dir)
            return
        shutil.rmtree(tree_dir, ignore_errors=True)
