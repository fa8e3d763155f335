from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from publisher.app.services.errors import CommitFailedError, PushConflictError, PushFailedError
from publisher.app.services.git_transport import GitAuth, GitCommandError, GitTransport

LOGGER = logging.getLogger("cluster_publisher.git")

_REJECTION_MARKERS: tuple[str, ...] = ("[rejected]", "non-fast-forward", "fetch first")


@dataclass(frozen=True)
class CommitIdentity:
    name: str
    email: str
    message: str


class ChangeCommitter:
    """Commits the working tree only when it differs from the cloned HEAD."""

    def __init__(self, *, transport: GitTransport, identity: CommitIdentity) -> None:
        self._transport = transport
        self._identity = identity

    def commit_changes(self, tree_dir: Path) -> bool:
        try:
            self._transport.stage_all(tree_dir)
            if not self._transport.has_staged_changes(tree_dir):
                return False
            self._transport.commit(
                tree_dir,
                author_name=self._identity.name,
                author_email=self._identity.email,
                message=self._identity.message,
            )
        except GitCommandError as exc:
            raise CommitFailedError(f"failed to commit changes: {exc.stderr}") from exc
        return True

    def head_sha(self, tree_dir: Path) -> str:
        try:
            return self._transport.head_sha(tree_dir)
        except GitCommandError as exc:
            raise CommitFailedError(f"failed to read HEAD: {exc.stderr}") from exc


class Publisher:
    def __init__(self, *, transport: GitTransport) -> None:
        self._transport = transport

    def publish(self, tree_dir: Path, *, branch: str, auth: GitAuth | None, changed: bool) -> bool:
        """Push the new commit; returns whether the remote was contacted."""
        if not changed:
            LOGGER.info("no changed files, skipping commit & push")
            return False
        try:
            self._transport.push(tree_dir, branch, auth)
        except GitCommandError as exc:
            if is_push_rejection(exc.stderr):
                raise PushConflictError(
                    f"remote branch {branch} moved since clone: {exc.stderr}"
                ) from exc
            raise PushFailedError(f"failed to push to remote repository: {exc.stderr}") from exc
        LOGGER.info("successfully pushed working tree branch=%s tree_dir=%s", branch, tree_dir)
        return True


def is_push_rejection(stderr: str) -> bool:
    return any(marker in stderr for marker in _REJECTION_MARKERS)
