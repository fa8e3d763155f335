"""Failure kinds raised by the publishing pipeline.

Every error is terminal for the current invocation. ``operation`` names the
pipeline step that failed so callers can log and abort without parsing text.
"""

from __future__ import annotations


class PublishError(RuntimeError):
    def __init__(self, message: str, *, operation: str) -> None:
        super().__init__(message)
        self.operation = operation


class CredentialNotFoundError(PublishError):
    def __init__(self, repo_url: str, *, reason: str | None = None) -> None:
        message = f"no registered repository credential matches {repo_url} (did you register it?)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, operation="resolve_credentials")
        self.repo_url = repo_url


class InvalidProfileError(PublishError):
    def __init__(self, message: str) -> None:
        super().__init__(message, operation="collect_bundles")


class ProfileNotFoundError(InvalidProfileError):
    pass


class EmptyProfileError(PublishError):
    def __init__(self, profile_name: str) -> None:
        super().__init__(f"profile {profile_name} has no bundles", operation="collect_bundles")
        self.profile_name = profile_name


class BundleNotFoundError(PublishError):
    def __init__(self, bundle_name: str, *, reason: str, operation: str = "collect_bundles") -> None:
        super().__init__(f"failed to get bundle {bundle_name!r}: {reason}", operation=operation)
        self.bundle_name = bundle_name


class MissingPayloadError(PublishError):
    def __init__(self, bundle_name: str, *, operation: str = "collect_bundles") -> None:
        super().__init__(f"inline bundle {bundle_name} has no data", operation=operation)
        self.bundle_name = bundle_name


class CloneFailedError(PublishError):
    def __init__(self, message: str) -> None:
        super().__init__(message, operation="clone")


class WorkingTreeWriteError(PublishError):
    def __init__(self, message: str) -> None:
        super().__init__(message, operation="write_tree")


class CommitFailedError(PublishError):
    def __init__(self, message: str) -> None:
        super().__init__(message, operation="commit")


class PushFailedError(PublishError):
    def __init__(self, message: str) -> None:
        super().__init__(message, operation="push")


class PushConflictError(PushFailedError):
    """The remote branch moved since the clone; re-clone and deploy again."""


class ClusterSpecNotFoundError(PublishError):
    def __init__(self, spec_name: str, *, reason: str) -> None:
        super().__init__(
            f"failed to get cluster spec {spec_name!r}: {reason}",
            operation="build_root_descriptor",
        )
        self.spec_name = spec_name


class InvalidLayoutError(PublishError):
    """A base path or cluster name that does not stay inside the repository."""


class BundleDeleteFailedError(PublishError):
    def __init__(self, bundle_name: str, *, reason: str) -> None:
        super().__init__(
            f"failed to delete bundle {bundle_name!r}: {reason}", operation="delete_bundle"
        )
        self.bundle_name = bundle_name
