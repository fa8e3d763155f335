from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from publisher.app.repositories.kube_store import ObjectStore, ObjectStoreError, SecretRecord
from publisher.app.services.errors import CredentialNotFoundError

LOGGER = logging.getLogger("cluster_publisher.credentials")


@dataclass(frozen=True)
class RepositoryCredential:
    url: str
    username: str
    password: str = field(repr=False)

    @classmethod
    def from_secret(cls, secret: SecretRecord) -> RepositoryCredential:
        return cls(
            url=_text(secret.data.get("url")),
            username=_text(secret.data.get("username")),
            password=_text(secret.data.get("password")),
        )


def match_repository_credential(
    repo_url: str, credentials: Iterable[RepositoryCredential]
) -> RepositoryCredential:
    """Return the first credential whose URL equals ``repo_url`` exactly."""
    for credential in credentials:
        if credential.url == repo_url:
            return credential
    raise CredentialNotFoundError(repo_url)


class CredentialResolver:
    def __init__(self, *, store: ObjectStore, namespace: str, label_selector: str) -> None:
        self._store = store
        self._namespace = namespace
        self._label_selector = label_selector

    def resolve(self, repo_url: str) -> RepositoryCredential:
        try:
            secrets = self._store.list_secrets(self._namespace, self._label_selector)
        except ObjectStoreError as exc:
            raise CredentialNotFoundError(
                repo_url, reason=f"failed to list repository secrets: {exc}"
            ) from exc

        credential = match_repository_credential(repo_url, _decodable_credentials(secrets))
        LOGGER.debug(
            "resolved repository credential repo_url=%s username=%s",
            repo_url,
            credential.username,
        )
        return credential


def _decodable_credentials(secrets: Iterable[SecretRecord]) -> Iterator[RepositoryCredential]:
    for secret in secrets:
        try:
            credential = RepositoryCredential.from_secret(secret)
        except UnicodeDecodeError:
            LOGGER.debug("skipping repository secret with non-UTF-8 data secret=%s", secret.name)
            continue
        yield credential


def _text(value: bytes | None) -> str:
    if value is None:
        return ""
    return value.decode("utf-8")
