from __future__ import annotations

import subprocess
from collections.abc import Mapping
from pathlib import Path

from publisher.app.repositories.kube_store import (
    ConfigMapRecord,
    ObjectNotFoundError,
    ObjectStoreError,
    SecretRecord,
)

ARGOCD_NS = "argocd"
PUBLISHER_NS = "arlon"
REPO_SELECTOR = "argocd.argoproj.io/secret-type=repository"


class FakeObjectStore:
    def __init__(self) -> None:
        self.secrets: dict[tuple[str, str], SecretRecord] = {}
        self.configmaps: dict[tuple[str, str], ConfigMapRecord] = {}
        self.secret_reads: list[str] = []
        self.deleted: list[str] = []
        self.fail_listing = False
        self.fail_deletes = False

    def add_secret(
        self,
        namespace: str,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
        data: Mapping[str, bytes] | None = None,
    ) -> None:
        self.secrets[(namespace, name)] = SecretRecord(
            name=name, labels=dict(labels or {}), data=dict(data or {})
        )

    def add_configmap(
        self,
        namespace: str,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
    ) -> None:
        self.configmaps[(namespace, name)] = ConfigMapRecord(
            name=name, labels=dict(labels or {}), data=dict(data or {})
        )

    def add_repository(self, url: str, *, username: str = "git", password: str = "s3cret") -> None:
        self.add_secret(
            ARGOCD_NS,
            f"repo-{len(self.secrets)}",
            labels={"argocd.argoproj.io/secret-type": "repository"},
            data={
                "url": url.encode(),
                "username": username.encode(),
                "password": password.encode(),
            },
        )

    def add_profile(self, name: str, bundles: str) -> None:
        self.add_configmap(
            PUBLISHER_NS, name, labels={"arlon-type": "profile"}, data={"bundles": bundles}
        )

    def add_bundle(self, name: str, payload: bytes | None, *, inline: bool = True) -> None:
        labels = {"bundle-type": "inline" if inline else "external"}
        data = {} if payload is None else {"data": payload}
        self.add_secret(PUBLISHER_NS, name, labels=labels, data=data)

    def list_secrets(self, namespace: str, label_selector: str) -> list[SecretRecord]:
        if self.fail_listing:
            raise ObjectStoreError("connection refused")
        key, _, value = label_selector.partition("=")
        return [
            secret
            for (secret_ns, _), secret in self.secrets.items()
            if secret_ns == namespace and secret.labels.get(key) == value
        ]

    def get_secret(self, namespace: str, name: str) -> SecretRecord:
        self.secret_reads.append(name)
        try:
            return self.secrets[(namespace, name)]
        except KeyError:
            raise ObjectNotFoundError("secret", namespace, name) from None

    def get_configmap(self, namespace: str, name: str) -> ConfigMapRecord:
        try:
            return self.configmaps[(namespace, name)]
        except KeyError:
            raise ObjectNotFoundError("configmap", namespace, name) from None

    def delete_secret(self, namespace: str, name: str) -> None:
        if self.fail_deletes:
            raise ObjectStoreError("the server is currently unable to handle the request")
        if (namespace, name) not in self.secrets:
            raise ObjectNotFoundError("secret", namespace, name)
        del self.secrets[(namespace, name)]
        self.deleted.append(name)


def git(*args: str, cwd: Path) -> str:
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=Test",
            "-c",
            "user.email=test@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        text=True,
        capture_output=True,
        check=True,
    )
    return result.stdout.strip()


def create_remote(root: Path, *, branch: str = "main") -> Path:
    """Create a bare repository whose ``branch`` holds a single README commit."""
    seed = root / "seed"
    seed.mkdir(parents=True)
    git("init", "--quiet", "--initial-branch", branch, cwd=seed)
    (seed / "README.md").write_text("# fleet\n", encoding="utf-8")
    git("add", "README.md", cwd=seed)
    git("commit", "--quiet", "-m", "initial", cwd=seed)

    remote = root / "remote.git"
    git("clone", "--quiet", "--bare", str(seed), str(remote), cwd=root)
    return remote


def commit_count(remote: Path, branch: str = "main") -> int:
    return int(git("rev-list", "--count", branch, cwd=remote))


def read_remote_file(remote: Path, relative_path: str, branch: str = "main") -> str:
    return git("show", f"{branch}:{relative_path}", cwd=remote)


def list_remote_files(remote: Path, branch: str = "main") -> list[str]:
    return git("ls-tree", "-r", "--name-only", branch, cwd=remote).splitlines()
