"""Read access to the Kubernetes objects the publisher consumes, via kubectl."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

LOGGER = logging.getLogger("cluster_publisher.kube_store")


class ObjectStoreError(RuntimeError):
    pass


class ObjectNotFoundError(ObjectStoreError):
    def __init__(self, kind: str, namespace: str, name: str) -> None:
        super().__init__(f"{kind} {namespace}/{name} not found")
        self.kind = kind
        self.namespace = namespace
        self.name = name


@dataclass(frozen=True)
class SecretRecord:
    name: str
    labels: Mapping[str, str]
    data: Mapping[str, bytes] = field(repr=False)


@dataclass(frozen=True)
class ConfigMapRecord:
    name: str
    labels: Mapping[str, str]
    data: Mapping[str, str]


class ObjectStore(Protocol):
    def list_secrets(self, namespace: str, label_selector: str) -> list[SecretRecord]:
        ...

    def get_secret(self, namespace: str, name: str) -> SecretRecord:
        ...

    def get_configmap(self, namespace: str, name: str) -> ConfigMapRecord:
        ...

    def delete_secret(self, namespace: str, name: str) -> None:
        ...


class KubectlObjectStore:
    """Thin wrapper around kubectl for secret and configmap lookups."""

    def __init__(self, *, kubeconfig: Path | None = None, kubectl_binary: str = "kubectl") -> None:
        self._kubeconfig = kubeconfig
        self._kubectl_binary = kubectl_binary

    def list_secrets(self, namespace: str, label_selector: str) -> list[SecretRecord]:
        payload = self._run_json(["get", "secrets", "-n", namespace, "-l", label_selector])
        return [_secret_from_item(item) for item in payload.get("items", [])]

    def get_secret(self, namespace: str, name: str) -> SecretRecord:
        payload = self._run_json(["get", "secret", name, "-n", namespace], kind="secret")
        return _secret_from_item(payload)

    def get_configmap(self, namespace: str, name: str) -> ConfigMapRecord:
        payload = self._run_json(["get", "configmap", name, "-n", namespace], kind="configmap")
        metadata = payload.get("metadata", {})
        return ConfigMapRecord(
            name=str(metadata.get("name", name)),
            labels=dict(metadata.get("labels") or {}),
            data={str(key): str(value) for key, value in (payload.get("data") or {}).items()},
        )

    def delete_secret(self, namespace: str, name: str) -> None:
        self._run_kubectl(["delete", "secret", name, "-n", namespace], kind="secret")
        LOGGER.info("deleted secret namespace=%s name=%s", namespace, name)

    def _run_json(self, args: list[str], *, kind: str | None = None) -> dict[str, Any]:
        output = self._run_kubectl([*args, "-o", "json"], kind=kind)
        return json.loads(output) if output else {}

    def _run_kubectl(self, args: list[str], *, kind: str | None = None) -> str:
        command = [self._kubectl_binary]
        if self._kubeconfig is not None:
            command.append(f"--kubeconfig={self._kubeconfig}")
        command.extend(args)
        LOGGER.debug("running kubectl args=%s", args)
        try:
            result = subprocess.run(
                command,
                text=True,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise ObjectStoreError(f"failed to run {self._kubectl_binary}: {exc}") from exc
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if kind is not None and "(NotFound)" in stderr:
                raise ObjectNotFoundError(kind, _namespace_arg(args), args[2])
            raise ObjectStoreError(stderr or "kubectl command failed")
        return result.stdout.strip()


def _namespace_arg(args: list[str]) -> str:
    if "-n" in args:
        index = args.index("-n")
        if index + 1 < len(args):
            return args[index + 1]
    return "default"


def _secret_from_item(item: dict[str, Any]) -> SecretRecord:
    metadata = item.get("metadata", {})
    name = str(metadata.get("name", ""))
    return SecretRecord(
        name=name,
        labels=dict(metadata.get("labels") or {}),
        data=_decode_secret_data(name, item.get("data") or {}),
    )


def _decode_secret_data(name: str, raw: dict[str, str]) -> dict[str, bytes]:
    decoded: dict[str, bytes] = {}
    for key, value in raw.items():
        try:
            decoded[key] = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ObjectStoreError(f"secret {name} key {key} is not valid base64") from exc
    return decoded
