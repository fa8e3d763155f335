from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _ArgoModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class ObjectMeta(_ArgoModel):
    name: str
    namespace: str


class HelmParameter(_ArgoModel):
    name: str
    value: str


class ApplicationSourceHelm(_ArgoModel):
    parameters: list[HelmParameter]


class ApplicationSource(_ArgoModel):
    repo_url: str = Field(alias="repoURL")
    path: str
    target_revision: str
    helm: ApplicationSourceHelm


class ApplicationDestination(_ArgoModel):
    server: str
    namespace: str


class SyncPolicyAutomated(_ArgoModel):
    prune: bool


class SyncPolicy(_ArgoModel):
    automated: SyncPolicyAutomated
    sync_options: list[str]


class ResourceIgnoreDifferences(_ArgoModel):
    group: str
    kind: str
    json_pointers: list[str]


class ApplicationSpec(_ArgoModel):
    project: str = "default"
    source: ApplicationSource
    destination: ApplicationDestination
    sync_policy: SyncPolicy
    ignore_differences: list[ResourceIgnoreDifferences]


class RootApplication(_ArgoModel):
    """Argo CD Application that syncs a cluster's management path."""

    api_version: Literal["argoproj.io/v1alpha1"] = "argoproj.io/v1alpha1"
    kind: Literal["Application"] = "Application"
    metadata: ObjectMeta
    spec: ApplicationSpec

    def to_manifest(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
