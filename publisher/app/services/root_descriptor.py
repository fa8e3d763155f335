from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal

import yaml

from publisher.app.models.root_application import (
    ApplicationDestination,
    ApplicationSource,
    ApplicationSourceHelm,
    ApplicationSpec,
    HelmParameter,
    ObjectMeta,
    ResourceIgnoreDifferences,
    RootApplication,
    SyncPolicy,
    SyncPolicyAutomated,
)
from publisher.app.repositories.kube_store import ObjectStore, ObjectStoreError
from publisher.app.services.errors import ClusterSpecNotFoundError
from publisher.app.services.working_tree import PublicationLayout, validate_layout

CLUSTER_SPEC_KEYS: tuple[str, ...] = (
    "region",
    "sshKeyName",
    "kubernetesVersion",
    "podCidrBlock",
    "nodeCount",
    "nodeType",
)
IN_CLUSTER_SERVER = "https://kubernetes.default.svc"
DESTINATION_NAMESPACE = "default"

# The AWS controllers rewrite AWSManagedControlPlane spec.version with a less
# precise value (v1.18.16 becomes v1.18), which would keep the app OutOfSync.
EKS_VERSION_DRIFT = ResourceIgnoreDifferences(
    group="controlplane.cluster.x-k8s.io",
    kind="AWSManagedControlPlane",
    json_pointers=["/spec/version"],
)

OutputFormat = Literal["yaml", "json"]


@dataclass(frozen=True)
class RootDescriptorRequest:
    cluster_name: str
    cluster_spec_name: str
    repo_url: str
    branch: str
    base_path: str


def helm_parameters(cluster_name: str, spec: Mapping[str, str]) -> list[HelmParameter]:
    parameters = [HelmParameter(name="clusterName", value=cluster_name)]
    for key in CLUSTER_SPEC_KEYS:
        value = spec.get(key, "")
        if value:
            parameters.append(HelmParameter(name=key, value=value))
    return parameters


def build_root_application(
    request: RootDescriptorRequest,
    spec: Mapping[str, str],
    *,
    namespace: str,
) -> RootApplication:
    layout = PublicationLayout(base_path=request.base_path, cluster_name=request.cluster_name)
    validate_layout(layout, operation="build_root_descriptor")
    return RootApplication(
        metadata=ObjectMeta(name=request.cluster_name, namespace=namespace),
        spec=ApplicationSpec(
            source=ApplicationSource(
                repo_url=request.repo_url,
                path=str(layout.mgmt_path),
                target_revision=request.branch,
                helm=ApplicationSourceHelm(
                    parameters=helm_parameters(request.cluster_name, spec),
                ),
            ),
            destination=ApplicationDestination(
                server=IN_CLUSTER_SERVER,
                namespace=DESTINATION_NAMESPACE,
            ),
            sync_policy=SyncPolicy(
                automated=SyncPolicyAutomated(prune=True),
                sync_options=["Prune=true"],
            ),
            ignore_differences=[EKS_VERSION_DRIFT],
        ),
    )


def render_root_application(app: RootApplication, output: OutputFormat = "yaml") -> str:
    manifest = app.to_manifest()
    if output == "json":
        return json.dumps(manifest, indent=2)
    return yaml.safe_dump(manifest, sort_keys=False)


class RootDescriptorBuilder:
    def __init__(self, *, store: ObjectStore, spec_namespace: str, app_namespace: str) -> None:
        self._store = store
        self._spec_namespace = spec_namespace
        self._app_namespace = app_namespace

    def build(self, request: RootDescriptorRequest) -> RootApplication:
        try:
            cluster_spec = self._store.get_configmap(self._spec_namespace, request.cluster_spec_name)
        except ObjectStoreError as exc:
            raise ClusterSpecNotFoundError(request.cluster_spec_name, reason=str(exc)) from exc
        return build_root_application(request, cluster_spec.data, namespace=self._app_namespace)
