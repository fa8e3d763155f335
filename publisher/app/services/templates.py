from __future__ import annotations

from dataclasses import dataclass

APP_NAMESPACE = "argocd"
DESTINATION_NAMESPACE = "default"

BUNDLE_APPLICATION_TEMPLATE = """\
apiVersion: argoproj.io/v1alpha1
kind: Application
metadata:
  name: {ClusterName}-{BundleName}
  namespace: {AppNamespace}
spec:
  syncPolicy:
    automated:
      prune: true
  destination:
    name: {ClusterName}
    namespace: {DestinationNamespace}
  project: default
  source:
    repoURL: {RepoUrl}
    path: {WorkloadPath}/{BundleName}
    targetRevision: HEAD
"""


@dataclass(frozen=True)
class BundleAppSettings:
    cluster_name: str
    bundle_name: str
    workload_path: str
    repo_url: str
    app_namespace: str = APP_NAMESPACE
    destination_namespace: str = DESTINATION_NAMESPACE

    def template_fields(self) -> dict[str, str]:
        return {
            "ClusterName": self.cluster_name,
            "BundleName": self.bundle_name,
            "WorkloadPath": self.workload_path,
            "AppNamespace": self.app_namespace,
            "DestinationNamespace": self.destination_namespace,
            "RepoUrl": self.repo_url,
        }


def render_bundle_application(settings: BundleAppSettings) -> str:
    """Render the Application that points the controller at one bundle's workload dir."""
    return BUNDLE_APPLICATION_TEMPLATE.format(**settings.template_fields())
