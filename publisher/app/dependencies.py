from __future__ import annotations

from functools import lru_cache

from publisher.app.config import PublisherSettings, load_settings
from publisher.app.repositories.kube_store import KubectlObjectStore
from publisher.app.repositories.manifest_assets import PackagedManifestSource
from publisher.app.services.bundle_admin import BundleAdminService
from publisher.app.services.bundle_collector import BundleCollector
from publisher.app.services.credential_resolver import CredentialResolver
from publisher.app.services.deploy_service import DeployService
from publisher.app.services.git_publish import ChangeCommitter, CommitIdentity, Publisher
from publisher.app.services.git_transport import GitTransport
from publisher.app.services.root_descriptor import RootDescriptorBuilder
from publisher.app.services.working_tree import WorkingTreeBuilder
from publisher.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> PublisherSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_object_store() -> KubectlObjectStore:
    settings = get_settings()
    return KubectlObjectStore(
        kubeconfig=settings.kubeconfig,
        kubectl_binary=settings.kubectl_binary,
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_deploy_service() -> DeployService:
    settings = get_settings()
    store = get_object_store()
    transport = GitTransport(git_binary=settings.git_binary)
    return DeployService(
        credential_resolver=CredentialResolver(
            store=store,
            namespace=settings.argocd_namespace,
            label_selector=settings.repo_credential_selector,
        ),
        bundle_collector=BundleCollector(store=store, namespace=settings.publisher_namespace),
        tree_builder=WorkingTreeBuilder(
            transport=transport,
            manifests=PackagedManifestSource(),
            work_dir=settings.work_dir,
        ),
        committer=ChangeCommitter(
            transport=transport,
            identity=CommitIdentity(
                name=settings.commit_author_name,
                email=settings.commit_author_email,
                message=settings.commit_message,
            ),
        ),
        publisher=Publisher(transport=transport),
        keep_work_dir=settings.keep_work_dir,
        telemetry=get_telemetry(),
    )


@lru_cache(maxsize=1)
def get_root_descriptor_builder() -> RootDescriptorBuilder:
    settings = get_settings()
    return RootDescriptorBuilder(
        store=get_object_store(),
        spec_namespace=settings.publisher_namespace,
        app_namespace=settings.argocd_namespace,
    )


@lru_cache(maxsize=1)
def get_bundle_admin() -> BundleAdminService:
    settings = get_settings()
    return BundleAdminService(store=get_object_store(), namespace=settings.publisher_namespace)


def reset_cached_dependencies() -> None:
    get_bundle_admin.cache_clear()
    get_root_descriptor_builder.cache_clear()
    get_deploy_service.cache_clear()
    get_telemetry.cache_clear()
    get_object_store.cache_clear()
    get_settings.cache_clear()
