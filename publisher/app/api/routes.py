from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from publisher.app.config import PublisherSettings
from publisher.app.dependencies import (
    get_bundle_admin,
    get_deploy_service,
    get_root_descriptor_builder,
    get_settings,
)
from publisher.app.models.deploy_contracts import (
    DeployClusterRequest,
    DeployClusterResponse,
    RootDescriptorResponse,
)
from publisher.app.services.bundle_admin import BundleAdminService
from publisher.app.services.deploy_service import DeployRequest, DeployService
from publisher.app.services.root_descriptor import RootDescriptorBuilder, RootDescriptorRequest

router = APIRouter(prefix="/api", tags=["clusters"])


@router.post("/clusters/{cluster_name}/deploy", response_model=DeployClusterResponse)
def deploy_cluster(
    cluster_name: str,
    payload: DeployClusterRequest,
    service: Annotated[DeployService, Depends(get_deploy_service)],
    settings: Annotated[PublisherSettings, Depends(get_settings)],
) -> DeployClusterResponse:
    result = service.deploy(
        DeployRequest(
            cluster_name=cluster_name,
            repo_url=payload.repo_url,
            branch=payload.branch or settings.default_branch,
            base_path=payload.base_path or settings.default_base_path,
            profile_name=payload.profile,
        )
    )
    return DeployClusterResponse(
        ok=True,
        cluster_name=result.cluster_name,
        committed=result.committed,
        pushed=result.pushed,
        commit_sha=result.commit_sha,
        bundles=list(result.bundles),
    )


@router.get("/clusters/{cluster_name}/root-descriptor", response_model=RootDescriptorResponse)
def get_root_descriptor(
    cluster_name: str,
    cluster_spec: Annotated[str, Query(min_length=1)],
    repo_url: Annotated[str, Query(min_length=1)],
    builder: Annotated[RootDescriptorBuilder, Depends(get_root_descriptor_builder)],
    settings: Annotated[PublisherSettings, Depends(get_settings)],
    branch: str | None = None,
    base_path: str | None = None,
) -> RootDescriptorResponse:
    application = builder.build(
        RootDescriptorRequest(
            cluster_name=cluster_name,
            cluster_spec_name=cluster_spec,
            repo_url=repo_url,
            branch=branch or settings.default_branch,
            base_path=base_path or settings.default_base_path,
        )
    )
    return RootDescriptorResponse(ok=True, application=application.to_manifest())


@router.delete("/bundles/{bundle_name}", status_code=204)
def delete_bundle(
    bundle_name: str,
    service: Annotated[BundleAdminService, Depends(get_bundle_admin)],
) -> None:
    service.delete_bundle(bundle_name)
