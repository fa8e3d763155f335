from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeployClusterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    repo_url: str = Field(min_length=1)
    branch: str | None = None
    base_path: str | None = None
    profile: str = ""


class DeployClusterResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    cluster_name: str
    committed: bool
    pushed: bool
    commit_sha: str | None = None
    bundles: list[str] = Field(default_factory=list)


class RootDescriptorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ok: bool
    application: dict[str, Any]


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="forbid")

    error_type: str
    operation: str
    message: str
