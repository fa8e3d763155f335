from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = ".cluster-publisher"
REPOSITORY_CREDENTIAL_SELECTOR = "argocd.argoproj.io/secret-type=repository"
_PATH_FIELDS: tuple[str, ...] = ("data_dir", "log_dir")
_OPTIONAL_PATH_FIELDS: tuple[str, ...] = ("kubeconfig", "work_dir")
_BOOLEAN_COERCION_FIELDS: tuple[str, ...] = (
    "keep_work_dir",
    "telemetry_enabled",
)


def _resolve_path(value: str | Path) -> Path:
    return Path(value).expanduser().resolve()


def _parse_bool_with_default(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 1:
            return True
        if value == 0:
            return False
        return default
    if not isinstance(value, str):
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class PublisherSettings(BaseSettings):
    """
    Runtime configuration for the cluster publisher.

    Every option can be set through a `CLUSTER_PUBLISHER_*` environment variable
    or a `.env` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="CLUSTER_PUBLISHER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Object store.
    argocd_namespace: str = Field(
        default="argocd",
        description="Namespace holding Argo CD repository secrets and root Applications.",
    )
    publisher_namespace: str = Field(
        default="arlon",
        description="Namespace holding profile configmaps, bundle secrets and cluster specs.",
    )
    kubeconfig: Path | None = Field(
        default=None,
        description="Kubeconfig passed to kubectl. Uses kubectl's own resolution when unset.",
    )
    kubectl_binary: str = Field(default="kubectl", description="kubectl executable.")
    repo_credential_selector: str = Field(
        default=REPOSITORY_CREDENTIAL_SELECTOR,
        description="Label selector identifying registered repository credentials.",
    )

    # Git publication.
    git_binary: str = Field(default="git", description="git executable.")
    default_branch: str = Field(default="main", description="Branch published to.")
    default_base_path: str = Field(
        default="clusters",
        description="Repository directory under which per-cluster trees are written.",
    )
    work_dir: Path | None = Field(
        default=None,
        description="Parent directory for temporary working trees. System temp dir when unset.",
    )
    keep_work_dir: bool = Field(
        default=False,
        description="Leave the temporary working tree on disk after a deploy (debugging).",
    )
    commit_author_name: str = Field(default="cluster-publisher")
    commit_author_email: str = Field(default="cluster-publisher@localhost")
    commit_message: str = Field(default="Publish cluster configuration")

    # Logging and telemetry.
    data_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR),
        description="Root runtime directory for local state.",
    )
    log_dir: Path = Field(
        default=Path(DEFAULT_DATA_DIR) / "logs",
        description="Directory for JSON log files.",
    )
    log_level: str = Field(default="INFO", description="Console log level.")
    telemetry_enabled: bool = Field(default=False)
    telemetry_sink: Literal["none", "log"] = Field(default="log")

    @field_validator("default_base_path", mode="before")
    @classmethod
    def _normalize_base_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("CLUSTER_PUBLISHER_DEFAULT_BASE_PATH must be a string.")
        normalized = value.strip().strip("/")
        if not normalized:
            raise ValueError("CLUSTER_PUBLISHER_DEFAULT_BASE_PATH must not be empty.")
        return normalized

    @field_validator("default_branch", "argocd_namespace", "publisher_namespace", mode="before")
    @classmethod
    def _normalize_required_text(cls, value: Any, info: ValidationInfo) -> str:
        normalized = _normalize_optional_text(value)
        if normalized is None:
            env_name = f"CLUSTER_PUBLISHER_{str(info.field_name).upper()}"
            raise ValueError(f"{env_name} must not be empty.")
        return normalized

    @field_validator(*_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None:
            return None
        return _resolve_path(value)

    @field_validator(*_OPTIONAL_PATH_FIELDS, mode="before")
    @classmethod
    def _normalize_optional_paths(cls, value: Any) -> Path | None:
        if isinstance(value, Path):
            return _resolve_path(value)
        normalized = _normalize_optional_text(value)
        if normalized is None:
            return None
        return _resolve_path(normalized)

    @field_validator(*_BOOLEAN_COERCION_FIELDS, mode="before")
    @classmethod
    def _normalize_booleans(cls, value: Any, info: ValidationInfo) -> bool:
        field_name = info.field_name
        assert field_name is not None
        default_value = cls.model_fields[field_name].default
        assert isinstance(default_value, bool)
        return _parse_bool_with_default(value, default=default_value)


def _apply_log_dir_default(settings: PublisherSettings) -> PublisherSettings:
    if "log_dir" in settings.model_fields_set:
        return settings
    return settings.model_copy(update={"log_dir": settings.data_dir / "logs"})


def load_settings() -> PublisherSettings:
    settings = PublisherSettings()
    return _apply_log_dir_default(settings)
