from __future__ import annotations

import logging
from dataclasses import dataclass, field

from publisher.app.repositories.kube_store import ObjectNotFoundError, ObjectStore, ObjectStoreError
from publisher.app.services.errors import (
    BundleNotFoundError,
    EmptyProfileError,
    InvalidProfileError,
    MissingPayloadError,
    ProfileNotFoundError,
)

LOGGER = logging.getLogger("cluster_publisher.bundles")

PROFILE_TYPE_LABEL = "arlon-type"
PROFILE_TYPE_VALUE = "profile"
PROFILE_BUNDLES_KEY = "bundles"
BUNDLE_TYPE_LABEL = "bundle-type"
BUNDLE_TYPE_INLINE = "inline"
BUNDLE_PAYLOAD_KEY = "data"


@dataclass(frozen=True)
class InlineBundle:
    name: str
    payload: bytes = field(repr=False)


def parse_bundle_names(raw: str) -> list[str]:
    """Split a profile's comma-separated bundle list, keeping declaration order."""
    return [item.strip() for item in raw.split(",")]


class BundleCollector:
    """Resolves a profile into the inline bundles whose content must be published."""

    def __init__(self, *, store: ObjectStore, namespace: str) -> None:
        self._store = store
        self._namespace = namespace

    def collect(self, profile_name: str) -> list[InlineBundle]:
        if not profile_name:
            return []

        bundle_names = self._profile_bundle_names(profile_name)
        bundles: list[InlineBundle] = []
        for bundle_name in bundle_names:
            bundle = self._resolve_bundle(bundle_name)
            if bundle is None:
                LOGGER.debug("skipping external bundle bundle_name=%s", bundle_name)
                continue
            LOGGER.debug("adding inline bundle bundle_name=%s", bundle_name)
            bundles.append(bundle)
        return bundles

    def _profile_bundle_names(self, profile_name: str) -> list[str]:
        try:
            profile = self._store.get_configmap(self._namespace, profile_name)
        except ObjectNotFoundError as exc:
            raise ProfileNotFoundError(f"profile {profile_name} not found") from exc
        except ObjectStoreError as exc:
            raise InvalidProfileError(f"failed to get profile {profile_name}: {exc}") from exc

        if profile.labels.get(PROFILE_TYPE_LABEL) != PROFILE_TYPE_VALUE:
            raise InvalidProfileError(
                f"configmap {profile_name} does not have label "
                f"{PROFILE_TYPE_LABEL}={PROFILE_TYPE_VALUE}"
            )
        raw_bundles = profile.data.get(PROFILE_BUNDLES_KEY, "")
        if not raw_bundles.strip():
            raise EmptyProfileError(profile_name)
        return parse_bundle_names(raw_bundles)

    def _resolve_bundle(self, bundle_name: str) -> InlineBundle | None:
        if not bundle_name:
            raise BundleNotFoundError(bundle_name, reason="empty bundle name in profile")
        try:
            secret = self._store.get_secret(self._namespace, bundle_name)
        except ObjectStoreError as exc:
            raise BundleNotFoundError(bundle_name, reason=str(exc)) from exc

        if secret.labels.get(BUNDLE_TYPE_LABEL) != BUNDLE_TYPE_INLINE:
            return None
        payload = secret.data.get(BUNDLE_PAYLOAD_KEY)
        if not payload:
            raise MissingPayloadError(bundle_name)
        return InlineBundle(name=bundle_name, payload=payload)
