from __future__ import annotations

import logging

from publisher.app.repositories.kube_store import ObjectNotFoundError, ObjectStore, ObjectStoreError
from publisher.app.services.errors import BundleDeleteFailedError, BundleNotFoundError

LOGGER = logging.getLogger("cluster_publisher.bundles")


class BundleAdminService:
    def __init__(self, *, store: ObjectStore, namespace: str) -> None:
        self._store = store
        self._namespace = namespace

    def delete_bundle(self, bundle_name: str) -> None:
        try:
            self._store.delete_secret(self._namespace, bundle_name)
        except ObjectNotFoundError as exc:
            raise BundleNotFoundError(
                bundle_name, reason=str(exc), operation="delete_bundle"
            ) from exc
        except ObjectStoreError as exc:
            raise BundleDeleteFailedError(bundle_name, reason=str(exc)) from exc
        LOGGER.info("deleted bundle bundle_name=%s", bundle_name)
