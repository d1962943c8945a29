"""Access to SecurityGroup records stored in the Kubernetes API."""

from __future__ import annotations

import time
from typing import Any, Protocol

from kubernetes import client

from . import metrics
from .constants import API_GROUP, API_VERSION, PLURAL_SECURITY_GROUPS
from .errors import PersistenceError
from .models import ResourceKey, SecurityGroupRecord
from .utils.rate_limit import RateLimiter


class RecordStore(Protocol):
    """Read and write SecurityGroup records with optimistic concurrency."""

    def get(self, key: ResourceKey) -> SecurityGroupRecord | None:
        """Fetch the record, or None if it no longer exists."""
        ...

    def update(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        """Persist the record's finalizers and return the stored record."""
        ...

    def update_status(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        """Persist the record's status and return the stored record."""
        ...


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client."""
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()

    return client.CustomObjectsApi()


class KubernetesRecordStore:
    """RecordStore backed by the SecurityGroup custom resource.

    Writes are merge patches carrying ``metadata.resourceVersion``, so the API
    server rejects them with 409 Conflict when the record changed since it was
    read.
    """

    def __init__(self, api: Any, rate_limit_per_second: float = 10.0) -> None:
        self.api = api
        self._rate_limiter = RateLimiter("k8s", rate_limit_per_second)

    def _call(self, operation: str, fn: Any, **kwargs: Any) -> dict[str, Any]:
        self._rate_limiter.wait()
        start_time = time.time()
        try:
            result = fn(
                group=API_GROUP,
                version=API_VERSION,
                plural=PLURAL_SECURITY_GROUPS,
                **kwargs,
            )
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
            return result
        except client.exceptions.ApiException:
            metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get(self, key: ResourceKey) -> SecurityGroupRecord | None:
        try:
            obj = self._call(
                "get_securitygroup",
                self.api.get_namespaced_custom_object,
                namespace=key.namespace,
                name=key.name,
            )
        except client.exceptions.ApiException as e:
            if e.status == 404:
                return None
            raise PersistenceError(f"failed to read SecurityGroup {key}: {e.reason}") from e
        return SecurityGroupRecord.from_dict(obj)

    def update(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        body = {
            "metadata": {
                "resourceVersion": record.resource_version,
                "finalizers": list(record.finalizers),
            }
        }
        return self._write("patch_securitygroup", self.api.patch_namespaced_custom_object, record, body)

    def update_status(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        body = {
            "metadata": {"resourceVersion": record.resource_version},
            "status": record.status.to_dict(),
        }
        return self._write(
            "patch_securitygroup_status",
            self.api.patch_namespaced_custom_object_status,
            record,
            body,
        )

    def _write(
        self,
        operation: str,
        fn: Any,
        record: SecurityGroupRecord,
        body: dict[str, Any],
    ) -> SecurityGroupRecord:
        try:
            obj = self._call(
                operation,
                fn,
                namespace=record.key.namespace,
                name=record.key.name,
                body=body,
            )
        except client.exceptions.ApiException as e:
            raise PersistenceError(
                f"failed to write SecurityGroup {record.key}: {e.status} {e.reason}",
                conflict=e.status == 409,
            ) from e
        return SecurityGroupRecord.from_dict(obj)
