"""Shared fixtures and in-memory fakes for unit tests."""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import patch

import pytest

from securitygroup_operator.constants import FINALIZER
from securitygroup_operator.errors import DCSAPIError, PersistenceError
from securitygroup_operator.models import (
    ResourceKey,
    SecurityGroupRecord,
    Tenant,
)
from securitygroup_operator.services.dcs.models import CreateResult, RemoteSecurityGroup


class FakeRecordStore:
    """In-memory RecordStore enforcing resourceVersion checks like the API server."""

    def __init__(self) -> None:
        self.objects: dict[ResourceKey, dict[str, Any]] = {}
        self.status_writes: list[dict[str, Any]] = []
        self.finalizer_writes: list[list[str]] = []
        self.fail_status_write: PersistenceError | None = None

    def put(
        self,
        name: str = "web",
        namespace: str = "default",
        spec: dict[str, Any] | None = None,
        status: dict[str, Any] | None = None,
        finalizers: list[str] | None = None,
        deletion_timestamp: str | None = None,
    ) -> ResourceKey:
        key = ResourceKey(namespace=namespace, name=name)
        metadata: dict[str, Any] = {
            "name": name,
            "namespace": namespace,
            "uid": "uid-1",
            "resourceVersion": "1",
            "generation": 1,
            "finalizers": list(finalizers or []),
        }
        if deletion_timestamp:
            metadata["deletionTimestamp"] = deletion_timestamp
        self.objects[key] = {
            "metadata": metadata,
            "spec": spec
            or {"accountId": "acc-1", "userId": "user-1", "name": "web-sg", "description": "allow 80/443"},
            "status": status or {},
        }
        return key

    def raw(self, key: ResourceKey) -> dict[str, Any] | None:
        return self.objects.get(key)

    def record(self, key: ResourceKey) -> SecurityGroupRecord:
        return SecurityGroupRecord.from_dict(self.objects[key])

    def _check_version(self, record: SecurityGroupRecord) -> dict[str, Any]:
        obj = self.objects.get(record.key)
        if obj is None:
            raise PersistenceError(f"SecurityGroup {record.key} not found")
        if obj["metadata"]["resourceVersion"] != record.resource_version:
            raise PersistenceError(f"SecurityGroup {record.key} conflict", conflict=True)
        return obj

    def _bump(self, obj: dict[str, Any]) -> None:
        obj["metadata"]["resourceVersion"] = str(int(obj["metadata"]["resourceVersion"]) + 1)

    def get(self, key: ResourceKey) -> SecurityGroupRecord | None:
        obj = self.objects.get(key)
        if obj is None:
            return None
        return SecurityGroupRecord.from_dict(copy.deepcopy(obj))

    def update(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        obj = self._check_version(record)
        obj["metadata"]["finalizers"] = list(record.finalizers)
        self.finalizer_writes.append(list(record.finalizers))
        self._bump(obj)
        stored = SecurityGroupRecord.from_dict(copy.deepcopy(obj))
        if obj["metadata"].get("deletionTimestamp") and not obj["metadata"]["finalizers"]:
            del self.objects[record.key]
        return stored

    def update_status(self, record: SecurityGroupRecord) -> SecurityGroupRecord:
        if self.fail_status_write is not None:
            raise self.fail_status_write
        obj = self._check_version(record)
        obj["status"] = record.status.to_dict()
        self.status_writes.append(copy.deepcopy(obj["status"]))
        self._bump(obj)
        return SecurityGroupRecord.from_dict(copy.deepcopy(obj))


class FakeSecurityGroupService:
    """In-memory SecurityGroupService recording every call."""

    def __init__(self) -> None:
        self.groups: dict[str, RemoteSecurityGroup] = {}
        self.calls: list[tuple[str, ...]] = []
        self.failures: dict[str, DCSAPIError] = {}
        self.next_id = 42

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    def create(self, tenant: Tenant, name: str, description: str) -> CreateResult:
        self.calls.append(("create", tenant.account_id, tenant.user_id, name, description))
        self._maybe_fail("create")
        group_id = str(self.next_id)
        self.next_id += 1
        self.groups[group_id] = RemoteSecurityGroup(name=name, description=description)
        return CreateResult(id=group_id, message="created")

    def get(self, tenant: Tenant, group_id: str) -> RemoteSecurityGroup | None:
        self.calls.append(("get", group_id))
        self._maybe_fail("get")
        return self.groups.get(group_id)

    def update(self, tenant: Tenant, group_id: str, name: str, description: str) -> str:
        self.calls.append(("update", group_id, name, description))
        self._maybe_fail("update")
        self.groups[group_id] = RemoteSecurityGroup(name=name, description=description)
        return "updated"

    def delete(self, tenant: Tenant, group_id: str) -> str:
        self.calls.append(("delete", group_id))
        self._maybe_fail("delete")
        self.groups.pop(group_id, None)
        return "deleted"

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture(autouse=True)
def mock_kopf_event():
    """Kubernetes events need a running operator; capture them instead."""
    with patch("securitygroup_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def service() -> FakeSecurityGroupService:
    return FakeSecurityGroupService()


@pytest.fixture
def finalizer() -> str:
    return FINALIZER
