"""Tests for the SecurityGroup reconciler state machine."""

from __future__ import annotations

import json
import logging

import pytest

from securitygroup_operator.constants import FINALIZER
from securitygroup_operator.errors import DCSAPIError, PersistenceError
from securitygroup_operator.handlers.securitygroup import SecurityGroupReconciler
from securitygroup_operator.models import (
    ConditionReason,
    ConditionStatus,
    ConditionType,
    ReconcileOutcome,
    ResourceKey,
)
from securitygroup_operator.services.dcs.models import RemoteSecurityGroup

DESIRED_SPEC = {"accountId": "acc-1", "userId": "user-1", "name": "web-sg", "description": "allow 80/443"}

PROVISIONED_STATUS = {
    "id": "42",
    "conditions": [
        {
            "type": "Ready",
            "status": "True",
            "reason": "Available",
            "message": "ok",
            "lastTransitionTime": "2024-01-01T00:00:00Z",
        },
        {
            "type": "Synced",
            "status": "True",
            "reason": "ReconcileSuccess",
            "message": "",
            "lastTransitionTime": "2024-01-01T00:00:00Z",
        },
    ],
}


@pytest.fixture
def reconciler(store, service) -> SecurityGroupReconciler:
    return SecurityGroupReconciler(store, service)


def ready(store, key):
    return store.record(key).status.get_condition(ConditionType.READY)


def synced(store, key):
    return store.record(key).status.get_condition(ConditionType.SYNCED)


class TestAbsentAndFinalizer:
    """Records that are missing or not yet guarded."""

    def test_absent_record_is_noop(self, reconciler, service):
        result = reconciler.reconcile(ResourceKey("default", "missing"))

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.calls == []

    def test_string_key_is_parsed(self, reconciler, store, service):
        store.put(name="web", namespace="team-a")

        result = reconciler.reconcile("team-a/web")

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.operations() == ["create"]

    def test_finalizer_added_before_create(self, reconciler, store, service):
        key = store.put(finalizers=["other.io/keep"])

        reconciler.reconcile(key)

        assert store.finalizer_writes[0] == ["other.io/keep", FINALIZER]
        assert store.record(key).finalizers == ["other.io/keep", FINALIZER]
        assert service.operations() == ["create"]

    def test_finalizer_not_rewritten_when_present(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        reconciler.reconcile(key)

        assert store.finalizer_writes == []


class TestCreatePath:
    """Records without a DCS security group id."""

    def test_first_create(self, reconciler, store, service, mock_kopf_event):
        key = store.put(spec=DESIRED_SPEC)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.calls == [("create", "acc-1", "user-1", "web-sg", "allow 80/443")]
        record = store.record(key)
        assert record.status.id == "42"
        assert ready(store, key).status is ConditionStatus.TRUE
        assert ready(store, key).reason is ConditionReason.AVAILABLE
        assert ready(store, key).message == "created"
        assert synced(store, key).status is ConditionStatus.TRUE
        assert synced(store, key).reason is ConditionReason.RECONCILE_SUCCESS
        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert "SecurityGroupCreated" in reasons

    def test_creating_condition_written_before_create_call(self, reconciler, store):
        key = store.put()

        reconciler.reconcile(key)

        first_write = store.status_writes[0]
        assert first_write["conditions"][0]["type"] == "Ready"
        assert first_write["conditions"][0]["reason"] == "Creating"
        assert "id" not in first_write

    def test_create_failure_records_error(self, reconciler, store, service, mock_kopf_event):
        key = store.put()
        service.failures["create"] = DCSAPIError("create", "quota exceeded", code=500)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert isinstance(result.error, DCSAPIError)
        assert store.record(key).status.id == ""
        cond = synced(store, key)
        assert cond.status is ConditionStatus.FALSE
        assert cond.reason is ConditionReason.RECONCILE_ERROR
        assert "quota exceeded" in cond.message
        assert ready(store, key).reason is ConditionReason.CREATING
        mock_kopf_event.assert_any_call(
            store.record(key).to_dict(),
            reason="ReconcileFailed",
            message=f"Reconciliation failed: {result.error}",
            type="Warning",
        )

    def test_create_only_once(self, reconciler, store, service):
        key = store.put()

        reconciler.reconcile(key)
        reconciler.reconcile(key)
        reconciler.reconcile(key)

        assert service.operations().count("create") == 1
        assert store.record(key).status.id == "42"

    def test_retry_after_create_failure_creates(self, reconciler, store, service):
        key = store.put()
        service.failures["create"] = DCSAPIError("create", "boom", code=500)
        reconciler.reconcile(key)

        del service.failures["create"]
        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert store.record(key).status.id == "42"
        assert synced(store, key).reason is ConditionReason.RECONCILE_SUCCESS


class TestConvergePath:
    """Records whose security group already exists in DCS."""

    def test_in_sync_issues_no_update(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.operations() == ["get"]

    def test_in_sync_reports_spec_changing_by_default(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        reconciler.reconcile(key)

        cond = ready(store, key)
        assert cond.status is ConditionStatus.FALSE
        assert cond.reason is ConditionReason.UPDATING
        assert synced(store, key).reason is ConditionReason.RECONCILE_SUCCESS

    def test_in_sync_leaves_status_alone_when_marking_on_diff(self, store, service):
        reconciler = SecurityGroupReconciler(store, service, mark_changing_on_diff=True)
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert store.status_writes == []
        assert ready(store, key).reason is ConditionReason.AVAILABLE

    def test_update_when_description_changed(self, reconciler, store, service, mock_kopf_event):
        spec = dict(DESIRED_SPEC, description="allow 80/443/8080")
        key = store.put(spec=spec, finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.calls[-1] == ("update", "42", "web-sg", "allow 80/443/8080")
        assert ready(store, key).status is ConditionStatus.TRUE
        assert ready(store, key).reason is ConditionReason.AVAILABLE
        assert synced(store, key).reason is ConditionReason.RECONCILE_SUCCESS
        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert "SecurityGroupUpdated" in reasons

    def test_spec_changing_written_before_update(self, store, service):
        reconciler = SecurityGroupReconciler(store, service, mark_changing_on_diff=True)
        spec = dict(DESIRED_SPEC, name="web-sg-2")
        key = store.put(spec=spec, finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        reconciler.reconcile(key)

        ready_writes = [
            c["reason"] for w in store.status_writes for c in w["conditions"] if c["type"] == "Ready"
        ]
        assert ready_writes[0] == "SpecChanging"
        assert ready_writes[-1] == "Available"

    def test_update_failure_records_error(self, reconciler, store, service):
        spec = dict(DESIRED_SPEC, description="changed")
        key = store.put(spec=spec, finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")
        service.failures["update"] = DCSAPIError("update", "name taken", code=409)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert synced(store, key).reason is ConditionReason.RECONCILE_ERROR
        assert "name taken" in synced(store, key).message
        assert ready(store, key).reason is ConditionReason.UPDATING

    def test_read_failure_records_error_without_update(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.failures["get"] = DCSAPIError("get", "unavailable", code=503)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert service.operations() == ["get"]
        assert synced(store, key).status is ConditionStatus.FALSE
        assert ready(store, key).reason is ConditionReason.UPDATING

    def test_read_failure_keeps_ready_when_marking_on_diff(self, store, service):
        reconciler = SecurityGroupReconciler(store, service, mark_changing_on_diff=True)
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)
        service.failures["get"] = DCSAPIError("get", "unavailable", code=503)

        reconciler.reconcile(key)

        assert ready(store, key).reason is ConditionReason.AVAILABLE
        assert synced(store, key).reason is ConditionReason.RECONCILE_ERROR

    def test_remote_missing_is_an_error(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], status=PROVISIONED_STATUS)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert "not found" in synced(store, key).message
        assert "create" not in service.operations()
        assert store.record(key).status.id == "42"


class TestDeletePath:
    """Records carrying a deletion marker."""

    def test_already_gone_removes_finalizer(self, reconciler, store, service):
        key = store.put(
            finalizers=[FINALIZER],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.operations() == ["get"]
        assert store.raw(key) is None

    def test_deletes_remote_then_removes_finalizer(self, reconciler, store, service, mock_kopf_event):
        key = store.put(
            finalizers=["other.io/keep", FINALIZER],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.operations() == ["get", "delete"]
        assert "42" not in service.groups
        assert store.record(key).finalizers == ["other.io/keep"]
        reasons = [c.kwargs["reason"] for c in mock_kopf_event.call_args_list]
        assert "SecurityGroupDeleted" in reasons

    def test_deleting_condition_written_first(self, reconciler, store, service):
        key = store.put(
            finalizers=[FINALIZER],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")

        reconciler.reconcile(key)

        ready_cond = next(c for c in store.status_writes[0]["conditions"] if c["type"] == "Ready")
        assert ready_cond["reason"] == "Deleting"

    def test_read_failure_keeps_finalizer(self, reconciler, store, service):
        key = store.put(
            finalizers=[FINALIZER],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )
        service.failures["get"] = DCSAPIError("get", "timeout")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert store.record(key).finalizers == [FINALIZER]
        assert synced(store, key).reason is ConditionReason.RECONCILE_ERROR

    def test_delete_failure_keeps_finalizer(self, reconciler, store, service):
        key = store.put(
            finalizers=[FINALIZER],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )
        service.groups["42"] = RemoteSecurityGroup("web-sg", "allow 80/443")
        service.failures["delete"] = DCSAPIError("delete", "in use by instance", code=400)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert service.operations() == ["get", "delete"]
        assert store.record(key).finalizers == [FINALIZER]
        assert "in use by instance" in synced(store, key).message

    def test_unprovisioned_removes_finalizer_without_calls(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER], deletion_timestamp="2024-01-02T00:00:00Z")

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.calls == []
        assert store.raw(key) is None

    def test_finalizer_already_removed_is_noop(self, reconciler, store, service):
        key = store.put(
            finalizers=["other.io/keep"],
            status=PROVISIONED_STATUS,
            deletion_timestamp="2024-01-02T00:00:00Z",
        )

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert service.calls == []
        assert store.status_writes == []
        assert store.finalizer_writes == []


class TestPersistence:
    """Failures writing back to the record store."""

    def test_status_conflict_requeues_before_any_call(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER])
        store.fail_status_write = PersistenceError("conflict", conflict=True)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        assert isinstance(result.error, PersistenceError)
        assert result.error.conflict is True
        assert service.calls == []

    def test_reinvocation_with_written_status_is_stable(self, store, service):
        reconciler = SecurityGroupReconciler(store, service, mark_changing_on_diff=True)
        key = store.put()
        reconciler.reconcile(key)
        writes = len(store.status_writes)

        result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.NOOP
        assert len(store.status_writes) == writes
        assert service.operations() == ["create", "get"]

    def test_metadata_edit_during_create_keeps_created_id(self, reconciler, store, service):
        key = store.put(finalizers=[FINALIZER])
        create = service.create

        def create_while_labels_change(tenant, name, description):
            # Another client edits the object while the DCS call is in flight
            store.objects[key]["metadata"]["labels"] = {"team": "net"}
            store._bump(store.objects[key])
            return create(tenant, name, description)

        service.create = create_while_labels_change

        first = reconciler.reconcile(key)
        second = reconciler.reconcile(key)

        assert first.outcome is ReconcileOutcome.NOOP
        assert second.outcome is ReconcileOutcome.NOOP
        assert store.record(key).status.id == "42"
        assert list(service.groups) == ["42"]
        assert service.operations().count("create") == 1

    def test_status_write_failure_logs_record_uid(self, reconciler, store, caplog):
        key = store.put(finalizers=[FINALIZER])
        store.fail_status_write = PersistenceError("etcd unavailable")

        with caplog.at_level(logging.ERROR):
            result = reconciler.reconcile(key)

        assert result.outcome is ReconcileOutcome.REQUEUE
        data = json.loads(caplog.records[-1].getMessage())
        assert data["reason"] == "PersistenceFailed"
        assert data["uid"] == "uid-1"
