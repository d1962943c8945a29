"""Reconciler for SecurityGroup resources."""

from __future__ import annotations

from .. import metrics
from ..constants import FINALIZER, KIND_SECURITY_GROUP
from ..errors import AdapterError, DCSAPIError, PersistenceError
from ..models import ReconcileResult, ResourceKey, SecurityGroupRecord
from ..services.dcs.base import SecurityGroupService
from ..store import RecordStore
from ..utils.conditions import (
    available,
    creating,
    deleting,
    reconcile_error,
    reconcile_success,
    spec_changing,
)
from ..utils.errors import sanitize_exception
from ..utils.events import (
    emit_reconcile_failed,
    emit_reconcile_started,
    emit_security_group_created,
    emit_security_group_deleted,
    emit_security_group_updated,
)
from ..utils.finalizers import add_finalizer, has_finalizer, remove_finalizer
from .base import BaseHandler


class _Pass:
    """State of one reconciliation pass over a single record.

    Tracks the status last written to the store so that writes which would not
    change anything are skipped.
    """

    def __init__(self, store: RecordStore, record: SecurityGroupRecord) -> None:
        self.store = store
        self.record = record
        self.persisted = record.status.copy()

    def persist_status(self) -> None:
        if self.record.status.equals(self.persisted):
            return
        try:
            stored = self.store.update_status(self.record)
        except PersistenceError as e:
            if not e.conflict:
                raise
            stored = self._rewrite_status()
        self.record.resource_version = stored.resource_version
        self.record.finalizers = stored.finalizers
        self.persisted = self.record.status.copy()

    def _rewrite_status(self) -> SecurityGroupRecord:
        """Re-apply this pass's status on top of a freshly read record.

        Metadata and spec edits bump the resourceVersion shared with the status
        subresource, and status has no other writer.
        """
        fresh = self.store.get(self.record.key)
        if fresh is None:
            raise PersistenceError(f"SecurityGroup {self.record.key} disappeared while writing status")
        fresh.status = self.record.status
        return self.store.update_status(fresh)

    def persist_finalizers(self) -> None:
        stored = self.store.update(self.record)
        self.record.resource_version = stored.resource_version


class SecurityGroupReconciler(BaseHandler):
    """Drives a SecurityGroup record and its DCS security group towards each other.

    Each call to ``reconcile`` reads the record, decides between create,
    converge and delete, talks to the DCS API and writes the resulting status
    back. The scheduler guarantees at most one pass per key at a time, so no
    locking happens here.
    """

    def __init__(
        self,
        store: RecordStore,
        service: SecurityGroupService,
        finalizer: str = FINALIZER,
        mark_changing_on_diff: bool = False,
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Where SecurityGroup records are read from and written to
            service: DCS security group operations
            finalizer: Token guarding external cleanup
            mark_changing_on_diff: Report SpecChanging only once the remote
                security group is known to differ. By default it is reported
                before the remote state is read, as earlier releases did.
        """
        super().__init__(KIND_SECURITY_GROUP)
        self.store = store
        self.service = service
        self.finalizer = finalizer
        self.mark_changing_on_diff = mark_changing_on_diff

    def reconcile(self, key: ResourceKey | str) -> ReconcileResult:
        """Run one reconciliation pass for the record with the given key."""
        if isinstance(key, str):
            key = ResourceKey.parse(key)
        return self.reconcile_with_metrics(lambda: self._reconcile(key))

    def _reconcile(self, key: ResourceKey) -> ReconcileResult:
        meta = {"name": key.name, "namespace": key.namespace}
        try:
            record = self.store.get(key)
            if record is None:
                self.log_info(meta, f"SecurityGroup {key} not found, nothing to do", reason="NotFound")
                return ReconcileResult.noop()
            meta = record.meta

            if record.being_deleted:
                if not has_finalizer(record.finalizers, self.finalizer):
                    return ReconcileResult.noop()
                emit_reconcile_started(record.to_dict())
                return self._delete(_Pass(self.store, record))

            emit_reconcile_started(record.to_dict())
            if not has_finalizer(record.finalizers, self.finalizer):
                self.log_info(record.meta, "Adding finalizer", reason="FinalizerAdded")
                record.finalizers = add_finalizer(record.finalizers, self.finalizer)
                record = self.store.update(record)

            current = _Pass(self.store, record)
            if not record.status.id:
                return self._create(current)
            return self._converge(current)
        except PersistenceError as e:
            self.log_error(meta, f"Failed to persist SecurityGroup {key}", error=e, reason="PersistenceFailed")
            return ReconcileResult.retry(e)

    def _fail(self, current: _Pass, error: AdapterError, operation: str) -> ReconcileResult:
        """Record an adapter failure in status and ask for a retry."""
        record = current.record
        metrics.dcs_operations_total.labels(operation=operation, result="failed").inc()
        self.log_error(
            record.meta,
            f"Failed to {operation} security group",
            error=error,
            reason="ReconcileError",
            group_id=record.status.id,
        )
        record.status.set_conditions(reconcile_error(error))
        current.persist_status()
        emit_reconcile_failed(record.to_dict(), f"Reconciliation failed: {sanitize_exception(error)}")
        self.record_resource_status(False)
        return ReconcileResult.retry(error)

    def _create(self, current: _Pass) -> ReconcileResult:
        record = current.record
        spec = record.spec

        record.status.set_conditions(creating())
        current.persist_status()

        try:
            created = self.service.create(spec.tenant, spec.name, spec.description)
        except AdapterError as e:
            return self._fail(current, e, "create")

        record.status.id = created.id
        record.status.set_conditions(available().with_message(created.message), reconcile_success())
        current.persist_status()

        metrics.dcs_operations_total.labels(operation="create", result="success").inc()
        self.log_info(record.meta, f"Created security group {created.id}", reason="Created", group_id=created.id)
        emit_security_group_created(record.to_dict(), created.id)
        self.record_resource_status(True)
        return ReconcileResult.noop()

    def _converge(self, current: _Pass) -> ReconcileResult:
        record = current.record
        spec = record.spec
        group_id = record.status.id

        if not self.mark_changing_on_diff:
            record.status.set_conditions(spec_changing())

        try:
            remote = self.service.get(spec.tenant, group_id)
        except AdapterError as e:
            return self._fail(current, e, "get")
        if remote is None:
            return self._fail(current, DCSAPIError("get", f"security group {group_id} not found"), "get")

        if remote.matches(spec.name, spec.description):
            current.persist_status()
            self.log_info(record.meta, f"Security group {group_id} is up to date", reason="InSync", group_id=group_id)
            return ReconcileResult.noop()

        self.log_info(record.meta, f"Drift detected on security group {group_id}", reason="DriftDetected", group_id=group_id)
        record.status.set_conditions(spec_changing())
        current.persist_status()

        try:
            message = self.service.update(spec.tenant, group_id, spec.name, spec.description)
        except AdapterError as e:
            return self._fail(current, e, "update")

        record.status.set_conditions(available().with_message(message), reconcile_success())
        current.persist_status()

        metrics.dcs_operations_total.labels(operation="update", result="success").inc()
        emit_security_group_updated(record.to_dict(), group_id)
        self.record_resource_status(True)
        return ReconcileResult.noop()

    def _delete(self, current: _Pass) -> ReconcileResult:
        record = current.record
        spec = record.spec
        group_id = record.status.id

        if group_id:
            record.status.set_conditions(deleting())
            current.persist_status()

            try:
                remote = self.service.get(spec.tenant, group_id)
            except AdapterError as e:
                return self._fail(current, e, "get")

            if remote is None:
                self.log_info(record.meta, f"Security group {group_id} already gone", reason="AlreadyDeleted", group_id=group_id)
            else:
                try:
                    self.service.delete(spec.tenant, group_id)
                except AdapterError as e:
                    return self._fail(current, e, "delete")
                metrics.dcs_operations_total.labels(operation="delete", result="success").inc()
                emit_security_group_deleted(record.to_dict(), group_id)

        record.finalizers = remove_finalizer(record.finalizers, self.finalizer)
        current.persist_finalizers()
        self.log_info(record.meta, "Removed finalizer", reason="FinalizerRemoved", group_id=group_id)
        return ReconcileResult.noop()
