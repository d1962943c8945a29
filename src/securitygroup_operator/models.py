"""Models for SecurityGroup records and their status."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .constants import (
    API_GROUP_VERSION,
    COND_READY,
    COND_SYNCED,
    KIND_SECURITY_GROUP,
    REASON_AVAILABLE,
    REASON_CREATING,
    REASON_DELETING,
    REASON_RECONCILE_ERROR,
    REASON_RECONCILE_SUCCESS,
    REASON_SPEC_CHANGING,
    REASON_UNAVAILABLE,
)

logger = logging.getLogger(__name__)


class ConditionType(str, Enum):
    """Condition types reported on a SecurityGroup."""

    READY = COND_READY
    SYNCED = COND_SYNCED


class ConditionStatus(str, Enum):
    """Status values of a condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(str, Enum):
    """Reasons for a condition's last transition."""

    NONE = ""
    CREATING = REASON_CREATING
    DELETING = REASON_DELETING
    UPDATING = REASON_SPEC_CHANGING
    AVAILABLE = REASON_AVAILABLE
    UNAVAILABLE = REASON_UNAVAILABLE
    RECONCILE_SUCCESS = REASON_RECONCILE_SUCCESS
    RECONCILE_ERROR = REASON_RECONCILE_ERROR


@dataclass(frozen=True)
class Condition:
    """A single typed status assertion."""

    type: ConditionType
    status: ConditionStatus
    reason: ConditionReason = ConditionReason.NONE
    message: str = ""
    last_transition_time: str = ""

    def with_message(self, message: str) -> Condition:
        """Return a copy of this condition carrying the given message."""
        return replace(self, message=message)

    def same_as(self, other: Condition) -> bool:
        """Compare two conditions field by field, ignoring lastTransitionTime."""
        return (
            self.type == other.type
            and self.status == other.status
            and self.reason == other.reason
            and self.message == other.message
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "status": self.status.value,
            "reason": self.reason.value,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        """Build a condition from its wire form.

        Raises:
            ValueError: If type, status or reason is outside the known vocabulary
        """
        return cls(
            type=ConditionType(data.get("type", "")),
            status=ConditionStatus(data.get("status") or ConditionStatus.UNKNOWN.value),
            reason=ConditionReason(data.get("reason", "")),
            message=data.get("message", ""),
            last_transition_time=data.get("lastTransitionTime", ""),
        )


@dataclass(frozen=True)
class ResourceKey:
    """Namespace/name pair identifying a SecurityGroup record."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, key: str) -> ResourceKey:
        namespace, sep, name = key.partition("/")
        if not sep:
            return cls(namespace="default", name=namespace)
        return cls(namespace=namespace, name=name)


@dataclass(frozen=True)
class Tenant:
    """Account and user the DCS API scopes every request to."""

    account_id: str
    user_id: str


@dataclass
class SecurityGroupSpec:
    """Desired state of a security group."""

    account_id: str
    user_id: str
    name: str
    description: str = ""

    @property
    def tenant(self) -> Tenant:
        return Tenant(account_id=self.account_id, user_id=self.user_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SecurityGroupSpec:
        return cls(
            account_id=data.get("accountId", ""),
            user_id=data.get("userId", ""),
            name=data.get("name", ""),
            description=data.get("description", "") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "accountId": self.account_id,
            "userId": self.user_id,
            "name": self.name,
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class SecurityGroupStatus:
    """Observed state of a security group."""

    id: str = ""
    conditions: list[Condition] = field(default_factory=list)

    def get_condition(self, condition_type: ConditionType) -> Condition:
        from .utils.conditions import get_condition

        return get_condition(self.conditions, condition_type)

    def set_conditions(self, *conditions: Condition) -> None:
        from .utils.conditions import set_conditions

        self.conditions = set_conditions(self.conditions, *conditions)

    def equals(self, other: SecurityGroupStatus | None) -> bool:
        """Compare statuses, ignoring condition order and transition times."""
        from .utils.conditions import conditions_equal

        if other is None:
            return False
        return self.id == other.id and conditions_equal(self.conditions, other.conditions)

    def copy(self) -> SecurityGroupStatus:
        return SecurityGroupStatus(id=self.id, conditions=list(self.conditions))

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SecurityGroupStatus:
        data = data or {}
        conditions = []
        for raw in data.get("conditions") or []:
            try:
                conditions.append(Condition.from_dict(raw))
            except ValueError:
                # Superseded vocabulary (e.g. "Failure"); dropped on the next status write
                logger.warning(f"Ignoring unrecognised condition {raw!r}")
        return cls(id=str(data.get("id", "") or ""), conditions=conditions)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"conditions": [c.to_dict() for c in self.conditions]}
        if self.id:
            data["id"] = self.id
        return data


@dataclass
class SecurityGroupRecord:
    """A SecurityGroup custom resource as read from the cluster."""

    key: ResourceKey
    spec: SecurityGroupSpec
    status: SecurityGroupStatus = field(default_factory=SecurityGroupStatus)
    finalizers: list[str] = field(default_factory=list)
    resource_version: str = ""
    deletion_timestamp: str | None = None
    generation: int = 0
    uid: str = ""

    @property
    def being_deleted(self) -> bool:
        return bool(self.deletion_timestamp)

    @property
    def meta(self) -> dict[str, Any]:
        """Metadata in the shape the logging and event helpers expect."""
        return {
            "name": self.key.name,
            "namespace": self.key.namespace,
            "uid": self.uid,
            "generation": self.generation,
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> SecurityGroupRecord:
        metadata = obj.get("metadata", {})
        return cls(
            key=ResourceKey(
                namespace=metadata.get("namespace", "default"),
                name=metadata.get("name", ""),
            ),
            spec=SecurityGroupSpec.from_dict(obj.get("spec") or {}),
            status=SecurityGroupStatus.from_dict(obj.get("status")),
            finalizers=list(metadata.get("finalizers") or []),
            resource_version=metadata.get("resourceVersion", ""),
            deletion_timestamp=metadata.get("deletionTimestamp"),
            generation=metadata.get("generation", 0),
            uid=metadata.get("uid", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "name": self.key.name,
            "namespace": self.key.namespace,
            "finalizers": list(self.finalizers),
        }
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        if self.uid:
            metadata["uid"] = self.uid
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_SECURITY_GROUP,
            "metadata": metadata,
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }


class ReconcileOutcome(str, Enum):
    """What the event scheduler should do after a reconciliation pass."""

    NOOP = "noop"
    REQUEUE = "requeue"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of a reconciliation pass and the error behind a requeue."""

    outcome: ReconcileOutcome
    error: Exception | None = None

    @property
    def requeue(self) -> bool:
        return self.outcome is ReconcileOutcome.REQUEUE

    @classmethod
    def noop(cls) -> ReconcileResult:
        return cls(ReconcileOutcome.NOOP)

    @classmethod
    def retry(cls, error: Exception) -> ReconcileResult:
        return cls(ReconcileOutcome.REQUEUE, error)
