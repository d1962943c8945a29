"""Constants for the SecurityGroup Operator."""

# API Group
API_GROUP = "paas.unicom.cn"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_SECURITY_GROUP = "SecurityGroup"
PLURAL_SECURITY_GROUPS = "securitygroups"

# Finalizers
FINALIZER = f"securitygroup.finalizers.{API_GROUP}"

# Controller name used in structured logs
CONTROLLER_NAME = "securitygroup-operator"

# Condition Types
COND_READY = "Ready"
COND_SYNCED = "Synced"

# Condition Reasons
REASON_CREATING = "Creating"
REASON_DELETING = "Deleting"
REASON_SPEC_CHANGING = "SpecChanging"
REASON_AVAILABLE = "Available"
REASON_UNAVAILABLE = "Unavailable"
REASON_RECONCILE_SUCCESS = "ReconcileSuccess"
REASON_RECONCILE_ERROR = "ReconcileError"

# Tenant headers understood by the DCS API
HEADER_ACCOUNT_ID = "X-Account-ID"
HEADER_USER_ID = "X-User-ID"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_SECURITY_GROUP_CREATED = "SecurityGroupCreated"
EVENT_REASON_SECURITY_GROUP_UPDATED = "SecurityGroupUpdated"
EVENT_REASON_SECURITY_GROUP_DELETED = "SecurityGroupDeleted"
