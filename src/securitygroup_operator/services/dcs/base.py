"""Base security group service interface."""

from __future__ import annotations

from typing import Protocol

from ...models import Tenant
from .models import CreateResult, RemoteSecurityGroup


class SecurityGroupService(Protocol):
    """Protocol defining security group operations.

    Every call is scoped to a tenant. Any non-success outcome is raised as
    ``AdapterError``.
    """

    def create(self, tenant: Tenant, name: str, description: str) -> CreateResult:
        """Create a security group and return its identifier."""
        ...

    def get(self, tenant: Tenant, group_id: str) -> RemoteSecurityGroup | None:
        """Fetch a security group by id, or None if it does not exist."""
        ...

    def update(self, tenant: Tenant, group_id: str, name: str, description: str) -> str:
        """Update a security group and return the server message."""
        ...

    def delete(self, tenant: Tenant, group_id: str) -> str:
        """Delete a security group and return the server message."""
        ...
