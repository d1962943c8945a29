"""DCS cloud API security group service."""

from .base import SecurityGroupService
from .client import DCSClient
from .models import CreateResult, RemoteSecurityGroup

__all__ = [
    "SecurityGroupService",
    "DCSClient",
    "CreateResult",
    "RemoteSecurityGroup",
]
