"""Models for DCS security group operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RemoteSecurityGroup:
    """The fields of a security group that the operator converges."""

    name: str
    description: str = ""

    def matches(self, name: str, description: str) -> bool:
        """Compare name and description field by field."""
        return self.name == name and self.description == description


@dataclass(frozen=True)
class CreateResult:
    """Identifier assigned by DCS to a new security group, plus the server message."""

    id: str
    message: str = ""
