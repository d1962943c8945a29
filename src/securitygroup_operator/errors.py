"""Exceptions raised by the SecurityGroup Operator."""

from __future__ import annotations


class SecurityGroupOperatorError(Exception):
    """Base class for operator errors."""


class AdapterError(SecurityGroupOperatorError):
    """The DCS API could not complete a security group operation."""


class DCSAPIError(AdapterError):
    """Non-success response or transport failure from the DCS API."""

    def __init__(self, operation: str, message: str, code: int | None = None) -> None:
        self.operation = operation
        self.code = code
        self.message = message
        detail = f"code {code}: {message}" if code is not None else message
        super().__init__(f"failed to {operation} security group: {detail}")


class PersistenceError(SecurityGroupOperatorError):
    """Writing a SecurityGroup record or its status to the cluster failed."""

    def __init__(self, message: str, conflict: bool = False) -> None:
        self.conflict = conflict
        super().__init__(message)
