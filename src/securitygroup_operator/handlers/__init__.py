"""Reconcilers for CRD resources."""

from .securitygroup import SecurityGroupReconciler

__all__ = ["SecurityGroupReconciler"]
