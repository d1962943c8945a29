"""Kubernetes operator that keeps SecurityGroup resources in sync with the DCS cloud API."""

__version__ = "0.1.0"
